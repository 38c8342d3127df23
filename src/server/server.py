"""Server bootstrap for the recall MCP service.

Creates the FastMCP instance, builds one context cache and one recall
worker client, wires them into the tools and resources, and starts the
MCP server (stdio transport).
"""

import logging

from mcp.server.fastmcp import FastMCP

from clients.recall_client import RecallClient
from config import (
    CONTEXT_CACHE_MAX_TOKENS,
    CONTEXT_CACHE_MAXSIZE,
    CONTEXT_CACHE_TTL_SECONDS,
    HTTP_VERIFY,
    RECALL_HTTP_TIMEOUT,
    RECALL_LOG_LEVEL,
    RECALL_WORKER_URL,
)
from core.context_cache import ContextCache, ContextCacheOptions, get_context_cache

from tools.invalidate_context import register as register_invalidate_context
from tools.recall_context import register as register_recall_context
from tools.save_memory import register as register_save_memory
from tools.search_memories import register as register_search_memories

from resources.cache_stats import register_resources

logger = logging.getLogger(__name__)

mcp = FastMCP("recall-mcp")


def register_tools(*, context_cache: ContextCache, recall_client: RecallClient) -> None:
    register_recall_context(mcp, backend=recall_client, context_cache=context_cache)
    register_search_memories(mcp, backend=recall_client)
    register_save_memory(mcp, backend=recall_client, context_cache=context_cache)
    register_invalidate_context(mcp, context_cache=context_cache)


def register_all() -> None:
    # One cache and one client shared by every tool
    context_cache = get_context_cache(
        ContextCacheOptions(
            maxsize=CONTEXT_CACHE_MAXSIZE,
            ttl_seconds=CONTEXT_CACHE_TTL_SECONDS,
            max_tokens=CONTEXT_CACHE_MAX_TOKENS,
        )
    )
    recall_client = RecallClient(base_url=RECALL_WORKER_URL, timeout=RECALL_HTTP_TIMEOUT, verify=HTTP_VERIFY)

    register_tools(context_cache=context_cache, recall_client=recall_client)
    register_resources(mcp, context_cache=context_cache)


register_all()


def main() -> None:
    # stdout carries the stdio transport, so logs go to stderr
    logging.basicConfig(
        level=getattr(logging, RECALL_LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Starting recall-mcp (worker=%s)", RECALL_WORKER_URL)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
