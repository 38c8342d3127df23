"""MCP resource exposing context cache statistics.

Registers recall://cache/stats, which returns ContextCache.stats() as JSON
without moving the cache hit/miss counters.
"""

from dataclasses import asdict
from typing import Optional

from mcp.server.fastmcp import FastMCP

from core.context_cache import ContextCache, get_context_cache
from core.payloads import to_json_text


def register_resources(mcp: FastMCP, *, context_cache: Optional[ContextCache] = None) -> None:
    """
    Register context cache resources for the MCP server.
    """
    cache = context_cache or get_context_cache()

    @mcp.resource(
        "recall://cache/stats",
        mime_type="application/json",
        description="Context cache size, token totals and hit rate"
    )
    def context_cache_stats() -> str:
        # Reads stats without touching hit/miss counters
        return to_json_text(asdict(cache.stats()))
