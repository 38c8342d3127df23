"""MCP tool that recalls memories relevant to the current context.

Registers the 'recall_context' tool. Results are served through the
injected ContextCache so repeated requests for the same project, session,
context and limit reuse the generated blob until it expires or one of the
memories it contains is invalidated.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from mcp.server.fastmcp import FastMCP

from core.context_cache import ContextCache, get_context_cache
from core.errors import ValidationError
from core.interfaces import MemoryBackend
from core.payloads import estimate_tokens, observation_ids, to_json_text

logger = logging.getLogger(__name__)

DEFAULT_PROJECT = "default"


def register(
    mcp: FastMCP,
    *,
    backend: MemoryBackend,
    context_cache: Optional[ContextCache] = None,
) -> None:
    cache = context_cache or get_context_cache()

    @mcp.tool(name="recall_context")
    async def recall_context(
        context: str = "",
        max_results: int = 10,
        project: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> str:
        """Retrieve memories relevant to the current context.

        Parameters:
          - context: the current context to find relevant memories for (required).
          - max_results: maximum number of memories to return (default: 10).
          - project: project scope for the memories (default: "default").
          - session_id: optional session scope; cached per session when given.

        Returns:
          JSON text with "memories", "count" and "cached" (true when served
          from the context cache).

        Raises:
          ValidationError for empty context or non-positive max_results;
          ExternalServiceError when the recall worker cannot be reached.
        """
        text = (context or "").strip()
        if not text:
            raise ValidationError("Missing context")
        if int(max_results) <= 0:
            raise ValidationError("max_results must be positive")

        project_clean = (project or "").strip() or DEFAULT_PROJECT
        key = cache.generate_key(project_clean, session_id=session_id, query=text, limit=int(max_results))

        # Joining an in-flight generation is not a cache hit
        cached = cache.has(key)

        async def generate() -> Dict[str, Any]:
            data = await backend.fetch_context(context=text, limit=int(max_results), project=project_clean)
            memories = list(data.get("memories") or [])
            blob = json.dumps(memories, ensure_ascii=False, default=str)
            return {
                "context": blob,
                "token_count": estimate_tokens(blob),
                "observations": observation_ids(memories),
            }

        entry = await cache.get_or_generate(key, generate)
        if entry.token_count > cache.max_tokens:
            # Oversized blobs are still returned, just not kept around
            logger.info("Context for %r exceeds max_tokens (%d); not caching", key, entry.token_count)
            cache.delete(key)

        memories = json.loads(entry.context)
        return to_json_text({"memories": memories, "count": len(memories), "cached": cached})
