"""MCP tool that searches stored memories.

Registers 'search_memories', validating the limit and type filters before
delegating to the memory backend.
"""

from __future__ import annotations

from typing import List, Optional

from mcp.server.fastmcp import FastMCP

from core.errors import ValidationError
from core.interfaces import MemoryBackend
from core.models import MEMORY_TYPES
from core.payloads import to_json_text


def _normalize_types(types: Optional[List[str]]) -> Optional[List[str]]:
    if not types:
        return None
    out: List[str] = []
    for t in types:
        name = (t or "").strip().lower()
        if name not in MEMORY_TYPES:
            raise ValidationError(f"Unknown memory type: {t!r} (expected one of {', '.join(MEMORY_TYPES)})")
        if name not in out:
            out.append(name)
    return out


def register(mcp: FastMCP, *, backend: MemoryBackend) -> None:
    @mcp.tool(name="search_memories")
    async def search_memories(
        query: str = "",
        limit: int = 20,
        types: Optional[List[str]] = None,
    ) -> str:
        """Search through stored memories.

        Parameters:
          - query: search query (required).
          - limit: maximum results to return (default: 20).
          - types: optional filter by memory types
            (preference, decision, learning, context).

        Returns:
          JSON text with "results", "count" and the echoed "query".
        """
        q = (query or "").strip()
        if not q:
            raise ValidationError("Missing search query")
        if int(limit) <= 0:
            raise ValidationError("limit must be positive")

        data = await backend.search(query=q, limit=int(limit), types=_normalize_types(types))
        results = list(data.get("results") or [])
        return to_json_text({"results": results, "count": len(results), "query": q})
