"""MCP tool that saves a memory and drops cached contexts it makes stale."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from mcp.server.fastmcp import FastMCP

from core.context_cache import ContextCache, get_context_cache
from core.errors import ValidationError
from core.interfaces import MemoryBackend
from core.models import MEMORY_TYPES
from core.payloads import to_json_text
from tools.recall_context import DEFAULT_PROJECT

logger = logging.getLogger(__name__)


def register(
    mcp: FastMCP,
    *,
    backend: MemoryBackend,
    context_cache: Optional[ContextCache] = None,
) -> None:
    cache = context_cache or get_context_cache()

    @mcp.tool(name="save_memory")
    async def save_memory(
        content: str = "",
        type: str = "context",
        metadata: Optional[Dict[str, Any]] = None,
        project: Optional[str] = None,
    ) -> str:
        """Manually save an important piece of information.

        Parameters:
          - content: the information to remember (required).
          - type: one of preference, decision, learning, context.
          - metadata: optional additional metadata to store.
          - project: project the memory belongs to (default: "default").

        Returns:
          JSON text with the saved memory id, timestamp and the number of
          cached contexts invalidated for the project.
        """
        text = (content or "").strip()
        if not text:
            raise ValidationError("Missing memory content")

        memory_type = (type or "").strip().lower()
        if memory_type not in MEMORY_TYPES:
            raise ValidationError(f"Unknown memory type: {type!r}")

        project_clean = (project or "").strip() or DEFAULT_PROJECT
        result = await backend.save_memory(
            content=text,
            memory_type=memory_type,
            metadata=metadata,
            project=project_clean,
        )

        # A new memory can change what any context for this project should contain
        invalidated = cache.invalidate_project(project_clean)
        logger.debug("Saved memory in %r; invalidated %d cached contexts", project_clean, invalidated)

        return to_json_text({**dict(result), "invalidated": invalidated})
