"""MCP tool exposing targeted context cache invalidation.

Lets the host drop cached contexts by project, by session or by the ids of
observations that were edited or deleted elsewhere.
"""

from __future__ import annotations

from typing import List, Optional

from mcp.server.fastmcp import FastMCP

from core.context_cache import ContextCache, get_context_cache
from core.errors import ValidationError
from core.payloads import to_json_text


def register(mcp: FastMCP, *, context_cache: Optional[ContextCache] = None) -> None:
    cache = context_cache or get_context_cache()

    @mcp.tool(name="invalidate_context")
    async def invalidate_context(
        project: Optional[str] = None,
        session_id: Optional[str] = None,
        observation_ids: Optional[List[int]] = None,
    ) -> str:
        """Invalidate cached contexts.

        At least one of project, session_id or observation_ids is required;
        every given selector is applied.

        Returns:
          JSON text with the number of entries removed per selector and in total.
        """
        project_clean = (project or "").strip()
        session_clean = (session_id or "").strip()
        if not project_clean and not session_clean and not observation_ids:
            raise ValidationError("Provide project, session_id or observation_ids")

        removed = {"project": 0, "session": 0, "observations": 0}
        if project_clean:
            removed["project"] = cache.invalidate_project(project_clean)
        if session_clean:
            removed["session"] = cache.invalidate_session(session_clean)
        if observation_ids:
            removed["observations"] = cache.invalidate_observations(int(i) for i in observation_ids)

        return to_json_text({"removed": removed, "total": sum(removed.values())})
