"""Core protocol and interface definitions.

Defines the MemoryBackend protocol implemented by the recall worker client
and consumed by the tools, and the shape of the async context generators
handed to ContextCache.get_or_generate.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, List, Mapping, Optional, Protocol


class MemoryBackend(Protocol):
    """Contract for any store of memories (worker API, in-process fake, etc.)."""
    async def fetch_context(
        self,
        *,
        context: str,
        limit: int,
        project: Optional[str] = None,
    ) -> Mapping[str, Any]:
        ...

    async def search(
        self,
        *,
        query: str,
        limit: int,
        types: Optional[List[str]] = None,
    ) -> Mapping[str, Any]:
        ...

    async def save_memory(
        self,
        *,
        content: str,
        memory_type: str,
        metadata: Optional[Mapping[str, Any]] = None,
        project: Optional[str] = None,
    ) -> Mapping[str, Any]:
        ...


# Returns a mapping or object exposing context, token_count and observations
ContextGenerator = Callable[[], Awaitable[Any]]
