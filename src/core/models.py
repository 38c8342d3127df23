"""Immutable dataclasses shared by the cache layer and the MCP tools.

Includes the context query descriptor used to derive cache keys, the
cached context entry shape, and the memory type vocabulary accepted by
the recall worker.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional, Tuple


MemoryType = Literal["preference", "decision", "learning", "context"]

MEMORY_TYPES: Tuple[str, ...] = ("preference", "decision", "learning", "context")


@dataclass(frozen=True)
class ContextQuery:
    """Descriptor of a context request; the fields that make up a cache key.

    Only `project` is required. Absent optional fields are left out of the
    derived key entirely.
    """

    project: str
    session_id: Optional[str] = None
    query: Optional[str] = None
    limit: Optional[int] = None


@dataclass(frozen=True)
class ContextCacheEntry:
    """A generated context blob and the observation ids it was built from."""

    context: str
    token_count: int
    observations: Tuple[int, ...]
    generated_at: float  # time.time()


@dataclass(frozen=True)
class ContextCacheStats:
    size: int
    total_tokens: int
    average_tokens: float
    hit_rate: float
