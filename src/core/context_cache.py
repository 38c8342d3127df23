"""Cache for generated context blobs with scoped invalidation.

Wraps a QueryCache with composite key derivation, token-counted entries
that remember which observations they were built from, and invalidation
by project, by session or by changed observation ids. get_or_generate
de-duplicates concurrent misses so a generator runs once per key.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional, Sequence, Tuple, Union

from core.cache import QueryCache
from core.errors import ValidationError
from core.interfaces import ContextGenerator
from core.models import ContextCacheEntry, ContextCacheStats, ContextQuery

logger = logging.getLogger(__name__)

KEY_SEPARATOR = "|"

_KEY_RE = re.compile(
    r"project:(?P<project>[^|]+)"
    r"(?:\|session:(?P<session>[^|]+))?"
    r"(?:\|query:(?P<query>.+?))?"
    r"(?:\|limit:(?P<limit>\d+))?",
    re.DOTALL,
)


@dataclass(frozen=True)
class ContextCacheOptions:
    maxsize: int = 50
    ttl_seconds: float = 600.0
    # Advisory only: callers decide whether to cache oversized results
    max_tokens: int = 100_000


@dataclass(frozen=True, slots=True)
class _ScopedEntry:
    # Stored value: the public entry plus the scope parsed from its key
    entry: ContextCacheEntry
    project: Optional[str]
    session_id: Optional[str]


def generate_key(
    project: str,
    session_id: Optional[str] = None,
    query: Optional[str] = None,
    limit: Optional[int] = None,
) -> str:
    """Build the composite cache key for a context request.

    Present fields are joined in a fixed order (project, session, query,
    limit); absent or empty optional fields are omitted, not padded.
    """
    project_clean = (project or "").strip()
    if not project_clean:
        raise ValidationError("project must be non-empty")
    if KEY_SEPARATOR in project_clean:
        raise ValidationError(f"project must not contain {KEY_SEPARATOR!r}")
    if session_id and KEY_SEPARATOR in session_id:
        raise ValidationError(f"session_id must not contain {KEY_SEPARATOR!r}")
    if limit is not None and (isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0):
        raise ValidationError("limit must be a positive integer")

    parts = [
        f"project:{project_clean}",
        f"session:{session_id}" if session_id else "",
        f"query:{query}" if query else "",
        f"limit:{limit}" if limit else "",
    ]
    return KEY_SEPARATOR.join(p for p in parts if p)


def parse_key(key: str) -> Optional[ContextQuery]:
    """Recover the ContextQuery from a key built by generate_key, else None."""
    m = _KEY_RE.fullmatch(key or "")
    if not m:
        return None
    limit = m.group("limit")
    return ContextQuery(
        project=m.group("project"),
        session_id=m.group("session"),
        query=m.group("query"),
        limit=int(limit) if limit is not None else None,
    )


def _scope_of(key: str) -> Tuple[Optional[str], Optional[str]]:
    # (project, session_id) of a key; raw fragments when it does not parse
    parsed = parse_key(key)
    if parsed is not None:
        return parsed.project, parsed.session_id

    project: Optional[str] = None
    session_id: Optional[str] = None
    for part in (key or "").split(KEY_SEPARATOR):
        if project is None and part.startswith("project:"):
            project = part[len("project:"):] or None
        elif session_id is None and part.startswith("session:"):
            session_id = part[len("session:"):] or None
    return project, session_id


def _coerce_result(result: Any) -> ContextCacheEntry:
    # Generators may return a mapping (camelCase or snake_case) or an object
    if isinstance(result, ContextCacheEntry):
        context, tokens, observations = result.context, result.token_count, result.observations
    elif isinstance(result, dict):
        context = result["context"]
        tokens = result["token_count"] if "token_count" in result else result["tokenCount"]
        observations = result.get("observations", ())
    else:
        context = result.context
        tokens = result.token_count
        observations = getattr(result, "observations", ())

    return ContextCacheEntry(
        context=str(context),
        token_count=int(tokens),
        observations=tuple(int(i) for i in observations),
        generated_at=time.time(),
    )


class ContextCache:
    """Memoizes generated context blobs keyed by project/session/query/limit.

    Invalidation paths:
      - invalidate_project / invalidate_session: compare the scope fields
        parsed from each key, so project "A" never matches "AB" or a session
        named "A-backup".
      - invalidate_observations: scans every stored entry and drops those
        whose observation ids intersect the changed ids.
      - invalidate_pattern: raw key-string matching for anything else.
    """

    def __init__(self, options: Optional[ContextCacheOptions] = None) -> None:
        self._options = options or ContextCacheOptions()
        self._cache: QueryCache[_ScopedEntry] = QueryCache(
            ttl_seconds=self._options.ttl_seconds,
            maxsize=self._options.maxsize,
        )
        self._inflight: Dict[str, "asyncio.Future[ContextCacheEntry]"] = {}

    @property
    def options(self) -> ContextCacheOptions:
        return self._options

    @property
    def max_tokens(self) -> int:
        return self._options.max_tokens

    def generate_key(
        self,
        project: str,
        session_id: Optional[str] = None,
        query: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> str:
        return generate_key(project, session_id=session_id, query=query, limit=limit)

    def key_for(self, query: ContextQuery) -> str:
        return generate_key(query.project, session_id=query.session_id, query=query.query, limit=query.limit)

    def get(self, key: str) -> Optional[ContextCacheEntry]:
        stored = self._cache.get(key)
        return stored.entry if stored is not None else None

    def has(self, key: str) -> bool:
        return self._cache.has(key)

    def delete(self, key: str) -> bool:
        return self._cache.delete(key)

    def set(
        self,
        key: str,
        context: str,
        token_count: int,
        observations: Sequence[int],
    ) -> ContextCacheEntry:
        entry = ContextCacheEntry(
            context=context,
            token_count=int(token_count),
            observations=tuple(observations),
            generated_at=time.time(),
        )
        self._store(key, entry)
        return entry

    def invalidate_project(self, project: str) -> int:
        self._detach_inflight(lambda key: _scope_of(key)[0] == project)
        return self._invalidate_where(lambda s: s.project == project)

    def invalidate_session(self, session_id: str) -> int:
        self._detach_inflight(lambda key: _scope_of(key)[1] == session_id)
        return self._invalidate_where(lambda s: s.session_id == session_id)

    def invalidate_observations(self, observation_ids: Iterable[int]) -> int:
        # The key does not encode which records a blob summarizes, so this must scan entries
        ids = set(observation_ids)
        if not ids:
            return 0
        # A running generation may have read any of the changed records
        self._detach_inflight(lambda key: True)
        return self._invalidate_where(lambda s: not ids.isdisjoint(s.entry.observations))

    def invalidate_pattern(self, pattern: Union[str, "re.Pattern[str]"]) -> int:
        if isinstance(pattern, str):
            self._detach_inflight(lambda key: pattern in key)
        else:
            self._detach_inflight(lambda key: pattern.search(key) is not None)
        return self._cache.invalidate_pattern(pattern)

    def clear(self) -> None:
        self._detach_inflight(lambda key: True)
        self._cache.clear()

    def prune(self) -> int:
        return self._cache.prune()

    def stats(self) -> ContextCacheStats:
        # Reads through peek() so computing stats never moves hit/miss counters
        base = self._cache.stats()
        total_tokens = 0
        for key in self._cache.keys():
            stored = self._cache.peek(key)
            if stored is not None:
                total_tokens += stored.entry.token_count

        return ContextCacheStats(
            size=base.size,
            total_tokens=total_tokens,
            average_tokens=total_tokens / base.size if base.size > 0 else 0.0,
            hit_rate=base.hit_rate,
        )

    async def get_or_generate(self, key: str, generator: ContextGenerator) -> ContextCacheEntry:
        """Return the cached entry for key, generating and storing it on a miss.

        Concurrent misses for the same key await one shared generation.
        Generator failures propagate to every waiter and are never cached.
        A generation detached by an invalidation still answers its own
        waiters but never stores its result, and later calls start afresh.
        """
        cached = self.get(key)
        if cached is not None:
            return cached

        pending = self._inflight.get(key)
        if pending is None:
            pending = asyncio.ensure_future(self._generate(key, generator))
            self._inflight[key] = pending
        else:
            logger.debug("Joining in-flight context generation for %r", key)

        # Shield so one cancelled waiter does not cancel the shared generation
        return await asyncio.shield(pending)

    async def _generate(self, key: str, generator: ContextGenerator) -> ContextCacheEntry:
        task = asyncio.current_task()
        try:
            logger.debug("Generating context for %r", key)
            entry = _coerce_result(await generator())
            if self._inflight.get(key) is task:
                self._store(key, entry)
            else:
                logger.debug("Discarding context for %r; invalidated while generating", key)
            return entry
        finally:
            if self._inflight.get(key) is task:
                del self._inflight[key]

    def _store(self, key: str, entry: ContextCacheEntry) -> None:
        project, session_id = _scope_of(key)
        self._cache.set(key, _ScopedEntry(entry=entry, project=project, session_id=session_id))

    def _detach_inflight(self, match: Callable[[str], bool]) -> int:
        detached = [key for key in self._inflight if match(key)]
        for key in detached:
            del self._inflight[key]
        if detached:
            logger.debug("Detached %d in-flight context generations", len(detached))
        return len(detached)

    def _invalidate_where(self, predicate: Callable[[_ScopedEntry], bool]) -> int:
        removed = 0
        for key in self._cache.keys():
            stored = self._cache.peek(key)
            if stored is None:
                # Expired entries are dropped by prune(), not counted here
                continue
            if predicate(stored):
                self._cache.delete(key)
                removed += 1
        if removed:
            logger.debug("Invalidated %d context entries", removed)
        return removed


_instance: Optional[ContextCache] = None


def get_context_cache(options: Optional[ContextCacheOptions] = None) -> ContextCache:
    """Return the process-wide ContextCache, creating it on first call.

    Only the first caller's options take effect; later options are ignored.
    Prefer constructing a ContextCache and injecting it where possible.
    """
    global _instance
    if _instance is None:
        _instance = ContextCache(options)
    elif options is not None and options != _instance.options:
        logger.debug("Ignoring ContextCache options %r; instance already configured", options)
    return _instance


def reset_context_cache() -> None:
    global _instance
    _instance = None
