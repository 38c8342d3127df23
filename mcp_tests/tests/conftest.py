import pytest

import core.context_cache as context_cache_mod


class DummyMCP:
    """Minimal FastMCP stand-in to capture tool and resource registration."""

    def __init__(self) -> None:
        self.tools = {}
        self.resources = {}

    def tool(self, *, name: str):
        def _decorator(fn):
            self.tools[name] = fn
            return fn
        return _decorator

    def resource(self, uri: str, **kwargs):
        def _decorator(fn):
            self.resources[uri] = fn
            return fn
        return _decorator


class FakeBackend:
    """In-memory MemoryBackend recording every call."""

    def __init__(self, memories=None, results=None) -> None:
        self.memories = list(memories or [])
        self.results = list(results or [])
        self.calls = []

    async def fetch_context(self, *, context, limit, project=None):
        self.calls.append(("fetch_context", context, limit, project))
        return {"memories": self.memories[:limit], "count": min(limit, len(self.memories))}

    async def search(self, *, query, limit, types=None):
        self.calls.append(("search", query, limit, types))
        return {"results": self.results[:limit], "count": min(limit, len(self.results))}

    async def save_memory(self, *, content, memory_type, metadata=None, project=None):
        self.calls.append(("save_memory", content, memory_type, metadata, project))
        return {"id": "mem_1", "timestamp": "2026-01-01T00:00:00Z", "message": "Memory saved successfully"}


@pytest.fixture
def dummy_mcp():
    return DummyMCP()


@pytest.fixture
def fake_backend():
    return FakeBackend(
        memories=[
            {"id": 1, "type": "decision", "content": "Use httpx for the worker client"},
            {"id": 2, "type": "preference", "content": "Prefer small modules"},
        ],
        results=[{"id": 7, "type": "learning", "content": "TTL is in seconds"}],
    )


@pytest.fixture
def fake_clock(monkeypatch):
    t = {"now": 0.0}

    def fake_monotonic():
        return t["now"]

    monkeypatch.setattr(context_cache_mod.time, "monotonic", fake_monotonic)
    return t


@pytest.fixture(autouse=True)
def _reset_context_cache_singleton():
    context_cache_mod.reset_context_cache()
    yield
    context_cache_mod.reset_context_cache()
