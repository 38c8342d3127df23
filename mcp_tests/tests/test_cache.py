import re

import pytest

import core.cache as cache_mod
from core.cache import QueryCache


@pytest.fixture
def clock(monkeypatch):
    t = {"now": 0.0}

    def fake_monotonic():
        return t["now"]

    monkeypatch.setattr(cache_mod.time, "monotonic", fake_monotonic)
    return t


def test_querycache_set_get_and_expire(clock):
    c = QueryCache(ttl_seconds=10.0, maxsize=10)

    c.set("k", "v")
    assert c.get("k") == "v"

    clock["now"] = 9.999
    assert c.get("k") == "v"

    clock["now"] = 10.0
    assert c.get("k") is None
    # Lazy expiry physically removes the entry on read
    assert len(c) == 0


def test_querycache_expiry_one_ms_either_side(clock):
    c = QueryCache(ttl_seconds=600.0, maxsize=10)
    clock["now"] = 100.0
    c.set("k", "v")

    clock["now"] = 100.0 + 600.0 - 0.001
    assert c.get("k") == "v"

    clock["now"] = 100.0 + 600.0 + 0.001
    assert c.get("k") is None


def test_querycache_fifo_eviction_by_maxsize(clock):
    c = QueryCache(ttl_seconds=100.0, maxsize=2)

    c.set("a", 1)
    c.set("b", 2)
    c.set("c", 3)

    assert c.keys() == ["b", "c"]
    assert c.get("a") is None
    assert c.get("b") == 2
    assert c.get("c") == 3


def test_querycache_reads_do_not_reorder(clock):
    c = QueryCache(ttl_seconds=100.0, maxsize=2)

    c.set("a", 1)
    c.set("b", 2)

    assert c.get("a") == 1

    c.set("c", 3)

    assert c.get("a") is None
    assert c.get("b") == 2
    assert c.get("c") == 3


def test_querycache_replace_refreshes_insertion(clock):
    c = QueryCache(ttl_seconds=100.0, maxsize=2)

    c.set("a", 1)
    c.set("b", 2)
    c.set("a", 10)
    c.set("c", 3)

    assert c.get("a") == 10
    assert c.get("b") is None


def test_querycache_replace_at_capacity_does_not_evict(clock):
    c = QueryCache(ttl_seconds=100.0, maxsize=2)

    c.set("a", 1)
    c.set("b", 2)
    c.set("b", 20)

    assert sorted(c.keys()) == ["a", "b"]


def test_querycache_expired_entries_reclaimed_before_eviction(clock):
    c = QueryCache(ttl_seconds=10.0, maxsize=2)

    c.set("old", 1)
    clock["now"] = 5.0
    c.set("live", 2)

    clock["now"] = 11.0
    c.set("new", 3)

    assert c.keys() == ["live", "new"]


def test_querycache_capacity_invariant(clock):
    c = QueryCache(ttl_seconds=100.0, maxsize=3)

    for i in range(20):
        c.set(f"k{i % 7}", i)
        clock["now"] += 1.0
        assert len(c) <= 3


def test_querycache_maxsize_clamped_to_one():
    c = QueryCache(ttl_seconds=100.0, maxsize=0)
    assert c.maxsize == 1

    c.set("a", 1)
    c.set("b", 2)
    assert c.keys() == ["b"]


def test_querycache_hit_rate(clock):
    c = QueryCache(ttl_seconds=100.0, maxsize=10)
    assert c.stats().hit_rate == 0.0

    assert c.get("k") is None
    c.set("k", "v")
    assert c.get("k") == "v"

    assert c.stats().hit_rate == 0.5


def test_querycache_has_does_not_count(clock):
    c = QueryCache(ttl_seconds=10.0, maxsize=10)
    c.set("k", "v")

    assert c.has("k") is True
    assert c.has("missing") is False
    assert c.stats().hit_rate == 0.0

    clock["now"] = 10.0
    assert c.has("k") is False
    assert len(c) == 0


def test_querycache_peek_leaves_expired_in_place(clock):
    c = QueryCache(ttl_seconds=10.0, maxsize=10)
    c.set("k", "v")
    assert c.peek("k") == "v"

    clock["now"] = 10.0
    assert c.peek("k") is None
    assert len(c) == 1
    assert c.stats().hit_rate == 0.0


def test_querycache_delete(clock):
    c = QueryCache(ttl_seconds=10.0, maxsize=10)
    c.set("k", "v")

    assert c.delete("k") is True
    assert c.delete("k") is False


def test_querycache_keys_include_expired_until_pruned(clock):
    c = QueryCache(ttl_seconds=10.0, maxsize=10)
    c.set("a", 1)
    clock["now"] = 5.0
    c.set("b", 2)

    clock["now"] = 12.0
    assert c.keys() == ["a", "b"]
    assert c.stats().size == 2

    assert c.prune() == 1
    assert c.keys() == ["b"]
    assert c.prune() == 0


def test_querycache_invalidate_pattern_substring_and_regex(clock):
    c = QueryCache(ttl_seconds=10.0, maxsize=10)
    c.set("project:A|query:x", 1)
    c.set("project:A|session:S1", 2)
    c.set("project:B|query:x", 3)

    assert c.invalidate_pattern("query:x") == 2
    assert c.keys() == ["project:A|session:S1"]

    assert c.invalidate_pattern(re.compile(r"session:S\d$")) == 1
    assert len(c) == 0
    assert c.invalidate_pattern("anything") == 0


def test_querycache_clear_keeps_counters(clock):
    c = QueryCache(ttl_seconds=10.0, maxsize=10)
    c.set("k", "v")
    c.get("k")
    c.get("missing")

    c.clear()
    assert len(c) == 0
    c.clear()
    assert len(c) == 0
    assert c.stats().hit_rate == 0.5
