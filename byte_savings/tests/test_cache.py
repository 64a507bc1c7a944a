"""
Tests for the computed artifact cache and the audit result store
"""

from datetime import datetime, timedelta, timezone

import pytest

from byte_savings.models import AuditProduct, NetworkRecord, PageTrace, TraceEvent
from byte_savings.utils.cache import ComputedArtifactCache, get_cache, hash_inputs
from byte_savings.utils.result_store import AuditResultStore, StoredAudit


def _record(transfer_size=1000):
    return NetworkRecord(request_id="1", url="https://example.com/", transfer_size=transfer_size)


def test_hash_inputs_consistency():
    assert hash_inputs(_record()) == hash_inputs(_record())
    assert len(hash_inputs(_record())) == 64


def test_hash_inputs_differs_on_content():
    assert hash_inputs(_record(1000)) != hash_inputs(_record(2000))


def test_hash_inputs_handles_missing_trace():
    trace = PageTrace(events=[TraceEvent(name="firstContentfulPaint", ts=10)])
    assert hash_inputs(None, _record()) != hash_inputs(trace, _record())


def test_get_or_compute_computes_once():
    cache = ComputedArtifactCache(max_size=5)
    calls = []

    def compute():
        calls.append(1)
        return {"value": 42}

    first = cache.get_or_compute("graph", "abc", compute)
    second = cache.get_or_compute("graph", "abc", compute)

    assert first is second
    assert len(calls) == 1
    stats = cache.get_stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["hit_rate"] == 50.0


def test_get_or_compute_does_not_cache_failures():
    cache = ComputedArtifactCache(max_size=5)

    def broken():
        raise ValueError("no records")

    with pytest.raises(ValueError):
        cache.get_or_compute("graph", "abc", broken)
    assert cache.get_stats()["size"] == 0


def test_names_are_separate_keys():
    cache = ComputedArtifactCache(max_size=5)
    cache.get_or_compute("graph", "abc", lambda: "graph")
    assert cache.get_or_compute("simulator", "abc", lambda: "simulator") == "simulator"


def test_lru_eviction():
    cache = ComputedArtifactCache(max_size=2)
    cache.put("a", 1)
    cache.put("b", 2)
    cache.get("a")  # a is now most recent
    cache.put("c", 3)

    assert cache.get("b") is None
    assert cache.get("a") == 1
    assert cache.get("c") == 3
    assert cache.get_stats()["evictions"] == 1


def test_clear_resets_stats():
    cache = ComputedArtifactCache(max_size=2)
    cache.put("a", 1)
    cache.get("a")
    cache.clear()
    stats = cache.get_stats()
    assert stats["size"] == 0
    assert stats["hits"] == 0


def test_global_cache_singleton():
    assert get_cache() is get_cache()


def test_result_store_round_trip():
    store = AuditResultStore(max_size=10)
    stored = StoredAudit("unused-code", AuditProduct(score=0.9, numeric_value=120))
    result_id = store.store(stored)

    fetched = store.get(result_id)
    assert fetched is stored
    assert fetched.to_dict()["product"]["numeric_value"] == 120
    assert store.delete(result_id) is True
    assert store.get(result_id) is None
    assert store.delete(result_id) is False


def test_result_store_expiry():
    store = AuditResultStore(max_size=10)
    stored = StoredAudit("unused-code", AuditProduct(score=1))
    stored.expires_at = datetime.now(timezone.utc) - timedelta(seconds=1)
    store.store(stored)
    assert store.get(stored.id) is None


def test_result_store_evicts_oldest():
    store = AuditResultStore(max_size=2)
    first = StoredAudit("a", AuditProduct(score=1))
    first.created_at -= timedelta(minutes=5)
    second = StoredAudit("b", AuditProduct(score=1))
    third = StoredAudit("c", AuditProduct(score=1))
    for item in (first, second, third):
        store.store(item)

    assert store.get(first.id) is None
    assert store.get(second.id) is second
    assert store.get_stats()["size"] == 2
