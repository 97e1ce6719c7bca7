"""Tests for infrastructure/ storage and metrics.

Covers:
- InMemoryCacheStorage: get/put/delete, LRU eviction, copy-on-read
- RedisCacheStorage: get/put/delete/flush/stats, graceful Redis failure
- metrics: exposition output contains drop metrics
"""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest

from core.drop.cache import make_cache_key
from core.drop.types import DetectionParams
from infrastructure.cache import InMemoryCacheStorage, RedisCacheStorage
from infrastructure.metrics import (
    LatencyTimer,
    get_metrics_response,
    record_detection,
    record_drop_cache_hit,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_storage_no_redis() -> RedisCacheStorage:
    """RedisCacheStorage with Redis patched to fail — exercises no-op path."""
    with patch("infrastructure.cache.redis_lib") as mock_redis:
        mock_redis.from_url.side_effect = ConnectionError("no redis")
        storage = RedisCacheStorage(redis_url="redis://nowhere:9999/0")
    return storage


def _make_mock_redis() -> MagicMock:
    """Create a mock Redis client that behaves like a real one."""
    client = MagicMock()
    client.ping.return_value = True
    client.get.return_value = None
    client.setex.return_value = True
    client.delete.return_value = 1
    client.scan_iter.return_value = iter([])
    return client


# ---------------------------------------------------------------------------
# InMemoryCacheStorage
# ---------------------------------------------------------------------------


class TestInMemoryCacheStorage:
    def test_put_then_get(self) -> None:
        storage = InMemoryCacheStorage()
        storage.put("k", {"drop_start_ms": 1})
        assert storage.get("k") == {"drop_start_ms": 1}

    def test_missing_key(self) -> None:
        assert InMemoryCacheStorage().get("nope") is None

    def test_returned_value_is_a_copy(self) -> None:
        storage = InMemoryCacheStorage()
        storage.put("k", {"a": 1})
        storage.get("k")["a"] = 2  # type: ignore[index]
        assert storage.get("k") == {"a": 1}

    def test_lru_eviction(self) -> None:
        storage = InMemoryCacheStorage(max_size=2)
        storage.put("k1", {"v": 1})
        storage.put("k2", {"v": 2})

        # Access k1 - moves to end
        storage.get("k1")
        storage.put("k3", {"v": 3})

        assert storage.get("k1") == {"v": 1}
        assert storage.get("k2") is None  # Evicted
        assert storage.size() == 2

    def test_overwrite_does_not_evict(self) -> None:
        storage = InMemoryCacheStorage(max_size=2)
        storage.put("k1", {"v": 1})
        storage.put("k2", {"v": 2})
        storage.put("k2", {"v": 22})
        assert storage.get("k1") == {"v": 1}
        assert storage.get("k2") == {"v": 22}

    def test_delete(self) -> None:
        storage = InMemoryCacheStorage()
        storage.put("k", {"v": 1})
        assert storage.delete("k") is True
        assert storage.delete("k") is False

    def test_clear(self) -> None:
        storage = InMemoryCacheStorage()
        storage.put("k1", {})
        storage.put("k2", {})
        storage.clear()
        assert storage.size() == 0


# ---------------------------------------------------------------------------
# RedisCacheStorage — no Redis
# ---------------------------------------------------------------------------


class TestRedisCacheStorageNoRedis:
    def test_available_false_when_redis_unreachable(self) -> None:
        assert _make_storage_no_redis().available is False

    def test_get_returns_none_when_unavailable(self) -> None:
        assert _make_storage_no_redis().get("k") is None

    def test_put_is_noop_when_unavailable(self) -> None:
        # Should not raise
        _make_storage_no_redis().put("k", {"v": 1})

    def test_delete_returns_false_when_unavailable(self) -> None:
        assert _make_storage_no_redis().delete("k") is False

    def test_flush_returns_zero_when_unavailable(self) -> None:
        assert _make_storage_no_redis().flush() == 0

    def test_stats_returns_unavailable(self) -> None:
        assert _make_storage_no_redis().stats()["available"] is False


# ---------------------------------------------------------------------------
# RedisCacheStorage — with mock Redis
# ---------------------------------------------------------------------------


class TestRedisCacheStorageWithRedis:
    def _make_storage(self) -> tuple[RedisCacheStorage, MagicMock]:
        mock_client = _make_mock_redis()
        with patch("infrastructure.cache.redis_lib") as mock_redis_mod:
            mock_redis_mod.from_url.return_value = mock_client
            storage = RedisCacheStorage(redis_url="redis://localhost:6379/0", ttl_seconds=100)
        return storage, mock_client

    def test_available_true_with_redis(self) -> None:
        storage, _ = self._make_storage()
        assert storage.available is True

    def test_get_hit_returns_parsed_dict(self) -> None:
        storage, mock_client = self._make_storage()
        payload = {"track_id": "t1", "drop_start_ms": 60000}
        mock_client.get.return_value = json.dumps(payload)
        assert storage.get("drop:result:abc") == payload

    def test_get_miss_returns_none(self) -> None:
        storage, _ = self._make_storage()
        assert storage.get("drop:result:abc") is None

    def test_put_uses_setex_with_ttl(self) -> None:
        storage, mock_client = self._make_storage()
        storage.put("drop:result:abc", {"v": 1})
        mock_client.setex.assert_called_once_with("drop:result:abc", 100, json.dumps({"v": 1}))

    def test_get_error_propagates_to_caller(self) -> None:
        """DropResultCache absorbs backend errors; the backend reports them."""
        storage, mock_client = self._make_storage()
        mock_client.get.side_effect = ConnectionError("Redis down")
        with pytest.raises(ConnectionError):
            storage.get("k")

    def test_delete(self) -> None:
        storage, mock_client = self._make_storage()
        assert storage.delete("k") is True
        mock_client.delete.return_value = 0
        assert storage.delete("k") is False

    def test_flush_deletes_namespaced_keys(self) -> None:
        storage, mock_client = self._make_storage()
        mock_client.scan_iter.return_value = iter(["drop:result:a", "drop:result:b"])
        mock_client.delete.return_value = 2
        assert storage.flush() == 2
        mock_client.scan_iter.assert_called_with("drop:result:*")

    def test_stats_counts_keys(self) -> None:
        storage, mock_client = self._make_storage()
        mock_client.scan_iter.return_value = iter(["drop:result:a"])
        assert storage.stats() == {"available": True, "result_keys": 1}

    def test_flush_matches_keys_written_by_result_cache(self) -> None:
        storage, mock_client = self._make_storage()
        key = make_cache_key("t1", DetectionParams())
        mock_client.scan_iter.return_value = iter([key])
        mock_client.delete.return_value = 1
        assert storage.flush() == 1
        pattern = mock_client.scan_iter.call_args.args[0]
        assert key.startswith(pattern.rstrip("*"))


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------


class TestMetrics:
    def test_exposition_contains_drop_metrics(self) -> None:
        record_detection(method="sections", latency_seconds=0.01)
        record_drop_cache_hit()
        body, content_type = get_metrics_response()

        assert b"drop_detections_total" in body
        assert b'method="sections"' in body
        assert b"drop_cache_hits_total" in body
        assert content_type.startswith("text/plain")

    def test_latency_timer_measures_elapsed(self) -> None:
        with LatencyTimer() as timer:
            sum(range(1000))
        assert timer.elapsed >= 0.0
