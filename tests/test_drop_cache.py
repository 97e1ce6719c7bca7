"""Tests for the drop result cache: key derivation, expiry and failure tolerance."""

from __future__ import annotations

from unittest.mock import MagicMock

from conftest import FakeClock

from core.drop.cache import DropResultCache, make_cache_key
from core.drop.types import DetectionParams, DropMethod, DropResult
from infrastructure.cache import InMemoryCacheStorage

DAY = 24 * 60 * 60


def _result(clock: FakeClock, track_id: str = "t1", preview: int = 20_000) -> DropResult:
    return DropResult(
        track_id=track_id,
        drop_start_ms=45_000,
        confidence=0.7,
        method=DropMethod.SEGMENTS,
        preview_length_ms=preview,
        computed_at_epoch_ms=int(clock() * 1000),
    )


class TestMakeCacheKey:
    def test_deterministic(self) -> None:
        assert make_cache_key("t1", DetectionParams()) == make_cache_key("t1", DetectionParams())

    def test_namespace(self) -> None:
        assert make_cache_key("t1", DetectionParams()).startswith("drop:result:")

    def test_differs_on_track(self) -> None:
        assert make_cache_key("t1", DetectionParams()) != make_cache_key("t2", DetectionParams())

    def test_track_id_case_sensitive(self) -> None:
        assert make_cache_key("AbC", DetectionParams()) != make_cache_key("abc", DetectionParams())

    def test_differs_on_offset(self) -> None:
        k1 = make_cache_key("t1", DetectionParams(loudness_offset_db=3.0))
        k2 = make_cache_key("t1", DetectionParams(loudness_offset_db=1.5))
        assert k1 != k2

    def test_differs_below_four_decimals(self) -> None:
        k1 = make_cache_key("t1", DetectionParams(loudness_offset_db=3.00001))
        k2 = make_cache_key("t1", DetectionParams(loudness_offset_db=3.00004))
        assert k1 != k2

    def test_differs_on_preview_length(self) -> None:
        k1 = make_cache_key("t1", DetectionParams(preview_length_ms=20_000))
        k2 = make_cache_key("t1", DetectionParams(preview_length_ms=30_000))
        assert k1 != k2

    def test_int_and_float_offset_share_key(self) -> None:
        k1 = make_cache_key("t1", DetectionParams(loudness_offset_db=3))
        k2 = make_cache_key("t1", DetectionParams(loudness_offset_db=3.0))
        assert k1 == k2


class TestDropResultCache:
    def test_miss_then_hit(self, clock: FakeClock) -> None:
        cache = DropResultCache(InMemoryCacheStorage(), clock=clock)
        params = DetectionParams()
        assert cache.get("t1", params) is None

        result = _result(clock)
        cache.put(result, params)
        assert cache.get("t1", params) == result

    def test_parameter_profiles_coexist(self, clock: FakeClock) -> None:
        cache = DropResultCache(InMemoryCacheStorage(), clock=clock)
        short, long = DetectionParams(preview_length_ms=10_000), DetectionParams(preview_length_ms=30_000)

        cache.put(_result(clock, preview=10_000), short)
        cache.put(_result(clock, preview=30_000), long)

        assert cache.get("t1", short).preview_length_ms == 10_000  # type: ignore[union-attr]
        assert cache.get("t1", long).preview_length_ms == 30_000  # type: ignore[union-attr]

    def test_overwrite_replaces_entry(self, clock: FakeClock) -> None:
        storage = InMemoryCacheStorage()
        cache = DropResultCache(storage, clock=clock)
        params = DetectionParams()

        cache.put(_result(clock), params)
        clock.advance(60)
        newer = _result(clock)
        cache.put(newer, params)

        assert cache.get("t1", params) == newer
        assert storage.size() == 1

    def test_entry_valid_at_exactly_retention(self, clock: FakeClock) -> None:
        cache = DropResultCache(InMemoryCacheStorage(), clock=clock)
        params = DetectionParams()
        cache.put(_result(clock), params)

        clock.advance(7 * DAY)
        assert cache.get("t1", params) is not None

    def test_expired_entry_treated_as_absent_but_kept(self, clock: FakeClock) -> None:
        storage = InMemoryCacheStorage()
        cache = DropResultCache(storage, clock=clock)
        params = DetectionParams()
        cache.put(_result(clock), params)

        clock.advance(7 * DAY + 1)
        assert cache.get("t1", params) is None
        assert storage.size() == 1

    def test_custom_retention(self, clock: FakeClock) -> None:
        cache = DropResultCache(InMemoryCacheStorage(), retention_seconds=60, clock=clock)
        params = DetectionParams()
        cache.put(_result(clock), params)
        clock.advance(61)
        assert cache.get("t1", params) is None

    def test_read_error_is_a_miss(self, clock: FakeClock) -> None:
        storage = MagicMock()
        storage.get.side_effect = ConnectionError("storage down")
        cache = DropResultCache(storage, clock=clock)
        assert cache.get("t1", DetectionParams()) is None

    def test_write_error_does_not_raise(self, clock: FakeClock) -> None:
        storage = MagicMock()
        storage.put.side_effect = ConnectionError("storage down")
        cache = DropResultCache(storage, clock=clock)
        # Must not raise
        cache.put(_result(clock), DetectionParams())

    def test_unreadable_entry_is_a_miss(self, clock: FakeClock) -> None:
        storage = InMemoryCacheStorage()
        params = DetectionParams()
        storage.put(make_cache_key("t1", params), {"track_id": "t1", "method": "bogus"})
        cache = DropResultCache(storage, clock=clock)
        assert cache.get("t1", params) is None

    def test_invalidate(self, clock: FakeClock) -> None:
        cache = DropResultCache(InMemoryCacheStorage(), clock=clock)
        params = DetectionParams()
        cache.put(_result(clock), params)

        assert cache.invalidate("t1", params) is True
        assert cache.get("t1", params) is None
        assert cache.invalidate("t1", params) is False

    def test_invalidate_error_returns_false(self, clock: FakeClock) -> None:
        storage = MagicMock()
        storage.delete.side_effect = ConnectionError("storage down")
        cache = DropResultCache(storage, clock=clock)
        assert cache.invalidate("t1", DetectionParams()) is False
