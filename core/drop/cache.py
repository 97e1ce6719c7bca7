"""
Drop result cache with parameterized keys and a retention window.

Cache key = namespace + SHA-256(track_id | loudness_offset_db | preview_length_ms).
Changing either detection parameter yields a different key, so several
parameter profiles for the same track coexist.

Entries older than the retention window are reported as absent but are not
deleted; physical removal is left to the storage backend. Storage failures
never propagate: a failed read is a miss, a failed write is logged.

Usage::

    from core.drop.cache import DropResultCache

    cache = DropResultCache(storage)
    hit = cache.get(track.id, params)
    if hit is None:
        result = ...  # run detection
        cache.put(result, params)
"""

from __future__ import annotations

import hashlib
import logging
import time
from collections.abc import Callable

from core.config import SEVEN_DAYS_SECONDS
from core.drop.base import CacheStorage
from core.drop.types import DetectionParams, DropResult

logger = logging.getLogger(__name__)

KEY_NAMESPACE = "drop:result:"


def make_cache_key(track_id: str, params: DetectionParams) -> str:
    """Deterministic cache key from track identity and detection parameters.

    Args:
        track_id: Provider track id (case-sensitive).
        params: Detection parameters.

    Returns:
        Namespaced storage key string.
    """
    offset = repr(float(params.loudness_offset_db))
    raw = f"{track_id}|{offset}|{params.preview_length_ms}"
    digest = hashlib.sha256(raw.encode("utf-8")).hexdigest()
    return f"{KEY_NAMESPACE}{digest}"


class DropResultCache:
    """
    Failure-tolerant DropResult cache over an injected storage backend.

    Args:
        storage: Key-value backend satisfying ``CacheStorage``.
        retention_seconds: Age after which an entry is treated as absent
            (default: 7 days).
        clock: Returns the current Unix time in seconds (default: ``time.time``).
    """

    def __init__(
        self,
        storage: CacheStorage,
        retention_seconds: float = SEVEN_DAYS_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._storage = storage
        self.retention_seconds = retention_seconds
        self._clock = clock

    def is_expired(self, result: DropResult) -> bool:
        """True if *result* is older than the retention window."""
        age_ms = self._clock() * 1000 - result.computed_at_epoch_ms
        return age_ms > self.retention_seconds * 1000

    def get(self, track_id: str, params: DetectionParams) -> DropResult | None:
        """
        Return a fresh cached result, or None on miss, expiry or error.

        Args:
            track_id: Track identifier.
            params: Detection parameters the result was computed with.
        """
        key = make_cache_key(track_id, params)
        try:
            raw = self._storage.get(key)
        except Exception as exc:  # noqa: BLE001
            logger.warning("DropResultCache.get error for %s: %s", track_id, exc)
            return None
        if raw is None:
            return None

        try:
            result = DropResult.from_dict(raw)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("DropResultCache: unreadable entry for %s (%s)", track_id, exc)
            return None

        if self.is_expired(result):
            logger.debug("DropResultCache EXPIRED: %s", track_id)
            return None
        logger.debug("DropResultCache HIT: %s", track_id)
        return result

    def put(self, result: DropResult, params: DetectionParams) -> None:
        """Store *result* under its (track, params) key, overwriting silently."""
        key = make_cache_key(result.track_id, params)
        try:
            self._storage.put(key, result.as_dict())
            logger.debug("DropResultCache SET: %s (%s)", result.track_id, result.method.value)
        except Exception as exc:  # noqa: BLE001
            logger.warning("DropResultCache.put error for %s: %s", result.track_id, exc)

    def invalidate(self, track_id: str, params: DetectionParams) -> bool:
        """Remove the entry for (track, params). Returns True if one was removed."""
        key = make_cache_key(track_id, params)
        try:
            return bool(self._storage.delete(key))
        except Exception as exc:  # noqa: BLE001
            logger.warning("DropResultCache.invalidate error for %s: %s", track_id, exc)
            return False
