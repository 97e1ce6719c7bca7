"""
Drop detection orchestrator.

Drives one detection request through::

    CACHE_LOOKUP ─ hit ──────────────────────────────────────→ DONE
         └─ miss → FETCH_ANALYSIS ─ ok ──→ ANALYZE → SNAP ─┐
                         └─ fail → ERROR_FALLBACK ─────────┴→ CACHE_WRITE → DONE

Lives in ingestion/ because it calls the analysis provider (core/ must
remain pure). Provider and storage are injected; nothing is read from
ambient state.

No retries on fetch failure: the request degrades immediately to the error
fallback, and that result is cached too so a persistently failing track is
not re-fetched on every call within the retention window.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from core.config import DEFAULT_CONFIG, DetectionConfig
from core.drop.analyzer import analyze_for_drop, error_fallback
from core.drop.base import AnalysisProvider, CacheStorage
from core.drop.cache import DropResultCache
from core.drop.types import AnalysisFeatureSet, DetectionParams, DropResult, TrackRef
from infrastructure.metrics import (
    LatencyTimer,
    record_detection,
    record_drop_cache_hit,
    record_drop_cache_miss,
    record_provider_failure,
)

logger = logging.getLogger(__name__)


class DropDetector:
    """
    Public entry point for drop detection.

    Args:
        provider: Analysis provider satisfying ``AnalysisProvider``.
        storage: Cache backend satisfying ``CacheStorage``.
        config: Scoring constants (default: ``DEFAULT_CONFIG``).
        clock: Returns the current Unix time in seconds (default: ``time.time``).
    """

    def __init__(
        self,
        provider: AnalysisProvider,
        storage: CacheStorage,
        *,
        config: DetectionConfig = DEFAULT_CONFIG,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._provider = provider
        self._config = config
        self._clock = clock
        self.cache = DropResultCache(
            storage,
            retention_seconds=config.retention_seconds,
            clock=clock,
        )
        # Track cache hit/miss for response metadata
        self._last_cache_hit = False

    @property
    def last_cache_hit(self) -> bool:
        """True if the last ``detect_drop`` call on this instance was served from the cache.

        Single-caller convenience; shared instances should use
        ``detect_drop_with_status``.
        """
        return self._last_cache_hit

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _compute(self, track: TrackRef, params: DetectionParams) -> DropResult:
        try:
            payload = self._provider.get_analysis(track.id)
            features = (
                payload
                if isinstance(payload, AnalysisFeatureSet)
                else AnalysisFeatureSet.from_payload(payload)
            )
            return analyze_for_drop(
                track, features, params, now_ms=self._now_ms(), config=self._config
            )
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Drop detection failed for '%s' (%s), using error fallback", track.label, exc
            )
            record_provider_failure()
            return error_fallback(track, params, now_ms=self._now_ms(), config=self._config)

    def detect_drop_with_status(
        self,
        track: TrackRef,
        loudness_offset_db: float = 3.0,
        preview_length_ms: int = 20_000,
        *,
        force_refresh: bool = False,
    ) -> tuple[DropResult, bool]:
        """
        Same as ``detect_drop`` but also reports whether the cache served it.

        The hit flag is returned with the result rather than read back from
        the detector, so concurrent callers sharing one instance each see
        their own.

        Returns:
            ``(result, cache_hit)``.

        Raises:
            ValueError: If *preview_length_ms* is not positive.
        """
        params = DetectionParams(
            loudness_offset_db=loudness_offset_db,
            preview_length_ms=preview_length_ms,
        )

        with LatencyTimer() as timer:
            if not force_refresh:
                cached = self.cache.get(track.id, params)
                if cached is not None:
                    record_drop_cache_hit()
                    logger.info("Using cached drop for '%s'", track.label)
                    return cached, True
                record_drop_cache_miss()

            result = self._compute(track, params)
            self.cache.put(result, params)

        record_detection(method=result.method.value, latency_seconds=timer.elapsed)
        logger.info(
            "Drop for '%s': %d ms via %s (confidence %.2f)",
            track.label,
            result.drop_start_ms,
            result.method.value,
            result.confidence,
        )
        return result, False

    def detect_drop(
        self,
        track: TrackRef,
        loudness_offset_db: float = 3.0,
        preview_length_ms: int = 20_000,
        *,
        force_refresh: bool = False,
    ) -> DropResult:
        """
        Locate the drop of *track* and return a playback-ready result.

        Never raises at runtime: provider failures, empty analysis windows and
        cache failures all resolve to a usable DropResult.

        Args:
            track: Track id and duration.
            loudness_offset_db: dB added to the median segment loudness to form
                the dynamic threshold (default: 3).
            preview_length_ms: Preview duration handed to the player
                (default: 20000).
            force_refresh: Skip the cache lookup and recompute; the cache entry
                is rewritten with the new result.

        Returns:
            DropResult with ``0 <= drop_start_ms <= track.duration_ms`` and
            ``0 <= confidence <= 1``.

        Raises:
            ValueError: If *preview_length_ms* is not positive.
        """
        result, cache_hit = self.detect_drop_with_status(
            track,
            loudness_offset_db=loudness_offset_db,
            preview_length_ms=preview_length_ms,
            force_refresh=force_refresh,
        )
        self._last_cache_hit = cache_hit
        return result
