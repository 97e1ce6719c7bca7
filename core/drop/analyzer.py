"""
core/drop/analyzer.py — Fallback chain from analysis features to a DropResult.

Pure module: the clock value is passed in, no I/O.

Priority order (first non-empty step wins, never score-maximizing across steps):
    1. Section scanner           → method "sections", squashed confidence
    2. Segment scanner           → method "segments", squashed confidence
    3. Loudest in-window segment → method "loudestSegment", fixed confidence
    4. Fraction of duration      → method "fallback", fixed confidence

Step 5 (``error_fallback``) is used by the detector when the analysis itself
could not be obtained.

Scanner candidates are beat-snapped before conversion to milliseconds.
"""

from __future__ import annotations

import logging
import math

from core.config import DEFAULT_CONFIG, DetectionConfig
from core.drop.confidence import squash
from core.drop.scanners import (
    dynamic_threshold,
    loudest_segment,
    scan_sections,
    scan_segments,
    search_window,
)
from core.drop.snapping import snap_to_bar
from core.drop.types import (
    AnalysisFeatureSet,
    DetectionParams,
    DropMethod,
    DropResult,
    TrackRef,
)

logger = logging.getLogger(__name__)


def _to_track_ms(start_sec: float, duration_ms: int) -> int:
    """Convert seconds to whole milliseconds clamped to ``[0, duration_ms]``."""
    return min(max(0, math.floor(start_sec * 1000)), duration_ms)


def _result(
    track: TrackRef,
    params: DetectionParams,
    *,
    drop_start_ms: int,
    confidence: float,
    method: DropMethod,
    now_ms: int,
) -> DropResult:
    return DropResult(
        track_id=track.id,
        drop_start_ms=drop_start_ms,
        confidence=min(max(confidence, 0.0), 1.0),
        method=method,
        preview_length_ms=params.preview_length_ms,
        computed_at_epoch_ms=now_ms,
    )


def analyze_for_drop(
    track: TrackRef,
    features: AnalysisFeatureSet,
    params: DetectionParams,
    *,
    now_ms: int,
    config: DetectionConfig = DEFAULT_CONFIG,
) -> DropResult:
    """Run the scanner fallback chain over one track's analysis.

    Args:
        track: Track being analyzed.
        features: Deserialized analysis of the track.
        params: Loudness offset and preview length.
        now_ms: Epoch milliseconds stamped on the result.
        config: Scoring constants.

    Returns:
        A DropResult; always produced, whatever the features contain.
    """
    window = search_window(track.duration_ms, config)
    threshold = dynamic_threshold(features.segments, params.loudness_offset_db)
    logger.info(
        "Analyzing '%s' (%d ms) between %.0f ms and %.0f ms, threshold %.2f dB",
        track.label,
        track.duration_ms,
        window.start_ms,
        window.end_ms,
        threshold,
    )

    candidate = scan_sections(features.sections, window, threshold, config)
    if candidate is None:
        candidate = scan_segments(features.segments, window, threshold, config)

    if candidate is not None:
        snapped = snap_to_bar(candidate.start_sec, features.bars, config)
        logger.info(
            "Drop via %s at %.2fs (snapped %.2fs), score %.3f",
            candidate.source_method.value,
            candidate.start_sec,
            snapped,
            candidate.raw_score,
        )
        return _result(
            track,
            params,
            drop_start_ms=_to_track_ms(snapped, track.duration_ms),
            confidence=squash(candidate.raw_score, config),
            method=candidate.source_method,
            now_ms=now_ms,
        )

    loudest = loudest_segment(features.segments, window)
    if loudest is not None and loudest.start_sec is not None:
        logger.info("Using loudest segment in window at %.2fs", loudest.start_sec)
        return _result(
            track,
            params,
            drop_start_ms=_to_track_ms(loudest.start_sec, track.duration_ms),
            confidence=config.loudest_segment_confidence,
            method=DropMethod.LOUDEST_SEGMENT,
            now_ms=now_ms,
        )

    logger.info("No segments in window for '%s', using positional fallback", track.label)
    return _result(
        track,
        params,
        drop_start_ms=math.floor(track.duration_ms * config.fallback_fraction),
        confidence=config.fallback_confidence,
        method=DropMethod.FALLBACK,
        now_ms=now_ms,
    )


def error_fallback(
    track: TrackRef,
    params: DetectionParams,
    *,
    now_ms: int,
    config: DetectionConfig = DEFAULT_CONFIG,
) -> DropResult:
    """Context-free result used when no analysis could be obtained."""
    return _result(
        track,
        params,
        drop_start_ms=math.floor(track.duration_ms * config.error_fallback_fraction),
        confidence=config.error_fallback_confidence,
        method=DropMethod.ERROR_FALLBACK,
        now_ms=now_ms,
    )
