"""
core/drop/scanners.py — Candidate scanners over sections and segments.

Pure module: no I/O. Each scanner looks only at items whose start time falls
inside the search window and returns zero-or-one ``DropCandidate``.

Scoring
=======
Section score:
    (loudness + 60) / divisor
  + tempo_confidence * weight
  + jump bonus     (loudness > previous section loudness + jump_db)
  + position bonus (relative position strictly inside the band)
  + tempo bonus    (tempo_confidence > high_tempo_confidence)

Segment score:
    max(0, jump) * jump_weight        (jump over previous qualifying segment)
  + (loudness_max + 60) / divisor
  + |timbre[0]| * w + |timbre[1]| * w (when present)
  + flat bonus     (jump > jump_db)

Ties keep the earliest item: the comparison is strict ``>``.
"""

from __future__ import annotations

import logging
import statistics
from collections.abc import Sequence
from dataclasses import dataclass

from core.config import DEFAULT_CONFIG, DetectionConfig
from core.drop.types import AnalysisSection, AnalysisSegment, DropCandidate, DropMethod

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchWindow:
    """Closed interval of track time, in seconds, where drops are searched.

    Invariants:
        0 <= start_sec <= end_sec
    """

    start_sec: float
    end_sec: float

    @property
    def start_ms(self) -> float:
        return self.start_sec * 1000

    @property
    def end_ms(self) -> float:
        return self.end_sec * 1000

    def contains(self, t_sec: float) -> bool:
        """True if *t_sec* lies in the closed window."""
        return self.start_sec <= t_sec <= self.end_sec

    def strictly_contains(self, t_sec: float) -> bool:
        return self.start_sec < t_sec < self.end_sec

    def position(self, t_sec: float) -> float:
        """Relative position of *t_sec* in the window (0 = start, 1 = end)."""
        span = self.end_sec - self.start_sec
        if span <= 0:
            return 0.0
        return (t_sec - self.start_sec) / span


def search_window(duration_ms: int, config: DetectionConfig = DEFAULT_CONFIG) -> SearchWindow:
    """Build the search window for a track.

    Tracks of four minutes or longer use the wider window.

    Args:
        duration_ms: Track duration in milliseconds.
        config: Scoring constants.

    Returns:
        SearchWindow spanning ``window_start`` to the duration-bucket end.
    """
    start_ms = duration_ms * config.window_start
    end_ms = duration_ms * config.window_end_for(duration_ms)
    return SearchWindow(start_sec=start_ms / 1000, end_sec=end_ms / 1000)


def dynamic_threshold(segments: Sequence[AnalysisSegment], offset_db: float) -> float:
    """Median segment ``loudness_max`` over the whole track plus *offset_db*.

    Segments without a loudness value are ignored. The median of an empty
    sequence is 0.
    """
    values = [s.loudness_max_db for s in segments if s.loudness_max_db is not None]
    median = statistics.median(values) if values else 0.0
    return median + offset_db


def _score_section(
    section: AnalysisSection,
    previous: AnalysisSection | None,
    window: SearchWindow,
    config: DetectionConfig,
) -> float:
    if (
        section.loudness_db is None
        or section.tempo_confidence is None
        or section.start_sec is None
    ):
        raise ValueError("cannot score an incomplete section")

    score = (section.loudness_db + 60) / config.section_loudness_divisor
    score += section.tempo_confidence * config.tempo_confidence_weight

    if (
        previous is not None
        and previous.loudness_db is not None
        and section.loudness_db > previous.loudness_db + config.section_jump_db
    ):
        score += config.section_jump_bonus
        logger.debug(
            "Section energy jump at %.2fs: %.2f -> %.2f dB",
            section.start_sec,
            previous.loudness_db,
            section.loudness_db,
        )

    low, high = config.position_band
    if low < window.position(section.start_sec) < high:
        score += config.position_bonus

    if section.tempo_confidence > config.high_tempo_confidence:
        score += config.high_tempo_bonus

    return score


def scan_sections(
    sections: Sequence[AnalysisSection],
    window: SearchWindow,
    threshold_db: float,
    config: DetectionConfig = DEFAULT_CONFIG,
) -> DropCandidate | None:
    """Pick the best-scoring section inside *window*.

    A section qualifies when it is complete, starts inside the window and its
    loudness is at least *threshold_db*. The energy-jump bonus compares against
    the immediately preceding section of the track; the first section has no
    predecessor and never earns it.

    Args:
        sections: All sections of the track, chronological.
        window: Search window.
        threshold_db: Dynamic loudness threshold.
        config: Scoring constants.

    Returns:
        Highest-scoring candidate, earliest on ties, or None.
    """
    best: DropCandidate | None = None
    previous: AnalysisSection | None = None

    for section in sections:
        if (
            section.is_complete
            and window.contains(section.start_sec)  # type: ignore[arg-type]
            and section.loudness_db >= threshold_db  # type: ignore[operator]
        ):
            score = _score_section(section, previous, window, config)
            logger.debug(
                "Section at %.2fs: loudness=%.2f tempo_conf=%.2f score=%.3f",
                section.start_sec,
                section.loudness_db,
                section.tempo_confidence,
                score,
            )
            if best is None or score > best.raw_score:
                best = DropCandidate(
                    start_sec=section.start_sec,  # type: ignore[arg-type]
                    raw_score=score,
                    source_method=DropMethod.SECTIONS,
                )
        previous = section

    return best


def _score_segment(
    segment: AnalysisSegment,
    previous: AnalysisSegment,
    config: DetectionConfig,
) -> tuple[float, float]:
    if segment.loudness_max_db is None or previous.loudness_max_db is None:
        raise ValueError("cannot score an incomplete segment")

    jump = segment.loudness_max_db - previous.loudness_max_db
    score = max(0.0, jump) * config.segment_jump_weight
    score += (segment.loudness_max_db + 60) / config.segment_loudness_divisor

    for coefficient in segment.timbre[:2]:
        score += abs(coefficient) * config.timbre_weight

    if jump > config.segment_jump_db:
        score += config.segment_jump_bonus

    return score, jump


def scan_segments(
    segments: Sequence[AnalysisSegment],
    window: SearchWindow,
    threshold_db: float,
    config: DetectionConfig = DEFAULT_CONFIG,
) -> DropCandidate | None:
    """Pick the segment with the strongest loudness spike inside *window*.

    Only qualifying segments (complete, in window, ``loudness_max`` at least
    *threshold_db*) take part. Each qualifying segment is compared with the
    qualifying segment before it, so the first qualifying segment is only a
    reference point and is never itself a candidate.

    Returns:
        Highest-scoring candidate, earliest on ties, or None.
    """
    qualifying = [
        s
        for s in segments
        if s.is_complete
        and window.contains(s.start_sec)  # type: ignore[arg-type]
        and s.loudness_max_db >= threshold_db  # type: ignore[operator]
    ]
    logger.debug("Found %d candidate segments", len(qualifying))

    best: DropCandidate | None = None
    for previous, segment in zip(qualifying, qualifying[1:]):
        score, jump = _score_segment(segment, previous, config)
        if jump > config.segment_jump_db:
            logger.debug(
                "Segment loudness jump at %.2fs: %.2f -> %.2f dB",
                segment.start_sec,
                previous.loudness_max_db,
                segment.loudness_max_db,
            )
        if best is None or score > best.raw_score:
            best = DropCandidate(
                start_sec=segment.start_sec,  # type: ignore[arg-type]
                raw_score=score,
                source_method=DropMethod.SEGMENTS,
            )

    return best


def loudest_segment(
    segments: Sequence[AnalysisSegment],
    window: SearchWindow,
) -> AnalysisSegment | None:
    """Loudest complete segment strictly inside *window*, earliest on ties."""
    best: AnalysisSegment | None = None
    for segment in segments:
        if not segment.is_complete or not window.strictly_contains(segment.start_sec):  # type: ignore[arg-type]
            continue
        if best is None or segment.loudness_max_db > best.loudness_max_db:  # type: ignore[operator]
            best = segment
    return best
