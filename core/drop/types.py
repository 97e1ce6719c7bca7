"""
core/drop/types.py — Frozen data types for drop detection.

All types are frozen dataclasses — immutable value objects that can be
safely passed between layers and cached.

Design principles:
    - No I/O, no state, no side effects.
    - Provider payloads are deserialized at the boundary by
      ``AnalysisFeatureSet.from_payload``. A missing or non-numeric field
      becomes ``None`` on the item instead of raising; scanners treat such
      items as never matching a candidate filter.
    - Items keep their provider order (chronological). Dropping malformed
      items would change which item is the "immediately preceding" one.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class DropMethod(str, Enum):
    """Strategy that produced a DropResult."""

    SECTIONS = "sections"
    SEGMENTS = "segments"
    LOUDEST_SEGMENT = "loudestSegment"
    FALLBACK = "fallback"
    ERROR_FALLBACK = "error-fallback"


def _as_float(value: Any) -> float | None:
    """Coerce a payload value to a finite float, or None if it is unusable."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    result = float(value)
    if not math.isfinite(result):
        return None
    return result


def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _as_list(value: Any) -> list[Any]:
    return list(value) if isinstance(value, (list, tuple)) else []


@dataclass(frozen=True)
class TrackRef:
    """Caller-owned reference to a track.

    Invariants:
        duration_ms >= 0
    """

    id: str
    duration_ms: int
    name: str = ""
    """Display name, used only in log messages."""

    def __post_init__(self) -> None:
        if self.duration_ms < 0:
            raise ValueError(f"duration_ms must be non-negative, got {self.duration_ms}")

    @property
    def label(self) -> str:
        """Name for log output, falling back to the id."""
        return self.name or self.id


@dataclass(frozen=True)
class AnalysisSection:
    """A coarse structural section (verse/chorus scale)."""

    start_sec: float | None
    duration_sec: float | None
    loudness_db: float | None
    tempo_confidence: float | None
    """Range [0.0, 1.0]."""
    tempo_bpm: float | None

    @property
    def is_complete(self) -> bool:
        """True if every field the section scanner reads is present."""
        return (
            self.start_sec is not None
            and self.loudness_db is not None
            and self.tempo_confidence is not None
        )

    @classmethod
    def from_payload(cls, raw: Any) -> AnalysisSection:
        data = _as_mapping(raw)
        return cls(
            start_sec=_as_float(data.get("start")),
            duration_sec=_as_float(data.get("duration")),
            loudness_db=_as_float(data.get("loudness")),
            tempo_confidence=_as_float(data.get("tempo_confidence")),
            tempo_bpm=_as_float(data.get("tempo")),
        )


@dataclass(frozen=True)
class AnalysisSegment:
    """A fine-grained (sub-second) slice with loudness and timbre."""

    start_sec: float | None
    loudness_max_db: float | None
    timbre: tuple[float, ...] = field(default_factory=tuple)
    """Ordered timbre coefficients. Truncated at the first non-numeric entry."""

    @property
    def is_complete(self) -> bool:
        return self.start_sec is not None and self.loudness_max_db is not None

    @classmethod
    def from_payload(cls, raw: Any) -> AnalysisSegment:
        data = _as_mapping(raw)
        coefficients = []
        for value in _as_list(data.get("timbre")):
            coefficient = _as_float(value)
            if coefficient is None:
                break
            coefficients.append(coefficient)
        return cls(
            start_sec=_as_float(data.get("start")),
            loudness_max_db=_as_float(data.get("loudness_max")),
            timbre=tuple(coefficients),
        )


@dataclass(frozen=True)
class Bar:
    """A detected measure boundary."""

    start_sec: float | None
    confidence: float | None
    """Range [0.0, 1.0]."""

    @classmethod
    def from_payload(cls, raw: Any) -> Bar:
        data = _as_mapping(raw)
        return cls(
            start_sec=_as_float(data.get("start")),
            confidence=_as_float(data.get("confidence")),
        )


@dataclass(frozen=True)
class AnalysisFeatureSet:
    """Pre-computed analysis of one track from the analysis provider.

    Sequences are tuples in chronological (provider) order.
    """

    sections: tuple[AnalysisSection, ...] = ()
    segments: tuple[AnalysisSegment, ...] = ()
    bars: tuple[Bar, ...] = ()
    tempo_bpm: float | None = None
    loudness_db: float | None = None
    duration_sec: float | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> AnalysisFeatureSet:
        """Deserialize an audio-analysis JSON document.

        Args:
            payload: Decoded provider response with ``track``, ``sections``,
                ``segments`` and ``bars`` keys. Missing keys yield empty
                sequences.

        Raises:
            TypeError: If *payload* is not a mapping at all.
        """
        if not isinstance(payload, Mapping):
            raise TypeError(f"analysis payload must be a mapping, got {type(payload).__name__}")
        summary = _as_mapping(payload.get("track"))
        return cls(
            sections=tuple(AnalysisSection.from_payload(s) for s in _as_list(payload.get("sections"))),
            segments=tuple(AnalysisSegment.from_payload(s) for s in _as_list(payload.get("segments"))),
            bars=tuple(Bar.from_payload(b) for b in _as_list(payload.get("bars"))),
            tempo_bpm=_as_float(summary.get("tempo")),
            loudness_db=_as_float(summary.get("loudness")),
            duration_sec=_as_float(summary.get("duration")),
        )


@dataclass(frozen=True)
class DetectionParams:
    """Caller-tunable detection parameters. Part of the cache identity.

    Invariants:
        preview_length_ms > 0
    """

    loudness_offset_db: float = 3.0
    preview_length_ms: int = 20_000

    def __post_init__(self) -> None:
        if self.preview_length_ms <= 0:
            raise ValueError(
                f"preview_length_ms must be positive, got {self.preview_length_ms}"
            )


@dataclass(frozen=True)
class DropCandidate:
    """Best timestamp proposed by a scanner within one run."""

    start_sec: float
    raw_score: float
    source_method: DropMethod


@dataclass(frozen=True)
class DropResult:
    """The published drop-detection artifact.

    Invariants:
        0 <= drop_start_ms <= track duration
        0.0 <= confidence <= 1.0
        preview_length_ms > 0
    """

    track_id: str
    drop_start_ms: int
    confidence: float
    method: DropMethod
    preview_length_ms: int
    computed_at_epoch_ms: int

    @property
    def stop_ms(self) -> int:
        """Playback stop deadline: seek offset plus preview length."""
        return self.drop_start_ms + self.preview_length_ms

    def as_dict(self) -> dict[str, Any]:
        return {
            "track_id": self.track_id,
            "drop_start_ms": self.drop_start_ms,
            "confidence": self.confidence,
            "method": self.method.value,
            "preview_length_ms": self.preview_length_ms,
            "computed_at_epoch_ms": self.computed_at_epoch_ms,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> DropResult:
        """Rebuild a result stored by ``as_dict``.

        Raises:
            KeyError, ValueError, TypeError: If *data* is not a stored result.
        """
        return cls(
            track_id=str(data["track_id"]),
            drop_start_ms=int(data["drop_start_ms"]),
            confidence=float(data["confidence"]),
            method=DropMethod(data["method"]),
            preview_length_ms=int(data["preview_length_ms"]),
            computed_at_epoch_ms=int(data["computed_at_epoch_ms"]),
        )
