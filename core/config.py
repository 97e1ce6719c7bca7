"""
Configuration dataclass for the drop-detection engine.

This immutable config object holds every scoring constant used by the
scanners, the beat snapper, the confidence normalizer and the fallback
chain, so a single consistent constant set travels through one run.
"""

from dataclasses import dataclass

# Tracks at or above this duration use the wider search window.
LONG_TRACK_MS = 240_000

SEVEN_DAYS_SECONDS = 7 * 24 * 60 * 60


@dataclass(frozen=True)
class DetectionConfig:
    """
    Scoring constants for drop detection.

    Immutable configuration object shared by every stage of a detection run.
    Defaults reproduce the reference scoring profile; alternative profiles can
    be built for experimentation but must not be blended mid-run.

    Attributes:
        window_start: Fraction of track duration where the search window opens.
        window_end_short: Window close fraction for tracks shorter than
            ``LONG_TRACK_MS``.
        window_end_long: Window close fraction for tracks of at least
            ``LONG_TRACK_MS``. Drops in longer tracks tend to land later.
        section_loudness_divisor: Divisor applied to ``loudness + 60`` when
            normalizing section loudness.
        tempo_confidence_weight: Multiplier on section tempo confidence.
        section_jump_db: Loudness rise over the preceding section that earns
            the energy-jump bonus (strictly greater than).
        section_jump_bonus: Score added for a section energy jump.
        position_band: Exclusive (low, high) bounds on a section's relative
            position inside the search window for the positional bonus.
        position_bonus: Score added inside ``position_band``.
        high_tempo_confidence: Tempo confidence above which the tempo bonus applies.
        high_tempo_bonus: Score added for high tempo confidence.
        segment_jump_weight: Multiplier on the positive loudness jump between
            qualifying segments.
        segment_loudness_divisor: Divisor applied to ``loudness_max + 60``.
        timbre_weight: Multiplier on the magnitude of each of the first two
            timbre coefficients.
        segment_jump_db: Loudness jump that earns the flat segment bonus.
        segment_jump_bonus: Flat score added for a significant segment jump.
        bar_confidence_floor: Minimum bar confidence eligible for snapping.
        squash_steepness: Logistic slope ``k`` of the confidence normalizer.
        squash_midpoint: Raw score mapped to confidence 0.5.
        loudest_segment_confidence: Fixed confidence of the loudest-segment step.
        fallback_fraction: Track position used when the window is empty.
        fallback_confidence: Fixed confidence of the empty-window fallback.
        error_fallback_fraction: Track position used when analysis is unavailable.
        error_fallback_confidence: Fixed confidence of the error fallback.
        retention_seconds: Age after which a cached result is treated as absent.

    Example:
        >>> config = DetectionConfig(window_end_short=0.65)
        >>> result = analyze_for_drop(track, features, params, config=config)
    """

    window_start: float = 0.15
    window_end_short: float = 0.70
    window_end_long: float = 0.80

    section_loudness_divisor: float = 15.0
    tempo_confidence_weight: float = 3.0
    section_jump_db: float = 2.0
    section_jump_bonus: float = 4.0
    position_band: tuple[float, float] = (0.2, 0.8)
    position_bonus: float = 2.0
    high_tempo_confidence: float = 0.7
    high_tempo_bonus: float = 2.0

    segment_jump_weight: float = 3.0
    segment_loudness_divisor: float = 20.0
    timbre_weight: float = 0.15
    segment_jump_db: float = 3.0
    segment_jump_bonus: float = 3.0

    bar_confidence_floor: float = 0.5

    squash_steepness: float = 0.35
    squash_midpoint: float = 8.0

    loudest_segment_confidence: float = 0.6
    fallback_fraction: float = 0.3
    fallback_confidence: float = 0.2
    error_fallback_fraction: float = 0.2
    error_fallback_confidence: float = 0.3

    retention_seconds: float = SEVEN_DAYS_SECONDS

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if not 0.0 <= self.window_start < 1.0:
            raise ValueError(f"window_start must be in [0, 1), got {self.window_start}")
        for name in ("window_end_short", "window_end_long"):
            end = getattr(self, name)
            if not self.window_start < end <= 1.0:
                raise ValueError(
                    f"{name} ({end}) must be greater than window_start "
                    f"({self.window_start}) and at most 1.0"
                )
        if self.section_loudness_divisor <= 0 or self.segment_loudness_divisor <= 0:
            raise ValueError("loudness divisors must be positive")
        low, high = self.position_band
        if not 0.0 <= low < high <= 1.0:
            raise ValueError(f"position_band must satisfy 0 <= low < high <= 1, got {self.position_band}")
        if not 0.0 <= self.bar_confidence_floor <= 1.0:
            raise ValueError(
                f"bar_confidence_floor must be in [0, 1], got {self.bar_confidence_floor}"
            )
        if self.squash_steepness <= 0:
            raise ValueError(f"squash_steepness must be positive, got {self.squash_steepness}")
        for name in (
            "loudest_segment_confidence",
            "fallback_confidence",
            "error_fallback_confidence",
            "fallback_fraction",
            "error_fallback_fraction",
        ):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be in [0, 1], got {value}")
        if self.retention_seconds <= 0:
            raise ValueError(f"retention_seconds must be positive, got {self.retention_seconds}")

    def window_end_for(self, duration_ms: int) -> float:
        """Window close fraction for a track of ``duration_ms``."""
        if duration_ms >= LONG_TRACK_MS:
            return self.window_end_long
        return self.window_end_short


DEFAULT_CONFIG = DetectionConfig()
"""Reference scoring profile used by the API and CLI."""
