"""Beat snapping: align a raw drop timestamp to the nearest confident bar."""

from __future__ import annotations

from collections.abc import Sequence

from core.config import DEFAULT_CONFIG, DetectionConfig
from core.drop.types import Bar


def snap_to_bar(
    raw_start_sec: float,
    bars: Sequence[Bar],
    config: DetectionConfig = DEFAULT_CONFIG,
) -> float:
    """Move *raw_start_sec* to the closest bar with confidence >= the floor.

    Bars below ``config.bar_confidence_floor`` or missing a field are ignored.
    On equal distance the earlier bar in provider order wins.

    Args:
        raw_start_sec: Candidate timestamp in seconds.
        bars: Bar grid of the track.
        config: Scoring constants.

    Returns:
        Snapped timestamp, never negative. *raw_start_sec* unchanged when no
        bar is eligible.
    """
    best: float | None = None
    best_distance = 0.0
    for bar in bars:
        if bar.start_sec is None or bar.confidence is None:
            continue
        if bar.confidence < config.bar_confidence_floor:
            continue
        distance = abs(bar.start_sec - raw_start_sec)
        if best is None or distance < best_distance:
            best = bar.start_sec
            best_distance = distance

    if best is None:
        return raw_start_sec
    return max(0.0, best)
