"""Confidence normalizer: logistic squash of unbounded scanner scores."""

from __future__ import annotations

import math

from core.config import DEFAULT_CONFIG, DetectionConfig


def squash(raw_score: float, config: DetectionConfig = DEFAULT_CONFIG) -> float:
    """Map *raw_score* into [0, 1] with ``1 / (1 + e^(-k * (score - midpoint)))``.

    Scores far outside the typical 0–20 range saturate at 0.0 or 1.0 instead
    of overflowing.
    """
    exponent = -config.squash_steepness * (raw_score - config.squash_midpoint)
    if exponent > 700:
        return 0.0
    return 1.0 / (1.0 + math.exp(exponent))
