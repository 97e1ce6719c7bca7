"""
Shared fixtures for the test suite.

Centralizes reusable fakes (analysis provider, clock) and payload builders
so individual test files don't repeat analysis JSON boilerplate.
"""

from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

from api.deps import get_drop_detector
from api.main import app
from infrastructure.cache import InMemoryCacheStorage
from ingestion.drop_detector import DropDetector

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

NOW_SECONDS = 1_760_000_000.0
"""Fixed wall-clock time used by FakeClock."""


# ---------------------------------------------------------------------------
# Payload builders — shaped like the provider's audio-analysis JSON
# ---------------------------------------------------------------------------


def section(
    start: float,
    loudness: float,
    tempo_confidence: float = 0.5,
    **overrides: Any,
) -> dict[str, Any]:
    data: dict[str, Any] = {
        "start": start,
        "duration": 10.0,
        "confidence": 0.8,
        "loudness": loudness,
        "tempo": 124.0,
        "tempo_confidence": tempo_confidence,
        "key": 9,
        "key_confidence": 0.5,
        "mode": 0,
        "mode_confidence": 0.5,
    }
    data.update(overrides)
    return data


def segment(
    start: float,
    loudness_max: float,
    timbre: list[float] | None = None,
    **overrides: Any,
) -> dict[str, Any]:
    data: dict[str, Any] = {
        "start": start,
        "duration": 0.25,
        "confidence": 0.9,
        "loudness_start": loudness_max - 6.0,
        "loudness_max": loudness_max,
        "loudness_max_time": 0.05,
        "pitches": [0.5] * 12,
        "timbre": timbre if timbre is not None else [],
    }
    data.update(overrides)
    return data


def bar(start: float, confidence: float) -> dict[str, Any]:
    return {"start": start, "duration": 1.9, "confidence": confidence}


def analysis_payload(
    *,
    sections: list[dict[str, Any]] | None = None,
    segments: list[dict[str, Any]] | None = None,
    bars: list[dict[str, Any]] | None = None,
    duration: float = 200.0,
) -> dict[str, Any]:
    return {
        "track": {
            "duration": duration,
            "loudness": -7.5,
            "tempo": 124.0,
            "key": 9,
            "mode": 0,
            "time_signature": 4,
        },
        "sections": sections or [],
        "segments": segments or [],
        "bars": bars or [],
    }


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeAnalysisProvider:
    """Deterministic analysis provider — no network calls.

    Returns *payload* for every track, or raises *error* if given.
    ``calls`` records every requested track id.
    """

    def __init__(self, payload: Any = None, error: Exception | None = None) -> None:
        self.payload = payload if payload is not None else analysis_payload()
        self.error = error
        self.calls: list[str] = []

    def get_analysis(self, track_id: str) -> Any:
        self.calls.append(track_id)
        if self.error is not None:
            raise self.error
        return self.payload


class FakeClock:
    """Controllable replacement for ``time.time``."""

    def __init__(self, now: float = NOW_SECONDS) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def storage() -> InMemoryCacheStorage:
    return InMemoryCacheStorage()


# ---------------------------------------------------------------------------
# FastAPI test client fixture
# ---------------------------------------------------------------------------


@pytest.fixture()
def api_client():
    """FastAPI ``TestClient`` with the detector overridden.

    The detector uses a ``FakeAnalysisProvider`` (empty analysis by default)
    and in-memory storage. The provider is accessible as
    ``client._provider``.
    """
    provider = FakeAnalysisProvider()
    detector = DropDetector(provider=provider, storage=InMemoryCacheStorage())
    app.dependency_overrides[get_drop_detector] = lambda: detector

    with TestClient(app) as c:
        c._provider = provider  # type: ignore[attr-defined]
        yield c

    app.dependency_overrides.clear()
