"""
Spotify audio-analysis provider.

Implements the ``AnalysisProvider`` protocol from core using the Web API
``GET /audio-analysis/{id}`` endpoint. Lives in ingestion/ because it
performs network I/O (core/ must remain pure).

Token acquisition and refresh are handled elsewhere; this provider only
sends the bearer token it is given or finds in ``SPOTIFY_ACCESS_TOKEN``.
"""

import logging
import os
from typing import Any

import requests
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

_DEFAULT_API_BASE = "https://api.spotify.com/v1"
_DEFAULT_TIMEOUT_SECONDS = 10.0


class AnalysisUnavailableError(Exception):
    """Raised when the analysis document for a track cannot be obtained.

    Covers missing credentials, transport errors, non-2xx responses and
    undecodable bodies.

    Args:
        track_id: Track whose analysis was requested.
        reason: Short description of the failure.
    """

    def __init__(self, track_id: str, reason: str) -> None:
        self.track_id = track_id
        self.reason = reason
        super().__init__(f"Analysis unavailable for track {track_id!r}: {reason}")


class SpotifyAnalysisProvider:
    """
    Analysis provider backed by the Spotify Web API.

    Reads ``SPOTIFY_ACCESS_TOKEN``, ``SPOTIFY_API_BASE`` and
    ``ANALYSIS_TIMEOUT_SECONDS`` from the environment when not passed.
    A missing token is reported per call, not at construction, so the
    detector can still degrade to its error fallback.

    Satisfies the ``AnalysisProvider`` protocol.
    """

    def __init__(
        self,
        *,
        access_token: str | None = None,
        api_base: str | None = None,
        timeout_seconds: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        load_dotenv()
        self._token = access_token or os.environ.get("SPOTIFY_ACCESS_TOKEN", "")
        self._api_base = (api_base or os.environ.get("SPOTIFY_API_BASE", _DEFAULT_API_BASE)).rstrip(
            "/"
        )
        self._timeout = timeout_seconds or float(
            os.environ.get("ANALYSIS_TIMEOUT_SECONDS", _DEFAULT_TIMEOUT_SECONDS)
        )
        self._session = session or requests.Session()

    def get_analysis(self, track_id: str) -> dict[str, Any]:
        """
        Fetch the audio analysis for *track_id*.

        Args:
            track_id: Spotify track id.

        Returns:
            Decoded analysis JSON.

        Raises:
            AnalysisUnavailableError: On missing token, transport failure,
                HTTP error status or a non-JSON / non-object body.
        """
        if not self._token:
            raise AnalysisUnavailableError(track_id, "SPOTIFY_ACCESS_TOKEN is not set")

        url = f"{self._api_base}/audio-analysis/{track_id}"
        logger.debug("Fetching audio analysis: %s", url)
        try:
            response = self._session.get(
                url,
                headers={
                    "Authorization": f"Bearer {self._token}",
                    "Content-Type": "application/json",
                },
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise AnalysisUnavailableError(track_id, f"request failed: {exc}") from exc

        if not response.ok:
            raise AnalysisUnavailableError(track_id, f"HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise AnalysisUnavailableError(track_id, "response is not valid JSON") from exc
        if not isinstance(data, dict):
            raise AnalysisUnavailableError(track_id, "response is not a JSON object")
        return data
