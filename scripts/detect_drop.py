"""CLI script: run drop detection on a saved audio-analysis JSON file.

Usage:
    # Detect the drop of a track from a downloaded analysis document:
    python scripts/detect_drop.py --analysis data/analysis.json \
        --track-id 4uLU6hMCjMI75M1A2tKUQC --duration-ms 213000

    # Tune the loudness offset and preview length:
    python scripts/detect_drop.py --analysis data/analysis.json \
        --track-id abc --duration-ms 180000 --offset-db 1.5 --preview-ms 15000

    # Fetch from the Web API instead of a file (requires SPOTIFY_ACCESS_TOKEN):
    python scripts/detect_drop.py --track-id abc --duration-ms 180000

Output:
    DropResult JSON printed to stdout (plus ``stop_ms``).

Environment variables read:
    SPOTIFY_ACCESS_TOKEN     — required when --analysis is not given
    SPOTIFY_API_BASE         — default: https://api.spotify.com/v1
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
sys.path.insert(0, str(Path(__file__).parent.parent))

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


class FileAnalysisProvider:
    """Analysis provider that serves one JSON document from disk."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def get_analysis(self, track_id: str) -> dict[str, Any]:
        with self._path.open(encoding="utf-8") as fh:
            data: dict[str, Any] = json.load(fh)
        return data


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Locate the drop of a track from its audio analysis."
    )
    parser.add_argument("--track-id", required=True, help="Provider track id.")
    parser.add_argument(
        "--duration-ms",
        type=int,
        required=True,
        metavar="MS",
        help="Track duration in milliseconds.",
    )
    parser.add_argument(
        "--analysis",
        type=Path,
        default=None,
        metavar="PATH",
        help="Read the analysis JSON from this file instead of the Web API.",
    )
    parser.add_argument(
        "--offset-db",
        type=float,
        default=3.0,
        help="dB added to the median segment loudness (default: 3).",
    )
    parser.add_argument(
        "--preview-ms",
        type=int,
        default=20_000,
        help="Preview length in milliseconds (default: 20000).",
    )
    return parser.parse_args()


def main() -> int:
    args = _parse_args()

    from core.drop.types import TrackRef
    from infrastructure.cache import InMemoryCacheStorage
    from ingestion.drop_detector import DropDetector
    from ingestion.spotify_analysis import SpotifyAnalysisProvider

    if args.analysis is not None:
        provider: Any = FileAnalysisProvider(args.analysis)
    else:
        provider = SpotifyAnalysisProvider()

    detector = DropDetector(provider=provider, storage=InMemoryCacheStorage())
    try:
        track = TrackRef(id=args.track_id, duration_ms=args.duration_ms)
        result = detector.detect_drop(
            track,
            loudness_offset_db=args.offset_db,
            preview_length_ms=args.preview_ms,
        )
    except ValueError as exc:
        logger.error("%s", exc)
        return 2

    output = result.as_dict()
    output["stop_ms"] = result.stop_ms
    print(json.dumps(output, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
