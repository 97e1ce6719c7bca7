"""
FastAPI dependency providers.

Provides a singleton ``DropDetector`` wired to the Spotify analysis provider
and the best available cache storage, so the Redis connection and HTTP
session are created once and reused across requests.
"""

import logging

from infrastructure.cache import InMemoryCacheStorage, RedisCacheStorage
from ingestion.drop_detector import DropDetector
from ingestion.spotify_analysis import SpotifyAnalysisProvider

logger = logging.getLogger(__name__)

_drop_detector: DropDetector | None = None


def get_cache_storage() -> RedisCacheStorage | InMemoryCacheStorage:
    """Return Redis storage if reachable, otherwise a per-process store."""
    redis_storage = RedisCacheStorage()
    if redis_storage.available:
        return redis_storage
    logger.warning("Falling back to in-memory drop cache (results are per-process)")
    return InMemoryCacheStorage()


def get_drop_detector() -> DropDetector:
    """
    Return a cached ``DropDetector`` singleton.

    Created on first call and reused thereafter.
    """
    global _drop_detector  # noqa: PLW0603
    if _drop_detector is None:
        _drop_detector = DropDetector(
            provider=SpotifyAnalysisProvider(),
            storage=get_cache_storage(),
        )
    return _drop_detector
