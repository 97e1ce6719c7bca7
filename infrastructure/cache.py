"""Storage backends for the drop result cache.

Two backends satisfy ``core.drop.base.CacheStorage``:
    1. ``InMemoryCacheStorage`` — per-process, thread-safe, LRU-bounded.
    2. ``RedisCacheStorage`` — shared across workers, survives restarts.

Values are JSON-serializable dicts. Neither backend knows about the
retention window; ``DropResultCache`` decides freshness from the stored
``computed_at_epoch_ms``. The Redis TTL is only a physical eviction bound and
defaults to a day longer than the retention window.

Usage::

    from infrastructure.cache import RedisCacheStorage

    storage = RedisCacheStorage()
    if not storage.available:
        storage = InMemoryCacheStorage()
"""

from __future__ import annotations

import json
import logging
import os
from collections import OrderedDict
from threading import Lock
from typing import Any

import redis as redis_lib
from dotenv import load_dotenv

from core.config import SEVEN_DAYS_SECONDS
from core.drop.cache import KEY_NAMESPACE

logger = logging.getLogger(__name__)

# Physical TTL: retention window plus one day.
_DEFAULT_TTL_SECONDS = SEVEN_DAYS_SECONDS + 86_400


class InMemoryCacheStorage:
    """
    Thread-safe in-process storage with LRU eviction.

    Args:
        max_size: Maximum number of entries (default: 10000).
    """

    def __init__(self, max_size: int = 10_000) -> None:
        """Initialize storage with a size limit."""
        self.max_size = max_size
        self._entries: OrderedDict[str, dict[str, Any]] = OrderedDict()
        self._lock = Lock()

    def get(self, key: str) -> dict[str, Any] | None:
        with self._lock:
            value = self._entries.get(key)
            if value is None:
                return None
            self._entries.move_to_end(key)
            return dict(value)

    def put(self, key: str, value: dict[str, Any]) -> None:
        with self._lock:
            if len(self._entries) >= self.max_size and key not in self._entries:
                # Remove oldest (first) item
                self._entries.popitem(last=False)
            self._entries[key] = dict(value)
            self._entries.move_to_end(key)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Clear all stored entries."""
        with self._lock:
            self._entries.clear()

    def size(self) -> int:
        """Return current number of stored entries."""
        with self._lock:
            return len(self._entries)


class RedisCacheStorage:
    """Redis-backed storage for drop results.

    Connection failure at construction leaves the storage unavailable; callers
    check ``available`` and pick another backend. Errors after a successful
    connection propagate to ``DropResultCache``, which absorbs them.

    Args:
        redis_url: Redis connection URL (default: from REDIS_URL env var or
            ``redis://localhost:6379/0``).
        ttl_seconds: Physical expiry in seconds (default: 8 days).
    """

    def __init__(
        self,
        redis_url: str | None = None,
        ttl_seconds: int = _DEFAULT_TTL_SECONDS,
    ) -> None:
        """Initialize Redis connection (fails gracefully)."""
        load_dotenv()
        self._ttl = ttl_seconds
        self._client: Any = None
        url = redis_url or os.environ.get("REDIS_URL", "redis://localhost:6379/0")
        try:
            self._client = redis_lib.from_url(url, decode_responses=True, socket_timeout=0.5)
            self._client.ping()
            logger.info("RedisCacheStorage: connected to Redis at %s", url)
        except Exception as exc:  # noqa: BLE001
            logger.warning("RedisCacheStorage: Redis unavailable (%s)", exc)
            self._client = None

    @property
    def available(self) -> bool:
        """True if Redis was reachable at construction."""
        return self._client is not None

    def get(self, key: str) -> dict[str, Any] | None:
        if not self._client:
            return None
        raw = self._client.get(key)
        if raw is None:
            return None
        data: dict[str, Any] = json.loads(raw)
        return data

    def put(self, key: str, value: dict[str, Any]) -> None:
        if not self._client:
            return
        self._client.setex(key, self._ttl, json.dumps(value))

    def delete(self, key: str) -> bool:
        if not self._client:
            return False
        return bool(self._client.delete(key))

    def flush(self) -> int:
        """Delete all drop result entries.

        Returns:
            Number of keys deleted.
        """
        if not self._client:
            return 0
        try:
            keys = list(self._client.scan_iter(f"{KEY_NAMESPACE}*"))
            if not keys:
                return 0
            deleted = self._client.delete(*keys)
            logger.info("RedisCacheStorage: flushed %d keys", deleted)
            return int(deleted)
        except Exception as exc:  # noqa: BLE001
            logger.warning("RedisCacheStorage.flush error: %s", exc)
            return 0

    def stats(self) -> dict[str, Any]:
        """Return basic storage statistics.

        Returns:
            Dict with keys: available, result_keys.
        """
        if not self._client:
            return {"available": False, "result_keys": 0}
        try:
            count = sum(1 for _ in self._client.scan_iter(f"{KEY_NAMESPACE}*"))
            return {"available": True, "result_keys": count}
        except Exception as exc:  # noqa: BLE001
            logger.warning("RedisCacheStorage.stats error: %s", exc)
            return {"available": False, "result_keys": 0}
