# Project: weather-history
# Owner: GreenUnicorn
"""
cache.py — In-memory TTL cache for loaded datasets.

Each entry remembers which source produced it, so callers can tell real data
from synthetic data. Nothing is persisted: a restart starts with an empty cache.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 30 * 60


@dataclass(frozen=True)
class CacheEntry:
    key: str
    data: Any
    expires_at: float
    source: str


class TTLCache:
    """In-memory TTL cache. Expired entries are dropped on the next lookup."""

    def __init__(
        self,
        ttl: float = DEFAULT_TTL_SECONDS,
        time_func: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = ttl
        self._time_func = time_func
        self._storage: Dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._storage)

    def _live(self, key: str) -> Optional[CacheEntry]:
        entry = self._storage.get(key)
        if entry is None:
            return None
        if self._time_func() > entry.expires_at:
            self._storage.pop(key, None)
            logger.debug("Cache expired: %s", key)
            return None
        return entry

    def get(self, key: str) -> Any:
        entry = self._live(key)
        return entry.data if entry is not None else None

    def source(self, key: str) -> Optional[str]:
        entry = self._live(key)
        return entry.source if entry is not None else None

    def set(self, key: str, data: Any, source: str = "", ttl: Optional[float] = None) -> CacheEntry:
        ttl = self.ttl if ttl is None else ttl
        entry = CacheEntry(key=key, data=data, expires_at=self._time_func() + ttl, source=source)
        self._storage[key] = entry
        logger.debug("Cached %s from %s (TTL %.0fs)", key, source or "unknown", ttl)
        return entry

    def clear(self) -> None:
        self._storage.clear()

    def clear_expired(self) -> int:
        now = self._time_func()
        expired = [k for k, e in self._storage.items() if now > e.expires_at]
        for key in expired:
            del self._storage[key]
        return len(expired)

    def stats(self) -> dict:
        now = self._time_func()
        expired = sum(1 for e in self._storage.values() if now > e.expires_at)
        return {
            "total": len(self._storage),
            "valid": len(self._storage) - expired,
            "expired": expired,
            "ttl_minutes": self.ttl / 60,
        }


__all__ = ["CacheEntry", "TTLCache", "DEFAULT_TTL_SECONDS"]
