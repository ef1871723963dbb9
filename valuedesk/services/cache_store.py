"""
Request Cache - in-process cache for idempotent GET responses

Entries are keyed by ``url?query`` and expire after REQUEST_CACHE_TTL seconds.
Mutations invalidate by substring, so one call clears every cached page of a
collection.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional
from urllib.parse import urlencode

from valuedesk.core.config import settings
from valuedesk.core.logging_config import logger


Clock = Callable[[], float]


@dataclass
class CacheEntry:
    data: Any
    timestamp: float


def make_cache_key(url: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """url?urlencoded(params); the "?" is kept even without params"""
    return f"{url}?{urlencode(params or {}, doseq=True)}"


class RequestCache:
    """
    GET response cache with an injectable clock.

    An entry is fresh while ``now - timestamp < ttl``.
    """

    def __init__(self, ttl: Optional[float] = None, clock: Optional[Clock] = None):
        self._entries: Dict[str, CacheEntry] = {}
        self._ttl = ttl
        self._clock = clock or time.monotonic

    @property
    def TTL(self) -> float:
        return self._ttl if self._ttl is not None else settings.REQUEST_CACHE_TTL

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            logger.debug(f"Cache MISS: {key}")
            return None
        if self._clock() - entry.timestamp >= self.TTL:
            del self._entries[key]
            logger.debug(f"Cache EXPIRED: {key}")
            return None
        logger.debug(f"Cache HIT: {key}")
        return entry.data

    def set(self, key: str, data: Any) -> None:
        self._entries[key] = CacheEntry(data=data, timestamp=self._clock())

    def invalidate(self, pattern: str) -> int:
        """Drop every entry whose key contains ``pattern``; returns how many"""
        stale = [key for key in self._entries if pattern in key]
        for key in stale:
            del self._entries[key]
        if stale:
            logger.debug(f"Cache INVALIDATE '{pattern}': {len(stale)} entries")
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries
