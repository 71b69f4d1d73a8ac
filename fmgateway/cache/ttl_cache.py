# -*- coding: utf-8 -*-
"""Location: ./fmgateway/cache/ttl_cache.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0

Bounded-lifetime cache.

The gateway keeps two independent instances of this cache: one for FileMaker
Data API session tokens and one for results of read-only operations. Features:
- TTL-based expiration, evaluated lazily on ``get`` and by a background sweep
- Maximum size limit with LRU eviction
- Thread-safe operations

Both expiry paths use the same predicate (``now >= expires_at``) so an entry
the sweep would remove is never returned by ``get``.

Examples:
    >>> from fmgateway.cache.ttl_cache import TTLCache
    >>> from unittest.mock import patch
    >>> cache = TTLCache(ttl=1, max_size=2)
    >>> cache.set('a', 1)
    >>> cache.get('a')
    1

    Test TTL expiration using mocked time (no actual sleep):

    >>> with patch("time.time") as mock_time:
    ...     mock_time.return_value = 1000
    ...     cache2 = TTLCache(ttl=1, max_size=2)
    ...     cache2.set('x', 100)
    ...     cache2.get('x')
    ...     mock_time.return_value = 1001
    ...     cache2.get('x') is None
    100
    True

    Test LRU eviction:

    >>> cache.set('b', 2)
    >>> cache.set('c', 3)
    >>> sorted(cache._cache.keys())
    ['b', 'c']
    >>> cache.delete('b')
    >>> cache.get('b') is None
    True
    >>> cache.clear()
    1
"""

# Standard
import asyncio
from collections import OrderedDict
from dataclasses import dataclass
import heapq
import logging
import threading
import time
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """Cache entry with the time it was stored and its expiration."""

    value: Any
    obtained_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        """Return True if the entry is past its TTL.

        Args:
            now: Current epoch time.

        Returns:
            True if expired, otherwise False.
        """
        return now >= self.expires_at


class TTLCache:
    """
    In-memory key/value store with TTL expiration.

    Attributes:
        ttl: Time-to-live in seconds applied on every ``set``
        max_size: Maximum number of entries
        check_period: Seconds between background sweeps
        name: Label used in log lines ("session", "data")
        _cache: Cache storage
        _lock: Threading lock for thread safety

    Examples:
        >>> cache = TTLCache(ttl=60, name="data")
        >>> cache.set('layouts', {'response': {}})
        >>> 'layouts' in cache, len(cache)
        (True, 1)
        >>> cache.stats()['sets']
        1
    """

    def __init__(self, ttl: float, max_size: int = 10000, check_period: float = 60.0, name: str = "cache"):
        """Initialize cache.

        Args:
            ttl: Time-to-live in seconds
            max_size: Maximum number of entries
            check_period: Seconds between background sweeps
            name: Label used in log lines

        Raises:
            ValueError: If ttl, max_size or check_period is not positive.
        """
        if ttl <= 0 or max_size <= 0 or check_period <= 0:
            raise ValueError("ttl, max_size and check_period must be positive")
        self.ttl = ttl
        self.max_size = max_size
        self.check_period = check_period
        self.name = name
        self._cache: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        # Min-heap of (expires_at, key); stale heap entries are skipped by the sweep
        self._expiry_heap: list[tuple[float, str]] = []
        self._cleanup_task: Optional[asyncio.Task] = None

        self._hits = 0
        self._misses = 0
        self._sets = 0
        self._evictions = 0
        self._expirations = 0

    async def initialize(self) -> None:
        """Start the background sweep. Calling it again while running is a no-op."""
        if self._cleanup_task and not self._cleanup_task.done():
            return
        logger.info("Starting %s cache sweep (ttl=%ss, every %ss)", self.name, self.ttl, self.check_period)
        self._cleanup_task = asyncio.create_task(self._cleanup_loop())

    async def shutdown(self) -> None:
        """Stop the background sweep and drop every entry."""
        logger.info("Shutting down %s cache", self.name)
        if self._cleanup_task:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None
        self.clear()

    def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache.

        Never blocks on I/O and never triggers a fetch.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found/expired

        Examples:
            >>> from unittest.mock import patch
            >>> with patch("time.time") as mock_time:
            ...     mock_time.return_value = 1000
            ...     short_cache = TTLCache(ttl=0.1)
            ...     short_cache.set('b', 2)
            ...     short_cache.get('b')
            ...     mock_time.return_value = 1000.2
            ...     short_cache.get('b') is None
            2
            True
        """
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self._misses += 1
                return None

            if entry.is_expired(time.time()):
                del self._cache[key]
                self._expirations += 1
                self._misses += 1
                return None

            self._cache.move_to_end(key)
            self._hits += 1
            return entry.value

    def set(self, key: str, value: Any) -> None:
        """
        Insert or overwrite a value and restart its expiry clock.

        Args:
            key: Cache key
            value: Value to cache

        Examples:
            >>> cache = TTLCache(ttl=1)
            >>> cache.set('a', 1)
            >>> cache.set('a', 2)
            >>> cache.get('a')
            2
        """
        now = time.time()
        expires_at = now + self.ttl
        with self._lock:
            if key in self._cache:
                self._cache.move_to_end(key)
            elif len(self._cache) >= self.max_size:
                self._cache.popitem(last=False)
                self._evictions += 1
                logger.debug("Evicted LRU entry from %s cache", self.name)

            self._cache[key] = CacheEntry(value=value, obtained_at=now, expires_at=expires_at)
            heapq.heappush(self._expiry_heap, (expires_at, key))
            self._sets += 1

    def delete(self, key: str) -> None:
        """
        Delete value from cache regardless of its expiry state.

        Args:
            key: Cache key to delete

        Examples:
            >>> cache = TTLCache(ttl=10)
            >>> cache.delete('missing')
            >>> cache.set('a', 1)
            >>> cache.delete('a')
            >>> cache.get('a') is None
            True
        """
        with self._lock:
            self._cache.pop(key, None)

    def clear(self) -> int:
        """
        Clear all cached entries.

        Returns:
            int: Number of entries removed

        Examples:
            >>> cache = TTLCache(ttl=10)
            >>> cache.set('a', 1)
            >>> cache.clear()
            1
            >>> cache.clear()
            0
        """
        with self._lock:
            removed = len(self._cache)
            self._cache.clear()
            self._expiry_heap.clear()
        if removed:
            logger.debug("Cleared %d entries from %s cache", removed, self.name)
        return removed

    def obtained_at(self, key: str) -> Optional[float]:
        """Return when a live entry was stored.

        Args:
            key: Cache key

        Returns:
            Epoch seconds of the last ``set`` for a live key, otherwise None.
        """
        with self._lock:
            entry = self._cache.get(key)
            if entry is None or entry.is_expired(time.time()):
                return None
            return entry.obtained_at

    async def _cleanup_loop(self) -> None:
        """Background task that removes expired entries every ``check_period`` seconds."""
        while True:
            await asyncio.sleep(self.check_period)
            try:
                self._cleanup_once()
            except Exception as e:
                logger.error("%s cache cleanup error: %s", self.name, e)

    def _cleanup_once(self) -> int:
        """Remove expired entries using the expiry heap.

        Each popped heap item is validated against the live entry so an
        entry that was overwritten after the heap item was pushed survives.

        Returns:
            int: Number of entries removed
        """
        now = time.time()
        removed = 0

        with self._lock:
            while self._expiry_heap and self._expiry_heap[0][0] <= now:
                expires_at, key = heapq.heappop(self._expiry_heap)
                entry = self._cache.get(key)
                if entry is not None and entry.expires_at == expires_at:
                    del self._cache[key]
                    removed += 1
            self._expirations += removed

            if len(self._expiry_heap) > 2 * self.max_size:
                self._expiry_heap = [(entry.expires_at, k) for k, entry in self._cache.items()]
                heapq.heapify(self._expiry_heap)

        if removed:
            logger.debug("Swept %d expired entries from %s cache", removed, self.name)
        return removed

    def stats(self) -> Dict[str, Any]:
        """Return hit/miss counters and current size.

        Returns:
            Dict with name, size, ttl, hits, misses, sets, evictions, expirations.
        """
        with self._lock:
            return {
                "name": self.name,
                "size": len(self._cache),
                "ttl": self.ttl,
                "hits": self._hits,
                "misses": self._misses,
                "sets": self._sets,
                "evictions": self._evictions,
                "expirations": self._expirations,
            }

    def __contains__(self, key: object) -> bool:
        """Return True if ``key`` holds a live entry, without touching hit counters.

        Args:
            key: Cache key

        Returns:
            bool: True for a live entry
        """
        with self._lock:
            entry = self._cache.get(key)  # type: ignore[arg-type]
            return entry is not None and not entry.is_expired(time.time())

    def __len__(self) -> int:
        """
        Get the number of stored entries (expired entries not yet swept included).

        Returns:
            int: Number of entries in cache

        Examples:
            >>> cache = TTLCache(ttl=1)
            >>> cache.set('a', 1)
            >>> len(cache)
            1
        """
        with self._lock:
            return len(self._cache)
