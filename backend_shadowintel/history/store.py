"""
Bounded, thread-safe history store keyed by identity or venue.

Each key maps to an insertion-ordered sequence capped at a fixed capacity;
when an append overflows the capacity the oldest entries are evicted first.
Reads return an immutable snapshot, so callers never observe a half-applied
append. Unknown keys read as an empty sequence.

Locking: keys are hashed onto a fixed set of lock stripes. Appends for the
same key always take the same lock (no lost updates, capacity never exceeded);
appends for keys on different stripes do not contend.
"""

from __future__ import annotations

import threading
from collections import deque
from typing import Any, Generic, Hashable, Iterable, TypeVar

from backend_shadowintel.config.settings import DEFAULT_LOCK_STRIPES
from backend_shadowintel.core.exceptions import ConfigurationError
from backend_shadowintel.core.identity import identity_key_hex
from backend_shadowintel.intel_logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def _normalize_key(key: Any) -> Hashable:
    """bytes keys (pseudonyms) are stored under their lowercase hex form."""
    if isinstance(key, (bytes, bytearray)):
        return identity_key_hex(key)
    return key


class HistoryStore(Generic[T]):
    """
    Per-key FIFO ring buffers with a shared capacity.

    capacity: max entries kept per key; None means unbounded.
    name: label used in log events (e.g. "threat_history").
    """

    def __init__(
        self,
        capacity: int | None,
        *,
        name: str = "history",
        lock_stripes: int = DEFAULT_LOCK_STRIPES,
    ) -> None:
        if capacity is not None and (isinstance(capacity, bool) or not isinstance(capacity, int) or capacity <= 0):
            logger.warning("history_capacity_invalid", store=name, capacity=repr(capacity))
            raise ConfigurationError("history capacity must be a positive int or None", store=name, capacity=capacity)
        if lock_stripes <= 0:
            logger.warning("history_lock_stripes_invalid", store=name, lock_stripes=lock_stripes)
            raise ConfigurationError("lock_stripes must be positive", store=name, lock_stripes=lock_stripes)
        self.capacity = capacity
        self.name = name
        self._entries: dict[Hashable, deque[T]] = {}
        self._stripes = [threading.Lock() for _ in range(lock_stripes)]
        self._index_lock = threading.Lock()

    def _lock_for(self, key: Hashable) -> threading.Lock:
        return self._stripes[hash(key) % len(self._stripes)]

    def _bucket(self, key: Hashable) -> deque[T]:
        """Return the deque for key, creating it on first observation."""
        bucket = self._entries.get(key)
        if bucket is None:
            with self._index_lock:
                bucket = self._entries.get(key)
                if bucket is None:
                    bucket = deque(maxlen=self.capacity)
                    self._entries[key] = bucket
        return bucket

    def record(self, key: Any, item: T) -> None:
        """Append item for key; evicts the oldest entry when over capacity."""
        k = _normalize_key(key)
        with self._lock_for(k):
            self._bucket(k).append(item)

    def record_many(self, key: Any, items: Iterable[T]) -> None:
        """Append items in order (e.g. replaying an external log)."""
        k = _normalize_key(key)
        with self._lock_for(k):
            bucket = self._bucket(k)
            for item in items:
                bucket.append(item)
        logger.debug("history_replayed", store=self.name, size=len(bucket))

    def get(self, key: Any) -> tuple[T, ...]:
        """Return an immutable snapshot of key's history, oldest first; empty if unknown."""
        k = _normalize_key(key)
        bucket = self._entries.get(k)
        if bucket is None:
            return ()
        with self._lock_for(k):
            return tuple(bucket)

    def keys(self) -> list[Hashable]:
        with self._index_lock:
            return list(self._entries)

    def clear(self) -> None:
        """Drop every key. Holds all stripes so no in-flight append lands in a dropped bucket."""
        for lock in self._stripes:
            lock.acquire()
        try:
            with self._index_lock:
                self._entries.clear()
        finally:
            for lock in reversed(self._stripes):
                lock.release()

    def __contains__(self, key: Any) -> bool:
        return _normalize_key(key) in self._entries

    def __len__(self) -> int:
        return len(self._entries)
