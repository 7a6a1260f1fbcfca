"""In-process fallback pool built on :mod:`cachetools`.

The pool keeps mutable cache state for every key the snapshot does not own:

* Namespaced keys so several pools can share one process safely.
* LRU eviction via ``cachetools.LRUCache``, or ``cachetools.TTLCache`` when a
  time-to-live is configured.
* An optional memory budget on top of the entry-count limit.
* Deferred saves buffered until :meth:`MemoryPool.commit` or the next read.
* Lightweight telemetry counters and an optional event callback.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from time import monotonic
from typing import Any, Callable, Dict, Hashable, Iterable, Iterator, Mapping, Tuple

import cachetools
import numpy as np

from ..items import CacheItem, validate_key
from ..utils.exceptions import ValidationError

logger = logging.getLogger(__name__)

TelemetryCallback = Callable[[str, Mapping[str, Any]], None]

# Distinguishes stored ``None`` values from missing keys
_NONE_SENTINEL = object()
_MISSING = object()


def default_size_estimator(value: Any) -> int:
    """Best-effort size estimator used for memory budgets.

    ``sys.getsizeof`` is avoided because it dramatically underestimates numpy
    arrays.  Instead, rely on ``nbytes`` when available and fall back to a
    conservative constant.
    """
    if hasattr(value, "nbytes"):
        try:
            return int(value.nbytes)
        except (TypeError, ValueError) as exc:
            logger.debug("Failed to read nbytes attribute for %s: %s", type(value).__name__, exc)
    if hasattr(value, "__array_interface__"):
        try:
            return int(np.asarray(value).nbytes)
        except (TypeError, ValueError) as exc:
            logger.debug("Failed to coerce array interface for %s: %s", type(value).__name__, exc)
    if isinstance(value, (bytes, bytearray, str)):
        return max(len(value), 1)
    # Fallback constant that biases towards early eviction instead of OOM
    return 256


@dataclass(slots=True)
class CacheMetrics:
    """Telemetry counters aggregated by :class:`MemoryPool`."""

    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    evictions: int = 0
    expirations: int = 0
    resets: int = 0

    def snapshot(self) -> Mapping[str, int]:
        """Return a dictionary suitable for logging or JSON serialisation."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "deletes": self.deletes,
            "evictions": self.evictions,
            "expirations": self.expirations,
            "resets": self.resets,
        }


class MemoryPool:
    """Thread-safe pool over ``cachetools`` with memory budget support."""

    def __init__(
        self,
        *,
        namespace: str = "snapcache",
        max_items: int = 512,
        max_bytes: int | None = None,
        ttl_seconds: float | None = None,
        telemetry: TelemetryCallback | None = None,
        size_estimator: Callable[[Any], int] = default_size_estimator,
        timer: Callable[[], float] = monotonic,
    ) -> None:
        if max_items <= 0:
            raise ValidationError(
                "max_items must be positive",
                details={"param": "max_items", "value": max_items, "requirement": "positive"},
            )
        if max_bytes is not None and max_bytes <= 0:
            raise ValidationError(
                "max_bytes must be positive when provided",
                details={"param": "max_bytes", "value": max_bytes, "requirement": "positive"},
            )
        if ttl_seconds is not None and ttl_seconds <= 0:
            raise ValidationError(
                "ttl_seconds must be positive when provided",
                details={"param": "ttl_seconds", "value": ttl_seconds, "requirement": "positive"},
            )
        self.namespace = namespace
        self.max_items = max_items
        self.max_bytes = max_bytes
        self.ttl_seconds = ttl_seconds
        self._size_estimator = size_estimator
        self._telemetry = telemetry

        if ttl_seconds is not None:
            self._store: cachetools.Cache = cachetools.TTLCache(
                maxsize=max_items, ttl=ttl_seconds, timer=timer
            )
        else:
            self._store = cachetools.LRUCache(maxsize=max_items)

        self._deferred: Dict[str, CacheItem] = {}
        self._lock = threading.RLock()
        self._bytes = 0
        self.metrics = CacheMetrics()

    # ------------------------------------------------------------------
    # Pool API
    # ------------------------------------------------------------------
    def get_item(self, key: str) -> CacheItem:
        """Return a fresh :class:`CacheItem` for ``key``."""
        validate_key(key)
        with self._lock:
            if self._deferred:
                self._commit_no_lock()
            return self._read_no_lock(key)

    def get_items(self, keys: Iterable[str]) -> Iterator[Tuple[str, CacheItem]]:
        """Return an iterator of ``(key, item)`` pairs in input order."""
        keys = [validate_key(key) for key in keys]
        with self._lock:
            if self._deferred:
                self._commit_no_lock()
            items = [(key, self._read_no_lock(key)) for key in keys]
        return iter(items)

    def has_item(self, key: str) -> bool:
        """Return True when ``key`` holds a live value."""
        validate_key(key)
        with self._lock:
            if key in self._deferred:
                self._commit_no_lock()
            return self._store_key(key) in self._store

    def delete_item(self, key: str) -> bool:
        """Remove ``key``; deleting an absent key still succeeds."""
        validate_key(key)
        with self._lock:
            self._delete_no_lock(key)
        return True

    def delete_items(self, keys: Iterable[str]) -> bool:
        """Remove every key in ``keys``."""
        keys = [validate_key(key) for key in keys]
        with self._lock:
            for key in keys:
                self._delete_no_lock(key)
        return True

    def save(self, item: CacheItem) -> bool:
        """Store ``item`` now; returns False when the value exceeds the budget."""
        validate_key(item.key)
        with self._lock:
            return self._set_no_lock(item.key, item.value)

    def save_deferred(self, item: CacheItem) -> bool:
        """Buffer ``item`` until the next :meth:`commit` or read."""
        validate_key(item.key)
        with self._lock:
            self._deferred[item.key] = CacheItem(item.key, item.value, item.is_hit)
        return True

    def commit(self) -> bool:
        """Persist every deferred item; True only if all of them were stored."""
        with self._lock:
            return self._commit_no_lock()

    # ------------------------------------------------------------------
    # Maintenance helpers
    # ------------------------------------------------------------------
    def clear(self) -> bool:
        """Drop every entry, including deferred ones."""
        with self._lock:
            self._store.clear()
            self._deferred.clear()
            self._bytes = 0
            self.metrics.resets += 1
            self._emit("cache_clear", {"reason": "manual"})
        return True

    def prune(self) -> bool:
        """Evict expired entries eagerly when a TTL is configured."""
        if not isinstance(self._store, cachetools.TTLCache):
            return False
        with self._lock:
            self._expire_no_lock()
        return True

    def reset(self) -> None:
        """Reset pool state after ``fork`` to avoid cross-process leakage."""
        with self._lock:
            self._store.clear()
            self._deferred.clear()
            self._bytes = 0
            self.metrics.resets += 1
            self._emit("cache_reset", {"reason": "forksafe"})

    def __len__(self) -> int:  # pragma: no cover - trivial
        """Return the number of stored entries."""
        with self._lock:
            return len(self._store)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------
    def _store_key(self, key: str) -> Tuple[Hashable, ...]:
        return (self.namespace, key)

    def _read_no_lock(self, key: str) -> CacheItem:
        value = self._store.get(self._store_key(key), _MISSING)
        if value is _MISSING:
            self.metrics.misses += 1
            self._emit("cache_miss", {"key": key})
            return CacheItem(key)
        self.metrics.hits += 1
        self._emit("cache_hit", {"key": key})
        return CacheItem(key, None if value is _NONE_SENTINEL else value, True)

    def _set_no_lock(self, key: str, value: Any) -> bool:
        stored_value = _NONE_SENTINEL if value is None else value
        cost = max(0, self._safe_estimate(stored_value))
        if self.max_bytes is not None and cost > self.max_bytes:
            # Value is larger than the entire budget - skip storing.
            logger.debug("Skipping oversize value for %r (%d bytes)", key, cost)
            self._emit("cache_skip", {"reason": "oversize", "key": key, "cost": cost})
            return False

        self._expire_no_lock()
        store_key = self._store_key(key)
        previous = self._store.pop(store_key, _MISSING)
        if previous is not _MISSING:
            self._bytes -= max(0, self._safe_estimate(previous))

        if self.max_bytes is not None:
            while self._bytes + cost > self.max_bytes and self._store:
                self._evict_oldest(reason="max_bytes")
        if len(self._store) >= self.max_items:
            self._evict_oldest(reason="max_items")

        self._store[store_key] = stored_value
        self._bytes += cost

        self.metrics.sets += 1
        self._emit("cache_store", {"key": key, "cost": cost})
        return True

    def _delete_no_lock(self, key: str) -> None:
        self._deferred.pop(key, None)
        value = self._store.pop(self._store_key(key), _MISSING)
        if value is not _MISSING:
            self._bytes -= max(0, self._safe_estimate(value))
            self.metrics.deletes += 1
            self._emit("cache_delete", {"key": key})

    def _commit_no_lock(self) -> bool:
        deferred, self._deferred = self._deferred, {}
        stored = True
        for item in deferred.values():
            stored = self._set_no_lock(item.key, item.value) and stored
        return stored

    def _evict_oldest(self, *, reason: str) -> None:
        """Remove the least-recently-used entry."""
        store_key, value = self._store.popitem()
        cost = max(0, self._safe_estimate(value))
        self._bytes -= cost
        self.metrics.evictions += 1
        self._emit("cache_evict", {"key": store_key[1], "cost": cost, "reason": reason})

    def _expire_no_lock(self) -> None:
        if not isinstance(self._store, cachetools.TTLCache):
            return
        for store_key, value in self._store.expire():
            self._bytes -= max(0, self._safe_estimate(value))
            self.metrics.expirations += 1
            self._emit("cache_expire", {"key": store_key[1]})

    def _safe_estimate(self, value: Any) -> int:
        """Best-effort estimate of object size, swallowing estimator errors."""
        if value is _NONE_SENTINEL:
            return 0
        try:
            return int(self._size_estimator(value))
        except Exception as exc:  # pragma: no cover - estimator is user supplied
            logger.debug("Size estimator failed for %s: %s", type(value).__name__, exc)
            return 0

    def _emit(self, event: str, payload: Mapping[str, Any]) -> None:
        """Send telemetry events when a callback is registered."""
        if self._telemetry is None:
            return
        try:
            self._telemetry(event, {"namespace": self.namespace, **payload})
        except Exception as exc:  # pragma: no cover - telemetry is optional best effort
            logger.debug("Telemetry callback failed for %s: %s", event, exc)


__all__ = ["CacheMetrics", "MemoryPool", "TelemetryCallback", "default_size_estimator"]
