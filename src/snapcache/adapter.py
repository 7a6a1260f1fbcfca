"""Dual-tier adapter: a read-only snapshot in front of a mutable fallback pool.

Keys found in the snapshot are answered locally and can neither be written
nor deleted through the adapter. Every other key is delegated to the fallback
pool, so the adapter can stand in wherever a plain pool is expected.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Iterator, List, Tuple

from .codec import decode
from .items import CacheItem, validate_key
from .pools.base import CachePool, ComputingPool, compute_or_get
from .snapshot import Snapshot, SnapshotCell, SnapshotLoader


class SnapshotAdapter:
    """Serve warmed keys from a snapshot and the rest from ``fallback_pool``.

    Parameters
    ----------
    loader : SnapshotLoader
        Source of the snapshot, loaded on first use and at most once.
    fallback_pool : CachePool
        Pool owning every key absent from the snapshot.

    Notes
    -----
    ``get_items`` yields snapshot keys first, in input order, followed by the
    fallback pool's results for the remaining keys in the pool's own order.
    """

    def __init__(self, loader: SnapshotLoader, fallback_pool: CachePool) -> None:
        self._cell = SnapshotCell(loader)
        self._pool = fallback_pool

    @property
    def pool(self) -> CachePool:
        """The fallback pool."""
        return self._pool

    @property
    def snapshot(self) -> Snapshot:
        """The loaded snapshot, loading it if needed."""
        return self._cell.get()

    def compute_or_get(
        self, key: str, compute: Callable[[], Any], beta: float | None = None
    ) -> Any:
        """Return the value for ``key``, computing it through the pool when not warmed.

        Snapshot keys never reach ``compute`` or the pool; a slot that fails to
        decode yields ``None``.
        """
        validate_key(key)
        slot = self._cell.get().slot(key)
        if slot is not None:
            return decode(slot).value
        if isinstance(self._pool, ComputingPool):
            return self._pool.compute_or_get(key, compute, beta)
        return compute_or_get(self._pool, key, compute, 1.0 if beta is None else beta)

    def get_item(self, key: str) -> CacheItem:
        validate_key(key)
        slot = self._cell.get().slot(key)
        if slot is None:
            return self._pool.get_item(key)
        value, is_hit = decode(slot)
        return CacheItem(key, value, is_hit)

    def get_items(self, keys: Iterable[str]) -> Iterator[Tuple[str, CacheItem]]:
        """Return a single-pass iterator of ``(key, item)`` pairs.

        Keys are validated and the snapshot is loaded before this returns;
        decoding and the fallback lookup happen while iterating.
        """
        keys = [validate_key(key) for key in keys]
        return self._generate_items(keys, self._cell.get())

    def has_item(self, key: str) -> bool:
        validate_key(key)
        return key in self._cell.get() or self._pool.has_item(key)

    def delete_item(self, key: str) -> bool:
        validate_key(key)
        return key not in self._cell.get() and self._pool.delete_item(key)

    def delete_items(self, keys: Iterable[str]) -> bool:
        """Delete ``keys`` from the pool; False if any of them is a snapshot key.

        Keys absent from the snapshot are forwarded even when the overall
        result is already False.
        """
        keys = [validate_key(key) for key in keys]
        snapshot = self._cell.get()
        deleted = True
        fallback_keys: List[str] = []
        for key in keys:
            if key in snapshot:
                deleted = False
            else:
                fallback_keys.append(key)
        if fallback_keys:
            deleted = self._pool.delete_items(fallback_keys) and deleted
        return deleted

    def save(self, item: CacheItem) -> bool:
        validate_key(item.key)
        return item.key not in self._cell.get() and self._pool.save(item)

    def save_deferred(self, item: CacheItem) -> bool:
        validate_key(item.key)
        return item.key not in self._cell.get() and self._pool.save_deferred(item)

    def commit(self) -> bool:
        return self._pool.commit()

    def clear(self) -> bool:
        """Clear the fallback pool; snapshot entries stay in place."""
        clear = getattr(self._pool, "clear", None)
        return bool(clear()) if clear is not None else False

    def prune(self) -> bool:
        """Prune expired fallback entries when the pool supports it."""
        prune = getattr(self._pool, "prune", None)
        return bool(prune()) if prune is not None else False

    def reset(self) -> None:
        """Reset the fallback pool when it supports it."""
        reset = getattr(self._pool, "reset", None)
        if reset is not None:
            reset()

    def _generate_items(
        self, keys: List[str], snapshot: Snapshot
    ) -> Iterator[Tuple[str, CacheItem]]:
        fallback_keys: List[str] = []
        for key in keys:
            slot = snapshot.slot(key)
            if slot is None:
                fallback_keys.append(key)
                continue
            value, is_hit = decode(slot)
            yield key, CacheItem(key, value, is_hit)

        if fallback_keys:
            yield from self._pool.get_items(fallback_keys)

    def __repr__(self) -> str:
        state = repr(self._cell.get()) if self._cell.loaded else "unloaded"
        return f"SnapshotAdapter(snapshot={state}, pool={self._pool!r})"


__all__ = ["SnapshotAdapter"]
