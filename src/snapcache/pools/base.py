"""Capability surface shared by fallback pools and the snapshot adapter."""

from __future__ import annotations

import math
from typing import Any, Callable, Iterable, Iterator, Protocol, Tuple, runtime_checkable

from ..items import CacheItem, validate_key
from ..utils.exceptions import InvalidArgumentError


@runtime_checkable
class CachePool(Protocol):
    """Pooled cache operations every fallback store provides."""

    def get_item(self, key: str) -> CacheItem:
        ...

    def get_items(self, keys: Iterable[str]) -> Iterator[Tuple[str, CacheItem]]:
        ...

    def has_item(self, key: str) -> bool:
        ...

    def delete_item(self, key: str) -> bool:
        ...

    def delete_items(self, keys: Iterable[str]) -> bool:
        ...

    def save(self, item: CacheItem) -> bool:
        ...

    def save_deferred(self, item: CacheItem) -> bool:
        ...

    def commit(self) -> bool:
        ...


@runtime_checkable
class ComputingPool(CachePool, Protocol):
    """Pool that computes missing values itself, with its own stampede protection."""

    def compute_or_get(
        self, key: str, compute: Callable[[], Any], beta: float | None = None
    ) -> Any:
        ...


def compute_or_get(
    pool: CachePool, key: str, compute: Callable[[], Any], beta: float = 1.0
) -> Any:
    """Return the cached value for ``key`` or compute, save and return it.

    ``beta`` follows the probabilistic early-expiration convention: it must
    not be negative and ``math.inf`` forces a recompute even on a hit.
    """
    validate_key(key)
    if beta < 0:
        raise InvalidArgumentError(
            f"Argument beta must be a non-negative number, {beta!r} given.",
            details={"param": "beta", "value": beta, "requirement": "non-negative"},
        )
    item = pool.get_item(key)
    if item.is_hit and not math.isinf(beta):
        return item.value
    value = compute()
    pool.save(item.set(value))
    return value


__all__ = ["CachePool", "ComputingPool", "compute_or_get"]
