from __future__ import annotations

import math

import cachetools
import pytest

from snapcache.items import CacheItem
from snapcache.pools.base import CachePool, compute_or_get
from snapcache.pools.mapping import MappingPool
from snapcache.utils.exceptions import InvalidArgumentError


def test_mapping_pool_writes_into_the_wrapped_mapping() -> None:
    backing = {}
    pool = MappingPool(backing)
    assert isinstance(pool, CachePool)
    pool.save(CacheItem("a", None))
    assert backing == {"a": None}
    item = pool.get_item("a")
    assert (item.value, item.is_hit) == (None, True)
    assert pool.get_item("b").is_hit is False


def test_mapping_pool_deferred_and_delete() -> None:
    backing = {"x": 1}
    pool = MappingPool(backing)
    pool.save_deferred(CacheItem("y", 2))
    assert "y" not in backing
    assert pool.has_item("y") is True
    assert backing == {"x": 1, "y": 2}
    pool.save_deferred(CacheItem("z", 3))
    assert pool.delete_items(["x", "z"]) is True
    assert pool.commit() is True
    assert backing == {"y": 2}
    assert pool.delete_item("missing") is True


def test_mapping_pool_over_cachetools_cache() -> None:
    pool = MappingPool(cachetools.LRUCache(maxsize=1))
    pool.save(CacheItem("a", 1))
    pool.save(CacheItem("b", 2))
    assert [(key, item.is_hit) for key, item in pool.get_items(["a", "b"])] == [
        ("a", False),
        ("b", True),
    ]
    assert pool.clear() is True


def test_compute_or_get_computes_once_and_saves() -> None:
    pool = MappingPool({})
    calls = []

    def compute() -> int:
        calls.append(1)
        return len(calls)

    assert compute_or_get(pool, "k", compute) == 1
    assert compute_or_get(pool, "k", compute) == 1
    assert compute_or_get(pool, "k", compute, beta=math.inf) == 2
    assert pool.mapping["k"] == 2


def test_compute_or_get_rejects_negative_beta() -> None:
    with pytest.raises(InvalidArgumentError) as excinfo:
        compute_or_get(MappingPool({}), "k", lambda: 1, beta=-0.5)
    assert excinfo.value.details["param"] == "beta"
