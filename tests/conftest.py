"""Shared pytest fixtures for snapcache tests."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Tuple

import pytest

from snapcache.adapter import SnapshotAdapter
from snapcache.codec import NULL, LazyInit, Literal, SerializedPayload, serialize_payload
from snapcache.items import CacheItem
from snapcache.pools.mapping import MappingPool
from snapcache.snapshot import Snapshot, StaticSnapshotLoader


class RecordingPool(MappingPool):
    """Dict-backed pool that records every call made to it."""

    def __init__(self, data: Dict[str, Any] | None = None, *, reverse_batches: bool = False) -> None:
        super().__init__({} if data is None else data)
        self.calls: List[Tuple[str, Any]] = []
        self.reverse_batches = reverse_batches

    def get_item(self, key: str) -> CacheItem:
        self.calls.append(("get_item", key))
        return super().get_item(key)

    def get_items(self, keys: Iterable[str]):
        keys = list(keys)
        self.calls.append(("get_items", keys))
        pairs = list(super().get_items(keys))
        return iter(reversed(pairs) if self.reverse_batches else pairs)

    def has_item(self, key: str) -> bool:
        self.calls.append(("has_item", key))
        return super().has_item(key)

    def delete_item(self, key: str) -> bool:
        self.calls.append(("delete_item", key))
        return super().delete_item(key)

    def delete_items(self, keys: Iterable[str]) -> bool:
        keys = list(keys)
        self.calls.append(("delete_items", keys))
        return super().delete_items(keys)

    def save(self, item: CacheItem) -> bool:
        self.calls.append(("save", item.key))
        return super().save(item)

    def save_deferred(self, item: CacheItem) -> bool:
        self.calls.append(("save_deferred", item.key))
        return super().save_deferred(item)

    def commit(self) -> bool:
        self.calls.append(("commit", None))
        return super().commit()

    def clear(self) -> bool:
        self.calls.append(("clear", None))
        return super().clear()


class CountingLoader:
    """Snapshot loader counting how often it is asked to load."""

    def __init__(self, snapshot: Snapshot) -> None:
        self.snapshot = snapshot
        self.loads = 0

    def load(self) -> Snapshot:
        self.loads += 1
        return self.snapshot


def _broken_factory() -> Any:
    raise RuntimeError("cannot rebuild")


@pytest.fixture
def warm_snapshot() -> Snapshot:
    """Snapshot covering every slot variant."""
    return Snapshot.from_mapping(
        {
            "answer": 42,
            "routes": ("home", "about"),
            "nothing": NULL,
            "payload": serialize_payload({"compiled": True}),
            "json_payload": serialize_payload([1, 2, 3], "json"),
            "corrupt": SerializedPayload(b"not a pickle", "pickle"),
            "lazy": LazyInit(lambda: {"built": 1}),
            "broken": LazyInit(_broken_factory),
            "colon_text": Literal("s:5:hello"),
        }
    )


@pytest.fixture
def recording_pool() -> RecordingPool:
    return RecordingPool()


@pytest.fixture
def counting_loader(warm_snapshot: Snapshot) -> CountingLoader:
    return CountingLoader(warm_snapshot)


@pytest.fixture
def adapter(counting_loader: CountingLoader, recording_pool: RecordingPool) -> SnapshotAdapter:
    return SnapshotAdapter(counting_loader, recording_pool)


@pytest.fixture
def static_loader(warm_snapshot: Snapshot) -> StaticSnapshotLoader:
    return StaticSnapshotLoader(warm_snapshot)


@pytest.fixture
def pool_class() -> type:
    """The recording pool class, for tests that need custom instances or subclasses."""
    return RecordingPool
