"""Construction of snapshot adapters, degrading to the bare pool when useless.

The snapshot tier only pays off when the snapshot module loads from cached
bytecode. With bytecode caching disabled every process would recompile the
snapshot source, so the factory hands back the fallback pool instead.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any, MutableMapping, Union

from .adapter import SnapshotAdapter
from .config import SnapcacheConfig
from .pools.base import CachePool
from .pools.mapping import MappingPool
from .snapshot import ModuleSnapshotLoader, Snapshot, SnapshotLoader, StaticSnapshotLoader
from .utils.exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)

SnapshotSource = Union[SnapshotLoader, Snapshot, str, "os.PathLike[str]"]


def acceleration_enabled(config: SnapcacheConfig | None = None) -> bool:
    """Return whether the snapshot tier should be used in this interpreter."""
    if config is not None and config.accelerate is not None:
        return config.accelerate
    return not sys.dont_write_bytecode


def as_pool(fallback: Any) -> CachePool:
    """Return ``fallback`` as a pool, wrapping plain mappings in :class:`MappingPool`."""
    if isinstance(fallback, CachePool):
        return fallback
    if isinstance(fallback, MutableMapping):
        return MappingPool(fallback)
    raise InvalidArgumentError(
        f"Fallback must be a cache pool or a mutable mapping, {type(fallback).__name__!r} given.",
        details={"param": "fallback", "type": type(fallback).__name__},
    )


def as_loader(snapshot: SnapshotSource) -> SnapshotLoader:
    """Return a loader for a loader, a :class:`Snapshot` or a snapshot file path."""
    if isinstance(snapshot, (str, os.PathLike)):
        return ModuleSnapshotLoader(snapshot)
    if isinstance(snapshot, Snapshot):
        return StaticSnapshotLoader(snapshot)
    if isinstance(snapshot, SnapshotLoader):
        return snapshot
    raise InvalidArgumentError(
        f"Snapshot must be a loader, a Snapshot or a path, {type(snapshot).__name__!r} given.",
        details={"param": "snapshot", "type": type(snapshot).__name__},
    )


def create_adapter(
    snapshot: SnapshotSource,
    fallback: Any,
    *,
    accelerated: bool | None = None,
    config: SnapcacheConfig | None = None,
) -> CachePool:
    """Return a :class:`SnapshotAdapter`, or the fallback pool when not accelerated.

    Parameters
    ----------
    snapshot : SnapshotLoader, Snapshot, str or PathLike
        Where the warmed entries come from.
    fallback : CachePool or MutableMapping
        Store for every other key; mappings are wrapped in :class:`MappingPool`.
    accelerated : bool, optional
        Override the acceleration check.
    config : SnapcacheConfig, optional
        Consulted for ``accelerate`` when ``accelerated`` is not given.
    """
    pool = as_pool(fallback)
    if accelerated is None:
        accelerated = acceleration_enabled(config)
    if not accelerated:
        logger.debug("Snapshot acceleration unavailable; using %r directly", pool)
        return pool
    return SnapshotAdapter(as_loader(snapshot), pool)


def from_config(config: SnapcacheConfig | None = None) -> CachePool:
    """Build the pool described by ``config`` (resolved from the environment if omitted)."""
    cfg = config if config is not None else SnapcacheConfig.resolve()
    pool = cfg.make_pool()
    if cfg.snapshot_path is None:
        logger.debug("No snapshot configured; using the fallback pool only")
        return pool
    return create_adapter(cfg.snapshot_path, pool, config=cfg)


__all__ = ["acceleration_enabled", "as_loader", "as_pool", "create_adapter", "from_config"]
