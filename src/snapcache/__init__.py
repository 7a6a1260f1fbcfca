"""
snapcache.

A two-tier cache: warmed entries served from a read-only snapshot loaded once
per process, with every other key handled by a mutable fallback pool.
"""

from __future__ import annotations

import logging as _logging
from importlib import import_module
from typing import TYPE_CHECKING, Any

# Provide a default no-op handler to avoid "No handler" warnings for library users.
_logging.getLogger(__name__).addHandler(_logging.NullHandler())

__version__ = "0.1.0"

if TYPE_CHECKING:  # pragma: no cover - import-time only
    from .adapter import SnapshotAdapter
    from .codec import NULL, LazyInit, Literal, SerializedPayload, decode, serialize_payload
    from .config import SnapcacheConfig
    from .factory import acceleration_enabled, create_adapter, from_config
    from .items import CacheItem, validate_key
    from .pools import CachePool, MappingPool, MemoryPool
    from .snapshot import ModuleSnapshotLoader, Snapshot, StaticSnapshotLoader
    from .utils.exceptions import (
        InvalidKeyError,
        SnapcacheError,
        SnapshotLoadError,
    )

__all__ = (
    "CacheItem",
    "CachePool",
    "InvalidKeyError",
    "LazyInit",
    "Literal",
    "MappingPool",
    "MemoryPool",
    "ModuleSnapshotLoader",
    "NULL",
    "SerializedPayload",
    "SnapcacheConfig",
    "SnapcacheError",
    "Snapshot",
    "SnapshotAdapter",
    "SnapshotLoadError",
    "StaticSnapshotLoader",
    "acceleration_enabled",
    "create_adapter",
    "decode",
    "from_config",
    "serialize_payload",
    "validate_key",
)

_NAME_TO_MODULE = {
    "CacheItem": "items",
    "CachePool": "pools",
    "InvalidKeyError": "utils.exceptions",
    "LazyInit": "codec",
    "Literal": "codec",
    "MappingPool": "pools",
    "MemoryPool": "pools",
    "ModuleSnapshotLoader": "snapshot",
    "NULL": "codec",
    "SerializedPayload": "codec",
    "SnapcacheConfig": "config",
    "SnapcacheError": "utils.exceptions",
    "Snapshot": "snapshot",
    "SnapshotAdapter": "adapter",
    "SnapshotLoadError": "utils.exceptions",
    "StaticSnapshotLoader": "snapshot",
    "acceleration_enabled": "factory",
    "create_adapter": "factory",
    "decode": "codec",
    "from_config": "factory",
    "serialize_payload": "codec",
    "validate_key": "items",
}


def __getattr__(name: str) -> Any:
    """Lazily expose the public API from the package root."""
    if name not in _NAME_TO_MODULE:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    module = import_module(f"{__name__}.{_NAME_TO_MODULE[name]}")
    value = getattr(module, name)
    globals()[name] = value
    return value
