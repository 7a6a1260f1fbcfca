"""Read-only snapshot tier: the snapshot value, its loaders and a load-once cell.

A snapshot file is a Python module defining two names::

    KEYS = {"routes": 0, "feature_flags": 1}
    VALUES = (
        ("home", "about"),
        SerializedPayload(b"...", "pickle"),
    )

``VALUES`` may hold plain values or slot instances from :mod:`snapcache.codec`;
plain values are coerced with :func:`~snapcache.codec.coerce_slot`. Importing
the file through :mod:`importlib` lets the interpreter reuse its cached
bytecode, so repeated loads cost close to nothing.
"""

from __future__ import annotations

import importlib.util
import logging
import os
import threading
from hashlib import blake2b
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping, Protocol, Sequence, Union, runtime_checkable

from .codec import Slot, coerce_slot
from .utils.exceptions import SnapshotLoadError, explain_exception

logger = logging.getLogger(__name__)


class Snapshot:
    """Immutable key to slot mapping loaded once per process."""

    __slots__ = ("_keys", "_values")

    def __init__(self, keys: Mapping[str, int], values: Iterable[Any]) -> None:
        """Validate ``keys`` against ``values`` and freeze both.

        Raises
        ------
        SnapshotLoadError
            If a key is not a string or points outside ``values``.
        """
        frozen_values = tuple(coerce_slot(value) for value in values)
        frozen_keys = dict(keys)
        for key, index in frozen_keys.items():
            if not isinstance(key, str):
                raise SnapshotLoadError(
                    "Snapshot keys must be strings",
                    details={"key": key, "type": type(key).__name__},
                )
            if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(frozen_values):
                raise SnapshotLoadError(
                    f"Snapshot key {key!r} points to missing slot {index!r}",
                    details={"key": key, "index": index, "slots": len(frozen_values)},
                )
        self._keys: Mapping[str, int] = MappingProxyType(frozen_keys)
        self._values: tuple[Slot, ...] = frozen_values

    @classmethod
    def empty(cls) -> "Snapshot":
        """Return a snapshot without entries."""
        return cls({}, ())

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "Snapshot":
        """Build a snapshot with one slot per entry of ``mapping``."""
        keys = {}
        values = []
        for index, (key, value) in enumerate(mapping.items()):
            keys[key] = index
            values.append(value)
        return cls(keys, values)

    @property
    def keys(self) -> Mapping[str, int]:
        """Read-only key to slot index mapping."""
        return self._keys

    @property
    def values(self) -> tuple[Slot, ...]:
        """Encoded slots, indexed by position."""
        return self._values

    def slot(self, key: str) -> Slot | None:
        """Return the slot stored for ``key`` or ``None`` when absent."""
        index = self._keys.get(key)
        if index is None:
            return None
        return self._values[index]

    def __contains__(self, key: object) -> bool:
        return key in self._keys

    def __iter__(self) -> Iterator[str]:
        return iter(self._keys)

    def __len__(self) -> int:
        return len(self._keys)

    def __repr__(self) -> str:
        return f"Snapshot(keys={len(self._keys)}, slots={len(self._values)})"


@runtime_checkable
class SnapshotLoader(Protocol):
    """Source of a :class:`Snapshot`; ``load`` is called at most once per cell."""

    def load(self) -> Snapshot:
        """Return the loaded snapshot or raise :class:`SnapshotLoadError`."""
        ...


class StaticSnapshotLoader:
    """Loader serving a snapshot already held in memory."""

    def __init__(self, source: Union[Snapshot, Mapping[str, Any]]) -> None:
        self._source = source

    def load(self) -> Snapshot:
        if isinstance(self._source, Snapshot):
            return self._source
        return Snapshot.from_mapping(self._source)


class ModuleSnapshotLoader:
    """Loader importing a snapshot module from ``path``.

    A missing file is an empty snapshot. Any error raised while executing the
    module, or a module without ``KEYS``/``VALUES``, is a
    :class:`SnapshotLoadError`.
    """

    def __init__(self, path: Union[str, os.PathLike]) -> None:
        self.path = Path(path)

    def _module_name(self) -> str:
        digest = blake2b(str(self.path.resolve()).encode("utf-8"), digest_size=8).hexdigest()
        return f"_snapcache_snapshot_{digest}"

    def load(self) -> Snapshot:
        if not self.path.exists():
            logger.debug("Snapshot file %s does not exist; using an empty snapshot", self.path)
            return Snapshot.empty()

        spec = importlib.util.spec_from_file_location(self._module_name(), self.path)
        if spec is None or spec.loader is None:
            raise SnapshotLoadError(
                f"Cannot import snapshot file {self.path}",
                details={"path": str(self.path)},
            )
        module = importlib.util.module_from_spec(spec)
        try:
            spec.loader.exec_module(module)
        except Exception as exc:
            raise SnapshotLoadError(
                f"Snapshot file {self.path} failed to load: {exc}",
                details={"path": str(self.path), "error": type(exc).__name__},
            ) from exc

        keys = getattr(module, "KEYS", None)
        values = getattr(module, "VALUES", None)
        if not isinstance(keys, Mapping) or not isinstance(values, Sequence):
            raise SnapshotLoadError(
                f"Snapshot file {self.path} must define a KEYS mapping and a VALUES sequence",
                details={"path": str(self.path)},
            )
        snapshot = Snapshot(keys, values)
        logger.debug("Loaded %d snapshot entries from %s", len(snapshot), self.path)
        return snapshot


class SnapshotCell:
    """One-shot lazy cell holding the snapshot produced by ``loader``.

    The first :meth:`get` runs the loader under a lock; later calls return the
    same object without locking. A failed load is remembered; later calls raise
    a fresh :class:`SnapshotLoadError` chained to it without calling the loader
    again.
    """

    def __init__(self, loader: SnapshotLoader) -> None:
        self._loader = loader
        self._lock = threading.Lock()
        self._snapshot: Snapshot | None = None
        self._error: SnapshotLoadError | None = None

    @property
    def loaded(self) -> bool:
        """Return True once the snapshot is available."""
        return self._snapshot is not None

    def get(self) -> Snapshot:
        """Return the snapshot, loading it on first use."""
        snapshot = self._snapshot
        if snapshot is not None:
            return snapshot
        with self._lock:
            if self._snapshot is None:
                if self._error is not None:
                    raise SnapshotLoadError(
                        str(self._error), details=self._error.details
                    ) from self._error
                self._snapshot = self._load()
            return self._snapshot

    def _fail(self, error: SnapshotLoadError) -> SnapshotLoadError:
        self._error = error
        logger.debug("Snapshot unavailable: %s", explain_exception(error))
        return error

    def _load(self) -> Snapshot:
        try:
            snapshot = self._loader.load()
        except SnapshotLoadError as exc:
            self._fail(exc)
            raise
        except Exception as exc:
            raise self._fail(
                SnapshotLoadError(
                    f"Snapshot loader failed: {exc}",
                    details={"loader": type(self._loader).__name__, "error": type(exc).__name__},
                )
            ) from exc
        if not isinstance(snapshot, Snapshot):
            raise self._fail(
                SnapshotLoadError(
                    "Snapshot loader must return a Snapshot",
                    details={"loader": type(self._loader).__name__, "type": type(snapshot).__name__},
                )
            )
        return snapshot


__all__ = [
    "ModuleSnapshotLoader",
    "Snapshot",
    "SnapshotCell",
    "SnapshotLoader",
    "StaticSnapshotLoader",
]
