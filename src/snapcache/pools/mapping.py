"""Pool surface over any ``MutableMapping``.

Lets a plain ``dict``, a ``cachetools`` cache or a ``shelve`` database act as
the fallback store. Writes land directly in the wrapped mapping.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Iterator, MutableMapping, Tuple

from ..items import CacheItem, validate_key


class MappingPool:
    """Adapter exposing a ``MutableMapping`` through the pool operations."""

    def __init__(self, mapping: MutableMapping[str, Any]) -> None:
        self.mapping = mapping
        self._deferred: Dict[str, Any] = {}

    def get_item(self, key: str) -> CacheItem:
        validate_key(key)
        if self._deferred:
            self.commit()
        return self._read(key)

    def get_items(self, keys: Iterable[str]) -> Iterator[Tuple[str, CacheItem]]:
        keys = [validate_key(key) for key in keys]
        if self._deferred:
            self.commit()
        return ((key, self._read(key)) for key in keys)

    def has_item(self, key: str) -> bool:
        validate_key(key)
        if key in self._deferred:
            self.commit()
        return key in self.mapping

    def delete_item(self, key: str) -> bool:
        validate_key(key)
        self._deferred.pop(key, None)
        self.mapping.pop(key, None)
        return True

    def delete_items(self, keys: Iterable[str]) -> bool:
        for key in [validate_key(key) for key in keys]:
            self._deferred.pop(key, None)
            self.mapping.pop(key, None)
        return True

    def save(self, item: CacheItem) -> bool:
        self.mapping[validate_key(item.key)] = item.value
        return True

    def save_deferred(self, item: CacheItem) -> bool:
        self._deferred[validate_key(item.key)] = item.value
        return True

    def commit(self) -> bool:
        deferred, self._deferred = self._deferred, {}
        self.mapping.update(deferred)
        return True

    def clear(self) -> bool:
        self._deferred.clear()
        self.mapping.clear()
        return True

    def _read(self, key: str) -> CacheItem:
        try:
            return CacheItem(key, self.mapping[key], True)
        except KeyError:
            return CacheItem(key)

    def __repr__(self) -> str:
        return f"MappingPool({type(self.mapping).__name__})"


__all__ = ["MappingPool"]
