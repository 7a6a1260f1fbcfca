"""Cache items and key validation shared by every pool."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .utils.exceptions import InvalidKeyError

#: Characters that may not appear in a cache key.
RESERVED_CHARACTERS = "{}()/\\@:"


def validate_key(key: Any) -> str:
    """Return ``key`` unchanged when it is a usable cache key.

    A key must be a non-empty ``str`` that contains none of
    :data:`RESERVED_CHARACTERS`.

    Raises
    ------
    InvalidKeyError
        If ``key`` has the wrong type, is empty or uses a reserved character.
    """
    if not isinstance(key, str):
        raise InvalidKeyError(
            f"Cache key must be string, {type(key).__name__!r} given.",
            details={"key": key, "type": type(key).__name__},
        )
    if not key:
        raise InvalidKeyError("Cache key length must be greater than zero.", details={"key": key})
    reserved = sorted({char for char in key if char in RESERVED_CHARACTERS})
    if reserved:
        raise InvalidKeyError(
            f"Cache key {key!r} contains reserved characters {''.join(reserved)!r}.",
            details={"key": key, "reserved": reserved},
        )
    return key


@dataclass(slots=True)
class CacheItem:
    """Result of a cache read: the key, its value and whether it was a hit.

    A new item is produced for every read; callers may ``set`` a value on a
    miss and hand the item back to ``save``.
    """

    key: str
    value: Any = None
    is_hit: bool = False

    def get(self) -> Any:
        """Return the cached value (``None`` on a miss)."""
        return self.value

    def set(self, value: Any) -> "CacheItem":
        """Assign ``value`` and return the item for chaining into ``save``."""
        self.value = value
        return self


__all__ = ["CacheItem", "RESERVED_CHARACTERS", "validate_key"]
