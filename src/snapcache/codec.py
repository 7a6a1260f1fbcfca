"""Encoded snapshot slots and the codec that turns them into runtime values.

A snapshot slot is one of four variants:

* :data:`NULL` - an explicit ``None`` that still counts as a hit.
* :class:`Literal` - a value usable as-is. Containers are frozen on the way
  in so a value read from the snapshot cannot be changed by the caller.
* :class:`SerializedPayload` - bytes or text tagged with the format that
  produced them; deserialized on every read.
* :class:`LazyInit` - a zero-argument factory invoked on every read for values
  that cannot be stored as plain data.

Decoding never raises for a bad slot: a factory that fails or a payload that
cannot be deserialized is reported as a miss, exactly like an absent key.
"""

from __future__ import annotations

import functools
import json
import pickle
from dataclasses import dataclass
from types import FunctionType, MappingProxyType
from typing import Any, Callable, Mapping, NamedTuple, Union

from .utils.exceptions import DecodeError


@dataclass(frozen=True, slots=True)
class NullSlot:
    """Slot holding an explicit ``None``."""

    def __repr__(self) -> str:
        return "NULL"


NULL = NullSlot()


def _freeze(value: Any) -> Any:
    """Return a read-only copy of list, dict, set and bytearray containers."""
    if isinstance(value, (list, tuple)):
        items = tuple(_freeze(item) for item in value)
        if isinstance(value, tuple) and hasattr(value, "_make"):
            return value._make(items)
        return items
    if isinstance(value, (dict, MappingProxyType)):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, set):
        return frozenset(value)
    if isinstance(value, bytearray):
        return bytes(value)
    return value


@dataclass(frozen=True, slots=True)
class Literal:
    """Slot whose value needs no decoding.

    Container values are frozen recursively on construction; other objects are
    kept by reference.
    """

    value: Any

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", _freeze(self.value))


@dataclass(frozen=True, slots=True)
class SerializedPayload:
    """Slot holding a value serialized with a named format."""

    data: Union[bytes, str]
    format: str = "pickle"


@dataclass(frozen=True, slots=True)
class LazyInit:
    """Slot materialised by calling ``factory`` at read time."""

    factory: Callable[[], Any]


Slot = Union[NullSlot, Literal, SerializedPayload, LazyInit]
SLOT_TYPES = (NullSlot, Literal, SerializedPayload, LazyInit)


class Decoded(NamedTuple):
    """Outcome of decoding one slot."""

    value: Any
    is_hit: bool


_MISS = Decoded(None, False)

_SERIALIZERS: Mapping[str, Callable[[Any], Union[bytes, str]]] = {
    "pickle": lambda value: pickle.dumps(value, protocol=pickle.HIGHEST_PROTOCOL),
    "json": lambda value: json.dumps(value, separators=(",", ":")),
}

_DESERIALIZERS: Mapping[str, Callable[[Any], Any]] = {
    "pickle": pickle.loads,
    "json": json.loads,
}


def coerce_slot(raw: Any) -> Slot:
    """Map a raw snapshot value onto its slot variant.

    Slot instances pass through, ``None`` becomes :data:`NULL`, plain
    functions, lambdas and :func:`functools.partial` objects become
    :class:`LazyInit`. Everything else, classes and builtins included, is a
    :class:`Literal`.
    """
    if isinstance(raw, SLOT_TYPES):
        return raw
    if raw is None:
        return NULL
    if isinstance(raw, (FunctionType, functools.partial)):
        return LazyInit(raw)
    return Literal(raw)


def serialize_payload(value: Any, format: str = "pickle") -> SerializedPayload:
    """Encode ``value`` as a :class:`SerializedPayload` using ``format``."""
    try:
        serializer = _SERIALIZERS[format]
    except KeyError:
        raise DecodeError(
            f"Unknown payload format {format!r}",
            details={"format": format, "known": sorted(_SERIALIZERS)},
        ) from None
    return SerializedPayload(serializer(value), format)


def deserialize_payload(slot: SerializedPayload) -> Any:
    """Deserialize ``slot`` or raise :class:`DecodeError`."""
    deserializer = _DESERIALIZERS.get(slot.format)
    if deserializer is None:
        raise DecodeError(
            f"Unknown payload format {slot.format!r}",
            details={"format": slot.format, "known": sorted(_DESERIALIZERS)},
        )
    try:
        return deserializer(slot.data)
    except Exception as exc:
        raise DecodeError(
            f"Could not deserialize {slot.format} payload: {exc}",
            details={"format": slot.format, "error": type(exc).__name__},
        ) from exc


def decode(slot: Slot) -> Decoded:
    """Turn ``slot`` into ``(value, is_hit)``, downgrading failures to misses."""
    if isinstance(slot, NullSlot):
        return Decoded(None, True)
    if isinstance(slot, Literal):
        return Decoded(slot.value, True)
    if isinstance(slot, LazyInit):
        try:
            return Decoded(slot.factory(), True)
        except Exception:
            return _MISS
    if isinstance(slot, SerializedPayload):
        try:
            return Decoded(deserialize_payload(slot), True)
        except DecodeError:
            return _MISS
    raise TypeError(f"Not a snapshot slot: {type(slot).__name__}")


__all__ = [
    "Decoded",
    "LazyInit",
    "Literal",
    "NULL",
    "NullSlot",
    "SLOT_TYPES",
    "SerializedPayload",
    "Slot",
    "coerce_slot",
    "decode",
    "deserialize_payload",
    "serialize_payload",
]
