from __future__ import annotations

import enum
import functools
from collections import namedtuple

import pytest

from snapcache.codec import (
    NULL,
    Decoded,
    LazyInit,
    Literal,
    SerializedPayload,
    coerce_slot,
    decode,
    deserialize_payload,
    serialize_payload,
)
from snapcache.utils.exceptions import DecodeError


def test_null_decodes_to_a_hit() -> None:
    assert decode(NULL) == Decoded(None, True)


def test_literal_is_returned_as_stored() -> None:
    slot = Literal(("a", 1, True))
    decoded = decode(slot)
    assert decoded.value is slot.value
    assert decoded.value == ("a", 1, True)
    assert decoded.is_hit is True


def test_literal_freezes_containers() -> None:
    value = {"routes": ["home", {"tags": ["x"]}], "seen": {1, 2}, "raw": bytearray(b"ab")}
    slot = Literal(value)
    assert slot.value == {"routes": ("home", {"tags": ("x",)}), "seen": frozenset({1, 2}), "raw": b"ab"}
    with pytest.raises(TypeError):
        slot.value["routes"] = ()
    with pytest.raises(TypeError):
        slot.value["routes"][1]["tags"] = ()
    value["routes"].append("late")
    assert slot.value["routes"] == ("home", {"tags": ("x",)})


def test_literal_keeps_named_tuples() -> None:
    Point = namedtuple("Point", "x y")
    slot = Literal(Point([1], 2))
    assert type(slot.value) is Point
    assert slot.value.x == (1,)


def test_lazy_init_runs_on_every_read() -> None:
    calls = []

    def factory() -> int:
        calls.append(1)
        return len(calls)

    slot = LazyInit(factory)
    assert decode(slot) == (1, True)
    assert decode(slot) == (2, True)


def test_lazy_init_failure_is_a_miss() -> None:
    def factory() -> None:
        raise ValueError("no")

    assert decode(LazyInit(factory)) == (None, False)


@pytest.mark.parametrize("fmt", ["pickle", "json"])
def test_serialized_payloads_decode(fmt: str) -> None:
    slot = serialize_payload({"a": [1, 2]}, fmt)
    assert slot.format == fmt
    assert decode(slot) == ({"a": [1, 2]}, True)


def test_corrupt_or_unknown_payloads_are_misses() -> None:
    assert decode(SerializedPayload(b"\x80\x05truncated")) == (None, False)
    assert decode(SerializedPayload("{not json", "json")) == (None, False)
    assert decode(SerializedPayload(b"", "msgpack")) == (None, False)


def test_deserialize_payload_is_strict() -> None:
    with pytest.raises(DecodeError) as excinfo:
        deserialize_payload(SerializedPayload("{", "json"))
    assert excinfo.value.details["format"] == "json"
    with pytest.raises(DecodeError):
        deserialize_payload(SerializedPayload(b"", "yaml"))
    with pytest.raises(DecodeError):
        serialize_payload(1, "yaml")


def test_decode_rejects_non_slots() -> None:
    with pytest.raises(TypeError):
        decode("raw")  # type: ignore[arg-type]


def test_coerce_slot_maps_raw_values() -> None:
    assert coerce_slot(None) is NULL
    assert coerce_slot("i:1;") == Literal("i:1;")
    assert coerce_slot((1, 2)) == Literal((1, 2))
    assert coerce_slot(["a"]) == Literal(("a",))
    slot = LazyInit(dict)
    assert coerce_slot(slot) is slot
    assert isinstance(coerce_slot(lambda: 1), LazyInit)
    assert isinstance(coerce_slot(functools.partial(dict, a=1)), LazyInit)


def test_coerce_slot_keeps_classes_and_builtins_literal() -> None:
    class Color(enum.Enum):
        RED = 1

    for raw in (dict, Color, len, Color.RED):
        slot = coerce_slot(raw)
        assert slot == Literal(raw)
        assert decode(slot) == Decoded(raw, True)
