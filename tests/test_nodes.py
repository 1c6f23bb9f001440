from __future__ import annotations

import array
import collections.abc
import ctypes
import dataclasses
import gc
import multiprocessing
import queue
import types
import typing
import weakref
from typing import Any

import pytest

from describe import nodes
from describe.nodes import DYNAMIC, MISSING, Kind, node_of

from . import utils


@pytest.mark.parametrize(
    ("value", "kind"),
    [
        (True, Kind.BOOL),
        (1, Kind.SIGNED_INT),
        (1.5, Kind.FLOAT),
        (1j, Kind.COMPLEX),
        ("a", Kind.STRING),
        (b"a", Kind.ARRAY),
        ((1,), Kind.ARRAY),
        (frozenset(), Kind.ARRAY),
        (bytearray(), Kind.SLICE),
        ([], Kind.SLICE),
        ({1}, Kind.SLICE),
        ({}, Kind.MAP),
        (utils.Point(1, 2), Kind.STRUCT),
        (utils.Leaf(1), Kind.POINTER),
        (utils.Color.RED, Kind.OPAQUE),
        (ValueError(), Kind.OPAQUE),
        (len, Kind.FUNCTION),
        (lambda: None, Kind.FUNCTION),
        (ctypes.c_uint8(1), Kind.UNSIGNED_INT),
        (ctypes.c_int16(1), Kind.SIGNED_INT),
        (ctypes.c_double(1), Kind.FLOAT),
        (ctypes.c_void_p(None), Kind.RAW_POINTER),
        (utils.S(), Kind.STRUCT),
        ((ctypes.c_int * 2)(), Kind.ARRAY),
    ],
)
def test_kind(value, kind):
    assert node_of(value).kind is kind


def test_none():
    assert nodes.root(None) is nodes.INVALID
    node = node_of(None)
    assert node.kind is Kind.INTERFACE and node.nil
    callback = node_of(None, collections.abc.Callable[[int], str])
    assert callback.kind is Kind.FUNCTION and callback.nil
    assert callback.signature() == (["int"], ["str"])


def test_objects_are_pointers_to_structs():
    leaf = utils.Leaf(1)
    node = node_of(leaf)
    assert node.type_name == "*Leaf"
    assert node.identity is None
    struct = node.elem()
    assert struct.kind is Kind.STRUCT
    assert struct.type_name == "Leaf"
    assert struct.identity == (utils.Leaf, id(leaf))


def test_ctypes_identity():
    s = utils.S(1)
    alias = utils.S.from_address(ctypes.addressof(s))
    assert node_of(s).identity == node_of(alias).identity
    assert node_of(utils.S.from_buffer_copy(s)).identity != node_of(
        s
    ).identity


def test_ctypes_pointers():
    null = ctypes.POINTER(utils.S)()
    assert node_of(null).nil
    s = utils.S(3)
    node = node_of(ctypes.pointer(s))
    assert node.type_name == "*S"
    assert node.elem().identity == (utils.S, ctypes.addressof(s))
    assert node_of(ctypes.c_char_p(None)).nil


def test_unsigned():
    node = node_of(ctypes.c_uint16(3))
    assert (node.type_name, node.size, node.value) == ("uint16", 2, 3)
    node = node_of(255, ctypes.c_uint8)
    assert (node.kind, node.size) == (Kind.UNSIGNED_INT, 1)


def test_elements():
    elements = node_of([1, 2]).elements()
    assert elements.type_name == "int"
    assert not elements.unsigned
    assert [n.value for n in elements.nodes] == [1, 2]

    elements = node_of([1, "a", None]).elements()
    assert elements.type_name == "object"
    assert [n.kind for n in elements.nodes] == [Kind.INTERFACE] * 3

    assert node_of([]).elements().type_name == "object"
    assert node_of([None, 1]).elements().type_name == "int"
    assert node_of([utils.Leaf(1)]).elements().type_name == "*Leaf"


@pytest.mark.parametrize(
    ("value", "type_name", "unsigned"),
    [
        (b"ab", "uint8", True),
        (bytearray(b"ab"), "uint8", True),
        (array.array("H", [1]), "uint16", True),
        (array.array("i", [1]), "int32", False),
        (array.array("d", [1]), "float64", False),
        ((ctypes.c_uint8 * 2)(), "uint8", True),
        ((utils.S * 2)(), "S", False),
    ],
)
def test_typed_elements(value, type_name, unsigned):
    elements = node_of(value).elements()
    assert (elements.type_name, elements.unsigned) == (type_name, unsigned)


def test_entries():
    entries = node_of({"a": 1, "b": None}).entries()
    assert (entries.key_type, entries.value_type) == ("str", "int")
    [(k1, v1), (k2, v2)] = entries.nodes
    assert (k1.value, v1.value, k2.value) == ("a", 1, "b")
    assert v2.nil

    entries = node_of({1: 1, "a": "a"}).entries()
    assert (entries.key_type, entries.value_type) == ("object", "object")


def fields(v):
    node = node_of(v)
    if node.kind is Kind.POINTER:
        node = node.elem()
    return {name: child for name, child in node.fields()}


def test_fields():
    assert list(fields(utils.Both())) == ["a", "b", "c"]
    slotted = utils.Slotted()
    slotted.b = 1
    assert list(fields(slotted)) == ["b"]
    assert list(fields(utils.Point(1, 2))) == ["x", "y"]
    assert list(fields(utils.Pixel())) == ["r", "raw"]


def test_field_annotations():
    box = fields(utils.Box(1))
    assert box["data"].kind is Kind.INTERFACE
    assert box["callback"].kind is Kind.FUNCTION
    assert box["callback"].nil
    pixel = fields(utils.Pixel(255))
    assert pixel["r"].kind is Kind.UNSIGNED_INT


def test_described_classes_can_be_collected():
    @dataclasses.dataclass
    class Temporary:
        data: Any

    kind = fields(Temporary(1))["data"].kind
    assert kind is Kind.INTERFACE
    ref = weakref.ref(Temporary)
    del Temporary
    gc.collect()
    assert ref() is None


def test_declared_from_hint():
    assert nodes.declared_from_hint(Any) is DYNAMIC
    assert nodes.declared_from_hint(object) is DYNAMIC
    assert nodes.declared_from_hint(int | str) is DYNAMIC
    assert nodes.declared_from_hint(int | None) is MISSING
    assert nodes.declared_from_hint(typing.Optional[int]) is MISSING
    hint = collections.abc.Callable[[int], str]
    assert nodes.declared_from_hint(hint | None) == hint
    assert nodes.declared_from_hint(ctypes.c_uint8) is ctypes.c_uint8


def _sig(a: int, *rest: str) -> tuple[int, str]:
    return a, "".join(rest)


def _no_annotations(x, **kwargs):
    pass


def _no_result() -> None:
    pass


def test_signature():
    assert node_of(_sig).signature() == (["int", "...str"], ["int", "str"])
    assert node_of(_no_annotations).signature() == (
        ["object", "**object"],
        ["object"],
    )
    assert node_of(_no_result).signature() == ([], [])
    assert node_of(utils.Cycle().__init__).signature() == ([], [])
    cb = ctypes.CFUNCTYPE(ctypes.c_int, ctypes.c_uint8)
    assert node_of(cb()).signature() == (["uint8"], ["int32"])
    assert node_of(cb()).nil


def test_annotation_name():
    assert nodes.annotation_name(list[int]) == "list[int]"
    assert nodes.annotation_name(int | None) == "int | None"
    assert nodes.annotation_name("Forward") == "Forward"
    assert nodes.annotation_name(ctypes.c_int64) == "int64"


def test_channels():
    assert node_of(queue.Queue()).type_name == "chan<Queue>"
    assert node_of(queue.SimpleQueue()).kind is Kind.CHANNEL
    recv, send = multiprocessing.Pipe(duplex=False)
    try:
        assert node_of(recv).type_name == "<-chan Connection"
        assert node_of(send).type_name == "chan<- Connection"
    finally:
        recv.close()
        send.close()


def test_meta():
    leaf = utils.Leaf(1)
    ref = weakref.ref(leaf)
    node = node_of(ref)
    assert node.meta == "weakref"
    assert node.unwrap().value is leaf

    assert node_of(int).meta == "type"
    assert node_of(int).identity is None
    inner = node_of(1)
    assert node_of(inner).unwrap() is inner


def _cell(x):
    def f():
        return x

    assert f.__closure__ is not None
    return f.__closure__[0]


def test_cell():
    assert nodes.try_unwrap(node_of(_cell([1]))).kind is Kind.SLICE
    assert node_of(types.CellType()).unwrap() is nodes.INVALID
    assert nodes.try_unwrap(node_of(1)) is None


def test_dead_weakref():
    ref = weakref.ref(utils.Leaf(1))
    assert node_of(ref).unwrap() is nodes.INVALID
