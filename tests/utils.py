from __future__ import annotations

import collections.abc
import ctypes
import dataclasses
import enum
from typing import Any, NamedTuple


class Cycle:
    def __init__(self) -> None:
        self.val = 0
        self.self = self


@dataclasses.dataclass
class Leaf:
    n: int


@dataclasses.dataclass
class Pair:
    a: Leaf
    b: Leaf


@dataclasses.dataclass
class Box:
    data: Any
    callback: collections.abc.Callable[[int], None] | None = None


class Slotted:
    __slots__ = ("a", "b")


class Both(Slotted):
    def __init__(self) -> None:
        self.b = 2
        self.a = 1
        self.c = 3


class Point(NamedTuple):
    x: int
    y: int


class Color(enum.Enum):
    RED = 1


class Tags(list):
    pass


class S(ctypes.Structure):
    pass


S._fields_ = [("val", ctypes.c_int), ("self", ctypes.POINTER(S))]


class Pixel(ctypes.Structure):
    _fields_ = [("r", ctypes.c_uint8), ("raw", ctypes.c_uint8 * 2)]


def copied_ctypes_cycle() -> S:
    "A copy of a struct whose `self` field points at the original"
    orig = S(0)
    orig.self = ctypes.pointer(orig)
    copy = S.from_buffer_copy(orig)
    # The copy only holds the address of the original.
    copy._keepalive = orig
    return copy


def nested_lists(depth: int) -> list[Any]:
    res: list[Any] = []
    for _ in range(depth):
        res = [res]
    return res
