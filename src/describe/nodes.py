"""``describe.nodes``: Read-only views over runtime values
=======================================================

A :class:`Node` wraps one value and tells the rest of the library what
:class:`Kind` of value it is, what its type is called and what its children
are. Nodes are created on demand while traversing a value and thrown away
afterwards.

    >>> node_of([1, 2]).kind
    <Kind.SLICE: 10>
    >>> node_of([1, 2]).elements().type_name
    'int'

Python containers don't declare the type of their elements so it is inferred:
if all the elements have the same type that type is used; otherwise the
elements are in a dynamic slot (and will be described as :attr:`Kind.INTERFACE`
nodes):

    >>> node_of([1, "a"]).elements().type_name
    'object'
    >>> [n.kind for n in node_of([1, "a"]).elements().nodes]
    [<Kind.INTERFACE: 9>, <Kind.INTERFACE: 9>]

"""

from __future__ import annotations

import array
import collections.abc
import ctypes
import dataclasses
import enum
import functools
import inspect
import sys
import types
import typing
import weakref
from typing import Any, Final, Iterable, Iterator, NamedTuple, TypeAlias

from . import capability

__all__ = (
    "Kind",
    "Node",
    "Identity",
    "Elements",
    "Entries",
    "MISSING",
    "DYNAMIC",
    "INVALID",
    "node_of",
    "root",
    "try_unwrap",
    "annotation_name",
)


class Kind(enum.Enum):
    INVALID = 1
    BOOL = 2
    SIGNED_INT = 3
    UNSIGNED_INT = 4
    FLOAT = 5
    COMPLEX = 6
    STRING = 7
    POINTER = 8
    INTERFACE = 9
    SLICE = 10
    ARRAY = 11
    MAP = 12
    STRUCT = 13
    FUNCTION = 14
    CHANNEL = 15
    RAW_POINTER = 16
    #: A value we cannot look inside of.
    OPAQUE = 17


#: The storage a composite value lives in: its type and either its ``id`` or
#: its address (for :mod:`ctypes` values).
Identity: TypeAlias = tuple[type, int]

#: No declared type.
MISSING: Final[Any] = object()

#: A slot that can hold values of any type.
DYNAMIC: Final[Any] = object()

OBJECT: Final = "object"

# ctypes doesn't export a common base class for all its data types.
_CTYPES_STORAGE: Final = (ctypes.Structure, ctypes.Union, ctypes.Array)
_CTYPES: Final = (
    ctypes._SimpleCData,
    ctypes._Pointer,
    ctypes._CFuncPtr,
    *_CTYPES_STORAGE,
)

_SIGNED_CODES: Final = frozenset("bhilq")
_UNSIGNED_CODES: Final = frozenset("BHILQc")
_FLOAT_NAMES: Final = {"f": "float32", "d": "float64", "g": "longdouble"}
_NAMED_CODES: Final = {
    "?": "bool",
    "c": "char",
    "u": "wchar",
    "z": "char*",
    "Z": "wchar*",
    "P": "void*",
}

_ARRAY_CTYPES: Final[dict[str, Any]] = {
    "b": ctypes.c_byte,
    "B": ctypes.c_ubyte,
    "h": ctypes.c_short,
    "H": ctypes.c_ushort,
    "i": ctypes.c_int,
    "I": ctypes.c_uint,
    "l": ctypes.c_long,
    "L": ctypes.c_ulong,
    "q": ctypes.c_longlong,
    "Q": ctypes.c_ulonglong,
    "f": ctypes.c_float,
    "d": ctypes.c_double,
    "u": ctypes.c_wchar,
    "w": ctypes.c_wchar,
}

# Modules are only checked if they were imported: a value can't be an
# `asyncio.Queue` if `asyncio` was never loaded.
_CHANNELS: Final = (
    ("queue", "Queue"),
    ("queue", "SimpleQueue"),
    ("asyncio", "Queue"),
    ("multiprocessing.queues", "Queue"),
    ("multiprocessing.queues", "SimpleQueue"),
)


def _is_ctype(t: Any) -> bool:
    return (
        isinstance(t, type)
        and typing.get_origin(t) is None
        and issubclass(t, _CTYPES)
    )


def ctype_name(t: type) -> str:
    """Short name for a :mod:`ctypes` type

    >>> ctype_name(ctypes.c_uint16)
    'uint16'
    >>> ctype_name(ctypes.POINTER(ctypes.c_double))
    '*float64'
    """
    if issubclass(t, ctypes._SimpleCData):
        code = t._type_
        size = ctypes.sizeof(t)
        if code in _SIGNED_CODES:
            return f"int{size * 8}"
        if code in _UNSIGNED_CODES and code != "c":
            return f"uint{size * 8}"
        if code in _FLOAT_NAMES:
            return _FLOAT_NAMES[code]
        return _NAMED_CODES.get(code, t.__name__)
    if issubclass(t, ctypes._Pointer):
        return "*" + ctype_name(t._type_)
    if issubclass(t, ctypes.Array):
        return f"{ctype_name(t._type_)}[{t._length_}]"
    if issubclass(t, ctypes._CFuncPtr):
        return "func"
    return t.__name__


def annotation_name(a: Any) -> str:
    """How an annotation is shown in function signatures

    >>> annotation_name(int)
    'int'
    >>> annotation_name(list[int])
    'list[int]'
    >>> annotation_name(inspect.Parameter.empty)
    'object'
    """
    if a is inspect.Parameter.empty or a is MISSING:
        return OBJECT
    if a is None or a is types.NoneType:
        return "None"
    if a is Ellipsis:
        return "..."
    if isinstance(a, str):
        return a
    if _is_ctype(a):
        return ctype_name(a)
    if isinstance(a, type) and typing.get_origin(a) is None:
        return a.__name__
    return repr(a).replace("typing.", "").replace("collections.abc.", "")


def _result_names(ret: Any) -> list[str]:
    if ret is None or ret is types.NoneType:
        return []
    if typing.get_origin(ret) is tuple:
        args = typing.get_args(ret)
        if args in ((), ((),)):
            return []
        if Ellipsis not in args:
            return [annotation_name(a) for a in args]
    return [annotation_name(ret)]


def _callable_hint(hint: Any) -> Any:
    if hint is collections.abc.Callable or hint is typing.Callable:
        return hint
    if typing.get_origin(hint) is collections.abc.Callable:
        return hint
    return None


def declared_from_hint(hint: Any) -> Any:
    """Convert a type annotation to what we need to know about a slot.

    Only three things matter: whether the slot is dynamic (``Any``,
    ``object`` or a union of several types), whether it holds a callable (a
    ``None`` in it is a function that isn't set) or whether it is a
    :mod:`ctypes` type.
    """
    if _is_ctype(hint):
        return hint
    if typing.get_origin(hint) in (typing.Union, types.UnionType):
        members = [
            m for m in typing.get_args(hint) if m is not types.NoneType
        ]
        if len(members) != 1:
            return DYNAMIC
        [hint] = members
    if hint is typing.Any or hint is object:
        return DYNAMIC
    if _callable_hint(hint) is not None:
        return hint
    return MISSING


_FIELD_HINTS: weakref.WeakKeyDictionary[type, dict[str, Any]] = (
    weakref.WeakKeyDictionary()
)


def _field_hints(cls: type) -> dict[str, Any]:
    res = _FIELD_HINTS.get(cls)
    if res is not None:
        return res
    try:
        hints = typing.get_type_hints(cls)
    except Exception:
        # Annotations are only used to refine descriptions; a class whose
        # annotations don't evaluate is described from its values alone.
        hints = {}
    res = {k: declared_from_hint(v) for k, v in hints.items()}
    _FIELD_HINTS[cls] = res
    return res


def _slot_names(cls: type) -> list[str]:
    names: list[str] = []
    for klass in reversed(cls.__mro__):
        slots = klass.__dict__.get("__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        for name in slots:
            if name in ("__dict__", "__weakref__"):
                continue
            if name.startswith("__") and not name.endswith("__"):
                name = f"_{klass.__name__.lstrip('_')}{name}"
            if name not in names:
                names.append(name)
    return names


def _is_namedtuple(v: Any) -> bool:
    return isinstance(v, tuple) and isinstance(
        getattr(type(v), "_fields", None), tuple
    )


def _is_struct(v: Any) -> bool:
    cls = type(v)
    if cls.__module__ == "builtins":
        return False
    return (
        dataclasses.is_dataclass(cls)
        or getattr(cls, "__dictoffset__", 0) != 0
        or bool(_slot_names(cls))
    )


def _channel_types() -> Iterator[type]:
    for module, name in _CHANNELS:
        mod = sys.modules.get(module)
        if mod is not None:
            yield getattr(mod, name)


def _channel_name(v: Any) -> str | None:
    name = type(v).__name__
    connection = sys.modules.get("multiprocessing.connection")
    if connection is not None and isinstance(v, connection.Connection):
        match v.readable, v.writable:
            case True, False:
                return f"<-chan {name}"
            case False, True:
                return f"chan<- {name}"
        return f"chan<{name}>"
    if isinstance(v, tuple(_channel_types())):
        return f"chan<{name}>"
    return None


def _meta_marker(v: Any) -> str | None:
    if isinstance(v, type):
        return "type"
    if isinstance(v, Node):
        return "Node"
    if isinstance(v, weakref.ReferenceType):
        return "weakref"
    if isinstance(v, types.CellType):
        return "cell"
    if isinstance(v, types.MappingProxyType):
        return "mappingproxy"
    return None


class Slot(NamedTuple):
    "The element type of a container"
    type_name: str
    declared: Any = MISSING
    unsigned: bool = False


class Elements(NamedTuple):
    type_name: str
    unsigned: bool
    nodes: Iterator[Node]


class Entries(NamedTuple):
    key_type: str
    value_type: str
    nodes: Iterator[tuple[Node, Node]]


def _ctype_slot(t: type) -> Slot:
    if issubclass(t, ctypes._SimpleCData):
        return Slot(ctype_name(t), t, t._type_ in _UNSIGNED_CODES)
    return Slot(ctype_name(t))


def _infer_slot(values: Iterable[Any]) -> Slot:
    sample: Any = MISSING
    for v in values:
        if v is None:
            continue
        if sample is MISSING:
            sample = v
        elif type(v) is not type(sample):
            return Slot(OBJECT, DYNAMIC)
    if sample is MISSING:
        return Slot(OBJECT)
    node = node_of(sample)
    return Slot(node.type_name, unsigned=node.kind is Kind.UNSIGNED_INT)


@dataclasses.dataclass(frozen=True, slots=True, eq=False)
class Node:
    """A view over a value.

    Attributes:
      kind: What sort of value this is.
      value: The wrapped value.
      type_name: How the type of the value is shown.
      nil: Whether this is an unset pointer, interface or function.
      addressable: Whether :attr:`identity` can be computed.
      size: Width in bytes of unsigned integers and raw pointers.
      declared: The declared type of the slot the value comes from.
      hook_type: Type used to look up custom hooks.
      meta: Set on values that are handles to other values.
    """

    kind: Kind
    value: Any
    type_name: str
    nil: bool = False
    addressable: bool = False
    size: int = 0
    declared: Any = MISSING
    hook_type: type | None = None
    meta: str | None = None

    @property
    def identity(self) -> Identity | None:
        if not self.addressable:
            return None
        v = self.value
        if isinstance(v, _CTYPES_STORAGE):
            return type(v), ctypes.addressof(v)
        return type(v), id(v)

    def elem(self) -> Node:
        "The value a pointer or an interface refers to."
        v = self.value
        if self.kind is Kind.INTERFACE:
            return node_of(v)
        assert self.kind is Kind.POINTER and not self.nil, self
        if isinstance(v, ctypes._Pointer):
            return node_of(v.contents)
        cls = type(v)
        return Node(
            Kind.STRUCT,
            v,
            cls.__name__,
            addressable=True,
            hook_type=cls,
        )

    def elements(self) -> Elements:
        "The elements of a slice or an array."
        v = self.value
        values: Iterable[Any]
        match v:
            case bytes() | bytearray():
                slot = _ctype_slot(ctypes.c_ubyte)
                values = v
            case array.array():
                slot = _ctype_slot(_ARRAY_CTYPES[v.typecode])
                values = v
            case ctypes.Array():
                slot = _ctype_slot(v._type_)
                values = v[:]
            case _:
                values = list(v)
                slot = _infer_slot(values)
        return Elements(
            slot.type_name,
            slot.unsigned,
            (node_of(x, slot.declared) for x in values),
        )

    def entries(self) -> Entries:
        "The key/value pairs of a map."
        items = list(self.value.items())
        keys = _infer_slot(k for k, _ in items)
        values = _infer_slot(v for _, v in items)
        return Entries(
            keys.type_name,
            values.type_name,
            (
                (node_of(k, keys.declared), node_of(v, values.declared))
                for k, v in items
            ),
        )

    def fields(self) -> Iterator[tuple[str, Node]]:
        "The fields of a struct, in declaration order."
        v = self.value
        if isinstance(v, ctypes.Structure | ctypes.Union):
            for klass in reversed(type(v).__mro__):
                for name, ctype, *_ in klass.__dict__.get("_fields_", ()):
                    yield name, node_of(
                        getattr(v, name), declared_from_hint(ctype)
                    )
        elif _is_namedtuple(v):
            for name, x in zip(type(v)._fields, v):
                yield name, node_of(x)
        else:
            yield from _object_fields(v)

    def signature(self) -> tuple[list[str], list[str]] | None:
        """The parameter and return types of a function.

        Returns ``None`` if the signature cannot be determined.
        """
        v = self.value
        if isinstance(v, ctypes._CFuncPtr):
            restype = v.restype
            return [annotation_name(t) for t in v.argtypes or ()], (
                [] if restype is None else [annotation_name(restype)]
            )
        if self.nil:
            args = typing.get_args(self.declared)
            if len(args) != 2:
                return None
            params, ret = args
            if params is Ellipsis:
                return ["..."], _result_names(ret)
            return [annotation_name(p) for p in params], _result_names(ret)
        sig = _signature(v)
        if sig is None:
            return None
        params = []
        for p in sig.parameters.values():
            name = annotation_name(p.annotation)
            match p.kind:
                case inspect.Parameter.VAR_POSITIONAL:
                    name = "..." + name
                case inspect.Parameter.VAR_KEYWORD:
                    name = "**" + name
            params.append(name)
        if sig.return_annotation is inspect.Signature.empty:
            return params, [OBJECT]
        return params, _result_names(sig.return_annotation)

    def unwrap(self) -> Node:
        """Get the value a meta handle refers to.

        Raises:
          describe.capability.CapabilityError: if the value is only reachable
            via the unsafe capability and it is not available.
        """
        v = self.value
        match self.meta:
            case "Node":
                return typing.cast(Node, v)
            case "weakref":
                target = v()
                return INVALID if target is None else node_of(target)
            case "cell":
                try:
                    contents = v.cell_contents
                except ValueError:
                    return INVALID
                return node_of(contents)
            case "mappingproxy":
                return node_of(capability.expose_mapping(v))
        raise ValueError(f"Cannot unwrap {self.type_name}")


#: The node for the absence of a value.
INVALID: Final = Node(Kind.INVALID, None, "invalid")


def _signature(fn: Any) -> inspect.Signature | None:
    try:
        return inspect.signature(fn, eval_str=True)
    except (TypeError, ValueError):
        # No signature (some builtins).
        return None
    except Exception:
        pass
    # The annotations don't evaluate: keep them as strings.
    try:
        return inspect.signature(fn)
    except (TypeError, ValueError):
        return None


def _object_fields(v: Any) -> Iterator[tuple[str, Node]]:
    cls = type(v)
    hints = _field_hints(cls)
    if dataclasses.is_dataclass(cls):
        for field in dataclasses.fields(v):
            x = getattr(v, field.name, MISSING)
            if x is not MISSING:
                yield field.name, node_of(x, hints.get(field.name, MISSING))
        return
    for name in _slot_names(cls):
        x = getattr(v, name, MISSING)
        if x is not MISSING:
            yield name, node_of(x, hints.get(name, MISSING))
    attrs = getattr(v, "__dict__", None)
    if isinstance(attrs, dict):
        for name, x in list(attrs.items()):
            yield name, node_of(x, hints.get(name, MISSING))


def _simple(value: Any, ctype: type) -> Node:
    """A node for *value* read from a slot of the :mod:`ctypes` type *ctype*"""
    code = ctype._type_
    name = ctype_name(ctype)
    if code == "z" or code == "Z":
        if value is None:
            return Node(Kind.POINTER, None, name, nil=True, hook_type=ctype)
        if isinstance(value, bytes):
            value = value.decode("utf-8", "backslashreplace")
        return Node(Kind.STRING, value, "str", hook_type=ctype)
    if code == "P":
        size = ctypes.sizeof(ctype)
        return Node(
            Kind.RAW_POINTER,
            value,
            name,
            nil=value is None,
            size=size,
            hook_type=ctype,
        )
    if code == "?":
        return Node(Kind.BOOL, bool(value), name, hook_type=ctype)
    if code == "u":
        return Node(Kind.STRING, value, name, hook_type=ctype)
    if code == "c" and isinstance(value, bytes):
        value = value[0]
    if code in _UNSIGNED_CODES:
        return Node(
            Kind.UNSIGNED_INT,
            value,
            name,
            size=ctypes.sizeof(ctype),
            hook_type=ctype,
        )
    if code in _SIGNED_CODES:
        return Node(Kind.SIGNED_INT, value, name, hook_type=ctype)
    if code in _FLOAT_NAMES:
        return Node(Kind.FLOAT, value, name, hook_type=ctype)
    return Node(Kind.OPAQUE, value, name, hook_type=ctype)


def _ctypes_node(v: Any) -> Node:
    cls = type(v)
    if isinstance(v, ctypes._SimpleCData):
        return _simple(v.value, cls)
    if isinstance(v, ctypes._Pointer):
        return Node(
            Kind.POINTER, v, ctype_name(cls), nil=not v, hook_type=cls
        )
    if isinstance(v, ctypes._CFuncPtr):
        return Node(Kind.FUNCTION, v, "func", nil=not v, hook_type=cls)
    if isinstance(v, ctypes.Array):
        return Node(
            Kind.ARRAY, v, ctype_name(cls), addressable=True, hook_type=cls
        )
    return Node(Kind.STRUCT, v, cls.__name__, addressable=True, hook_type=cls)


def node_of(value: Any, declared: Any = MISSING) -> Node:
    """Get the node for a value.

    Args:
      value: The value to wrap
      declared: What the slot *value* was read from declares it holds:
        :data:`MISSING` if nothing is known, :data:`DYNAMIC` if any type is
        accepted, a :mod:`ctypes` type or a callable annotation.
    """
    if declared is DYNAMIC:
        return Node(Kind.INTERFACE, value, OBJECT, nil=value is None)
    if _is_ctype(declared) and issubclass(declared, ctypes._SimpleCData):
        return _simple(value, declared)
    if value is None:
        if _callable_hint(declared) is not None:
            return Node(
                Kind.FUNCTION, None, "func", nil=True, declared=declared
            )
        return Node(Kind.INTERFACE, None, "NoneType", nil=True)
    cls = type(value)
    marker = _meta_marker(value)
    if marker is not None:
        return Node(
            Kind.OPAQUE,
            value,
            marker,
            addressable=marker != "type",
            hook_type=cls,
            meta=marker,
        )
    if isinstance(value, _CTYPES):
        return _ctypes_node(value)
    if isinstance(value, bool):
        return Node(Kind.BOOL, value, cls.__name__, hook_type=cls)
    if isinstance(value, enum.Enum | BaseException):
        return Node(Kind.OPAQUE, value, cls.__name__, hook_type=cls)
    if isinstance(value, int):
        return Node(Kind.SIGNED_INT, value, cls.__name__, hook_type=cls)
    if isinstance(value, float):
        return Node(Kind.FLOAT, value, cls.__name__, hook_type=cls)
    if isinstance(value, complex):
        return Node(Kind.COMPLEX, value, cls.__name__, hook_type=cls)
    if isinstance(value, str):
        return Node(Kind.STRING, value, cls.__name__, hook_type=cls)
    if _is_namedtuple(value):
        return Node(Kind.STRUCT, value, cls.__name__, hook_type=cls)
    if isinstance(value, tuple | bytes | frozenset):
        return Node(Kind.ARRAY, value, cls.__name__, hook_type=cls)
    if isinstance(value, list | bytearray | array.array | set):
        return Node(
            Kind.SLICE, value, cls.__name__, addressable=True, hook_type=cls
        )
    if isinstance(value, dict):
        return Node(
            Kind.MAP, value, cls.__name__, addressable=True, hook_type=cls
        )
    channel = _channel_name(value)
    if channel is not None:
        return Node(Kind.CHANNEL, value, channel, hook_type=cls)
    if inspect.isroutine(value) or isinstance(value, functools.partial):
        return Node(Kind.FUNCTION, value, "func", hook_type=cls)
    if _is_struct(value):
        return Node(Kind.POINTER, value, "*" + cls.__name__, hook_type=cls)
    if callable(value):
        return Node(Kind.FUNCTION, value, "func", hook_type=cls)
    return Node(Kind.OPAQUE, value, cls.__name__, hook_type=cls)


def root(value: Any, declared: Any = MISSING) -> Node:
    """The node a description starts from.

    At the root a ``None`` with no declared type is the absence of a value:

    >>> root(None).kind
    <Kind.INVALID: 1>
    """
    if declared is MISSING:
        return INVALID if value is None else node_of(value)
    return node_of(value, declared_from_hint(declared))


def try_unwrap(node: Node) -> Node | None:
    """Like :meth:`Node.unwrap` but returns ``None`` on failure.

    Failing to look inside a handle never aborts a description: the handle is
    described by its default textual form instead.
    """
    try:
        return node.unwrap()
    except Exception:
        return None
