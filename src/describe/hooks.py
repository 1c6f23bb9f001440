"""``describe.hooks``: Custom descriptions
======================================

A hook replaces the description of every value of one exact type. Hooks
return the text that is used verbatim in the output; by convention they follow
the ``name<...>`` shape::

    >>> import datetime
    >>> from describe import describe
    >>> describe(datetime.date(2020, 1, 2))
    'date<2020-01-02>'

Hooks are looked up by exact type: subclasses of a registered type are
described normally.
"""

from __future__ import annotations

import datetime
import decimal
import fractions
import inspect
import pathlib
import re
import threading
import typing
import urllib.parse
import uuid
import weakref
from typing import Any, Callable, Type, TypeAlias, TypeVar

__all__ = (
    "Hook",
    "Registry",
    "REGISTRY",
    "register",
    "set_hook",
    "install_defaults",
)

T = TypeVar("T")

Hook: TypeAlias = Callable[[T], str]


def _infer_hook_type(f: Hook[T]) -> Type[T]:
    values = list(inspect.signature(f, eval_str=True).parameters.values())
    if len(values) != 1:
        raise ValueError("The registered hook should take only one argument")
    [arg] = values
    ty: Type[T] | None = arg.annotation
    if ty is inspect.Parameter.empty:
        raise ValueError(
            "Cannot infer the type to register the hook for: the argument"
            " has no annotation"
        )
    origin = typing.get_origin(ty)
    if origin is not None:
        ty = origin
    assert ty is not None
    return ty


class Registry:
    """A table of hooks keyed by exact type.

    A registry can be shared between threads. It only holds weak references to
    the types it has hooks for.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._hooks = weakref.WeakKeyDictionary[Type[Any], Hook[Any]]()

    def set(self, ty: Type[T], hook: Hook[T] | None) -> None:
        "Install or replace the hook for *ty*; ``None`` removes it."
        with self._lock:
            if hook is None:
                self._hooks.pop(ty, None)
            else:
                self._hooks[ty] = hook

    def get(self, ty: Type[T]) -> Hook[T] | None:
        with self._lock:
            return self._hooks.get(ty)

    def remove(self, ty: type) -> None:
        self.set(ty, None)

    def clear(self) -> None:
        with self._lock:
            self._hooks.clear()

    def copy(self) -> Registry:
        res = Registry()
        with self._lock:
            res._hooks = self._hooks.copy()
        return res

    def __contains__(self, ty: type) -> bool:
        with self._lock:
            return ty in self._hooks

    def __len__(self) -> int:
        with self._lock:
            return len(self._hooks)


#: The registry used when none is given to :func:`describe.describe`.
REGISTRY = Registry()


@typing.overload
def register(function: Hook[T], /) -> Hook[T]:  # pragma: no cover
    ...


@typing.overload
def register(
    *, type: Type[T] | None = None, registry: Registry | None = None
) -> Callable[[Hook[T]], Hook[T]]:  # pragma: no cover
    ...


def register(
    function: Hook[T] | None = None,
    /,
    *,
    type: Type[T] | None = None,
    registry: Registry | None = None,
) -> Hook[T] | Callable[[Hook[T]], Hook[T]]:
    """Register a function used to describe values of a given type.

    If *type* is not specified, :func:`register` uses the type annotation on
    the first argument to deduce which type to register *function* for.

    If :func:`register` is used as a simple decorator (with no arguments) it
    acts as though the default values for all of it parameters.

    Here are three equivalent ways to describe :class:`complex` values::

        >>> @register
        ... def _describe_complex(c: complex):
        ...   return f"complex<{c.real}, {c.imag}>"

        >>> @register()
        ... def _describe_complex(c: complex):
        ...   return f"complex<{c.real}, {c.imag}>"

        >>> @register(type=complex)
        ... def _describe_complex(c):
        ...   return f"complex<{c.real}, {c.imag}>"

        >>> REGISTRY.remove(complex)

    Args:

      function: The hook we are registering

      type: The type we are registering the function for

      registry: Where to register the hook (defaults to :data:`REGISTRY`)

    """

    def wrapper(function: Hook[T]) -> Hook[T]:
        cls = _infer_hook_type(function) if type is None else type
        (REGISTRY if registry is None else registry).set(cls, function)
        return function

    if function is None:
        return wrapper
    return wrapper(function)


def set_hook(
    ty: type, hook: Hook[Any] | None, *, registry: Registry | None = None
) -> None:
    "Install or replace the hook for *ty*; ``None`` removes it."
    (REGISTRY if registry is None else registry).set(ty, hook)


def _with_str(v: Any) -> str:
    return f"{type(v).__name__}<{v}>"


def _url(v: urllib.parse.SplitResult | urllib.parse.ParseResult) -> str:
    return f"url<{v.geturl()}>"


def _pattern(v: re.Pattern[Any]) -> str:
    return f"Pattern<{v.pattern!s}>"


def _msgpack_timestamp(v: Any) -> str:
    return f"Timestamp<{v.to_datetime()}>"


def install_defaults(registry: Registry) -> None:
    """Add the hooks for common standard library types to *registry*.

    If :mod:`msgpack` is installed, :class:`msgpack.Timestamp` is also
    covered.
    """
    for ty in (
        datetime.datetime,
        datetime.date,
        datetime.time,
        datetime.timedelta,
        datetime.timezone,
        uuid.UUID,
        decimal.Decimal,
        fractions.Fraction,
        pathlib.PurePosixPath,
        pathlib.PureWindowsPath,
        pathlib.PosixPath,
        pathlib.WindowsPath,
    ):
        registry.set(ty, _with_str)
    registry.set(urllib.parse.SplitResult, _url)
    registry.set(urllib.parse.ParseResult, _url)
    registry.set(re.Pattern, _pattern)
    try:
        import msgpack
    except ModuleNotFoundError:
        return
    registry.set(msgpack.Timestamp, _msgpack_timestamp)


install_defaults(REGISTRY)
