"""``describe.capability``: Looking past the public API
====================================================

Some handles hide the value they wrap: a :class:`types.MappingProxyType` gives
read access to a mapping but never hands out the mapping itself. Knowing which
mapping is behind a proxy matters to us because class namespaces are handed
out through a new proxy on every access::

    >>> class C:
    ...     pass
    >>> C.__dict__ is C.__dict__
    False

On CPython the garbage collector can tell us what a proxy refers to. This
capability is optional: it is disabled on other interpreters, when the check
run at import time fails, or when
:data:`describe.config.ENABLE_UNSAFE_OPERATIONS` is ``False``. Callers must
always check :func:`available` and have a fallback.
"""

from __future__ import annotations

import collections.abc
import gc
import sys
import types
import warnings
from typing import Any

from . import config, utils


class CapabilityError(LookupError):
    "Raised when the capability cannot expose a value."


def _check_gc() -> bool:
    if sys.implementation.name != "cpython":
        return False
    target: dict[str, Any] = {}
    if gc.get_referents(types.MappingProxyType(target)) != [target]:
        warnings.warn(
            "describe: looking inside mappingproxy values is disabled because "
            "the garbage collector no longer reports the proxied mapping.",
            utils.DescribeWarning,
        )
        return False
    return True


#: Whether this interpreter supports the capability at all.
SUPPORTED: bool = _check_gc()


def available() -> bool:
    return SUPPORTED and config.ENABLE_UNSAFE_OPERATIONS


def expose_mapping(
    proxy: types.MappingProxyType[Any, Any]
) -> collections.abc.Mapping[Any, Any]:
    """Get the mapping wrapped by *proxy*.

    Raises:
      CapabilityError: if the capability is not available or the mapping
        cannot be found.
    """
    if not available():
        raise CapabilityError("unsafe operations are not available")
    match gc.get_referents(proxy):
        case [collections.abc.Mapping() as mapping]:
            return mapping
        case referents:
            raise CapabilityError(
                f"expected one mapping behind the proxy, found {referents!r}"
            )
