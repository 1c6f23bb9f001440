"""``describe.tokens``: The output token set
=========================================

Every literal symbol the renderer writes comes from a :class:`Tokens`
instance. Two sets are provided:

+ :data:`DEFAULT`: structs are enclosed in ``<>``, keys and values are
  separated by ``=``, pointers are prefixed with ``*`` and the first
  occurrence of a shared value is marked with ``~``::

    S<val=0 self=*1~S<val=0 self=*$1>>

+ :data:`CLASSIC`: structs are enclosed in ``()``, keys and values are
  separated by ``:``, pointers are prefixed with ``&`` and the first occurrence
  of a shared value is marked with ``=``::

    S(val:0 self:&1=S(val:0 self:&$1))
"""

from __future__ import annotations

import dataclasses
from typing import Final

__all__ = ("Tokens", "DEFAULT", "CLASSIC")


@dataclasses.dataclass(frozen=True, slots=True)
class Tokens:
    open_string: str = '"'
    close_string: str = '"'
    open_array: str = "["
    close_array: str = "]"
    open_map: str = "{"
    close_map: str = "}"
    open_struct: str = "<"
    close_struct: str = ">"
    open_meta: str = "<"
    close_meta: str = ">"
    key_value_separator: str = "="
    map_type_separator: str = ":"
    pointer_prefix: str = "*"
    interface_prefix: str = "@"
    reference_separator: str = "~"
    reference_prefix: str = "$"
    nil: str = "nil"
    invalid: str = "invalid"
    func: str = "func"
    nil_func: str = "nilfunc"

    def key_value(self, multiline: bool) -> str:
        "The key/value separator, padded with spaces in multiline mode."
        if multiline:
            return f" {self.key_value_separator} "
        return self.key_value_separator


#: ``<>`` structs, ``=`` between keys and values, ``~`` after labels.
DEFAULT: Final = Tokens()

#: ``()`` structs, ``:`` between keys and values, ``=`` after labels.
CLASSIC: Final = Tokens(
    open_struct="(",
    close_struct=")",
    key_value_separator=":",
    pointer_prefix="&",
    reference_separator="=",
)
