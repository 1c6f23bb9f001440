"""``describe.layout``: Laying out descriptions
============================================

Descriptions are built as small documents and then laid out to a string. The
document algebra and the layout engine follow Christian Lindig's "strictly
pretty" [`pdf <https://lindig.github.io/papers/strictly-pretty-2000.pdf>`_]
article.

A document is made of text, breaks and nesting. Breaks are the only places
where a line can be broken; how they are rendered depends on the group they
are in:

+ :attr:`Mode.FLAT`: every break is rendered as its text (compact output).
+ :attr:`Mode.BREAK`: every break is rendered as a newline followed by the
  current indentation (multiline output).
+ :attr:`Mode.AUTO`: the group is rendered flat if it fits in the remaining
  width, broken otherwise.

    >>> doc = text("[") + nest(2, NULL_BREAK + text("a") + BREAK + text("b"))
    >>> doc += NULL_BREAK + text("]")
    >>> group(Mode.FLAT, doc).to_string()
    '[a b]'
    >>> print(group(Mode.BREAK, doc).to_string())
    [
      a
      b
    ]

"""

from __future__ import annotations

import dataclasses
import enum
import io
from typing import TypeAlias

__all__ = (
    "Doc",
    "Mode",
    "EMPTY",
    "BREAK",
    "NULL_BREAK",
    "text",
    "nest",
    "group",
    "to_string",
)


class Mode(enum.Enum):
    "How the breaks of a group are laid out"
    FLAT = enum.auto()
    BREAK = enum.auto()
    # Only valid in groups
    AUTO = enum.auto()


class Doc:
    """Base class of documents.

    Build documents with :func:`text`, :func:`nest`, :func:`group` and the
    break constants; concatenate them with ``+``.
    """

    __slots__ = ()

    def __add__(self, other: Doc) -> Doc:
        return Concat(self, other)

    def to_string(self, width: int = 80) -> str:
        "Lay this document out (*width* only matters to :attr:`Mode.AUTO`)."
        return to_string(width, self)


@dataclasses.dataclass(frozen=True, slots=True)
class Empty(Doc):
    pass


@dataclasses.dataclass(frozen=True, slots=True)
class Concat(Doc):
    left: Doc
    right: Doc


@dataclasses.dataclass(frozen=True, slots=True)
class Text(Doc):
    text: str


@dataclasses.dataclass(frozen=True, slots=True)
class Nest(Doc):
    step: int
    doc: Doc


@dataclasses.dataclass(frozen=True, slots=True)
class Break(Doc):
    flat: str


@dataclasses.dataclass(frozen=True, slots=True)
class Group(Doc):
    mode: Mode
    doc: Doc


#: The empty document
EMPTY: Doc = Empty()

#: Rendered as a space in flat groups, as a newline followed by the current
#: indentation in broken ones.
BREAK: Doc = Break(" ")

#: A break that disappears when the group is laid out flat.
NULL_BREAK: Doc = Break("")


def text(s: str) -> Doc:
    return Text(s)


def nest(step: int, doc: Doc) -> Doc:
    "Indent the lines started by the breaks inside *doc* by *step* more."
    return Nest(step, doc)


def group(mode: Mode, doc: Doc) -> Doc:
    """Lay out the breaks of *doc* according to *mode*.

    Breaks that belong to a nested group follow that group's mode instead.
    """
    return Group(mode, doc)


# Pending work: (indentation, mode, document). The top of the stack is the
# end of the list, so the next document to lay out is ``stack[-1]``.
_Item: TypeAlias = tuple[int, Mode, Doc]


def _fits(room: int, doc: Doc, pending: list[_Item]) -> bool:
    """Whether *doc*, laid out flat, fits in *room* columns.

    The measure carries on into *pending* (which is only read) up to the
    first break that starts a new line.
    """
    todo: list[tuple[Mode, Doc]] = [(Mode.FLAT, doc)]
    depth = len(pending)
    while room >= 0:
        if todo:
            mode, doc = todo.pop()
        elif depth > 0:
            depth -= 1
            _, mode, doc = pending[depth]
        else:
            return True
        match doc:
            case Concat(left, right):
                todo.append((mode, right))
                todo.append((mode, left))
            case Nest(_, inner):
                todo.append((mode, inner))
            case Text(s):
                room -= len(s)
            case Break(_) if mode is Mode.BREAK:
                return True
            case Break(s):
                room -= len(s)
            case Group(_, inner):
                todo.append((Mode.FLAT, inner))
    return False


def to_string(width: int, doc: Doc) -> str:
    """Lay *doc* out, breaking :attr:`Mode.AUTO` groups that overflow *width*.

    Breaks outside of any group are flat.
    """
    out = io.StringIO()
    column = 0
    # A loop rather than a recursion: deeply nested values give deeply
    # nested documents.
    stack: list[_Item] = [(0, Mode.FLAT, doc)]
    while stack:
        indent, mode, doc = stack.pop()
        match doc:
            case Concat(left, right):
                stack.append((indent, mode, right))
                stack.append((indent, mode, left))
            case Nest(step, inner):
                stack.append((indent + step, mode, inner))
            case Text(s):
                out.write(s)
                column += len(s)
            case Break(_) if mode is Mode.BREAK:
                out.write("\n" + " " * indent)
                column = indent
            case Break(s):
                out.write(s)
                column += len(s)
            case Group(Mode.AUTO, inner):
                if _fits(width - column, inner, stack):
                    stack.append((indent, Mode.FLAT, inner))
                else:
                    stack.append((indent, Mode.BREAK, inner))
            case Group(group_mode, inner):
                stack.append((indent, group_mode, inner))
    return out.getvalue()
