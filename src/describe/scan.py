"""``describe.scan``: Finding shared values
=======================================

Before a value is described we walk it once and count how many times we reach
every composite value. Values reached more than once get a label so that the
description can refer back to them instead of repeating them (or looping
forever on cycles)::

    >>> from describe import nodes
    >>> shared = [1]
    >>> counts = scan(nodes.node_of([shared, shared]))
    >>> list(counts.values())
    [1, 2]
    >>> list(build(counts).values())
    [1]
"""

from __future__ import annotations

from typing import Any, Callable

from .nodes import Identity, Kind, Node, try_unwrap

__all__ = ("scan", "build")


def _never(node: Node) -> bool:
    return False


def scan(
    root: Node,
    *,
    hooked: Callable[[Node], bool] = _never,
    transient: list[Any] | None = None,
) -> dict[Identity, int]:
    """Count how many times every composite value is reached from *root*.

    The walk doesn't go inside a value that was already visited.

    Args:
      root: Where to start.
      hooked: Returns ``True`` for nodes that will be described by a custom
        hook. We don't look inside of those since their contents won't be
        described.
      transient: Values that are created during the walk (e.g.: the target of
        a weak reference) are appended to this list.

    Returns:
      A dictionary in first discovery order.
    """
    counts: dict[Identity, int] = {}
    # Since we rely on `id` to detect duplicates we have to hold on to all the
    # intermediate values to make sure addresses do not get reused.
    if transient is None:
        transient = []

    def first_visit(node: Node) -> bool:
        ident = node.identity
        if ident is None:
            return True
        if ident in counts:
            counts[ident] += 1
            return False
        counts[ident] = 1
        return True

    def visit(node: Node) -> None:
        if node.nil:
            return
        if node.meta is not None:
            if not first_visit(node) or node.meta == "type":
                return
            target = try_unwrap(node)
            if target is not None:
                transient.append(target.value)
                visit(target)
            return
        match node.kind:
            case Kind.POINTER | Kind.INTERFACE:
                if not hooked(node):
                    visit(node.elem())
            case Kind.SLICE | Kind.ARRAY:
                if first_visit(node) and not hooked(node):
                    for child in node.elements().nodes:
                        visit(child)
            case Kind.MAP:
                if first_visit(node) and not hooked(node):
                    for key, value in node.entries().nodes:
                        visit(key)
                        visit(value)
            case Kind.STRUCT:
                if first_visit(node) and not hooked(node):
                    for _, child in node.fields():
                        visit(child)

    visit(root)
    return counts


def build(counts: dict[Identity, int]) -> dict[Identity, int]:
    """Assign labels to the values that were reached more than once.

    Labels are consecutive integers starting at 1, in first discovery order.
    """
    labels: dict[Identity, int] = {}
    for ident, count in counts.items():
        if count > 1:
            labels[ident] = len(labels) + 1
    return labels
