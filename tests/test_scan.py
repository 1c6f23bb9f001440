from __future__ import annotations

import weakref

from describe import nodes, scan
from describe.nodes import node_of

from . import utils


def labels(v):
    return scan.build(scan.scan(nodes.root(v)))


def test_no_sharing():
    assert labels([1, [2], {"a": (3,)}]) == {}
    # Immutable values have no identity
    t = (1,)
    assert labels([t, t]) == {}


def test_shared():
    leaf = utils.Leaf(1)
    assert labels(utils.Pair(leaf, leaf)) == {(utils.Leaf, id(leaf)): 1}


def test_cycles():
    c = utils.Cycle()
    assert labels(c) == {(utils.Cycle, id(c)): 1}
    m: dict[str, object] = {}
    m["key"] = m
    assert labels(m) == {(dict, id(m)): 1}


def test_discovery_order():
    a, b = [1], [2]
    root = [b, a, a, b]
    counts = scan.scan(node_of(root))
    assert list(counts.values()) == [1, 2, 2]
    assert scan.build(counts) == {(list, id(b)): 1, (list, id(a)): 2}


def test_map_keys_are_scanned():
    leaf = utils.Leaf(1)
    box = utils.Box(leaf)
    # Hashable user objects can be keys.
    key = utils.Cycle()
    key.val = box  # type: ignore[assignment]
    assert labels({key: box}) == {
        (utils.Cycle, id(key)): 1,
        (utils.Box, id(box)): 2,
    }


def test_ctypes():
    copy = utils.copied_ctypes_cycle()
    [(ty, _)] = labels(copy)
    assert ty is utils.S


def test_meta_handles():
    c = utils.Cycle()
    c.self = weakref.ref(c)  # type: ignore[assignment]
    ref = c.self
    assert labels(c) == {(utils.Cycle, id(c)): 1}
    assert labels([ref, ref]) == {(weakref.ReferenceType, id(ref)): 1}


def test_hooked_values_are_not_entered():
    shared = [1]
    root = [utils.Box(shared), shared]
    counts = scan.scan(
        node_of(root), hooked=lambda node: node.hook_type is utils.Box
    )
    assert (list, id(shared)) in counts
    assert scan.build(counts) == {}


def test_transient():
    transient: list[object] = []
    leaf = utils.Leaf(1)
    scan.scan(node_of(weakref.ref(leaf)), transient=transient)
    assert transient == [leaf]
