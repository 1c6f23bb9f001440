"""``describe.render``: Turning values into text
============================================

:func:`describe` is the entry point of the library::

    >>> describe({"a": [1, 2]})
    'str:list{"a"=int[1 2]}'
    >>> print(describe({"a": [1, 2]}, indent=2))
    str:list{
      "a" = int[
        1
        2
      ]
    }

"""

from __future__ import annotations

from typing import Any, Final, Iterable

from . import config, hooks, layout, nodes, scan, utils
from .layout import EMPTY, NULL_BREAK, Doc, Mode, text
from .nodes import Identity, Kind, Node
from .tokens import DEFAULT, Tokens

__all__ = ("Renderer", "describe")

_COMPOSITES: Final = frozenset(
    (Kind.SLICE, Kind.ARRAY, Kind.MAP, Kind.STRUCT)
)


class Renderer:
    """Convert nodes into documents.

    A renderer is good for one description: it remembers which labelled
    values were already written.
    """

    labels: dict[Identity, int]
    seen: set[Identity]
    registry: hooks.Registry
    tokens: Tokens
    indent: int
    mode: Mode

    def __init__(
        self,
        labels: dict[Identity, int],
        *,
        registry: hooks.Registry,
        tokens: Tokens = DEFAULT,
        indent: int = 0,
        mode: Mode = Mode.FLAT,
    ) -> None:
        self.labels = labels
        self.seen = set()
        self.registry = registry
        self.tokens = tokens
        self.indent = indent
        self.mode = mode

    @property
    def key_value(self) -> str:
        return self.tokens.key_value(self.mode is not Mode.FLAT)

    def format_list(
        self, docs: Iterable[Doc], *, opar: str, cpar: str
    ) -> Doc:
        acc = NULL_BREAK
        first = True
        for doc in docs:
            if not first:
                acc += layout.BREAK
            else:
                first = False
            acc += doc
        if first:
            return text(opar + cpar)
        body = layout.nest(self.indent, acc) + NULL_BREAK
        return layout.group(self.mode, text(opar) + body + text(cpar))

    def hook_for(self, node: Node) -> hooks.Hook[Any] | None:
        if node.hook_type is None:
            return None
        return self.registry.get(node.hook_type)

    def reference(self, node: Node) -> tuple[Doc, bool]:
        """The label to write before *node*.

        Returns:
          The label and whether *node* was already written (in which case the
          label is a back reference and nothing else should be written).
        """
        ident = node.identity
        if ident is None:
            return EMPTY, False
        label = self.labels.get(ident)
        if label is None:
            return EMPTY, False
        if ident in self.seen:
            return text(f"{self.tokens.reference_prefix}{label}"), True
        self.seen.add(ident)
        return text(f"{label}{self.tokens.reference_separator}"), False

    def render(self, node: Node, as_hex: bool = False) -> Doc:
        """
        Args:
          node: What to render
          as_hex: Set for the elements of slices and arrays of unsigned
            integers; they are written in hexadecimal.
        """
        if node.nil:
            if node.kind is Kind.FUNCTION:
                return self.function(node)
            return text(self.tokens.nil)
        if node.meta is not None:
            return self.meta(node)
        prefix = EMPTY
        if node.kind in _COMPOSITES:
            prefix, done = self.reference(node)
            if done:
                return prefix
        hook = self.hook_for(node)
        if hook is not None:
            return prefix + self.custom(hook, node)
        return prefix + self.kind(node, as_hex)

    def custom(self, hook: hooks.Hook[Any], node: Node) -> Doc:
        try:
            res = hook(node.value)
            if not isinstance(res, str):
                raise TypeError(
                    f"hook returned {type(res).__name__}, expected str"
                )
        except Exception as e:
            if config.PANIC_ON_ERROR:
                raise
            typename = getattr(node.hook_type, "__name__", "?")
            msg = (
                f"<describe: hook for {typename} failed: "
                f"{utils.format_error(e)}>"
            )
            utils.warn(msg)
            return text(msg)
        return text(res)

    def meta(self, node: Node) -> Doc:
        tokens = self.tokens
        prefix, done = self.reference(node)
        if done:
            return prefix
        if node.meta == "type":
            inner = text(node.value.__name__)
        else:
            target = nodes.try_unwrap(node)
            if target is None:
                return prefix + text(utils.default_text(node.value))
            inner = self.render(target)
        assert node.meta is not None
        return (
            prefix
            + text(node.meta + tokens.open_meta)
            + inner
            + text(tokens.close_meta)
        )

    def function(self, node: Node) -> Doc:
        name = self.tokens.nil_func if node.nil else self.tokens.func
        sig = node.signature()
        if sig is None:
            return text(f"{name}(...)(...)")
        params, results = sig
        return text(f"{name}({', '.join(params)})({', '.join(results)})")

    def kind(self, node: Node, as_hex: bool) -> Doc:
        tokens = self.tokens
        v = node.value
        match node.kind:
            case Kind.INVALID:
                return text(tokens.invalid)
            case Kind.BOOL | Kind.SIGNED_INT | Kind.FLOAT | Kind.COMPLEX:
                return text(utils.default_text(v))
            case Kind.UNSIGNED_INT:
                if as_hex:
                    return text(f"0x{v:0{node.size * 2}x}")
                return text(str(v))
            case Kind.STRING:
                return text(f"{tokens.open_string}{v}{tokens.close_string}")
            case Kind.POINTER:
                return text(tokens.pointer_prefix) + self.render(node.elem())
            case Kind.INTERFACE:
                return text(tokens.interface_prefix) + self.render(
                    node.elem()
                )
            case Kind.SLICE | Kind.ARRAY:
                elements = node.elements()
                return text(elements.type_name) + self.format_list(
                    (
                        self.render(child, elements.unsigned)
                        for child in elements.nodes
                    ),
                    opar=tokens.open_array,
                    cpar=tokens.close_array,
                )
            case Kind.MAP:
                entries = node.entries()
                # The order is important here for references
                return text(
                    entries.key_type
                    + tokens.map_type_separator
                    + entries.value_type
                ) + self.format_list(
                    (
                        self.render(key)
                        + text(self.key_value)
                        + self.render(value)
                        for key, value in entries.nodes
                    ),
                    opar=tokens.open_map,
                    cpar=tokens.close_map,
                )
            case Kind.STRUCT:
                return text(node.type_name) + self.format_list(
                    (
                        text(name + self.key_value) + self.render(child)
                        for name, child in node.fields()
                    ),
                    opar=tokens.open_struct,
                    cpar=tokens.close_struct,
                )
            case Kind.FUNCTION:
                return self.function(node)
            case Kind.CHANNEL:
                return text(node.type_name)
            case Kind.RAW_POINTER:
                return text(
                    f"{tokens.pointer_prefix}0x{v:0{node.size * 2}x}"
                )
            case Kind.OPAQUE:
                return text(utils.default_text(v))
        return text(f"<describe: unhandled kind {node.kind.name}>")


def describe(
    value: Any,
    indent: int = 0,
    *,
    width: int | None = None,
    tokens: Tokens = DEFAULT,
    type: Any = nodes.MISSING,
    registry: hooks.Registry | None = None,
) -> str:
    """Describe a value, including its type and the values it refers to.

    Values that are reached several times are written once with a label
    (``1~``) and referred to afterwards (``$1``)::

        >>> shared = [1]
        >>> describe([shared, shared])
        'list[1~int[1] $1]'

    This never raises on unexpected values: errors are reported in the
    returned string and via a :class:`describe.utils.DescribeWarning` (set
    :data:`describe.config.PANIC_ON_ERROR` to get the exception instead).

    Args:
      value: What to describe.
      indent: If greater than 0 every element of composite values goes on its
        own line, indented by this many spaces.
      width: Only put composite values on several lines if they do not fit
        in *width* columns. Requires *indent*.
      tokens: The symbols used in the output.
      type: The declared type of *value* (e.g.: a :class:`typing.Callable`
        annotation so that ``None`` is described as an unset function).
      registry: Where to look up hooks (defaults to
        :data:`describe.hooks.REGISTRY`).

    Raises:
      ValueError: if *indent* or *width* are out of range.
    """
    if indent < 0 or indent > config.MAX_INDENT:
        raise ValueError(
            f"indent should be between 0 and {config.MAX_INDENT}, got {indent}"
        )
    if width is not None and (indent == 0 or width <= indent):
        raise ValueError(
            f"width ({width}) requires a positive indent smaller than it"
        )
    if registry is None:
        registry = hooks.REGISTRY
    # The scan and the rendering must agree on which values are hooked, even
    # if the registry changes during the call.
    registry = registry.copy()
    if width is not None:
        mode = Mode.AUTO
    elif indent > 0:
        mode = Mode.BREAK
    else:
        mode = Mode.FLAT
    try:
        root = nodes.root(value, type)
        renderer = Renderer(
            {}, registry=registry, tokens=tokens, indent=indent, mode=mode
        )
        transient: list[Any] = []
        counts = scan.scan(
            root,
            hooked=lambda node: renderer.hook_for(node) is not None,
            transient=transient,
        )
        renderer.labels = scan.build(counts)
        return renderer.render(root).to_string(80 if width is None else width)
    except Exception as e:
        if config.PANIC_ON_ERROR:
            raise
        msg = f"describe: Unexpected error: {utils.format_error(e)}"
        utils.warn(msg)
        return msg
