"""
Expression tree model for the math editor.

Every node kind is a frozen dataclass; sequences are stored as tuples so a
tree is immutable and edits rebuild only the spine from the root to the
changed node.
"""

from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Dict, Iterable, Optional, Tuple, Union
from enum import Enum


class NodeKind(Enum):
    """Kinds of expression tree nodes."""
    # Leaves
    NUMBER = "number"
    SYMBOL = "symbol"
    OPERATOR = "operator"
    TEXT = "text"
    SPACE = "space"
    PLACEHOLDER = "placeholder"
    # Containers
    ROW = "row"
    FRACTION = "fraction"
    POWER = "power"
    SUBSCRIPT = "subscript"
    SUBSUP = "subsup"
    SQRT = "sqrt"
    PARENS = "parens"
    FUNCTION = "function"
    MATRIX = "matrix"


class SpaceSize(Enum):
    """Spacing widths, thinnest first."""
    THIN = "thin"
    MEDIUM = "medium"
    THICK = "thick"
    QUAD = "quad"
    QQUAD = "qquad"


MATRIX_STYLES = ('matrix', 'pmatrix', 'bmatrix', 'Bmatrix', 'vmatrix', 'Vmatrix', 'array')

AUTO_SIZE = 'auto'


@dataclass(frozen=True)
class NumberNode:
    value: str
    kind: ClassVar[NodeKind] = NodeKind.NUMBER


@dataclass(frozen=True)
class SymbolNode:
    """Single identifier or named constant (Greek letters keep their name)."""
    value: str
    kind: ClassVar[NodeKind] = NodeKind.SYMBOL


@dataclass(frozen=True)
class OperatorNode:
    """Operator or relation; command operators are stored without backslash."""
    value: str
    kind: ClassVar[NodeKind] = NodeKind.OPERATOR


@dataclass(frozen=True)
class TextNode:
    value: str
    kind: ClassVar[NodeKind] = NodeKind.TEXT


@dataclass(frozen=True)
class SpaceNode:
    size: SpaceSize
    kind: ClassVar[NodeKind] = NodeKind.SPACE


@dataclass(frozen=True)
class PlaceholderNode:
    kind: ClassVar[NodeKind] = NodeKind.PLACEHOLDER


@dataclass(frozen=True)
class RowNode:
    children: Tuple['MathNode', ...] = ()
    kind: ClassVar[NodeKind] = NodeKind.ROW

    def __post_init__(self):
        object.__setattr__(self, 'children', tuple(self.children))


@dataclass(frozen=True)
class FractionNode:
    numerator: 'MathNode'
    denominator: 'MathNode'
    kind: ClassVar[NodeKind] = NodeKind.FRACTION


@dataclass(frozen=True)
class PowerNode:
    base: 'MathNode'
    exponent: 'MathNode'
    kind: ClassVar[NodeKind] = NodeKind.POWER


@dataclass(frozen=True)
class SubscriptNode:
    base: 'MathNode'
    subscript: 'MathNode'
    kind: ClassVar[NodeKind] = NodeKind.SUBSCRIPT


@dataclass(frozen=True)
class SubSupNode:
    base: 'MathNode'
    subscript: 'MathNode'
    superscript: 'MathNode'
    kind: ClassVar[NodeKind] = NodeKind.SUBSUP


@dataclass(frozen=True)
class SqrtNode:
    radicand: 'MathNode'
    index: Optional['MathNode'] = None
    kind: ClassVar[NodeKind] = NodeKind.SQRT


@dataclass(frozen=True)
class ParensNode:
    """Delimited group; size is AUTO_SIZE when written with \\left/\\right."""
    content: 'MathNode'
    open: str = '('
    close: str = ')'
    size: Optional[str] = None
    kind: ClassVar[NodeKind] = NodeKind.PARENS


@dataclass(frozen=True)
class Limits:
    lower: Optional['MathNode'] = None
    upper: Optional['MathNode'] = None


@dataclass(frozen=True)
class FunctionNode:
    """Named function or large operator (sum, int, lim...)."""
    name: str
    argument: Optional['MathNode'] = None
    limits: Optional[Limits] = None
    kind: ClassVar[NodeKind] = NodeKind.FUNCTION


@dataclass(frozen=True)
class MatrixNode:
    rows: Tuple[Tuple['MathNode', ...], ...] = ()
    style: str = 'matrix'
    col_spec: Optional[str] = None
    kind: ClassVar[NodeKind] = NodeKind.MATRIX

    def __post_init__(self):
        object.__setattr__(self, 'rows', tuple(tuple(r) for r in self.rows))

    @property
    def column_count(self) -> int:
        return len(self.rows[0]) if self.rows and self.rows[0] else 1


MathNode = Union[
    NumberNode, SymbolNode, OperatorNode, TextNode, SpaceNode, PlaceholderNode,
    RowNode, FractionNode, PowerNode, SubscriptNode, SubSupNode, SqrtNode,
    ParensNode, FunctionNode, MatrixNode,
]

LEAF_KINDS = frozenset({
    NodeKind.NUMBER, NodeKind.SYMBOL, NodeKind.OPERATOR,
    NodeKind.TEXT, NodeKind.SPACE, NodeKind.PLACEHOLDER,
})

_NODE_CLASSES = (
    NumberNode, SymbolNode, OperatorNode, TextNode, SpaceNode, PlaceholderNode,
    RowNode, FractionNode, PowerNode, SubscriptNode, SubSupNode, SqrtNode,
    ParensNode, FunctionNode, MatrixNode,
)


# Builders

def row(children: Iterable[MathNode] = ()) -> RowNode:
    return RowNode(tuple(children))


def number(value: str) -> NumberNode:
    return NumberNode(value)


def symbol(value: str) -> SymbolNode:
    return SymbolNode(value)


def operator(value: str) -> OperatorNode:
    return OperatorNode(value)


def text(value: str) -> TextNode:
    return TextNode(value)


def space(size: Union[SpaceSize, str]) -> SpaceNode:
    return SpaceNode(SpaceSize(size))


def placeholder() -> PlaceholderNode:
    return PlaceholderNode()


def fraction(numerator: MathNode, denominator: MathNode) -> FractionNode:
    return FractionNode(numerator, denominator)


def power(base: MathNode, exponent: MathNode) -> PowerNode:
    return PowerNode(base, exponent)


def subscript(base: MathNode, sub: MathNode) -> SubscriptNode:
    return SubscriptNode(base, sub)


def subsup(base: MathNode, sub: MathNode, sup: MathNode) -> SubSupNode:
    return SubSupNode(base, sub, sup)


def sqrt(radicand: MathNode, index: Optional[MathNode] = None) -> SqrtNode:
    return SqrtNode(radicand, index)


def parens(content: MathNode, open: str = '(', close: str = ')',
           size: Optional[str] = None) -> ParensNode:
    return ParensNode(content, open, close, size)


def function(name: str, argument: Optional[MathNode] = None,
             lower: Optional[MathNode] = None,
             upper: Optional[MathNode] = None) -> FunctionNode:
    limits = Limits(lower, upper) if lower is not None or upper is not None else None
    return FunctionNode(name, argument, limits)


def matrix(rows: Iterable[Iterable[MathNode]], style: str = 'matrix',
           col_spec: Optional[str] = None) -> MatrixNode:
    if style not in MATRIX_STYLES:
        raise ValueError(f"Unknown matrix style: {style}")
    return MatrixNode(tuple(tuple(r) for r in rows), style, col_spec)


def empty_row() -> RowNode:
    """A row holding a single placeholder (an empty editable slot)."""
    return RowNode((PlaceholderNode(),))


def is_leaf_node(node: MathNode) -> bool:
    return node.kind in LEAF_KINDS


def is_container_node(node: MathNode) -> bool:
    return not is_leaf_node(node)


def is_placeholder_row(node: MathNode) -> bool:
    """Check for a row whose only child is a placeholder."""
    return (
        node.kind is NodeKind.ROW
        and len(node.children) == 1
        and node.children[0].kind is NodeKind.PLACEHOLDER
    )


# Structural operations

def get_children(node: MathNode) -> Tuple[MathNode, ...]:
    """
    Get the direct children of a node in addressing order.

    Function nodes list only the parts that are present, in the order
    argument, lower limit, upper limit. Matrix cells are flattened row-major.
    """
    kind = _kind_of(node)

    if kind in LEAF_KINDS:
        return ()
    if kind is NodeKind.ROW:
        return node.children
    if kind is NodeKind.FRACTION:
        return (node.numerator, node.denominator)
    if kind is NodeKind.POWER:
        return (node.base, node.exponent)
    if kind is NodeKind.SUBSCRIPT:
        return (node.base, node.subscript)
    if kind is NodeKind.SUBSUP:
        return (node.base, node.subscript, node.superscript)
    if kind is NodeKind.SQRT:
        return (node.radicand,) if node.index is None else (node.radicand, node.index)
    if kind is NodeKind.PARENS:
        return (node.content,)
    if kind is NodeKind.FUNCTION:
        parts = [node.argument]
        if node.limits is not None:
            parts.extend([node.limits.lower, node.limits.upper])
        return tuple(p for p in parts if p is not None)
    if kind is NodeKind.MATRIX:
        return tuple(cell for r in node.rows for cell in r)

    raise TypeError(f"Unhandled node kind: {kind}")


def map_children(node: MathNode, fn: Callable[[MathNode], MathNode]) -> MathNode:
    """Rebuild a node with every direct child replaced by fn(child)."""
    kind = _kind_of(node)

    if kind in LEAF_KINDS:
        return node
    if kind is NodeKind.ROW:
        return RowNode(tuple(fn(c) for c in node.children))
    if kind is NodeKind.FRACTION:
        return FractionNode(fn(node.numerator), fn(node.denominator))
    if kind is NodeKind.POWER:
        return PowerNode(fn(node.base), fn(node.exponent))
    if kind is NodeKind.SUBSCRIPT:
        return SubscriptNode(fn(node.base), fn(node.subscript))
    if kind is NodeKind.SUBSUP:
        return SubSupNode(fn(node.base), fn(node.subscript), fn(node.superscript))
    if kind is NodeKind.SQRT:
        index = fn(node.index) if node.index is not None else None
        return SqrtNode(fn(node.radicand), index)
    if kind is NodeKind.PARENS:
        return ParensNode(fn(node.content), node.open, node.close, node.size)
    if kind is NodeKind.FUNCTION:
        argument = fn(node.argument) if node.argument is not None else None
        limits = node.limits
        if limits is not None:
            limits = Limits(
                fn(limits.lower) if limits.lower is not None else None,
                fn(limits.upper) if limits.upper is not None else None,
            )
        return FunctionNode(node.name, argument, limits)
    if kind is NodeKind.MATRIX:
        return MatrixNode(
            tuple(tuple(fn(cell) for cell in r) for r in node.rows),
            node.style,
            node.col_spec,
        )

    raise TypeError(f"Unhandled node kind: {kind}")


def replace_child(parent: MathNode, index: int, child: MathNode) -> MathNode:
    """
    Return a copy of parent with the child at index (in get_children order)
    replaced. Untouched children are shared, not copied.
    """
    kind = _kind_of(parent)

    if kind is NodeKind.ROW:
        children = list(parent.children)
        children[index] = child
        return RowNode(tuple(children))
    if kind is NodeKind.FRACTION:
        if index == 0:
            return FractionNode(child, parent.denominator)
        return FractionNode(parent.numerator, child)
    if kind is NodeKind.POWER:
        if index == 0:
            return PowerNode(child, parent.exponent)
        return PowerNode(parent.base, child)
    if kind is NodeKind.SUBSCRIPT:
        if index == 0:
            return SubscriptNode(child, parent.subscript)
        return SubscriptNode(parent.base, child)
    if kind is NodeKind.SUBSUP:
        parts = [parent.base, parent.subscript, parent.superscript]
        parts[index] = child
        return SubSupNode(*parts)
    if kind is NodeKind.SQRT:
        if index == 0:
            return SqrtNode(child, parent.index)
        return SqrtNode(parent.radicand, child)
    if kind is NodeKind.PARENS:
        return ParensNode(child, parent.open, parent.close, parent.size)
    if kind is NodeKind.FUNCTION:
        slots = ['argument', 'lower', 'upper']
        present = {
            'argument': parent.argument,
            'lower': parent.limits.lower if parent.limits else None,
            'upper': parent.limits.upper if parent.limits else None,
        }
        names = [name for name in slots if present[name] is not None]
        present[names[index]] = child
        limits = parent.limits
        if limits is not None:
            limits = Limits(present['lower'], present['upper'])
        return FunctionNode(parent.name, present['argument'], limits)
    if kind is NodeKind.MATRIX:
        new_rows = []
        offset = 0
        for r in parent.rows:
            if offset <= index < offset + len(r):
                cells = list(r)
                cells[index - offset] = child
                new_rows.append(tuple(cells))
            else:
                new_rows.append(r)
            offset += len(r)
        return MatrixNode(tuple(new_rows), parent.style, parent.col_spec)
    if kind in LEAF_KINDS:
        raise IndexError(f"{kind.value} node has no children")

    raise TypeError(f"Unhandled node kind: {kind}")


def nodes_equal(a: MathNode, b: MathNode) -> bool:
    """
    Deep structural equality.

    Compares kinds, values, delimiters, parens sizing, matrix style and
    column spec, and all children recursively.
    """
    if _kind_of(a) is not _kind_of(b):
        return False
    return a == b


def normalize_for_editor(tree: MathNode) -> RowNode:
    """
    Convert raw parser output into editor-ready form.

    The root becomes a row, every editable slot becomes a row, and no row
    is left empty (an empty region is a row holding one placeholder).
    """
    normalized = _normalize_slots(tree)

    if normalized.kind is NodeKind.ROW:
        if not normalized.children:
            return empty_row()
        return normalized

    return RowNode((normalized,))


def _normalize_slots(node: MathNode) -> MathNode:
    kind = node.kind

    if kind is NodeKind.ROW:
        return RowNode(tuple(_normalize_slots(c) for c in node.children))
    if kind is NodeKind.FRACTION:
        return FractionNode(_ensure_row(node.numerator), _ensure_row(node.denominator))
    if kind is NodeKind.POWER:
        return PowerNode(_normalize_slots(node.base), _ensure_row(node.exponent))
    if kind is NodeKind.SUBSCRIPT:
        return SubscriptNode(_normalize_slots(node.base), _ensure_row(node.subscript))
    if kind is NodeKind.SUBSUP:
        return SubSupNode(
            _normalize_slots(node.base),
            _ensure_row(node.subscript),
            _ensure_row(node.superscript),
        )
    if kind is NodeKind.SQRT:
        index = _ensure_row(node.index) if node.index is not None else None
        return SqrtNode(_ensure_row(node.radicand), index)
    if kind is NodeKind.PARENS:
        return ParensNode(_ensure_row(node.content), node.open, node.close, node.size)
    if kind is NodeKind.FUNCTION:
        argument = _ensure_row(node.argument) if node.argument is not None else None
        limits = node.limits
        if limits is not None:
            limits = Limits(
                _ensure_row(limits.lower) if limits.lower is not None else None,
                _ensure_row(limits.upper) if limits.upper is not None else None,
            )
        return FunctionNode(node.name, argument, limits)
    if kind is NodeKind.MATRIX:
        return MatrixNode(
            tuple(tuple(_ensure_row(cell) for cell in r) for r in node.rows),
            node.style,
            node.col_spec,
        )
    return node


def _ensure_row(node: MathNode) -> RowNode:
    normalized = _normalize_slots(node)
    if normalized.kind is NodeKind.ROW:
        return normalized if normalized.children else empty_row()
    return RowNode((normalized,))


def node_to_dict(node: MathNode) -> Dict[str, Any]:
    """Convert a tree to plain dictionaries (for logging and debugging)."""
    kind = _kind_of(node)
    data: Dict[str, Any] = {'kind': kind.value}

    if kind in (NodeKind.NUMBER, NodeKind.SYMBOL, NodeKind.OPERATOR, NodeKind.TEXT):
        data['value'] = node.value
    elif kind is NodeKind.SPACE:
        data['size'] = node.size.value
    elif kind is NodeKind.ROW:
        data['children'] = [node_to_dict(c) for c in node.children]
    elif kind is NodeKind.PARENS:
        data.update(open=node.open, close=node.close, size=node.size,
                    content=node_to_dict(node.content))
    elif kind is NodeKind.FUNCTION:
        data['name'] = node.name
        if node.argument is not None:
            data['argument'] = node_to_dict(node.argument)
        if node.limits is not None:
            data['limits'] = {
                key: node_to_dict(value)
                for key, value in (('lower', node.limits.lower), ('upper', node.limits.upper))
                if value is not None
            }
    elif kind is NodeKind.MATRIX:
        data.update(style=node.style, col_spec=node.col_spec,
                    rows=[[node_to_dict(c) for c in r] for r in node.rows])
    elif kind is not NodeKind.PLACEHOLDER:
        data['children'] = [node_to_dict(c) for c in get_children(node)]

    return data


def _kind_of(node: Any) -> NodeKind:
    if not isinstance(node, _NODE_CLASSES):
        raise TypeError(f"Not an expression tree node: {node!r}")
    return node.kind


__all__ = [
    'NodeKind', 'SpaceSize', 'MATRIX_STYLES', 'AUTO_SIZE',
    'NumberNode', 'SymbolNode', 'OperatorNode', 'TextNode', 'SpaceNode',
    'PlaceholderNode', 'RowNode', 'FractionNode', 'PowerNode', 'SubscriptNode',
    'SubSupNode', 'SqrtNode', 'ParensNode', 'Limits', 'FunctionNode',
    'MatrixNode', 'MathNode',
    'row', 'number', 'symbol', 'operator', 'text', 'space', 'placeholder',
    'fraction', 'power', 'subscript', 'subsup', 'sqrt', 'parens', 'function',
    'matrix', 'empty_row',
    'is_leaf_node', 'is_container_node', 'is_placeholder_row',
    'get_children', 'map_children', 'replace_child', 'nodes_equal',
    'normalize_for_editor', 'node_to_dict',
]
