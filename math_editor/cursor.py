"""
Path-based cursor addressing.

A path is a tuple of child indices from the root (in ``get_children`` order).
Cursors stored in editor state always address a row node; their offset is a
position between the row's children, from 0 to ``len(children)``.
``coerce_to_row_cursor`` is the one way to turn an arbitrary path into such a
cursor.
"""

import logging
from typing import List, Optional, Sequence, Tuple
from dataclasses import dataclass

from .models import MathNode, NodeKind, get_children, replace_child


logger = logging.getLogger(__name__)

Path = Tuple[int, ...]


@dataclass(frozen=True)
class CursorPosition:
    """Insertion point: a row path plus an offset between its children."""
    path: Path = ()
    offset: int = 0

    def __post_init__(self):
        object.__setattr__(self, 'path', tuple(self.path))


@dataclass(frozen=True)
class SlotInfo:
    """Named child position of a structure node."""
    name: str
    path: Path
    node: MathNode


# Creation

def cursor(path: Sequence[int], offset: int) -> CursorPosition:
    return CursorPosition(tuple(path), offset)


def cursor_at_start(path: Sequence[int] = ()) -> CursorPosition:
    return CursorPosition(tuple(path), 0)


def cursor_at_end(root: MathNode, path: Sequence[int] = ()) -> CursorPosition:
    """Cursor after the last child of the row at path (or its last focusable row)."""
    path = tuple(path)
    node = get_node_at_path(root, path)
    if node is None:
        return CursorPosition(path, 0)
    if node.kind is NodeKind.ROW:
        return CursorPosition(path, len(node.children))
    return find_last_focusable(root, path)


def coerce_to_row_cursor(root: MathNode, pos: CursorPosition) -> CursorPosition:
    """
    Force a cursor onto a row.

    A cursor already on a row has its offset clamped. Otherwise the walk goes
    up to the nearest row ancestor and lands just after the child it left
    through, so a position inside a structure ends up past the whole
    structure. Without any row ancestor the first focusable row is used.
    """
    node = get_node_at_path(root, pos.path)

    if node is not None and node.kind is NodeKind.ROW:
        offset = max(0, min(pos.offset, len(node.children)))
        return CursorPosition(pos.path, offset)

    current = pos.path
    while current:
        parent = parent_path(current)
        parent_node = get_node_at_path(root, parent)
        if parent_node is not None and parent_node.kind is NodeKind.ROW:
            offset = min(index_in_parent(current) + 1, len(parent_node.children))
            return CursorPosition(parent, offset)
        current = parent

    if root.kind is NodeKind.ROW:
        return CursorPosition((), 0)

    found = _first_row_within(root, ())
    if found is None:
        logger.debug("Tree has no row to place a cursor in")
        return CursorPosition((), 0)
    return found


# Path navigation

def get_node_at_path(root: MathNode, path: Sequence[int]) -> Optional[MathNode]:
    """Resolve a path, returning None if it points nowhere."""
    current = root
    for index in path:
        children = get_children(current)
        if index < 0 or index >= len(children):
            return None
        current = children[index]
    return current


def get_child_nodes(node: MathNode) -> Tuple[MathNode, ...]:
    return get_children(node)


def parent_path(path: Sequence[int]) -> Path:
    return tuple(path[:-1])


def index_in_parent(path: Sequence[int]) -> int:
    """Last index of the path, or -1 for the root."""
    return path[-1] if path else -1


def replace_node_at_path(root: MathNode, path: Sequence[int], new_node: MathNode) -> MathNode:
    """
    Rebuild the tree with the node at path replaced.

    Only the nodes along the path are rebuilt; every other subtree is shared
    with the original.
    """
    if not path:
        return new_node

    children = get_children(root)
    index = path[0]
    if index < 0 or index >= len(children):
        raise IndexError(f"Path index {index} out of range")

    updated = replace_node_at_path(children[index], path[1:], new_node)
    return replace_child(root, index, updated)


# Slots

_FIXED_SLOT_NAMES = {
    NodeKind.FRACTION: ('numerator', 'denominator'),
    NodeKind.POWER: ('base', 'exponent'),
    NodeKind.SUBSCRIPT: ('base', 'subscript'),
    NodeKind.SUBSUP: ('base', 'subscript', 'superscript'),
    NodeKind.SQRT: ('radicand', 'index'),
    NodeKind.PARENS: ('content',),
}


def _function_slot_names(node: MathNode) -> List[str]:
    names = []
    if node.argument is not None:
        names.append('argument')
    if node.limits is not None:
        if node.limits.lower is not None:
            names.append('lower')
        if node.limits.upper is not None:
            names.append('upper')
    return names


def get_slot_name(parent: MathNode, child_index: int) -> Optional[str]:
    """Name of the slot at child_index, or None for rows and leaves."""
    kind = parent.kind

    if kind in _FIXED_SLOT_NAMES:
        names = _FIXED_SLOT_NAMES[kind]
        return names[child_index] if 0 <= child_index < len(names) else None
    if kind is NodeKind.FUNCTION:
        names = _function_slot_names(parent)
        return names[child_index] if 0 <= child_index < len(names) else None
    if kind is NodeKind.MATRIX:
        return 'cell'
    return None


def get_slots(node: MathNode, base_path: Sequence[int] = ()) -> List[SlotInfo]:
    """Named slots of a structure node; empty for rows and leaves."""
    if node.kind is NodeKind.ROW:
        return []

    base_path = tuple(base_path)
    return [
        SlotInfo(get_slot_name(node, i), base_path + (i,), child)
        for i, child in enumerate(get_children(node))
    ]


# Comparison

def compare_cursors(a: CursorPosition, b: CursorPosition) -> int:
    """
    Compare cursors in document order: -1, 0 or 1.

    When one path is a prefix of the other, the shorter cursor's offset is
    compared with the index of the child the longer path descends through:
    "before child k" precedes anything inside child k, "after child k"
    follows it.
    """
    for x, y in zip(a.path, b.path):
        if x < y:
            return -1
        if x > y:
            return 1

    if len(a.path) == len(b.path):
        if a.offset < b.offset:
            return -1
        if a.offset > b.offset:
            return 1
        return 0

    if len(a.path) < len(b.path):
        next_index = b.path[len(a.path)]
        return -1 if a.offset <= next_index else 1

    next_index = a.path[len(b.path)]
    return 1 if b.offset <= next_index else -1


def cursors_equal(a: CursorPosition, b: CursorPosition) -> bool:
    return compare_cursors(a, b) == 0


def is_before(a: CursorPosition, b: CursorPosition) -> bool:
    return compare_cursors(a, b) < 0


# Validation

def is_valid_path(root: MathNode, path: Sequence[int]) -> bool:
    return get_node_at_path(root, path) is not None


def is_valid_cursor(root: MathNode, pos: CursorPosition) -> bool:
    """A valid cursor addresses a row and its offset lies within it."""
    node = get_node_at_path(root, pos.path)
    if node is None or node.kind is not NodeKind.ROW:
        return False
    return 0 <= pos.offset <= len(node.children)


# Focusable search

def is_focusable(node: MathNode) -> bool:
    return node.kind is NodeKind.ROW


def has_descendant_row(node: MathNode) -> bool:
    if node.kind is NodeKind.ROW:
        return True
    return any(has_descendant_row(child) for child in get_children(node))


def _first_row_within(root: MathNode, base_path: Path) -> Optional[CursorPosition]:
    node = get_node_at_path(root, base_path)
    if node is None:
        return None
    if node.kind is NodeKind.ROW:
        return CursorPosition(base_path, 0)

    for i, child in enumerate(get_children(node)):
        if has_descendant_row(child):
            return _first_row_within(root, base_path + (i,))
    return None


def _last_row_within(root: MathNode, base_path: Path) -> Optional[CursorPosition]:
    node = get_node_at_path(root, base_path)
    if node is None:
        return None
    if node.kind is NodeKind.ROW:
        return CursorPosition(base_path, len(node.children))

    children = get_children(node)
    for i in range(len(children) - 1, -1, -1):
        if has_descendant_row(children[i]):
            return _last_row_within(root, base_path + (i,))
    return None


def find_first_focusable(root: MathNode, base_path: Sequence[int] = ()) -> CursorPosition:
    """Start of the first row at or under base_path, falling back to coercion."""
    base_path = tuple(base_path)
    if get_node_at_path(root, base_path) is None:
        base_path = ()

    found = _first_row_within(root, base_path)
    if found is not None:
        return found
    return coerce_to_row_cursor(root, CursorPosition(base_path, 0))


def find_last_focusable(root: MathNode, base_path: Sequence[int] = ()) -> CursorPosition:
    """End of the last row at or under base_path, falling back to coercion."""
    base_path = tuple(base_path)
    if get_node_at_path(root, base_path) is None:
        base_path = ()

    found = _last_row_within(root, base_path)
    if found is not None:
        return found
    return coerce_to_row_cursor(root, CursorPosition(base_path, 0))


__all__ = [
    'Path', 'CursorPosition', 'SlotInfo',
    'cursor', 'cursor_at_start', 'cursor_at_end', 'coerce_to_row_cursor',
    'get_node_at_path', 'get_child_nodes', 'parent_path', 'index_in_parent',
    'replace_node_at_path', 'get_slot_name', 'get_slots',
    'compare_cursors', 'cursors_equal', 'is_before',
    'is_valid_path', 'is_valid_cursor',
    'is_focusable', 'has_descendant_row', 'find_first_focusable', 'find_last_focusable',
]
