"""
Selections over the expression tree.

A selection is an anchor (where it started) and a focus (where it ends now).
It references the tree by path only, so it must be re-normalized after the
tree changes.
"""

from typing import Optional, Sequence
from dataclasses import dataclass
from enum import Enum

from .models import MathNode, NodeKind, row
from .cursor import (
    CursorPosition, Path, coerce_to_row_cursor, compare_cursors, cursor_at_end,
    cursor_at_start, cursors_equal, get_node_at_path,
)


class Direction(Enum):
    FORWARD = "forward"
    BACKWARD = "backward"
    NONE = "none"


@dataclass(frozen=True)
class Selection:
    anchor: CursorPosition
    focus: CursorPosition


# Creation

def collapsed_selection(pos: CursorPosition) -> Selection:
    return Selection(pos, pos)


def selection(anchor: CursorPosition, focus: CursorPosition) -> Selection:
    return Selection(anchor, focus)


def selection_at_start(root: MathNode) -> Selection:
    return collapsed_selection(cursor_at_start(()))


def selection_at_end(root: MathNode) -> Selection:
    return collapsed_selection(cursor_at_end(root, ()))


# Properties

def is_collapsed(sel: Selection) -> bool:
    return cursors_equal(sel.anchor, sel.focus)


def get_direction(sel: Selection) -> Direction:
    if is_collapsed(sel):
        return Direction.NONE
    return Direction.FORWARD if compare_cursors(sel.anchor, sel.focus) < 0 else Direction.BACKWARD


def get_start(sel: Selection) -> CursorPosition:
    return sel.anchor if compare_cursors(sel.anchor, sel.focus) <= 0 else sel.focus


def get_end(sel: Selection) -> CursorPosition:
    return sel.anchor if compare_cursors(sel.anchor, sel.focus) >= 0 else sel.focus


# Manipulation

def collapse_to_focus(sel: Selection) -> Selection:
    return collapsed_selection(sel.focus)


def collapse_to_anchor(sel: Selection) -> Selection:
    return collapsed_selection(sel.anchor)


def collapse_to_start(sel: Selection) -> Selection:
    return collapsed_selection(get_start(sel))


def collapse_to_end(sel: Selection) -> Selection:
    return collapsed_selection(get_end(sel))


def extend_to(sel: Selection, new_focus: CursorPosition) -> Selection:
    """Move the focus, keeping the anchor."""
    return Selection(sel.anchor, new_focus)


def move_to(new_pos: CursorPosition) -> Selection:
    return collapsed_selection(new_pos)


def selections_equal(a: Selection, b: Selection) -> bool:
    return cursors_equal(a.anchor, b.anchor) and cursors_equal(a.focus, b.focus)


# Ranges

def _common_prefix(a: Sequence[int], b: Sequence[int]) -> Path:
    common = []
    for x, y in zip(a, b):
        if x != y:
            break
        common.append(x)
    return tuple(common)


def get_common_ancestor_path(sel: Selection) -> Path:
    """Deepest path that contains both anchor and focus."""
    return _common_prefix(sel.anchor.path, sel.focus.path)


def contains_position(sel: Selection, pos: CursorPosition) -> bool:
    return (
        compare_cursors(pos, get_start(sel)) >= 0
        and compare_cursors(pos, get_end(sel)) <= 0
    )


def contains_path(sel: Selection, path: Sequence[int]) -> bool:
    """Check if the node at path falls within the selected range."""
    common = get_common_ancestor_path(sel)
    path = tuple(path)

    if len(path) < len(common) or path[:len(common)] != common:
        return False
    if len(path) == len(common):
        return True

    start = get_start(sel)
    end = get_end(sel)
    depth = len(common)
    next_index = path[depth]

    start_index = start.path[depth] if len(start.path) > depth else 0
    if len(end.path) > depth:
        return start_index <= next_index <= end.path[depth]
    return start_index <= next_index


def normalize_selection(root: MathNode, sel: Selection) -> Optional[Selection]:
    """
    Coerce both ends of a selection onto rows.

    Returns None if either end cannot be resolved to a row afterwards.
    """
    anchor = coerce_to_row_cursor(root, sel.anchor)
    focus = coerce_to_row_cursor(root, sel.focus)

    anchor_node = get_node_at_path(root, anchor.path)
    focus_node = get_node_at_path(root, focus.path)
    if anchor_node is None or focus_node is None:
        return None
    if anchor_node.kind is not NodeKind.ROW or focus_node.kind is not NodeKind.ROW:
        return None

    return Selection(anchor, focus)


def extract_selected_nodes(root: MathNode, sel: Selection) -> Optional[MathNode]:
    """
    Copy the selected part of the tree.

    Within one row the children between the offsets are returned as a new
    row. Across rows the deepest common ancestor decides: a row is sliced
    from the start child to the end child inclusive, and any other
    structure is returned whole.
    """
    if is_collapsed(sel):
        return None

    start = get_start(sel)
    end = get_end(sel)

    if start.path == end.path:
        node = get_node_at_path(root, start.path)
        if node is None or node.kind is not NodeKind.ROW:
            return None
        selected = node.children[start.offset:end.offset]
        return row(selected) if selected else None

    common = _common_prefix(start.path, end.path)
    ancestor = get_node_at_path(root, common)
    if ancestor is None:
        return None

    if ancestor.kind is NodeKind.ROW:
        depth = len(common)
        start_index = start.path[depth] if len(start.path) > depth else start.offset
        end_index = end.path[depth] + 1 if len(end.path) > depth else end.offset
        selected = ancestor.children[start_index:end_index]
        return row(selected) if selected else None

    # Selection crosses slot boundaries inside a structure
    return ancestor


def describe_selection(sel: Selection) -> str:
    """Readable description for debugging and accessibility."""
    def fmt(pos):
        return f"[{', '.join(str(i) for i in pos.path)}]"

    if is_collapsed(sel):
        return f"Cursor at path {fmt(sel.focus)}, offset {sel.focus.offset}"

    return (
        f"Selection from {fmt(sel.anchor)}:{sel.anchor.offset} "
        f"to {fmt(sel.focus)}:{sel.focus.offset} ({get_direction(sel).value})"
    )


__all__ = [
    'Direction', 'Selection',
    'collapsed_selection', 'selection', 'selection_at_start', 'selection_at_end',
    'is_collapsed', 'get_direction', 'get_start', 'get_end',
    'collapse_to_focus', 'collapse_to_anchor', 'collapse_to_start', 'collapse_to_end',
    'extend_to', 'move_to', 'selections_equal',
    'get_common_ancestor_path', 'contains_position', 'contains_path',
    'normalize_selection', 'extract_selected_nodes', 'describe_selection',
]
