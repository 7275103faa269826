"""
Navigation commands.

Each factory takes ``extend``: when set the selection focus moves and the
anchor stays; otherwise the selection collapses. A non-collapsed selection
without ``extend`` only collapses to its relevant end.
"""

from typing import Callable, List, Optional, Sequence

from ..models import MathNode, NodeKind, get_children
from ..cursor import (
    CursorPosition, Path, compare_cursors, cursor, find_first_focusable,
    find_last_focusable, get_node_at_path, has_descendant_row, index_in_parent,
    parent_path,
)
from ..selection import (
    Selection, collapsed_selection, extend_to, get_end, get_start, is_collapsed,
)
from ..editor_state import EditorState, update_selection
from .types import Command


STRUCTURE_KINDS = frozenset({
    NodeKind.FRACTION, NodeKind.POWER, NodeKind.SUBSCRIPT, NodeKind.SUBSUP,
    NodeKind.SQRT, NodeKind.PARENS, NodeKind.MATRIX, NodeKind.FUNCTION,
})


def _apply(state: EditorState, new_pos: CursorPosition, extend: bool) -> EditorState:
    sel = extend_to(state.selection, new_pos) if extend else collapsed_selection(new_pos)
    return update_selection(state, sel)


def _move(step: Callable[[MathNode, CursorPosition], Optional[CursorPosition]],
          collapse_end: Callable[[Selection], CursorPosition],
          extend: bool) -> Command:
    def command(state: EditorState) -> Optional[EditorState]:
        sel = state.selection
        if not extend and not is_collapsed(sel):
            return update_selection(state, collapsed_selection(collapse_end(sel)))

        new_pos = step(state.root, sel.focus)
        if new_pos is None:
            return None
        return _apply(state, new_pos, extend)

    return command


def move_left(extend: bool = False) -> Command:
    return _move(_cursor_left, get_start, extend)


def move_right(extend: bool = False) -> Command:
    return _move(_cursor_right, get_end, extend)


def move_up(extend: bool = False) -> Command:
    """Move into the slot above (numerator, exponent, superscript, matrix row above)."""
    return _move(_cursor_up, get_start, extend)


def move_down(extend: bool = False) -> Command:
    """Move into the slot below (denominator, subscript, matrix row below)."""
    return _move(_cursor_down, get_end, extend)


def move_to_line_start(extend: bool = False) -> Command:
    def command(state: EditorState) -> Optional[EditorState]:
        row_path = _containing_row(state.root, state.selection.focus.path)
        return _apply(state, cursor(row_path, 0), extend)

    return command


def move_to_line_end(extend: bool = False) -> Command:
    def command(state: EditorState) -> Optional[EditorState]:
        row_path = _containing_row(state.root, state.selection.focus.path)
        node = get_node_at_path(state.root, row_path)
        if node is None or node.kind is not NodeKind.ROW:
            return None
        return _apply(state, cursor(row_path, len(node.children)), extend)

    return command


def move_to_document_start(extend: bool = False) -> Command:
    def command(state: EditorState) -> Optional[EditorState]:
        return _apply(state, find_first_focusable(state.root, ()), extend)

    return command


def move_to_document_end(extend: bool = False) -> Command:
    def command(state: EditorState) -> Optional[EditorState]:
        return _apply(state, find_last_focusable(state.root, ()), extend)

    return command


def select_all() -> Command:
    def command(state: EditorState) -> Optional[EditorState]:
        start = find_first_focusable(state.root, ())
        end = find_last_focusable(state.root, ())
        return update_selection(state, Selection(start, end))

    return command


def move_to_next_placeholder() -> Command:
    """Tab to the next placeholder in document order, wrapping around."""
    def command(state: EditorState) -> Optional[EditorState]:
        target = _find_placeholder(state.root, state.selection.focus, forward=True)
        if target is None:
            return None
        return update_selection(state, collapsed_selection(target))

    return command


def move_to_previous_placeholder() -> Command:
    def command(state: EditorState) -> Optional[EditorState]:
        target = _find_placeholder(state.root, state.selection.focus, forward=False)
        if target is None:
            return None
        return update_selection(state, collapsed_selection(target))

    return command


# Cursor movement

def _is_structure(node: MathNode) -> bool:
    return node.kind in STRUCTURE_KINDS


def _cursor_left(root: MathNode, pos: CursorPosition) -> Optional[CursorPosition]:
    node = get_node_at_path(root, pos.path)
    if node is None or node.kind is not NodeKind.ROW:
        return None

    if pos.offset > 0:
        previous = node.children[pos.offset - 1]
        if _is_structure(previous) and has_descendant_row(previous):
            return find_last_focusable(root, pos.path + (pos.offset - 1,))
        return cursor(pos.path, pos.offset - 1)

    return _exit_left(root, pos.path)


def _cursor_right(root: MathNode, pos: CursorPosition) -> Optional[CursorPosition]:
    node = get_node_at_path(root, pos.path)
    if node is None or node.kind is not NodeKind.ROW:
        return None

    if pos.offset < len(node.children):
        following = node.children[pos.offset]
        if _is_structure(following) and has_descendant_row(following):
            return find_first_focusable(root, pos.path + (pos.offset,))
        return cursor(pos.path, pos.offset + 1)

    return _exit_right(root, pos.path)


def _exit_left(root: MathNode, path: Path) -> Optional[CursorPosition]:
    """Leave the node at path towards the left."""
    if not path:
        return None

    parent = parent_path(path)
    parent_node = get_node_at_path(root, parent)
    index = index_in_parent(path)
    if parent_node is None:
        return None

    if parent_node.kind is NodeKind.ROW:
        return cursor(parent, index)

    # Matrix: step back one cell before leaving the grid
    if parent_node.kind is NodeKind.MATRIX and index > 0:
        return find_last_focusable(root, parent + (index - 1,))

    return _exit_left(root, parent)


def _exit_right(root: MathNode, path: Path) -> Optional[CursorPosition]:
    """Leave the node at path towards the right."""
    if not path:
        return None

    parent = parent_path(path)
    parent_node = get_node_at_path(root, parent)
    index = index_in_parent(path)
    if parent_node is None:
        return None

    if parent_node.kind is NodeKind.ROW:
        return cursor(parent, index + 1)

    if parent_node.kind is NodeKind.MATRIX and index < len(get_children(parent_node)) - 1:
        return find_first_focusable(root, parent + (index + 1,))

    return _exit_right(root, parent)


def _cursor_vertical(root: MathNode, pos: CursorPosition,
                     slot_for: Callable[[MathNode, int], Optional[int]]) -> Optional[CursorPosition]:
    """Walk up the ancestors until one has a slot in the wanted direction."""
    current = pos.path
    while current:
        parent = parent_path(current)
        parent_node = get_node_at_path(root, parent)
        if parent_node is None:
            break

        target = slot_for(parent_node, index_in_parent(current))
        if target is not None:
            return find_first_focusable(root, parent + (target,))

        current = parent

    return None


def _cursor_up(root: MathNode, pos: CursorPosition) -> Optional[CursorPosition]:
    return _cursor_vertical(root, pos, _up_slot)


def _cursor_down(root: MathNode, pos: CursorPosition) -> Optional[CursorPosition]:
    return _cursor_vertical(root, pos, _down_slot)


def _up_slot(parent: MathNode, slot: int) -> Optional[int]:
    kind = parent.kind

    if kind is NodeKind.FRACTION:
        return 0 if slot == 1 else None
    if kind is NodeKind.POWER:
        return 1 if slot == 0 else None
    if kind is NodeKind.SUBSCRIPT:
        # Only an editable (row) base can be entered from below
        return 0 if slot == 1 and parent.base.kind is NodeKind.ROW else None
    if kind is NodeKind.SUBSUP:
        return 2 if slot in (0, 1) else None
    if kind is NodeKind.SQRT:
        return 1 if slot == 0 and parent.index is not None else None
    if kind is NodeKind.MATRIX:
        target = slot - parent.column_count
        return target if target >= 0 else None
    return None


def _down_slot(parent: MathNode, slot: int) -> Optional[int]:
    kind = parent.kind

    if kind is NodeKind.FRACTION:
        return 1 if slot == 0 else None
    if kind is NodeKind.POWER:
        return 0 if slot == 1 else None
    if kind is NodeKind.SUBSCRIPT:
        return 1 if slot == 0 else None
    if kind is NodeKind.SUBSUP:
        return 1 if slot in (0, 2) else None
    if kind is NodeKind.SQRT:
        return 0 if slot == 1 else None
    if kind is NodeKind.MATRIX:
        target = slot + parent.column_count
        return target if target < len(get_children(parent)) else None
    return None


def _containing_row(root: MathNode, path: Sequence[int]) -> Path:
    current = tuple(path)
    while True:
        node = get_node_at_path(root, current)
        if node is not None and node.kind is NodeKind.ROW:
            return current
        if not current:
            return ()
        current = parent_path(current)


# Placeholders

def _collect_placeholders(node: MathNode, path: Path, found: List[CursorPosition]):
    """Cursor before every placeholder, in document order."""
    if node.kind is NodeKind.ROW:
        for i, child in enumerate(node.children):
            if child.kind is NodeKind.PLACEHOLDER:
                found.append(cursor(path, i))
            else:
                _collect_placeholders(child, path + (i,), found)
        return

    for i, child in enumerate(get_children(node)):
        _collect_placeholders(child, path + (i,), found)


def _find_placeholder(root: MathNode, current: CursorPosition,
                      forward: bool) -> Optional[CursorPosition]:
    placeholders: List[CursorPosition] = []
    _collect_placeholders(root, (), placeholders)
    if not placeholders:
        return None

    if current in placeholders:
        index = placeholders.index(current)
        step = 1 if forward else -1
        return placeholders[(index + step) % len(placeholders)]

    if forward:
        for pos in placeholders:
            if compare_cursors(pos, current) > 0:
                return pos
        return placeholders[0]

    for pos in reversed(placeholders):
        if compare_cursors(pos, current) < 0:
            return pos
    return placeholders[-1]


__all__ = [
    'STRUCTURE_KINDS',
    'move_left', 'move_right', 'move_up', 'move_down',
    'move_to_line_start', 'move_to_line_end',
    'move_to_document_start', 'move_to_document_end',
    'select_all', 'move_to_next_placeholder', 'move_to_previous_placeholder',
]
