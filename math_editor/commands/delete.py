"""
Deletion commands.

Deleting a structure from outside flattens it into its main slot; deleting
from an empty slot replaces the whole enclosing structure with a placeholder.
No row is ever left without children.
"""

import logging
from typing import Optional, Tuple

from ..models import MathNode, NodeKind, empty_row, is_placeholder_row, placeholder, row
from ..cursor import (
    CursorPosition, cursor, get_node_at_path, index_in_parent, parent_path,
    replace_node_at_path,
)
from ..selection import collapsed_selection, is_collapsed
from ..editor_state import EditorState, update_state
from .insert import delete_selection_content
from .navigate import move_left
from .types import Command


logger = logging.getLogger(__name__)

Edit = Tuple[MathNode, CursorPosition]


def delete_backward() -> Command:
    """
    Backspace.

    At the start of a nested row nothing is deleted; the command falls back
    to moving left so the cursor leaves the structure.
    """
    def command(state: EditorState) -> Optional[EditorState]:
        if not is_collapsed(state.selection):
            return delete_selection()(state)

        edit = _delete_at(state.root, state.selection.focus, forward=False)
        if edit is None:
            return move_left(False)(state)

        new_root, pos = edit
        return update_state(state, new_root, collapsed_selection(pos))

    return command


def delete_forward() -> Command:
    def command(state: EditorState) -> Optional[EditorState]:
        if not is_collapsed(state.selection):
            return delete_selection()(state)

        edit = _delete_at(state.root, state.selection.focus, forward=True)
        if edit is None:
            return None

        new_root, pos = edit
        return update_state(state, new_root, collapsed_selection(pos))

    return command


def delete_selection() -> Command:
    def command(state: EditorState) -> Optional[EditorState]:
        if is_collapsed(state.selection):
            return None

        new_root, pos = delete_selection_content(state.root, state.selection)
        return update_state(state, new_root, collapsed_selection(pos))

    return command


def _delete_at(root: MathNode, pos: CursorPosition, forward: bool) -> Optional[Edit]:
    node = get_node_at_path(root, pos.path)
    if node is None or node.kind is not NodeKind.ROW:
        return None

    children = node.children

    if is_placeholder_row(node):
        if not pos.path:
            return None
        return _replace_enclosing_structure(root, parent_path(pos.path))

    if forward:
        if pos.offset >= len(children):
            return None
        return _delete_child(root, pos.path, pos.offset, forward=True)

    if pos.offset > 0:
        return _delete_child(root, pos.path, pos.offset - 1, forward=False)

    # Start of a nested row: leave it to the caller's fallback
    if pos.path:
        return None

    # Start of the root row deletes the first element
    if not children:
        return None
    return _delete_child(root, pos.path, 0, forward=True)


def _delete_child(root: MathNode, row_path, index: int, forward: bool) -> Edit:
    """Delete one child of a row, flattening structures into their main slot."""
    target_row = get_node_at_path(root, row_path)
    children = target_row.children
    target = children[index]

    content = _main_content(target)
    if content and len(children) > 1 and all(c.kind is NodeKind.PLACEHOLDER for c in content):
        content = ()

    remaining = children[:index] + content + children[index + 1:]
    new_root = replace_node_at_path(root, row_path, row(remaining or (placeholder(),)))

    offset = index if forward else index + len(content)
    return new_root, cursor(row_path, offset)


def _main_content(node: MathNode) -> Tuple[MathNode, ...]:
    """Nodes kept when a structure is flattened; leaves and matrices keep nothing."""
    kind = node.kind

    if kind is NodeKind.FRACTION:
        slot = node.numerator
    elif kind in (NodeKind.POWER, NodeKind.SUBSCRIPT, NodeKind.SUBSUP):
        slot = node.base
    elif kind is NodeKind.SQRT:
        slot = node.radicand
    elif kind is NodeKind.PARENS:
        slot = node.content
    elif kind is NodeKind.ROW:
        slot = node
    else:
        return ()

    return slot.children if slot.kind is NodeKind.ROW else (slot,)


def _replace_enclosing_structure(root: MathNode, structure_path) -> Optional[Edit]:
    """
    Delete at an empty slot: the structure owning it becomes a placeholder.

    In a row the placeholder takes the structure's position and the cursor
    goes before it. Where the structure fills a non-row slot (a script base)
    it becomes an empty row instead, so the slot stays editable.
    """
    if not structure_path:
        return None

    structure = get_node_at_path(root, structure_path)
    if structure is None or structure.kind is NodeKind.ROW:
        return None

    parent = parent_path(structure_path)
    parent_node = get_node_at_path(root, parent)
    if parent_node is None:
        return None

    logger.debug(f"Replacing {structure.kind.value} at {list(structure_path)} with a placeholder")

    if parent_node.kind is not NodeKind.ROW:
        new_root = replace_node_at_path(root, structure_path, empty_row())
        return new_root, cursor(structure_path, 0)

    new_root = replace_node_at_path(root, structure_path, placeholder())
    return new_root, cursor(parent, index_in_parent(structure_path))


__all__ = ['delete_backward', 'delete_forward', 'delete_selection']
