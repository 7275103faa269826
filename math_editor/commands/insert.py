"""
Insertion commands.

Every insert first removes an active selection, then edits the row under the
cursor. A row holding a lone placeholder has the placeholder replaced instead
of gaining a sibling.
"""

import regex
import logging
from typing import Optional, Tuple

from ..models import (
    MATRIX_STYLES, MathNode, NodeKind, empty_row, fraction, function, matrix,
    number, operator, parens, placeholder, power, row, sqrt, subscript,
    subsup, symbol,
)
from ..cursor import (
    CursorPosition, cursor, get_node_at_path, index_in_parent, parent_path,
    replace_node_at_path,
)
from ..selection import (
    collapsed_selection, extract_selected_nodes, get_common_ancestor_path,
    get_end, get_start, is_collapsed,
)
from ..editor_state import EditorState, update_state
from ..latex_parser import LaTeXParser
from .types import Command


logger = logging.getLogger(__name__)

DIGIT = regex.compile(r'^[0-9]$')
LETTER = regex.compile(r'^[a-zA-Z]$')
OPERATOR_CHAR = regex.compile(r"^[+\-=<>*/!',.:;]$")

CLOSING_DELIMITERS = {'(': ')', '[': ']', '{': '}', '|': '|'}


# Leaves

def insert_character(char: str) -> Command:
    """
    Insert a digit, letter or punctuation character as a leaf.

    An opening brace starts a brace pair, as typing it in the session does.
    A backslash has no single-character LaTeX form and is not inserted.
    """
    if char == '{':
        return insert_parens('{')
    if char == '\\':
        return _rejected(f"character {char!r}")

    if DIGIT.match(char):
        node = number(char)
    elif LETTER.match(char):
        node = symbol(char)
    elif OPERATOR_CHAR.match(char):
        node = operator(char)
    else:
        node = symbol(char)

    return _insert_leaf(node)


def insert_operator(op: str) -> Command:
    """Insert an operator; command operators may be given with or without backslash."""
    return _insert_leaf(operator(op[1:] if op.startswith('\\') else op))


def insert_greek(name: str) -> Command:
    return _insert_leaf(symbol(name[1:] if name.startswith('\\') else name))


def insert_function(name: str) -> Command:
    """
    Insert a named function such as ``\\sin``.

    Large operators (sum, integral...) come with empty lower and upper
    limits and the cursor goes into the lower one; other functions leave the
    cursor just after the name.
    """
    name = name[1:] if name.startswith('\\') else name

    if name not in LaTeXParser.LARGE_OPERATORS:
        return _insert_leaf(function(name))

    def command(state: EditorState) -> Optional[EditorState]:
        root, pos = delete_selection_content(state.root, state.selection)
        node = function(name, lower=empty_row(), upper=empty_row())

        inserted = insert_node_at_position(root, pos, node)
        if inserted is None:
            return None

        new_root, after = inserted
        target = cursor(after.path + (after.offset - 1, 0), 0)
        return update_state(state, new_root, collapsed_selection(target))

    return command


def _rejected(what: str) -> Command:
    def command(state: EditorState) -> Optional[EditorState]:
        logger.debug(f"Rejected {what}")
        return None

    return command


def _insert_leaf(node: MathNode) -> Command:
    def command(state: EditorState) -> Optional[EditorState]:
        root, pos = delete_selection_content(state.root, state.selection)

        inserted = insert_node_at_position(root, pos, node)
        if inserted is None:
            return None

        new_root, after = inserted
        return update_state(state, new_root, collapsed_selection(after))

    return command


# Structures

def _insert_structure(build, selected_slot: int, selected_at_end: bool) -> Command:
    """
    Shared logic for fraction, sqrt and parens.

    ``build(content)`` makes the structure with content in its first slot.
    With a selection the selected nodes become that content and the cursor
    goes to ``selected_slot`` (at its end if ``selected_at_end``). Without one
    every slot is empty and the cursor goes to the first slot.
    """
    def command(state: EditorState) -> Optional[EditorState]:
        sel = state.selection

        if not is_collapsed(sel):
            selected = extract_selected_nodes(state.root, sel)
            if selected is not None:
                root, pos = delete_selection_content(state.root, sel)
                content = selected if selected.kind is NodeKind.ROW else row([selected])

                inserted = insert_node_at_position(root, pos, build(content))
                if inserted is None:
                    return None

                new_root, after = inserted
                slot_path = after.path + (after.offset - 1, selected_slot)
                offset = 0
                if selected_at_end:
                    offset = len(get_node_at_path(new_root, slot_path).children)
                target = cursor(slot_path, offset)
                return update_state(state, new_root, collapsed_selection(target))

            state = update_state(state, state.root, collapsed_selection(get_start(sel)))

        inserted = insert_node_at_position(state.root, state.selection.focus, build(empty_row()))
        if inserted is None:
            return None

        new_root, after = inserted
        target = cursor(after.path + (after.offset - 1, 0), 0)
        return update_state(state, new_root, collapsed_selection(target))

    return command


def insert_fraction() -> Command:
    """Insert a fraction; a selection becomes the numerator and the cursor goes below."""
    return _insert_structure(
        lambda content: fraction(content, empty_row()),
        selected_slot=1, selected_at_end=False,
    )


def insert_sqrt() -> Command:
    return _insert_structure(
        lambda content: sqrt(content),
        selected_slot=0, selected_at_end=True,
    )


def insert_parens(open: str = '(') -> Command:
    close = CLOSING_DELIMITERS.get(open, ')')
    return _insert_structure(
        lambda content: parens(content, open, close),
        selected_slot=0, selected_at_end=True,
    )


def insert_superscript() -> Command:
    """Raise the element left of the cursor to a new, empty exponent."""
    return _insert_script(superscript=True)


def insert_subscript() -> Command:
    return _insert_script(superscript=False)


def _insert_script(superscript: bool) -> Command:
    def command(state: EditorState) -> Optional[EditorState]:
        root, pos = delete_selection_content(state.root, state.selection)

        row_info = _containing_row(root, pos)
        if row_info is None:
            return None

        row_path, offset = row_info
        target_row = get_node_at_path(root, row_path)
        children = list(target_row.children)
        lone_placeholder = len(children) == 1 and children[0].kind is NodeKind.PLACEHOLDER

        # Nothing to the left: attach the script to an empty, editable base
        if offset == 0 or lone_placeholder:
            script = power(empty_row(), empty_row()) if superscript else subscript(empty_row(), empty_row())
            if lone_placeholder:
                children = [script]
            else:
                children.insert(0, script)
            new_root = replace_node_at_path(root, row_path, row(children))
            target = cursor(row_path + (0, 1), 0)
            return update_state(state, new_root, collapsed_selection(target))

        index = offset - 1
        base = children[index]

        # x_1 then ^ (or x^2 then _) completes a combined sub/superscript
        if superscript and base.kind is NodeKind.SUBSCRIPT:
            children[index] = subsup(base.base, base.subscript, empty_row())
            slot = 2
        elif not superscript and base.kind is NodeKind.POWER:
            children[index] = subsup(base.base, empty_row(), base.exponent)
            slot = 1
        else:
            children[index] = power(base, empty_row()) if superscript else subscript(base, empty_row())
            slot = 1

        new_root = replace_node_at_path(root, row_path, row(children))
        target = cursor(row_path + (index, slot), 0)
        return update_state(state, new_root, collapsed_selection(target))

    return command


def insert_matrix(rows: int = 2, cols: int = 2, style: str = 'pmatrix') -> Command:
    """Insert a rows x cols grid of empty cells; the cursor goes to the first cell."""
    def command(state: EditorState) -> Optional[EditorState]:
        if rows < 1 or cols < 1 or style not in MATRIX_STYLES:
            logger.debug(f"Rejected matrix {rows}x{cols} ({style})")
            return None

        root, pos = delete_selection_content(state.root, state.selection)
        grid = matrix([[empty_row() for _ in range(cols)] for _ in range(rows)], style)

        inserted = insert_node_at_position(root, pos, grid)
        if inserted is None:
            return None

        new_root, after = inserted
        target = cursor(after.path + (after.offset - 1, 0), 0)
        return update_state(state, new_root, collapsed_selection(target))

    return command


# Shared helpers

def _containing_row(root: MathNode, pos: CursorPosition) -> Optional[Tuple[Tuple[int, ...], int]]:
    """Nearest row at or above the cursor, with the offset to use in it."""
    node = get_node_at_path(root, pos.path)
    if node is None:
        return None
    if node.kind is NodeKind.ROW:
        return pos.path, pos.offset

    current = pos.path
    while current:
        parent = parent_path(current)
        parent_node = get_node_at_path(root, parent)
        if parent_node is not None and parent_node.kind is NodeKind.ROW:
            return parent, index_in_parent(current) + (1 if pos.offset > 0 else 0)
        current = parent

    if root.kind is NodeKind.ROW:
        return (), 0
    return None


def delete_selection_content(root: MathNode, sel) -> Tuple[MathNode, CursorPosition]:
    """
    Remove the selected range and return the new tree and the cursor.

    A collapsed selection leaves the tree untouched. Within a row the range
    between the offsets goes; across rows the common row ancestor loses the
    children from the start to the end child. A range spanning slots of one
    structure removes that structure. A row emptied here gets a placeholder.
    """
    if is_collapsed(sel):
        return root, sel.focus

    start = get_start(sel)
    end = get_end(sel)

    if start.path == end.path:
        node = get_node_at_path(root, start.path)
        if node is None or node.kind is not NodeKind.ROW:
            return root, start
        remaining = node.children[:start.offset] + node.children[end.offset:]
        return _replace_row(root, start.path, remaining), start

    common = get_common_ancestor_path(sel)
    common_node = get_node_at_path(root, common)
    if common_node is None:
        return root, start

    if common_node.kind is NodeKind.ROW:
        depth = len(common)
        start_index = start.path[depth] if len(start.path) > depth else start.offset
        end_index = end.path[depth] + 1 if len(end.path) > depth else end.offset
        remaining = common_node.children[:start_index] + common_node.children[end_index:]
        return _replace_row(root, common, remaining), cursor(common, start_index)

    # Remove the structure that owns both ends
    current = common
    while current:
        parent = parent_path(current)
        parent_node = get_node_at_path(root, parent)
        if parent_node is not None and parent_node.kind is NodeKind.ROW:
            index = index_in_parent(current)
            remaining = parent_node.children[:index] + parent_node.children[index + 1:]
            return _replace_row(root, parent, remaining), cursor(parent, index)
        current = parent

    return root, start


def _replace_row(root: MathNode, path, children) -> MathNode:
    return replace_node_at_path(root, path, row(children or (placeholder(),)))


def insert_node_at_position(root: MathNode, pos: CursorPosition,
                            node: MathNode) -> Optional[Tuple[MathNode, CursorPosition]]:
    """
    Splice a node into the row at the cursor.

    Returns the new tree and the cursor just after the inserted node, or
    None if the cursor does not address a row.
    """
    target = get_node_at_path(root, pos.path)
    if target is None or target.kind is not NodeKind.ROW:
        return None

    children = list(target.children)

    if len(children) == 1 and children[0].kind is NodeKind.PLACEHOLDER:
        new_root = replace_node_at_path(root, pos.path, row([node]))
        return new_root, cursor(pos.path, 1)

    offset = max(0, min(pos.offset, len(children)))
    children.insert(offset, node)
    new_root = replace_node_at_path(root, pos.path, row(children))
    return new_root, cursor(pos.path, offset + 1)


__all__ = [
    'insert_character', 'insert_operator', 'insert_greek', 'insert_function',
    'insert_fraction', 'insert_sqrt', 'insert_parens',
    'insert_superscript', 'insert_subscript', 'insert_matrix',
    'delete_selection_content', 'insert_node_at_position',
]
