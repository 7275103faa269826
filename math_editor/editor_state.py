"""
Editor state and undo/redo history.

States are immutable snapshots of (tree, selection); history is the usual
past / present / future triple. Every function returns a new value.
"""

import logging
from typing import Tuple
from dataclasses import dataclass, replace

from .models import MathNode, NodeKind, empty_row, normalize_for_editor
from .cursor import cursor_at_start
from .selection import Selection, collapsed_selection, is_collapsed, selections_equal


logger = logging.getLogger(__name__)

DEFAULT_MAX_HISTORY = 100


@dataclass(frozen=True)
class EditorState:
    root: MathNode
    selection: Selection


@dataclass(frozen=True)
class History:
    past: Tuple[EditorState, ...]
    present: EditorState
    future: Tuple[EditorState, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'past', tuple(self.past))
        object.__setattr__(self, 'future', tuple(self.future))


# Creation

def create_empty_state() -> EditorState:
    """A root row holding one placeholder, cursor before it."""
    return EditorState(empty_row(), collapsed_selection(cursor_at_start(())))


def create_state_from_ast(tree: MathNode) -> EditorState:
    """Normalize a parsed tree for editing and put the cursor at the start."""
    return EditorState(normalize_for_editor(tree), collapsed_selection(cursor_at_start(())))


def create_history(initial: EditorState) -> History:
    return History((), initial, ())


# Updates

def update_root(state: EditorState, new_root: MathNode) -> EditorState:
    return replace(state, root=new_root)


def update_selection(state: EditorState, new_selection: Selection) -> EditorState:
    return replace(state, selection=new_selection)


def update_state(state: EditorState, new_root: MathNode, new_selection: Selection) -> EditorState:
    return EditorState(new_root, new_selection)


# History

def push_history(history: History, new_state: EditorState, merge: bool = False,
                 max_history: int = DEFAULT_MAX_HISTORY) -> History:
    """
    Record a new present state.

    With merge set (and something to undo) the present is replaced in
    place, so a run of fine-grained edits collapses into one undo step.
    Either way the redo stack is discarded.
    """
    if merge and history.past:
        return History(history.past, new_state, ())

    past = history.past + (history.present,)
    if len(past) > max_history:
        logger.debug(f"Dropping {len(past) - max_history} oldest undo step(s)")
        past = past[len(past) - max_history:]

    return History(past, new_state, ())


def undo(history: History) -> History:
    if not history.past:
        return history

    return History(
        history.past[:-1],
        history.past[-1],
        (history.present,) + history.future,
    )


def redo(history: History) -> History:
    if not history.future:
        return history

    return History(
        history.past + (history.present,),
        history.future[0],
        history.future[1:],
    )


def can_undo(history: History) -> bool:
    return len(history.past) > 0


def can_redo(history: History) -> bool:
    return len(history.future) > 0


def clear_history(history: History) -> History:
    """Drop undo and redo stacks, keeping the present state."""
    return History((), history.present, ())


# Comparison and queries

def states_equal(a: EditorState, b: EditorState) -> bool:
    return a.root == b.root and selections_equal(a.selection, b.selection)


def content_changed(a: EditorState, b: EditorState) -> bool:
    return a.root != b.root


def selection_changed(a: EditorState, b: EditorState) -> bool:
    return not selections_equal(a.selection, b.selection)


def is_empty(state: EditorState) -> bool:
    """True when the document holds nothing but a placeholder."""
    root = state.root

    if root.kind is NodeKind.PLACEHOLDER:
        return True
    if root.kind is NodeKind.ROW:
        return not root.children or (
            len(root.children) == 1 and root.children[0].kind is NodeKind.PLACEHOLDER
        )
    return False


def has_selection(state: EditorState) -> bool:
    return not is_collapsed(state.selection)


def debug_state(state: EditorState) -> str:
    sel = state.selection
    if is_collapsed(sel):
        where = f"cursor at {list(sel.focus.path)}:{sel.focus.offset}"
    else:
        where = (
            f"selection {list(sel.anchor.path)}:{sel.anchor.offset} "
            f"to {list(sel.focus.path)}:{sel.focus.offset}"
        )
    return f"EditorState(root={state.root.kind.value}, {where})"


__all__ = [
    'DEFAULT_MAX_HISTORY', 'EditorState', 'History',
    'create_empty_state', 'create_state_from_ast', 'create_history',
    'update_root', 'update_selection', 'update_state',
    'push_history', 'undo', 'redo', 'can_undo', 'can_redo', 'clear_history',
    'states_equal', 'content_changed', 'selection_changed',
    'is_empty', 'has_selection', 'debug_state',
]
