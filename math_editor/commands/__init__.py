"""
Command engine: pure state transitions for navigation, insertion and deletion.

Every factory returns a ``Command``, a callable taking an ``EditorState`` and
returning the next state, or None when it does not apply.
"""

from .types import Command, CommandResult, execute_command, chain_commands, try_commands
from .navigate import (
    move_left,
    move_right,
    move_up,
    move_down,
    move_to_line_start,
    move_to_line_end,
    move_to_document_start,
    move_to_document_end,
    select_all,
    move_to_next_placeholder,
    move_to_previous_placeholder,
)
from .insert import (
    insert_character,
    insert_operator,
    insert_greek,
    insert_function,
    insert_fraction,
    insert_sqrt,
    insert_parens,
    insert_superscript,
    insert_subscript,
    insert_matrix,
    delete_selection_content,
    insert_node_at_position,
)
from .delete import delete_backward, delete_forward, delete_selection

__all__ = [
    # Protocol
    'Command',
    'CommandResult',
    'execute_command',
    'chain_commands',
    'try_commands',

    # Navigation
    'move_left',
    'move_right',
    'move_up',
    'move_down',
    'move_to_line_start',
    'move_to_line_end',
    'move_to_document_start',
    'move_to_document_end',
    'select_all',
    'move_to_next_placeholder',
    'move_to_previous_placeholder',

    # Insertion
    'insert_character',
    'insert_operator',
    'insert_greek',
    'insert_function',
    'insert_fraction',
    'insert_sqrt',
    'insert_parens',
    'insert_superscript',
    'insert_subscript',
    'insert_matrix',
    'delete_selection_content',
    'insert_node_at_position',

    # Deletion
    'delete_backward',
    'delete_forward',
    'delete_selection',
]
