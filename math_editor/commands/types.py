"""
Command protocol.

A command is a plain callable from an editor state to a new state, or None
when it does not apply in the current context. None is not an error: callers
try a fallback or ignore it.
"""

from typing import Callable, Optional
from dataclasses import dataclass

from ..editor_state import EditorState


Command = Callable[[EditorState], Optional[EditorState]]


@dataclass(frozen=True)
class CommandResult:
    """Outcome of running a command against a state."""
    state: EditorState
    changed: bool
    record_history: bool
    merge_history: bool


def execute_command(state: EditorState, command: Command, record_history: bool = True,
                    merge_history: bool = False) -> CommandResult:
    """Run a command, reporting the unchanged state if it does not apply."""
    new_state = command(state)

    if new_state is None:
        return CommandResult(state, False, False, False)

    return CommandResult(new_state, True, record_history, merge_history)


def chain_commands(*commands: Command) -> Command:
    """
    Run commands in sequence.

    Stops at the first command that does not apply; the chain as a whole
    applies if at least one step did.
    """
    def chained(state: EditorState) -> Optional[EditorState]:
        current = state
        for command in commands:
            result = command(current)
            if result is None:
                return None if current is state else current
            current = result
        return current

    return chained


def try_commands(*commands: Command) -> Command:
    """Return the result of the first command that applies."""
    def first_applicable(state: EditorState) -> Optional[EditorState]:
        for command in commands:
            result = command(state)
            if result is not None:
                return result
        return None

    return first_applicable


__all__ = ['Command', 'CommandResult', 'execute_command', 'chain_commands', 'try_commands']
