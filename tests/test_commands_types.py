from math_editor.cursor import cursor
from math_editor.commands import (
    chain_commands, delete_forward, execute_command, insert_character, move_left,
    move_right, try_commands,
)


def _never(state):
    return None


class TestExecuteCommand:

    def test_applied(self, empty_state):
        """Test the result of a command that applies."""
        result = execute_command(empty_state, insert_character('x'), merge_history=True)
        assert result.changed
        assert result.record_history
        assert result.merge_history
        assert result.state is not empty_state

    def test_not_applied(self, empty_state):
        """Test that a command that does not apply leaves the state as is."""
        result = execute_command(empty_state, _never)
        assert not result.changed
        assert not result.record_history
        assert result.state is empty_state


class TestChainCommands:

    def test_all_steps(self, empty_state, latex_of):
        """Test running every step in order."""
        state = chain_commands(insert_character('a'), insert_character('b'))(empty_state)
        assert latex_of(state) == 'ab'

    def test_stops_at_first_failure(self, empty_state, latex_of):
        """Test that later steps are skipped once one fails."""
        chained = chain_commands(insert_character('a'), _never, insert_character('b'))
        assert latex_of(chained(empty_state)) == 'a'

    def test_nothing_applies(self, empty_state):
        """Test that a chain whose first step fails does not apply."""
        assert chain_commands(_never, insert_character('a'))(empty_state) is None


class TestTryCommands:

    def test_first_applicable(self, state_from_latex):
        """Test that the first applicable command wins."""
        state = state_from_latex("ab")
        result = try_commands(move_left(), move_right())(state)
        assert result.selection.focus == cursor((), 1)

    def test_none_applicable(self, empty_state):
        """Test that no command applying yields None."""
        assert try_commands(_never, delete_forward())(empty_state) is None
