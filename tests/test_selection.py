import pytest
from math_editor.cursor import cursor
from math_editor.models import fraction, number, operator, row, symbol
from math_editor.selection import (
    Direction, Selection, collapse_to_anchor, collapse_to_end, collapse_to_focus,
    collapse_to_start, collapsed_selection, contains_path, contains_position,
    describe_selection, extend_to, extract_selected_nodes, get_common_ancestor_path,
    get_direction, get_end, get_start, is_collapsed, normalize_selection,
    selection, selection_at_end, selection_at_start, selections_equal,
)


@pytest.fixture
def tree():
    """1 + a/b - c"""
    return row([
        number('1'),
        operator('+'),
        fraction(row([symbol('a')]), row([symbol('b')])),
        operator('-'),
        symbol('c'),
    ])


class TestSelectionBasics:

    def test_collapsed(self):
        """Test collapsed selections."""
        sel = collapsed_selection(cursor((), 2))
        assert is_collapsed(sel)
        assert get_direction(sel) is Direction.NONE

    def test_direction(self):
        """Test forward and backward selections."""
        forward = selection(cursor((), 1), cursor((), 3))
        backward = selection(cursor((), 3), cursor((), 1))
        assert get_direction(forward) is Direction.FORWARD
        assert get_direction(backward) is Direction.BACKWARD

    def test_start_and_end_ignore_direction(self):
        """Test that start/end are in document order."""
        backward = selection(cursor((), 3), cursor((2, 0), 0))
        assert get_start(backward) == cursor((2, 0), 0)
        assert get_end(backward) == cursor((), 3)

    def test_collapse(self):
        """Test collapsing to each end."""
        sel = selection(cursor((), 4), cursor((), 1))
        assert collapse_to_focus(sel) == collapsed_selection(cursor((), 1))
        assert collapse_to_anchor(sel) == collapsed_selection(cursor((), 4))
        assert collapse_to_start(sel) == collapsed_selection(cursor((), 1))
        assert collapse_to_end(sel) == collapsed_selection(cursor((), 4))

    def test_extend_keeps_anchor(self):
        """Test focus extension."""
        sel = extend_to(collapsed_selection(cursor((), 1)), cursor((), 4))
        assert sel == Selection(cursor((), 1), cursor((), 4))

    def test_at_start_and_end(self, tree):
        """Test document start and end selections."""
        assert selection_at_start(tree) == collapsed_selection(cursor((), 0))
        assert selection_at_end(tree) == collapsed_selection(cursor((), 5))

    def test_equality(self):
        """Test selection equality."""
        assert selections_equal(
            selection(cursor([1], 0), cursor((), 2)),
            selection(cursor((1,), 0), cursor((), 2)),
        )


class TestRanges:

    def test_common_ancestor(self):
        """Test the deepest shared path."""
        sel = selection(cursor((2, 0), 0), cursor((2, 1), 1))
        assert get_common_ancestor_path(sel) == (2,)
        assert get_common_ancestor_path(selection(cursor((), 0), cursor((2, 1), 0))) == ()

    def test_contains_position(self):
        """Test inclusive range membership."""
        sel = selection(cursor((), 1), cursor((), 3))
        assert contains_position(sel, cursor((), 1))
        assert contains_position(sel, cursor((2, 0), 1))
        assert not contains_position(sel, cursor((), 4))

    def test_contains_path(self):
        """Test whether nodes lie in the selected range."""
        sel = selection(cursor((), 1), cursor((2, 1), 1))
        assert contains_path(sel, (1,))
        assert contains_path(sel, (2, 0))
        assert not contains_path(sel, (3,))


class TestNormalizeSelection:

    def test_row_ends_are_kept(self, tree):
        """Test that valid row cursors pass through."""
        sel = selection(cursor((), 1), cursor((2, 0), 1))
        assert normalize_selection(tree, sel) == sel

    def test_structure_ends_are_coerced(self, tree):
        """Test that ends on structures move to their row."""
        sel = selection(cursor((2,), 0), cursor((), 9))
        assert normalize_selection(tree, sel) == selection(cursor((), 3), cursor((), 5))


class TestExtractSelectedNodes:

    def test_collapsed_is_none(self, tree):
        """Test that nothing is extracted from a collapsed selection."""
        assert extract_selected_nodes(tree, collapsed_selection(cursor((), 1))) is None

    def test_same_row(self, tree):
        """Test a slice of one row."""
        sel = selection(cursor((), 0), cursor((), 2))
        assert extract_selected_nodes(tree, sel) == row([number('1'), operator('+')])

    def test_backward_same_row(self, tree):
        """Test that a backward selection extracts the same slice."""
        sel = selection(cursor((), 5), cursor((), 3))
        assert extract_selected_nodes(tree, sel) == row([operator('-'), symbol('c')])

    def test_across_rows(self, tree):
        """Test that a selection into a structure takes the whole structure."""
        sel = selection(cursor((), 1), cursor((2, 0), 1))
        selected = extract_selected_nodes(tree, sel)
        assert selected == row([operator('+'), tree.children[2]])

    def test_across_slots(self, tree):
        """Test that a selection spanning slots returns the structure."""
        sel = selection(cursor((2, 0), 0), cursor((2, 1), 1))
        assert extract_selected_nodes(tree, sel) is tree.children[2]


class TestDescribeSelection:

    def test_cursor(self):
        """Test description of a cursor."""
        assert describe_selection(collapsed_selection(cursor((2, 0), 1))) == "Cursor at path [2, 0], offset 1"

    def test_range(self):
        """Test description of a range."""
        text = describe_selection(selection(cursor((), 3), cursor((), 0)))
        assert text == "Selection from []:3 to []:0 (backward)"
