import pytest
from math_editor.latex_parser import LaTeXParser, MathSyntaxError, parse_latex
from math_editor.models import (
    AUTO_SIZE, NodeKind, SpaceSize, fraction, function, matrix, number,
    operator, parens, placeholder, power, row, space, sqrt, subscript, subsup,
    symbol, text,
)


class TestLaTeXParser:

    def test_initialization(self):
        """Test LaTeXParser vocabularies."""
        parser = LaTeXParser()
        assert 'alpha' in parser.GREEK_LETTERS
        assert 'times' in parser.OPERATORS
        assert 'sin' in parser.FUNCTIONS
        assert 'sum' in parser.LARGE_OPERATORS

    def test_empty_input(self, latex_parser):
        """Test that empty input is a placeholder."""
        assert latex_parser.parse("") == placeholder()
        assert latex_parser.parse("   ") == placeholder()

    def test_single_atom_is_not_wrapped(self, latex_parser):
        """Test that a one-element expression is returned bare."""
        assert latex_parser.parse("x") == symbol('x')
        assert latex_parser.parse("42") == number('42')

    def test_row(self, latex_parser):
        """Test a sequence of atoms."""
        assert latex_parser.parse("x + 1") == row([symbol('x'), operator('+'), number('1')])

    def test_greek_and_command_operators(self, latex_parser):
        """Test Greek letters and named operators."""
        tree = latex_parser.parse(r"\alpha \leq \beta")
        assert tree == row([symbol('alpha'), operator('leq'), symbol('beta')])

    def test_unknown_command_becomes_symbol(self, latex_parser):
        """Test that unknown commands are kept as named symbols."""
        assert latex_parser.parse(r"\foo") == symbol('foo')

    def test_fraction(self, latex_parser):
        """Test fraction parsing."""
        tree = latex_parser.parse(r"\frac{a+b}{2}")
        assert tree == fraction(row([symbol('a'), operator('+'), symbol('b')]), number('2'))

    def test_empty_fraction_slots(self, latex_parser):
        """Test that empty groups become placeholders."""
        assert latex_parser.parse(r"\frac{}{}") == fraction(placeholder(), placeholder())

    def test_sqrt_with_index(self, latex_parser):
        """Test square and nth roots."""
        assert latex_parser.parse(r"\sqrt{x}") == sqrt(symbol('x'))
        assert latex_parser.parse(r"\sqrt[3]{x}") == sqrt(symbol('x'), number('3'))

    def test_scripts(self, latex_parser):
        """Test superscripts, subscripts and both."""
        assert latex_parser.parse("x^2") == power(symbol('x'), number('2'))
        assert latex_parser.parse("x_i") == subscript(symbol('x'), symbol('i'))
        assert latex_parser.parse("x_1^2") == subsup(symbol('x'), number('1'), number('2'))
        assert latex_parser.parse("x^2_1") == subsup(symbol('x'), number('1'), number('2'))

    def test_script_takes_single_token(self, latex_parser):
        """Test that an unbraced script takes one token only."""
        assert latex_parser.parse("x^23") == power(symbol('x'), number('23'))
        assert latex_parser.parse("e^xy") == row([power(symbol('e'), symbol('x')), symbol('y')])

    def test_braced_script(self, latex_parser):
        """Test grouped script arguments."""
        tree = latex_parser.parse("e^{-x}")
        assert tree == power(symbol('e'), row([operator('-'), symbol('x')]))

    def test_orphan_script(self, latex_parser):
        """Test that a script with nothing before it gets a placeholder base."""
        assert latex_parser.parse("^2") == power(placeholder(), number('2'))

    def test_script_on_group(self, latex_parser):
        """Test scripts on braced groups."""
        tree = latex_parser.parse("{a+b}^2")
        assert tree == power(row([symbol('a'), operator('+'), symbol('b')]), number('2'))

    def test_parens(self, latex_parser):
        """Test plain delimiters."""
        assert latex_parser.parse("(x)") == parens(symbol('x'), '(', ')')
        assert latex_parser.parse("[x]") == parens(symbol('x'), '[', ']')
        assert latex_parser.parse("|x|") == parens(symbol('x'), '|', '|')
        assert latex_parser.parse(r"\{x\}") == parens(symbol('x'), '{', '}')

    def test_parens_with_script(self, latex_parser):
        """Test a script attached to a parenthesized group."""
        tree = latex_parser.parse("(a+b)^2")
        assert tree.kind is NodeKind.POWER
        assert tree.base.kind is NodeKind.PARENS

    def test_left_right(self, latex_parser):
        """Test auto-sized delimiters."""
        tree = latex_parser.parse(r"\left[ x \right)")
        assert tree == parens(symbol('x'), '[', ')', AUTO_SIZE)

    def test_left_right_command_delimiters(self, latex_parser):
        """Test command delimiters and the null delimiter."""
        tree = latex_parser.parse(r"\left\langle x \right.")
        assert tree == parens(symbol('x'), '\\langle', '.', AUTO_SIZE)
        tree = latex_parser.parse(r"\left\| v \right\Vert")
        assert tree == parens(symbol('v'), '\\|', '\\|', AUTO_SIZE)

    def test_functions(self, latex_parser):
        """Test named functions."""
        tree = latex_parser.parse(r"\sin x")
        assert tree == row([function('sin'), symbol('x')])

    def test_function_with_power(self, latex_parser):
        """Test scripts on a named function."""
        tree = latex_parser.parse(r"\sin^2 x")
        assert tree == row([power(function('sin'), number('2')), symbol('x')])

    def test_large_operator_limits(self, latex_parser):
        """Test that limits are stored on the function node."""
        tree = latex_parser.parse(r"\sum_{i=1}^n")
        expected_lower = row([symbol('i'), operator('='), number('1')])
        assert tree == function('sum', lower=expected_lower, upper=symbol('n'))

    def test_large_operator_limits_any_order(self, latex_parser):
        """Test upper limit given before the lower one."""
        tree = latex_parser.parse(r"\int^1_0")
        assert tree == function('int', lower=number('0'), upper=number('1'))

    def test_text_and_spaces(self, latex_parser):
        """Test text commands and spacing commands."""
        tree = latex_parser.parse(r"\text{if } x \quad y")
        assert tree == row([text('if '), symbol('x'), space(SpaceSize.QUAD), symbol('y')])

    def test_nested_text_braces(self, latex_parser):
        """Test that text content keeps nested braces."""
        assert latex_parser.parse(r"\text{a{b}c}") == text('a{b}c')

    def test_matrix(self, latex_parser):
        """Test matrix environments."""
        tree = latex_parser.parse(r"\begin{pmatrix} a & b \\ c & d \end{pmatrix}")
        assert tree == matrix(
            [[symbol('a'), symbol('b')], [symbol('c'), symbol('d')]], 'pmatrix'
        )

    def test_matrix_trailing_row_separator(self, latex_parser):
        """Test that a trailing \\\\ does not add an empty row."""
        tree = latex_parser.parse(r"\begin{bmatrix} 1 \\ 2 \\ \end{bmatrix}")
        assert tree == matrix([[number('1')], [number('2')]], 'bmatrix')

    def test_array_column_spec(self, latex_parser):
        """Test that array keeps its column specification."""
        tree = latex_parser.parse(r"\begin{array}{cc} 1 & 2 \end{array}")
        assert tree.style == 'array'
        assert tree.col_spec == 'cc'

    def test_empty_matrix_cells(self, latex_parser):
        """Test empty cells become placeholders."""
        tree = latex_parser.parse(r"\begin{matrix} & \end{matrix}")
        assert tree == matrix([[placeholder(), placeholder()]], 'matrix')


class TestParserErrors:

    @pytest.mark.parametrize("latex", [
        "{x",
        "x}",
        r"\frac{a}",
        r"\sqrt[3",
        "(x",
        r"\left( x",
        r"\left< x \right>",
        r"\begin{align} x \end{align}",
        r"\begin{pmatrix} x \end{bmatrix}",
        r"\text{abc",
    ])
    def test_malformed_input_raises(self, latex_parser, latex):
        """Test that malformed input raises MathSyntaxError."""
        with pytest.raises(MathSyntaxError):
            latex_parser.parse(latex)

    def test_error_position(self, latex_parser):
        """Test that errors point at the offending token."""
        with pytest.raises(MathSyntaxError) as exc_info:
            latex_parser.parse("ab)")
        assert exc_info.value.position == 2

    def test_unknown_environment_position(self, latex_parser):
        """Test that unknown environments report the \\begin offset."""
        with pytest.raises(MathSyntaxError) as exc_info:
            latex_parser.parse(r"x \begin{cases} \end{cases}")
        assert exc_info.value.position == 2
        assert 'cases' in exc_info.value.message


class TestParseLatex:

    def test_cached_result_is_shared(self):
        """Test that repeated parses of the same input share the tree."""
        assert parse_latex("x^2+1") is parse_latex("x^2+1")

    def test_round_trip(self, sample_latex_formulas):
        """Test that serializing a parsed formula reproduces it."""
        from math_editor.serializer import serialize_to_latex

        for name, latex in sample_latex_formulas.items():
            assert serialize_to_latex(parse_latex(latex)) == latex, name
