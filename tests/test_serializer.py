import pytest
from math_editor.serializer import LaTeXSerializer, SerializeOptions, serialize_to_latex
from math_editor.latex_parser import parse_latex
from math_editor.models import (
    AUTO_SIZE, SpaceSize, empty_row, fraction, function, matrix, normalize_for_editor,
    number, operator, parens, placeholder, power, row, space, sqrt, subscript,
    subsup, symbol, text,
)


class TestLaTeXSerializer:

    def test_leaves(self, serializer):
        """Test serialization of leaf nodes."""
        assert serializer.serialize(number('3.5')) == '3.5'
        assert serializer.serialize(symbol('x')) == 'x'
        assert serializer.serialize(symbol('alpha')) == '\\alpha'
        assert serializer.serialize(text('hi')) == '\\text{hi}'
        assert serializer.serialize(space(SpaceSize.THIN)) == '\\,'

    def test_operators(self, serializer):
        """Test plain and command operators."""
        assert serializer.serialize(operator('+')) == '+'
        assert serializer.serialize(operator('times')) == '\\times '

    def test_placeholders(self, serializer, external_serializer):
        """Test placeholders kept as {} or dropped."""
        tree = row([symbol('x'), operator('+'), placeholder()])
        assert serializer.serialize(tree) == 'x+{}'
        assert external_serializer.serialize(tree) == 'x+'

    def test_pretty_print(self):
        """Test spacing around relations and binary operators."""
        tree = row([symbol('a'), operator('='), symbol('b'), operator('cdot'), symbol('c')])
        latex = serialize_to_latex(tree, pretty_print=True)
        assert latex == 'a = b \\cdot c'

    def test_command_followed_by_letter(self, serializer):
        """Test that a command is separated from a following letter."""
        tree = row([operator('times'), symbol('x')])
        assert serializer.serialize(tree) == '\\times x'
        tree = row([symbol('alpha'), symbol('x')])
        assert serializer.serialize(tree) == '\\alpha x'

    def test_adjacent_numbers_stay_apart(self, serializer):
        """Test that two number nodes do not fuse into one."""
        tree = row([number('1'), number('2')])
        latex = serializer.serialize(tree)
        assert latex == '1 2'
        assert parse_latex(latex) == tree

    def test_fraction_and_roots(self, serializer):
        """Test fraction and root serialization."""
        assert serializer.serialize(fraction(symbol('a'), symbol('b'))) == '\\frac{a}{b}'
        assert serializer.serialize(sqrt(symbol('x'), number('3'))) == '\\sqrt[3]{x}'

    def test_scripts(self, serializer):
        """Test script serialization and bracing."""
        assert serializer.serialize(power(symbol('x'), number('2'))) == 'x^2'
        assert serializer.serialize(power(symbol('x'), number('10'))) == 'x^{10}'
        assert serializer.serialize(subscript(symbol('a'), symbol('ij'))) == 'a_{ij}'
        assert serializer.serialize(subsup(symbol('x'), number('1'), number('2'))) == 'x_1^2'
        assert serializer.serialize(power(symbol('e'), symbol('alpha'))) == 'e^\\alpha'

    def test_compound_base_is_braced(self, serializer):
        """Test that compound bases are grouped."""
        base = row([symbol('a'), operator('+'), symbol('b')])
        assert serializer.serialize(power(base, number('2'))) == '{a+b}^2'
        nested = power(power(symbol('x'), number('2')), number('3'))
        assert serializer.serialize(nested) == '{x^2}^3'

    def test_empty_script_slot(self, serializer, external_serializer):
        """Test that an empty script slot keeps its braces."""
        tree = power(symbol('x'), empty_row())
        assert serializer.serialize(tree) == 'x^{}'
        assert external_serializer.serialize(tree) == 'x^{}'

    def test_parens(self, serializer):
        """Test delimiter serialization."""
        assert serializer.serialize(parens(symbol('x'))) == '(x)'
        assert serializer.serialize(parens(symbol('x'), '{', '}')) == '\\{x\\}'
        auto = parens(symbol('x'), '\\langle', '\\rangle', AUTO_SIZE)
        assert serializer.serialize(auto) == '\\left\\langle x\\right\\rangle'

    def test_functions(self, serializer):
        """Test functions with arguments and limits."""
        assert serializer.serialize(function('sin', symbol('x'))) == '\\sin x'
        assert serializer.serialize(function('sin', parens(symbol('x')))) == '\\sin(x)'
        limits = function('sum', lower=row([symbol('i'), operator('='), number('0')]), upper=symbol('n'))
        assert serializer.serialize(limits) == '\\sum_{i=0}^n'

    def test_matrix(self, serializer):
        """Test matrix environments."""
        grid = matrix([[number('1'), number('0')], [number('0'), number('1')]], 'bmatrix')
        assert serializer.serialize(grid) == '\\begin{bmatrix}1 & 0 \\\\ 0 & 1\\end{bmatrix}'

    def test_array_col_spec(self, serializer):
        """Test that array writes its column specification."""
        grid = matrix([[symbol('a'), symbol('b')]], 'array', 'lr')
        assert serializer.serialize(grid) == '\\begin{array}{lr}a & b\\end{array}'

    def test_array_empty_col_spec(self, serializer):
        """Test that an empty column specification is still written and re-parses."""
        latex = r'\begin{array}{}1\end{array}'
        tree = parse_latex(latex)

        assert tree.col_spec == ''
        assert serializer.serialize(tree) == latex
        assert parse_latex(serializer.serialize(tree)) == tree

    def test_array_without_col_spec(self, serializer):
        """Test that an array built without a column specification re-parses."""
        grid = matrix([[symbol('a')]], 'array')
        assert serializer.serialize(grid) == '\\begin{array}{}a\\end{array}'
        assert parse_latex(serializer.serialize(grid)).rows == grid.rows


class TestRoundTrip:

    def test_parsed_formulas(self, sample_latex_formulas):
        """Test that parse then serialize is the identity on canonical input."""
        for name, latex in sample_latex_formulas.items():
            assert serialize_to_latex(parse_latex(latex)) == latex, name

    def test_normalized_tree_serializes_like_raw(self, sample_latex_formulas):
        """Test that editor normalization does not change the output."""
        for name, latex in sample_latex_formulas.items():
            tree = normalize_for_editor(parse_latex(latex))
            assert serialize_to_latex(tree) == latex, name

    @pytest.mark.parametrize("tree", [
        row([symbol('x'), operator('+'), number('1')]),
        power(row([operator('-'), symbol('x')]), number('2')),
        subsup(function('int'), number('0'), number('1')),
        power(parens(symbol('a')), number('2')),
        row([text('x'), number('1')]),
        row([function('sin'), operator('mid'), symbol('x')]),
    ])
    def test_tree_survives_reparse(self, tree):
        """Test that serialized trees parse back to equal trees."""
        assert parse_latex(serialize_to_latex(tree)) == tree


class TestSerializeOptions:

    def test_defaults(self):
        """Test default serializer options."""
        options = SerializeOptions()
        assert options.pretty_print is False
        assert options.include_placeholders is True

    def test_options_object_wins_over_kwargs(self):
        """Test that an explicit options object is used as given."""
        tree = placeholder()
        assert serialize_to_latex(tree, SerializeOptions(include_placeholders=False)) == ''
        assert LaTeXSerializer().serialize(tree) == '{}'
