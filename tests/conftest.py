import pytest
import tempfile
from pathlib import Path
from PIL import Image
from math_editor.latex_parser import LaTeXParser
from math_editor.serializer import LaTeXSerializer, SerializeOptions, serialize_to_latex
from math_editor.mathml_converter import MathMLConverter
from math_editor.editor_state import EditorState, create_empty_state, create_state_from_ast
from math_editor.latex_parser import parse_latex
from math_editor.session import MathEditorSession


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_latex_formulas():
    """LaTeX formulas that survive a parse/serialize round trip unchanged."""
    return {
        'sum': 'x+y',
        'power': 'x^2',
        'subscript': 'a_1',
        'subsup': 'x_1^2',
        'fraction': r'\frac{a}{b}',
        'sqrt': r'\sqrt{x}',
        'root': r'\sqrt[3]{x}',
        'parens': '(a+b)',
        'auto_parens': r'\left(a\right)',
        'greek': r'\alpha+\beta',
        'function': r'\sin x',
        'large_operator': r'\sum_{i=1}^{10}i',
        'matrix': r'\begin{pmatrix}a & b \\ c & d\end{pmatrix}',
        'text': r'\text{if }x',
        'nested': r'x^{y^z}',
        'quadratic': r'\frac{-b\pm \sqrt{b^2-4ac}}{2a}',
    }


@pytest.fixture
def latex_parser():
    """LaTeX parser instance."""
    return LaTeXParser()


@pytest.fixture
def serializer():
    """Serializer that keeps placeholders."""
    return LaTeXSerializer()


@pytest.fixture
def external_serializer():
    """Serializer that drops placeholders, as for exported LaTeX."""
    return LaTeXSerializer(SerializeOptions(include_placeholders=False))


@pytest.fixture
def mathml_converter():
    """MathML converter instance."""
    return MathMLConverter()


@pytest.fixture
def empty_state():
    """Editor state holding a single placeholder."""
    return create_empty_state()


@pytest.fixture
def state_from_latex():
    """Factory for editor states parsed from LaTeX."""
    def make(latex: str) -> EditorState:
        return create_state_from_ast(parse_latex(latex))
    return make


@pytest.fixture
def run_commands():
    """Apply commands in order, failing the test if one does not apply."""
    def run(state, *commands):
        for command in commands:
            result = command(state)
            assert result is not None, f"command {command} did not apply"
            state = result
        return state
    return run


@pytest.fixture
def latex_of():
    """External LaTeX of a state."""
    def latex(state) -> str:
        return serialize_to_latex(state.root, include_placeholders=False)
    return latex


@pytest.fixture
def session():
    """Empty editor session."""
    return MathEditorSession()


@pytest.fixture
def sample_image():
    """Small image standing in for a rendered formula."""
    return Image.new('RGB', (120, 40), color='white')
