import pytest
from unittest.mock import Mock, patch
from PIL import Image
from math_editor.config import COMMON_MACROS
from math_editor.models import fraction, placeholder, row, symbol
from math_editor.rendering import (
    BaseRenderer, MathRenderer, MatplotlibRenderer, RenderConfig, RenderResult,
    expand_macros, render_math,
)


class RecordingRenderer(BaseRenderer):
    """Renderer double that records the LaTeX it is asked to draw."""

    def __init__(self, config=None, available=True):
        super().__init__(config)
        self.available = available
        self.calls = []

    def is_available(self):
        return self.available

    def render_latex(self, latex, config=None):
        self.calls.append(latex)
        image = Image.new('RGB', (60, 20), color='white')
        return RenderResult(image=image, size=image.size, metadata={'latex': latex})


class TestRenderConfig:

    def test_default_config(self):
        """Test default render configuration."""
        config = RenderConfig()
        assert config.dpi == 300
        assert config.font_size == 12
        assert config.background_color == "white"
        assert config.max_cached_renders == 128
        assert config.macros == COMMON_MACROS


class TestRenderResult:

    def test_validity(self, sample_image):
        """Test is_valid for images and errors."""
        assert RenderResult(image=sample_image).is_valid
        assert not RenderResult().is_valid
        assert not RenderResult(image=sample_image, error="boom").is_valid

    def test_save(self, sample_image, temp_dir):
        """Test saving a rendered image."""
        path = temp_dir / 'formula.png'
        RenderResult(image=sample_image, size=sample_image.size).save(path)
        assert path.exists()

    def test_save_without_image(self, temp_dir):
        """Test that saving a failed render raises."""
        with pytest.raises(ValueError):
            RenderResult(error="boom").save(temp_dir / 'formula.png')


class TestExpandMacros:

    def test_expands_whole_commands(self):
        """Test that macros only match complete command names."""
        assert expand_macros(r'x\in\R', COMMON_MACROS) == r'x\in\mathbb{R}'
        assert expand_macros(r'a\Rightarrow b', COMMON_MACROS) == r'a\Rightarrow b'

    def test_single_pass(self):
        """Test that expansions are not expanded again."""
        macros = {'\\phi': '\\varphi', '\\varphi': '\\phi'}
        assert expand_macros(r'\phi+\varphi', macros) == r'\varphi+\phi'

    def test_no_macros(self):
        """Test an empty macro table."""
        assert expand_macros(r'\R', {}) == r'\R'


class TestMatplotlibRenderer:

    def test_cache_key(self):
        """Test that cache keys depend on LaTeX and options."""
        renderer = MatplotlibRenderer()
        config = RenderConfig()
        key = renderer.get_cache_key('x', config)

        assert key == renderer.get_cache_key('x', RenderConfig())
        assert key != renderer.get_cache_key('y', config)
        assert key != renderer.get_cache_key('x', RenderConfig(dpi=150))

    @patch.object(MatplotlibRenderer, 'is_available', return_value=False)
    def test_not_available(self, mock_available):
        """Test rendering without Matplotlib."""
        result = MatplotlibRenderer().render_latex('x')
        assert not result.is_valid
        assert 'not available' in result.error

    def test_cached_result(self, sample_image):
        """Test that cached renders are returned without drawing again."""
        renderer = MatplotlibRenderer()
        config = RenderConfig()
        renderer._cache[renderer.get_cache_key('x', config)] = RenderResult(
            image=sample_image, size=sample_image.size, metadata={'renderer': 'matplotlib'}
        )

        with patch.object(MatplotlibRenderer, 'is_available', return_value=True):
            result = renderer.render_latex('x', config)

        assert result.image is sample_image
        assert result.metadata['cached'] is True

        renderer.clear_cache()
        assert renderer._cache == {}

    def test_cache_is_bounded(self, sample_image):
        """Test that the oldest cached render is evicted past the limit."""
        renderer = MatplotlibRenderer()
        config = RenderConfig(max_cached_renders=2)
        for key in ('a', 'b', 'c'):
            renderer.store_in_cache(key, RenderResult(image=sample_image), config)

        assert list(renderer._cache) == ['b', 'c']

    def test_cache_disabled(self, sample_image):
        """Test that a zero limit keeps nothing cached."""
        renderer = MatplotlibRenderer()
        renderer.store_in_cache('a', RenderResult(image=sample_image), RenderConfig(max_cached_renders=0))
        assert renderer._cache == {}

    def test_render(self):
        """Test a real mathtext render."""
        pytest.importorskip('matplotlib')
        renderer = MatplotlibRenderer(RenderConfig(dpi=100))

        result = renderer.render_latex(r'\frac{a}{b}')
        assert result.is_valid
        assert result.size == result.image.size
        assert result.metadata['renderer'] == 'matplotlib'

    def test_render_error(self):
        """Test that mathtext failures come back as errors."""
        pytest.importorskip('matplotlib')
        renderer = MatplotlibRenderer(RenderConfig(dpi=100, cache_renders=False))

        with patch('matplotlib.pyplot.figure', side_effect=RuntimeError('no canvas')):
            result = renderer.render_latex('x')

        assert not result.is_valid
        assert 'no canvas' in result.error


class TestMathRenderer:

    def test_render_expands_macros(self):
        """Test that macros are expanded before rendering."""
        backend = RecordingRenderer()
        result = MathRenderer(renderer=backend).render_latex(r'x\in\R')

        assert result.is_valid
        assert backend.calls == [r'x\in\mathbb{R}']

    def test_render_tree_drops_placeholders(self):
        """Test rendering a tree with empty slots."""
        backend = RecordingRenderer()
        tree = row([fraction(row([symbol('a')]), row([placeholder()]))])
        MathRenderer(renderer=backend).render_tree(tree)

        assert backend.calls == [r'\frac{a}{}']

    def test_unavailable_renderer(self):
        """Test that an unavailable backend is reported, not called."""
        backend = RecordingRenderer(available=False)
        result = MathRenderer(renderer=backend).render_latex('x')

        assert not result.is_valid
        assert backend.calls == []

    def test_failed_render_is_returned(self):
        """Test that backend errors pass through."""
        backend = Mock(spec=BaseRenderer)
        backend.is_available.return_value = True
        backend.render_latex.return_value = RenderResult(error="bad")

        result = MathRenderer(renderer=backend).render_latex('x')
        assert result.error == "bad"

    def test_validate_latex(self):
        """Test LaTeX validation."""
        renderer = MathRenderer(renderer=RecordingRenderer())

        assert renderer.validate_latex(r'\frac{a}{b}') == (True, None)
        is_valid, error = renderer.validate_latex(r'\frac{a}')
        assert not is_valid
        assert error

    def test_clear_cache(self):
        """Test that clearing goes to the backend."""
        backend = RecordingRenderer()
        backend._cache['key'] = RenderResult()
        MathRenderer(renderer=backend).clear_cache()
        assert backend._cache == {}

    @patch.object(MatplotlibRenderer, 'is_available', return_value=False)
    def test_render_math(self, mock_available):
        """Test the convenience function with the default backend."""
        result = render_math('x')
        assert not result.is_valid
