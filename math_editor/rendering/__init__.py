from typing import Dict, Optional, Tuple
import logging

import regex

from ..models import MathNode
from ..latex_parser import MathSyntaxError, parse_latex
from ..serializer import SerializeOptions, serialize_to_latex
from .base_renderer import BaseRenderer, RenderConfig, RenderResult
from .matplotlib_renderer import MatplotlibRenderer


logger = logging.getLogger(__name__)


def expand_macros(latex: str, macros: Dict[str, str]) -> str:
    """
    Replace each macro command with its expansion in a single pass.

    A macro only matches as a whole command, so ``\\R`` leaves
    ``\\Rightarrow`` alone, and expansions are not expanded again.
    """
    if not macros:
        return latex

    names = sorted((name.lstrip('\\') for name in macros), key=len, reverse=True)
    pattern = regex.compile(r'\\(' + '|'.join(regex.escape(n) for n in names) + r')(?![a-zA-Z])')
    return pattern.sub(lambda m: macros['\\' + m.group(1)], latex)


class MathRenderer:
    """Main interface for rendering editor content."""

    def __init__(self, config: Optional[RenderConfig] = None,
                 renderer: Optional[BaseRenderer] = None):
        self.config = config or RenderConfig()
        self.renderer = renderer or MatplotlibRenderer(self.config)

        if not self.renderer.is_available():
            logger.warning(f"{self.renderer.__class__.__name__} is not available")

    def render_latex(self, latex: str, config: Optional[RenderConfig] = None) -> RenderResult:
        """Render LaTeX to an image after macro expansion."""
        config = config or self.config

        if not self.renderer.is_available():
            return RenderResult(error=f"{self.renderer.__class__.__name__} not available")

        expanded = expand_macros(latex, config.macros)
        result = self.renderer.render_latex(expanded, config)
        if not result.is_valid:
            logger.error(f"Render failed for {latex!r}: {result.error}")
        return result

    def render_tree(self, tree: MathNode, config: Optional[RenderConfig] = None) -> RenderResult:
        """Render an expression tree; placeholders are left out."""
        latex = serialize_to_latex(tree, SerializeOptions(include_placeholders=False))
        return self.render_latex(latex, config)

    def validate_latex(self, latex: str) -> Tuple[bool, Optional[str]]:
        """Check that LaTeX parses into an editable tree."""
        try:
            parse_latex(latex)
        except MathSyntaxError as e:
            return False, str(e)
        return True, None

    def clear_cache(self):
        self.renderer.clear_cache()


def render_math(content: str, config: Optional[RenderConfig] = None) -> RenderResult:
    """Convenience function to render LaTeX."""
    return MathRenderer(config).render_latex(content)


__all__ = [
    'BaseRenderer',
    'MathRenderer',
    'MatplotlibRenderer',
    'RenderConfig',
    'RenderResult',
    'expand_macros',
    'render_math',
]
