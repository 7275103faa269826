import logging
from io import BytesIO
from typing import Optional

from PIL import Image

from .base_renderer import BaseRenderer, RenderConfig, RenderResult


logger = logging.getLogger(__name__)


class MatplotlibRenderer(BaseRenderer):
    """Render LaTeX using Matplotlib mathtext."""

    def __init__(self, config: Optional[RenderConfig] = None):
        super().__init__(config)
        self._available = None

    def is_available(self) -> bool:
        """Check if Matplotlib is installed."""
        if self._available is None:
            try:
                import matplotlib  # noqa: F401
                self._available = True
            except ImportError:
                self._available = False
        return self._available

    def render_latex(self, latex: str, config: Optional[RenderConfig] = None) -> RenderResult:
        """Render LaTeX using Matplotlib."""
        config = config or self.config

        if not self.is_available():
            return RenderResult(error="Matplotlib not available")

        cache_key = self.get_cache_key(latex, config)
        if config.cache_renders and cache_key in self._cache:
            cached = self._cache[cache_key]
            return RenderResult(
                image=cached.image,
                size=cached.size,
                metadata={**cached.metadata, "cached": True}
            )

        try:
            import matplotlib
            matplotlib.use('Agg')
            import matplotlib.pyplot as plt
            from matplotlib import rcParams

            rcParams['mathtext.fontset'] = 'cm'
            rcParams['font.family'] = 'serif'

            fig = plt.figure(figsize=(10, 2))
            fig.patch.set_facecolor('none' if config.transparent_background else config.background_color)

            expression = latex
            if config.display_mode:
                expression = f'\\displaystyle {expression}'

            fig.text(
                0.5, 0.5, f'${expression}$',
                horizontalalignment='center',
                verticalalignment='center',
                fontsize=config.font_size,
                color=config.text_color,
                transform=fig.transFigure
            )

            buffer = BytesIO()
            try:
                fig.savefig(
                    buffer,
                    format='png',
                    dpi=config.dpi,
                    transparent=config.transparent_background,
                    bbox_inches='tight',
                    pad_inches=config.padding / config.dpi
                )
            finally:
                plt.close(fig)

            buffer.seek(0)
            image = Image.open(buffer)
            image.load()

            result = RenderResult(
                image=image,
                size=image.size,
                metadata={"renderer": "matplotlib", "dpi": config.dpi}
            )
            if config.cache_renders:
                self.store_in_cache(cache_key, result, config)
            return result

        except Exception as e:
            logger.error(f"Matplotlib render error: {e}")
            return RenderResult(error=f"Matplotlib render error: {str(e)}")
