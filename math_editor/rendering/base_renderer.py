"""
Base classes for rendering system
"""

import hashlib
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, Union, Tuple
from abc import ABC, abstractmethod
from pathlib import Path
from PIL import Image

from ..config import COMMON_MACROS


@dataclass
class RenderConfig:
    """Configuration for rendering."""
    # Output settings
    dpi: int = 300
    font_size: int = 12
    padding: int = 4

    # Appearance
    background_color: str = "white"
    text_color: str = "black"
    transparent_background: bool = False
    display_mode: bool = False

    # Substitutions applied before rendering
    macros: Dict[str, str] = field(default_factory=lambda: dict(COMMON_MACROS))

    # Performance
    cache_renders: bool = True
    max_cached_renders: int = 128


@dataclass
class RenderResult:
    """Result of rendering operation."""
    image: Optional[Image.Image] = None
    size: Optional[Tuple[int, int]] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        """Check if render was successful."""
        return self.image is not None and not self.error

    def save(self, path: Union[str, Path]):
        """Save render result to file."""
        if self.image is None:
            raise ValueError("No render result to save")
        self.image.save(Path(path))


class BaseRenderer(ABC):
    """Base class for all renderers."""

    def __init__(self, config: Optional[RenderConfig] = None):
        self.config = config or RenderConfig()
        self._cache: Dict[str, RenderResult] = {}

    @abstractmethod
    def is_available(self) -> bool:
        """Check if renderer is available."""
        pass

    @abstractmethod
    def render_latex(self, latex: str, config: Optional[RenderConfig] = None) -> RenderResult:
        """Render LaTeX to an image."""
        pass

    def get_cache_key(self, latex: str, config: RenderConfig) -> str:
        """Generate cache key."""
        key_str = (
            f"{latex}_{config.dpi}_{config.font_size}_{config.text_color}_"
            f"{config.background_color}_{config.transparent_background}_{config.display_mode}"
        )
        return hashlib.md5(key_str.encode()).hexdigest()

    def store_in_cache(self, key: str, result: RenderResult, config: RenderConfig):
        """Cache a result, evicting the oldest entries beyond the configured size."""
        self._cache[key] = result
        while len(self._cache) > max(config.max_cached_renders, 0):
            del self._cache[next(iter(self._cache))]

    def clear_cache(self):
        """Clear render cache."""
        self._cache.clear()
