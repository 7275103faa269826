"""
Configuration classes for the math editor
"""

import json
import logging
from dataclasses import dataclass, field, fields, asdict
from typing import Any, Dict, Optional, Union
from pathlib import Path

import yaml

from .models import MATRIX_STYLES


logger = logging.getLogger(__name__)


# Fixed substitution table applied before handing LaTeX to a renderer
COMMON_MACROS = {
    '\\R': '\\mathbb{R}',
    '\\N': '\\mathbb{N}',
    '\\Z': '\\mathbb{Z}',
    '\\Q': '\\mathbb{Q}',
    '\\C': '\\mathbb{C}',
    '\\eps': '\\varepsilon',
    '\\phi': '\\varphi',
}


@dataclass
class EditorConfig:
    """Editor session configuration."""
    # History
    max_history: int = 100
    merge_typing: bool = True

    # Output
    pretty_print: bool = False

    # Matrix insertion defaults
    default_matrix_style: str = 'pmatrix'
    default_matrix_rows: int = 2
    default_matrix_cols: int = 2

    # Rendering
    macros: Dict[str, str] = field(default_factory=lambda: dict(COMMON_MACROS))

    def __post_init__(self):
        """Validate values."""
        if self.max_history < 1:
            raise ValueError(f"max_history must be positive, got {self.max_history}")
        if self.default_matrix_style not in MATRIX_STYLES:
            raise ValueError(f"Unknown matrix style: {self.default_matrix_style}")
        if self.default_matrix_rows < 1 or self.default_matrix_cols < 1:
            raise ValueError("Default matrix dimensions must be positive")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EditorConfig':
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning(f"Ignoring unknown editor config keys: {sorted(unknown)}")
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> 'EditorConfig':
        """
        Load configuration from a YAML or JSON file.

        Falls back to defaults (with a warning) if the file cannot be read
        or does not hold a mapping.
        """
        path = Path(path)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                if path.suffix in ['.yaml', '.yml']:
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)

            if not isinstance(data, dict):
                raise ValueError("top level must be a mapping")

            config = cls.from_dict(data)
            logger.info(f"Loaded editor config from {path}")
            return config

        except Exception as e:
            logger.warning(f"Failed to load editor config from {path}: {e}")
            return cls()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_config(path: Optional[Union[str, Path]] = None) -> EditorConfig:
    """Load a config file, or the defaults when no path is given."""
    if path is None:
        return EditorConfig()
    return EditorConfig.from_file(path)


__all__ = ['COMMON_MACROS', 'EditorConfig', 'load_config']
