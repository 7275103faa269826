"""
Math Editor

A structured math editing core: an immutable expression tree, LaTeX import
and export, cursor and selection addressing, and pure editing commands with
undo/redo history.
"""

__version__ = "0.1.0"
__author__ = "Math Editor Team"

# Expression tree
from .models import (
    MathNode,
    NodeKind,
    SpaceSize,
    MATRIX_STYLES,
    row,
    number,
    symbol,
    operator,
    text,
    space,
    placeholder,
    fraction,
    power,
    subscript,
    subsup,
    sqrt,
    parens,
    function,
    matrix,
    empty_row,
    nodes_equal,
    normalize_for_editor,
)

# LaTeX in and out
from .tokenizer import Token, TokenType, tokenize
from .latex_parser import LaTeXParser, MathSyntaxError, parse_latex
from .serializer import LaTeXSerializer, SerializeOptions, serialize_to_latex

# Cursor, selection and state
from .cursor import CursorPosition, cursor, coerce_to_row_cursor, get_node_at_path
from .selection import Selection, collapsed_selection, selection
from .editor_state import (
    EditorState,
    History,
    create_empty_state,
    create_state_from_ast,
    create_history,
    push_history,
    undo,
    redo,
)

# Configuration and top-level session
from .config import EditorConfig, load_config
from .session import MathEditorSession

# Outputs
from .mathml_converter import MathMLConverter, tree_to_mathml
from .rendering import MathRenderer, RenderConfig, RenderResult

__all__ = [
    # Version
    "__version__",

    # Expression tree
    "MathNode",
    "NodeKind",
    "SpaceSize",
    "MATRIX_STYLES",
    "row",
    "number",
    "symbol",
    "operator",
    "text",
    "space",
    "placeholder",
    "fraction",
    "power",
    "subscript",
    "subsup",
    "sqrt",
    "parens",
    "function",
    "matrix",
    "empty_row",
    "nodes_equal",
    "normalize_for_editor",

    # LaTeX
    "Token",
    "TokenType",
    "tokenize",
    "LaTeXParser",
    "MathSyntaxError",
    "parse_latex",
    "LaTeXSerializer",
    "SerializeOptions",
    "serialize_to_latex",

    # Cursor, selection and state
    "CursorPosition",
    "cursor",
    "coerce_to_row_cursor",
    "get_node_at_path",
    "Selection",
    "collapsed_selection",
    "selection",
    "EditorState",
    "History",
    "create_empty_state",
    "create_state_from_ast",
    "create_history",
    "push_history",
    "undo",
    "redo",

    # Configuration and session
    "EditorConfig",
    "load_config",
    "MathEditorSession",

    # Outputs
    "MathMLConverter",
    "tree_to_mathml",
    "MathRenderer",
    "RenderConfig",
    "RenderResult",
]


# Convenience function
def create_session(latex=None, **kwargs):
    """Create an editor session, optionally seeded with LaTeX."""
    config = EditorConfig(**kwargs)
    return MathEditorSession(latex, config)
