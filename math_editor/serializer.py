"""
LaTeX serializer for expression trees.

Output is deterministic and aims for readable LaTeX with as few braces as
re-parsing allows: serializing a parsed tree and parsing the result again
yields an equal tree.
"""

import regex
import logging
from typing import Optional
from dataclasses import dataclass

from .models import AUTO_SIZE, MathNode, NodeKind, SpaceSize
from .latex_parser import LaTeXParser
from .tokenizer import is_text_char


logger = logging.getLogger(__name__)


@dataclass
class SerializeOptions:
    """Serializer switches"""
    # Spaces around + - = < > and before command operators
    pretty_print: bool = False
    # Emit placeholders as {}; external output sets this to False
    include_placeholders: bool = True


class LaTeXSerializer:
    """Convert expression trees back to LaTeX source."""

    COMMAND_OPERATORS = LaTeXParser.OPERATORS | LaTeXParser.DELIMITER_COMMANDS

    SPACED_OPERATORS = frozenset('+-=<>')

    SPACE_COMMANDS = {
        SpaceSize.THIN: '\\,',
        SpaceSize.MEDIUM: '\\:',
        SpaceSize.THICK: '\\;',
        SpaceSize.QUAD: '\\quad',
        SpaceSize.QQUAD: '\\qquad',
    }

    # Bases that must be grouped so trailing scripts attach to the whole thing
    BRACED_BASE_KINDS = frozenset({
        NodeKind.ROW, NodeKind.FRACTION, NodeKind.POWER, NodeKind.SUBSCRIPT,
        NodeKind.SUBSUP, NodeKind.OPERATOR, NodeKind.TEXT, NodeKind.SPACE,
    })

    # Script arguments that are always grouped
    BRACED_SCRIPT_KINDS = frozenset({
        NodeKind.ROW, NodeKind.PLACEHOLDER, NodeKind.FRACTION, NodeKind.SQRT,
        NodeKind.PARENS, NodeKind.POWER, NodeKind.SUBSCRIPT, NodeKind.SUBSUP,
        NodeKind.MATRIX,
    })

    # Adjacent pieces that would fuse into one token without a separator
    TRAILING_COMMAND = regex.compile(r'\\[a-zA-Z]+$')
    LEADING_LETTER = regex.compile(r'^[a-zA-Z]')
    TRAILING_NUMERIC = regex.compile(r'[0-9.]$')
    LEADING_NUMERIC = regex.compile(r'^[0-9.]')

    def __init__(self, options: Optional[SerializeOptions] = None):
        self.options = options or SerializeOptions()

    def serialize(self, node: MathNode) -> str:
        kind = node.kind

        if kind is NodeKind.NUMBER:
            return node.value
        if kind is NodeKind.SYMBOL:
            return self._serialize_symbol(node)
        if kind is NodeKind.OPERATOR:
            return self._serialize_operator(node)
        if kind is NodeKind.TEXT:
            return f"\\text{{{node.value}}}"
        if kind is NodeKind.SPACE:
            return self.SPACE_COMMANDS.get(node.size, '')
        if kind is NodeKind.PLACEHOLDER:
            return '{}' if self.options.include_placeholders else ''
        if kind is NodeKind.ROW:
            return self._serialize_row(node)
        if kind is NodeKind.FRACTION:
            return f"\\frac{{{self.serialize(node.numerator)}}}{{{self.serialize(node.denominator)}}}"
        if kind is NodeKind.POWER:
            return self._serialize_base(node.base) + self._script('^', node.exponent)
        if kind is NodeKind.SUBSCRIPT:
            return self._serialize_base(node.base) + self._script('_', node.subscript)
        if kind is NodeKind.SUBSUP:
            return (
                self._serialize_base(node.base)
                + self._script('_', node.subscript)
                + self._script('^', node.superscript)
            )
        if kind is NodeKind.SQRT:
            return self._serialize_sqrt(node)
        if kind is NodeKind.PARENS:
            return self._serialize_parens(node)
        if kind is NodeKind.FUNCTION:
            return self._serialize_function(node)
        if kind is NodeKind.MATRIX:
            return self._serialize_matrix(node)

        logger.debug(f"No serialization for node kind {kind}")
        return ''

    def _serialize_symbol(self, node: MathNode) -> str:
        if is_text_char(node.value):
            return node.value
        return '\\' + node.value

    def _serialize_operator(self, node: MathNode) -> str:
        value = node.value
        pad = ' ' if self.options.pretty_print else ''

        if value in self.COMMAND_OPERATORS or (len(value) > 1 and value.isalpha()):
            return f"{pad}\\{value} "
        if value in self.SPACED_OPERATORS:
            return f"{pad}{value}{pad}"
        return value

    def _serialize_row(self, node: MathNode) -> str:
        result = ''
        for child in node.children:
            part = self.serialize(child)
            if child.kind is NodeKind.ROW:
                part = f"{{{part}}}"
            result = self._join(result, part)
        return result

    def _join(self, left: str, right: str) -> str:
        """Concatenate two fragments, separating them if they would merge."""
        if not left or not right:
            return left + right
        if self.TRAILING_COMMAND.search(left) and self.LEADING_LETTER.match(right):
            return f"{left} {right}"
        if self.TRAILING_NUMERIC.search(left) and self.LEADING_NUMERIC.match(right):
            return f"{left} {right}"
        return left + right

    def _serialize_base(self, node: MathNode) -> str:
        node = _unwrap_single(node)

        if node.kind is NodeKind.PLACEHOLDER:
            return self.serialize(node)

        serialized = self.serialize(node)
        if node.kind in self.BRACED_BASE_KINDS or self._is_large_operator(node):
            return f"{{{serialized}}}"
        return serialized

    def _script(self, marker: str, node: MathNode) -> str:
        node = _unwrap_single(node)

        if node.kind is NodeKind.PLACEHOLDER:
            return marker + '{}'
        if self._needs_braces(node):
            return f"{marker}{{{self.serialize(node)}}}"
        return self._join(marker, self.serialize(node))

    def _needs_braces(self, node: MathNode) -> bool:
        """Check if a script argument must be grouped to re-parse as one unit."""
        kind = node.kind

        if kind in self.BRACED_SCRIPT_KINDS:
            return True
        if kind is NodeKind.NUMBER:
            return len(node.value) > 1
        if kind is NodeKind.SYMBOL:
            return len(node.value) > 1 and node.value not in LaTeXParser.GREEK_LETTERS
        if kind is NodeKind.FUNCTION:
            return node.limits is not None or node.argument is not None
        return False

    def _is_large_operator(self, node: MathNode) -> bool:
        return node.kind is NodeKind.FUNCTION and node.name in LaTeXParser.LARGE_OPERATORS

    def _serialize_sqrt(self, node: MathNode) -> str:
        radicand = self.serialize(node.radicand)
        if node.index is None:
            return f"\\sqrt{{{radicand}}}"
        return f"\\sqrt[{self.serialize(node.index)}]{{{radicand}}}"

    def _serialize_parens(self, node: MathNode) -> str:
        content = self.serialize(node.content)

        if node.size == AUTO_SIZE:
            opening = self._join('\\left' + _escape_delimiter(node.open), content)
            return self._join(opening, '\\right' + _escape_delimiter(node.close))

        opening = self._join(_escape_delimiter(node.open), content)
        return self._join(opening, _escape_delimiter(node.close))

    def _serialize_function(self, node: MathNode) -> str:
        result = '\\' + node.name

        if node.limits is not None:
            if node.limits.lower is not None:
                result += self._script('_', node.limits.lower)
            if node.limits.upper is not None:
                result += self._script('^', node.limits.upper)

        if node.argument is not None:
            argument = self.serialize(node.argument)
            if argument.startswith(('{', '(', '[', '\\left')):
                result += argument
            elif self._needs_braces(_unwrap_single(node.argument)):
                result += f"{{{argument}}}"
            else:
                result = self._join(result, argument)

        return result

    def _serialize_matrix(self, node: MathNode) -> str:
        result = f"\\begin{{{node.style}}}"
        if node.style == 'array':
            # The column group is mandatory for array, even when empty
            result += f"{{{node.col_spec or ''}}}"

        rows = [
            ' & '.join(self.serialize(cell) for cell in r)
            for r in node.rows
        ]
        result += ' \\\\ '.join(rows)
        return result + f"\\end{{{node.style}}}"


def _unwrap_single(node: MathNode) -> MathNode:
    """Strip single-child row wrappers added by editor normalization."""
    while node.kind is NodeKind.ROW and len(node.children) == 1:
        node = node.children[0]
    return node


def _escape_delimiter(delim: str) -> str:
    if delim == '{':
        return '\\{'
    if delim == '}':
        return '\\}'
    return delim


def serialize_to_latex(tree: MathNode, options: Optional[SerializeOptions] = None,
                       **kwargs) -> str:
    """
    Serialize an expression tree to LaTeX.

    Args:
        tree: Root node (raw parser output or editor-normalized)
        options: Serializer options; keyword arguments build one when omitted

    Returns:
        LaTeX source. Never fails.
    """
    if options is None:
        options = SerializeOptions(**kwargs)
    return LaTeXSerializer(options).serialize(tree)


__all__ = ['SerializeOptions', 'LaTeXSerializer', 'serialize_to_latex']
