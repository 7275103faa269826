import logging
from typing import FrozenSet, List, Optional
from functools import lru_cache

from .models import (
    AUTO_SIZE, MATRIX_STYLES, MathNode, NodeKind, SpaceSize,
    fraction, function, matrix, number, operator, parens, placeholder, power,
    row, space, sqrt, subscript, subsup, symbol, text,
)
from .tokenizer import MathSyntaxError, Token, TokenStream, TokenType, tokenize


logger = logging.getLogger(__name__)


class LaTeXParser:
    """Recursive-descent parser from LaTeX source to an expression tree.

    Raw output is compact: an empty row becomes a placeholder and a row with
    a single child is replaced by that child.
    """

    GREEK_LETTERS = frozenset({
        'alpha', 'beta', 'gamma', 'delta', 'epsilon', 'zeta', 'eta', 'theta',
        'iota', 'kappa', 'lambda', 'mu', 'nu', 'xi', 'omicron', 'pi',
        'rho', 'sigma', 'tau', 'upsilon', 'phi', 'chi', 'psi', 'omega',
        'Alpha', 'Beta', 'Gamma', 'Delta', 'Epsilon', 'Zeta', 'Eta', 'Theta',
        'Iota', 'Kappa', 'Lambda', 'Mu', 'Nu', 'Xi', 'Omicron', 'Pi',
        'Rho', 'Sigma', 'Tau', 'Upsilon', 'Phi', 'Chi', 'Psi', 'Omega',
        'varepsilon', 'vartheta', 'varpi', 'varrho', 'varsigma', 'varphi',
    })

    OPERATORS = frozenset({
        'times', 'div', 'cdot', 'pm', 'mp', 'ast', 'star', 'circ', 'bullet',
        'oplus', 'ominus', 'otimes', 'oslash', 'odot',
        'le', 'leq', 'ge', 'geq', 'neq', 'ne', 'approx', 'equiv', 'sim', 'simeq',
        'll', 'gg', 'subset', 'supset', 'subseteq', 'supseteq', 'in', 'notin', 'ni',
        'cup', 'cap', 'setminus', 'emptyset', 'varnothing',
        'forall', 'exists', 'nexists', 'neg', 'land', 'lor', 'implies', 'iff',
        'to', 'gets', 'leftarrow', 'rightarrow', 'leftrightarrow',
        'Leftarrow', 'Rightarrow', 'Leftrightarrow',
        'infty', 'partial', 'nabla', 'degree',
        'ldots', 'cdots', 'vdots', 'ddots',
        'mapsto', 'longmapsto',
        'uparrow', 'downarrow', 'updownarrow',
        'Uparrow', 'Downarrow', 'Updownarrow',
        'nearrow', 'searrow', 'swarrow', 'nwarrow',
        'propto', 'cong', 'mid',
        '%',
    })

    FUNCTIONS = frozenset({
        'sin', 'cos', 'tan', 'cot', 'sec', 'csc',
        'arcsin', 'arccos', 'arctan', 'arccot',
        'sinh', 'cosh', 'tanh', 'coth',
        'log', 'ln', 'lg', 'exp',
        'lim', 'limsup', 'liminf',
        'min', 'max', 'sup', 'inf',
        'det', 'dim', 'ker', 'hom', 'arg',
        'deg', 'gcd', 'lcm', 'mod', 'bmod', 'pmod',
        'Pr',
    })

    LARGE_OPERATORS = frozenset({
        'sum', 'prod', 'coprod', 'int', 'oint', 'iint', 'iiint',
        'bigcup', 'bigcap', 'bigoplus', 'bigotimes', 'bigvee', 'bigwedge',
    })

    SPACE_COMMANDS = {
        '\\,': SpaceSize.THIN,
        '\\:': SpaceSize.MEDIUM,
        '\\;': SpaceSize.THICK,
        '\\quad': SpaceSize.QUAD,
        '\\qquad': SpaceSize.QQUAD,
    }

    TEXT_COMMANDS = frozenset({'text', 'textit', 'textbf', 'mathrm'})

    # Bare delimiter commands become operators outside \left/\right
    DELIMITER_COMMANDS = frozenset({
        'langle', 'rangle', 'lvert', 'rvert', 'lVert', 'rVert',
        'lfloor', 'rfloor', 'lceil', 'rceil',
    })

    MATRIX_ENVIRONMENTS = frozenset(MATRIX_STYLES)

    # Token value -> stored delimiter, for \left and \right
    SIMPLE_DELIMITERS = {
        '(': '(', ')': ')', '[': '[', ']': ']', '|': '|', '.': '.',
    }
    COMMAND_DELIMITERS = {
        '\\{': '{', '\\lbrace': '{',
        '\\}': '}', '\\rbrace': '}',
        '\\|': '\\|', '\\Vert': '\\|',
        '\\vert': '|',
        '\\langle': '\\langle', '\\rangle': '\\rangle',
        '\\lvert': '\\lvert', '\\rvert': '\\rvert',
        '\\lVert': '\\lVert', '\\rVert': '\\rVert',
        '\\lfloor': '\\lfloor', '\\rfloor': '\\rfloor',
        '\\lceil': '\\lceil', '\\rceil': '\\rceil',
    }

    ROW_TERMINATORS = frozenset({
        TokenType.EOF, TokenType.CLOSE_BRACE, TokenType.CLOSE_BRACKET,
        TokenType.CLOSE_PAREN, TokenType.AMPERSAND, TokenType.NEWLINE,
    })

    def __init__(self):
        self._stream: Optional[TokenStream] = None

    def parse(self, latex: str) -> MathNode:
        """Parse a LaTeX string.

        Args:
            latex: LaTeX math-mode source (no surrounding dollars)

        Returns:
            The raw (not editor-normalized) expression tree

        Raises:
            MathSyntaxError: on unbalanced groups, bad delimiters, unknown
                environments or trailing unconsumed input
        """
        return self.parse_tokens(tokenize(latex))

    def parse_tokens(self, tokens: List[Token]) -> MathNode:
        self._stream = TokenStream(tokens)
        result = self._parse_row()

        self._stream.skip_whitespace()
        if not self._stream.is_eof():
            token = self._stream.peek()
            raise MathSyntaxError(f"Unexpected token {token.value!r}", token.position)

        return result

    def _parse_row(self, stop_values: FrozenSet[str] = frozenset()) -> MathNode:
        stream = self._stream
        children = []

        while True:
            stream.skip_whitespace()
            token = stream.peek()

            if token.type in self.ROW_TERMINATORS:
                break
            if token.value in stop_values and token.type in (TokenType.COMMAND, TokenType.PIPE):
                break

            children.append(self._parse_atom())

        if not children:
            return placeholder()
        if len(children) == 1:
            return children[0]
        return row(children)

    def _parse_atom(self) -> MathNode:
        stream = self._stream
        token = stream.peek()

        if token.type is TokenType.NUMBER:
            stream.next()
            return self._parse_scripts(number(token.value))

        if token.type is TokenType.TEXT:
            stream.next()
            return self._parse_scripts(symbol(token.value))

        if token.type is TokenType.OPERATOR:
            stream.next()
            return operator(token.value)

        if token.type is TokenType.COMMAND:
            return self._parse_command()

        if token.type is TokenType.OPEN_BRACE:
            return self._parse_scripts(self._parse_group())

        if token.type in (TokenType.OPEN_PAREN, TokenType.OPEN_BRACKET, TokenType.PIPE):
            return self._parse_delimited_group()

        if token.type in (TokenType.SUPERSCRIPT, TokenType.SUBSCRIPT):
            # Orphan script: nothing to attach to
            return self._parse_scripts(placeholder())

        raise MathSyntaxError(f"Unexpected token {token.value!r}", token.position)

    def _parse_command(self, allow_scripts: bool = True) -> MathNode:
        token = self._stream.next()
        name = token.value[1:]

        if token.value in self.SPACE_COMMANDS:
            return space(self.SPACE_COMMANDS[token.value])

        if name in self.GREEK_LETTERS:
            return self._maybe_scripts(symbol(name), allow_scripts)

        if name in self.OPERATORS:
            return operator(name)

        if name in self.FUNCTIONS:
            return self._maybe_scripts(function(name), allow_scripts)

        if name in self.LARGE_OPERATORS:
            return self._parse_large_operator(name, allow_scripts)

        if name == 'frac':
            return self._maybe_scripts(self._parse_fraction(), allow_scripts)

        if name == 'sqrt':
            return self._maybe_scripts(self._parse_sqrt(), allow_scripts)

        if name in self.TEXT_COMMANDS:
            return self._parse_text()

        if name == 'left':
            return self._maybe_scripts(self._parse_left_right(), allow_scripts)

        if name == 'begin':
            return self._maybe_scripts(self._parse_environment(token), allow_scripts)

        if name == '{':
            return self._maybe_scripts(self._parse_brace_group(), allow_scripts)

        if name in self.DELIMITER_COMMANDS:
            return operator(name)

        # Unknown command: keep it as a named symbol
        logger.debug(f"Unknown command {token.value!r} treated as symbol")
        return self._maybe_scripts(symbol(name), allow_scripts)

    def _maybe_scripts(self, base: MathNode, allow_scripts: bool) -> MathNode:
        return self._parse_scripts(base) if allow_scripts else base

    def _parse_scripts(self, base: MathNode) -> MathNode:
        """Attach at most one superscript and one subscript to base."""
        stream = self._stream
        sup = None
        sub = None

        while True:
            stream.skip_whitespace()
            if sup is None and stream.try_consume(TokenType.SUPERSCRIPT):
                sup = self._parse_script_arg()
            elif sub is None and stream.try_consume(TokenType.SUBSCRIPT):
                sub = self._parse_script_arg()
            else:
                break

        if sup is not None and sub is not None:
            return subsup(base, sub, sup)
        if sup is not None:
            return power(base, sup)
        if sub is not None:
            return subscript(base, sub)
        return base

    def _parse_script_arg(self) -> MathNode:
        """A braced group or a single token; anything else is an empty slot."""
        stream = self._stream
        stream.skip_whitespace()
        token = stream.peek()

        if token.type is TokenType.OPEN_BRACE:
            return self._parse_group()
        if token.type is TokenType.NUMBER:
            stream.next()
            return number(token.value)
        if token.type is TokenType.TEXT:
            stream.next()
            return symbol(token.value)
        if token.type is TokenType.OPERATOR:
            stream.next()
            return operator(token.value)
        if token.type is TokenType.COMMAND:
            return self._parse_command(allow_scripts=False)

        return placeholder()

    def _parse_group(self) -> MathNode:
        stream = self._stream
        stream.skip_whitespace()
        stream.expect(TokenType.OPEN_BRACE)
        content = self._parse_row()
        stream.expect(TokenType.CLOSE_BRACE)
        return content

    def _parse_delimited_group(self) -> MathNode:
        stream = self._stream
        token = stream.next()

        if token.type is TokenType.OPEN_PAREN:
            close_type, open_delim, close_delim = TokenType.CLOSE_PAREN, '(', ')'
        elif token.type is TokenType.OPEN_BRACKET:
            close_type, open_delim, close_delim = TokenType.CLOSE_BRACKET, '[', ']'
        else:
            close_type, open_delim, close_delim = TokenType.PIPE, '|', '|'

        stop = frozenset({'|'}) if close_type is TokenType.PIPE else frozenset()
        content = self._parse_row(stop)
        stream.expect(close_type)

        return self._parse_scripts(parens(content, open_delim, close_delim))

    def _parse_brace_group(self) -> MathNode:
        """Parse \\{ ... \\} into a brace-delimited parens node."""
        content = self._parse_row(frozenset({'\\}'}))
        self._stream.expect_value(TokenType.COMMAND, '\\}')
        return parens(content, '{', '}')

    def _parse_fraction(self) -> MathNode:
        numerator = self._parse_group()
        denominator = self._parse_group()
        return fraction(numerator, denominator)

    def _parse_sqrt(self) -> MathNode:
        stream = self._stream
        stream.skip_whitespace()

        index = None
        if stream.try_consume(TokenType.OPEN_BRACKET):
            index = self._parse_row()
            stream.expect(TokenType.CLOSE_BRACKET)

        radicand = self._parse_group()
        return sqrt(radicand, index)

    def _parse_text(self) -> MathNode:
        stream = self._stream
        stream.skip_whitespace()
        stream.expect(TokenType.OPEN_BRACE)

        parts = []
        depth = 1
        while True:
            token = stream.peek()
            if token.type is TokenType.EOF:
                stream.expect(TokenType.CLOSE_BRACE)
            if token.type is TokenType.OPEN_BRACE:
                depth += 1
            elif token.type is TokenType.CLOSE_BRACE:
                depth -= 1
                if depth == 0:
                    stream.next()
                    break
            parts.append(stream.next().value)

        return text(''.join(parts))

    def _parse_large_operator(self, name: str, allow_scripts: bool) -> MathNode:
        """Sum, integral and friends keep their limits on the function node."""
        if not allow_scripts:
            return function(name)

        stream = self._stream
        lower = None
        upper = None

        stream.skip_whitespace()
        if stream.try_consume(TokenType.SUBSCRIPT):
            lower = self._parse_script_arg()
            stream.skip_whitespace()

        if stream.try_consume(TokenType.SUPERSCRIPT):
            upper = self._parse_script_arg()
            stream.skip_whitespace()

        if lower is None and stream.try_consume(TokenType.SUBSCRIPT):
            lower = self._parse_script_arg()

        return function(name, lower=lower, upper=upper)

    def _parse_left_right(self) -> MathNode:
        open_delim = self._parse_delimiter()
        content = self._parse_row(frozenset({'\\right'}))
        self._stream.expect_value(TokenType.COMMAND, '\\right')
        close_delim = self._parse_delimiter()
        return parens(content, open_delim, close_delim, AUTO_SIZE)

    def _parse_delimiter(self) -> str:
        stream = self._stream
        stream.skip_whitespace()
        token = stream.next()

        if token.type is TokenType.COMMAND:
            delim = self.COMMAND_DELIMITERS.get(token.value)
        elif token.type is not TokenType.EOF:
            delim = self.SIMPLE_DELIMITERS.get(token.value)
        else:
            delim = None

        if delim is None:
            raise MathSyntaxError(f"Invalid delimiter {token.value!r}", token.position)
        return delim

    def _read_braced_word(self) -> str:
        """Read the raw contents of a {name} group (environment names, column specs)."""
        stream = self._stream
        stream.skip_whitespace()
        stream.expect(TokenType.OPEN_BRACE)

        parts = []
        while not stream.is_type(TokenType.CLOSE_BRACE):
            if stream.is_eof():
                stream.expect(TokenType.CLOSE_BRACE)
            parts.append(stream.next().value)

        stream.next()
        return ''.join(parts)

    def _parse_environment(self, begin_token: Token) -> MathNode:
        name = self._read_braced_word()
        if name not in self.MATRIX_ENVIRONMENTS:
            raise MathSyntaxError(f"Unknown environment {name!r}", begin_token.position)
        return self._parse_matrix(name)

    def _parse_matrix(self, style: str) -> MathNode:
        stream = self._stream
        col_spec = self._read_braced_word() if style == 'array' else None

        rows = []
        cells = []
        while True:
            cells.append(self._parse_row(frozenset({'\\end'})))
            if stream.try_consume(TokenType.AMPERSAND):
                continue
            if stream.try_consume(TokenType.NEWLINE):
                rows.append(cells)
                cells = []
                continue
            break

        # A trailing \\ before \end leaves one empty cell behind
        trailing_empty = len(cells) == 1 and cells[0].kind is NodeKind.PLACEHOLDER
        if not (rows and trailing_empty):
            rows.append(cells)

        stream.expect_value(TokenType.COMMAND, '\\end')
        end_position = stream.position
        end_name = self._read_braced_word()
        if end_name != style:
            raise MathSyntaxError(
                f"Environment mismatch: \\begin{{{style}}} ended with \\end{{{end_name}}}",
                end_position,
            )

        return matrix(rows, style, col_spec)


@lru_cache(maxsize=256)
def parse_latex(latex: str) -> MathNode:
    """Parse LaTeX into an expression tree.

    Trees are immutable, so cached results are safe to share.

    Raises:
        MathSyntaxError: if the input is malformed
    """
    return LaTeXParser().parse(latex)


__all__ = ['LaTeXParser', 'MathSyntaxError', 'parse_latex']
