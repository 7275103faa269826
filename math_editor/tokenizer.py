import regex
import logging
from typing import List, Optional
from dataclasses import dataclass
from enum import Enum


logger = logging.getLogger(__name__)


class TokenType(Enum):
    COMMAND = "command"
    TEXT = "text"
    NUMBER = "number"
    OPERATOR = "operator"
    SUPERSCRIPT = "superscript"
    SUBSCRIPT = "subscript"
    OPEN_BRACE = "open_brace"
    CLOSE_BRACE = "close_brace"
    OPEN_BRACKET = "open_bracket"
    CLOSE_BRACKET = "close_bracket"
    OPEN_PAREN = "open_paren"
    CLOSE_PAREN = "close_paren"
    PIPE = "pipe"
    AMPERSAND = "ampersand"
    NEWLINE = "newline"
    WHITESPACE = "whitespace"
    EOF = "eof"


@dataclass(frozen=True)
class Token:
    type: TokenType
    value: str
    position: int


class MathSyntaxError(Exception):
    """Malformed LaTeX input, located at a source offset."""

    def __init__(self, message: str, position: int = -1):
        self.message = message
        self.position = position
        super().__init__(f"{message} at position {position}")


class Tokenizer:
    """Split LaTeX source into a flat token list. Never fails."""

    STRUCTURAL = {
        '{': TokenType.OPEN_BRACE,
        '}': TokenType.CLOSE_BRACE,
        '[': TokenType.OPEN_BRACKET,
        ']': TokenType.CLOSE_BRACKET,
        '(': TokenType.OPEN_PAREN,
        ')': TokenType.CLOSE_PAREN,
        '^': TokenType.SUPERSCRIPT,
        '_': TokenType.SUBSCRIPT,
        '&': TokenType.AMPERSAND,
        '|': TokenType.PIPE,
    }

    OPERATOR_CHARS = frozenset("+-=<>*/!',.:;")

    WHITESPACE_PATTERN = regex.compile(r'\s+')
    NUMBER_PATTERN = regex.compile(r'[0-9][0-9.]*')
    LETTERS_PATTERN = regex.compile(r'[a-zA-Z]+')

    def __init__(self, source: str):
        self.source = source
        self.position = 0

    def tokenize(self) -> List[Token]:
        self.position = 0
        tokens = []

        while self.position < len(self.source):
            tokens.append(self._next_token())

        tokens.append(Token(TokenType.EOF, '', self.position))
        return tokens

    def _next_token(self) -> Token:
        start = self.position
        char = self.source[start]

        match = self.WHITESPACE_PATTERN.match(self.source, start)
        if match:
            self.position = match.end()
            return Token(TokenType.WHITESPACE, match.group(), start)

        if char == '\\':
            return self._read_command(start)

        match = self.NUMBER_PATTERN.match(self.source, start)
        if match:
            self.position = match.end()
            return Token(TokenType.NUMBER, match.group(), start)

        self.position += 1

        if char in self.STRUCTURAL:
            return Token(self.STRUCTURAL[char], char, start)
        if char in self.OPERATOR_CHARS:
            return Token(TokenType.OPERATOR, char, start)

        # Letters and anything unrecognised are single-character text
        return Token(TokenType.TEXT, char, start)

    def _read_command(self, start: int) -> Token:
        self.position = start + 1

        if self.position >= len(self.source):
            return Token(TokenType.COMMAND, '\\', start)

        next_char = self.source[self.position]
        if next_char == '\\':
            self.position += 1
            return Token(TokenType.NEWLINE, '\\\\', start)

        match = self.LETTERS_PATTERN.match(self.source, self.position)
        if match:
            self.position = match.end()
            return Token(TokenType.COMMAND, '\\' + match.group(), start)

        self.position += 1
        return Token(TokenType.COMMAND, '\\' + next_char, start)


def tokenize(source: str) -> List[Token]:
    """Tokenize a LaTeX string. The result always ends with an EOF token."""
    return Tokenizer(source).tokenize()


def is_text_char(char: str) -> bool:
    """Check whether a single character tokenizes as a plain text token."""
    if len(char) != 1 or char == '\\':
        return False
    if char in Tokenizer.STRUCTURAL or char in Tokenizer.OPERATOR_CHARS:
        return False
    return not (Tokenizer.WHITESPACE_PATTERN.match(char) or Tokenizer.NUMBER_PATTERN.match(char))


class TokenStream:
    """Cursor over a token list with the lookahead helpers the parser needs."""

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.index = 0
        end = tokens[-1].position if tokens else 0
        self._eof = Token(TokenType.EOF, '', end)

    def peek(self, offset: int = 0) -> Token:
        i = self.index + offset
        if 0 <= i < len(self.tokens):
            return self.tokens[i]
        return self._eof

    def next(self) -> Token:
        token = self.peek()
        if self.index < len(self.tokens):
            self.index += 1
        return token

    def is_type(self, token_type: TokenType) -> bool:
        return self.peek().type is token_type

    def is_value(self, token_type: TokenType, value: str) -> bool:
        token = self.peek()
        return token.type is token_type and token.value == value

    def is_eof(self) -> bool:
        return self.is_type(TokenType.EOF)

    def expect(self, token_type: TokenType) -> Token:
        token = self.peek()
        if token.type is not token_type:
            raise MathSyntaxError(
                f"Expected {token_type.value}, got {token.type.value} {token.value!r}",
                token.position,
            )
        return self.next()

    def expect_value(self, token_type: TokenType, value: str) -> Token:
        token = self.peek()
        if token.type is not token_type or token.value != value:
            raise MathSyntaxError(
                f"Expected {value!r}, got {token.value or token.type.value!r}",
                token.position,
            )
        return self.next()

    def try_consume(self, token_type: TokenType, value: Optional[str] = None) -> Optional[Token]:
        if value is None:
            matched = self.is_type(token_type)
        else:
            matched = self.is_value(token_type, value)
        return self.next() if matched else None

    def skip_whitespace(self):
        while self.is_type(TokenType.WHITESPACE):
            self.next()

    @property
    def position(self) -> int:
        """Source offset of the current token, for error reporting."""
        return self.peek().position


__all__ = [
    'TokenType', 'Token', 'Tokenizer', 'TokenStream', 'MathSyntaxError',
    'tokenize', 'is_text_char',
]
