import pytest
from math_editor.tokenizer import (
    MathSyntaxError, Token, TokenStream, TokenType, is_text_char, tokenize
)


class TestTokenizer:

    def test_empty_input(self):
        """Test that empty input yields only EOF."""
        tokens = tokenize("")
        assert tokens == [Token(TokenType.EOF, '', 0)]

    def test_simple_expression(self):
        """Test tokenization of letters, operators and numbers."""
        tokens = tokenize("x+12")
        assert [t.type for t in tokens] == [
            TokenType.TEXT, TokenType.OPERATOR, TokenType.NUMBER, TokenType.EOF
        ]
        assert [t.value for t in tokens[:-1]] == ['x', '+', '12']

    def test_positions(self):
        """Test that every token records its source offset."""
        tokens = tokenize(r"a \beta")
        assert [t.position for t in tokens] == [0, 1, 2, 7]

    def test_decimal_number(self):
        """Test that digits and dots form one number token."""
        tokens = tokenize("3.14")
        assert tokens[0] == Token(TokenType.NUMBER, '3.14', 0)

    def test_commands(self):
        """Test letter commands and single-symbol commands."""
        tokens = tokenize(r"\frac\{\,")
        assert [t.value for t in tokens[:-1]] == ['\\frac', '\\{', '\\,']
        assert all(t.type is TokenType.COMMAND for t in tokens[:-1])

    def test_newline(self):
        """Test that a double backslash is a row separator."""
        tokens = tokenize(r"a\\b")
        assert tokens[1] == Token(TokenType.NEWLINE, '\\\\', 1)

    def test_trailing_backslash(self):
        """Test that a lone backslash at the end does not fail."""
        tokens = tokenize("x\\")
        assert tokens[1] == Token(TokenType.COMMAND, '\\', 1)

    def test_structural_characters(self):
        """Test braces, brackets, parens, scripts and alignment."""
        types = [t.type for t in tokenize("{}[]()^_&|")[:-1]]
        assert types == [
            TokenType.OPEN_BRACE, TokenType.CLOSE_BRACE,
            TokenType.OPEN_BRACKET, TokenType.CLOSE_BRACKET,
            TokenType.OPEN_PAREN, TokenType.CLOSE_PAREN,
            TokenType.SUPERSCRIPT, TokenType.SUBSCRIPT,
            TokenType.AMPERSAND, TokenType.PIPE,
        ]

    def test_whitespace_collapsed(self):
        """Test that a whitespace run is one token."""
        tokens = tokenize("a  \n b")
        assert tokens[1] == Token(TokenType.WHITESPACE, '  \n ', 1)

    def test_unknown_character_is_text(self):
        """Test that unrecognised characters become text tokens."""
        tokens = tokenize("∞")
        assert tokens[0] == Token(TokenType.TEXT, '∞', 0)


class TestTextChar:

    @pytest.mark.parametrize("char", ['x', 'Q', '@', '∞'])
    def test_text_chars(self, char):
        """Test characters that tokenize as text."""
        assert is_text_char(char)

    @pytest.mark.parametrize("char", ['1', '+', '{', '\\', ' ', 'ab', ''])
    def test_non_text_chars(self, char):
        """Test characters (and strings) that do not."""
        assert not is_text_char(char)


class TestTokenStream:

    def test_peek_past_end_is_eof(self):
        """Test that peeking beyond the list returns EOF."""
        stream = TokenStream(tokenize("x"))
        assert stream.peek(5).type is TokenType.EOF

    def test_next_does_not_run_past_eof(self):
        """Test that next keeps returning EOF at the end."""
        stream = TokenStream(tokenize(""))
        assert stream.next().type is TokenType.EOF
        assert stream.next().type is TokenType.EOF

    def test_expect_raises_with_position(self):
        """Test that expect reports the offending token's offset."""
        stream = TokenStream(tokenize("ab"))
        stream.next()
        with pytest.raises(MathSyntaxError) as exc_info:
            stream.expect(TokenType.OPEN_BRACE)
        assert exc_info.value.position == 1
        assert str(exc_info.value).endswith("at position 1")

    def test_try_consume(self):
        """Test conditional consumption by type and value."""
        stream = TokenStream(tokenize(r"\right)"))
        assert stream.try_consume(TokenType.COMMAND, '\\left') is None
        assert stream.try_consume(TokenType.COMMAND, '\\right').value == '\\right'
        assert stream.try_consume(TokenType.CLOSE_PAREN) is not None
        assert stream.is_eof()

    def test_skip_whitespace(self):
        """Test whitespace skipping."""
        stream = TokenStream(tokenize("   x"))
        stream.skip_whitespace()
        assert stream.peek().value == 'x'
        assert stream.position == 3
