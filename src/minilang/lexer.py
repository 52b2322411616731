"""
Lexer for minilang.

Converts source text into a stream of tokens for the parser.
Supports:
- Insignificant whitespace and newlines (statements end with ';')
- Single-line comments (#)
- Nestable multi-line comments (/* */)
- String literals in single or double quotes with escape sequences
- Decimal integer literals, including negative literals in operand position
- Keywords, type names, operators and punctuation
"""

from typing import List, Optional, Iterator
from .tokens import (
    Token, TokenType, SourceLocation, SourceSpan, KEYWORDS,
)
from .errors import (
    error_unexpected_character,
    error_unterminated_string,
    error_unterminated_comment,
    error_invalid_escape_sequence,
)


# Token kinds after which a '-' directly followed by a digit starts a
# negative literal rather than a subtraction.
_OPERAND_EXPECTED_AFTER = {
    TokenType.OPERATOR,
    TokenType.SET_VAL,
    TokenType.LPAREN,
    TokenType.COMMA,
    TokenType.SEMICOLON,
    TokenType.LBRACE,
    TokenType.RBRACE,
    TokenType.RETURN,
    TokenType.RETURN_TYPE,
}


class Lexer:
    """
    Tokenizer for minilang.

    Usage:
        lexer = Lexer(source_code)
        tokens = lexer.tokenize()

    Or for streaming:
        lexer = Lexer(source_code)
        for token in lexer:
            process(token)
    """

    def __init__(self, source: str, filename: Optional[str] = None):
        self.source = source
        self.filename = filename
        self.pos = 0            # Current position in source
        self.line = 1           # Current line (1-indexed)
        self.column = 1         # Current column (1-indexed)
        self._lines: Optional[List[str]] = None  # Cached line list
        self._last_type: Optional[TokenType] = None

    @property
    def lines(self) -> List[str]:
        """Lazy-load line list for error reporting."""
        if self._lines is None:
            self._lines = self.source.splitlines()
        return self._lines

    def get_source_line(self, line_num: int) -> Optional[str]:
        """Get a specific line of source (1-indexed)."""
        if 1 <= line_num <= len(self.lines):
            return self.lines[line_num - 1]
        return None

    def _location(self) -> SourceLocation:
        """Get current source location."""
        return SourceLocation(self.line, self.column, self.pos, self.filename)

    def _span(self, start: SourceLocation) -> SourceSpan:
        """Create a span from start to current position."""
        return SourceSpan(start, self._location())

    def _peek(self, offset: int = 0) -> str:
        """Look at character at current position + offset without consuming."""
        idx = self.pos + offset
        if idx >= len(self.source):
            return '\0'
        return self.source[idx]

    def _advance(self) -> str:
        """Consume and return current character."""
        if self.pos >= len(self.source):
            return '\0'
        ch = self.source[self.pos]
        self.pos += 1
        if ch == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _match(self, expected: str) -> bool:
        """Consume character if it matches expected."""
        if self._peek() == expected:
            self._advance()
            return True
        return False

    def _is_at_end(self) -> bool:
        return self.pos >= len(self.source)

    def _skip_comment(self) -> None:
        """Skip a single-line comment (# to end of line)."""
        while self._peek() != '\n' and not self._is_at_end():
            self._advance()

    def _skip_multiline_comment(self) -> None:
        """Skip /* ... */ comment."""
        start = self._location()
        self._advance()  # consume '/'
        self._advance()  # consume '*'
        depth = 1

        while not self._is_at_end() and depth > 0:
            if self._peek() == '/' and self._peek(1) == '*':
                self._advance()
                self._advance()
                depth += 1
            elif self._peek() == '*' and self._peek(1) == '/':
                self._advance()
                self._advance()
                depth -= 1
            else:
                self._advance()

        if depth > 0:
            raise error_unterminated_comment(
                self._span(start),
                self.get_source_line(start.line)
            )

    def _skip_trivia(self) -> None:
        """Skip whitespace (including newlines) and comments."""
        while not self._is_at_end():
            ch = self._peek()
            if ch in ' \t\r\n':
                self._advance()
            elif ch == '#':
                self._skip_comment()
            elif ch == '/' and self._peek(1) == '*':
                self._skip_multiline_comment()
            else:
                break

    def _make_token(self, token_type: TokenType, value, start: SourceLocation,
                    lexeme: Optional[str] = None) -> Token:
        """Create a token."""
        span = self._span(start)
        if lexeme is None:
            lexeme = self.source[start.offset:self.pos]
        return Token(token_type, value, lexeme, span)

    def _scan_string(self) -> Token:
        """Scan a string literal."""
        start = self._location()
        quote = self._advance()  # consume opening quote

        chars = []
        while not self._is_at_end() and self._peek() != quote:
            ch = self._peek()
            if ch == '\n':
                raise error_unterminated_string(
                    self._span(start),
                    self.get_source_line(start.line)
                )
            if ch == '\\':
                self._advance()  # consume backslash
                chars.append(self._scan_escape_sequence())
            else:
                chars.append(self._advance())

        if self._is_at_end():
            raise error_unterminated_string(
                self._span(start),
                self.get_source_line(start.line)
            )

        self._advance()  # consume closing quote
        return self._make_token(TokenType.STRING_LITERAL, ''.join(chars), start)

    def _scan_escape_sequence(self) -> str:
        """Parse an escape sequence after backslash."""
        esc_start = self._location()
        if self._is_at_end():
            raise error_invalid_escape_sequence(
                "", self._span(esc_start), self.get_source_line(esc_start.line)
            )

        ch = self._advance()
        escape_chars = {
            'n': '\n',
            't': '\t',
            'r': '\r',
            '\\': '\\',
            '"': '"',
            "'": "'",
            '0': '\0',
        }
        if ch in escape_chars:
            return escape_chars[ch]
        raise error_invalid_escape_sequence(
            ch, self._span(esc_start), self.get_source_line(esc_start.line)
        )

    def _scan_number(self, start: SourceLocation) -> Token:
        """Scan a decimal integer literal; a leading '-' may already be consumed."""
        while '0' <= self._peek() <= '9':
            self._advance()
        lexeme = self.source[start.offset:self.pos]
        return self._make_token(TokenType.INT_LITERAL, int(lexeme), start, lexeme)

    def _scan_identifier_or_keyword(self) -> Token:
        """Scan an identifier, keyword or type name."""
        start = self._location()

        while self._peek().isalnum() or self._peek() == '_':
            self._advance()

        lexeme = self.source[start.offset:self.pos]

        if lexeme in KEYWORDS:
            token_type = KEYWORDS[lexeme]
            if token_type == TokenType.BOOL_LITERAL:
                value = lexeme == "true"
            else:
                value = lexeme
            return self._make_token(token_type, value, start, lexeme)

        return self._make_token(TokenType.IDENTIFIER, lexeme, start, lexeme)

    def _negative_literal_allowed(self) -> bool:
        return self._last_type is None or self._last_type in _OPERAND_EXPECTED_AFTER

    def _scan_token(self) -> Token:
        """Scan the next token."""
        self._skip_trivia()

        if self._is_at_end():
            return self._make_token(TokenType.EOF, None, self._location(), "")

        start = self._location()
        ch = self._peek()

        if ch in '"\'':
            return self._scan_string()

        if '0' <= ch <= '9':
            return self._scan_number(start)

        if ch.isalpha() or ch == '_':
            return self._scan_identifier_or_keyword()

        self._advance()

        # Two-character tokens
        if ch == '-' and self._match('>'):
            return self._make_token(TokenType.RETURN_TYPE, "->", start)
        if ch == ':' and self._match('='):
            return self._make_token(TokenType.SET_VAL, ":=", start)
        if ch == '=' and self._match('='):
            return self._make_token(TokenType.OPERATOR, "==", start)
        if ch == '!' and self._match('='):
            return self._make_token(TokenType.OPERATOR, "!=", start)

        if ch == '-' and '0' <= self._peek() <= '9' and self._negative_literal_allowed():
            return self._scan_number(start)

        if ch in '+-*/':
            return self._make_token(TokenType.OPERATOR, ch, start)

        single_char_tokens = {
            '(': TokenType.LPAREN,
            ')': TokenType.RPAREN,
            '{': TokenType.LBRACE,
            '}': TokenType.RBRACE,
            ',': TokenType.COMMA,
            ';': TokenType.SEMICOLON,
        }
        if ch in single_char_tokens:
            return self._make_token(single_char_tokens[ch], ch, start)

        raise error_unexpected_character(
            ch, self._span(start), self.get_source_line(start.line)
        )

    def _next_token(self) -> Token:
        token = self._scan_token()
        self._last_type = token.type
        return token

    def tokenize(self) -> List[Token]:
        """Tokenize the entire source, returning a list of tokens ending in EOF."""
        return list(self)

    def __iter__(self) -> Iterator[Token]:
        """Iterate over tokens."""
        while True:
            token = self._next_token()
            yield token
            if token.type == TokenType.EOF:
                break


def tokenize(source: str, filename: Optional[str] = None) -> List[Token]:
    """
    Convenience function to tokenize source code.

    Args:
        source: The source code to tokenize
        filename: Optional filename for error messages

    Returns:
        List of tokens

    Raises:
        LexerError: If tokenization fails
    """
    lexer = Lexer(source, filename)
    return lexer.tokenize()
