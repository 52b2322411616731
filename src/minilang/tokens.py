"""
Token types for the minilang lexer and parser.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E4xx: Evaluation errors
"""

from enum import Enum, auto
from dataclasses import dataclass, field
from typing import Any, Optional


class TokenType(Enum):
    """All token kinds the parser understands."""

    # --- Literals ---
    INT_LITERAL = auto()        # 42, -7
    STRING_LITERAL = auto()     # "hello", 'hi'
    BOOL_LITERAL = auto()       # true, false

    # --- Identifiers ---
    IDENTIFIER = auto()         # user-defined names

    # --- Operators ---
    OPERATOR = auto()           # + - * / == != (value holds the symbol)

    # --- Type names ---
    TYPE = auto()               # int, string, bool, _none

    # --- Keywords ---
    FUNC = auto()               # func
    RETURN = auto()             # return

    # --- Punctuation ---
    SET_VAL = auto()            # :=
    RETURN_TYPE = auto()        # ->
    LPAREN = auto()             # (
    RPAREN = auto()             # )
    LBRACE = auto()             # {
    RBRACE = auto()             # }
    COMMA = auto()              # ,
    SEMICOLON = auto()          # ;

    # --- Special ---
    ERROR = auto()              # placeholder for an unparseable token
    EOF = auto()                # end of input (optional)


@dataclass(frozen=True)
class SourceLocation:
    """Represents a position in source code."""
    line: int           # 1-indexed line number
    column: int         # 1-indexed column number
    offset: int         # 0-indexed character offset from start
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class SourceSpan:
    """Represents a range in source code."""
    start: SourceLocation
    end: SourceLocation

    def __str__(self) -> str:
        if self.start.filename:
            return f"{self.start.filename}:{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"
        return f"{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"


@dataclass(frozen=True)
class Token:
    """
    A single token.

    Only `type` and `value` take part in equality; the lexeme and span are
    bookkeeping for diagnostics, and hand-built token streams may omit them.
    """
    type: TokenType
    value: Any = None
    lexeme: str = field(default="", compare=False)
    span: Optional[SourceSpan] = field(default=None, compare=False)

    def __str__(self) -> str:
        if self.type == TokenType.STRING_LITERAL:
            return repr(self.value)
        if self.type == TokenType.BOOL_LITERAL:
            return "true" if self.value else "false"
        if self.type in (TokenType.INT_LITERAL, TokenType.IDENTIFIER,
                         TokenType.OPERATOR, TokenType.TYPE):
            return str(self.value)
        if self.lexeme:
            return self.lexeme
        return self.type.name


# Keyword mapping - maps reserved words to token type
KEYWORDS: dict[str, TokenType] = {
    "func": TokenType.FUNC,
    "return": TokenType.RETURN,

    "true": TokenType.BOOL_LITERAL,
    "false": TokenType.BOOL_LITERAL,

    "int": TokenType.TYPE,
    "string": TokenType.TYPE,
    "bool": TokenType.TYPE,
    "_none": TokenType.TYPE,
}


# Convenience constructors, mostly for building token streams by hand

def int_token(n: int) -> Token:
    return Token(TokenType.INT_LITERAL, n, str(n))


def string_token(s: str) -> Token:
    return Token(TokenType.STRING_LITERAL, s, repr(s))


def bool_token(b: bool) -> Token:
    return Token(TokenType.BOOL_LITERAL, b, "true" if b else "false")


def ident_token(name: str) -> Token:
    return Token(TokenType.IDENTIFIER, name, name)


def op_token(symbol: str) -> Token:
    return Token(TokenType.OPERATOR, symbol, symbol)


def type_token(name: str) -> Token:
    return Token(TokenType.TYPE, name, name)


def punct(token_type: TokenType) -> Token:
    """Create a keyword or punctuation token with no value."""
    return Token(token_type)
