"""
Language exceptions and diagnostics.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E4xx: Evaluation errors

Every failure is fatal: lexing and parsing abort on the first error, and an
evaluation error aborts the whole run. Callers tell failures apart by
exception class and attributes, never by message text.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, List
from .tokens import SourceSpan


class ErrorSeverity(Enum):
    """Severity levels for diagnostics."""
    ERROR = "error"


@dataclass
class Diagnostic:
    """A single diagnostic message."""
    code: str                       # E001, E101, etc.
    message: str                    # Human-readable message
    severity: ErrorSeverity = ErrorSeverity.ERROR
    span: Optional[SourceSpan] = None
    source_line: Optional[str] = None   # The actual line of source code
    hints: List[str] = field(default_factory=list)

    def format(self, show_source: bool = True) -> str:
        """Format the diagnostic for display."""
        parts = []

        # Header: [location: ]severity[code]: message
        header = f"{self.severity.value}[{self.code}]: {self.message}"
        if self.span is not None:
            header = f"{self.span.start}: {header}"
        parts.append(header)

        # Source line with caret
        if show_source and self.span is not None and self.source_line is not None:
            parts.append("  |")
            line_num = str(self.span.start.line)
            parts.append(f"{line_num:>3} | {self.source_line}")

            col = self.span.start.column
            end_col = self.span.end.column if self.span.start.line == self.span.end.line else len(self.source_line) + 1
            underline_len = max(1, end_col - col)
            parts.append(f"    | {' ' * (col - 1)}{'^' * underline_len}")

        for hint in self.hints:
            parts.append(f"    = hint: {hint}")

        return "\n".join(parts)


class LangError(Exception):
    """Base exception for all language errors."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    @property
    def code(self) -> str:
        return self.diagnostic.code

    @property
    def span(self) -> Optional[SourceSpan]:
        return self.diagnostic.span

    def attach_source(self, source: str) -> None:
        """Fill in the offending source line once the program text is known."""
        span = self.diagnostic.span
        if span is None or self.diagnostic.source_line is not None:
            return
        lines = source.splitlines()
        if 1 <= span.start.line <= len(lines):
            self.diagnostic.source_line = lines[span.start.line - 1]

    def __str__(self) -> str:
        return self.diagnostic.format()


class LexerError(LangError):
    """Error during lexical analysis (E0xx)."""
    pass


class ParserError(LangError):
    """Error during parsing (E1xx)."""

    @property
    def reason(self) -> str:
        return self.diagnostic.message


class EvaluationError(LangError):
    """Error during evaluation (E4xx)."""
    pass


# --- Lexer error codes ---

def error_unexpected_character(char: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E001: Unexpected character."""
    diag = Diagnostic(
        code="E001",
        message=f"unexpected character '{char}'",
        span=span,
        source_line=source_line,
    )
    return LexerError(diag)


def error_unterminated_string(span: SourceSpan, source_line: str = None) -> LexerError:
    """E002: Unterminated string literal."""
    diag = Diagnostic(
        code="E002",
        message="unterminated string literal",
        span=span,
        source_line=source_line,
        hints=["string literals must be closed with matching quotes"],
    )
    return LexerError(diag)


def error_unterminated_comment(span: SourceSpan, source_line: str = None) -> LexerError:
    """E004: Unterminated multi-line comment."""
    diag = Diagnostic(
        code="E004",
        message="unterminated multi-line comment (expected closing */)",
        span=span,
        source_line=source_line,
    )
    return LexerError(diag)


def error_invalid_escape_sequence(seq: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E005: Invalid escape sequence in string."""
    diag = Diagnostic(
        code="E005",
        message=f"invalid escape sequence '\\{seq}'",
        span=span,
        source_line=source_line,
        hints=["valid escape sequences: \\n, \\t, \\r, \\\", \\', \\\\, \\0"],
    )
    return LexerError(diag)


# --- Parser error codes ---

def error_expected(expected: str, span: Optional[SourceSpan] = None) -> ParserError:
    """E101: A required token is missing."""
    return ParserError(Diagnostic(code="E101", message=f"expected {expected}", span=span))


def error_unexpected_eof(expected: str, span: Optional[SourceSpan] = None) -> ParserError:
    """E102: Unexpected end of input."""
    diag = Diagnostic(
        code="E102",
        message=f"unexpected end of input, expected {expected}",
        span=span,
    )
    return ParserError(diag)


def error_unknown_operator(symbol: str, span: Optional[SourceSpan] = None) -> ParserError:
    """E103: Operator symbol outside the closed operator set."""
    diag = Diagnostic(
        code="E103",
        message=f"unknown operator '{symbol}'",
        span=span,
        hints=["supported operators: + - * / == != :="],
    )
    return ParserError(diag)


# --- Evaluation errors ---

class UndefinedVariableError(EvaluationError):
    """E401: Identifier has no binding in scope."""

    def __init__(self, name: str, span: Optional[SourceSpan] = None):
        self.name = name
        super().__init__(Diagnostic(code="E401", message=f"undefined variable '{name}'", span=span))


class UndefinedFunctionError(EvaluationError):
    """E402: Called name has no binding in scope."""

    def __init__(self, name: str, span: Optional[SourceSpan] = None):
        self.name = name
        super().__init__(Diagnostic(code="E402", message=f"undefined function '{name}'", span=span))


class NotCallableError(EvaluationError):
    """E403: Called name is bound to something other than a function."""

    def __init__(self, name: str, got: Any = None, span: Optional[SourceSpan] = None):
        self.name = name
        self.got = got
        message = f"'{name}' is not callable"
        if got is not None:
            message += f" (bound to a value of type '{got}')"
        super().__init__(Diagnostic(code="E403", message=message, span=span))


class TypeMismatchError(EvaluationError):
    """
    E404: Incompatible operand or argument types.

    `operation` names what was attempted (an operator symbol or a function),
    `expected` describes what would have been accepted and `got` is the
    tuple of value types actually supplied.
    """

    def __init__(self, operation: str, expected: str, got: tuple,
                 span: Optional[SourceSpan] = None):
        self.operation = operation
        self.expected = expected
        self.got = tuple(got)
        found = ", ".join(str(t) for t in self.got)
        diag = Diagnostic(
            code="E404",
            message=f"incompatible types for {operation}: expected {expected}, found ({found})",
            span=span,
        )
        super().__init__(diag)


class DivisionByZeroError(EvaluationError):
    """E405: Integer division by zero."""

    def __init__(self, span: Optional[SourceSpan] = None):
        super().__init__(Diagnostic(code="E405", message="division by zero", span=span))


class ArityMismatchError(EvaluationError):
    """E406: Wrong number of arguments for a call."""

    def __init__(self, name: str, expected: int, got: int,
                 span: Optional[SourceSpan] = None):
        self.name = name
        self.expected = expected
        self.got = got
        diag = Diagnostic(
            code="E406",
            message=f"'{name}' expects {expected} argument(s), got {got}",
            span=span,
        )
        super().__init__(diag)


class UnknownTypeError(EvaluationError):
    """E407: Type annotation names no known type."""

    def __init__(self, name: str, span: Optional[SourceSpan] = None):
        self.name = name
        diag = Diagnostic(
            code="E407",
            message=f"invalid type name '{name}'",
            span=span,
            hints=["known types: int, string, bool, _none"],
        )
        super().__init__(diag)


class ReturnOutsideFunctionError(EvaluationError):
    """E408: `return` evaluated with no enclosing call."""

    def __init__(self, span: Optional[SourceSpan] = None):
        super().__init__(Diagnostic(code="E408", message="'return' outside of a function", span=span))


class InvalidExpressionError(EvaluationError):
    """E409: A leaf that cannot produce a value (e.g. the parser's error leaf)."""

    def __init__(self, found: str, span: Optional[SourceSpan] = None):
        self.found = found
        diag = Diagnostic(
            code="E409",
            message=f"invalid expression '{found}'",
            span=span,
            hints=["set MINILANG_PERMISSIVE_LEAVES=1 to evaluate such leaves to Nothing"],
        )
        super().__init__(diag)


class UnknownBuiltinError(EvaluationError):
    """E410: Built-in binding with no implementation in the registry."""

    def __init__(self, name: str, span: Optional[SourceSpan] = None):
        self.name = name
        super().__init__(Diagnostic(code="E410", message=f"unknown built-in function '{name}'", span=span))


class CallDepthExceededError(EvaluationError):
    """E411: Nested calls went deeper than the configured limit."""

    def __init__(self, limit: int, span: Optional[SourceSpan] = None):
        self.limit = limit
        diag = Diagnostic(
            code="E411",
            message=f"maximum call depth of {limit} exceeded",
            span=span,
            hints=["raise MINILANG_MAX_CALL_DEPTH if the recursion is intended"],
        )
        super().__init__(diag)


class AssertionFailedError(EvaluationError):
    """E412: The `assert` built-in received false."""

    def __init__(self, span: Optional[SourceSpan] = None):
        super().__init__(Diagnostic(code="E412", message="assertion failed", span=span))


class InvalidArgumentError(EvaluationError):
    """E413: A built-in received an argument of the right type but unusable content."""

    def __init__(self, function: str, detail: str, span: Optional[SourceSpan] = None):
        self.function = function
        self.detail = detail
        super().__init__(Diagnostic(code="E413", message=f"invalid argument to '{function}': {detail}", span=span))
