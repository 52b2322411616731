"""
Recursive descent parser for minilang.

Converts a token stream into a list of top-level AST statements.

The grammar has no precedence table. A binary expression always takes the
entire remainder of the current expression as its right-hand side, so mixed
chains group to the right regardless of operator:

    2 - 3 - 4      parses as   2 - (3 - 4)
    2 * 3 + 4      parses as   2 * (3 + 4)

Only identifiers and integer literals may start an operator chain; string
and boolean literals are always bare leaves.
"""

import logging
from typing import Dict, List, Optional, Tuple

from .tokens import Token, TokenType, SourceSpan
from .ast import Expr, Leaf, BinaryExpr, FnCall, FnDef, Return, Operator
from .errors import (
    ParserError,
    error_expected,
    error_unexpected_eof,
)
from .types import NO_VALUE_TYPE_NAME

logger = logging.getLogger(__name__)


class Parser:
    """
    Recursive descent parser for minilang.

    Usage:
        parser = Parser(tokens)
        statements = parser.parse()

    The token list may or may not end with an EOF token; running out of
    tokens is treated the same as reaching EOF. Parsing fails fast on the
    first structural error and never returns a partial tree.
    """

    def __init__(self, tokens: List[Token]):
        self.tokens = list(tokens)
        if not self.tokens or self.tokens[-1].type != TokenType.EOF:
            self.tokens.append(Token(TokenType.EOF))
        self.pos = 0

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _current(self) -> Token:
        """Get current token."""
        return self.tokens[self.pos]

    def _is_at_end(self) -> bool:
        return self._current().type == TokenType.EOF

    def _check(self, token_type: TokenType) -> bool:
        """Check if current token is of given type."""
        return self._current().type == token_type

    def _advance(self) -> Token:
        """Consume and return current token."""
        token = self._current()
        if not self._is_at_end():
            self.pos += 1
        return token

    def _match(self, *token_types: TokenType) -> Optional[Token]:
        """Consume token if it matches any of the given types."""
        if self._current().type in token_types:
            return self._advance()
        return None

    def _consume(self, token_type: TokenType, expected: str) -> Token:
        """Consume token of expected type, or raise error."""
        if self._check(token_type):
            return self._advance()
        raise self._error(expected)

    def _error(self, expected: str) -> ParserError:
        """Build the error for a missing token at the current position."""
        token = self._current()
        if token.type == TokenType.EOF:
            return error_unexpected_eof(expected, token.span)
        return error_expected(expected, token.span)

    def _span_from(self, start: Token) -> Optional[SourceSpan]:
        """Create a span from start token to the last consumed token."""
        end = self.tokens[max(0, self.pos - 1)]
        if start.span is None or end.span is None:
            return start.span
        return SourceSpan(start.span.start, end.span.end)

    # =========================================================================
    # Statements and Expressions
    # =========================================================================

    def parse(self) -> List[Expr]:
        """Parse the whole token stream into top-level statements."""
        statements = []
        while not self._is_at_end():
            statements.append(self.parse_expr(requires_terminator=True))
        logger.debug("parsed %d top-level statement(s)", len(statements))
        return statements

    def parse_expr(self, requires_terminator: bool) -> Expr:
        """
        Parse one expression, dispatching on the next token.

        When `requires_terminator` is set the expression is a statement and
        must be followed by ';'. Function definitions close with their own
        brace and never take a terminator.
        """
        start = self._current()

        if self._match(TokenType.RETURN):
            inner = self.parse_expr(requires_terminator=False)
            expr = Return(inner, span=self._span_from(start))
        elif self._match(TokenType.IDENTIFIER):
            expr = self._parse_identifier_expr(start)
        elif self._match(TokenType.INT_LITERAL):
            expr = self._parse_operand_chain(start)
        elif self._match(TokenType.BOOL_LITERAL, TokenType.STRING_LITERAL):
            expr = Leaf(start, span=start.span)
        elif self._match(TokenType.FUNC):
            requires_terminator = False
            expr = self._parse_fn_def(start)
        else:
            # Unexpected token: consume it and leave an error leaf for the
            # interpreter to reject.
            self._advance()
            error_token = Token(TokenType.ERROR, start.value, start.lexeme, start.span)
            expr = Leaf(error_token, span=start.span)

        if requires_terminator and not self._match(TokenType.SEMICOLON):
            raise self._error("semicolon")
        return expr

    def _parse_identifier_expr(self, ident: Token) -> Expr:
        """Disambiguate assignment, call, operator chain and bare identifier."""
        if self._match(TokenType.SET_VAL):
            rhs = self.parse_expr(requires_terminator=False)
            return BinaryExpr(
                Operator.SET_VAL,
                Leaf(ident, span=ident.span),
                rhs,
                span=self._span_from(ident),
            )
        if self._match(TokenType.LPAREN):
            args = self._parse_call_arguments()
            return FnCall(ident.value, args, span=self._span_from(ident))
        return self._parse_operand_chain(ident)

    def _parse_operand_chain(self, operand: Token) -> Expr:
        """
        Parse `operand [op remainder]`.

        The right-hand side is the recursively parsed remainder of the
        expression, never a single operand.
        """
        leaf = Leaf(operand, span=operand.span)
        op_token = self._match(TokenType.OPERATOR)
        if op_token is None:
            return leaf
        op = Operator.from_symbol(op_token.value, op_token.span)
        rhs = self.parse_expr(requires_terminator=False)
        return BinaryExpr(op, leaf, rhs, span=self._span_from(operand))

    def _parse_call_arguments(self) -> List[Expr]:
        """Parse call arguments after '(' up to and including ')'."""
        args: List[Expr] = []
        if self._match(TokenType.RPAREN):
            return args
        while True:
            args.append(self.parse_expr(requires_terminator=False))
            if self._match(TokenType.RPAREN):
                return args
            if not self._match(TokenType.COMMA):
                raise self._error("comma, or ')'")

    # =========================================================================
    # Function Definitions
    # =========================================================================

    def _parse_fn_def(self, start: Token) -> FnDef:
        """Parse `func name(type ident, ...) [-> type] { body }` after 'func'."""
        name = self._consume(TokenType.IDENTIFIER, "identifier").value
        self._consume(TokenType.LPAREN, "'('")
        args = self._parse_parameters()

        return_type = NO_VALUE_TYPE_NAME
        if self._match(TokenType.RETURN_TYPE):
            return_type = self._consume(TokenType.TYPE, "type").value
            self._consume(TokenType.LBRACE, "brace")
        elif not self._match(TokenType.LBRACE):
            raise self._error("return type or brace")

        body = self._parse_block()
        logger.debug("parsed definition of %s with %d parameter(s)", name, len(args))
        return FnDef(name, args, body, return_type, span=self._span_from(start))

    def _parse_parameters(self) -> Dict[Tuple[int, str], Leaf]:
        """Parse `type ident` pairs after '(' up to and including ')'."""
        params: Dict[Tuple[int, str], Leaf] = {}
        if self._match(TokenType.RPAREN):
            return params

        index = 0
        while True:
            type_token = self._consume(TokenType.TYPE, "type")
            param = self._consume(TokenType.IDENTIFIER, "identifier")
            params[(index, param.value)] = Leaf(type_token, span=type_token.span)
            if self._match(TokenType.RPAREN):
                return params
            if not self._match(TokenType.COMMA):
                raise self._error("comma, or ')'")
            index += 1

    def _parse_block(self) -> List[Expr]:
        """Parse terminated statements after '{' up to and including '}'."""
        body: List[Expr] = []
        while not self._match(TokenType.RBRACE):
            if self._is_at_end():
                raise self._error("'}'")
            body.append(self.parse_expr(requires_terminator=True))
        return body


def parse(tokens: List[Token]) -> List[Expr]:
    """
    Convenience function to parse tokens into top-level statements.

    Args:
        tokens: List of tokens, from the lexer or built by hand

    Returns:
        The top-level statements in source order

    Raises:
        ParserError: If parsing fails
    """
    parser = Parser(tokens)
    return parser.parse()
