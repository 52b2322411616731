"""
Abstract Syntax Tree (AST) node definitions for minilang.

The parser produces a flat list of top-level `Expr` nodes; the interpreter
walks them in order. Every node exclusively owns its children, so a tree is
finite and acyclic and no two statements share nodes.

Source spans ride along for diagnostics only and are excluded from equality,
which lets tests compare parsed trees against hand-built ones.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .errors import error_unknown_operator
from .tokens import SourceSpan, Token, TokenType


class Operator(Enum):
    """Binary operators, keyed by their source symbol."""
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    EQ = "=="
    NEQ = "!="
    SET_VAL = ":="

    @classmethod
    def from_symbol(cls, symbol: str, span: Optional[SourceSpan] = None) -> "Operator":
        """
        Map a source symbol to an operator.

        Raises:
            ParserError: If the symbol is not one of + - * / == != :=
        """
        try:
            return cls(symbol)
        except ValueError:
            raise error_unknown_operator(symbol, span) from None

    def __str__(self) -> str:
        return self.value


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass
class Expr:
    """Base class for all AST nodes."""


@dataclass
class Leaf(Expr):
    """A literal, identifier, type name or error token."""
    token: Token
    span: Optional[SourceSpan] = field(default=None, compare=False, repr=False)

    @property
    def is_identifier(self) -> bool:
        return self.token.type == TokenType.IDENTIFIER

    def __str__(self) -> str:
        return str(self.token)


@dataclass
class BinaryExpr(Expr):
    """A binary operation; `lhs op rhs`, including `name := value`."""
    op: Operator
    lhs: Expr
    rhs: Expr
    span: Optional[SourceSpan] = field(default=None, compare=False, repr=False)

    def __str__(self) -> str:
        return f"{self.lhs} {self.op} {self.rhs}"


@dataclass
class FnCall(Expr):
    """A call of a named function with positional arguments."""
    name: str
    args: List[Expr] = field(default_factory=list)
    span: Optional[SourceSpan] = field(default=None, compare=False, repr=False)

    def __str__(self) -> str:
        return f"{self.name}({', '.join(str(a) for a in self.args)})"


@dataclass
class FnDef(Expr):
    """
    A function definition statement.

    `args` maps (positional index, parameter name) to the parameter's type
    annotation leaf. `return_type` is the annotated return type name, or
    "_none" when the definition has no `->` clause.
    """
    name: str
    args: Dict[Tuple[int, str], Leaf] = field(default_factory=dict)
    body: List[Expr] = field(default_factory=list)
    return_type: str = "_none"
    span: Optional[SourceSpan] = field(default=None, compare=False, repr=False)

    @property
    def parameters(self) -> List[Tuple[str, Leaf]]:
        """Parameters as (name, annotation) pairs in positional order."""
        return [(name, annotation) for (_, name), annotation in sorted(self.args.items(), key=lambda item: item[0])]

    def __str__(self) -> str:
        params = ", ".join(f"{annotation} {name}" for name, annotation in self.parameters)
        arrow = "" if self.return_type == "_none" else f" -> {self.return_type}"
        # Nested definitions close with their own brace
        body = " ".join(str(stmt) if isinstance(stmt, FnDef) else f"{stmt};" for stmt in self.body)
        block = f"{{ {body} }}" if body else "{ }"
        return f"func {self.name}({params}){arrow} {block}"


@dataclass
class Return(Expr):
    """`return inner`: ends the enclosing call with the value of `inner`."""
    inner: Expr
    span: Optional[SourceSpan] = field(default=None, compare=False, repr=False)

    def __str__(self) -> str:
        return f"return {self.inner}"


# =============================================================================
# Visitor Helpers
# =============================================================================

class PrintVisitor:
    """Debug visitor that writes the AST structure as indented lines."""

    def __init__(self, indent: int = 0):
        self.indent = indent
        self.lines: List[str] = []

    def _emit(self, text: str) -> None:
        self.lines.append("  " * self.indent + text)

    def _child(self, node: Expr) -> None:
        child = PrintVisitor(self.indent + 2)
        child.visit(node)
        self.lines.extend(child.lines)

    def visit(self, node: Expr) -> None:
        if isinstance(node, Leaf):
            self._emit(f"Leaf {node.token.type.name} {node.token}")
            return
        self._emit(node.__class__.__name__)
        for name, value in node.__dict__.items():
            if name == "span":
                continue
            if isinstance(value, Expr):
                self._emit(f"  {name}:")
                self._child(value)
            elif isinstance(value, list):
                self._emit(f"  {name}: [")
                for item in value:
                    self._child(item)
                self._emit("  ]")
            elif isinstance(value, dict):
                self._emit(f"  {name}:")
                for (index, param), annotation in sorted(value.items(), key=lambda item: item[0]):
                    self._emit(f"    {index}: {param} {annotation}")
            else:
                self._emit(f"  {name}: {value}")


def format_ast(nodes: List[Expr]) -> str:
    """Render a list of top-level nodes for debugging."""
    lines: List[str] = []
    for node in nodes:
        visitor = PrintVisitor()
        visitor.visit(node)
        lines.extend(visitor.lines)
    return "\n".join(lines)
