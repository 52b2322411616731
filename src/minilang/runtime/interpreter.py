"""
Tree-walking interpreter for minilang.

Evaluates the parser's top-level statements in order against a single
top-level scope. Function calls evaluate their bodies in a snapshot of the
caller's scope; `return` ends a call through the active `CallFrame` rather
than through an exception.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from .values import (
    Value, BuiltinFn, UserFn, NOTHING,
    int_val, string_val, bool_val, fn_val,
)
from .context import Scope, CallFrame
from .builtins import BuiltinRegistry, get_builtin_registry

from ..ast import Expr, Leaf, BinaryExpr, FnCall, FnDef, Return, Operator
from ..config import Settings
from ..errors import (
    LangError,
    ArityMismatchError,
    CallDepthExceededError,
    DivisionByZeroError,
    InvalidExpressionError,
    NotCallableError,
    ReturnOutsideFunctionError,
    TypeMismatchError,
    UndefinedFunctionError,
    UndefinedVariableError,
)
from ..lexer import tokenize
from ..parser import parse
from ..tokens import TokenType
from ..types import ValueType, resolve_type_name

logger = logging.getLogger(__name__)

# Types that `==` and `!=` can compare (both sides must share one)
COMPARABLE_TYPES = (ValueType.INT, ValueType.STRING, ValueType.BOOL)


def _truncating_div(left: int, right: int) -> int:
    """Integer division rounding toward zero."""
    quotient = abs(left) // abs(right)
    return -quotient if (left < 0) != (right < 0) else quotient


class Interpreter:
    """
    Tree-walking interpreter.

    Usage:
        interpreter = Interpreter(parse(tokenize(source)))
        interpreter.run()

    The top-level scope is created here, filled with built-ins by the
    registry, and lives as long as the interpreter.
    """

    def __init__(self, exprs: List[Expr], settings: Optional[Settings] = None,
                 registry: Optional[BuiltinRegistry] = None):
        self.exprs = list(exprs)
        self.settings = settings if settings is not None else Settings.from_env()
        self.registry = registry if registry is not None else get_builtin_registry()
        self.scope = Scope(name="toplevel")
        self.registry.populate(self.scope)
        self._frames: List[CallFrame] = []

    @property
    def call_depth(self) -> int:
        return len(self._frames)

    def run(self) -> None:
        """Evaluate every top-level statement for its effect."""
        for index, expr in enumerate(self.exprs):
            logger.debug("statement %d: %s", index, expr)
            self.interpret_expr(expr, self.scope)

    def interpret_expr(self, expr: Expr, scope: Scope) -> Value:
        """Evaluate an expression in `scope`, binding names as a side effect."""
        if isinstance(expr, Leaf):
            return self._eval_leaf(expr, scope)
        elif isinstance(expr, BinaryExpr):
            if expr.op == Operator.SET_VAL:
                return self._eval_set_val(expr, scope)
            return self._eval_binary_op(expr, scope)
        elif isinstance(expr, FnCall):
            return self._eval_fn_call(expr, scope)
        elif isinstance(expr, FnDef):
            return self._eval_fn_def(expr, scope)
        elif isinstance(expr, Return):
            return self._eval_return(expr, scope)
        else:
            raise InvalidExpressionError(type(expr).__name__)

    # =========================================================================
    # Leaves and Operators
    # =========================================================================

    def _eval_leaf(self, leaf: Leaf, scope: Scope) -> Value:
        """Evaluate a literal or look up an identifier."""
        token = leaf.token
        if token.type == TokenType.INT_LITERAL:
            return int_val(token.value)
        elif token.type == TokenType.STRING_LITERAL:
            return string_val(token.value)
        elif token.type == TokenType.BOOL_LITERAL:
            return bool_val(token.value)
        elif token.type == TokenType.IDENTIFIER:
            value = scope.get(token.value)
            if value is None:
                raise UndefinedVariableError(token.value, leaf.span)
            return value

        if self.settings.permissive_leaves:
            logger.debug("permissive fallback for %s leaf", token.type.name)
            return NOTHING
        raise InvalidExpressionError(token.lexeme or token.type.name, leaf.span)

    def _eval_set_val(self, expr: BinaryExpr, scope: Scope) -> Value:
        """Evaluate `name := value`: bind the value, produce Nothing."""
        if not (isinstance(expr.lhs, Leaf) and expr.lhs.is_identifier):
            raise InvalidExpressionError(str(expr.lhs), expr.span)
        value = self.interpret_expr(expr.rhs, scope)
        if self._returning():
            return self._frames[-1].return_value
        scope.set(expr.lhs.token.value, value)
        return NOTHING

    def _eval_binary_op(self, expr: BinaryExpr, scope: Scope) -> Value:
        """Evaluate an arithmetic or comparison operator."""
        left = self.interpret_expr(expr.lhs, scope)
        if self._returning():
            return self._frames[-1].return_value
        right = self.interpret_expr(expr.rhs, scope)
        if self._returning():
            return self._frames[-1].return_value
        op = expr.op
        types = (left.type, right.type)

        if op == Operator.ADD:
            if types == (ValueType.INT, ValueType.INT):
                return int_val(left.data + right.data)
            if types == (ValueType.STRING, ValueType.STRING):
                return string_val(left.data + right.data)
            raise TypeMismatchError(f"'{op}'", "two ints or two strings", types, expr.span)

        if op in (Operator.SUB, Operator.MUL, Operator.DIV):
            if types != (ValueType.INT, ValueType.INT):
                raise TypeMismatchError(f"'{op}'", "two ints", types, expr.span)
            if op == Operator.SUB:
                return int_val(left.data - right.data)
            if op == Operator.MUL:
                return int_val(left.data * right.data)
            if right.data == 0:
                raise DivisionByZeroError(expr.span)
            return int_val(_truncating_div(left.data, right.data))

        if op in (Operator.EQ, Operator.NEQ):
            if left.type != right.type or left.type not in COMPARABLE_TYPES:
                raise TypeMismatchError(
                    f"'{op}'", "two ints, two strings or two bools", types, expr.span
                )
            equal = left.data == right.data
            return bool_val(equal if op == Operator.EQ else not equal)

        raise InvalidExpressionError(str(expr), expr.span)

    # =========================================================================
    # Functions
    # =========================================================================

    def _eval_fn_def(self, fn_def: FnDef, scope: Scope) -> Value:
        """Bind a user function under its name in the current scope."""
        args = {
            key: resolve_type_name(annotation.token.value, annotation.span)
            for key, annotation in fn_def.args.items()
        }
        user_fn = UserFn(
            name=fn_def.name,
            args=args,
            body=list(fn_def.body),
            return_type=resolve_type_name(fn_def.return_type, fn_def.span),
        )
        scope.set(fn_def.name, fn_val(user_fn))
        logger.debug("defined %s/%d in scope %s", fn_def.name, user_fn.arity, scope.name)
        return NOTHING

    def _eval_fn_call(self, call: FnCall, scope: Scope) -> Value:
        """Evaluate arguments left to right, then dispatch on the callee."""
        args = []
        for arg in call.args:
            args.append(self.interpret_expr(arg, scope))
            if self._returning():
                return self._frames[-1].return_value

        callee = scope.get(call.name)
        if callee is None:
            raise UndefinedFunctionError(call.name, call.span)
        if callee.type != ValueType.FN:
            raise NotCallableError(call.name, callee.type, call.span)

        fn = callee.data
        if isinstance(fn, BuiltinFn):
            return self.registry.call_builtin(fn.name, args, fn.return_type)
        return self._call_user_fn(fn, args, scope, call)

    def _call_user_fn(self, fn: UserFn, args: List[Value], scope: Scope, call: FnCall) -> Value:
        """Run a user function body in a snapshot of the caller's scope."""
        if self.call_depth >= self.settings.max_call_depth:
            raise CallDepthExceededError(self.settings.max_call_depth, call.span)
        if len(args) != fn.arity:
            raise ArityMismatchError(fn.name, fn.arity, len(args), call.span)

        call_scope = scope.snapshot(f"call:{fn.name}")
        for (index, name), expected in fn.args.items():
            arg = args[index]
            if self.settings.check_types and arg.type != expected:
                raise TypeMismatchError(
                    f"argument '{name}' of '{fn.name}'", str(expected), (arg.type,), call.span
                )
            call_scope.set(name, arg)

        logger.debug("calling %s at depth %d", fn.name, self.call_depth + 1)
        frame = CallFrame(fn.name)
        self._frames.append(frame)
        try:
            for stmt in fn.body:
                self.interpret_expr(stmt, call_scope)
                if frame.should_return:
                    break
        finally:
            self._frames.pop()

        result = frame.return_value
        if (self.settings.check_types and fn.return_type != ValueType.NOTHING
                and result.type != fn.return_type):
            raise TypeMismatchError(
                f"return value of '{fn.name}'", str(fn.return_type), (result.type,), call.span
            )
        return result

    def _eval_return(self, ret: Return, scope: Scope) -> Value:
        """Evaluate the returned expression and signal the active call."""
        if not self._frames:
            raise ReturnOutsideFunctionError(ret.span)
        value = self.interpret_expr(ret.inner, scope)
        frame = self._frames[-1]
        if not frame.should_return:
            frame.signal_return(value)
        return frame.return_value

    def _returning(self) -> bool:
        """True once the innermost active call has executed a `return`."""
        return bool(self._frames) and self._frames[-1].should_return


@dataclass
class ExecutionResult:
    """Result of running a program from source."""
    success: bool
    interpreter: Optional[Interpreter] = None
    error: Optional[LangError] = None

    @property
    def error_message(self) -> Optional[str]:
        if self.error is None:
            return None
        return str(self.error)

    @property
    def scope(self) -> Optional[Scope]:
        """The final top-level scope, when the program got as far as running."""
        if self.interpreter is None:
            return None
        return self.interpreter.scope


def compile_and_run(
    source: str,
    filename: Optional[str] = None,
    settings: Optional[Settings] = None,
    registry: Optional[BuiltinRegistry] = None,
) -> ExecutionResult:
    """
    Lex, parse and run a program.

    Language errors are reported in the result rather than raised.
    """
    interpreter = None
    try:
        exprs = parse(tokenize(source, filename))
        interpreter = Interpreter(exprs, settings=settings, registry=registry)
        interpreter.run()
    except LangError as e:
        e.attach_source(source)
        logger.debug("run failed: %s", e.diagnostic.message)
        return ExecutionResult(success=False, interpreter=interpreter, error=e)
    return ExecutionResult(success=True, interpreter=interpreter)
