"""
Built-in function registry for the minilang interpreter.

The interpreter only sees built-ins as `BuiltinFn` handles in the top-level
scope. The registry fills that scope in (`populate`) and executes a handle
when it is called (`call_builtin`), checking argument count and types and
the declared return type on the way.
"""

import logging
import sys
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, TextIO

from .values import (
    Value, BuiltinFn, NOTHING, int_val, string_val, fn_val,
)
from .context import Scope
from ..errors import (
    ArityMismatchError,
    AssertionFailedError,
    InvalidArgumentError,
    TypeMismatchError,
    UnknownBuiltinError,
)
from ..types import ValueType

logger = logging.getLogger(__name__)


@dataclass
class BuiltinFunction:
    """
    A built-in function with its implementation and signature.

    `param_types` lists the accepted type of each positional parameter, with
    None accepting any value. A variadic function takes any number of
    arguments and ignores `param_types`.
    """
    name: str
    return_type: ValueType
    implementation: Callable[..., Value]
    param_types: Optional[List[Optional[ValueType]]] = None
    is_variadic: bool = False

    @property
    def arity(self) -> Optional[int]:
        if self.is_variadic:
            return None
        return len(self.param_types or [])


class BuiltinRegistry:
    """
    Registry of all built-in functions.

    Functions are registered by name and can be looked up for execution.
    `print` writes to `output`, or to the current `sys.stdout` when unset.
    """

    def __init__(self, output: Optional[TextIO] = None):
        self.output = output
        self._functions: Dict[str, BuiltinFunction] = {}
        self._register_all()

    def get_function(self, name: str) -> Optional[BuiltinFunction]:
        """Look up a function by name."""
        return self._functions.get(name)

    def register(self, func: BuiltinFunction) -> None:
        """Register a function, replacing any earlier one of the same name."""
        if func.name in self._functions:
            logger.debug("overriding builtin %s", func.name)
        self._functions[func.name] = func

    @property
    def names(self) -> List[str]:
        return sorted(self._functions)

    def populate(self, scope: Scope) -> None:
        """Bind a handle for every registered function into `scope`."""
        for func in self._functions.values():
            scope.set(func.name, fn_val(BuiltinFn(func.name, func.return_type)))
        logger.debug("populated scope %s with %d builtin(s)", scope.name, len(self._functions))

    def call_builtin(self, name: str, args: List[Value], return_type: ValueType) -> Value:
        """
        Execute a built-in with already-evaluated arguments.

        Raises:
            UnknownBuiltinError: If nothing is registered under `name`
            ArityMismatchError: If the argument count is wrong
            TypeMismatchError: If an argument or the result has the wrong type
        """
        func = self.get_function(name)
        if func is None:
            raise UnknownBuiltinError(name)

        if not func.is_variadic:
            param_types = func.param_types or []
            if len(args) != func.arity:
                raise ArityMismatchError(name, func.arity, len(args))
            for expected, arg in zip(param_types, args):
                if expected is not None and arg.type != expected:
                    raise TypeMismatchError(
                        f"'{name}'", f"({', '.join(str(t) for t in param_types)})",
                        tuple(a.type for a in args),
                    )

        logger.debug("calling builtin %s with %d argument(s)", name, len(args))
        result = func.implementation(*args)

        if result.type != return_type:
            raise TypeMismatchError(f"result of '{name}'", str(return_type), (result.type,))
        return result

    def _register_all(self) -> None:
        """Register all default built-in functions."""
        self._register_io_functions()
        self._register_conversion_functions()
        self._register_utility_functions()

    # --- I/O ---

    def _register_io_functions(self) -> None:

        def _print(*args: Value) -> Value:
            out = self.output if self.output is not None else sys.stdout
            out.write(" ".join(a.display() for a in args) + "\n")
            return NOTHING

        self.register(BuiltinFunction("print", ValueType.NOTHING, _print, is_variadic=True))

    # --- Conversions ---

    def _register_conversion_functions(self) -> None:

        def _to_string(x: Value) -> Value:
            return string_val(x.display())

        def _parse_int(s: Value) -> Value:
            text = s.data.strip()
            digits = text[1:] if text[:1] in ("-", "+") else text
            if not digits.isdecimal():
                raise InvalidArgumentError("parse_int", f"{s.data!r} is not an integer")
            return int_val(int(text))

        self.register(BuiltinFunction("to_string", ValueType.STRING, _to_string, [None]))
        self.register(BuiltinFunction("parse_int", ValueType.INT, _parse_int, [ValueType.STRING]))

    # --- Utilities ---

    def _register_utility_functions(self) -> None:

        def _len(s: Value) -> Value:
            return int_val(len(s.data))

        def _type_of(x: Value) -> Value:
            return string_val(str(x.type))

        def _assert(condition: Value) -> Value:
            if not condition.data:
                raise AssertionFailedError()
            return NOTHING

        self.register(BuiltinFunction("len", ValueType.INT, _len, [ValueType.STRING]))
        self.register(BuiltinFunction("type_of", ValueType.STRING, _type_of, [None]))
        self.register(BuiltinFunction("assert", ValueType.NOTHING, _assert, [ValueType.BOOL]))


# Global singleton registry
_registry: Optional[BuiltinRegistry] = None


def get_builtin_registry() -> BuiltinRegistry:
    """Get the global built-in function registry."""
    global _registry
    if _registry is None:
        _registry = BuiltinRegistry()
    return _registry


def call_builtin(name: str, args: List[Value], return_type: ValueType) -> Value:
    """Call a built-in function through the global registry."""
    return get_builtin_registry().call_builtin(name, args, return_type)
