"""
Runtime values for the minilang interpreter.

A `Value` pairs the raw Python data with its `ValueType`. Values are frozen,
so scopes can share the same object freely: a binding never changes after
the statement that made it.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple, Union

from ..ast import Expr
from ..types import ValueType


@dataclass(frozen=True)
class BuiltinFn:
    """Handle to a function implemented by the built-in registry."""
    name: str
    return_type: ValueType

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class UserFn:
    """A function defined by a `func` statement in the program."""
    name: str
    args: Dict[Tuple[int, str], ValueType] = field(default_factory=dict)
    body: List[Expr] = field(default_factory=list)
    return_type: ValueType = ValueType.NOTHING

    @property
    def arity(self) -> int:
        return len(self.args)

    def __str__(self) -> str:
        return self.name


FnType = Union[BuiltinFn, UserFn]


@dataclass(frozen=True)
class Value:
    """
    A runtime value with its type.

    The `data` field holds the Python object (int, str, bool, a function
    handle, or None for Nothing).
    """
    data: Any
    type: ValueType

    def __repr__(self) -> str:
        return f"Value({self.data!r}, {self.type})"

    def display(self) -> str:
        """The text a program sees when the value is printed."""
        if self.type == ValueType.BOOL:
            return "true" if self.data else "false"
        if self.type == ValueType.FN:
            return f"<fn {self.data.name}>"
        if self.type == ValueType.NOTHING:
            return "Nothing"
        return str(self.data)


# Convenience constructors

def int_val(n: int) -> Value:
    """Create an integer value."""
    return Value(int(n), ValueType.INT)


def string_val(s: str) -> Value:
    """Create a string value."""
    return Value(str(s), ValueType.STRING)


def bool_val(b: bool) -> Value:
    """Create a boolean value."""
    return Value(bool(b), ValueType.BOOL)


def fn_val(fn: FnType) -> Value:
    """Wrap a builtin or user function handle."""
    return Value(fn, ValueType.FN)


NOTHING = Value(None, ValueType.NOTHING)
