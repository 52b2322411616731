"""
minilang runtime - tree-walking interpreter.

This module provides:
- Interpreter: Evaluates parsed statements against a top-level scope
- Value: Runtime value wrappers with type metadata
- Scope / CallFrame: Variable bindings and per-call return state
- BuiltinRegistry: Built-in function implementations
"""

from .values import (
    Value,
    BuiltinFn,
    UserFn,
    NOTHING,
    int_val,
    string_val,
    bool_val,
    fn_val,
)

from .context import (
    Scope,
    CallFrame,
)

from .builtins import (
    BuiltinFunction,
    BuiltinRegistry,
    get_builtin_registry,
    call_builtin,
)

from .interpreter import (
    Interpreter,
    ExecutionResult,
    compile_and_run,
)

__all__ = [
    # Values
    'Value',
    'BuiltinFn',
    'UserFn',
    'NOTHING',
    'int_val',
    'string_val',
    'bool_val',
    'fn_val',

    # Context
    'Scope',
    'CallFrame',

    # Builtins
    'BuiltinFunction',
    'BuiltinRegistry',
    'get_builtin_registry',
    'call_builtin',

    # Interpreter
    'Interpreter',
    'ExecutionResult',
    'compile_and_run',
]
