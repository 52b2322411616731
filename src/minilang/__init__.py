"""
minilang - a small dynamically typed language.

This module provides:
- Lexer: Tokenizes source code
- Parser: Builds a list of top-level AST statements from tokens
- Interpreter: Evaluates the statements with a tree walk

Usage:
    from minilang import tokenize, parse, Interpreter

    source = '''
    func add(int a, int b) -> int {
        return a + b;
    }
    print(add(2, 3));
    '''
    interpreter = Interpreter(parse(tokenize(source)))
    interpreter.run()

    # Or let errors come back in a result object
    result = compile_and_run(source)
    if not result.success:
        print(result.error_message)
"""

import logging
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("minilang")
except PackageNotFoundError:  # pragma: no cover - handled when package not installed
    __version__ = "unknown"

from .tokens import (
    Token,
    TokenType,
    SourceLocation,
    SourceSpan,
    KEYWORDS,
)

from .lexer import (
    Lexer,
    tokenize,
)

from .parser import (
    Parser,
    parse,
)

from .ast import (
    Expr,
    Leaf,
    BinaryExpr,
    FnCall,
    FnDef,
    Return,
    Operator,
    format_ast,
)

from .errors import (
    LangError,
    LexerError,
    ParserError,
    EvaluationError,
    Diagnostic,
    ErrorSeverity,
)

from .types import (
    ValueType,
    resolve_type_name,
)

from .config import Settings

from .runtime import (
    Interpreter,
    ExecutionResult,
    compile_and_run,
    Value,
    Scope,
    BuiltinRegistry,
    get_builtin_registry,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Tokens
    'Token',
    'TokenType',
    'SourceLocation',
    'SourceSpan',
    'KEYWORDS',

    # Lexer
    'Lexer',
    'tokenize',

    # Parser
    'Parser',
    'parse',

    # AST nodes
    'Expr',
    'Leaf',
    'BinaryExpr',
    'FnCall',
    'FnDef',
    'Return',
    'Operator',
    'format_ast',

    # Errors
    'LangError',
    'LexerError',
    'ParserError',
    'EvaluationError',
    'Diagnostic',
    'ErrorSeverity',

    # Types
    'ValueType',
    'resolve_type_name',

    # Configuration
    'Settings',

    # Runtime
    'Interpreter',
    'ExecutionResult',
    'compile_and_run',
    'Value',
    'Scope',
    'BuiltinRegistry',
    'get_builtin_registry',
]
