#!/usr/bin/env python3
"""
CLI for the minilang interpreter.

Usage:
    python -m minilang run FILE
    python -m minilang check FILE
    python -m minilang ast FILE
    python -m minilang tokens FILE

Examples:
    # Run a program
    python -m minilang run examples/add.ml

    # Check syntax only (lex and parse, no evaluation)
    python -m minilang check examples/add.ml

    # Show the parsed statements, with debug logging
    python -m minilang -v ast examples/add.ml

Environment:
    MINILANG_MAX_CALL_DEPTH, MINILANG_PERMISSIVE_LEAVES and
    MINILANG_LOG_LEVEL are read on every invocation; see minilang.config.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional


def _read_source(path_str: str) -> Optional[str]:
    """Read a source file, reporting a missing file on stderr."""
    source_path = Path(path_str)
    if not source_path.exists():
        print(f"Error: File not found: {source_path}", file=sys.stderr)
        return None
    return source_path.read_text()


def cmd_run(args, settings):
    """Run a program."""
    from . import compile_and_run

    source = _read_source(args.file)
    if source is None:
        return 1

    result = compile_and_run(source, filename=args.file, settings=settings)
    if not result.success:
        print(result.error_message, file=sys.stderr)
        return 1
    return 0


def cmd_check(args, settings):
    """Check a program for lexer and parser errors."""
    from . import tokenize, parse, LangError

    source = _read_source(args.file)
    if source is None:
        return 1

    try:
        statements = parse(tokenize(source, args.file))
    except LangError as e:
        e.attach_source(source)
        print(e, file=sys.stderr)
        return 1

    print(f"OK: {Path(args.file).name} - {len(statements)} statement(s), no errors")
    return 0


def cmd_ast(args, settings):
    """Print the parsed statements."""
    from . import tokenize, parse, format_ast, LangError

    source = _read_source(args.file)
    if source is None:
        return 1

    try:
        statements = parse(tokenize(source, args.file))
    except LangError as e:
        e.attach_source(source)
        print(e, file=sys.stderr)
        return 1

    if statements:
        print(format_ast(statements))
    return 0


def cmd_tokens(args, settings):
    """Print the token stream, one token per line."""
    from . import tokenize, LangError

    source = _read_source(args.file)
    if source is None:
        return 1

    try:
        tokens = tokenize(source, args.file)
    except LangError as e:
        e.attach_source(source)
        print(e, file=sys.stderr)
        return 1

    for token in tokens:
        location = token.span.start if token.span is not None else "?"
        print(f"{location}\t{token.type.name}\t{token}")
    return 0


def main(argv=None):
    from .config import Settings

    parser = argparse.ArgumentParser(
        prog='python -m minilang',
        description='minilang interpreter',
    )
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable debug logging')

    subparsers = parser.add_subparsers(dest='action', required=True)

    run_parser = subparsers.add_parser('run', help='Run a program')
    run_parser.add_argument('file', help='Source file')

    check_parser = subparsers.add_parser('check', help='Check a program for syntax errors')
    check_parser.add_argument('file', help='Source file')

    ast_parser = subparsers.add_parser('ast', help='Print the parsed statements')
    ast_parser.add_argument('file', help='Source file')

    tokens_parser = subparsers.add_parser('tokens', help='Print the token stream')
    tokens_parser.add_argument('file', help='Source file')

    args = parser.parse_args(argv)

    try:
        settings = Settings.from_env()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level,
        format='%(levelname)s %(name)s: %(message)s',
    )

    if args.action == 'run':
        return cmd_run(args, settings)
    elif args.action == 'check':
        return cmd_check(args, settings)
    elif args.action == 'ast':
        return cmd_ast(args, settings)
    elif args.action == 'tokens':
        return cmd_tokens(args, settings)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
