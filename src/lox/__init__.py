"""Lox tree-walking interpreter — public API."""

from __future__ import annotations

from .ast import Stmt
from .emit import print_expr as print_expr, print_program as print_program
from .errors import (
    LoxError as LoxError,
    LoxRuntimeError as LoxRuntimeError,
    StaticError as StaticError,
)
from .parse import ParseError as ParseError, parse_tokens
from .resolve import ResolveError as ResolveError, resolve as resolve
from .runtime import (
    EXIT_STATIC_ERROR,
    Interpreter as Interpreter,
    RunResult as RunResult,
    run as run,
)
from .tokens import TokenizeError as TokenizeError, tokenize as tokenize


def parse(source: str) -> tuple[list[Stmt], list[StaticError]]:
    """Scan and parse Lox source. Returns (statements, scan + parse errors)."""
    tokens, scan_errors = tokenize(source)
    stmts, parse_errors = parse_tokens(tokens)
    errors: list[StaticError] = [*scan_errors, *parse_errors]
    return stmts, errors


def check(source: str) -> list[StaticError]:
    """Parse and resolve Lox source. Returns all static errors (empty = ok)."""
    stmts, errors = parse(source)
    if errors:
        return errors
    _, resolve_errors = resolve(stmts)
    return list(resolve_errors)


def run_source(source: str) -> RunResult:
    """Scan, parse, resolve, and (only if all of that succeeded) interpret."""
    stmts, errors = parse(source)
    if errors:
        return _static_failure(errors)
    bindings, resolve_errors = resolve(stmts)
    if resolve_errors:
        return _static_failure(list(resolve_errors))
    return run(stmts, bindings)


def _static_failure(errors: list[StaticError]) -> RunResult:
    stderr = "".join(str(e) + "\n" for e in errors)
    return RunResult(EXIT_STATIC_ERROR, "", stderr, list(errors))
