"""Lox diagnostics — error classes shared by every pipeline stage."""

from __future__ import annotations

import sys
from contextlib import contextmanager
from typing import Iterator

# Host frames available to one pipeline stage. Each level of source nesting
# costs several frames in the parser and each Lox call several in the
# interpreter.
RECURSION_LIMIT: int = 10000


class LoxError(Exception):
    """Base error for Lox scanning/parsing/resolution/evaluation."""

    def __init__(self, msg: str, line: int, where: str = ""):
        self.msg: str = msg
        self.line: int = line
        self.where: str = where
        super().__init__(self.render())

    def render(self) -> str:
        return "[line " + str(self.line) + "] Error" + self.where + ": " + self.msg


class StaticError(LoxError):
    """Error reported before evaluation starts (scan, parse, resolve)."""


class LoxRuntimeError(LoxError):
    """Runtime fault. Aborts the whole run."""

    def render(self) -> str:
        return self.msg + "\n[line " + str(self.line) + "]"


@contextmanager
def deep_recursion() -> Iterator[None]:
    """Raise the host recursion limit to RECURSION_LIMIT for the block."""
    previous = sys.getrecursionlimit()
    sys.setrecursionlimit(max(previous, RECURSION_LIMIT))
    try:
        yield
    finally:
        sys.setrecursionlimit(previous)
