"""Lox AST printer — renders nodes in fully parenthesized prefix form.

    (* (- 123) (group 45.67))

Total over the AST in `lox/ast.py`: a new node type needs a case here too.
"""

from __future__ import annotations

from .ast import (
    AssignExpr,
    BinaryExpr,
    BlockStmt,
    CallExpr,
    ClassStmt,
    Expr,
    ExpressionStmt,
    FunctionStmt,
    GetExpr,
    GroupingExpr,
    IfStmt,
    LiteralExpr,
    LogicalExpr,
    PrintStmt,
    ReturnStmt,
    SetExpr,
    Stmt,
    SuperExpr,
    ThisExpr,
    UnaryExpr,
    VarStmt,
    VariableExpr,
    WhileStmt,
)
from .errors import deep_recursion
from .runtime import format_number


def print_expr(expr: Expr) -> str:
    return _Printer().expr(expr)


def print_stmt(stmt: Stmt) -> str:
    return _Printer().stmt(stmt)


def print_program(stmts: list[Stmt]) -> str:
    """One line per top-level statement."""
    printer = _Printer()
    with deep_recursion():
        return "".join(printer.stmt(st) + "\n" for st in stmts)


def _literal(value: object) -> str:
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return format_number(value)
    if isinstance(value, str):
        return '"' + value + '"'
    return str(value)


class _Printer:
    def _paren(self, name: str, *parts: str) -> str:
        if not parts:
            return "(" + name + ")"
        return "(" + name + " " + " ".join(parts) + ")"

    # ── Expressions ─────────────────────────────────────────

    def expr(self, e: Expr) -> str:
        if isinstance(e, LiteralExpr):
            return _literal(e.value)
        if isinstance(e, GroupingExpr):
            return self._paren("group", self.expr(e.expression))
        if isinstance(e, UnaryExpr):
            return self._paren(e.operator.lexeme, self.expr(e.right))
        if isinstance(e, (BinaryExpr, LogicalExpr)):
            return self._paren(e.operator.lexeme, self.expr(e.left), self.expr(e.right))
        if isinstance(e, VariableExpr):
            return e.name.lexeme
        if isinstance(e, AssignExpr):
            return self._paren("=", e.name.lexeme, self.expr(e.value))
        if isinstance(e, CallExpr):
            return self._paren("call", self.expr(e.callee), *map(self.expr, e.arguments))
        if isinstance(e, GetExpr):
            return self._paren(".", self.expr(e.object), e.name.lexeme)
        if isinstance(e, SetExpr):
            return self._paren(
                "=", self._paren(".", self.expr(e.object), e.name.lexeme), self.expr(e.value)
            )
        if isinstance(e, ThisExpr):
            return "this"
        if isinstance(e, SuperExpr):
            return self._paren("super", e.method.lexeme)
        raise TypeError("unsupported expression: " + type(e).__name__)

    # ── Statements ──────────────────────────────────────────

    def stmt(self, s: Stmt) -> str:
        if isinstance(s, ExpressionStmt):
            return self._paren(";", self.expr(s.expression))
        if isinstance(s, PrintStmt):
            return self._paren("print", self.expr(s.expression))
        if isinstance(s, VarStmt):
            if s.initializer is None:
                return self._paren("var", s.name.lexeme)
            return self._paren("var", s.name.lexeme, self.expr(s.initializer))
        if isinstance(s, BlockStmt):
            return self._paren("block", *map(self.stmt, s.statements))
        if isinstance(s, IfStmt):
            parts = [self.expr(s.condition), self.stmt(s.then_branch)]
            if s.else_branch is not None:
                parts.append(self.stmt(s.else_branch))
            return self._paren("if", *parts)
        if isinstance(s, WhileStmt):
            return self._paren("while", self.expr(s.condition), self.stmt(s.body))
        if isinstance(s, ReturnStmt):
            if s.value is None:
                return self._paren("return")
            return self._paren("return", self.expr(s.value))
        if isinstance(s, FunctionStmt):
            return self._function("fun", s)
        if isinstance(s, ClassStmt):
            parts = [s.name.lexeme]
            if s.superclass is not None:
                parts += ["<", s.superclass.name.lexeme]
            parts += [self._function("method", m) for m in s.methods]
            return self._paren("class", *parts)
        raise TypeError("unsupported statement: " + type(s).__name__)

    def _function(self, kind: str, fn: FunctionStmt) -> str:
        params = "(" + " ".join(p.lexeme for p in fn.params) + ")"
        return self._paren(kind, fn.name.lexeme, params, *map(self.stmt, fn.body))
