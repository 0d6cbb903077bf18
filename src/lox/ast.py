"""Lox AST — parse-time node definitions."""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field

from .tokens import Token


_node_ids = itertools.count(1)


def _next_node_id() -> int:
    return next(_node_ids)


# ============================================================
# EXPRESSIONS
# ============================================================


@dataclass(frozen=True)
class Expr:
    """Base for all expressions.

    node_id is unique per constructed node and keys the resolver's binding
    table. It is excluded from equality so structurally equal trees compare
    equal.
    """

    node_id: int = field(
        default_factory=_next_node_id, kw_only=True, compare=False, repr=False
    )


@dataclass(frozen=True)
class LiteralExpr(Expr):
    """nil, true, false, number, or string."""

    value: object


@dataclass(frozen=True)
class GroupingExpr(Expr):
    """( expression )."""

    expression: Expr


@dataclass(frozen=True)
class UnaryExpr(Expr):
    """op right — '!' or '-'."""

    operator: Token
    right: Expr


@dataclass(frozen=True)
class BinaryExpr(Expr):
    """left op right."""

    left: Expr
    operator: Token
    right: Expr


@dataclass(frozen=True)
class LogicalExpr(Expr):
    """left and/or right, short-circuiting."""

    left: Expr
    operator: Token
    right: Expr


@dataclass(frozen=True)
class VariableExpr(Expr):
    """Variable reference."""

    name: Token


@dataclass(frozen=True)
class AssignExpr(Expr):
    """name = value."""

    name: Token
    value: Expr


@dataclass(frozen=True)
class CallExpr(Expr):
    """callee(arguments). paren is the closing ')' for line attribution."""

    callee: Expr
    paren: Token
    arguments: list[Expr]


@dataclass(frozen=True)
class GetExpr(Expr):
    """object.name."""

    object: Expr
    name: Token


@dataclass(frozen=True)
class SetExpr(Expr):
    """object.name = value."""

    object: Expr
    name: Token
    value: Expr


@dataclass(frozen=True)
class ThisExpr(Expr):
    keyword: Token


@dataclass(frozen=True)
class SuperExpr(Expr):
    """super.method."""

    keyword: Token
    method: Token


# ============================================================
# STATEMENTS
# ============================================================


@dataclass(frozen=True)
class Stmt:
    """Base for all statements."""


@dataclass(frozen=True)
class BlockStmt(Stmt):
    """{ statements }."""

    statements: list[Stmt]


@dataclass(frozen=True)
class IfStmt(Stmt):
    """if (condition) then_branch else else_branch."""

    condition: Expr
    then_branch: Stmt
    else_branch: Stmt | None


@dataclass(frozen=True)
class WhileStmt(Stmt):
    """while (condition) body. Also the desugared form of 'for'."""

    condition: Expr
    body: Stmt


@dataclass(frozen=True)
class ExpressionStmt(Stmt):
    """Bare expression as statement."""

    expression: Expr


@dataclass(frozen=True)
class PrintStmt(Stmt):
    expression: Expr


@dataclass(frozen=True)
class ReturnStmt(Stmt):
    """return value?;"""

    keyword: Token
    value: Expr | None


@dataclass(frozen=True)
class VarStmt(Stmt):
    """var name = initializer?;"""

    name: Token
    initializer: Expr | None


@dataclass(frozen=True)
class FunctionStmt(Stmt):
    """fun name(params) { body }, or a method inside a class body."""

    name: Token
    params: list[Token]
    body: list[Stmt]


@dataclass(frozen=True)
class ClassStmt(Stmt):
    """class Name < Superclass { methods }."""

    name: Token
    superclass: VariableExpr | None
    methods: list[FunctionStmt]
