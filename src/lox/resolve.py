"""Lox resolver — static scope analysis producing the binding table.

Walks the statement list mirroring the interpreter's scoping rules. Every
expression that reads or writes a local variable gets an entry in the binding
table: node_id -> number of environments between the use and the definition.
Names not found in any local scope get no entry and are looked up in the
globals at runtime, so globals may be referenced before they are defined.
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
from .errors import StaticError, deep_recursion
from .parse import where_of
from .tokens import Token


# Enclosing function kinds
FN_NONE: str = "none"
FN_FUNCTION: str = "function"
FN_INITIALIZER: str = "initializer"
FN_METHOD: str = "method"

# Enclosing class kinds
CLASS_NONE: str = "none"
CLASS_CLASS: str = "class"
CLASS_SUBCLASS: str = "subclass"


class ResolveError(StaticError):
    """Static semantic error with location info."""

    @classmethod
    def at(cls, tok: Token, msg: str) -> ResolveError:
        return cls(msg, tok.line, where_of(tok))


class Resolver:
    def __init__(self) -> None:
        self.errors: list[ResolveError] = []
        self.bindings: dict[int, int] = {}
        # name -> defined? (False while the initializer is being resolved)
        self.scopes: list[dict[str, bool]] = []
        self.current_function: str = FN_NONE
        self.current_class: str = CLASS_NONE
        # Line of the last name seen.
        self.line: int = 1

    def error(self, tok: Token, msg: str) -> None:
        self.errors.append(ResolveError.at(tok, msg))

    def reset(self) -> None:
        """Back to top-level state after abandoning a statement."""
        self.scopes = []
        self.current_function = FN_NONE
        self.current_class = CLASS_NONE

    # ── Scopes ───────────────────────────────────────────────

    def begin_scope(self) -> None:
        self.scopes.append({})

    def end_scope(self) -> None:
        self.scopes.pop()

    def declare(self, name: Token) -> None:
        self.line = name.line
        if not self.scopes:
            return
        scope = self.scopes[-1]
        if name.lexeme in scope:
            self.error(name, "Already a variable with this name in this scope.")
        scope[name.lexeme] = False

    def define(self, name: Token) -> None:
        if not self.scopes:
            return
        self.scopes[-1][name.lexeme] = True

    def resolve_local(self, expr: Expr, name: Token) -> None:
        self.line = name.line
        for i in range(len(self.scopes) - 1, -1, -1):
            if name.lexeme in self.scopes[i]:
                self.bindings[expr.node_id] = len(self.scopes) - 1 - i
                return

    # ── Statements ───────────────────────────────────────────

    def resolve_stmts(self, stmts: list[Stmt]) -> None:
        for st in stmts:
            self.resolve_stmt(st)

    def resolve_stmt(self, st: Stmt) -> None:
        if isinstance(st, BlockStmt):
            self.begin_scope()
            self.resolve_stmts(st.statements)
            self.end_scope()
            return

        if isinstance(st, VarStmt):
            self.declare(st.name)
            if st.initializer is not None:
                self.resolve_expr(st.initializer)
            self.define(st.name)
            return

        if isinstance(st, FunctionStmt):
            # Defined before the body so the function can recurse.
            self.declare(st.name)
            self.define(st.name)
            self.resolve_function(st, FN_FUNCTION)
            return

        if isinstance(st, ClassStmt):
            self._resolve_class(st)
            return

        if isinstance(st, ExpressionStmt):
            self.resolve_expr(st.expression)
            return

        if isinstance(st, PrintStmt):
            self.resolve_expr(st.expression)
            return

        if isinstance(st, IfStmt):
            self.resolve_expr(st.condition)
            self.resolve_stmt(st.then_branch)
            if st.else_branch is not None:
                self.resolve_stmt(st.else_branch)
            return

        if isinstance(st, WhileStmt):
            self.resolve_expr(st.condition)
            self.resolve_stmt(st.body)
            return

        if isinstance(st, ReturnStmt):
            if self.current_function == FN_NONE:
                self.error(st.keyword, "Can't return from top-level code.")
            if st.value is not None:
                if self.current_function == FN_INITIALIZER:
                    self.error(st.keyword, "Can't return a value from an initializer.")
                self.resolve_expr(st.value)
            return

        raise TypeError("unsupported statement: " + type(st).__name__)

    def _resolve_class(self, st: ClassStmt) -> None:
        enclosing_class = self.current_class
        self.current_class = CLASS_CLASS
        self.declare(st.name)
        self.define(st.name)

        if st.superclass is not None:
            if st.superclass.name.lexeme == st.name.lexeme:
                self.error(st.superclass.name, "A class can't inherit from itself.")
            self.current_class = CLASS_SUBCLASS
            self.resolve_expr(st.superclass)
            self.begin_scope()
            self.scopes[-1]["super"] = True

        self.begin_scope()
        self.scopes[-1]["this"] = True
        for method in st.methods:
            kind = FN_INITIALIZER if method.name.lexeme == "init" else FN_METHOD
            self.resolve_function(method, kind)
        self.end_scope()

        if st.superclass is not None:
            self.end_scope()
        self.current_class = enclosing_class

    def resolve_function(self, fn: FunctionStmt, kind: str) -> None:
        enclosing_function = self.current_function
        self.current_function = kind
        self.begin_scope()
        for param in fn.params:
            self.declare(param)
            self.define(param)
        self.resolve_stmts(fn.body)
        self.end_scope()
        self.current_function = enclosing_function

    # ── Expressions ──────────────────────────────────────────

    def resolve_expr(self, expr: Expr) -> None:
        if isinstance(expr, VariableExpr):
            if self.scopes and self.scopes[-1].get(expr.name.lexeme) is False:
                self.error(
                    expr.name, "Can't read local variable in its own initializer."
                )
            self.resolve_local(expr, expr.name)
            return

        if isinstance(expr, AssignExpr):
            self.resolve_expr(expr.value)
            self.resolve_local(expr, expr.name)
            return

        if isinstance(expr, (BinaryExpr, LogicalExpr)):
            self.resolve_expr(expr.left)
            self.resolve_expr(expr.right)
            return

        if isinstance(expr, UnaryExpr):
            self.resolve_expr(expr.right)
            return

        if isinstance(expr, GroupingExpr):
            self.resolve_expr(expr.expression)
            return

        if isinstance(expr, LiteralExpr):
            return

        if isinstance(expr, CallExpr):
            self.resolve_expr(expr.callee)
            for arg in expr.arguments:
                self.resolve_expr(arg)
            return

        if isinstance(expr, GetExpr):
            # Properties are dynamic; only the object is resolved.
            self.resolve_expr(expr.object)
            return

        if isinstance(expr, SetExpr):
            self.resolve_expr(expr.value)
            self.resolve_expr(expr.object)
            return

        if isinstance(expr, ThisExpr):
            if self.current_class == CLASS_NONE:
                self.error(expr.keyword, "Can't use 'this' outside of a class.")
                return
            self.resolve_local(expr, expr.keyword)
            return

        if isinstance(expr, SuperExpr):
            if self.current_class == CLASS_NONE:
                self.error(expr.keyword, "Can't use 'super' outside of a class.")
            elif self.current_class != CLASS_SUBCLASS:
                self.error(
                    expr.keyword, "Can't use 'super' in a class with no superclass."
                )
            self.resolve_local(expr, expr.keyword)
            return

        raise TypeError("unsupported expression: " + type(expr).__name__)


def resolve(stmts: list[Stmt]) -> tuple[dict[int, int], list[ResolveError]]:
    """Resolve a parsed program. Returns (binding table, errors)."""
    resolver = Resolver()
    with deep_recursion():
        for st in stmts:
            try:
                resolver.resolve_stmt(st)
            except RecursionError:
                resolver.reset()
                err = ResolveError("Too much nesting.", resolver.line)
                resolver.errors.append(err)
    return resolver.bindings, resolver.errors
