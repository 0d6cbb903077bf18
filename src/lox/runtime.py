"""Lox runtime — evaluate a resolved Lox program.

Tree-walking evaluator over the parse-time AST. Variable accesses consult the
resolver's binding table: a recorded distance walks exactly that many
environment links, no entry means a dynamic lookup in the globals.
"""

from __future__ import annotations

import io
import math
import time
from dataclasses import dataclass, field
from typing import Callable as PyCallable, TextIO, cast

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
from .errors import LoxError, LoxRuntimeError, deep_recursion
from .tokens import (
    BANG,
    BANG_EQUAL,
    EQUAL_EQUAL,
    GREATER,
    GREATER_EQUAL,
    LESS,
    LESS_EQUAL,
    MINUS,
    OR,
    PLUS,
    SLASH,
    STAR,
    Token,
)


EXIT_OK: int = 0
EXIT_STATIC_ERROR: int = 65
EXIT_RUNTIME_ERROR: int = 70


def fault(tok: Token, msg: str) -> LoxRuntimeError:
    return LoxRuntimeError(msg, tok.line)


# ============================================================
# Values
# ============================================================


class Value:
    """A runtime value."""

    def to_string(self) -> str:
        raise NotImplementedError


@dataclass
class VNil(Value):
    def to_string(self) -> str:
        return "nil"


@dataclass
class VBool(Value):
    value: bool

    def to_string(self) -> str:
        return "true" if self.value else "false"


@dataclass
class VNumber(Value):
    value: float

    def to_string(self) -> str:
        return format_number(self.value)


@dataclass
class VString(Value):
    value: str

    def to_string(self) -> str:
        return self.value


NIL = VNil()


class Callable(Value):
    """Anything a call expression may invoke."""

    def arity(self) -> int:
        raise NotImplementedError

    def call(self, interp: Interpreter, args: list[Value]) -> Value:
        raise NotImplementedError


class VNative(Callable):
    """Host-implemented function installed in the globals."""

    def __init__(
        self,
        name: str,
        arity: int,
        fn: PyCallable[[Interpreter, list[Value]], Value],
    ):
        self.name = name
        self._arity = arity
        self._fn = fn

    def arity(self) -> int:
        return self._arity

    def call(self, interp: Interpreter, args: list[Value]) -> Value:
        return self._fn(interp, args)

    def to_string(self) -> str:
        return "<native fn>"


class VFunction(Callable):
    """User function or method: declaration plus the shared defining environment."""

    def __init__(
        self, declaration: FunctionStmt, closure: Environment, is_initializer: bool
    ):
        self.declaration = declaration
        self.closure = closure
        self.is_initializer = is_initializer

    def bind(self, instance: VInstance) -> VFunction:
        env = Environment(self.closure)
        env.define("this", instance)
        return VFunction(self.declaration, env, self.is_initializer)

    def arity(self) -> int:
        return len(self.declaration.params)

    def call(self, interp: Interpreter, args: list[Value]) -> Value:
        env = Environment(self.closure)
        for param, arg in zip(self.declaration.params, args):
            env.define(param.lexeme, arg)
        try:
            interp.execute_block(self.declaration.body, env)
        except _Return as r:
            if self.is_initializer:
                return self.closure.get_at(0, "this")
            return r.value
        if self.is_initializer:
            return self.closure.get_at(0, "this")
        return NIL

    def to_string(self) -> str:
        return "<fn " + self.declaration.name.lexeme + ">"


class VClass(Callable):
    """Class value. Calling it constructs an instance."""

    def __init__(
        self,
        name: str,
        superclass: VClass | None,
        methods: dict[str, VFunction],
    ):
        self.name = name
        self.superclass = superclass
        self.methods = methods

    def find_method(self, name: str) -> VFunction | None:
        if name in self.methods:
            return self.methods[name]
        if self.superclass is not None:
            return self.superclass.find_method(name)
        return None

    def arity(self) -> int:
        initializer = self.find_method("init")
        if initializer is None:
            return 0
        return initializer.arity()

    def call(self, interp: Interpreter, args: list[Value]) -> Value:
        instance = VInstance(self)
        initializer = self.find_method("init")
        if initializer is not None:
            initializer.bind(instance).call(interp, args)
        return instance

    def to_string(self) -> str:
        return self.name


class VInstance(Value):
    def __init__(self, klass: VClass):
        self.klass = klass
        self.fields: dict[str, Value] = {}

    def get(self, name: Token) -> Value:
        # Fields shadow methods.
        if name.lexeme in self.fields:
            return self.fields[name.lexeme]
        method = self.klass.find_method(name.lexeme)
        if method is not None:
            return method.bind(self)
        raise fault(name, "Undefined property '" + name.lexeme + "'.")

    def set(self, name: Token, value: Value) -> None:
        self.fields[name.lexeme] = value

    def to_string(self) -> str:
        return self.klass.name + " instance"


def format_number(n: float) -> str:
    """Render a number the way JavaScript's Number.prototype.toString does."""
    if math.isnan(n):
        return "NaN"
    if math.isinf(n):
        return "Infinity" if n > 0 else "-Infinity"
    if n == 0.0:
        return "0"
    sign = "-" if n < 0 else ""
    # repr holds the shortest round-tripping digits.
    mantissa, _, exp = repr(abs(n)).partition("e")
    whole, _, frac = mantissa.partition(".")
    all_digits = whole + frac
    digits = all_digits.strip("0")
    trailing = len(all_digits) - len(all_digits.rstrip("0"))
    k = len(digits)
    # value == 0.<digits> * 10**point
    point = k + int(exp or "0") - len(frac) + trailing
    if k <= point <= 21:
        return sign + digits + "0" * (point - k)
    if 0 < point <= 21:
        return sign + digits[:point] + "." + digits[point:]
    if -6 < point <= 0:
        return sign + "0." + "0" * -point + digits
    e = point - 1
    head = digits[0] + ("." + digits[1:] if k > 1 else "")
    return sign + head + "e" + ("+" if e >= 0 else "-") + str(abs(e))


# ============================================================
# Control flow signals (internal)
# ============================================================


class _Signal(Exception):
    pass


@dataclass
class _Return(_Signal):
    value: Value


# ============================================================
# Environments
# ============================================================


class Environment:
    """One scope's bindings plus a shared link to the enclosing scope."""

    def __init__(self, enclosing: Environment | None = None):
        self.values: dict[str, Value] = {}
        self.enclosing = enclosing

    def define(self, name: str, value: Value) -> None:
        self.values[name] = value

    def ancestor(self, distance: int) -> Environment:
        env = self
        for _ in range(distance):
            env = cast(Environment, env.enclosing)
        return env

    def get(self, name: Token) -> Value:
        env: Environment | None = self
        while env is not None:
            if name.lexeme in env.values:
                return env.values[name.lexeme]
            env = env.enclosing
        raise fault(name, "Undefined variable '" + name.lexeme + "'.")

    def assign(self, name: Token, value: Value) -> None:
        env: Environment | None = self
        while env is not None:
            if name.lexeme in env.values:
                env.values[name.lexeme] = value
                return
            env = env.enclosing
        raise fault(name, "Undefined variable '" + name.lexeme + "'.")

    def get_at(self, distance: int, name: str) -> Value:
        return self.ancestor(distance).values[name]

    def assign_at(self, distance: int, name: Token, value: Value) -> None:
        self.ancestor(distance).values[name.lexeme] = value


# ============================================================
# Running
# ============================================================


@dataclass
class RunResult:
    exit_code: int
    stdout: str
    stderr: str
    errors: list[LoxError] = field(default_factory=list)


def run(stmts: list[Stmt], bindings: dict[int, int]) -> RunResult:
    """Interpret a resolved program against fresh globals, capturing output."""
    out = io.StringIO()
    interp = Interpreter(stdout=out)
    try:
        interp.interpret(stmts, bindings)
    except LoxRuntimeError as e:
        return RunResult(EXIT_RUNTIME_ERROR, out.getvalue(), str(e) + "\n", [e])
    return RunResult(EXIT_OK, out.getvalue(), "")


# ============================================================
# Evaluation
# ============================================================


def _is_truthy(v: Value) -> bool:
    if isinstance(v, VNil):
        return False
    if isinstance(v, VBool):
        return v.value
    return True


def _value_eq(a: Value, b: Value) -> bool:
    # No coercion: values of different types are never equal.
    if type(a) is not type(b):
        return False
    if isinstance(a, VNil):
        return True
    if isinstance(a, VBool):
        return a.value == cast(VBool, b).value
    if isinstance(a, VNumber):
        return a.value == cast(VNumber, b).value
    if isinstance(a, VString):
        return a.value == cast(VString, b).value
    return a is b


def _divide(a: float, b: float) -> float:
    if b != 0.0:
        return a / b
    if a == 0.0 or math.isnan(a):
        return math.nan
    return math.copysign(math.inf, a) * math.copysign(1.0, b)


def _literal_value(v: object) -> Value:
    if v is None:
        return NIL
    if isinstance(v, bool):
        return VBool(v)
    if isinstance(v, float):
        return VNumber(v)
    if isinstance(v, int):
        return VNumber(float(v))
    if isinstance(v, str):
        return VString(v)
    raise TypeError("unsupported literal: " + repr(v))


class Interpreter:
    def __init__(self, *, stdout: TextIO | None = None):
        self.stdout: TextIO = stdout if stdout is not None else io.StringIO()
        self.globals = Environment()
        self.environment = self.globals
        self.bindings: dict[int, int] = {}
        for name, (arity, fn) in _BUILTINS.items():
            self.globals.define(name, VNative(name, arity, fn))

    def interpret(self, stmts: list[Stmt], bindings: dict[int, int]) -> None:
        """Execute statements in order. A runtime fault aborts the whole run."""
        self.bindings.update(bindings)
        with deep_recursion():
            for st in stmts:
                self.execute(st)

    # ---- Statements --------------------------------------------------------

    def execute_block(self, stmts: list[Stmt], env: Environment) -> None:
        previous = self.environment
        try:
            self.environment = env
            for st in stmts:
                self.execute(st)
        finally:
            self.environment = previous

    def execute(self, st: Stmt) -> None:
        if isinstance(st, ExpressionStmt):
            self.evaluate(st.expression)
            return

        if isinstance(st, PrintStmt):
            value = self.evaluate(st.expression)
            self.stdout.write(value.to_string() + "\n")
            return

        if isinstance(st, VarStmt):
            value: Value = NIL
            if st.initializer is not None:
                value = self.evaluate(st.initializer)
            self.environment.define(st.name.lexeme, value)
            return

        if isinstance(st, BlockStmt):
            self.execute_block(st.statements, Environment(self.environment))
            return

        if isinstance(st, IfStmt):
            if _is_truthy(self.evaluate(st.condition)):
                self.execute(st.then_branch)
            elif st.else_branch is not None:
                self.execute(st.else_branch)
            return

        if isinstance(st, WhileStmt):
            while _is_truthy(self.evaluate(st.condition)):
                self.execute(st.body)
            return

        if isinstance(st, FunctionStmt):
            fn = VFunction(st, self.environment, False)
            self.environment.define(st.name.lexeme, fn)
            return

        if isinstance(st, ReturnStmt):
            value = NIL
            if st.value is not None:
                value = self.evaluate(st.value)
            raise _Return(value)

        if isinstance(st, ClassStmt):
            self._execute_class(st)
            return

        raise TypeError("unsupported statement: " + type(st).__name__)

    def _execute_class(self, st: ClassStmt) -> None:
        superclass: VClass | None = None
        if st.superclass is not None:
            sc = self.evaluate(st.superclass)
            if not isinstance(sc, VClass):
                raise fault(st.superclass.name, "Superclass must be a class.")
            superclass = sc

        # Bound to nil first so method bodies can refer to the class by name.
        self.environment.define(st.name.lexeme, NIL)

        if superclass is not None:
            self.environment = Environment(self.environment)
            self.environment.define("super", superclass)

        methods: dict[str, VFunction] = {}
        for method in st.methods:
            is_init = method.name.lexeme == "init"
            methods[method.name.lexeme] = VFunction(method, self.environment, is_init)

        klass = VClass(st.name.lexeme, superclass, methods)

        if superclass is not None:
            self.environment = cast(Environment, self.environment.enclosing)

        self.environment.assign(st.name, klass)

    # ---- Expressions -------------------------------------------------------

    def evaluate(self, expr: Expr) -> Value:
        if isinstance(expr, LiteralExpr):
            return _literal_value(expr.value)

        if isinstance(expr, GroupingExpr):
            return self.evaluate(expr.expression)

        if isinstance(expr, VariableExpr):
            return self._look_up_variable(expr.name, expr)

        if isinstance(expr, AssignExpr):
            value = self.evaluate(expr.value)
            distance = self.bindings.get(expr.node_id)
            if distance is None:
                self.globals.assign(expr.name, value)
            else:
                self.environment.assign_at(distance, expr.name, value)
            return value

        if isinstance(expr, LogicalExpr):
            left = self.evaluate(expr.left)
            if expr.operator.type == OR:
                if _is_truthy(left):
                    return left
            elif not _is_truthy(left):
                return left
            return self.evaluate(expr.right)

        if isinstance(expr, UnaryExpr):
            right = self.evaluate(expr.right)
            if expr.operator.type == BANG:
                return VBool(not _is_truthy(right))
            if expr.operator.type == MINUS:
                if not isinstance(right, VNumber):
                    raise fault(expr.operator, "Operand must be a number.")
                return VNumber(-right.value)
            raise fault(expr.operator, "unsupported unary operator")

        if isinstance(expr, BinaryExpr):
            left = self.evaluate(expr.left)
            right = self.evaluate(expr.right)
            return self._eval_binary(expr.operator, left, right)

        if isinstance(expr, CallExpr):
            return self._eval_call(expr)

        if isinstance(expr, GetExpr):
            obj = self.evaluate(expr.object)
            if not isinstance(obj, VInstance):
                raise fault(expr.name, "Only instances have properties.")
            return obj.get(expr.name)

        if isinstance(expr, SetExpr):
            obj = self.evaluate(expr.object)
            if not isinstance(obj, VInstance):
                raise fault(expr.name, "Only instances have fields.")
            value = self.evaluate(expr.value)
            obj.set(expr.name, value)
            return value

        if isinstance(expr, ThisExpr):
            return self._look_up_variable(expr.keyword, expr)

        if isinstance(expr, SuperExpr):
            return self._eval_super(expr)

        raise TypeError("unsupported expression: " + type(expr).__name__)

    def _look_up_variable(self, name: Token, expr: Expr) -> Value:
        distance = self.bindings.get(expr.node_id)
        if distance is None:
            return self.globals.get(name)
        return self.environment.get_at(distance, name.lexeme)

    def _eval_call(self, expr: CallExpr) -> Value:
        callee = self.evaluate(expr.callee)
        args = [self.evaluate(a) for a in expr.arguments]
        if not isinstance(callee, Callable):
            raise fault(expr.paren, "Can only call functions and classes.")
        if len(args) != callee.arity():
            raise fault(
                expr.paren,
                "Expected "
                + str(callee.arity())
                + " arguments but got "
                + str(len(args))
                + ".",
            )
        try:
            return callee.call(self, args)
        except RecursionError:
            raise fault(expr.paren, "Stack overflow.") from None

    def _eval_super(self, expr: SuperExpr) -> Value:
        distance = self.bindings[expr.node_id]
        superclass = cast(VClass, self.environment.get_at(distance, "super"))
        # 'this' lives in the scope just inside the one binding 'super'.
        obj = cast(VInstance, self.environment.get_at(distance - 1, "this"))
        method = superclass.find_method(expr.method.lexeme)
        if method is None:
            raise fault(
                expr.method, "Undefined property '" + expr.method.lexeme + "'."
            )
        return method.bind(obj)

    def _eval_binary(self, op: Token, left: Value, right: Value) -> Value:
        if op.type == EQUAL_EQUAL:
            return VBool(_value_eq(left, right))
        if op.type == BANG_EQUAL:
            return VBool(not _value_eq(left, right))

        if op.type == PLUS:
            if isinstance(left, VNumber) and isinstance(right, VNumber):
                return VNumber(left.value + right.value)
            if isinstance(left, VString) and isinstance(right, VString):
                return VString(left.value + right.value)
            raise fault(op, "Operands must be two numbers or two strings.")

        if not isinstance(left, VNumber) or not isinstance(right, VNumber):
            raise fault(op, "Operands must be numbers.")
        a = left.value
        b = right.value
        if op.type == MINUS:
            return VNumber(a - b)
        if op.type == STAR:
            return VNumber(a * b)
        if op.type == SLASH:
            return VNumber(_divide(a, b))
        if op.type == GREATER:
            return VBool(a > b)
        if op.type == GREATER_EQUAL:
            return VBool(a >= b)
        if op.type == LESS:
            return VBool(a < b)
        if op.type == LESS_EQUAL:
            return VBool(a <= b)
        raise fault(op, "unsupported binary operator")


# ============================================================
# Builtins
# ============================================================


def _bi_clock(interp: Interpreter, args: list[Value]) -> Value:
    return VNumber(time.time())


_BUILTINS: dict[str, tuple[int, PyCallable[[Interpreter, list[Value]], Value]]] = {
    "clock": (0, _bi_clock),
}
