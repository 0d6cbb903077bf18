"""AST printer tests."""

from lox import parse
from lox.ast import BinaryExpr, GroupingExpr, LiteralExpr, UnaryExpr
from lox.emit import print_expr, print_program, print_stmt
from lox.tokens import MINUS, STAR, Token


def test_print_hand_built_expression():
    expression = BinaryExpr(
        UnaryExpr(Token(MINUS, "-", None, 1), LiteralExpr(123.0)),
        Token(STAR, "*", None, 1),
        GroupingExpr(LiteralExpr(45.67)),
    )
    assert print_expr(expression) == "(* (- 123) (group 45.67))"


def test_print_literals():
    assert print_expr(LiteralExpr(None)) == "nil"
    assert print_expr(LiteralExpr(True)) == "true"
    assert print_expr(LiteralExpr("s")) == '"s"'


def test_print_program_one_line_per_statement():
    stmts, errors = parse("var a = 1;\nprint a;")
    assert errors == []
    assert print_program(stmts) == "(var a 1)\n(print a)\n"


def test_print_nested_function():
    stmts, _ = parse("fun f(a) { fun g() { return a; } return g; }")
    assert print_stmt(stmts[0]) == "(fun f (a) (fun g () (return a)) (return g))"


def test_empty_program():
    assert print_program([]) == ""


def test_number_literals_print_like_runtime_values():
    assert print_expr(LiteralExpr(1e16)) == "10000000000000000"
    assert print_expr(LiteralExpr(1e-7)) == "1e-7"
