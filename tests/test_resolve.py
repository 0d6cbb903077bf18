"""Tests for the resolver's diagnostics and binding table.

Data-driven cases live in resolve/*.tests. Expected is 'ok' or
'error: <message>'.
"""

import signal

import pytest

from conftest import PHASE_TIMEOUT, TESTS_DIR, discover_specs
from lox import check, parse, resolve
from lox.ast import (
    AssignExpr,
    BlockStmt,
    ExpressionStmt,
    FunctionStmt,
    GroupingExpr,
    LiteralExpr,
    PrintStmt,
    ReturnStmt,
    VarStmt,
    VariableExpr,
)

RESOLVE_DIR = TESTS_DIR / "resolve"


def pytest_generate_tests(metafunc):
    if "resolve_input" in metafunc.fixturenames:
        specs = discover_specs(RESOLVE_DIR)
        params = [pytest.param(inp, exp, id=tid) for tid, inp, exp in specs]
        metafunc.parametrize("resolve_input,resolve_expected", params)


def _run(source: str):
    """Parse and resolve. Returns (statements, bindings, errors)."""
    stmts, parse_errors = parse(source)
    assert parse_errors == [], [str(e) for e in parse_errors]
    bindings, errors = resolve(stmts)
    return stmts, bindings, errors


def test_resolve(resolve_input: str, resolve_expected: str):
    try:
        signal.alarm(PHASE_TIMEOUT)
        _, _, errors = _run(resolve_input)
    finally:
        signal.alarm(0)

    if resolve_expected == "ok":
        if errors:
            pytest.fail(f"Expected ok, got error: {errors[0]}")
        return
    assert resolve_expected.startswith("error:"), resolve_expected
    expected_msg = resolve_expected[6:].strip()
    if not errors:
        pytest.fail(f"Expected error containing '{expected_msg}', got ok")
    found = any(expected_msg in str(e) for e in errors)
    if not found:
        pytest.fail(
            f"Expected error containing '{expected_msg}', got: {[str(e) for e in errors]}"
        )


# ── Binding table ──


def test_globals_get_no_entry():
    stmts, bindings, errors = _run("var a = 1; print a;")
    assert errors == []
    use = stmts[1].expression
    assert use.node_id not in bindings


def test_local_in_same_scope_is_distance_zero():
    stmts, bindings, _ = _run("{ var a = 1; print a; }")
    block = stmts[0]
    assert isinstance(block, BlockStmt)
    use = block.statements[1].expression
    assert bindings[use.node_id] == 0


def test_distance_counts_enclosing_scopes():
    stmts, bindings, _ = _run("{ var a = 1; { { a = 2; } } }")
    inner = stmts[0].statements[1].statements[0].statements[0]
    assert isinstance(inner, ExpressionStmt)
    assign = inner.expression
    assert isinstance(assign, AssignExpr)
    assert bindings[assign.node_id] == 2


def test_innermost_declaration_wins():
    stmts, bindings, _ = _run("{ var a = 1; { var a = 2; print a; } }")
    inner_print = stmts[0].statements[1].statements[1]
    assert isinstance(inner_print, PrintStmt)
    assert bindings[inner_print.expression.node_id] == 0


def test_closure_reads_parameter_of_enclosing_function():
    src = "fun outer(x) { fun inner() { return x; } return inner; }"
    stmts, bindings, _ = _run(src)
    outer = stmts[0]
    assert isinstance(outer, FunctionStmt)
    inner = outer.body[0]
    assert isinstance(inner, FunctionStmt)
    ret = inner.body[0]
    assert isinstance(ret, ReturnStmt)
    # inner's scope -> outer's scope
    assert bindings[ret.value.node_id] == 1


def test_self_reference_error_does_not_stop_resolution():
    _, bindings, errors = _run("{ var a = a; var b = 1; print b; }")
    assert [e.msg for e in errors] == [
        "Can't read local variable in its own initializer."
    ]
    assert len(bindings) == 2


def test_this_resolves_to_class_scope():
    stmts, bindings, errors = _run("class A { m() { return this; } }")
    assert errors == []
    ret = stmts[0].methods[0].body[0]
    # method scope -> 'this' scope
    assert bindings[ret.value.node_id] == 1


def test_super_resolves_one_scope_beyond_this():
    src = "class A {} class B < A { m() { return super.m; } }"
    stmts, bindings, errors = _run(src)
    assert errors == []
    ret = stmts[1].methods[0].body[0]
    assert bindings[ret.value.node_id] == 2


def test_multiple_errors_reported_in_one_pass():
    _, _, errors = _run("return 1; print this; { var x = 1; var x = 2; }")
    assert len(errors) == 3


def test_resolving_twice_gives_same_table():
    stmts, first, _ = _run("{ var a = 1; fun f() { return a; } }")
    second, errors = resolve(stmts)
    assert errors == []
    assert first == second


def test_var_initializer_sees_outer_binding_when_names_differ():
    stmts, bindings, errors = _run("{ var a = 1; { var b = a; } }")
    assert errors == []
    var_b = stmts[0].statements[1].statements[0]
    assert isinstance(var_b, VarStmt)
    assert isinstance(var_b.initializer, VariableExpr)
    assert bindings[var_b.initializer.node_id] == 1


def test_check_reports_static_errors_from_source():
    assert check("var a = 1;") == []
    errors = check("{ var a = a; }")
    assert [str(e) for e in errors] == [
        "[line 1] Error at 'a': Can't read local variable in its own initializer."
    ]
    # Parse errors are returned without resolving.
    assert [e.msg for e in check("print ;")] == ["Expect expression."]


def test_too_much_nesting_is_reported_and_resolution_resumes():
    deep = LiteralExpr(1.0)
    for _ in range(20000):
        deep = GroupingExpr(deep)
    rest, parse_errors = parse("{ var a = 1; print a; }")
    assert parse_errors == []
    bindings, errors = resolve([PrintStmt(deep), *rest])
    assert [e.msg for e in errors] == ["Too much nesting."]
    use = rest[0].statements[1].expression
    assert bindings[use.node_id] == 0
