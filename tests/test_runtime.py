"""End-to-end runtime tests.

Programs live in run/*.tests. The expected section is the exact stdout, or:

    error: <message>          static error; nothing runs, exit 65
    ...stdout lines...
    runtime error: <message>  stdout so far, then a fault, exit 70
"""

import io
import signal

import pytest

from conftest import PHASE_TIMEOUT, TESTS_DIR, discover_specs
from lox import Interpreter, parse, resolve, run, run_source
from lox.errors import LoxRuntimeError
from lox.runtime import (
    EXIT_OK,
    EXIT_RUNTIME_ERROR,
    EXIT_STATIC_ERROR,
    NIL,
    Environment,
    VNumber,
    VString,
    format_number,
)
from lox.tokens import IDENTIFIER, Token

RUN_DIR = TESTS_DIR / "run"


def pytest_generate_tests(metafunc):
    if "program" in metafunc.fixturenames:
        specs = discover_specs(RUN_DIR)
        params = [pytest.param(inp, exp, id=tid) for tid, inp, exp in specs]
        metafunc.parametrize("program,expected", params)


def test_program(program: str, expected: str):
    try:
        signal.alarm(PHASE_TIMEOUT)
        result = run_source(program)
    finally:
        signal.alarm(0)

    if expected.startswith("error:"):
        expected_msg = expected[6:].strip()
        assert result.exit_code == EXIT_STATIC_ERROR, result.stdout
        assert result.stdout == ""
        assert expected_msg in result.stderr
        return

    lines = expected.split("\n")
    if lines[-1].startswith("runtime error:"):
        expected_msg = lines[-1][len("runtime error:") :].strip()
        assert result.exit_code == EXIT_RUNTIME_ERROR, result.stdout
        assert result.stdout == "".join(line + "\n" for line in lines[:-1])
        assert expected_msg in result.stderr
        return

    if result.exit_code != EXIT_OK:
        pytest.fail(f"Exit code {result.exit_code}:\n{result.stderr}")
    assert result.stdout.strip() == expected


def _name(lexeme: str, line: int = 1) -> Token:
    return Token(IDENTIFIER, lexeme, None, line)


# ── Environment model ──


def test_lookup_walks_outward():
    outer = Environment()
    outer.define("a", VNumber(1.0))
    inner = Environment(outer)
    assert inner.get(_name("a")) == VNumber(1.0)


def test_shadowing_does_not_touch_outer():
    outer = Environment()
    outer.define("a", VNumber(1.0))
    inner = Environment(outer)
    inner.define("a", VNumber(2.0))
    inner.assign(_name("a"), VNumber(3.0))
    assert outer.get(_name("a")) == VNumber(1.0)
    assert inner.get(_name("a")) == VNumber(3.0)


def test_children_share_parent():
    parent = Environment()
    parent.define("n", VNumber(0.0))
    first = Environment(parent)
    second = Environment(parent)
    first.assign_at(1, _name("n"), VNumber(5.0))
    assert second.get_at(1, "n") == VNumber(5.0)


def test_undefined_variable_names_variable_and_line():
    env = Environment()
    with pytest.raises(LoxRuntimeError) as exc:
        env.get(_name("ghost", line=4))
    assert exc.value.msg == "Undefined variable 'ghost'."
    assert exc.value.line == 4
    assert str(exc.value) == "Undefined variable 'ghost'.\n[line 4]"


def test_assign_to_missing_name_is_a_fault():
    env = Environment(Environment())
    with pytest.raises(LoxRuntimeError):
        env.assign(_name("nope"), NIL)


# ── Whole-pipeline properties ──


def test_rerunning_same_ast_is_idempotent():
    src = """
fun makeCounter() { var i = 0; fun c() { i = i + 1; return i; } return c; }
var c = makeCounter();
c();
print c();
class A { init(x) { this.x = x; } }
print A("v").x;
"""
    stmts, errors = parse(src)
    assert errors == []
    first_bindings, _ = resolve(stmts)
    first = run(stmts, first_bindings)
    second_bindings, _ = resolve(stmts)
    second = run(stmts, second_bindings)
    assert first.exit_code == second.exit_code == EXIT_OK
    assert first.stdout == second.stdout == "2\nv\n"


def test_runtime_fault_stops_everything_after_it():
    result = run_source('print "one";\nprint 1 + nil;\nprint "three";')
    assert result.exit_code == EXIT_RUNTIME_ERROR
    assert result.stdout == "one\n"
    assert result.stderr == "Operands must be two numbers or two strings.\n[line 2]\n"
    assert len(result.errors) == 1


def test_parse_errors_stop_before_resolution():
    result = run_source("print ;\n{ var a = 1; var a = 2; }")
    assert result.exit_code == EXIT_STATIC_ERROR
    assert result.stderr == "[line 1] Error at ';': Expect expression.\n"


def test_interpreter_keeps_globals_between_runs():
    interp = Interpreter()
    for line in ["var a = 1;", "a = a + 1;", "print a;"]:
        stmts, errors = parse(line)
        assert errors == []
        bindings, errors = resolve(stmts)
        assert errors == []
        interp.interpret(stmts, bindings)
    assert interp.stdout.getvalue() == "2\n"


def test_clock_is_installed_as_global():
    interp = Interpreter()
    clock = interp.globals.get(_name("clock"))
    assert clock.arity() == 0
    assert isinstance(clock.call(interp, []), VNumber)


def test_print_writes_to_given_stream():
    out = io.StringIO()
    stmts, _ = parse('print "x";')
    bindings, _ = resolve(stmts)
    Interpreter(stdout=out).interpret(stmts, bindings)
    assert out.getvalue() == "x\n"


def test_string_values_compare_by_content():
    assert VString("a") == VString("a")


def test_deeply_nested_program_runs():
    result = run_source("print " + "(" * 100 + "1" + ")" * 100 + ";")
    assert result.exit_code == EXIT_OK
    assert result.stdout == "1\n"


def test_too_much_nesting_is_a_static_error():
    result = run_source("print " + "(" * 2000 + "1" + ")" * 2000 + ";")
    assert result.exit_code == EXIT_STATIC_ERROR
    assert "Too much nesting." in result.stderr


def test_fault_carries_line_only():
    result = run_source("\n\nnil();")
    assert result.stderr == "Can only call functions and classes.\n[line 3]\n"
    assert result.errors[0].where == ""


def test_number_rendering():
    assert format_number(1e16) == "10000000000000000"
    assert format_number(-0.0) == "0"
    assert format_number(1e-7) == "1e-7"
    assert format_number(1.5e300) == "1.5e+300"
    assert format_number(-12.5) == "-12.5"
