"""Lox CLI — run .lox files or start a REPL."""

from __future__ import annotations

import sys
from typing import Sequence, TextIO

from . import parse, print_program, run_source
from .errors import LoxError, LoxRuntimeError
from .resolve import resolve
from .runtime import EXIT_STATIC_ERROR, Interpreter


EXIT_USAGE: int = 64
EXIT_NO_INPUT: int = 66

PROMPT: str = "> "

USAGE: str = """\
lox [OPTIONS] [FILE]

Run a Lox program. With no FILE, start an interactive prompt.

Options:
  --ast        Parse FILE and print its syntax tree instead of running it
  --help       Show this help message
"""


def main(argv: list[str] | None = None) -> int:
    args = argv if argv is not None else sys.argv[1:]
    filepath: str = ""
    dump_ast = False
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--help" or arg == "-h":
            print(USAGE, end="")
            return 0
        elif arg == "--ast":
            dump_ast = True
            i += 1
        elif arg.startswith("-"):
            print("lox: unknown flag '" + arg + "'", file=sys.stderr)
            return EXIT_USAGE
        elif filepath == "":
            filepath = arg
            i += 1
        else:
            print("lox: unexpected argument '" + arg + "'", file=sys.stderr)
            return EXIT_USAGE

    if filepath == "":
        if dump_ast:
            print("lox: --ast needs a file argument", file=sys.stderr)
            return EXIT_USAGE
        return run_prompt(sys.stdin, sys.stdout, sys.stderr)

    try:
        with open(filepath, "rb") as f:
            raw = f.read()
    except FileNotFoundError:
        print("lox: " + filepath + ": No such file or directory", file=sys.stderr)
        return EXIT_NO_INPUT
    except OSError as e:
        print("lox: " + filepath + ": " + str(e), file=sys.stderr)
        return EXIT_NO_INPUT
    try:
        source = raw.decode("utf-8")
    except ValueError:
        print("lox: " + filepath + ": invalid utf-8", file=sys.stderr)
        return EXIT_NO_INPUT

    if dump_ast:
        return dump(source)
    return run_file(source)


def run_file(source: str) -> int:
    result = run_source(source)
    sys.stdout.write(result.stdout)
    sys.stderr.write(result.stderr)
    return result.exit_code


def dump(source: str) -> int:
    stmts, errors = parse(source)
    if errors:
        _report(errors, sys.stderr)
        return EXIT_STATIC_ERROR
    sys.stdout.write(print_program(stmts))
    return 0


def run_prompt(stdin: TextIO, stdout: TextIO, stderr: TextIO) -> int:
    """Line-at-a-time session. Globals persist; errors never end the session."""
    interp = Interpreter(stdout=stdout)
    while True:
        stdout.write(PROMPT)
        stdout.flush()
        line = stdin.readline()
        if line == "" or line.strip() == "":
            break
        stmts, errors = parse(line)
        if errors:
            _report(errors, stderr)
            continue
        bindings, resolve_errors = resolve(stmts)
        if resolve_errors:
            _report(resolve_errors, stderr)
            continue
        try:
            interp.interpret(stmts, bindings)
        except LoxRuntimeError as e:
            stderr.write(str(e) + "\n")
    return 0


def _report(errors: Sequence[LoxError], stderr: TextIO) -> None:
    for e in errors:
        stderr.write(str(e) + "\n")


if __name__ == "__main__":
    sys.exit(main())
