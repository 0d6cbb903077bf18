"""Lox tokenizer — lexes source into a flat token list."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import StaticError


# Single-character tokens
LEFT_PAREN = "LEFT_PAREN"
RIGHT_PAREN = "RIGHT_PAREN"
LEFT_BRACE = "LEFT_BRACE"
RIGHT_BRACE = "RIGHT_BRACE"
COMMA = "COMMA"
DOT = "DOT"
MINUS = "MINUS"
PLUS = "PLUS"
SEMICOLON = "SEMICOLON"
SLASH = "SLASH"
STAR = "STAR"

# One or two character tokens
BANG = "BANG"
BANG_EQUAL = "BANG_EQUAL"
EQUAL = "EQUAL"
EQUAL_EQUAL = "EQUAL_EQUAL"
GREATER = "GREATER"
GREATER_EQUAL = "GREATER_EQUAL"
LESS = "LESS"
LESS_EQUAL = "LESS_EQUAL"

# Literals
IDENTIFIER = "IDENTIFIER"
STRING = "STRING"
NUMBER = "NUMBER"

# Keywords
AND = "AND"
CLASS = "CLASS"
ELSE = "ELSE"
FALSE = "FALSE"
FUN = "FUN"
FOR = "FOR"
IF = "IF"
NIL = "NIL"
OR = "OR"
PRINT = "PRINT"
RETURN = "RETURN"
SUPER = "SUPER"
THIS = "THIS"
TRUE = "TRUE"
VAR = "VAR"
WHILE = "WHILE"

EOF = "EOF"

KEYWORDS: dict[str, str] = {
    "and": AND,
    "class": CLASS,
    "else": ELSE,
    "false": FALSE,
    "for": FOR,
    "fun": FUN,
    "if": IF,
    "nil": NIL,
    "or": OR,
    "print": PRINT,
    "return": RETURN,
    "super": SUPER,
    "this": THIS,
    "true": TRUE,
    "var": VAR,
    "while": WHILE,
}

SINGLE_CHARS: dict[str, str] = {
    "(": LEFT_PAREN,
    ")": RIGHT_PAREN,
    "{": LEFT_BRACE,
    "}": RIGHT_BRACE,
    ",": COMMA,
    ".": DOT,
    "-": MINUS,
    "+": PLUS,
    ";": SEMICOLON,
    "*": STAR,
}

# Operators that may be followed by '=': (bare kind, kind with '=')
EQUAL_SUFFIXED: dict[str, tuple[str, str]] = {
    "!": (BANG, BANG_EQUAL),
    "=": (EQUAL, EQUAL_EQUAL),
    "<": (LESS, LESS_EQUAL),
    ">": (GREATER, GREATER_EQUAL),
}


class TokenizeError(StaticError):
    """Error during tokenization."""


@dataclass(frozen=True)
class Token:
    """A token with kind, source lexeme, literal value, and line."""

    type: str
    lexeme: str
    literal: object
    line: int

    def __str__(self) -> str:
        return self.type + " " + self.lexeme + " " + str(self.literal)


def _is_digit(c: str) -> bool:
    return "0" <= c <= "9"


def _is_alpha(c: str) -> bool:
    return ("a" <= c <= "z") or ("A" <= c <= "Z") or c == "_"


def _is_alnum(c: str) -> bool:
    return _is_alpha(c) or _is_digit(c)


class Scanner:
    """Single-pass scanner. Errors are collected, scanning continues."""

    def __init__(self, source: str):
        self.source: str = source
        self.tokens: list[Token] = []
        self.errors: list[TokenizeError] = []
        self.start: int = 0
        self.current: int = 0
        self.line: int = 1

    def scan_tokens(self) -> list[Token]:
        while not self._at_end():
            self.start = self.current
            self._scan_token()
        self.tokens.append(Token(EOF, "", None, self.line))
        return self.tokens

    # ── Helpers ──────────────────────────────────────────────

    def _at_end(self) -> bool:
        return self.current >= len(self.source)

    def _advance(self) -> str:
        c = self.source[self.current]
        self.current += 1
        return c

    def _match(self, expected: str) -> bool:
        if self._at_end() or self.source[self.current] != expected:
            return False
        self.current += 1
        return True

    def _peek(self) -> str:
        if self._at_end():
            return "\0"
        return self.source[self.current]

    def _peek_next(self) -> str:
        if self.current + 1 >= len(self.source):
            return "\0"
        return self.source[self.current + 1]

    def _add(self, type_: str, literal: object = None) -> None:
        text = self.source[self.start : self.current]
        self.tokens.append(Token(type_, text, literal, self.line))

    def _error(self, msg: str) -> None:
        self.errors.append(TokenizeError(msg, self.line))

    # ── Tokens ───────────────────────────────────────────────

    def _scan_token(self) -> None:
        c = self._advance()
        if c in SINGLE_CHARS:
            self._add(SINGLE_CHARS[c])
            return
        if c in EQUAL_SUFFIXED:
            bare, with_equal = EQUAL_SUFFIXED[c]
            self._add(with_equal if self._match("=") else bare)
            return
        if c == "/":
            if self._match("/"):
                # Line comment
                while self._peek() != "\n" and not self._at_end():
                    self._advance()
            else:
                self._add(SLASH)
            return
        if c == " " or c == "\r" or c == "\t":
            return
        if c == "\n":
            self.line += 1
            return
        if c == '"':
            self._string()
            return
        if _is_digit(c):
            self._number()
            return
        if _is_alpha(c):
            self._identifier()
            return
        self._error("Unexpected character.")

    def _string(self) -> None:
        while self._peek() != '"' and not self._at_end():
            if self._peek() == "\n":
                self.line += 1
            self._advance()
        if self._at_end():
            self._error("Unterminated string.")
            return
        self._advance()  # closing "
        self._add(STRING, self.source[self.start + 1 : self.current - 1])

    def _number(self) -> None:
        while _is_digit(self._peek()):
            self._advance()
        if self._peek() == "." and _is_digit(self._peek_next()):
            self._advance()
            while _is_digit(self._peek()):
                self._advance()
        self._add(NUMBER, float(self.source[self.start : self.current]))

    def _identifier(self) -> None:
        while _is_alnum(self._peek()):
            self._advance()
        text = self.source[self.start : self.current]
        self._add(KEYWORDS.get(text, IDENTIFIER))


def tokenize(source: str) -> tuple[list[Token], list[TokenizeError]]:
    """Tokenize Lox source into a flat list ending with EOF, plus scan errors."""
    scanner = Scanner(source)
    tokens = scanner.scan_tokens()
    return tokens, scanner.errors
