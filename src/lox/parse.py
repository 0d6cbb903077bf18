"""Lox parser — recursive descent, one method per grammar production."""

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
from .tokens import (
    AND,
    BANG,
    BANG_EQUAL,
    CLASS,
    COMMA,
    DOT,
    ELSE,
    EOF,
    EQUAL,
    EQUAL_EQUAL,
    FALSE,
    FOR,
    FUN,
    GREATER,
    GREATER_EQUAL,
    IDENTIFIER,
    IF,
    LEFT_BRACE,
    LEFT_PAREN,
    LESS,
    LESS_EQUAL,
    MINUS,
    NIL,
    NUMBER,
    OR,
    PLUS,
    PRINT,
    RETURN,
    RIGHT_BRACE,
    RIGHT_PAREN,
    SEMICOLON,
    SLASH,
    STAR,
    STRING,
    SUPER,
    THIS,
    TRUE,
    VAR,
    WHILE,
    Token,
)

MAX_ARGS: int = 255

# Token kinds that begin a statement; synchronization stops in front of them.
STATEMENT_STARTS: set[str] = {CLASS, FUN, VAR, FOR, IF, WHILE, PRINT, RETURN}


def where_of(tok: Token) -> str:
    """Near-token context for a diagnostic."""
    if tok.type == EOF:
        return " at end"
    return " at '" + tok.lexeme + "'"


class ParseError(StaticError):
    """Parse error with location info."""

    @classmethod
    def at(cls, tok: Token, msg: str) -> ParseError:
        return cls(msg, tok.line, where_of(tok))


class Parser:
    """Recursive descent parser for Lox.

    Grammar violations raise ParseError internally; declaration() catches
    it, records it, and synchronizes to the next statement boundary, so one
    parse can surface several independent errors. Errors that do not leave
    the parser confused (bad assignment target, too many arguments) are
    recorded without unwinding.
    """

    def __init__(self, tokens: list[Token]):
        self.tokens: list[Token] = tokens
        self.pos: int = 0
        self.errors: list[ParseError] = []

    # ── Helpers ──────────────────────────────────────────────

    def current(self) -> Token:
        return self.tokens[self.pos]

    def previous(self) -> Token:
        return self.tokens[self.pos - 1]

    def at_end(self) -> bool:
        return self.current().type == EOF

    def at(self, type_: str) -> bool:
        if self.at_end():
            return False
        return self.current().type == type_

    def advance(self) -> Token:
        if not self.at_end():
            self.pos += 1
        return self.previous()

    def match(self, *types: str) -> bool:
        for type_ in types:
            if self.at(type_):
                self.advance()
                return True
        return False

    def expect(self, type_: str, msg: str) -> Token:
        if self.at(type_):
            return self.advance()
        raise self.error(self.current(), msg)

    def error(self, tok: Token, msg: str) -> ParseError:
        err = ParseError.at(tok, msg)
        self.errors.append(err)
        return err

    def synchronize(self) -> None:
        self.advance()
        while not self.at_end():
            if self.previous().type == SEMICOLON:
                return
            if self.current().type in STATEMENT_STARTS:
                return
            self.advance()

    # ── Top Level ────────────────────────────────────────────

    def parse(self) -> list[Stmt]:
        statements: list[Stmt] = []
        with deep_recursion():
            while not self.at_end():
                decl = self.declaration()
                if decl is not None:
                    statements.append(decl)
        return statements

    def declaration(self) -> Stmt | None:
        try:
            if self.match(CLASS):
                return self.class_declaration()
            if self.match(FUN):
                return self.function("function")
            if self.match(VAR):
                return self.var_declaration()
            return self.statement()
        except ParseError:
            self.synchronize()
            return None
        except RecursionError:
            self.error(self.current(), "Too much nesting.")
            self.synchronize()
            return None

    def class_declaration(self) -> ClassStmt:
        name = self.expect(IDENTIFIER, "Expect class name.")
        superclass: VariableExpr | None = None
        if self.match(LESS):
            self.expect(IDENTIFIER, "Expect superclass name.")
            superclass = VariableExpr(self.previous())
        self.expect(LEFT_BRACE, "Expect '{' before class body.")
        methods: list[FunctionStmt] = []
        while not self.at(RIGHT_BRACE) and not self.at_end():
            methods.append(self.function("method"))
        self.expect(RIGHT_BRACE, "Expect '}' after class body.")
        return ClassStmt(name, superclass, methods)

    def function(self, kind: str) -> FunctionStmt:
        name = self.expect(IDENTIFIER, "Expect " + kind + " name.")
        self.expect(LEFT_PAREN, "Expect '(' after " + kind + " name.")
        params: list[Token] = []
        if not self.at(RIGHT_PAREN):
            while True:
                if len(params) >= MAX_ARGS:
                    self.error(self.current(), "Can't have more than 255 parameters.")
                params.append(self.expect(IDENTIFIER, "Expect parameter name."))
                if not self.match(COMMA):
                    break
        self.expect(RIGHT_PAREN, "Expect ')' after parameters.")
        self.expect(LEFT_BRACE, "Expect '{' before " + kind + " body.")
        body = self.block()
        return FunctionStmt(name, params, body)

    def var_declaration(self) -> VarStmt:
        name = self.expect(IDENTIFIER, "Expect variable name.")
        initializer: Expr | None = None
        if self.match(EQUAL):
            initializer = self.expression()
        self.expect(SEMICOLON, "Expect ';' after variable declaration.")
        return VarStmt(name, initializer)

    # ── Statements ───────────────────────────────────────────

    def statement(self) -> Stmt:
        if self.match(FOR):
            return self.for_statement()
        if self.match(IF):
            return self.if_statement()
        if self.match(PRINT):
            return self.print_statement()
        if self.match(RETURN):
            return self.return_statement()
        if self.match(WHILE):
            return self.while_statement()
        if self.match(LEFT_BRACE):
            return BlockStmt(self.block())
        return self.expression_statement()

    def for_statement(self) -> Stmt:
        """Desugar 'for' into an optional initializer block around a while."""
        self.expect(LEFT_PAREN, "Expect '(' after 'for'.")
        initializer: Stmt | None
        if self.match(SEMICOLON):
            initializer = None
        elif self.match(VAR):
            initializer = self.var_declaration()
        else:
            initializer = self.expression_statement()

        condition: Expr | None = None
        if not self.at(SEMICOLON):
            condition = self.expression()
        self.expect(SEMICOLON, "Expect ';' after loop condition.")

        increment: Expr | None = None
        if not self.at(RIGHT_PAREN):
            increment = self.expression()
        self.expect(RIGHT_PAREN, "Expect ')' after for clauses.")

        body = self.statement()
        if increment is not None:
            body = BlockStmt([body, ExpressionStmt(increment)])
        if condition is None:
            condition = LiteralExpr(True)
        body = WhileStmt(condition, body)
        if initializer is not None:
            body = BlockStmt([initializer, body])
        return body

    def if_statement(self) -> IfStmt:
        self.expect(LEFT_PAREN, "Expect '(' after 'if'.")
        condition = self.expression()
        self.expect(RIGHT_PAREN, "Expect ')' after if condition.")
        then_branch = self.statement()
        else_branch: Stmt | None = None
        if self.match(ELSE):
            else_branch = self.statement()
        return IfStmt(condition, then_branch, else_branch)

    def print_statement(self) -> PrintStmt:
        value = self.expression()
        self.expect(SEMICOLON, "Expect ';' after value.")
        return PrintStmt(value)

    def return_statement(self) -> ReturnStmt:
        keyword = self.previous()
        value: Expr | None = None
        if not self.at(SEMICOLON):
            value = self.expression()
        self.expect(SEMICOLON, "Expect ';' after return value.")
        return ReturnStmt(keyword, value)

    def while_statement(self) -> WhileStmt:
        self.expect(LEFT_PAREN, "Expect '(' after 'while'.")
        condition = self.expression()
        self.expect(RIGHT_PAREN, "Expect ')' after condition.")
        body = self.statement()
        return WhileStmt(condition, body)

    def block(self) -> list[Stmt]:
        statements: list[Stmt] = []
        while not self.at(RIGHT_BRACE) and not self.at_end():
            decl = self.declaration()
            if decl is not None:
                statements.append(decl)
        self.expect(RIGHT_BRACE, "Expect '}' after block.")
        return statements

    def expression_statement(self) -> ExpressionStmt:
        expr = self.expression()
        self.expect(SEMICOLON, "Expect ';' after expression.")
        return ExpressionStmt(expr)

    # ── Expressions (lowest to highest precedence) ───────────

    def expression(self) -> Expr:
        return self.assignment()

    def assignment(self) -> Expr:
        expr = self.logic_or()
        if self.match(EQUAL):
            equals = self.previous()
            value = self.assignment()
            if isinstance(expr, VariableExpr):
                return AssignExpr(expr.name, value)
            if isinstance(expr, GetExpr):
                return SetExpr(expr.object, expr.name, value)
            # Reported, not raised: the parser is not confused.
            self.error(equals, "Invalid assignment target.")
        return expr

    def logic_or(self) -> Expr:
        expr = self.logic_and()
        while self.match(OR):
            operator = self.previous()
            right = self.logic_and()
            expr = LogicalExpr(expr, operator, right)
        return expr

    def logic_and(self) -> Expr:
        expr = self.equality()
        while self.match(AND):
            operator = self.previous()
            right = self.equality()
            expr = LogicalExpr(expr, operator, right)
        return expr

    def equality(self) -> Expr:
        expr = self.comparison()
        while self.match(BANG_EQUAL, EQUAL_EQUAL):
            operator = self.previous()
            right = self.comparison()
            expr = BinaryExpr(expr, operator, right)
        return expr

    def comparison(self) -> Expr:
        expr = self.term()
        while self.match(GREATER, GREATER_EQUAL, LESS, LESS_EQUAL):
            operator = self.previous()
            right = self.term()
            expr = BinaryExpr(expr, operator, right)
        return expr

    def term(self) -> Expr:
        expr = self.factor()
        while self.match(MINUS, PLUS):
            operator = self.previous()
            right = self.factor()
            expr = BinaryExpr(expr, operator, right)
        return expr

    def factor(self) -> Expr:
        expr = self.unary()
        while self.match(SLASH, STAR):
            operator = self.previous()
            right = self.unary()
            expr = BinaryExpr(expr, operator, right)
        return expr

    def unary(self) -> Expr:
        if self.match(BANG, MINUS):
            operator = self.previous()
            right = self.unary()
            return UnaryExpr(operator, right)
        return self.call()

    def call(self) -> Expr:
        expr = self.primary()
        while True:
            if self.match(LEFT_PAREN):
                expr = self.finish_call(expr)
            elif self.match(DOT):
                name = self.expect(IDENTIFIER, "Expect property name after '.'.")
                expr = GetExpr(expr, name)
            else:
                break
        return expr

    def finish_call(self, callee: Expr) -> CallExpr:
        arguments: list[Expr] = []
        if not self.at(RIGHT_PAREN):
            while True:
                if len(arguments) >= MAX_ARGS:
                    self.error(self.current(), "Can't have more than 255 arguments.")
                arguments.append(self.expression())
                if not self.match(COMMA):
                    break
        paren = self.expect(RIGHT_PAREN, "Expect ')' after arguments.")
        return CallExpr(callee, paren, arguments)

    def primary(self) -> Expr:
        if self.match(FALSE):
            return LiteralExpr(False)
        if self.match(TRUE):
            return LiteralExpr(True)
        if self.match(NIL):
            return LiteralExpr(None)
        if self.match(NUMBER, STRING):
            return LiteralExpr(self.previous().literal)
        if self.match(SUPER):
            keyword = self.previous()
            self.expect(DOT, "Expect '.' after 'super'.")
            method = self.expect(IDENTIFIER, "Expect superclass method name.")
            return SuperExpr(keyword, method)
        if self.match(THIS):
            return ThisExpr(self.previous())
        if self.match(IDENTIFIER):
            return VariableExpr(self.previous())
        if self.match(LEFT_PAREN):
            expr = self.expression()
            self.expect(RIGHT_PAREN, "Expect ')' after expression.")
            return GroupingExpr(expr)
        raise self.error(self.current(), "Expect expression.")


def parse_tokens(tokens: list[Token]) -> tuple[list[Stmt], list[ParseError]]:
    """Parse a token list. Returns (statements, errors)."""
    parser = Parser(tokens)
    statements = parser.parse()
    return statements, parser.errors
