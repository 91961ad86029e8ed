"""
Recursive-descent parser turning Lox tokens into statement and expression trees.
"""
from typing import Any, List, Optional

from lox.lox_datatypes import (
    Expr, Literal, Grouping, Unary, Binary, Logical, Variable, Assign, This, Call, Get, Set,
    Block, Var, Print, If, While, Function, Return, Class,
)
from lox.lox_errors import ParsingError
from lox.lox_tokens import Token, TokenType

# Tokens that start a new statement; used to resume after a parse error.
_STATEMENT_STARTS = (
    TokenType.CLASS, TokenType.FUN, TokenType.LET, TokenType.FOR, TokenType.IF,
    TokenType.WHILE, TokenType.PRINT, TokenType.RETURN, TokenType.RIGHT_BRACE,
)

_EQUALITY = {TokenType.EQUAL_EQUAL: "==", TokenType.BANG_EQUAL: "!="}
_COMPARISON = {
    TokenType.GREATER: ">", TokenType.GREATER_EQUAL: ">=",
    TokenType.LESS: "<", TokenType.LESS_EQUAL: "<=",
}
_TERM = {TokenType.PLUS: "+", TokenType.MINUS: "-"}
_FACTOR = {TokenType.STAR: "*", TokenType.SLASH: "/"}
_UNARY = {TokenType.BANG: "!", TokenType.MINUS: "-"}


def _describe(token: Token) -> str:
    if token.type == TokenType.EOF:
        return "end of input"
    return f'"{token.lexeme}"'


class Parser:
    """Parses a token list one declaration at a time.

    A declaration that fails to parse becomes a ParsingError element of the
    result and parsing resumes at the next statement boundary. The same holds
    for declarations nested inside blocks.
    """

    def __init__(self, tokens: List[Token]):
        self.tokens = list(tokens)
        if not self.tokens or self.tokens[-1].type != TokenType.EOF:
            line = self.tokens[-1].line if self.tokens else 1
            self.tokens.append(Token(TokenType.EOF, "", line))
        self.current = 0

    def parse(self) -> List[Any]:
        steps: List[Any] = []
        while not self._at_end():
            steps.append(self._declaration_or_error())
        return steps

    # --- Token helpers ---

    def _peek(self) -> Token:
        return self.tokens[self.current]

    def _previous(self) -> Token:
        return self.tokens[self.current - 1]

    def _at_end(self) -> bool:
        return self._peek().type == TokenType.EOF

    def _check(self, type: TokenType) -> bool:
        return self._peek().type == type

    def _advance(self) -> Token:
        token = self._peek()
        if not self._at_end():
            self.current += 1
        return token

    def _match(self, *types: TokenType) -> Optional[Token]:
        if self._peek().type in types:
            return self._advance()
        return None

    def _consume(self, type: TokenType, what: Optional[str] = None) -> Token:
        if self._check(type):
            return self._advance()
        token = self._peek()
        expected = what or f'"{type.value}"'
        raise ParsingError(token.line, f"Expected {expected}, found {_describe(token)}")

    def _synchronize(self, start: int):
        # Always make progress, otherwise a bad token at a statement start loops forever.
        if self.current == start:
            self._advance()
        while not self._at_end():
            if self._previous().type == TokenType.SEMICOLON:
                return
            if self._peek().type in _STATEMENT_STARTS:
                return
            self._advance()

    # --- Declarations and statements ---

    def _declaration_or_error(self) -> Any:
        start = self.current
        try:
            return self._declaration()
        except ParsingError as err:
            self._synchronize(start)
            return err

    def _declaration(self) -> Any:
        if self._match(TokenType.LET):
            return self._var_declaration()
        if self._match(TokenType.FUN):
            return self._function()
        if self._match(TokenType.CLASS):
            return self._class_declaration()
        return self._statement()

    def _var_declaration(self) -> Var:
        name = self._consume(TokenType.IDENTIFIER, 'identifier following "let"')
        initializer: Expr = Literal(None, name.line)
        if self._match(TokenType.EQUAL):
            initializer = self._expression()
        self._consume(TokenType.SEMICOLON, '";" following variable declaration')
        return Var(name.literal, initializer, name.line)

    def _function(self) -> Function:
        name = self._consume(TokenType.IDENTIFIER, "function name")
        self._consume(TokenType.LEFT_PAREN)
        params: List[str] = []
        if not self._check(TokenType.RIGHT_PAREN):
            while True:
                param = self._consume(TokenType.IDENTIFIER, "function parameter")
                params.append(param.literal)
                if not self._match(TokenType.COMMA):
                    break
        self._consume(TokenType.RIGHT_PAREN, 'comma delimiting another parameter or ")"')
        body = self._block()
        return Function(name.literal, params, body, name.line)

    def _class_declaration(self) -> Class:
        name = self._consume(TokenType.IDENTIFIER, "class name")
        self._consume(TokenType.LEFT_BRACE)
        methods: List[Function] = []
        while not self._check(TokenType.RIGHT_BRACE) and not self._at_end():
            methods.append(self._function())
        self._consume(TokenType.RIGHT_BRACE)
        return Class(name.literal, methods, name.line)

    def _statement(self) -> Any:
        if self._check(TokenType.LEFT_BRACE):
            return self._block()
        if self._match(TokenType.PRINT):
            line = self._previous().line
            value = self._expression()
            self._consume(TokenType.SEMICOLON)
            return Print(value, line)
        if self._match(TokenType.IF):
            return self._if_statement()
        if self._match(TokenType.WHILE):
            line = self._previous().line
            condition = self._expression()
            return While(condition, self._block(), line)
        if self._match(TokenType.FOR):
            return self._for_statement()
        if self._match(TokenType.RETURN):
            line = self._previous().line
            value = None
            if not self._check(TokenType.SEMICOLON):
                value = self._expression()
            self._consume(TokenType.SEMICOLON)
            return Return(value, line)

        expr = self._expression()
        self._consume(TokenType.SEMICOLON)
        return expr

    def _block(self) -> Block:
        opening = self._consume(TokenType.LEFT_BRACE)
        steps: List[Any] = []
        while not self._check(TokenType.RIGHT_BRACE) and not self._at_end():
            steps.append(self._declaration_or_error())
        self._consume(TokenType.RIGHT_BRACE)
        return Block(steps, opening.line)

    def _if_statement(self) -> If:
        line = self._previous().line
        condition = self._expression()
        then_branch = self._block()
        else_branch = None
        if self._match(TokenType.ELSE):
            if self._match(TokenType.IF):
                else_branch = self._if_statement()
            else:
                else_branch = self._block()
        return If(condition, then_branch, else_branch, line)

    def _for_statement(self) -> Block:
        """`for (init; cond; incr) { body }` becomes `{ init; while cond { { body } incr; } }`."""
        line = self._previous().line
        self._consume(TokenType.LEFT_PAREN)

        if self._match(TokenType.SEMICOLON):
            initializer = None
        elif self._match(TokenType.LET):
            initializer = self._var_declaration()
        else:
            initializer = self._expression()
            self._consume(TokenType.SEMICOLON)

        condition: Expr = Literal(True, line)
        if not self._check(TokenType.SEMICOLON):
            condition = self._expression()
        self._consume(TokenType.SEMICOLON)

        increment = None
        if not self._check(TokenType.RIGHT_PAREN):
            increment = self._expression()
        self._consume(TokenType.RIGHT_PAREN)

        body: Any = self._block()
        if increment is not None:
            body = Block([body, increment], line)
        loop = While(condition, body, line)
        return Block([initializer, loop] if initializer is not None else [loop], line)

    # --- Expressions ---

    def _expression(self) -> Expr:
        return self._assignment()

    def _assignment(self) -> Expr:
        expr = self._or()
        equals = self._match(TokenType.EQUAL)
        if equals is None:
            return expr

        value = self._assignment()
        match expr:
            case Variable():
                return Assign(expr.name, value, expr.line)
            case Get():
                return Set(expr.object, expr.name, value, expr.line)
        raise ParsingError(equals.line, "Invalid assignment target, expected an identifier or property")

    def _or(self) -> Expr:
        expr = self._and()
        while (op := self._match(TokenType.OR)) is not None:
            expr = Logical("or", expr, self._and(), op.line)
        return expr

    def _and(self) -> Expr:
        expr = self._equality()
        while (op := self._match(TokenType.AND)) is not None:
            expr = Logical("and", expr, self._equality(), op.line)
        return expr

    def _equality(self) -> Expr:
        # Equality and comparison chains associate to the right: a > b > c is a > (b > c).
        expr = self._comparison()
        op = self._match(*_EQUALITY)
        if op is not None:
            return Binary(_EQUALITY[op.type], expr, self._equality(), op.line)
        return expr

    def _comparison(self) -> Expr:
        expr = self._term()
        op = self._match(*_COMPARISON)
        if op is not None:
            return Binary(_COMPARISON[op.type], expr, self._comparison(), op.line)
        return expr

    def _term(self) -> Expr:
        expr = self._factor()
        while (op := self._match(*_TERM)) is not None:
            expr = Binary(_TERM[op.type], expr, self._factor(), op.line)
        return expr

    def _factor(self) -> Expr:
        expr = self._unary()
        while (op := self._match(*_FACTOR)) is not None:
            expr = Binary(_FACTOR[op.type], expr, self._unary(), op.line)
        return expr

    def _unary(self) -> Expr:
        op = self._match(*_UNARY)
        if op is not None:
            return Unary(_UNARY[op.type], self._unary(), op.line)
        return self._call()

    def _call(self) -> Expr:
        expr = self._primary()
        while True:
            if (paren := self._match(TokenType.LEFT_PAREN)) is not None:
                expr = Call(expr, self._arguments(), paren.line)
            elif (dot := self._match(TokenType.DOT)) is not None:
                name = self._peek()
                if name.type != TokenType.IDENTIFIER:
                    raise ParsingError(dot.line, "Expected identifier following dot")
                self._advance()
                expr = Get(expr, name.literal, dot.line)
            else:
                return expr

    def _arguments(self) -> List[Expr]:
        arguments: List[Expr] = []
        if not self._check(TokenType.RIGHT_PAREN):
            while True:
                arguments.append(self._expression())
                if not self._match(TokenType.COMMA):
                    break
        self._consume(TokenType.RIGHT_PAREN, 'either "," or ")" in function arguments')
        return arguments

    def _primary(self) -> Expr:
        token = self._peek()
        match token.type:
            case TokenType.TRUE:
                value: Expr = Literal(True, token.line)
            case TokenType.FALSE:
                value = Literal(False, token.line)
            case TokenType.NIL:
                value = Literal(None, token.line)
            case TokenType.NUMBER | TokenType.STRING:
                value = Literal(token.literal, token.line)
            case TokenType.IDENTIFIER:
                value = Variable(token.literal, token.line)
            case TokenType.THIS:
                value = This(token.line)
            case TokenType.LEFT_PAREN:
                self._advance()
                inner = self._expression()
                self._consume(TokenType.RIGHT_PAREN)
                return Grouping(inner, token.line)
            case _:
                raise ParsingError(token.line, f"Unrecognized token: {_describe(token)}")
        self._advance()
        return value


def parse(tokens: List[Token]) -> List[Any]:
    """Parse tokens into a list of top-level steps or ParsingError values."""
    return Parser(tokens).parse()


def collect_errors(steps) -> List[ParsingError]:
    """Every ParsingError in `steps`, including those nested in blocks and bodies."""
    errors: List[ParsingError] = []

    def visit(step):
        match step:
            case ParsingError():
                errors.append(step)
            case Block():
                for s in step:
                    visit(s)
            case If():
                visit(step.then_branch)
                if step.else_branch is not None:
                    visit(step.else_branch)
            case While():
                visit(step.body)
            case Function():
                visit(step.body)
            case Class():
                for m in step.methods:
                    visit(m)

    for s in steps:
        visit(s)
    return errors
