"""
Token types and the keyword table for the Lox scanner.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class TokenType(Enum):
    # Single-character tokens.
    LEFT_PAREN = "("
    RIGHT_PAREN = ")"
    LEFT_BRACE = "{"
    RIGHT_BRACE = "}"
    COMMA = ","
    DOT = "."
    MINUS = "-"
    PLUS = "+"
    SEMICOLON = ";"
    SLASH = "/"
    STAR = "*"

    # One or two character tokens.
    BANG = "!"
    BANG_EQUAL = "!="
    EQUAL = "="
    EQUAL_EQUAL = "=="
    GREATER = ">"
    GREATER_EQUAL = ">="
    LESS = "<"
    LESS_EQUAL = "<="

    # Literals.
    IDENTIFIER = "identifier"
    STRING = "string"
    NUMBER = "number"

    # Keywords.
    AND = "and"
    CLASS = "class"
    ELSE = "else"
    FALSE = "false"
    FOR = "for"
    FUN = "fun"
    IF = "if"
    LET = "let"
    NIL = "nil"
    OR = "or"
    PRINT = "print"
    RETURN = "return"
    SUPER = "super"
    THIS = "this"
    TRUE = "true"
    WHILE = "while"

    EOF = "eof"


KEYWORDS: Dict[str, TokenType] = {
    t.value: t for t in (
        TokenType.AND, TokenType.CLASS, TokenType.ELSE, TokenType.FALSE,
        TokenType.FOR, TokenType.FUN, TokenType.IF, TokenType.LET,
        TokenType.NIL, TokenType.OR, TokenType.PRINT, TokenType.RETURN,
        TokenType.SUPER, TokenType.THIS, TokenType.TRUE, TokenType.WHILE,
    )
}


def keyword_for(text: str) -> Optional[TokenType]:
    return KEYWORDS.get(text)


@dataclass(frozen=True)
class Token:
    """A single lexeme produced by the scanner.

    `literal` holds the payload for STRING (the text), NUMBER (a float) and
    IDENTIFIER (the name) tokens, and is None for everything else.
    """
    type: TokenType
    lexeme: str
    line: int
    literal: Any = None

    def __repr__(self) -> str:
        return f"{self.type.name} @ line={self.line} : {self.lexeme!r}"
