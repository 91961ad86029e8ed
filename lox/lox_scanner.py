"""
Converts Lox source text into a flat list of tokens.
"""
from typing import List

from lox.lox_errors import ScanningError, ScanningErrors
from lox.lox_tokens import Token, TokenType, keyword_for

_SINGLE = {
    '(': TokenType.LEFT_PAREN,
    ')': TokenType.RIGHT_PAREN,
    '{': TokenType.LEFT_BRACE,
    '}': TokenType.RIGHT_BRACE,
    ',': TokenType.COMMA,
    '.': TokenType.DOT,
    '-': TokenType.MINUS,
    '+': TokenType.PLUS,
    ';': TokenType.SEMICOLON,
    '*': TokenType.STAR,
}

# Operators that grow into a two-character form when followed by '='.
_WITH_EQUAL = {
    '!': (TokenType.BANG, TokenType.BANG_EQUAL),
    '=': (TokenType.EQUAL, TokenType.EQUAL_EQUAL),
    '<': (TokenType.LESS, TokenType.LESS_EQUAL),
    '>': (TokenType.GREATER, TokenType.GREATER_EQUAL),
}


def _is_digit(c: str) -> bool:
    return '0' <= c <= '9'


def _is_alpha(c: str) -> bool:
    return ('a' <= c <= 'z') or ('A' <= c <= 'Z') or c == '_'


class Scanner:
    """Single-pass scanner.

    Malformed lexemes are recorded and skipped so one pass reports all of
    them; `scan_tokens` raises `ScanningErrors` at the end if any were found.
    """

    def __init__(self, source: str):
        self.source = source
        self.tokens: List[Token] = []
        self.errors: List[ScanningError] = []
        self.start = 0
        self.current = 0
        self.line = 1

    def scan_tokens(self) -> List[Token]:
        while not self._at_end():
            self.start = self.current
            self._scan_token()

        self.tokens.append(Token(TokenType.EOF, "", self.line))

        if self.errors:
            raise ScanningErrors(self.errors)
        return self.tokens

    # --- Character helpers ---

    def _at_end(self) -> bool:
        return self.current >= len(self.source)

    def _advance(self) -> str:
        c = self.source[self.current]
        self.current += 1
        return c

    def _peek(self) -> str:
        return '' if self._at_end() else self.source[self.current]

    def _peek_next(self) -> str:
        nxt = self.current + 1
        return '' if nxt >= len(self.source) else self.source[nxt]

    def _match(self, expected: str) -> bool:
        if self._peek() != expected:
            return False
        self.current += 1
        return True

    def _add(self, type: TokenType, literal=None):
        text = self.source[self.start:self.current]
        self.tokens.append(Token(type, text, self.line, literal))

    def _error(self, message: str):
        self.errors.append(ScanningError(self.line, message))

    # --- Lexemes ---

    def _scan_token(self):
        c = self._advance()

        if c in _SINGLE:
            self._add(_SINGLE[c])
            return
        if c in _WITH_EQUAL:
            short, long = _WITH_EQUAL[c]
            self._add(long if self._match('=') else short)
            return

        match c:
            case '/':
                if self._match('/'):
                    # Comment runs to the end of the line; the newline itself is left for the main loop.
                    while self._peek() not in ('\n', ''):
                        self._advance()
                else:
                    self._add(TokenType.SLASH)
            case ' ' | '\r' | '\t':
                pass
            case '\n':
                self.line += 1
            case '"':
                self._string()
            case _ if _is_digit(c):
                self._number()
            case _ if _is_alpha(c):
                self._identifier()
            case _:
                self._error(f"Unrecognized character {c}")

    def _string(self):
        while self._peek() != '"' and not self._at_end():
            if self._peek() == '\n':
                self.line += 1
            self._advance()

        if self._at_end():
            self._error("End of string not found")
            return

        self._advance()  # closing quote
        value = self.source[self.start + 1:self.current - 1]
        self._add(TokenType.STRING, value)

    def _number(self):
        while _is_digit(self._peek()):
            self._advance()

        # A fraction needs a digit straight after the dot, so `100.` leaves the dot alone.
        if self._peek() == '.' and _is_digit(self._peek_next()):
            self._advance()
            while _is_digit(self._peek()):
                self._advance()

        text = self.source[self.start:self.current]
        try:
            value = float(text)
        except ValueError:
            self._error("Failed to parse number")
            return
        self._add(TokenType.NUMBER, value)

    def _identifier(self):
        while _is_alpha(self._peek()) or _is_digit(self._peek()):
            self._advance()

        text = self.source[self.start:self.current]
        keyword = keyword_for(text)
        if keyword is not None:
            self._add(keyword)
        else:
            self._add(TokenType.IDENTIFIER, text)


def scan(source: str) -> List[Token]:
    """Scan `source` into tokens ending with EOF, or raise ScanningErrors."""
    return Scanner(source).scan_tokens()
