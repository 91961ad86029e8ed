import pytest
from lox.lox_scanner import scan, Scanner
from lox.lox_tokens import Token, TokenType
from lox.lox_errors import ScanningError, ScanningErrors


def types(source):
    return [t.type for t in scan(source)]


def test_empty_source_yields_only_eof():
    tokens = scan("")
    assert len(tokens) == 1
    assert tokens[0].type == TokenType.EOF
    assert tokens[0].line == 1


def test_number_with_fraction_is_one_token():
    tokens = scan("420.69")
    assert [t.type for t in tokens] == [TokenType.NUMBER, TokenType.EOF]
    assert tokens[0].literal == 420.69
    assert tokens[0].lexeme == "420.69"


def test_trailing_dot_is_a_separate_token():
    tokens = scan("100.")
    assert [t.type for t in tokens] == [TokenType.NUMBER, TokenType.DOT, TokenType.EOF]
    assert tokens[0].literal == 100.0


def test_two_character_operators_are_greedy():
    assert types("== = != ! <= < >= >") == [
        TokenType.EQUAL_EQUAL, TokenType.EQUAL,
        TokenType.BANG_EQUAL, TokenType.BANG,
        TokenType.LESS_EQUAL, TokenType.LESS,
        TokenType.GREATER_EQUAL, TokenType.GREATER,
        TokenType.EOF,
    ]


def test_single_character_tokens():
    assert types("(){},.-+;*/") == [
        TokenType.LEFT_PAREN, TokenType.RIGHT_PAREN,
        TokenType.LEFT_BRACE, TokenType.RIGHT_BRACE,
        TokenType.COMMA, TokenType.DOT, TokenType.MINUS, TokenType.PLUS,
        TokenType.SEMICOLON, TokenType.STAR, TokenType.SLASH,
        TokenType.EOF,
    ]


def test_comment_runs_to_end_of_line():
    tokens = scan("1 // ignored ( ) \"\n2")
    assert [t.type for t in tokens] == [TokenType.NUMBER, TokenType.NUMBER, TokenType.EOF]
    assert tokens[1].line == 2


def test_keywords_and_identifiers():
    tokens = scan("let letter = nil; fun _private_1")
    assert [t.type for t in tokens] == [
        TokenType.LET, TokenType.IDENTIFIER, TokenType.EQUAL, TokenType.NIL,
        TokenType.SEMICOLON, TokenType.FUN, TokenType.IDENTIFIER, TokenType.EOF,
    ]
    assert tokens[1].literal == "letter"
    assert tokens[6].literal == "_private_1"


def test_all_keywords_are_recognised():
    source = "and class else false for fun if let nil or print return super this true while"
    kinds = types(source)[:-1]
    assert all(k != TokenType.IDENTIFIER for k in kinds)
    assert len(kinds) == 16


def test_string_literal_value_excludes_quotes():
    tokens = scan('"hello world"')
    assert tokens[0].type == TokenType.STRING
    assert tokens[0].literal == "hello world"
    assert tokens[0].lexeme == '"hello world"'


def test_multiline_string_advances_line():
    tokens = scan('"one\ntwo" x')
    assert tokens[0].literal == "one\ntwo"
    assert tokens[0].line == 2
    assert tokens[1].line == 2


def test_newlines_advance_line_counter():
    tokens = scan("a\n\nb\r\n\tc")
    assert [t.line for t in tokens[:-1]] == [1, 3, 4]


def test_unterminated_string_is_an_error():
    with pytest.raises(ScanningErrors) as exc:
        scan('let s = "open')
    assert exc.value.errors == [ScanningError(1, "End of string not found")]


def test_all_errors_are_collected_in_one_pass():
    with pytest.raises(ScanningErrors) as exc:
        scan("@\nlet a = 1;\n# $")
    errors = exc.value.errors
    assert [e.line for e in errors] == [1, 3, 3]
    assert errors[0].message == "Unrecognized character @"
    assert errors[2].message == "Unrecognized character $"


def test_scanner_keeps_tokens_of_valid_lexemes_around_errors():
    scanner = Scanner("1 @ 2")
    with pytest.raises(ScanningErrors):
        scanner.scan_tokens()
    assert [t.type for t in scanner.tokens] == [TokenType.NUMBER, TokenType.NUMBER, TokenType.EOF]


def test_token_repr():
    assert repr(Token(TokenType.IDENTIFIER, "foo", 3, "foo")) == "IDENTIFIER @ line=3 : 'foo'"
