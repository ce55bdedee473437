import dataclasses

import pytest

from trussdef.svcparse.tokens import Token, TokenGroup

TOKEN_NAMES = [
    "ILLEGAL",
    "EOF",
    "WHITESPACE",
    "COMMENT",
    "SYMBOL",
    "IDENT",
    "STRING_LITERAL",
    "OPEN_PAREN",
    "CLOSE_PAREN",
    "OPEN_BRACE",
    "CLOSE_BRACE",
]


@pytest.mark.parametrize("value, name", list(enumerate(TOKEN_NAMES)))
def test_token_str_is_its_name(value, name):
    assert str(Token(value)) == name


def test_token_order_matches_definition():
    assert [str(Token(value)) for value in range(len(TOKEN_NAMES))] == TOKEN_NAMES


def test_illegal_is_zero_value():
    assert Token.ILLEGAL == 0
    assert Token(Token.CLOSE_BRACE.value) is Token.CLOSE_BRACE


def test_token_group_str_escapes_value():
    group = TokenGroup(Token.IDENT, 'a\n\t"b', 3)
    assert str(group) == '{"token": "IDENT", "value": "a\\n\\t\\"b", "line": 3},'


def test_token_group_str_mentions_line_and_kind():
    group = TokenGroup(Token.CLOSE_BRACE, "}", 12)
    text = str(group)
    assert '"token": "CLOSE_BRACE"' in text
    assert text.endswith('"line": 12},')


def test_token_group_is_immutable():
    group = TokenGroup(Token.SYMBOL, ";", 1)
    with pytest.raises(dataclasses.FrozenInstanceError):
        group.value = ":"  # type: ignore[misc]
    assert group.value == ";"
    assert group == TokenGroup(Token.SYMBOL, ";", 1)


def test_token_groups_compare_by_value():
    assert TokenGroup(Token.IDENT, "x", 2) == TokenGroup(Token.IDENT, "x", 2)
    assert TokenGroup(Token.IDENT, "x", 2) != TokenGroup(Token.IDENT, "x", 3)