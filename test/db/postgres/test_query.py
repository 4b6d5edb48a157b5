"""Tests for placeholder rewriting and function-call detection."""

import pytest

from sqlcheck.db.postgres.query import (
    bare_placeholder,
    code_segments,
    detect_function_call,
    has_placeholders,
    rewrite_named_placeholders,
)


def test_rewrite_reuses_positions_case_insensitively():
    r = rewrite_named_placeholders(
        "SELECT * FROM users WHERE user_id = @UserId OR parent_id = @userid AND x = @x"
    )
    assert r.text == "SELECT * FROM users WHERE user_id = $1 OR parent_id = $1 AND x = $2"
    assert r.names == {1: "UserId", 2: "x"}
    assert r.position_of("@userId") == 1
    assert r.position_of("y") is None


def test_rewrite_numbers_after_positional_placeholders():
    r = rewrite_named_placeholders("SELECT $2, @a, $1")
    assert r.text == "SELECT $2, $3, $1"
    assert r.names == {3: "a"}


@pytest.mark.parametrize(
    "query",
    [
        "SELECT '@not_a_param'",
        'SELECT "@col" FROM t',
        "SELECT 1 -- @comment",
        "SELECT 1 /* @outer /* @nested */ */",
        "SELECT $$ @body $$",
        "SELECT $fn$ @body $fn$",
        "SELECT E'it\\'s @quoted'",
        "SELECT @@version",
        "SELECT tags @> ARRAY['a']",
        "SELECT email FROM users WHERE email LIKE 'a@b.com'",
    ],
)
def test_rewrite_ignores_non_placeholders(query):
    r = rewrite_named_placeholders(query)
    assert r.text == query
    assert r.names == {}


def test_code_segments_cover_text():
    text = "SELECT 'a', \"b\" -- c\n"
    segments = list(code_segments(text))
    assert "".join(text[s:e] for s, e, _ in segments) == text
    assert [text[s:e] for s, e, code in segments if not code] == ["'a'", '"b"', "-- c"]


def test_detect_function_call():
    call = detect_function_call("SELECT Increment(@Input)")
    assert call.name == "increment"
    assert call.schema_name is None
    assert call.arguments == ("@Input",)


def test_detect_qualified_function_call():
    call = detect_function_call('select "Billing".charge(@amount, coalesce(@note, \'a,b\'));')
    assert call.schema_name == "Billing"
    assert call.name == "charge"
    assert call.arguments == ("@amount", "coalesce(@note, 'a,b')")


def test_detect_function_call_without_arguments():
    assert detect_function_call("SELECT now()").arguments == ()


@pytest.mark.parametrize(
    "query",
    [
        "SELECT COUNT(*) FROM users",
        "SELECT increment(1) + 1",
        "SELECT user_id FROM users",
        "UPDATE users SET active = B'1'",
    ],
)
def test_detect_function_call_rejects_other_queries(query):
    assert detect_function_call(query) is None


def test_bare_placeholder():
    assert bare_placeholder(" @Input ") == ("Input", None)
    assert bare_placeholder("$2") == (None, 2)
    assert bare_placeholder("@a + 1") is None


def test_has_placeholders():
    assert has_placeholders("coalesce(@note, 'x')")
    assert has_placeholders("$1 + 1")
    assert not has_placeholders("'@note'")
    assert not has_placeholders("1")
