"""Lexical helpers for query text.

These helpers never parse SQL; they only walk the text far enough to skip
string literals, quoted identifiers, comments and dollar-quoted bodies, so that
placeholders and function calls are found only in SQL code.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

_PLACEHOLDER_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_DOLLAR_TAG = re.compile(r"\$(?:[A-Za-z_][A-Za-z0-9_]*)?\$")
_POSITIONAL = re.compile(r"\$([0-9]+)")
_SELECT_HEAD = re.compile(r"\s*select\s+", re.IGNORECASE)
_QUALIFIED_NAME = re.compile(
    r'(?:(?P<schema>"(?:[^"]|"")+"|[A-Za-z_][A-Za-z0-9_$]*)\s*\.\s*)?'
    r'(?P<name>"(?:[^"]|"")+"|[A-Za-z_][A-Za-z0-9_$]*)\s*\('
)


def _skip_quoted(text: str, i: int, quote: str, backslash_escapes: bool = False) -> int:
    """Return the index just past the literal that starts at ``text[i]``."""
    j = i + 1
    n = len(text)
    while j < n:
        c = text[j]
        if backslash_escapes and c == "\\":
            j += 2
            continue
        if c == quote:
            if j + 1 < n and text[j + 1] == quote:
                j += 2
                continue
            return j + 1
        j += 1
    return n


def _skip_block_comment(text: str, i: int) -> int:
    depth = 0
    j = i
    n = len(text)
    while j < n:
        if text.startswith("/*", j):
            depth += 1
            j += 2
        elif text.startswith("*/", j):
            depth -= 1
            j += 2
            if depth == 0:
                return j
        else:
            j += 1
    return n


def _skip_non_code(text: str, i: int) -> int | None:
    """Return the end of a literal or comment starting at ``i``, or None if ``i`` is code."""
    c = text[i]
    if c == "'":
        escaped = i > 0 and text[i - 1] in "eE" and (i < 2 or not _is_ident_char(text[i - 2]))
        return _skip_quoted(text, i, "'", backslash_escapes=escaped)
    if c == '"':
        return _skip_quoted(text, i, '"')
    if text.startswith("--", i):
        end = text.find("\n", i)
        return len(text) if end < 0 else end
    if text.startswith("/*", i):
        return _skip_block_comment(text, i)
    if c == "$" and (i == 0 or not _is_ident_char(text[i - 1])):
        m = _DOLLAR_TAG.match(text, i)
        if m:
            close = text.find(m.group(0), m.end())
            return len(text) if close < 0 else close + len(m.group(0))
    return None


def _is_ident_char(c: str) -> bool:
    return c.isalnum() or c in "_$"


def code_segments(text: str):
    """Yield ``(start, end, is_code)`` spans covering the whole text."""
    i = 0
    start = 0
    n = len(text)
    while i < n:
        end = _skip_non_code(text, i)
        if end is None:
            i += 1
            continue
        if start < i:
            yield start, i, True
        yield i, end, False
        start = i = end
    if start < n:
        yield start, n, True


@dataclass(frozen=True)
class RewrittenQuery:
    """Query text with ``@name`` placeholders replaced by ``$n``.

    Attributes:
        text: Rewritten query text
        names: Placeholder names keyed by 1-based position
    """

    text: str
    names: dict[int, str] = field(default_factory=dict)

    def position_of(self, name: str) -> int | None:
        key = name.lstrip("@").lower()
        return next((p for p, n in self.names.items() if n.lower() == key), None)


def rewrite_named_placeholders(query: str) -> RewrittenQuery:
    """Rewrite ``@name`` placeholders into positional ``$n`` placeholders.

    Names are matched case-insensitively, so repeated uses of one name share a
    position. Existing ``$n`` placeholders keep their numbers and named ones are
    numbered after them. ``@@`` and operators such as ``@>`` are left alone.

    Example:
        >>> r = rewrite_named_placeholders("SELECT * FROM t WHERE a = @a AND b = @A")
        >>> r.text, r.names
        ('SELECT * FROM t WHERE a = $1 AND b = $1', {1: 'a'})
    """
    segments = list(code_segments(query))
    highest = 0
    for start, end, is_code in segments:
        if is_code:
            for m in _POSITIONAL.finditer(query, start, end):
                if m.start() == 0 or not _is_ident_char(query[m.start() - 1]):
                    highest = max(highest, int(m.group(1)))

    names: dict[int, str] = {}
    by_key: dict[str, int] = {}
    out: list[str] = []
    for start, end, is_code in segments:
        if not is_code:
            out.append(query[start:end])
            continue
        i = start
        while i < end:
            c = query[i]
            if c == "@" and i + 1 < end and query[i + 1] == "@":
                out.append("@@")
                i += 2
                continue
            if c == "@" and (i == start or not _is_ident_char(query[i - 1])):
                m = _PLACEHOLDER_NAME.match(query, i + 1, end)
                if m:
                    name = m.group(0)
                    key = name.lower()
                    if key not in by_key:
                        highest += 1
                        by_key[key] = highest
                        names[highest] = name
                    out.append(f"${by_key[key]}")
                    i = m.end()
                    continue
            out.append(c)
            i += 1
    return RewrittenQuery(text="".join(out), names=names)


@dataclass(frozen=True)
class FunctionCall:
    """A query of the form ``SELECT fn(arg, ...)``."""

    name: str
    schema_name: str | None
    arguments: tuple[str, ...]


def _unquote_identifier(ident: str) -> str:
    if ident.startswith('"') and ident.endswith('"'):
        return ident[1:-1].replace('""', '"')
    return ident.lower()


def _split_arguments(text: str) -> tuple[str, ...]:
    args: list[str] = []
    depth = 0
    current = 0
    for start, end, is_code in code_segments(text):
        if not is_code:
            continue
        for i in range(start, end):
            c = text[i]
            if c in "([":
                depth += 1
            elif c in ")]":
                depth -= 1
            elif c == "," and depth == 0:
                args.append(text[current:i].strip())
                current = i + 1
    tail = text[current:].strip()
    if tail or args:
        args.append(tail)
    return tuple(args)


def detect_function_call(query: str) -> FunctionCall | None:
    """Detect a query that consists of a single function call.

    Example:
        >>> detect_function_call("SELECT Increment(@Input)")
        FunctionCall(name='increment', schema_name=None, arguments=('@Input',))
        >>> detect_function_call("SELECT COUNT(*) FROM users") is None
        True
    """
    head = _SELECT_HEAD.match(query)
    if head is None:
        return None
    m = _QUALIFIED_NAME.match(query, head.end())
    if m is None:
        return None

    open_paren = m.end() - 1
    depth = 0
    close_paren = None
    for start, end, is_code in code_segments(query):
        if end <= open_paren or not is_code:
            continue
        for i in range(max(start, open_paren), end):
            if query[i] == "(":
                depth += 1
            elif query[i] == ")":
                depth -= 1
                if depth == 0:
                    close_paren = i
                    break
        if close_paren is not None:
            break
    if close_paren is None:
        return None
    if query[close_paren + 1 :].strip().rstrip(";").strip():
        return None

    schema = m.group("schema")
    return FunctionCall(
        name=_unquote_identifier(m.group("name")),
        schema_name=_unquote_identifier(schema) if schema else None,
        arguments=_split_arguments(query[open_paren + 1 : close_paren]),
    )


_BARE_NAMED = re.compile(r"@([A-Za-z_][A-Za-z0-9_]*)")
_BARE_POSITIONAL = re.compile(r"\$([0-9]+)")
_ANY_PLACEHOLDER = re.compile(r"(?<![A-Za-z0-9_$@])(?:@[A-Za-z_]|\$[0-9])")


def bare_placeholder(argument: str) -> tuple[str | None, int | None] | None:
    """Split an argument that is exactly one placeholder into ``(name, position)``.

    Example:
        >>> bare_placeholder("@Input"), bare_placeholder("$2"), bare_placeholder("1")
        (('Input', None), (None, 2), None)
    """
    text = argument.strip()
    m = _BARE_NAMED.fullmatch(text)
    if m:
        return m.group(1), None
    m = _BARE_POSITIONAL.fullmatch(text)
    if m:
        return None, int(m.group(1))
    return None


def has_placeholders(text: str) -> bool:
    """Whether the SQL code of ``text`` (outside literals and comments) has placeholders."""
    return any(
        _ANY_PLACEHOLDER.search(text, start, end)
        for start, end, is_code in code_segments(text)
        if is_code
    )
