"""Free-text query tokenizer and term extraction.

The query syntax is the Lucene-like one typed in the search bar:

- whitespace separates tokens
- ``"an exact phrase"`` is one term, ``/a regex.*/`` is one regex term
- ``-term``, ``!term`` and a preceding ``NOT`` negate a term, ``+term`` is neutral
- ``field:term`` targets a field, ``\\:`` is a literal colon
- ``term~2`` carries a fuzziness that is not part of the label
- ``AND`` / ``OR`` are connectors, parentheses group terms

Tokens keep their source span so the query can be edited without
re-serializing it (see ``FacetSearch.core.editor``).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterable

from FacetSearch.utils.log import log

TERM = "term"
OPERATOR = "operator"
NOT = "not"
SIGN = "sign"
OPEN = "open"
CLOSE = "close"

_OPERATORS = frozenset({"AND", "OR", "&&", "||"})
_SIGNS = "-+!"
_NEGATIVE_SIGNS = "-!"
_MATCH_ALL = "*"

_ESCAPE_RE = re.compile(r"\\(.)")
_FUZZINESS_RE = re.compile(r"(?<!\\)~\d*(?:\.\d+)?$")


@dataclass(frozen=True, slots=True)
class Term:
    """One semantic unit of a free-text query.

    Attributes:
        field: Targeted field name, empty for the default fields.
        label: Unquoted, unescaped term text.
        negation: True when documents matching the term are excluded.
        regex: True for ``/.../`` terms.
    """

    field: str
    label: str
    negation: bool = False
    regex: bool = False


@dataclass(frozen=True, slots=True)
class Token:
    """A lexical token with its ``[start, end)`` span in the source query."""

    kind: str
    text: str
    start: int
    end: int


def tokenize(query: str) -> tuple[Token, ...]:
    """Split a query into tokens.

    Parentheses are structural only when balanced; an unmatched ``(`` or
    ``)`` stays a literal character of the surrounding term.

    Args:
        query: Raw query string.

    Returns:
        Tokens in source order.
    """
    if not query:
        return ()
    draft = _scan(query, structural=None)
    return _scan(query, structural=_balanced_parentheses(draft))


def parse_query_terms(query: str) -> tuple[Term, ...]:
    """Extract the ordered, de-duplicated terms of a query.

    Parsing is total: malformed input degrades to best-effort terms.

    Args:
        query: Raw query string.

    Returns:
        Terms in order of first appearance. Terms of a group preceded by a
        negation are all negated.
    """
    terms: list[Term] = []
    seen: set[Term] = set()
    pending_not = False
    groups: list[bool] = []

    for token in tokenize(query):
        if token.kind == NOT or (token.kind == SIGN and token.text in _NEGATIVE_SIGNS):
            pending_not = True
        elif token.kind == OPEN:
            inherited = groups[-1] if groups else False
            groups.append(inherited or pending_not)
            pending_not = False
        elif token.kind == CLOSE:
            if groups:
                groups.pop()
            pending_not = False
        elif token.kind == TERM:
            forced = pending_not or (groups[-1] if groups else False)
            pending_not = False
            term = to_term(token.text, negation=forced)
            if term is None or term in seen:
                continue
            seen.add(term)
            terms.append(term)

    log.debug("Parsed %d term(s) from query=%r", len(terms), query)
    return tuple(terms)


def to_term(text: str, *, negation: bool = False) -> Term | None:
    """Build a ``Term`` from the raw text of a single term token.

    Args:
        text: Raw token text, sign prefix included.
        negation: Negation forced by the context (``NOT``, negated group).

    Returns:
        The term, or None when the token holds no searchable label
        (a lone ``*`` or an empty value).
    """
    body = text
    if body[:1] in _NEGATIVE_SIGNS:
        negation = True
        body = body[1:]
    elif body[:1] == "+":
        body = body[1:]

    field, value = _split_field(body)
    regex = False
    closing = _closing_delimiter(value, 0) if value[:1] in ('"', "/") else -1
    if value[:1] == '"' and closing != -1:
        label = _unescape(value[1:closing])
    elif value[:1] == "/" and closing != -1:
        label = value[1:closing].replace("\\@", "@")
        regex = True
    else:
        label = _unescape(_FUZZINESS_RE.sub("", value))

    if not label or label == _MATCH_ALL:
        return None
    return Term(field=field, label=label, negation=negation, regex=regex)


def term_label(text: str) -> str | None:
    """Return the normalized label of a term token, or None."""
    term = to_term(text)
    return term.label if term is not None else None


def _scan(query: str, *, structural: frozenset[int] | None) -> tuple[Token, ...]:
    """Scan tokens. ``structural=None`` treats every unquoted parenthesis as structural."""

    def is_structural(pos: int) -> bool:
        return structural is None or pos in structural

    tokens: list[Token] = []
    i = 0
    n = len(query)
    while i < n:
        char = query[i]
        if char.isspace():
            i += 1
            continue
        if char in "()" and is_structural(i):
            tokens.append(Token(OPEN if char == "(" else CLOSE, char, i, i + 1))
            i += 1
            continue
        if char in _SIGNS and i + 1 < n and query[i + 1] == "(" and is_structural(i + 1):
            tokens.append(Token(SIGN, char, i, i + 1))
            i += 1
            continue

        end = _term_end(query, i, is_structural)
        text = query[i:end]
        if text in _OPERATORS:
            kind = OPERATOR
        elif text == "NOT":
            kind = NOT
        else:
            kind = TERM
        tokens.append(Token(kind, text, i, end))
        i = end
    return tuple(tokens)


def _term_end(query: str, start: int, is_structural: Callable[[int], bool]) -> int:
    """Return the end offset of the term token starting at ``start``."""
    n = len(query)
    j = start + 1 if query[start] in _SIGNS else start
    value_start = j
    while j < n:
        char = query[j]
        if char == "\\":
            j += 2
            continue
        if char.isspace() or (char in "()" and is_structural(j)):
            break
        if char in ('"', "/") and j == value_start:
            closing = _closing_delimiter(query, j)
            if closing != -1:
                j = closing + 1
                continue
        if char == ":":
            value_start = j + 1
        j += 1
    return min(j, n)


def _balanced_parentheses(tokens: Iterable[Token]) -> frozenset[int]:
    """Return the offsets of parentheses that have a matching partner."""
    opened: list[int] = []
    matched: set[int] = set()
    for token in tokens:
        if token.kind == OPEN:
            opened.append(token.start)
        elif token.kind == CLOSE and opened:
            matched.add(opened.pop())
            matched.add(token.start)
    return frozenset(matched)


def _closing_delimiter(text: str, start: int) -> int:
    """Return the offset of the unescaped delimiter closing ``text[start]``, or -1."""
    delimiter = text[start]
    j = start + 1
    while j < len(text):
        if text[j] == "\\":
            j += 2
            continue
        if text[j] == delimiter:
            return j
        j += 1
    return -1


def _split_field(body: str) -> tuple[str, str]:
    """Split ``field:value`` on the first unescaped colon."""
    j = 0
    while j < len(body):
        char = body[j]
        if char == "\\":
            j += 2
            continue
        if char in ('"', "/"):
            break
        if char == ":":
            value = body[j + 1 :]
            if j == 0 or not value:
                break
            return _unescape(body[:j]), value
        j += 1
    return "", body


def _unescape(text: str) -> str:
    return _ESCAPE_RE.sub(r"\1", text)
