"""Structural deletion of terms from a free-text query.

The query is edited at the token level so the user's own spelling of every
other term (quotes, escapes, fuzziness) is kept verbatim.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Sequence

from FacetSearch.core.terms import CLOSE, NOT, OPEN, OPERATOR, SIGN, TERM, Token, term_label, tokenize
from FacetSearch.utils.log import log


@dataclass(frozen=True, slots=True)
class _Unit:
    """A term or a parenthesized group, with its modifiers and left connectors."""

    prefix: tuple[Token, ...] = ()
    term: Token | None = None
    group: _Group | None = None
    connectors: tuple[Token, ...] = ()
    unwrap: bool = False


@dataclass(frozen=True, slots=True)
class _Group:
    units: tuple[_Unit, ...] = ()
    trailing: tuple[Token, ...] = ()


def delete_query_term(query: str, label: str) -> str:
    """Remove every occurrence of a term from a query.

    A removed term takes its sign or its ``NOT`` with it, plus one connector.
    In the middle of a chain the operator next to its left neighbor stays and
    the one on its right goes; a term opening its group takes the connector
    on its right. A group emptied by
    the deletion disappears with its own ``NOT``; a group left with a single
    member loses its parentheses.

    Args:
        query: Raw query string.
        label: Normalized label to remove (unquoted, unescaped).

    Returns:
        The edited query with normalized whitespace, or ``query`` unchanged
        when no term carries ``label``.
    """
    root = _read_group(tokenize(query), 0)[0]
    edited, changed = _delete(root, label)
    if not changed:
        return query
    result = _render_group(edited)
    log.debug("Deleted term label=%r: %r -> %r", label, query, result)
    return result


def _read_group(tokens: Sequence[Token], start: int) -> tuple[_Group, int]:
    """Read units until the closing parenthesis of the current group."""
    units: list[_Unit] = []
    connectors: list[Token] = []
    prefix: list[Token] = []
    i = start
    while i < len(tokens):
        token = tokens[i]
        if token.kind == CLOSE:
            return _Group(tuple(units), tuple(connectors + prefix)), i + 1
        if token.kind == OPERATOR:
            connectors.extend(prefix)
            prefix = []
            connectors.append(token)
        elif token.kind in (NOT, SIGN):
            prefix.append(token)
        elif token.kind == OPEN:
            inner, i = _read_group(tokens, i + 1)
            units.append(_Unit(prefix=tuple(prefix), group=inner, connectors=tuple(connectors)))
            prefix, connectors = [], []
            continue
        elif token.kind == TERM:
            units.append(_Unit(prefix=tuple(prefix), term=token, connectors=tuple(connectors)))
            prefix, connectors = [], []
        i += 1
    return _Group(tuple(units), tuple(connectors + prefix)), i


def _delete(group: _Group, label: str) -> tuple[_Group, bool]:
    kept: list[_Unit] = []
    changed = False
    last_index = len(group.units) - 1
    last_kept = -1
    # Connectors of the first unit deleted after a kept one.
    carried: tuple[Token, ...] | None = None

    for index, unit in enumerate(group.units):
        if unit.term is not None:
            if term_label(unit.term.text) == label:
                changed = True
                carried = _carry(carried, kept, unit)
                continue
        elif unit.group is not None:
            inner, inner_changed = _delete(unit.group, label)
            if inner_changed:
                changed = True
                if not inner.units:
                    carried = _carry(carried, kept, unit)
                    continue
                unit = replace(unit, group=inner, unwrap=_can_unwrap(unit, inner))

        if not kept and index > 0:
            unit = replace(unit, connectors=())
        elif carried is not None and unit.connectors:
            unit = replace(unit, connectors=carried)
        carried = None
        kept.append(unit)
        last_kept = index

    if not changed:
        return group, False
    trailing = group.trailing if last_kept == last_index else ()
    return _Group(tuple(kept), trailing), True


def _carry(
    carried: tuple[Token, ...] | None, kept: Sequence[_Unit], removed: _Unit
) -> tuple[Token, ...] | None:
    """The operator next to the left neighbor outlives a removed middle unit."""
    if carried is not None or not kept:
        return carried
    return removed.connectors


def _can_unwrap(unit: _Unit, inner: _Group) -> bool:
    """A group reduced to one member drops its parentheses when no sign would stack."""
    if len(inner.units) != 1 or inner.trailing:
        return False
    if not unit.prefix:
        return True
    member = inner.units[0]
    if member.prefix:
        return False
    return member.term is not None and member.term.text[:1] not in "-+!"


def _render_group(group: _Group) -> str:
    parts: list[str] = []
    for unit in group.units:
        parts.extend(token.text for token in unit.connectors)
        parts.append(_render_unit(unit))
    parts.extend(token.text for token in group.trailing)
    return " ".join(part for part in parts if part)


def _render_unit(unit: _Unit) -> str:
    words = [token.text for token in unit.prefix if token.kind == NOT]
    sign = "".join(token.text for token in unit.prefix if token.kind == SIGN)
    if unit.term is not None:
        core = unit.term.text
    else:
        inner = _render_group(unit.group) if unit.group is not None else ""
        core = f"{sign}{inner}" if unit.unwrap else f"{sign}({inner})"
    return " ".join(words + [core])
