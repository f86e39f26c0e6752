"""Compose a search state into an Elasticsearch request.

The raw query string is passed through as a ``query_string`` clause; parsed
terms are never re-serialized into the request. Each active filter adds one
constraint, combined with AND across filters.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from dateutil.relativedelta import relativedelta

from FacetSearch.core.filters import (
    DATE,
    DATE_RANGE,
    IDS,
    NAMED_ENTITY,
    PATH,
    TEXT,
    Filter,
    Scalar,
)
from FacetSearch.utils.log import log

if TYPE_CHECKING:
    from FacetSearch.core.state import SearchState

DOCUMENT_TYPE = "Document"
NAMED_ENTITY_TYPE = "NamedEntity"

SEARCH_FIELDS: dict[str, tuple[str, ...]] = {
    "all": ("content", "title", "path", "tags", "metadata.tika_metadata_resourcename"),
    "title": ("title", "metadata.tika_metadata_resourcename"),
    "author": ("metadata.tika_metadata_author", "metadata.tika_metadata_dc_creator"),
    "content": ("content",),
    "path": ("path",),
    "tags": ("tags",),
}

SORT_PRESETS: dict[str, tuple[dict[str, str], ...]] = {
    "relevance": ({"_score": "desc"},),
    "dateNewest": ({"extractionDate": "desc"},),
    "dateOldest": ({"extractionDate": "asc"},),
    "creationDateNewest": ({"metadata.tika_metadata_dcterms_created": "desc"},),
    "creationDateOldest": ({"metadata.tika_metadata_dcterms_created": "asc"},),
    "sizeLargest": ({"contentLength": "desc"},),
    "sizeSmallest": ({"contentLength": "asc"},),
    "path": ({"path": "asc"},),
    "pathReverse": ({"path": "desc"},),
    "title": ({"titleNorm": "asc"},),
    "titleReverse": ({"titleNorm": "desc"},),
}

_TIE_BREAKER = {"path": "asc"}
_MATCH_ALL_QUERIES = frozenset({"", "*"})


@dataclass(frozen=True, slots=True)
class Constraint:
    """Clause produced by one active filter."""

    name: str
    clause: dict[str, Any]
    negated: bool


@dataclass(frozen=True, slots=True)
class SearchRequest:
    """Elasticsearch request built from a search state."""

    indices: tuple[str, ...]
    query: str
    fields: tuple[str, ...]
    constraints: tuple[Constraint, ...]
    offset: int
    size: int
    sort: tuple[dict[str, str], ...]

    def to_body(self) -> dict[str, Any]:
        """Render the Elasticsearch ``_search`` body."""
        return {
            "from": self.offset,
            "size": self.size,
            "sort": [dict(item) for item in self.sort],
            "query": _bool_query(
                [_type_clause(DOCUMENT_TYPE), query_clause(self.query, self.fields)],
                self.constraints,
            ),
        }


@dataclass(frozen=True, slots=True)
class AggregationRequest:
    """Request fetching the candidate values of one filter."""

    indices: tuple[str, ...]
    name: str
    body: dict[str, Any]

    def to_body(self) -> dict[str, Any]:
        return self.body


def build_search_request(state: SearchState) -> SearchRequest:
    """Build the request for the current state.

    Args:
        state: Search session state; it is only read.

    Returns:
        A request combining the raw query, one constraint per active filter,
        pagination, sort and the index selection.
    """
    constraints = tuple(filter_constraint(target) for target in state.filters.active())
    request = SearchRequest(
        indices=state.indices,
        query=state.query,
        fields=search_fields(state.field),
        constraints=constraints,
        offset=state.offset,
        size=state.size,
        sort=sort_clauses(state.sort),
    )
    log.debug(
        "Built search request indices=%s constraints=%s from=%d size=%d",
        ",".join(request.indices),
        [c.name for c in constraints],
        request.offset,
        request.size,
    )
    return request


def build_filter_aggregation(state: SearchState, name: str, size: int = 50) -> AggregationRequest:
    """Build the request listing the candidate values of a filter.

    A global filter aggregates over the whole corpus. A scoped filter applies
    the query and every other active filter, never its own constraint.

    Raises:
        UnknownFilterError: If ``name`` is not in the catalog.
    """
    target = state.filters.get(name)
    spec = target.spec
    order = state.filters.sorted_by(name)

    if spec.is_global:
        document_query = _bool_query([_type_clause(DOCUMENT_TYPE)], ())
    else:
        others = tuple(
            filter_constraint(other) for other in state.filters.active() if other.name != name
        )
        document_query = _bool_query(
            [_type_clause(DOCUMENT_TYPE), query_clause(state.query, search_fields(state.field))],
            others,
        )

    if spec.kind == DATE:
        aggregation = {
            "date_histogram": {
                "field": spec.key,
                "calendar_interval": "month",
                "min_doc_count": 1,
                "order": {order.by: order.order},
            }
        }
    else:
        aggregation = {"terms": {"field": spec.key, "size": size, "order": {order.by: order.order}}}

    if spec.kind == NAMED_ENTITY:
        query = {
            "bool": {
                "filter": [
                    _type_clause(NAMED_ENTITY_TYPE),
                    {"term": {"category": spec.category}},
                    {"term": {"isHidden": False}},
                    {"has_parent": {"parent_type": DOCUMENT_TYPE, "query": document_query}},
                ]
            }
        }
    else:
        query = document_query

    body = {"size": 0, "query": query, "aggs": {name: aggregation}}
    return AggregationRequest(indices=state.indices, name=name, body=body)


def filter_constraint(target: Filter) -> Constraint:
    """Turn an active filter into its constraint clause."""
    spec = target.spec
    values = list(target.values)
    if spec.kind == TEXT:
        if spec.conjunctive:
            clause = {"bool": {"must": [{"term": {spec.key: value}} for value in values]}}
        else:
            clause = {"terms": {spec.key: values}}
    elif spec.kind == IDS:
        clause = {"ids": {"values": [str(value) for value in values]}}
    elif spec.kind == PATH:
        clause = _should([{"prefix": {spec.key: value}} for value in values])
    elif spec.kind == DATE:
        clause = _should([_month_range(spec.key, int(value)) for value in values])
    elif spec.kind == DATE_RANGE:
        bounds = sorted(values, key=_range_key)
        clause = {"range": {spec.key: {"gte": bounds[0], "lte": bounds[-1]}}}
    elif spec.kind == NAMED_ENTITY:
        clause = {
            "has_child": {
                "type": NAMED_ENTITY_TYPE,
                "query": {
                    "bool": {
                        "filter": [
                            {"term": {"category": spec.category}},
                            {"term": {"isHidden": False}},
                            {"terms": {spec.key: values}},
                        ]
                    }
                },
            }
        }
    else:
        raise ValueError(f"Unsupported filter kind for {spec.name}: {spec.kind}")
    return Constraint(name=spec.name, clause=clause, negated=target.reversed)


def query_clause(query: str, fields: tuple[str, ...]) -> dict[str, Any]:
    """Free-text clause; an empty query or ``*`` matches everything."""
    if query.strip() in _MATCH_ALL_QUERIES:
        return {"match_all": {}}
    return {"query_string": {"query": query, "fields": list(fields)}}


def search_fields(field: str) -> tuple[str, ...]:
    try:
        return SEARCH_FIELDS[field]
    except KeyError:
        log.warning("Unknown search field %r, searching all fields", field)
        return SEARCH_FIELDS["all"]


def sort_clauses(sort: str) -> tuple[dict[str, str], ...]:
    """Sort clauses of a preset, ending with the ``path`` tie-breaker."""
    preset = SORT_PRESETS.get(sort)
    if preset is None:
        log.warning("Unknown sort %r, falling back to relevance", sort)
        preset = SORT_PRESETS["relevance"]
    if any("path" in item for item in preset):
        return preset
    return preset + (_TIE_BREAKER,)


def _bool_query(must: list[dict[str, Any]], constraints: tuple[Constraint, ...]) -> dict[str, Any]:
    body: dict[str, Any] = {"must": must}
    included = [c.clause for c in constraints if not c.negated]
    excluded = [c.clause for c in constraints if c.negated]
    if included:
        body["filter"] = included
    if excluded:
        body["must_not"] = excluded
    return {"bool": body}


def _type_clause(name: str) -> dict[str, Any]:
    return {"term": {"type": name}}


def _should(clauses: list[dict[str, Any]]) -> dict[str, Any]:
    return {"bool": {"should": clauses, "minimum_should_match": 1}}


def _month_range(key: str, start_millis: int) -> dict[str, Any]:
    """Range covering the calendar month that starts at ``start_millis``."""
    start = datetime.fromtimestamp(start_millis / 1000, tz=timezone.utc)
    end = start + relativedelta(months=1)
    return {
        "range": {
            key: {"gte": start_millis, "lt": int(end.timestamp() * 1000), "format": "epoch_millis"}
        }
    }


def _range_key(value: Scalar) -> tuple[int, Any]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (0, value)
    return (1, str(value))
