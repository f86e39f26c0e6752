"""Search session state and its route parameter mapping."""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping

from FacetSearch.core.catalog import DEFAULT_FILTERS
from FacetSearch.core.editor import delete_query_term
from FacetSearch.core.filters import FilterRegistry, FilterSpec
from FacetSearch.core.results import SearchResponse
from FacetSearch.core.terms import Term, parse_query_terms
from FacetSearch.utils.log import log

DEFAULT_INDEX = "local-datashare"
DEFAULT_SIZE = 25
DEFAULT_SORT = "relevance"
DEFAULT_FIELD = "all"

_FILTER_PARAM_RE = re.compile(r"^f\[(?P<name>[^\]]+)\]$")


class SearchState:
    """Mutable aggregate of one search session.

    Owns the raw query string, the index selection, pagination, the sort
    preset, the field selector, the filter registry and the last response.
    Changing the query or any filter (values or polarity) moves pagination
    back to the first page; changing ``size`` or ``sort`` does not.

    A state is not thread-safe: callers serialize mutations per session.
    """

    def __init__(
        self,
        *,
        index: str | Iterable[str] = DEFAULT_INDEX,
        catalog: Iterable[FilterSpec] = DEFAULT_FILTERS,
        size: int = DEFAULT_SIZE,
        sort: str = DEFAULT_SORT,
        field: str = DEFAULT_FIELD,
    ) -> None:
        self._default_size = _positive_int(size, "size")
        self._default_sort = sort
        self._default_field = field
        self.indices: tuple[str, ...] = _parse_indices(index)
        self.filters = FilterRegistry(catalog)
        self.query = ""
        self.offset = 0
        self.size = self._default_size
        self.sort = self._default_sort
        self.field = self._default_field
        self.response = SearchResponse.none()

    @property
    def index(self) -> str | None:
        """First selected index."""
        return self.indices[0] if self.indices else None

    @property
    def terms(self) -> tuple[Term, ...]:
        """Terms of the current query, derived on every access."""
        return parse_query_terms(self.query)

    def set_query(self, query: str | None) -> None:
        query = query or ""
        if query != self.query:
            self.query = query
            self.offset = 0

    def delete_query_term(self, label: str) -> None:
        self.set_query(delete_query_term(self.query, label))

    def set_from(self, offset: int) -> None:
        offset = int(offset)
        if offset < 0:
            raise ValueError(f"from must be >= 0, got {offset}")
        self.offset = offset

    def set_size(self, size: int) -> None:
        self.size = _positive_int(size, "size")

    def set_sort(self, sort: str) -> None:
        self.sort = sort or self._default_sort

    def set_field(self, field: str) -> None:
        self.field = field or self._default_field

    def set_indices(self, indices: str | Iterable[str]) -> None:
        parsed = _parse_indices(indices)
        if not parsed:
            raise ValueError("At least one index must be selected")
        self.indices = parsed

    def add_filter_value(self, name: str, value: Any) -> None:
        self.filters.add_value(name, value)
        self.offset = 0

    def remove_filter_value(self, name: str, value: Any) -> None:
        self.filters.remove_value(name, value)
        self.offset = 0

    def set_filter_value(self, name: str, value: Any) -> None:
        self.filters.set_value(name, value)
        self.offset = 0

    def reset_filter_values(self, name: str) -> None:
        self.filters.reset_values(name)
        self.offset = 0

    def toggle_filter(self, name: str) -> bool:
        """Flip the polarity of a filter and return the new flag."""
        reversed_ = self.filters.toggle_reversed(name)
        self.offset = 0
        return reversed_

    def sort_filter(self, name: str, by: str, order: str) -> None:
        self.filters.sort(name, by, order)

    def unsort_filter(self, name: str) -> None:
        self.filters.unsort(name)

    def reset(self) -> None:
        """Clear the session but keep the selected indices."""
        self.filters.reset()
        self.query = ""
        self.offset = 0
        self.size = self._default_size
        self.sort = self._default_sort
        self.field = self._default_field
        self.response = SearchResponse.none()

    def to_route_query(self) -> dict[str, Any]:
        """Serialize the state into flat route parameters.

        Returns:
            A mapping with ``q``, ``from``, ``size``, ``sort``, ``indices``
            (comma-joined) and ``field``, one ``f[<name>]`` list per filter
            with values, and ``reversed`` when any filter is reversed.
        """
        route: dict[str, Any] = {
            "q": self.query,
            "from": self.offset,
            "size": self.size,
            "sort": self.sort,
            "indices": ",".join(self.indices),
            "field": self.field,
        }
        for target in self.filters.active():
            route[f"f[{target.name}]"] = list(target.values)
        reversed_names = [target.name for target in self.filters if target.reversed]
        if reversed_names:
            route["reversed"] = reversed_names
        return route

    def update_from_route_query(self, route: Mapping[str, Any]) -> None:
        """Patch the state with route parameters.

        Only present keys are applied. ``f[<name>]`` replaces that filter's
        values and leaves other filters alone; ``reversed`` fully defines the
        reversed set. A new query or new filter values move pagination to the
        first page unless ``from`` is given too.

        Raises:
            UnknownFilterError: If a ``f[<name>]`` or ``reversed`` entry names
                a filter missing from the catalog.
            ValueError: If a numeric parameter is malformed.
        """
        # A blank selector (``indices=``) keeps the current indices.
        indices = _parse_indices(_as_list(route["indices"] if "indices" in route else route.get("index")))
        if indices:
            self.set_indices(indices)
        if "q" in route:
            self.set_query(_first(route["q"]))
        if "size" in route:
            self.set_size(_first(route["size"]))
        if "sort" in route:
            self.set_sort(_first(route["sort"]))
        if "field" in route:
            self.set_field(_first(route["field"]))

        for key, value in route.items():
            match = _FILTER_PARAM_RE.match(str(key))
            if match:
                self.set_filter_value(match.group("name"), _as_list(value))

        if "reversed" in route:
            wanted = set(_as_list(route["reversed"]))
            for name in wanted:
                self.filters.get(name)
            for target in self.filters:
                if (target.name in wanted) != target.reversed:
                    self.toggle_filter(target.name)

        if "from" in route:
            self.set_from(_first(route["from"]))
        log.debug("State updated from route keys=%s", sorted(route))


def _parse_indices(value: str | Iterable[str] | None) -> tuple[str, ...]:
    if value is None:
        return ()
    items = value.split(",") if isinstance(value, str) else [str(item) for item in value]
    out: list[str] = []
    for item in items:
        for part in item.split(","):
            part = part.strip()
            if part and part not in out:
                out.append(part)
    return tuple(out)


def _first(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _positive_int(value: Any, name: str) -> int:
    number = int(value)
    if number <= 0:
        raise ValueError(f"{name} must be positive, got {value!r}")
    return number
