"""Search domain configuration (session defaults)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from FacetSearch.config.common import expect_int, expect_str, get_section, read_value
from FacetSearch.core.builder import SEARCH_FIELDS, SORT_PRESETS


@dataclass(frozen=True, slots=True)
class SearchConfig:
    """Defaults of a new search session."""

    index: str
    size: int
    sort: str
    field: str
    max_filter_size: int


def load_search(raw: Mapping[str, Any]) -> SearchConfig:
    """Load the ``search`` section.

    Raises:
        TypeError: If config types are invalid.
        ValueError: If required keys are missing.
    """
    section = get_section(raw, "search", required=True)
    return SearchConfig(
        index=read_value(section, "search", "index", expect_str).strip(),
        size=read_value(section, "search", "size", expect_int),
        sort=read_value(section, "search", "sort", expect_str, "relevance"),
        field=read_value(section, "search", "field", expect_str, "all"),
        max_filter_size=read_value(section, "search", "max_filter_size", expect_int, 50),
    )


def check_search(config: SearchConfig) -> None:
    """Validate search domain constraints.

    Raises:
        ValueError: If values violate search constraints.
    """
    if not config.index:
        raise ValueError("search.index must not be empty")
    if config.size <= 0:
        raise ValueError("search.size must be positive")
    if config.sort not in SORT_PRESETS:
        raise ValueError(f"search.sort must be one of {sorted(SORT_PRESETS)}")
    if config.field not in SEARCH_FIELDS:
        raise ValueError(f"search.field must be one of {sorted(SEARCH_FIELDS)}")
    if config.max_filter_size <= 0:
        raise ValueError("search.max_filter_size must be positive")
