"""Filter catalog configuration.

An optional top-level ``filters`` list replaces the default catalog::

    filters:
      - name: contentType
        key: contentType
        kind: text
        order: 40
"""

from __future__ import annotations

from typing import Any, Mapping

from FacetSearch.config.common import (
    expect_bool,
    expect_int,
    expect_list,
    expect_optional_str,
    expect_str,
    read_value,
)
from FacetSearch.core.catalog import DEFAULT_FILTERS
from FacetSearch.core.filters import FILTER_KINDS, NAMED_ENTITY, FilterSpec

_FLAGS = {
    "global": "is_global",
    "multiple": "multiple",
    "reversible": "reversible",
    "sortable": "sortable",
    "conjunctive": "conjunctive",
    "numeric": "numeric",
}
_KNOWN_KEYS = {"name", "key", "kind", "order", "category", *_FLAGS}


def load_filters(raw: Mapping[str, Any]) -> tuple[FilterSpec, ...]:
    """Load the filter catalog, the default one when ``filters`` is absent.

    Raises:
        TypeError: If config types are invalid.
        ValueError: If required keys are missing or unknown keys are present.
    """
    items = raw.get("filters")
    if items is None:
        return DEFAULT_FILTERS
    return tuple(
        _parse_filter(item, f"filters[{idx}]") for idx, item in enumerate(expect_list(items, "filters"))
    )


def check_filters(catalog: tuple[FilterSpec, ...]) -> None:
    """Validate catalog constraints.

    Raises:
        ValueError: If the catalog is empty, names repeat or a kind is misused.
    """
    if not catalog:
        raise ValueError("filters must include at least one filter")
    seen: set[str] = set()
    for spec in catalog:
        if spec.name in seen:
            raise ValueError(f"filters has duplicate name: {spec.name}")
        seen.add(spec.name)
        if spec.kind not in FILTER_KINDS:
            raise ValueError(f"filters.{spec.name}.kind must be one of {sorted(FILTER_KINDS)}")
        if spec.kind == NAMED_ENTITY and not spec.category:
            raise ValueError(f"filters.{spec.name}.category is required for named_entity filters")


def _parse_filter(value: Any, config_key: str) -> FilterSpec:
    if not isinstance(value, Mapping):
        raise TypeError(f"{config_key} must be an object, got {type(value).__name__}")
    unknown = {str(k) for k in value} - _KNOWN_KEYS
    if unknown:
        raise ValueError(f"{config_key} has unknown keys: {sorted(unknown)}")

    name = read_value(value, config_key, "name", expect_str).strip()
    if not name:
        raise ValueError(f"{config_key}.name must not be empty")
    flags = {
        attr: read_value(value, config_key, key, expect_bool) for key, attr in _FLAGS.items() if key in value
    }
    return FilterSpec(
        name=name,
        key=read_value(value, config_key, "key", expect_str),
        kind=read_value(value, config_key, "kind", expect_str, "text"),
        order=read_value(value, config_key, "order", expect_int, 0),
        category=read_value(value, config_key, "category", expect_optional_str, None),
        **flags,
    )
