"""Filter (facet) catalog entries, runtime state and registry."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Union

from FacetSearch.utils.log import log

TEXT = "text"
IDS = "ids"
PATH = "path"
DATE = "date"
DATE_RANGE = "date_range"
NAMED_ENTITY = "named_entity"

FILTER_KINDS = frozenset({TEXT, IDS, PATH, DATE, DATE_RANGE, NAMED_ENTITY})
SORT_KEYS = frozenset({"_count", "_key"})
SORT_ORDERS = frozenset({"asc", "desc"})

Scalar = Union[str, int, float, bool]


class UnknownFilterError(LookupError):
    """Raised when a filter name is not part of the catalog."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown filter: {name}")
        self.name = name


@dataclass(frozen=True, slots=True)
class SortSpec:
    """Ordering of a filter's candidate values (aggregation buckets)."""

    by: str = "_count"
    order: str = "desc"


DEFAULT_SORT = SortSpec()


@dataclass(frozen=True, slots=True)
class FilterSpec:
    """Static catalog entry declaring a filter and its capabilities.

    Attributes:
        name: Unique filter name, also used in route parameters.
        key: Indexed field the filter constrains and aggregates on.
        kind: How values become a constraint (see ``FILTER_KINDS``).
        order: Render and combination order.
        is_global: Candidate values come from the whole corpus instead of
            the current search.
        multiple: More than one value may be selected.
        reversible: The filter may exclude instead of include.
        sortable: Candidate values may be re-ordered.
        conjunctive: Documents must match every selected value.
        numeric: Values are coerced to integers.
        category: Named entity category for ``named_entity`` filters.
    """

    name: str
    key: str
    kind: str = TEXT
    order: int = 0
    is_global: bool = False
    multiple: bool = True
    reversible: bool = True
    sortable: bool = True
    conjunctive: bool = False
    numeric: bool = False
    category: str | None = None


@dataclass(slots=True)
class Filter:
    """Runtime state of one catalog filter."""

    spec: FilterSpec
    values: list[Scalar] = field(default_factory=list)
    reversed: bool = False
    sort: SortSpec | None = None

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def order(self) -> int:
        return self.spec.order

    @property
    def is_active(self) -> bool:
        """True when the filter constrains the search."""
        return bool(self.values)

    def has_value(self, value: Any) -> bool:
        try:
            wanted = self.normalize(value)
        except ValueError:
            return False
        keys = {value_key(v) for v in self.values}
        return bool(wanted) and all(value_key(v) in keys for v in wanted)

    def normalize(self, value: Any) -> list[Scalar]:
        """Flatten ``value`` and coerce it to this filter's value type."""
        flat = flatten_values(value)
        if self.spec.numeric:
            return [_to_int(v, self.name) for v in flat]
        return flat


class FilterRegistry:
    """Runtime filters instantiated from a catalog, ordered by ``order``.

    Every mutation addresses a filter by name; an unknown name raises
    ``UnknownFilterError`` while the pure predicates answer False.
    """

    def __init__(self, catalog: Iterable[FilterSpec]) -> None:
        specs = sorted(catalog, key=lambda spec: spec.order)
        self._filters: dict[str, Filter] = {}
        for spec in specs:
            if spec.name in self._filters:
                raise ValueError(f"Duplicate filter name in catalog: {spec.name}")
            if spec.kind not in FILTER_KINDS:
                raise ValueError(f"Unsupported filter kind for {spec.name}: {spec.kind}")
            self._filters[spec.name] = Filter(spec=spec)

    def __iter__(self) -> Iterator[Filter]:
        return iter(self._filters.values())

    def __len__(self) -> int:
        return len(self._filters)

    def __contains__(self, name: object) -> bool:
        return name in self._filters

    @property
    def catalog(self) -> tuple[FilterSpec, ...]:
        return tuple(f.spec for f in self._filters.values())

    def get(self, name: str) -> Filter:
        try:
            return self._filters[name]
        except KeyError:
            raise UnknownFilterError(name) from None

    def active(self) -> tuple[Filter, ...]:
        """Filters with at least one selected value, in catalog order."""
        return tuple(f for f in self._filters.values() if f.values)

    def add_value(self, name: str, value: Any) -> None:
        """Merge values into a filter, keeping the first appearance of each."""
        target = self.get(name)
        incoming = target.normalize(value)
        if not target.spec.multiple:
            target.values = incoming[-1:] or target.values
            return
        keys = {value_key(v) for v in target.values}
        for item in incoming:
            key = value_key(item)
            if key not in keys:
                keys.add(key)
                target.values.append(item)
        log.debug("Filter %s values=%s", name, target.values)

    def remove_value(self, name: str, value: Any) -> None:
        target = self.get(name)
        removed = {value_key(v) for v in target.normalize(value)}
        target.values = [v for v in target.values if value_key(v) not in removed]

    def set_value(self, name: str, value: Any) -> None:
        """Replace the values of a filter."""
        target = self.get(name)
        incoming = _dedup(target.normalize(value))
        target.values = incoming if target.spec.multiple else incoming[-1:]

    def reset_values(self, name: str) -> None:
        self.get(name).values = []

    def toggle_reversed(self, name: str) -> bool:
        """Flip the polarity of a filter and return the new flag."""
        target = self.get(name)
        self.set_reversed(name, not target.reversed)
        return target.reversed

    def set_reversed(self, name: str, reversed_: bool) -> None:
        target = self.get(name)
        if reversed_ and not target.spec.reversible:
            raise ValueError(f"Filter {name} cannot be reversed")
        target.reversed = bool(reversed_)

    def has_value(self, name: str, value: Any) -> bool:
        target = self._filters.get(name)
        return target is not None and target.has_value(value)

    def has_values(self, name: str) -> bool:
        target = self._filters.get(name)
        return target is not None and target.is_active

    def is_reversed(self, name: str) -> bool:
        target = self._filters.get(name)
        return target is not None and target.reversed

    def sort(self, name: str, by: str, order: str) -> None:
        """Set the single sort spec of a filter, replacing any previous one."""
        target = self.get(name)
        if not target.spec.sortable:
            raise ValueError(f"Filter {name} cannot be sorted")
        if by not in SORT_KEYS:
            raise ValueError(f"Filter sort key must be one of {sorted(SORT_KEYS)}: {by}")
        if order not in SORT_ORDERS:
            raise ValueError(f"Filter sort order must be one of {sorted(SORT_ORDERS)}: {order}")
        target.sort = SortSpec(by=by, order=order)

    def unsort(self, name: str) -> None:
        self.get(name).sort = None

    def sorted_by(self, name: str) -> SortSpec:
        """Effective sort of a filter, the default when none was set."""
        return self.get(name).sort or DEFAULT_SORT

    def sorted_filters(self) -> dict[str, SortSpec]:
        """Explicit sort specs by filter name."""
        return {f.name: f.sort for f in self._filters.values() if f.sort is not None}

    def reset(self) -> None:
        """Return every filter to its initial state."""
        for target in self._filters.values():
            target.values = []
            target.reversed = False
            target.sort = None


def flatten_values(value: Any) -> list[Scalar]:
    """Normalize a scalar, a sequence or nested sequences into a flat list."""
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        out: list[Scalar] = []
        for item in value:
            out.extend(flatten_values(item))
        return out
    if isinstance(value, (str, int, float, bool)):
        return [value]
    raise TypeError(f"Filter values must be strings or numbers, got {type(value).__name__}")


def value_key(value: Scalar) -> str:
    """Comparison key under which ``1``, ``1.0`` and ``'1'`` are the same value."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _dedup(values: list[Scalar]) -> list[Scalar]:
    seen: set[str] = set()
    out: list[Scalar] = []
    for value in values:
        key = value_key(value)
        if key not in seen:
            seen.add(key)
            out.append(value)
    return out


def _to_int(value: Scalar, name: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Filter {name} expects numeric values, got {value!r}")
    if isinstance(value, int):
        return value
    try:
        return int(value) if isinstance(value, str) and value.strip().lstrip("+-").isdigit() else int(float(value))
    except (TypeError, ValueError):
        raise ValueError(f"Filter {name} expects numeric values, got {value!r}") from None
