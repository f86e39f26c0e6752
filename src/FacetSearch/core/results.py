"""Typed wrappers over raw search hits and responses.

A raw hit is turned into a typed result by ordered first-match dispatch: the
resolver walks its ``ResultType`` descriptors and the first one whose
``match`` predicate accepts the hit builds the wrapper.
"""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterator, Mapping, MutableMapping, Sequence

from dateutil import parser as date_parser

from FacetSearch.utils.log import log

_PATH_SEPARATORS_RE = re.compile(r"[\\/]")
_SHORT_ID_LENGTH = 10
_MISSING = object()


class UnresolvedResultError(RuntimeError):
    """Raised when no result type accepts a raw hit."""


def get_path(data: Any, path: str, default: Any = None) -> Any:
    """Read a dotted path (``a.b.0.c``) from nested mappings and lists."""
    current = data
    for part in path.split("."):
        if isinstance(current, Mapping):
            current = current.get(part, _MISSING)
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return default
        if current is _MISSING:
            return default
    return current


def set_path(data: MutableMapping[str, Any], path: str, value: Any) -> None:
    """Write ``value`` at a dotted path, creating intermediate mappings."""
    parts = path.split(".")
    current: Any = data
    for part in parts[:-1]:
        child = current.get(part)
        if not isinstance(child, MutableMapping):
            child = {}
            current[part] = child
        current = child
    current[parts[-1]] = value


def push_path(data: MutableMapping[str, Any], path: str, value: Any) -> None:
    """Append ``value`` to the list at a dotted path, creating it when missing.

    Raises:
        TypeError: If the path already holds something other than a list.
    """
    existing = get_path(data, path, _MISSING)
    if existing is _MISSING or existing is None:
        set_path(data, path, [value])
        return
    if not isinstance(existing, list):
        raise TypeError(f"Cannot push into {path}: not a list")
    existing.append(value)


class _RawRecord:
    """Exclusive owner of one raw record with dotted-path accessors."""

    __slots__ = ("_raw",)

    def __init__(self, raw: Mapping[str, Any]) -> None:
        self._raw: dict[str, Any] = copy.deepcopy(dict(raw))

    @property
    def raw(self) -> dict[str, Any]:
        return self._raw

    def get(self, path: str, default: Any = None) -> Any:
        return get_path(self._raw, path, default)

    def set(self, path: str, value: Any) -> None:
        set_path(self._raw, path, value)

    def push(self, path: str, value: Any) -> None:
        push_path(self._raw, path, value)


class _Hit(_RawRecord):
    __slots__ = ()

    @property
    def id(self) -> str:
        return str(self.get("_id", ""))

    @property
    def index(self) -> str | None:
        return self.get("_index")

    @property
    def routing(self) -> str | None:
        return self.get("_routing")

    @property
    def source(self) -> dict[str, Any]:
        return self.get("_source") or {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r})"


class Document(_Hit):
    """An indexed document hit."""

    __slots__ = ()

    @property
    def path(self) -> str:
        return str(self.get("_source.path") or "")

    @property
    def basename(self) -> str:
        """Last segment of the path, with POSIX or Windows separators."""
        return _PATH_SEPARATORS_RE.split(self.path)[-1]

    @property
    def dirname(self) -> str:
        stored = self.get("_source.dirname")
        if stored:
            return str(stored)
        segments = _PATH_SEPARATORS_RE.split(self.path)
        return self.path[: len(self.path) - len(segments[-1])].rstrip("\\/")

    @property
    def short_id(self) -> str:
        return self.id[:_SHORT_ID_LENGTH]

    @property
    def title(self) -> str:
        return str(self.get("_source.title") or self.basename)

    @property
    def content_type(self) -> str | None:
        return self.get("_source.contentType")

    @property
    def language(self) -> str | None:
        return self.get("_source.language")

    @property
    def content_length(self) -> int | None:
        value = self.get("_source.contentLength")
        try:
            return int(value) if value is not None else None
        except (TypeError, ValueError):
            return None

    @property
    def extraction_level(self) -> int:
        try:
            return int(self.get("_source.extractionLevel") or 0)
        except (TypeError, ValueError):
            return 0

    @property
    def is_child(self) -> bool:
        """True for documents extracted from another document (attachments)."""
        return self.extraction_level > 0

    @property
    def creation_date(self) -> datetime | None:
        value = self.get("_source.metadata.tika_metadata_dcterms_created")
        if not value:
            return None
        try:
            return date_parser.parse(str(value))
        except (ValueError, OverflowError):
            log.debug("Unparseable creation date doc=%s value=%r", self.id, value)
            return None

    @property
    def tags(self) -> list[str]:
        return list(self.get("_source.tags") or [])


class NamedEntity(_Hit):
    """A named entity mention, child of a document."""

    __slots__ = ()

    @property
    def mention(self) -> str:
        return str(self.get("_source.mention") or "")

    @property
    def mention_norm(self) -> str:
        return str(self.get("_source.mentionNorm") or self.mention.lower())

    @property
    def category(self) -> str | None:
        return self.get("_source.category")

    @property
    def offsets(self) -> list[int]:
        return list(self.get("_source.offsets") or [])

    @property
    def is_hidden(self) -> bool:
        return bool(self.get("_source.isHidden", False))

    @property
    def document_id(self) -> str | None:
        return self.routing or self.get("_source.documentId")


TypedResult = _Hit


@dataclass(frozen=True, slots=True)
class ResultType:
    """Candidate result type: a match predicate and the wrapper factory."""

    name: str
    match: Callable[[Mapping[str, Any]], bool]
    factory: Callable[[Mapping[str, Any]], TypedResult]


def source_type_is(name: str) -> Callable[[Mapping[str, Any]], bool]:
    """Predicate matching hits whose ``_source.type`` equals ``name``."""

    def match(hit: Mapping[str, Any]) -> bool:
        return get_path(hit, "_source.type") == name

    return match


DEFAULT_RESULT_TYPES: tuple[ResultType, ...] = (
    ResultType(name="Document", match=source_type_is("Document"), factory=Document),
    ResultType(name="NamedEntity", match=source_type_is("NamedEntity"), factory=NamedEntity),
)


class ResultResolver:
    """Ordered first-match dispatcher from raw hits to typed results."""

    def __init__(self, types: Sequence[ResultType] = DEFAULT_RESULT_TYPES) -> None:
        if not types:
            raise ValueError("ResultResolver needs at least one result type")
        self._types = tuple(types)

    @property
    def types(self) -> tuple[ResultType, ...]:
        return self._types

    def instantiate(self, hit: Mapping[str, Any]) -> TypedResult:
        """Wrap a raw hit with the first matching result type.

        Raises:
            UnresolvedResultError: If no result type matches; the type list is
                incomplete for the data it is fed.
        """
        for result_type in self._types:
            if result_type.match(hit):
                return result_type.factory(hit)
        discriminator = get_path(hit, "_source.type")
        raise UnresolvedResultError(
            f"No result type matches hit id={get_path(hit, '_id')!r} type={discriminator!r}"
        )


class SearchResponse(_RawRecord):
    """A raw search response with typed hits and aggregation accessors."""

    __slots__ = ("_hits",)

    def __init__(self, raw: Mapping[str, Any], resolver: ResultResolver | None = None) -> None:
        super().__init__(raw)
        resolver = resolver or ResultResolver()
        self._hits = tuple(resolver.instantiate(hit) for hit in self.get("hits.hits") or [])

    @classmethod
    def none(cls) -> SearchResponse:
        """Empty response used before a request completes or after it fails."""
        return cls({"hits": {"hits": [], "total": 0}, "aggregations": {}})

    @property
    def hits(self) -> tuple[TypedResult, ...]:
        return self._hits

    @property
    def total(self) -> int:
        """Total number of matches; Elasticsearch 7+ reports ``{"value": n}``."""
        total = self.get("hits.total", 0)
        if isinstance(total, Mapping):
            total = total.get("value", 0)
        return int(total or 0)

    @property
    def aggregations(self) -> dict[str, Any]:
        return self.get("aggregations") or {}

    def buckets(self, name: str) -> list[dict[str, Any]]:
        """Buckets of a named aggregation, empty when it is absent."""
        return list(get_path(self.aggregations, f"{name}.buckets") or [])

    def __len__(self) -> int:
        return len(self._hits)

    def __iter__(self) -> Iterator[TypedResult]:
        return iter(self._hits)
