"""Default filter catalog of a document search session."""

from __future__ import annotations

from FacetSearch.core.filters import DATE, DATE_RANGE, IDS, NAMED_ENTITY, PATH, TEXT, FilterSpec

DEFAULT_FILTERS: tuple[FilterSpec, ...] = (
    FilterSpec(name="starred", key="_id", kind=IDS, order=10, is_global=True, sortable=False),
    FilterSpec(name="tags", key="tags", kind=TEXT, order=20, conjunctive=True),
    FilterSpec(name="recommendedBy", key="recommendedBy", kind=TEXT, order=30, is_global=True),
    FilterSpec(name="contentType", key="contentType", kind=TEXT, order=40),
    FilterSpec(
        name="creationDate",
        key="metadata.tika_metadata_dcterms_created",
        kind=DATE,
        order=50,
        numeric=True,
    ),
    FilterSpec(name="language", key="language", kind=TEXT, order=60),
    FilterSpec(
        name="namedEntityPerson",
        key="mentionNorm",
        kind=NAMED_ENTITY,
        order=70,
        category="PERSON",
    ),
    FilterSpec(
        name="namedEntityOrganization",
        key="mentionNorm",
        kind=NAMED_ENTITY,
        order=80,
        category="ORGANIZATION",
    ),
    FilterSpec(
        name="namedEntityLocation",
        key="mentionNorm",
        kind=NAMED_ENTITY,
        order=90,
        category="LOCATION",
    ),
    FilterSpec(name="path", key="dirname", kind=PATH, order=100, is_global=True),
    FilterSpec(
        name="indexingDate",
        key="extractionDate",
        kind=DATE_RANGE,
        order=110,
        sortable=False,
    ),
    FilterSpec(name="extractionLevel", key="extractionLevel", kind=TEXT, order=120, numeric=True),
)


def filter_names(catalog: tuple[FilterSpec, ...] = DEFAULT_FILTERS) -> tuple[str, ...]:
    """Names of a catalog in combination order."""
    return tuple(spec.name for spec in sorted(catalog, key=lambda spec: spec.order))
