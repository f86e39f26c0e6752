"""Command implementations for the FacetSearch CLI.

Encapsulates session handling (route parameters, persisted sessions) and
search execution, separated from CLI parameter handling and output.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from urllib.parse import parse_qs

from FacetSearch.config import AppConfig
from FacetSearch.core.builder import build_search_request
from FacetSearch.core.results import Document, NamedEntity, TypedResult
from FacetSearch.core.state import SearchState
from FacetSearch.services.search import SearchService
from FacetSearch.storage.state import SearchStateStore
from FacetSearch.utils.log import log


def create_state(config: AppConfig) -> SearchState:
    """Fresh session state with the configured defaults."""
    return SearchState(
        index=config.search.index,
        catalog=config.filters,
        size=config.search.size,
        sort=config.search.sort,
        field=config.search.field,
    )


def parse_route(query_string: str | None) -> dict[str, list[str]]:
    """Parse a URL query string (``q=foo&f[contentType]=pdf``) into route parameters."""
    if not query_string:
        return {}
    return parse_qs(query_string.lstrip("?"), keep_blank_values=True)


def describe_hit(hit: TypedResult) -> dict[str, Any]:
    """Flat summary of a typed hit for console output."""
    if isinstance(hit, Document):
        return {
            "type": "Document",
            "id": hit.short_id,
            "path": hit.path,
            "title": hit.title,
            "contentType": hit.content_type,
        }
    if isinstance(hit, NamedEntity):
        return {
            "type": "NamedEntity",
            "id": hit.id,
            "mention": hit.mention,
            "category": hit.category,
        }
    return {"type": type(hit).__name__, "id": hit.id}


@dataclass(slots=True)
class SessionCommand:
    """Base command resolving the session state from storage and a route."""

    config: AppConfig
    state_store: SearchStateStore | None

    def prepare(self, session: str | None, route: dict[str, Any]) -> SearchState:
        state = create_state(self.config)
        if session and self.state_store is not None:
            self.state_store.restore(session, state, route)
            return state
        if session:
            log.warning("Session %s ignored: storage is disabled", session)
        state.update_from_route_query(route)
        return state

    def persist(self, session: str | None, state: SearchState) -> None:
        if session and self.state_store is not None:
            self.state_store.save(session, state)


@dataclass(slots=True)
class BuildCommand(SessionCommand):
    """Build the request body of a session without running it."""

    def execute(self, *, session: str | None, route: dict[str, Any]) -> dict[str, Any]:
        state = self.prepare(session, route)
        request = build_search_request(state)
        self.persist(session, state)
        return {"indices": list(request.indices), "body": request.to_body()}


@dataclass(slots=True)
class SearchCommand(SessionCommand):
    """Run the search of a session and summarize its hits."""

    search_service: SearchService | None = None

    def execute(self, *, session: str | None, route: dict[str, Any]) -> dict[str, Any]:
        if self.search_service is None:
            raise RuntimeError("SearchCommand requires a search service")
        state = self.prepare(session, route)
        response = self.search_service.search(state)
        self.persist(session, state)
        return {
            "total": response.total,
            "from": state.offset,
            "size": state.size,
            "hits": [describe_hit(hit) for hit in response.hits],
        }

    def filter_values(
        self, name: str, *, session: str | None, route: dict[str, Any]
    ) -> list[dict[str, Any]]:
        if self.search_service is None:
            raise RuntimeError("SearchCommand requires a search service")
        state = self.prepare(session, route)
        return self.search_service.filter_values(
            state, name, size=self.config.search.max_filter_size
        )
