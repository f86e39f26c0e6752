"""Search service: state to request to executor to typed response."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, Sequence

from FacetSearch.core.builder import build_filter_aggregation, build_search_request
from FacetSearch.core.results import ResultResolver, SearchResponse
from FacetSearch.core.state import SearchState
from FacetSearch.utils.log import log


class SearchExecutor(Protocol):
    """Protocol for the external collaborator running search requests."""

    def search(self, indices: Sequence[str], body: Mapping[str, Any]) -> Mapping[str, Any]:
        """Run a ``_search`` body against indices and return the raw response."""
        raise NotImplementedError

    def close(self) -> None:
        """Close resources held by the executor."""
        raise NotImplementedError


class SearchExecutionError(RuntimeError):
    """Raised when the executor fails to run a request."""


@dataclass(slots=True)
class SearchService:
    """Application service running searches for one session state.

    Every request takes a ticket from a monotonically increasing sequence.
    A response whose ticket is older than the latest issued one is stale: a
    newer mutation superseded it, so it is discarded instead of applied.
    """

    executor: SearchExecutor
    resolver: ResultResolver = field(default_factory=ResultResolver)
    sequence: int = 0

    def begin(self) -> int:
        """Issue the ticket of a new request."""
        self.sequence += 1
        return self.sequence

    def is_current(self, ticket: int) -> bool:
        return ticket == self.sequence

    def complete(self, state: SearchState, ticket: int, raw: Mapping[str, Any]) -> bool:
        """Apply a raw response to ``state`` unless it is stale.

        Returns:
            True when the response was applied.
        """
        if not self.is_current(ticket):
            log.debug("Discarding stale response ticket=%d latest=%d", ticket, self.sequence)
            return False
        state.response = SearchResponse(raw, self.resolver)
        return True

    def fail(self, state: SearchState, ticket: int) -> None:
        """Reset the response of ``state`` after a failed current request."""
        if self.is_current(ticket):
            state.response = SearchResponse.none()

    def search(self, state: SearchState) -> SearchResponse:
        """Run the search described by ``state`` and store the typed response.

        Args:
            state: Session state; its ``response`` is replaced.

        Returns:
            The response held by ``state`` after the call.

        Raises:
            SearchExecutionError: If the executor fails; ``state.response`` is
                then the empty response.
        """
        ticket = self.begin()
        request = build_search_request(state)
        try:
            raw = self.executor.search(request.indices, request.to_body())
        except Exception as error:  # noqa: BLE001 - wrapped for the caller
            self.fail(state, ticket)
            raise SearchExecutionError(f"Search failed on {','.join(request.indices)}: {error}") from error

        self.complete(state, ticket, raw)
        log.info("Search completed: total=%d hits=%d", state.response.total, len(state.response))
        return state.response

    def filter_values(self, state: SearchState, name: str, *, size: int = 50) -> list[dict[str, Any]]:
        """Fetch the candidate value buckets of a filter.

        Raises:
            UnknownFilterError: If ``name`` is not in the catalog.
            SearchExecutionError: If the executor fails.
        """
        request = build_filter_aggregation(state, name, size)
        try:
            raw = self.executor.search(request.indices, request.to_body())
        except Exception as error:  # noqa: BLE001 - wrapped for the caller
            raise SearchExecutionError(f"Aggregation of filter {name} failed: {error}") from error
        return SearchResponse(raw, self.resolver).buckets(name)

    def close(self) -> None:
        """Close the executor and release external resources."""
        self.executor.close()
