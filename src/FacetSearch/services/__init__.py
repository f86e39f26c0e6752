"""Search service layer for FacetSearch.

Provides the service running search requests and the factory wiring it to
the configured executor.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from FacetSearch.services.search import SearchExecutionError, SearchExecutor, SearchService

if TYPE_CHECKING:
    from FacetSearch.config import AppConfig


def create_search_service(config: AppConfig) -> SearchService:
    """Create a search service backed by the configured Elasticsearch.

    Args:
        config: Application configuration containing the Elasticsearch settings.

    Returns:
        Configured SearchService instance.
    """
    from FacetSearch.sources.elasticsearch.client import ElasticsearchClient

    client = ElasticsearchClient(
        url=config.elasticsearch.url,
        timeout=config.elasticsearch.timeout,
    )
    return SearchService(executor=client)


__all__ = [
    "SearchExecutionError",
    "SearchExecutor",
    "SearchService",
    "create_search_service",
]
