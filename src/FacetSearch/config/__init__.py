"""Public configuration API for FacetSearch."""

from __future__ import annotations

from FacetSearch.config.app import (
    AppConfig,
    load_config,
    load_config_with_defaults,
    parse_config_dict,
)
from FacetSearch.config.elasticsearch import ElasticsearchConfig
from FacetSearch.config.runtime import RuntimeConfig
from FacetSearch.config.search import SearchConfig
from FacetSearch.config.storage import StorageConfig

__all__ = [
    "AppConfig",
    "ElasticsearchConfig",
    "RuntimeConfig",
    "SearchConfig",
    "StorageConfig",
    "load_config",
    "load_config_with_defaults",
    "parse_config_dict",
]
