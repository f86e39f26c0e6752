"""Elasticsearch connection configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Mapping
from urllib.parse import urlparse

from FacetSearch.config.common import expect_float, expect_str, get_section, read_value

URL_ENV = "FACETSEARCH_ES_URL"


@dataclass(frozen=True, slots=True)
class ElasticsearchConfig:
    """Where and how long to wait for the search backend."""

    url: str
    timeout: float


def load_elasticsearch(raw: Mapping[str, Any]) -> ElasticsearchConfig:
    """Load the ``elasticsearch`` section.

    ``FACETSEARCH_ES_URL`` in the environment takes precedence over
    ``elasticsearch.url``.
    """
    section = get_section(raw, "elasticsearch", required=True)
    url = os.environ.get(URL_ENV) or read_value(section, "elasticsearch", "url", expect_str)
    return ElasticsearchConfig(
        url=url.strip(),
        timeout=read_value(section, "elasticsearch", "timeout", expect_float, 30.0),
    )


def check_elasticsearch(config: ElasticsearchConfig) -> None:
    parsed = urlparse(config.url)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(f"elasticsearch.url must be an http(s) URL: {config.url!r}")
    if config.timeout <= 0:
        raise ValueError("elasticsearch.timeout must be positive")
