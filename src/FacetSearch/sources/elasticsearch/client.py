"""Elasticsearch HTTP client executing search bodies."""

from __future__ import annotations

import random
import time
from typing import Any, Mapping, Sequence

import requests

from FacetSearch.utils.log import log

DEFAULT_URL = "http://localhost:9200"
DEFAULT_TIMEOUT = 30.0
MAX_ATTEMPTS = 4
BASE_PAUSE = 0.5
MAX_SLEEP = 8.0
RETRYABLE_STATUS = {429, 500, 502, 503, 504}

HEADERS = {
    "User-Agent": "facet-search/0.1",
    "Accept": "application/json",
    "Content-Type": "application/json",
}


class ElasticsearchClient:
    """Low-level HTTP client for the Elasticsearch ``_search`` endpoint."""

    def __init__(
        self,
        url: str = DEFAULT_URL,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        self._url = url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()

    @property
    def url(self) -> str:
        return self._url

    def close(self) -> None:
        self._session.close()

    def search(self, indices: Sequence[str], body: Mapping[str, Any]) -> dict[str, Any]:
        """Run a search body.

        Args:
            indices: Index names; empty means every index.
            body: Elasticsearch request body.

        Returns:
            The decoded response mapping.

        Raises:
            requests.HTTPError: On a non-retryable error status, or when the
                retries are exhausted.
            ValueError: If the response is not a JSON object.
        """
        target = ",".join(indices) or "_all"
        response = self._post_with_retry(f"{self._url}/{target}/_search", body=dict(body))
        response.raise_for_status()

        payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError(f"Unexpected search response type: {type(payload).__name__}")
        log.debug("Elasticsearch took=%sms index=%s", payload.get("took"), target)
        return payload

    def _post_with_retry(self, url: str, *, body: dict[str, Any]) -> requests.Response:
        """Issue POST with retries for transient failures."""
        last_error: Exception | None = None
        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                response = self._session.post(url, json=body, headers=HEADERS, timeout=self._timeout)
                if response.status_code in RETRYABLE_STATUS:
                    raise requests.HTTPError(f"HTTP {response.status_code}", response=response)
                return response
            except (requests.Timeout, requests.ConnectionError, requests.HTTPError) as error:
                last_error = error
                if isinstance(error, requests.HTTPError):
                    status_code = getattr(error.response, "status_code", None)
                    if status_code not in RETRYABLE_STATUS:
                        raise
                if attempt < MAX_ATTEMPTS:
                    delay = min(BASE_PAUSE * (2 ** (attempt - 1)) + random.uniform(0, 0.3), MAX_SLEEP)
                    log.debug(
                        "Elasticsearch retry attempt=%d/%d delay=%.2fs error=%s",
                        attempt,
                        MAX_ATTEMPTS,
                        delay,
                        error,
                    )
                    time.sleep(delay)

        assert last_error is not None
        raise last_error
