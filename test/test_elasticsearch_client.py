"""Tests for the Elasticsearch HTTP client and its retry policy."""

import sys
import unittest
from pathlib import Path
from unittest.mock import Mock, patch

import requests

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from FacetSearch.sources.elasticsearch.client import MAX_ATTEMPTS, ElasticsearchClient


def _response(status: int, payload=None) -> Mock:
    response = Mock(status_code=status)
    response.json.return_value = payload if payload is not None else {"hits": {"hits": []}}
    if status >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"HTTP {status}", response=response)
    return response


class TestElasticsearchClient(unittest.TestCase):
    def setUp(self) -> None:
        self.session = Mock()
        self.client = ElasticsearchClient("http://es:9200/", timeout=5, session=self.session)

    def test_posts_body_to_indices(self) -> None:
        self.session.post.return_value = _response(200, {"took": 1, "hits": {"hits": []}})
        payload = self.client.search(("one", "two"), {"size": 0})
        self.assertEqual(payload["took"], 1)
        args, kwargs = self.session.post.call_args
        self.assertEqual(args[0], "http://es:9200/one,two/_search")
        self.assertEqual(kwargs["json"], {"size": 0})
        self.assertEqual(kwargs["timeout"], 5)

    def test_no_index_targets_all(self) -> None:
        self.session.post.return_value = _response(200)
        self.client.search((), {})
        self.assertEqual(self.session.post.call_args.args[0], "http://es:9200/_all/_search")

    @patch("FacetSearch.sources.elasticsearch.client.time.sleep")
    def test_retries_transient_status(self, sleep: Mock) -> None:
        self.session.post.side_effect = [_response(503), _response(429), _response(200)]
        self.client.search(("one",), {})
        self.assertEqual(self.session.post.call_count, 3)
        self.assertEqual(sleep.call_count, 2)

    @patch("FacetSearch.sources.elasticsearch.client.time.sleep")
    def test_retries_connection_errors(self, sleep: Mock) -> None:
        self.session.post.side_effect = [requests.ConnectionError("refused"), _response(200)]
        self.client.search(("one",), {})
        self.assertEqual(self.session.post.call_count, 2)

    @patch("FacetSearch.sources.elasticsearch.client.time.sleep")
    def test_gives_up_after_max_attempts(self, sleep: Mock) -> None:
        self.session.post.return_value = _response(502)
        with self.assertRaises(requests.HTTPError):
            self.client.search(("one",), {})
        self.assertEqual(self.session.post.call_count, MAX_ATTEMPTS)

    @patch("FacetSearch.sources.elasticsearch.client.time.sleep")
    def test_client_errors_are_not_retried(self, sleep: Mock) -> None:
        self.session.post.return_value = _response(400)
        with self.assertRaises(requests.HTTPError):
            self.client.search(("one",), {})
        self.assertEqual(self.session.post.call_count, 1)
        sleep.assert_not_called()

    def test_non_object_payload(self) -> None:
        self.session.post.return_value = _response(200, ["not", "an", "object"])
        with self.assertRaises(ValueError):
            self.client.search(("one",), {})

    def test_close(self) -> None:
        self.client.close()
        self.session.close.assert_called_once_with()


if __name__ == "__main__":
    unittest.main()
