"""Tests for the FacetSearch command-line interface."""

import json
import sys
import unittest
from pathlib import Path
from unittest.mock import patch

from click.testing import CliRunner

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from FacetSearch.cli import cli

_CONFIG = """
log:
  level: ERROR
  to_file: false
  dir: log
search:
  index: project
  size: 10
elasticsearch:
  url: http://es.test:9200
storage:
  enabled: {storage}
  db_path: db/sessions.db
"""

_RAW = {
    "hits": {
        "total": {"value": 1},
        "hits": [
            {
                "_id": "0123456789abcdef",
                "_source": {"type": "Document", "path": "/data/report.pdf", "contentType": "application/pdf"},
            }
        ],
    },
    "aggregations": {"language": {"buckets": [{"key": "ENGLISH", "doc_count": 1}]}},
}

_SEARCH = "FacetSearch.sources.elasticsearch.client.ElasticsearchClient.search"


class TestCli(unittest.TestCase):
    def setUp(self) -> None:
        self.runner = CliRunner()

    def _invoke(self, args: list[str], *, storage: bool = True):
        Path("test.yml").write_text(_CONFIG.format(storage=str(storage).lower()), encoding="utf-8")
        return self.runner.invoke(cli, ["--config", "test.yml", *args])

    def test_terms(self) -> None:
        result = self.runner.invoke(cli, ["terms", "--", "-a field:b"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(
            json.loads(result.output),
            [
                {"field": "", "label": "a", "negation": True, "regex": False},
                {"field": "field", "label": "b", "negation": False, "regex": False},
            ],
        )

    def test_delete_term(self) -> None:
        result = self.runner.invoke(cli, ["delete-term", "a AND b AND c", "b"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(result.output.strip(), "a AND c")

    def test_delete_term_keeps_left_operator(self) -> None:
        result = self.runner.invoke(cli, ["delete-term", "a OR b AND c", "b"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(result.output.strip(), "a OR c")

    def test_build_from_route(self) -> None:
        with self.runner.isolated_filesystem():
            result = self._invoke(["build", "--route", "q=invoice&f[contentType]=pdf&reversed=contentType"])
        self.assertEqual(result.exit_code, 0, result.output)
        data = json.loads(result.output)
        self.assertEqual(data["indices"], ["project"])
        self.assertEqual(data["body"]["size"], 10)
        self.assertEqual(data["body"]["query"]["bool"]["must_not"], [{"terms": {"contentType": ["pdf"]}}])

    def test_session_is_persisted(self) -> None:
        with self.runner.isolated_filesystem():
            first = self._invoke(["build", "--session", "review", "--route", "q=invoice&from=20"])
            second = self._invoke(["build", "--session", "review", "--route", "size=5"])
        self.assertEqual(first.exit_code, 0, first.output)
        self.assertEqual(second.exit_code, 0, second.output)
        body = json.loads(second.output)["body"]
        self.assertEqual(body["query"]["bool"]["must"][1]["query_string"]["query"], "invoice")
        self.assertEqual((body["from"], body["size"]), (20, 5))

    def test_search(self) -> None:
        with self.runner.isolated_filesystem(), patch(_SEARCH, return_value=_RAW) as search:
            result = self._invoke(["search", "--route", "q=report"], storage=False)
        self.assertEqual(result.exit_code, 0, result.output)
        data = json.loads(result.output)
        self.assertEqual(data["total"], 1)
        self.assertEqual(data["hits"][0]["id"], "0123456789")
        self.assertEqual(data["hits"][0]["path"], "/data/report.pdf")
        self.assertEqual(search.call_args.args[0], ("project",))

    def test_filter_values(self) -> None:
        with self.runner.isolated_filesystem(), patch(_SEARCH, return_value=_RAW):
            result = self._invoke(["filter-values", "language"], storage=False)
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(json.loads(result.output), [{"key": "ENGLISH", "doc_count": 1}])

    def test_search_failure_aborts(self) -> None:
        with self.runner.isolated_filesystem(), patch(_SEARCH, side_effect=ConnectionError("down")):
            result = self._invoke(["search"], storage=False)
        self.assertEqual(result.exit_code, 1)

    def test_blank_indices_keep_configured_index(self) -> None:
        with self.runner.isolated_filesystem():
            result = self._invoke(["build", "--route", "indices=&q=invoice"], storage=False)
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(json.loads(result.output)["indices"], ["project"])

    def test_unknown_filter_aborts(self) -> None:
        with self.runner.isolated_filesystem():
            result = self._invoke(["build", "--route", "f[nope]=a"], storage=False)
        self.assertEqual(result.exit_code, 1)


if __name__ == "__main__":
    unittest.main()
