"""Tests for search and filter aggregation request building."""

import sys
import unittest
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from FacetSearch.core.builder import build_filter_aggregation, build_search_request
from FacetSearch.core.filters import UnknownFilterError
from FacetSearch.core.state import SearchState

_DOCUMENT = {"term": {"type": "Document"}}


def _bool(body: dict) -> dict:
    return body["query"]["bool"]


class TestBuildSearchRequest(unittest.TestCase):
    def setUp(self) -> None:
        self.state = SearchState(index="project")

    def test_default_body(self) -> None:
        request = build_search_request(self.state)
        self.assertEqual(request.indices, ("project",))
        self.assertEqual(
            request.to_body(),
            {
                "from": 0,
                "size": 25,
                "sort": [{"_score": "desc"}, {"path": "asc"}],
                "query": {"bool": {"must": [_DOCUMENT, {"match_all": {}}]}},
            },
        )

    def test_raw_query_is_passed_through(self) -> None:
        self.state.set_query('foo AND "bar  baz"')
        self.state.set_field("title")
        clause = _bool(build_search_request(self.state).to_body())["must"][1]
        self.assertEqual(
            clause,
            {"query_string": {"query": 'foo AND "bar  baz"', "fields": ["title", "metadata.tika_metadata_resourcename"]}},
        )

    def test_star_matches_all(self) -> None:
        self.state.set_query("*")
        self.assertEqual(_bool(build_search_request(self.state).to_body())["must"][1], {"match_all": {}})

    def test_pagination_and_sort(self) -> None:
        self.state.set_size(10)
        self.state.set_from(30)
        self.state.set_sort("sizeLargest")
        body = build_search_request(self.state).to_body()
        self.assertEqual((body["from"], body["size"]), (30, 10))
        self.assertEqual(body["sort"], [{"contentLength": "desc"}, {"path": "asc"}])

    def test_path_sort_has_no_duplicate_tie_breaker(self) -> None:
        self.state.set_sort("pathReverse")
        self.assertEqual(build_search_request(self.state).to_body()["sort"], [{"path": "desc"}])

    def test_unknown_sort_falls_back_to_relevance(self) -> None:
        self.state.set_sort("bogus")
        with self.assertLogs("FacetSearch", level="WARNING"):
            body = build_search_request(self.state).to_body()
        self.assertEqual(body["sort"], [{"_score": "desc"}, {"path": "asc"}])

    def test_inclusion_and_exclusion(self) -> None:
        self.state.add_filter_value("contentType", "application/pdf")
        self.state.add_filter_value("language", "FRENCH")
        self.state.toggle_filter("language")
        query = _bool(build_search_request(self.state).to_body())
        self.assertEqual(query["filter"], [{"terms": {"contentType": ["application/pdf"]}}])
        self.assertEqual(query["must_not"], [{"terms": {"language": ["FRENCH"]}}])

    def test_reversal_without_values_has_no_effect(self) -> None:
        before = build_search_request(self.state).to_body()
        self.state.toggle_filter("contentType")
        self.assertEqual(build_search_request(self.state).to_body(), before)

    def test_conjunctive_tags(self) -> None:
        self.state.add_filter_value("tags", ["a", "b"])
        self.assertEqual(
            _bool(build_search_request(self.state).to_body())["filter"],
            [{"bool": {"must": [{"term": {"tags": "a"}}, {"term": {"tags": "b"}}]}}],
        )

    def test_kind_constraints(self) -> None:
        self.state.add_filter_value("starred", "doc-1")
        self.state.add_filter_value("creationDate", 1577836800000)
        self.state.add_filter_value("path", "/data/mails")
        self.state.add_filter_value("indexingDate", ["2020-01-01", "2019-01-01"])
        self.state.add_filter_value("namedEntityPerson", "jane doe")
        constraints = {c.name: c.clause for c in build_search_request(self.state).constraints}

        self.assertEqual(constraints["starred"], {"ids": {"values": ["doc-1"]}})
        self.assertEqual(
            constraints["creationDate"],
            {
                "bool": {
                    "should": [
                        {
                            "range": {
                                "metadata.tika_metadata_dcterms_created": {
                                    "gte": 1577836800000,
                                    "lt": 1580515200000,
                                    "format": "epoch_millis",
                                }
                            }
                        }
                    ],
                    "minimum_should_match": 1,
                }
            },
        )
        self.assertEqual(
            constraints["path"],
            {"bool": {"should": [{"prefix": {"dirname": "/data/mails"}}], "minimum_should_match": 1}},
        )
        self.assertEqual(
            constraints["indexingDate"],
            {"range": {"extractionDate": {"gte": "2019-01-01", "lte": "2020-01-01"}}},
        )
        named_entity = constraints["namedEntityPerson"]["has_child"]
        self.assertEqual(named_entity["type"], "NamedEntity")
        self.assertIn({"term": {"category": "PERSON"}}, named_entity["query"]["bool"]["filter"])
        self.assertIn({"terms": {"mentionNorm": ["jane doe"]}}, named_entity["query"]["bool"]["filter"])

    def test_constraints_follow_catalog_order(self) -> None:
        self.state.add_filter_value("extractionLevel", 1)
        self.state.add_filter_value("tags", "a")
        names = [c.name for c in build_search_request(self.state).constraints]
        self.assertEqual(names, ["tags", "extractionLevel"])


class TestBuildFilterAggregation(unittest.TestCase):
    def setUp(self) -> None:
        self.state = SearchState(index="project")
        self.state.set_query("foo")
        self.state.add_filter_value("contentType", "pdf")
        self.state.add_filter_value("language", "FRENCH")

    def test_scoped_filter_excludes_its_own_constraint(self) -> None:
        body = build_filter_aggregation(self.state, "contentType").to_body()
        query = body["query"]["bool"]
        self.assertEqual(query["filter"], [{"terms": {"language": ["FRENCH"]}}])
        self.assertEqual(query["must"][1]["query_string"]["query"], "foo")
        self.assertEqual(
            body["aggs"],
            {"contentType": {"terms": {"field": "contentType", "size": 50, "order": {"_count": "desc"}}}},
        )
        self.assertEqual(body["size"], 0)

    def test_global_filter_ignores_query_and_filters(self) -> None:
        body = build_filter_aggregation(self.state, "path", 10).to_body()
        self.assertEqual(body["query"], {"bool": {"must": [_DOCUMENT]}})
        self.assertEqual(body["aggs"]["path"]["terms"]["size"], 10)

    def test_filter_sort_orders_buckets(self) -> None:
        self.state.sort_filter("language", "_key", "asc")
        body = build_filter_aggregation(self.state, "language").to_body()
        self.assertEqual(body["aggs"]["language"]["terms"]["order"], {"_key": "asc"})

    def test_named_entity_aggregation_runs_on_children(self) -> None:
        body = build_filter_aggregation(self.state, "namedEntityOrganization").to_body()
        clauses = body["query"]["bool"]["filter"]
        self.assertIn({"term": {"type": "NamedEntity"}}, clauses)
        self.assertIn({"term": {"category": "ORGANIZATION"}}, clauses)
        parent = [c for c in clauses if "has_parent" in c][0]["has_parent"]
        self.assertEqual(parent["parent_type"], "Document")
        self.assertEqual(len(parent["query"]["bool"]["filter"]), 2)

    def test_date_filter_uses_monthly_histogram(self) -> None:
        body = build_filter_aggregation(self.state, "creationDate").to_body()
        histogram = body["aggs"]["creationDate"]["date_histogram"]
        self.assertEqual(histogram["calendar_interval"], "month")

    def test_unknown_filter(self) -> None:
        with self.assertRaises(UnknownFilterError):
            build_filter_aggregation(self.state, "nope")


if __name__ == "__main__":
    unittest.main()
