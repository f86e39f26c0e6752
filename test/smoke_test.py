"""Smoke test for the FacetSearch CLI.

Run:
  python test/smoke_test.py

This script patches the Elasticsearch client to avoid network access and
validates that the CLI can run a search and print at least one hit.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from unittest.mock import patch

from click.testing import CliRunner


REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = REPO_ROOT / "src"
sys.path.insert(0, str(SRC_DIR))


SMOKE_RESPONSE = {
    "took": 1,
    "hits": {
        "total": {"value": 1, "relation": "eq"},
        "hits": [
            {
                "_index": "local-datashare",
                "_id": "smoke-document-0001",
                "_source": {"type": "Document", "path": "/smoke/Smoke Test Document.txt"},
            }
        ],
    },
}


def main() -> int:
    from FacetSearch.cli import cli

    runner = CliRunner()
    with runner.isolated_filesystem(), patch(
        "FacetSearch.sources.elasticsearch.client.ElasticsearchClient.search",
        return_value=SMOKE_RESPONSE,
    ):
        result = runner.invoke(
            cli,
            [
                "--config",
                str(REPO_ROOT / "config" / "default.yml"),
                "search",
                "--route",
                "q=smoke&f[contentType]=text/plain",
            ],
            catch_exceptions=False,
        )

    output = result.output
    assert result.exit_code == 0, output
    data = json.loads(output[output.index("{") :])
    assert data["total"] == 1, output
    assert data["hits"][0]["title"] == "Smoke Test Document.txt", output
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
