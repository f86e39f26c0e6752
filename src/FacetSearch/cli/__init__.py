"""CLI package for FacetSearch command orchestration."""

from __future__ import annotations

__all__ = ["CommandRunner", "cli", "main"]

from FacetSearch.cli.runner import CommandRunner
from FacetSearch.cli.ui import cli


def main() -> None:
    """Run FacetSearch CLI.

    Entry point referenced by console script in pyproject.toml.
    """
    cli()
