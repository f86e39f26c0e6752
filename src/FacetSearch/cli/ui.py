"""Click CLI interface definitions.

Defines the command-line interface structure and routes commands to their
runners.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click
from dotenv import load_dotenv

from FacetSearch.cli.commands import parse_route
from FacetSearch.cli.runner import CommandRunner
from FacetSearch.config import load_config, load_config_with_defaults
from FacetSearch.config.app import DEFAULT_CONFIG_PATH
from FacetSearch.core.editor import delete_query_term
from FacetSearch.core.terms import parse_query_terms

_route_option = click.option(
    "--route",
    "route",
    default=None,
    help="Route parameters as a URL query string, e.g. 'q=foo&f[contentType]=pdf'.",
)
_session_option = click.option(
    "--session",
    "session",
    default=None,
    help="Named session restored before and saved after the command.",
)


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, ensure_ascii=False, indent=2, default=str))


@click.group(help="FacetSearch: parse queries, manage filters and search documents.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=Path("config/default.yml"),
    show_default=True,
    help="Path to YAML config file.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path) -> None:
    """CLI entry group.

    Loads environment variables from a .env file before reading the config.
    """
    load_dotenv()
    ctx.obj = config_path


def _runner(ctx: click.Context) -> CommandRunner:
    config_path: Path = ctx.obj
    if DEFAULT_CONFIG_PATH.is_file():
        return CommandRunner(load_config_with_defaults(config_path))
    return CommandRunner(load_config(config_path))


@cli.command("terms")
@click.argument("query")
def terms_cmd(query: str) -> None:
    """Print the terms of QUERY as JSON."""
    _echo_json(
        [
            {"field": t.field, "label": t.label, "negation": t.negation, "regex": t.regex}
            for t in parse_query_terms(query)
        ]
    )


@cli.command("delete-term")
@click.argument("query")
@click.argument("label")
def delete_term_cmd(query: str, label: str) -> None:
    """Print QUERY without the terms labelled LABEL."""
    click.echo(delete_query_term(query, label))


@cli.command("build")
@_route_option
@_session_option
@click.pass_context
def build_cmd(ctx: click.Context, route: str | None, session: str | None) -> None:
    """Print the search request body of a session."""
    _echo_json(_runner(ctx).run_build(ctx.command.name, session=session, route=parse_route(route)))


@cli.command("search")
@_route_option
@_session_option
@click.pass_context
def search_cmd(ctx: click.Context, route: str | None, session: str | None) -> None:
    """Run the search of a session against Elasticsearch and print its hits.

    Raises:
        click.Abort: When the search fails.
    """
    _echo_json(_runner(ctx).run_search(ctx.command.name, session=session, route=parse_route(route)))


@cli.command("filter-values")
@click.argument("name")
@_route_option
@_session_option
@click.pass_context
def filter_values_cmd(ctx: click.Context, name: str, route: str | None, session: str | None) -> None:
    """Print the candidate values of filter NAME."""
    _echo_json(
        _runner(ctx).run_filter_values(ctx.command.name, name, session=session, route=parse_route(route))
    )
