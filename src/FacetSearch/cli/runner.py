"""Command runner for coordinating CLI execution.

Manages logging configuration, component lifecycle, resource cleanup and
error handling for commands that touch storage or the search backend.
"""

from __future__ import annotations

from typing import Any, Callable, TypeVar

import click

from FacetSearch.cli.commands import BuildCommand, SearchCommand
from FacetSearch.config import AppConfig
from FacetSearch.services import create_search_service
from FacetSearch.storage import SearchStateStore, create_storage
from FacetSearch.utils.log import configure_logging, log

T = TypeVar("T")


class CommandRunner:
    """Orchestrates command execution with proper resource management.

    Handles logging configuration, storage and search service creation,
    database context management and error handling for CLI commands.
    """

    def __init__(self, config: AppConfig) -> None:
        self.config = config

    def run_build(self, action: str, *, session: str | None, route: dict[str, Any]) -> dict[str, Any]:
        """Build the request body of a session.

        Raises:
            click.Abort: When the build fails.
        """
        return self._run(
            action,
            lambda store: BuildCommand(config=self.config, state_store=store).execute(
                session=session, route=route
            ),
        )

    def run_search(self, action: str, *, session: str | None, route: dict[str, Any]) -> dict[str, Any]:
        """Execute the search of a session.

        Raises:
            click.Abort: When the search fails.
        """
        return self._run(
            action,
            lambda store: self._with_search(store, lambda cmd: cmd.execute(session=session, route=route)),
        )

    def run_filter_values(
        self, action: str, name: str, *, session: str | None, route: dict[str, Any]
    ) -> list[dict[str, Any]]:
        """Fetch the candidate values of a filter.

        Raises:
            click.Abort: When the aggregation fails.
        """
        return self._run(
            action,
            lambda store: self._with_search(
                store, lambda cmd: cmd.filter_values(name, session=session, route=route)
            ),
        )

    def _with_search(self, store: SearchStateStore | None, body: Callable[[SearchCommand], T]) -> T:
        service = create_search_service(self.config)
        try:
            return body(SearchCommand(config=self.config, state_store=store, search_service=service))
        finally:
            service.close()

    def _run(self, action: str, body: Callable[[SearchStateStore | None], T]) -> T:
        configure_logging(
            level=self.config.runtime.level,
            action=action,
            log_to_file=self.config.runtime.to_file,
            log_dir=self.config.runtime.dir,
        )
        try:
            db_manager, state_store = create_storage(self.config)
            if db_manager:
                with db_manager:
                    return body(state_store)
            return body(None)
        except Exception as e:  # noqa: BLE001 - cli boundary
            log.error("%s failed: %s", action, e)
            raise click.Abort from e
