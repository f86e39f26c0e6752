"""Storage layer for FacetSearch.

Provides database management, schema migrations and search session
persistence.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from FacetSearch.storage.db import DatabaseManager
from FacetSearch.storage.migration import run_migrations
from FacetSearch.storage.state import SearchStateStore
from FacetSearch.utils.log import log

if TYPE_CHECKING:
    from FacetSearch.config import AppConfig


def create_storage(config: AppConfig) -> tuple[DatabaseManager | None, SearchStateStore | None]:
    """Create the database manager and session store.

    Args:
        config: Application configuration containing storage settings.

    Returns:
        Tuple of (db_manager, state_store), both None when storage is disabled.
    """
    if not config.storage.enabled:
        return None, None

    db_path = Path(config.storage.db_path)
    db_manager = DatabaseManager(db_path)
    log.info("Session storage enabled: %s", db_path)
    return db_manager, SearchStateStore(db_manager)


__all__ = [
    "DatabaseManager",
    "SearchStateStore",
    "run_migrations",
    "create_storage",
]
