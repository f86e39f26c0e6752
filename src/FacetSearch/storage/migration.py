"""Versioned schema migrations for the FacetSearch session database.

Migrations are applied in order when a ``DatabaseManager`` opens a
connection. Each one runs in an explicit transaction and rolls back as a
whole on failure.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass

from FacetSearch.utils.log import log

_SCHEMA_VERSION_DDL = """
CREATE TABLE IF NOT EXISTS schema_version (
    id      INTEGER PRIMARY KEY CHECK (id = 1),
    version INTEGER NOT NULL
)
"""


@dataclass(frozen=True)
class Migration:
    """A single versioned schema migration.

    Attributes:
        version: Consecutive integer, starting at 1.
        description: Short summary of the change.
        sql: Semicolon-separated statements.
    """

    version: int
    description: str
    sql: str


# Append-only: published entries are never edited.
MIGRATIONS: list[Migration] = [
    Migration(
        version=1,
        description="Search sessions keyed by name",
        sql="""
            CREATE TABLE IF NOT EXISTS search_sessions (
              name TEXT PRIMARY KEY,
              route_query TEXT NOT NULL,
              created_at INTEGER NOT NULL DEFAULT (CAST(strftime('%s','now') AS INTEGER)),
              updated_at INTEGER NOT NULL DEFAULT (CAST(strftime('%s','now') AS INTEGER))
            );

            CREATE INDEX IF NOT EXISTS idx_search_sessions_updated
              ON search_sessions(updated_at DESC);
        """,
    ),
]


def run_migrations(conn: sqlite3.Connection, migrations: list[Migration] | None = None) -> int:
    """Apply pending migrations.

    Args:
        conn: Active SQLite connection.
        migrations: Migration list, ``MIGRATIONS`` by default.

    Returns:
        The schema version after the call.

    Raises:
        ValueError: If versions are not consecutive from 1.
        sqlite3.Error: If a statement fails; that migration is rolled back.
    """
    migrations = MIGRATIONS if migrations is None else migrations
    _validate_migration_list(migrations)
    conn.execute(_SCHEMA_VERSION_DDL)
    conn.commit()

    current = current_version(conn)
    pending = [m for m in migrations if m.version > current]
    if not pending:
        log.debug("Schema already at version %d", current)
        return current

    for migration in pending:
        _apply_migration(conn, migration)
        log.info("Applied migration v%d: %s", migration.version, migration.description)
    return pending[-1].version


def current_version(conn: sqlite3.Connection) -> int:
    """Return the applied schema version, 0 for a fresh database."""
    row = conn.execute("SELECT version FROM schema_version WHERE id = 1").fetchone()
    return row[0] if row else 0


def _validate_migration_list(migrations: list[Migration]) -> None:
    for expected, migration in enumerate(migrations, start=1):
        if migration.version != expected:
            raise ValueError(
                f"Migration version gap: expected {expected}, got {migration.version} "
                f"({migration.description!r})"
            )


def _apply_migration(conn: sqlite3.Connection, migration: Migration) -> None:
    # Statements run one by one: executescript() would COMMIT implicitly.
    conn.execute("BEGIN")
    try:
        for statement in (s.strip() for s in migration.sql.split(";")):
            if statement:
                conn.execute(statement)
        conn.execute(
            "INSERT OR REPLACE INTO schema_version (id, version) VALUES (1, ?)",
            (migration.version,),
        )
        conn.execute("COMMIT")
    except Exception:
        conn.execute("ROLLBACK")
        raise
