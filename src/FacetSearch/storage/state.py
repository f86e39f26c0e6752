"""Persistence of search sessions as serialized route parameters."""

from __future__ import annotations

import json
from typing import Any, Mapping

from FacetSearch.core.state import SearchState
from FacetSearch.storage.db import DatabaseManager
from FacetSearch.utils.log import log


class SearchStateStore:
    """SQLite store of named search sessions.

    A session is kept as the JSON of ``SearchState.to_route_query()``, so a
    persisted session and a deep link share one format.
    """

    def __init__(self, db_manager: DatabaseManager) -> None:
        self.conn = db_manager.get_connection()

    def save(self, session: str, state: SearchState) -> None:
        """Persist the state of a session, replacing any previous one."""
        payload = json.dumps(state.to_route_query(), ensure_ascii=False, sort_keys=True)
        self.conn.execute(
            """
            INSERT INTO search_sessions (name, route_query)
            VALUES (?, ?)
            ON CONFLICT(name) DO UPDATE SET
              route_query = excluded.route_query,
              updated_at = CAST(strftime('%s','now') AS INTEGER)
            """,
            (session, payload),
        )
        self.conn.commit()
        log.debug("Saved session %s", session)

    def load(self, session: str) -> dict[str, Any] | None:
        """Return the persisted route parameters of a session, or None."""
        row = self.conn.execute(
            "SELECT route_query FROM search_sessions WHERE name = ?", (session,)
        ).fetchone()
        if row is None:
            return None
        data = json.loads(row[0])
        if not isinstance(data, dict):
            raise ValueError(f"Corrupted session {session}: route query is not an object")
        return data

    def delete(self, session: str) -> bool:
        cursor = self.conn.execute("DELETE FROM search_sessions WHERE name = ?", (session,))
        self.conn.commit()
        return cursor.rowcount > 0

    def sessions(self) -> list[str]:
        """Session names, most recently updated first."""
        rows = self.conn.execute(
            "SELECT name FROM search_sessions ORDER BY updated_at DESC, name"
        ).fetchall()
        return [row[0] for row in rows]

    def restore(
        self,
        session: str,
        state: SearchState,
        route_query: Mapping[str, Any] | None = None,
    ) -> bool:
        """Rebuild ``state`` from a persisted session and a route on top.

        The persisted parameters are applied first, then ``route_query``, so
        the route wins on every key it carries.

        Returns:
            True when a persisted session was found.
        """
        persisted = self.load(session)
        if persisted is not None:
            state.update_from_route_query(persisted)
            log.info("Restored session %s", session)
        if route_query:
            state.update_from_route_query(route_query)
        return persisted is not None
