"""Tests for the schema migration mechanism.

Covers a fresh database, a second run that finds nothing to do, an appended
migration applied over existing data, a failing migration rolled back as a
whole, and version-gap validation.
"""

import sqlite3
import sys
import tempfile
import unittest
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from FacetSearch.storage.migration import MIGRATIONS, Migration, current_version, run_migrations


def _table_names(conn: sqlite3.Connection) -> set[str]:
    return {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()}


_LATEST_VERSION = max(m.version for m in MIGRATIONS)


class TestMigrations(unittest.TestCase):
    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        self._conn = sqlite3.connect(str(Path(self._tmpdir.name) / "sessions.db"))

    def tearDown(self):
        self._conn.close()
        self._tmpdir.cleanup()

    def test_fresh_database(self):
        self.assertEqual(run_migrations(self._conn), _LATEST_VERSION)
        self.assertEqual(current_version(self._conn), _LATEST_VERSION)
        self.assertTrue({"search_sessions", "schema_version"} <= _table_names(self._conn))

    def test_second_run_is_a_no_op(self):
        run_migrations(self._conn)
        self._conn.execute("INSERT INTO search_sessions (name, route_query) VALUES ('s', '{}')")
        self._conn.commit()
        self.assertEqual(run_migrations(self._conn), _LATEST_VERSION)
        count = self._conn.execute("SELECT COUNT(*) FROM search_sessions").fetchone()[0]
        self.assertEqual(count, 1)

    def test_appended_migration_keeps_data(self):
        run_migrations(self._conn)
        self._conn.execute("INSERT INTO search_sessions (name, route_query) VALUES ('s', '{}')")
        self._conn.commit()
        v2 = Migration(
            version=_LATEST_VERSION + 1,
            description="Session labels",
            sql="ALTER TABLE search_sessions ADD COLUMN label TEXT",
        )
        self.assertEqual(run_migrations(self._conn, MIGRATIONS + [v2]), v2.version)
        row = self._conn.execute("SELECT name, label FROM search_sessions").fetchone()
        self.assertEqual(row, ("s", None))

    def test_failing_migration_rolls_back(self):
        run_migrations(self._conn)
        broken = Migration(
            version=_LATEST_VERSION + 1,
            description="Broken",
            sql="CREATE TABLE extra (id INTEGER); INSERT INTO missing_table VALUES (1)",
        )
        with self.assertRaises(sqlite3.Error):
            run_migrations(self._conn, MIGRATIONS + [broken])
        self.assertEqual(current_version(self._conn), _LATEST_VERSION)
        self.assertNotIn("extra", _table_names(self._conn))

    def test_version_gap(self):
        gap = Migration(version=_LATEST_VERSION + 2, description="Gap", sql="SELECT 1")
        with self.assertRaisesRegex(ValueError, "gap"):
            run_migrations(self._conn, MIGRATIONS + [gap])


if __name__ == "__main__":
    unittest.main()
