"""Tests for backend selection, the database context and the SQLite adapter."""

import tempfile
import threading
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

from sqlalchemy.exc import OperationalError

from config import DatabaseSettings
from core.database import (
    BACKEND_D1,
    BACKEND_SQLITE,
    DatabaseContext,
    QueryResult,
    resolve_backend,
)
from core.exceptions import ConfigurationError
from core.schema import TABLES, init_schema
from core.sqlite_adapter import SQLiteAdapter

D1_CREDENTIALS = {
    "d1_account_id": "acct",
    "d1_database_id": "db",
    "d1_api_token": "token",
}


class TestResolveBackend(unittest.TestCase):
    def test_auto_without_credentials_uses_sqlite(self) -> None:
        self.assertEqual(resolve_backend(DatabaseSettings(backend="auto")), BACKEND_SQLITE)

    def test_auto_with_credentials_uses_d1(self) -> None:
        settings = DatabaseSettings(backend="auto", **D1_CREDENTIALS)
        self.assertEqual(resolve_backend(settings), BACKEND_D1)

    def test_partial_credentials_do_not_count(self) -> None:
        settings = DatabaseSettings(backend="auto", d1_account_id="acct", d1_api_token="token")
        self.assertEqual(resolve_backend(settings), BACKEND_SQLITE)

    def test_forced_d1_without_credentials_is_an_error(self) -> None:
        with self.assertRaises(ConfigurationError):
            resolve_backend(DatabaseSettings(backend="d1"))

    def test_forced_sqlite_ignores_credentials(self) -> None:
        settings = DatabaseSettings(backend="sqlite", **D1_CREDENTIALS)
        self.assertEqual(resolve_backend(settings), BACKEND_SQLITE)

    def test_backend_name_is_case_insensitive(self) -> None:
        self.assertEqual(resolve_backend(DatabaseSettings(backend="SQLite")), BACKEND_SQLITE)

    def test_unknown_backend_is_an_error(self) -> None:
        with self.assertRaises(ConfigurationError):
            resolve_backend(DatabaseSettings(backend="postgres"))


class TestDatabaseContext(unittest.TestCase):
    def test_adapter_is_opened_lazily_and_once(self) -> None:
        fake = MagicMock()
        with patch("core.database.create_database_adapter", return_value=fake) as factory:
            context = DatabaseContext(settings=DatabaseSettings(backend="sqlite"))
            self.assertFalse(context.is_open)

            seen = []
            threads = [
                threading.Thread(target=lambda: seen.append(context.adapter))
                for _ in range(8)
            ]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

        factory.assert_called_once()
        self.assertTrue(all(adapter is fake for adapter in seen))
        self.assertTrue(context.is_open)

    def test_close_releases_adapter(self) -> None:
        fake = MagicMock()
        context = DatabaseContext(settings=DatabaseSettings(backend="sqlite"), adapter=fake)
        context.close()
        context.close()
        fake.close.assert_called_once()
        self.assertFalse(context.is_open)

    def test_configuration_error_surfaces_on_first_use(self) -> None:
        context = DatabaseContext(settings=DatabaseSettings(backend="d1"))
        with self.assertRaises(ConfigurationError):
            context.adapter


class TestSQLiteAdapter(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.adapter = SQLiteAdapter(Path(self._tmp.name) / "nested" / "test.db")
        self.adapter.prepare(
            "CREATE TABLE items (id INTEGER PRIMARY KEY, name TEXT NOT NULL)"
        ).run()

    def tearDown(self) -> None:
        self.adapter.close()
        self._tmp.cleanup()

    def _insert(self, name: str):
        return self.adapter.prepare("INSERT INTO items (name) VALUES (?)").bind(name).run()

    def test_creates_parent_directories(self) -> None:
        self.assertTrue((Path(self._tmp.name) / "nested" / "test.db").exists())

    def test_first_returns_none_when_nothing_matches(self) -> None:
        row = self.adapter.prepare("SELECT * FROM items WHERE id = ?").bind(99).first()
        self.assertIsNone(row)

    def test_all_returns_empty_result_not_none(self) -> None:
        result = self.adapter.prepare("SELECT * FROM items").all()
        self.assertIsInstance(result, QueryResult)
        self.assertEqual(result.results, [])
        self.assertTrue(result.success)

    def test_run_reports_changes_and_row_id(self) -> None:
        result = self._insert("alpha")
        self.assertTrue(result.success)
        self.assertEqual(result.meta.changes, 1)
        self.assertEqual(result.meta.last_row_id, 1)

        self._insert("beta")
        updated = self.adapter.prepare("UPDATE items SET name = ?").bind("x").run()
        self.assertEqual(updated.meta.changes, 2)

    def test_rows_are_plain_dicts_in_order(self) -> None:
        for name in ["a", "b", "c"]:
            self._insert(name)
        rows = self.adapter.prepare("SELECT id, name FROM items ORDER BY id").all().results
        self.assertEqual([r["name"] for r in rows], ["a", "b", "c"])
        self.assertIsInstance(rows[0], dict)

    def test_writes_are_visible_to_later_statements(self) -> None:
        self._insert("committed")
        row = self.adapter.prepare("SELECT name FROM items WHERE name = ?").bind("committed").first()
        self.assertEqual(row, {"name": "committed"})

    def test_statements_are_independent(self) -> None:
        self._insert("one")
        self._insert("two")
        sql = "SELECT name FROM items WHERE id = ?"
        first = self.adapter.prepare(sql).bind(1)
        second = self.adapter.prepare(sql).bind(2)
        self.assertEqual(first.first()["name"], "one")
        self.assertEqual(second.first()["name"], "two")

    def test_bind_returns_same_statement(self) -> None:
        stmt = self.adapter.prepare("SELECT 1")
        self.assertIs(stmt.bind(), stmt)

    def test_placeholder_values_are_not_interpolated(self) -> None:
        self._insert("x'); DROP TABLE items; --")
        rows = self.adapter.prepare("SELECT name FROM items").all().results
        self.assertEqual(rows[0]["name"], "x'); DROP TABLE items; --")

    def test_failure_is_logged_and_propagated(self) -> None:
        stmt = self.adapter.prepare("SELECT * FROM missing_table WHERE id = ?").bind(7)
        with self.assertLogs("core.database", level="ERROR") as logs:
            with self.assertRaises(OperationalError):
                stmt.all()
        self.assertIn("missing_table", logs.output[0])
        self.assertIn("(7,)", logs.output[0])

    def test_pragmas_are_enabled(self) -> None:
        fk = self.adapter.prepare("PRAGMA foreign_keys").first()
        mode = self.adapter.prepare("PRAGMA journal_mode").first()
        self.assertEqual(list(fk.values())[0], 1)
        self.assertEqual(list(mode.values())[0].lower(), "wal")


class TestSchema(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.adapter = SQLiteAdapter(Path(self._tmp.name) / "schema.db")

    def tearDown(self) -> None:
        self.adapter.close()
        self._tmp.cleanup()

    def test_init_schema_is_idempotent(self) -> None:
        init_schema(self.adapter)
        init_schema(self.adapter)
        rows = self.adapter.prepare(
            "SELECT name FROM sqlite_master WHERE type = 'table'"
        ).all().results
        names = {r["name"] for r in rows}
        self.assertTrue(set(TABLES).issubset(names))

    def test_timestamp_columns_are_integers(self) -> None:
        init_schema(self.adapter)
        checked = 0
        for table in TABLES:
            columns = self.adapter.prepare(f"PRAGMA table_info({table})").all().results
            for column in columns:
                if column["name"].endswith("_at"):
                    self.assertEqual(column["type"], "INTEGER", f"{table}.{column['name']}")
                    checked += 1
        self.assertGreater(checked, 0)
