"""Shared fixtures for tests that need a real SQLite database."""

import tempfile
import unittest
from pathlib import Path

from config import DatabaseSettings
from core.database import DatabaseContext
from core.schema import init_schema
from utils.user_manager import UserManager


def sqlite_settings(directory: str) -> DatabaseSettings:
    return DatabaseSettings(backend="sqlite", local_db_path=Path(directory) / "test.db")


class SQLiteTestCase(unittest.TestCase):
    """Creates a fresh schema in a temporary database file for each test."""

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.context = DatabaseContext(settings=sqlite_settings(self._tmp.name))
        self.db = self.context.adapter
        init_schema(self.db)
        self.users = UserManager(self.db)

    def tearDown(self) -> None:
        self.context.close()
        self._tmp.cleanup()

    def make_instructor(self, email: str = "teacher@example.com", username: str = "teacher"):
        return self.users.create_user(
            email=email, password="pw12345678", role="instructor", username=username
        )

    def make_student(self, email: str = "student@example.com"):
        return self.users.create_user(email=email, password="pw12345678", role="student")
