"""Embedded SQLite backend built on a SQLAlchemy engine.

Statements are sent to the driver as-is through ``exec_driver_sql`` so the
same ``?``-placeholder SQL runs here and on D1. Each statement runs in its
own transaction, matching D1's per-query auto-commit.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from core.database import (
    DatabaseAdapter,
    PreparedStatement,
    QueryResult,
    Row,
    RunMeta,
    RunResult,
)

logger = logging.getLogger(__name__)


def _enable_sqlite_pragmas(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()


class SQLiteStatement(PreparedStatement):
    backend_name = "SQLite"

    def __init__(self, engine: Engine, sql: str):
        super().__init__(sql)
        self._engine = engine

    def first(self) -> Optional[Row]:
        try:
            with self._engine.begin() as conn:
                row = conn.exec_driver_sql(self.sql, self.params).mappings().first()
        except Exception as exc:
            self._log_failure(exc)
            raise
        return dict(row) if row is not None else None

    def all(self) -> QueryResult:
        try:
            with self._engine.begin() as conn:
                rows = conn.exec_driver_sql(self.sql, self.params).mappings().all()
        except Exception as exc:
            self._log_failure(exc)
            raise
        return QueryResult(results=[dict(r) for r in rows])

    def run(self) -> RunResult:
        try:
            with self._engine.begin() as conn:
                result = conn.exec_driver_sql(self.sql, self.params)
                meta = RunMeta(changes=result.rowcount, last_row_id=result.lastrowid)
        except Exception as exc:
            self._log_failure(exc)
            raise
        return RunResult(success=True, meta=meta)


class SQLiteAdapter(DatabaseAdapter):
    """Adapter over a local SQLite database file."""

    name = "sqlite"

    def __init__(self, db_path: Union[str, Path]):
        """Open (or create) the database file.

        Args:
            db_path: Path to the SQLite file. Parent directories are created.
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("[SQLite] Opening database at: %s", self.db_path)
        self._engine = create_engine(
            f"sqlite:///{self.db_path}",
            connect_args={"check_same_thread": False},
        )
        event.listen(self._engine, "connect", _enable_sqlite_pragmas)

    @property
    def engine(self) -> Engine:
        return self._engine

    def prepare(self, sql: str) -> SQLiteStatement:
        return SQLiteStatement(self._engine, sql)

    def close(self) -> None:
        self._engine.dispose()
