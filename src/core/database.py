"""Database adapter interface and backend selection.

Managers talk to storage only through ``DatabaseAdapter``:

    adapter.prepare("SELECT * FROM users WHERE id = ?").bind(user_id).first()

Two backends implement it: ``SQLiteAdapter`` for the embedded file database
and ``D1Adapter`` for the remote Cloudflare D1 service. Statements always use
positional ``?`` placeholders; values are never interpolated into SQL text.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from config import DatabaseSettings, load_database_settings
from core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

Row = Dict[str, Any]

BACKEND_AUTO = "auto"
BACKEND_SQLITE = "sqlite"
BACKEND_D1 = "d1"


@dataclass
class QueryResult:
    """Rows returned by ``PreparedStatement.all``; never None."""

    results: List[Row] = field(default_factory=list)
    success: bool = True


@dataclass
class RunMeta:
    changes: int = 0
    last_row_id: Optional[int] = None


@dataclass
class RunResult:
    """Outcome of a mutating statement."""

    success: bool = True
    meta: RunMeta = field(default_factory=RunMeta)


class PreparedStatement(ABC):
    """A single SQL statement plus its positional parameters.

    ``bind`` stores the parameters and returns the same statement, so calls
    chain the same way on every backend. Statements are independent: binding
    one never affects another returned by a separate ``prepare`` call.
    """

    backend_name = "unknown"

    def __init__(self, sql: str):
        self.sql = sql
        self.params: tuple = ()

    def bind(self, *params: Any) -> "PreparedStatement":
        self.params = tuple(params)
        return self

    @abstractmethod
    def first(self) -> Optional[Row]:
        """Return the first row, or None when the query matches nothing."""

    @abstractmethod
    def all(self) -> QueryResult:
        """Return every row in query order."""

    @abstractmethod
    def run(self) -> RunResult:
        """Execute a mutating statement."""

    def _log_failure(self, exc: Exception) -> None:
        logger.error(
            "[%s] Query error: %s | SQL: %s | Values: %r",
            self.backend_name,
            exc,
            self.sql,
            self.params,
        )


class DatabaseAdapter(ABC):
    """Uniform query interface over a storage backend."""

    name = "unknown"

    @abstractmethod
    def prepare(self, sql: str) -> PreparedStatement:
        """Create a new, unbound statement."""

    def close(self) -> None:
        """Release backend resources. Safe to call more than once."""


def resolve_backend(settings: DatabaseSettings) -> str:
    """Decide which backend the settings point at.

    Args:
        settings: Database settings snapshot.

    Returns:
        BACKEND_D1 or BACKEND_SQLITE.

    Raises:
        ConfigurationError: If the requested backend cannot be resolved.
    """
    backend = (settings.backend or BACKEND_AUTO).lower()
    if backend == BACKEND_AUTO:
        return BACKEND_D1 if settings.has_d1_credentials else BACKEND_SQLITE
    if backend == BACKEND_D1:
        if not settings.has_d1_credentials:
            raise ConfigurationError(
                "DATABASE_BACKEND=d1 requires D1_ACCOUNT_ID, D1_DATABASE_ID and D1_API_TOKEN"
            )
        return BACKEND_D1
    if backend == BACKEND_SQLITE:
        if not settings.local_db_path:
            raise ConfigurationError("DATABASE_BACKEND=sqlite requires LOCAL_DB_PATH")
        return BACKEND_SQLITE
    raise ConfigurationError(f"Unknown DATABASE_BACKEND: {settings.backend}")


def create_database_adapter(settings: DatabaseSettings) -> DatabaseAdapter:
    """Open the adapter for the backend the settings resolve to."""
    backend = resolve_backend(settings)
    if backend == BACKEND_D1:
        from core.d1_adapter import D1Adapter

        logger.info("[DB] Using D1 database (remote)")
        return D1Adapter(
            account_id=settings.d1_account_id,
            database_id=settings.d1_database_id,
            api_token=settings.d1_api_token,
            base_url=settings.d1_api_base_url,
            timeout=settings.d1_timeout,
        )

    from core.sqlite_adapter import SQLiteAdapter

    logger.info("[DB] Using SQLite (local) at %s", settings.local_db_path)
    return SQLiteAdapter(settings.local_db_path)


class DatabaseContext:
    """Owns the process-wide database adapter.

    Built once at startup and passed to whoever needs it. The adapter is
    opened on first access; the lock makes that a one-shot initialization
    even when several threads race for it.
    """

    def __init__(
        self,
        settings: Optional[DatabaseSettings] = None,
        adapter: Optional[DatabaseAdapter] = None,
    ):
        self.settings = settings or load_database_settings()
        self._adapter = adapter
        self._lock = threading.Lock()

    @property
    def adapter(self) -> DatabaseAdapter:
        if self._adapter is None:
            with self._lock:
                if self._adapter is None:
                    self._adapter = create_database_adapter(self.settings)
        return self._adapter

    @property
    def is_open(self) -> bool:
        return self._adapter is not None

    def close(self) -> None:
        with self._lock:
            if self._adapter is not None:
                self._adapter.close()
                self._adapter = None
