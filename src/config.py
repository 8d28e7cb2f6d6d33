"""Configuration module for the course marketplace backend.

This module provides centralized configuration management, including directory
paths, API server settings, database backend selection, and auth defaults.
All configuration values can be overridden via environment variables.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# --- Directory Configuration ---

# Root directory of the project
ROOT_DIR = Path(__file__).parent.parent.resolve()

# Data directory name
DATA_DIR_NAME = "data"
DATA_DIR = Path(os.getenv("DATA_DIR", str(ROOT_DIR / DATA_DIR_NAME)))

# --- API Server Configuration ---

API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
API_PORT: int = int(os.getenv("API_PORT", "8000"))

# CORS allowed origins (comma-separated list)
_CORS_ALLOWED_ORIGINS_STR: str = os.getenv(
    "CORS_ALLOWED_ORIGINS",
    "http://localhost:5173,http://127.0.0.1:5173",
)
CORS_ALLOWED_ORIGINS: List[str] = [
    origin.strip()
    for origin in _CORS_ALLOWED_ORIGINS_STR.split(",")
    if origin.strip()
]

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

# --- Database Configuration ---

# "auto" picks D1 when its credentials are present, otherwise the local file.
DATABASE_BACKEND: str = os.getenv("DATABASE_BACKEND", "auto").lower()

LOCAL_DB_FILENAME = "local.db"
LOCAL_DB_PATH = Path(os.getenv("LOCAL_DB_PATH", str(DATA_DIR / LOCAL_DB_FILENAME)))

D1_API_BASE_URL: str = os.getenv(
    "D1_API_BASE_URL", "https://api.cloudflare.com/client/v4"
)
D1_ACCOUNT_ID: Optional[str] = os.getenv("D1_ACCOUNT_ID")
D1_DATABASE_ID: Optional[str] = os.getenv("D1_DATABASE_ID")
D1_API_TOKEN: Optional[str] = os.getenv("D1_API_TOKEN")
D1_REQUEST_TIMEOUT_SEC: float = float(os.getenv("D1_REQUEST_TIMEOUT_SEC", "30"))

# --- Authentication Configuration ---

SESSION_COOKIE_NAME: str = "session_token"
SESSION_TTL_SECONDS: int = int(os.getenv("SESSION_TTL_SECONDS", str(60 * 60 * 24 * 7)))
PASSWORD_RESET_TTL_SECONDS: int = int(
    os.getenv("PASSWORD_RESET_TTL_SECONDS", str(60 * 60))
)
# Browsers drop Secure cookies on plain http; only disable for local debugging.
SESSION_COOKIE_SECURE: bool = os.getenv("SESSION_COOKIE_SECURE", "true").lower() == "true"

# PBKDF2 parameters; changing these invalidates every stored credential.
PBKDF2_ITERATIONS: int = 100000
PBKDF2_SALT_BYTES: int = 16
PBKDF2_KEY_BYTES: int = 32

# --- Marketplace Defaults ---

DEFAULT_CURRENCY: str = os.getenv("DEFAULT_CURRENCY", "JPY")


@dataclass(frozen=True)
class DatabaseSettings:
    """Snapshot of the settings needed to resolve a database backend."""

    backend: str = "auto"
    local_db_path: Path = LOCAL_DB_PATH
    d1_api_base_url: str = D1_API_BASE_URL
    d1_account_id: Optional[str] = None
    d1_database_id: Optional[str] = None
    d1_api_token: Optional[str] = None
    d1_timeout: float = D1_REQUEST_TIMEOUT_SEC

    @property
    def has_d1_credentials(self) -> bool:
        return bool(self.d1_account_id and self.d1_database_id and self.d1_api_token)


def load_database_settings() -> DatabaseSettings:
    """Build DatabaseSettings from the environment-derived module constants."""
    return DatabaseSettings(
        backend=DATABASE_BACKEND,
        local_db_path=LOCAL_DB_PATH,
        d1_api_base_url=D1_API_BASE_URL,
        d1_account_id=D1_ACCOUNT_ID,
        d1_database_id=D1_DATABASE_ID,
        d1_api_token=D1_API_TOKEN,
        d1_timeout=D1_REQUEST_TIMEOUT_SEC,
    )
