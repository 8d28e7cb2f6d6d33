"""Logging setup shared by the API server and the maintenance CLI."""

import logging

from config import LOG_LEVEL


def setup_logging(level: str = LOG_LEVEL) -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
