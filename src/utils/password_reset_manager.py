"""Password reset tokens.

A reset token is valid until it expires or is used, whichever comes first.
Once ``used`` is set the token never validates again.
"""

import logging
from typing import Optional

from config import PASSWORD_RESET_TTL_SECONDS
from core.clock import expires_in, generate_uuid, now_ts
from core.database import DatabaseAdapter, Row
from core.security import generate_token
from utils.converters import convert_row

logger = logging.getLogger(__name__)


class PasswordResetManager:
    """Manages password reset tokens."""

    def __init__(self, db: DatabaseAdapter, ttl_seconds: int = PASSWORD_RESET_TTL_SECONDS):
        self.db = db
        self.ttl_seconds = ttl_seconds

    def create_reset_token(self, email: str, role: str) -> Row:
        """Issue a new reset token for an account.

        Args:
            email: Account email.
            role: Identity kind the email belongs to.

        Returns:
            The stored token record.
        """
        record = {
            "id": generate_uuid(),
            "email": email,
            "role": role,
            "token": generate_token(),
            "expires_at": expires_in(self.ttl_seconds),
            "used": False,
            "created_at": now_ts(),
        }
        self.db.prepare(
            "INSERT INTO password_resets (id, email, role, token, expires_at, used, created_at) "
            "VALUES (?, ?, ?, ?, ?, 0, ?)"
        ).bind(
            record["id"],
            email,
            role,
            record["token"],
            record["expires_at"],
            record["created_at"],
        ).run()
        logger.info("Issued password reset token for %s (%s)", email, role)
        return record

    def validate_reset_token(self, token: str) -> Optional[Row]:
        """Return the token record if it is unused and unexpired, else None."""
        row = (
            self.db.prepare(
                "SELECT * FROM password_resets WHERE token = ? AND used = 0 AND expires_at > ?"
            )
            .bind(token, now_ts())
            .first()
        )
        return convert_row(row, bool_fields=("used",))

    def mark_token_used(self, token: str) -> None:
        self.db.prepare("UPDATE password_resets SET used = 1 WHERE token = ?").bind(token).run()

    def cleanup_expired_tokens(self) -> int:
        """Delete expired and used tokens; returns the number removed."""
        result = (
            self.db.prepare("DELETE FROM password_resets WHERE expires_at < ? OR used = 1")
            .bind(now_ts())
            .run()
        )
        logger.info("Cleaned up %d password reset tokens", result.meta.changes)
        return result.meta.changes
