"""Login session management.

A session ties an opaque token to a user until ``expires_at`` (epoch
seconds). Lookups always filter on expiry, so an expired row behaves exactly
like a missing one; ``cleanup_expired_sessions`` only reclaims space.
"""

import logging
from typing import Optional

from core.clock import generate_uuid, now_ts
from core.database import DatabaseAdapter, Row

logger = logging.getLogger(__name__)


class SessionManager:
    """Manages login sessions through the database adapter."""

    def __init__(self, db: DatabaseAdapter):
        """Initialize SessionManager.

        Args:
            db: Database adapter.
        """
        self.db = db

    def create_session(self, user_id: str, token: str, expires_at: int) -> Row:
        """Create a new session.

        A user may hold any number of concurrent sessions.

        Args:
            user_id: Owning user id.
            token: Token from core.security.generate_token.
            expires_at: Absolute expiry in epoch seconds.

        Returns:
            The created session record.
        """
        session_id = generate_uuid()
        created_at = now_ts()
        self.db.prepare(
            "INSERT INTO sessions (id, user_id, token, expires_at, created_at) "
            "VALUES (?, ?, ?, ?, ?)"
        ).bind(session_id, user_id, token, expires_at, created_at).run()
        logger.info("Created session %s for user %s", session_id, user_id)
        return {
            "id": session_id,
            "user_id": user_id,
            "token": token,
            "expires_at": expires_at,
            "created_at": created_at,
        }

    def get_session_by_token(self, token: str) -> Optional[Row]:
        """Return the session for ``token`` if it has not expired, else None."""
        return (
            self.db.prepare("SELECT * FROM sessions WHERE token = ? AND expires_at > ?")
            .bind(token, now_ts())
            .first()
        )

    def delete_session(self, token: str) -> None:
        """Delete a session. Deleting an unknown token is a no-op."""
        self.db.prepare("DELETE FROM sessions WHERE token = ?").bind(token).run()

    def delete_sessions_for_user(self, user_id: str) -> int:
        result = self.db.prepare("DELETE FROM sessions WHERE user_id = ?").bind(user_id).run()
        logger.info("Revoked %d sessions for user %s", result.meta.changes, user_id)
        return result.meta.changes

    def cleanup_expired_sessions(self) -> int:
        """Delete sessions whose expiry has passed.

        Returns:
            Number of rows removed.
        """
        result = (
            self.db.prepare("DELETE FROM sessions WHERE expires_at < ?")
            .bind(now_ts())
            .run()
        )
        logger.info("Cleaned up %d expired sessions", result.meta.changes)
        return result.meta.changes
