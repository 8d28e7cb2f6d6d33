"""User management utilities.

This module provides user storage and authentication for both identity
kinds. Instructors and students share the ``users`` table and are told apart
by ``role``; the same email may exist once per role.
"""

import logging
from typing import List, Optional

from core.clock import generate_uuid, now_ts
from core.database import DatabaseAdapter, Row
from core.exceptions import UserAlreadyExistsError
from core.security import hash_password, verify_password
from schemas.user import ProfileUpdate
from utils.converters import convert_row
from utils.sql_builder import build_update

logger = logging.getLogger(__name__)

JSON_FIELDS = ("social_links",)


class UserManager:
    """Manages user data persistence and authentication."""

    def __init__(self, db: DatabaseAdapter):
        """Initialize UserManager.

        Args:
            db: Database adapter.
        """
        self.db = db

    def _convert(self, row: Optional[Row]) -> Optional[Row]:
        return convert_row(row, json_fields=JSON_FIELDS)

    def get_user_by_id(self, user_id: str) -> Optional[Row]:
        row = self.db.prepare("SELECT * FROM users WHERE id = ?").bind(user_id).first()
        return self._convert(row)

    def get_user_by_email(self, email: str, role: str) -> Optional[Row]:
        row = (
            self.db.prepare("SELECT * FROM users WHERE email = ? AND role = ?")
            .bind(email, role)
            .first()
        )
        return self._convert(row)

    def get_user_by_username(self, username: str, role: str = "instructor") -> Optional[Row]:
        row = (
            self.db.prepare("SELECT * FROM users WHERE username = ? AND role = ?")
            .bind(username, role)
            .first()
        )
        return self._convert(row)

    def list_instructors(self) -> List[Row]:
        result = (
            self.db.prepare(
                "SELECT * FROM users WHERE role = 'instructor' ORDER BY created_at DESC"
            ).all()
        )
        return [self._convert(r) for r in result.results]

    def create_user(
        self,
        email: str,
        password: str,
        role: str,
        username: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> Row:
        """Create a new user.

        Args:
            email: Login email.
            password: Plain text password; only its hash is stored.
            role: 'instructor' or 'student'.
            username: Optional public handle.
            display_name: Optional display name.

        Returns:
            The stored user row.

        Raises:
            UserAlreadyExistsError: If the email or username is taken for the role.
        """
        if self.get_user_by_email(email, role):
            raise UserAlreadyExistsError(f"Email '{email}' is already registered")
        if username and self.get_user_by_username(username, role):
            raise UserAlreadyExistsError(f"Username '{username}' is already taken")

        user_id = generate_uuid()
        now = now_ts()
        result = self.db.prepare(
            "INSERT INTO users (id, role, email, password_hash, display_name, username, "
            "created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT DO NOTHING"
        ).bind(
            user_id,
            role,
            email,
            hash_password(password),
            display_name or None,
            username or None,
            now,
            now,
        ).run()
        # A concurrent registration can win between the checks and the insert.
        if result.meta.changes == 0:
            raise UserAlreadyExistsError(f"Email '{email}' or username is already registered")
        logger.info("Created %s: %s", role, user_id)
        return self.get_user_by_id(user_id)

    def update_profile(self, user_id: str, updates: ProfileUpdate) -> Optional[Row]:
        """Apply a partial profile update.

        Returns:
            The updated row, or None if nothing was set or the user is missing.

        Raises:
            UserAlreadyExistsError: If the new username is taken for the role.
        """
        current = self.get_user_by_id(user_id)
        if current is None:
            return None

        if updates.username and updates.username != current.get("username"):
            taken = self.get_user_by_username(updates.username, current["role"])
            if taken and taken["id"] != user_id:
                raise UserAlreadyExistsError(
                    f"Username '{updates.username}' is already taken"
                )

        statement = build_update("users", user_id, updates, json_fields=JSON_FIELDS)
        if statement is None:
            return None
        sql, params = statement
        self.db.prepare(sql).bind(*params).run()
        return self.get_user_by_id(user_id)

    def update_password(self, user_id: str, new_password: str) -> bool:
        result = (
            self.db.prepare("UPDATE users SET password_hash = ?, updated_at = ? WHERE id = ?")
            .bind(hash_password(new_password), now_ts(), user_id)
            .run()
        )
        return result.meta.changes > 0

    def authenticate(self, email: str, password: str, role: str) -> Optional[Row]:
        """Check credentials.

        Unknown email and wrong password both return None, so callers cannot
        leak which accounts exist.
        """
        user = self.get_user_by_email(email, role)
        if user is None or not user.get("password_hash"):
            return None
        if not verify_password(password, user["password_hash"]):
            return None
        return user
