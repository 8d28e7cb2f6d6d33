"""Tests for login session storage and expiry."""

from unittest.mock import patch

from core.clock import expires_in, now_ts
from core.security import generate_token
from support import SQLiteTestCase
from utils.session_manager import SessionManager


class TestSessionManager(SQLiteTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.sessions = SessionManager(self.db)
        self.user = self.make_instructor()

    def test_created_session_is_found_by_token(self) -> None:
        token = generate_token()
        created = self.sessions.create_session(self.user["id"], token, expires_in(3600))

        found = self.sessions.get_session_by_token(token)
        self.assertIsNotNone(found)
        self.assertEqual(found["id"], created["id"])
        self.assertEqual(found["user_id"], self.user["id"])
        self.assertIsInstance(found["expires_at"], int)

    def test_unknown_token_returns_none(self) -> None:
        self.assertIsNone(self.sessions.get_session_by_token("missing"))

    def test_session_expires(self) -> None:
        token = generate_token()
        expires_at = now_ts() + 100
        self.sessions.create_session(self.user["id"], token, expires_at)

        with patch("utils.session_manager.now_ts", return_value=expires_at + 1):
            self.assertIsNone(self.sessions.get_session_by_token(token))

    def test_session_expires_exactly_at_expiry(self) -> None:
        token = generate_token()
        expires_at = now_ts() + 100
        self.sessions.create_session(self.user["id"], token, expires_at)

        with patch("utils.session_manager.now_ts", return_value=expires_at):
            self.assertIsNone(self.sessions.get_session_by_token(token))

    def test_user_may_hold_many_sessions(self) -> None:
        tokens = [generate_token() for _ in range(3)]
        for token in tokens:
            self.sessions.create_session(self.user["id"], token, expires_in(3600))
        for token in tokens:
            self.assertIsNotNone(self.sessions.get_session_by_token(token))

    def test_delete_is_idempotent(self) -> None:
        token = generate_token()
        self.sessions.create_session(self.user["id"], token, expires_in(3600))

        self.sessions.delete_session(token)
        self.sessions.delete_session(token)
        self.sessions.delete_session("never-existed")
        self.assertIsNone(self.sessions.get_session_by_token(token))

    def test_delete_sessions_for_user(self) -> None:
        other = self.make_student()
        mine = [generate_token(), generate_token()]
        theirs = generate_token()
        for token in mine:
            self.sessions.create_session(self.user["id"], token, expires_in(3600))
        self.sessions.create_session(other["id"], theirs, expires_in(3600))

        self.assertEqual(self.sessions.delete_sessions_for_user(self.user["id"]), 2)
        self.assertIsNone(self.sessions.get_session_by_token(mine[0]))
        self.assertIsNotNone(self.sessions.get_session_by_token(theirs))

    def test_cleanup_removes_only_expired(self) -> None:
        live = generate_token()
        dead = generate_token()
        self.sessions.create_session(self.user["id"], live, expires_in(3600))
        self.sessions.create_session(self.user["id"], dead, now_ts() - 10)

        self.assertEqual(self.sessions.cleanup_expired_sessions(), 1)
        self.assertIsNotNone(self.sessions.get_session_by_token(live))
        remaining = self.db.prepare("SELECT token FROM sessions").all().results
        self.assertEqual([r["token"] for r in remaining], [live])

    def test_sessions_removed_with_user(self) -> None:
        token = generate_token()
        self.sessions.create_session(self.user["id"], token, expires_in(3600))
        self.db.prepare("DELETE FROM users WHERE id = ?").bind(self.user["id"]).run()
        self.assertIsNone(self.sessions.get_session_by_token(token))
