"""Authoritative database schema.

Identities live in one ``users`` table tagged by ``role``; email and username
are unique within a role. Every ``*_at`` column is an INTEGER holding epoch
seconds so expiry checks always compare numbers with numbers.
"""

import logging
from typing import List

from core.database import DatabaseAdapter

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
  id TEXT PRIMARY KEY,
  role TEXT NOT NULL CHECK (role IN ('instructor', 'student')),
  email TEXT NOT NULL,
  password_hash TEXT NOT NULL,
  display_name TEXT,
  username TEXT,
  avatar_url TEXT,
  bio TEXT,
  social_links TEXT,
  created_at INTEGER NOT NULL,
  updated_at INTEGER NOT NULL,
  UNIQUE(role, email),
  UNIQUE(role, username)
);

CREATE INDEX IF NOT EXISTS idx_users_email ON users(email);
CREATE INDEX IF NOT EXISTS idx_users_username ON users(username);

CREATE TABLE IF NOT EXISTS spaces (
  id TEXT PRIMARY KEY,
  instructor_id TEXT NOT NULL,
  title TEXT NOT NULL,
  description TEXT,
  slug TEXT NOT NULL,
  max_students INTEGER,
  is_active INTEGER NOT NULL DEFAULT 1,
  landing_page_content TEXT,
  created_at INTEGER NOT NULL,
  updated_at INTEGER NOT NULL,
  FOREIGN KEY (instructor_id) REFERENCES users(id) ON DELETE CASCADE,
  UNIQUE(instructor_id, slug)
);

CREATE INDEX IF NOT EXISTS idx_spaces_instructor ON spaces(instructor_id);

CREATE TABLE IF NOT EXISTS courses (
  id TEXT PRIMARY KEY,
  space_id TEXT NOT NULL,
  title TEXT NOT NULL,
  description TEXT,
  slug TEXT,
  price REAL NOT NULL DEFAULT 0,
  currency TEXT NOT NULL DEFAULT 'JPY',
  is_free INTEGER NOT NULL DEFAULT 0,
  is_published INTEGER NOT NULL DEFAULT 0,
  thumbnail_url TEXT,
  course_page_content TEXT,
  created_at INTEGER NOT NULL,
  updated_at INTEGER NOT NULL,
  FOREIGN KEY (space_id) REFERENCES spaces(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_courses_space ON courses(space_id);

CREATE TABLE IF NOT EXISTS lessons (
  id TEXT PRIMARY KEY,
  course_id TEXT NOT NULL,
  title TEXT NOT NULL,
  description TEXT,
  content TEXT,
  video_url TEXT,
  video_type TEXT,
  duration INTEGER,
  order_index INTEGER NOT NULL,
  is_published INTEGER NOT NULL DEFAULT 1,
  created_at INTEGER NOT NULL,
  updated_at INTEGER NOT NULL,
  FOREIGN KEY (course_id) REFERENCES courses(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_lessons_order ON lessons(course_id, order_index);

CREATE TABLE IF NOT EXISTS space_students (
  id TEXT PRIMARY KEY,
  space_id TEXT NOT NULL,
  student_id TEXT NOT NULL,
  status TEXT NOT NULL DEFAULT 'active',
  enrolled_at INTEGER NOT NULL,
  FOREIGN KEY (space_id) REFERENCES spaces(id) ON DELETE CASCADE,
  FOREIGN KEY (student_id) REFERENCES users(id) ON DELETE CASCADE,
  UNIQUE(space_id, student_id)
);

CREATE INDEX IF NOT EXISTS idx_space_students_student ON space_students(student_id);

CREATE TABLE IF NOT EXISTS course_purchases (
  id TEXT PRIMARY KEY,
  course_id TEXT NOT NULL,
  student_id TEXT NOT NULL,
  amount REAL NOT NULL DEFAULT 0,
  currency TEXT NOT NULL DEFAULT 'JPY',
  status TEXT NOT NULL DEFAULT 'pending',
  payment_session_id TEXT,
  purchased_at INTEGER NOT NULL,
  completed_at INTEGER,
  FOREIGN KEY (course_id) REFERENCES courses(id) ON DELETE CASCADE,
  FOREIGN KEY (student_id) REFERENCES users(id) ON DELETE CASCADE,
  UNIQUE(course_id, student_id)
);

CREATE INDEX IF NOT EXISTS idx_purchases_student ON course_purchases(student_id);
CREATE INDEX IF NOT EXISTS idx_purchases_payment_session ON course_purchases(payment_session_id);

CREATE TABLE IF NOT EXISTS lesson_completions (
  id TEXT PRIMARY KEY,
  lesson_id TEXT NOT NULL,
  student_id TEXT NOT NULL,
  completed_at INTEGER NOT NULL,
  FOREIGN KEY (lesson_id) REFERENCES lessons(id) ON DELETE CASCADE,
  FOREIGN KEY (student_id) REFERENCES users(id) ON DELETE CASCADE,
  UNIQUE(lesson_id, student_id)
);

CREATE INDEX IF NOT EXISTS idx_completions_student ON lesson_completions(student_id);

CREATE TABLE IF NOT EXISTS sessions (
  id TEXT PRIMARY KEY,
  user_id TEXT NOT NULL,
  token TEXT NOT NULL UNIQUE,
  expires_at INTEGER NOT NULL,
  created_at INTEGER NOT NULL,
  FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_sessions_user ON sessions(user_id);
CREATE INDEX IF NOT EXISTS idx_sessions_expires ON sessions(expires_at);

CREATE TABLE IF NOT EXISTS password_resets (
  id TEXT PRIMARY KEY,
  email TEXT NOT NULL,
  role TEXT NOT NULL,
  token TEXT NOT NULL UNIQUE,
  expires_at INTEGER NOT NULL,
  used INTEGER NOT NULL DEFAULT 0,
  created_at INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_password_resets_email ON password_resets(email)
"""

TABLES = (
    "users",
    "spaces",
    "courses",
    "lessons",
    "space_students",
    "course_purchases",
    "lesson_completions",
    "sessions",
    "password_resets",
)


def schema_statements() -> List[str]:
    return [stmt.strip() for stmt in SCHEMA.split(";") if stmt.strip()]


def init_schema(adapter: DatabaseAdapter) -> None:
    """Create all tables and indexes if they do not exist."""
    statements = schema_statements()
    for sql in statements:
        adapter.prepare(sql).run()
    logger.info("[DB] Schema initialized (%d statements)", len(statements))
