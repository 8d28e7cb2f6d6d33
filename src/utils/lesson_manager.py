"""Lesson management utilities."""

import logging
from typing import List, Optional

from core.clock import generate_uuid, now_ts
from core.database import DatabaseAdapter, Row
from schemas.course import LessonCreate, LessonUpdate
from utils.converters import convert_row, to_db_bool
from utils.sql_builder import build_update

logger = logging.getLogger(__name__)

BOOL_FIELDS = ("is_published",)


class LessonManager:
    """Manages lesson persistence. Lessons are ordered by ``order_index``."""

    def __init__(self, db: DatabaseAdapter):
        self.db = db

    def _convert(self, row: Optional[Row]) -> Optional[Row]:
        return convert_row(row, bool_fields=BOOL_FIELDS)

    def get_lesson_by_id(self, lesson_id: str) -> Optional[Row]:
        row = self.db.prepare("SELECT * FROM lessons WHERE id = ?").bind(lesson_id).first()
        return self._convert(row)

    def list_lessons_by_course(self, course_id: str, published_only: bool = False) -> List[Row]:
        sql = "SELECT * FROM lessons WHERE course_id = ?"
        if published_only:
            sql += " AND is_published = 1"
        sql += " ORDER BY order_index ASC, created_at ASC"
        result = self.db.prepare(sql).bind(course_id).all()
        return [self._convert(r) for r in result.results]

    def _next_order_index(self, course_id: str) -> int:
        row = (
            self.db.prepare(
                "SELECT COALESCE(MAX(order_index), -1) + 1 AS next_index "
                "FROM lessons WHERE course_id = ?"
            )
            .bind(course_id)
            .first()
        )
        return int(row["next_index"]) if row else 0

    def create_lesson(self, lesson: LessonCreate) -> Row:
        """Create a lesson; it is appended to the course when no order is given."""
        lesson_id = generate_uuid()
        now = now_ts()
        order_index = lesson.order_index
        if order_index is None:
            order_index = self._next_order_index(lesson.course_id)
        self.db.prepare(
            "INSERT INTO lessons (id, course_id, title, description, content, video_url, "
            "video_type, duration, order_index, is_published, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)"
        ).bind(
            lesson_id,
            lesson.course_id,
            lesson.title,
            lesson.description,
            lesson.content,
            lesson.video_url,
            lesson.video_type,
            lesson.duration,
            order_index,
            to_db_bool(lesson.is_published),
            now,
            now,
        ).run()
        logger.info("Created lesson %s in course %s", lesson_id, lesson.course_id)
        return self.get_lesson_by_id(lesson_id)

    def update_lesson(self, lesson_id: str, updates: LessonUpdate) -> Optional[Row]:
        statement = build_update("lessons", lesson_id, updates, bool_fields=BOOL_FIELDS)
        if statement is None:
            return None
        sql, params = statement
        self.db.prepare(sql).bind(*params).run()
        return self.get_lesson_by_id(lesson_id)

    def delete_lesson(self, lesson_id: str) -> bool:
        result = self.db.prepare("DELETE FROM lessons WHERE id = ?").bind(lesson_id).run()
        return result.meta.changes > 0
