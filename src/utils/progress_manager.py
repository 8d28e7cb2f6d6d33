"""Lesson completion tracking."""

import logging
from typing import List

from core.clock import generate_uuid, now_ts
from core.database import DatabaseAdapter, Row

logger = logging.getLogger(__name__)


class ProgressManager:
    """Manages the ``lesson_completions`` table."""

    def __init__(self, db: DatabaseAdapter):
        self.db = db

    def mark_lesson_complete(self, lesson_id: str, student_id: str) -> bool:
        """Record a completion. Returns False if it was already recorded."""
        result = (
            self.db.prepare(
                "INSERT INTO lesson_completions (id, lesson_id, student_id, completed_at) "
                "VALUES (?, ?, ?, ?) ON CONFLICT(lesson_id, student_id) DO NOTHING"
            )
            .bind(generate_uuid(), lesson_id, student_id, now_ts())
            .run()
        )
        return result.meta.changes > 0

    def unmark_lesson_complete(self, lesson_id: str, student_id: str) -> bool:
        result = (
            self.db.prepare(
                "DELETE FROM lesson_completions WHERE lesson_id = ? AND student_id = ?"
            )
            .bind(lesson_id, student_id)
            .run()
        )
        return result.meta.changes > 0

    def list_completed_lesson_ids(
        self, student_id: str, course_id: str, published_only: bool = False
    ) -> List[str]:
        sql = (
            "SELECT lc.lesson_id FROM lesson_completions lc "
            "JOIN lessons l ON l.id = lc.lesson_id "
            "WHERE lc.student_id = ? AND l.course_id = ?"
        )
        if published_only:
            sql += " AND l.is_published = 1"
        sql += " ORDER BY l.order_index ASC"
        result = self.db.prepare(sql).bind(student_id, course_id).all()
        return [r["lesson_id"] for r in result.results]

    def get_course_progress(self, student_id: str, course_id: str) -> Row:
        """Summarize a student's progress through a course's published lessons."""
        total_row = (
            self.db.prepare(
                "SELECT COUNT(*) AS total FROM lessons WHERE course_id = ? AND is_published = 1"
            )
            .bind(course_id)
            .first()
        )
        total = int(total_row["total"]) if total_row else 0
        completed_ids = self.list_completed_lesson_ids(student_id, course_id, published_only=True)
        completed = len(completed_ids)
        percentage = round(completed * 100.0 / total, 1) if total else 0.0
        return {
            "course_id": course_id,
            "completed_lessons": completed,
            "total_lessons": total,
            "percentage": percentage,
            "completed_lesson_ids": completed_ids,
        }
