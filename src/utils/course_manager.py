"""Course management utilities."""

import logging
from typing import List, Optional, Sequence

from core.clock import generate_uuid, now_ts
from core.database import DatabaseAdapter, Row
from schemas.course import CourseCreate, CourseUpdate
from utils.converters import convert_row, dump_json, to_db_bool
from utils.sql_builder import build_update

logger = logging.getLogger(__name__)

JSON_FIELDS = ("course_page_content",)
BOOL_FIELDS = ("is_free", "is_published")

PURCHASE_COMPLETED = "completed"


class CourseManager:
    """Manages course persistence and access checks."""

    def __init__(self, db: DatabaseAdapter):
        self.db = db

    def _convert(self, row: Optional[Row]) -> Optional[Row]:
        return convert_row(row, json_fields=JSON_FIELDS, bool_fields=BOOL_FIELDS)

    def get_course_by_id(self, course_id: str) -> Optional[Row]:
        row = self.db.prepare("SELECT * FROM courses WHERE id = ?").bind(course_id).first()
        return self._convert(row)

    def get_course_by_slug(self, space_id: str, slug: str) -> Optional[Row]:
        row = (
            self.db.prepare("SELECT * FROM courses WHERE space_id = ? AND slug = ?")
            .bind(space_id, slug)
            .first()
        )
        return self._convert(row)

    def list_courses_by_space(self, space_id: str, published_only: bool = False) -> List[Row]:
        sql = "SELECT * FROM courses WHERE space_id = ?"
        if published_only:
            sql += " AND is_published = 1"
        sql += " ORDER BY created_at DESC, rowid DESC"
        result = self.db.prepare(sql).bind(space_id).all()
        return [self._convert(r) for r in result.results]

    def list_courses_by_space_ids(
        self, space_ids: Sequence[str], published_only: bool = False
    ) -> List[Row]:
        if not space_ids:
            return []
        placeholders = ", ".join("?" for _ in space_ids)
        sql = f"SELECT * FROM courses WHERE space_id IN ({placeholders})"
        if published_only:
            sql += " AND is_published = 1"
        sql += " ORDER BY created_at DESC, rowid DESC"
        result = self.db.prepare(sql).bind(*space_ids).all()
        return [self._convert(r) for r in result.results]

    def create_course(self, course: CourseCreate) -> Row:
        """Create a course and return the stored row."""
        course_id = generate_uuid()
        now = now_ts()
        self.db.prepare(
            "INSERT INTO courses (id, space_id, title, description, slug, price, currency, "
            "is_free, is_published, thumbnail_url, course_page_content, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)"
        ).bind(
            course_id,
            course.space_id,
            course.title,
            course.description,
            course.slug,
            course.price,
            course.currency,
            to_db_bool(course.is_free),
            to_db_bool(course.is_published),
            course.thumbnail_url,
            dump_json(course.course_page_content),
            now,
            now,
        ).run()
        logger.info("Created course %s in space %s", course_id, course.space_id)
        return self.get_course_by_id(course_id)

    def update_course(self, course_id: str, updates: CourseUpdate) -> Optional[Row]:
        """Apply a partial update; returns None when nothing was set."""
        statement = build_update(
            "courses", course_id, updates, json_fields=JSON_FIELDS, bool_fields=BOOL_FIELDS
        )
        if statement is None:
            return None
        sql, params = statement
        self.db.prepare(sql).bind(*params).run()
        return self.get_course_by_id(course_id)

    def delete_course(self, course_id: str) -> bool:
        result = self.db.prepare("DELETE FROM courses WHERE id = ?").bind(course_id).run()
        if result.meta.changes:
            logger.info("Deleted course: %s", course_id)
        return result.meta.changes > 0

    def has_student_purchased(self, course_id: str, student_id: str) -> bool:
        row = (
            self.db.prepare(
                "SELECT id FROM course_purchases "
                "WHERE course_id = ? AND student_id = ? AND status = ?"
            )
            .bind(course_id, student_id, PURCHASE_COMPLETED)
            .first()
        )
        return row is not None

    def can_access(self, course_id: str, student_id: Optional[str]) -> bool:
        """Whether a student (or anonymous caller) may view a course.

        Free courses are open to everyone. Paid courses need a completed
        purchase by the given student.
        """
        course = self.get_course_by_id(course_id)
        if course is None:
            return False
        if course["is_free"]:
            return True
        if not student_id:
            return False
        return self.has_student_purchased(course_id, student_id)
