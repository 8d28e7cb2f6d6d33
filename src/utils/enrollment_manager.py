"""Space enrollment utilities.

Enrollment is membership in a space and is independent from buying any
course inside it.
"""

import logging
from typing import List, Optional

from core.clock import generate_uuid, now_ts
from core.database import DatabaseAdapter, Row
from core.exceptions import EnrollmentLimitError

logger = logging.getLogger(__name__)

STATUS_ACTIVE = "active"
STATUSES = ("active", "inactive", "suspended", "completed")


class EnrollmentManager:
    """Manages the ``space_students`` membership table."""

    def __init__(self, db: DatabaseAdapter):
        self.db = db

    def get_enrollment(self, space_id: str, student_id: str) -> Optional[Row]:
        return (
            self.db.prepare("SELECT * FROM space_students WHERE space_id = ? AND student_id = ?")
            .bind(space_id, student_id)
            .first()
        )

    def is_enrolled(self, space_id: str, student_id: str) -> bool:
        enrollment = self.get_enrollment(space_id, student_id)
        return enrollment is not None and enrollment["status"] == STATUS_ACTIVE

    def count_active(self, space_id: str) -> int:
        row = (
            self.db.prepare(
                "SELECT COUNT(*) AS total FROM space_students WHERE space_id = ? AND status = ?"
            )
            .bind(space_id, STATUS_ACTIVE)
            .first()
        )
        return int(row["total"]) if row else 0

    def enroll(self, space_id: str, student_id: str) -> Row:
        """Enroll a student in a space.

        Enrolling twice returns the existing record, including when a
        concurrent request inserts it first.

        Raises:
            EnrollmentLimitError: If the space has reached max_students.
        """
        existing = self.get_enrollment(space_id, student_id)
        if existing:
            return existing

        space = (
            self.db.prepare("SELECT max_students FROM spaces WHERE id = ?")
            .bind(space_id)
            .first()
        )
        max_students = space["max_students"] if space else None
        if max_students is not None and self.count_active(space_id) >= max_students:
            raise EnrollmentLimitError(space_id, max_students)

        enrollment_id = generate_uuid()
        self.db.prepare(
            "INSERT INTO space_students (id, space_id, student_id, status, enrolled_at) "
            "VALUES (?, ?, ?, ?, ?) ON CONFLICT(space_id, student_id) DO NOTHING"
        ).bind(enrollment_id, space_id, student_id, STATUS_ACTIVE, now_ts()).run()
        logger.info("Enrolled student %s in space %s", student_id, space_id)
        return self.get_enrollment(space_id, student_id)

    def update_status(self, space_id: str, student_id: str, status: str) -> Optional[Row]:
        """Change an enrollment's status.

        Only ``active`` enrollments count toward ``max_students`` and grant
        membership.

        Returns:
            The updated enrollment, or None if the student is not in the space.

        Raises:
            ValueError: If ``status`` is not one of STATUSES.
        """
        if status not in STATUSES:
            raise ValueError(f"Invalid enrollment status: {status}")
        result = (
            self.db.prepare(
                "UPDATE space_students SET status = ? WHERE space_id = ? AND student_id = ?"
            )
            .bind(status, space_id, student_id)
            .run()
        )
        if result.meta.changes == 0:
            return None
        logger.info("Set enrollment of %s in space %s to %s", student_id, space_id, status)
        return self.get_enrollment(space_id, student_id)

    def unenroll(self, space_id: str, student_id: str) -> bool:
        result = (
            self.db.prepare("DELETE FROM space_students WHERE space_id = ? AND student_id = ?")
            .bind(space_id, student_id)
            .run()
        )
        return result.meta.changes > 0

    def list_students(self, space_id: str) -> List[Row]:
        """List students enrolled in a space with their public profile fields."""
        result = (
            self.db.prepare(
                "SELECT u.id, u.email, u.username, u.display_name, u.avatar_url, "
                "ss.status, ss.enrolled_at "
                "FROM space_students ss JOIN users u ON u.id = ss.student_id "
                "WHERE ss.space_id = ? ORDER BY ss.enrolled_at DESC"
            )
            .bind(space_id)
            .all()
        )
        return result.results

    def list_spaces_for_student(self, student_id: str) -> List[Row]:
        result = (
            self.db.prepare(
                "SELECT s.id, s.title, s.slug, s.instructor_id, ss.status, ss.enrolled_at "
                "FROM space_students ss JOIN spaces s ON s.id = ss.space_id "
                "WHERE ss.student_id = ? ORDER BY ss.enrolled_at DESC"
            )
            .bind(student_id)
            .all()
        )
        return result.results
