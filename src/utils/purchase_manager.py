"""Course purchase records.

The payment provider is an external collaborator; this module only stores
what it reports. A purchase starts ``pending`` and becomes ``completed``
when payment is confirmed. Free courses are recorded as completed directly.
"""

import logging
from typing import List, Optional

from config import DEFAULT_CURRENCY
from core.clock import generate_uuid, now_ts
from core.database import DatabaseAdapter, Row
from core.exceptions import PurchaseError

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"


class PurchaseManager:
    """Manages the ``course_purchases`` table."""

    def __init__(self, db: DatabaseAdapter):
        self.db = db

    def get_purchase(self, purchase_id: str) -> Optional[Row]:
        return (
            self.db.prepare("SELECT * FROM course_purchases WHERE id = ?")
            .bind(purchase_id)
            .first()
        )

    def get_purchase_for(self, course_id: str, student_id: str) -> Optional[Row]:
        return (
            self.db.prepare(
                "SELECT * FROM course_purchases WHERE course_id = ? AND student_id = ?"
            )
            .bind(course_id, student_id)
            .first()
        )

    def create_purchase(
        self,
        course_id: str,
        student_id: str,
        amount: float,
        currency: str = DEFAULT_CURRENCY,
        status: str = STATUS_PENDING,
        payment_session_id: Optional[str] = None,
    ) -> Row:
        """Record a purchase.

        Raises:
            PurchaseError: If the student already has a purchase for the course.
        """
        if self.get_purchase_for(course_id, student_id):
            raise PurchaseError("Already purchased")

        purchase_id = generate_uuid()
        now = now_ts()
        completed_at = now if status == STATUS_COMPLETED else None
        result = self.db.prepare(
            "INSERT INTO course_purchases (id, course_id, student_id, amount, currency, "
            "status, payment_session_id, purchased_at, completed_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(course_id, student_id) DO NOTHING"
        ).bind(
            purchase_id,
            course_id,
            student_id,
            amount,
            currency,
            status,
            payment_session_id,
            now,
            completed_at,
        ).run()
        if result.meta.changes == 0:
            raise PurchaseError("Already purchased")
        logger.info(
            "Recorded %s purchase %s of course %s by %s",
            status, purchase_id, course_id, student_id,
        )
        return self.get_purchase(purchase_id)

    def purchase_free_course(self, course_id: str, student_id: str) -> Row:
        """Record a completed zero-amount purchase of a free course.

        Raises:
            PurchaseError: If the course is missing, not free, or already owned.
        """
        course = (
            self.db.prepare("SELECT id, is_free, currency FROM courses WHERE id = ?")
            .bind(course_id)
            .first()
        )
        if course is None:
            raise PurchaseError("Course not found")
        if not course["is_free"]:
            raise PurchaseError("This course is not free")
        return self.create_purchase(
            course_id,
            student_id,
            amount=0,
            currency=course["currency"] or DEFAULT_CURRENCY,
            status=STATUS_COMPLETED,
        )

    def complete_purchase(self, purchase_id: str) -> Optional[Row]:
        self.db.prepare(
            "UPDATE course_purchases SET status = ?, completed_at = ? WHERE id = ?"
        ).bind(STATUS_COMPLETED, now_ts(), purchase_id).run()
        return self.get_purchase(purchase_id)

    def complete_by_payment_session(self, payment_session_id: str) -> Optional[Row]:
        """Mark the purchase created for a checkout session as completed."""
        row = (
            self.db.prepare("SELECT id FROM course_purchases WHERE payment_session_id = ?")
            .bind(payment_session_id)
            .first()
        )
        if row is None:
            logger.warning("No purchase for payment session %s", payment_session_id)
            return None
        return self.complete_purchase(row["id"])

    def list_purchasers(self, course_id: str) -> List[Row]:
        result = (
            self.db.prepare(
                "SELECT p.id AS purchase_id, p.amount, p.currency, p.status, "
                "p.purchased_at, p.completed_at, u.id AS student_id, u.email, "
                "u.username, u.display_name "
                "FROM course_purchases p JOIN users u ON u.id = p.student_id "
                "WHERE p.course_id = ? ORDER BY p.purchased_at DESC"
            )
            .bind(course_id)
            .all()
        )
        return result.results

    def list_purchases_for_student(self, student_id: str) -> List[Row]:
        result = (
            self.db.prepare(
                "SELECT p.*, c.title AS course_title, c.space_id "
                "FROM course_purchases p JOIN courses c ON c.id = p.course_id "
                "WHERE p.student_id = ? ORDER BY p.purchased_at DESC"
            )
            .bind(student_id)
            .all()
        )
        return result.results
