"""Tests for spaces, courses, lessons, enrollment, purchases and progress."""

from unittest.mock import patch

from pydantic import ValidationError

from core.exceptions import EnrollmentLimitError, PurchaseError
from schemas.course import CourseCreate, CourseUpdate, LessonCreate, LessonUpdate
from schemas.space import SpaceCreate, SpaceUpdate
from support import SQLiteTestCase
from utils.course_manager import CourseManager
from utils.enrollment_manager import EnrollmentManager
from utils.lesson_manager import LessonManager
from utils.progress_manager import ProgressManager
from utils.purchase_manager import PurchaseManager
from utils.space_manager import SpaceManager


class MarketplaceTestCase(SQLiteTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.spaces = SpaceManager(self.db)
        self.courses = CourseManager(self.db)
        self.lessons = LessonManager(self.db)
        self.enrollment = EnrollmentManager(self.db)
        self.purchases = PurchaseManager(self.db)
        self.progress = ProgressManager(self.db)

        self.instructor = self.make_instructor()
        self.student = self.make_student()
        self.space = self.spaces.create_space(
            self.instructor["id"], SpaceCreate(title="Python Dojo", slug="python-dojo")
        )

    def make_course(self, **fields):
        fields.setdefault("title", "Intro")
        return self.courses.create_course(CourseCreate(space_id=self.space["id"], **fields))


class TestSpaceManager(MarketplaceTestCase):
    def test_create_and_lookup(self) -> None:
        self.assertIs(self.space["is_active"], True)
        self.assertIsNone(self.space["landing_page_content"])
        found = self.spaces.get_space_by_slug(self.instructor["id"], "python-dojo")
        self.assertEqual(found["id"], self.space["id"])
        self.assertIsNone(self.spaces.get_space_by_slug(self.instructor["id"], "nope"))

    def test_list_newest_first(self) -> None:
        second = self.spaces.create_space(
            self.instructor["id"], SpaceCreate(title="Second", slug="second")
        )
        listed = self.spaces.list_spaces_by_instructor(self.instructor["id"])
        self.assertEqual([s["id"] for s in listed], [second["id"], self.space["id"]])

    def test_landing_page_round_trip(self) -> None:
        content = {"blocks": [{"type": "hero", "title": "ようこそ"}], "version": 2}
        updated = self.spaces.update_space(
            self.space["id"], SpaceUpdate(landing_page_content=content)
        )
        self.assertEqual(updated["landing_page_content"], content)

    def test_malformed_landing_page_reads_as_none(self) -> None:
        self.db.prepare("UPDATE spaces SET landing_page_content = ? WHERE id = ?").bind(
            "[broken", self.space["id"]
        ).run()
        with self.assertLogs("utils.converters", level="ERROR"):
            space = self.spaces.get_space_by_id(self.space["id"])
        self.assertIsNone(space["landing_page_content"])
        self.assertEqual(space["title"], "Python Dojo")

    def test_partial_update(self) -> None:
        before = self.spaces.update_space(
            self.space["id"], SpaceUpdate(description="desc", max_students=10)
        )
        with patch("utils.sql_builder.now_ts", return_value=before["updated_at"] + 7):
            after = self.spaces.update_space(self.space["id"], SpaceUpdate(is_active=False))

        self.assertIs(after["is_active"], False)
        self.assertEqual(after["updated_at"], before["updated_at"] + 7)
        for column in before:
            if column not in ("is_active", "updated_at"):
                self.assertEqual(after[column], before[column], column)

    def test_delete_cascades(self) -> None:
        course = self.make_course()
        self.assertTrue(self.spaces.delete_space(self.space["id"]))
        self.assertIsNone(self.courses.get_course_by_id(course["id"]))
        self.assertFalse(self.spaces.delete_space(self.space["id"]))

    def test_duplicate_slug_is_not_inserted(self) -> None:
        again = self.spaces.create_space(
            self.instructor["id"], SpaceCreate(title="Again", slug="python-dojo")
        )
        self.assertIsNone(again)
        self.assertEqual(len(self.spaces.list_spaces_by_instructor(self.instructor["id"])), 1)


class TestCourseManager(MarketplaceTestCase):
    def test_create_defaults(self) -> None:
        course = self.make_course()
        self.assertIs(course["is_free"], False)
        self.assertIs(course["is_published"], False)
        self.assertEqual(course["currency"], "JPY")
        self.assertEqual(course["price"], 0)

    def test_published_filter(self) -> None:
        draft = self.make_course(title="Draft")
        live = self.make_course(title="Live", is_published=True)
        all_ids = {c["id"] for c in self.courses.list_courses_by_space(self.space["id"])}
        self.assertEqual(all_ids, {draft["id"], live["id"]})
        published = self.courses.list_courses_by_space(self.space["id"], published_only=True)
        self.assertEqual([c["id"] for c in published], [live["id"]])

    def test_list_by_space_ids(self) -> None:
        course = self.make_course()
        self.assertEqual(self.courses.list_courses_by_space_ids([]), [])
        found = self.courses.list_courses_by_space_ids([self.space["id"], "other"])
        self.assertEqual([c["id"] for c in found], [course["id"]])
        live = self.make_course(title="Live", is_published=True)
        published = self.courses.list_courses_by_space_ids([self.space["id"]], published_only=True)
        self.assertEqual([c["id"] for c in published], [live["id"]])

    def test_update_course(self) -> None:
        course = self.make_course(slug="intro", price=1200)
        updated = self.courses.update_course(course["id"], CourseUpdate(is_published=True))
        self.assertIs(updated["is_published"], True)
        self.assertEqual(updated["price"], 1200)
        self.assertEqual(self.courses.get_course_by_slug(self.space["id"], "intro")["id"], course["id"])

    def test_null_is_rejected_for_required_columns(self) -> None:
        with self.assertRaises(ValidationError):
            CourseUpdate(title=None)
        with self.assertRaises(ValidationError):
            LessonUpdate(is_published=None)
        with self.assertRaises(ValidationError):
            SpaceUpdate(slug=None)
        self.assertEqual(CourseUpdate(description=None).model_fields_set, {"description"})
        self.assertEqual(CourseUpdate().model_fields_set, set())

    def test_free_course_is_open_to_everyone(self) -> None:
        course = self.make_course(is_free=True)
        self.assertTrue(self.courses.can_access(course["id"], None))
        self.assertTrue(self.courses.can_access(course["id"], self.student["id"]))

    def test_paid_course_requires_completed_purchase(self) -> None:
        course = self.make_course(price=3000)
        self.assertFalse(self.courses.can_access(course["id"], None))
        self.assertFalse(self.courses.can_access(course["id"], self.student["id"]))

        purchase = self.purchases.create_purchase(
            course["id"], self.student["id"], amount=3000, payment_session_id="cs_1"
        )
        self.assertFalse(self.courses.can_access(course["id"], self.student["id"]))

        self.purchases.complete_purchase(purchase["id"])
        self.assertTrue(self.courses.has_student_purchased(course["id"], self.student["id"]))
        self.assertTrue(self.courses.can_access(course["id"], self.student["id"]))

    def test_missing_course_is_not_accessible(self) -> None:
        self.assertFalse(self.courses.can_access("missing", self.student["id"]))


class TestLessonManager(MarketplaceTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.course = self.make_course()

    def add_lesson(self, title: str, **fields):
        return self.lessons.create_lesson(
            LessonCreate(course_id=self.course["id"], title=title, **fields)
        )

    def test_lessons_append_in_order(self) -> None:
        first = self.add_lesson("One")
        second = self.add_lesson("Two")
        self.assertEqual(first["order_index"], 0)
        self.assertEqual(second["order_index"], 1)

    def test_explicit_order(self) -> None:
        self.add_lesson("Later", order_index=5)
        early = self.add_lesson("Early", order_index=1)
        appended = self.add_lesson("Appended")
        titles = [l["title"] for l in self.lessons.list_lessons_by_course(self.course["id"])]
        self.assertEqual(titles, ["Early", "Later", "Appended"])
        self.assertEqual(early["order_index"], 1)
        self.assertEqual(appended["order_index"], 6)

    def test_published_filter_and_update(self) -> None:
        lesson = self.add_lesson("Hidden")
        self.add_lesson("Shown", is_published=True)
        shown = self.lessons.list_lessons_by_course(self.course["id"], published_only=True)
        self.assertEqual([l["title"] for l in shown], ["Shown"])

        updated = self.lessons.update_lesson(lesson["id"], LessonUpdate(is_published=True))
        self.assertIs(updated["is_published"], True)
        self.assertEqual(updated["title"], "Hidden")

    def test_delete(self) -> None:
        lesson = self.add_lesson("Gone")
        self.assertTrue(self.lessons.delete_lesson(lesson["id"]))
        self.assertIsNone(self.lessons.get_lesson_by_id(lesson["id"]))
        self.assertFalse(self.lessons.delete_lesson(lesson["id"]))


class TestEnrollmentManager(MarketplaceTestCase):
    def test_enroll_is_idempotent(self) -> None:
        first = self.enrollment.enroll(self.space["id"], self.student["id"])
        second = self.enrollment.enroll(self.space["id"], self.student["id"])
        self.assertEqual(first["id"], second["id"])
        self.assertEqual(self.enrollment.count_active(self.space["id"]), 1)
        self.assertTrue(self.enrollment.is_enrolled(self.space["id"], self.student["id"]))

    def test_enrollment_limit(self) -> None:
        self.spaces.update_space(self.space["id"], SpaceUpdate(max_students=1))
        self.enrollment.enroll(self.space["id"], self.student["id"])
        other = self.make_student(email="other@example.com")

        with self.assertRaises(EnrollmentLimitError) as ctx:
            self.enrollment.enroll(self.space["id"], other["id"])
        self.assertEqual(ctx.exception.max_students, 1)
        self.assertFalse(self.enrollment.is_enrolled(self.space["id"], other["id"]))

        # existing members are not blocked by the cap
        self.enrollment.enroll(self.space["id"], self.student["id"])

    def test_listings(self) -> None:
        self.enrollment.enroll(self.space["id"], self.student["id"])
        students = self.enrollment.list_students(self.space["id"])
        self.assertEqual([s["id"] for s in students], [self.student["id"]])
        self.assertNotIn("password_hash", students[0])

        spaces = self.enrollment.list_spaces_for_student(self.student["id"])
        self.assertEqual([s["id"] for s in spaces], [self.space["id"]])

    def test_unenroll(self) -> None:
        self.enrollment.enroll(self.space["id"], self.student["id"])
        self.assertTrue(self.enrollment.unenroll(self.space["id"], self.student["id"]))
        self.assertFalse(self.enrollment.unenroll(self.space["id"], self.student["id"]))
        self.assertFalse(self.enrollment.is_enrolled(self.space["id"], self.student["id"]))

    def test_update_status(self) -> None:
        self.enrollment.enroll(self.space["id"], self.student["id"])
        updated = self.enrollment.update_status(self.space["id"], self.student["id"], "suspended")
        self.assertEqual(updated["status"], "suspended")
        self.assertFalse(self.enrollment.is_enrolled(self.space["id"], self.student["id"]))
        self.assertEqual(self.enrollment.count_active(self.space["id"]), 0)

        with self.assertRaises(ValueError):
            self.enrollment.update_status(self.space["id"], self.student["id"], "expelled")
        self.assertIsNone(self.enrollment.update_status(self.space["id"], "missing", "active"))

    def test_enroll_when_row_appears_after_check(self) -> None:
        first = self.enrollment.enroll(self.space["id"], self.student["id"])
        with patch.object(self.enrollment, "get_enrollment", side_effect=[None, first]):
            second = self.enrollment.enroll(self.space["id"], self.student["id"])
        self.assertEqual(second["id"], first["id"])
        self.assertEqual(self.enrollment.count_active(self.space["id"]), 1)


class TestPurchaseManager(MarketplaceTestCase):
    def test_free_purchase(self) -> None:
        course = self.make_course(is_free=True)
        purchase = self.purchases.purchase_free_course(course["id"], self.student["id"])
        self.assertEqual(purchase["status"], "completed")
        self.assertEqual(purchase["amount"], 0)
        self.assertIsNotNone(purchase["completed_at"])

        with self.assertRaises(PurchaseError):
            self.purchases.purchase_free_course(course["id"], self.student["id"])

    def test_purchase_when_row_appears_after_check(self) -> None:
        course = self.make_course(is_free=True)
        self.purchases.purchase_free_course(course["id"], self.student["id"])
        with patch.object(self.purchases, "get_purchase_for", return_value=None):
            with self.assertRaisesRegex(PurchaseError, "Already purchased"):
                self.purchases.purchase_free_course(course["id"], self.student["id"])
        self.assertEqual(len(self.purchases.list_purchasers(course["id"])), 1)

    def test_free_purchase_rejects_paid_and_missing(self) -> None:
        paid = self.make_course(price=500)
        with self.assertRaisesRegex(PurchaseError, "not free"):
            self.purchases.purchase_free_course(paid["id"], self.student["id"])
        with self.assertRaisesRegex(PurchaseError, "not found"):
            self.purchases.purchase_free_course("missing", self.student["id"])

    def test_complete_by_payment_session(self) -> None:
        course = self.make_course(price=500)
        pending = self.purchases.create_purchase(
            course["id"], self.student["id"], amount=500, payment_session_id="cs_42"
        )
        self.assertEqual(pending["status"], "pending")
        self.assertIsNone(pending["completed_at"])

        done = self.purchases.complete_by_payment_session("cs_42")
        self.assertEqual(done["status"], "completed")
        self.assertIsNone(self.purchases.complete_by_payment_session("cs_unknown"))

    def test_listings(self) -> None:
        course = self.make_course(is_free=True, title="Free")
        self.purchases.purchase_free_course(course["id"], self.student["id"])

        purchasers = self.purchases.list_purchasers(course["id"])
        self.assertEqual([p["student_id"] for p in purchasers], [self.student["id"]])
        mine = self.purchases.list_purchases_for_student(self.student["id"])
        self.assertEqual(mine[0]["course_title"], "Free")


class TestProgressManager(MarketplaceTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.course = self.make_course(is_free=True)
        self.lesson_ids = [
            self.lessons.create_lesson(
                LessonCreate(course_id=self.course["id"], title=f"L{i}", is_published=True)
            )["id"]
            for i in range(4)
        ]

    def test_mark_is_idempotent(self) -> None:
        self.assertTrue(self.progress.mark_lesson_complete(self.lesson_ids[0], self.student["id"]))
        self.assertFalse(self.progress.mark_lesson_complete(self.lesson_ids[0], self.student["id"]))

    def test_course_progress(self) -> None:
        for lesson_id in self.lesson_ids[:2]:
            self.progress.mark_lesson_complete(lesson_id, self.student["id"])

        summary = self.progress.get_course_progress(self.student["id"], self.course["id"])
        self.assertEqual(summary["completed_lessons"], 2)
        self.assertEqual(summary["total_lessons"], 4)
        self.assertEqual(summary["percentage"], 50.0)
        self.assertEqual(summary["completed_lesson_ids"], self.lesson_ids[:2])

    def test_unmark(self) -> None:
        self.progress.mark_lesson_complete(self.lesson_ids[1], self.student["id"])
        self.assertTrue(self.progress.unmark_lesson_complete(self.lesson_ids[1], self.student["id"]))
        self.assertEqual(
            self.progress.list_completed_lesson_ids(self.student["id"], self.course["id"]), []
        )

    def test_empty_course(self) -> None:
        empty = self.make_course(title="Empty")
        summary = self.progress.get_course_progress(self.student["id"], empty["id"])
        self.assertEqual(summary["total_lessons"], 0)
        self.assertEqual(summary["percentage"], 0.0)

    def test_unpublished_lessons_are_not_counted(self) -> None:
        self.progress.mark_lesson_complete(self.lesson_ids[0], self.student["id"])
        self.lessons.update_lesson(self.lesson_ids[0], LessonUpdate(is_published=False))

        summary = self.progress.get_course_progress(self.student["id"], self.course["id"])
        self.assertEqual(summary["completed_lessons"], 0)
        self.assertEqual(summary["total_lessons"], 3)
        self.assertEqual(summary["percentage"], 0.0)
        self.assertEqual(summary["completed_lesson_ids"], [])

        self.progress.mark_lesson_complete(self.lesson_ids[1], self.student["id"])
        summary = self.progress.get_course_progress(self.student["id"], self.course["id"])
        self.assertEqual(summary["completed_lessons"], 1)
        self.assertEqual(summary["percentage"], 33.3)
        # The stored completion survives and counts again once republished.
        self.assertEqual(
            len(self.progress.list_completed_lesson_ids(self.student["id"], self.course["id"])), 2
        )
