"""Course and lesson routes.

Ownership of a lesson is checked by walking lesson -> course -> space ->
instructor.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from api.routes.auth import get_current_instructor, get_optional_user
from api.routes.spaces import require_owned_space
from core.database import Row
from core.dependencies import (
    CourseManagerDep,
    LessonManagerDep,
    PurchaseManagerDep,
    SpaceManagerDep,
)
from schemas.course import CourseCreate, CourseUpdate, LessonCreate, LessonUpdate
from schemas.enrollment import CourseAccess

router = APIRouter(tags=["Course"])


def require_owned_course(space_manager, course_manager, course_id: str, instructor: Row) -> Row:
    course = course_manager.get_course_by_id(course_id)
    if course is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found")
    require_owned_space(space_manager, course["space_id"], instructor)
    return course


def require_owned_lesson(
    space_manager, course_manager, lesson_manager, lesson_id: str, instructor: Row
) -> Row:
    lesson = lesson_manager.get_lesson_by_id(lesson_id)
    if lesson is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lesson not found")
    require_owned_course(space_manager, course_manager, lesson["course_id"], instructor)
    return lesson


def owns_space(space_manager, space_id: str, user: Optional[Row]) -> bool:
    if user is None or user["role"] != "instructor":
        return False
    space = space_manager.get_space_by_id(space_id)
    return space is not None and space["instructor_id"] == user["id"]


def require_visible_course(space_manager, course: Optional[Row], user: Optional[Row]) -> Row:
    """Drafts are visible only to the instructor who owns the space.

    Raises:
        HTTPException: 404 if the course is missing or a draft the caller
            does not own.
    """
    if course is None or (
        not course["is_published"] and not owns_space(space_manager, course["space_id"], user)
    ):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found")
    return course


@router.get("/api/spaces/{space_id}/courses", summary="List courses in a space")
def list_courses(
    space_id: str,
    space_manager: SpaceManagerDep,
    course_manager: CourseManagerDep,
    published_only: bool = True,
    user: Optional[Row] = Depends(get_optional_user),
) -> List[dict]:
    """List a space's courses. Only the owner can include drafts."""
    if not published_only and not owns_space(space_manager, space_id, user):
        published_only = True
    return course_manager.list_courses_by_space(space_id, published_only=published_only)


@router.get("/api/spaces/{space_id}/courses/by-slug/{slug}", summary="Get a course by slug")
def get_course_by_slug(
    space_id: str,
    slug: str,
    space_manager: SpaceManagerDep,
    course_manager: CourseManagerDep,
    user: Optional[Row] = Depends(get_optional_user),
) -> dict:
    course = course_manager.get_course_by_slug(space_id, slug)
    return require_visible_course(space_manager, course, user)


@router.get("/api/courses/{course_id}", summary="Get a course")
def get_course(
    course_id: str,
    space_manager: SpaceManagerDep,
    course_manager: CourseManagerDep,
    user: Optional[Row] = Depends(get_optional_user),
) -> dict:
    course = course_manager.get_course_by_id(course_id)
    return require_visible_course(space_manager, course, user)


@router.get(
    "/api/courses/{course_id}/access",
    response_model=CourseAccess,
    summary="Whether the caller may view a course",
)
def course_access(
    course_id: str,
    course_manager: CourseManagerDep,
    user: Optional[Row] = Depends(get_optional_user),
) -> CourseAccess:
    student_id = user["id"] if user and user["role"] == "student" else None
    return CourseAccess(
        course_id=course_id,
        can_access=course_manager.can_access(course_id, student_id),
    )


@router.post("/api/courses", summary="Create a course")
def create_course(
    req: CourseCreate,
    space_manager: SpaceManagerDep,
    course_manager: CourseManagerDep,
    instructor: Row = Depends(get_current_instructor),
) -> dict:
    require_owned_space(space_manager, req.space_id, instructor)
    return course_manager.create_course(req)


@router.patch("/api/courses/{course_id}", summary="Update a course")
def update_course(
    course_id: str,
    req: CourseUpdate,
    space_manager: SpaceManagerDep,
    course_manager: CourseManagerDep,
    instructor: Row = Depends(get_current_instructor),
) -> dict:
    course = require_owned_course(space_manager, course_manager, course_id, instructor)
    return course_manager.update_course(course_id, req) or course


@router.delete("/api/courses/{course_id}", summary="Delete a course")
def delete_course(
    course_id: str,
    space_manager: SpaceManagerDep,
    course_manager: CourseManagerDep,
    instructor: Row = Depends(get_current_instructor),
) -> dict:
    require_owned_course(space_manager, course_manager, course_id, instructor)
    course_manager.delete_course(course_id)
    return {"success": True}


@router.get("/api/courses/{course_id}/purchasers", summary="List purchasers")
def list_purchasers(
    course_id: str,
    space_manager: SpaceManagerDep,
    course_manager: CourseManagerDep,
    purchase_manager: PurchaseManagerDep,
    instructor: Row = Depends(get_current_instructor),
) -> List[dict]:
    require_owned_course(space_manager, course_manager, course_id, instructor)
    return purchase_manager.list_purchasers(course_id)


@router.get("/api/courses/{course_id}/lessons", summary="List lessons")
def list_lessons(
    course_id: str,
    space_manager: SpaceManagerDep,
    course_manager: CourseManagerDep,
    lesson_manager: LessonManagerDep,
    user: Optional[Row] = Depends(get_optional_user),
) -> List[dict]:
    """List lessons. The owner sees every lesson; others need access."""
    course = course_manager.get_course_by_id(course_id)
    if course is not None and owns_space(space_manager, course["space_id"], user):
        return lesson_manager.list_lessons_by_course(course_id)
    require_visible_course(space_manager, course, user)

    student_id = user["id"] if user and user["role"] == "student" else None
    if not course_manager.can_access(course_id, student_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Purchase required")
    return lesson_manager.list_lessons_by_course(course_id, published_only=True)


@router.post("/api/lessons", summary="Create a lesson")
def create_lesson(
    req: LessonCreate,
    space_manager: SpaceManagerDep,
    course_manager: CourseManagerDep,
    lesson_manager: LessonManagerDep,
    instructor: Row = Depends(get_current_instructor),
) -> dict:
    require_owned_course(space_manager, course_manager, req.course_id, instructor)
    return lesson_manager.create_lesson(req)


@router.patch("/api/lessons/{lesson_id}", summary="Update a lesson")
def update_lesson(
    lesson_id: str,
    req: LessonUpdate,
    space_manager: SpaceManagerDep,
    course_manager: CourseManagerDep,
    lesson_manager: LessonManagerDep,
    instructor: Row = Depends(get_current_instructor),
) -> dict:
    lesson = require_owned_lesson(
        space_manager, course_manager, lesson_manager, lesson_id, instructor
    )
    return lesson_manager.update_lesson(lesson_id, req) or lesson


@router.delete("/api/lessons/{lesson_id}", summary="Delete a lesson")
def delete_lesson(
    lesson_id: str,
    space_manager: SpaceManagerDep,
    course_manager: CourseManagerDep,
    lesson_manager: LessonManagerDep,
    instructor: Row = Depends(get_current_instructor),
) -> dict:
    require_owned_lesson(space_manager, course_manager, lesson_manager, lesson_id, instructor)
    lesson_manager.delete_lesson(lesson_id)
    return {"success": True}
