"""Student-facing enrollment, free purchase and progress routes."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from api.routes.auth import get_current_student
from core.database import Row
from core.dependencies import (
    CourseManagerDep,
    EnrollmentManagerDep,
    LessonManagerDep,
    ProgressManagerDep,
    PurchaseManagerDep,
    SpaceManagerDep,
)
from core.exceptions import EnrollmentLimitError, PurchaseError
from schemas.enrollment import (
    CourseProgress,
    EnrollRequest,
    FreePurchaseRequest,
    LessonProgressRequest,
)
from utils.enrollment_manager import STATUS_ACTIVE

router = APIRouter(prefix="/api/enrollment", tags=["Enrollment"])


@router.post("/spaces", summary="Enroll in a space")
def enroll(
    req: EnrollRequest,
    space_manager: SpaceManagerDep,
    enrollment_manager: EnrollmentManagerDep,
    student: Row = Depends(get_current_student),
) -> dict:
    space = space_manager.get_space_by_id(req.space_id)
    if space is None or not space["is_active"]:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Space not found")
    try:
        return enrollment_manager.enroll(req.space_id, student["id"])
    except EnrollmentLimitError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.get("/spaces", summary="List own spaces")
def my_spaces(
    enrollment_manager: EnrollmentManagerDep,
    student: Row = Depends(get_current_student),
) -> List[dict]:
    return enrollment_manager.list_spaces_for_student(student["id"])


@router.get("/courses", summary="Published courses in the student's spaces")
def my_courses(
    course_manager: CourseManagerDep,
    enrollment_manager: EnrollmentManagerDep,
    student: Row = Depends(get_current_student),
) -> List[dict]:
    space_ids = [
        s["id"]
        for s in enrollment_manager.list_spaces_for_student(student["id"])
        if s["status"] == STATUS_ACTIVE
    ]
    return course_manager.list_courses_by_space_ids(space_ids, published_only=True)


@router.post("/purchase-free", summary="Claim a free course")
def purchase_free(
    req: FreePurchaseRequest,
    course_manager: CourseManagerDep,
    purchase_manager: PurchaseManagerDep,
    student: Row = Depends(get_current_student),
) -> dict:
    if course_manager.get_course_by_id(req.course_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found")
    try:
        purchase = purchase_manager.purchase_free_course(req.course_id, student["id"])
    except PurchaseError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"success": True, "purchase": purchase}


@router.get("/purchases", summary="List own purchases")
def my_purchases(
    purchase_manager: PurchaseManagerDep,
    student: Row = Depends(get_current_student),
) -> List[dict]:
    return purchase_manager.list_purchases_for_student(student["id"])


@router.post("/progress", summary="Mark a lesson complete or incomplete")
def update_progress(
    req: LessonProgressRequest,
    course_manager: CourseManagerDep,
    lesson_manager: LessonManagerDep,
    progress_manager: ProgressManagerDep,
    student: Row = Depends(get_current_student),
) -> CourseProgress:
    lesson = lesson_manager.get_lesson_by_id(req.lesson_id)
    if lesson is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lesson not found")
    if not course_manager.can_access(lesson["course_id"], student["id"]):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Purchase required")

    if req.is_completed:
        progress_manager.mark_lesson_complete(req.lesson_id, student["id"])
    else:
        progress_manager.unmark_lesson_complete(req.lesson_id, student["id"])
    return CourseProgress(
        **progress_manager.get_course_progress(student["id"], lesson["course_id"])
    )


@router.get("/progress/{course_id}", response_model=CourseProgress, summary="Course progress")
def get_progress(
    course_id: str,
    progress_manager: ProgressManagerDep,
    student: Row = Depends(get_current_student),
) -> CourseProgress:
    return CourseProgress(**progress_manager.get_course_progress(student["id"], course_id))
