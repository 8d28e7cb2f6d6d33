"""Space routes."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from api.routes.auth import get_current_instructor
from core.database import Row
from core.dependencies import EnrollmentManagerDep, SpaceManagerDep, UserManagerDep
from core.exceptions import EnrollmentLimitError
from schemas.enrollment import AddStudentRequest, EnrollmentStatusUpdate
from schemas.space import SpaceCreate, SpaceUpdate
from utils.converters import strip_credentials

router = APIRouter(prefix="/api/spaces", tags=["Space"])


def require_owned_space(space_manager, space_id: str, instructor: Row) -> Row:
    """Fetch a space and check it belongs to the instructor.

    Raises:
        HTTPException: 404 if missing, 403 if owned by someone else.
    """
    space = space_manager.get_space_by_id(space_id)
    if space is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Space not found")
    if space["instructor_id"] != instructor["id"]:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return space


@router.get("", summary="List own spaces")
def list_spaces(
    space_manager: SpaceManagerDep,
    instructor: Row = Depends(get_current_instructor),
) -> List[dict]:
    return space_manager.list_spaces_by_instructor(instructor["id"])


@router.get("/by-slug/{username}/{slug}", summary="Public space lookup")
def get_space_by_slug(
    username: str,
    slug: str,
    space_manager: SpaceManagerDep,
    user_manager: UserManagerDep,
) -> dict:
    instructor = user_manager.get_user_by_username(username, "instructor")
    space = space_manager.get_space_by_slug(instructor["id"], slug) if instructor else None
    if space is None or not space["is_active"]:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Space not found")
    return space


@router.post("", summary="Create a space")
def create_space(
    req: SpaceCreate,
    space_manager: SpaceManagerDep,
    instructor: Row = Depends(get_current_instructor),
) -> dict:
    if space_manager.get_space_by_slug(instructor["id"], req.slug):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Slug already in use")
    space = space_manager.create_space(instructor["id"], req)
    if space is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Slug already in use")
    return space


@router.patch("/{space_id}", summary="Update a space")
def update_space(
    space_id: str,
    req: SpaceUpdate,
    space_manager: SpaceManagerDep,
    instructor: Row = Depends(get_current_instructor),
) -> dict:
    space = require_owned_space(space_manager, space_id, instructor)
    if req.slug and req.slug != space["slug"]:
        if space_manager.get_space_by_slug(instructor["id"], req.slug):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Slug already in use")
    return space_manager.update_space(space_id, req) or space


@router.delete("/{space_id}", summary="Delete a space")
def delete_space(
    space_id: str,
    space_manager: SpaceManagerDep,
    instructor: Row = Depends(get_current_instructor),
) -> dict:
    require_owned_space(space_manager, space_id, instructor)
    space_manager.delete_space(space_id)
    return {"success": True}


@router.get("/{space_id}/students", summary="List enrolled students")
def list_space_students(
    space_id: str,
    space_manager: SpaceManagerDep,
    enrollment_manager: EnrollmentManagerDep,
    instructor: Row = Depends(get_current_instructor),
) -> List[dict]:
    require_owned_space(space_manager, space_id, instructor)
    return enrollment_manager.list_students(space_id)


@router.post("/{space_id}/students", summary="Add a registered student to a space")
def add_space_student(
    space_id: str,
    req: AddStudentRequest,
    space_manager: SpaceManagerDep,
    user_manager: UserManagerDep,
    enrollment_manager: EnrollmentManagerDep,
    instructor: Row = Depends(get_current_instructor),
) -> dict:
    """Enroll a student by email on the instructor's behalf.

    Raises:
        HTTPException: 404 if no student has that email, 400 if already in
            the space, 409 if the space is full.
    """
    require_owned_space(space_manager, space_id, instructor)
    student = user_manager.get_user_by_email(req.email, "student")
    if student is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No student is registered with this email",
        )
    if enrollment_manager.get_enrollment(space_id, student["id"]):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Student is already in this space",
        )
    try:
        enrollment = enrollment_manager.enroll(space_id, student["id"])
    except EnrollmentLimitError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return {"enrollment": enrollment, "student": strip_credentials(student)}


@router.patch("/{space_id}/students/{student_id}", summary="Change a student's status")
def update_space_student(
    space_id: str,
    student_id: str,
    req: EnrollmentStatusUpdate,
    space_manager: SpaceManagerDep,
    enrollment_manager: EnrollmentManagerDep,
    instructor: Row = Depends(get_current_instructor),
) -> dict:
    require_owned_space(space_manager, space_id, instructor)
    enrollment = enrollment_manager.update_status(space_id, student_id, req.status)
    if enrollment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Enrollment not found")
    return enrollment


@router.delete("/{space_id}/students/{student_id}", summary="Remove a student from a space")
def remove_space_student(
    space_id: str,
    student_id: str,
    space_manager: SpaceManagerDep,
    enrollment_manager: EnrollmentManagerDep,
    instructor: Row = Depends(get_current_instructor),
) -> dict:
    require_owned_space(space_manager, space_id, instructor)
    if not enrollment_manager.unenroll(space_id, student_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Enrollment not found")
    return {"success": True}
