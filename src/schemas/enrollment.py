"""Enrollment, purchase and progress schema definitions."""

from typing import List, Literal

from pydantic import BaseModel, Field

EnrollmentStatus = Literal["active", "inactive", "suspended", "completed"]


class EnrollRequest(BaseModel):
    space_id: str


class AddStudentRequest(BaseModel):
    email: str = Field(description="Email of an already registered student.")


class EnrollmentStatusUpdate(BaseModel):
    status: EnrollmentStatus


class FreePurchaseRequest(BaseModel):
    course_id: str


class LessonProgressRequest(BaseModel):
    lesson_id: str
    is_completed: bool = True


class CourseAccess(BaseModel):
    course_id: str
    can_access: bool


class CourseProgress(BaseModel):
    course_id: str
    completed_lessons: int
    total_lessons: int
    percentage: float
    completed_lesson_ids: List[str]
