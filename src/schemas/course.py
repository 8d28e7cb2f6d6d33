"""Course and lesson schema definitions."""

from typing import Any, ClassVar, Optional, Tuple

from pydantic import BaseModel, Field

from config import DEFAULT_CURRENCY
from schemas.partial import PartialUpdate


class CourseCreate(BaseModel):
    space_id: str
    title: str
    description: Optional[str] = None
    slug: Optional[str] = None
    price: float = Field(default=0, ge=0)
    currency: str = DEFAULT_CURRENCY
    is_free: bool = False
    is_published: bool = False
    thumbnail_url: Optional[str] = None
    course_page_content: Optional[Any] = None


class CourseUpdate(PartialUpdate):
    """Partial course update; only fields that are set are written."""

    required_columns: ClassVar[Tuple[str, ...]] = (
        "title", "price", "currency", "is_free", "is_published",
    )

    title: Optional[str] = None
    description: Optional[str] = None
    slug: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    currency: Optional[str] = None
    is_free: Optional[bool] = None
    is_published: Optional[bool] = None
    thumbnail_url: Optional[str] = None
    course_page_content: Optional[Any] = None


class LessonCreate(BaseModel):
    course_id: str
    title: str
    description: Optional[str] = None
    content: Optional[str] = None
    video_url: Optional[str] = None
    video_type: Optional[str] = None
    duration: Optional[int] = Field(default=None, ge=0, description="Seconds.")
    order_index: Optional[int] = Field(
        default=None, description="Position in the course; appended when omitted."
    )
    is_published: bool = False


class LessonUpdate(PartialUpdate):
    """Partial lesson update; only fields that are set are written."""

    required_columns: ClassVar[Tuple[str, ...]] = ("title", "order_index", "is_published")

    title: Optional[str] = None
    description: Optional[str] = None
    content: Optional[str] = None
    video_url: Optional[str] = None
    video_type: Optional[str] = None
    duration: Optional[int] = Field(default=None, ge=0)
    order_index: Optional[int] = None
    is_published: Optional[bool] = None
