"""Space schema definitions."""

from typing import Any, ClassVar, Optional, Tuple

from pydantic import BaseModel, Field

from schemas.partial import PartialUpdate


class SpaceCreate(BaseModel):
    title: str
    slug: str = Field(description="URL slug, unique per instructor.")
    description: Optional[str] = None
    max_students: Optional[int] = Field(
        default=None, ge=1, description="Enrollment cap; None means unlimited."
    )
    is_active: bool = True
    landing_page_content: Optional[Any] = Field(
        default=None, description="Landing page editor document, stored as JSON."
    )


class SpaceUpdate(PartialUpdate):
    """Partial space update; only fields that are set are written."""

    required_columns: ClassVar[Tuple[str, ...]] = ("title", "slug", "is_active")

    title: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    max_students: Optional[int] = Field(default=None, ge=1)
    is_active: Optional[bool] = None
    landing_page_content: Optional[Any] = None
