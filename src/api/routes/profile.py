"""Public instructor profile routes."""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, status

from core.dependencies import UserManagerDep
from schemas.user import PublicProfile
from utils.converters import strip_credentials

router = APIRouter(prefix="/api/profile", tags=["Profile"])


@router.get("", summary="Look up an instructor profile")
def get_profile(
    user_manager: UserManagerDep,
    username: Optional[str] = None,
    id: Optional[str] = None,
) -> dict:
    """Find an instructor by username, or by id when no username is given.

    Raises:
        HTTPException: 400 without a query, 404 if no instructor matches.
    """
    if not username and not id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="username or id is required",
        )

    if username:
        user = user_manager.get_user_by_username(username, "instructor")
    else:
        user = user_manager.get_user_by_id(id)
        if user is not None and user["role"] != "instructor":
            user = None

    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return {"profile": PublicProfile(**strip_credentials(user))}


@router.get("/instructors", response_model=List[PublicProfile], summary="List instructors")
def list_instructor_profiles(user_manager: UserManagerDep) -> List[PublicProfile]:
    return [PublicProfile(**strip_credentials(u)) for u in user_manager.list_instructors()]
