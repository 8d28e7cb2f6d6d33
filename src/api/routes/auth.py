"""Authentication routes.

This module handles HTTP endpoints for registration, login/logout with
cookie sessions, and password resets.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Cookie, Depends, HTTPException, Response, status

from config import SESSION_COOKIE_NAME, SESSION_COOKIE_SECURE, SESSION_TTL_SECONDS
from core.clock import expires_in
from core.dependencies import (
    PasswordResetManagerDep,
    SessionManagerDep,
    UserManagerDep,
)
from core.database import Row
from core.exceptions import UserAlreadyExistsError
from core.security import (
    generate_token,
    validate_email,
    validate_password,
    validate_username,
)
from schemas.user import (
    LoginRequest,
    LoginResponse,
    PasswordResetRequest,
    ProfileUpdate,
    RegisterRequest,
    ResetPasswordRequest,
    UserInfo,
)
from utils.converters import strip_credentials

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])

INVALID_CREDENTIALS = "Invalid email or password"


def get_optional_user(
    session_manager: SessionManagerDep,
    user_manager: UserManagerDep,
    session_token: Optional[str] = Cookie(default=None, alias=SESSION_COOKIE_NAME),
) -> Optional[Row]:
    """Resolve the session cookie to a user, or None when absent or expired."""
    if not session_token:
        return None
    session = session_manager.get_session_by_token(session_token)
    if session is None:
        return None
    return user_manager.get_user_by_id(session["user_id"])


def get_current_user(user: Optional[Row] = Depends(get_optional_user)) -> Row:
    """Get current authenticated user.

    Raises:
        HTTPException: 401 if there is no valid session.
    """
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    return user


def get_current_instructor(user: Row = Depends(get_current_user)) -> Row:
    if user["role"] != "instructor":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Instructor account required",
        )
    return user


def get_current_student(user: Row = Depends(get_current_user)) -> Row:
    if user["role"] != "student":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Student account required",
        )
    return user


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        max_age=SESSION_TTL_SECONDS,
        path="/",
        httponly=True,
        secure=SESSION_COOKIE_SECURE,
        samesite="lax",
    )


@router.post("/register", summary="Register an instructor or student")
def register(req: RegisterRequest, user_manager: UserManagerDep) -> dict:
    """Register a new user.

    Raises:
        HTTPException: 400 on invalid input, 409 on duplicate email/username.
    """
    for result in (validate_email(req.email), validate_password(req.password)):
        if not result.valid:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.message)
    if req.username:
        result = validate_username(req.username)
        if not result.valid:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.message)

    try:
        user = user_manager.create_user(
            email=req.email,
            password=req.password,
            role=req.role,
            username=req.username,
            display_name=req.display_name,
        )
    except UserAlreadyExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    logger.info("Registered %s %s", req.role, user["id"])
    return {"success": True, "user_id": user["id"], "role": req.role}


@router.post("/login", response_model=LoginResponse, summary="Log in")
def login(
    req: LoginRequest,
    response: Response,
    user_manager: UserManagerDep,
    session_manager: SessionManagerDep,
) -> LoginResponse:
    """Check credentials and start a cookie session.

    Unknown emails and wrong passwords get the same 401.
    """
    user = user_manager.authenticate(req.email, req.password, req.role)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=INVALID_CREDENTIALS,
        )

    token = generate_token()
    session_manager.create_session(user["id"], token, expires_in(SESSION_TTL_SECONDS))
    _set_session_cookie(response, token)
    return LoginResponse(user=UserInfo(**strip_credentials(user)))


@router.post("/logout", summary="Log out")
def logout(
    response: Response,
    session_manager: SessionManagerDep,
    session_token: Optional[str] = Cookie(default=None, alias=SESSION_COOKIE_NAME),
) -> dict:
    if session_token:
        session_manager.delete_session(session_token)
    response.delete_cookie(SESSION_COOKIE_NAME, path="/")
    return {"success": True}


@router.get("/me", response_model=UserInfo, summary="Current user")
def me(current_user: Row = Depends(get_current_user)) -> UserInfo:
    return UserInfo(**strip_credentials(current_user))


@router.patch("/me", response_model=UserInfo, summary="Update own profile")
def update_me(
    req: ProfileUpdate,
    user_manager: UserManagerDep,
    current_user: Row = Depends(get_current_user),
) -> UserInfo:
    if req.username is not None:
        result = validate_username(req.username)
        if not result.valid:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.message)
    try:
        updated = user_manager.update_profile(current_user["id"], req)
    except UserAlreadyExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return UserInfo(**strip_credentials(updated or current_user))


@router.post("/request-password-reset", summary="Request a password reset token")
def request_password_reset(
    req: PasswordResetRequest,
    user_manager: UserManagerDep,
    reset_manager: PasswordResetManagerDep,
) -> dict:
    """Issue a reset token when the account exists.

    The response is identical whether or not the account exists. Delivering
    the token (email) is outside this service.
    """
    user = user_manager.get_user_by_email(req.email, req.role)
    if user is not None:
        reset_manager.create_reset_token(req.email, req.role)
    return {"success": True}


@router.post("/reset-password", summary="Reset password with a token")
def reset_password(
    req: ResetPasswordRequest,
    user_manager: UserManagerDep,
    session_manager: SessionManagerDep,
    reset_manager: PasswordResetManagerDep,
) -> dict:
    """Set a new password from a reset token and revoke the user's sessions.

    Each step is its own auto-committed statement. The token is marked used
    last, so if an earlier step fails the request can be retried with the
    same token until it expires.
    """
    result = validate_password(req.new_password)
    if not result.valid:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.message)

    record = reset_manager.validate_reset_token(req.token)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired reset token",
        )

    user = user_manager.get_user_by_email(record["email"], record["role"])
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired reset token",
        )

    user_manager.update_password(user["id"], req.new_password)
    session_manager.delete_sessions_for_user(user["id"])
    reset_manager.mark_token_used(req.token)
    logger.info("Password reset for user %s", user["id"])
    return {"success": True}
