"""User and authentication schema definitions.

This module defines request bodies for registration, login and password
resets, plus the partial profile update model.
"""

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field

from schemas.partial import PartialUpdate

Role = Literal["instructor", "student"]


class RegisterRequest(BaseModel):
    email: str = Field(description="Login email, unique per role.")
    password: str = Field(description="Plain text password, at least 8 characters.")
    role: Role = Field(default="student", description="Identity kind to register.")
    username: Optional[str] = Field(
        default=None, description="Public handle; instructors use it in URLs."
    )
    display_name: Optional[str] = None


class LoginRequest(BaseModel):
    email: str
    password: str
    role: Role = "instructor"


class PasswordResetRequest(BaseModel):
    email: str
    role: Role = "student"


class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str


class ProfileUpdate(PartialUpdate):
    """Partial profile update; only fields that are set are written."""

    display_name: Optional[str] = None
    username: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    social_links: Optional[Dict[str, Any]] = Field(
        default=None, description="Free-form map of link name to URL."
    )


class UserInfo(BaseModel):
    """Public view of a user; never carries the password hash."""

    id: str
    role: Role
    email: str
    username: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    social_links: Optional[Dict[str, Any]] = None
    created_at: int
    updated_at: int


class PublicProfile(BaseModel):
    """What anyone may see about an instructor: no email, no credentials."""

    id: str
    username: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    social_links: Optional[Dict[str, Any]] = None
    created_at: int


class LoginResponse(BaseModel):
    success: bool = True
    user: UserInfo
