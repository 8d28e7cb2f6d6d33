"""Dependency injection module for FastAPI.

The database context lives on ``app.state.database`` (created by the app
factory); every manager is built per request around its adapter.
"""

from typing import Annotated

from fastapi import Depends, Request

from core.database import DatabaseAdapter, DatabaseContext
from utils import course_manager
from utils import enrollment_manager
from utils import lesson_manager
from utils import password_reset_manager
from utils import progress_manager
from utils import purchase_manager
from utils import session_manager
from utils import space_manager
from utils import user_manager


def get_database_context(request: Request) -> DatabaseContext:
    return request.app.state.database


def get_db(
    context: DatabaseContext = Depends(get_database_context),
) -> DatabaseAdapter:
    """Get the process-wide database adapter.

    Args:
        context: Database context stored on the application.

    Returns:
        DatabaseAdapter instance.
    """
    return context.adapter


def get_user_manager(db: DatabaseAdapter = Depends(get_db)) -> user_manager.UserManager:
    return user_manager.UserManager(db)


def get_session_manager(
    db: DatabaseAdapter = Depends(get_db),
) -> session_manager.SessionManager:
    return session_manager.SessionManager(db)


def get_password_reset_manager(
    db: DatabaseAdapter = Depends(get_db),
) -> password_reset_manager.PasswordResetManager:
    return password_reset_manager.PasswordResetManager(db)


def get_space_manager(db: DatabaseAdapter = Depends(get_db)) -> space_manager.SpaceManager:
    return space_manager.SpaceManager(db)


def get_course_manager(db: DatabaseAdapter = Depends(get_db)) -> course_manager.CourseManager:
    return course_manager.CourseManager(db)


def get_lesson_manager(db: DatabaseAdapter = Depends(get_db)) -> lesson_manager.LessonManager:
    return lesson_manager.LessonManager(db)


def get_enrollment_manager(
    db: DatabaseAdapter = Depends(get_db),
) -> enrollment_manager.EnrollmentManager:
    return enrollment_manager.EnrollmentManager(db)


def get_purchase_manager(
    db: DatabaseAdapter = Depends(get_db),
) -> purchase_manager.PurchaseManager:
    return purchase_manager.PurchaseManager(db)


def get_progress_manager(
    db: DatabaseAdapter = Depends(get_db),
) -> progress_manager.ProgressManager:
    return progress_manager.ProgressManager(db)


# Type aliases for dependency injection
UserManagerDep = Annotated[user_manager.UserManager, Depends(get_user_manager)]
SessionManagerDep = Annotated[session_manager.SessionManager, Depends(get_session_manager)]
PasswordResetManagerDep = Annotated[
    password_reset_manager.PasswordResetManager, Depends(get_password_reset_manager)
]
SpaceManagerDep = Annotated[space_manager.SpaceManager, Depends(get_space_manager)]
CourseManagerDep = Annotated[course_manager.CourseManager, Depends(get_course_manager)]
LessonManagerDep = Annotated[lesson_manager.LessonManager, Depends(get_lesson_manager)]
EnrollmentManagerDep = Annotated[
    enrollment_manager.EnrollmentManager, Depends(get_enrollment_manager)
]
PurchaseManagerDep = Annotated[purchase_manager.PurchaseManager, Depends(get_purchase_manager)]
ProgressManagerDep = Annotated[progress_manager.ProgressManager, Depends(get_progress_manager)]
