"""Custom exception classes for the course marketplace backend.

Not-found conditions are returned as ``None`` by the managers; the classes
below cover configuration problems, backend failures, and business rules
that a caller has to branch on.
"""

from typing import List, Optional


class CourseMarketError(Exception):
    """Base exception for all course marketplace errors."""

    pass


class ConfigurationError(CourseMarketError):
    """Raised when there is a configuration error."""

    pass


class D1QueryError(CourseMarketError):
    """Raised when the remote D1 service rejects a query."""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 errors: Optional[List[str]] = None):
        """Initialize the exception.

        Args:
            message: Human readable summary.
            status_code: HTTP status returned by the API, if any.
            errors: Error messages reported by the API.
        """
        self.status_code = status_code
        self.errors = errors or []
        super().__init__(message)


class UserAlreadyExistsError(CourseMarketError):
    """Raised when trying to create a user whose email or username is taken."""

    pass


class EnrollmentLimitError(CourseMarketError):
    """Raised when a space has reached its max_students limit."""

    def __init__(self, space_id: str, max_students: int):
        self.space_id = space_id
        self.max_students = max_students
        super().__init__(
            f"Space '{space_id}' is full ({max_students} students)"
        )


class PurchaseError(CourseMarketError):
    """Raised when a purchase cannot be recorded."""

    pass
