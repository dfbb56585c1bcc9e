# forum/exceptions.py
"""
Errors raised by the forum write services.

Each error carries an HTTP status so API views can map it directly.
"""

from typing import Any


class ForumError(Exception):
    """
    Base error for thread and post operations.

    Attributes:
        code: Machine-readable error code
        message: Human-readable error message
        status_code: HTTP status the API responds with
    """

    status_code = 400

    def __init__(self, message: str, code: str = "FORUM_ERROR"):
        self.code = code
        self.message = message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {"error": self.code, "message": self.message}


class NotFoundError(ForumError):
    status_code = 404

    def __init__(self, message: str = "Not found", code: str = "NOT_FOUND"):
        super().__init__(message, code)


class ThreadLockedError(ForumError):
    def __init__(self, message: str = "Thread is locked", code: str = "THREAD_LOCKED"):
        super().__init__(message, code)


class NotAuthorError(ForumError):
    status_code = 403

    def __init__(
        self, message: str = "You are not the author of this content", code: str = "NOT_AUTHOR"
    ):
        super().__init__(message, code)
