"""Error kinds raised by the service layer.

Each class carries the HTTP status it maps to; the exception handlers in
``minilibrary.main`` turn them into the response envelope.
"""

from typing import Any, Optional


class LibraryError(Exception):
    status_code = 500

    def __init__(self, message: str, error: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.error = error


class ValidationError(LibraryError):
    status_code = 400


class UnauthorizedError(LibraryError):
    status_code = 401


class ForbiddenError(LibraryError):
    status_code = 403


class NotFoundError(LibraryError):
    status_code = 404


class AlreadyReturnedError(NotFoundError):
    """The loan exists but is closed, so there is no open loan with that id."""

    status_code = 409


class ConflictError(LibraryError):
    status_code = 409


class DuplicateEntryError(ConflictError):
    pass


class DuplicateReviewError(DuplicateEntryError):
    pass


class UnavailableError(LibraryError):
    status_code = 503


class EmailDeliveryError(UnavailableError):
    pass
