"""Domain errors raised by the store and import layers.

Route handlers translate these into HTTP responses; every class carries the
status code it maps to so the global handler can do the same for anything
that escapes a route.
"""
from fastapi import HTTPException, status


class AttendanceError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AttendanceError):
    """Missing or malformed required fields."""
    status_code = status.HTTP_400_BAD_REQUEST


class ImportValidationError(ValidationError):
    """Uploaded sheet cannot be mapped to a roster."""


class NotFoundError(AttendanceError):
    status_code = status.HTTP_404_NOT_FOUND


class ConstraintViolation(AttendanceError):
    """Uniqueness or foreign-key breach reported by the database."""


class StoreError(AttendanceError):
    """Any other persistence failure."""


class Unauthorized(AttendanceError):
    status_code = status.HTTP_401_UNAUTHORIZED


def to_http_exception(error: AttendanceError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.message)
