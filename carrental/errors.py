"""Error kinds shared by the workflow services and the HTTP layer."""

from enum import Enum
from typing import Any

from pydantic import ValidationError


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    INVALID_STATE = "invalid_state"
    CONFLICT = "conflict"
    VALIDATION = "validation"
    MODERATION_REJECTED = "moderation_rejected"
    INTERNAL = "internal"


STATUS_CODES = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.INVALID_STATE: 400,
    ErrorKind.CONFLICT: 400,
    ErrorKind.VALIDATION: 400,
    ErrorKind.MODERATION_REJECTED: 400,
    ErrorKind.INTERNAL: 500,
}


class QueryError(ValueError):
    """Raised when list query parameters cannot be turned into a filter."""


class ModerationError(Exception):
    """Raised when the moderation service cannot produce a verdict."""


def failure(kind: ErrorKind, message: str) -> dict[str, Any]:
    """Build a failed service result."""
    return {"success": False, "error": kind, "message": message}


def format_validation_error(error: ValidationError) -> str:
    """Flatten pydantic errors into one message, e.g. 'name: String should have at most 50 characters'."""
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'body'}: {err['msg']}" for err in error.errors()
    )
