"""Error taxonomy.

Every error carries the HTTP status it maps to. The API renders all of them as
``{"error": message}``; nothing else from the exception reaches the client.

Usage:
    from yarnlog.errors import NotFound

    if project is None:
        raise NotFound("project not found")
"""

from typing import Any


class YarnlogError(Exception):
    """Base exception for all yarnlog errors."""

    status_code = 500
    default_message = "something went wrong"

    def __init__(self, message: str | None = None, **details: Any):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str]:
        return {"error": self.message}


# ============================================
# Authentication & Authorization
# ============================================


class Unauthorized(YarnlogError):
    """Missing, invalid or expired credential."""

    status_code = 401
    default_message = "token missing"


class Forbidden(YarnlogError):
    """Authenticated caller is not the resource owner."""

    status_code = 403
    default_message = "forbidden"


# ============================================
# Resource & Input Errors
# ============================================


class NotFound(YarnlogError):
    status_code = 404
    default_message = "not found"


class ValidationFailed(YarnlogError):
    """Required field missing or malformed on write."""

    status_code = 400
    default_message = "validation failed"

    def __init__(self, field: str, message: str | None = None):
        self.field = field
        super().__init__(message or f"{field} is required", field=field)


class TrackerIndexError(YarnlogError, IndexError):
    """Row tracker index does not exist in the project."""

    status_code = 404
    default_message = "row tracker not found"

    def __init__(self, index: int, size: int):
        self.index = index
        self.size = size
        super().__init__(f"row tracker {index} out of range (project has {size})")


# ============================================
# State Errors
# ============================================


class ProjectFinished(YarnlogError):
    """Operation is not allowed once the project is finished."""

    status_code = 409
    default_message = "project is finished"


class Conflict(YarnlogError):
    """Stored document changed since the client read it."""

    status_code = 409
    default_message = "project was modified by another request"


# ============================================
# Collaborators
# ============================================


class StorageCollaboratorFailure(YarnlogError):
    """Asset storage call failed."""

    status_code = 502
    default_message = "asset storage request failed"

    def __init__(self, public_id: str, message: str | None = None):
        self.public_id = public_id
        super().__init__(message, public_id=public_id)
