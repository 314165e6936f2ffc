"""
Error taxonomy shared by the allocator, lifecycle and registry services.

Every failure carries a ``kind`` (the category) and a ``reason`` (the tagged
cause reported to callers). The HTTP layer renders both into the structured
``{"result": false, ...}`` body; nothing else crosses that boundary.
"""

from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError


class MatchingError(Exception):
    """Base class for all reported matching failures."""

    kind = "error"
    status_code = 500
    default_reason = "Error"

    def __init__(self, reason: Optional[str] = None, message: Optional[str] = None):
        self.reason = reason or self.default_reason
        self.message = message or self.reason
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "result": False,
            "reason": self.reason,
            "kind": self.kind,
            "detail": self.message,
        }


class NotFoundError(MatchingError):
    """A user, match or stadium does not exist."""

    kind = "not_found"
    status_code = 404
    default_reason = "NotFound"


class ConflictError(MatchingError):
    """Uniqueness violations and lost concurrent updates."""

    kind = "conflict"
    status_code = 409
    default_reason = "DuplicatedEntity"


class ForbiddenError(MatchingError):
    """The caller does not own the entity it tried to change."""

    kind = "forbidden"
    status_code = 403
    default_reason = "ForbiddenOperation"


class ResourceExhaustedError(MatchingError):
    """No stadium can take the requested group."""

    kind = "resource_exhausted"
    status_code = 409
    default_reason = "FailedAssigningStadium"


class StoreError(MatchingError):
    """Unclassified backing-store fault."""

    kind = "store_error"
    status_code = 500
    default_reason = "StoreError"


def classify_store_error(exc: Exception) -> MatchingError:
    """
    Map a SQLAlchemy exception onto the taxonomy.

    Args:
        exc: Exception raised by the store

    Returns:
        ConflictError for uniqueness/constraint violations, StoreError otherwise
    """
    if isinstance(exc, MatchingError):
        return exc
    if isinstance(exc, IntegrityError):
        return ConflictError("DuplicatedEntity", f"Duplicated entity: {exc.orig}")
    if isinstance(exc, SQLAlchemyError):
        return StoreError("StoreError", f"Store error: {exc}")
    return StoreError("StoreError", str(exc))
