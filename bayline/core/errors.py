"""
Structured errors for the booking core.

Every error carries a machine-readable ``kind`` and a human message so the
API layer can render them uniformly as ``{"error": kind, "message": ...}``.
Services raise these; routes stay thin.
"""
from __future__ import annotations

from sqlalchemy.exc import IntegrityError

# SQLSTATE raised by PostgreSQL when an EXCLUDE constraint rejects a row
EXCLUSION_VIOLATION = "23P01"
UNIQUE_VIOLATION = "23505"

MSG_SLOT_TAKEN = "That time just got booked. Please pick a different time."
MSG_AREA_UNAVAILABLE = "Selected party area is unavailable."
MSG_STORE_UNAVAILABLE = "Booking store is temporarily unavailable. Please retry."


class BookingError(Exception):
    kind = "error"
    status_code = 500
    default_message = "Server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str]:
        return {"error": self.kind, "message": self.message}


class BookingValidationError(BookingError):
    kind = "validation"
    status_code = 400
    default_message = "Invalid booking request"


class NotFoundError(BookingError):
    kind = "not_found"
    status_code = 404
    default_message = "Not found"


class SlotConflictError(BookingError):
    """A slot was lost between read-time availability and write-time allocation."""

    kind = "conflict"
    status_code = 409
    default_message = MSG_SLOT_TAKEN


class DuplicateNameError(BookingError):
    kind = "conflict"
    status_code = 409
    default_message = "That name is already in use"


class PartyAreaUnavailableError(BookingError):
    kind = "area_unavailable"
    status_code = 409
    default_message = MSG_AREA_UNAVAILABLE


class StoreUnavailableError(BookingError):
    """Transient failure reading or writing the store. Safe to retry."""

    kind = "store_unavailable"
    status_code = 503
    default_message = MSG_STORE_UNAVAILABLE


def _sqlstate(exc: IntegrityError) -> str | None:
    orig = getattr(exc, "orig", None)
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def is_exclusion_violation(exc: IntegrityError) -> bool:
    """True when the store rejected a row because two reservations overlap."""
    if _sqlstate(exc) == EXCLUSION_VIOLATION:
        return True
    msg = str(getattr(exc, "orig", exc)).lower()
    return "exclusion" in msg or "overlap" in msg


def is_unique_violation(exc: IntegrityError, constraint: str) -> bool:
    if _sqlstate(exc) == UNIQUE_VIOLATION:
        return constraint in str(exc.orig)
    msg = str(getattr(exc, "orig", exc)).lower()
    return "unique" in msg and constraint.lower() in msg
