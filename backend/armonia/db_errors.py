# Overview: Maps storage constraint failures onto the domain error taxonomy.
"""
Storage constraint classification.

The database is the last line of defense for uniqueness (SKU, barcode, one
open register per user), NOT NULL columns and CHECK enums. When one of
those fires, SQLAlchemy raises IntegrityError wrapping the driver error.
This module turns that into a domain error the route layer already knows
how to render:

    23505 unique_violation    -> DuplicateValueError   (409)
    23502 not_null_violation  -> MissingFieldError     (400)
    23514 check_violation     -> InvalidEnumValueError (400)

Anything else is not classified and the caller re-raises the IntegrityError unchanged.

PostgreSQL drivers expose the SQLSTATE directly (psycopg2 ``pgcode``,
psycopg 3 ``sqlstate``). SQLite has no SQLSTATE, so its message text is
matched instead.
"""
from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from .validation import ConflictError, ValidationError

UNIQUE_VIOLATION = "23505"
NOT_NULL_VIOLATION = "23502"
CHECK_VIOLATION = "23514"

_SQLITE_MESSAGE_CODES = (
    ("UNIQUE constraint failed", UNIQUE_VIOLATION),
    ("NOT NULL constraint failed", NOT_NULL_VIOLATION),
    ("CHECK constraint failed", CHECK_VIOLATION),
)


class DuplicateValueError(ConflictError):
    """A unique column (SKU, barcode, ...) already holds this value."""

    def __init__(self, message: str = "SKU or barcode already exists", constraint: str | None = None):
        super().__init__(message)
        self.constraint = constraint


class MissingFieldError(ValidationError):
    """A NOT NULL column received no value at the storage layer."""

    def __init__(self, message: str = "missing field at storage layer", constraint: str | None = None):
        super().__init__(message)
        self.constraint = constraint


class InvalidEnumValueError(ValidationError):
    """A CHECK constraint (product_type, size_type, status, ...) rejected a value."""

    def __init__(self, message: str = "invalid enum value", constraint: str | None = None):
        super().__init__(message)
        self.constraint = constraint


def constraint_code(exc: BaseException) -> str | None:
    """Return the SQLSTATE for a storage error, or None if it cannot be determined."""
    orig = getattr(exc, "orig", exc)

    for attr in ("pgcode", "sqlstate"):
        code = getattr(orig, attr, None)
        if code:
            return str(code)

    message = str(orig)
    for needle, code in _SQLITE_MESSAGE_CODES:
        if needle in message:
            return code
    return None


def _constraint_detail(exc: BaseException) -> str | None:
    orig = getattr(exc, "orig", exc)
    diag = getattr(orig, "diag", None)
    name = getattr(diag, "constraint_name", None) if diag is not None else None
    if name:
        return name
    message = str(orig)
    if ":" in message:
        return message.split(":", 1)[1].strip() or None
    return None


def classify_integrity_error(exc: BaseException) -> ValueError | None:
    """
    Translate an IntegrityError into a domain error.

    Returns None when the failure is not one of the known constraint kinds.
    """
    if not isinstance(exc, IntegrityError):
        return None

    code = constraint_code(exc)
    detail = _constraint_detail(exc)

    if code == UNIQUE_VIOLATION:
        return DuplicateValueError(constraint=detail)
    if code == NOT_NULL_VIOLATION:
        return MissingFieldError(constraint=detail)
    if code == CHECK_VIOLATION:
        return InvalidEnumValueError(constraint=detail)
    return None
