# Overview: Transaction boundaries and row locks for multi-step writes.

from __future__ import annotations

from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError

from ..db_errors import classify_integrity_error
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


@contextmanager
def atomic():
    """
    Run a multi-step write as one transaction.

    Commits when the block exits normally and rolls back on every exception.
    Constraint violations are re-raised as domain errors (see db_errors);
    any other storage error propagates unchanged.

    Usage:
        with atomic() as session:
            session.add(...)
    """
    session = db.session
    try:
        yield session
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        classified = classify_integrity_error(exc)
        if classified is None:
            raise
        raise classified from exc
    except BaseException:
        session.rollback()
        raise
