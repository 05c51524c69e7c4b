"""
Cash Register Session Service

WHY: Cashier accountability. Each user works against their own cash
register session: opened with a counted float, adjusted with manual
movements, closed with a counted balance that is compared to the expected one.

DESIGN PRINCIPLES:
- At most one OPEN register per user (checked in the transaction, backed by
  a partial unique index in the database)
- Registers are immutable once closed; reopening creates a new register
- The movement ledger is append-only; opening seeds it with an INFLOW
- difference = closing_balance - expected_balance
"""
from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import Any

from sqlalchemy import case, func
from sqlalchemy.orm import aliased

from ..db_errors import DuplicateValueError
from ..extensions import db
from ..models import (
    CashMovement,
    CashRegister,
    User,
    MOVEMENT_INFLOW,
    MOVEMENT_OUTFLOW,
    REGISTER_CLOSED,
    REGISTER_OPEN,
)
from ..time_utils import utcnow
from ..validation import (
    ConflictError,
    NotFoundError,
    parse_money,
    validate_movement,
    validate_opening_balance,
)
from .concurrency import atomic, lock_for_update

logger = logging.getLogger(__name__)

OPENING_MOVEMENT_CONCEPT = "register opened"

# Differences below one cent count as an exact count
EXACT_BALANCE_TOLERANCE = Decimal("0.01")


class RegisterAlreadyOpenError(ConflictError):
    """Raised when a user tries to open a second register."""

    def __init__(self, message: str = "You already have an open cash register"):
        super().__init__(message)


class NoOpenRegisterError(NotFoundError):
    """Raised when an operation needs an open register and the user has none."""

    def __init__(self, message: str = "You do not have an open cash register"):
        super().__init__(message)


def _open_register_query(session, user_id: str):
    return session.query(CashRegister).filter_by(user_id=user_id, status=REGISTER_OPEN)


def get_current_register(user_id: str) -> CashRegister | None:
    """Get the user's open register, if any."""
    return (
        _open_register_query(db.session, user_id)
        .order_by(CashRegister.opened_at.desc())
        .first()
    )


# =============================================================================
# LIFECYCLE
# =============================================================================

def open_register(user_id: str, opening_balance: Any) -> str:
    """
    Open a new cash register for a user.

    Creates the register and its opening INFLOW movement in one transaction.

    Returns:
        The new register id

    Raises:
        RegisterAlreadyOpenError: user already has an OPEN register
        ValidationError: opening balance is missing, negative or not a number
    """
    opening = validate_opening_balance(opening_balance)
    register_id = str(uuid.uuid4())
    now = utcnow()

    try:
        with atomic() as session:
            existing = lock_for_update(_open_register_query(session, user_id)).first()
            if existing:
                raise RegisterAlreadyOpenError()

            session.add(CashRegister(
                id=register_id,
                user_id=user_id,
                status=REGISTER_OPEN,
                opening_balance=opening,
                opened_at=now,
            ))
            session.flush()

            # A zero float leaves nothing to seed; amounts must be > 0
            if opening > 0:
                session.add(CashMovement(
                    register_id=register_id,
                    user_id=user_id,
                    type=MOVEMENT_INFLOW,
                    amount=opening,
                    concept=OPENING_MOVEMENT_CONCEPT,
                    occurred_at=now,
                ))
    except DuplicateValueError as exc:
        # Lost the race: another request opened a register for this user
        raise RegisterAlreadyOpenError() from exc

    logger.info("Cash register %s opened by user %s with %s", register_id, user_id, opening)
    return register_id


def close_register(user_id: str, closing_balance: Any, expected_balance: Any) -> CashRegister:
    """
    Close the user's open register and record the count.

    IMMUTABLE: Once closed, the register cannot be reopened or modified.

    Raises:
        NoOpenRegisterError: user has no OPEN register
        ValidationError: balances are not numbers
    """
    closing = parse_money(closing_balance, "closing_balance")
    expected = parse_money(expected_balance, "expected_balance", allow_negative=True)
    difference = closing - expected

    with atomic() as session:
        register = lock_for_update(_open_register_query(session, user_id)).first()
        if register is None:
            raise NoOpenRegisterError()

        register.status = REGISTER_CLOSED
        register.closing_balance = closing
        register.expected_balance = expected
        register.difference = difference
        register.closed_by_user_id = user_id
        register.closed_at = utcnow()

    logger.info(
        "Cash register %s closed by user %s: closing=%s expected=%s difference=%s",
        register.id, user_id, closing, expected, difference,
    )
    if not is_exact_balance(difference):
        logger.warning("Cash register %s closed with a discrepancy of %s", register.id, difference)
    return register


# =============================================================================
# MOVEMENT LEDGER
# =============================================================================

def add_movement(user_id: str, movement_type: Any, amount: Any, concept: Any) -> int:
    """
    Append a manual INFLOW/OUTFLOW to the user's open register.

    Returns:
        The new movement id

    Raises:
        NoOpenRegisterError: user has no OPEN register
        ValidationError: bad type, non-positive amount or blank concept
    """
    normalized_type, parsed_amount, normalized_concept = validate_movement(movement_type, amount, concept)

    with atomic() as session:
        register = lock_for_update(_open_register_query(session, user_id)).first()
        if register is None:
            raise NoOpenRegisterError()

        movement = CashMovement(
            register_id=register.id,
            user_id=user_id,
            type=normalized_type,
            amount=parsed_amount,
            concept=normalized_concept,
            occurred_at=utcnow(),
        )
        session.add(movement)
        session.flush()
        movement_id = movement.id

    logger.info("Cash movement %s %s %s on register %s", movement_id, normalized_type, parsed_amount, register.id)
    return movement_id


def get_movements(user_id: str) -> list[CashMovement]:
    """Movements of the user's open register, newest first. Empty if none is open."""
    register = get_current_register(user_id)
    if register is None:
        return []

    return (
        db.session.query(CashMovement)
        .filter_by(register_id=register.id)
        .order_by(CashMovement.occurred_at.desc(), CashMovement.id.desc())
        .all()
    )


def compute_expected_balance(register_id: str) -> Decimal:
    """Ledger-derived cash on hand: inflows minus outflows."""
    signed = case(
        (CashMovement.type == MOVEMENT_OUTFLOW, -CashMovement.amount),
        else_=CashMovement.amount,
    )
    total = db.session.query(func.coalesce(func.sum(signed), 0)).filter(
        CashMovement.register_id == register_id
    ).scalar()
    return Decimal(str(total or 0)).quantize(Decimal("0.01"))


# =============================================================================
# REPORTING
# =============================================================================

def get_register_summary(user_id: str) -> dict | None:
    """Open register with its ledger totals, or None if nothing is open."""
    register = get_current_register(user_id)
    if register is None:
        return None

    movement_count = db.session.query(func.count(CashMovement.id)).filter(
        CashMovement.register_id == register.id
    ).scalar()

    return {
        "register": register.to_dict(),
        "movement_count": int(movement_count or 0),
        "expected_balance": float(compute_expected_balance(register.id)),
    }


def get_history() -> list[dict]:
    """
    Closed registers, most recently closed first.

    Each entry carries the display names of the user who opened the
    register and the user who closed it.
    """
    opened_by = aliased(User)
    closed_by = aliased(User)

    rows = (
        db.session.query(
            CashRegister,
            opened_by.name.label("opened_by_name"),
            closed_by.name.label("closed_by_name"),
        )
        .outerjoin(opened_by, CashRegister.user_id == opened_by.id)
        .outerjoin(closed_by, CashRegister.closed_by_user_id == closed_by.id)
        .filter(CashRegister.status == REGISTER_CLOSED)
        .order_by(CashRegister.closed_at.desc())
        .all()
    )

    history = []
    for register, opened_by_name, closed_by_name in rows:
        entry = register.to_dict()
        entry["opened_by_name"] = opened_by_name
        entry["closed_by_name"] = closed_by_name
        history.append(entry)
    return history


def is_exact_balance(difference: Any) -> bool:
    """True when the count is off by less than one cent."""
    if isinstance(difference, Decimal):
        value = difference
    else:
        value = Decimal(str(difference))
    return abs(value) < EXACT_BALANCE_TOLERANCE
