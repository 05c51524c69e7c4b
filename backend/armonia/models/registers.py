from __future__ import annotations

from ..extensions import db
from armonia.time_utils import to_utc_z

REGISTER_OPEN = "OPEN"
REGISTER_CLOSED = "CLOSED"

MOVEMENT_INFLOW = "INFLOW"
MOVEMENT_OUTFLOW = "OUTFLOW"
MOVEMENT_TYPES = (MOVEMENT_INFLOW, MOVEMENT_OUTFLOW)


def _money(value):
    return float(value) if value is not None else None


class CashRegister(db.Model):
    """
    Cash-handling session owned by one user.

    LIFECYCLE:
    - OPEN: Session is active, movements can be recorded
    - CLOSED: Cash counted, difference calculated

    IMMUTABLE: Once closed, a register is never reopened or modified.
    A user opening again gets a brand new register row.

    The partial unique index allows at most one OPEN register per user,
    so the store itself rejects a concurrent second open.
    """
    __tablename__ = "cash_registers"
    __table_args__ = (
        db.CheckConstraint("status IN ('OPEN', 'CLOSED')", name="ck_cash_registers_status"),
        db.CheckConstraint("opening_balance >= 0", name="ck_cash_registers_opening_non_negative"),
        db.Index(
            "uq_cash_registers_one_open_per_user",
            "user_id",
            unique=True,
            sqlite_where=db.text("status = 'OPEN'"),
            postgresql_where=db.text("status = 'OPEN'"),
        ),
        db.Index("ix_cash_registers_status_closed_at", "status", "closed_at"),
    )

    id = db.Column(db.String(36), primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default=REGISTER_OPEN)

    opening_balance = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    # Set when closing
    closing_balance = db.Column(db.Numeric(12, 2), nullable=True)
    expected_balance = db.Column(db.Numeric(12, 2), nullable=True)
    difference = db.Column(db.Numeric(12, 2), nullable=True)  # closing - expected
    closed_by_user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True)

    opened_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    user = db.relationship("User", foreign_keys=[user_id])
    closed_by = db.relationship("User", foreign_keys=[closed_by_user_id])
    movements = db.relationship("CashMovement", back_populates="register", lazy=True)

    @property
    def is_open(self) -> bool:
        return self.status == REGISTER_OPEN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "status": self.status,
            "opening_balance": _money(self.opening_balance),
            "closing_balance": _money(self.closing_balance),
            "expected_balance": _money(self.expected_balance),
            "difference": _money(self.difference),
            "closed_by_user_id": self.closed_by_user_id,
            "opened_at": to_utc_z(self.opened_at),
            "closed_at": to_utc_z(self.closed_at) if self.closed_at else None,
        }


class CashMovement(db.Model):
    """
    Append-only cash ledger row for one register.

    The opening balance is seeded as an INFLOW movement when the register
    opens. Rows are never updated or deleted.
    """
    __tablename__ = "cash_movements"
    __table_args__ = (
        db.CheckConstraint("type IN ('INFLOW', 'OUTFLOW')", name="ck_cash_movements_type"),
        db.CheckConstraint("amount > 0", name="ck_cash_movements_amount_positive"),
        db.Index("ix_cash_movements_register_occurred", "register_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    register_id = db.Column(db.String(36), db.ForeignKey("cash_registers.id"), nullable=False, index=True)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)

    type = db.Column(db.String(16), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    concept = db.Column(db.String(255), nullable=False)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    register = db.relationship("CashRegister", back_populates="movements")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "register_id": self.register_id,
            "user_id": self.user_id,
            "type": self.type,
            "amount": _money(self.amount),
            "concept": self.concept,
            "occurred_at": to_utc_z(self.occurred_at),
        }
