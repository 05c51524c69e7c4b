from __future__ import annotations

from ..extensions import db
from armonia.time_utils import to_utc_z


class User(db.Model):
    """
    Staff member known to the POS.

    Credentials live with the auth service; this table only carries what
    the register history needs (display name) and the ownership target
    for cash registers.
    """
    __tablename__ = "users"

    id = db.Column(db.String(36), primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True)
    role = db.Column(db.String(32), nullable=False, default="cashier")
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
