from __future__ import annotations

from ..extensions import db
from cardledger.time_utils import to_utc_z, to_iso_date
from cardledger.validation import format_cents
from .mixins import CorrectionMixin, SoftDeleteMixin


SHOW_STATUS_PLANNED = "planned"
SHOW_STATUS_ACTIVE = "active"
SHOW_STATUS_COMPLETED = "completed"
SHOW_STATUSES = (SHOW_STATUS_PLANNED, SHOW_STATUS_ACTIVE, SHOW_STATUS_COMPLETED)

EXPENSE_CATEGORIES = (
    "table_fee",
    "travel",
    "lodging",
    "food",
    "supplies",
    "shipping",
    "other",
)


class Show(db.Model):
    """
    A sales event with a table cost and a lifecycle.

    Once any transaction or expense references the show it can no longer go
    back to ``planned``.
    """
    __tablename__ = "shows"
    __table_args__ = (
        db.Index("ix_shows_user_date", "user_id", "show_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    show_date = db.Column(db.Date, nullable=False)
    location = db.Column(db.String(255), nullable=True)
    booth_number = db.Column(db.String(32), nullable=True)

    table_cost_cents = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default=SHOW_STATUS_PLANNED, index=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Show id={self.id} name={self.name!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "show_date": to_iso_date(self.show_date),
            "location": self.location,
            "booth_number": self.booth_number,
            "table_cost": format_cents(self.table_cost_cents),
            "status": self.status,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Expense(CorrectionMixin, SoftDeleteMixin, db.Model):
    """
    A business expense, optionally attached to a show.

    The cash effect lives in cash_transactions: an ``expense`` entry on
    creation, ``adjustment`` entries for amount corrections and a ``reversal``
    on deletion. amount_cents here is always the current corrected amount.
    """
    __tablename__ = "expenses"
    __table_args__ = (
        db.Index("ix_expenses_user_date", "user_id", "expense_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, nullable=False, index=True)

    amount_cents = db.Column(db.Integer, nullable=False)
    category = db.Column(db.String(32), nullable=False)
    expense_date = db.Column(db.Date, nullable=False)
    notes = db.Column(db.String(500), nullable=True)

    show_id = db.Column(db.Integer, db.ForeignKey("shows.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    show = db.relationship("Show", backref=db.backref("expenses", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "amount": format_cents(self.amount_cents),
            "category": self.category,
            "expense_date": to_iso_date(self.expense_date),
            "notes": self.notes,
            "show_id": self.show_id,
            "created_at": to_utc_z(self.created_at),
            **self.deletion_dict(),
            **self.correction_dict(),
        }
