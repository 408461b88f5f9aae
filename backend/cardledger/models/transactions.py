from __future__ import annotations

from ..extensions import db
from cardledger.time_utils import to_utc_z, to_iso_date
from cardledger.validation import format_cents
from .mixins import CorrectionMixin, SoftDeleteMixin


TX_TYPE_SHOW_CARD_SALE = "show_card_sale"
TX_TYPE_BULK_SALE = "bulk_sale"
TX_TYPE_DISPOSITION = "disposition"
TRANSACTION_TYPES = (TX_TYPE_SHOW_CARD_SALE, TX_TYPE_BULK_SALE, TX_TYPE_DISPOSITION)
SALE_TYPES = (TX_TYPE_SHOW_CARD_SALE, TX_TYPE_BULK_SALE)

DISPOSITION_DISCARDED = "discarded"
DISPOSITION_LOST = "lost"
DISPOSITION_COMBINED = "combined"
DISPOSITION_TYPES = (DISPOSITION_DISCARDED, DISPOSITION_LOST, DISPOSITION_COMBINED)

CASH_TYPE_DEPOSIT = "deposit"
CASH_TYPE_WITHDRAWAL = "withdrawal"
CASH_TYPE_ADJUSTMENT = "adjustment"
CASH_TYPE_SALE = "sale"
CASH_TYPE_REVERSAL = "reversal"
CASH_TYPE_LOT_PURCHASE = "lot_purchase"
CASH_TYPE_EXPENSE = "expense"
CASH_TYPES = (
    CASH_TYPE_DEPOSIT,
    CASH_TYPE_WITHDRAWAL,
    CASH_TYPE_ADJUSTMENT,
    CASH_TYPE_SALE,
    CASH_TYPE_REVERSAL,
    CASH_TYPE_LOT_PURCHASE,
    CASH_TYPE_EXPENSE,
)
MANUAL_CASH_TYPES = (CASH_TYPE_DEPOSIT, CASH_TYPE_WITHDRAWAL, CASH_TYPE_ADJUSTMENT)


class Transaction(CorrectionMixin, SoftDeleteMixin, db.Model):
    """
    One recorded financial event: a show card sale, a bulk sale, or a
    disposition (discarded / lost / combined).

    INVARIANTS:
    - revenue_cents is the economic effect recorded at creation and is never
      rewritten. Backing it out means a new reversal cash entry.
    - Deletion is a soft flag; the row stays for audit.
    - Only transaction_date and notes are correctable in place; lot_id and
      show_id change only through reassignment.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_user_date", "user_id", "transaction_date"),
        db.Index("ix_transactions_lot_deleted", "lot_id", "deleted"),
        db.Index("ix_transactions_show_deleted", "show_id", "deleted"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, nullable=False, index=True)

    transaction_type = db.Column(db.String(32), nullable=False, index=True)
    disposition_type = db.Column(db.String(16), nullable=True)

    # Authoritative storage in cents; 0 for dispositions
    revenue_cents = db.Column(db.Integer, nullable=False, default=0)
    quantity = db.Column(db.Integer, nullable=True)

    transaction_date = db.Column(db.Date, nullable=False)
    notes = db.Column(db.String(500), nullable=True)

    show_card_id = db.Column(db.Integer, db.ForeignKey("show_cards.id"), nullable=True, index=True)
    lot_id = db.Column(db.Integer, db.ForeignKey("lots.id"), nullable=True, index=True)
    show_id = db.Column(db.Integer, db.ForeignKey("shows.id"), nullable=True, index=True)
    destination_lot_id = db.Column(db.Integer, db.ForeignKey("lots.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    show_card = db.relationship("ShowCard", backref=db.backref("transactions", lazy=True))
    lot = db.relationship("Lot", foreign_keys=[lot_id], backref=db.backref("transactions", lazy=True))
    destination_lot = db.relationship("Lot", foreign_keys=[destination_lot_id])
    show = db.relationship("Show", backref=db.backref("transactions", lazy=True))

    @property
    def is_sale(self) -> bool:
        return self.transaction_type in SALE_TYPES

    def __repr__(self) -> str:
        return (
            f"<Transaction id={self.id} type={self.transaction_type} "
            f"revenue_cents={self.revenue_cents} deleted={self.deleted}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "transaction_type": self.transaction_type,
            "disposition_type": self.disposition_type,
            "revenue": format_cents(self.revenue_cents),
            "quantity": self.quantity,
            "transaction_date": to_iso_date(self.transaction_date),
            "notes": self.notes,
            "show_card_id": self.show_card_id,
            "lot_id": self.lot_id,
            "show_id": self.show_id,
            "destination_lot_id": self.destination_lot_id,
            "created_at": to_utc_z(self.created_at),
            **self.deletion_dict(),
            **self.correction_dict(),
        }


class CashTransaction(CorrectionMixin, db.Model):
    """
    Immutable signed cash ledger line.

    The cash balance is the sum of amount_cents over an owner's rows and is
    stored nowhere else. Rows are never edited (notes excepted, through the
    correction tracker) and never deleted; reversals are new rows.
    """
    __tablename__ = "cash_transactions"
    __table_args__ = (
        db.Index("ix_cash_tx_user_occurred", "user_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, nullable=False, index=True)

    transaction_type = db.Column(db.String(32), nullable=False, index=True)

    # Signed: inflows positive, outflows negative
    amount_cents = db.Column(db.Integer, nullable=False)

    notes = db.Column(db.String(500), nullable=True)

    related_transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=True, index=True)
    related_lot_id = db.Column(db.Integer, db.ForeignKey("lots.id"), nullable=True, index=True)
    related_expense_id = db.Column(db.Integer, db.ForeignKey("expenses.id"), nullable=True, index=True)

    # Business time vs system time
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<CashTransaction id={self.id} type={self.transaction_type} amount_cents={self.amount_cents}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "transaction_type": self.transaction_type,
            "amount": format_cents(self.amount_cents),
            "notes": self.notes,
            "related_transaction_id": self.related_transaction_id,
            "related_lot_id": self.related_lot_id,
            "related_expense_id": self.related_expense_id,
            "occurred_at": to_utc_z(self.occurred_at),
            "created_at": to_utc_z(self.created_at),
            **self.correction_dict(),
        }
