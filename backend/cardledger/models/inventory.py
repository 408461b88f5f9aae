from __future__ import annotations

from ..extensions import db
from cardledger.time_utils import to_utc_z, to_iso_date
from cardledger.validation import format_cents


LOT_STATUS_ACTIVE = "active"
LOT_STATUS_CLOSED = "closed"
LOT_STATUS_ARCHIVED = "archived"
LOT_STATUSES = (LOT_STATUS_ACTIVE, LOT_STATUS_CLOSED, LOT_STATUS_ARCHIVED)

CARD_STATUS_AVAILABLE = "available"
CARD_STATUS_SOLD = "sold"
CARD_STATUS_COMBINED = "combined"
CARD_STATUS_LOST = "lost"
CARD_STATUSES = (CARD_STATUS_AVAILABLE, CARD_STATUS_SOLD, CARD_STATUS_COMBINED, CARD_STATUS_LOST)


class Lot(db.Model):
    """
    A purchase batch of inventory with an aggregate cost.

    Revenue is never stored on the lot. Rollups are summed from the
    transactions that reference it at read time, so moving a transaction
    between lots shifts revenue without touching either lot row.

    CLOSE RULE:
    A lot may only move to ``closed`` when none of its show cards are
    ``available`` (see status_service.close_lot).
    """
    __tablename__ = "lots"
    __table_args__ = (
        db.Index("ix_lots_user_status", "user_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, nullable=False, index=True)

    source = db.Column(db.String(255), nullable=False)
    purchase_date = db.Column(db.Date, nullable=False)

    # Authoritative storage in cents
    total_cost_cents = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(16), nullable=False, default=LOT_STATUS_ACTIVE, index=True)
    notes = db.Column(db.Text, nullable=True)

    closure_date = db.Column(db.Date, nullable=True)
    closure_reason = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Lot id={self.id} source={self.source!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "source": self.source,
            "purchase_date": to_iso_date(self.purchase_date),
            "total_cost": format_cents(self.total_cost_cents),
            "status": self.status,
            "notes": self.notes,
            "closure_date": to_iso_date(self.closure_date),
            "closure_reason": self.closure_reason,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ShowCard(db.Model):
    """
    An individually tracked premium item.

    STATUS INVARIANT:
    ``sold`` if and only if an un-deleted show_card_sale transaction references
    the card. Status is only changed inside the same unit of work as the
    transaction that implies it.

    lot_id is the owning lot and never changes. destination_lot_id is set only
    when the card was combined into another lot.
    """
    __tablename__ = "show_cards"
    __table_args__ = (
        db.Index("ix_show_cards_lot_status", "lot_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, nullable=False, index=True)

    lot_id = db.Column(db.Integer, db.ForeignKey("lots.id"), nullable=False, index=True)
    destination_lot_id = db.Column(db.Integer, db.ForeignKey("lots.id"), nullable=True, index=True)

    player_name = db.Column(db.String(255), nullable=False)
    year = db.Column(db.String(16), nullable=True)
    card_details = db.Column(db.JSON, nullable=True)

    asking_price_cents = db.Column(db.Integer, nullable=True)
    cost_basis_cents = db.Column(db.Integer, nullable=True)

    status = db.Column(db.String(16), nullable=False, default=CARD_STATUS_AVAILABLE, index=True)
    disposition_type = db.Column(db.String(16), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    lot = db.relationship("Lot", foreign_keys=[lot_id], backref=db.backref("show_cards", lazy=True))
    destination_lot = db.relationship("Lot", foreign_keys=[destination_lot_id])

    def __repr__(self) -> str:
        return f"<ShowCard id={self.id} player={self.player_name!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "lot_id": self.lot_id,
            "destination_lot_id": self.destination_lot_id,
            "player_name": self.player_name,
            "year": self.year,
            "card_details": self.card_details,
            "asking_price": format_cents(self.asking_price_cents),
            "cost_basis": format_cents(self.cost_basis_cents),
            "status": self.status,
            "disposition_type": self.disposition_type,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
