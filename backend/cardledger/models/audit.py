from __future__ import annotations

from ..extensions import db
from cardledger.time_utils import to_utc_z


class CorrectionEvent(db.Model):
    """
    Append-only audit history for corrections, reassignments and deletions.

    The corrected row keeps only its latest note and a running count; every
    individual change is recorded here with the old and new values.
    """
    __tablename__ = "correction_events"
    __table_args__ = (
        db.Index("ix_correction_events_entity", "entity_type", "entity_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, nullable=False, index=True)
    actor_id = db.Column(db.Integer, nullable=True)

    # What it refers to (generic pointer)
    entity_type = db.Column(db.String(32), nullable=False)  # transaction, cash_transaction, expense
    entity_id = db.Column(db.Integer, nullable=False)

    action = db.Column(db.String(32), nullable=False, index=True)  # corrected, lot_reassigned, show_reassigned, deleted
    note = db.Column(db.String(500), nullable=False)
    changes = db.Column(db.JSON, nullable=True)

    # correction_count of the entity after this event (0 for deletions)
    correction_number = db.Column(db.Integer, nullable=False, default=0)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "actor_id": self.actor_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "action": self.action,
            "note": self.note,
            "changes": self.changes,
            "correction_number": self.correction_number,
            "occurred_at": to_utc_z(self.occurred_at),
        }
