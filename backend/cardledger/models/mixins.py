from __future__ import annotations

from ..extensions import db
from cardledger.time_utils import to_utc_z


class CorrectionMixin:
    """
    Latest-correction metadata kept on the corrected row itself.

    Only the most recent note and timestamp live here; the full history is
    appended to correction_events.
    """

    correction_note = db.Column(db.String(500), nullable=True)
    corrected_at = db.Column(db.DateTime(timezone=True), nullable=True)
    correction_count = db.Column(db.Integer, nullable=False, default=0)

    def correction_dict(self) -> dict:
        return {
            "correction_note": self.correction_note,
            "corrected_at": to_utc_z(self.corrected_at),
            "correction_count": self.correction_count or 0,
        }


class SoftDeleteMixin:
    """Deleted rows stay queryable for audit; reads filter on ``deleted``."""

    deleted = db.Column(db.Boolean, nullable=False, default=False, index=True)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    deletion_reason = db.Column(db.String(500), nullable=True)

    def deletion_dict(self) -> dict:
        return {
            "deleted": bool(self.deleted),
            "deleted_at": to_utc_z(self.deleted_at),
            "deletion_reason": self.deletion_reason,
        }
