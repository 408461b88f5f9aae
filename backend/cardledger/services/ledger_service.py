# Overview: Shared ledger plumbing: owner-scoped lookups and the append-only correction log.

from __future__ import annotations

from typing import Any, Type, TypeVar

from ..extensions import db
from ..models import CorrectionEvent
from ..time_utils import utcnow
from ..validation import NotFoundError
from .concurrency import lock_for_update
"""
Correction Log Invariants (authoritative)

- Append-only: events are never updated or deleted.
- No domain logic in the log itself; callers decide what to record.
- Events are written inside the same unit of work as the change they describe.
- The corrected row keeps only its latest note; this table keeps every one.
"""

M = TypeVar("M")


def get_owned(model: Type[M], owner_id: int, entity_id: Any, *, label: str | None = None, for_update: bool = False) -> M:
    """
    Fetch a row by id scoped to its owner.

    Rows belonging to someone else are indistinguishable from missing rows.
    """
    name = label or model.__name__
    if entity_id is None:
        raise NotFoundError(f"{name} not found")

    q = db.session.query(model).filter_by(id=entity_id, user_id=owner_id)
    if for_update:
        q = lock_for_update(q)
    row = q.first()
    if row is None:
        raise NotFoundError(f"{name} {entity_id} not found")
    return row


def append_correction_event(
    *,
    owner_id: int,
    entity_type: str,
    entity_id: int,
    action: str,
    note: str,
    changes: dict | None = None,
    correction_number: int = 0,
    actor_id: int | None = None,
) -> CorrectionEvent:
    """
    Append one audit event.

    - No deletes/updates of existing events.
    - Flushes so the event id is assigned without committing.
    """
    ev = CorrectionEvent(
        user_id=owner_id,
        actor_id=actor_id,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        note=note,
        changes=changes,
        correction_number=correction_number,
        occurred_at=utcnow(),
    )
    db.session.add(ev)
    db.session.flush()
    return ev


def list_correction_events(owner_id: int, entity_type: str, entity_id: int) -> list[CorrectionEvent]:
    return (
        db.session.query(CorrectionEvent)
        .filter_by(user_id=owner_id, entity_type=entity_type, entity_id=entity_id)
        .order_by(CorrectionEvent.occurred_at.asc(), CorrectionEvent.id.asc())
        .all()
    )
