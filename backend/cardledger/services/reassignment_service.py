"""
Reassignment Coordinator

WHY: A transaction recorded against the wrong lot or show skews every rollup
that reads it. Moving it is a correction with a reason, an audit event and a
single atomic write; revenue follows automatically because lot and show
revenue are computed at read time.

RULES:
- to != from, and from must equal the transaction's current reference
- Deleted transactions stay where they are
- Card-level transactions (show card sales, card dispositions) are pinned to
  their card's lot; show card sales move between shows only
- Destinations that are closed/archived lots or completed shows are allowed,
  logged at WARNING and reported back in ReassignmentResult.warnings
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from flask import current_app

from ..context import LedgerContext
from ..models import Lot, Show, Transaction
from ..models.inventory import LOT_STATUS_ACTIVE
from ..models.shows import SHOW_STATUS_COMPLETED
from ..models.transactions import TX_TYPE_SHOW_CARD_SALE
from ..time_utils import utcnow
from ..validation import ConsistencyViolation, ValidationError, validate_reason
from .concurrency import UnitOfWork
from .correction_service import ENTITY_TRANSACTION
from .ledger_service import append_correction_event, get_owned


ACTION_LOT_REASSIGNED = "lot_reassigned"
ACTION_SHOW_REASSIGNED = "show_reassigned"


@dataclass
class ReassignmentResult:
    transaction: Transaction
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"transaction": self.transaction.to_dict(), "warnings": list(self.warnings)}


def _load_live_transaction(ctx: LedgerContext, transaction_id: int) -> Transaction:
    tx = get_owned(Transaction, ctx.owner_id, transaction_id, for_update=True)
    if tx.deleted:
        raise ConsistencyViolation(f"Transaction {tx.id} is deleted and cannot be reassigned")
    return tx


def _stamp_correction(tx: Transaction, note: str) -> None:
    tx.correction_note = note
    tx.corrected_at = utcnow()
    tx.correction_count = (tx.correction_count or 0) + 1


def _show_warnings(show: Show) -> list[str]:
    if show.status == SHOW_STATUS_COMPLETED:
        return [f"Show {show.id} is completed"]
    return []


def reassign_lot(
    ctx: LedgerContext,
    transaction_id: int,
    from_lot_id: int,
    to_lot_id: int,
    correction_note: str,
) -> ReassignmentResult:
    """
    Move a bulk sale or lot-level disposition to another lot.

    Raises:
        ValidationError: same source and destination, or bad note
        NotFoundError: transaction or destination lot missing
        ConsistencyViolation: deleted transaction, card-level transaction
            (show card sale or card disposition), or the transaction is not
            currently on from_lot_id
    """
    ctx.require_writable()
    note = validate_reason(correction_note, "correction_note")
    if from_lot_id == to_lot_id:
        raise ValidationError("to_lot_id must differ from from_lot_id")

    with UnitOfWork("reassign_lot") as uow:
        tx = _load_live_transaction(ctx, transaction_id)
        if tx.show_card_id is not None:
            raise ConsistencyViolation(
                "Card-level transactions belong to their card's lot and cannot be moved between lots",
                details={"show_card_id": tx.show_card_id},
            )
        if tx.lot_id != from_lot_id:
            raise ConsistencyViolation(
                f"Transaction {tx.id} is on lot {tx.lot_id}, not {from_lot_id}",
                details={"current_lot_id": tx.lot_id},
            )
        if tx.destination_lot_id is not None and tx.destination_lot_id == to_lot_id:
            raise ConsistencyViolation("A combined disposition cannot be moved onto its destination lot")

        destination = get_owned(Lot, ctx.owner_id, to_lot_id, label="Destination lot")
        warnings = []
        if destination.status != LOT_STATUS_ACTIVE:
            warnings.append(f"Lot {destination.id} is {destination.status}")

        tx.lot_id = destination.id
        _stamp_correction(tx, note)
        uow.step("reassign")

        append_correction_event(
            owner_id=ctx.owner_id,
            actor_id=ctx.actor_id,
            entity_type=ENTITY_TRANSACTION,
            entity_id=tx.id,
            action=ACTION_LOT_REASSIGNED,
            note=note,
            changes={"lot_id": {"old": from_lot_id, "new": destination.id}},
            correction_number=tx.correction_count,
        )
        uow.step("correction_event")

    for message in warnings:
        current_app.logger.warning("Transaction %s reassigned to non-active lot: %s", transaction_id, message)
    current_app.logger.info(
        "Transaction %s moved from lot %s to lot %s by %s", transaction_id, from_lot_id, to_lot_id, ctx.actor_id
    )
    return ReassignmentResult(tx, warnings)


def _move_show(
    ctx: LedgerContext,
    operation: str,
    tx: Transaction,
    new_show_id: int,
    note: str,
    uow: UnitOfWork,
) -> list[str]:
    destination = get_owned(Show, ctx.owner_id, new_show_id, label="Destination show")
    old_show_id = tx.show_id
    warnings = _show_warnings(destination)

    tx.show_id = destination.id
    _stamp_correction(tx, note)
    uow.step("reassign")

    append_correction_event(
        owner_id=ctx.owner_id,
        actor_id=ctx.actor_id,
        entity_type=ENTITY_TRANSACTION,
        entity_id=tx.id,
        action=ACTION_SHOW_REASSIGNED,
        note=note,
        changes={"show_id": {"old": old_show_id, "new": destination.id}, "via": operation},
        correction_number=tx.correction_count,
    )
    uow.step("correction_event")
    return warnings


def reassign_show(
    ctx: LedgerContext,
    transaction_id: int,
    from_show_id: Optional[int],
    to_show_id: int,
    correction_note: str,
) -> ReassignmentResult:
    """
    Move a transaction to another show.

    from_show_id may be None for a transaction recorded without a show.
    """
    ctx.require_writable()
    note = validate_reason(correction_note, "correction_note")
    if from_show_id == to_show_id:
        raise ValidationError("to_show_id must differ from from_show_id")

    with UnitOfWork("reassign_show") as uow:
        tx = _load_live_transaction(ctx, transaction_id)
        if tx.show_id != from_show_id:
            raise ConsistencyViolation(
                f"Transaction {tx.id} is on show {tx.show_id}, not {from_show_id}",
                details={"current_show_id": tx.show_id},
            )
        warnings = _move_show(ctx, "reassign_show", tx, to_show_id, note, uow)

    for message in warnings:
        current_app.logger.warning("Transaction %s reassigned to %s", transaction_id, message.lower())
    current_app.logger.info(
        "Transaction %s moved from show %s to show %s by %s", transaction_id, from_show_id, to_show_id, ctx.actor_id
    )
    return ReassignmentResult(tx, warnings)


def reassign_show_card_sale_to_show(
    ctx: LedgerContext,
    transaction_id: int,
    new_show_id: int,
    correction_note: str,
) -> ReassignmentResult:
    """
    Move a show card sale to another show in one atomic write.

    The card stays sold and keeps its lot; only the sale's show changes.
    """
    ctx.require_writable()
    note = validate_reason(correction_note, "correction_note")

    with UnitOfWork("reassign_show_card_sale_to_show") as uow:
        tx = _load_live_transaction(ctx, transaction_id)
        if tx.transaction_type != TX_TYPE_SHOW_CARD_SALE:
            raise ConsistencyViolation(f"Transaction {tx.id} is not a show card sale")
        if tx.show_id == new_show_id:
            raise ValidationError("new_show_id must differ from the current show")
        warnings = _move_show(ctx, "reassign_show_card_sale_to_show", tx, new_show_id, note, uow)

    for message in warnings:
        current_app.logger.warning("Show card sale %s reassigned to %s", transaction_id, message.lower())
    current_app.logger.info("Show card sale %s moved to show %s by %s", transaction_id, new_show_id, ctx.actor_id)
    return ReassignmentResult(tx, warnings)
