"""
Reversal Engine

================================================================================
PURPOSE: Undo a recorded transaction or expense without erasing it.
================================================================================

Deleting a transaction is a compensating sequence, never a DELETE:

    1. soft_delete           deleted / deleted_at / deletion_reason on the row
    2. revert_card           show card back to available (show card sales and
                             card-level dispositions only); a closed or
                             archived lot holding the card is reopened
                             (step reopen_lot) so no closed lot ever has an
                             available card
    3. reversal_cash_entry   reversal cash entry of -revenue referencing the
                             transaction (skipped when revenue is zero)
    4. correction_event      audit event with action "deleted"

All steps run in one UnitOfWork. A database failure at any step rolls
back the whole sequence and surfaces as PartialFailureError naming the steps
that had been flushed; no reader ever sees a deleted sale without its
reversal, or a reversal without a deleted sale.

Expenses follow the same pattern with a reversal of +amount.
================================================================================
"""

from __future__ import annotations

from flask import current_app

from ..context import LedgerContext
from ..models import Expense, Lot, ShowCard, Transaction
from ..models.inventory import LOT_STATUS_ACTIVE
from ..models.transactions import CASH_TYPE_REVERSAL, TX_TYPE_DISPOSITION, TX_TYPE_SHOW_CARD_SALE
from ..time_utils import utcnow
from ..validation import ConsistencyViolation, validate_reason
from .cash_service import append_cash_entry
from .concurrency import UnitOfWork
from .correction_service import ENTITY_EXPENSE, ENTITY_TRANSACTION
from .ledger_service import append_correction_event, get_owned
from .status_service import reactivate_lot, revert_card_to_available


ACTION_DELETED = "deleted"


def _soft_delete(row, reason: str) -> None:
    row.deleted = True
    row.deleted_at = utcnow()
    row.deletion_reason = reason


def _card_to_restore(ctx: LedgerContext, tx: Transaction) -> ShowCard | None:
    if tx.show_card_id is None:
        return None
    if tx.transaction_type not in (TX_TYPE_SHOW_CARD_SALE, TX_TYPE_DISPOSITION):
        return None
    return get_owned(ShowCard, ctx.owner_id, tx.show_card_id, label="Show card", for_update=True)


def delete_transaction(ctx: LedgerContext, transaction_id: int, deletion_reason: str) -> Transaction:
    """
    Soft-delete a transaction and compensate its effects.

    Raises:
        ValidationError: reason shorter than 10 or longer than 500 characters
        NotFoundError: transaction missing or owned by someone else
        ConsistencyViolation: transaction already deleted
        PartialFailureError: database failure mid-sequence (rolled back)
    """
    ctx.require_writable()
    reason = validate_reason(deletion_reason, "deletion_reason")

    with UnitOfWork("delete_transaction") as uow:
        tx = get_owned(Transaction, ctx.owner_id, transaction_id, for_update=True)
        if tx.deleted:
            raise ConsistencyViolation(f"Transaction {tx.id} is already deleted")

        _soft_delete(tx, reason)
        uow.step("soft_delete")

        card = _card_to_restore(ctx, tx)
        card_change = None
        lot_change = None
        if card is not None:
            card_change = {"old": card.status}
            revert_card_to_available(card)
            card_change["new"] = card.status
            uow.step("revert_card")

            card_lot = get_owned(Lot, ctx.owner_id, card.lot_id, for_update=True)
            if card_lot.status != LOT_STATUS_ACTIVE:
                lot_change = {"lot_id": card_lot.id, "old": card_lot.status}
                reactivate_lot(card_lot)
                lot_change["new"] = card_lot.status
                uow.step("reopen_lot")

        if tx.revenue_cents:
            append_cash_entry(
                owner_id=ctx.owner_id,
                transaction_type=CASH_TYPE_REVERSAL,
                amount_cents=-tx.revenue_cents,
                notes=f"Reversal of transaction {tx.id}: {reason}"[:500],
                related_transaction_id=tx.id,
            )
            uow.step("reversal_cash_entry")

        append_correction_event(
            owner_id=ctx.owner_id,
            actor_id=ctx.actor_id,
            entity_type=ENTITY_TRANSACTION,
            entity_id=tx.id,
            action=ACTION_DELETED,
            note=reason,
            changes={
                "deleted": {"old": False, "new": True},
                "show_card_status": card_change,
                "lot_status": lot_change,
                "reversed_cents": tx.revenue_cents,
            },
            correction_number=tx.correction_count or 0,
        )
        uow.step("correction_event")

    if lot_change is not None:
        current_app.logger.info(
            "Lot %s reopened (was %s): transaction %s deleted", lot_change["lot_id"], lot_change["old"], tx.id
        )
    current_app.logger.info(
        "Transaction %s deleted by %s (reversed_cents=%s, card_restored=%s)",
        tx.id, ctx.actor_id, tx.revenue_cents, card is not None,
    )
    return tx


def delete_expense(ctx: LedgerContext, expense_id: int, deletion_reason: str) -> Expense:
    """Soft-delete an expense and put its current amount back into cash."""
    ctx.require_writable()
    reason = validate_reason(deletion_reason, "deletion_reason")

    with UnitOfWork("delete_expense") as uow:
        expense = get_owned(Expense, ctx.owner_id, expense_id, for_update=True)
        if expense.deleted:
            raise ConsistencyViolation(f"Expense {expense.id} is already deleted")

        _soft_delete(expense, reason)
        uow.step("soft_delete")

        append_cash_entry(
            owner_id=ctx.owner_id,
            transaction_type=CASH_TYPE_REVERSAL,
            amount_cents=expense.amount_cents,
            notes=f"Reversal of expense {expense.id}: {reason}"[:500],
            related_expense_id=expense.id,
        )
        uow.step("reversal_cash_entry")

        append_correction_event(
            owner_id=ctx.owner_id,
            actor_id=ctx.actor_id,
            entity_type=ENTITY_EXPENSE,
            entity_id=expense.id,
            action=ACTION_DELETED,
            note=reason,
            changes={"deleted": {"old": False, "new": True}, "reversed_cents": expense.amount_cents},
            correction_number=expense.correction_count or 0,
        )
        uow.step("correction_event")

    current_app.logger.info("Expense %s deleted by %s", expense.id, ctx.actor_id)
    return expense
