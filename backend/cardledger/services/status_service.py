"""
Status Propagation Service

================================================================================
PURPOSE: Keep ShowCard, Lot and Show status consistent with the transactions
that reference them.
================================================================================

CARD STATE MACHINE:
    available -> sold       show_card_sale recorded
    available -> combined   combined disposition (destination lot set)
    available -> lost       lost / discarded disposition
    sold      -> available  ONLY when the originating sale is deleted
    combined/lost -> available  when the card-level disposition is deleted

LOT STATE MACHINE:
    active  -> closed     only when no card of the lot is available
    closed  -> archived
    closed/archived -> active  (reopen, or deleting a transaction that puts
                                one of its cards back to available)

SHOW STATE MACHINE:
    planned -> active -> completed
    Nothing returns to planned once a transaction or expense references it.

Card helpers mutate the row only. They never commit: the caller's unit of
work owns the boundary, so a card flip and the transaction that implies it
land together or not at all.
================================================================================
"""

from __future__ import annotations

from typing import Optional

from flask import current_app

from ..context import LedgerContext
from ..extensions import db
from ..models import Expense, Lot, Show, ShowCard, Transaction
from ..models.inventory import (
    CARD_STATUS_AVAILABLE,
    CARD_STATUS_COMBINED,
    CARD_STATUS_LOST,
    CARD_STATUS_SOLD,
    LOT_STATUS_ACTIVE,
    LOT_STATUS_ARCHIVED,
    LOT_STATUS_CLOSED,
)
from ..models.shows import SHOW_STATUSES, SHOW_STATUS_PLANNED
from ..models.transactions import DISPOSITION_COMBINED
from ..time_utils import today
from ..validation import (
    ConsistencyViolation,
    parse_business_date,
    require_choice,
    validate_notes,
)
from .concurrency import UnitOfWork
from .ledger_service import get_owned


# =============================================================================
# SHOW CARDS
# =============================================================================

def mark_card_sold(card: ShowCard) -> ShowCard:
    if card.status != CARD_STATUS_AVAILABLE:
        raise ConsistencyViolation(
            f"Show card {card.id} is {card.status}; only available cards can be sold"
        )
    card.status = CARD_STATUS_SOLD
    return card


def mark_card_disposed(card: ShowCard, disposition_type: str, destination_lot_id: Optional[int] = None) -> ShowCard:
    """available -> combined (with destination) or available -> lost."""
    if card.status != CARD_STATUS_AVAILABLE:
        raise ConsistencyViolation(
            f"Show card {card.id} is {card.status}; only available cards can be disposed"
        )
    if disposition_type == DISPOSITION_COMBINED:
        card.status = CARD_STATUS_COMBINED
        card.destination_lot_id = destination_lot_id
    else:
        card.status = CARD_STATUS_LOST
        card.destination_lot_id = None
    card.disposition_type = disposition_type
    return card


def revert_card_to_available(card: ShowCard) -> ShowCard:
    card.status = CARD_STATUS_AVAILABLE
    card.disposition_type = None
    card.destination_lot_id = None
    return card


# =============================================================================
# LOTS
# =============================================================================

def count_available_cards(lot_id: int) -> int:
    return (
        db.session.query(ShowCard)
        .filter_by(lot_id=lot_id, status=CARD_STATUS_AVAILABLE)
        .count()
    )


def close_lot(
    ctx: LedgerContext,
    lot_id: int,
    *,
    closure_reason: str | None = None,
    closure_date=None,
) -> Lot:
    """
    Close a lot (active -> closed).

    Raises:
        ConsistencyViolation: any card of the lot is still available, or the
            lot is not active
        NotFoundError: lot missing or owned by someone else
    """
    ctx.require_writable()
    reason = validate_notes(closure_reason, "closure_reason")
    day = parse_business_date(closure_date, "closure_date") if closure_date is not None else today()

    with UnitOfWork("close_lot") as uow:
        lot = get_owned(Lot, ctx.owner_id, lot_id, for_update=True)
        if lot.status != LOT_STATUS_ACTIVE:
            raise ConsistencyViolation(f"Lot {lot.id} is {lot.status}; only active lots can be closed")

        available = count_available_cards(lot.id)
        if available:
            raise ConsistencyViolation(
                f"Cannot close - {available} show card(s) still available. "
                "Sell, transfer, or mark as lost first.",
                details={"available_cards": available},
            )

        lot.status = LOT_STATUS_CLOSED
        lot.closure_date = day
        lot.closure_reason = reason
        uow.step("close_lot")

    current_app.logger.info("Lot %s closed by owner %s", lot.id, ctx.owner_id)
    return lot


def reactivate_lot(lot: Lot) -> Lot:
    """closed/archived -> active. Mutates the row only."""
    lot.status = LOT_STATUS_ACTIVE
    lot.closure_date = None
    lot.closure_reason = None
    return lot


def reopen_lot(ctx: LedgerContext, lot_id: int) -> Lot:
    ctx.require_writable()
    with UnitOfWork("reopen_lot") as uow:
        lot = get_owned(Lot, ctx.owner_id, lot_id, for_update=True)
        if lot.status == LOT_STATUS_ACTIVE:
            raise ConsistencyViolation(f"Lot {lot.id} is already active")
        reactivate_lot(lot)
        uow.step("reopen_lot")
    return lot


def archive_lot(ctx: LedgerContext, lot_id: int) -> Lot:
    ctx.require_writable()
    with UnitOfWork("archive_lot") as uow:
        lot = get_owned(Lot, ctx.owner_id, lot_id, for_update=True)
        if lot.status != LOT_STATUS_CLOSED:
            raise ConsistencyViolation(f"Lot {lot.id} is {lot.status}; only closed lots can be archived")
        lot.status = LOT_STATUS_ARCHIVED
        uow.step("archive_lot")
    return lot


# =============================================================================
# SHOWS
# =============================================================================

def show_activity_counts(show_id: int) -> tuple[int, int]:
    """
    (transactions, expenses) referencing the show.

    Deleted rows count: a show that ever had financial activity stays out of
    planned.
    """
    tx_count = db.session.query(Transaction).filter_by(show_id=show_id).count()
    exp_count = db.session.query(Expense).filter_by(show_id=show_id).count()
    return tx_count, exp_count


def change_show_status(ctx: LedgerContext, show_id: int, new_status: str) -> Show:
    """
    Move a show between planned / active / completed.

    Raises:
        ConsistencyViolation: reverting to planned with financial activity
    """
    ctx.require_writable()
    require_choice(new_status, SHOW_STATUSES, "status")

    with UnitOfWork("change_show_status") as uow:
        show = get_owned(Show, ctx.owner_id, show_id, for_update=True)
        if new_status == SHOW_STATUS_PLANNED and show.status != SHOW_STATUS_PLANNED:
            tx_count, exp_count = show_activity_counts(show.id)
            if tx_count or exp_count:
                raise ConsistencyViolation(
                    f"Cannot revert to Planned - this show has {tx_count} transaction(s) and "
                    f"{exp_count} expense(s) recorded. Shows with financial records cannot be reverted.",
                    details={"transactions": tx_count, "expenses": exp_count},
                )
        show.status = new_status
        uow.step("show_status")

    return show
