"""
Sales & Disposition Service

WHY: Every way inventory leaves the business is recorded as a Transaction.
Sales bring cash in; dispositions (discarded, lost, combined into another lot)
do not. The derived effects of each record are written in the same unit of
work as the record itself:

    show_card_sale  -> transaction + sale cash entry (+revenue) + card sold
    bulk_sale       -> transaction + sale cash entry (+revenue)
    disposition     -> transaction (revenue 0) [+ card combined/lost]
"""

from __future__ import annotations

from flask import current_app

from ..context import LedgerContext
from ..extensions import db
from ..models import Lot, Show, ShowCard, Transaction
from ..models.inventory import LOT_STATUS_ACTIVE
from ..models.shows import SHOW_STATUS_COMPLETED
from ..models.transactions import (
    CASH_TYPE_SALE,
    DISPOSITION_COMBINED,
    DISPOSITION_TYPES,
    TX_TYPE_BULK_SALE,
    TX_TYPE_DISPOSITION,
    TX_TYPE_SHOW_CARD_SALE,
)
from ..validation import (
    ConsistencyViolation,
    ValidationError,
    parse_amount_cents,
    parse_business_date,
    parse_positive_int,
    require_choice,
    validate_notes,
)
from .cash_service import append_cash_entry
from .concurrency import UnitOfWork, lock_for_update
from .ledger_service import get_owned
from .status_service import mark_card_disposed, mark_card_sold


def _resolve_show(ctx: LedgerContext, show_id: int | None) -> Show | None:
    if show_id is None:
        return None
    show = get_owned(Show, ctx.owner_id, show_id)
    if show.status == SHOW_STATUS_COMPLETED:
        current_app.logger.warning(
            "Recording a transaction against completed show %s (owner %s)", show.id, ctx.owner_id
        )
    return show


def record_show_card_sale(
    ctx: LedgerContext,
    *,
    show_card_id: int,
    sale_price,
    transaction_date,
    show_id: int | None = None,
    notes: str | None = None,
) -> Transaction:
    """
    Sell one show card.

    The transaction inherits the card's lot. The card flips to sold; a card
    with no asking price takes the sale price as its asking price.

    Raises:
        ConsistencyViolation: card is not available
        NotFoundError: card or show missing
    """
    ctx.require_writable()
    revenue_cents = parse_amount_cents(sale_price, "sale_price")
    day = parse_business_date(transaction_date, "transaction_date")
    clean_notes = validate_notes(notes)

    with UnitOfWork("record_show_card_sale") as uow:
        card = get_owned(ShowCard, ctx.owner_id, show_card_id, label="Show card", for_update=True)
        show = _resolve_show(ctx, show_id)

        mark_card_sold(card)
        if card.asking_price_cents is None:
            card.asking_price_cents = revenue_cents

        tx = Transaction(
            user_id=ctx.owner_id,
            transaction_type=TX_TYPE_SHOW_CARD_SALE,
            revenue_cents=revenue_cents,
            quantity=1,
            transaction_date=day,
            notes=clean_notes,
            show_card_id=card.id,
            lot_id=card.lot_id,
            show_id=show.id if show else None,
        )
        db.session.add(tx)
        uow.step("transaction")
        uow.step("card_sold")

        append_cash_entry(
            owner_id=ctx.owner_id,
            transaction_type=CASH_TYPE_SALE,
            amount_cents=revenue_cents,
            notes=f"Show card sale: {card.player_name}",
            related_transaction_id=tx.id,
        )
        uow.step("sale_cash_entry")

    current_app.logger.info(
        "Show card %s sold for %s cents (transaction %s, owner %s)",
        show_card_id, revenue_cents, tx.id, ctx.owner_id,
    )
    return tx


def record_bulk_sale(
    ctx: LedgerContext,
    *,
    lot_id: int,
    revenue,
    transaction_date,
    quantity=None,
    show_id: int | None = None,
    notes: str | None = None,
) -> Transaction:
    """Record a sale of non-tracked inventory from a lot."""
    ctx.require_writable()
    revenue_cents = parse_amount_cents(revenue, "revenue")
    day = parse_business_date(transaction_date, "transaction_date")
    qty = parse_positive_int(quantity, "quantity")
    clean_notes = validate_notes(notes)

    with UnitOfWork("record_bulk_sale") as uow:
        lot = get_owned(Lot, ctx.owner_id, lot_id)
        if lot.status != LOT_STATUS_ACTIVE:
            current_app.logger.warning("Bulk sale recorded against %s lot %s", lot.status, lot.id)
        show = _resolve_show(ctx, show_id)

        tx = Transaction(
            user_id=ctx.owner_id,
            transaction_type=TX_TYPE_BULK_SALE,
            revenue_cents=revenue_cents,
            quantity=qty,
            transaction_date=day,
            notes=clean_notes,
            lot_id=lot.id,
            show_id=show.id if show else None,
        )
        db.session.add(tx)
        uow.step("transaction")

        append_cash_entry(
            owner_id=ctx.owner_id,
            transaction_type=CASH_TYPE_SALE,
            amount_cents=revenue_cents,
            notes=f"Bulk sale: {lot.source}",
            related_transaction_id=tx.id,
        )
        uow.step("sale_cash_entry")

    current_app.logger.info("Bulk sale %s recorded for lot %s (owner %s)", tx.id, lot_id, ctx.owner_id)
    return tx


def record_disposition(
    ctx: LedgerContext,
    *,
    lot_id: int,
    disposition_type: str,
    transaction_date,
    quantity=None,
    show_card_id: int | None = None,
    destination_lot_id: int | None = None,
    notes: str | None = None,
) -> Transaction:
    """
    Remove inventory from a lot without a sale.

    With show_card_id the disposition targets one tracked card (quantity 1)
    and flips it to combined or lost. Without it, quantity counts bulk cards.
    Combined dispositions need an active destination lot other than the source.
    """
    ctx.require_writable()
    require_choice(disposition_type, DISPOSITION_TYPES, "disposition_type")
    day = parse_business_date(transaction_date, "transaction_date")
    clean_notes = validate_notes(notes)

    if show_card_id is not None:
        qty = parse_positive_int(quantity, "quantity") or 1
        if qty != 1:
            raise ValidationError("quantity must be 1 for a show card disposition")
    else:
        qty = parse_positive_int(quantity, "quantity", required=True)

    if disposition_type == DISPOSITION_COMBINED:
        if destination_lot_id is None:
            raise ValidationError("destination_lot_id is required for combined dispositions")
        if destination_lot_id == lot_id:
            raise ValidationError("destination_lot_id must differ from lot_id")
    elif destination_lot_id is not None:
        raise ValidationError("destination_lot_id is only allowed for combined dispositions")

    with UnitOfWork("record_disposition") as uow:
        lot = get_owned(Lot, ctx.owner_id, lot_id)

        destination = None
        if disposition_type == DISPOSITION_COMBINED:
            destination = get_owned(Lot, ctx.owner_id, destination_lot_id, label="Destination lot")
            if destination.status != LOT_STATUS_ACTIVE:
                raise ConsistencyViolation(
                    f"Destination lot {destination.id} is {destination.status}; combine into an active lot"
                )

        card = None
        if show_card_id is not None:
            card = lock_for_update(
                db.session.query(ShowCard).filter_by(id=show_card_id, user_id=ctx.owner_id)
            ).first()
            if card is None or card.lot_id != lot.id:
                raise ConsistencyViolation(f"Show card {show_card_id} does not belong to lot {lot.id}")
            mark_card_disposed(card, disposition_type, destination.id if destination else None)

        if destination is not None:
            dest_info = f"Combined into lot: {destination.source}"
            final_notes = f"{dest_info}\n{clean_notes}" if clean_notes else dest_info
        else:
            final_notes = clean_notes or f"Disposition: {disposition_type}"
        final_notes = validate_notes(final_notes[:500])

        tx = Transaction(
            user_id=ctx.owner_id,
            transaction_type=TX_TYPE_DISPOSITION,
            disposition_type=disposition_type,
            revenue_cents=0,
            quantity=qty,
            transaction_date=day,
            notes=final_notes,
            show_card_id=card.id if card else None,
            lot_id=lot.id,
            destination_lot_id=destination.id if destination else None,
        )
        db.session.add(tx)
        uow.step("transaction")
        if card is not None:
            uow.step("card_disposed")

    current_app.logger.info(
        "Disposition %s (%s x%s) recorded for lot %s (owner %s)",
        tx.id, disposition_type, qty, lot_id, ctx.owner_id,
    )
    return tx
