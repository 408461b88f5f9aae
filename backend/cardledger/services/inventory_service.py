# Overview: Service-layer operations for lots and show cards; encapsulates business logic and database work.

from __future__ import annotations

from flask import current_app

from ..context import LedgerContext
from ..extensions import db
from ..models import Lot, ShowCard
from ..models.inventory import CARD_STATUS_AVAILABLE, LOT_STATUS_ACTIVE
from ..models.transactions import CASH_TYPE_LOT_PURCHASE
from ..validation import (
    ConsistencyViolation,
    ValidationError,
    parse_amount_cents,
    parse_business_date,
    parse_optional_amount_cents,
    require_text,
    validate_notes,
)
from .cash_service import append_cash_entry
from .concurrency import UnitOfWork
from .ledger_service import get_owned


def create_lot(
    ctx: LedgerContext,
    *,
    source: str,
    purchase_date,
    total_cost,
    notes: str | None = None,
) -> Lot:
    """
    Record a purchase batch.

    Writes the lot (status active) and a lot_purchase cash entry of
    -total_cost in one unit of work.
    """
    ctx.require_writable()
    clean_source = require_text(source, "source")
    day = parse_business_date(purchase_date, "purchase_date")
    cost_cents = parse_amount_cents(total_cost, "total_cost")
    clean_notes = validate_notes(notes)

    with UnitOfWork("create_lot") as uow:
        lot = Lot(
            user_id=ctx.owner_id,
            source=clean_source,
            purchase_date=day,
            total_cost_cents=cost_cents,
            status=LOT_STATUS_ACTIVE,
            notes=clean_notes,
        )
        db.session.add(lot)
        uow.step("lot")

        append_cash_entry(
            owner_id=ctx.owner_id,
            transaction_type=CASH_TYPE_LOT_PURCHASE,
            amount_cents=-cost_cents,
            notes=f"Lot purchase: {clean_source}",
            related_lot_id=lot.id,
        )
        uow.step("purchase_cash_entry")

    current_app.logger.info("Lot %s created for owner %s (cost_cents=%s)", lot.id, ctx.owner_id, cost_cents)
    return lot


def add_show_card(
    ctx: LedgerContext,
    *,
    lot_id: int,
    player_name: str,
    year: str | None = None,
    asking_price=None,
    cost_basis=None,
    card_details: dict | None = None,
) -> ShowCard:
    """Add an individually tracked card to an active lot (status available)."""
    ctx.require_writable()
    clean_name = require_text(player_name, "player_name")
    clean_year = None
    if year is not None and str(year).strip():
        clean_year = str(year).strip()
        if len(clean_year) > 16:
            raise ValidationError("year exceeds max length 16")
    asking_cents = parse_optional_amount_cents(asking_price, "asking_price")
    basis_cents = parse_optional_amount_cents(cost_basis, "cost_basis")
    if card_details is not None and not isinstance(card_details, dict):
        raise ValidationError("card_details must be an object")

    with UnitOfWork("add_show_card") as uow:
        lot = get_owned(Lot, ctx.owner_id, lot_id)
        if lot.status != LOT_STATUS_ACTIVE:
            raise ConsistencyViolation(f"Lot {lot.id} is {lot.status}; cards can only be added to active lots")

        card = ShowCard(
            user_id=ctx.owner_id,
            lot_id=lot.id,
            player_name=clean_name,
            year=clean_year,
            card_details=card_details,
            asking_price_cents=asking_cents,
            cost_basis_cents=basis_cents,
            status=CARD_STATUS_AVAILABLE,
        )
        db.session.add(card)
        uow.step("show_card")

    return card
