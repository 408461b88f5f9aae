"""
Show & Expense Service

WHY: Shows are where most sales happen and where most expenses are incurred.
Expenses move cash, so every expense write is paired with a cash entry in the
same unit of work.

CASH EFFECTS:
- create_expense   -> expense entry of -amount
- amount corrected -> adjustment entry of -(new - old)   (correction_service)
- delete_expense   -> reversal entry of +current amount  (reversal_service)
"""

from __future__ import annotations

from flask import current_app

from ..context import LedgerContext
from ..extensions import db
from ..models import Expense, Show
from ..models.shows import EXPENSE_CATEGORIES, SHOW_STATUS_PLANNED
from ..models.transactions import CASH_TYPE_EXPENSE
from ..validation import (
    parse_amount_cents,
    parse_business_date,
    parse_optional_amount_cents,
    require_choice,
    require_text,
    validate_notes,
)
from .cash_service import append_cash_entry
from .concurrency import UnitOfWork
from .ledger_service import get_owned


def create_show(
    ctx: LedgerContext,
    *,
    name: str,
    show_date,
    table_cost=None,
    location: str | None = None,
    booth_number: str | None = None,
    notes: str | None = None,
) -> Show:
    """Create a show in planned status. Show dates may be in the future."""
    ctx.require_writable()
    clean_name = require_text(name, "name")
    day = parse_business_date(show_date, "show_date", allow_future=True)
    cost_cents = parse_optional_amount_cents(table_cost, "table_cost") or 0
    clean_location = require_text(location, "location") if location else None
    clean_booth = require_text(booth_number, "booth_number", max_length=32) if booth_number else None
    clean_notes = validate_notes(notes)

    with UnitOfWork("create_show") as uow:
        show = Show(
            user_id=ctx.owner_id,
            name=clean_name,
            show_date=day,
            location=clean_location,
            booth_number=clean_booth,
            table_cost_cents=cost_cents,
            status=SHOW_STATUS_PLANNED,
            notes=clean_notes,
        )
        db.session.add(show)
        uow.step("show")

    return show


def create_expense(
    ctx: LedgerContext,
    *,
    amount,
    category: str,
    expense_date,
    show_id: int | None = None,
    notes: str | None = None,
) -> Expense:
    ctx.require_writable()
    amount_cents = parse_amount_cents(amount, "amount")
    require_choice(category, EXPENSE_CATEGORIES, "category")
    day = parse_business_date(expense_date, "expense_date")
    clean_notes = validate_notes(notes)

    with UnitOfWork("create_expense") as uow:
        if show_id is not None:
            get_owned(Show, ctx.owner_id, show_id)

        expense = Expense(
            user_id=ctx.owner_id,
            amount_cents=amount_cents,
            category=category,
            expense_date=day,
            show_id=show_id,
            notes=clean_notes,
        )
        db.session.add(expense)
        uow.step("expense")

        append_cash_entry(
            owner_id=ctx.owner_id,
            transaction_type=CASH_TYPE_EXPENSE,
            amount_cents=-amount_cents,
            notes=f"Expense: {category}",
            related_expense_id=expense.id,
        )
        uow.step("expense_cash_entry")

    current_app.logger.info("Expense %s recorded for owner %s (amount_cents=%s)", expense.id, ctx.owner_id, amount_cents)
    return expense
