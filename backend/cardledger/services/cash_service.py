"""
Cash Position Service

WHY: The business needs to know how much cash it has, and that number must
always agree with the ledger. It is therefore never stored: the balance is a
fold over cash_transactions, recomputed on every read.

DESIGN PRINCIPLES:
- cash_transactions is append-only; corrections and reversals are new rows
- Signed amounts: inflows positive, outflows negative
- Derived entries (sale, lot_purchase, expense, reversal) are written by the
  operation that causes them, inside the same unit of work
- Manual entries (deposit, withdrawal, adjustment) are recorded here
"""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional

from flask import current_app
from sqlalchemy import func

from ..context import LedgerContext
from ..extensions import db
from ..models import CashTransaction
from ..models.transactions import (
    CASH_TYPES,
    CASH_TYPE_ADJUSTMENT,
    CASH_TYPE_WITHDRAWAL,
    MANUAL_CASH_TYPES,
)
from ..time_utils import utcnow
from ..validation import (
    ValidationError,
    cents_to_decimal,
    parse_amount_cents,
    parse_business_date,
    require_choice,
    validate_notes,
)
from .concurrency import UnitOfWork


ADJUST_ADD = "add"
ADJUST_REMOVE = "remove"


# =============================================================================
# PROJECTION
# =============================================================================

def get_cash_balance_cents(owner_id: int) -> int:
    total = (
        db.session.query(func.coalesce(func.sum(CashTransaction.amount_cents), 0))
        .filter(CashTransaction.user_id == owner_id)
        .scalar()
    )
    return int(total or 0)


def get_cash_balance(owner_id: int) -> Decimal:
    """
    Current cash balance for an owner.

    Pure fold over every cash entry; no cache and no running total.
    """
    return cents_to_decimal(get_cash_balance_cents(owner_id))


def list_cash_transactions(owner_id: int, limit: Optional[int] = None) -> list[CashTransaction]:
    q = (
        db.session.query(CashTransaction)
        .filter_by(user_id=owner_id)
        .order_by(CashTransaction.occurred_at.desc(), CashTransaction.id.desc())
    )
    if limit is not None:
        q = q.limit(limit)
    return q.all()


def cash_entries_for_transaction(owner_id: int, transaction_id: int) -> list[CashTransaction]:
    return (
        db.session.query(CashTransaction)
        .filter_by(user_id=owner_id, related_transaction_id=transaction_id)
        .order_by(CashTransaction.id.asc())
        .all()
    )


# =============================================================================
# WRITES
# =============================================================================

def append_cash_entry(
    *,
    owner_id: int,
    transaction_type: str,
    amount_cents: int,
    notes: str | None = None,
    related_transaction_id: int | None = None,
    related_lot_id: int | None = None,
    related_expense_id: int | None = None,
    occurred_at: datetime | None = None,
) -> CashTransaction:
    """
    Append one signed cash entry to the current session.

    Does not commit; callers run this inside their unit of work.
    """
    if transaction_type not in CASH_TYPES:
        raise ValidationError(f"Unknown cash transaction type: {transaction_type}")

    entry = CashTransaction(
        user_id=owner_id,
        transaction_type=transaction_type,
        amount_cents=amount_cents,
        notes=notes,
        related_transaction_id=related_transaction_id,
        related_lot_id=related_lot_id,
        related_expense_id=related_expense_id,
        occurred_at=occurred_at or utcnow(),
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def _business_timestamp(day: Optional[date]) -> datetime:
    """User-selected calendar day combined with the current time of day."""
    now = utcnow()
    if day is None:
        return now
    return datetime.combine(day, time(now.hour, now.minute, now.second, now.microsecond))


def record_cash_transaction(
    ctx: LedgerContext,
    *,
    transaction_type: str,
    amount,
    direction: str | None = None,
    transaction_date=None,
    notes: str | None = None,
) -> CashTransaction:
    """
    Record a manual cash movement.

    Args:
        transaction_type: deposit, withdrawal or adjustment
        amount: positive amount; the sign comes from the type
        direction: for adjustments, "add" or "remove"
        transaction_date: business date (defaults to today, never in the future)
        notes: optional free text

    Raises:
        ValidationError: bad type, amount, direction, date or notes
        ReadOnlyContextError: mentor view
    """
    ctx.require_writable()

    require_choice(transaction_type, MANUAL_CASH_TYPES, "transaction_type")
    amount_cents = parse_amount_cents(amount, "amount")
    clean_notes = validate_notes(notes)
    day = parse_business_date(transaction_date, "transaction_date") if transaction_date is not None else None

    if transaction_type == CASH_TYPE_WITHDRAWAL:
        amount_cents = -amount_cents
    elif transaction_type == CASH_TYPE_ADJUSTMENT:
        require_choice(direction, (ADJUST_ADD, ADJUST_REMOVE), "direction")
        if direction == ADJUST_REMOVE:
            amount_cents = -amount_cents

    with UnitOfWork("record_cash_transaction") as uow:
        entry = append_cash_entry(
            owner_id=ctx.owner_id,
            transaction_type=transaction_type,
            amount_cents=amount_cents,
            notes=clean_notes,
            occurred_at=_business_timestamp(day),
        )
        uow.step("cash_entry")

    current_app.logger.info(
        "Cash %s recorded: owner=%s amount_cents=%s", transaction_type, ctx.owner_id, amount_cents
    )
    return entry
