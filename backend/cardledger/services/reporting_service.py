# Overview: Read-side rollups for lots and shows; revenue is always summed from live transactions.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import Expense, Lot, Show, ShowCard, Transaction
from ..models.inventory import CARD_STATUSES
from ..validation import format_cents
from .ledger_service import get_owned


def _live_transactions(owner_id: int):
    return db.session.query(Transaction).filter(
        Transaction.user_id == owner_id,
        Transaction.deleted.is_(False),
    )


def _lot_revenue_cents(owner_id: int, lot_id: int) -> int:
    total = (
        db.session.query(func.coalesce(func.sum(Transaction.revenue_cents), 0))
        .filter(
            Transaction.user_id == owner_id,
            Transaction.lot_id == lot_id,
            Transaction.deleted.is_(False),
        )
        .scalar()
    )
    return int(total or 0)


def get_lot_summary(owner_id: int, lot_id: int) -> dict:
    """
    Revenue, cost and net for one lot, with card counts by status.

    Revenue is the sum over the lot's non-deleted transactions, so deleting
    or reassigning a transaction moves it out of this rollup immediately.
    """
    lot = get_owned(Lot, owner_id, lot_id)
    revenue_cents = _lot_revenue_cents(owner_id, lot.id)

    rows = (
        db.session.query(ShowCard.status, func.count(ShowCard.id))
        .filter(ShowCard.user_id == owner_id, ShowCard.lot_id == lot.id)
        .group_by(ShowCard.status)
        .all()
    )
    card_counts = {status: 0 for status in CARD_STATUSES}
    for status, count in rows:
        card_counts[status] = int(count)

    tx_count = _live_transactions(owner_id).filter(Transaction.lot_id == lot.id).count()

    return {
        "lot": lot.to_dict(),
        "revenue": format_cents(revenue_cents),
        "total_cost": format_cents(lot.total_cost_cents),
        "net": format_cents(revenue_cents - lot.total_cost_cents),
        "revenue_cents": revenue_cents,
        "net_cents": revenue_cents - lot.total_cost_cents,
        "transaction_count": tx_count,
        "card_counts": card_counts,
    }


def get_show_summary(owner_id: int, show_id: int) -> dict:
    """Revenue at the show minus its table cost and live expenses."""
    show = get_owned(Show, owner_id, show_id)

    revenue_cents = int(
        db.session.query(func.coalesce(func.sum(Transaction.revenue_cents), 0))
        .filter(
            Transaction.user_id == owner_id,
            Transaction.show_id == show.id,
            Transaction.deleted.is_(False),
        )
        .scalar()
        or 0
    )
    expense_cents = int(
        db.session.query(func.coalesce(func.sum(Expense.amount_cents), 0))
        .filter(
            Expense.user_id == owner_id,
            Expense.show_id == show.id,
            Expense.deleted.is_(False),
        )
        .scalar()
        or 0
    )
    table_cents = show.table_cost_cents or 0
    net_cents = revenue_cents - table_cents - expense_cents

    return {
        "show": show.to_dict(),
        "revenue": format_cents(revenue_cents),
        "table_cost": format_cents(table_cents),
        "expenses": format_cents(expense_cents),
        "net": format_cents(net_cents),
        "revenue_cents": revenue_cents,
        "net_cents": net_cents,
        "transaction_count": _live_transactions(owner_id).filter(Transaction.show_id == show.id).count(),
    }


def revenue_by_lot(owner_id: int) -> dict[int, int]:
    """{lot_id: revenue_cents} over live transactions; lots without revenue are omitted."""
    rows = (
        db.session.query(Transaction.lot_id, func.sum(Transaction.revenue_cents))
        .filter(
            Transaction.user_id == owner_id,
            Transaction.deleted.is_(False),
            Transaction.lot_id.isnot(None),
        )
        .group_by(Transaction.lot_id)
        .all()
    )
    return {int(lot_id): int(total or 0) for lot_id, total in rows if total}


def total_revenue(owner_id: int) -> int:
    total = (
        db.session.query(func.coalesce(func.sum(Transaction.revenue_cents), 0))
        .filter(Transaction.user_id == owner_id, Transaction.deleted.is_(False))
        .scalar()
    )
    return int(total or 0)
