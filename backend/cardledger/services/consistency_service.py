"""
Consistency Verifier

Read-only sweep comparing stored derived state (card status, lot status,
cash entries) against the transactions that should imply it. Every ledger
operation keeps these in step inside one unit of work; this exists to prove
it and to surface rows written by anything that bypassed the services.

Checks:
- sold_without_sale      card is sold but no live show_card_sale references it
- available_with_sale    card is available but a live show_card_sale references it
- missing_reversal       deleted transaction with revenue and no reversal entry
- missing_sale_cash      live sale with no sale cash entry
- closed_lot_available   closed lot that still has available cards
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from flask import current_app

from ..extensions import db
from ..models import CashTransaction, Lot, ShowCard, Transaction
from ..models.inventory import CARD_STATUS_AVAILABLE, CARD_STATUS_SOLD, LOT_STATUS_CLOSED
from ..models.transactions import CASH_TYPE_REVERSAL, CASH_TYPE_SALE, TX_TYPE_SHOW_CARD_SALE


@dataclass
class DriftInfo:
    drift_kind: str
    entity_type: str
    entity_id: int
    expected: dict[str, Any] = field(default_factory=dict)
    actual: dict[str, Any] = field(default_factory=dict)
    description: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


def _live_card_sale_ids(owner_id: int) -> set[int]:
    rows = (
        db.session.query(Transaction.show_card_id)
        .filter(
            Transaction.user_id == owner_id,
            Transaction.transaction_type == TX_TYPE_SHOW_CARD_SALE,
            Transaction.deleted.is_(False),
            Transaction.show_card_id.isnot(None),
        )
        .all()
    )
    return {row[0] for row in rows}


def _cash_refs(owner_id: int, cash_type: str) -> set[int]:
    rows = (
        db.session.query(CashTransaction.related_transaction_id)
        .filter(
            CashTransaction.user_id == owner_id,
            CashTransaction.transaction_type == cash_type,
            CashTransaction.related_transaction_id.isnot(None),
        )
        .all()
    )
    return {row[0] for row in rows}


def _card_drift(owner_id: int) -> list[DriftInfo]:
    sold_ids = _live_card_sale_ids(owner_id)
    drifts = []
    cards = (
        db.session.query(ShowCard)
        .filter(
            ShowCard.user_id == owner_id,
            ShowCard.status.in_((CARD_STATUS_SOLD, CARD_STATUS_AVAILABLE)),
        )
        .order_by(ShowCard.id)
        .all()
    )
    for card in cards:
        if card.status == CARD_STATUS_SOLD and card.id not in sold_ids:
            drifts.append(DriftInfo(
                drift_kind="sold_without_sale",
                entity_type="show_card",
                entity_id=card.id,
                expected={"status": CARD_STATUS_AVAILABLE},
                actual={"status": card.status},
                description=f"Show card {card.id} is sold but no live sale references it",
            ))
        elif card.status == CARD_STATUS_AVAILABLE and card.id in sold_ids:
            drifts.append(DriftInfo(
                drift_kind="available_with_sale",
                entity_type="show_card",
                entity_id=card.id,
                expected={"status": CARD_STATUS_SOLD},
                actual={"status": card.status},
                description=f"Show card {card.id} is available but has a live sale",
            ))
    return drifts


def _cash_drift(owner_id: int) -> list[DriftInfo]:
    reversed_ids = _cash_refs(owner_id, CASH_TYPE_REVERSAL)
    sale_cash_ids = _cash_refs(owner_id, CASH_TYPE_SALE)
    drifts = []

    txs = (
        db.session.query(Transaction)
        .filter(Transaction.user_id == owner_id, Transaction.revenue_cents != 0)
        .order_by(Transaction.id)
        .all()
    )
    for tx in txs:
        if tx.deleted and tx.id not in reversed_ids:
            drifts.append(DriftInfo(
                drift_kind="missing_reversal",
                entity_type="transaction",
                entity_id=tx.id,
                expected={"reversal_cents": -tx.revenue_cents},
                actual={"reversal_cents": None},
                description=f"Deleted transaction {tx.id} has no reversal cash entry",
            ))
        elif not tx.deleted and tx.is_sale and tx.id not in sale_cash_ids:
            drifts.append(DriftInfo(
                drift_kind="missing_sale_cash",
                entity_type="transaction",
                entity_id=tx.id,
                expected={"sale_cents": tx.revenue_cents},
                actual={"sale_cents": None},
                description=f"Sale {tx.id} has no sale cash entry",
            ))
    return drifts


def _lot_drift(owner_id: int) -> list[DriftInfo]:
    rows = (
        db.session.query(Lot.id, db.func.count(ShowCard.id))
        .join(ShowCard, ShowCard.lot_id == Lot.id)
        .filter(
            Lot.user_id == owner_id,
            Lot.status == LOT_STATUS_CLOSED,
            ShowCard.status == CARD_STATUS_AVAILABLE,
        )
        .group_by(Lot.id)
        .all()
    )
    return [
        DriftInfo(
            drift_kind="closed_lot_available",
            entity_type="lot",
            entity_id=lot_id,
            expected={"available_cards": 0},
            actual={"available_cards": int(count)},
            description=f"Closed lot {lot_id} still has {count} available card(s)",
        )
        for lot_id, count in rows
    ]


def find_drift(owner_id: int) -> list[DriftInfo]:
    drifts = _card_drift(owner_id) + _cash_drift(owner_id) + _lot_drift(owner_id)
    if drifts:
        current_app.logger.warning("Ledger drift for owner %s: %s finding(s)", owner_id, len(drifts))
    return drifts
