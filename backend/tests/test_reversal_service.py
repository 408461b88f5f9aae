"""
Reversal tests.

Verifies:
- Deleting a show card sale soft-deletes it, restores the card and writes a
  reversal cash entry of -revenue
- The EstateBox walkthrough: cash, lot revenue and net before and after
- Zero-revenue dispositions are deleted without a cash entry
- Deleting a card-level transaction reopens a closed or archived lot
- A failure mid-sequence leaves nothing behind
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import SQLAlchemyError

from cardledger.models import CashTransaction, CorrectionEvent, ShowCard, Transaction
from cardledger.services import (
    cash_service,
    reporting_service,
    reversal_service,
    sales_service,
    show_service,
    status_service,
)
from cardledger.validation import (
    ConsistencyViolation,
    NotFoundError,
    PartialFailureError,
    ReadOnlyContextError,
    ValidationError,
)
from conftest import SALE_DATE


REASON = "duplicate entry, same card"


def _sell(ctx, card, price="60.00", show_id=None):
    return sales_service.record_show_card_sale(
        ctx, show_card_id=card.id, sale_price=price, transaction_date=SALE_DATE, show_id=show_id
    )


class TestDeleteShowCardSale:

    def test_estatebox_walkthrough(self, ctx, lot, card):
        """Buy for $100, sell Smith 2001 for $60, then delete the sale."""
        assert cash_service.get_cash_balance(ctx.owner_id) == Decimal("-100.00")

        tx = _sell(ctx, card)
        assert card.status == "sold"
        assert card.asking_price_cents == 5000
        assert cash_service.get_cash_balance(ctx.owner_id) == Decimal("-40.00")
        summary = reporting_service.get_lot_summary(ctx.owner_id, lot.id)
        assert summary["revenue"] == "60.00"
        assert summary["net"] == "-40.00"

        reversal_service.delete_transaction(ctx, tx.id, REASON)

        assert card.status == "available"
        assert card.asking_price_cents == 5000
        assert cash_service.get_cash_balance(ctx.owner_id) == Decimal("-100.00")
        summary = reporting_service.get_lot_summary(ctx.owner_id, lot.id)
        assert summary["revenue"] == "0.00"
        assert summary["net"] == "-100.00"
        assert summary["card_counts"]["available"] == 1

    def test_reversal_entry_references_transaction(self, db_session, ctx, card):
        tx = _sell(ctx, card)
        reversal_service.delete_transaction(ctx, tx.id, REASON)

        reversal = db_session.query(CashTransaction).filter_by(
            related_transaction_id=tx.id, transaction_type="reversal"
        ).one()
        assert reversal.amount_cents == -6000

        tx = db_session.get(Transaction, tx.id)
        assert tx.deleted is True
        assert tx.deleted_at is not None
        assert tx.deletion_reason == REASON

    def test_deleted_transaction_stays_queryable(self, db_session, ctx, card):
        tx = _sell(ctx, card)
        reversal_service.delete_transaction(ctx, tx.id, REASON)
        assert db_session.query(Transaction).filter_by(id=tx.id).count() == 1

    def test_deletion_is_logged(self, db_session, ctx, card):
        tx = _sell(ctx, card)
        reversal_service.delete_transaction(ctx, tx.id, REASON)

        event = db_session.query(CorrectionEvent).filter_by(entity_id=tx.id, action="deleted").one()
        assert event.note == REASON
        assert event.changes["show_card_status"] == {"old": "sold", "new": "available"}
        assert event.changes["reversed_cents"] == 6000

    def test_card_can_be_sold_again_after_delete(self, ctx, card):
        tx = _sell(ctx, card)
        reversal_service.delete_transaction(ctx, tx.id, REASON)
        again = _sell(ctx, card, price="55.00")
        assert again.revenue_cents == 5500
        assert card.status == "sold"


class TestDeleteGuards:

    def test_reason_too_short(self, ctx, card):
        tx = _sell(ctx, card)
        with pytest.raises(ValidationError):
            reversal_service.delete_transaction(ctx, tx.id, "dup entry")
        assert card.status == "sold"

    def test_already_deleted(self, ctx, card):
        tx = _sell(ctx, card)
        reversal_service.delete_transaction(ctx, tx.id, REASON)
        with pytest.raises(ConsistencyViolation):
            reversal_service.delete_transaction(ctx, tx.id, REASON)

    def test_other_owner_cannot_delete(self, ctx, other_ctx, card):
        tx = _sell(ctx, card)
        with pytest.raises(NotFoundError):
            reversal_service.delete_transaction(other_ctx, tx.id, REASON)

    def test_mentor_view_cannot_delete(self, ctx, mentor_ctx, card):
        tx = _sell(ctx, card)
        with pytest.raises(ReadOnlyContextError):
            reversal_service.delete_transaction(mentor_ctx, tx.id, REASON)


class TestDeleteOtherTransactions:

    def test_bulk_sale(self, db_session, ctx, lot):
        tx = sales_service.record_bulk_sale(ctx, lot_id=lot.id, revenue="25.00", transaction_date=SALE_DATE)
        assert cash_service.get_cash_balance_cents(ctx.owner_id) == -7500

        reversal_service.delete_transaction(ctx, tx.id, "entered against wrong binder")
        assert cash_service.get_cash_balance_cents(ctx.owner_id) == -10000

    def test_zero_revenue_disposition_writes_no_cash(self, db_session, ctx, lot):
        tx = sales_service.record_disposition(
            ctx, lot_id=lot.id, disposition_type="discarded", quantity=20, transaction_date=SALE_DATE
        )
        before = db_session.query(CashTransaction).count()

        reversal_service.delete_transaction(ctx, tx.id, "those commons were kept after all")

        assert db_session.query(CashTransaction).count() == before
        assert db_session.get(Transaction, tx.id).deleted is True

    def test_card_level_disposition_restores_card(self, ctx, lot, second_lot, card):
        tx = sales_service.record_disposition(
            ctx,
            lot_id=lot.id,
            disposition_type="combined",
            transaction_date=SALE_DATE,
            show_card_id=card.id,
            destination_lot_id=second_lot.id,
        )
        assert card.status == "combined"
        assert card.destination_lot_id == second_lot.id

        reversal_service.delete_transaction(ctx, tx.id, "card is still in the original box")

        assert card.status == "available"
        assert card.destination_lot_id is None
        assert card.disposition_type is None


class TestDeleteInClosedLot:

    def test_deleting_sale_reopens_closed_lot(self, db_session, ctx, lot, card):
        from cardledger.services import consistency_service

        tx = _sell(ctx, card)
        status_service.close_lot(ctx, lot.id, closure_reason="all cards sold")

        reversal_service.delete_transaction(ctx, tx.id, REASON)

        assert card.status == "available"
        assert lot.status == "active"
        assert lot.closure_reason is None
        event = db_session.query(CorrectionEvent).filter_by(entity_id=tx.id, action="deleted").one()
        assert event.changes["lot_status"] == {"lot_id": lot.id, "old": "closed", "new": "active"}
        assert consistency_service.find_drift(ctx.owner_id) == []

    def test_deleting_card_disposition_reopens_archived_lot(self, ctx, lot, card):
        tx = sales_service.record_disposition(
            ctx, lot_id=lot.id, disposition_type="lost", transaction_date=SALE_DATE, show_card_id=card.id
        )
        status_service.close_lot(ctx, lot.id)
        status_service.archive_lot(ctx, lot.id)

        reversal_service.delete_transaction(ctx, tx.id, "card turned up in another box")

        assert card.status == "available"
        assert lot.status == "active"

    def test_active_lot_left_alone(self, db_session, ctx, lot, card):
        tx = _sell(ctx, card)
        reversal_service.delete_transaction(ctx, tx.id, REASON)

        event = db_session.query(CorrectionEvent).filter_by(entity_id=tx.id, action="deleted").one()
        assert event.changes["lot_status"] is None

    def test_bulk_sale_in_closed_lot_keeps_lot_closed(self, ctx, lot):
        tx = sales_service.record_bulk_sale(ctx, lot_id=lot.id, revenue="25.00", transaction_date=SALE_DATE)
        status_service.close_lot(ctx, lot.id)

        reversal_service.delete_transaction(ctx, tx.id, "entered against wrong binder")

        assert lot.status == "closed"


class TestDeleteAtomicity:

    def test_failure_at_reversal_step_rolls_everything_back(self, db_session, ctx, card, monkeypatch):
        tx = _sell(ctx, card)
        tx_id = tx.id

        def boom(**kwargs):
            raise SQLAlchemyError("disk full")

        monkeypatch.setattr(reversal_service, "append_cash_entry", boom)

        with pytest.raises(PartialFailureError) as exc_info:
            reversal_service.delete_transaction(ctx, tx_id, REASON)

        assert exc_info.value.operation == "delete_transaction"
        assert exc_info.value.completed_steps == ["soft_delete", "revert_card"]

        assert db_session.get(Transaction, tx_id).deleted is False
        assert db_session.get(ShowCard, card.id).status == "sold"
        assert db_session.query(CashTransaction).filter_by(transaction_type="reversal").count() == 0
        assert db_session.query(CorrectionEvent).count() == 0
        assert cash_service.get_cash_balance_cents(ctx.owner_id) == -4000


class TestDeleteExpense:

    def test_delete_expense_restores_cash(self, db_session, ctx, show):
        expense = show_service.create_expense(
            ctx, amount="30.00", category="travel", expense_date=SALE_DATE, show_id=show.id
        )
        assert cash_service.get_cash_balance_cents(ctx.owner_id) == -3000

        reversal_service.delete_expense(ctx, expense.id, "trip was reimbursed by club")

        assert cash_service.get_cash_balance_cents(ctx.owner_id) == 0
        assert expense.deleted is True
        summary = reporting_service.get_show_summary(ctx.owner_id, show.id)
        assert summary["expenses"] == "0.00"

    def test_delete_expense_twice(self, ctx):
        expense = show_service.create_expense(ctx, amount="5.00", category="food", expense_date=SALE_DATE)
        reversal_service.delete_expense(ctx, expense.id, "personal lunch, not business")
        with pytest.raises(ConsistencyViolation):
            reversal_service.delete_expense(ctx, expense.id, "personal lunch, not business")
