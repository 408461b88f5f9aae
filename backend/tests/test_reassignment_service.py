"""
Reassignment tests.

Verifies:
- Moving a transaction between lots shifts revenue from A to B and leaves the total unchanged
- from/to preconditions and show card sale rules
- Non-active destinations are allowed with a warning
- Show card sales move between shows atomically and the card stays sold
"""

import pytest

from cardledger.models import CorrectionEvent
from cardledger.services import (
    reassignment_service,
    reporting_service,
    reversal_service,
    sales_service,
    status_service,
)
from cardledger.validation import ConsistencyViolation, NotFoundError, ReadOnlyContextError, ValidationError
from conftest import SALE_DATE


NOTE = "recorded against the wrong lot"


@pytest.fixture
def bulk_sale(ctx, lot):
    return sales_service.record_bulk_sale(ctx, lot_id=lot.id, revenue="25.00", transaction_date=SALE_DATE)


@pytest.fixture
def card_sale(ctx, card, show):
    return sales_service.record_show_card_sale(
        ctx, show_card_id=card.id, sale_price="60.00", transaction_date=SALE_DATE, show_id=show.id
    )


class TestReassignLot:

    def test_revenue_moves_with_transaction(self, ctx, lot, second_lot, bulk_sale):
        total_before = reporting_service.total_revenue(ctx.owner_id)

        result = reassignment_service.reassign_lot(ctx, bulk_sale.id, lot.id, second_lot.id, NOTE)

        assert result.warnings == []
        assert result.transaction.lot_id == second_lot.id
        assert result.transaction.correction_count == 1
        by_lot = reporting_service.revenue_by_lot(ctx.owner_id)
        assert lot.id not in by_lot
        assert by_lot[second_lot.id] == 2500
        assert reporting_service.total_revenue(ctx.owner_id) == total_before == 2500

    def test_event_records_old_and_new_lot(self, db_session, ctx, lot, second_lot, bulk_sale):
        reassignment_service.reassign_lot(ctx, bulk_sale.id, lot.id, second_lot.id, NOTE)
        event = db_session.query(CorrectionEvent).filter_by(action="lot_reassigned").one()
        assert event.changes == {"lot_id": {"old": lot.id, "new": second_lot.id}}
        assert event.note == NOTE

    def test_same_lot_rejected(self, ctx, lot, bulk_sale):
        with pytest.raises(ValidationError):
            reassignment_service.reassign_lot(ctx, bulk_sale.id, lot.id, lot.id, NOTE)

    def test_stale_from_lot_rejected(self, ctx, lot, second_lot, bulk_sale):
        with pytest.raises(ConsistencyViolation):
            reassignment_service.reassign_lot(ctx, bulk_sale.id, second_lot.id, lot.id, NOTE)

    def test_missing_destination(self, ctx, lot, bulk_sale):
        with pytest.raises(NotFoundError):
            reassignment_service.reassign_lot(ctx, bulk_sale.id, lot.id, 9999, NOTE)

    def test_other_owners_lot_is_not_found(self, ctx, other_ctx, lot, bulk_sale):
        from cardledger.services import inventory_service

        foreign = inventory_service.create_lot(
            other_ctx, source="Someone else", purchase_date=SALE_DATE, total_cost="10.00"
        )
        with pytest.raises(NotFoundError):
            reassignment_service.reassign_lot(ctx, bulk_sale.id, lot.id, foreign.id, NOTE)

    def test_show_card_sale_cannot_change_lot(self, ctx, lot, second_lot, card_sale):
        with pytest.raises(ConsistencyViolation):
            reassignment_service.reassign_lot(ctx, card_sale.id, lot.id, second_lot.id, NOTE)

    def test_card_disposition_cannot_change_lot(self, ctx, lot, second_lot, card):
        lost = sales_service.record_disposition(
            ctx, lot_id=lot.id, disposition_type="lost", transaction_date=SALE_DATE, show_card_id=card.id
        )
        with pytest.raises(ConsistencyViolation):
            reassignment_service.reassign_lot(ctx, lost.id, lot.id, second_lot.id, NOTE)
        assert lost.lot_id == card.lot_id == lot.id
        assert lost.correction_count == 0

    def test_deleted_transaction_cannot_move(self, ctx, lot, second_lot, bulk_sale):
        reversal_service.delete_transaction(ctx, bulk_sale.id, "entered twice by mistake")
        with pytest.raises(ConsistencyViolation):
            reassignment_service.reassign_lot(ctx, bulk_sale.id, lot.id, second_lot.id, NOTE)

    def test_closed_destination_warns(self, ctx, lot, second_lot, bulk_sale):
        status_service.close_lot(ctx, second_lot.id)

        result = reassignment_service.reassign_lot(ctx, bulk_sale.id, lot.id, second_lot.id, NOTE)

        assert result.transaction.lot_id == second_lot.id
        assert result.warnings == [f"Lot {second_lot.id} is closed"]

    def test_mentor_view_rejected(self, mentor_ctx, lot, second_lot, bulk_sale):
        with pytest.raises(ReadOnlyContextError):
            reassignment_service.reassign_lot(mentor_ctx, bulk_sale.id, lot.id, second_lot.id, NOTE)


class TestReassignShow:

    def test_from_no_show(self, ctx, bulk_sale, show):
        result = reassignment_service.reassign_show(ctx, bulk_sale.id, None, show.id, "sold at the spring show")
        assert result.transaction.show_id == show.id
        summary = reporting_service.get_show_summary(ctx.owner_id, show.id)
        assert summary["revenue"] == "25.00"

    def test_stale_from_show(self, ctx, bulk_sale, show, second_show):
        with pytest.raises(ConsistencyViolation):
            reassignment_service.reassign_show(ctx, bulk_sale.id, show.id, second_show.id, "sold at the fall show")

    def test_completed_show_warns(self, ctx, card_sale, show, second_show):
        status_service.change_show_status(ctx, second_show.id, "completed")
        result = reassignment_service.reassign_show(
            ctx, card_sale.id, show.id, second_show.id, "sold at the fall show"
        )
        assert result.warnings == [f"Show {second_show.id} is completed"]


class TestReassignShowCardSale:

    def test_card_stays_sold(self, db_session, ctx, card, card_sale, show, second_show):
        result = reassignment_service.reassign_show_card_sale_to_show(
            ctx, card_sale.id, second_show.id, "sold at the fall show"
        )

        assert result.transaction.show_id == second_show.id
        assert result.transaction.lot_id == card.lot_id
        assert card.status == "sold"
        assert reporting_service.get_show_summary(ctx.owner_id, show.id)["revenue"] == "0.00"
        assert reporting_service.get_show_summary(ctx.owner_id, second_show.id)["revenue"] == "60.00"

        event = db_session.query(CorrectionEvent).filter_by(action="show_reassigned").one()
        assert event.changes["show_id"] == {"old": show.id, "new": second_show.id}

    def test_only_show_card_sales(self, ctx, bulk_sale, show):
        with pytest.raises(ConsistencyViolation):
            reassignment_service.reassign_show_card_sale_to_show(ctx, bulk_sale.id, show.id, "sold at the spring show")

    def test_same_show_rejected(self, ctx, card_sale, show):
        with pytest.raises(ValidationError):
            reassignment_service.reassign_show_card_sale_to_show(ctx, card_sale.id, show.id, "sold at the same show")

    def test_missing_show_leaves_sale_untouched(self, ctx, card_sale, show):
        with pytest.raises(NotFoundError):
            reassignment_service.reassign_show_card_sale_to_show(ctx, card_sale.id, 9999, "sold at a ghost show")
        assert card_sale.show_id == show.id
        assert card_sale.correction_count == 0
