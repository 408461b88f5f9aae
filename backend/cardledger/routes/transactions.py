# Overview: Flask API routes for sales, dispositions and transaction maintenance; parses input and returns JSON responses.

"""
Transaction API Routes

Recording:
- POST /api/transactions/show-card-sale
- POST /api/transactions/bulk-sale
- POST /api/transactions/disposition

Maintenance (every call needs a 10-500 character note or reason):
- POST /api/transactions/<id>/correct                  transaction_date, notes
- POST /api/transactions/<id>/reassign-lot             from_lot_id, to_lot_id
- POST /api/transactions/<id>/reassign-show            from_show_id, to_show_id
- POST /api/transactions/<id>/reassign-show-card-sale  new_show_id (atomic)
- POST /api/transactions/<id>/delete                   deletion_reason

Reassignment responses carry a "warnings" list when the destination lot is
not active or the destination show is completed.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_owner, error_response
from ..models import Transaction
from ..services import (
    cash_service,
    correction_service,
    reassignment_service,
    reversal_service,
    sales_service,
)
from ..services.ledger_service import get_owned, list_correction_events
from ..validation import LedgerError, parse_entity_id, parse_positive_int


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


def _optional_id(data: dict, key: str):
    return parse_positive_int(data.get(key), key)


# =============================================================================
# RECORDING
# =============================================================================

@transactions_bp.post("/show-card-sale")
@require_owner
def record_show_card_sale_route():
    """
    Sell one show card.

    Request body:
    {
        "show_card_id": 7,
        "sale_price": "60.00",
        "transaction_date": "2024-03-02",
        "show_id": 3,        (optional)
        "notes": "optional"
    }

    Returns:
        201: Sale recorded, card sold, sale cash entry written
        409: Card is not available
    """
    try:
        data = request.get_json(silent=True) or {}
        tx = sales_service.record_show_card_sale(
            g.ledger_context,
            show_card_id=parse_entity_id(data.get("show_card_id"), "show_card_id"),
            sale_price=data.get("sale_price"),
            transaction_date=data.get("transaction_date"),
            show_id=_optional_id(data, "show_id"),
            notes=data.get("notes"),
        )
        return jsonify({"transaction": tx.to_dict()}), 201
    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record show card sale")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.post("/bulk-sale")
@require_owner
def record_bulk_sale_route():
    try:
        data = request.get_json(silent=True) or {}
        tx = sales_service.record_bulk_sale(
            g.ledger_context,
            lot_id=parse_entity_id(data.get("lot_id"), "lot_id"),
            revenue=data.get("revenue"),
            transaction_date=data.get("transaction_date"),
            quantity=data.get("quantity"),
            show_id=_optional_id(data, "show_id"),
            notes=data.get("notes"),
        )
        return jsonify({"transaction": tx.to_dict()}), 201
    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record bulk sale")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.post("/disposition")
@require_owner
def record_disposition_route():
    """
    Request body:
    {
        "lot_id": 1,
        "disposition_type": "discarded" | "lost" | "combined",
        "quantity": 25,
        "transaction_date": "2024-03-02",
        "show_card_id": 7,          (optional, card-level disposition)
        "destination_lot_id": 2,    (required for combined)
        "notes": "optional"
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        tx = sales_service.record_disposition(
            g.ledger_context,
            lot_id=parse_entity_id(data.get("lot_id"), "lot_id"),
            disposition_type=data.get("disposition_type"),
            quantity=data.get("quantity"),
            transaction_date=data.get("transaction_date"),
            show_card_id=_optional_id(data, "show_card_id"),
            destination_lot_id=_optional_id(data, "destination_lot_id"),
            notes=data.get("notes"),
        )
        return jsonify({"transaction": tx.to_dict()}), 201
    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record disposition")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# READ
# =============================================================================

@transactions_bp.get("/<int:transaction_id>")
@require_owner
def get_transaction_route(transaction_id: int):
    """Transaction with its cash entries and correction history. Deleted transactions stay readable."""
    try:
        owner_id = g.ledger_context.owner_id
        tx = get_owned(Transaction, owner_id, transaction_id)
        return jsonify({
            "transaction": tx.to_dict(),
            "cash_entries": [c.to_dict() for c in cash_service.cash_entries_for_transaction(owner_id, tx.id)],
            "correction_events": [
                ev.to_dict()
                for ev in list_correction_events(owner_id, correction_service.ENTITY_TRANSACTION, tx.id)
            ],
        }), 200
    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load transaction")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# MAINTENANCE
# =============================================================================

@transactions_bp.post("/<int:transaction_id>/correct")
@require_owner
def correct_transaction_route(transaction_id: int):
    """
    Request body:
    {
        "correction_note": "date was entered wrong",
        "transaction_date": "2024-03-01",   (optional)
        "notes": "optional"                 (optional)
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        changes = {k: v for k, v in data.items() if k != "correction_note"}
        tx = correction_service.apply_correction(
            g.ledger_context,
            correction_service.ENTITY_TRANSACTION,
            transaction_id,
            changes,
            data.get("correction_note"),
        )
        return jsonify({"transaction": tx.to_dict()}), 200
    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to correct transaction")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.post("/<int:transaction_id>/reassign-lot")
@require_owner
def reassign_lot_route(transaction_id: int):
    try:
        data = request.get_json(silent=True) or {}
        result = reassignment_service.reassign_lot(
            g.ledger_context,
            transaction_id,
            parse_entity_id(data.get("from_lot_id"), "from_lot_id"),
            parse_entity_id(data.get("to_lot_id"), "to_lot_id"),
            data.get("correction_note"),
        )
        return jsonify(result.to_dict()), 200
    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to reassign transaction lot")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.post("/<int:transaction_id>/reassign-show")
@require_owner
def reassign_show_route(transaction_id: int):
    """from_show_id may be null for a transaction recorded without a show."""
    try:
        data = request.get_json(silent=True) or {}
        result = reassignment_service.reassign_show(
            g.ledger_context,
            transaction_id,
            _optional_id(data, "from_show_id"),
            parse_entity_id(data.get("to_show_id"), "to_show_id"),
            data.get("correction_note"),
        )
        return jsonify(result.to_dict()), 200
    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to reassign transaction show")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.post("/<int:transaction_id>/reassign-show-card-sale")
@require_owner
def reassign_show_card_sale_route(transaction_id: int):
    """
    Move a show card sale to another show. Succeeds or fails as a whole.

    Request body:
    {
        "new_show_id": 4,
        "correction_note": "sold at the fall show, not spring"
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        result = reassignment_service.reassign_show_card_sale_to_show(
            g.ledger_context,
            transaction_id,
            parse_entity_id(data.get("new_show_id"), "new_show_id"),
            data.get("correction_note"),
        )
        return jsonify(result.to_dict()), 200
    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to reassign show card sale")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.post("/<int:transaction_id>/delete")
@require_owner
def delete_transaction_route(transaction_id: int):
    """
    Soft-delete a transaction and reverse its cash effect.

    Request body:
    {
        "deletion_reason": "duplicate entry, same card"
    }

    Returns:
        200: Deleted; card restored and reversal written where applicable
        409: Already deleted
        500: PARTIAL_FAILURE with completed_steps (nothing persisted)
    """
    try:
        data = request.get_json(silent=True) or {}
        tx = reversal_service.delete_transaction(g.ledger_context, transaction_id, data.get("deletion_reason"))
        return jsonify({"transaction": tx.to_dict()}), 200
    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete transaction")
        return jsonify({"error": "Internal server error"}), 500
