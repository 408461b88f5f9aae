# Overview: Flask API routes for the cash ledger; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_owner, error_response
from ..services import cash_service, correction_service
from ..validation import LedgerError, format_cents


cash_bp = Blueprint("cash", __name__, url_prefix="/api/cash")


@cash_bp.post("")
@require_owner
def record_cash_route():
    """
    Record a manual cash movement.

    Request body:
    {
        "transaction_type": "deposit" | "withdrawal" | "adjustment",
        "amount": "250.00",
        "direction": "add" | "remove",   (adjustments only)
        "transaction_date": "2024-03-01", (optional)
        "notes": "optional"
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        entry = cash_service.record_cash_transaction(
            g.ledger_context,
            transaction_type=data.get("transaction_type"),
            amount=data.get("amount"),
            direction=data.get("direction"),
            transaction_date=data.get("transaction_date"),
            notes=data.get("notes"),
        )
        return jsonify({"cash_transaction": entry.to_dict()}), 201
    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record cash transaction")
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.get("/balance")
@require_owner
def cash_balance_route():
    try:
        cents = cash_service.get_cash_balance_cents(g.ledger_context.owner_id)
        return jsonify({"balance": format_cents(cents), "balance_cents": cents}), 200
    except Exception:
        current_app.logger.exception("Failed to compute cash balance")
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.get("")
@require_owner
def list_cash_route():
    try:
        limit = request.args.get("limit", default=current_app.config["CASH_LIST_LIMIT"], type=int)
        limit = max(1, min(limit, current_app.config["CASH_LIST_MAX_LIMIT"]))
        rows = cash_service.list_cash_transactions(g.ledger_context.owner_id, limit=limit)
        return jsonify({"items": [r.to_dict() for r in rows], "limit": limit}), 200
    except Exception:
        current_app.logger.exception("Failed to list cash transactions")
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.post("/<int:cash_transaction_id>/correct")
@require_owner
def correct_cash_route(cash_transaction_id: int):
    """Only notes are correctable on a cash entry; amounts never change in place."""
    try:
        data = request.get_json(silent=True) or {}
        changes = {k: v for k, v in data.items() if k != "correction_note"}
        entry = correction_service.apply_correction(
            g.ledger_context,
            correction_service.ENTITY_CASH_TRANSACTION,
            cash_transaction_id,
            changes,
            data.get("correction_note"),
        )
        return jsonify({"cash_transaction": entry.to_dict()}), 200
    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to correct cash transaction")
        return jsonify({"error": "Internal server error"}), 500
