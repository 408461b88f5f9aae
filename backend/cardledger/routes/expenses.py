# Overview: Flask API routes for expenses; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_owner, error_response
from ..services import correction_service, reversal_service, show_service
from ..validation import LedgerError, parse_positive_int


expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@expenses_bp.post("")
@require_owner
def create_expense_route():
    """
    Request body:
    {
        "amount": "75.00",
        "category": "table_fee",
        "expense_date": "2024-03-02",
        "show_id": 3,         (optional)
        "notes": "optional"
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        expense = show_service.create_expense(
            g.ledger_context,
            amount=data.get("amount"),
            category=data.get("category"),
            expense_date=data.get("expense_date"),
            show_id=parse_positive_int(data.get("show_id"), "show_id"),
            notes=data.get("notes"),
        )
        return jsonify({"expense": expense.to_dict()}), 201
    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create expense")
        return jsonify({"error": "Internal server error"}), 500


@expenses_bp.post("/<int:expense_id>/correct")
@require_owner
def correct_expense_route(expense_id: int):
    """Correct expense_date, notes, category or amount. An amount change writes an adjustment cash entry."""
    try:
        data = request.get_json(silent=True) or {}
        changes = {k: v for k, v in data.items() if k != "correction_note"}
        expense = correction_service.apply_correction(
            g.ledger_context,
            correction_service.ENTITY_EXPENSE,
            expense_id,
            changes,
            data.get("correction_note"),
        )
        return jsonify({"expense": expense.to_dict()}), 200
    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to correct expense")
        return jsonify({"error": "Internal server error"}), 500


@expenses_bp.post("/<int:expense_id>/delete")
@require_owner
def delete_expense_route(expense_id: int):
    try:
        data = request.get_json(silent=True) or {}
        expense = reversal_service.delete_expense(g.ledger_context, expense_id, data.get("deletion_reason"))
        return jsonify({"expense": expense.to_dict()}), 200
    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete expense")
        return jsonify({"error": "Internal server error"}), 500
