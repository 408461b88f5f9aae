# Overview: Flask API routes for lots and their show cards; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_owner, error_response
from ..services import inventory_service, reporting_service, status_service
from ..validation import LedgerError


lots_bp = Blueprint("lots", __name__, url_prefix="/api/lots")


@lots_bp.post("")
@require_owner
def create_lot_route():
    """
    Record a purchase batch.

    Request body:
    {
        "source": "EstateBox",
        "purchase_date": "2024-03-01",
        "total_cost": "100.00",
        "notes": "optional"
    }

    Returns:
        201: Lot created (status active); a lot_purchase cash entry is written
        400: Invalid input
        403: Mentor view
    """
    try:
        data = request.get_json(silent=True) or {}
        lot = inventory_service.create_lot(
            g.ledger_context,
            source=data.get("source"),
            purchase_date=data.get("purchase_date"),
            total_cost=data.get("total_cost"),
            notes=data.get("notes"),
        )
        return jsonify({"lot": lot.to_dict()}), 201
    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create lot")
        return jsonify({"error": "Internal server error"}), 500


@lots_bp.get("/<int:lot_id>")
@require_owner
def get_lot_route(lot_id: int):
    """Lot with revenue/cost/net rollup and card counts by status."""
    try:
        return jsonify(reporting_service.get_lot_summary(g.ledger_context.owner_id, lot_id)), 200
    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load lot")
        return jsonify({"error": "Internal server error"}), 500


@lots_bp.post("/<int:lot_id>/close")
@require_owner
def close_lot_route(lot_id: int):
    """
    Close a lot.

    Returns:
        200: Lot closed
        409: Show cards still available (details.available_cards) or lot not active
    """
    try:
        data = request.get_json(silent=True) or {}
        lot = status_service.close_lot(
            g.ledger_context,
            lot_id,
            closure_reason=data.get("closure_reason"),
            closure_date=data.get("closure_date"),
        )
        return jsonify({"lot": lot.to_dict()}), 200
    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to close lot")
        return jsonify({"error": "Internal server error"}), 500


@lots_bp.post("/<int:lot_id>/reopen")
@require_owner
def reopen_lot_route(lot_id: int):
    try:
        lot = status_service.reopen_lot(g.ledger_context, lot_id)
        return jsonify({"lot": lot.to_dict()}), 200
    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to reopen lot")
        return jsonify({"error": "Internal server error"}), 500


@lots_bp.post("/<int:lot_id>/archive")
@require_owner
def archive_lot_route(lot_id: int):
    try:
        lot = status_service.archive_lot(g.ledger_context, lot_id)
        return jsonify({"lot": lot.to_dict()}), 200
    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to archive lot")
        return jsonify({"error": "Internal server error"}), 500


@lots_bp.post("/<int:lot_id>/cards")
@require_owner
def add_show_card_route(lot_id: int):
    """
    Add an individually tracked card to an active lot.

    Request body:
    {
        "player_name": "Smith",
        "year": "2001",
        "asking_price": "50.00",
        "cost_basis": "20.00",
        "card_details": {"grade": "PSA 9"}
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        card = inventory_service.add_show_card(
            g.ledger_context,
            lot_id=lot_id,
            player_name=data.get("player_name"),
            year=data.get("year"),
            asking_price=data.get("asking_price"),
            cost_basis=data.get("cost_basis"),
            card_details=data.get("card_details"),
        )
        return jsonify({"show_card": card.to_dict()}), 201
    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to add show card")
        return jsonify({"error": "Internal server error"}), 500
