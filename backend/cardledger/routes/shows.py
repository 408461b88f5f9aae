# Overview: Flask API routes for shows; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_owner, error_response
from ..services import reporting_service, show_service, status_service
from ..validation import LedgerError


shows_bp = Blueprint("shows", __name__, url_prefix="/api/shows")


@shows_bp.post("")
@require_owner
def create_show_route():
    """
    Create a show (status planned). show_date may be in the future.

    Request body:
    {
        "name": "Spring Card Show",
        "show_date": "2024-04-13",
        "table_cost": "75.00",
        "location": "Expo Hall",
        "booth_number": "B12",
        "notes": "optional"
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        show = show_service.create_show(
            g.ledger_context,
            name=data.get("name"),
            show_date=data.get("show_date"),
            table_cost=data.get("table_cost"),
            location=data.get("location"),
            booth_number=data.get("booth_number"),
            notes=data.get("notes"),
        )
        return jsonify({"show": show.to_dict()}), 201
    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create show")
        return jsonify({"error": "Internal server error"}), 500


@shows_bp.get("/<int:show_id>")
@require_owner
def get_show_route(show_id: int):
    try:
        return jsonify(reporting_service.get_show_summary(g.ledger_context.owner_id, show_id)), 200
    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load show")
        return jsonify({"error": "Internal server error"}), 500


@shows_bp.post("/<int:show_id>/status")
@require_owner
def change_show_status_route(show_id: int):
    """
    Move a show to planned / active / completed.

    Returns:
        409: Reverting to planned while transactions or expenses reference the show
    """
    try:
        data = request.get_json(silent=True) or {}
        show = status_service.change_show_status(g.ledger_context, show_id, data.get("status"))
        return jsonify({"show": show.to_dict()}), 200
    except LedgerError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to change show status")
        return jsonify({"error": "Internal server error"}), 500
