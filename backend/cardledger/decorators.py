# Overview: Request decorators and error mapping for API routes.

from functools import wraps
from flask import request, jsonify, g

from .context import LedgerContext
from .validation import LedgerError


OWNER_HEADER = "X-Owner-Id"
VIEWER_HEADER = "X-Viewer-Id"


def _header_id(name: str):
    raw = request.headers.get(name)
    if raw is None or not raw.strip():
        return None
    raw = raw.strip()
    if not raw.isdigit() or int(raw) <= 0:
        raise ValueError(name)
    return int(raw)


def require_owner(f):
    """
    Establish whose books the request operates on.

    Sets g.ledger_context to a LedgerContext built from:
    - X-Owner-Id: the owner of the books (required)
    - X-Viewer-Id: the person looking at them (optional). When it differs
      from the owner the context is a read-only mentor view and every write
      service raises ReadOnlyContextError (403).

    Returns 401 when the owner header is missing or not a positive integer.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            owner_id = _header_id(OWNER_HEADER)
            viewer_id = _header_id(VIEWER_HEADER)
        except ValueError as e:
            return jsonify({"error": f"{e} must be a positive integer"}), 401

        if owner_id is None:
            return jsonify({"error": "Owner identity required"}), 401

        g.ledger_context = LedgerContext(owner_id=owner_id, viewer_id=viewer_id)
        return f(*args, **kwargs)

    return decorated_function


def error_response(exc: LedgerError):
    """Map a ledger error to its JSON body and HTTP status."""
    return jsonify(exc.to_dict()), exc.http_status
