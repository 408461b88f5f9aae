"""
API route tests.

Verifies:
- Missing owner identity returns 401
- Mentor view (X-Viewer-Id != X-Owner-Id) can read but not write (403)
- Ledger errors map to their status and code
- The EstateBox flow end to end over HTTP
"""

import pytest

from conftest import MENTOR_ID, OTHER_OWNER_ID, owner_headers


def _create_lot(client, **overrides):
    body = {"source": "EstateBox", "purchase_date": "2024-03-01", "total_cost": "100.00"}
    body.update(overrides)
    return client.post("/api/lots", json=body, headers=owner_headers())


class TestOwnerIdentity:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/lots"),
            ("GET", "/api/lots/1"),
            ("GET", "/api/cash/balance"),
            ("POST", "/api/transactions/show-card-sale"),
            ("POST", "/api/expenses"),
        ],
    )
    def test_missing_owner_header(self, client, db_session, method, path):
        response = client.open(path, method=method, json={})
        assert response.status_code == 401

    def test_malformed_owner_header(self, client, db_session):
        response = client.get("/api/cash/balance", headers={"X-Owner-Id": "abc"})
        assert response.status_code == 401

    def test_health_needs_no_identity(self, client, db_session):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json["status"] == "healthy"


class TestLotRoutes:

    def test_create_and_read_lot(self, client, db_session):
        response = _create_lot(client)
        assert response.status_code == 201
        lot_id = response.json["lot"]["id"]
        assert response.json["lot"]["total_cost"] == "100.00"

        response = client.get(f"/api/lots/{lot_id}", headers=owner_headers())
        assert response.status_code == 200
        assert response.json["net"] == "-100.00"

    def test_validation_error_shape(self, client, db_session):
        response = _create_lot(client, total_cost="12.345")
        assert response.status_code == 400
        assert response.json["code"] == "VALIDATION_ERROR"

    def test_huge_negative_cost_is_validation_error(self, client, db_session):
        response = _create_lot(client, total_cost="-1e30")
        assert response.status_code == 400
        assert response.json["code"] == "VALIDATION_ERROR"

    def test_other_owner_gets_404(self, client, db_session):
        lot_id = _create_lot(client).json["lot"]["id"]
        response = client.get(f"/api/lots/{lot_id}", headers=owner_headers(OTHER_OWNER_ID))
        assert response.status_code == 404
        assert response.json["code"] == "NOT_FOUND"

    def test_close_with_available_card_conflicts(self, client, db_session):
        lot_id = _create_lot(client).json["lot"]["id"]
        client.post(f"/api/lots/{lot_id}/cards", json={"player_name": "Smith"}, headers=owner_headers())

        response = client.post(f"/api/lots/{lot_id}/close", json={}, headers=owner_headers())
        assert response.status_code == 409
        assert response.json["code"] == "CONSISTENCY_VIOLATION"
        assert response.json["details"]["available_cards"] == 1


class TestMentorView:

    def test_mentor_can_read(self, client, db_session):
        lot_id = _create_lot(client).json["lot"]["id"]
        response = client.get(f"/api/lots/{lot_id}", headers=owner_headers(viewer_id=MENTOR_ID))
        assert response.status_code == 200

    def test_mentor_cannot_write(self, client, db_session):
        response = client.post(
            "/api/cash",
            json={"transaction_type": "deposit", "amount": "10.00"},
            headers=owner_headers(viewer_id=MENTOR_ID),
        )
        assert response.status_code == 403
        assert response.json["code"] == "READ_ONLY_CONTEXT"

        balance = client.get("/api/cash/balance", headers=owner_headers())
        assert balance.json["balance"] == "0.00"


class TestTransactionFlow:

    def test_estatebox_over_http(self, client, db_session):
        lot_id = _create_lot(client).json["lot"]["id"]
        card = client.post(
            f"/api/lots/{lot_id}/cards",
            json={"player_name": "Smith", "year": "2001", "asking_price": "50.00"},
            headers=owner_headers(),
        ).json["show_card"]

        sale = client.post(
            "/api/transactions/show-card-sale",
            json={"show_card_id": card["id"], "sale_price": "60.00", "transaction_date": "2024-03-02"},
            headers=owner_headers(),
        )
        assert sale.status_code == 201
        tx_id = sale.json["transaction"]["id"]
        assert client.get("/api/cash/balance", headers=owner_headers()).json["balance"] == "-40.00"

        short = client.post(
            f"/api/transactions/{tx_id}/delete", json={"deletion_reason": "dup"}, headers=owner_headers()
        )
        assert short.status_code == 400

        deleted = client.post(
            f"/api/transactions/{tx_id}/delete",
            json={"deletion_reason": "duplicate entry, same card"},
            headers=owner_headers(),
        )
        assert deleted.status_code == 200
        assert deleted.json["transaction"]["deleted"] is True

        assert client.get("/api/cash/balance", headers=owner_headers()).json["balance"] == "-100.00"
        lot = client.get(f"/api/lots/{lot_id}", headers=owner_headers()).json
        assert lot["revenue"] == "0.00"
        assert lot["card_counts"]["available"] == 1

        detail = client.get(f"/api/transactions/{tx_id}", headers=owner_headers()).json
        assert [c["transaction_type"] for c in detail["cash_entries"]] == ["sale", "reversal"]
        assert [e["action"] for e in detail["correction_events"]] == ["deleted"]

    def test_correct_and_reassign_show(self, client, db_session):
        lot_id = _create_lot(client).json["lot"]["id"]
        spring = client.post(
            "/api/shows", json={"name": "Spring", "show_date": "2024-03-02"}, headers=owner_headers()
        ).json["show"]["id"]
        fall = client.post(
            "/api/shows", json={"name": "Fall", "show_date": "2024-03-09"}, headers=owner_headers()
        ).json["show"]["id"]
        card_id = client.post(
            f"/api/lots/{lot_id}/cards", json={"player_name": "Smith"}, headers=owner_headers()
        ).json["show_card"]["id"]
        tx_id = client.post(
            "/api/transactions/show-card-sale",
            json={"show_card_id": card_id, "sale_price": "60", "transaction_date": "2024-03-02", "show_id": spring},
            headers=owner_headers(),
        ).json["transaction"]["id"]

        corrected = client.post(
            f"/api/transactions/{tx_id}/correct",
            json={"notes": "paid cash", "correction_note": "forgot payment note"},
            headers=owner_headers(),
        )
        assert corrected.status_code == 200
        assert corrected.json["transaction"]["correction_count"] == 1

        moved = client.post(
            f"/api/transactions/{tx_id}/reassign-show-card-sale",
            json={"new_show_id": fall, "correction_note": "sold at the fall show"},
            headers=owner_headers(),
        )
        assert moved.status_code == 200
        assert moved.json["transaction"]["show_id"] == fall
        assert moved.json["warnings"] == []

        fall_summary = client.get(f"/api/shows/{fall}", headers=owner_headers()).json
        assert fall_summary["revenue"] == "60.00"

    def test_bulk_sale_reassign_lot(self, client, db_session):
        lot_a = _create_lot(client).json["lot"]["id"]
        lot_b = _create_lot(client, source="Binder").json["lot"]["id"]
        tx_id = client.post(
            "/api/transactions/bulk-sale",
            json={"lot_id": lot_a, "revenue": "25.00", "transaction_date": "2024-03-02", "quantity": 50},
            headers=owner_headers(),
        ).json["transaction"]["id"]

        stale = client.post(
            f"/api/transactions/{tx_id}/reassign-lot",
            json={"from_lot_id": lot_b, "to_lot_id": lot_a, "correction_note": "wrong lot picked"},
            headers=owner_headers(),
        )
        assert stale.status_code == 409

        moved = client.post(
            f"/api/transactions/{tx_id}/reassign-lot",
            json={"from_lot_id": lot_a, "to_lot_id": lot_b, "correction_note": "wrong lot picked"},
            headers=owner_headers(),
        )
        assert moved.status_code == 200
        assert client.get(f"/api/lots/{lot_b}", headers=owner_headers()).json["revenue"] == "25.00"

    def test_disposition_route(self, client, db_session):
        lot_id = _create_lot(client).json["lot"]["id"]
        response = client.post(
            "/api/transactions/disposition",
            json={"lot_id": lot_id, "disposition_type": "discarded", "quantity": 30, "transaction_date": "2024-03-02"},
            headers=owner_headers(),
        )
        assert response.status_code == 201
        assert response.json["transaction"]["revenue"] == "0.00"


class TestCashAndExpenseRoutes:

    def test_manual_cash_and_listing(self, client, db_session):
        client.post("/api/cash", json={"transaction_type": "deposit", "amount": "100.00"}, headers=owner_headers())
        client.post(
            "/api/cash",
            json={"transaction_type": "adjustment", "amount": "0.50", "direction": "remove"},
            headers=owner_headers(),
        )
        listing = client.get("/api/cash?limit=10", headers=owner_headers()).json
        assert len(listing["items"]) == 2
        assert client.get("/api/cash/balance", headers=owner_headers()).json["balance_cents"] == 9950

    def test_expense_lifecycle(self, client, db_session):
        created = client.post(
            "/api/expenses",
            json={"amount": "75.00", "category": "table_fee", "expense_date": "2024-03-02"},
            headers=owner_headers(),
        )
        assert created.status_code == 201
        expense_id = created.json["expense"]["id"]

        corrected = client.post(
            f"/api/expenses/{expense_id}/correct",
            json={"amount": "70.00", "correction_note": "organizer refunded five"},
            headers=owner_headers(),
        )
        assert corrected.status_code == 200
        assert client.get("/api/cash/balance", headers=owner_headers()).json["balance"] == "-70.00"

        deleted = client.post(
            f"/api/expenses/{expense_id}/delete",
            json={"deletion_reason": "show was cancelled"},
            headers=owner_headers(),
        )
        assert deleted.status_code == 200
        assert client.get("/api/cash/balance", headers=owner_headers()).json["balance"] == "0.00"

    def test_bad_category(self, client, db_session):
        response = client.post(
            "/api/expenses",
            json={"amount": "5.00", "category": "bribes", "expense_date": "2024-03-02"},
            headers=owner_headers(),
        )
        assert response.status_code == 400
