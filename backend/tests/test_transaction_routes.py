"""HTTP tests for checkout, receipts and cancellation."""

from datetime import timedelta

from posledger.models import Transaction


def _sale(client, headers, coffee, tea, **extra):
    body = {
        "items": [
            {"productId": coffee.id, "quantity": 2, "price": 20000},
            {"productId": tea.id, "quantity": 1, "price": 10000},
        ],
        "paymentMethod": "CASH",
    }
    body.update(extra)
    return client.post("/api/transactions", json=body, headers=headers)


class TestCreateTransaction:

    def test_cash_sale(self, client, cashier_headers, coffee, tea, stock_of):
        resp = _sale(
            client,
            cashier_headers,
            coffee,
            tea,
            discount={"type": "PERCENTAGE", "value": 10},
            totalAmount=45000,
        )

        assert resp.status_code == 201
        data = resp.json["data"]
        assert data["invoiceNo"].startswith("INV-")
        assert data["invoiceNo"].endswith("-0001")
        assert data["totalAmount"] == 45000
        assert data["status"] == "COMPLETED"
        assert data["paymentStatus"] == "PAID"
        assert data["createdAt"].endswith("Z")
        assert stock_of(coffee) == 8

    def test_payment_method_defaults_to_cash(self, client, cashier_headers, coffee, tea):
        resp = client.post(
            "/api/transactions",
            json={"items": [{"productId": coffee.id, "quantity": 1}]},
            headers=cashier_headers,
        )
        assert resp.status_code == 201
        assert resp.json["data"]["status"] == "COMPLETED"

    def test_invalid_cart(self, client, cashier_headers, db_session):
        resp = client.post("/api/transactions", json={"items": []}, headers=cashier_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == "Invalid items"
        assert "details" in resp.json

    def test_insufficient_stock_is_conflict(self, client, cashier_headers, coffee, tea, stock_of):
        resp = client.post(
            "/api/transactions",
            json={"items": [{"productId": tea.id, "quantity": 50}]},
            headers=cashier_headers,
        )
        assert resp.status_code == 409
        assert resp.json["details"]["product_id"] == tea.id
        assert stock_of(tea) == 5

    def test_unavailable_product(self, client, cashier_headers, retired_product):
        resp = client.post(
            "/api/transactions",
            json={"items": [{"productId": retired_product.id, "quantity": 1}]},
            headers=cashier_headers,
        )
        assert resp.status_code == 400

    def test_pending_sale(self, client, cashier_headers, coffee, tea, stock_of):
        resp = client.post(
            "/api/transactions/pending",
            json={"items": [{"productId": coffee.id, "quantity": 1}], "paymentMethod": "MIDTRANS_QRIS"},
            headers=cashier_headers,
        )

        assert resp.status_code == 201
        data = resp.json["data"]
        assert data["status"] == "PENDING"
        assert data["paymentStatus"] == "PENDING"
        assert data["customerDetails"] == {"name": "Kasir Satu", "email": "cashier@pos.test"}
        assert stock_of(coffee) == 9

    def test_pending_rejects_cash(self, client, cashier_headers, coffee):
        resp = client.post(
            "/api/transactions/pending",
            json={"items": [{"productId": coffee.id, "quantity": 1}], "paymentMethod": "CASH"},
            headers=cashier_headers,
        )
        assert resp.status_code == 400

    def test_cash_route_rejects_gateway_method(self, client, db_session, cashier_headers, coffee, stock_of):
        resp = client.post(
            "/api/transactions",
            json={"items": [{"productId": coffee.id, "quantity": 1}], "paymentMethod": "MIDTRANS_QRIS"},
            headers=cashier_headers,
        )
        assert resp.status_code == 400
        assert stock_of(coffee) == 10
        assert db_session.query(Transaction).count() == 0


class TestReceipt:

    def test_get_transaction(self, client, cashier_headers, coffee, tea):
        tx_id = _sale(client, cashier_headers, coffee, tea).json["data"]["id"]

        resp = client.get(f"/api/transactions/{tx_id}", headers=cashier_headers)

        assert resp.status_code == 200
        data = resp.json["data"]
        assert len(data["items"]) == 2
        assert data["payment"]["paymentType"] == "CASH"
        assert data["cancelLogs"] == []

    def test_not_found(self, client, cashier_headers):
        assert client.get("/api/transactions/99999", headers=cashier_headers).status_code == 404


class TestHistory:

    def test_lists_newest_first(self, client, cashier_headers, coffee, tea):
        first = _sale(client, cashier_headers, coffee, tea).json["data"]
        second = _sale(client, cashier_headers, coffee, tea).json["data"]

        resp = client.get("/api/transactions", headers=cashier_headers)

        assert resp.status_code == 200
        data = resp.json["data"]
        assert [t["invoiceNo"] for t in data["items"]] == [second["invoiceNo"], first["invoiceNo"]]
        assert data["items"][0]["cashierName"] == "Kasir Satu"
        assert data["items"][0]["itemCount"] == 3
        assert data["pagination"]["total"] == 2

    def test_search_and_status_filter(self, client, cashier_headers, manager_headers, coffee, tea):
        first = _sale(client, cashier_headers, coffee, tea).json["data"]
        second = _sale(client, cashier_headers, coffee, tea).json["data"]
        client.post(
            f"/api/transactions/{first['id']}/cancel", json={"reason": "Wrong order"}, headers=manager_headers
        )

        resp = client.get("/api/transactions?status=canceled", headers=cashier_headers)
        items = resp.json["data"]["items"]
        assert [t["id"] for t in items] == [first["id"]]
        assert items[0]["cancelReason"] == "Wrong order"

        resp = client.get(f"/api/transactions?search={second['invoiceNo'][-4:]}", headers=cashier_headers)
        assert [t["id"] for t in resp.json["data"]["items"]] == [second["id"]]

    def test_bad_status(self, client, cashier_headers):
        resp = client.get("/api/transactions?status=REFUNDED", headers=cashier_headers)
        assert resp.status_code == 400

    def test_requires_auth(self, client, db_session):
        assert client.get("/api/transactions").status_code == 401


class TestCancelRoute:

    def test_cashier_cannot_cancel(self, client, cashier_headers, coffee, tea):
        tx_id = _sale(client, cashier_headers, coffee, tea).json["data"]["id"]

        resp = client.post(
            f"/api/transactions/{tx_id}/cancel", json={"reason": "oops"}, headers=cashier_headers
        )
        assert resp.status_code == 403
        assert resp.json["required_permission"] == "CANCEL_TRANSACTION"

    def test_manager_cancels(self, client, db_session, cashier_headers, manager, manager_headers, coffee, tea, stock_of):
        tx_id = _sale(client, cashier_headers, coffee, tea).json["data"]["id"]

        resp = client.post(
            f"/api/transactions/{tx_id}/cancel", json={"reason": "Wrong order"}, headers=manager_headers
        )

        assert resp.status_code == 200
        assert resp.json["data"]["status"] == "CANCELED"
        assert resp.json["data"]["canceledBy"] == manager.id
        assert stock_of(coffee) == 10
        assert stock_of(tea) == 5

    def test_reason_required(self, client, cashier_headers, manager_headers, coffee, tea):
        tx_id = _sale(client, cashier_headers, coffee, tea).json["data"]["id"]

        resp = client.post(f"/api/transactions/{tx_id}/cancel", json={}, headers=manager_headers)
        assert resp.status_code == 400

    def test_cancel_twice(self, client, cashier_headers, manager_headers, coffee, tea):
        tx_id = _sale(client, cashier_headers, coffee, tea).json["data"]["id"]
        client.post(f"/api/transactions/{tx_id}/cancel", json={"reason": "a"}, headers=manager_headers)

        resp = client.post(f"/api/transactions/{tx_id}/cancel", json={"reason": "b"}, headers=manager_headers)
        assert resp.status_code == 400

    def test_window_expired(self, client, db_session, cashier_headers, manager_headers, coffee, tea):
        tx_id = _sale(client, cashier_headers, coffee, tea).json["data"]["id"]
        tx = db_session.get(Transaction, tx_id)
        tx.created_at = tx.created_at - timedelta(hours=25)
        db_session.commit()

        resp = client.post(f"/api/transactions/{tx_id}/cancel", json={"reason": "late"}, headers=manager_headers)
        assert resp.status_code == 400

    def test_not_found(self, client, manager_headers):
        resp = client.post("/api/transactions/99999/cancel", json={"reason": "x"}, headers=manager_headers)
        assert resp.status_code == 404
