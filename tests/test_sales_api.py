# tests/test_sales_api.py

from decimal import Decimal

from sqlalchemy.exc import OperationalError

from brickbook.ledger import engine as ledger


def _new_customer(client, name="Meena Constructions", wallet=None):
    resp = client.post("/customers/", json={"name": name, "phone": "9811122233"})
    assert resp.status_code == 201
    customer_id = resp.json()["id"]
    if wallet:
        resp = client.post(f"/customers/{customer_id}/wallet", json={"amount": wallet})
        assert resp.status_code == 200
    return customer_id


def _sale_body(customer_id, payment_type="Cash", total=500, **extra):
    body = {
        "customerId": customer_id,
        "customerName": "Meena Constructions",
        "items": [{"name": "Red Bricks", "quantity": 100, "price": total / 100}],
        "totalAmount": total,
        "paymentType": payment_type,
    }
    body.update(extra)
    return body


def _customer(client, customer_id):
    data = client.get(f"/customers/{customer_id}").json()
    return (
        Decimal(str(data["wallet_balance"])),
        Decimal(str(data["outstanding_balance"])),
        Decimal(str(data["total_purchases"])),
    )


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_create_sale_returns_persisted_sale(client):
    cid = _new_customer(client)

    resp = client.post(
        "/sales/",
        json=_sale_body(cid, "Dues + Cash", 1000, paidAmount=400, dueAmount=600, notes="Site 4"),
    )

    assert resp.status_code == 201
    sale = resp.json()
    assert Decimal(str(sale["due_amount"])) == Decimal("600")
    assert sale["payment_type"] == "Dues + Cash"
    assert sale["payment_status"] == "Partial"
    assert sale["status"] == "active"
    assert sale["items"][0]["item_name"] == "Red Bricks"
    assert _customer(client, cid) == (Decimal("0"), Decimal("600"), Decimal("1000"))


def test_create_sale_requires_customer_and_items(client):
    resp = client.post("/sales/", json={"items": [], "totalAmount": 10})

    assert resp.status_code == 400
    body = resp.json()
    assert "customerId" in body["message"]
    assert body["details"]["hasCustomerId"] is False


def test_create_sale_rejects_empty_items_and_bad_quantities(client):
    cid = _new_customer(client)

    resp = client.post("/sales/", json=_sale_body(cid, items=[]))
    assert resp.status_code == 400
    assert resp.json()["message"] == "Sale must have at least one item"

    resp = client.post(
        "/sales/",
        json=_sale_body(cid, items=[{"name": "Bricks", "quantity": 0, "price": 5}]),
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Item quantity must be greater than 0"

    resp = client.post(
        "/sales/",
        json=_sale_body(cid, items=[{"name": "Bricks", "quantity": 5, "price": 0}]),
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Item price must be greater than 0"


def test_create_sale_rejects_unknown_payment_type(client):
    cid = _new_customer(client)

    resp = client.post("/sales/", json=_sale_body(cid, "Barter"))

    assert resp.status_code == 400
    assert "Full Advance" in resp.json()["details"]["allowed"]


def test_insufficient_wallet_reports_required_and_available(client):
    cid = _new_customer(client, wallet=300)

    resp = client.post("/sales/", json=_sale_body(cid, "Full Advance", 500))

    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "Insufficient wallet balance"
    assert Decimal(body["required"]) == Decimal("500")
    assert Decimal(body["available"]) == Decimal("300")
    assert client.get("/sales/").json() == []
    assert _customer(client, cid)[0] == Decimal("300")


def test_unknown_customer_is_404(client):
    resp = client.post("/sales/", json=_sale_body(777))
    assert resp.status_code == 404


def test_get_and_list_sales(client):
    cid = _new_customer(client)
    other = _new_customer(client, name="Walkway Builders")
    first = client.post("/sales/", json=_sale_body(cid, total=100)).json()
    client.post("/sales/", json=_sale_body(other, total=200))

    assert client.get(f"/sales/{first['id']}").json()["id"] == first["id"]
    assert client.get("/sales/999").status_code == 404
    assert len(client.get("/sales/").json()) == 2
    only = client.get("/sales/", params={"customer_id": cid}).json()
    assert [s["id"] for s in only] == [first["id"]]


def test_full_delete_reverses_balances(client):
    cid = _new_customer(client, wallet=1000)
    sale = client.post(
        "/sales/",
        json=_sale_body(cid, "Advance + Cash", 500, paidAmount=200, advancePaid=200, dueAmount=300),
    ).json()
    assert _customer(client, cid) == (Decimal("800"), Decimal("300"), Decimal("500"))

    resp = client.delete(f"/sales/delete/{sale['id']}")

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["reversedCustomerId"] == cid
    assert body["saleId"] == sale["id"]
    assert _customer(client, cid) == (Decimal("1000"), Decimal("0"), Decimal("0"))
    assert client.get(f"/sales/{sale['id']}").status_code == 404
    assert client.delete(f"/sales/delete/{sale['id']}").status_code == 404


def test_cancel_then_cancel_again(client):
    cid = _new_customer(client)
    sale = client.post("/sales/", json=_sale_body(cid, "Credit", 400)).json()

    resp = client.request("DELETE", f"/sales/{sale['id']}", json={"reason": "Duplicate entry"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"
    assert _customer(client, cid) == (Decimal("0"), Decimal("0"), Decimal("0"))

    again = client.delete(f"/sales/{sale['id']}")
    assert again.status_code == 400
    assert again.json()["error"] == "Sale is already cancelled"

    stored = client.get(f"/sales/{sale['id']}").json()
    assert stored["status"] == "cancelled"
    assert "Duplicate entry" in stored["notes"]


def test_payment_update(client):
    cid = _new_customer(client, wallet=500)
    sale = client.post("/sales/", json=_sale_body(cid, "Credit", 1000)).json()

    resp = client.put(f"/sales/{sale['id']}/payment", json={"paidAmount": 400})
    assert resp.status_code == 200
    body = resp.json()
    assert body["payment_status"] == "Partial"
    assert Decimal(str(body["payment_diff"])) == Decimal("400")
    assert _customer(client, cid)[0] == Decimal("100")

    resp = client.put(
        f"/sales/{sale['id']}/payment",
        json={"paidAmount": 1000, "funding": "cash", "notes": "Cheque cleared"},
    )
    assert resp.status_code == 200
    assert resp.json()["payment_status"] == "Paid"
    assert _customer(client, cid) == (Decimal("100"), Decimal("400"), Decimal("1000"))


def test_payment_update_validation(client):
    cid = _new_customer(client)
    sale = client.post("/sales/", json=_sale_body(cid, "Credit", 300)).json()

    assert client.put(f"/sales/{sale['id']}/payment", json={}).status_code == 400
    over = client.put(f"/sales/{sale['id']}/payment", json={"paidAmount": 301})
    assert over.status_code == 400
    assert "cannot exceed" in over.json()["message"]
    assert client.put("/sales/999/payment", json={"paidAmount": 1}).status_code == 404
    bad = client.put(f"/sales/{sale['id']}/payment", json={"paidAmount": 1, "funding": "card"})
    assert bad.status_code == 400


def test_sales_stats_skip_cancelled(client):
    cid = _new_customer(client)
    client.post("/sales/", json=_sale_body(cid, total=300))
    client.post("/sales/", json=_sale_body(cid, "Credit", 200))
    cancelled = client.post("/sales/", json=_sale_body(cid, total=999)).json()
    client.delete(f"/sales/{cancelled['id']}")

    stats = client.get("/sales/stats").json()

    assert stats["overall"]["total_sales"] == 2
    assert Decimal(str(stats["overall"]["total_revenue"])) == Decimal("500")
    assert Decimal(str(stats["overall"]["total_outstanding"])) == Decimal("200")
    assert stats["today"]["today_sales"] == 2


def test_record_payment_against_a_sale(client):
    cid = _new_customer(client)
    sale = client.post("/sales/", json=_sale_body(cid, "Credit", 500)).json()

    resp = client.post(f"/sales/{sale['id']}/payment", json={"amount": 700, "notes": "UPI"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["payment_status"] == "Paid"
    assert Decimal(str(body["previous_paid"])) == Decimal("0")
    assert Decimal(str(body["remaining_due"])) == Decimal("0")
    assert Decimal(str(body["added_to_wallet"])) == Decimal("200")
    assert body["sale"]["id"] == sale["id"]
    assert _customer(client, cid) == (Decimal("200"), Decimal("0"), Decimal("500"))


def test_record_payment_validation(client):
    cid = _new_customer(client)
    sale = client.post("/sales/", json=_sale_body(cid, "Credit", 500)).json()

    missing = client.post(f"/sales/{sale['id']}/payment", json={})
    assert missing.status_code == 400
    assert missing.json()["message"] == "Valid payment amount is required"
    assert client.post(f"/sales/{sale['id']}/payment", json={"amount": -1}).status_code == 400
    assert client.post("/sales/999/payment", json={"amount": 10}).status_code == 404


def test_storage_failure_returns_500_envelope(client, monkeypatch):
    cid = _new_customer(client)

    def _fail(*args, **kwargs):
        raise OperationalError("UPDATE customers", {}, Exception("database is locked"))

    monkeypatch.setattr(ledger, "_apply_delta", _fail)

    resp = client.post("/sales/", json=_sale_body(cid, "Credit", 300))

    assert resp.status_code == 500
    body = resp.json()
    assert body["error"] == "Database Error"
    assert "database is locked" in body["message"]
    assert client.get("/sales/").json() == []
