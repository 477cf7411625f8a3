# tests/test_customers_api.py

from decimal import Decimal


def _create(client, name="Kaveri Homes", **extra):
    resp = client.post("/customers/", json={"name": name, **extra})
    assert resp.status_code == 201
    return resp.json()


def _money(value):
    return Decimal(str(value))


def test_create_and_get_customer(client):
    created = _create(client, phone="9822001100", address="Plot 7, Ring Road", type="VIP")

    assert created["type"] == "VIP"
    assert _money(created["wallet_balance"]) == 0
    assert _money(created["outstanding_balance"]) == 0

    fetched = client.get(f"/customers/{created['id']}").json()
    assert fetched["name"] == "Kaveri Homes"
    assert fetched["address"] == "Plot 7, Ring Road"


def test_create_customer_validation(client):
    assert client.post("/customers/", json={"name": ""}).status_code == 400
    resp = client.post("/customers/", json={"name": "X", "type": "Gold"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Validation Error"


def test_missing_customer_is_404(client):
    resp = client.get("/customers/404")
    assert resp.status_code == 404
    assert resp.json()["error"] == "Not Found"
    assert client.get("/customers/404/ledger").status_code == 404


def test_update_customer_profile_only(client):
    cid = _create(client)["id"]

    resp = client.put(f"/customers/{cid}", json={"phone": "9000000001", "wallet_balance": 5000})

    assert resp.status_code == 200
    body = resp.json()
    assert body["phone"] == "9000000001"
    assert _money(body["wallet_balance"]) == 0


def test_wallet_credit_and_debit(client):
    cid = _create(client)["id"]

    resp = client.post(f"/customers/{cid}/wallet", json={"amount": 750, "description": "Advance"})
    assert resp.status_code == 200
    assert resp.json()["message"] == "Wallet credited successfully"
    assert _money(resp.json()["customer"]["wallet_balance"]) == Decimal("750")

    resp = client.post(f"/customers/{cid}/wallet", json={"amount": 250, "type": "debit"})
    assert resp.status_code == 200
    assert _money(resp.json()["customer"]["wallet_balance"]) == Decimal("500")


def test_wallet_debit_beyond_balance(client):
    cid = _create(client)["id"]
    client.post(f"/customers/{cid}/wallet", json={"amount": 100})

    resp = client.post(f"/customers/{cid}/wallet", json={"amount": 101, "type": "debit"})

    assert resp.status_code == 400
    assert resp.json()["error"] == "Insufficient wallet balance"
    assert _money(client.get(f"/customers/{cid}").json()["wallet_balance"]) == Decimal("100")


def test_wallet_rejects_non_positive_amounts(client):
    cid = _create(client)["id"]
    assert client.post(f"/customers/{cid}/wallet", json={"amount": 0}).status_code == 400
    assert client.post(f"/customers/{cid}/wallet", json={"amount": -5}).status_code == 400


def _credit_sale(client, cid, total):
    resp = client.post(
        "/sales/",
        json={
            "customerId": cid,
            "items": [{"name": "Fly Ash Bricks", "quantity": 10, "price": total / 10}],
            "totalAmount": total,
            "paymentType": "Credit",
        },
    )
    assert resp.status_code == 201
    return resp.json()


def test_apply_wallet_to_dues(client):
    cid = _create(client)["id"]
    client.post(f"/customers/{cid}/wallet", json={"amount": 500})
    _credit_sale(client, cid, 300)

    resp = client.post(f"/customers/{cid}/wallet/apply", json={"amount": 400})

    assert resp.status_code == 200
    body = resp.json()
    assert _money(body["applied_amount"]) == Decimal("300")
    assert _money(body["customer"]["wallet_balance"]) == Decimal("200")
    assert _money(body["customer"]["outstanding_balance"]) == 0

    again = client.post(f"/customers/{cid}/wallet/apply", json={"amount": 50})
    assert again.status_code == 400


def test_collect_payment_splits_between_dues_and_wallet(client):
    cid = _create(client)["id"]
    _credit_sale(client, cid, 600)

    resp = client.post(f"/customers/{cid}/payments", json={"amount": 1000, "paymentMode": "UPI"})

    assert resp.status_code == 200
    body = resp.json()
    assert _money(body["applied_to_dues"]) == Decimal("600")
    assert _money(body["added_to_wallet"]) == Decimal("400")
    assert _money(body["customer"]["outstanding_balance"]) == 0
    assert _money(body["customer"]["wallet_balance"]) == Decimal("400")


def test_ledger_history_newest_first(client):
    cid = _create(client)["id"]
    client.post(f"/customers/{cid}/wallet", json={"amount": 900})
    sale = _credit_sale(client, cid, 200)
    client.delete(f"/sales/delete/{sale['id']}")

    entries = client.get(f"/customers/{cid}/ledger").json()

    assert [e["kind"] for e in entries] == ["sale_reversed", "sale_applied", "wallet_credit"]
    assert entries[1]["sale_id"] == sale["id"]
    assert _money(entries[0]["purchases_delta"]) == Decimal("-200")
    assert len(client.get(f"/customers/{cid}/ledger", params={"limit": 1}).json()) == 1


def test_list_filters_and_stats(client):
    _create(client, name="Plain Co")
    owing = _create(client, name="Owing Co")["id"]
    saver = _create(client, name="Saver Co")["id"]
    _credit_sale(client, owing, 250)
    client.post(f"/customers/{saver}/wallet", json={"amount": 75})

    assert len(client.get("/customers/").json()) == 3
    assert [c["id"] for c in client.get("/customers/", params={"with": "dues"}).json()] == [owing]
    assert [c["id"] for c in client.get("/customers/", params={"with": "wallet"}).json()] == [saver]

    stats = client.get("/customers/stats").json()
    assert stats["total_customers"] == 3
    assert stats["customers_with_dues"] == 1
    assert _money(stats["total_dues"]) == Decimal("250")
    assert _money(stats["total_wallet"]) == Decimal("75")
    assert _money(stats["total_purchases"]) == Decimal("250")


def test_delete_customer_guards(client):
    busy = _create(client, name="Busy Co")["id"]
    _credit_sale(client, busy, 100)
    resp = client.delete(f"/customers/{busy}")
    assert resp.status_code == 400
    assert resp.json()["details"]["salesCount"] == 1

    funded = _create(client, name="Funded Co")["id"]
    client.post(f"/customers/{funded}/wallet", json={"amount": 10})
    assert client.delete(f"/customers/{funded}").status_code == 400

    idle = _create(client, name="Idle Co")["id"]
    resp = client.delete(f"/customers/{idle}")
    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert client.get(f"/customers/{idle}").status_code == 404


def test_blank_names_are_rejected(client):
    assert client.post("/customers/", json={"name": "   "}).status_code == 400

    cid = _create(client)["id"]
    resp = client.put(f"/customers/{cid}", json={"name": "   "})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Customer name cannot be blank"

    resp = client.put(f"/customers/{cid}", json={"name": "  Kaveri Homes Pvt  "})
    assert resp.json()["name"] == "Kaveri Homes Pvt"


def test_search_customers(client):
    _create(client, name="Shree Builders", phone="9810000001")
    _create(client, name="Anand Infra", phone="9820000002")

    names = [c["name"] for c in client.get("/customers/", params={"q": "shree"}).json()]
    assert names == ["Shree Builders"]
    by_phone = client.get("/customers/", params={"q": "98200"}).json()
    assert [c["name"] for c in by_phone] == ["Anand Infra"]
    assert len(client.get("/customers/", params={"limit": 1}).json()) == 1
