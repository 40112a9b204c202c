from datetime import datetime, timedelta

from tests.helpers import create_customer, create_product


def front(client, headers, product_id, **overrides):
    payload = {"product_id": product_id, "fronted_to_customer_name": "Dale", "quantity": 10, "price_per_unit": 150}
    payload.update(overrides)
    response = client.post("/api/v1/fronted/", json=payload, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


def stock_of(client, headers, product_id):
    return client.get(f"/api/v1/inventory/products/{product_id}", headers=headers).json()["stock_quantity"]


def test_create_fronted(client, headers):
    product = create_product(client, headers)
    item = front(client, headers, product["id"])

    assert item["expected_revenue"] == 1500
    assert item["expected_profit"] == 500
    assert item["quantity_remaining"] == 10
    assert item["amount_owed"] == 1500
    assert item["aging_status"] == "healthy"
    assert item["payment_status"] == "pending"
    assert item["payment_due_date"] is not None
    assert stock_of(client, headers, product["id"]) == 40


def test_create_needs_recipient(client, headers):
    product = create_product(client, headers)
    response = client.post(
        "/api/v1/fronted/", json={"product_id": product["id"], "quantity": 1, "price_per_unit": 10}, headers=headers
    )
    assert response.status_code == 400


def test_create_with_customer_uses_display_name(client, headers):
    product = create_product(client, headers)
    customer = create_customer(client, headers, business_name="Corner Shop")
    item = front(client, headers, product["id"], fronted_to_customer_name=None, customer_id=customer["id"])
    assert item["fronted_to_customer_name"] == "Corner Shop"


def test_cannot_front_more_than_stock(client, headers):
    product = create_product(client, headers, stock_quantity=5)
    response = client.post(
        "/api/v1/fronted/",
        json={"product_id": product["id"], "fronted_to_customer_name": "Dale", "quantity": 10, "price_per_unit": 1},
        headers=headers,
    )
    assert response.status_code == 400


def test_reconciliation_limits(client, headers):
    product = create_product(client, headers)
    item = front(client, headers, product["id"])
    base = f"/api/v1/fronted/{item['id']}"

    assert client.post(f"{base}/sale", json={"quantity": 6}, headers=headers).status_code == 200
    assert client.post(f"{base}/damage", json={"quantity": 1}, headers=headers).status_code == 200
    returned = client.post(f"{base}/return", json={"quantity": 2}, headers=headers).json()
    assert returned["quantity_remaining"] == 1
    assert returned["expected_revenue"] == 1200

    over = client.post(f"{base}/sale", json={"quantity": 2}, headers=headers)
    assert over.status_code == 400
    assert stock_of(client, headers, product["id"]) == 42


def test_payments_complete_item(client, headers):
    product = create_product(client, headers)
    item = front(client, headers, product["id"], quantity=2)
    url = f"/api/v1/fronted/{item['id']}/payment"

    partial = client.post(url, json={"amount": 100}, headers=headers).json()
    assert partial["payment_status"] == "partial"
    assert partial["amount_owed"] == 200

    assert client.post(url, json={"amount": 500}, headers=headers).status_code == 400

    paid = client.post(url, json={"amount": 200}, headers=headers).json()
    assert paid["payment_status"] == "paid"
    assert paid["status"] == "completed"
    assert paid["completed_at"] is not None

    payments = client.get("/api/v1/payments/", params={"payment_type": "fronted"}, headers=headers).json()
    assert payments["total"] == 2


def test_return_blocked_below_received(client, headers):
    product = create_product(client, headers)
    item = front(client, headers, product["id"], quantity=2)
    client.post(f"/api/v1/fronted/{item['id']}/payment", json={"amount": 200}, headers=headers)

    response = client.post(f"/api/v1/fronted/{item['id']}/return", json={"quantity": 2}, headers=headers)
    assert response.status_code == 400


def test_recall_restocks_remaining(client, headers):
    product = create_product(client, headers)
    item = front(client, headers, product["id"])
    client.post(f"/api/v1/fronted/{item['id']}/sale", json={"quantity": 4}, headers=headers)

    recalled = client.post(f"/api/v1/fronted/{item['id']}/recall", headers=headers).json()
    assert recalled["status"] == "recalled"
    assert recalled["quantity_returned"] == 6
    assert recalled["expected_revenue"] == 600
    assert stock_of(client, headers, product["id"]) == 46

    again = client.post(f"/api/v1/fronted/{item['id']}/sale", json={"quantity": 1}, headers=headers)
    assert again.status_code == 400


def test_convert_to_sale(client, headers):
    product = create_product(client, headers)
    item = front(client, headers, product["id"])
    converted = client.post(f"/api/v1/fronted/{item['id']}/convert-to-sale", headers=headers).json()
    assert converted["quantity_sold"] == 10
    assert converted["quantity_remaining"] == 0
    assert converted["status"] == "sold"


def test_extend_due_date(client, headers):
    product = create_product(client, headers)
    item = front(client, headers, product["id"])
    old_due = datetime.fromisoformat(item["payment_due_date"])

    extended = client.post(f"/api/v1/fronted/{item['id']}/extend", json={"days": 5}, headers=headers).json()
    assert datetime.fromisoformat(extended["payment_due_date"]) == old_due + timedelta(days=5)

    missing = client.post(f"/api/v1/fronted/{item['id']}/extend", json={}, headers=headers)
    assert missing.status_code == 400


def test_overdue_dashboard_and_aging(client, headers):
    product = create_product(client, headers)
    customer = create_customer(client, headers)
    dispatched = datetime.utcnow() - timedelta(days=40)
    front(
        client, headers, product["id"], customer_id=customer["id"], quantity=1, price_per_unit=100,
        dispatched_at=dispatched.isoformat(),
    )
    front(client, headers, product["id"], quantity=1, price_per_unit=300)

    dashboard = client.get("/api/v1/fronted/dashboard", headers=headers).json()
    assert dashboard["active_consignments"] == 2
    assert dashboard["total_value"] == 400
    assert dashboard["health_score"] == 50

    overdue = client.get("/api/v1/fronted/", params={"overdue_only": True}, headers=headers).json()
    assert overdue["total"] == 1
    assert overdue["data"][0]["is_overdue"] is True

    report = client.get("/api/v1/fronted/aging-report", params={"customer_id": customer["id"]}, headers=headers).json()
    assert report["days_60"] == 100
    assert report["total"] == 100


def test_extend_due_date_with_utc_suffix(client, headers):
    product = create_product(client, headers)
    item = front(client, headers, product["id"])

    response = client.post(
        f"/api/v1/fronted/{item['id']}/extend", json={"payment_due_date": "2030-01-01T00:00:00Z"}, headers=headers
    )
    assert response.status_code == 200, response.text
    assert response.json()["payment_due_date"] == "2030-01-01T00:00:00"


def test_converted_item_completes_when_paid(client, headers):
    product = create_product(client, headers)
    item = front(client, headers, product["id"], quantity=2)
    converted = client.post(f"/api/v1/fronted/{item['id']}/convert-to-sale", headers=headers).json()
    assert converted["status"] == "sold"
    assert converted["amount_owed"] == 300

    paid = client.post(f"/api/v1/fronted/{item['id']}/payment", json={"amount": 300}, headers=headers)
    assert paid.status_code == 200, paid.text
    assert paid.json()["status"] == "completed"
    assert paid.json()["payment_status"] == "paid"
    assert paid.json()["completed_at"] is not None


def test_aging_current_bucket(client, headers):
    product = create_product(client, headers)
    customer = create_customer(client, headers)
    front(client, headers, product["id"], customer_id=customer["id"], quantity=2, price_per_unit=150)

    report = client.get("/api/v1/fronted/aging-report", params={"customer_id": customer["id"]}, headers=headers).json()
    assert report["current"] == 300
    assert report["total"] == 300
    assert report["days_30"] == report["days_60"] == report["days_90"] == report["over_90"] == 0
