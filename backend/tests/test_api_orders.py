from tests.helpers import create_customer, create_order, create_product, order_draft


def get_customer(client, headers, customer_id):
    return client.get(f"/api/v1/customers/{customer_id}", headers=headers).json()


def get_product(client, headers, product_id):
    return client.get(f"/api/v1/inventory/products/{product_id}", headers=headers).json()


def test_workflow_validate_step(client, headers):
    customer = create_customer(client, headers, credit_limit=200)
    product = create_product(client, headers)

    response = client.post(
        "/api/v1/orders/workflow/validate",
        json={"step": "payment", "draft": order_draft(customer["id"], product["id"], payment_method="partial")},
        headers=headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["can_proceed"] is False
    assert body["next_step"] == "delivery"
    assert body["previous_step"] == "products"
    assert body["totals"]["total"] == 300
    assert body["totals"]["margin"] == 33.3
    assert body["credit"]["over_credit_limit"] is True

    unknown = client.post(
        "/api/v1/orders/workflow/validate",
        json={"step": "shipping", "draft": order_draft(customer["id"], product["id"])},
        headers=headers,
    )
    assert unknown.status_code == 400


def test_create_credit_order(client, headers):
    customer = create_customer(client, headers)
    product = create_product(client, headers)

    order = create_order(client, headers, customer["id"], product["id"], quantity=2)
    assert order["order_number"].startswith("ORD-")
    assert order["status"] == "pending"
    assert order["total_amount"] == 300
    assert order["total_cost"] == 200
    assert order["payment_status"] == "unpaid"
    assert order["balance_due"] == 300
    assert order["payment_due_date"] is not None
    assert order["items"][0]["unit_cost"] == 100

    assert get_product(client, headers, product["id"])["stock_quantity"] == 48
    refreshed = get_customer(client, headers, customer["id"])
    assert refreshed["outstanding_balance"] == 300
    assert refreshed["order_count"] == 1
    assert refreshed["total_spent"] == 300


def test_order_numbers_increment(client, headers):
    customer = create_customer(client, headers)
    product = create_product(client, headers)
    first = create_order(client, headers, customer["id"], product["id"], quantity=1)
    second = create_order(client, headers, customer["id"], product["id"], quantity=1)
    assert int(second["order_number"][-4:]) == int(first["order_number"][-4:]) + 1


def test_partial_order(client, headers):
    customer = create_customer(client, headers)
    product = create_product(client, headers)

    order = create_order(
        client, headers, customer["id"], product["id"], quantity=2,
        payment_method="partial", partial_payment_amount=100,
    )
    assert order["amount_paid"] == 100
    assert order["payment_status"] == "partial"
    assert get_customer(client, headers, customer["id"])["outstanding_balance"] == 200

    too_much = client.post(
        "/api/v1/orders/",
        json=order_draft(customer["id"], product["id"], payment_method="partial", partial_payment_amount=1000),
        headers=headers,
    )
    assert too_much.status_code == 400


def test_order_rejected_when_step_incomplete(client, headers):
    customer = create_customer(client, headers)
    product = create_product(client, headers)
    response = client.post(
        "/api/v1/orders/", json=order_draft(customer["id"], product["id"], runner_name=None), headers=headers
    )
    assert response.status_code == 400
    assert response.json()["detail"].startswith("配送")


def test_order_rejected_when_stock_short(client, headers):
    customer = create_customer(client, headers)
    product = create_product(client, headers, stock_quantity=1)
    response = client.post("/api/v1/orders/", json=order_draft(customer["id"], product["id"], 2), headers=headers)
    assert response.status_code == 400
    assert "库存不足" in response.json()["detail"]
    assert get_product(client, headers, product["id"])["stock_quantity"] == 1


def test_blocked_customer_cannot_order(client, headers):
    customer = create_customer(client, headers, status="blocked")
    product = create_product(client, headers)
    response = client.post("/api/v1/orders/", json=order_draft(customer["id"], product["id"]), headers=headers)
    assert response.status_code == 400


def test_over_credit_limit_only_warns(client, headers):
    customer = create_customer(client, headers, credit_limit=100)
    product = create_product(client, headers)
    order = create_order(client, headers, customer["id"], product["id"])
    assert any("信用额度" in w for w in order["warnings"])


def test_status_transitions(client, headers):
    customer = create_customer(client, headers)
    product = create_product(client, headers)
    order = create_order(client, headers, customer["id"], product["id"])
    url = f"/api/v1/orders/{order['id']}/status"

    assert client.put(url, json={"status": "completed"}, headers=headers).status_code == 400
    for status in ("confirmed", "delivered", "completed"):
        response = client.put(url, json={"status": status}, headers=headers)
        assert response.status_code == 200
        assert response.json()["status"] == status
    assert client.post(f"/api/v1/orders/{order['id']}/cancel", headers=headers).status_code == 400


def test_cancel_restocks_and_reverses_balance(client, headers):
    customer = create_customer(client, headers)
    product = create_product(client, headers)
    order = create_order(client, headers, customer["id"], product["id"], quantity=5)

    response = client.post(f"/api/v1/orders/{order['id']}/cancel", headers=headers)
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"

    assert get_product(client, headers, product["id"])["stock_quantity"] == 50
    refreshed = get_customer(client, headers, customer["id"])
    assert refreshed["outstanding_balance"] == 0
    assert refreshed["order_count"] == 0

    movements = client.get(
        f"/api/v1/inventory/products/{product['id']}/movements", params={"movement_type": "return"}, headers=headers
    ).json()
    assert movements["total"] == 1


def test_order_list_filters(client, headers):
    customer = create_customer(client, headers)
    product = create_product(client, headers)
    first = create_order(client, headers, customer["id"], product["id"], quantity=1)
    create_order(client, headers, customer["id"], product["id"], quantity=1, payment_method="cash")
    client.post(f"/api/v1/orders/{first['id']}/cancel", headers=headers)

    cancelled = client.get("/api/v1/orders/", params={"status": "cancelled"}, headers=headers).json()
    assert cancelled["total"] == 1
    assert client.get("/api/v1/orders/", headers=headers).json()["total"] == 2


def test_payment_against_order(client, headers):
    customer = create_customer(client, headers)
    product = create_product(client, headers)
    order = create_order(client, headers, customer["id"], product["id"])

    over = client.post(
        "/api/v1/payments/",
        json={"customer_id": customer["id"], "order_id": order["id"], "amount": 500},
        headers=headers,
    )
    assert over.status_code == 400

    payment = client.post(
        "/api/v1/payments/",
        json={"customer_id": customer["id"], "order_id": order["id"], "amount": 120, "payment_method": "card"},
        headers=headers,
    )
    assert payment.status_code == 200
    assert payment.json()["payment_type"] == "order"
    assert payment.json()["order_number"] == order["order_number"]

    refreshed = client.get(f"/api/v1/orders/{order['id']}", headers=headers).json()
    assert refreshed["amount_paid"] == 120
    assert refreshed["payment_status"] == "partial"
    customer_after = get_customer(client, headers, customer["id"])
    assert customer_after["outstanding_balance"] == 180
    assert customer_after["last_payment_date"] is not None


def test_balance_payment_floors_at_zero(client, headers):
    customer = create_customer(client, headers)
    product = create_product(client, headers)
    create_order(client, headers, customer["id"], product["id"], quantity=1)

    response = client.post(
        "/api/v1/payments/", json={"customer_id": customer["id"], "amount": 400}, headers=headers
    )
    assert response.status_code == 200
    assert response.json()["payment_type"] == "balance"
    assert get_customer(client, headers, customer["id"])["outstanding_balance"] == 0

    listed = client.get("/api/v1/payments/", params={"payment_type": "balance"}, headers=headers).json()
    assert listed["total"] == 1
