import pytest

from tests.helpers import create_customer, create_product


@pytest.fixture
def delivered_order(client, headers):
    customer = create_customer(client, headers)
    flower = create_product(client, headers)
    vape = create_product(client, headers, name="Vape Cart", sku="VC-1")
    response = client.post(
        "/api/v1/orders/",
        json={
            "customer_id": customer["id"],
            "items": [
                {"product_id": flower["id"], "quantity": 4},
                {"product_id": vape["id"], "quantity": 2},
            ],
            "runner_name": "Sam",
        },
        headers=headers,
    )
    assert response.status_code == 200, response.text
    order = response.json()
    for status in ("confirmed", "delivered"):
        client.put(f"/api/v1/orders/{order['id']}/status", json={"status": status}, headers=headers)
    return {"order": order, "customer": customer, "flower": flower, "vape": vape}


def open_return(client, headers, order_id, items, **extra):
    payload = {"order_id": order_id, "reason": "Wrong strain", "items": items}
    payload.update(extra)
    return client.post("/api/v1/returns/", json=payload, headers=headers)


def test_full_return_flow(client, headers, delivered_order):
    order = delivered_order["order"]
    flower, vape = delivered_order["flower"], delivered_order["vape"]

    response = open_return(
        client, headers, order["id"],
        [
            {"product_id": flower["id"], "quantity": 2},
            {"product_id": vape["id"], "quantity": 1, "condition": "damaged"},
        ],
        restocking_fee=50,
    )
    assert response.status_code == 200, response.text
    ra = response.json()
    assert ra["ra_number"].startswith("RA-")
    assert ra["status"] == "pending"
    assert ra["items_total"] == 450
    assert ra["order_number"] == order["order_number"]

    base = f"/api/v1/returns/{ra['id']}"
    assert client.post(f"{base}/receive", headers=headers).status_code == 400
    assert client.post(f"{base}/approve", headers=headers).json()["status"] == "approved"
    assert client.post(f"{base}/refund", headers=headers).status_code == 400

    received = client.post(f"{base}/receive", headers=headers).json()
    assert received["status"] == "received"
    assert received["received_at"] is not None

    flower_after = client.get(f"/api/v1/inventory/products/{flower['id']}", headers=headers).json()
    vape_after = client.get(f"/api/v1/inventory/products/{vape['id']}", headers=headers).json()
    assert flower_after["stock_quantity"] == 48
    assert vape_after["stock_quantity"] == 48
    damage = client.get(
        f"/api/v1/inventory/products/{vape['id']}/movements", params={"movement_type": "damage"}, headers=headers
    ).json()
    assert damage["total"] == 1
    assert damage["data"][0]["quantity_change"] == 0

    refunded = client.post(f"{base}/refund", headers=headers).json()
    assert refunded["status"] == "refunded"
    assert refunded["refund_amount"] == 400

    customer = client.get(f"/api/v1/customers/{delivered_order['customer']['id']}", headers=headers).json()
    assert customer["outstanding_balance"] == 500

    summary = client.get("/api/v1/returns/summary", headers=headers).json()
    assert summary["total_returns"] == 1
    assert summary["by_status"]["refunded"] == 1
    assert summary["total_refunded"] == 400
    assert summary["return_rate"] == 100.0


def test_return_needs_delivered_order(client, headers):
    customer = create_customer(client, headers)
    product = create_product(client, headers)
    order = client.post(
        "/api/v1/orders/",
        json={"customer_id": customer["id"], "items": [{"product_id": product["id"], "quantity": 1}],
              "runner_name": "Sam"},
        headers=headers,
    ).json()
    response = open_return(client, headers, order["id"], [{"product_id": product["id"], "quantity": 1}])
    assert response.status_code == 400


def test_return_quantity_limited_by_order(client, headers, delivered_order):
    order = delivered_order["order"]
    flower = delivered_order["flower"]

    assert open_return(client, headers, order["id"], [{"product_id": flower["id"], "quantity": 5}]).status_code == 400

    first = open_return(client, headers, order["id"], [{"product_id": flower["id"], "quantity": 3}]).json()
    second = open_return(client, headers, order["id"], [{"product_id": flower["id"], "quantity": 2}])
    assert second.status_code == 400

    # 驳回后数量释放
    client.post(f"/api/v1/returns/{first['id']}/reject", json={"notes": "No receipt"}, headers=headers)
    assert open_return(client, headers, order["id"], [{"product_id": flower["id"], "quantity": 2}]).status_code == 200


def test_return_rejects_unknown_product_and_big_fee(client, headers, delivered_order):
    order = delivered_order["order"]
    other = create_product(client, headers, name="Edible", sku="ED-1")
    assert open_return(client, headers, order["id"], [{"product_id": other["id"], "quantity": 1}]).status_code == 400

    flower = delivered_order["flower"]
    response = open_return(
        client, headers, order["id"], [{"product_id": flower["id"], "quantity": 1}], restocking_fee=500
    )
    assert response.status_code == 400


def test_reject_only_pending(client, headers, delivered_order):
    order = delivered_order["order"]
    flower = delivered_order["flower"]
    ra = open_return(client, headers, order["id"], [{"product_id": flower["id"], "quantity": 1}]).json()

    rejected = client.post(f"/api/v1/returns/{ra['id']}/reject", headers=headers).json()
    assert rejected["status"] == "rejected"
    assert client.post(f"/api/v1/returns/{ra['id']}/approve", headers=headers).status_code == 400

    listed = client.get("/api/v1/returns/", params={"status": "rejected"}, headers=headers).json()
    assert listed["total"] == 1
