"""接口测试用的数据构造函数"""


def create_customer(client, headers, **overrides):
    payload = {"first_name": "Jamie", "last_name": "Cole", "credit_limit": 1000, "phone": "555-0100"}
    payload.update(overrides)
    response = client.post("/api/v1/customers/", json=payload, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


def create_product(client, headers, **overrides):
    payload = {
        "name": "Blue Dream",
        "sku": "BD-1",
        "category": "flower",
        "cost_per_unit": 100,
        "price": 150,
        "stock_quantity": 50,
        "min_stock_level": 10,
        "warehouse_location": "A1",
    }
    payload.update(overrides)
    response = client.post("/api/v1/inventory/products", json=payload, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


def order_draft(customer_id, product_id, quantity=2, **overrides):
    draft = {
        "customer_id": customer_id,
        "items": [{"product_id": product_id, "quantity": quantity}],
        "payment_method": "credit",
        "delivery_method": "runner",
        "runner_name": "Sam",
    }
    draft.update(overrides)
    return draft


def create_order(client, headers, customer_id, product_id, quantity=2, **overrides):
    response = client.post(
        "/api/v1/orders/", json=order_draft(customer_id, product_id, quantity, **overrides), headers=headers
    )
    assert response.status_code == 200, response.text
    return response.json()
