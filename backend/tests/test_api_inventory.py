from tests.helpers import create_product


def test_opening_stock_recorded_as_receipt(client, headers):
    product = create_product(client, headers)
    assert product["stock_quantity"] == 50
    assert product["stock_value"] == 5000
    assert product["stock_level"] == "adequate"

    movements = client.get(f"/api/v1/inventory/products/{product['id']}/movements", headers=headers).json()
    assert movements["total"] == 1
    assert movements["data"][0]["movement_type"] == "receive"
    assert movements["data"][0]["quantity_after"] == 50


def test_duplicate_sku_rejected(client, headers):
    create_product(client, headers)
    response = client.post(
        "/api/v1/inventory/products", json={"name": "Other", "sku": "BD-1"}, headers=headers
    )
    assert response.status_code == 400


def test_unknown_vendor_rejected(client, headers):
    response = client.post(
        "/api/v1/inventory/products", json={"name": "Other", "vendor_id": 42}, headers=headers
    )
    assert response.status_code == 404


def test_adjust_stock(client, headers):
    product = create_product(client, headers)
    url = f"/api/v1/inventory/products/{product['id']}/adjust"

    damage = client.post(url, json={"quantity_change": 5, "movement_type": "damage"}, headers=headers).json()
    assert damage["quantity_change"] == -5
    assert damage["quantity_after"] == 45

    too_much = client.post(url, json={"quantity_change": -100}, headers=headers)
    assert too_much.status_code == 400
    assert "库存不足" in too_much.json()["detail"]

    zero = client.post(url, json={"quantity_change": 0}, headers=headers)
    assert zero.status_code == 422

    refreshed = client.get(f"/api/v1/inventory/products/{product['id']}", headers=headers).json()
    assert refreshed["stock_quantity"] == 45


def test_update_does_not_touch_stock(client, headers):
    product = create_product(client, headers)
    response = client.put(
        f"/api/v1/inventory/products/{product['id']}",
        json={"price": 175, "stock_quantity": 999},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["price"] == 175
    assert response.json()["stock_quantity"] == 50


def test_low_stock_and_overview(client, headers):
    create_product(client, headers, name="Plenty", sku="P-1", stock_quantity=500, warehouse_location="B2")
    create_product(client, headers, name="Scarce", sku="S-1", stock_quantity=3)
    create_product(client, headers, name="Gone", sku="G-1", stock_quantity=0)

    low = client.get("/api/v1/inventory/low-stock", headers=headers).json()
    assert [p["name"] for p in low] == ["Gone", "Scarce"]

    overview = client.get("/api/v1/inventory/overview", headers=headers).json()
    assert overview["total_products"] == 3
    assert overview["low_stock_count"] == 1
    assert overview["out_of_stock_count"] == 1

    levels = {b["level"]: b["count"] for b in client.get("/api/v1/inventory/distribution", headers=headers).json()}
    assert levels == {"out_of_stock": 1, "critical": 1, "overstocked": 1}


def test_product_list_search(client, headers):
    create_product(client, headers)
    create_product(client, headers, name="Gelato", sku="GL-1")
    result = client.get("/api/v1/inventory/products", params={"search": "Gel"}, headers=headers).json()
    assert result["total"] == 1
    assert result["data"][0]["sku"] == "GL-1"


def test_delete_product(client, headers):
    product = create_product(client, headers)
    assert client.delete(f"/api/v1/inventory/products/{product['id']}", headers=headers).status_code == 200
    assert client.get(f"/api/v1/inventory/products/{product['id']}", headers=headers).status_code == 404
