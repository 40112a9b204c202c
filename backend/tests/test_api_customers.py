from tests.helpers import create_customer, create_order, create_product


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_duplicate_tenant_slug(client, tenant):
    response = client.post("/api/v1/tenants/", json={"name": "Other", "slug": "green-leaf"})
    assert response.status_code == 400


def test_tenant_header_required(client, tenant):
    assert client.get("/api/v1/customers/").status_code == 422
    assert client.get("/api/v1/customers/", headers={"X-Tenant-ID": "999"}).status_code == 404


def test_suspended_tenant_rejected(client, tenant, headers):
    response = client.put(f"/api/v1/tenants/{tenant['id']}", json={"status": "suspended"})
    assert response.status_code == 200
    assert client.get("/api/v1/customers/", headers=headers).status_code == 403


def test_create_customer_requires_a_name(client, headers):
    response = client.post("/api/v1/customers/", json={"email": "x@example.com"}, headers=headers)
    assert response.status_code == 422


def test_create_and_get_customer(client, headers):
    customer = create_customer(client, headers, business_name="Leafy LLC", customer_type="wholesale")
    assert customer["display_name"] == "Leafy LLC"
    assert customer["available_credit"] == 1000

    detail = client.get(f"/api/v1/customers/{customer['id']}", headers=headers).json()
    assert detail["lifecycle"] == "prospect"
    assert detail["segment"] == "new"
    assert detail["rfm"]["rfm"] == "111"
    assert detail["days_since_purchase"] is None


def test_customers_are_tenant_scoped(client, headers):
    customer = create_customer(client, headers)
    other = client.post("/api/v1/tenants/", json={"name": "Other", "slug": "other"}).json()
    other_headers = {"X-Tenant-ID": str(other["id"])}

    assert client.get(f"/api/v1/customers/{customer['id']}", headers=other_headers).status_code == 404
    assert client.get("/api/v1/customers/", headers=other_headers).json()["total"] == 0


def test_crm_filters(client, headers):
    buyer = create_customer(client, headers, first_name="Buyer")
    create_customer(client, headers, first_name="Browser")
    product = create_product(client, headers)
    create_order(client, headers, buyer["id"], product["id"], quantity=1)

    active = client.get("/api/v1/customers/crm", params={"lifecycle": "active"}, headers=headers).json()
    assert active["total"] == 1
    assert active["data"][0]["id"] == buyer["id"]

    prospects = client.get("/api/v1/customers/crm", params={"segment": "new"}, headers=headers).json()
    assert prospects["total"] == 1

    bad = client.get("/api/v1/customers/crm", params={"lifecycle": "sleeping"}, headers=headers)
    assert bad.status_code == 400


def test_crm_dashboard(client, headers):
    create_customer(client, headers)
    create_customer(client, headers, first_name="Robin")
    dashboard = client.get("/api/v1/customers/crm/dashboard", headers=headers).json()
    assert dashboard["total_customers"] == 2
    assert dashboard["new_this_month"] == 2
    assert dashboard["by_lifecycle"]["prospect"] == 2


def test_update_customer(client, headers):
    customer = create_customer(client, headers)
    response = client.put(
        f"/api/v1/customers/{customer['id']}", json={"credit_limit": 2500, "status": "blocked"}, headers=headers
    )
    assert response.status_code == 200
    assert response.json()["credit_limit"] == 2500
    assert response.json()["status"] == "blocked"


def test_delete_customer_with_orders_blocked(client, headers):
    customer = create_customer(client, headers)
    product = create_product(client, headers)
    create_order(client, headers, customer["id"], product["id"])

    response = client.delete(f"/api/v1/customers/{customer['id']}", headers=headers)
    assert response.status_code == 400

    spare = create_customer(client, headers, first_name="Spare")
    assert client.delete(f"/api/v1/customers/{spare['id']}", headers=headers).status_code == 200


def test_customer_history(client, headers):
    customer = create_customer(client, headers)
    product = create_product(client, headers)
    create_order(client, headers, customer["id"], product["id"], payment_method="cash")

    orders = client.get(f"/api/v1/customers/{customer['id']}/orders", headers=headers).json()
    assert orders["total"] == 1
    payments = client.get(f"/api/v1/customers/{customer['id']}/payments", headers=headers).json()
    assert payments["total"] == 1
    assert payments["data"][0]["payment_type"] == "order"
