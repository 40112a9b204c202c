def create_webhook(client, headers, **overrides):
    payload = {"url": "https://hooks.example.com/canopy"}
    payload.update(overrides)
    return client.post("/api/v1/webhooks/", json=payload, headers=headers)


def test_event_catalogue(client):
    events = client.get("/api/v1/webhooks/events").json()
    assert "order.created" in events
    assert "return.created" in events


def test_create_defaults(client, headers):
    response = create_webhook(client, headers)
    assert response.status_code == 200, response.text
    webhook = response.json()
    assert webhook["name"] == "Webhook - hooks.example.com"
    assert webhook["url"] == "https://hooks.example.com/canopy"
    assert webhook["events"] == ["order.created"]
    assert webhook["status"] == "active"
    assert webhook["secret"].startswith("whsec_")


def test_create_validation(client, headers):
    assert create_webhook(client, headers, url="ftp://files.example.com").status_code == 422
    assert create_webhook(client, headers, events=["order.exploded"]).status_code == 422
    assert create_webhook(client, headers, events=[]).status_code == 422


def test_update_dedupes_events(client, headers):
    webhook = create_webhook(client, headers, name="Orders").json()
    response = client.put(
        f"/api/v1/webhooks/{webhook['id']}",
        json={"events": ["order.created", "order.updated", "order.created"]},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["events"] == ["order.created", "order.updated"]
    assert response.json()["name"] == "Orders"


def test_toggle_and_rotate(client, headers):
    webhook = create_webhook(client, headers).json()
    base = f"/api/v1/webhooks/{webhook['id']}"

    assert client.post(f"{base}/toggle", headers=headers).json()["status"] == "inactive"
    assert client.post(f"{base}/toggle", headers=headers).json()["status"] == "active"

    rotated = client.post(f"{base}/rotate-secret", headers=headers).json()
    assert rotated["secret"] != webhook["secret"]
    assert rotated["secret"].startswith("whsec_")


def test_list_and_delete(client, headers):
    webhook = create_webhook(client, headers).json()
    create_webhook(client, headers, url="https://other.example.com/hook")
    assert client.get("/api/v1/webhooks/", headers=headers).json()["total"] == 2

    assert client.delete(f"/api/v1/webhooks/{webhook['id']}", headers=headers).status_code == 200
    assert client.get(f"/api/v1/webhooks/{webhook['id']}", headers=headers).status_code == 404


def test_update_null_clears_description_only(client, headers):
    webhook = create_webhook(client, headers, name="Orders", description="ERP 同步").json()
    assert webhook["description"] == "ERP 同步"

    response = client.put(
        f"/api/v1/webhooks/{webhook['id']}",
        json={"description": None, "name": None, "events": None},
        headers=headers,
    )
    assert response.status_code == 200, response.text
    updated = response.json()
    assert updated["description"] is None
    assert updated["name"] == "Orders"
    assert updated["events"] == ["order.created"]
