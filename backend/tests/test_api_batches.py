from datetime import datetime, timedelta

from tests.helpers import create_product


def create_batch(client, headers, product_id, **overrides):
    payload = {"product_id": product_id, "quantity_lbs": 12.5}
    payload.update(overrides)
    response = client.post("/api/v1/batches/", json=payload, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


def test_batch_number_generated(client, headers):
    product = create_product(client, headers)
    first = create_batch(client, headers, product["id"])
    second = create_batch(client, headers, product["id"])
    assert first["batch_number"].startswith("BT")
    assert first["batch_number"].endswith("-001")
    assert second["batch_number"].endswith("-002")
    assert first["qc_status"] == "pending"
    assert first["expiry_state"] == "no_expiration"
    assert first["product_name"] == product["name"]


def test_duplicate_batch_number(client, headers):
    product = create_product(client, headers)
    create_batch(client, headers, product["id"], batch_number="LOT-7")
    response = client.post(
        "/api/v1/batches/", json={"product_id": product["id"], "quantity_lbs": 1, "batch_number": "LOT-7"},
        headers=headers,
    )
    assert response.status_code == 400


def test_expiration_before_receipt_rejected(client, headers):
    product = create_product(client, headers)
    now = datetime.utcnow()
    response = client.post(
        "/api/v1/batches/",
        json={
            "product_id": product["id"],
            "quantity_lbs": 1,
            "received_date": now.isoformat(),
            "expiration_date": (now - timedelta(days=1)).isoformat(),
        },
        headers=headers,
    )
    assert response.status_code == 400


def test_quality_checks_drive_status(client, headers):
    product = create_product(client, headers)
    batch = create_batch(client, headers, product["id"])
    url = f"/api/v1/batches/{batch['id']}/quality-checks"

    failed = client.post(url, json={"check_type": "visual", "result": "fail"}, headers=headers).json()
    assert failed["qc_status"] == "failed"

    passed = client.post(
        url, json={"check_type": "lab_test", "result": "pass", "thc_percent": 24.5, "cbd_percent": 0.3},
        headers=headers,
    ).json()
    assert passed["qc_status"] == "passed"
    assert passed["thc_percent"] == 24.5
    assert len(passed["quality_checks"]) == 2

    quarantined = client.post(
        url, json={"check_type": "contaminant", "result": "pass", "contaminants_detected": True}, headers=headers
    ).json()
    assert quarantined["qc_status"] == "quarantined"

    checks = client.get(url, headers=headers).json()
    assert len(checks) == 3


def test_qc_summary(client, headers):
    product = create_product(client, headers)
    now = datetime.utcnow()
    good = create_batch(client, headers, product["id"], expiration_date=(now + timedelta(days=10)).isoformat())
    create_batch(client, headers, product["id"], expiration_date=(now + timedelta(days=200)).isoformat())
    bad = create_batch(client, headers, product["id"])
    client.post(f"/api/v1/batches/{good['id']}/quality-checks", json={"check_type": "visual", "result": "pass"},
                headers=headers)
    client.post(f"/api/v1/batches/{bad['id']}/quality-checks", json={"check_type": "visual", "result": "fail"},
                headers=headers)

    summary = client.get("/api/v1/batches/qc-summary", headers=headers).json()
    assert summary["total_batches"] == 3
    assert summary["by_qc_status"] == {"pending": 1, "passed": 1, "failed": 1, "quarantined": 0}
    assert summary["pass_rate"] == 50.0
    assert summary["expiring_soon"] == 1
    assert summary["total_quantity_lbs"] == 37.5

    expiring = client.get("/api/v1/batches/", params={"expiring_soon": True}, headers=headers).json()
    assert expiring["total"] == 1
    assert expiring["data"][0]["id"] == good["id"]


def test_update_and_delete_batch(client, headers):
    product = create_product(client, headers)
    batch = create_batch(client, headers, product["id"])
    updated = client.put(
        f"/api/v1/batches/{batch['id']}", json={"warehouse_location": "Vault", "status": "depleted"}, headers=headers
    ).json()
    assert updated["warehouse_location"] == "Vault"
    assert updated["status"] == "depleted"

    assert client.delete(f"/api/v1/batches/{batch['id']}", headers=headers).status_code == 200
    assert client.get(f"/api/v1/batches/{batch['id']}", headers=headers).status_code == 404


def test_batch_number_after_delete(client, headers):
    product = create_product(client, headers)
    first = create_batch(client, headers, product["id"])
    second = create_batch(client, headers, product["id"])
    assert client.delete(f"/api/v1/batches/{first['id']}", headers=headers).status_code == 200

    third = create_batch(client, headers, product["id"])
    assert third["batch_number"] != second["batch_number"]
    assert third["batch_number"].endswith("-003")


def test_timezone_aware_dates_accepted(client, headers):
    product = create_product(client, headers)
    batch = create_batch(client, headers, product["id"], expiration_date="2030-01-01T00:00:00Z")
    assert batch["expiration_date"] == "2030-01-01T00:00:00"
    assert batch["expiry_state"] == "fresh"

    offset = create_batch(client, headers, product["id"], expiration_date="2030-01-01T08:00:00+08:00")
    assert offset["expiration_date"] == "2030-01-01T00:00:00"
