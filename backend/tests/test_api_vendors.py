from datetime import datetime, timedelta

from tests.helpers import create_product


def create_vendor(client, headers, **overrides):
    payload = {"name": "Emerald Farms", "license_number": "C11-0001"}
    payload.update(overrides)
    response = client.post("/api/v1/vendors/", json=payload, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


def test_compliance_status(client, headers):
    now = datetime.utcnow()
    create_vendor(client, headers, name="Valid", license_expiration=(now + timedelta(days=200)).isoformat())
    create_vendor(client, headers, name="Soon", license_expiration=(now + timedelta(days=10)).isoformat())
    create_vendor(client, headers, name="Lapsed", license_expiration=(now - timedelta(days=1)).isoformat())
    missing = create_vendor(client, headers, name="Unknown")
    assert missing["compliance_status"] == "missing"

    report = client.get("/api/v1/vendors/compliance", headers=headers).json()
    assert (report["valid"], report["expiring"], report["expired"], report["missing"]) == (1, 1, 1, 1)
    assert report["vendors"][0]["name"] == "Unknown"
    assert report["vendors"][1]["name"] == "Lapsed"


def test_ratings(client, headers):
    vendor = create_vendor(client, headers)
    url = f"/api/v1/vendors/{vendor['id']}/ratings"

    first = client.post(
        url,
        json={"quality_score": 5, "delivery_score": 4, "communication_score": 3, "pricing_score": 4},
        headers=headers,
    ).json()
    assert first["overall_score"] == 4.0
    client.post(
        url,
        json={"quality_score": 3, "delivery_score": 2, "communication_score": 3, "pricing_score": 4},
        headers=headers,
    )

    summary = client.get(url, headers=headers).json()
    assert summary["rating_count"] == 2
    assert summary["quality"] == 4.0
    assert summary["overall"] == 3.5

    detail = client.get(f"/api/v1/vendors/{vendor['id']}", headers=headers).json()
    assert detail["average_rating"] == 3.5

    assert client.post(url, json={"quality_score": 6, "delivery_score": 1, "communication_score": 1,
                                  "pricing_score": 1}, headers=headers).status_code == 422
    assert client.delete(f"{url}/{first['id']}", headers=headers).status_code == 200
    assert client.get(url, headers=headers).json()["rating_count"] == 1


def test_vendor_with_products_cannot_be_deleted(client, headers):
    vendor = create_vendor(client, headers)
    create_product(client, headers, vendor_id=vendor["id"])

    detail = client.get(f"/api/v1/vendors/{vendor['id']}", headers=headers).json()
    assert detail["product_count"] == 1
    assert client.delete(f"/api/v1/vendors/{vendor['id']}", headers=headers).status_code == 400

    spare = create_vendor(client, headers, name="Spare")
    assert client.delete(f"/api/v1/vendors/{spare['id']}", headers=headers).status_code == 200
