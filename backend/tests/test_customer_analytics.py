from datetime import datetime, timedelta
from types import SimpleNamespace

from canopy.services.customer_analytics import (
    calculate_rfm, customer_segment, days_since, enrich_customer, lifecycle_stage,
)

NOW = datetime(2025, 6, 15, 12, 0, 0)


def test_days_since_none():
    assert days_since(None, NOW) is None
    assert days_since(NOW - timedelta(days=3, hours=5), NOW) == 3


def test_lifecycle_stage_boundaries():
    assert lifecycle_stage(None, NOW) == "prospect"
    assert lifecycle_stage(NOW - timedelta(days=30), NOW) == "active"
    assert lifecycle_stage(NOW - timedelta(days=31), NOW) == "regular"
    assert lifecycle_stage(NOW - timedelta(days=60), NOW) == "regular"
    assert lifecycle_stage(NOW - timedelta(days=61), NOW) == "at-risk"
    assert lifecycle_stage(NOW - timedelta(days=91), NOW) == "churned"


def test_rfm_never_purchased():
    assert calculate_rfm(None, 0, 0, NOW) == {"r": 1, "f": 1, "m": 1, "rfm": "111"}


def test_rfm_scores():
    rfm = calculate_rfm(NOW - timedelta(days=10), 5, 600, NOW)
    assert rfm == {"r": 5, "f": 4, "m": 4, "rfm": "544"}

    rfm = calculate_rfm(NOW - timedelta(days=100), 12, 49.99, NOW)
    assert rfm["rfm"] == "251"


def test_segment_rules_in_order():
    champion = {"r": 5, "f": 5, "m": 5, "rfm": "555"}
    assert customer_segment(champion, "active", 5000) == "champions"

    high = {"r": 3, "f": 1, "m": 5, "rfm": "315"}
    assert customer_segment(high, "churned", 2000) == "high-value"

    risky = {"r": 3, "f": 2, "m": 3, "rfm": "323"}
    assert customer_segment(risky, "at-risk", 300) == "at-risk"

    bulk = {"r": 2, "f": 2, "m": 4, "rfm": "224"}
    assert customer_segment(bulk, "churned", 800) == "bulk-buyers"

    fresh = {"r": 1, "f": 1, "m": 1, "rfm": "111"}
    assert customer_segment(fresh, "prospect", 0) == "new"
    assert customer_segment(fresh, "churned", 10) == "regular"


def test_enrich_customer():
    customer = SimpleNamespace(last_purchase_at=NOW - timedelta(days=5), order_count=10, total_spent=1500)
    info = enrich_customer(customer, NOW)
    assert info["lifecycle"] == "active"
    assert info["rfm"]["rfm"] == "555"
    assert info["segment"] == "champions"
