from datetime import datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from canopy.services.fronted import (
    ReconciliationError, aging_report, aging_status, apply_payment, check_quantities,
    describe_item, fronted_dashboard, is_overdue,
)

NOW = datetime(2025, 6, 15, 12, 0, 0)


def item(days_out=0, expected=100, received=0, due_in=7, qty=10, created_days_ago=None):
    expected = Decimal(str(expected))
    received = Decimal(str(received))
    dispatched = NOW - timedelta(days=days_out)
    return SimpleNamespace(
        dispatched_at=dispatched,
        created_at=NOW - timedelta(days=created_days_ago if created_days_ago is not None else days_out),
        payment_due_date=dispatched + timedelta(days=due_in) if due_in is not None else None,
        expected_revenue=expected,
        payment_received=received,
        amount_owed=max(Decimal("0"), expected - received),
        quantity_fronted=Decimal(str(qty)),
        quantity_remaining=Decimal(str(qty)),
    )


def test_aging_status():
    assert aging_status(7) == "healthy"
    assert aging_status(8) == "warning"
    assert aging_status(14) == "warning"
    assert aging_status(15) == "overdue"
    assert aging_status(3, warning_days=2, overdue_days=5) == "warning"


def test_check_quantities():
    assert check_quantities(Decimal("10"), Decimal("4"), Decimal("3"), Decimal("1")) == Decimal("2")
    with pytest.raises(ReconciliationError):
        check_quantities(Decimal("10"), Decimal("8"), Decimal("3"), Decimal("0"))


def test_apply_payment_statuses():
    partial = apply_payment(Decimal("100"), Decimal("0"), Decimal("40"))
    assert partial["payment_status"] == "partial"
    assert partial["remaining"] == Decimal("60")
    assert not partial["is_paid"]

    paid = apply_payment(Decimal("100"), Decimal("40"), Decimal("60"))
    assert paid["payment_status"] == "paid"
    assert paid["is_paid"]

    with pytest.raises(ReconciliationError):
        apply_payment(Decimal("100"), Decimal("90"), Decimal("20"))


def test_overdue_needs_balance_and_past_due_date():
    assert is_overdue(item(days_out=10, due_in=7), NOW)
    assert not is_overdue(item(days_out=10, due_in=7, received=100), NOW)
    assert not is_overdue(item(days_out=3, due_in=7), NOW)
    assert not is_overdue(item(days_out=30, due_in=None), NOW)


def test_describe_item():
    info = describe_item(item(days_out=10, due_in=7, received=25), NOW)
    assert info["days_out"] == 10
    assert info["days_overdue"] == 3
    assert info["aging_status"] == "warning"
    assert info["is_overdue"] is True
    assert info["amount_owed"] == 75


def test_dashboard_health_score():
    items = [item(days_out=2, expected=300), item(days_out=20, expected=100)]
    dashboard = fronted_dashboard(items, NOW)
    assert dashboard["total_value"] == 400
    assert dashboard["active_consignments"] == 2
    assert dashboard["avg_days_out"] == 11
    assert dashboard["aging"]["overdue"]["count"] == 1
    assert dashboard["health_score"] == 50


def test_dashboard_empty():
    dashboard = fronted_dashboard([], NOW)
    assert dashboard["health_score"] == 100
    assert dashboard["avg_days_out"] == 0


def test_aging_report_buckets():
    items = [
        item(days_out=1, due_in=7, expected=10),
        item(days_out=20, due_in=0, expected=20),
        item(days_out=45, due_in=0, expected=30),
        item(days_out=75, due_in=0, expected=40),
        item(days_out=120, due_in=0, expected=50),
        item(days_out=120, due_in=0, expected=60, received=60),
        item(days_out=40, due_in=None, expected=70, created_days_ago=40),
    ]
    report = aging_report(items, NOW)
    assert report["current"] == 10
    assert report["days_30"] == 20
    assert report["days_60"] == 30 + 70
    assert report["days_90"] == 40
    assert report["over_90"] == 50
    assert report["total"] == 220
