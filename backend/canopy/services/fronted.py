"""
寄售对账与账龄计算

对账规则：
- 售出 + 退回 + 损耗 <= 寄出数量
- 已收款 <= 应收金额
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from canopy.core.config import settings


class ReconciliationError(ValueError):
    """寄售数量或金额对不上"""


def days_between(start: Optional[datetime], end: datetime) -> int:
    if start is None:
        return 0
    return int((end - start).total_seconds() // 86400)


def aging_status(days_out: int, warning_days: int = None, overdue_days: int = None) -> str:
    """
    按在外天数分级：≤7 healthy，≤14 warning，>14 overdue
    """
    warning_days = settings.FRONTED_WARNING_DAYS if warning_days is None else warning_days
    overdue_days = settings.FRONTED_OVERDUE_DAYS if overdue_days is None else overdue_days
    if days_out > overdue_days:
        return "overdue"
    if days_out > warning_days:
        return "warning"
    return "healthy"


def check_quantities(
    fronted: Decimal,
    sold: Decimal,
    returned: Decimal,
    damaged: Decimal,
) -> Decimal:
    """校验数量对账，返回剩余在外数量"""
    accounted = Decimal(sold or 0) + Decimal(returned or 0) + Decimal(damaged or 0)
    if accounted > Decimal(fronted):
        raise ReconciliationError(
            f"售出+退回+损耗({accounted})超过寄出数量({fronted})"
        )
    return Decimal(fronted) - accounted


def apply_payment(expected: Decimal, received: Decimal, amount: Decimal) -> Dict:
    """
    计算收款后的状态

    Returns:
        {"payment_received", "payment_status", "remaining", "is_paid"}
    """
    new_total = Decimal(received or 0) + Decimal(amount)
    expected = Decimal(expected or 0)
    if new_total > expected:
        raise ReconciliationError(
            f"收款后累计({new_total})超过应收金额({expected})"
        )

    if new_total >= expected:
        status = "paid"
    elif new_total > 0:
        status = "partial"
    else:
        status = "pending"

    return {
        "payment_received": new_total,
        "payment_status": status,
        "remaining": max(Decimal("0"), expected - new_total),
        "is_paid": status == "paid",
    }


def is_overdue(item, now: datetime) -> bool:
    """过了约定回款日且仍有欠款"""
    return bool(item.payment_due_date and item.payment_due_date < now and item.amount_owed > 0)


def describe_item(item, now: Optional[datetime] = None) -> Dict:
    """单条寄售的派生字段"""
    now = now or datetime.utcnow()
    days_out = days_between(item.dispatched_at, now)
    days_overdue = max(0, days_between(item.payment_due_date, now)) if item.payment_due_date else 0
    return {
        "quantity_remaining": float(item.quantity_remaining),
        "amount_owed": float(item.amount_owed),
        "days_out": days_out,
        "days_overdue": days_overdue if is_overdue(item, now) else 0,
        "aging_status": aging_status(days_out),
        "is_overdue": is_overdue(item, now),
    }


def fronted_dashboard(items: List, now: Optional[datetime] = None) -> Dict:
    """
    在外寄售总览：总价值、总数量、平均在外天数、账龄分布和健康分

    健康分 = max(0, 100 - 逾期金额占比 × 2)
    """
    now = now or datetime.utcnow()
    aging = {
        "healthy": {"units": 0.0, "value": 0.0, "count": 0},
        "warning": {"units": 0.0, "value": 0.0, "count": 0},
        "overdue": {"units": 0.0, "value": 0.0, "count": 0},
    }
    total_value = 0.0
    total_units = 0.0
    total_days = 0

    for item in items:
        days_out = days_between(item.dispatched_at, now)
        bucket = aging[aging_status(days_out)]
        value = float(item.expected_revenue or 0)
        units = float(item.quantity_fronted or 0)

        bucket["units"] += units
        bucket["value"] += value
        bucket["count"] += 1
        total_value += value
        total_units += units
        total_days += days_out

    overdue_pct = aging["overdue"]["value"] / total_value * 100 if total_value > 0 else 0
    return {
        "total_value": total_value,
        "total_units": total_units,
        "avg_days_out": round(total_days / len(items)) if items else 0,
        "active_consignments": len(items),
        "aging": aging,
        "health_score": max(0.0, 100 - overdue_pct * 2),
    }


def aging_report(items: Iterable, now: Optional[datetime] = None) -> Dict:
    """
    客户寄售账龄：未到期 / 1-30 / 31-60 / 61-90 / 90+ 天
    未设置回款日时按创建时间计算
    """
    now = now or datetime.utcnow()
    report = {"current": 0.0, "days_30": 0.0, "days_60": 0.0, "days_90": 0.0, "over_90": 0.0, "total": 0.0}

    for item in items:
        remaining = float(item.amount_owed)
        if remaining <= 0:
            continue

        due = item.payment_due_date or item.created_at
        days_overdue = days_between(due, now)
        if days_overdue <= 0:
            report["current"] += remaining
        elif days_overdue <= 30:
            report["days_30"] += remaining
        elif days_overdue <= 60:
            report["days_60"] += remaining
        elif days_overdue <= 90:
            report["days_90"] += remaining
        else:
            report["over_90"] += remaining
        report["total"] += remaining

    return report
