"""
财务报表计算 - 应收分级、月度对比、毛利趋势、现金跑道
"""

from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

# 计入营收的订单状态
REVENUE_STATUSES = ("completed", "delivered")

WEEKDAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


def percent_change(current: float, previous: float) -> float:
    """环比变化百分比，上期为 0 时返回 0"""
    if previous > 0:
        return round((current - previous) / previous * 100, 1)
    return 0.0


def period_metrics(orders: Iterable) -> Dict:
    """一段时间内的营收、成本、利润、毛利率、成交数"""
    orders = list(orders)
    revenue = sum(float(o.total_amount or 0) for o in orders)
    cost = sum(float(o.total_cost or 0) for o in orders)
    profit = revenue - cost
    deals = len(orders)
    return {
        "revenue": revenue,
        "cost": cost,
        "profit": profit,
        "margin": round(profit / revenue * 100, 1) if revenue > 0 else 0.0,
        "deals": deals,
        "avg_deal_size": round(revenue / deals) if deals else 0,
    }


def compare_periods(this_period: Dict, last_period: Dict) -> Dict:
    return {
        "revenue": percent_change(this_period["revenue"], last_period["revenue"]),
        "cost": percent_change(this_period["cost"], last_period["cost"]),
        "profit": percent_change(this_period["profit"], last_period["profit"]),
        "margin": round(this_period["margin"] - last_period["margin"], 1),
        "deals": percent_change(this_period["deals"], last_period["deals"]),
    }


def top_customers(orders: Iterable, names: Dict[int, str], total_revenue: float, limit: int = 5) -> List[Dict]:
    """按营收排序的前 N 个客户"""
    revenue_by_customer: Dict[int, float] = {}
    for o in orders:
        revenue_by_customer[o.customer_id] = revenue_by_customer.get(o.customer_id, 0.0) + float(o.total_amount or 0)

    ranked = sorted(revenue_by_customer.items(), key=lambda kv: kv[1], reverse=True)[:limit]
    return [
        {
            "customer_id": customer_id,
            "name": names.get(customer_id, "Unknown"),
            "revenue": revenue,
            "percentage": round(revenue / total_revenue * 100, 1) if total_revenue > 0 else 0.0,
        }
        for customer_id, revenue in ranked
    ]


def margin_trend(orders: List, now: datetime, weeks: int = 13) -> List[Dict]:
    """最近 N 周的每周毛利率，最早的一周在前"""
    trend = []
    for i in range(weeks - 1, -1, -1):
        week_start = now - timedelta(days=(i + 1) * 7)
        week_end = now - timedelta(days=i * 7)
        week_orders = [o for o in orders if week_start <= o.created_at < week_end]
        metrics = period_metrics(week_orders)
        trend.append({"week_start": week_start.strftime("%Y-%m-%d"), "margin": metrics["margin"]})
    return trend


def week_revenue(orders: Iterable, now: datetime) -> List[Dict]:
    """本周（周一开始）每天的营收，未来日期金额为 0"""
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    week_start = today - timedelta(days=today.weekday())

    daily = {}
    for o in orders:
        key = o.created_at.date()
        daily[key] = daily.get(key, 0.0) + float(o.total_amount or 0)

    days = []
    for i in range(7):
        day = week_start + timedelta(days=i)
        is_future = day > today
        days.append({
            "day": WEEKDAY_LABELS[i],
            "date": day.strftime("%Y-%m-%d"),
            "amount": 0.0 if is_future else daily.get(day.date(), 0.0),
            "is_past": day < today,
            "is_today": day == today,
        })
    return days


def cash_runway(cash_on_hand: float, cost_last_30_days: float) -> Dict:
    """现金跑道 = 可用现金 / 近 30 天日均成本；无成本时视为 999 天"""
    avg_daily_burn = cost_last_30_days / 30
    days_remaining = int(cash_on_hand // avg_daily_burn) if avg_daily_burn > 0 else 999
    return {
        "available_cash": cash_on_hand,
        "avg_daily_burn": round(avg_daily_burn, 2),
        "days_remaining": days_remaining,
        "is_healthy": days_remaining >= 30,
    }


def categorize_receivables(customers: Iterable, now: Optional[datetime] = None, default_terms: int = 30) -> Dict:
    """
    应收账款按紧急程度分级

    - overdue: 距上次付款天数超过账期（从未付款按 999 天）
    - due_this_week: 未逾期，但 7 天内到期
    - upcoming: 其他
    """
    now = now or datetime.utcnow()
    rows = []
    for c in customers:
        amount = float(c.outstanding_balance or 0)
        if amount <= 0:
            continue
        terms = c.payment_terms or default_terms
        days_since_payment = (
            int((now - c.last_payment_date).total_seconds() // 86400) if c.last_payment_date else 999
        )
        overdue = days_since_payment > terms
        rows.append({
            "customer_id": c.id,
            "name": c.display_name,
            "amount": amount,
            "days_overdue": days_since_payment - terms if overdue else 0,
            "last_payment_date": c.last_payment_date,
            "phone": c.phone,
            "email": c.email,
            "category": "overdue" if overdue else (
                "due_this_week" if days_since_payment > terms - 7 else "upcoming"
            ),
        })

    rows.sort(key=lambda r: r["amount"], reverse=True)

    def _bucket(name: str) -> List[Dict]:
        return [r for r in rows if r["category"] == name]

    overdue_rows = _bucket("overdue")
    due_rows = _bucket("due_this_week")
    upcoming_rows = _bucket("upcoming")
    return {
        "total_outstanding": sum(r["amount"] for r in rows),
        "overdue": sum(r["amount"] for r in overdue_rows),
        "overdue_count": len(overdue_rows),
        "due_this_week": sum(r["amount"] for r in due_rows),
        "due_this_week_count": len(due_rows),
        "upcoming": sum(r["amount"] for r in upcoming_rows),
        "upcoming_count": len(upcoming_rows),
        "priority_clients": overdue_rows[:4],
        "all_clients": rows,
    }
