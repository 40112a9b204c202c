"""
客户分析 - 生命周期阶段、RFM 评分、自动分群
纯函数，不访问数据库
"""

from datetime import datetime
from typing import Dict, Optional

# 从未购买过的客户按 999 天计算最近一次购买
NEVER_PURCHASED_DAYS = 999

SEGMENTS = ["champions", "high-value", "at-risk", "bulk-buyers", "new", "regular"]
LIFECYCLE_STAGES = ["prospect", "active", "regular", "at-risk", "churned"]


def days_since(moment: Optional[datetime], now: Optional[datetime] = None) -> Optional[int]:
    """距今天数（向下取整），moment 为空返回 None"""
    if moment is None:
        return None
    now = now or datetime.utcnow()
    return int((now - moment).total_seconds() // 86400)


def lifecycle_stage(last_purchase_at: Optional[datetime], now: Optional[datetime] = None) -> str:
    """
    客户生命周期阶段

    - 从未购买 → prospect
    - 超过 90 天 → churned
    - 超过 60 天 → at-risk
    - 30 天以内 → active
    - 其他 → regular
    """
    days = days_since(last_purchase_at, now)
    if days is None:
        return "prospect"
    if days > 90:
        return "churned"
    if days > 60:
        return "at-risk"
    if days <= 30:
        return "active"
    return "regular"


def _recency_score(days: int) -> int:
    if days <= 30:
        return 5
    if days <= 60:
        return 4
    if days <= 90:
        return 3
    if days <= 180:
        return 2
    return 1


def _frequency_score(order_count: int) -> int:
    if order_count >= 10:
        return 5
    if order_count >= 5:
        return 4
    if order_count >= 3:
        return 3
    if order_count >= 1:
        return 2
    return 1


def _monetary_score(total_spent: float) -> int:
    if total_spent >= 1000:
        return 5
    if total_spent >= 500:
        return 4
    if total_spent >= 200:
        return 3
    if total_spent >= 50:
        return 2
    return 1


def calculate_rfm(
    last_purchase_at: Optional[datetime],
    order_count: int,
    total_spent: float,
    now: Optional[datetime] = None,
) -> Dict:
    """
    RFM 评分，每项 1-5 分（5 最好）

    Returns:
        {"r": 5, "f": 2, "m": 3, "rfm": "523"}
    """
    days = days_since(last_purchase_at, now)
    if days is None:
        days = NEVER_PURCHASED_DAYS

    r = _recency_score(days)
    f = _frequency_score(order_count or 0)
    m = _monetary_score(float(total_spent or 0))
    return {"r": r, "f": f, "m": m, "rfm": f"{r}{f}{m}"}


def customer_segment(rfm: Dict, lifecycle: str, total_spent: float) -> str:
    """按 RFM 和生命周期自动分群，按顺序取第一个命中的规则"""
    if rfm["rfm"] in ("555", "554", "545"):
        return "champions"
    if rfm["m"] == 5 and rfm["r"] >= 3:
        return "high-value"
    if lifecycle == "at-risk" and rfm["m"] >= 3:
        return "at-risk"
    if float(total_spent or 0) >= 500:
        return "bulk-buyers"
    if lifecycle == "prospect":
        return "new"
    return "regular"


def enrich_customer(customer, now: Optional[datetime] = None) -> Dict:
    """为客户计算生命周期、RFM 和分群"""
    lifecycle = lifecycle_stage(customer.last_purchase_at, now)
    rfm = calculate_rfm(customer.last_purchase_at, customer.order_count, customer.total_spent, now)
    return {
        "lifecycle": lifecycle,
        "rfm": rfm,
        "segment": customer_segment(rfm, lifecycle, customer.total_spent),
    }
