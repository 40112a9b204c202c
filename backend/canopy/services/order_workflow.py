"""
下单向导

六个步骤线性推进：client → products → payment → delivery → notes → review
每一步只检查本步必填字段，创建订单时所有步骤重新校验一遍
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

STEPS = ["client", "products", "payment", "delivery", "notes", "review"]

STEP_LABELS = {
    "client": "客户",
    "products": "商品",
    "payment": "付款",
    "delivery": "配送",
    "notes": "备注",
    "review": "确认",
}

# 距上次付款超过该天数提示逾期
OVERDUE_WARNING_DAYS = 7


def step_index(step: str) -> int:
    if step not in STEPS:
        raise ValueError(f"未知步骤: {step}")
    return STEPS.index(step)


def next_step(step: str) -> Optional[str]:
    idx = step_index(step)
    return STEPS[idx + 1] if idx < len(STEPS) - 1 else None


def previous_step(step: str) -> Optional[str]:
    idx = step_index(step)
    return STEPS[idx - 1] if idx > 0 else None


def can_proceed(step: str, draft) -> Tuple[bool, Optional[str]]:
    """当前步骤是否可以进入下一步，返回 (是否通过, 原因)"""
    step_index(step)

    if step == "client":
        if not draft.customer_id:
            return False, "请选择客户"
    elif step == "products":
        if not draft.items:
            return False, "请至少添加一个商品"
    elif step == "payment":
        if draft.payment_method == "partial" and not draft.partial_payment_amount:
            return False, "部分付款需填写首付金额"
    elif step == "delivery":
        if draft.delivery_method == "runner" and not draft.runner_name:
            return False, "请指定送货员"
        if draft.delivery_method == "pickup" and not draft.pickup_location:
            return False, "请选择自提仓库"
    return True, None


def first_blocking_step(draft) -> Optional[Tuple[str, str]]:
    """从头校验所有步骤，返回第一个不通过的 (步骤, 原因)"""
    for step in STEPS:
        ok, reason = can_proceed(step, draft)
        if not ok:
            return step, reason
    return None


def order_totals(lines: List[Dict]) -> Dict:
    """
    订单合计

    Args:
        lines: [{"quantity", "unit_price", "unit_cost"}]
    """
    total = Decimal("0")
    total_qty = Decimal("0")
    cost = Decimal("0")
    for line in lines:
        qty = Decimal(line["quantity"])
        total += qty * Decimal(line["unit_price"])
        cost += qty * Decimal(line.get("unit_cost") or 0)
        total_qty += qty

    profit = total - cost
    margin = (profit / total * 100) if total > 0 else Decimal("0")
    return {
        "total": total,
        "total_quantity": total_qty,
        "cost": cost,
        "profit": profit,
        "margin": round(float(margin), 1),
    }


def unpaid_amount(payment_method: str, total: Decimal, partial_payment: Decimal) -> Decimal:
    """记入客户欠款的部分"""
    if payment_method == "cash":
        return Decimal("0")
    if payment_method == "partial":
        return max(Decimal("0"), total - Decimal(partial_payment or 0))
    return total


def credit_check(
    customer,
    payment_method: str,
    total: Decimal,
    partial_payment: Decimal = Decimal("0"),
    collect_old_balance: bool = False,
    now: Optional[datetime] = None,
) -> Dict:
    """信用检查，只给出提示，不阻止下单"""
    now = now or datetime.utcnow()
    outstanding = Decimal(customer.outstanding_balance or 0)
    credit_limit = Decimal(customer.credit_limit or 0)

    new_balance = outstanding + unpaid_amount(payment_method, total, partial_payment)
    over_limit = new_balance > credit_limit
    warnings = []

    if customer.last_payment_date:
        days = int((now - customer.last_payment_date).total_seconds() // 86400)
        if days > OVERDUE_WARNING_DAYS:
            warnings.append(f"客户已 {days} 天未付款")

    if over_limit:
        warnings.append(f"下单后将超出信用额度 ${new_balance - credit_limit:,.2f}")

    if outstanding > 0 and not collect_old_balance:
        warnings.append(f"客户尚欠 ${outstanding:,.2f}")

    return {
        "available_credit": float(credit_limit - outstanding),
        "new_balance": float(new_balance),
        "over_credit_limit": over_limit,
        "warnings": warnings,
    }
