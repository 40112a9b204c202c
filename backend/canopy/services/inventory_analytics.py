"""
库存分析 - 库存水位分级、按仓库/分类汇总
"""

from decimal import Decimal
from typing import Dict, Iterable, List, Optional

DEFAULT_MIN_STOCK = Decimal("10")

# 分级顺序即返回顺序
STOCK_LEVELS = [
    ("out_of_stock", "缺货"),
    ("critical", "严重不足"),
    ("low", "偏低"),
    ("adequate", "充足"),
    ("overstocked", "积压"),
]


def effective_min_level(min_stock_level: Optional[Decimal]) -> Decimal:
    """最低库存，未设置或为 0 时按 10"""
    return Decimal(min_stock_level) if min_stock_level else DEFAULT_MIN_STOCK


def stock_level(quantity: Decimal, min_stock_level: Optional[Decimal]) -> str:
    """
    库存水位

    - 0 → out_of_stock
    - ≤ 最低库存 × 0.5 → critical
    - ≤ 最低库存 → low
    - ≤ 最低库存 × 5 → adequate
    - 其他 → overstocked
    """
    qty = Decimal(quantity or 0)
    min_level = effective_min_level(min_stock_level)

    if qty <= 0:
        return "out_of_stock"
    if qty <= min_level * Decimal("0.5"):
        return "critical"
    if qty <= min_level:
        return "low"
    if qty <= min_level * 5:
        return "adequate"
    return "overstocked"


def is_low_stock(quantity: Decimal, min_stock_level: Optional[Decimal]) -> bool:
    """有库存但不高于最低库存"""
    qty = Decimal(quantity or 0)
    return Decimal("0") < qty <= effective_min_level(min_stock_level)


def stock_distribution(products: Iterable) -> List[Dict]:
    """库存水位分布，数量为 0 的分级不返回"""
    counts = {key: 0 for key, _ in STOCK_LEVELS}
    for p in products:
        counts[stock_level(p.stock_quantity, p.min_stock_level)] += 1

    return [
        {"level": key, "label": label, "count": counts[key]}
        for key, label in STOCK_LEVELS
        if counts[key] > 0
    ]


def _group(products: Iterable, key_func, empty_label: str) -> List[Dict]:
    groups: Dict[str, Dict] = {}
    for p in products:
        key = key_func(p) or empty_label
        group = groups.setdefault(key, {"name": key, "quantity": 0.0, "value": 0.0, "product_count": 0})
        group["quantity"] += float(p.stock_quantity or 0)
        group["value"] += float(p.stock_value)
        group["product_count"] += 1

    return sorted(groups.values(), key=lambda g: g["value"], reverse=True)


def summarize_inventory(products: List) -> Dict:
    """库存总览"""
    return {
        "total_products": len(products),
        "total_quantity": float(sum((p.stock_quantity or Decimal("0") for p in products), Decimal("0"))),
        "total_stock_value": float(sum((p.stock_value for p in products), Decimal("0"))),
        "low_stock_count": sum(1 for p in products if is_low_stock(p.stock_quantity, p.min_stock_level)),
        "out_of_stock_count": sum(1 for p in products if (p.stock_quantity or 0) <= 0),
        "by_warehouse": _group(products, lambda p: p.warehouse_location, "Unassigned"),
        "by_category": _group(products, lambda p: p.category, "Uncategorized"),
    }
