"""总览 Schema"""
from datetime import datetime

from pydantic import BaseModel


class CustomerStats(BaseModel):
    total: int = 0
    active: int = 0
    at_risk: int = 0
    churned: int = 0


class InventoryStats(BaseModel):
    total_products: int = 0
    total_stock_value: float = 0
    low_stock_count: int = 0
    out_of_stock_count: int = 0


class FrontedStats(BaseModel):
    active_consignments: int = 0
    total_value: float = 0
    overdue_count: int = 0
    health_score: float = 100


class QualityStats(BaseModel):
    pending: int = 0
    failed: int = 0
    quarantined: int = 0
    expiring_soon: int = 0


class ReturnStats(BaseModel):
    pending: int = 0
    approved: int = 0


class ARStats(BaseModel):
    total_outstanding: float = 0
    overdue: float = 0
    overdue_count: int = 0


class ExecutiveOverview(BaseModel):
    """管理总览 - 汇总各模块关键数字"""
    generated_at: datetime
    customers: CustomerStats
    inventory: InventoryStats
    fronted: FrontedStats
    quality: QualityStats
    returns: ReturnStats
    receivables: ARStats
    month_revenue: float = 0
    open_orders: int = 0
