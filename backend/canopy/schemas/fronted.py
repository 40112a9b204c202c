"""寄售 Schema"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from canopy.schemas.common import UTCDateTime


class FrontedCreate(BaseModel):
    """寄出商品 - 收货人可以是已有客户，也可以只填名称"""
    product_id: int
    customer_id: Optional[int] = None
    fronted_to_customer_name: Optional[str] = Field(None, max_length=120)
    quantity: Decimal = Field(..., gt=0, description="寄出数量")
    price_per_unit: Decimal = Field(..., ge=0, description="约定单价")
    cost_per_unit: Optional[Decimal] = Field(None, ge=0, description="单位成本，不填取商品成本")
    dispatched_at: Optional[UTCDateTime] = None
    payment_due_date: Optional[UTCDateTime] = None
    notes: Optional[str] = None


class FrontedQuantity(BaseModel):
    """售出 / 退回 / 损耗"""
    quantity: Decimal = Field(..., gt=0)
    notes: Optional[str] = None


class FrontedPayment(BaseModel):
    amount: Decimal = Field(..., gt=0)
    payment_method: str = Field(default="cash", pattern="^(cash|card|bank_transfer|crypto|other)$")
    reference: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None


class FrontedExtend(BaseModel):
    """延长回款日"""
    payment_due_date: Optional[UTCDateTime] = None
    days: Optional[int] = Field(None, gt=0, le=365)


class FrontedResponse(BaseModel):
    id: int
    product_id: int
    product_name: str = ""
    customer_id: Optional[int]
    fronted_to_customer_name: Optional[str]
    quantity_fronted: float
    quantity_sold: float
    quantity_returned: float
    quantity_damaged: float
    quantity_remaining: float
    cost_per_unit: float
    price_per_unit: float
    expected_revenue: float
    expected_profit: float
    payment_received: float
    amount_owed: float
    payment_status: str
    status: str
    dispatched_at: Optional[datetime]
    payment_due_date: Optional[datetime]
    completed_at: Optional[datetime]
    notes: Optional[str]
    days_out: int = 0
    days_overdue: int = 0
    aging_status: str = "healthy"
    is_overdue: bool = False
    created_at: datetime

    class Config:
        from_attributes = True


class FrontedListResponse(BaseModel):
    data: List[FrontedResponse]
    total: int
    page: int
    limit: int


class AgingBucket(BaseModel):
    units: float = 0
    value: float = 0
    count: int = 0


class FrontedAging(BaseModel):
    healthy: AgingBucket
    warning: AgingBucket
    overdue: AgingBucket


class FrontedDashboard(BaseModel):
    """寄售总览"""
    total_value: float
    total_units: float
    avg_days_out: int
    active_consignments: int
    aging: FrontedAging
    health_score: float


class AgingReport(BaseModel):
    """账龄报表"""
    customer_id: Optional[int] = None
    current: float = 0
    days_30: float = 0
    days_60: float = 0
    days_90: float = 0
    over_90: float = 0
    total: float = 0
