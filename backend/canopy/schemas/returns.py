"""退货 Schema"""
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class ReturnLineIn(BaseModel):
    product_id: int
    quantity: Decimal = Field(..., gt=0)
    condition: str = Field(default="resellable", pattern="^(resellable|damaged)$")


class ReturnCreate(BaseModel):
    order_id: int
    reason: Optional[str] = Field(None, max_length=255)
    restocking_fee: Decimal = Field(default=Decimal("0"), ge=0)
    notes: Optional[str] = None
    items: List[ReturnLineIn] = Field(..., min_length=1)


class ReturnReject(BaseModel):
    notes: Optional[str] = None


class ReturnItemResponse(BaseModel):
    id: int
    product_id: int
    quantity: float
    unit_price: float
    condition: str

    class Config:
        from_attributes = True


class ReturnResponse(BaseModel):
    id: int
    ra_number: str
    order_id: int
    order_number: str = ""
    customer_id: int
    customer_name: str = ""
    status: str
    reason: Optional[str]
    restocking_fee: float
    refund_amount: float
    items_total: float
    notes: Optional[str]
    approved_at: Optional[datetime]
    received_at: Optional[datetime]
    refunded_at: Optional[datetime]
    items: List[ReturnItemResponse] = []
    created_at: datetime

    class Config:
        from_attributes = True


class ReturnListResponse(BaseModel):
    data: List[ReturnResponse]
    total: int
    page: int
    limit: int


class ReturnSummary(BaseModel):
    total_returns: int
    by_status: Dict[str, int]
    total_refunded: float
    return_rate: float
