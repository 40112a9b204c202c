"""收款 / 催收 Schema"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class PaymentCreate(BaseModel):
    """客户收款，可指定订单"""
    customer_id: int
    order_id: Optional[int] = None
    amount: Decimal = Field(..., gt=0)
    payment_method: str = Field(default="cash", pattern="^(cash|card|bank_transfer|crypto|other)$")
    reference: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None


class PaymentResponse(BaseModel):
    id: int
    customer_id: Optional[int]
    customer_name: str = ""
    order_id: Optional[int]
    order_number: str = ""
    fronted_inventory_id: Optional[int]
    amount: float
    payment_method: str
    payment_type: str
    reference: Optional[str]
    notes: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class PaymentListResponse(BaseModel):
    data: List[PaymentResponse]
    total: int
    page: int
    limit: int


class CollectionActivityCreate(BaseModel):
    customer_id: int
    activity_type: str = Field(..., pattern="^(call|text|invoice|reminder)$")
    notes: Optional[str] = None


class BulkReminderRequest(BaseModel):
    """批量催收提醒"""
    customer_ids: List[int] = Field(..., min_length=1)
    notes: Optional[str] = None


class CollectionActivityResponse(BaseModel):
    id: int
    customer_id: int
    activity_type: str
    notes: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class BulkReminderResponse(BaseModel):
    created: int
    skipped: List[int] = []
