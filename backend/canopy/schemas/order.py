"""订单 / 下单向导 Schema"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from canopy.schemas.common import UTCDateTime


class OrderLineIn(BaseModel):
    """订单行 - 单价不填时取商品售价"""
    product_id: int
    quantity: Decimal = Field(..., gt=0)
    unit_price: Optional[Decimal] = Field(None, ge=0)


class OrderDraft(BaseModel):
    """
    下单草稿

    向导每一步只填写自己的字段，其余为空
    """
    customer_id: Optional[int] = None
    items: List[OrderLineIn] = []
    payment_method: str = Field(default="credit", pattern="^(cash|credit|partial)$")
    partial_payment_amount: Optional[Decimal] = Field(None, ge=0)
    delivery_method: str = Field(default="runner", pattern="^(runner|pickup)$")
    runner_name: Optional[str] = Field(None, max_length=60)
    pickup_location: Optional[str] = Field(None, max_length=60)
    scheduled_time: Optional[UTCDateTime] = None
    delivery_address: Optional[str] = Field(None, max_length=255)
    collect_old_balance: bool = False
    delivery_notes: Optional[str] = None
    internal_notes: Optional[str] = None


class WorkflowValidateRequest(BaseModel):
    step: str = Field(default="client", description="当前步骤")
    draft: OrderDraft


class OrderTotals(BaseModel):
    total: float = 0
    total_quantity: float = 0
    cost: float = 0
    profit: float = 0
    margin: float = 0


class CreditInfo(BaseModel):
    outstanding_balance: float = 0
    credit_limit: float = 0
    available_credit: float = 0
    new_balance: float = 0
    over_credit_limit: bool = False
    warnings: List[str] = []


class WorkflowValidateResponse(BaseModel):
    step: str
    can_proceed: bool
    reason: Optional[str] = None
    next_step: Optional[str] = None
    previous_step: Optional[str] = None
    totals: OrderTotals
    credit: Optional[CreditInfo] = None


class OrderItemResponse(BaseModel):
    id: int
    product_id: int
    product_name: str
    quantity: float
    unit_price: float
    unit_cost: float
    subtotal: float

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: int
    order_number: str
    customer_id: int
    customer_name: str = ""
    status: str
    total_amount: float
    total_cost: float
    amount_paid: float
    balance_due: float
    payment_method: str
    payment_status: str
    payment_due_date: Optional[datetime]
    delivery_method: Optional[str]
    runner_name: Optional[str]
    pickup_location: Optional[str]
    scheduled_time: Optional[datetime]
    collection_amount: float
    delivery_address: Optional[str]
    delivery_notes: Optional[str]
    internal_notes: Optional[str]
    items: List[OrderItemResponse] = []
    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class OrderCreateResponse(OrderResponse):
    warnings: List[str] = []


class OrderListResponse(BaseModel):
    data: List[OrderResponse]
    total: int
    page: int
    limit: int


class OrderStatusUpdate(BaseModel):
    status: str = Field(..., pattern="^(confirmed|delivered|completed|cancelled)$")
    notes: Optional[str] = None
