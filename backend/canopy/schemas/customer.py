"""客户 / CRM Schema"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class CustomerBase(BaseModel):
    """客户基础字段"""
    first_name: Optional[str] = Field(None, max_length=50, description="名")
    last_name: Optional[str] = Field(None, max_length=50, description="姓")
    business_name: Optional[str] = Field(None, max_length=120, description="公司名称")
    customer_type: str = Field(default="retail", pattern="^(retail|wholesale)$", description="客户类型")
    email: Optional[str] = Field(None, max_length=120, description="邮箱")
    phone: Optional[str] = Field(None, max_length=30, description="电话")
    address: Optional[str] = Field(None, max_length=255, description="地址")
    credit_limit: Decimal = Field(default=Decimal("0"), ge=0, description="信用额度")
    payment_terms: int = Field(default=7, ge=0, le=365, description="账期（天）")
    status: str = Field(default="active", pattern="^(active|inactive|blocked)$")
    notes: Optional[str] = None


class CustomerCreate(CustomerBase):
    """创建客户 - 姓名和公司名至少填一个"""

    @model_validator(mode="after")
    def require_some_name(self) -> "CustomerCreate":
        if not (self.business_name or self.first_name or self.last_name):
            raise ValueError("姓名和公司名称至少填写一个")
        return self


class CustomerUpdate(BaseModel):
    """更新客户"""
    first_name: Optional[str] = Field(None, max_length=50)
    last_name: Optional[str] = Field(None, max_length=50)
    business_name: Optional[str] = Field(None, max_length=120)
    customer_type: Optional[str] = Field(None, pattern="^(retail|wholesale)$")
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    credit_limit: Optional[Decimal] = Field(None, ge=0)
    payment_terms: Optional[int] = Field(None, ge=0, le=365)
    status: Optional[str] = Field(None, pattern="^(active|inactive|blocked)$")
    notes: Optional[str] = None


class CustomerResponse(BaseModel):
    """客户响应"""
    id: int
    first_name: Optional[str]
    last_name: Optional[str]
    business_name: Optional[str]
    customer_type: str
    email: Optional[str]
    phone: Optional[str]
    address: Optional[str]
    credit_limit: float
    outstanding_balance: float
    available_credit: float
    payment_terms: int
    total_spent: float
    order_count: int
    loyalty_points: int
    last_purchase_at: Optional[datetime]
    last_payment_date: Optional[datetime]
    status: str
    notes: Optional[str]
    display_name: str
    created_at: datetime
    updated_at: Optional[datetime]

    @field_validator(
        "credit_limit", "outstanding_balance", "available_credit", "total_spent", mode="before"
    )
    @classmethod
    def fix_null_amount(cls, v: Any) -> float:
        """数据库中的 NULL 值转换为 0"""
        return float(v) if v is not None else 0.0

    @field_validator("order_count", "loyalty_points", mode="before")
    @classmethod
    def fix_null_count(cls, v: Any) -> int:
        return v if v is not None else 0

    class Config:
        from_attributes = True


class CustomerListResponse(BaseModel):
    data: List[CustomerResponse]
    total: int
    page: int
    limit: int


class RFMScore(BaseModel):
    r: int
    f: int
    m: int
    rfm: str


class CRMCustomerResponse(CustomerResponse):
    """CRM 视图 - 附带生命周期、RFM 和分群"""
    lifecycle: str
    rfm: RFMScore
    segment: str
    days_since_purchase: Optional[int] = None


class CRMListResponse(BaseModel):
    data: List[CRMCustomerResponse]
    total: int
    page: int
    limit: int


class CRMDashboard(BaseModel):
    """CRM 总览"""
    total_customers: int
    new_this_month: int
    avg_lifetime_value: float
    by_lifecycle: Dict[str, int]
    by_segment: Dict[str, int]
