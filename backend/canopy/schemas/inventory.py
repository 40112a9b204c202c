"""商品 / 库存 Schema"""
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator


class ProductBase(BaseModel):
    """商品基础字段"""
    name: str = Field(..., min_length=1, max_length=120, description="名称")
    sku: Optional[str] = Field(None, max_length=60, description="SKU")
    category: Optional[str] = Field(None, max_length=60, description="分类")
    unit: str = Field(default="lbs", max_length=20, description="计量单位")
    vendor_id: Optional[int] = None
    cost_per_unit: Decimal = Field(default=Decimal("0"), ge=0, description="单位成本")
    price: Decimal = Field(default=Decimal("0"), ge=0, description="售价")
    min_stock_level: Optional[Decimal] = Field(None, ge=0, description="最低库存")
    warehouse_location: Optional[str] = Field(None, max_length=60, description="存放仓库")
    description: Optional[str] = None
    is_active: bool = True


class ProductCreate(ProductBase):
    """创建商品，可带期初库存"""
    stock_quantity: Decimal = Field(default=Decimal("0"), ge=0, description="期初库存")


class ProductUpdate(BaseModel):
    """更新商品 - 库存数量只能通过调整接口修改"""
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    sku: Optional[str] = None
    category: Optional[str] = None
    unit: Optional[str] = None
    vendor_id: Optional[int] = None
    cost_per_unit: Optional[Decimal] = Field(None, ge=0)
    price: Optional[Decimal] = Field(None, ge=0)
    min_stock_level: Optional[Decimal] = Field(None, ge=0)
    warehouse_location: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None


class ProductResponse(BaseModel):
    id: int
    name: str
    sku: Optional[str]
    category: Optional[str]
    unit: Optional[str]
    vendor_id: Optional[int]
    stock_quantity: float
    cost_per_unit: float
    price: float
    min_stock_level: Optional[float]
    warehouse_location: Optional[str]
    description: Optional[str]
    is_active: bool
    stock_value: float
    stock_level: str = ""
    created_at: datetime
    updated_at: Optional[datetime]

    @field_validator("stock_quantity", "cost_per_unit", "price", "stock_value", mode="before")
    @classmethod
    def fix_null_amount(cls, v: Any) -> float:
        return float(v) if v is not None else 0.0

    class Config:
        from_attributes = True


class ProductListResponse(BaseModel):
    data: List[ProductResponse]
    total: int
    page: int
    limit: int


class StockAdjust(BaseModel):
    """库存调整：正数入库，负数出库"""
    quantity_change: Decimal = Field(..., description="变动数量")
    movement_type: str = Field(default="adjust", pattern="^(receive|adjust|damage)$")
    reason: Optional[str] = Field(None, max_length=200)
    reference: Optional[str] = Field(None, max_length=60)

    @field_validator("quantity_change")
    @classmethod
    def non_zero(cls, v: Decimal) -> Decimal:
        if v == 0:
            raise ValueError("变动数量不能为 0")
        return v


class MovementResponse(BaseModel):
    id: int
    product_id: int
    movement_type: str
    type_display: str
    quantity_change: float
    quantity_before: float
    quantity_after: float
    reason: Optional[str]
    reference: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class MovementListResponse(BaseModel):
    data: List[MovementResponse]
    total: int
    page: int
    limit: int


class InventoryGroup(BaseModel):
    name: str
    quantity: float
    value: float
    product_count: int


class InventoryOverview(BaseModel):
    """库存总览"""
    total_products: int
    total_quantity: float
    total_stock_value: float
    low_stock_count: int
    out_of_stock_count: int
    by_warehouse: List[InventoryGroup]
    by_category: List[InventoryGroup]


class StockLevelBucket(BaseModel):
    level: str
    label: str
    count: int
