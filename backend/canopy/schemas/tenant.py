"""租户 Schema"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class TenantCreate(BaseModel):
    """创建租户"""
    name: str = Field(..., min_length=1, max_length=100, description="名称")
    slug: str = Field(..., min_length=1, max_length=60, pattern=r"^[a-z0-9][a-z0-9-]*$", description="短标识")


class TenantUpdate(BaseModel):
    """更新租户"""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    status: Optional[str] = Field(None, pattern="^(active|suspended)$")


class TenantResponse(BaseModel):
    id: int
    name: str
    slug: str
    status: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TenantListResponse(BaseModel):
    data: List[TenantResponse]
    total: int
