"""供应商 Schema"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from canopy.schemas.common import UTCDateTime


class VendorBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=120, description="名称")
    contact_name: Optional[str] = Field(None, max_length=60)
    email: Optional[str] = Field(None, max_length=120)
    phone: Optional[str] = Field(None, max_length=30)
    address: Optional[str] = Field(None, max_length=255)
    license_number: Optional[str] = Field(None, max_length=60, description="牌照号")
    license_expiration: Optional[UTCDateTime] = Field(None, description="牌照到期日")
    payment_terms: int = Field(default=30, ge=0, le=365)
    status: str = Field(default="active", pattern="^(active|inactive)$")
    notes: Optional[str] = None


class VendorCreate(VendorBase):
    pass


class VendorUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    contact_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    license_number: Optional[str] = None
    license_expiration: Optional[UTCDateTime] = None
    payment_terms: Optional[int] = Field(None, ge=0, le=365)
    status: Optional[str] = Field(None, pattern="^(active|inactive)$")
    notes: Optional[str] = None


class VendorResponse(VendorBase):
    id: int
    compliance_status: str = ""   # valid / expiring / expired / missing
    average_rating: Optional[float] = None
    product_count: int = 0
    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class VendorListResponse(BaseModel):
    data: List[VendorResponse]
    total: int
    page: int
    limit: int


class VendorRatingCreate(BaseModel):
    """供应商评分，四个维度 1-5 分"""
    quality_score: int = Field(..., ge=1, le=5)
    delivery_score: int = Field(..., ge=1, le=5)
    communication_score: int = Field(..., ge=1, le=5)
    pricing_score: int = Field(..., ge=1, le=5)
    notes: Optional[str] = None


class VendorRatingResponse(VendorRatingCreate):
    id: int
    vendor_id: int
    overall_score: float
    created_at: datetime

    class Config:
        from_attributes = True


class VendorRatingSummary(BaseModel):
    """评分汇总"""
    vendor_id: int
    rating_count: int
    quality: float = 0
    delivery: float = 0
    communication: float = 0
    pricing: float = 0
    overall: float = 0
    ratings: List[VendorRatingResponse] = []


class VendorComplianceItem(BaseModel):
    vendor_id: int
    name: str
    license_number: Optional[str]
    license_expiration: Optional[datetime]
    compliance_status: str
    days_until_expiration: Optional[int]


class VendorComplianceResponse(BaseModel):
    valid: int = 0
    expiring: int = 0
    expired: int = 0
    missing: int = 0
    vendors: List[VendorComplianceItem] = []
