"""批次 / 质检 Schema"""
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from canopy.schemas.common import UTCDateTime


class BatchCreate(BaseModel):
    product_id: int
    batch_number: Optional[str] = Field(None, min_length=1, max_length=60, description="批次号，不填自动生成")
    quantity_lbs: Decimal = Field(..., ge=0, description="数量（磅）")
    received_date: Optional[UTCDateTime] = None
    expiration_date: Optional[UTCDateTime] = None
    warehouse_location: Optional[str] = Field(None, max_length=60)
    thc_percent: Optional[Decimal] = Field(None, ge=0, le=100)
    cbd_percent: Optional[Decimal] = Field(None, ge=0, le=100)
    notes: Optional[str] = None


class BatchUpdate(BaseModel):
    quantity_lbs: Optional[Decimal] = Field(None, ge=0)
    expiration_date: Optional[UTCDateTime] = None
    warehouse_location: Optional[str] = None
    thc_percent: Optional[Decimal] = Field(None, ge=0, le=100)
    cbd_percent: Optional[Decimal] = Field(None, ge=0, le=100)
    status: Optional[str] = Field(None, pattern="^(active|expired|depleted)$")
    notes: Optional[str] = None


class QualityCheckCreate(BaseModel):
    """质检记录"""
    check_type: str = Field(..., pattern="^(lab_test|visual|moisture|contaminant)$")
    result: str = Field(..., pattern="^(pass|fail)$")
    thc_percent: Optional[Decimal] = Field(None, ge=0, le=100)
    cbd_percent: Optional[Decimal] = Field(None, ge=0, le=100)
    moisture_percent: Optional[Decimal] = Field(None, ge=0, le=100)
    contaminants_detected: bool = False
    inspector: Optional[str] = Field(None, max_length=60)
    notes: Optional[str] = None


class QualityCheckResponse(BaseModel):
    id: int
    batch_id: int
    check_type: str
    result: str
    thc_percent: Optional[float]
    cbd_percent: Optional[float]
    moisture_percent: Optional[float]
    contaminants_detected: bool
    inspector: Optional[str]
    notes: Optional[str]
    checked_at: datetime

    class Config:
        from_attributes = True


class BatchResponse(BaseModel):
    id: int
    product_id: int
    product_name: str = ""
    batch_number: str
    quantity_lbs: float
    received_date: Optional[datetime]
    expiration_date: Optional[datetime]
    warehouse_location: Optional[str]
    thc_percent: Optional[float]
    cbd_percent: Optional[float]
    qc_status: str
    status: str
    notes: Optional[str]
    # fresh / expiring_soon / expired / no_expiration
    expiry_state: str = ""
    days_until_expiration: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class BatchDetailResponse(BatchResponse):
    quality_checks: List[QualityCheckResponse] = []


class BatchListResponse(BaseModel):
    data: List[BatchResponse]
    total: int
    page: int
    limit: int


class QCSummary(BaseModel):
    """质检汇总"""
    total_batches: int
    by_qc_status: Dict[str, int]
    pass_rate: float
    expiring_soon: int
    expired: int
    total_quantity_lbs: float
