"""供应商管理API - 供应商、评分、牌照合规"""

from typing import Any, Optional
from datetime import datetime, timedelta
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from canopy.core.deps import get_db, get_current_tenant
from canopy.models.product import Product
from canopy.models.tenant import Tenant
from canopy.models.vendor import Vendor, VendorRating
from canopy.schemas.vendor import (
    VendorCreate, VendorUpdate, VendorResponse, VendorListResponse,
    VendorRatingCreate, VendorRatingResponse, VendorRatingSummary,
    VendorComplianceItem, VendorComplianceResponse,
)
from canopy.api.api_v1.endpoints.audit_logs import create_audit_log

router = APIRouter()

# 牌照到期预警天数
LICENSE_WARNING_DAYS = 30


def compliance_status(license_expiration: Optional[datetime], now: datetime) -> str:
    """牌照状态：missing / expired / expiring / valid"""
    if not license_expiration:
        return "missing"
    if license_expiration < now:
        return "expired"
    if license_expiration <= now + timedelta(days=LICENSE_WARNING_DAYS):
        return "expiring"
    return "valid"


async def get_tenant_vendor(db: AsyncSession, tenant: Tenant, vendor_id: int) -> Vendor:
    vendor = await db.get(Vendor, vendor_id)
    if not vendor or vendor.tenant_id != tenant.id:
        raise HTTPException(status_code=404, detail="供应商不存在")
    return vendor


async def build_vendor_response(db: AsyncSession, vendor: Vendor) -> VendorResponse:
    """供应商 + 合规状态、平均评分、商品数"""
    avg_result = await db.execute(
        select(func.avg(
            (VendorRating.quality_score + VendorRating.delivery_score
             + VendorRating.communication_score + VendorRating.pricing_score) / 4.0
        )).where(VendorRating.vendor_id == vendor.id)
    )
    avg = avg_result.scalar()
    product_count = (await db.execute(
        select(func.count(Product.id)).where(Product.vendor_id == vendor.id)
    )).scalar() or 0

    resp = VendorResponse.model_validate(vendor)
    resp.compliance_status = compliance_status(vendor.license_expiration, datetime.utcnow())
    resp.average_rating = round(float(avg), 2) if avg is not None else None
    resp.product_count = product_count
    return resp


@router.get("/", response_model=VendorListResponse)
async def list_vendors(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
) -> Any:
    """获取供应商列表"""
    query = select(Vendor)
    conditions = [Vendor.tenant_id == tenant.id]
    if status:
        conditions.append(Vendor.status == status)
    if search:
        conditions.append(or_(
            Vendor.name.contains(search),
            Vendor.contact_name.contains(search),
            Vendor.license_number.contains(search),
        ))
    query = query.where(and_(*conditions))

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar() or 0

    query = query.order_by(Vendor.name, Vendor.id).offset((page - 1) * limit).limit(limit)
    vendors = (await db.execute(query)).scalars().all()

    data = [await build_vendor_response(db, v) for v in vendors]
    return VendorListResponse(data=data, total=total, page=page, limit=limit)


@router.get("/compliance", response_model=VendorComplianceResponse)
async def get_vendor_compliance(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
) -> Any:
    """牌照合规总览，即将到期的排在前面"""
    result = await db.execute(
        select(Vendor).where(Vendor.tenant_id == tenant.id, Vendor.status == "active")
    )
    now = datetime.utcnow()
    resp = VendorComplianceResponse()
    for vendor in result.scalars().all():
        status = compliance_status(vendor.license_expiration, now)
        setattr(resp, status, getattr(resp, status) + 1)
        days = (
            int((vendor.license_expiration - now).total_seconds() // 86400)
            if vendor.license_expiration else None
        )
        resp.vendors.append(VendorComplianceItem(
            vendor_id=vendor.id,
            name=vendor.name,
            license_number=vendor.license_number,
            license_expiration=vendor.license_expiration,
            compliance_status=status,
            days_until_expiration=days,
        ))

    resp.vendors.sort(key=lambda v: v.days_until_expiration if v.days_until_expiration is not None else -10**6)
    return resp


@router.post("/", response_model=VendorResponse)
async def create_vendor(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    vendor_in: VendorCreate,
) -> Any:
    """创建供应商"""
    vendor = Vendor(tenant_id=tenant.id, **vendor_in.model_dump())
    db.add(vendor)
    await db.flush()
    await create_audit_log(
        db, tenant.id, "create", "vendor", resource_id=vendor.id, resource_name=vendor.name,
    )
    await db.commit()
    await db.refresh(vendor)
    return await build_vendor_response(db, vendor)


@router.get("/{vendor_id}", response_model=VendorResponse)
async def get_vendor(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    vendor_id: int,
) -> Any:
    vendor = await get_tenant_vendor(db, tenant, vendor_id)
    return await build_vendor_response(db, vendor)


@router.put("/{vendor_id}", response_model=VendorResponse)
async def update_vendor(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    vendor_id: int,
    vendor_in: VendorUpdate,
) -> Any:
    """更新供应商"""
    vendor = await get_tenant_vendor(db, tenant, vendor_id)
    update_data = vendor_in.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(vendor, field, value)

    await create_audit_log(
        db, tenant.id, "update", "vendor", resource_id=vendor.id, resource_name=vendor.name,
        new_value={k: str(v) for k, v in update_data.items()},
    )
    await db.commit()
    await db.refresh(vendor)
    return await build_vendor_response(db, vendor)


@router.delete("/{vendor_id}")
async def delete_vendor(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    vendor_id: int,
) -> Any:
    """删除供应商 - 有商品关联时不能删除"""
    vendor = await get_tenant_vendor(db, tenant, vendor_id)

    product_count = (await db.execute(
        select(func.count(Product.id)).where(Product.vendor_id == vendor_id)
    )).scalar() or 0
    if product_count > 0:
        raise HTTPException(status_code=400, detail=f"该供应商关联了 {product_count} 个商品，无法删除")

    await create_audit_log(
        db, tenant.id, "delete", "vendor", resource_id=vendor.id, resource_name=vendor.name,
    )
    await db.delete(vendor)
    await db.commit()
    return {"message": "删除成功"}


@router.get("/{vendor_id}/ratings", response_model=VendorRatingSummary)
async def list_vendor_ratings(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    vendor_id: int,
) -> Any:
    """供应商评分列表 + 各维度平均分"""
    await get_tenant_vendor(db, tenant, vendor_id)
    result = await db.execute(
        select(VendorRating)
        .where(VendorRating.vendor_id == vendor_id)
        .order_by(VendorRating.created_at.desc(), VendorRating.id.desc())
    )
    ratings = result.scalars().all()

    summary = VendorRatingSummary(
        vendor_id=vendor_id,
        rating_count=len(ratings),
        ratings=[VendorRatingResponse.model_validate(r) for r in ratings],
    )
    if ratings:
        n = len(ratings)
        summary.quality = round(sum(r.quality_score for r in ratings) / n, 2)
        summary.delivery = round(sum(r.delivery_score for r in ratings) / n, 2)
        summary.communication = round(sum(r.communication_score for r in ratings) / n, 2)
        summary.pricing = round(sum(r.pricing_score for r in ratings) / n, 2)
        summary.overall = round(sum(r.overall_score for r in ratings) / n, 2)
    return summary


@router.post("/{vendor_id}/ratings", response_model=VendorRatingResponse)
async def add_vendor_rating(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    vendor_id: int,
    rating_in: VendorRatingCreate,
) -> Any:
    """新增评分"""
    await get_tenant_vendor(db, tenant, vendor_id)
    rating = VendorRating(tenant_id=tenant.id, vendor_id=vendor_id, **rating_in.model_dump())
    db.add(rating)
    await db.commit()
    await db.refresh(rating)
    return rating


@router.delete("/{vendor_id}/ratings/{rating_id}")
async def delete_vendor_rating(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    vendor_id: int,
    rating_id: int,
) -> Any:
    await get_tenant_vendor(db, tenant, vendor_id)
    rating = await db.get(VendorRating, rating_id)
    if not rating or rating.vendor_id != vendor_id:
        raise HTTPException(status_code=404, detail="评分不存在")
    await db.delete(rating)
    await db.commit()
    return {"message": "删除成功"}
