"""批次与质检API"""

from typing import Any, List, Optional
from datetime import datetime, timedelta
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from canopy.core.config import settings
from canopy.core.deps import get_db, get_current_tenant
from canopy.core.logging_config import get_logger
from canopy.models.batch import Batch, QualityCheck
from canopy.models.product import Product
from canopy.models.tenant import Tenant
from canopy.schemas.batch import (
    BatchCreate, BatchUpdate, BatchResponse, BatchDetailResponse, BatchListResponse,
    QualityCheckCreate, QualityCheckResponse, QCSummary,
)
from canopy.services.numbering import next_number
from canopy.api.api_v1.endpoints.audit_logs import create_audit_log

router = APIRouter()
logger = get_logger(__name__)

QC_STATUSES = ["pending", "passed", "failed", "quarantined"]


async def generate_batch_number(db: AsyncSession, tenant_id: int) -> str:
    """生成批次号：BT + 日期 + "-" + 序号，同一租户内唯一"""
    prefix = f"BT{datetime.utcnow().strftime('%Y%m%d')}-"
    result = await db.execute(
        select(Batch.batch_number).where(
            Batch.tenant_id == tenant_id,
            Batch.batch_number.like(f"{prefix}%"),
        )
    )
    return next_number(result.scalars().all(), prefix, 3)


def expiry_state(expiration_date: Optional[datetime], now: datetime) -> str:
    """到期状态：no_expiration / expired / expiring_soon / fresh"""
    if not expiration_date:
        return "no_expiration"
    if expiration_date < now:
        return "expired"
    if expiration_date <= now + timedelta(days=settings.BATCH_EXPIRY_WARNING_DAYS):
        return "expiring_soon"
    return "fresh"


def qc_status_after_check(result: str, contaminants_detected: bool) -> str:
    """质检结论对应的批次状态，检出污染物一律隔离"""
    if contaminants_detected:
        return "quarantined"
    return "passed" if result == "pass" else "failed"


def build_batch_response(batch: Batch, now: datetime = None, detail: bool = False) -> BatchResponse:
    """构建批次响应"""
    now = now or datetime.utcnow()
    data = dict(
        id=batch.id,
        product_id=batch.product_id,
        product_name=batch.product.name if batch.product else "",
        batch_number=batch.batch_number,
        quantity_lbs=float(batch.quantity_lbs or 0),
        received_date=batch.received_date,
        expiration_date=batch.expiration_date,
        warehouse_location=batch.warehouse_location,
        thc_percent=float(batch.thc_percent) if batch.thc_percent is not None else None,
        cbd_percent=float(batch.cbd_percent) if batch.cbd_percent is not None else None,
        qc_status=batch.qc_status,
        status=batch.status,
        notes=batch.notes,
        expiry_state=expiry_state(batch.expiration_date, now),
        days_until_expiration=(
            int((batch.expiration_date - now).total_seconds() // 86400) if batch.expiration_date else None
        ),
        created_at=batch.created_at,
    )
    if detail:
        return BatchDetailResponse(
            **data,
            quality_checks=[QualityCheckResponse.model_validate(c) for c in batch.quality_checks],
        )
    return BatchResponse(**data)


async def get_tenant_batch(db: AsyncSession, tenant: Tenant, batch_id: int) -> Batch:
    result = await db.execute(
        select(Batch)
        .options(selectinload(Batch.product), selectinload(Batch.quality_checks))
        .where(Batch.id == batch_id, Batch.tenant_id == tenant.id)
        .execution_options(populate_existing=True)
    )
    batch = result.scalar_one_or_none()
    if not batch:
        raise HTTPException(status_code=404, detail="批次不存在")
    return batch


@router.get("/", response_model=BatchListResponse)
async def list_batches(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    product_id: Optional[int] = Query(None),
    qc_status: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    expiring_soon: bool = Query(False, description="只看临期批次"),
) -> Any:
    """获取批次列表"""
    now = datetime.utcnow()
    conditions = [Batch.tenant_id == tenant.id]
    if product_id:
        conditions.append(Batch.product_id == product_id)
    if qc_status:
        conditions.append(Batch.qc_status == qc_status)
    if status:
        conditions.append(Batch.status == status)
    if expiring_soon:
        conditions.append(Batch.expiration_date >= now)
        conditions.append(Batch.expiration_date <= now + timedelta(days=settings.BATCH_EXPIRY_WARNING_DAYS))

    total = (await db.execute(select(func.count(Batch.id)).where(and_(*conditions)))).scalar() or 0

    result = await db.execute(
        select(Batch)
        .options(selectinload(Batch.product))
        .where(and_(*conditions))
        .order_by(Batch.received_date.desc(), Batch.id.desc())
        .offset((page - 1) * limit).limit(limit)
    )
    batches = result.scalars().all()
    return BatchListResponse(
        data=[build_batch_response(b, now) for b in batches],
        total=total, page=page, limit=limit,
    )


@router.get("/qc-summary", response_model=QCSummary)
async def get_qc_summary(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
) -> Any:
    """质检汇总：各状态数量、合格率、临期/过期数"""
    result = await db.execute(select(Batch).where(Batch.tenant_id == tenant.id))
    batches = result.scalars().all()

    now = datetime.utcnow()
    by_status = {s: 0 for s in QC_STATUSES}
    expiring = expired = 0
    for b in batches:
        by_status[b.qc_status or "pending"] = by_status.get(b.qc_status or "pending", 0) + 1
        state = expiry_state(b.expiration_date, now)
        if state == "expiring_soon":
            expiring += 1
        elif state == "expired":
            expired += 1

    decided = by_status["passed"] + by_status["failed"]
    return QCSummary(
        total_batches=len(batches),
        by_qc_status=by_status,
        pass_rate=round(by_status["passed"] / decided * 100, 1) if decided else 0.0,
        expiring_soon=expiring,
        expired=expired,
        total_quantity_lbs=sum(float(b.quantity_lbs or 0) for b in batches),
    )


@router.post("/", response_model=BatchDetailResponse)
async def create_batch(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    batch_in: BatchCreate,
) -> Any:
    """登记批次"""
    product = await db.get(Product, batch_in.product_id)
    if not product or product.tenant_id != tenant.id:
        raise HTTPException(status_code=404, detail="商品不存在")

    data = batch_in.model_dump()
    if data.get("batch_number"):
        existing = await db.execute(
            select(Batch.id).where(Batch.tenant_id == tenant.id, Batch.batch_number == data["batch_number"])
        )
        if existing.scalar_one_or_none():
            raise HTTPException(status_code=400, detail=f"批次号 {data['batch_number']} 已存在")
    else:
        data["batch_number"] = await generate_batch_number(db, tenant.id)
    if not data.get("received_date"):
        data["received_date"] = datetime.utcnow()
    if data.get("expiration_date") and data["expiration_date"] < data["received_date"]:
        raise HTTPException(status_code=400, detail="到期日不能早于到货日期")

    batch = Batch(tenant_id=tenant.id, **data)
    db.add(batch)
    await db.flush()
    await create_audit_log(
        db, tenant.id, "create", "batch", resource_id=batch.id, resource_name=batch.batch_number,
    )
    await db.commit()

    logger.info(f"🧪 新批次: {batch.batch_number} ({product.name})")
    return build_batch_response(await get_tenant_batch(db, tenant, batch.id), detail=True)


@router.get("/{batch_id}", response_model=BatchDetailResponse)
async def get_batch(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    batch_id: int,
) -> Any:
    """批次详情（含质检记录）"""
    batch = await get_tenant_batch(db, tenant, batch_id)
    return build_batch_response(batch, detail=True)


@router.put("/{batch_id}", response_model=BatchDetailResponse)
async def update_batch(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    batch_id: int,
    batch_in: BatchUpdate,
) -> Any:
    """更新批次"""
    batch = await get_tenant_batch(db, tenant, batch_id)
    update_data = batch_in.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(batch, field, value)

    await create_audit_log(
        db, tenant.id, "update", "batch", resource_id=batch.id, resource_name=batch.batch_number,
        new_value={k: str(v) for k, v in update_data.items()},
    )
    await db.commit()
    return build_batch_response(await get_tenant_batch(db, tenant, batch_id), detail=True)


@router.delete("/{batch_id}")
async def delete_batch(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    batch_id: int,
) -> Any:
    batch = await get_tenant_batch(db, tenant, batch_id)
    await create_audit_log(
        db, tenant.id, "delete", "batch", resource_id=batch.id, resource_name=batch.batch_number,
    )
    await db.delete(batch)
    await db.commit()
    return {"message": "删除成功"}


@router.post("/{batch_id}/quality-checks", response_model=BatchDetailResponse)
async def record_quality_check(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    batch_id: int,
    check_in: QualityCheckCreate,
) -> Any:
    """
    记录质检

    - 不合格 → failed
    - 检出污染物 → quarantined
    - 合格 → passed
    合格的化验结果会回写批次的 THC/CBD 含量
    """
    batch = await get_tenant_batch(db, tenant, batch_id)

    check = QualityCheck(
        tenant_id=tenant.id,
        batch_id=batch.id,
        checked_at=datetime.utcnow(),
        **check_in.model_dump(),
    )
    db.add(check)

    old_status = batch.qc_status
    batch.qc_status = qc_status_after_check(check_in.result, check_in.contaminants_detected)
    if batch.qc_status == "passed":
        if check_in.thc_percent is not None:
            batch.thc_percent = check_in.thc_percent
        if check_in.cbd_percent is not None:
            batch.cbd_percent = check_in.cbd_percent

    await create_audit_log(
        db, tenant.id, "update", "batch", resource_id=batch.id, resource_name=batch.batch_number,
        description=f"质检 {check_in.check_type}: {check_in.result}",
        old_value={"qc_status": old_status}, new_value={"qc_status": batch.qc_status},
    )
    await db.commit()

    if batch.qc_status != "passed":
        logger.warning(f"⚠️ 批次 {batch.batch_number} 质检结果: {batch.qc_status}")

    return build_batch_response(await get_tenant_batch(db, tenant, batch_id), detail=True)


@router.get("/{batch_id}/quality-checks", response_model=List[QualityCheckResponse])
async def list_quality_checks(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    batch_id: int,
) -> Any:
    batch = await get_tenant_batch(db, tenant, batch_id)
    return [QualityCheckResponse.model_validate(c) for c in batch.quality_checks]
