"""租户管理API - 不需要 X-Tenant-ID"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from canopy.core.deps import get_db
from canopy.core.logging_config import get_logger
from canopy.models.tenant import Tenant
from canopy.schemas.tenant import TenantCreate, TenantUpdate, TenantResponse, TenantListResponse

router = APIRouter()
logger = get_logger(__name__)


@router.get("/", response_model=TenantListResponse)
async def list_tenants(*, db: AsyncSession = Depends(get_db)) -> Any:
    """获取租户列表"""
    result = await db.execute(select(Tenant).order_by(Tenant.id))
    tenants = result.scalars().all()
    return TenantListResponse(
        data=[TenantResponse.model_validate(t) for t in tenants],
        total=len(tenants),
    )


@router.post("/", response_model=TenantResponse)
async def create_tenant(*, db: AsyncSession = Depends(get_db), tenant_in: TenantCreate) -> Any:
    """创建租户"""
    existing = await db.execute(select(Tenant).where(Tenant.slug == tenant_in.slug))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=400, detail=f"租户标识 {tenant_in.slug} 已存在")

    tenant = Tenant(name=tenant_in.name, slug=tenant_in.slug)
    db.add(tenant)
    await db.commit()
    await db.refresh(tenant)

    logger.info(f"🏪 新租户: {tenant.slug} (id={tenant.id})")
    return tenant


@router.get("/{tenant_id}", response_model=TenantResponse)
async def get_tenant(*, db: AsyncSession = Depends(get_db), tenant_id: int) -> Any:
    """获取租户详情"""
    tenant = await db.get(Tenant, tenant_id)
    if not tenant:
        raise HTTPException(status_code=404, detail="租户不存在")
    return tenant


@router.put("/{tenant_id}", response_model=TenantResponse)
async def update_tenant(
    *,
    db: AsyncSession = Depends(get_db),
    tenant_id: int,
    tenant_in: TenantUpdate,
) -> Any:
    """更新租户（名称、启用/停用）"""
    tenant = await db.get(Tenant, tenant_id)
    if not tenant:
        raise HTTPException(status_code=404, detail="租户不存在")

    update_data = tenant_in.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(tenant, field, value)

    await db.commit()
    await db.refresh(tenant)

    if "status" in update_data:
        logger.info(f"🏪 租户 {tenant.slug} 状态变更为 {tenant.status}")
    return tenant
