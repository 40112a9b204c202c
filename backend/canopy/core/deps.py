"""依赖注入 - 数据库会话、当前租户"""
from typing import AsyncGenerator

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from canopy.core.logging_config import current_tenant
from canopy.db.session import SessionLocal
from canopy.models.tenant import Tenant


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    获取数据库会话依赖
    """
    async with SessionLocal() as session:
        yield session


async def get_current_tenant(
    db: AsyncSession = Depends(get_db),
    x_tenant_id: int = Header(..., alias="X-Tenant-ID", description="租户ID"),
) -> Tenant:
    """
    根据请求头 X-Tenant-ID 解析当前租户

    - 缺少请求头 → 422（FastAPI 校验）
    - 租户不存在 → 404
    - 租户已停用 → 403
    """
    tenant = await db.get(Tenant, x_tenant_id)
    if not tenant:
        raise HTTPException(status_code=404, detail="租户不存在")
    if not tenant.is_active:
        raise HTTPException(status_code=403, detail="租户已停用")
    current_tenant.set(tenant.slug)
    return tenant
