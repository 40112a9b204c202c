"""
操作日志API

业务接口通过 create_audit_log 在同一个事务里写日志，
日志只读，不提供修改和删除
"""

from typing import Any, Dict, List, Optional
from datetime import datetime, timedelta
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from canopy.core.deps import get_db, get_current_tenant
from canopy.models.audit_log import AuditLog
from canopy.models.tenant import Tenant
from canopy.schemas.audit_log import AuditLogResponse, AuditLogListResponse, AuditLogSummary

router = APIRouter()


async def create_audit_log(
    db: AsyncSession,
    tenant_id: int,
    action: str,
    resource_type: str,
    resource_id: Optional[int] = None,
    resource_name: Optional[str] = None,
    description: Optional[str] = None,
    old_value: Optional[Dict[str, Any]] = None,
    new_value: Optional[Dict[str, Any]] = None) -> AuditLog:
    """记一条操作日志，由调用方提交"""
    log = AuditLog(
        tenant_id=tenant_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        resource_name=resource_name,
        description=description,
        old_value=old_value,
        new_value=new_value,
        created_at=datetime.utcnow(),
    )
    db.add(log)
    return log


@router.get("/", response_model=AuditLogListResponse)
async def list_logs(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    action: Optional[str] = Query(None),
    resource_type: Optional[str] = Query(None),
    resource_id: Optional[int] = Query(None),
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD，含当天")) -> Any:
    """操作日志列表，最新的在前"""
    conditions = [AuditLog.tenant_id == tenant.id]
    if action:
        conditions.append(AuditLog.action == action)
    if resource_type:
        conditions.append(AuditLog.resource_type == resource_type)
    if resource_id:
        conditions.append(AuditLog.resource_id == resource_id)
    if start_date:
        conditions.append(AuditLog.created_at >= datetime.strptime(start_date, "%Y-%m-%d"))
    if end_date:
        conditions.append(AuditLog.created_at < datetime.strptime(end_date, "%Y-%m-%d") + timedelta(days=1))

    total = (await db.execute(select(func.count(AuditLog.id)).where(and_(*conditions)))).scalar() or 0

    result = await db.execute(
        select(AuditLog)
        .where(and_(*conditions))
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .offset((page - 1) * limit).limit(limit)
    )
    return AuditLogListResponse(
        data=[AuditLogResponse.model_validate(log) for log in result.scalars().all()],
        total=total, page=page, limit=limit,
    )


@router.get("/summary", response_model=AuditLogSummary)
async def get_log_summary(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    days: int = Query(7, ge=1, le=365),
) -> Any:
    """最近 N 天按操作类型、资源类型统计"""
    since = datetime.utcnow() - timedelta(days=days)
    window = and_(AuditLog.tenant_id == tenant.id, AuditLog.created_at >= since)

    async def count_by(column) -> Dict[str, int]:
        rows = await db.execute(select(column, func.count(AuditLog.id)).where(window).group_by(column))
        return {key: count for key, count in rows.all()}

    by_action = await count_by(AuditLog.action)
    return AuditLogSummary(
        days=days,
        total=sum(by_action.values()),
        by_action=by_action,
        by_resource_type=await count_by(AuditLog.resource_type),
    )


@router.get("/resource/{resource_type}/{resource_id}", response_model=List[AuditLogResponse])
async def get_resource_history(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    resource_type: str,
    resource_id: int,
) -> Any:
    """某条记录的完整变更历史，按时间先后"""
    result = await db.execute(
        select(AuditLog)
        .where(
            AuditLog.tenant_id == tenant.id,
            AuditLog.resource_type == resource_type,
            AuditLog.resource_id == resource_id,
        )
        .order_by(AuditLog.created_at, AuditLog.id)
    )
    return result.scalars().all()
