"""Webhook 配置API"""

import secrets
from typing import Any, List
from datetime import datetime
from urllib.parse import urlparse
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from canopy.core.deps import get_db, get_current_tenant
from canopy.core.logging_config import get_logger
from canopy.models.tenant import Tenant
from canopy.models.webhook import Webhook
from canopy.schemas.webhook import (
    WEBHOOK_EVENTS, WebhookCreate, WebhookUpdate, WebhookResponse, WebhookListResponse,
)
from canopy.api.api_v1.endpoints.audit_logs import create_audit_log

router = APIRouter()
logger = get_logger(__name__)


def generate_secret() -> str:
    return f"whsec_{secrets.token_hex(24)}"


async def get_tenant_webhook(db: AsyncSession, tenant: Tenant, webhook_id: int) -> Webhook:
    webhook = await db.get(Webhook, webhook_id)
    if not webhook or webhook.tenant_id != tenant.id:
        raise HTTPException(status_code=404, detail="Webhook 不存在")
    return webhook


@router.get("/events", response_model=List[str])
async def list_events() -> Any:
    """可订阅的事件列表"""
    return WEBHOOK_EVENTS


@router.get("/", response_model=WebhookListResponse)
async def list_webhooks(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
) -> Any:
    result = await db.execute(
        select(Webhook).where(Webhook.tenant_id == tenant.id).order_by(Webhook.created_at.desc(), Webhook.id.desc())
    )
    webhooks = result.scalars().all()
    return WebhookListResponse(
        data=[WebhookResponse.model_validate(w) for w in webhooks],
        total=len(webhooks),
    )


@router.post("/", response_model=WebhookResponse)
async def create_webhook(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    webhook_in: WebhookCreate,
) -> Any:
    """新建 Webhook，自动生成签名密钥"""
    url = str(webhook_in.url)
    webhook = Webhook(
        tenant_id=tenant.id,
        name=webhook_in.name or f"Webhook - {urlparse(url).hostname}",
        url=url,
        events=webhook_in.events,
        secret=generate_secret(),
        status="active",
        description=webhook_in.description,
        created_at=datetime.utcnow(),
    )
    db.add(webhook)
    await db.flush()
    await create_audit_log(
        db, tenant.id, "create", "webhook", resource_id=webhook.id, resource_name=webhook.name,
        new_value={"url": url, "events": webhook.events},
    )
    await db.commit()
    await db.refresh(webhook)

    logger.info(f"🔗 新 Webhook: {webhook.name} → {url}")
    return webhook


@router.get("/{webhook_id}", response_model=WebhookResponse)
async def get_webhook(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    webhook_id: int,
) -> Any:
    return await get_tenant_webhook(db, tenant, webhook_id)


@router.put("/{webhook_id}", response_model=WebhookResponse)
async def update_webhook(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    webhook_id: int,
    webhook_in: WebhookUpdate,
) -> Any:
    webhook = await get_tenant_webhook(db, tenant, webhook_id)
    update_data = webhook_in.model_dump(exclude_unset=True)
    # name/url/events 不能为空，传 null 视为不修改；description 传 null 即清空
    for field in ("name", "url", "events"):
        if field in update_data and update_data[field] is None:
            update_data.pop(field)
    if "url" in update_data:
        update_data["url"] = str(update_data["url"])
    for field, value in update_data.items():
        setattr(webhook, field, value)

    await create_audit_log(
        db, tenant.id, "update", "webhook", resource_id=webhook.id, resource_name=webhook.name,
        new_value=update_data,
    )
    await db.commit()
    await db.refresh(webhook)
    return webhook


@router.delete("/{webhook_id}")
async def delete_webhook(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    webhook_id: int,
) -> Any:
    webhook = await get_tenant_webhook(db, tenant, webhook_id)
    await create_audit_log(
        db, tenant.id, "delete", "webhook", resource_id=webhook.id, resource_name=webhook.name,
    )
    await db.delete(webhook)
    await db.commit()
    return {"message": "删除成功"}


@router.post("/{webhook_id}/toggle", response_model=WebhookResponse)
async def toggle_webhook(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    webhook_id: int,
) -> Any:
    """启用 / 停用"""
    webhook = await get_tenant_webhook(db, tenant, webhook_id)
    old_status = webhook.status
    webhook.status = "inactive" if webhook.is_active else "active"
    await create_audit_log(
        db, tenant.id, "update", "webhook", resource_id=webhook.id, resource_name=webhook.name,
        old_value={"status": old_status}, new_value={"status": webhook.status},
    )
    await db.commit()
    await db.refresh(webhook)
    return webhook


@router.post("/{webhook_id}/rotate-secret", response_model=WebhookResponse)
async def rotate_secret(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    webhook_id: int,
) -> Any:
    """重新生成签名密钥，旧密钥立即失效"""
    webhook = await get_tenant_webhook(db, tenant, webhook_id)
    webhook.secret = generate_secret()
    await create_audit_log(
        db, tenant.id, "update", "webhook", resource_id=webhook.id, resource_name=webhook.name,
        description="重新生成签名密钥",
    )
    await db.commit()
    await db.refresh(webhook)

    logger.info(f"🔑 Webhook {webhook.id} 密钥已重置")
    return webhook
