"""Webhook Schema"""
from datetime import datetime
from typing import List, Optional

from pydantic import AnyHttpUrl, BaseModel, Field, field_validator

# 可订阅的事件
WEBHOOK_EVENTS = [
    "order.created",
    "order.updated",
    "order.completed",
    "customer.created",
    "inventory.low_stock",
    "fronted.overdue",
    "return.created",
]


def _check_events(v: Optional[List[str]]) -> Optional[List[str]]:
    if v is None:
        return v
    unknown = [e for e in v if e not in WEBHOOK_EVENTS]
    if unknown:
        raise ValueError(f"未知事件: {', '.join(unknown)}")
    if not v:
        raise ValueError("至少订阅一个事件")
    # 去重，保持顺序
    return list(dict.fromkeys(v))


class WebhookCreate(BaseModel):
    name: Optional[str] = Field(None, max_length=120, description="不填时按域名生成")
    url: AnyHttpUrl
    events: List[str] = Field(default_factory=lambda: ["order.created"])
    description: Optional[str] = None

    @field_validator("events")
    @classmethod
    def known_events(cls, v: List[str]) -> List[str]:
        return _check_events(v)


class WebhookUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    url: Optional[AnyHttpUrl] = None
    events: Optional[List[str]] = None
    description: Optional[str] = None

    @field_validator("events")
    @classmethod
    def known_events(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _check_events(v)


class WebhookResponse(BaseModel):
    id: int
    name: str
    url: str
    events: List[str]
    secret: str
    status: str
    description: Optional[str]
    last_triggered_at: Optional[datetime]
    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class WebhookListResponse(BaseModel):
    data: List[WebhookResponse]
    total: int
