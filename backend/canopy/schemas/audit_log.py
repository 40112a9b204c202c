"""操作日志 Schema"""

from datetime import datetime
from typing import Optional, List, Any, Dict
from pydantic import BaseModel


class AuditLogResponse(BaseModel):
    """日志响应"""
    id: int
    action: str
    resource_type: str
    resource_id: Optional[int]
    resource_name: Optional[str]
    description: Optional[str]
    old_value: Optional[Dict[str, Any]]
    new_value: Optional[Dict[str, Any]]
    created_at: datetime

    # 显示字段
    action_display: str
    resource_type_display: str

    class Config:
        from_attributes = True


class AuditLogListResponse(BaseModel):
    """日志列表响应"""
    data: List[AuditLogResponse]
    total: int
    page: int
    limit: int


class AuditLogSummary(BaseModel):
    """最近 N 天操作统计"""
    days: int
    total: int
    by_action: Dict[str, int] = {}
    by_resource_type: Dict[str, int] = {}
