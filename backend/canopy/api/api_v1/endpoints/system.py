"""系统管理API"""

from typing import Any
from fastapi import APIRouter

from canopy.services.scheduler import get_scheduler_status

router = APIRouter()


@router.get("/scheduler")
async def scheduler_status() -> Any:
    """定时任务状态"""
    return get_scheduler_status()
