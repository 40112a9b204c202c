"""
定时任务调度器服务
使用 APScheduler 每天执行维护任务：批次过期、寄售逾期提醒
"""

import logging
from datetime import datetime
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy import and_, func, select, update

from canopy.core.config import settings
from canopy.db.session import SessionLocal
from canopy.models.batch import Batch
from canopy.models.fronted import FrontedInventory

logger = logging.getLogger(__name__)

# 全局调度器实例
scheduler: Optional[AsyncIOScheduler] = None


async def expire_batches(session_factory=SessionLocal, now: Optional[datetime] = None) -> int:
    """将过了有效期的在库批次标记为 expired，返回处理数量"""
    now = now or datetime.utcnow()
    try:
        async with session_factory() as db:
            result = await db.execute(
                update(Batch)
                .where(and_(
                    Batch.status == "active",
                    Batch.expiration_date.isnot(None),
                    Batch.expiration_date < now,
                ))
                .values(status="expired", updated_at=now)
            )
            await db.commit()
            count = result.rowcount or 0
        if count:
            logger.info(f"🗓️ 批次过期处理: {count} 个批次已标记为过期")
        return count
    except Exception as e:
        logger.error(f"❌ 批次过期处理失败: {str(e)}")
        return 0


async def report_overdue_fronted(session_factory=SessionLocal, now: Optional[datetime] = None) -> int:
    """统计逾期未回款的寄售，写入日志"""
    now = now or datetime.utcnow()
    try:
        async with session_factory() as db:
            result = await db.execute(
                select(func.count(FrontedInventory.id)).where(and_(
                    FrontedInventory.status == "active",
                    FrontedInventory.payment_status != "paid",
                    FrontedInventory.payment_due_date < now,
                ))
            )
            count = result.scalar() or 0
        if count:
            logger.warning(f"⚠️ 有 {count} 笔寄售已逾期未回款")
        return count
    except Exception as e:
        logger.error(f"❌ 寄售逾期检查失败: {str(e)}")
        return 0


async def daily_maintenance():
    await expire_batches()
    await report_overdue_fronted()


def init_scheduler():
    """初始化并启动调度器"""
    global scheduler

    if not settings.SCHEDULER_ENABLED:
        logger.info("⏰ 定时任务已禁用")
        return

    scheduler = AsyncIOScheduler()

    # 默认每天凌晨 3 点执行
    scheduler.add_job(
        daily_maintenance,
        trigger=CronTrigger(
            hour=settings.MAINTENANCE_HOUR,
            minute=settings.MAINTENANCE_MINUTE,
        ),
        id="daily_maintenance",
        name="每日维护任务",
        replace_existing=True,
    )

    scheduler.start()
    logger.info(
        f"⏰ 定时任务调度器已启动 - 维护时间: 每天 "
        f"{settings.MAINTENANCE_HOUR:02d}:{settings.MAINTENANCE_MINUTE:02d}"
    )


def shutdown_scheduler():
    """关闭调度器"""
    global scheduler
    if scheduler:
        scheduler.shutdown()
        scheduler = None
        logger.info("⏰ 定时任务调度器已关闭")


def get_scheduler_status() -> dict:
    """获取调度器状态"""
    if not scheduler:
        return {"enabled": settings.SCHEDULER_ENABLED, "running": False, "jobs": []}

    jobs = [
        {
            "id": job.id,
            "name": job.name,
            "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
        }
        for job in scheduler.get_jobs()
    ]
    return {"enabled": settings.SCHEDULER_ENABLED, "running": scheduler.running, "jobs": jobs}
