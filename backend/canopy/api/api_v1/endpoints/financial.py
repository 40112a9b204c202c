"""
财务报表API
今日快报、现金流、应收账款、经营表现、催收记录
"""

from typing import Any, List, Optional
from datetime import datetime, timedelta
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from canopy.core.config import settings
from canopy.core.deps import get_db, get_current_tenant
from canopy.core.logging_config import get_logger
from canopy.models.customer import Customer
from canopy.models.fronted import FrontedInventory
from canopy.models.order import Order
from canopy.models.payment import Payment, CollectionActivity
from canopy.models.tenant import Tenant
from canopy.schemas.finance import (
    QuickStats, CashFlow, ARCommand, PerformancePulse,
)
from canopy.schemas.payment import (
    CollectionActivityCreate, CollectionActivityResponse, BulkReminderRequest, BulkReminderResponse,
)
from canopy.services import finance
from canopy.services.fronted import is_overdue

router = APIRouter()
logger = get_logger(__name__)


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


async def revenue_orders(
    db: AsyncSession,
    tenant_id: int,
    start: datetime,
    end: Optional[datetime] = None) -> List[Order]:
    """计入营收的订单（已送达 / 已完成）"""
    conditions = [
        Order.tenant_id == tenant_id,
        Order.status.in_(finance.REVENUE_STATUSES),
        Order.created_at >= start,
    ]
    if end:
        conditions.append(Order.created_at < end)
    result = await db.execute(select(Order).where(and_(*conditions)))
    return list(result.scalars().all())


async def collected_since(db: AsyncSession, tenant_id: int, start: datetime) -> float:
    result = await db.execute(
        select(func.coalesce(func.sum(Payment.amount), 0)).where(
            Payment.tenant_id == tenant_id,
            Payment.created_at >= start,
        )
    )
    return float(result.scalar() or 0)


async def tenant_customers(db: AsyncSession, tenant_id: int) -> List[Customer]:
    result = await db.execute(select(Customer).where(Customer.tenant_id == tenant_id))
    return list(result.scalars().all())


async def active_fronted(db: AsyncSession, tenant_id: int) -> List[FrontedInventory]:
    result = await db.execute(
        select(FrontedInventory).where(
            FrontedInventory.tenant_id == tenant_id,
            FrontedInventory.status == "active",
        )
    )
    return list(result.scalars().all())


@router.get("/quick-stats", response_model=QuickStats)
async def get_quick_stats(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
) -> Any:
    """
    今日快报

    提醒数 = 逾期应收客户数 + 逾期寄售数
    """
    now = datetime.utcnow()
    today = start_of_day(now)

    today_metrics = finance.period_metrics(await revenue_orders(db, tenant.id, today))
    receivables = finance.categorize_receivables(
        await tenant_customers(db, tenant.id), now, default_terms=settings.DEFAULT_PAYMENT_TERMS
    )
    fronted_items = await active_fronted(db, tenant.id)
    overdue_fronted = sum(1 for item in fronted_items if is_overdue(item, now))

    return QuickStats(
        today_collected=await collected_since(db, tenant.id, today),
        today_revenue=today_metrics["revenue"],
        today_profit=today_metrics["profit"],
        outstanding_ar=receivables["total_outstanding"],
        fronted_value=sum(float(item.expected_revenue or 0) for item in fronted_items),
        alert_count=receivables["overdue_count"] + overdue_fronted,
    )


@router.get("/cash-flow", response_model=CashFlow)
async def get_cash_flow(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    cash_on_hand: float = Query(0, ge=0, description="当前可用现金"),
) -> Any:
    """
    现金流

    - 流入：今日收款
    - 流出：今日成交订单的成本
    - 跑道：可用现金 / 近 30 天日均成本
    """
    now = datetime.utcnow()
    today = start_of_day(now)
    week_start = today - timedelta(days=today.weekday())

    today_in = await collected_since(db, tenant.id, today)
    today_out = finance.period_metrics(await revenue_orders(db, tenant.id, today))["cost"]

    week_orders = await revenue_orders(db, tenant.id, week_start)
    month_cost = finance.period_metrics(
        await revenue_orders(db, tenant.id, now - timedelta(days=30))
    )["cost"]

    return CashFlow(
        today_in=today_in,
        today_out=today_out,
        today_net=today_in - today_out,
        week_revenue=finance.week_revenue(week_orders, now),
        runway=finance.cash_runway(cash_on_hand, month_cost),
    )


@router.get("/ar", response_model=ARCommand)
async def get_accounts_receivable(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
) -> Any:
    """应收账款：逾期 / 本周到期 / 未到期"""
    customers = await tenant_customers(db, tenant.id)
    return finance.categorize_receivables(customers, default_terms=settings.DEFAULT_PAYMENT_TERMS)


@router.get("/performance", response_model=PerformancePulse)
async def get_performance(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
) -> Any:
    """经营表现：本月 vs 上月、前五客户、13 周毛利率趋势"""
    now = datetime.utcnow()
    month_start = start_of_day(now).replace(day=1)
    last_month_start = (month_start - timedelta(days=1)).replace(day=1)

    this_month_orders = await revenue_orders(db, tenant.id, month_start)
    last_month_orders = await revenue_orders(db, tenant.id, last_month_start, month_start)
    this_month = finance.period_metrics(this_month_orders)
    last_month = finance.period_metrics(last_month_orders)

    customer_ids = {o.customer_id for o in this_month_orders}
    names = {}
    if customer_ids:
        result = await db.execute(select(Customer).where(Customer.id.in_(customer_ids)))
        names = {c.id: c.display_name for c in result.scalars().all()}

    trend_orders = await revenue_orders(db, tenant.id, now - timedelta(weeks=13))

    return PerformancePulse(
        this_month=this_month,
        last_month=last_month,
        changes=finance.compare_periods(this_month, last_month),
        top_customers=finance.top_customers(this_month_orders, names, this_month["revenue"]),
        margin_trend=finance.margin_trend(trend_orders, now),
    )


@router.get("/collection-activities", response_model=List[CollectionActivityResponse])
async def list_collection_activities(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    customer_id: Optional[int] = Query(None),
    limit: int = Query(50, ge=1, le=200),
) -> Any:
    """催收记录，最新的在前"""
    conditions = [CollectionActivity.tenant_id == tenant.id]
    if customer_id:
        conditions.append(CollectionActivity.customer_id == customer_id)
    result = await db.execute(
        select(CollectionActivity)
        .where(and_(*conditions))
        .order_by(CollectionActivity.created_at.desc(), CollectionActivity.id.desc())
        .limit(limit)
    )
    return result.scalars().all()


@router.post("/collection-activities", response_model=CollectionActivityResponse)
async def log_collection_activity(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    activity_in: CollectionActivityCreate,
) -> Any:
    """记录一次催收"""
    customer = await db.get(Customer, activity_in.customer_id)
    if not customer or customer.tenant_id != tenant.id:
        raise HTTPException(status_code=404, detail="客户不存在")

    activity = CollectionActivity(
        tenant_id=tenant.id,
        created_at=datetime.utcnow(),
        **activity_in.model_dump(),
    )
    db.add(activity)
    await db.commit()
    await db.refresh(activity)

    logger.info(f"📞 催收记录: {customer.display_name} ({activity.activity_type})")
    return activity


@router.post("/bulk-reminders", response_model=BulkReminderResponse)
async def send_bulk_reminders(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    reminder_in: BulkReminderRequest,
) -> Any:
    """批量催收提醒，不属于当前租户的客户跳过"""
    customer_ids = list(dict.fromkeys(reminder_in.customer_ids))
    result = await db.execute(
        select(Customer.id).where(Customer.tenant_id == tenant.id, Customer.id.in_(customer_ids))
    )
    valid_ids = set(result.scalars().all())

    now = datetime.utcnow()
    for customer_id in customer_ids:
        if customer_id in valid_ids:
            db.add(CollectionActivity(
                tenant_id=tenant.id,
                customer_id=customer_id,
                activity_type="reminder",
                notes=reminder_in.notes,
                created_at=now,
            ))
    await db.commit()

    skipped = [cid for cid in customer_ids if cid not in valid_ids]
    logger.info(f"📨 批量催收: {len(valid_ids)} 个客户, 跳过 {len(skipped)}")
    return BulkReminderResponse(created=len(valid_ids), skipped=skipped)
