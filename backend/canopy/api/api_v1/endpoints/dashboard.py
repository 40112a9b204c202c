"""管理总览API - 汇总客户、库存、寄售、质检、退货、应收的关键数字"""

from typing import Any
from datetime import datetime
from fastapi import APIRouter, Depends
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from canopy.core.config import settings
from canopy.core.deps import get_db, get_current_tenant
from canopy.core.logging_config import get_logger
from canopy.models.batch import Batch
from canopy.models.customer import Customer
from canopy.models.fronted import FrontedInventory
from canopy.models.order import Order
from canopy.models.product import Product
from canopy.models.returns import ReturnAuthorization
from canopy.models.tenant import Tenant
from canopy.schemas.dashboard import (
    ExecutiveOverview, CustomerStats, InventoryStats, FrontedStats,
    QualityStats, ReturnStats, ARStats,
)
from canopy.services import finance
from canopy.services.customer_analytics import lifecycle_stage
from canopy.services.fronted import fronted_dashboard, is_overdue
from canopy.services.inventory_analytics import summarize_inventory
from canopy.api.api_v1.endpoints.batches import expiry_state

router = APIRouter()
logger = get_logger(__name__)


async def count_by(db: AsyncSession, column, tenant_column, tenant_id: int) -> dict:
    result = await db.execute(
        select(column, func.count()).where(tenant_column == tenant_id).group_by(column)
    )
    return {key: count for key, count in result.all()}


@router.get("/overview", response_model=ExecutiveOverview)
async def get_overview(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
) -> Any:
    now = datetime.utcnow()

    # 客户
    customers = (await db.execute(select(Customer).where(Customer.tenant_id == tenant.id))).scalars().all()
    stages = [lifecycle_stage(c.last_purchase_at, now) for c in customers]
    customer_stats = CustomerStats(
        total=len(customers),
        active=stages.count("active"),
        at_risk=stages.count("at-risk"),
        churned=stages.count("churned"),
    )

    # 库存
    products = (await db.execute(select(Product).where(Product.tenant_id == tenant.id))).scalars().all()
    inventory = summarize_inventory(list(products))
    inventory_stats = InventoryStats(
        total_products=inventory["total_products"],
        total_stock_value=inventory["total_stock_value"],
        low_stock_count=inventory["low_stock_count"],
        out_of_stock_count=inventory["out_of_stock_count"],
    )

    # 寄售
    fronted_items = (await db.execute(
        select(FrontedInventory).where(
            FrontedInventory.tenant_id == tenant.id,
            FrontedInventory.status == "active",
        )
    )).scalars().all()
    fronted = fronted_dashboard(list(fronted_items), now)
    fronted_stats = FrontedStats(
        active_consignments=fronted["active_consignments"],
        total_value=fronted["total_value"],
        overdue_count=sum(1 for item in fronted_items if is_overdue(item, now)),
        health_score=fronted["health_score"],
    )

    # 质检
    qc_counts = await count_by(db, Batch.qc_status, Batch.tenant_id, tenant.id)
    expirations = (await db.execute(
        select(Batch.expiration_date).where(Batch.tenant_id == tenant.id, Batch.status == "active")
    )).scalars().all()
    quality_stats = QualityStats(
        pending=qc_counts.get("pending", 0),
        failed=qc_counts.get("failed", 0),
        quarantined=qc_counts.get("quarantined", 0),
        expiring_soon=sum(1 for d in expirations if expiry_state(d, now) == "expiring_soon"),
    )

    # 退货
    return_counts = await count_by(db, ReturnAuthorization.status, ReturnAuthorization.tenant_id, tenant.id)
    return_stats = ReturnStats(
        pending=return_counts.get("pending", 0),
        approved=return_counts.get("approved", 0),
    )

    # 应收
    receivables = finance.categorize_receivables(customers, now, default_terms=settings.DEFAULT_PAYMENT_TERMS)
    ar_stats = ARStats(
        total_outstanding=receivables["total_outstanding"],
        overdue=receivables["overdue"],
        overdue_count=receivables["overdue_count"],
    )

    # 本月营收、未完结订单
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    month_revenue = (await db.execute(
        select(func.coalesce(func.sum(Order.total_amount), 0)).where(
            Order.tenant_id == tenant.id,
            Order.status.in_(finance.REVENUE_STATUSES),
            Order.created_at >= month_start,
        )
    )).scalar()
    open_orders = (await db.execute(
        select(func.count(Order.id)).where(
            Order.tenant_id == tenant.id,
            Order.status.in_(("pending", "confirmed")),
        )
    )).scalar() or 0

    return ExecutiveOverview(
        generated_at=now,
        customers=customer_stats,
        inventory=inventory_stats,
        fronted=fronted_stats,
        quality=quality_stats,
        returns=return_stats,
        receivables=ar_stats,
        month_revenue=float(month_revenue or 0),
        open_orders=open_orders,
    )
