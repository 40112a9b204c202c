import asyncio
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy import select

from canopy.models.batch import Batch
from canopy.models.fronted import FrontedInventory
from canopy.models.product import Product
from canopy.models.tenant import Tenant
from canopy.services.scheduler import (
    expire_batches, get_scheduler_status, init_scheduler, report_overdue_fronted,
)

NOW = datetime(2025, 6, 15, 12, 0, 0)


async def seed(session_factory):
    async with session_factory() as db:
        tenant = Tenant(name="Test", slug="test")
        db.add(tenant)
        await db.flush()
        product = Product(tenant_id=tenant.id, name="OG Kush", stock_quantity=Decimal("10"))
        db.add(product)
        await db.flush()
        db.add_all([
            Batch(tenant_id=tenant.id, product_id=product.id, batch_number="B-1",
                  quantity_lbs=Decimal("5"), expiration_date=NOW - timedelta(days=1)),
            Batch(tenant_id=tenant.id, product_id=product.id, batch_number="B-2",
                  quantity_lbs=Decimal("5"), expiration_date=NOW + timedelta(days=10)),
            Batch(tenant_id=tenant.id, product_id=product.id, batch_number="B-3",
                  quantity_lbs=Decimal("5")),
        ])
        db.add_all([
            FrontedInventory(
                tenant_id=tenant.id, product_id=product.id, fronted_to_customer_name="Late",
                quantity_fronted=Decimal("2"), price_per_unit=Decimal("10"), expected_revenue=Decimal("20"),
                payment_status="pending", status="active", payment_due_date=NOW - timedelta(days=3),
            ),
            FrontedInventory(
                tenant_id=tenant.id, product_id=product.id, fronted_to_customer_name="Fine",
                quantity_fronted=Decimal("2"), price_per_unit=Decimal("10"), expected_revenue=Decimal("20"),
                payment_status="pending", status="active", payment_due_date=NOW + timedelta(days=3),
            ),
        ])
        await db.commit()


async def batch_statuses(session_factory):
    async with session_factory() as db:
        result = await db.execute(select(Batch.batch_number, Batch.status).order_by(Batch.batch_number))
        return dict(result.all())


def test_expire_batches(session_factory):
    asyncio.run(seed(session_factory))

    assert asyncio.run(expire_batches(session_factory, now=NOW)) == 1
    assert asyncio.run(batch_statuses(session_factory)) == {"B-1": "expired", "B-2": "active", "B-3": "active"}
    # 再跑一次不会重复处理
    assert asyncio.run(expire_batches(session_factory, now=NOW)) == 0


def test_report_overdue_fronted(session_factory):
    asyncio.run(seed(session_factory))
    assert asyncio.run(report_overdue_fronted(session_factory, now=NOW)) == 1


def test_scheduler_disabled_in_tests():
    init_scheduler()
    status = get_scheduler_status()
    assert status["enabled"] is False
    assert status["running"] is False
