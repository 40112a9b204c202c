"""
寄售API - 先发货后收款

- 寄出：扣减库存（流水 front）
- 售出 / 退回 / 损耗：对账，退回的数量回库
- 收款：已收 ≤ 应收，收齐后结清
- 转销售、召回、延期
"""

from typing import Any, Optional
from datetime import datetime, timedelta
from decimal import Decimal
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from canopy.core.config import settings
from canopy.core.deps import get_db, get_current_tenant
from canopy.core.logging_config import get_logger
from canopy.models.customer import Customer
from canopy.models.fronted import FrontedInventory
from canopy.models.payment import Payment
from canopy.models.product import Product
from canopy.models.tenant import Tenant
from canopy.schemas.fronted import (
    FrontedCreate, FrontedQuantity, FrontedPayment, FrontedExtend,
    FrontedResponse, FrontedListResponse, FrontedDashboard, AgingReport,
)
from canopy.services.fronted import (
    ReconciliationError, apply_payment, check_quantities, describe_item,
    fronted_dashboard, aging_report,
)
from canopy.api.api_v1.endpoints.audit_logs import create_audit_log
from canopy.api.api_v1.endpoints.inventory import change_stock

router = APIRouter()
logger = get_logger(__name__)


def build_fronted_response(item: FrontedInventory, now: datetime = None) -> FrontedResponse:
    """构建寄售响应"""
    return FrontedResponse(
        id=item.id,
        product_id=item.product_id,
        product_name=item.product.name if item.product else "",
        customer_id=item.customer_id,
        fronted_to_customer_name=item.fronted_to_customer_name,
        quantity_fronted=float(item.quantity_fronted or 0),
        quantity_sold=float(item.quantity_sold or 0),
        quantity_returned=float(item.quantity_returned or 0),
        quantity_damaged=float(item.quantity_damaged or 0),
        cost_per_unit=float(item.cost_per_unit or 0),
        price_per_unit=float(item.price_per_unit or 0),
        expected_revenue=float(item.expected_revenue or 0),
        expected_profit=float(item.expected_profit or 0),
        payment_received=float(item.payment_received or 0),
        payment_status=item.payment_status,
        status=item.status,
        dispatched_at=item.dispatched_at,
        payment_due_date=item.payment_due_date,
        completed_at=item.completed_at,
        notes=item.notes,
        created_at=item.created_at,
        **describe_item(item, now),
    )


async def get_tenant_fronted(db: AsyncSession, tenant: Tenant, fronted_id: int) -> FrontedInventory:
    result = await db.execute(
        select(FrontedInventory)
        .options(selectinload(FrontedInventory.product), selectinload(FrontedInventory.customer))
        .where(FrontedInventory.id == fronted_id, FrontedInventory.tenant_id == tenant.id)
        .execution_options(populate_existing=True)
    )
    item = result.scalar_one_or_none()
    if not item:
        raise HTTPException(status_code=404, detail="寄售记录不存在")
    return item


def ensure_active(item: FrontedInventory) -> None:
    if item.status != "active":
        raise HTTPException(status_code=400, detail=f"寄售状态为 {item.status}，不能操作")


def reconcile(item: FrontedInventory, sold=None, returned=None, damaged=None) -> None:
    """校验数量对账，不通过返回 400"""
    try:
        check_quantities(
            item.quantity_fronted,
            item.quantity_sold if sold is None else sold,
            item.quantity_returned if returned is None else returned,
            item.quantity_damaged if damaged is None else damaged,
        )
    except ReconciliationError as e:
        raise HTTPException(status_code=400, detail=str(e))


def reduce_expected(item: FrontedInventory, quantity: Decimal) -> None:
    """退回/召回的数量不再计入应收"""
    price = item.price_per_unit or Decimal("0")
    cost = item.cost_per_unit or Decimal("0")
    new_expected = (item.expected_revenue or Decimal("0")) - quantity * price
    if new_expected < (item.payment_received or Decimal("0")):
        raise HTTPException(status_code=400, detail="退回后应收金额将低于已收款，请先处理退款")
    item.expected_revenue = new_expected
    item.expected_profit = (item.expected_profit or Decimal("0")) - quantity * (price - cost)
    item.payment_status = apply_payment(item.expected_revenue, item.payment_received, Decimal("0"))["payment_status"]


@router.get("/", response_model=FrontedListResponse)
async def list_fronted(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[str] = Query(None),
    payment_status: Optional[str] = Query(None),
    customer_id: Optional[int] = Query(None),
    product_id: Optional[int] = Query(None),
    overdue_only: bool = Query(False, description="只看逾期"),
) -> Any:
    """获取寄售列表"""
    now = datetime.utcnow()
    conditions = [FrontedInventory.tenant_id == tenant.id]
    if status:
        conditions.append(FrontedInventory.status == status)
    if payment_status:
        conditions.append(FrontedInventory.payment_status == payment_status)
    if customer_id:
        conditions.append(FrontedInventory.customer_id == customer_id)
    if product_id:
        conditions.append(FrontedInventory.product_id == product_id)
    if overdue_only:
        conditions.append(FrontedInventory.payment_status != "paid")
        conditions.append(FrontedInventory.payment_due_date < now)

    total = (await db.execute(
        select(func.count(FrontedInventory.id)).where(and_(*conditions))
    )).scalar() or 0

    result = await db.execute(
        select(FrontedInventory)
        .options(selectinload(FrontedInventory.product))
        .where(and_(*conditions))
        .order_by(FrontedInventory.dispatched_at.desc(), FrontedInventory.id.desc())
        .offset((page - 1) * limit).limit(limit)
    )
    return FrontedListResponse(
        data=[build_fronted_response(i, now) for i in result.scalars().all()],
        total=total, page=page, limit=limit,
    )


@router.get("/dashboard", response_model=FrontedDashboard)
async def get_fronted_dashboard(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
) -> Any:
    """在外寄售总览"""
    result = await db.execute(
        select(FrontedInventory).where(
            FrontedInventory.tenant_id == tenant.id,
            FrontedInventory.status == "active",
        )
    )
    return fronted_dashboard(list(result.scalars().all()))


@router.get("/aging-report", response_model=AgingReport)
async def get_aging_report(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    customer_id: Optional[int] = Query(None),
) -> Any:
    """未结清寄售的账龄分布"""
    conditions = [
        FrontedInventory.tenant_id == tenant.id,
        FrontedInventory.payment_status != "paid",
        FrontedInventory.status.in_(["active", "sold"]),
    ]
    if customer_id:
        conditions.append(FrontedInventory.customer_id == customer_id)
    result = await db.execute(select(FrontedInventory).where(and_(*conditions)))
    return AgingReport(customer_id=customer_id, **aging_report(result.scalars().all()))


@router.post("/", response_model=FrontedResponse)
async def create_fronted(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    fronted_in: FrontedCreate,
) -> Any:
    """寄出商品"""
    product = await db.get(Product, fronted_in.product_id)
    if not product or product.tenant_id != tenant.id:
        raise HTTPException(status_code=404, detail="商品不存在")

    customer_name = fronted_in.fronted_to_customer_name
    if fronted_in.customer_id:
        customer = await db.get(Customer, fronted_in.customer_id)
        if not customer or customer.tenant_id != tenant.id:
            raise HTTPException(status_code=404, detail="客户不存在")
        customer_name = customer_name or customer.display_name
    if not customer_name:
        raise HTTPException(status_code=400, detail="请选择客户或填写收货人名称")

    qty = fronted_in.quantity
    price = fronted_in.price_per_unit
    cost = fronted_in.cost_per_unit if fronted_in.cost_per_unit is not None else (product.cost_per_unit or Decimal("0"))
    dispatched_at = fronted_in.dispatched_at or datetime.utcnow()

    item = FrontedInventory(
        tenant_id=tenant.id,
        product_id=product.id,
        customer_id=fronted_in.customer_id,
        fronted_to_customer_name=customer_name,
        quantity_fronted=qty,
        cost_per_unit=cost,
        price_per_unit=price,
        expected_revenue=qty * price,
        expected_profit=qty * (price - cost),
        payment_received=Decimal("0"),
        payment_status="pending",
        status="active",
        dispatched_at=dispatched_at,
        payment_due_date=fronted_in.payment_due_date or dispatched_at + timedelta(days=settings.DEFAULT_PAYMENT_TERMS),
        notes=fronted_in.notes,
    )
    db.add(item)
    await db.flush()

    await change_stock(db, product, -qty, "front", reason=f"寄售给 {customer_name}", reference=f"FR-{item.id}")
    await create_audit_log(
        db, tenant.id, "create", "fronted", resource_id=item.id, resource_name=customer_name,
        description=f"寄出 {product.name} × {qty}",
        new_value={"quantity": float(qty), "expected_revenue": float(item.expected_revenue)},
    )
    await db.commit()

    logger.info(f"🚚 寄售: {product.name} × {qty} → {customer_name}")
    return build_fronted_response(await get_tenant_fronted(db, tenant, item.id))


@router.get("/{fronted_id}", response_model=FrontedResponse)
async def get_fronted(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    fronted_id: int,
) -> Any:
    item = await get_tenant_fronted(db, tenant, fronted_id)
    return build_fronted_response(item)


@router.post("/{fronted_id}/sale", response_model=FrontedResponse)
async def record_fronted_sale(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    fronted_id: int,
    qty_in: FrontedQuantity,
) -> Any:
    """登记售出数量"""
    item = await get_tenant_fronted(db, tenant, fronted_id)
    ensure_active(item)

    new_sold = (item.quantity_sold or Decimal("0")) + qty_in.quantity
    reconcile(item, sold=new_sold)
    item.quantity_sold = new_sold

    await create_audit_log(
        db, tenant.id, "update", "fronted", resource_id=item.id,
        resource_name=item.fronted_to_customer_name,
        description=f"售出 {qty_in.quantity}", new_value={"quantity_sold": float(new_sold)},
    )
    await db.commit()
    return build_fronted_response(await get_tenant_fronted(db, tenant, fronted_id))


@router.post("/{fronted_id}/return", response_model=FrontedResponse)
async def record_fronted_return(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    fronted_id: int,
    qty_in: FrontedQuantity,
) -> Any:
    """登记退回数量，商品回库"""
    item = await get_tenant_fronted(db, tenant, fronted_id)
    ensure_active(item)

    new_returned = (item.quantity_returned or Decimal("0")) + qty_in.quantity
    reconcile(item, returned=new_returned)
    item.quantity_returned = new_returned
    reduce_expected(item, qty_in.quantity)

    await change_stock(
        db, item.product, qty_in.quantity, "return",
        reason=f"寄售退回: {item.fronted_to_customer_name}", reference=f"FR-{item.id}",
    )
    await create_audit_log(
        db, tenant.id, "update", "fronted", resource_id=item.id,
        resource_name=item.fronted_to_customer_name,
        description=f"退回 {qty_in.quantity}", new_value={"quantity_returned": float(new_returned)},
    )
    await db.commit()
    return build_fronted_response(await get_tenant_fronted(db, tenant, fronted_id))


@router.post("/{fronted_id}/damage", response_model=FrontedResponse)
async def record_fronted_damage(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    fronted_id: int,
    qty_in: FrontedQuantity,
) -> Any:
    """登记损耗数量（不回库，仍计入应收）"""
    item = await get_tenant_fronted(db, tenant, fronted_id)
    ensure_active(item)

    new_damaged = (item.quantity_damaged or Decimal("0")) + qty_in.quantity
    reconcile(item, damaged=new_damaged)
    item.quantity_damaged = new_damaged

    await create_audit_log(
        db, tenant.id, "update", "fronted", resource_id=item.id,
        resource_name=item.fronted_to_customer_name,
        description=f"损耗 {qty_in.quantity}", new_value={"quantity_damaged": float(new_damaged)},
    )
    await db.commit()
    return build_fronted_response(await get_tenant_fronted(db, tenant, fronted_id))


@router.post("/{fronted_id}/payment", response_model=FrontedResponse)
async def record_fronted_payment(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    fronted_id: int,
    payment_in: FrontedPayment,
) -> Any:
    """寄售回款，收齐后结清"""
    item = await get_tenant_fronted(db, tenant, fronted_id)
    if item.status in ("recalled", "completed"):
        raise HTTPException(status_code=400, detail=f"寄售状态为 {item.status}，不能收款")

    try:
        result = apply_payment(item.expected_revenue, item.payment_received, payment_in.amount)
    except ReconciliationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    now = datetime.utcnow()
    item.payment_received = result["payment_received"]
    item.payment_status = result["payment_status"]
    if result["is_paid"]:
        item.status = "completed"
        item.completed_at = now

    db.add(Payment(
        tenant_id=tenant.id,
        customer_id=item.customer_id,
        fronted_inventory_id=item.id,
        amount=payment_in.amount,
        payment_method=payment_in.payment_method,
        payment_type="fronted",
        reference=payment_in.reference,
        notes=payment_in.notes,
        created_at=now,
    ))
    # 寄售欠款记在寄售记录上，不计入客户订单欠款
    if item.customer:
        item.customer.last_payment_date = now

    await create_audit_log(
        db, tenant.id, "payment", "fronted", resource_id=item.id,
        resource_name=item.fronted_to_customer_name,
        description=f"寄售回款 ${payment_in.amount:,.2f}",
        new_value={"payment_received": float(item.payment_received), "payment_status": item.payment_status},
    )
    await db.commit()

    logger.info(f"💰 寄售回款: {item.fronted_to_customer_name} ${payment_in.amount:,.2f} ({item.payment_status})")
    return build_fronted_response(await get_tenant_fronted(db, tenant, fronted_id))


@router.post("/{fronted_id}/convert-to-sale", response_model=FrontedResponse)
async def convert_fronted_to_sale(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    fronted_id: int,
) -> Any:
    """剩余在外数量全部视为售出"""
    item = await get_tenant_fronted(db, tenant, fronted_id)
    ensure_active(item)

    remaining = item.quantity_remaining
    item.quantity_sold = (item.quantity_sold or Decimal("0")) + remaining
    item.status = "completed" if item.payment_status == "paid" else "sold"
    if item.status == "completed":
        item.completed_at = datetime.utcnow()

    await create_audit_log(
        db, tenant.id, "update", "fronted", resource_id=item.id,
        resource_name=item.fronted_to_customer_name,
        description=f"转销售 {remaining}", new_value={"status": item.status},
    )
    await db.commit()
    return build_fronted_response(await get_tenant_fronted(db, tenant, fronted_id))


@router.post("/{fronted_id}/recall", response_model=FrontedResponse)
async def recall_fronted(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    fronted_id: int,
) -> Any:
    """召回：剩余在外数量回库"""
    item = await get_tenant_fronted(db, tenant, fronted_id)
    ensure_active(item)

    remaining = item.quantity_remaining
    if remaining > 0:
        item.quantity_returned = (item.quantity_returned or Decimal("0")) + remaining
        reduce_expected(item, remaining)
        await change_stock(
            db, item.product, remaining, "recall",
            reason=f"寄售召回: {item.fronted_to_customer_name}", reference=f"FR-{item.id}",
        )
    item.status = "recalled"

    await create_audit_log(
        db, tenant.id, "update", "fronted", resource_id=item.id,
        resource_name=item.fronted_to_customer_name,
        description=f"召回 {remaining}", new_value={"status": "recalled"},
    )
    await db.commit()

    logger.info(f"↩️ 寄售召回: {item.fronted_to_customer_name} {remaining}")
    return build_fronted_response(await get_tenant_fronted(db, tenant, fronted_id))


@router.post("/{fronted_id}/extend", response_model=FrontedResponse)
async def extend_fronted_due_date(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    fronted_id: int,
    extend_in: FrontedExtend,
) -> Any:
    """延长回款日：指定新日期，或在原回款日上顺延天数"""
    item = await get_tenant_fronted(db, tenant, fronted_id)
    if item.payment_status == "paid":
        raise HTTPException(status_code=400, detail="已结清的寄售不需要延期")

    old_due = item.payment_due_date
    if extend_in.payment_due_date:
        new_due = extend_in.payment_due_date
    elif extend_in.days:
        new_due = (old_due or datetime.utcnow()) + timedelta(days=extend_in.days)
    else:
        raise HTTPException(status_code=400, detail="请指定新的回款日或顺延天数")

    if old_due and new_due <= old_due:
        raise HTTPException(status_code=400, detail="新的回款日必须晚于原回款日")
    item.payment_due_date = new_due

    await create_audit_log(
        db, tenant.id, "update", "fronted", resource_id=item.id,
        resource_name=item.fronted_to_customer_name,
        old_value={"payment_due_date": old_due.isoformat() if old_due else None},
        new_value={"payment_due_date": new_due.isoformat()},
    )
    await db.commit()
    return build_fronted_response(await get_tenant_fronted(db, tenant, fronted_id))
