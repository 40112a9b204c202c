"""
订单API - 下单向导校验、创建订单、状态流转

状态流转：
- pending → confirmed / cancelled
- confirmed → delivered / cancelled
- delivered → completed
取消订单时商品回库，未付部分从客户欠款中冲回
"""

from typing import Any, Dict, List, Optional
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
from canopy.models.order import Order, OrderItem
from canopy.models.payment import Payment
from canopy.models.product import Product
from canopy.models.tenant import Tenant
from canopy.schemas.order import (
    OrderDraft, OrderLineIn, WorkflowValidateRequest, WorkflowValidateResponse,
    OrderTotals, CreditInfo, OrderResponse, OrderCreateResponse, OrderItemResponse,
    OrderListResponse, OrderStatusUpdate,
)
from canopy.services import order_workflow
from canopy.services.numbering import next_number
from canopy.api.api_v1.endpoints.audit_logs import create_audit_log
from canopy.api.api_v1.endpoints.inventory import change_stock

router = APIRouter()
logger = get_logger(__name__)

STATUS_TRANSITIONS = {
    "pending": ["confirmed", "cancelled"],
    "confirmed": ["delivered", "cancelled"],
    "delivered": ["completed"],
    "completed": [],
    "cancelled": [],
}


async def generate_order_number(db: AsyncSession) -> str:
    """生成订单号：ORD-YYYYMMDD-NNNN"""
    prefix = f"ORD-{datetime.utcnow().strftime('%Y%m%d')}-"
    result = await db.execute(
        select(Order.order_number).where(Order.order_number.like(f"{prefix}%"))
    )
    return next_number(result.scalars().all(), prefix, 4)


def build_order_response(order: Order, response_class=OrderResponse, **extra) -> OrderResponse:
    """构建订单响应"""
    return response_class(
        id=order.id,
        order_number=order.order_number,
        customer_id=order.customer_id,
        customer_name=order.customer.display_name if order.customer else "",
        status=order.status,
        total_amount=float(order.total_amount or 0),
        total_cost=float(order.total_cost or 0),
        amount_paid=float(order.amount_paid or 0),
        balance_due=float(order.balance_due),
        payment_method=order.payment_method,
        payment_status=order.payment_status,
        payment_due_date=order.payment_due_date,
        delivery_method=order.delivery_method,
        runner_name=order.runner_name,
        pickup_location=order.pickup_location,
        scheduled_time=order.scheduled_time,
        collection_amount=float(order.collection_amount or 0),
        delivery_address=order.delivery_address,
        delivery_notes=order.delivery_notes,
        internal_notes=order.internal_notes,
        items=[OrderItemResponse.model_validate(i) for i in order.items],
        created_at=order.created_at,
        updated_at=order.updated_at,
        **extra,
    )


async def get_tenant_order(db: AsyncSession, tenant: Tenant, order_id: int) -> Order:
    result = await db.execute(
        select(Order)
        .options(selectinload(Order.items), selectinload(Order.customer))
        .where(Order.id == order_id, Order.tenant_id == tenant.id)
        .execution_options(populate_existing=True)
    )
    order = result.scalar_one_or_none()
    if not order:
        raise HTTPException(status_code=404, detail="订单不存在")
    return order


async def resolve_lines(db: AsyncSession, tenant: Tenant, items: List[OrderLineIn]) -> List[Dict]:
    """订单行补全商品信息，单价默认取售价，成本取当前单位成本"""
    lines = []
    for item in items:
        product = await db.get(Product, item.product_id)
        if not product or product.tenant_id != tenant.id:
            raise HTTPException(status_code=404, detail=f"商品不存在: {item.product_id}")
        lines.append({
            "product": product,
            "quantity": item.quantity,
            "unit_price": item.unit_price if item.unit_price is not None else (product.price or Decimal("0")),
            "unit_cost": product.cost_per_unit or Decimal("0"),
        })
    return lines


def stock_shortages(lines: List[Dict]) -> List[str]:
    """同一商品多行合并后与库存比较"""
    needed: Dict[int, Decimal] = {}
    products: Dict[int, Product] = {}
    for line in lines:
        product = line["product"]
        needed[product.id] = needed.get(product.id, Decimal("0")) + Decimal(line["quantity"])
        products[product.id] = product

    messages = []
    for product_id, qty in needed.items():
        product = products[product_id]
        available = product.stock_quantity or Decimal("0")
        if qty > available:
            messages.append(f"库存不足：{product.name} 当前库存 {available}，需要 {qty}")
    return messages


@router.post("/workflow/validate", response_model=WorkflowValidateResponse)
async def validate_workflow_step(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    request: WorkflowValidateRequest,
) -> Any:
    """下单向导：校验当前步骤，返回合计和信用提示"""
    draft = request.draft
    try:
        ok, reason = order_workflow.can_proceed(request.step, draft)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    lines = await resolve_lines(db, tenant, draft.items)
    totals = order_workflow.order_totals(lines)

    credit = None
    if draft.customer_id:
        customer = await db.get(Customer, draft.customer_id)
        if not customer or customer.tenant_id != tenant.id:
            raise HTTPException(status_code=404, detail="客户不存在")
        check = order_workflow.credit_check(
            customer, draft.payment_method, totals["total"],
            partial_payment=draft.partial_payment_amount or Decimal("0"),
            collect_old_balance=draft.collect_old_balance,
        )
        credit = CreditInfo(
            outstanding_balance=float(customer.outstanding_balance or 0),
            credit_limit=float(customer.credit_limit or 0),
            **check,
        )
        credit.warnings.extend(stock_shortages(lines))

    return WorkflowValidateResponse(
        step=request.step,
        can_proceed=ok,
        reason=reason,
        next_step=order_workflow.next_step(request.step),
        previous_step=order_workflow.previous_step(request.step),
        totals=OrderTotals(**{k: float(v) for k, v in totals.items()}),
        credit=credit,
    )


@router.get("/", response_model=OrderListResponse)
async def list_orders(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[str] = Query(None),
    payment_status: Optional[str] = Query(None),
    customer_id: Optional[int] = Query(None),
    search: Optional[str] = Query(None, description="订单号"),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
) -> Any:
    """获取订单列表"""
    conditions = [Order.tenant_id == tenant.id]
    if status:
        conditions.append(Order.status == status)
    if payment_status:
        conditions.append(Order.payment_status == payment_status)
    if customer_id:
        conditions.append(Order.customer_id == customer_id)
    if search:
        conditions.append(Order.order_number.contains(search))
    if start_date:
        conditions.append(Order.created_at >= datetime.strptime(start_date, "%Y-%m-%d"))
    if end_date:
        conditions.append(Order.created_at < datetime.strptime(end_date, "%Y-%m-%d") + timedelta(days=1))

    total = (await db.execute(select(func.count(Order.id)).where(and_(*conditions)))).scalar() or 0

    result = await db.execute(
        select(Order)
        .options(selectinload(Order.items), selectinload(Order.customer))
        .where(and_(*conditions))
        .order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * limit).limit(limit)
    )
    orders = result.scalars().all()
    return OrderListResponse(
        data=[build_order_response(o) for o in orders],
        total=total, page=page, limit=limit,
    )


@router.post("/", response_model=OrderCreateResponse)
async def create_order(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    draft: OrderDraft,
) -> Any:
    """
    创建订单

    所有向导步骤重新校验后：
    1. 出库（流水类型 sale）
    2. 未付部分记入客户欠款
    3. 更新客户累计消费、订单数、最近购买时间
    """
    blocking = order_workflow.first_blocking_step(draft)
    if blocking:
        step, reason = blocking
        raise HTTPException(status_code=400, detail=f"{order_workflow.STEP_LABELS[step]}：{reason}")

    customer = await db.get(Customer, draft.customer_id)
    if not customer or customer.tenant_id != tenant.id:
        raise HTTPException(status_code=404, detail="客户不存在")
    if customer.status == "blocked":
        raise HTTPException(status_code=400, detail="该客户已被冻结，不能下单")

    lines = await resolve_lines(db, tenant, draft.items)
    shortages = stock_shortages(lines)
    if shortages:
        raise HTTPException(status_code=400, detail=shortages[0])

    totals = order_workflow.order_totals(lines)
    total = totals["total"]
    partial = draft.partial_payment_amount or Decimal("0")
    if draft.payment_method == "partial" and partial > total:
        raise HTTPException(status_code=400, detail="首付金额不能超过订单金额")

    credit = order_workflow.credit_check(
        customer, draft.payment_method, total,
        partial_payment=partial, collect_old_balance=draft.collect_old_balance,
    )

    now = datetime.utcnow()
    unpaid = order_workflow.unpaid_amount(draft.payment_method, total, partial)
    amount_paid = total - unpaid
    terms = customer.payment_terms or settings.DEFAULT_PAYMENT_TERMS

    order = Order(
        tenant_id=tenant.id,
        order_number=await generate_order_number(db),
        customer_id=customer.id,
        status="pending",
        total_amount=total,
        total_cost=totals["cost"],
        amount_paid=amount_paid,
        payment_method=draft.payment_method,
        payment_due_date=now + timedelta(days=terms) if unpaid > 0 else None,
        delivery_method=draft.delivery_method,
        runner_name=draft.runner_name if draft.delivery_method == "runner" else None,
        pickup_location=draft.pickup_location if draft.delivery_method == "pickup" else None,
        scheduled_time=draft.scheduled_time,
        collection_amount=(customer.outstanding_balance or Decimal("0")) if draft.collect_old_balance else Decimal("0"),
        delivery_address=draft.delivery_address or customer.address,
        delivery_notes=draft.delivery_notes,
        internal_notes=draft.internal_notes,
        created_at=now,
    )
    order.refresh_payment_status()
    db.add(order)
    await db.flush()

    for line in lines:
        product = line["product"]
        qty = Decimal(line["quantity"])
        db.add(OrderItem(
            order_id=order.id,
            product_id=product.id,
            product_name=product.name,
            quantity=qty,
            unit_price=line["unit_price"],
            unit_cost=line["unit_cost"],
            subtotal=qty * Decimal(line["unit_price"]),
        ))
        await change_stock(db, product, -qty, "sale", reason="销售出库", reference=order.order_number)

    if amount_paid > 0:
        db.add(Payment(
            tenant_id=tenant.id,
            customer_id=customer.id,
            order_id=order.id,
            amount=amount_paid,
            payment_method="cash",
            payment_type="order",
            reference=order.order_number,
            created_at=now,
        ))
        customer.last_payment_date = now

    customer.outstanding_balance = (customer.outstanding_balance or Decimal("0")) + unpaid
    customer.total_spent = (customer.total_spent or Decimal("0")) + total
    customer.order_count = (customer.order_count or 0) + 1
    customer.last_purchase_at = now

    await create_audit_log(
        db, tenant.id, "create", "order",
        resource_id=order.id, resource_name=order.order_number,
        description=f"{customer.display_name} 下单 ${total:,.2f}",
        new_value={"total_amount": float(total), "payment_method": draft.payment_method},
    )
    await db.commit()

    logger.info(f"🧾 新订单: {order.order_number} {customer.display_name} ${total:,.2f} ({draft.payment_method})")
    if credit["over_credit_limit"]:
        logger.warning(f"⚠️ 订单 {order.order_number} 超出客户信用额度")

    order = await get_tenant_order(db, tenant, order.id)
    return build_order_response(order, OrderCreateResponse, warnings=credit["warnings"])


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    order_id: int,
) -> Any:
    """获取订单详情"""
    order = await get_tenant_order(db, tenant, order_id)
    return build_order_response(order)


async def cancel_order_effects(db: AsyncSession, order: Order) -> None:
    """取消订单：商品回库，冲回未付欠款和消费统计"""
    for item in order.items:
        product = await db.get(Product, item.product_id)
        if product:
            await change_stock(db, product, item.quantity, "return", reason="订单取消回库", reference=order.order_number)

    customer = order.customer
    if customer:
        customer.reduce_balance(order.balance_due)
        customer.total_spent = max(Decimal("0"), (customer.total_spent or Decimal("0")) - order.total_amount)
        customer.order_count = max(0, (customer.order_count or 0) - 1)


@router.put("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    order_id: int,
    status_in: OrderStatusUpdate,
) -> Any:
    """订单状态流转"""
    order = await get_tenant_order(db, tenant, order_id)
    old_status = order.status

    if status_in.status not in STATUS_TRANSITIONS.get(old_status, []):
        raise HTTPException(
            status_code=400,
            detail=f"订单状态 {old_status} 不能变更为 {status_in.status}"
        )

    if status_in.status == "cancelled":
        await cancel_order_effects(db, order)

    order.status = status_in.status
    if status_in.notes:
        order.internal_notes = "\n".join(n for n in [order.internal_notes, status_in.notes] if n)

    action = {"cancelled": "cancel", "confirmed": "confirm"}.get(status_in.status, "update")
    await create_audit_log(
        db, tenant.id, action, "order",
        resource_id=order.id, resource_name=order.order_number,
        old_value={"status": old_status}, new_value={"status": order.status},
    )
    await db.commit()

    logger.info(f"🔄 订单 {order.order_number}: {old_status} → {order.status}")
    return build_order_response(await get_tenant_order(db, tenant, order_id))


@router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    order_id: int,
) -> Any:
    """取消订单"""
    return await update_order_status(
        db=db, tenant=tenant, order_id=order_id,
        status_in=OrderStatusUpdate(status="cancelled"),
    )
