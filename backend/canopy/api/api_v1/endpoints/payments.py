"""收款管理API"""

from typing import Any, Optional
from datetime import datetime, timedelta
from decimal import Decimal
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from canopy.core.deps import get_db, get_current_tenant
from canopy.core.logging_config import get_logger
from canopy.models.customer import Customer
from canopy.models.order import Order
from canopy.models.payment import Payment
from canopy.models.tenant import Tenant
from canopy.schemas.payment import PaymentCreate, PaymentResponse, PaymentListResponse
from canopy.api.api_v1.endpoints.audit_logs import create_audit_log

router = APIRouter()
logger = get_logger(__name__)


def build_payment_response(payment: Payment) -> PaymentResponse:
    """构建收款响应"""
    return PaymentResponse(
        id=payment.id,
        customer_id=payment.customer_id,
        customer_name=payment.customer.display_name if payment.customer else "",
        order_id=payment.order_id,
        order_number=payment.order.order_number if payment.order else "",
        fronted_inventory_id=payment.fronted_inventory_id,
        amount=float(payment.amount or 0),
        payment_method=payment.payment_method,
        payment_type=payment.payment_type,
        reference=payment.reference,
        notes=payment.notes,
        created_at=payment.created_at,
    )


@router.get("/", response_model=PaymentListResponse)
async def list_payments(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    customer_id: Optional[int] = Query(None),
    payment_type: Optional[str] = Query(None),
    payment_method: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None)) -> Any:
    """获取收款列表"""
    conditions = [Payment.tenant_id == tenant.id]
    if customer_id:
        conditions.append(Payment.customer_id == customer_id)
    if payment_type:
        conditions.append(Payment.payment_type == payment_type)
    if payment_method:
        conditions.append(Payment.payment_method == payment_method)
    if start_date:
        conditions.append(Payment.created_at >= datetime.strptime(start_date, "%Y-%m-%d"))
    if end_date:
        conditions.append(Payment.created_at < datetime.strptime(end_date, "%Y-%m-%d") + timedelta(days=1))

    # 计算总数
    total = (await db.execute(select(func.count(Payment.id)).where(and_(*conditions)))).scalar() or 0

    # 分页查询
    result = await db.execute(
        select(Payment)
        .options(selectinload(Payment.customer), selectinload(Payment.order))
        .where(and_(*conditions))
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .offset((page - 1) * limit).limit(limit)
    )
    payments = result.scalars().all()

    return PaymentListResponse(
        data=[build_payment_response(p) for p in payments],
        total=total,
        page=page,
        limit=limit
    )


@router.post("/", response_model=PaymentResponse)
async def record_payment(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    payment_in: PaymentCreate,
) -> Any:
    """
    登记客户收款

    - 冲减客户欠款（不低于 0）
    - 指定订单时累加订单已付金额并更新付款状态
    """
    customer = await db.get(Customer, payment_in.customer_id)
    if not customer or customer.tenant_id != tenant.id:
        raise HTTPException(status_code=404, detail="客户不存在")

    order = None
    if payment_in.order_id:
        order = await db.get(Order, payment_in.order_id)
        if not order or order.tenant_id != tenant.id or order.customer_id != customer.id:
            raise HTTPException(status_code=404, detail="订单不存在")
        if order.status == "cancelled":
            raise HTTPException(status_code=400, detail="订单已取消，不能收款")
        if payment_in.amount > order.balance_due:
            raise HTTPException(
                status_code=400,
                detail=f"收款金额超过订单未付金额 {order.balance_due}"
            )

    now = datetime.utcnow()
    payment = Payment(
        tenant_id=tenant.id,
        customer_id=customer.id,
        order_id=order.id if order else None,
        amount=payment_in.amount,
        payment_method=payment_in.payment_method,
        payment_type="order" if order else "balance",
        reference=payment_in.reference,
        notes=payment_in.notes,
        created_at=now,
    )
    db.add(payment)

    if order:
        order.amount_paid = (order.amount_paid or Decimal("0")) + payment_in.amount
        order.refresh_payment_status()

    old_balance = customer.outstanding_balance or Decimal("0")
    customer.reduce_balance(payment_in.amount)
    customer.last_payment_date = now
    await db.flush()

    await create_audit_log(
        db, tenant.id, "payment", "payment",
        resource_id=payment.id, resource_name=customer.display_name,
        description=f"收款 ${payment_in.amount:,.2f}",
        old_value={"outstanding_balance": float(old_balance)},
        new_value={"outstanding_balance": float(customer.outstanding_balance)},
    )
    await db.commit()

    logger.info(f"💰 收款: {customer.display_name} ${payment_in.amount:,.2f}")

    result = await db.execute(
        select(Payment)
        .options(selectinload(Payment.customer), selectinload(Payment.order))
        .where(Payment.id == payment.id)
    )
    return build_payment_response(result.scalar_one())
