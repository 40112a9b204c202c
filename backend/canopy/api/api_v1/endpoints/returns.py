"""
退货授权（RA）API

pending → approved → received → refunded
pending → rejected
"""

from typing import Any, Dict, Optional
from datetime import datetime
from decimal import Decimal
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from canopy.core.deps import get_db, get_current_tenant
from canopy.core.logging_config import get_logger
from canopy.models.order import Order
from canopy.models.product import Product
from canopy.models.returns import ReturnAuthorization, ReturnItem
from canopy.models.tenant import Tenant
from canopy.schemas.returns import (
    ReturnCreate, ReturnReject, ReturnResponse, ReturnItemResponse,
    ReturnListResponse, ReturnSummary,
)
from canopy.services.numbering import next_number
from canopy.api.api_v1.endpoints.audit_logs import create_audit_log
from canopy.api.api_v1.endpoints.inventory import change_stock

router = APIRouter()
logger = get_logger(__name__)

RETURN_STATUSES = ["pending", "approved", "rejected", "received", "refunded"]

# 可以退货的订单状态
RETURNABLE_ORDER_STATUSES = ("delivered", "completed")


async def generate_ra_number(db: AsyncSession) -> str:
    """生成退货单号：RA-YYYYMMDD-NNN"""
    prefix = f"RA-{datetime.utcnow().strftime('%Y%m%d')}-"
    result = await db.execute(
        select(ReturnAuthorization.ra_number).where(ReturnAuthorization.ra_number.like(f"{prefix}%"))
    )
    return next_number(result.scalars().all(), prefix, 3)


def build_return_response(ra: ReturnAuthorization) -> ReturnResponse:
    """构建退货单响应"""
    return ReturnResponse(
        id=ra.id,
        ra_number=ra.ra_number,
        order_id=ra.order_id,
        order_number=ra.order.order_number if ra.order else "",
        customer_id=ra.customer_id,
        customer_name=ra.customer.display_name if ra.customer else "",
        status=ra.status,
        reason=ra.reason,
        restocking_fee=float(ra.restocking_fee or 0),
        refund_amount=float(ra.refund_amount or 0),
        items_total=float(ra.items_total),
        notes=ra.notes,
        approved_at=ra.approved_at,
        received_at=ra.received_at,
        refunded_at=ra.refunded_at,
        items=[ReturnItemResponse.model_validate(i) for i in ra.items],
        created_at=ra.created_at,
    )


async def get_tenant_return(db: AsyncSession, tenant: Tenant, return_id: int) -> ReturnAuthorization:
    result = await db.execute(
        select(ReturnAuthorization)
        .options(
            selectinload(ReturnAuthorization.items),
            selectinload(ReturnAuthorization.order),
            selectinload(ReturnAuthorization.customer),
        )
        .where(ReturnAuthorization.id == return_id, ReturnAuthorization.tenant_id == tenant.id)
        .execution_options(populate_existing=True)
    )
    ra = result.scalar_one_or_none()
    if not ra:
        raise HTTPException(status_code=404, detail="退货单不存在")
    return ra


def ensure_status(ra: ReturnAuthorization, expected: str, action: str) -> None:
    if ra.status != expected:
        raise HTTPException(status_code=400, detail=f"退货单状态为 {ra.status}，不能{action}")


async def already_returned(db: AsyncSession, order_id: int) -> Dict[int, Decimal]:
    """该订单每个商品已申请退货的数量（不含已驳回）"""
    result = await db.execute(
        select(ReturnItem.product_id, func.sum(ReturnItem.quantity))
        .join(ReturnAuthorization, ReturnAuthorization.id == ReturnItem.return_id)
        .where(ReturnAuthorization.order_id == order_id, ReturnAuthorization.status != "rejected")
        .group_by(ReturnItem.product_id)
    )
    return {product_id: Decimal(str(qty or 0)) for product_id, qty in result.all()}


@router.get("/", response_model=ReturnListResponse)
async def list_returns(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[str] = Query(None),
    customer_id: Optional[int] = Query(None),
    order_id: Optional[int] = Query(None),
) -> Any:
    """获取退货单列表"""
    conditions = [ReturnAuthorization.tenant_id == tenant.id]
    if status:
        conditions.append(ReturnAuthorization.status == status)
    if customer_id:
        conditions.append(ReturnAuthorization.customer_id == customer_id)
    if order_id:
        conditions.append(ReturnAuthorization.order_id == order_id)

    total = (await db.execute(
        select(func.count(ReturnAuthorization.id)).where(and_(*conditions))
    )).scalar() or 0

    result = await db.execute(
        select(ReturnAuthorization)
        .options(
            selectinload(ReturnAuthorization.items),
            selectinload(ReturnAuthorization.order),
            selectinload(ReturnAuthorization.customer),
        )
        .where(and_(*conditions))
        .order_by(ReturnAuthorization.created_at.desc(), ReturnAuthorization.id.desc())
        .offset((page - 1) * limit).limit(limit)
    )
    return ReturnListResponse(
        data=[build_return_response(ra) for ra in result.scalars().all()],
        total=total, page=page, limit=limit,
    )


@router.get("/summary", response_model=ReturnSummary)
async def get_returns_summary(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
) -> Any:
    """退货汇总：各状态数量、累计退款、退货率"""
    result = await db.execute(
        select(ReturnAuthorization.status, func.count(ReturnAuthorization.id))
        .where(ReturnAuthorization.tenant_id == tenant.id)
        .group_by(ReturnAuthorization.status)
    )
    by_status = {s: 0 for s in RETURN_STATUSES}
    for status, count in result.all():
        by_status[status] = count

    refunded = (await db.execute(
        select(func.coalesce(func.sum(ReturnAuthorization.refund_amount), 0)).where(
            ReturnAuthorization.tenant_id == tenant.id,
            ReturnAuthorization.status == "refunded",
        )
    )).scalar()

    order_count = (await db.execute(
        select(func.count(Order.id)).where(Order.tenant_id == tenant.id)
    )).scalar() or 0

    total_returns = sum(by_status.values())
    return ReturnSummary(
        total_returns=total_returns,
        by_status=by_status,
        total_refunded=float(refunded or 0),
        return_rate=round(total_returns / order_count * 100, 1) if order_count else 0.0,
    )


@router.post("/", response_model=ReturnResponse)
async def create_return(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    return_in: ReturnCreate,
) -> Any:
    """
    创建退货单

    退货数量按订单行校验：本次 + 之前已申请（未驳回）的数量 ≤ 订购数量
    """
    result = await db.execute(
        select(Order).options(selectinload(Order.items))
        .where(Order.id == return_in.order_id, Order.tenant_id == tenant.id)
    )
    order = result.scalar_one_or_none()
    if not order:
        raise HTTPException(status_code=404, detail="订单不存在")
    if order.status not in RETURNABLE_ORDER_STATUSES:
        raise HTTPException(status_code=400, detail=f"订单状态为 {order.status}，不能退货")

    ordered: Dict[int, Decimal] = {}
    prices: Dict[int, Decimal] = {}
    for item in order.items:
        ordered[item.product_id] = ordered.get(item.product_id, Decimal("0")) + item.quantity
        prices.setdefault(item.product_id, item.unit_price)

    previous = await already_returned(db, order.id)
    requested: Dict[int, Decimal] = {}
    for line in return_in.items:
        if line.product_id not in ordered:
            raise HTTPException(status_code=400, detail=f"商品 {line.product_id} 不在该订单中")
        requested[line.product_id] = requested.get(line.product_id, Decimal("0")) + line.quantity

    for product_id, qty in requested.items():
        allowed = ordered[product_id] - previous.get(product_id, Decimal("0"))
        if qty > allowed:
            raise HTTPException(
                status_code=400,
                detail=f"商品 {product_id} 退货数量 {qty} 超过可退数量 {allowed}"
            )

    items_total = sum((line.quantity * prices[line.product_id] for line in return_in.items), Decimal("0"))
    if return_in.restocking_fee > items_total:
        raise HTTPException(status_code=400, detail="重新上架费不能超过退货金额")

    ra = ReturnAuthorization(
        tenant_id=tenant.id,
        ra_number=await generate_ra_number(db),
        order_id=order.id,
        customer_id=order.customer_id,
        status="pending",
        reason=return_in.reason,
        restocking_fee=return_in.restocking_fee,
        notes=return_in.notes,
        created_at=datetime.utcnow(),
    )
    for line in return_in.items:
        ra.items.append(ReturnItem(
            product_id=line.product_id,
            quantity=line.quantity,
            unit_price=prices[line.product_id],
            condition=line.condition,
        ))
    db.add(ra)
    await db.flush()

    await create_audit_log(
        db, tenant.id, "create", "return", resource_id=ra.id, resource_name=ra.ra_number,
        description=f"订单 {order.order_number} 申请退货 ${items_total:,.2f}",
    )
    await db.commit()

    logger.info(f"↩️ 新退货单: {ra.ra_number} (订单 {order.order_number})")
    return build_return_response(await get_tenant_return(db, tenant, ra.id))


@router.get("/{return_id}", response_model=ReturnResponse)
async def get_return(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    return_id: int,
) -> Any:
    return build_return_response(await get_tenant_return(db, tenant, return_id))


@router.post("/{return_id}/approve", response_model=ReturnResponse)
async def approve_return(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    return_id: int,
) -> Any:
    """审批通过"""
    ra = await get_tenant_return(db, tenant, return_id)
    ensure_status(ra, "pending", "审批")

    ra.status = "approved"
    ra.approved_at = datetime.utcnow()
    await create_audit_log(
        db, tenant.id, "approve", "return", resource_id=ra.id, resource_name=ra.ra_number,
    )
    await db.commit()
    return build_return_response(await get_tenant_return(db, tenant, return_id))


@router.post("/{return_id}/reject", response_model=ReturnResponse)
async def reject_return(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    return_id: int,
    reject_in: Optional[ReturnReject] = None,
) -> Any:
    """驳回"""
    ra = await get_tenant_return(db, tenant, return_id)
    ensure_status(ra, "pending", "驳回")

    ra.status = "rejected"
    if reject_in and reject_in.notes:
        ra.notes = "\n".join(n for n in [ra.notes, reject_in.notes] if n)
    await create_audit_log(
        db, tenant.id, "reject", "return", resource_id=ra.id, resource_name=ra.ra_number,
        description=reject_in.notes if reject_in else None,
    )
    await db.commit()
    return build_return_response(await get_tenant_return(db, tenant, return_id))


@router.post("/{return_id}/receive", response_model=ReturnResponse)
async def receive_return(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    return_id: int,
) -> Any:
    """收货：可再售的回库，损坏的记损耗流水"""
    ra = await get_tenant_return(db, tenant, return_id)
    ensure_status(ra, "approved", "收货")

    for item in ra.items:
        product = await db.get(Product, item.product_id)
        if not product:
            continue
        if item.condition == "resellable":
            await change_stock(db, product, item.quantity, "return", reason="退货入库", reference=ra.ra_number)
        else:
            # 损坏的退货不入库，只留一条数量为 0 的损耗流水备查
            await change_stock(
                db, product, Decimal("0"), "damage",
                reason=f"退货损坏 {item.quantity}", reference=ra.ra_number,
            )

    ra.status = "received"
    ra.received_at = datetime.utcnow()
    await create_audit_log(
        db, tenant.id, "receive", "return", resource_id=ra.id, resource_name=ra.ra_number,
    )
    await db.commit()
    return build_return_response(await get_tenant_return(db, tenant, return_id))


@router.post("/{return_id}/refund", response_model=ReturnResponse)
async def refund_return(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    return_id: int,
) -> Any:
    """退款：退款金额 = 退货金额 - 重新上架费，冲减客户欠款"""
    ra = await get_tenant_return(db, tenant, return_id)
    ensure_status(ra, "received", "退款")

    refund = max(Decimal("0"), ra.items_total - (ra.restocking_fee or Decimal("0")))
    ra.refund_amount = refund
    ra.status = "refunded"
    ra.refunded_at = datetime.utcnow()
    if ra.customer:
        ra.customer.reduce_balance(refund)

    await create_audit_log(
        db, tenant.id, "refund", "return", resource_id=ra.id, resource_name=ra.ra_number,
        description=f"退款 ${refund:,.2f}", new_value={"refund_amount": float(refund)},
    )
    await db.commit()

    logger.info(f"💸 退款: {ra.ra_number} ${refund:,.2f}")
    return build_return_response(await get_tenant_return(db, tenant, return_id))
