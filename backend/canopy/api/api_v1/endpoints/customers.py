"""客户管理API - 客户 CRUD + CRM（生命周期 / RFM / 分群）"""

from typing import Any, Optional
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from canopy.core.deps import get_db, get_current_tenant
from canopy.core.logging_config import get_logger
from canopy.models.customer import Customer
from canopy.models.order import Order
from canopy.models.payment import Payment
from canopy.models.tenant import Tenant
from canopy.schemas.customer import (
    CustomerCreate, CustomerUpdate, CustomerResponse, CustomerListResponse,
    CRMCustomerResponse, CRMListResponse, CRMDashboard,
)
from canopy.schemas.order import OrderListResponse
from canopy.schemas.payment import PaymentListResponse
from canopy.services.customer_analytics import (
    LIFECYCLE_STAGES, SEGMENTS, days_since, enrich_customer,
)
from canopy.api.api_v1.endpoints.audit_logs import create_audit_log
from canopy.api.api_v1.endpoints.orders import build_order_response
from canopy.api.api_v1.endpoints.payments import build_payment_response

router = APIRouter()
logger = get_logger(__name__)


async def get_tenant_customer(db: AsyncSession, tenant: Tenant, customer_id: int) -> Customer:
    """获取当前租户下的客户，不存在返回 404"""
    customer = await db.get(Customer, customer_id)
    if not customer or customer.tenant_id != tenant.id:
        raise HTTPException(status_code=404, detail="客户不存在")
    return customer


def build_crm_response(customer: Customer, now: datetime) -> CRMCustomerResponse:
    """客户 + CRM 派生字段"""
    resp = CustomerResponse.model_validate(customer).model_dump()
    resp.update(enrich_customer(customer, now))
    resp["days_since_purchase"] = days_since(customer.last_purchase_at, now)
    return CRMCustomerResponse(**resp)


@router.get("/", response_model=CustomerListResponse)
async def list_customers(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None, description="姓名/公司/邮箱/电话"),
    status: Optional[str] = Query(None),
    customer_type: Optional[str] = Query(None),
) -> Any:
    """获取客户列表"""
    query = select(Customer)
    conditions = [Customer.tenant_id == tenant.id]

    if status:
        conditions.append(Customer.status == status)
    if customer_type:
        conditions.append(Customer.customer_type == customer_type)
    if search:
        conditions.append(or_(
            Customer.first_name.contains(search),
            Customer.last_name.contains(search),
            Customer.business_name.contains(search),
            Customer.email.contains(search),
            Customer.phone.contains(search),
        ))

    query = query.where(and_(*conditions))

    # 统计总数
    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    # 分页查询
    query = query.order_by(Customer.created_at.desc(), Customer.id.desc())
    query = query.offset((page - 1) * limit).limit(limit)
    customers = (await db.execute(query)).scalars().all()

    return CustomerListResponse(
        data=[CustomerResponse.model_validate(c) for c in customers],
        total=total, page=page, limit=limit,
    )


@router.get("/crm", response_model=CRMListResponse)
async def list_crm_customers(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    lifecycle: Optional[str] = Query(None, description="生命周期阶段"),
    segment: Optional[str] = Query(None, description="客户分群"),
    search: Optional[str] = Query(None),
) -> Any:
    """CRM 客户列表 - 生命周期和分群是计算字段，在内存中筛选"""
    if lifecycle and lifecycle not in LIFECYCLE_STAGES:
        raise HTTPException(status_code=400, detail=f"未知生命周期阶段: {lifecycle}")
    if segment and segment not in SEGMENTS:
        raise HTTPException(status_code=400, detail=f"未知客户分群: {segment}")

    conditions = [Customer.tenant_id == tenant.id]
    if search:
        conditions.append(or_(
            Customer.first_name.contains(search),
            Customer.last_name.contains(search),
            Customer.business_name.contains(search),
            Customer.email.contains(search),
        ))
    result = await db.execute(
        select(Customer).where(and_(*conditions)).order_by(Customer.total_spent.desc(), Customer.id)
    )

    now = datetime.utcnow()
    rows = [build_crm_response(c, now) for c in result.scalars().all()]
    if lifecycle:
        rows = [r for r in rows if r.lifecycle == lifecycle]
    if segment:
        rows = [r for r in rows if r.segment == segment]

    start = (page - 1) * limit
    return CRMListResponse(data=rows[start:start + limit], total=len(rows), page=page, limit=limit)


@router.get("/crm/dashboard", response_model=CRMDashboard)
async def get_crm_dashboard(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
) -> Any:
    """CRM 总览：各生命周期、各分群人数，本月新增，平均客户价值"""
    result = await db.execute(select(Customer).where(Customer.tenant_id == tenant.id))
    customers = result.scalars().all()

    now = datetime.utcnow()
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    by_lifecycle = {stage: 0 for stage in LIFECYCLE_STAGES}
    by_segment = {seg: 0 for seg in SEGMENTS}
    for c in customers:
        info = enrich_customer(c, now)
        by_lifecycle[info["lifecycle"]] += 1
        by_segment[info["segment"]] += 1

    total_spent = sum(float(c.total_spent or 0) for c in customers)
    return CRMDashboard(
        total_customers=len(customers),
        new_this_month=sum(1 for c in customers if c.created_at and c.created_at >= month_start),
        avg_lifetime_value=round(total_spent / len(customers), 2) if customers else 0.0,
        by_lifecycle=by_lifecycle,
        by_segment=by_segment,
    )


@router.post("/", response_model=CustomerResponse)
async def create_customer(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    customer_in: CustomerCreate,
) -> Any:
    """创建客户"""
    customer = Customer(tenant_id=tenant.id, **customer_in.model_dump())
    db.add(customer)
    await db.flush()

    await create_audit_log(
        db, tenant.id, "create", "customer",
        resource_id=customer.id, resource_name=customer.display_name,
        description=f"新建客户 {customer.display_name}",
    )
    await db.commit()
    await db.refresh(customer)

    logger.info(f"👤 新客户: {customer.display_name} (tenant={tenant.id})")
    return CustomerResponse.model_validate(customer)


@router.get("/{customer_id}", response_model=CRMCustomerResponse)
async def get_customer(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    customer_id: int,
) -> Any:
    """获取客户详情（带 CRM 字段）"""
    customer = await get_tenant_customer(db, tenant, customer_id)
    return build_crm_response(customer, datetime.utcnow())


@router.put("/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    customer_id: int,
    customer_in: CustomerUpdate,
) -> Any:
    """更新客户"""
    customer = await get_tenant_customer(db, tenant, customer_id)

    update_data = customer_in.model_dump(exclude_unset=True)
    old_value = {k: str(getattr(customer, k)) for k in update_data}
    for field, value in update_data.items():
        setattr(customer, field, value)

    if not (customer.business_name or customer.first_name or customer.last_name):
        raise HTTPException(status_code=400, detail="姓名和公司名称至少填写一个")

    await create_audit_log(
        db, tenant.id, "update", "customer",
        resource_id=customer.id, resource_name=customer.display_name,
        old_value=old_value, new_value={k: str(v) for k, v in update_data.items()},
    )
    await db.commit()
    await db.refresh(customer)
    return CustomerResponse.model_validate(customer)


@router.delete("/{customer_id}")
async def delete_customer(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    customer_id: int,
) -> Any:
    """删除客户 - 有订单的客户不能删除"""
    customer = await get_tenant_customer(db, tenant, customer_id)

    orders_count = (await db.execute(
        select(func.count(Order.id)).where(Order.customer_id == customer_id)
    )).scalar() or 0
    if orders_count > 0:
        raise HTTPException(
            status_code=400,
            detail=f"该客户已有 {orders_count} 个订单，无法删除"
        )

    await create_audit_log(
        db, tenant.id, "delete", "customer",
        resource_id=customer.id, resource_name=customer.display_name,
    )
    await db.delete(customer)
    await db.commit()

    return {"message": "删除成功"}


@router.get("/{customer_id}/orders", response_model=OrderListResponse)
async def list_customer_orders(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    customer_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> Any:
    """客户订单历史"""
    await get_tenant_customer(db, tenant, customer_id)

    condition = and_(Order.tenant_id == tenant.id, Order.customer_id == customer_id)
    total = (await db.execute(select(func.count(Order.id)).where(condition))).scalar() or 0

    result = await db.execute(
        select(Order)
        .options(selectinload(Order.items), selectinload(Order.customer))
        .where(condition)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * limit).limit(limit)
    )
    orders = result.scalars().all()
    return OrderListResponse(
        data=[build_order_response(o) for o in orders],
        total=total, page=page, limit=limit,
    )


@router.get("/{customer_id}/payments", response_model=PaymentListResponse)
async def list_customer_payments(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    customer_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> Any:
    """客户付款历史"""
    await get_tenant_customer(db, tenant, customer_id)

    condition = and_(Payment.tenant_id == tenant.id, Payment.customer_id == customer_id)
    total = (await db.execute(select(func.count(Payment.id)).where(condition))).scalar() or 0

    result = await db.execute(
        select(Payment)
        .options(selectinload(Payment.customer), selectinload(Payment.order))
        .where(condition)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .offset((page - 1) * limit).limit(limit)
    )
    payments = result.scalars().all()
    return PaymentListResponse(
        data=[build_payment_response(p) for p in payments],
        total=total, page=page, limit=limit,
    )
