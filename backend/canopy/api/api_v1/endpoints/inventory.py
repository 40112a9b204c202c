"""库存管理API - 商品、库存调整、流水、库存分析"""

from typing import Any, List, Optional
from datetime import datetime
from decimal import Decimal
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func, and_, or_, delete
from sqlalchemy.ext.asyncio import AsyncSession

from canopy.core.deps import get_db, get_current_tenant
from canopy.core.logging_config import get_logger
from canopy.models.order import OrderItem
from canopy.models.product import Product, InventoryMovement
from canopy.models.tenant import Tenant
from canopy.models.vendor import Vendor
from canopy.schemas.inventory import (
    ProductCreate, ProductUpdate, ProductResponse, ProductListResponse,
    StockAdjust, MovementResponse, MovementListResponse,
    InventoryOverview, StockLevelBucket,
)
from canopy.services.inventory_analytics import (
    effective_min_level, stock_distribution, stock_level, summarize_inventory,
)
from canopy.api.api_v1.endpoints.audit_logs import create_audit_log

router = APIRouter()
logger = get_logger(__name__)


async def get_tenant_product(db: AsyncSession, tenant: Tenant, product_id: int) -> Product:
    product = await db.get(Product, product_id)
    if not product or product.tenant_id != tenant.id:
        raise HTTPException(status_code=404, detail="商品不存在")
    return product


async def change_stock(
    db: AsyncSession,
    product: Product,
    quantity_change: Decimal,
    movement_type: str,
    reason: str = None,
    reference: str = None) -> InventoryMovement:
    """
    变动库存并记录流水

    正数入库，负数出库；出库后库存不能为负
    """
    old_quantity = product.stock_quantity or Decimal("0")
    new_quantity = old_quantity + Decimal(quantity_change)
    if new_quantity < 0:
        raise HTTPException(
            status_code=400,
            detail=f"库存不足：{product.name} 当前库存 {old_quantity}，需要 {-Decimal(quantity_change)}"
        )

    product.stock_quantity = new_quantity
    movement = InventoryMovement(
        tenant_id=product.tenant_id,
        product_id=product.id,
        movement_type=movement_type,
        quantity_change=Decimal(quantity_change),
        quantity_before=old_quantity,
        quantity_after=new_quantity,
        reason=reason,
        reference=reference,
        created_at=datetime.utcnow(),
    )
    db.add(movement)
    return movement


def build_product_response(product: Product) -> ProductResponse:
    resp = ProductResponse.model_validate(product)
    resp.stock_level = stock_level(product.stock_quantity, product.min_stock_level)
    return resp


@router.get("/products", response_model=ProductListResponse)
async def list_products(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None, description="名称/SKU"),
    category: Optional[str] = Query(None),
    warehouse: Optional[str] = Query(None),
    vendor_id: Optional[int] = Query(None),
    is_active: Optional[bool] = Query(None),
) -> Any:
    """获取商品列表"""
    query = select(Product)
    conditions = [Product.tenant_id == tenant.id]

    if search:
        conditions.append(or_(Product.name.contains(search), Product.sku.contains(search)))
    if category:
        conditions.append(Product.category == category)
    if warehouse:
        conditions.append(Product.warehouse_location == warehouse)
    if vendor_id:
        conditions.append(Product.vendor_id == vendor_id)
    if is_active is not None:
        conditions.append(Product.is_active == is_active)

    query = query.where(and_(*conditions))

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    query = query.order_by(Product.name, Product.id)
    query = query.offset((page - 1) * limit).limit(limit)
    products = (await db.execute(query)).scalars().all()

    return ProductListResponse(
        data=[build_product_response(p) for p in products],
        total=total, page=page, limit=limit,
    )


@router.post("/products", response_model=ProductResponse)
async def create_product(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    product_in: ProductCreate,
) -> Any:
    """创建商品，期初库存记一条入库流水"""
    if product_in.sku:
        existing = await db.execute(
            select(Product.id).where(Product.tenant_id == tenant.id, Product.sku == product_in.sku)
        )
        if existing.scalar_one_or_none():
            raise HTTPException(status_code=400, detail=f"SKU {product_in.sku} 已存在")

    if product_in.vendor_id:
        vendor = await db.get(Vendor, product_in.vendor_id)
        if not vendor or vendor.tenant_id != tenant.id:
            raise HTTPException(status_code=404, detail="供应商不存在")

    data = product_in.model_dump()
    opening = data.pop("stock_quantity")
    product = Product(tenant_id=tenant.id, stock_quantity=Decimal("0"), **data)
    db.add(product)
    await db.flush()

    if opening > 0:
        await change_stock(db, product, opening, "receive", reason="期初库存")

    await create_audit_log(
        db, tenant.id, "create", "product",
        resource_id=product.id, resource_name=product.name,
    )
    await db.commit()
    await db.refresh(product)
    return build_product_response(product)


@router.get("/products/{product_id}", response_model=ProductResponse)
async def get_product(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    product_id: int,
) -> Any:
    """获取商品详情"""
    product = await get_tenant_product(db, tenant, product_id)
    return build_product_response(product)


@router.put("/products/{product_id}", response_model=ProductResponse)
async def update_product(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    product_id: int,
    product_in: ProductUpdate,
) -> Any:
    """更新商品"""
    product = await get_tenant_product(db, tenant, product_id)

    update_data = product_in.model_dump(exclude_unset=True)
    if update_data.get("sku") and update_data["sku"] != product.sku:
        existing = await db.execute(
            select(Product.id).where(Product.tenant_id == tenant.id, Product.sku == update_data["sku"])
        )
        if existing.scalar_one_or_none():
            raise HTTPException(status_code=400, detail=f"SKU {update_data['sku']} 已存在")

    for field, value in update_data.items():
        setattr(product, field, value)

    await create_audit_log(
        db, tenant.id, "update", "product",
        resource_id=product.id, resource_name=product.name,
        new_value={k: str(v) for k, v in update_data.items()},
    )
    await db.commit()
    await db.refresh(product)
    return build_product_response(product)


@router.delete("/products/{product_id}")
async def delete_product(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    product_id: int,
) -> Any:
    """删除商品 - 已被订单引用的商品只能下架"""
    product = await get_tenant_product(db, tenant, product_id)

    used = (await db.execute(
        select(func.count(OrderItem.id)).where(OrderItem.product_id == product_id)
    )).scalar() or 0
    if used > 0:
        raise HTTPException(status_code=400, detail=f"该商品已被 {used} 条订单明细引用，请改为下架")

    await db.execute(delete(InventoryMovement).where(InventoryMovement.product_id == product_id))

    await create_audit_log(
        db, tenant.id, "delete", "product",
        resource_id=product.id, resource_name=product.name,
    )
    await db.delete(product)
    await db.commit()
    return {"message": "删除成功"}


@router.post("/products/{product_id}/adjust", response_model=MovementResponse)
async def adjust_stock(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    product_id: int,
    adjust_in: StockAdjust,
) -> Any:
    """库存调整（入库、盘点、损耗）"""
    product = await get_tenant_product(db, tenant, product_id)

    change = adjust_in.quantity_change
    if adjust_in.movement_type == "damage" and change > 0:
        change = -change

    movement = await change_stock(
        db, product, change, adjust_in.movement_type,
        reason=adjust_in.reason, reference=adjust_in.reference,
    )
    await create_audit_log(
        db, tenant.id, "adjust", "product",
        resource_id=product.id, resource_name=product.name,
        old_value={"stock_quantity": float(movement.quantity_before)},
        new_value={"stock_quantity": float(movement.quantity_after)},
        description=adjust_in.reason,
    )
    await db.commit()
    await db.refresh(movement)

    logger.info(f"📦 库存调整: {product.name} {movement.quantity_before} → {movement.quantity_after}")
    return movement


@router.get("/products/{product_id}/movements", response_model=MovementListResponse)
async def list_movements(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    product_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    movement_type: Optional[str] = Query(None),
) -> Any:
    """商品库存流水"""
    await get_tenant_product(db, tenant, product_id)

    conditions = [InventoryMovement.tenant_id == tenant.id, InventoryMovement.product_id == product_id]
    if movement_type:
        conditions.append(InventoryMovement.movement_type == movement_type)

    total = (await db.execute(
        select(func.count(InventoryMovement.id)).where(and_(*conditions))
    )).scalar() or 0

    result = await db.execute(
        select(InventoryMovement)
        .where(and_(*conditions))
        .order_by(InventoryMovement.created_at.desc(), InventoryMovement.id.desc())
        .offset((page - 1) * limit).limit(limit)
    )
    return MovementListResponse(
        data=[MovementResponse.model_validate(m) for m in result.scalars().all()],
        total=total, page=page, limit=limit,
    )


async def _tenant_products(db: AsyncSession, tenant: Tenant):
    result = await db.execute(
        select(Product).where(Product.tenant_id == tenant.id, Product.is_active.is_(True))
    )
    return result.scalars().all()


@router.get("/overview", response_model=InventoryOverview)
async def get_inventory_overview(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
) -> Any:
    """库存总览：总量、总值、预警数、按仓库/分类汇总"""
    products = await _tenant_products(db, tenant)
    return summarize_inventory(list(products))


@router.get("/distribution", response_model=List[StockLevelBucket])
async def get_stock_distribution(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
) -> Any:
    """库存水位分布"""
    products = await _tenant_products(db, tenant)
    return stock_distribution(products)


@router.get("/low-stock", response_model=List[ProductResponse])
async def list_low_stock(
    *,
    db: AsyncSession = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    limit: int = Query(20, ge=1, le=100),
) -> Any:
    """库存不高于最低库存的商品，库存少的在前"""
    products = await _tenant_products(db, tenant)
    low = [
        p for p in products
        if (p.stock_quantity or 0) <= effective_min_level(p.min_stock_level)
    ]
    low.sort(key=lambda p: (p.stock_quantity or 0, p.id))
    return [build_product_response(p) for p in low[:limit]]
