"""
商品/库存模型
一条 Product 即一个库存单品，stock_quantity 为当前库存（磅或件）
库存的每次变动都写一条 InventoryMovement 流水
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, DECIMAL, UniqueConstraint
from sqlalchemy.orm import relationship
from canopy.db.base import Base


class Product(Base):
    """商品 - 带库存数量"""
    __tablename__ = "products"
    __table_args__ = (
        UniqueConstraint('tenant_id', 'sku', name='uq_tenant_sku'),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id"), index=True, comment="供应商")

    name = Column(String(120), nullable=False, index=True, comment="名称")
    sku = Column(String(60), index=True, comment="SKU")
    category = Column(String(60), index=True, comment="分类：flower/concentrate/edible...")
    unit = Column(String(20), default="lbs", comment="计量单位")

    stock_quantity = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"), comment="当前库存")
    cost_per_unit = Column(DECIMAL(12, 2), default=Decimal("0.00"), comment="单位成本")
    price = Column(DECIMAL(12, 2), default=Decimal("0.00"), comment="售价")

    # 低于该值预警，为空时按 10 计算
    min_stock_level = Column(DECIMAL(12, 2), comment="最低库存")
    warehouse_location = Column(String(60), index=True, comment="存放仓库")

    description = Column(Text, comment="描述")
    is_active = Column(Boolean, default=True, comment="是否上架")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    vendor = relationship("Vendor", back_populates="products")

    def __repr__(self):
        return f"<Product {self.sku}: {self.name} = {self.stock_quantity}>"

    @property
    def stock_value(self) -> Decimal:
        """库存金额 = 数量 × 成本"""
        return (self.stock_quantity or Decimal("0")) * (self.cost_per_unit or Decimal("0"))


class InventoryMovement(Base):
    """库存流水"""
    __tablename__ = "inventory_movements"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)

    # receive: 入库
    # sale: 销售出库
    # adjust: 盘点调整
    # front: 寄售出库
    # return: 退货入库
    # damage: 损耗
    # recall: 寄售召回入库
    movement_type = Column(String(20), nullable=False, index=True, comment="流水类型")

    quantity_change = Column(DECIMAL(12, 2), nullable=False, comment="变动数量")
    quantity_before = Column(DECIMAL(12, 2), nullable=False, comment="变动前")
    quantity_after = Column(DECIMAL(12, 2), nullable=False, comment="变动后")

    reason = Column(String(200), comment="原因")
    # 关联单据号（订单号、寄售ID、退货单号）
    reference = Column(String(60), index=True, comment="关联单据")

    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    product = relationship("Product")

    def __repr__(self):
        return f"<InventoryMovement {self.product_id}: {self.movement_type} {self.quantity_change}>"

    @property
    def type_display(self) -> str:
        type_map = {
            "receive": "入库",
            "sale": "销售",
            "adjust": "调整",
            "front": "寄售",
            "return": "退货",
            "damage": "损耗",
            "recall": "召回",
        }
        return type_map.get(self.movement_type, self.movement_type)
