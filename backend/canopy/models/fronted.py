"""
寄售（Fronted）模型 - 先发货后收款
对账关系：售出 + 退回 + 损耗 <= 寄出数量，已收款 <= 应收金额
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, DECIMAL
from sqlalchemy.orm import relationship
from canopy.db.base import Base


class FrontedInventory(Base):
    """寄售记录"""
    __tablename__ = "fronted_inventory"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), index=True)
    fronted_to_customer_name = Column(String(120), comment="收货人名称快照")

    # 数量对账
    quantity_fronted = Column(DECIMAL(12, 2), nullable=False, comment="寄出数量")
    quantity_sold = Column(DECIMAL(12, 2), default=Decimal("0.00"), comment="已售")
    quantity_returned = Column(DECIMAL(12, 2), default=Decimal("0.00"), comment="已退回")
    quantity_damaged = Column(DECIMAL(12, 2), default=Decimal("0.00"), comment="损耗")

    # 金额
    cost_per_unit = Column(DECIMAL(12, 2), default=Decimal("0.00"), comment="单位成本")
    price_per_unit = Column(DECIMAL(12, 2), nullable=False, comment="约定单价")
    expected_revenue = Column(DECIMAL(12, 2), nullable=False, comment="应收金额")
    expected_profit = Column(DECIMAL(12, 2), default=Decimal("0.00"), comment="预计利润")
    payment_received = Column(DECIMAL(12, 2), default=Decimal("0.00"), comment="已收款")

    # pending / partial / paid
    payment_status = Column(String(20), default="pending", index=True, comment="收款状态")
    # active: 在外
    # completed: 已结清
    # recalled: 已召回
    # sold: 已转销售
    status = Column(String(20), default="active", index=True, comment="状态")

    dispatched_at = Column(DateTime, default=datetime.utcnow, index=True, comment="发出时间")
    payment_due_date = Column(DateTime, comment="约定回款日")
    completed_at = Column(DateTime, comment="结清时间")
    notes = Column(Text, comment="备注")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    product = relationship("Product")
    customer = relationship("Customer")

    def __repr__(self):
        return f"<FrontedInventory {self.id}: {self.quantity_fronted} -> {self.fronted_to_customer_name}>"

    @property
    def quantity_remaining(self) -> Decimal:
        """仍在外的数量"""
        return (
            (self.quantity_fronted or Decimal("0"))
            - (self.quantity_sold or Decimal("0"))
            - (self.quantity_returned or Decimal("0"))
            - (self.quantity_damaged or Decimal("0"))
        )

    @property
    def amount_owed(self) -> Decimal:
        """未收金额"""
        return max(Decimal("0"), (self.expected_revenue or Decimal("0")) - (self.payment_received or Decimal("0")))
