"""
收款记录 + 催收记录
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, DECIMAL
from sqlalchemy.orm import relationship
from canopy.db.base import Base


class Payment(Base):
    """客户收款 - 可关联订单或寄售记录"""
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), index=True)
    fronted_inventory_id = Column(Integer, ForeignKey("fronted_inventory.id"), index=True)

    amount = Column(DECIMAL(12, 2), nullable=False, comment="金额")

    # cash / card / bank_transfer / crypto / other
    payment_method = Column(String(20), nullable=False, default="cash", comment="付款方式")

    # order: 订单付款
    # fronted: 寄售回款
    # balance: 冲抵欠款
    payment_type = Column(String(20), nullable=False, default="balance", index=True, comment="付款类型")

    reference = Column(String(100), comment="参考号")
    notes = Column(Text, comment="备注")
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    customer = relationship("Customer")
    order = relationship("Order")

    def __repr__(self):
        return f"<Payment {self.id}: {self.payment_type} ${self.amount}>"


class CollectionActivity(Base):
    """催收记录"""
    __tablename__ = "collection_activities"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)

    # call / text / invoice / reminder
    activity_type = Column(String(20), nullable=False, comment="方式")
    notes = Column(Text, comment="备注")
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    customer = relationship("Customer")
