"""
退货授权（RA）模型
流程：pending → approved → received → refunded，或 pending → rejected
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, DECIMAL
from sqlalchemy.orm import relationship
from canopy.db.base import Base


class ReturnAuthorization(Base):
    """退货单"""
    __tablename__ = "return_authorizations"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)

    # RA-20250604-001
    ra_number = Column(String(50), unique=True, nullable=False, index=True, comment="退货单号")
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)

    # pending / approved / rejected / received / refunded
    status = Column(String(20), nullable=False, default="pending", index=True, comment="状态")
    reason = Column(String(255), comment="退货原因")
    restocking_fee = Column(DECIMAL(12, 2), default=Decimal("0.00"), comment="重新上架费")
    refund_amount = Column(DECIMAL(12, 2), default=Decimal("0.00"), comment="退款金额")
    notes = Column(Text, comment="备注")

    approved_at = Column(DateTime, comment="审批时间")
    received_at = Column(DateTime, comment="收货时间")
    refunded_at = Column(DateTime, comment="退款时间")
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    order = relationship("Order")
    customer = relationship("Customer")
    items = relationship("ReturnItem", back_populates="return_authorization", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<ReturnAuthorization {self.ra_number}: {self.status}>"

    @property
    def items_total(self) -> Decimal:
        return sum((i.quantity * i.unit_price for i in self.items), Decimal("0"))


class ReturnItem(Base):
    """退货明细"""
    __tablename__ = "return_items"

    id = Column(Integer, primary_key=True, index=True)
    return_id = Column(Integer, ForeignKey("return_authorizations.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)

    quantity = Column(DECIMAL(12, 2), nullable=False, comment="数量")
    unit_price = Column(DECIMAL(12, 2), nullable=False, comment="单价（取自原订单）")
    # resellable: 可再售（收货时回库）
    # damaged: 损坏（记损耗）
    condition = Column(String(20), nullable=False, default="resellable", comment="货品状况")

    return_authorization = relationship("ReturnAuthorization", back_populates="items")
    product = relationship("Product")
