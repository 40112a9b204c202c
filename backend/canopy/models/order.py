"""
订单模型 - 批发/零售订单
订单由六步向导创建（客户 → 商品 → 付款 → 配送 → 备注 → 确认）
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, DECIMAL
from sqlalchemy.orm import relationship
from canopy.db.base import Base


class Order(Base):
    """订单"""
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)

    # 订单号：ORD-20250604-0001
    order_number = Column(String(50), unique=True, nullable=False, index=True, comment="订单号")
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)

    # pending: 待确认
    # confirmed: 已确认
    # delivered: 已送达
    # completed: 已完成
    # cancelled: 已取消
    status = Column(String(20), nullable=False, default="pending", index=True, comment="状态")

    # 金额
    total_amount = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"), comment="订单金额")
    total_cost = Column(DECIMAL(12, 2), default=Decimal("0.00"), comment="成本合计")
    amount_paid = Column(DECIMAL(12, 2), default=Decimal("0.00"), comment="已付金额")

    # cash: 现结
    # credit: 赊账
    # partial: 部分付款
    payment_method = Column(String(20), nullable=False, default="credit", comment="付款方式")
    # paid / unpaid / partial
    payment_status = Column(String(20), nullable=False, default="unpaid", index=True, comment="付款状态")
    payment_due_date = Column(DateTime, comment="付款到期日")

    # 配送：runner(跑腿送货) / pickup(自提)
    delivery_method = Column(String(20), default="runner", comment="配送方式")
    runner_name = Column(String(60), comment="送货员")
    pickup_location = Column(String(60), comment="自提仓库")
    scheduled_time = Column(DateTime, comment="预约时间")
    collection_amount = Column(DECIMAL(12, 2), default=Decimal("0.00"), comment="送货时代收旧欠款")
    delivery_address = Column(String(255), comment="送货地址")

    delivery_notes = Column(Text, comment="给送货员的备注")
    internal_notes = Column(Text, comment="内部备注")

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    customer = relationship("Customer", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Order {self.order_number}: {self.status} ${self.total_amount}>"

    @property
    def balance_due(self) -> Decimal:
        """未付金额"""
        return max(Decimal("0"), (self.total_amount or Decimal("0")) - (self.amount_paid or Decimal("0")))

    def refresh_payment_status(self) -> None:
        """根据已付金额重新计算付款状态"""
        paid = self.amount_paid or Decimal("0")
        if paid >= (self.total_amount or Decimal("0")):
            self.payment_status = "paid"
        elif paid > 0:
            self.payment_status = "partial"
        else:
            self.payment_status = "unpaid"


class OrderItem(Base):
    """订单明细 - 商品名称、单价、成本均为下单时快照"""
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)

    product_name = Column(String(120), nullable=False, comment="商品名称快照")
    quantity = Column(DECIMAL(12, 2), nullable=False, comment="数量")
    unit_price = Column(DECIMAL(12, 2), nullable=False, comment="单价")
    unit_cost = Column(DECIMAL(12, 2), default=Decimal("0.00"), comment="单位成本快照")
    subtotal = Column(DECIMAL(12, 2), nullable=False, comment="小计")

    order = relationship("Order", back_populates="items")
    product = relationship("Product")
