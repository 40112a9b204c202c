"""
客户模型 - 零售/批发客户
记录信用额度、欠款余额和消费统计，CRM 的 RFM 评分基于这些字段计算
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, DECIMAL
from sqlalchemy.orm import relationship
from canopy.db.base import Base


class Customer(Base):
    """客户"""
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)

    # 基本信息
    first_name = Column(String(50), comment="名")
    last_name = Column(String(50), comment="姓")
    business_name = Column(String(120), index=True, comment="公司名称（批发客户）")

    # retail: 零售客户
    # wholesale: 批发客户
    customer_type = Column(String(20), nullable=False, default="retail", comment="客户类型")

    # 联系信息
    email = Column(String(120), index=True, comment="邮箱")
    phone = Column(String(30), comment="电话")
    address = Column(String(255), comment="地址")

    # 信用
    credit_limit = Column(DECIMAL(12, 2), default=Decimal("0.00"), comment="信用额度")
    outstanding_balance = Column(DECIMAL(12, 2), default=Decimal("0.00"), comment="当前欠款")
    payment_terms = Column(Integer, default=7, comment="账期（天）")

    # 消费统计
    total_spent = Column(DECIMAL(12, 2), default=Decimal("0.00"), comment="累计消费")
    order_count = Column(Integer, default=0, comment="订单数")
    loyalty_points = Column(Integer, default=0, comment="积分")
    last_purchase_at = Column(DateTime, comment="最近购买时间")
    last_payment_date = Column(DateTime, comment="最近付款时间")

    # active / inactive / blocked
    status = Column(String(20), default="active", index=True, comment="状态")
    notes = Column(Text, comment="备注")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    orders = relationship("Order", back_populates="customer")

    def __repr__(self):
        return f"<Customer {self.id}: {self.display_name}>"

    @property
    def display_name(self) -> str:
        """显示名称：公司名优先，其次姓名"""
        if self.business_name:
            return self.business_name
        name = " ".join(p for p in [self.first_name, self.last_name] if p)
        return name or "Unknown"

    @property
    def available_credit(self) -> Decimal:
        """可用额度 = 信用额度 - 当前欠款"""
        return (self.credit_limit or Decimal("0")) - (self.outstanding_balance or Decimal("0"))

    def reduce_balance(self, amount: Decimal) -> None:
        """冲减欠款，不低于 0"""
        current = self.outstanding_balance or Decimal("0")
        self.outstanding_balance = max(Decimal("0"), current - amount)
