"""
批次与质检模型
每个到货批次记录 THC/CBD 含量、到期日和质检状态
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, DECIMAL, UniqueConstraint
from sqlalchemy.orm import relationship
from canopy.db.base import Base


class Batch(Base):
    """库存批次"""
    __tablename__ = "inventory_batches"
    __table_args__ = (
        UniqueConstraint('tenant_id', 'batch_number', name='uq_tenant_batch_number'),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)

    batch_number = Column(String(60), nullable=False, index=True, comment="批次号")
    quantity_lbs = Column(DECIMAL(12, 2), nullable=False, default=Decimal("0.00"), comment="数量（磅）")
    received_date = Column(DateTime, default=datetime.utcnow, comment="到货日期")
    expiration_date = Column(DateTime, comment="到期日")
    warehouse_location = Column(String(60), comment="存放位置")

    thc_percent = Column(DECIMAL(5, 2), comment="THC 含量 %")
    cbd_percent = Column(DECIMAL(5, 2), comment="CBD 含量 %")

    # pending: 待检
    # passed: 合格
    # failed: 不合格
    # quarantined: 隔离（检出污染物）
    qc_status = Column(String(20), default="pending", index=True, comment="质检状态")

    # active / expired / depleted
    status = Column(String(20), default="active", index=True, comment="批次状态")
    notes = Column(Text, comment="备注")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    product = relationship("Product")
    quality_checks = relationship(
        "QualityCheck", back_populates="batch",
        cascade="all, delete-orphan", order_by="QualityCheck.checked_at.desc()"
    )

    def __repr__(self):
        return f"<Batch {self.batch_number}: {self.qc_status}>"


class QualityCheck(Base):
    """质检记录"""
    __tablename__ = "quality_checks"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    batch_id = Column(Integer, ForeignKey("inventory_batches.id"), nullable=False, index=True)

    # lab_test / visual / moisture / contaminant
    check_type = Column(String(20), nullable=False, comment="检测类型")
    # pass / fail
    result = Column(String(10), nullable=False, comment="结论")

    thc_percent = Column(DECIMAL(5, 2), comment="THC %")
    cbd_percent = Column(DECIMAL(5, 2), comment="CBD %")
    moisture_percent = Column(DECIMAL(5, 2), comment="含水率 %")
    contaminants_detected = Column(Boolean, default=False, comment="是否检出污染物")

    inspector = Column(String(60), comment="检验员")
    notes = Column(Text, comment="备注")
    checked_at = Column(DateTime, default=datetime.utcnow, index=True)

    batch = relationship("Batch", back_populates="quality_checks")

    def __repr__(self):
        return f"<QualityCheck {self.batch_id}: {self.check_type}={self.result}>"
