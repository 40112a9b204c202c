"""
供应商模型 - 进货来源和合规信息（牌照）
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from canopy.db.base import Base


class Vendor(Base):
    """供应商"""
    __tablename__ = "vendors"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)

    name = Column(String(120), nullable=False, index=True, comment="名称")
    contact_name = Column(String(60), comment="联系人")
    email = Column(String(120), comment="邮箱")
    phone = Column(String(30), comment="电话")
    address = Column(String(255), comment="地址")

    # 合规：州牌照
    license_number = Column(String(60), comment="牌照号")
    license_expiration = Column(DateTime, comment="牌照到期日")

    payment_terms = Column(Integer, default=30, comment="账期（天）")

    # active / inactive
    status = Column(String(20), default="active", index=True, comment="状态")
    notes = Column(Text, comment="备注")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    ratings = relationship("VendorRating", back_populates="vendor", cascade="all, delete-orphan")
    products = relationship("Product", back_populates="vendor")

    def __repr__(self):
        return f"<Vendor {self.id}: {self.name}>"


class VendorRating(Base):
    """供应商评分 - 每次合作后打分，四个维度 1-5 分"""
    __tablename__ = "vendor_ratings"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=False, index=True)

    quality_score = Column(Integer, nullable=False, comment="质量")
    delivery_score = Column(Integer, nullable=False, comment="交付")
    communication_score = Column(Integer, nullable=False, comment="沟通")
    pricing_score = Column(Integer, nullable=False, comment="价格")
    notes = Column(Text, comment="备注")

    created_at = Column(DateTime, default=datetime.utcnow)

    vendor = relationship("Vendor", back_populates="ratings")

    @property
    def overall_score(self) -> float:
        return round(
            (self.quality_score + self.delivery_score + self.communication_score + self.pricing_score) / 4, 2
        )
