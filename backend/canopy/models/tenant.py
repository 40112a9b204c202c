"""
租户模型 - 每个门店/批发商是一个租户
所有业务数据都按 tenant_id 隔离
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime
from canopy.db.base import Base


class Tenant(Base):
    """租户"""
    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, comment="名称")
    slug = Column(String(60), unique=True, nullable=False, index=True, comment="短标识")

    # active: 正常
    # suspended: 已停用（拒绝所有业务请求）
    status = Column(String(20), nullable=False, default="active", comment="状态")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Tenant {self.slug}: {self.status}>"

    @property
    def is_active(self) -> bool:
        return self.status == "active"
