"""
Webhook 配置模型
只保存订阅配置，投递由外部平台负责
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON
from canopy.db.base import Base


class Webhook(Base):
    """Webhook 订阅"""
    __tablename__ = "webhooks"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)

    name = Column(String(120), nullable=False, comment="名称")
    url = Column(String(500), nullable=False, comment="回调地址")
    events = Column(JSON, nullable=False, default=list, comment="订阅事件")
    secret = Column(String(100), nullable=False, comment="签名密钥")

    # active / inactive
    status = Column(String(20), nullable=False, default="active", index=True, comment="状态")
    description = Column(Text, comment="说明")
    last_triggered_at = Column(DateTime, comment="最近触发时间")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Webhook {self.id}: {self.url} ({self.status})>"

    @property
    def is_active(self) -> bool:
        return self.status == "active"
