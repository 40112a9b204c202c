"""
操作日志模型 - 记录系统中的所有重要操作
用于审计追踪和问题排查
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from canopy.db.base import Base


class AuditLog(Base):
    """操作日志"""
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)

    # create / update / delete / confirm / cancel / payment / adjust / approve / reject / receive / refund
    action = Column(String(20), nullable=False, index=True, comment="操作类型")

    # customer / vendor / product / batch / order / payment / fronted / return / webhook
    resource_type = Column(String(50), nullable=False, index=True, comment="资源类型")
    resource_id = Column(Integer, index=True, comment="资源ID")
    resource_name = Column(String(120), comment="资源名称")
    description = Column(String(500), comment="操作描述")

    old_value = Column(JSON, comment="修改前")
    new_value = Column(JSON, comment="修改后")

    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f"<AuditLog {self.action} {self.resource_type}:{self.resource_id}>"

    @property
    def action_display(self) -> str:
        action_map = {
            "create": "创建",
            "update": "更新",
            "delete": "删除",
            "confirm": "确认",
            "cancel": "取消",
            "payment": "收款",
            "adjust": "调整",
            "approve": "审批",
            "reject": "驳回",
            "receive": "收货",
            "refund": "退款",
        }
        return action_map.get(self.action, self.action)

    @property
    def resource_type_display(self) -> str:
        type_map = {
            "customer": "客户",
            "vendor": "供应商",
            "product": "商品",
            "batch": "批次",
            "order": "订单",
            "payment": "收款",
            "fronted": "寄售",
            "return": "退货",
            "webhook": "Webhook",
        }
        return type_map.get(self.resource_type, self.resource_type)
