"""V1 API 路由聚合"""
from fastapi import APIRouter

from canopy.api.api_v1.endpoints import (
    tenants, customers, vendors, inventory, batches, orders, payments,
    fronted, returns, webhooks, financial, dashboard, audit_logs, system,
)

api_router = APIRouter()

# 租户
api_router.include_router(tenants.router, prefix="/tenants", tags=["租户管理"])

# 核心业务
api_router.include_router(customers.router, prefix="/customers", tags=["客户管理"])
api_router.include_router(vendors.router, prefix="/vendors", tags=["供应商管理"])
api_router.include_router(inventory.router, prefix="/inventory", tags=["库存管理"])
api_router.include_router(batches.router, prefix="/batches", tags=["批次质检"])
api_router.include_router(orders.router, prefix="/orders", tags=["订单管理"])
api_router.include_router(payments.router, prefix="/payments", tags=["收款管理"])
api_router.include_router(fronted.router, prefix="/fronted", tags=["寄售管理"])
api_router.include_router(returns.router, prefix="/returns", tags=["退货管理"])

# 报表
api_router.include_router(financial.router, prefix="/financial", tags=["财务报表"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["管理总览"])

# 系统
api_router.include_router(webhooks.router, prefix="/webhooks", tags=["Webhook"])
api_router.include_router(audit_logs.router, prefix="/audit-logs", tags=["操作日志"])
api_router.include_router(system.router, prefix="/system", tags=["系统管理"])
