# models包初始化文件

from canopy.models.tenant import Tenant
from canopy.models.customer import Customer
from canopy.models.vendor import Vendor, VendorRating
from canopy.models.product import Product, InventoryMovement
from canopy.models.batch import Batch, QualityCheck
from canopy.models.order import Order, OrderItem
from canopy.models.payment import Payment, CollectionActivity
from canopy.models.fronted import FrontedInventory
from canopy.models.returns import ReturnAuthorization, ReturnItem
from canopy.models.webhook import Webhook
from canopy.models.audit_log import AuditLog

__all__ = [
    "Tenant",
    "Customer",
    "Vendor",
    "VendorRating",
    "Product",
    "InventoryMovement",
    "Batch",
    "QualityCheck",
    "Order",
    "OrderItem",
    "Payment",
    "CollectionActivity",
    "FrontedInventory",
    "ReturnAuthorization",
    "ReturnItem",
    "Webhook",
    "AuditLog",
]
