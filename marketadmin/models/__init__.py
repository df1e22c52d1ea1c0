# Import all models here so Alembic's env.py can discover them via Base.metadata
from marketadmin.models.base import Base  # noqa: F401
from marketadmin.models.user import User  # noqa: F401
from marketadmin.models.marketplace import Market, Vendor, Buyer, ProductCategory, Product, Listing  # noqa: F401
from marketadmin.models.order import Order, OrderItem, OrderStatusHistory  # noqa: F401
from marketadmin.models.audit import AuditLogEntry  # noqa: F401
from marketadmin.models.notification import Notification  # noqa: F401
