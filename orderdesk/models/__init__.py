"""Models package - exports all SQLAlchemy models."""
# SaaS Core Models
from orderdesk.models.tenant import Tenant
from orderdesk.models.app_user import AppUser
from orderdesk.models.user_tenant import UserTenant, UserRole

# Business Models
from orderdesk.models.client import Client
from orderdesk.models.product import Product
from orderdesk.models.discount import Discount
from orderdesk.models.order import Order, OrderStatus
from orderdesk.models.order_item import OrderItem

__all__ = [
    # SaaS Core
    'Tenant', 'AppUser', 'UserTenant', 'UserRole',
    # Business
    'Client', 'Product', 'Discount', 'Order', 'OrderStatus', 'OrderItem',
]
