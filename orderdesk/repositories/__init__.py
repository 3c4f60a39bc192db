"""Tenant-scoped repositories: the single persistence interface per entity."""
from orderdesk.repositories.product_repository import ProductRepository
from orderdesk.repositories.order_repository import OrderRepository
from orderdesk.repositories.discount_repository import DiscountRepository
from orderdesk.repositories.client_repository import ClientRepository, UserRepository

__all__ = [
    'ProductRepository', 'OrderRepository', 'DiscountRepository',
    'ClientRepository', 'UserRepository',
]
