"""Service layer. `build_services` wires one tenant's engine components."""
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from orderdesk.repositories import (
    ProductRepository, OrderRepository, DiscountRepository, ClientRepository, UserRepository
)
from orderdesk.services.cache_service import CacheService
from orderdesk.services.catalog_import_service import CatalogImportService
from orderdesk.services.conversion_registry import ConversionRegistry
from orderdesk.services.discount_service import DiscountService
from orderdesk.services.pricing_engine import OrderPricingEngine
from orderdesk.services.product_resolver import ProductResolver
from orderdesk.services.product_service import ProductService
from orderdesk.services.stats_aggregator import StatsAggregator


@dataclass
class Services:
    registry: ConversionRegistry
    resolver: ProductResolver
    engine: OrderPricingEngine
    stats: StatsAggregator
    discounts: DiscountService
    catalog: CatalogImportService
    products: ProductService
    clients: ClientRepository
    orders: OrderRepository


def build_services(session, tenant_id: int, config: Optional[Mapping[str, Any]] = None,
                   cache: Optional[CacheService] = None) -> Services:
    """Build every component over one session, bound to one tenant."""
    config = config or {}
    products = ProductRepository(session, tenant_id)
    orders = OrderRepository(session, tenant_id)
    discounts = DiscountRepository(session, tenant_id)
    clients = ClientRepository(session, tenant_id)
    users = UserRepository(session, tenant_id)
    on_change = cache.invalidate_stats if cache is not None else None
    
    resolver = ProductResolver(products, tier_limit=config.get('RESOLVER_TIER_LIMIT', 20))
    stats = StatsAggregator(orders, products, clients, users, cache=cache,
                            cache_ttl=config.get('CACHE_STATS_TTL'))
    engine = OrderPricingEngine(
        orders, products, discounts,
        clients=clients,
        users=users,
        resolver=resolver,
        lock_confirmed=config.get('LOCK_CONFIRMED_ORDERS', True),
        allow_reopen=config.get('ALLOW_ORDER_REOPEN', False),
        on_change=on_change,
    )
    registry = ConversionRegistry(products)
    return Services(
        registry=registry,
        resolver=resolver,
        engine=engine,
        stats=stats,
        discounts=DiscountService(discounts),
        catalog=CatalogImportService(products),
        products=ProductService(products, registry, on_change=on_change),
        clients=clients,
        orders=orders,
    )
