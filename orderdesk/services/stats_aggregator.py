"""
Sales statistics - Multi-Tenant.

Sales figures (pieces, value, commission) only count CONFIRMED orders;
quotations appear in the order counts. All aggregation happens in SQL
(GROUP BY over order x item x product); this module shapes the rows into
result objects and caches them per tenant.
"""
import logging
from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Callable, List, Optional

from orderdesk.repositories import OrderRepository, ProductRepository, ClientRepository, UserRepository
from orderdesk.services.cache_service import CacheService, STATS_MODULE
from orderdesk.utils.money import round2

logger = logging.getLogger(__name__)

NO_BRAND = 'No Brand'
DEFAULT_TOP_LIMIT = 20


@dataclass
class OrderStats:
    total: int
    confirmed: int
    quotation: int
    total_value: Decimal
    
    def to_dict(self):
        return {
            'total': self.total,
            'confirmed': self.confirmed,
            'quotation': self.quotation,
            'totalValue': str(self.total_value),
        }


@dataclass
class RepresentativeSales:
    id: int
    name: str
    total_orders: int
    confirmed_orders: int
    total_value: Decimal
    total_pieces: int
    total_commission: Decimal
    
    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'totalOrders': self.total_orders,
            'confirmedOrders': self.confirmed_orders,
            'totalValue': str(self.total_value),
            'totalPieces': self.total_pieces,
            'totalCommission': str(self.total_commission),
        }


@dataclass
class BrandSales:
    brand: str
    total_pieces: int
    total_value: Decimal
    total_commission: Decimal
    orders: int
    
    def to_dict(self):
        return {
            'brand': self.brand,
            'totalPieces': self.total_pieces,
            'totalValue': str(self.total_value),
            'totalCommission': str(self.total_commission),
            'orders': self.orders,
        }


@dataclass
class ProductSales:
    id: int
    code: str
    name: str
    brand: Optional[str]
    total_pieces: int
    total_value: Decimal
    total_commission: Decimal
    
    def to_dict(self):
        return {
            'id': self.id,
            'code': self.code,
            'name': self.name,
            'brand': self.brand,
            'totalPieces': self.total_pieces,
            'totalValue': str(self.total_value),
            'totalCommission': str(self.total_commission),
        }


@dataclass
class CountStats:
    total: int
    active: int
    
    def to_dict(self):
        return {'total': self.total, 'active': self.active}


@dataclass
class Dashboard:
    orders: OrderStats
    products: CountStats
    clients: CountStats
    
    def to_dict(self):
        return {
            'orders': self.orders.to_dict(),
            'products': self.products.to_dict(),
            'clients': self.clients.to_dict(),
        }


class StatsAggregator:
    """Read-only sales metrics for one tenant."""
    
    def __init__(
        self,
        orders: OrderRepository,
        products: ProductRepository,
        clients: ClientRepository,
        users: UserRepository,
        cache: Optional[CacheService] = None,
        cache_ttl: Optional[int] = None,
    ):
        self.orders = orders
        self.products = products
        self.clients = clients
        self.users = users
        self.cache = cache
        self.cache_ttl = cache_ttl
    
    @property
    def tenant_id(self) -> int:
        return self.orders.tenant_id
    
    # -- public API ------------------------------------------------------
    
    def order_stats(self, representative_id: Optional[int] = None) -> OrderStats:
        row = self._cached(f"orders:{_scope(representative_id)}",
                           lambda: asdict(self._order_stats(representative_id)))
        return OrderStats(**row)
    
    def sales_by_representative(self, representative_id: Optional[int] = None) -> List[RepresentativeSales]:
        rows = self._cached(f"by_rep:{_scope(representative_id)}",
                            lambda: [asdict(r) for r in self._sales_by_representative(representative_id)])
        return [RepresentativeSales(**r) for r in rows]
    
    def sales_by_brand(self, representative_id: Optional[int] = None) -> List[BrandSales]:
        rows = self._cached(f"by_brand:{_scope(representative_id)}",
                            lambda: [asdict(r) for r in self._sales_by_brand(representative_id)])
        return [BrandSales(**r) for r in rows]
    
    def top_selling_products(self, limit: int = DEFAULT_TOP_LIMIT,
                             representative_id: Optional[int] = None) -> List[ProductSales]:
        if limit is None or limit <= 0:
            return []
        rows = self._cached(f"top_products:{limit}:{_scope(representative_id)}",
                            lambda: [asdict(r) for r in self._top_selling_products(limit, representative_id)])
        return [ProductSales(**r) for r in rows]
    
    def product_stats(self) -> CountStats:
        return CountStats(total=self.products.count(), active=self.products.count(active_only=True))
    
    def client_stats(self, representative_id: Optional[int] = None) -> CountStats:
        return CountStats(
            total=self.clients.count(representative_id),
            active=self.clients.count(representative_id, active_only=True),
        )
    
    def dashboard(self, representative_id: Optional[int] = None) -> Dashboard:
        return Dashboard(
            orders=self.order_stats(representative_id),
            products=self.product_stats(),
            clients=self.client_stats(representative_id),
        )
    
    def invalidate(self) -> int:
        if self.cache is None:
            return 0
        return self.cache.invalidate_stats(self.tenant_id)
    
    # -- computations ----------------------------------------------------
    
    def _order_stats(self, representative_id):
        summary = self.orders.status_summary(representative_id)
        return OrderStats(
            total=int(summary['total']),
            confirmed=int(summary['confirmed']),
            quotation=int(summary['quotation']),
            total_value=round2(summary['total_value']),
        )
    
    def _sales_by_representative(self, representative_id):
        if representative_id is not None:
            user = self.users.find_by_id(representative_id)
            representatives = [user] if user else []
        else:
            representatives = self.users.list_representatives()
        
        order_rows = self.orders.orders_per_representative(representative_id)
        item_rows = self.orders.confirmed_items_per_representative(representative_id)
        
        result = []
        for rep in representatives:
            orders = order_rows.get(rep.id)
            items = item_rows.get(rep.id)
            result.append(RepresentativeSales(
                id=rep.id,
                name=rep.display_name,
                total_orders=int(orders.total_orders) if orders else 0,
                confirmed_orders=int(orders.confirmed_orders) if orders else 0,
                total_value=round2(orders.total_value if orders else 0),
                total_pieces=int(items.total_pieces) if items else 0,
                total_commission=round2(items.total_commission if items else 0),
            ))
        return result
    
    def _sales_by_brand(self, representative_id):
        # NULL and '' group separately in SQL; both belong to the same bucket
        buckets = {}
        for row in self.orders.confirmed_items_by_brand(representative_id):
            brand = (row.brand or '').strip() or NO_BRAND
            bucket = buckets.get(brand)
            if bucket is None:
                bucket = buckets[brand] = BrandSales(brand, 0, round2(0), round2(0), 0)
            bucket.total_pieces += int(row.total_pieces)
            bucket.total_value = round2(bucket.total_value + round2(row.total_value))
            bucket.total_commission = round2(bucket.total_commission + round2(row.total_commission))
            bucket.orders += int(row.item_count)
        return sorted(buckets.values(), key=lambda b: (-b.total_pieces, b.brand))
    
    def _top_selling_products(self, limit, representative_id):
        return [
            ProductSales(
                id=row.product_id,
                code=row.code,
                name=row.name,
                brand=row.brand,
                total_pieces=int(row.total_pieces),
                total_value=round2(row.total_value),
                total_commission=round2(row.total_commission),
            )
            for row in self.orders.confirmed_items_by_product(representative_id, limit)
        ]
    
    def _cached(self, key: str, loader: Callable):
        if self.cache is None:
            return loader()
        return self.cache.memoize(self.tenant_id, STATS_MODULE, key, loader, self.cache_ttl)


def _scope(representative_id: Optional[int]) -> str:
    return 'all' if representative_id is None else f"rep:{representative_id}"
