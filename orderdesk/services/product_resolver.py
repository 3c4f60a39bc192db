"""
Product reference resolution.

Maps a free-form reference (catalog code, client SKU, barcode, partial name)
onto catalog products through ranked tiers. A tier only runs when the tiers
before it found nothing; the reciprocal tier is the exception and runs right
after an exact hit on exactly one product, so both sides of an alias pair
come back together.

    exact       code | name | conversion | barcode == ref     (case-sensitive)
    reciprocal  name|code == P.conversion, conversion == P.name|P.code
    prefix      code | conversion | name starts with ref     (case-insensitive)
    contains    substring of any descriptive field          (case-insensitive)
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from orderdesk.exceptions import ProductNotFound, ValidationError
from orderdesk.metrics import product_resolutions_total
from orderdesk.models import Product
from orderdesk.repositories import ProductRepository

logger = logging.getLogger(__name__)

TIER_EXACT = 'exact'
TIER_PREFIX = 'prefix'
TIER_CONTAINS = 'contains'
TIER_NONE = 'none'


@dataclass
class ResolutionResult:
    """Products found for a reference and the tier that found them."""
    reference: str
    tier: str
    products: List[Product] = field(default_factory=list)
    reciprocal_ids: Tuple[int, ...] = ()
    
    @property
    def first(self) -> Product:
        """Single-product pick for auto-fill: first in tier order (lowest id)."""
        return self.products[0]
    
    def to_dict(self):
        return {
            'reference': self.reference,
            'tier': self.tier,
            'reciprocalIds': list(self.reciprocal_ids),
            'products': [p.to_dict() for p in self.products],
        }


def _merge(primary: List[Product], extra: List[Product]) -> Tuple[List[Product], Tuple[int, ...]]:
    """Append `extra` to `primary` keeping first occurrence per id."""
    seen = {p.id for p in primary}
    merged = list(primary)
    added = []
    for product in extra:
        if product.id not in seen:
            seen.add(product.id)
            merged.append(product)
            added.append(product.id)
    return merged, tuple(added)


class ProductResolver:
    """Tiered, ambiguity-aware product lookup."""
    
    def __init__(self, products: ProductRepository, tier_limit: int = 20):
        self.products = products
        self.tier_limit = tier_limit
    
    def resolve(self, reference: str, include_inactive: bool = True) -> ResolutionResult:
        """
        Resolve a reference to every product of the first non-empty tier.
        
        Raises:
            ValidationError: blank reference
            ProductNotFound: no tier matched
        """
        ref = (reference or '').strip()
        if not ref:
            raise ValidationError('Search reference is required')
        
        result = self._run_tiers(ref, include_inactive)
        product_resolutions_total.labels(tier=result.tier if result else TIER_NONE).inc()
        
        if result is None:
            logger.debug(f"Resolution miss: tenant={self.products.tenant_id} ref={ref!r}")
            raise ProductNotFound(ref)
        
        logger.debug(
            f"Resolved {ref!r} via {result.tier}: "
            f"{[p.id for p in result.products]} (reciprocal={list(result.reciprocal_ids)})"
        )
        return result
    
    def resolve_one(self, reference: str, include_inactive: bool = False) -> Product:
        """Best single product for a reference (order-entry auto-fill)."""
        return self.resolve(reference, include_inactive=include_inactive).first
    
    def search(self, reference: str, include_inactive: bool = True) -> List[Product]:
        """Like resolve() but an empty result is a plain empty list."""
        try:
            return self.resolve(reference, include_inactive).products
        except ProductNotFound:
            return []
    
    def _run_tiers(self, ref: str, include_inactive: bool) -> Optional[ResolutionResult]:
        limit = self.tier_limit
        
        exact = self.products.find_exact(ref, limit, include_inactive)
        if exact:
            reciprocal_ids: Tuple[int, ...] = ()
            if len(exact) == 1:
                exact, reciprocal_ids = _merge(exact, self._reciprocal(exact[0], include_inactive))
            return ResolutionResult(ref, TIER_EXACT, exact, reciprocal_ids)
        
        prefix = self.products.search_prefix(ref, limit, include_inactive=include_inactive)
        if prefix:
            return ResolutionResult(ref, TIER_PREFIX, prefix)
        
        contains = self.products.search_contains(ref, limit, include_inactive)
        if contains:
            return ResolutionResult(ref, TIER_CONTAINS, contains)
        
        return None
    
    def _reciprocal(self, product: Product, include_inactive: bool) -> List[Product]:
        """Products on the other side of `product`'s alias chain."""
        limit = self.tier_limit
        related: List[Product] = []
        
        if product.conversion:
            # forward: the alias names another catalog record
            related += self.products.find_by_names([product.conversion], limit, include_inactive)
            related += self.products.find_by_codes([product.conversion], limit, include_inactive)
        
        # backward: other records use this product as their alias
        related += self.products.find_by_conversions([product.name, product.code], limit, include_inactive)
        
        related = [p for p in related if p.id != product.id]
        related.sort(key=lambda p: p.id)
        return related
