"""Product repository (tenant-scoped catalog access)."""
from typing import Iterable, List, Optional, Set

from sqlalchemy import or_, func

from orderdesk.models import OrderItem, Product
from orderdesk.repositories.base_repository import BaseRepository

LIKE_ESCAPE = '\\'


def _escape_like(term: str) -> str:
    """Escape LIKE wildcards so user input is matched literally."""
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace('%', LIKE_ESCAPE + '%')
        .replace('_', LIKE_ESCAPE + '_')
    )


class ProductRepository(BaseRepository):
    """All product queries go through here, always filtered by tenant."""
    
    def _query(self, include_inactive: bool = True):
        query = self.session.query(Product).filter(Product.tenant_id == self.tenant_id)
        if not include_inactive:
            query = query.filter(Product.active == True)  # noqa: E712
        return query
    
    # -- lookups ---------------------------------------------------------
    
    def find_by_id(self, product_id: int) -> Optional[Product]:
        return self._query().filter(Product.id == product_id).first()
    
    def find_by_code(self, code: str) -> Optional[Product]:
        return self._query().filter(Product.code == code).first()
    
    def find_by_conversion(self, client_ref: str) -> Optional[Product]:
        return self._query().filter(Product.conversion == client_ref).order_by(Product.id).first()
    
    def existing_codes(self, codes: Iterable[str]) -> Set[str]:
        codes = [c for c in set(codes) if c]
        if not codes:
            return set()
        rows = self.session.query(Product.code).filter(
            Product.tenant_id == self.tenant_id,
            Product.code.in_(codes)
        ).all()
        return {row.code for row in rows}
    
    # -- resolution tiers ------------------------------------------------
    
    def find_exact(self, ref: str, limit: int, include_inactive: bool = True) -> List[Product]:
        """Case-sensitive equality on code, name, conversion or barcode."""
        return (
            self._query(include_inactive)
            .filter(or_(
                Product.code == ref,
                Product.name == ref,
                Product.conversion == ref,
                Product.barcode == ref,
            ))
            .order_by(Product.id)
            .limit(limit)
            .all()
        )
    
    def find_by_names(self, names: Iterable[str], limit: int, include_inactive: bool = True) -> List[Product]:
        names = [n for n in names if n]
        if not names:
            return []
        return (
            self._query(include_inactive)
            .filter(Product.name.in_(names))
            .order_by(Product.id)
            .limit(limit)
            .all()
        )
    
    def find_by_codes(self, codes: Iterable[str], limit: int, include_inactive: bool = True) -> List[Product]:
        codes = [c for c in codes if c]
        if not codes:
            return []
        return (
            self._query(include_inactive)
            .filter(Product.code.in_(codes))
            .order_by(Product.id)
            .limit(limit)
            .all()
        )

    def find_by_conversions(self, values: Iterable[str], limit: int, include_inactive: bool = True) -> List[Product]:
        values = [v for v in values if v]
        if not values:
            return []
        return (
            self._query(include_inactive)
            .filter(Product.conversion.in_(values))
            .order_by(Product.id)
            .limit(limit)
            .all()
        )
    
    def search_prefix(self, ref: str, limit: int, exclude_ids: Iterable[int] = (),
                      include_inactive: bool = True) -> List[Product]:
        """Case-insensitive prefix on code, conversion or name."""
        pattern = f"{_escape_like(ref)}%"
        query = self._query(include_inactive).filter(or_(
            Product.code.ilike(pattern, escape=LIKE_ESCAPE),
            Product.conversion.ilike(pattern, escape=LIKE_ESCAPE),
            Product.name.ilike(pattern, escape=LIKE_ESCAPE),
        ))
        exclude_ids = list(exclude_ids)
        if exclude_ids:
            query = query.filter(Product.id.notin_(exclude_ids))
        return query.order_by(Product.id).limit(limit).all()
    
    def search_contains(self, ref: str, limit: int, include_inactive: bool = True) -> List[Product]:
        """Case-insensitive substring across every descriptive field."""
        pattern = f"%{_escape_like(ref)}%"
        return (
            self._query(include_inactive)
            .filter(or_(
                Product.name.ilike(pattern, escape=LIKE_ESCAPE),
                Product.category.ilike(pattern, escape=LIKE_ESCAPE),
                Product.brand.ilike(pattern, escape=LIKE_ESCAPE),
                Product.barcode.ilike(pattern, escape=LIKE_ESCAPE),
                Product.code.ilike(pattern, escape=LIKE_ESCAPE),
                Product.conversion.ilike(pattern, escape=LIKE_ESCAPE),
                Product.description.ilike(pattern, escape=LIKE_ESCAPE),
            ))
            .order_by(Product.id)
            .limit(limit)
            .all()
        )
    
    # -- listing ---------------------------------------------------------
    
    def list_all(self, include_inactive: bool = True) -> List[Product]:
        return self._query(include_inactive).order_by(Product.name, Product.id).all()
    
    def count(self, active_only: bool = False) -> int:
        query = self.session.query(func.count(Product.id)).filter(Product.tenant_id == self.tenant_id)
        if active_only:
            query = query.filter(Product.active == True)  # noqa: E712
        return query.scalar() or 0
    
    # -- writes ----------------------------------------------------------
    
    def save(self, product: Product) -> Product:
        product.tenant_id = self.tenant_id
        self.session.add(product)
        self.session.flush()
        return product
    
    def save_many(self, products: List[Product]) -> List[Product]:
        for product in products:
            product.tenant_id = self.tenant_id
        self.session.add_all(products)
        self.session.flush()
        return products
    
    def delete(self, product: Product) -> None:
        self.session.delete(product)
        self.session.flush()
    
    def is_referenced(self, product_id: int) -> bool:
        """True when any order item points at the product."""
        return self.session.query(OrderItem.id).filter(OrderItem.product_id == product_id).first() is not None
    
    def update(self, product: Product, **fields) -> Product:
        for key, value in fields.items():
            if not hasattr(Product, key):
                raise AttributeError(f"Product has no field '{key}'")
            setattr(product, key, value)
        self.session.flush()
        return product
