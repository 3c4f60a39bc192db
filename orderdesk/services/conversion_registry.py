"""
Conversion registry - client reference aliases stored on Product.conversion.

A client often orders with its own code for a product ("TM4") instead of the
catalog code ("WUNI0004"). The registry binds such a reference to exactly one
catalog product per tenant and never silently moves an existing binding.
"""
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError

from orderdesk.exceptions import ProductNotFound, AliasConflict, ValidationError
from orderdesk.models import Product
from orderdesk.repositories import ProductRepository

logger = logging.getLogger(__name__)


class ConversionRegistry:
    """Owns the alias mapping from client references to catalog products."""
    
    def __init__(self, products: ProductRepository):
        self.products = products
    
    def save_alias(self, product_id: int, client_ref: str) -> Product:
        """
        Bind `client_ref` to the product.
        
        Raises:
            ValidationError: blank reference
            ProductNotFound: product_id does not exist in the tenant
            AliasConflict: reference already bound to a different product
        """
        client_ref = (client_ref or '').strip()
        if not client_ref:
            raise ValidationError('Client reference is required')
        
        with self.products.transaction():
            product = self.products.find_by_id(product_id)
            if not product:
                raise ProductNotFound(product_id)
            
            existing = self.products.find_by_conversion(client_ref)
            if existing and existing.id != product.id:
                raise AliasConflict(client_ref, existing.id, existing.code)
            
            if product.conversion == client_ref:
                return product
            
            previous = product.conversion
            try:
                self.products.update(product, conversion=client_ref)
            except IntegrityError:
                # Another request bound the same reference between check and write
                self.products.session.rollback()
                winner = self.products.find_by_conversion(client_ref)
                raise AliasConflict(client_ref, winner.id if winner else None,
                                    winner.code if winner else None)
        
        logger.info(
            f"Alias saved: tenant={self.products.tenant_id} product={product.id} "
            f"({product.code}) {previous!r} -> {client_ref!r}"
        )
        return product
    
    def resolve_alias(self, client_ref: str) -> Optional[Product]:
        """Product whose conversion equals client_ref exactly, or None."""
        if not client_ref:
            return None
        return self.products.find_by_conversion(client_ref)
    
    def clear_alias(self, product_id: int) -> Product:
        """Remove a product's alias."""
        with self.products.transaction():
            product = self.products.find_by_id(product_id)
            if not product:
                raise ProductNotFound(product_id)
            self.products.update(product, conversion=None)
        logger.info(f"Alias cleared: tenant={self.products.tenant_id} product={product_id}")
        return product
