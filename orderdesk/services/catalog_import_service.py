"""
Bulk catalog import.

Each row is validated on its own; valid rows are inserted in one
transaction and invalid ones come back with their 1-based row number.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List

from orderdesk.models import Product
from orderdesk.repositories import ProductRepository
from orderdesk.services.product_service import FieldRejected, parse_product_fields

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    imported: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)
    
    def to_dict(self):
        return {'imported': self.imported, 'errors': self.errors}


class CatalogImportService:
    
    def __init__(self, products: ProductRepository):
        self.products = products
    
    def import_products(self, rows: Iterable[Any]) -> ImportResult:
        rows = list(rows or [])
        result = ImportResult()
        
        with self.products.transaction():
            taken_codes = self.products.existing_codes(
                str(r.get('code') or '').strip() for r in rows if isinstance(r, dict)
            )
            taken_aliases = set()
            pending: List[Product] = []
            
            for index, row in enumerate(rows, start=1):
                try:
                    product = self._build(row)
                    if product.code in taken_codes:
                        raise FieldRejected('DUPLICATE_CODE', f'Code "{product.code}" already exists')
                    if product.conversion:
                        if product.conversion in taken_aliases or self.products.find_by_conversion(product.conversion):
                            raise FieldRejected('DUPLICATE_CONVERSION',
                                               f'Reference "{product.conversion}" is already associated with another product')
                        taken_aliases.add(product.conversion)
                    taken_codes.add(product.code)
                    pending.append(product)
                except FieldRejected as e:
                    result.errors.append({'row': index, 'code': e.code, 'error': e.message})
            
            if pending:
                self.products.save_many(pending)
            result.imported = len(pending)
        
        logger.info(
            f"Catalog import (tenant={self.products.tenant_id}): "
            f"{result.imported} imported, {len(result.errors)} rejected"
        )
        return result
    
    def _build(self, row: Any) -> Product:
        return Product(**parse_product_fields(row))
