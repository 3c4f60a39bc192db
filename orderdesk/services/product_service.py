"""
Product catalog management - Multi-Tenant.

Single-product create/read/update/delete. Field parsing is shared with the
bulk importer so both accept the same payload shape. Alias changes are
delegated to the ConversionRegistry.
"""
import logging
from typing import Any, Callable, Dict, Optional

from orderdesk.exceptions import (
    ValidationError, ProductNotFound, DuplicateProductCode, ProductInUse, AliasConflict
)
from orderdesk.models import Product
from orderdesk.repositories import ProductRepository
from orderdesk.services.conversion_registry import ConversionRegistry
from orderdesk.utils.money import round2

logger = logging.getLogger(__name__)


class FieldRejected(Exception):
    """A product field failed validation; `code` is the machine-readable reason."""
    def __init__(self, code, message):
        super().__init__(message)
        self.code = code
        self.message = message


# (attribute, accepted payload keys)
_TEXT_FIELDS = (
    ('description', ('description',)),
    ('barcode', ('barcode',)),
    ('category', ('category',)),
    ('brand', ('brand',)),
    ('conversion', ('conversion',)),
    ('conversion_brand', ('conversionBrand', 'conversion_brand')),
)


def _present(row: Dict[str, Any], *keys) -> bool:
    return any(key in row for key in keys)


def _text(row: Dict[str, Any], *keys) -> Any:
    for key in keys:
        value = row.get(key)
        if value is None:
            continue
        value = str(value).strip()
        return value or None
    return None


def _price(value: Any):
    if value in (None, ''):
        raise FieldRejected('INVALID_PRICE', f'Invalid price: {value!r}')
    try:
        price = round2(value)
    except ValueError:
        raise FieldRejected('INVALID_PRICE', f'Invalid price: {value!r}')
    if price < 0:
        raise FieldRejected('INVALID_PRICE', f'Invalid price: {value!r}')
    return price


def _stock(value: Any) -> int:
    if isinstance(value, bool):
        raise FieldRejected('INVALID_FIELD', f'Invalid stockQuantity: {value!r}')
    try:
        stock = int(value) if value not in (None, '') else 0
    except (TypeError, ValueError):
        raise FieldRejected('INVALID_FIELD', f'Invalid stockQuantity: {value!r}')
    return max(stock, 0)


def _active(value: Any) -> bool:
    if value is None or value == '':
        return True
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() not in ('0', 'false', 'no', 'n', 'inactive')


def _equivalent_brands(value: Any):
    if value in (None, ''):
        return None
    if isinstance(value, str):
        brands = [b.strip() for b in value.split(',')]
    elif isinstance(value, (list, tuple)):
        brands = [str(b).strip() for b in value]
    else:
        raise FieldRejected('INVALID_FIELD', 'equivalentBrands must be a list or comma separated text')
    return [b for b in brands if b] or None


def parse_product_fields(row: Any, partial: bool = False) -> Dict[str, Any]:
    """
    Map a camelCase payload onto Product attributes.
    
    With partial=True only the keys present in the payload are returned
    (PUT semantics); name, code and price are still validated when given.
    
    Raises:
        FieldRejected: INVALID_ROW, MISSING_FIELD, INVALID_PRICE or INVALID_FIELD
    """
    if not isinstance(row, dict):
        raise FieldRejected('INVALID_ROW', 'Row must be an object')
    
    fields: Dict[str, Any] = {}
    for attr in ('name', 'code'):
        if not partial or attr in row:
            value = _text(row, attr)
            if not value:
                raise FieldRejected('MISSING_FIELD', f'{attr} is required')
            fields[attr] = value
    
    if not partial or 'price' in row:
        fields['price'] = _price(row.get('price'))
    if not partial or _present(row, 'stockQuantity', 'stock_quantity'):
        fields['stock_quantity'] = _stock(row.get('stockQuantity', row.get('stock_quantity')))
    if not partial or 'active' in row:
        fields['active'] = _active(row.get('active'))
    
    for attr, keys in _TEXT_FIELDS:
        if not partial or _present(row, *keys):
            fields[attr] = _text(row, *keys)
    
    if not partial or _present(row, 'equivalentBrands', 'equivalent_brands'):
        fields['equivalent_brands'] = _equivalent_brands(
            row.get('equivalentBrands', row.get('equivalent_brands'))
        )
    return fields


class ProductService:
    """Catalog CRUD for one tenant."""
    
    def __init__(self, products: ProductRepository, registry: ConversionRegistry,
                 on_change: Optional[Callable[[int], None]] = None):
        self.products = products
        self.registry = registry
        self.on_change = on_change
    
    def get_product(self, product_id: int) -> Product:
        product = self.products.find_by_id(product_id)
        if not product:
            raise ProductNotFound(product_id)
        return product
    
    def get_by_code(self, code: str) -> Product:
        code = (code or '').strip()
        if not code:
            raise ValidationError('Product code is required')
        product = self.products.find_by_code(code)
        if not product:
            raise ProductNotFound(code, message=f'No product with code "{code}"')
        return product
    
    def create_product(self, data: Any) -> Product:
        """
        Create one product.
        
        Raises:
            ValidationError: malformed payload (payload `reason` holds the field code)
            DuplicateProductCode: code already used in the tenant
            AliasConflict: conversion already bound to another product
        """
        fields = self._parse(data)
        with self.products.transaction():
            if self.products.find_by_code(fields['code']):
                raise DuplicateProductCode(fields['code'])
            if fields.get('conversion'):
                self._check_alias_free(fields['conversion'])
            product = self.products.save(Product(**fields))
        
        logger.info(f"Product created: tenant={self.products.tenant_id} id={product.id} code={product.code}")
        self._notify()
        return product
    
    def update_product(self, product_id: int, data: Any) -> Product:
        """
        Partially update a product.
        
        A `conversion` key is applied through the ConversionRegistry (blank
        clears the alias); the alias is checked before anything is written,
        so a conflict leaves the product unchanged.
        """
        fields = self._parse(data, partial=True)
        alias_given = 'conversion' in fields
        alias = fields.pop('conversion', None)
        
        with self.products.transaction():
            product = self.get_product(product_id)
            code = fields.get('code')
            if code and code != product.code and self.products.find_by_code(code):
                raise DuplicateProductCode(code)
            if alias:
                self._check_alias_free(alias, product.id)
            if fields:
                self.products.update(product, **fields)
        
        if alias_given:
            if alias:
                product = self.registry.save_alias(product_id, alias)
            elif product.conversion is not None:
                product = self.registry.clear_alias(product_id)
        
        logger.info(f"Product updated: tenant={self.products.tenant_id} id={product_id} fields={sorted(data)}")
        self._notify()
        return product
    
    def delete_product(self, product_id: int) -> None:
        """Delete a product no order references; referenced ones must be deactivated."""
        with self.products.transaction():
            product = self.get_product(product_id)
            if self.products.is_referenced(product.id):
                raise ProductInUse(product.id)
            self.products.delete(product)
        
        logger.info(f"Product deleted: tenant={self.products.tenant_id} id={product_id}")
        self._notify()
    
    def _parse(self, data: Any, partial: bool = False) -> Dict[str, Any]:
        try:
            return parse_product_fields(data, partial=partial)
        except FieldRejected as e:
            raise ValidationError(e.message, payload={'reason': e.code})
    
    def _check_alias_free(self, alias: str, product_id: Optional[int] = None) -> None:
        existing = self.products.find_by_conversion(alias)
        if existing and existing.id != product_id:
            raise AliasConflict(alias, existing.id, existing.code)
    
    def _notify(self) -> None:
        if self.on_change is None:
            return
        try:
            self.on_change(self.products.tenant_id)
        except Exception as e:
            logger.warning(f"Catalog change hook failed (tenant={self.products.tenant_id}): {e}")
