"""
Order pricing engine - Multi-Tenant.

Keeps the monetary state of an order consistent while its items change:

    item.subtotal        = round2(quantity * unit_price)
    item.commission      = round2(item.subtotal * tier.commission / 100)
    order.subtotal       = sum(item.subtotal)
    order.discount_amount = round2(order.subtotal * order.discount_percentage / 100)
    order.total          = order.subtotal - order.discount_amount

Every mutation locks the order row, changes the items, recalculates and
commits as one unit of work, so no reader sees a half-replaced item set or a
total computed from stale items.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional

from orderdesk.exceptions import (
    SaasError, ValidationError, ProductNotFound, InvalidQuantity, ItemNotFound,
    OrderNotFound, ClientNotFound, DiscountNotFound, InvalidOrderState, OrderValidationError,
    RepresentativeNotFound
)
from orderdesk.metrics import order_recalculations_total
from orderdesk.models import Discount, Order, OrderItem, OrderStatus, Product
from orderdesk.repositories import (
    OrderRepository, ProductRepository, DiscountRepository, ClientRepository, UserRepository
)
from orderdesk.utils.money import ZERO, HUNDRED, round2, to_decimal, percent_of

logger = logging.getLogger(__name__)


# =====================================================
# VALUE OBJECTS
# =====================================================

@dataclass
class ItemInput:
    """One requested order line, as received from the caller."""
    product_id: Any = None
    quantity: Any = None
    unit_price: Any = None
    discount_id: Any = None
    reference: Optional[str] = None
    
    @classmethod
    def coerce(cls, row: Any) -> 'ItemInput':
        if isinstance(row, ItemInput):
            return row
        if not isinstance(row, dict):
            raise ValidationError('Each item must be an object')
        return cls(
            product_id=row.get('productId', row.get('product_id')),
            quantity=row.get('quantity', row.get('qty')),
            unit_price=row.get('unitPrice', row.get('unit_price')),
            discount_id=row.get('discountId', row.get('discount_id')),
            reference=row.get('reference') or row.get('clientRef'),
        )


@dataclass
class RowError:
    """Why one row of a batch was rejected (row numbers are 1-based)."""
    row: int
    reason: str
    code: str
    
    def to_dict(self):
        return {'row': self.row, 'reason': self.reason, 'code': self.code}


@dataclass
class OrderTotals:
    subtotal: Decimal
    discount_amount: Decimal
    total: Decimal
    
    @classmethod
    def of(cls, order: Order) -> 'OrderTotals':
        return cls(
            subtotal=round2(order.subtotal),
            discount_amount=round2(order.discount_amount),
            total=round2(order.total),
        )
    
    def to_dict(self):
        return {
            'subtotal': str(self.subtotal),
            'discountAmount': str(self.discount_amount),
            'total': str(self.total),
        }


@dataclass
class ReplaceResult:
    accepted: List[OrderItem] = field(default_factory=list)
    rejected: List[RowError] = field(default_factory=list)
    totals: Optional[OrderTotals] = None
    applied: bool = True
    
    def to_dict(self):
        return {
            'accepted': [item.to_dict() for item in self.accepted],
            'rejected': [error.to_dict() for error in self.rejected],
            'totals': self.totals.to_dict() if self.totals else None,
            'applied': self.applied,
        }


# =====================================================
# ENGINE
# =====================================================

class OrderPricingEngine:
    """Computes and persists order/item monetary state."""
    
    def __init__(
        self,
        orders: OrderRepository,
        products: ProductRepository,
        discounts: DiscountRepository,
        clients: Optional[ClientRepository] = None,
        users: Optional[UserRepository] = None,
        resolver=None,
        lock_confirmed: bool = True,
        allow_reopen: bool = False,
        on_change: Optional[Callable[[int], None]] = None,
    ):
        self.orders = orders
        self.products = products
        self.discounts = discounts
        self.clients = clients
        self.users = users
        self.resolver = resolver
        self.lock_confirmed = lock_confirmed
        self.allow_reopen = allow_reopen
        self.on_change = on_change
    
    @property
    def tenant_id(self) -> int:
        return self.orders.tenant_id
    
    # -- order lifecycle -------------------------------------------------
    
    def create_order(
        self,
        client_id: int,
        representative_id: int,
        items: Iterable[Any],
        discount_id: Optional[int] = None,
        discount_percentage: Any = None,
        notes: Optional[str] = None,
        payment_terms: Optional[str] = None,
        status: str = OrderStatus.QUOTATION.value,
    ) -> Order:
        """
        Create an order with its initial items, all-or-nothing.
        
        Raises OrderValidationError listing every rejected row when any
        item is invalid; nothing is persisted in that case.
        """
        items = list(items or [])
        if not items:
            raise ValidationError('An order needs at least one item')
        status = _parse_status(status)
        
        if self.clients is not None and not self.clients.find_by_id(client_id):
            raise ClientNotFound(client_id)
        representative_id = self._check_representative(representative_id)
        
        tier_cache: Dict[int, Discount] = {}
        tier, percentage = self._resolve_order_discount(discount_id, discount_percentage, tier_cache)
        
        with self.orders.transaction():
            prepared, rejected = self._prepare_rows(items, tier_cache)
            if rejected:
                raise OrderValidationError(rejected)
            
            order = self.orders.create_order(
                client_id=client_id,
                representative_id=representative_id,
                status=status,
                payment_terms=payment_terms,
                notes=(notes or '').strip() or None,
                discount_id=tier.id if tier else None,
                discount_percentage=percentage,
                subtotal=ZERO,
                discount_amount=ZERO,
                total=ZERO,
            )
            self.orders.insert_items(order, prepared)
            self._recalculate(order, 'create', tier_cache)
        
        logger.info(
            f"Order {order.id} created: tenant={self.tenant_id} rep={representative_id} "
            f"items={len(prepared)} total={order.total}"
        )
        self._notify()
        return order
    
    def update_status(self, order_id: int, status: str) -> Order:
        """QUOTATION -> CONFIRMED; reopening needs allow_reopen."""
        status = _parse_status(status)
        with self.orders.transaction(order_id):
            order = self._lock(order_id)
            if order.status == status:
                return order
            if order.is_confirmed and not self.allow_reopen:
                raise InvalidOrderState('Confirmed orders cannot return to quotation', order.status)
            self.orders.update_order(order, status=status, updated_at=_now())
        
        logger.info(f"Order {order_id} status -> {status} (tenant={self.tenant_id})")
        self._notify()
        return order
    
    def update_details(self, order_id: int, **fields) -> Order:
        """Update header fields that do not affect pricing."""
        allowed = {'notes', 'payment_terms', 'client_id'}
        unknown = set(fields) - allowed
        if unknown:
            raise ValidationError(f"Fields not editable: {', '.join(sorted(unknown))}")
        
        with self.orders.transaction(order_id):
            order = self._lock(order_id)
            self._guard_mutable(order)
            if 'client_id' in fields and self.clients is not None:
                if not self.clients.find_by_id(fields['client_id']):
                    raise ClientNotFound(fields['client_id'])
            if 'notes' in fields:
                fields['notes'] = (fields['notes'] or '').strip() or None
            self.orders.update_order(order, updated_at=_now(), **fields)
        return order
    
    def delete_order(self, order_id: int) -> None:
        """Delete the order and its items (items first)."""
        with self.orders.transaction(order_id):
            order = self._lock(order_id)
            self.orders.delete_order(order)
        logger.info(f"Order {order_id} deleted (tenant={self.tenant_id})")
        self._notify()
    
    def set_order_discount(self, order_id: int, discount_id: Optional[int] = None,
                           percentage: Any = None) -> OrderTotals:
        """Attach a discount tier (copying its percentage) or override the percentage."""
        tier_cache: Dict[int, Discount] = {}
        tier, pct = self._resolve_order_discount(discount_id, percentage, tier_cache)
        
        with self.orders.transaction(order_id):
            order = self._lock(order_id)
            self._guard_mutable(order)
            self.orders.update_order(
                order,
                discount_id=tier.id if tier else None,
                discount_percentage=pct,
            )
            totals = self._recalculate(order, 'discount', tier_cache)
        
        self._notify()
        return totals
    
    # -- item mutations --------------------------------------------------
    
    def add_item(self, order_id: int, product_id: Any, quantity: Any,
                 unit_price: Any = None, discount_id: Any = None) -> OrderItem:
        """Validate, price and append one item, then recalculate the order."""
        with self.orders.transaction(order_id):
            order = self._lock(order_id)
            self._guard_mutable(order)
            
            tier_cache: Dict[int, Discount] = {}
            item = self._prepare_item(
                ItemInput(product_id=product_id, quantity=quantity,
                          unit_price=unit_price, discount_id=discount_id),
                tier_cache,
            )
            self.orders.insert_items(order, [item])
            self._recalculate(order, 'add_item', tier_cache)
        
        logger.debug(f"Item {item.id} added to order {order_id}: product={item.product_id} qty={item.quantity}")
        self._notify()
        return item
    
    def remove_item(self, item_id: int) -> OrderTotals:
        """Delete one item and recalculate its parent order."""
        item = self.orders.find_item(item_id)
        if not item:
            raise ItemNotFound(item_id)
        order_id = item.order_id
        
        with self.orders.transaction(order_id):
            order = self._lock(order_id)
            self._guard_mutable(order)
            # Re-read under the lock; a concurrent remove may have won
            item = self.orders.find_item(item_id)
            if not item:
                raise ItemNotFound(item_id)
            self.orders.delete_item(item)
            totals = self._recalculate(order, 'remove_item')
        
        logger.debug(f"Item {item_id} removed from order {order_id}")
        self._notify()
        return totals
    
    def replace_items(self, order_id: int, items: Iterable[Any], strict: bool = False) -> ReplaceResult:
        """
        Replace the whole item set: delete all, insert valid rows, recalculate.
        
        Every row is validated on its own and rejected rows are reported with
        their 1-based position. With strict=True a single rejection leaves the
        order untouched (applied=False).
        """
        items = list(items or [])
        with self.orders.transaction(order_id):
            order = self._lock(order_id)
            self._guard_mutable(order)
            
            tier_cache: Dict[int, Discount] = {}
            prepared, rejected = self._prepare_rows(items, tier_cache)
            
            if strict and rejected:
                logger.info(f"Replace on order {order_id} refused: {len(rejected)} row(s) rejected")
                return ReplaceResult(accepted=[], rejected=rejected,
                                     totals=OrderTotals.of(order), applied=False)
            
            self.orders.delete_items_for_order(order)
            self.orders.insert_items(order, prepared)
            totals = self._recalculate(order, 'replace_items', tier_cache)
        
        if rejected:
            logger.warning(
                f"Order {order_id} items replaced with {len(rejected)} rejected row(s): "
                f"{[e.to_dict() for e in rejected]}"
            )
        self._notify()
        return ReplaceResult(accepted=prepared, rejected=rejected, totals=totals)
    
    # -- totals ----------------------------------------------------------
    
    def recalc_order_totals(self, order_id: int) -> OrderTotals:
        """Recompute and persist the order's monetary fields from its items."""
        with self.orders.transaction(order_id):
            order = self._lock(order_id)
            totals = self._recalculate(order, 'recalc')
        return totals
    
    def get_order_totals(self, order_id: int) -> OrderTotals:
        order = self.orders.find_by_id(order_id)
        if not order:
            raise OrderNotFound(order_id)
        return OrderTotals.of(order)
    
    # =====================================================
    # PRIVATE HELPERS
    # =====================================================
    
    def _lock(self, order_id: int) -> Order:
        order = self.orders.lock(order_id)
        if not order:
            raise OrderNotFound(order_id)
        return order
    
    def _check_representative(self, user_id: Any) -> int:
        """Orders belong to an active member of the tenant."""
        if isinstance(user_id, bool):
            raise ValidationError(f'Invalid representative id: {user_id!r}')
        try:
            user_id = int(user_id)
        except (TypeError, ValueError):
            raise ValidationError(f'Invalid representative id: {user_id!r}')
        if self.users is not None and not self.users.find_by_id(user_id):
            raise RepresentativeNotFound(user_id)
        return user_id
    
    def _guard_mutable(self, order: Order) -> None:
        if self.lock_confirmed and order.is_confirmed:
            raise InvalidOrderState(f'Order {order.id} is confirmed and cannot be changed', order.status)
    
    def _tier(self, discount_id: Any, cache: Dict[int, Discount]) -> Discount:
        try:
            discount_id = int(discount_id)
        except (TypeError, ValueError):
            raise ValidationError(f'Invalid discount id: {discount_id!r}')
        if discount_id not in cache:
            tier = self.discounts.find_by_id(discount_id)
            if not tier:
                raise DiscountNotFound(discount_id)
            cache[discount_id] = tier
        return cache[discount_id]
    
    def _resolve_order_discount(self, discount_id, percentage, cache):
        """Returns (tier or None, percentage or None); an explicit percentage wins."""
        tier = self._tier(discount_id, cache) if discount_id not in (None, '') else None
        if percentage not in (None, ''):
            return tier, _parse_percentage(percentage)
        if tier is not None:
            return tier, round2(tier.percentage)
        return None, None
    
    def _prepare_rows(self, rows: List[Any], tier_cache: Dict[int, Discount]):
        prepared: List[OrderItem] = []
        rejected: List[RowError] = []
        for index, row in enumerate(rows, start=1):
            try:
                prepared.append(self._prepare_item(ItemInput.coerce(row), tier_cache))
            except SaasError as e:
                if e.status_code >= 500:
                    raise
                rejected.append(RowError(row=index, reason=e.message, code=e.code))
        return prepared, rejected
    
    def _prepare_item(self, data: ItemInput, tier_cache: Dict[int, Discount]) -> OrderItem:
        """Validate one line and build an unsaved OrderItem."""
        product = self._find_product(data)
        quantity = _parse_quantity(data.quantity)
        
        if data.unit_price in (None, ''):
            unit_price = round2(product.price)
        else:
            try:
                unit_price = round2(data.unit_price)
            except ValueError:
                raise ValidationError(f'Invalid unit price: {data.unit_price!r}')
            if unit_price < 0:
                raise ValidationError('Unit price cannot be negative')
        
        tier = None
        if data.discount_id not in (None, ''):
            tier = self._tier(data.discount_id, tier_cache)
        
        return OrderItem(
            product_id=product.id,
            product=product,
            quantity=quantity,
            unit_price=unit_price,
            discount_id=tier.id if tier else None,
            discount_percentage=round2(tier.percentage) if tier else None,
            commission=ZERO,
            subtotal=round2(quantity * unit_price),
        )
    
    def _find_product(self, data: ItemInput) -> Product:
        if data.product_id in (None, ''):
            if data.reference and self.resolver is not None:
                return self.resolver.resolve_one(data.reference)
            raise ValidationError('productId is required')
        try:
            product_id = int(data.product_id)
        except (TypeError, ValueError):
            raise ProductNotFound(data.product_id)
        product = self.products.find_by_id(product_id)
        if not product or not product.active:
            raise ProductNotFound(product_id)
        return product
    
    def _recalculate(self, order: Order, operation: str,
                     tier_cache: Optional[Dict[int, Discount]] = None) -> OrderTotals:
        """Recompute item commissions and order totals from the persisted items."""
        tier_cache = tier_cache if tier_cache is not None else {}
        order_tier_commission = ZERO
        if order.discount_id:
            order_tier_commission = to_decimal(self._tier(order.discount_id, tier_cache).commission)
        
        subtotal = ZERO
        for item in self.orders.list_items(order.id):
            item_subtotal = round2(item.subtotal)
            if item.discount_id:
                commission_pct = to_decimal(self._tier(item.discount_id, tier_cache).commission)
            else:
                commission_pct = order_tier_commission
            commission = percent_of(item_subtotal, commission_pct)
            if item.commission is None or round2(item.commission) != commission:
                item.commission = commission
            subtotal += item_subtotal
        
        subtotal = round2(subtotal)
        discount_amount = percent_of(subtotal, order.discount_percentage)
        total = round2(subtotal - discount_amount)
        
        self.orders.update_order(
            order,
            subtotal=subtotal,
            discount_amount=discount_amount,
            total=total,
            updated_at=_now(),
        )
        order_recalculations_total.labels(operation=operation).inc()
        return OrderTotals(subtotal=subtotal, discount_amount=discount_amount, total=total)
    
    def _notify(self) -> None:
        if self.on_change is None:
            return
        try:
            self.on_change(self.tenant_id)
        except Exception as e:
            logger.warning(f"Order change hook failed (tenant={self.tenant_id}): {e}")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_status(status: Any) -> str:
    value = str(status or '').strip().upper()
    if value not in {s.value for s in OrderStatus}:
        raise ValidationError(f'Invalid order status: {status!r}')
    return value


def _parse_quantity(value: Any) -> int:
    """Quantities are whole pieces greater than zero."""
    if isinstance(value, bool) or value in (None, ''):
        raise InvalidQuantity(value)
    try:
        quantity = to_decimal(value)
    except ValueError:
        raise InvalidQuantity(value)
    if quantity <= 0 or quantity != quantity.to_integral_value():
        raise InvalidQuantity(value)
    return int(quantity)


def _parse_percentage(value: Any) -> Decimal:
    try:
        pct = round2(value)
    except ValueError:
        raise ValidationError(f'Invalid discount percentage: {value!r}')
    if pct < 0 or pct > HUNDRED:
        raise ValidationError('Discount percentage must be between 0 and 100')
    return pct
