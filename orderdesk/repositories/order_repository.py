"""Order / order-item repository, including the aggregate queries used by stats."""
from typing import Any, Dict, List, Optional

from sqlalchemy import func, case

from orderdesk.models import Order, OrderItem, OrderStatus, Product
from orderdesk.repositories.base_repository import BaseRepository


class OrderRepository(BaseRepository):
    """Tenant-scoped access to orders and their items."""
    
    def _orders(self, representative_id: Optional[int] = None):
        query = self.session.query(Order).filter(Order.tenant_id == self.tenant_id)
        if representative_id is not None:
            query = query.filter(Order.representative_id == representative_id)
        return query
    
    # -- orders ----------------------------------------------------------
    
    def find_by_id(self, order_id: int) -> Optional[Order]:
        return self._orders().filter(Order.id == order_id).first()
    
    def lock(self, order_id: int) -> Optional[Order]:
        """Load the order row FOR UPDATE so mutations on one order serialize."""
        return (
            self._orders()
            .filter(Order.id == order_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
    
    def list_orders(self, representative_id: Optional[int] = None,
                    client_id: Optional[int] = None, status: Optional[str] = None) -> List[Order]:
        query = self._orders(representative_id)
        if client_id is not None:
            query = query.filter(Order.client_id == client_id)
        if status:
            query = query.filter(Order.status == status)
        return query.order_by(Order.created_at.desc(), Order.id.desc()).all()
    
    def create_order(self, **fields) -> Order:
        order = Order(tenant_id=self.tenant_id, **fields)
        self.session.add(order)
        self.session.flush()
        return order
    
    def update_order(self, order: Order, **fields) -> Order:
        for key, value in fields.items():
            setattr(order, key, value)
        self.session.flush()
        return order
    
    def delete_order(self, order: Order) -> None:
        """Items are removed first so no orphan rows survive the order."""
        self.delete_items_for_order(order)
        self.session.delete(order)
        self.session.flush()
    
    # -- items -----------------------------------------------------------
    
    def list_items(self, order_id: int) -> List[OrderItem]:
        return (
            self.session.query(OrderItem)
            .join(Order, Order.id == OrderItem.order_id)
            .filter(Order.tenant_id == self.tenant_id, OrderItem.order_id == order_id)
            .order_by(OrderItem.id)
            .all()
        )
    
    def find_item(self, item_id: int) -> Optional[OrderItem]:
        return (
            self.session.query(OrderItem)
            .join(Order, Order.id == OrderItem.order_id)
            .filter(Order.tenant_id == self.tenant_id, OrderItem.id == item_id)
            .first()
        )
    
    def insert_items(self, order: Order, items: List[OrderItem]) -> List[OrderItem]:
        for item in items:
            item.order_id = order.id
        self.session.add_all(items)
        self.session.flush()
        self.session.expire(order, ['items'])
        return items
    
    def delete_item(self, item: OrderItem) -> None:
        order = item.order
        self.session.delete(item)
        self.session.flush()
        if order is not None:
            self.session.expire(order, ['items'])
    
    def delete_items_for_order(self, order: Order) -> int:
        deleted = (
            self.session.query(OrderItem)
            .filter(OrderItem.order_id == order.id)
            .delete(synchronize_session='fetch')
        )
        self.session.flush()
        self.session.expire(order, ['items'])
        return deleted
    
    # -- aggregates (statistics) ----------------------------------------
    
    def status_summary(self, representative_id: Optional[int] = None) -> Dict[str, Any]:
        """Counts per status plus the sum of `total` over the filtered set."""
        confirmed = Order.status == OrderStatus.CONFIRMED.value
        quotation = Order.status == OrderStatus.QUOTATION.value
        query = self.session.query(
            func.count(Order.id).label('total'),
            func.coalesce(func.sum(case((confirmed, 1), else_=0)), 0).label('confirmed'),
            func.coalesce(func.sum(case((quotation, 1), else_=0)), 0).label('quotation'),
            func.coalesce(func.sum(Order.total), 0).label('total_value'),
        ).filter(Order.tenant_id == self.tenant_id)
        if representative_id is not None:
            query = query.filter(Order.representative_id == representative_id)
        row = query.one()
        return {
            'total': row.total or 0,
            'confirmed': row.confirmed or 0,
            'quotation': row.quotation or 0,
            'total_value': row.total_value or 0,
        }
    
    def orders_per_representative(self, representative_id: Optional[int] = None) -> Dict[int, Any]:
        """Per representative: order count, confirmed count, confirmed value."""
        confirmed = Order.status == OrderStatus.CONFIRMED.value
        query = self.session.query(
            Order.representative_id.label('representative_id'),
            func.count(Order.id).label('total_orders'),
            func.coalesce(func.sum(case((confirmed, 1), else_=0)), 0).label('confirmed_orders'),
            func.coalesce(func.sum(case((confirmed, Order.total), else_=0)), 0).label('total_value'),
        ).filter(Order.tenant_id == self.tenant_id)
        if representative_id is not None:
            query = query.filter(Order.representative_id == representative_id)
        rows = query.group_by(Order.representative_id).all()
        return {row.representative_id: row for row in rows}
    
    def _confirmed_items(self, representative_id: Optional[int] = None, *columns):
        query = (
            self.session.query(*columns)
            .select_from(OrderItem)
            .join(Order, Order.id == OrderItem.order_id)
            .filter(
                Order.tenant_id == self.tenant_id,
                Order.status == OrderStatus.CONFIRMED.value,
            )
        )
        if representative_id is not None:
            query = query.filter(Order.representative_id == representative_id)
        return query
    
    def confirmed_items_per_representative(self, representative_id: Optional[int] = None) -> Dict[int, Any]:
        """Per representative: pieces and commission over confirmed orders."""
        rows = self._confirmed_items(
            representative_id,
            Order.representative_id.label('representative_id'),
            func.coalesce(func.sum(OrderItem.quantity), 0).label('total_pieces'),
            func.coalesce(func.sum(OrderItem.commission), 0).label('total_commission'),
        ).group_by(Order.representative_id).all()
        return {row.representative_id: row for row in rows}
    
    def confirmed_items_by_brand(self, representative_id: Optional[int] = None) -> List[Any]:
        return (
            self._confirmed_items(
                representative_id,
                Product.brand.label('brand'),
                func.coalesce(func.sum(OrderItem.quantity), 0).label('total_pieces'),
                func.coalesce(func.sum(OrderItem.subtotal), 0).label('total_value'),
                func.coalesce(func.sum(OrderItem.commission), 0).label('total_commission'),
                func.count(OrderItem.id).label('item_count'),
            )
            .join(Product, Product.id == OrderItem.product_id)
            .group_by(Product.brand)
            .all()
        )
    
    def confirmed_items_by_product(self, representative_id: Optional[int] = None,
                                   limit: Optional[int] = None) -> List[Any]:
        pieces = func.coalesce(func.sum(OrderItem.quantity), 0)
        query = (
            self._confirmed_items(
                representative_id,
                Product.id.label('product_id'),
                Product.code.label('code'),
                Product.name.label('name'),
                Product.brand.label('brand'),
                pieces.label('total_pieces'),
                func.coalesce(func.sum(OrderItem.subtotal), 0).label('total_value'),
                func.coalesce(func.sum(OrderItem.commission), 0).label('total_commission'),
            )
            .join(Product, Product.id == OrderItem.product_id)
            .group_by(Product.id, Product.code, Product.name, Product.brand)
            .order_by(pieces.desc(), Product.id.asc())
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()
