"""Discount tier repository."""
from typing import List, Optional

from orderdesk.models import Discount, Order, OrderItem
from orderdesk.repositories.base_repository import BaseRepository


class DiscountRepository(BaseRepository):
    
    def _query(self):
        return self.session.query(Discount).filter(Discount.tenant_id == self.tenant_id)
    
    def find_all(self) -> List[Discount]:
        return self._query().order_by(Discount.name).all()
    
    def find_by_id(self, discount_id: int) -> Optional[Discount]:
        return self._query().filter(Discount.id == discount_id).first()
    
    def find_by_name(self, name: str) -> Optional[Discount]:
        return self._query().filter(Discount.name == name).first()
    
    def is_referenced(self, discount_id: int) -> bool:
        """True when any order or order item points at the tier."""
        by_order = self.session.query(Order.id).filter(
            Order.tenant_id == self.tenant_id,
            Order.discount_id == discount_id
        ).first()
        if by_order:
            return True
        by_item = (
            self.session.query(OrderItem.id)
            .join(Order, Order.id == OrderItem.order_id)
            .filter(Order.tenant_id == self.tenant_id, OrderItem.discount_id == discount_id)
            .first()
        )
        return by_item is not None
    
    def save(self, discount: Discount) -> Discount:
        discount.tenant_id = self.tenant_id
        self.session.add(discount)
        self.session.flush()
        return discount
    
    def delete(self, discount: Discount) -> None:
        self.session.delete(discount)
        self.session.flush()
