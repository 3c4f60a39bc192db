"""Discount tier management (tenant-scoped)."""
import logging
from typing import List, Optional

from orderdesk.exceptions import ValidationError, DiscountNotFound, DiscountInUse
from orderdesk.models import Discount
from orderdesk.repositories import DiscountRepository
from orderdesk.utils.money import HUNDRED, round2

logger = logging.getLogger(__name__)

# Standard commercial ladder: N successive 5% discounts, commission shrinking with depth
DEFAULT_TIERS = [
    ('2*5', '9.75', '7.00'),
    ('3*5', '14.26', '6.00'),
    ('4*5', '18.54', '5.00'),
    ('5*5', '22.62', '4.00'),
    ('6*5', '26.50', '3.00'),
    ('7*5', '30.17', '2.00'),
    ('8*5', '33.64', '2.00'),
    ('8*5+3', '35.65', '2.00'),
]


def _percentage(value, field):
    try:
        pct = round2(value)
    except ValueError:
        raise ValidationError(f'{field} must be a number')
    if pct < 0 or pct > HUNDRED:
        raise ValidationError(f'{field} must be between 0 and 100')
    return pct


class DiscountService:
    
    def __init__(self, discounts: DiscountRepository):
        self.discounts = discounts
    
    def list_discounts(self) -> List[Discount]:
        return self.discounts.find_all()
    
    def get_discount(self, discount_id: int) -> Discount:
        discount = self.discounts.find_by_id(discount_id)
        if not discount:
            raise DiscountNotFound(discount_id)
        return discount
    
    def create_discount(self, name: str, percentage, commission) -> Discount:
        name = (name or '').strip()
        if not name:
            raise ValidationError('Discount name is required')
        with self.discounts.transaction():
            if self.discounts.find_by_name(name):
                raise ValidationError(f'Discount tier "{name}" already exists')
            discount = self.discounts.save(Discount(
                name=name,
                percentage=_percentage(percentage, 'percentage'),
                commission=_percentage(commission, 'commission'),
            ))
        logger.info(f"Discount tier '{name}' created (tenant={self.discounts.tenant_id})")
        return discount
    
    def update_discount(self, discount_id: int, name: Optional[str] = None,
                        percentage=None, commission=None) -> Discount:
        """Only tiers no order references may change."""
        with self.discounts.transaction():
            discount = self.get_discount(discount_id)
            if self.discounts.is_referenced(discount.id):
                raise DiscountInUse(discount.id)
            if name is not None:
                name = name.strip()
                if not name:
                    raise ValidationError('Discount name is required')
                other = self.discounts.find_by_name(name)
                if other and other.id != discount.id:
                    raise ValidationError(f'Discount tier "{name}" already exists')
                discount.name = name
            if percentage is not None:
                discount.percentage = _percentage(percentage, 'percentage')
            if commission is not None:
                discount.commission = _percentage(commission, 'commission')
            self.discounts.flush()
        return discount
    
    def delete_discount(self, discount_id: int) -> None:
        with self.discounts.transaction():
            discount = self.get_discount(discount_id)
            if self.discounts.is_referenced(discount.id):
                raise DiscountInUse(discount.id)
            self.discounts.delete(discount)
        logger.info(f"Discount tier {discount_id} deleted (tenant={self.discounts.tenant_id})")
    
    def seed_defaults(self) -> int:
        """Create the default ladder; existing tier names are left alone."""
        created = 0
        with self.discounts.transaction():
            for name, percentage, commission in DEFAULT_TIERS:
                if self.discounts.find_by_name(name):
                    continue
                self.discounts.save(Discount(name=name, percentage=round2(percentage),
                                             commission=round2(commission)))
                created += 1
        return created
