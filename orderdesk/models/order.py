"""Order model (pedido / cotação)."""
import enum
from sqlalchemy import Column, BigInteger, Integer, String, Numeric, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from orderdesk.database import Base, IdType
from orderdesk.utils.money import money_str


class OrderStatus(str, enum.Enum):
    """Order lifecycle. Only confirmed orders count toward statistics."""
    QUOTATION = 'QUOTATION'
    CONFIRMED = 'CONFIRMED'


class Order(Base):
    """
    Sales order.
    
    Monetary fields are derived from the items by the pricing engine:
    subtotal = sum(item.subtotal), total = subtotal - discount_amount.
    `version` is bumped on every UPDATE; a stale write fails instead of
    overwriting totals computed from another item set.
    """
    
    __tablename__ = 'sales_order'
    
    id = Column(IdType, primary_key=True, autoincrement=True)
    tenant_id = Column(BigInteger, ForeignKey('tenant.id'), nullable=False)
    client_id = Column(BigInteger, ForeignKey('client.id'), nullable=False)
    representative_id = Column(BigInteger, ForeignKey('app_user.id'), nullable=False)
    status = Column(String(20), nullable=False, default=OrderStatus.QUOTATION.value)
    payment_terms = Column(String(120), nullable=True)
    subtotal = Column(Numeric(12, 2), nullable=False, default=0)
    discount_id = Column(BigInteger, ForeignKey('discount.id'), nullable=True)
    discount_percentage = Column(Numeric(5, 2), nullable=True)
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)
    total = Column(Numeric(12, 2), nullable=False, default=0)
    notes = Column(Text, nullable=True)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
    
    __mapper_args__ = {'version_id_col': version}
    
    # Relationships
    tenant = relationship('Tenant')
    client = relationship('Client', back_populates='orders')
    representative = relationship('AppUser')
    discount = relationship('Discount')
    items = relationship('OrderItem', back_populates='order', cascade='all, delete-orphan',
                         order_by='OrderItem.id')
    
    def __repr__(self):
        return f"<Order(id={self.id}, status='{self.status}', subtotal={self.subtotal}, total={self.total})>"
    
    @property
    def code(self):
        """Human-facing order code, e.g. ORD-0042."""
        return f"ORD-{str(self.id).zfill(4)}"
    
    @property
    def is_confirmed(self):
        return self.status == OrderStatus.CONFIRMED.value
    
    def to_dict(self):
        return {
            'id': self.id,
            'code': self.code,
            'clientId': self.client_id,
            'representativeId': self.representative_id,
            'status': self.status,
            'paymentTerms': self.payment_terms,
            'subtotal': money_str(self.subtotal),
            'discountId': self.discount_id,
            'discountPercentage': str(self.discount_percentage) if self.discount_percentage is not None else None,
            'discountAmount': money_str(self.discount_amount),
            'total': money_str(self.total),
            'notes': self.notes,
            'version': self.version,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }
