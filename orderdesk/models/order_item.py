"""OrderItem model for order line items."""
from sqlalchemy import Column, BigInteger, Integer, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from orderdesk.database import Base, IdType
from orderdesk.utils.money import money_str


class OrderItem(Base):
    """
    Order line.
    
    unit_price is a snapshot taken when the line is written; commission is
    a currency amount, not a percentage.
    """
    
    __tablename__ = 'order_item'
    
    id = Column(IdType, primary_key=True, autoincrement=True)
    order_id = Column(BigInteger, ForeignKey('sales_order.id'), nullable=False, index=True)
    product_id = Column(BigInteger, ForeignKey('product.id'), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    discount_id = Column(BigInteger, ForeignKey('discount.id'), nullable=True)
    discount_percentage = Column(Numeric(5, 2), nullable=True)
    commission = Column(Numeric(12, 2), nullable=False, default=0)
    subtotal = Column(Numeric(12, 2), nullable=False)
    
    # Relationships
    order = relationship('Order', back_populates='items')
    product = relationship('Product')
    discount = relationship('Discount')
    
    def __repr__(self):
        return f"<OrderItem(id={self.id}, order_id={self.order_id}, product_id={self.product_id}, qty={self.quantity}, subtotal={self.subtotal})>"
    
    def to_dict(self):
        return {
            'id': self.id,
            'orderId': self.order_id,
            'productId': self.product_id,
            'quantity': self.quantity,
            'unitPrice': money_str(self.unit_price),
            'discountId': self.discount_id,
            'discountPercentage': str(self.discount_percentage) if self.discount_percentage is not None else None,
            'commission': money_str(self.commission),
            'subtotal': money_str(self.subtotal),
        }
