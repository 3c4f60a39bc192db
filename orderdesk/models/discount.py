"""Discount tier model."""
from sqlalchemy import Column, BigInteger, String, Numeric, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from orderdesk.database import Base, IdType


class Discount(Base):
    """
    Discount tier (e.g. "3*5").
    
    Carries both the customer discount percentage and the commission
    percentage paid to the representative.
    """
    
    __tablename__ = 'discount'
    __table_args__ = (
        UniqueConstraint('tenant_id', 'name', name='uq_discount_tenant_name'),
    )
    
    id = Column(IdType, primary_key=True, autoincrement=True)
    tenant_id = Column(BigInteger, ForeignKey('tenant.id'), nullable=False)
    name = Column(String(50), nullable=False)
    percentage = Column(Numeric(5, 2), nullable=False)
    commission = Column(Numeric(5, 2), nullable=False)
    
    tenant = relationship('Tenant')
    
    def __repr__(self):
        return f"<Discount(id={self.id}, name='{self.name}', pct={self.percentage}, commission={self.commission})>"
    
    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'percentage': str(self.percentage),
            'commission': str(self.commission),
        }
