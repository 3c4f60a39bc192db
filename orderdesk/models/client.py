"""Client model."""
from sqlalchemy import Column, BigInteger, String, Text, DateTime, ForeignKey, Boolean, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from orderdesk.database import Base, IdType


class Client(Base):
    """Client (customer company served by a representative)."""
    
    __tablename__ = 'client'
    __table_args__ = (
        UniqueConstraint('tenant_id', 'code', name='uq_client_tenant_code'),
    )
    
    id = Column(IdType, primary_key=True, autoincrement=True)
    tenant_id = Column(BigInteger, ForeignKey('tenant.id'), nullable=False)
    name = Column(String(200), nullable=False)
    tax_id = Column(String(50), nullable=True)
    code = Column(String(50), nullable=False)
    address = Column(Text, nullable=True)
    city = Column(String(120), nullable=True)
    state = Column(String(60), nullable=True)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    representative_id = Column(BigInteger, ForeignKey('app_user.id'), nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
    
    # Relationships
    tenant = relationship('Tenant')
    representative = relationship('AppUser')
    orders = relationship('Order', back_populates='client')
    
    def __repr__(self):
        return f"<Client(id={self.id}, code='{self.code}', name='{self.name}')>"
