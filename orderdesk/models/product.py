"""Product model."""
from sqlalchemy import (
    Column, BigInteger, Integer, String, Text, Boolean, Numeric, DateTime, ForeignKey, JSON,
    UniqueConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from orderdesk.database import Base, IdType


class Product(Base):
    """
    Catalog product.
    
    `conversion` holds a client's own reference for this product (alias).
    NULLs are not compared by the unique constraint, so many products may
    carry no alias while a set alias maps to exactly one product per tenant.
    """
    
    __tablename__ = 'product'
    __table_args__ = (
        UniqueConstraint('tenant_id', 'code', name='uq_product_tenant_code'),
        UniqueConstraint('tenant_id', 'conversion', name='uq_product_tenant_conversion'),
    )
    
    id = Column(IdType, primary_key=True, autoincrement=True)
    tenant_id = Column(BigInteger, ForeignKey('tenant.id'), nullable=False)
    code = Column(String(64), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    barcode = Column(String(64), nullable=True)
    category = Column(String(120), nullable=True)
    brand = Column(String(120), nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    stock_quantity = Column(Integer, nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True)
    conversion = Column(String(120), nullable=True)
    conversion_brand = Column(String(120), nullable=True)
    equivalent_brands = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
    
    # Relationships
    tenant = relationship('Tenant')
    
    def __repr__(self):
        return f"<Product(id={self.id}, code='{self.code}', name='{self.name}', conversion={self.conversion!r})>"
    
    def to_dict(self):
        return {
            'id': self.id,
            'code': self.code,
            'name': self.name,
            'description': self.description,
            'barcode': self.barcode,
            'category': self.category,
            'brand': self.brand,
            'price': str(self.price) if self.price is not None else None,
            'stockQuantity': self.stock_quantity or 0,
            'active': bool(self.active),
            'conversion': self.conversion,
            'conversionBrand': self.conversion_brand,
            'equivalentBrands': list(self.equivalent_brands or []),
        }
