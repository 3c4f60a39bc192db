"""UserTenant model - many-to-many relationship between users and tenants with roles."""
import enum
from sqlalchemy import Column, BigInteger, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from orderdesk.database import Base, IdType


class UserRole(enum.Enum):
    """User roles within a tenant."""
    ADMIN = 'ADMIN'
    REPRESENTATIVE = 'REPRESENTATIVE'


class UserTenant(Base):
    """UserTenant model - links users to tenants with roles."""
    
    __tablename__ = 'user_tenant'
    
    id = Column(IdType, primary_key=True, autoincrement=True)
    user_id = Column(BigInteger, ForeignKey('app_user.id'), nullable=False)
    tenant_id = Column(BigInteger, ForeignKey('tenant.id'), nullable=False)
    role = Column(String(20), nullable=False, default=UserRole.REPRESENTATIVE.value)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    
    # Relationships
    user = relationship('AppUser', back_populates='user_tenants')
    tenant = relationship('Tenant', back_populates='user_tenants')
    
    def __repr__(self):
        return f"<UserTenant(user_id={self.user_id}, tenant_id={self.tenant_id}, role='{self.role}')>"
    
    def is_admin(self):
        """Check if user administers the tenant."""
        return self.role == UserRole.ADMIN.value
    
    def is_representative(self):
        return self.role == UserRole.REPRESENTATIVE.value
