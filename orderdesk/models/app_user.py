"""AppUser model - platform users (administrators and sales representatives)."""
from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from orderdesk.database import Base, IdType


class AppUser(Base):
    """AppUser model. Credentials are handled by the auth gateway, not here."""
    
    __tablename__ = 'app_user'
    
    id = Column(IdType, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True)
    full_name = Column(String(200), nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
    
    # Relationships
    user_tenants = relationship('UserTenant', back_populates='user')
    
    @property
    def display_name(self):
        return self.full_name or self.email
    
    def __repr__(self):
        return f"<AppUser(id={self.id}, email='{self.email}')>"
