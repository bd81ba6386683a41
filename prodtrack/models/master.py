"""
Master Tables: AppUser
"""
from sqlalchemy import Column, String, Boolean
from sqlalchemy.orm import relationship
from prodtrack.core import Base
from .base import IntegerIdMixin, TimestampMixin
from .enums import Role

class AppUser(Base, IntegerIdMixin, TimestampMixin):
    """Application User - one role per user"""
    __tablename__ = "app_user"

    username = Column(String(100), unique=True, nullable=False)
    full_name = Column(String(200))
    hashed_password = Column(String(255))
    role = Column(String(20), nullable=False, default=Role.VIEWER.value)  # see enums.Role
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    products_created = relationship("Product", foreign_keys="Product.created_by", back_populates="creator")

    def __repr__(self):
        return f"<AppUser {self.username} ({self.role})>"
