"""
Order Models
"""
from sqlalchemy import Column, String, Integer, ForeignKey
from sqlalchemy.orm import relationship
from prodtrack.core import Base
from .base import IntegerIdMixin, TimestampMixin

class Order(Base, IntegerIdMixin, TimestampMixin):
    """Customer order - groups the products planned for one company"""
    __tablename__ = "customer_order"

    company = Column(String(200), nullable=False, index=True)
    name = Column(String(200), nullable=False)  # order reference
    status = Column(String(20), default="REQUESTED", nullable=False)
    created_by = Column(Integer, ForeignKey("app_user.id", ondelete="SET NULL"))

    # Removing the last product leaves the order in place
    products = relationship("Product", back_populates="order", passive_deletes=True)
