"""
Notification Model - messages for the admin queue
"""
from sqlalchemy import Column, String, DateTime, Integer, Boolean, Text
from sqlalchemy.sql import func
from prodtrack.core import Base
from .base import IntegerIdMixin

class Notification(Base, IntegerIdMixin):
    __tablename__ = "notification"

    type = Column(String(30), nullable=False)  # MARKETING_REJECT
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)

    # Product snapshot, kept even if the product is later cancelled
    product_id = Column(Integer, index=True)
    product_name = Column(String(300))
    system_code = Column(String(100))

    is_read = Column(Boolean, default=False, nullable=False, index=True)
    created_by = Column(String(100))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
