"""
Audit Log Model
"""
from sqlalchemy import Column, String, DateTime, Integer, Text
from sqlalchemy.sql import func
from prodtrack.core import Base
from .base import IntegerIdMixin

class AuditLog(Base, IntegerIdMixin):
    """Append-only record of every mutating action"""
    __tablename__ = "audit_log"

    action = Column(String(50), nullable=False, index=True)  # CREATE, ADMIN_APPROVE, CANCEL, CREATE_SHIPMENT, ...
    entity = Column(String(50), nullable=False, index=True)  # Product, Order, Shipment, SemiFinished, User
    entity_id = Column(String(50), nullable=False, index=True)

    # Plain integer, not a foreign key: the trail must outlive deactivated users
    user_id = Column(Integer)
    details = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
