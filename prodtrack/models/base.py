"""
Base Model Mixins
"""
from sqlalchemy import Column, DateTime, Integer, func

class IntegerIdMixin:
    """Mixin for integer autoincrement primary key"""
    id = Column(Integer, primary_key=True, autoincrement=True)

class TimestampMixin:
    """Mixin for created_at and updated_at timestamps"""
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
