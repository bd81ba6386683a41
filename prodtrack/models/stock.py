"""
Stock & Inventory Models
"""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from prodtrack.core import Base
from .base import IntegerIdMixin, TimestampMixin

class Inventory(Base, IntegerIdMixin, TimestampMixin):
    """Finished goods per warehouse shelf"""
    __tablename__ = "inventory"

    product_id = Column(Integer, ForeignKey("product.id", ondelete="CASCADE"), nullable=False, index=True)
    shelf = Column(String(50), nullable=False)
    quantity = Column(Integer, default=0, nullable=False)

    # Relationships
    product = relationship("Product", back_populates="inventory")

    __table_args__ = (
        UniqueConstraint("product_id", "shelf", name="uq_inventory_product_shelf"),
    )

class SemiFinished(Base, IntegerIdMixin, TimestampMixin):
    """Semi-finished stock pool; quantity is the sum of its ledger"""
    __tablename__ = "semi_finished"

    code = Column(String(50), unique=True, nullable=False)
    name = Column(String(200), nullable=False)
    category = Column(String(20), nullable=False, index=True)  # see enums.SemiFinishedCategory
    description = Column(Text)
    min_stock = Column(Integer, default=10, nullable=False)  # reorder threshold
    unit = Column(String(20), default="adet", nullable=False)
    location = Column(String(100))

    # Relationships
    logs = relationship("SemiFinishedLog", back_populates="semi_finished", cascade="all, delete-orphan")

class SemiFinishedLog(Base, IntegerIdMixin):
    """Semi-finished Stock Movement Ledger"""
    __tablename__ = "semi_finished_log"

    semi_finished_id = Column(Integer, ForeignKey("semi_finished.id", ondelete="CASCADE"), nullable=False, index=True)

    # Movement info
    movement_type = Column(String(10), nullable=False)  # IN, OUT
    quantity = Column(Integer, nullable=False)  # always positive, sign comes from movement_type

    # Reference
    reference_type = Column(String(30))  # INITIAL, MANUAL, PRODUCTION
    reference_id = Column(String(50))

    # Metadata
    note = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    created_by = Column(Integer, ForeignKey("app_user.id", ondelete="SET NULL"))

    # Relationships
    semi_finished = relationship("SemiFinished", back_populates="logs")
