"""
Production Tracking Models
"""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from prodtrack.core import Base
from .base import IntegerIdMixin, TimestampMixin
from .enums import SemiFinishedProductionStatus

class ProductionLog(Base, IntegerIdMixin):
    """Append-only history of every quantity movement on a product"""
    __tablename__ = "production_log"

    product_id = Column(Integer, ForeignKey("product.id", ondelete="CASCADE"), nullable=False, index=True)
    stage = Column(String(20), nullable=False)  # see enums.ProductionStage
    quantity = Column(Integer, nullable=False)  # delta, may be negative for corrections
    shelf = Column(String(50))

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("app_user.id", ondelete="SET NULL"))

    # Relationships
    product = relationship("Product", back_populates="production_logs")
    user = relationship("AppUser")

class SemiFinishedProduction(Base, IntegerIdMixin, TimestampMixin):
    """One product queued at one semi-finished workshop"""
    __tablename__ = "semi_finished_production"

    product_id = Column(Integer, ForeignKey("product.id", ondelete="CASCADE"), nullable=False, index=True)
    category = Column(String(20), nullable=False, index=True)  # see enums.SemiFinishedCategory
    target_qty = Column(Integer, nullable=False)
    produced_qty = Column(Integer, default=0, nullable=False)
    status = Column(String(20), default=SemiFinishedProductionStatus.PENDING.value, nullable=False)

    # Relationships
    product = relationship("Product", back_populates="semi_finished_productions")

    __table_args__ = (
        UniqueConstraint("product_id", "category", name="uq_semi_finished_production_product_category"),
        CheckConstraint("produced_qty >= 0", name="ck_sfp_produced_non_negative"),
    )
