"""
Shipment Models - dispatch of finished goods
"""
from sqlalchemy import Column, String, Integer, Date, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from prodtrack.core import Base
from .base import IntegerIdMixin, TimestampMixin
from .enums import ShipmentStatus


class Shipment(Base, IntegerIdMixin, TimestampMixin):
    __tablename__ = "shipment"

    company = Column(String(200), nullable=False)
    driver_name = Column(String(100))
    vehicle_plate = Column(String(20))
    estimated_date = Column(Date)

    status = Column(String(20), default=ShipmentStatus.PLANNED.value, nullable=False, index=True)
    exit_date = Column(DateTime(timezone=True))
    delivered_at = Column(DateTime(timezone=True))

    created_by = Column(Integer, ForeignKey("app_user.id", ondelete="SET NULL"))

    # Relationships
    items = relationship("ShipmentItem", back_populates="shipment", cascade="all, delete-orphan")


class ShipmentItem(Base, IntegerIdMixin):
    __tablename__ = "shipment_item"

    shipment_id = Column(Integer, ForeignKey("shipment.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("product.id", ondelete="CASCADE"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)

    # Relationships
    shipment = relationship("Shipment", back_populates="items")
    product = relationship("Product", back_populates="shipment_items")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_shipment_item_quantity_positive"),
    )
