"""
Product Models - the unit of planned and tracked production work
"""
from sqlalchemy import Column, String, Integer, Date, ForeignKey, Text, CheckConstraint
from sqlalchemy.orm import relationship
from prodtrack.core import Base
from .base import IntegerIdMixin, TimestampMixin
from .enums import ProductStatus

class Product(Base, IntegerIdMixin, TimestampMixin):
    """Product / production line item"""
    __tablename__ = "product"

    order_id = Column(Integer, ForeignKey("customer_order.id", ondelete="SET NULL"), index=True)

    name = Column(String(300), nullable=False)
    model = Column(String(100), nullable=False)
    system_code = Column(String(100), unique=True, nullable=False, index=True)
    barcode = Column(String(100), unique=True)  # assigned once, on approval

    # Ordered quantity and progress counters
    quantity = Column(Integer, nullable=False)
    produced = Column(Integer, default=0, nullable=False)
    foam_qty = Column(Integer, default=0, nullable=False)
    upholstery_qty = Column(Integer, default=0, nullable=False)
    assembly_qty = Column(Integer, default=0, nullable=False)
    packaged_qty = Column(Integer, default=0, nullable=False)
    stored_qty = Column(Integer, default=0, nullable=False)  # cumulative units received into the warehouse

    # Status
    status = Column(String(20), default=ProductStatus.PENDING.value, nullable=False, index=True)
    sub_status = Column(String(100))  # free-form marker used while IN_PRODUCTION
    rejection_reason = Column(Text)

    # Dates
    termin_date = Column(Date)  # promised delivery date
    order_date = Column(Date)
    production_date = Column(Date)

    # Details
    material = Column(String(200))
    description = Column(Text)
    engineer_note = Column(Text)
    master = Column(String(100))  # foreman responsible

    created_by = Column(Integer, ForeignKey("app_user.id", ondelete="SET NULL"))

    # Optimistic concurrency: every UPDATE is "... WHERE revision = :read_revision"
    revision = Column(Integer, nullable=False, default=1)

    # Relationships
    order = relationship("Order", back_populates="products")
    creator = relationship("AppUser", foreign_keys=[created_by], back_populates="products_created")
    production_logs = relationship("ProductionLog", back_populates="product", cascade="all, delete-orphan")
    inventory = relationship("Inventory", back_populates="product", cascade="all, delete-orphan")
    shipment_items = relationship("ShipmentItem", back_populates="product", cascade="all, delete-orphan")
    semi_finished_productions = relationship("SemiFinishedProduction", back_populates="product", cascade="all, delete-orphan")

    __mapper_args__ = {"version_id_col": revision}

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_product_quantity_positive"),
        CheckConstraint("produced >= 0 AND produced <= quantity", name="ck_product_produced_range"),
        CheckConstraint("stored_qty >= 0 AND stored_qty <= quantity", name="ck_product_stored_range"),
    )

    @property
    def shipped_qty(self) -> int:
        """Units dispatched, always derived from the shipment ledger"""
        return sum(item.quantity for item in self.shipment_items)

    @property
    def available_qty(self) -> int:
        return (self.stored_qty or 0) - self.shipped_qty

    def __repr__(self):
        return f"<Product {self.system_code} {self.status}>"
