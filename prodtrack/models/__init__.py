from .base import TimestampMixin, IntegerIdMixin
from .enums import (
    Role, ProductStatus, ProductionStage, STAGE_FIELDS, ShipmentStatus,
    SemiFinishedCategory, SemiFinishedProductionStatus, StockMovementType, StockLevel,
)
from .master import AppUser
from .order import Order
from .product import Product
from .production import ProductionLog, SemiFinishedProduction
from .stock import Inventory, SemiFinished, SemiFinishedLog
from .shipment import Shipment, ShipmentItem
from .notification import Notification
from .audit import AuditLog

__all__ = [
    # Base
    "TimestampMixin", "IntegerIdMixin",
    # Enums
    "Role", "ProductStatus", "ProductionStage", "STAGE_FIELDS", "ShipmentStatus",
    "SemiFinishedCategory", "SemiFinishedProductionStatus", "StockMovementType", "StockLevel",
    # Master
    "AppUser",
    # Order
    "Order",
    # Product
    "Product",
    # Production
    "ProductionLog", "SemiFinishedProduction",
    # Stock
    "Inventory", "SemiFinished", "SemiFinishedLog",
    # Shipment
    "Shipment", "ShipmentItem",
    # Notification
    "Notification",
    # Audit
    "AuditLog",
]
