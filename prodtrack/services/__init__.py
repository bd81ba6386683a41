# Services Package
from .audit_service import AuditService
from .lifecycle import ProductLifecycleService, TRANSITIONS, Transition
from .production_service import ProductionService
from .order_service import OrderService
from .product_service import ProductService
from .shipment_service import ShipmentService
from .semi_finished_service import SemiFinishedService
from .semi_finished_production_service import SemiFinishedProductionService
from .notification_service import NotificationService
from .user_service import UserService
from .report_service import ReportService

__all__ = [
    "AuditService",
    "ProductLifecycleService",
    "TRANSITIONS",
    "Transition",
    "ProductionService",
    "OrderService",
    "ProductService",
    "ShipmentService",
    "SemiFinishedService",
    "SemiFinishedProductionService",
    "NotificationService",
    "UserService",
    "ReportService",
]
