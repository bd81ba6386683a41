# Pydantic Schemas Package
from .order import OrderCreate, OrderItemCreate, OrderResponse
from .product import (
    ProductCreate, ProductUpdate, ProductResponse, TransitionRequest, CancelRequest,
    SubStatusRequest, BulkRequest, BulkResult, ProductionEntry, StageEntry,
    WarehouseReceipt, TimelineEvent, BulkSubStatusRequest, EngineerNoteRequest, ClearAllRequest,
)
from .shipment import (
    ShipmentCreate, ShipmentItemCreate, QuickShipment, ShipmentStatusUpdate, ShipmentResponse,
)
from .stock import (
    SemiFinishedCreate, SemiFinishedUpdate, StockMovementCreate, SemiFinishedSummary,
    ProductionTarget, SendToSemiFinished, ProducedUpdate,
)
from .user import UserCreate, PasswordChange, UserInfo, Token

__all__ = [
    "OrderCreate", "OrderItemCreate", "OrderResponse",
    "ProductCreate", "ProductUpdate", "ProductResponse", "TransitionRequest", "CancelRequest",
    "SubStatusRequest", "BulkRequest", "BulkResult", "ProductionEntry", "StageEntry",
    "WarehouseReceipt", "TimelineEvent", "BulkSubStatusRequest", "EngineerNoteRequest",
    "ClearAllRequest",
    "ShipmentCreate", "ShipmentItemCreate", "QuickShipment", "ShipmentStatusUpdate", "ShipmentResponse",
    "SemiFinishedCreate", "SemiFinishedUpdate", "StockMovementCreate", "SemiFinishedSummary",
    "ProductionTarget", "SendToSemiFinished", "ProducedUpdate",
    "UserCreate", "PasswordChange", "UserInfo", "Token",
]
