"""
Shipment Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date, datetime

from prodtrack.models.enums import ShipmentStatus

class ShipmentItemCreate(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)

class ShipmentCreate(BaseModel):
    company: str
    driver_name: Optional[str] = None
    vehicle_plate: Optional[str] = None
    estimated_date: Optional[date] = None
    items: List[ShipmentItemCreate] = []

class QuickShipment(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)
    company: Optional[str] = None
    driver_name: Optional[str] = None
    vehicle_plate: Optional[str] = None

class ShipmentStatusUpdate(BaseModel):
    status: ShipmentStatus

class ShipmentItemResponse(BaseModel):
    id: int
    product_id: int
    quantity: int

    class Config:
        from_attributes = True

class ShipmentResponse(BaseModel):
    id: int
    company: str
    driver_name: Optional[str] = None
    vehicle_plate: Optional[str] = None
    estimated_date: Optional[date] = None
    status: str
    exit_date: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    items: List[ShipmentItemResponse] = []

    class Config:
        from_attributes = True
