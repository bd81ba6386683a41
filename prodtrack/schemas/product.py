"""
Product Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date, datetime

from prodtrack.models.enums import ProductionStage

class ProductCreate(BaseModel):
    name: str
    model: str
    system_code: str
    quantity: int = Field(gt=0)
    termin_date: date
    order_id: Optional[int] = None
    order_date: Optional[date] = None
    material: Optional[str] = None
    description: Optional[str] = None
    master: Optional[str] = None

class ProductUpdate(BaseModel):
    name: Optional[str] = None
    model: Optional[str] = None
    quantity: Optional[int] = Field(default=None, gt=0)
    termin_date: Optional[date] = None
    production_date: Optional[date] = None
    material: Optional[str] = None
    description: Optional[str] = None
    engineer_note: Optional[str] = None
    master: Optional[str] = None
    expected_revision: Optional[int] = None

class TransitionRequest(BaseModel):
    """Body of every single-product status change"""
    reason: Optional[str] = None
    expected_revision: Optional[int] = None

class CancelRequest(BaseModel):
    confirmation: str = ""
    expected_revision: Optional[int] = None

class SubStatusRequest(BaseModel):
    sub_status: Optional[str] = None
    expected_revision: Optional[int] = None

class BulkRequest(BaseModel):
    product_ids: List[int]
    reason: Optional[str] = None
    confirmation: Optional[str] = None

class BulkSubStatusRequest(BaseModel):
    product_ids: List[int]
    sub_status: Optional[str] = None

class EngineerNoteRequest(BaseModel):
    note: Optional[str] = None
    expected_revision: Optional[int] = None

class ClearAllRequest(BaseModel):
    confirmation: str = ""

class BulkResult(BaseModel):
    count: int
    skipped: int

class ProductionEntry(BaseModel):
    quantity: int
    shelf: Optional[str] = None
    expected_revision: Optional[int] = None

class StageEntry(BaseModel):
    stage: ProductionStage
    delta: int
    expected_revision: Optional[int] = None

class WarehouseReceipt(BaseModel):
    quantity: int
    shelf: str
    expected_revision: Optional[int] = None

class ProductResponse(BaseModel):
    """Product as flattened by ProductService.flatten"""
    id: int
    order_id: Optional[int] = None
    company: Optional[str] = None
    order_name: Optional[str] = None
    name: str
    model: str
    system_code: str
    barcode: Optional[str] = None
    quantity: int
    produced: int
    foam_qty: int
    upholstery_qty: int
    assembly_qty: int
    packaged_qty: int
    stored_qty: int
    shipped_qty: int = 0
    available_qty: int = 0
    status: str
    sub_status: Optional[str] = None
    rejection_reason: Optional[str] = None
    termin_date: Optional[date] = None
    order_date: Optional[date] = None
    production_date: Optional[date] = None
    material: Optional[str] = None
    description: Optional[str] = None
    engineer_note: Optional[str] = None
    master: Optional[str] = None
    revision: int
    allowed_transitions: List[str] = []
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class TimelineEvent(BaseModel):
    id: str
    date: Optional[datetime]
    type: str
    title: str
    description: Optional[str] = None
    user: Optional[str] = None
