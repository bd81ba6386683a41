"""
Stock Schemas - semi-finished pools and workshop tracking
"""
from pydantic import BaseModel, Field
from typing import Optional, List

from prodtrack.models.enums import SemiFinishedCategory, StockMovementType

class SemiFinishedCreate(BaseModel):
    code: str
    name: str
    category: SemiFinishedCategory
    quantity: int = Field(default=0, ge=0)  # opening balance
    min_stock: int = Field(default=10, ge=0)
    unit: str = "adet"
    location: Optional[str] = None
    description: Optional[str] = None

class SemiFinishedUpdate(BaseModel):
    code: Optional[str] = None
    name: Optional[str] = None
    category: Optional[SemiFinishedCategory] = None
    min_stock: Optional[int] = Field(default=None, ge=0)
    unit: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None

class StockMovementCreate(BaseModel):
    movement_type: StockMovementType
    quantity: int
    note: Optional[str] = None

class SemiFinishedSummary(BaseModel):
    id: int
    code: str
    name: str
    category: str
    quantity: int
    min_stock: int
    unit: str
    location: Optional[str] = None
    description: Optional[str] = None
    level: str

class ProductionTarget(BaseModel):
    id: int
    quantity: int = Field(gt=0)
    description: Optional[str] = None

class SendToSemiFinished(BaseModel):
    products: List[ProductionTarget]
    categories: List[SemiFinishedCategory]

class ProducedUpdate(BaseModel):
    produced_qty: int
    semi_finished_id: Optional[int] = None
