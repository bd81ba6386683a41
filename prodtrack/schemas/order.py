"""
Order Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date, datetime

class OrderItemCreate(BaseModel):
    code: str  # catalog / model code
    name: str
    quantity: int = Field(gt=0)
    termin_date: Optional[date] = None
    material: Optional[str] = None
    description: Optional[str] = None
    master: Optional[str] = None

class OrderCreate(BaseModel):
    company: str
    name: str
    items: List[OrderItemCreate] = []

class OrderResponse(BaseModel):
    id: int
    company: str
    name: str
    status: str
    created_at: Optional[datetime] = None
    product_ids: List[int] = []

    class Config:
        from_attributes = True
