"""
Shipments API - dispatch of finished goods
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from prodtrack.core import get_db
from prodtrack.core.security import Principal, get_current_principal
from prodtrack.schemas.shipment import (
    QuickShipment, ShipmentCreate, ShipmentResponse, ShipmentStatusUpdate,
)
from prodtrack.services import ShipmentService

router = APIRouter(prefix="/shipments", tags=["shipments"])


@router.get("", response_model=List[ShipmentResponse])
async def list_shipments(
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    return [ShipmentService.to_dict(s) for s in ShipmentService.list_shipments(db, status)]


@router.get("/ready")
async def ready_to_ship(
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    return ShipmentService.ready_to_ship(db)


@router.get("/shipped-items")
async def shipped_items(
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    return ShipmentService.shipped_products(db)


@router.post("", response_model=ShipmentResponse, status_code=201)
async def create_shipment(
    data: ShipmentCreate,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    shipment = ShipmentService.create_shipment(
        db, actor,
        company=data.company,
        items=data.items,
        driver_name=data.driver_name,
        vehicle_plate=data.vehicle_plate,
        estimated_date=data.estimated_date
    )
    return ShipmentService.to_dict(shipment)


@router.post("/quick", response_model=ShipmentResponse, status_code=201)
async def quick_shipment(
    data: QuickShipment,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    shipment = ShipmentService.ship_product(
        db, actor, data.product_id, data.quantity,
        company=data.company,
        driver_name=data.driver_name,
        vehicle_plate=data.vehicle_plate
    )
    return ShipmentService.to_dict(shipment)


@router.get("/{shipment_id}", response_model=ShipmentResponse)
async def get_shipment(
    shipment_id: int,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    return ShipmentService.to_dict(ShipmentService.get_shipment(db, shipment_id))


@router.post("/{shipment_id}/status", response_model=ShipmentResponse)
async def update_shipment_status(
    shipment_id: int,
    data: ShipmentStatusUpdate,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    shipment = ShipmentService.update_status(db, actor, shipment_id, data.status)
    return ShipmentService.to_dict(shipment)
