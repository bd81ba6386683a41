"""
Semi-finished API - stock pools and workshop tracking rows
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from prodtrack.core import get_db
from prodtrack.core.security import Principal, get_current_principal
from prodtrack.models.enums import SemiFinishedCategory
from prodtrack.schemas.stock import (
    ProducedUpdate, SemiFinishedCreate, SemiFinishedSummary, SemiFinishedUpdate, SendToSemiFinished,
    StockMovementCreate,
)
from prodtrack.services import SemiFinishedProductionService, SemiFinishedService

router = APIRouter(prefix="/semi-finished", tags=["semi-finished"])
production_router = APIRouter(prefix="/semi-finished-production", tags=["semi-finished"])

# ============ Stock pools ============

@router.get("", response_model=List[SemiFinishedSummary])
async def list_semi_finished(
    category: Optional[SemiFinishedCategory] = Query(None),
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    return SemiFinishedService.list_items(db, category.value if category else None)


@router.post("", response_model=SemiFinishedSummary, status_code=201)
async def create_semi_finished(
    data: SemiFinishedCreate,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    item = SemiFinishedService.create(db, actor, **data.model_dump())
    return SemiFinishedService.summarize(db, item)


@router.patch("/{item_id}", response_model=SemiFinishedSummary)
async def update_semi_finished(
    item_id: int,
    data: SemiFinishedUpdate,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    item = SemiFinishedService.update(db, actor, item_id, **data.model_dump(exclude_unset=True))
    return SemiFinishedService.summarize(db, item)


@router.delete("/{item_id}")
async def delete_semi_finished(
    item_id: int,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    SemiFinishedService.delete(db, actor, item_id)
    return {"success": True}


@router.post("/{item_id}/stock", response_model=SemiFinishedSummary)
async def adjust_stock(
    item_id: int,
    data: StockMovementCreate,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    return SemiFinishedService.adjust_stock(db, actor, item_id, data.movement_type, data.quantity, data.note)


@router.get("/{item_id}/movements")
async def stock_movements(
    item_id: int,
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    SemiFinishedService.get_item(db, item_id)
    return [
        {
            "id": m.id,
            "movement_type": m.movement_type,
            "quantity": m.quantity,
            "reference_type": m.reference_type,
            "reference_id": m.reference_id,
            "note": m.note,
            "created_by": m.created_by,
            "created_at": m.created_at,
        }
        for m in SemiFinishedService.movements(db, item_id, limit)
    ]

# ============ Workshop tracking ============

@production_router.post("", status_code=201)
async def send_to_production(
    data: SendToSemiFinished,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    return SemiFinishedProductionService.send_to_production(db, actor, data.products, data.categories)


@production_router.get("")
async def list_tracking_rows(
    category: SemiFinishedCategory = Query(...),
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    return SemiFinishedProductionService.list_by_category(db, category)


@production_router.get("/summary")
async def tracking_summary(
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    return SemiFinishedProductionService.summary(db)


@production_router.post("/{row_id}/produced")
async def update_produced(
    row_id: int,
    data: ProducedUpdate,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    return SemiFinishedProductionService.update_produced(
        db, actor, row_id, data.produced_qty, data.semi_finished_id
    )


@production_router.delete("/{row_id}")
async def remove_tracking_row(
    row_id: int,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    SemiFinishedProductionService.remove(db, actor, row_id)
    return {"success": True}
