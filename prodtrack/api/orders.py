"""
Orders API
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from prodtrack.core import get_db
from prodtrack.core.security import Principal, get_current_principal
from prodtrack.schemas.order import OrderCreate, OrderResponse
from prodtrack.services import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("", response_model=List[OrderResponse])
async def list_orders(
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    return [OrderService.to_dict(o) for o in OrderService.list_orders(db, search)]


@router.post("", response_model=OrderResponse, status_code=201)
async def create_order(
    data: OrderCreate,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    order = OrderService.create_order(db, actor, data.company, data.name, data.items)
    return OrderService.to_dict(order)


@router.get("/{order_id}/clone")
async def clone_order(
    order_id: int,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    return OrderService.clone_data(db, order_id)
