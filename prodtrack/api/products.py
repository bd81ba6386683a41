"""
Products API - plan, lifecycle and production quantities
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from prodtrack.core import get_db
from prodtrack.core.security import Principal, get_current_principal
from prodtrack.schemas.product import (
    BulkRequest, BulkResult, BulkSubStatusRequest, CancelRequest, ClearAllRequest,
    EngineerNoteRequest, ProductCreate, ProductionEntry, ProductResponse, ProductUpdate,
    StageEntry, SubStatusRequest, TimelineEvent, TransitionRequest, WarehouseReceipt,
)
from prodtrack.services import (
    ProductLifecycleService, ProductionService, ProductService,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["products"])


def _revision(data) -> Optional[int]:
    return data.expected_revision if data else None


def _detail(db: Session, product) -> dict:
    return ProductService.flatten(product, ProductionService.stock_figures(db, product)["shipped"])


# ============ Queries ============

@router.get("/products", response_model=List[ProductResponse])
async def list_products(
    status: Optional[str] = Query(None),
    has_barcode: Optional[bool] = Query(None),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    products = ProductService.list_products(db, status, has_barcode, search)
    return ProductService.flatten_many(db, products)


@router.get("/products/with-barcode", response_model=List[ProductResponse])
async def products_with_barcode(
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    products = ProductService.list_products(db, has_barcode=True)
    return ProductService.flatten_many(db, products)


@router.get("/products/barcode/{code}", response_model=ProductResponse)
async def find_by_barcode(
    code: str,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    return _detail(db, ProductService.find_by_barcode(db, code))


@router.get("/production/queue", response_model=List[ProductResponse])
async def production_queue(
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    return ProductService.flatten_many(db, ProductService.production_queue(db))


# ============ Bulk ============

@router.post("/products/bulk/approve", response_model=BulkResult)
async def bulk_approve(
    data: BulkRequest,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    return ProductLifecycleService.bulk_approve(db, actor, data.product_ids)


@router.post("/products/bulk/reject", response_model=BulkResult)
async def bulk_reject(
    data: BulkRequest,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    return ProductLifecycleService.bulk_reject(db, actor, data.product_ids, data.reason)


@router.post("/products/bulk/start-production", response_model=BulkResult)
async def bulk_start_production(
    data: BulkRequest,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    return ProductLifecycleService.bulk_start_production(db, actor, data.product_ids)


@router.post("/products/bulk/cancel", response_model=BulkResult)
async def bulk_cancel(
    data: BulkRequest,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    return ProductLifecycleService.bulk_cancel(db, actor, data.product_ids, data.confirmation)


@router.post("/products/bulk/sub-status", response_model=BulkResult)
async def bulk_update_sub_status(
    data: BulkSubStatusRequest,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    return ProductLifecycleService.bulk_update_sub_status(db, actor, data.product_ids, data.sub_status)


@router.post("/products/clear-all")
async def clear_all(
    data: ClearAllRequest,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    return ProductService.clear_all(db, actor, data.confirmation)


# ============ Plan ============

@router.post("/products", response_model=ProductResponse, status_code=201)
async def create_product(
    data: ProductCreate,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    product = ProductService.create_product(
        db, actor,
        name=data.name,
        model=data.model,
        system_code=data.system_code,
        quantity=data.quantity,
        termin_date=data.termin_date,
        order_id=data.order_id,
        order_date=data.order_date,
        material=data.material,
        description=data.description,
        master=data.master
    )
    return _detail(db, product)


@router.get("/products/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: int,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    return _detail(db, ProductService.get_product(db, product_id))


@router.get("/products/{product_id}/timeline", response_model=List[TimelineEvent])
async def product_timeline(
    product_id: int,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    return ProductService.timeline(db, product_id)


@router.patch("/products/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    data: ProductUpdate,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    changes = data.model_dump(exclude_unset=True, exclude={"expected_revision"})
    product = ProductService.update_product(db, actor, product_id, changes, data.expected_revision)
    return _detail(db, product)


# ============ Lifecycle ============

@router.post("/products/{product_id}/approve", response_model=ProductResponse)
async def approve(
    product_id: int,
    data: Optional[TransitionRequest] = None,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    product = ProductLifecycleService.approve(db, actor, product_id, _revision(data))
    return _detail(db, product)


@router.post("/products/{product_id}/reject", response_model=ProductResponse)
async def reject(
    product_id: int,
    data: TransitionRequest,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    product = ProductLifecycleService.reject(db, actor, product_id, data.reason, data.expected_revision)
    return _detail(db, product)


@router.post("/products/{product_id}/send-to-marketing", response_model=ProductResponse)
async def send_to_marketing(
    product_id: int,
    data: Optional[TransitionRequest] = None,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    product = ProductLifecycleService.send_to_marketing(db, actor, product_id, _revision(data))
    return _detail(db, product)


@router.post("/products/{product_id}/marketing-release", response_model=ProductResponse)
async def marketing_release(
    product_id: int,
    data: Optional[TransitionRequest] = None,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    product = ProductLifecycleService.marketing_release(db, actor, product_id, _revision(data))
    return _detail(db, product)


@router.post("/products/{product_id}/marketing-cancel", response_model=ProductResponse)
async def marketing_cancel(
    product_id: int,
    data: TransitionRequest,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    product = ProductLifecycleService.marketing_cancel(db, actor, product_id, data.reason, data.expected_revision)
    return _detail(db, product)


@router.post("/products/{product_id}/start-production", response_model=ProductResponse)
async def start_production(
    product_id: int,
    data: Optional[TransitionRequest] = None,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    product = ProductLifecycleService.start_production(db, actor, product_id, _revision(data))
    return _detail(db, product)


@router.post("/products/{product_id}/complete", response_model=ProductResponse)
async def complete(
    product_id: int,
    data: Optional[TransitionRequest] = None,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    product = ProductLifecycleService.complete(db, actor, product_id, _revision(data))
    return _detail(db, product)


@router.post("/products/{product_id}/resubmit", response_model=ProductResponse)
async def resubmit(
    product_id: int,
    data: Optional[TransitionRequest] = None,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    product = ProductLifecycleService.resubmit(db, actor, product_id, _revision(data))
    return _detail(db, product)


@router.post("/products/{product_id}/cancel")
async def cancel(
    product_id: int,
    data: CancelRequest,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    return ProductLifecycleService.cancel(db, actor, product_id, data.confirmation, data.expected_revision)


@router.post("/products/{product_id}/sub-status", response_model=ProductResponse)
async def update_sub_status(
    product_id: int,
    data: SubStatusRequest,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    product = ProductLifecycleService.update_sub_status(
        db, actor, product_id, data.sub_status, data.expected_revision
    )
    return _detail(db, product)


@router.post("/products/{product_id}/engineer-note", response_model=ProductResponse)
async def update_engineer_note(
    product_id: int,
    data: EngineerNoteRequest,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    product = ProductService.update_engineer_note(db, actor, product_id, data.note, data.expected_revision)
    return _detail(db, product)


# ============ Quantities ============

@router.post("/products/{product_id}/production", response_model=ProductResponse)
async def record_production(
    product_id: int,
    data: ProductionEntry,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    product = ProductionService.record_production(
        db, actor, product_id, data.quantity, data.shelf, data.expected_revision
    )
    return _detail(db, product)


@router.post("/products/{product_id}/stages", response_model=ProductResponse)
async def record_stage(
    product_id: int,
    data: StageEntry,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    product = ProductionService.record_stage(
        db, actor, product_id, data.stage, data.delta, data.expected_revision
    )
    return _detail(db, product)


@router.post("/products/{product_id}/warehouse-receipts", response_model=ProductResponse)
async def receive_into_warehouse(
    product_id: int,
    data: WarehouseReceipt,
    db: Session = Depends(get_db),
    actor: Principal = Depends(get_current_principal)
):
    product = ProductionService.receive_into_warehouse(
        db, actor, product_id, data.quantity, data.shelf, data.expected_revision
    )
    return _detail(db, product)
