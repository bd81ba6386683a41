"""
Production Service - Business Logic for quantity tracking

Moves units along produced -> stage counters -> warehouse, keeping every
counter inside [0, ordered quantity]. Shipped and available figures are
always derived from shipment items, never stored.
"""
import logging
from typing import Dict, Iterable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from prodtrack.core.database import commit_or_conflict
from prodtrack.core.errors import (
    InsufficientStockError, LedgerError, QuantityExceededError, ValidationError,
)
from prodtrack.core.security import Principal, ensure_role
from prodtrack.models import Inventory, Product, ProductionLog, ShipmentItem
from prodtrack.models.enums import ProductStatus, ProductionStage, Role, STAGE_FIELDS
from .audit_service import AuditService
from .lifecycle import load_product

logger = logging.getLogger(__name__)


class ProductionService:
    """Production / stage / warehouse quantity logic"""

    PRODUCTION_ROLES = (Role.ENGINEER, Role.PLANNER, Role.WORKER, Role.ADMIN)
    RECEIVING_ROLES = (Role.WAREHOUSE, Role.WORKER, Role.PLANNER, Role.ADMIN)

    # Statuses in which stage counters may move
    STAGE_STATUSES = (
        ProductStatus.APPROVED.value,
        ProductStatus.IN_PRODUCTION.value,
        ProductStatus.COMPLETED.value,
    )

    @staticmethod
    def record_production(
        db: Session,
        actor: Principal,
        product_id: int,
        quantity: int,
        shelf: Optional[str] = None,
        expected_revision: Optional[int] = None
    ) -> Product:
        """Add finished units to `produced`. Never flips the product status."""
        ensure_role(actor, ProductionService.PRODUCTION_ROLES, "record production")
        try:
            if quantity is None or quantity <= 0:
                raise ValidationError("Produced quantity must be positive")

            product = load_product(db, product_id, expected_revision)
            if product.status != ProductStatus.IN_PRODUCTION.value:
                raise ValidationError(f"Product {product.system_code} is not in production")

            produced = product.produced or 0
            if produced + quantity > product.quantity:
                raise QuantityExceededError(
                    f"Producing {quantity} more would exceed the ordered {product.quantity} "
                    f"({produced} already produced)"
                )

            product.produced = produced + quantity
            db.add(ProductionLog(
                product_id=product.id,
                stage=ProductionStage.PRODUCED.value,
                quantity=quantity,
                shelf=shelf,
                user_id=actor.id
            ))
            commit_or_conflict(db, f"Product {product_id}")
        except LedgerError as e:
            db.rollback()
            logger.warning(f"Refused production entry for product {product_id}: {e.message}")
            raise

        logger.info(f"Product {product_id}: produced +{quantity} by user {actor.id}")
        AuditService.record(db, actor, "RECORD_PRODUCTION", "Product", product_id, {
            "quantity": quantity, "shelf": shelf,
        })
        db.refresh(product)
        return product

    @staticmethod
    def record_stage(
        db: Session,
        actor: Principal,
        product_id: int,
        stage: ProductionStage,
        delta: int,
        expected_revision: Optional[int] = None
    ) -> Product:
        """Apply a signed delta to one stage counter (corrections may be negative)"""
        ensure_role(actor, ProductionService.PRODUCTION_ROLES, "record stage quantities")
        try:
            stage = ProductionStage(stage)
            field = STAGE_FIELDS.get(stage)
            if field is None:
                raise ValidationError(f"Stage {stage.value} cannot be recorded directly")
            if not delta:
                raise ValidationError("Stage delta must be non-zero")

            product = load_product(db, product_id, expected_revision)
            if product.status not in ProductionService.STAGE_STATUSES:
                raise ValidationError(
                    f"Product {product.system_code} is {product.status}; stages move only after approval"
                )

            new_value = (getattr(product, field) or 0) + delta
            if new_value > product.quantity:
                raise QuantityExceededError(
                    f"{stage.value} would reach {new_value}, above the ordered {product.quantity}"
                )
            if new_value < 0:
                raise ValidationError(f"{stage.value} cannot go below zero")

            setattr(product, field, new_value)
            db.add(ProductionLog(
                product_id=product.id,
                stage=stage.value,
                quantity=delta,
                user_id=actor.id
            ))
            commit_or_conflict(db, f"Product {product_id}")
        except LedgerError as e:
            db.rollback()
            logger.warning(f"Refused stage entry for product {product_id}: {e.message}")
            raise

        logger.info(f"Product {product_id}: {stage.value} {delta:+d} by user {actor.id}")
        AuditService.record(db, actor, "RECORD_STAGE", "Product", product_id, {
            "stage": stage.value, "delta": delta, "value": new_value,
        })
        db.refresh(product)
        return product

    @staticmethod
    def receive_into_warehouse(
        db: Session,
        actor: Principal,
        product_id: int,
        quantity: int,
        shelf: str,
        expected_revision: Optional[int] = None
    ) -> Product:
        """Move packaged units onto a warehouse shelf"""
        ensure_role(actor, ProductionService.RECEIVING_ROLES, "receive goods into the warehouse")
        shelf = (shelf or "").strip()
        try:
            if quantity is None or quantity <= 0:
                raise ValidationError("Received quantity must be positive")
            if not shelf:
                raise ValidationError("A shelf is required")

            product = load_product(db, product_id, expected_revision)
            packaged = product.packaged_qty or 0
            stored = product.stored_qty or 0
            if quantity > packaged:
                raise InsufficientStockError(
                    f"Only {packaged} packaged units of {product.system_code} can be received"
                )
            if stored + quantity > product.quantity:
                raise QuantityExceededError(
                    f"Stored would reach {stored + quantity}, above the ordered {product.quantity}"
                )

            product.packaged_qty = packaged - quantity
            product.stored_qty = stored + quantity

            row = db.query(Inventory).filter(
                Inventory.product_id == product.id,
                Inventory.shelf == shelf
            ).first()
            if row:
                row.quantity += quantity
            else:
                db.add(Inventory(product_id=product.id, shelf=shelf, quantity=quantity))

            db.add(ProductionLog(
                product_id=product.id,
                stage=ProductionStage.STORED.value,
                quantity=quantity,
                shelf=shelf,
                user_id=actor.id
            ))
            commit_or_conflict(db, f"Product {product_id}")
        except LedgerError as e:
            db.rollback()
            logger.warning(f"Refused warehouse receipt for product {product_id}: {e.message}")
            raise

        logger.info(f"Product {product_id}: {quantity} received onto shelf {shelf} by user {actor.id}")
        AuditService.record(db, actor, "WAREHOUSE_RECEIPT", "Product", product_id, {
            "quantity": quantity, "shelf": shelf,
        })
        db.refresh(product)
        return product

    # ============ Derived figures ============

    @staticmethod
    def shipped_totals(db: Session, product_ids: Optional[Iterable[int]] = None) -> Dict[int, int]:
        """product_id -> units on shipment items, summed from the shipment ledger"""
        query = db.query(
            ShipmentItem.product_id,
            func.coalesce(func.sum(ShipmentItem.quantity), 0).label("shipped")
        ).group_by(ShipmentItem.product_id)

        if product_ids is not None:
            ids = list(product_ids)
            if not ids:
                return {}
            query = query.filter(ShipmentItem.product_id.in_(ids))

        return {row.product_id: int(row.shipped) for row in query.all()}

    @staticmethod
    def stock_figures(db: Session, product: Product) -> Dict[str, int]:
        shipped = db.query(
            func.coalesce(func.sum(ShipmentItem.quantity), 0)
        ).filter(ShipmentItem.product_id == product.id).scalar()
        stored = product.stored_qty or 0
        shipped = int(shipped or 0)
        return {
            "stored": stored,
            "shipped": shipped,
            "available": stored - shipped,
        }

    @staticmethod
    def production_history(db: Session, product_id: int):
        return db.query(ProductionLog).filter(
            ProductionLog.product_id == product_id
        ).order_by(ProductionLog.created_at.asc(), ProductionLog.id.asc()).all()
