"""
Semi-finished Production Service - fan-out of products to category workshops
"""
import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from prodtrack.core.database import commit_or_conflict
from prodtrack.core.errors import (
    LedgerError, NotFoundError, QuantityExceededError, ValidationError,
)
from prodtrack.core.security import Principal, ensure_role
from prodtrack.models import Product, SemiFinishedProduction
from prodtrack.models.enums import (
    Role, SemiFinishedCategory, SemiFinishedProductionStatus, StockLevel, StockMovementType,
)
from .audit_service import AuditService
from .semi_finished_service import SemiFinishedService

logger = logging.getLogger(__name__)


def production_status(produced_qty: int, target_qty: int) -> SemiFinishedProductionStatus:
    if produced_qty <= 0:
        return SemiFinishedProductionStatus.PENDING
    if produced_qty >= target_qty:
        return SemiFinishedProductionStatus.COMPLETED
    return SemiFinishedProductionStatus.IN_PROGRESS


class SemiFinishedProductionService:
    """Workshop tracking rows, one per (product, category)"""

    SEND_ROLES = (Role.ADMIN, Role.PLANNER, Role.ENGINEER)

    @staticmethod
    def send_to_production(
        db: Session,
        actor: Principal,
        products: Iterable,
        categories: Iterable[SemiFinishedCategory]
    ) -> Dict:
        """
        Queue N products at M workshops. An existing (product, category) row
        gets its target raised by the new quantity instead of a duplicate row.
        `products` items carry id, quantity and an optional description.
        """
        ensure_role(actor, SemiFinishedProductionService.SEND_ROLES, "send products to semi-finished production")

        requests = []
        for entry in products:
            data = entry if isinstance(entry, dict) else entry.model_dump()
            if data.get("quantity") is None or data["quantity"] <= 0:
                raise ValidationError("Target quantity must be positive")
            requests.append(data)
        categories = [SemiFinishedCategory(c) for c in dict.fromkeys(categories)]
        if not requests or not categories:
            raise ValidationError("Select at least one product and one category")

        created = updated = 0
        try:
            for data in requests:
                product = db.query(Product).filter(Product.id == data["id"]).first()
                if not product:
                    raise NotFoundError(f"Product {data['id']} not found")
                if data.get("description"):
                    product.description = data["description"]

                for category in categories:
                    row = db.query(SemiFinishedProduction).filter(
                        SemiFinishedProduction.product_id == product.id,
                        SemiFinishedProduction.category == category.value
                    ).first()
                    target = (row.target_qty if row else 0) + data["quantity"]
                    if target > product.quantity:
                        raise QuantityExceededError(
                            f"{product.system_code} at {category.value}: target {target} "
                            f"exceeds the ordered {product.quantity}"
                        )
                    if row:
                        row.target_qty = target
                        row.status = production_status(row.produced_qty or 0, target).value
                        updated += 1
                    else:
                        db.add(SemiFinishedProduction(
                            product_id=product.id,
                            category=category.value,
                            target_qty=target,
                            produced_qty=0,
                            status=SemiFinishedProductionStatus.PENDING.value
                        ))
                        # autoflush is off; make the row visible to the next lookup
                        db.flush()
                        created += 1
            commit_or_conflict(db, "Semi-finished production")
        except LedgerError as e:
            db.rollback()
            logger.warning(f"Refused semi-finished fan-out: {e.message}")
            raise

        logger.info(
            f"Sent {len(requests)} product(s) to {[c.value for c in categories]}: "
            f"{created} created, {updated} updated by user {actor.id}"
        )
        for data in requests:
            AuditService.record(db, actor, "SEND_TO_SEMI_FINISHED", "Product", data["id"], {
                "categories": [c.value for c in categories],
                "quantity": data["quantity"],
            })
        return {"created": created, "updated": updated}

    @staticmethod
    def update_produced(
        db: Session,
        actor: Principal,
        row_id: int,
        produced_qty: int,
        semi_finished_id: Optional[int] = None
    ) -> Dict:
        """
        Set the produced counter of one tracking row. When a stock pool is
        named, the positive delta is booked into it as an IN movement.
        Returns low-stock warnings for that pool; they never block.
        """
        row = db.query(SemiFinishedProduction).options(
            joinedload(SemiFinishedProduction.product)
        ).filter(SemiFinishedProduction.id == row_id).first()
        if not row:
            raise NotFoundError(f"Tracking row {row_id} not found")

        category = SemiFinishedCategory(row.category)
        ensure_role(actor, (Role.ADMIN, category.operator_role), f"update {category.value} production")

        warnings: List[str] = []
        try:
            if produced_qty is None or produced_qty < 0:
                raise ValidationError("Produced quantity cannot be negative")
            if produced_qty > row.product.quantity:
                raise QuantityExceededError(
                    f"Produced {produced_qty} exceeds the ordered {row.product.quantity}"
                )

            delta = produced_qty - (row.produced_qty or 0)
            row.produced_qty = produced_qty
            row.status = production_status(produced_qty, row.target_qty).value

            pool = None
            if semi_finished_id is not None:
                pool = SemiFinishedService.get_item(db, semi_finished_id)
                if pool.category != category.value:
                    raise ValidationError(f"Stock item {pool.code} is not a {category.value} item")
                if delta > 0:
                    SemiFinishedService.add_movement(
                        db, actor, pool, StockMovementType.IN, delta,
                        note=f"{row.product.system_code} production",
                        reference_type="PRODUCTION",
                        reference_id=str(row.id)
                    )
            commit_or_conflict(db, "Semi-finished production")
        except LedgerError as e:
            db.rollback()
            logger.warning(f"Refused produced update on tracking row {row_id}: {e.message}")
            raise

        if pool is not None:
            summary = SemiFinishedService.summarize(db, pool)
            if summary["level"] == StockLevel.OUT_OF_STOCK.value:
                warnings.append(f"{pool.code} is out of stock")
            elif summary["level"] == StockLevel.LOW.value:
                warnings.append(f"{pool.code} is low: {summary['quantity']} (minimum {pool.min_stock})")

        logger.info(f"Tracking row {row_id} ({category.value}): produced {produced_qty}, delta {delta:+d}")
        AuditService.record(db, actor, "SEMI_FINISHED_PRODUCED", "SemiFinishedProduction", row_id, {
            "produced_qty": produced_qty, "delta": delta, "semi_finished_id": semi_finished_id,
        })
        db.refresh(row)
        return {"row": SemiFinishedProductionService.to_dict(row), "warnings": warnings}

    @staticmethod
    def list_by_category(db: Session, category: SemiFinishedCategory) -> List[Dict]:
        rows = db.query(SemiFinishedProduction).options(
            joinedload(SemiFinishedProduction.product).joinedload(Product.order)
        ).filter(
            SemiFinishedProduction.category == SemiFinishedCategory(category).value
        ).order_by(SemiFinishedProduction.created_at.desc(), SemiFinishedProduction.id.desc()).all()
        return [SemiFinishedProductionService.to_dict(r) for r in rows]

    @staticmethod
    def summary(db: Session) -> Dict[str, Dict[str, int]]:
        """Row counts per category and status"""
        counts = db.query(
            SemiFinishedProduction.category,
            SemiFinishedProduction.status,
            func.count(SemiFinishedProduction.id)
        ).group_by(SemiFinishedProduction.category, SemiFinishedProduction.status).all()

        result = {
            c.value: {**{s.value: 0 for s in SemiFinishedProductionStatus}, "total": 0}
            for c in SemiFinishedCategory
        }
        for category, status, count in counts:
            bucket = result.setdefault(category, {"total": 0})
            bucket[status] = bucket.get(status, 0) + count
            bucket["total"] += count
        return result

    @staticmethod
    def remove(db: Session, actor: Principal, row_id: int) -> None:
        ensure_role(actor, (Role.ADMIN,), "remove tracking rows")
        row = db.query(SemiFinishedProduction).filter(SemiFinishedProduction.id == row_id).first()
        if not row:
            raise NotFoundError(f"Tracking row {row_id} not found")
        snapshot = {"product_id": row.product_id, "category": row.category}
        db.delete(row)
        db.commit()

        logger.info(f"Tracking row {row_id} removed by user {actor.id}")
        AuditService.record(db, actor, "DELETE", "SemiFinishedProduction", row_id, snapshot)

    @staticmethod
    def to_dict(row: SemiFinishedProduction) -> Dict:
        product = row.product
        return {
            "id": row.id,
            "product_id": row.product_id,
            "system_code": product.system_code if product else None,
            "name": product.name if product else None,
            "company": product.order.company if product and product.order else None,
            "ordered_qty": product.quantity if product else None,
            "category": row.category,
            "target_qty": row.target_qty,
            "produced_qty": row.produced_qty,
            "status": row.status,
            "created_at": row.created_at,
        }
