"""
Semi-finished Stock Service - Business Logic for the category pools

Pool quantity is never stored: it is IN minus OUT over the movement ledger.
"""
import logging
from typing import Dict, List, Optional

from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from prodtrack.core.database import commit_or_conflict
from prodtrack.core.errors import (
    InsufficientStockError, LedgerError, NotFoundError, ValidationError,
)
from prodtrack.core.security import Principal, ensure_role
from prodtrack.models import SemiFinished, SemiFinishedLog
from prodtrack.models.enums import Role, SemiFinishedCategory, StockLevel, StockMovementType
from .audit_service import AuditService

logger = logging.getLogger(__name__)


def stock_level(quantity: int, min_stock: int) -> StockLevel:
    """Advisory badge only; never blocks a movement"""
    if quantity <= 0:
        return StockLevel.OUT_OF_STOCK
    if quantity <= min_stock:
        return StockLevel.LOW
    return StockLevel.OK


def _signed_quantity():
    return func.coalesce(func.sum(
        case(
            (SemiFinishedLog.movement_type == StockMovementType.IN.value, SemiFinishedLog.quantity),
            (SemiFinishedLog.movement_type == StockMovementType.OUT.value, -SemiFinishedLog.quantity),
            else_=0
        )
    ), 0)


class SemiFinishedService:
    """Semi-finished stock business logic"""

    MANAGE_ROLES = (Role.ADMIN, Role.PLANNER)
    ADJUST_ROLES = (Role.ADMIN, Role.PLANNER, Role.WORKER)

    @staticmethod
    def get_quantity(db: Session, semi_finished_id: int) -> int:
        return int(db.query(_signed_quantity()).filter(
            SemiFinishedLog.semi_finished_id == semi_finished_id
        ).scalar() or 0)

    @staticmethod
    def get_item(db: Session, semi_finished_id: int) -> SemiFinished:
        item = db.query(SemiFinished).filter(SemiFinished.id == semi_finished_id).first()
        if not item:
            raise NotFoundError(f"Semi-finished item {semi_finished_id} not found")
        return item

    @staticmethod
    def summarize(db: Session, item: SemiFinished, quantity: Optional[int] = None) -> Dict:
        if quantity is None:
            quantity = SemiFinishedService.get_quantity(db, item.id)
        return {
            "id": item.id,
            "code": item.code,
            "name": item.name,
            "category": item.category,
            "quantity": quantity,
            "min_stock": item.min_stock,
            "unit": item.unit,
            "location": item.location,
            "description": item.description,
            "level": stock_level(quantity, item.min_stock).value,
        }

    @staticmethod
    def list_items(db: Session, category: Optional[str] = None) -> List[Dict]:
        """Each pool with its computed quantity and level"""
        totals_query = db.query(
            SemiFinishedLog.semi_finished_id,
            _signed_quantity().label("quantity")
        ).group_by(SemiFinishedLog.semi_finished_id)
        totals = {row.semi_finished_id: int(row.quantity) for row in totals_query.all()}

        query = db.query(SemiFinished)
        if category and category != "all":
            query = query.filter(SemiFinished.category == SemiFinishedCategory(category).value)

        return [
            SemiFinishedService.summarize(db, item, totals.get(item.id, 0))
            for item in query.order_by(SemiFinished.category, SemiFinished.name).all()
        ]

    @staticmethod
    def create(
        db: Session,
        actor: Principal,
        code: str,
        name: str,
        category: SemiFinishedCategory,
        quantity: int = 0,
        min_stock: int = 10,
        unit: str = "adet",
        location: Optional[str] = None,
        description: Optional[str] = None
    ) -> SemiFinished:
        ensure_role(actor, SemiFinishedService.MANAGE_ROLES, "create semi-finished items")
        code = (code or "").strip()
        name = (name or "").strip()
        if not code or not name:
            raise ValidationError("Code and name are required")
        if quantity < 0 or min_stock < 0:
            raise ValidationError("Quantities cannot be negative")
        if db.query(SemiFinished).filter(SemiFinished.code == code).first():
            raise ValidationError(f"Semi-finished code {code} already exists")

        item = SemiFinished(
            code=code,
            name=name,
            category=SemiFinishedCategory(category).value,
            min_stock=min_stock,
            unit=unit or "adet",
            location=location,
            description=description
        )
        db.add(item)
        if quantity:
            item.logs.append(SemiFinishedLog(
                movement_type=StockMovementType.IN.value,
                quantity=quantity,
                reference_type="INITIAL",
                note="Opening balance",
                created_by=actor.id
            ))
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ValidationError(f"Semi-finished code {code} already exists")
        db.refresh(item)

        logger.info(f"Semi-finished {code} created in {item.category} with {quantity} by user {actor.id}")
        AuditService.record(db, actor, "CREATE", "SemiFinished", item.id, {
            "code": code, "category": item.category, "quantity": quantity,
        })
        return item

    @staticmethod
    def update(db: Session, actor: Principal, semi_finished_id: int, **changes) -> SemiFinished:
        """Edit descriptive fields; quantity only moves through adjust_stock"""
        ensure_role(actor, SemiFinishedService.MANAGE_ROLES, "edit semi-finished items")
        item = SemiFinishedService.get_item(db, semi_finished_id)

        applied = {}
        for key in ("code", "name", "category", "min_stock", "unit", "location", "description"):
            value = changes.get(key)
            if value is None:
                continue
            if key == "category":
                value = SemiFinishedCategory(value).value
            if key == "min_stock" and value < 0:
                raise ValidationError("Minimum stock cannot be negative")
            setattr(item, key, value)
            applied[key] = value

        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ValidationError(f"Semi-finished code {changes.get('code')} already exists")
        db.refresh(item)

        AuditService.record(db, actor, "UPDATE", "SemiFinished", item.id, applied)
        return item

    @staticmethod
    def delete(db: Session, actor: Principal, semi_finished_id: int) -> None:
        ensure_role(actor, (Role.ADMIN,), "delete semi-finished items")
        item = SemiFinishedService.get_item(db, semi_finished_id)
        code = item.code
        db.delete(item)
        db.commit()

        logger.info(f"Semi-finished {code} deleted by user {actor.id}")
        AuditService.record(db, actor, "DELETE", "SemiFinished", semi_finished_id, {"code": code})

    @staticmethod
    def add_movement(
        db: Session,
        actor: Principal,
        item: SemiFinished,
        movement_type: StockMovementType,
        quantity: int,
        note: Optional[str] = None,
        reference_type: str = "MANUAL",
        reference_id: Optional[str] = None
    ) -> SemiFinishedLog:
        """Append one movement to the session without committing"""
        movement_type = StockMovementType(movement_type)
        if quantity is None or quantity <= 0:
            raise ValidationError("Movement quantity must be positive")
        if movement_type == StockMovementType.OUT:
            current = SemiFinishedService.get_quantity(db, item.id)
            if quantity > current:
                raise InsufficientStockError(
                    f"{item.code}: cannot take {quantity}, only {current} {item.unit} in stock"
                )

        log = SemiFinishedLog(
            semi_finished_id=item.id,
            movement_type=movement_type.value,
            quantity=quantity,
            reference_type=reference_type,
            reference_id=reference_id,
            note=note,
            created_by=actor.id
        )
        db.add(log)
        return log

    @staticmethod
    def adjust_stock(
        db: Session,
        actor: Principal,
        semi_finished_id: int,
        movement_type: StockMovementType,
        quantity: int,
        note: Optional[str] = None
    ) -> Dict:
        item = SemiFinishedService.get_item(db, semi_finished_id)
        operator = SemiFinishedCategory(item.category).operator_role
        ensure_role(actor, SemiFinishedService.ADJUST_ROLES + (operator,), f"move {item.category} stock")

        try:
            SemiFinishedService.add_movement(db, actor, item, movement_type, quantity, note)
            commit_or_conflict(db, "Semi-finished stock")
        except LedgerError as e:
            db.rollback()
            logger.warning(f"Refused stock movement on {item.code}: {e.message}")
            raise

        summary = SemiFinishedService.summarize(db, item)
        logger.info(f"Semi-finished {item.code}: {StockMovementType(movement_type).value} {quantity}, now {summary['quantity']}")
        AuditService.record(db, actor, "STOCK_MOVEMENT", "SemiFinished", item.id, {
            "type": StockMovementType(movement_type).value, "quantity": quantity, "note": note,
        })
        return summary

    @staticmethod
    def movements(db: Session, semi_finished_id: int, limit: int = 100) -> List[SemiFinishedLog]:
        return db.query(SemiFinishedLog).filter(
            SemiFinishedLog.semi_finished_id == semi_finished_id
        ).order_by(SemiFinishedLog.created_at.desc(), SemiFinishedLog.id.desc()).limit(limit).all()
