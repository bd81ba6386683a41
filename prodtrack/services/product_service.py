"""
Product Service - Business Logic for Products
"""
import logging
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from prodtrack.core.config import settings
from prodtrack.core.database import commit_or_conflict
from prodtrack.core.errors import LedgerError, NotFoundError, ValidationError
from prodtrack.core.security import Principal, ensure_role
from prodtrack.models import (
    AppUser, Inventory, Order, Product, ProductionLog, SemiFinishedProduction, Shipment, ShipmentItem,
)
from prodtrack.models.enums import ProductStatus, Role
from .audit_service import AuditService
from .lifecycle import ProductLifecycleService, allowed_targets, load_product
from .order_service import check_termin_date
from .production_service import ProductionService

logger = logging.getLogger(__name__)


class ProductService:
    """Product business logic"""

    CREATE_ROLES = (Role.ADMIN, Role.PLANNER, Role.MARKETER)
    EDIT_ROLES = (Role.ADMIN, Role.PLANNER)

    # Only an admin may edit the plan once a product reaches these
    LOCKED_STATUSES = (
        ProductStatus.APPROVED.value,
        ProductStatus.MARKETING_REVIEW.value,
        ProductStatus.IN_PRODUCTION.value,
        ProductStatus.COMPLETED.value,
    )

    EDITABLE_FIELDS = (
        "name", "model", "quantity", "termin_date", "production_date",
        "material", "description", "engineer_note", "master",
    )

    # Statuses whose packaged units may wait for the warehouse
    QUEUE_STATUSES = (
        ProductStatus.APPROVED.value,
        ProductStatus.IN_PRODUCTION.value,
        ProductStatus.COMPLETED.value,
    )

    @staticmethod
    def create_product(
        db: Session,
        actor: Principal,
        name: str,
        model: str,
        system_code: str,
        quantity: int,
        termin_date: date,
        order_id: Optional[int] = None,
        **details
    ) -> Product:
        ensure_role(actor, ProductService.CREATE_ROLES, "create products")

        name = (name or "").strip()
        model = (model or "").strip()
        system_code = (system_code or "").strip()
        if not name or not model or not system_code:
            raise ValidationError("Name, model and system code are required")
        if quantity is None or quantity <= 0:
            raise ValidationError("Quantity must be positive")
        check_termin_date(termin_date, system_code)

        if db.query(Product).filter(Product.system_code == system_code).first():
            raise ValidationError(f"System code {system_code} already exists")
        if order_id is not None and not db.query(Order).filter(Order.id == order_id).first():
            raise NotFoundError(f"Order {order_id} not found")

        product = Product(
            order_id=order_id,
            name=name,
            model=model,
            system_code=system_code,
            quantity=quantity,
            produced=0,
            termin_date=termin_date,
            order_date=details.get("order_date") or date.today(),
            material=details.get("material"),
            description=details.get("description"),
            master=details.get("master"),
            status=ProductStatus.PENDING.value,
            created_by=actor.id
        )
        db.add(product)
        db.commit()
        db.refresh(product)

        logger.info(f"Product {system_code} created ({quantity} units) by user {actor.id}")
        AuditService.record(db, actor, "CREATE", "Product", product.id, {
            "system_code": system_code, "quantity": quantity, "order_id": order_id,
        })
        return product

    @staticmethod
    def tracked_floor(db: Session, product: Product) -> int:
        """Smallest ordered quantity that still covers every tracked counter"""
        targets = [row.target_qty for row in product.semi_finished_productions]
        return max([
            product.produced or 0,
            product.foam_qty or 0,
            product.upholstery_qty or 0,
            product.assembly_qty or 0,
            product.packaged_qty or 0,
            product.stored_qty or 0,
            ProductionService.stock_figures(db, product)["shipped"],
        ] + targets)

    @staticmethod
    def update_product(
        db: Session,
        actor: Principal,
        product_id: int,
        changes: Dict,
        expected_revision: Optional[int] = None
    ) -> Product:
        """Plan edit. Editing a rejected product resubmits it for approval."""
        ensure_role(actor, ProductService.EDIT_ROLES, "edit products")

        try:
            product = load_product(db, product_id, expected_revision)
            if product.status in ProductService.LOCKED_STATUSES and actor.role != Role.ADMIN:
                raise ValidationError(f"Product {product.system_code} is {product.status}; only an admin can edit it")

            applied = {}
            for key in ProductService.EDITABLE_FIELDS:
                if key not in changes or changes[key] is None:
                    continue
                value = changes[key]
                if key == "quantity":
                    if value <= 0:
                        raise ValidationError("Quantity must be positive")
                    floor = ProductService.tracked_floor(db, product)
                    if value < floor:
                        raise ValidationError(
                            f"Quantity cannot drop below {floor}, already tracked for {product.system_code}"
                        )
                elif key == "termin_date":
                    check_termin_date(value, product.system_code)
                elif key in ("name", "model"):
                    value = value.strip()
                    if not value:
                        raise ValidationError(f"{key} cannot be empty")
                if getattr(product, key) != value:
                    setattr(product, key, value)
                    applied[key] = value

            resubmitted = product.status == ProductStatus.REJECTED.value
            if resubmitted:
                ProductLifecycleService._apply(db, actor, product, ProductStatus.PENDING, None)

            commit_or_conflict(db, f"Product {product_id}")
        except LedgerError as e:
            db.rollback()
            logger.warning(f"Refused edit of product {product_id}: {e.message}")
            raise

        logger.info(f"Product {product_id} edited by user {actor.id}: {sorted(applied)}")
        AuditService.record(db, actor, "UPDATE", "Product", product_id, applied or "Updated details")
        if resubmitted:
            AuditService.record(db, actor, "RESUBMIT", "Product", product_id, {
                "from": ProductStatus.REJECTED.value, "to": ProductStatus.PENDING.value, "reason": None,
            })
        db.refresh(product)
        return product

    @staticmethod
    def update_engineer_note(
        db: Session,
        actor: Principal,
        product_id: int,
        note: Optional[str],
        expected_revision: Optional[int] = None
    ) -> Product:
        """Engineering remark, editable in any status. A blank note clears it."""
        ensure_role(actor, (Role.ENGINEER, Role.ADMIN), "edit engineer notes")
        note = (note or "").strip() or None

        try:
            product = load_product(db, product_id, expected_revision)
            previous = product.engineer_note
            product.engineer_note = note
            commit_or_conflict(db, f"Product {product_id}")
        except LedgerError as e:
            db.rollback()
            logger.warning(f"Refused engineer note on product {product_id}: {e.message}")
            raise

        logger.info(f"Engineer note on product {product_id} set by user {actor.id}")
        AuditService.record(db, actor, "UPDATE_ENGINEER_NOTE", "Product", product_id, {
            "from": previous, "to": note,
        })
        db.refresh(product)
        return product

    @staticmethod
    def clear_all(db: Session, actor: Principal, confirmation: Optional[str]) -> Dict[str, int]:
        """
        Wipe every order, product and the records hanging off them.
        Users, semi-finished pools, notifications and the audit trail stay.
        """
        ensure_role(actor, (Role.ADMIN,), "clear production data")
        if not (confirmation or "").strip():
            raise ValidationError("Clearing all production data needs a confirmation")

        # children before parents so no foreign key is left dangling
        tables = (
            ("shipment_items", ShipmentItem),
            ("shipments", Shipment),
            ("production_logs", ProductionLog),
            ("inventory", Inventory),
            ("semi_finished_production", SemiFinishedProduction),
            ("products", Product),
            ("orders", Order),
        )
        counts = {}
        try:
            for name, model in tables:
                counts[name] = db.query(model).delete(synchronize_session=False)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Clearing production data failed")
            raise

        db.expire_all()
        logger.warning(f"All production data cleared by user {actor.id}: {counts}")
        AuditService.record(db, actor, "CLEAR_ALL", "System", "ALL", counts)
        return counts

    # ============ Queries ============

    @staticmethod
    def get_product(db: Session, product_id: int) -> Product:
        return load_product(db, product_id)

    @staticmethod
    def list_products(
        db: Session,
        status: Optional[str] = None,
        has_barcode: Optional[bool] = None,
        search: Optional[str] = None
    ) -> List[Product]:
        """Filter by status (comma separated allowed), barcode presence and free text"""
        query = db.query(Product).options(selectinload(Product.order))

        if status and status != "all":
            statuses = []
            for s in (part.strip() for part in status.split(",")):
                if not s:
                    continue
                try:
                    statuses.append(ProductStatus(s).value)
                except ValueError:
                    raise ValidationError(f"Unknown status {s}")
            query = query.filter(Product.status.in_(statuses))

        if has_barcode is True:
            query = query.filter(Product.barcode.isnot(None))
        elif has_barcode is False:
            query = query.filter(Product.barcode.is_(None))

        if search:
            term = f"%{search}%"
            query = query.outerjoin(Order, Product.order_id == Order.id).filter(
                or_(
                    Product.name.ilike(term),
                    Product.model.ilike(term),
                    Product.system_code.ilike(term),
                    Product.barcode.ilike(term),
                    Order.company.ilike(term),
                )
            )

        return query.order_by(Product.created_at.desc(), Product.id.desc()).all()

    @staticmethod
    def production_queue(db: Session) -> List[Product]:
        """Packaged units waiting to be received into the warehouse"""
        return db.query(Product).options(selectinload(Product.order)).filter(
            Product.packaged_qty > 0,
            Product.status.in_(ProductService.QUEUE_STATUSES)
        ).order_by(Product.termin_date.asc(), Product.id.asc()).all()

    @staticmethod
    def find_by_barcode(db: Session, code: str) -> Product:
        """Scanner lookup: wildcard back to '-', then barcode, then system code"""
        code = (code or "").strip().replace(settings.BARCODE_SCAN_WILDCARD, "-")
        if not code:
            raise ValidationError("Barcode is required")

        product = db.query(Product).filter(Product.barcode == code).first()
        if not product:
            product = db.query(Product).filter(Product.system_code == code).first()
        if not product:
            raise NotFoundError(f"No product with barcode {code}")
        return product

    @staticmethod
    def timeline(db: Session, product_id: int) -> List[Dict]:
        """Creation, audit, production and shipment events, oldest first"""
        product = load_product(db, product_id)
        users = {u.id: u.full_name or u.username for u in db.query(AppUser).all()}
        events = [{
            "id": f"created-{product.id}",
            "date": product.created_at,
            "type": "CREATED",
            "title": "Product created",
            "description": f"{product.quantity} units planned",
            "user": users.get(product.created_by),
        }]

        for entry in AuditService.for_entity(db, "Product", product.id):
            if entry.action == "CREATE":
                continue
            events.append({
                "id": f"audit-{entry.id}",
                "date": entry.created_at,
                "type": entry.action,
                "title": entry.action.replace("_", " ").title(),
                "description": entry.details,
                "user": users.get(entry.user_id),
            })

        for log in ProductionService.production_history(db, product.id):
            events.append({
                "id": f"production-{log.id}",
                "date": log.created_at,
                "type": f"STAGE_{log.stage}",
                "title": f"{log.stage.title()} {log.quantity:+d}",
                "description": f"Shelf {log.shelf}" if log.shelf else None,
                "user": users.get(log.user_id),
            })

        shipments = db.query(ShipmentItem, Shipment).join(
            Shipment, ShipmentItem.shipment_id == Shipment.id
        ).filter(ShipmentItem.product_id == product.id).all()
        for item, shipment in shipments:
            events.append({
                "id": f"shipment-{item.id}",
                "date": shipment.exit_date or shipment.created_at,
                "type": f"SHIPMENT_{shipment.status}",
                "title": f"Shipment #{shipment.id} to {shipment.company}",
                "description": f"{item.quantity} units",
                "user": users.get(shipment.created_by),
            })

        return sorted(events, key=lambda e: (e["date"] is None, str(e["date"] or "")))

    @staticmethod
    def flatten(product: Product, shipped: int = 0) -> Dict:
        """Product + order company + derived stock figures, as the list endpoints return them"""
        stored = product.stored_qty or 0
        return {
            "id": product.id,
            "order_id": product.order_id,
            "company": product.order.company if product.order else None,
            "order_name": product.order.name if product.order else None,
            "name": product.name,
            "model": product.model,
            "system_code": product.system_code,
            "barcode": product.barcode,
            "quantity": product.quantity,
            "produced": product.produced,
            "foam_qty": product.foam_qty,
            "upholstery_qty": product.upholstery_qty,
            "assembly_qty": product.assembly_qty,
            "packaged_qty": product.packaged_qty,
            "stored_qty": stored,
            "shipped_qty": shipped,
            "available_qty": stored - shipped,
            "status": product.status,
            "sub_status": product.sub_status,
            "rejection_reason": product.rejection_reason,
            "termin_date": product.termin_date,
            "order_date": product.order_date,
            "production_date": product.production_date,
            "material": product.material,
            "description": product.description,
            "engineer_note": product.engineer_note,
            "master": product.master,
            "revision": product.revision,
            "allowed_transitions": [s.value for s in allowed_targets(ProductStatus(product.status))],
            "created_at": product.created_at,
        }

    @staticmethod
    def flatten_many(db: Session, products: List[Product]) -> List[Dict]:
        shipped = ProductionService.shipped_totals(db, [p.id for p in products])
        return [ProductService.flatten(p, shipped.get(p.id, 0)) for p in products]
