"""
Shipment Service - Business Logic for dispatching finished goods
"""
import logging
from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session, selectinload

from prodtrack.core.database import commit_or_conflict
from prodtrack.core.errors import (
    InsufficientStockError, LedgerError, NotFoundError, ValidationError,
)
from prodtrack.core.security import Principal, ensure_role
from prodtrack.models import Product, Shipment, ShipmentItem
from prodtrack.models.enums import Role, ShipmentStatus
from .audit_service import AuditService
from .production_service import ProductionService

logger = logging.getLogger(__name__)


class ShipmentService:
    """Shipment business logic"""

    SHIPPING_ROLES = (Role.WAREHOUSE, Role.WORKER, Role.MARKETER, Role.ADMIN)

    # Recipient recorded on a quick shipment with no company and no order
    UNSPECIFIED_COMPANY = "Belirtilmedi"

    # Valid status transitions
    STATUS_TRANSITIONS = {
        ShipmentStatus.PLANNED: [ShipmentStatus.SHIPPED],
        ShipmentStatus.SHIPPED: [ShipmentStatus.DELIVERED],
        ShipmentStatus.DELIVERED: [],
    }

    @staticmethod
    def _aggregate(items: Iterable) -> Dict[int, int]:
        """Sum requested quantities per product; accepts dicts or schema objects"""
        wanted: Dict[int, int] = {}
        for item in items:
            product_id = item["product_id"] if isinstance(item, dict) else item.product_id
            quantity = item["quantity"] if isinstance(item, dict) else item.quantity
            if quantity is None or quantity <= 0:
                raise ValidationError("Shipment quantities must be positive")
            wanted[product_id] = wanted.get(product_id, 0) + quantity
        if not wanted:
            raise ValidationError("A shipment needs at least one item")
        return wanted

    @staticmethod
    def _create(
        db: Session,
        actor: Principal,
        company: str,
        items: Iterable,
        driver_name: Optional[str],
        vehicle_plate: Optional[str],
        estimated_date: Optional[date],
        status: ShipmentStatus
    ) -> Shipment:
        ensure_role(actor, ShipmentService.SHIPPING_ROLES, "create shipments")

        try:
            company = (company or "").strip()
            if not company:
                raise ValidationError("Shipment company is required")
            wanted = ShipmentService._aggregate(items)

            # Lock the product rows so two shipments cannot both take the same stock
            products = db.query(Product).filter(
                Product.id.in_(list(wanted))
            ).order_by(Product.id).with_for_update().all()
            found = {p.id: p for p in products}
            missing = [pid for pid in wanted if pid not in found]
            if missing:
                raise NotFoundError(f"Product {missing[0]} not found")

            shipped = ProductionService.shipped_totals(db, wanted.keys())
            now = datetime.now(timezone.utc)
            for product_id in sorted(wanted):
                product = found[product_id]
                available = (product.stored_qty or 0) - shipped.get(product_id, 0)
                if wanted[product_id] > available:
                    raise InsufficientStockError(
                        f"{product.system_code}: {wanted[product_id]} requested, only {available} available"
                    )
                # Touch the row so its revision moves with the new shipment
                product.updated_at = now

            shipment = Shipment(
                company=company,
                driver_name=driver_name,
                vehicle_plate=vehicle_plate,
                estimated_date=estimated_date,
                status=status.value,
                exit_date=now if status == ShipmentStatus.SHIPPED else None,
                created_by=actor.id
            )
            for product_id in sorted(wanted):
                shipment.items.append(ShipmentItem(product_id=product_id, quantity=wanted[product_id]))
            db.add(shipment)
            commit_or_conflict(db, "Shipment")
        except LedgerError as e:
            db.rollback()
            logger.warning(f"Refused shipment for {company}: {e.message}")
            raise

        db.refresh(shipment)
        logger.info(f"Shipment #{shipment.id} ({status.value}) for {company}: {wanted} by user {actor.id}")
        AuditService.record(db, actor, "CREATE_SHIPMENT", "Shipment", shipment.id, {
            "company": company,
            "status": status.value,
            "items": [{"product_id": pid, "quantity": qty} for pid, qty in sorted(wanted.items())],
        })
        return shipment

    @staticmethod
    def create_shipment(
        db: Session,
        actor: Principal,
        company: str,
        items: Iterable,
        driver_name: Optional[str] = None,
        vehicle_plate: Optional[str] = None,
        estimated_date: Optional[date] = None
    ) -> Shipment:
        """Plan a shipment. Any item above available stock aborts the whole shipment."""
        return ShipmentService._create(
            db, actor, company, items, driver_name, vehicle_plate, estimated_date, ShipmentStatus.PLANNED
        )

    @staticmethod
    def ship_product(
        db: Session,
        actor: Principal,
        product_id: int,
        quantity: int,
        company: Optional[str] = None,
        driver_name: Optional[str] = None,
        vehicle_plate: Optional[str] = None
    ) -> Shipment:
        """Quick single-product shipment, dispatched immediately"""
        company = (company or "").strip()
        if not company:
            product = db.query(Product).filter(Product.id == product_id).first()
            if product and product.order:
                company = product.order.company
        return ShipmentService._create(
            db, actor, company or ShipmentService.UNSPECIFIED_COMPANY,
            [{"product_id": product_id, "quantity": quantity}],
            driver_name, vehicle_plate, None, ShipmentStatus.SHIPPED
        )

    @staticmethod
    def update_status(db: Session, actor: Principal, shipment_id: int, new_status: ShipmentStatus) -> Shipment:
        ensure_role(actor, ShipmentService.SHIPPING_ROLES, "update shipments")
        shipment = db.query(Shipment).filter(Shipment.id == shipment_id).first()
        if not shipment:
            raise NotFoundError(f"Shipment {shipment_id} not found")

        new_status = ShipmentStatus(new_status)
        old_status = ShipmentStatus(shipment.status)
        if new_status not in ShipmentService.STATUS_TRANSITIONS.get(old_status, []):
            logger.warning(f"Refused shipment #{shipment_id} move {old_status.value} -> {new_status.value}")
            raise ValidationError(f"Cannot change shipment from {old_status.value} to {new_status.value}")

        shipment.status = new_status.value
        if new_status == ShipmentStatus.SHIPPED:
            shipment.exit_date = datetime.now(timezone.utc)
        elif new_status == ShipmentStatus.DELIVERED:
            shipment.delivered_at = datetime.now(timezone.utc)
        commit_or_conflict(db, "Shipment")

        logger.info(f"Shipment #{shipment_id}: {old_status.value} -> {new_status.value}")
        AuditService.record(db, actor, "SHIPMENT_STATUS", "Shipment", shipment_id, {
            "from": old_status.value, "to": new_status.value,
        })
        db.refresh(shipment)
        return shipment

    # ============ Queries ============

    @staticmethod
    def get_shipment(db: Session, shipment_id: int) -> Shipment:
        shipment = db.query(Shipment).filter(Shipment.id == shipment_id).first()
        if not shipment:
            raise NotFoundError(f"Shipment {shipment_id} not found")
        return shipment

    @staticmethod
    def list_shipments(db: Session, status: Optional[str] = None) -> List[Shipment]:
        query = db.query(Shipment).options(selectinload(Shipment.items))
        if status and status != "all":
            query = query.filter(Shipment.status == status)
        return query.order_by(Shipment.created_at.desc(), Shipment.id.desc()).all()

    @staticmethod
    def ready_to_ship(db: Session) -> List[Dict]:
        """Products with stock on the shelf that is not yet on a shipment"""
        products = db.query(Product).filter(Product.stored_qty > 0).order_by(Product.id).all()
        shipped = ProductionService.shipped_totals(db, [p.id for p in products])

        results = []
        for p in products:
            available = (p.stored_qty or 0) - shipped.get(p.id, 0)
            if available <= 0:
                continue
            results.append({
                "id": p.id,
                "system_code": p.system_code,
                "barcode": p.barcode,
                "name": p.name,
                "company": p.order.company if p.order else None,
                "stored": p.stored_qty,
                "shipped": shipped.get(p.id, 0),
                "available": available,
            })
        return results

    @staticmethod
    def shipped_products(db: Session) -> List[Dict]:
        """One row per shipment item that has left the factory"""
        rows = db.query(ShipmentItem, Shipment, Product).join(
            Shipment, ShipmentItem.shipment_id == Shipment.id
        ).join(
            Product, ShipmentItem.product_id == Product.id
        ).filter(
            Shipment.status.in_([ShipmentStatus.SHIPPED.value, ShipmentStatus.DELIVERED.value])
        ).order_by(Shipment.exit_date.desc(), ShipmentItem.id.desc()).all()

        return [
            {
                "shipment_id": shipment.id,
                "company": shipment.company,
                "status": shipment.status,
                "exit_date": shipment.exit_date,
                "delivered_at": shipment.delivered_at,
                "driver_name": shipment.driver_name,
                "vehicle_plate": shipment.vehicle_plate,
                "product_id": product.id,
                "system_code": product.system_code,
                "name": product.name,
                "quantity": item.quantity,
            }
            for item, shipment, product in rows
        ]

    @staticmethod
    def to_dict(shipment: Shipment) -> Dict:
        return {
            "id": shipment.id,
            "company": shipment.company,
            "driver_name": shipment.driver_name,
            "vehicle_plate": shipment.vehicle_plate,
            "estimated_date": shipment.estimated_date,
            "status": shipment.status,
            "exit_date": shipment.exit_date,
            "delivered_at": shipment.delivered_at,
            "created_at": shipment.created_at,
            "items": [
                {"id": item.id, "product_id": item.product_id, "quantity": item.quantity}
                for item in shipment.items
            ],
        }
