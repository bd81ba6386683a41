"""
Order Service - Business Logic for Orders
"""
import logging
from datetime import date
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session, selectinload

from prodtrack.core.config import settings
from prodtrack.core.errors import NotFoundError, ValidationError
from prodtrack.core.security import Principal, ensure_role
from prodtrack.models import Order, Product
from prodtrack.models.enums import ProductStatus, Role
from .audit_service import AuditService

logger = logging.getLogger(__name__)


def check_termin_date(termin_date: Optional[date], label: str) -> date:
    """Promised date must be set and inside the configured year window"""
    if termin_date is None:
        raise ValidationError(f"Termin date is required for {label}")
    if not settings.MIN_TERMIN_YEAR <= termin_date.year <= settings.MAX_TERMIN_YEAR:
        raise ValidationError(
            f"Invalid termin date for {label}: year {termin_date.year} is outside "
            f"{settings.MIN_TERMIN_YEAR}-{settings.MAX_TERMIN_YEAR}"
        )
    return termin_date


class OrderService:
    """Order business logic"""

    CREATE_ROLES = (Role.ADMIN, Role.PLANNER, Role.MARKETER)

    @staticmethod
    def _field(item, key):
        return item.get(key) if isinstance(item, dict) else getattr(item, key, None)

    @staticmethod
    def create_order(db: Session, actor: Principal, company: str, name: str, items: Iterable) -> Order:
        """Create an order with one PENDING product per line item"""
        ensure_role(actor, OrderService.CREATE_ROLES, "create orders")

        company = (company or "").strip()
        name = (name or "").strip()
        items = list(items)
        if not company or not name or not items:
            raise ValidationError("Company, order name and at least one item are required")

        # Validate every line before anything is written
        for item in items:
            label = OrderService._field(item, "name") or OrderService._field(item, "code")
            if not OrderService._field(item, "code"):
                raise ValidationError("Every item needs a model code")
            quantity = OrderService._field(item, "quantity")
            if quantity is None or quantity <= 0:
                raise ValidationError(f"Quantity for {label} must be positive")
            check_termin_date(OrderService._field(item, "termin_date"), label)

        order = Order(company=company, name=name, status="REQUESTED", created_by=actor.id)
        db.add(order)
        db.flush()  # need order.id for the system codes

        for i, item in enumerate(items):
            code = OrderService._field(item, "code")
            order.products.append(Product(
                name=OrderService._field(item, "name") or code,
                model=code,
                system_code=f"{order.id}-{code}-{i + 1}",
                quantity=OrderService._field(item, "quantity"),
                produced=0,
                termin_date=OrderService._field(item, "termin_date"),
                order_date=date.today(),
                material=OrderService._field(item, "material"),
                description=OrderService._field(item, "description"),
                master=OrderService._field(item, "master"),
                status=ProductStatus.PENDING.value,
                created_by=actor.id
            ))

        db.commit()
        db.refresh(order)

        logger.info(f"Order #{order.id} '{name}' for {company} created with {len(items)} item(s) by user {actor.id}")
        AuditService.record(db, actor, "CREATE_ORDER", "Order", order.id, {
            "company": company, "name": name, "items": len(items),
        })
        return order

    @staticmethod
    def get_order(db: Session, order_id: int) -> Order:
        order = db.query(Order).options(selectinload(Order.products)).filter(Order.id == order_id).first()
        if not order:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    @staticmethod
    def list_orders(db: Session, search: Optional[str] = None) -> List[Order]:
        query = db.query(Order).options(selectinload(Order.products))
        if search:
            term = f"%{search}%"
            query = query.filter(Order.company.ilike(term) | Order.name.ilike(term))
        return query.order_by(Order.created_at.desc(), Order.id.desc()).all()

    @staticmethod
    def clone_data(db: Session, order_id: int) -> Dict:
        """Order fields and items ready to prefill a new order; dates are left for the user"""
        order = OrderService.get_order(db, order_id)
        return {
            "company": order.company,
            "name": order.name,
            "items": [
                {
                    "code": p.model,
                    "name": p.name,
                    "quantity": p.quantity,
                    "material": p.material or "",
                    "description": p.description or "",
                    "master": p.master or "",
                    "termin_date": None,
                }
                for p in order.products
            ],
        }

    @staticmethod
    def to_dict(order: Order) -> Dict:
        return {
            "id": order.id,
            "company": order.company,
            "name": order.name,
            "status": order.status,
            "created_at": order.created_at,
            "product_ids": [p.id for p in order.products],
        }
