"""
Product Lifecycle - every product status change goes through this module

PENDING -> APPROVED -> MARKETING_REVIEW -> APPROVED -> IN_PRODUCTION -> COMPLETED
with REJECTED (resubmittable) and cancel (row removed) as side branches.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, FrozenSet, List, Optional, Tuple

from sqlalchemy.orm import Session

from prodtrack.core.database import commit_or_conflict
from prodtrack.core.errors import (
    AuthorizationError, ConcurrencyError, LedgerError, NotFoundError, ValidationError,
)
from prodtrack.core.security import Principal, ensure_role
from prodtrack.models import Notification, Product
from prodtrack.models.enums import ProductStatus as S, Role
from .audit_service import AuditService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transition:
    name: str
    actors: FrozenSet[Role]
    requires_reason: bool = False
    # guard(product) -> refusal message or None
    guard: Optional[Callable[[Product], Optional[str]]] = None
    # apply(db, product, actor, reason), runs inside the same unit of work
    apply: Optional[Callable[[Session, Product, Principal, Optional[str]], None]] = None


def _assign_barcode(db: Session, product: Product, actor: Principal, reason: Optional[str]) -> None:
    if not product.barcode:
        product.barcode = product.system_code
    product.rejection_reason = None


def _store_reason(db: Session, product: Product, actor: Principal, reason: Optional[str]) -> None:
    product.rejection_reason = reason


def _return_to_admin(db: Session, product: Product, actor: Principal, reason: Optional[str]) -> None:
    product.rejection_reason = reason
    db.add(Notification(
        type="MARKETING_REJECT",
        title="Returned by marketing",
        message=f"{product.name} ({product.system_code}) was sent back for review: {reason}",
        product_id=product.id,
        product_name=product.name,
        system_code=product.system_code,
        created_by=actor.username or str(actor.id)
    ))


def _begin_production(db: Session, product: Product, actor: Principal, reason: Optional[str]) -> None:
    if not product.production_date:
        product.production_date = date.today()


def _clear_reason(db: Session, product: Product, actor: Principal, reason: Optional[str]) -> None:
    product.rejection_reason = None


def _produced_in_full(product: Product) -> Optional[str]:
    if (product.produced or 0) < product.quantity:
        return f"Only {product.produced or 0} of {product.quantity} produced, cannot complete"
    return None


TRANSITIONS: Dict[Tuple[S, S], Transition] = {
    (S.PENDING, S.APPROVED): Transition(
        "ADMIN_APPROVE", frozenset({Role.ADMIN}), apply=_assign_barcode),
    (S.PENDING, S.REJECTED): Transition(
        "ADMIN_REJECT", frozenset({Role.ADMIN}), requires_reason=True, apply=_store_reason),
    (S.APPROVED, S.MARKETING_REVIEW): Transition(
        "SEND_TO_MARKETING", frozenset({Role.ADMIN})),
    (S.MARKETING_REVIEW, S.APPROVED): Transition(
        "MARKETING_RELEASE", frozenset({Role.MARKETER, Role.ADMIN}), apply=_assign_barcode),
    (S.MARKETING_REVIEW, S.PENDING): Transition(
        "MARKETING_CANCEL", frozenset({Role.MARKETER, Role.ADMIN}), requires_reason=True,
        apply=_return_to_admin),
    (S.APPROVED, S.IN_PRODUCTION): Transition(
        "START_PRODUCTION", frozenset({Role.MARKETER, Role.PLANNER, Role.ADMIN}),
        apply=_begin_production),
    (S.IN_PRODUCTION, S.COMPLETED): Transition(
        "COMPLETE", frozenset({Role.ENGINEER, Role.PLANNER, Role.WORKER, Role.ADMIN}),
        guard=_produced_in_full),
    (S.REJECTED, S.PENDING): Transition(
        "RESUBMIT", frozenset({Role.PLANNER, Role.ADMIN}), apply=_clear_reason),
}

# Statuses a planner can no longer cancel
COMMITTED_STATUSES = frozenset({S.APPROVED, S.MARKETING_REVIEW, S.IN_PRODUCTION, S.COMPLETED})

CANCEL_ROLES = (Role.ADMIN, Role.PLANNER)


def allowed_targets(status: S) -> List[S]:
    return [to for (frm, to) in TRANSITIONS if frm == status]


def load_product(db: Session, product_id: int, expected_revision: Optional[int] = None) -> Product:
    """Fetch a product, checking the caller's revision when one was supplied"""
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise NotFoundError(f"Product {product_id} not found")
    if expected_revision is not None and product.revision != expected_revision:
        raise ConcurrencyError(
            f"Product {product.system_code} is at revision {product.revision}, "
            f"expected {expected_revision}; reload and retry"
        )
    return product


class ProductLifecycleService:
    """Product status transitions"""

    @staticmethod
    def _apply(db: Session, actor: Principal, product: Product, target: S, reason: Optional[str]) -> Transition:
        """Validate and apply one transition in the session, without committing"""
        current = S(product.status)
        rule = TRANSITIONS.get((current, target))
        if rule is None:
            raise ValidationError(
                f"Product {product.system_code} cannot move from {current.value} to {target.value}"
            )

        ensure_role(actor, rule.actors, f"move a product from {current.value} to {target.value}")

        if rule.requires_reason and not reason:
            raise ValidationError("A reason is required for this action")

        if rule.guard:
            refusal = rule.guard(product)
            if refusal:
                raise ValidationError(refusal)

        if rule.apply:
            rule.apply(db, product, actor, reason)

        product.status = target.value
        product.sub_status = None
        return rule

    @staticmethod
    def transition(
        db: Session,
        actor: Principal,
        product_id: int,
        target: S,
        reason: Optional[str] = None,
        expected_revision: Optional[int] = None,
        source: Optional[S] = None
    ) -> Product:
        """
        Move one product to `target`, committing status and side fields together.
        `source` pins the edge for named operations that share a target status
        (approve and marketing_release both land on APPROVED).
        """
        target = S(target)
        reason = (reason or "").strip() or None

        try:
            product = load_product(db, product_id, expected_revision)
            from_status = product.status
            if source is not None and from_status != S(source).value:
                raise ValidationError(
                    f"Product {product.system_code} is {from_status}, expected {S(source).value}"
                )
            rule = ProductLifecycleService._apply(db, actor, product, target, reason)
            commit_or_conflict(db, f"Product {product_id}")
        except LedgerError as e:
            db.rollback()
            logger.warning(f"Refused {target.value} for product {product_id} by {actor.role.value}: {e.message}")
            raise

        logger.info(f"Product {product.system_code}: {from_status} -> {target.value} by user {actor.id}")
        AuditService.record(db, actor, rule.name, "Product", product_id, {
            "from": from_status,
            "to": target.value,
            "reason": reason,
        })
        db.refresh(product)
        return product

    # ============ Named operations ============

    @staticmethod
    def approve(db: Session, actor: Principal, product_id: int, expected_revision: Optional[int] = None) -> Product:
        return ProductLifecycleService.transition(
            db, actor, product_id, S.APPROVED, None, expected_revision, source=S.PENDING)

    @staticmethod
    def reject(db: Session, actor: Principal, product_id: int, reason: str,
               expected_revision: Optional[int] = None) -> Product:
        return ProductLifecycleService.transition(
            db, actor, product_id, S.REJECTED, reason, expected_revision, source=S.PENDING)

    @staticmethod
    def send_to_marketing(db: Session, actor: Principal, product_id: int,
                          expected_revision: Optional[int] = None) -> Product:
        return ProductLifecycleService.transition(
            db, actor, product_id, S.MARKETING_REVIEW, None, expected_revision, source=S.APPROVED)

    @staticmethod
    def marketing_release(db: Session, actor: Principal, product_id: int,
                          expected_revision: Optional[int] = None) -> Product:
        """Marketing approves the product back into the approved pool"""
        return ProductLifecycleService.transition(
            db, actor, product_id, S.APPROVED, None, expected_revision, source=S.MARKETING_REVIEW)

    @staticmethod
    def marketing_cancel(db: Session, actor: Principal, product_id: int, reason: str,
                         expected_revision: Optional[int] = None) -> Product:
        """Marketing bounces the product back to the admin queue with a reason"""
        return ProductLifecycleService.transition(
            db, actor, product_id, S.PENDING, reason, expected_revision, source=S.MARKETING_REVIEW)

    @staticmethod
    def start_production(db: Session, actor: Principal, product_id: int,
                         expected_revision: Optional[int] = None) -> Product:
        return ProductLifecycleService.transition(
            db, actor, product_id, S.IN_PRODUCTION, None, expected_revision, source=S.APPROVED)

    @staticmethod
    def complete(db: Session, actor: Principal, product_id: int, expected_revision: Optional[int] = None) -> Product:
        return ProductLifecycleService.transition(
            db, actor, product_id, S.COMPLETED, None, expected_revision, source=S.IN_PRODUCTION)

    @staticmethod
    def resubmit(db: Session, actor: Principal, product_id: int, expected_revision: Optional[int] = None) -> Product:
        return ProductLifecycleService.transition(
            db, actor, product_id, S.PENDING, None, expected_revision, source=S.REJECTED)

    # ============ Cancel ============

    @staticmethod
    def _check_cancel(actor: Principal, product: Product) -> None:
        ensure_role(actor, CANCEL_ROLES, "cancel a product")
        if actor.role == Role.PLANNER and S(product.status) in COMMITTED_STATUSES:
            raise AuthorizationError(
                f"Product {product.system_code} is already {product.status}; only an admin can cancel it"
            )

    @staticmethod
    def cancel(
        db: Session,
        actor: Principal,
        product_id: int,
        confirmation: str,
        expected_revision: Optional[int] = None
    ) -> Dict:
        """Remove the product and everything hanging off it"""
        confirmation = (confirmation or "").strip()
        try:
            if not confirmation:
                raise ValidationError("Cancelling a product requires a confirmation")
            product = load_product(db, product_id, expected_revision)
            ProductLifecycleService._check_cancel(actor, product)

            snapshot = {
                "from": product.status,
                "to": S.CANCELLED.value,
                "system_code": product.system_code,
                "name": product.name,
                "quantity": product.quantity,
                "confirmation": confirmation,
            }
            db.delete(product)
            commit_or_conflict(db, f"Product {product_id}")
        except LedgerError as e:
            db.rollback()
            logger.warning(f"Refused cancel for product {product_id} by {actor.role.value}: {e.message}")
            raise

        logger.info(f"Product {snapshot['system_code']} cancelled by user {actor.id}")
        AuditService.record(db, actor, "CANCEL", "Product", product_id, snapshot)
        return {"id": product_id, "status": S.CANCELLED.value}

    # ============ Bulk ============

    @staticmethod
    def _bulk(
        db: Session,
        actor: Principal,
        product_ids: List[int],
        source: S,
        target: S,
        reason: Optional[str] = None
    ) -> Dict:
        """Apply one transition to every id currently in `source`; others are skipped"""
        rule = TRANSITIONS[(source, target)]
        ensure_role(actor, rule.actors, f"move products from {source.value} to {target.value}")
        reason = (reason or "").strip() or None
        if rule.requires_reason and not reason:
            raise ValidationError("A reason is required for this action")

        ids = set(product_ids)
        products = db.query(Product).filter(Product.id.in_(ids)).all() if ids else []
        moved = []
        try:
            for product in products:
                if product.status != source.value:
                    continue
                ProductLifecycleService._apply(db, actor, product, target, reason)
                moved.append(product.id)
            commit_or_conflict(db, "Products")
        except LedgerError:
            db.rollback()
            raise

        logger.info(f"Bulk {rule.name}: {len(moved)} moved, {len(ids) - len(moved)} skipped by user {actor.id}")
        for product_id in moved:
            AuditService.record(db, actor, rule.name, "Product", product_id, {
                "from": source.value,
                "to": target.value,
                "reason": reason,
                "bulk": True,
            })
        return {"count": len(moved), "skipped": len(ids) - len(moved)}

    @staticmethod
    def bulk_approve(db: Session, actor: Principal, product_ids: List[int]) -> Dict:
        return ProductLifecycleService._bulk(db, actor, product_ids, S.PENDING, S.APPROVED)

    @staticmethod
    def bulk_reject(db: Session, actor: Principal, product_ids: List[int], reason: str) -> Dict:
        return ProductLifecycleService._bulk(db, actor, product_ids, S.PENDING, S.REJECTED, reason)

    @staticmethod
    def bulk_start_production(db: Session, actor: Principal, product_ids: List[int]) -> Dict:
        return ProductLifecycleService._bulk(db, actor, product_ids, S.APPROVED, S.IN_PRODUCTION)

    @staticmethod
    def bulk_cancel(db: Session, actor: Principal, product_ids: List[int], confirmation: str) -> Dict:
        ensure_role(actor, CANCEL_ROLES, "cancel products")
        confirmation = (confirmation or "").strip()
        if not confirmation:
            raise ValidationError("Cancelling products requires a confirmation")

        ids = set(product_ids)
        products = db.query(Product).filter(Product.id.in_(ids)).all() if ids else []
        removed = []
        for product in products:
            if actor.role == Role.PLANNER and S(product.status) in COMMITTED_STATUSES:
                continue
            removed.append((product.id, product.status, product.system_code))
            db.delete(product)
        commit_or_conflict(db, "Products")

        logger.info(f"Bulk cancel: {len(removed)} removed, {len(ids) - len(removed)} skipped by user {actor.id}")
        for product_id, from_status, system_code in removed:
            AuditService.record(db, actor, "CANCEL", "Product", product_id, {
                "from": from_status,
                "to": S.CANCELLED.value,
                "system_code": system_code,
                "confirmation": confirmation,
                "bulk": True,
            })
        return {"count": len(removed), "skipped": len(ids) - len(removed)}

    # ============ Sub-status ============

    @staticmethod
    def update_sub_status(
        db: Session,
        actor: Principal,
        product_id: int,
        sub_status: Optional[str],
        expected_revision: Optional[int] = None
    ) -> Product:
        ensure_role(actor, (Role.ENGINEER, Role.ADMIN), "set a production sub-status")
        product = load_product(db, product_id, expected_revision)
        if product.status != S.IN_PRODUCTION.value:
            raise ValidationError("Sub-status can only be set while the product is in production")

        old = product.sub_status
        product.sub_status = (sub_status or "").strip() or None
        commit_or_conflict(db, f"Product {product_id}")

        AuditService.record(db, actor, "SUB_STATUS", "Product", product_id, {
            "from": old, "to": product.sub_status,
        })
        db.refresh(product)
        return product

    @staticmethod
    def bulk_update_sub_status(
        db: Session,
        actor: Principal,
        product_ids: List[int],
        sub_status: Optional[str]
    ) -> Dict:
        """Set one sub-status on every listed product that is in production; others are skipped"""
        ensure_role(actor, (Role.ENGINEER, Role.ADMIN), "set a production sub-status")
        sub_status = (sub_status or "").strip() or None

        ids = set(product_ids)
        products = db.query(Product).filter(Product.id.in_(ids)).all() if ids else []
        changed = []
        try:
            for product in products:
                if product.status != S.IN_PRODUCTION.value:
                    continue
                changed.append((product.id, product.sub_status))
                product.sub_status = sub_status
            commit_or_conflict(db, "Products")
        except LedgerError:
            db.rollback()
            raise

        logger.info(f"Bulk sub-status {sub_status}: {len(changed)} set, {len(ids) - len(changed)} skipped by user {actor.id}")
        for product_id, old in changed:
            AuditService.record(db, actor, "BULK_UPDATE_SUB_STATUS", "Product", product_id, {
                "from": old, "to": sub_status,
            })
        return {"count": len(changed), "skipped": len(ids) - len(changed)}
