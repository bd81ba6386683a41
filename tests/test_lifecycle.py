"""Product status transitions, cancel and bulk operations."""
import pytest

from prodtrack.core.database import commit_or_conflict
from prodtrack.core.errors import AuthorizationError, ConcurrencyError, ValidationError
from prodtrack.models import AuditLog, Notification, Product, ProductionLog, ProductStatus, Role
from prodtrack.services import ProductLifecycleService, ProductionService, TRANSITIONS
from prodtrack.services.lifecycle import allowed_targets

from conftest import TestingSessionLocal

S = ProductStatus
L = ProductLifecycleService


class TestTransitionTable:

    def test_marketing_review_moves_only_forward_or_back(self):
        assert set(allowed_targets(S.MARKETING_REVIEW)) == {S.APPROVED, S.PENDING}

    def test_no_edge_skips_into_completed(self):
        sources = {frm for (frm, to) in TRANSITIONS if to == S.COMPLETED}
        assert sources == {S.IN_PRODUCTION}

    def test_reasons_required_for_reject_and_marketing_cancel(self):
        needs_reason = {key for key, rule in TRANSITIONS.items() if rule.requires_reason}
        assert needs_reason == {(S.PENDING, S.REJECTED), (S.MARKETING_REVIEW, S.PENDING)}


class TestApproval:

    def test_approve_assigns_barcode(self, db, make_product, admin):
        product = make_product()
        assert product.barcode is None

        product = L.approve(db, admin, product.id)
        assert product.status == S.APPROVED.value
        assert product.barcode == product.system_code

    def test_existing_barcode_is_kept(self, db, make_product, admin):
        product = make_product()
        product.barcode = "PRE-PRINTED"
        db.commit()

        product = L.approve(db, admin, product.id)
        assert product.barcode == "PRE-PRINTED"

    def test_planner_cannot_approve(self, db, make_product, planner):
        product = make_product()
        with pytest.raises(AuthorizationError):
            L.approve(db, planner, product.id)
        assert db.get(Product, product.id).status == S.PENDING.value

    def test_approve_is_audited(self, db, make_product, admin):
        product = make_product()
        L.approve(db, admin, product.id)
        actions = [a.action for a in db.query(AuditLog).filter(AuditLog.entity_id == str(product.id))]
        assert "ADMIN_APPROVE" in actions


class TestRejection:

    def test_reject_stores_reason(self, db, make_product, admin, planner):
        product = make_product()
        product = L.reject(db, admin, product.id, "kalite sorunu")

        assert product.status == S.REJECTED.value
        assert product.rejection_reason == "kalite sorunu"

    @pytest.mark.parametrize("reason", [None, "", "   "])
    def test_reject_without_reason_is_refused(self, db, make_product, admin, reason):
        product = make_product()
        with pytest.raises(ValidationError):
            L.reject(db, admin, product.id, reason)

        db.expire_all()
        product = db.get(Product, product.id)
        assert product.status == S.PENDING.value
        assert product.rejection_reason is None

    def test_rejected_product_can_be_resubmitted(self, db, make_product, admin, planner):
        product = make_product()
        L.reject(db, admin, product.id, "kalite sorunu")

        product = L.resubmit(db, planner, product.id)
        assert product.status == S.PENDING.value
        assert product.rejection_reason is None


class TestMarketingLoop:

    def _in_review(self, db, make_product, admin):
        product = make_product()
        L.approve(db, admin, product.id)
        return L.send_to_marketing(db, admin, product.id)

    def test_release_returns_to_approved(self, db, make_product, admin, marketer):
        product = self._in_review(db, make_product, admin)
        product = L.marketing_release(db, marketer, product.id)
        assert product.status == S.APPROVED.value

    def test_cancel_bounces_to_admin_with_notification(self, db, make_product, admin, marketer):
        product = self._in_review(db, make_product, admin)
        product = L.marketing_cancel(db, marketer, product.id, "kumaş rengi yanlış")

        assert product.status == S.PENDING.value
        assert product.rejection_reason == "kumaş rengi yanlış"
        notification = db.query(Notification).one()
        assert notification.type == "MARKETING_REJECT"
        assert notification.product_id == product.id

    def test_cancel_without_reason_is_refused(self, db, make_product, admin, marketer):
        product = self._in_review(db, make_product, admin)
        with pytest.raises(ValidationError):
            L.marketing_cancel(db, marketer, product.id, "")
        assert db.query(Notification).count() == 0

    def test_review_cannot_jump_to_production_or_completion(self, db, make_product, admin, marketer):
        product = self._in_review(db, make_product, admin)
        with pytest.raises(ValidationError):
            L.start_production(db, marketer, product.id)
        with pytest.raises(ValidationError):
            L.transition(db, admin, product.id, S.IN_PRODUCTION)
        with pytest.raises(ValidationError):
            L.transition(db, admin, product.id, S.COMPLETED)
        assert db.get(Product, product.id).status == S.MARKETING_REVIEW.value

    def test_marketing_cancel_does_not_resubmit_rejected(self, db, make_product, admin, marketer):
        product = make_product()
        L.reject(db, admin, product.id, "ölçü hatası")
        with pytest.raises(ValidationError):
            L.marketing_cancel(db, marketer, product.id, "yanlış ürün")


class TestProductionAndCompletion:

    def test_start_production_sets_date(self, db, in_production):
        product = in_production()
        assert product.status == S.IN_PRODUCTION.value
        assert product.production_date is not None

    def test_complete_requires_full_production(self, db, in_production, worker):
        product = in_production(quantity=10)
        ProductionService.record_production(db, worker, product.id, 9)

        with pytest.raises(ValidationError):
            L.complete(db, worker, product.id)
        assert db.get(Product, product.id).status == S.IN_PRODUCTION.value

        ProductionService.record_production(db, worker, product.id, 1)
        product = L.complete(db, worker, product.id)
        assert product.status == S.COMPLETED.value

    def test_full_production_does_not_complete_by_itself(self, db, in_production, worker):
        product = in_production(quantity=5)
        product = ProductionService.record_production(db, worker, product.id, 5)
        assert product.status == S.IN_PRODUCTION.value

    def test_status_change_clears_sub_status(self, db, in_production, users, worker):
        product = in_production(quantity=2)
        L.update_sub_status(db, users[Role.ENGINEER], product.id, "Döşeme bekliyor")
        ProductionService.record_production(db, worker, product.id, 2)

        product = L.complete(db, worker, product.id)
        assert product.sub_status is None

    def test_sub_status_only_in_production(self, db, make_product, users):
        product = make_product()
        with pytest.raises(ValidationError):
            L.update_sub_status(db, users[Role.ENGINEER], product.id, "Boyada")


class TestCancel:

    def test_cancel_requires_confirmation(self, db, make_product, planner):
        product = make_product()
        with pytest.raises(ValidationError):
            L.cancel(db, planner, product.id, "")
        assert db.get(Product, product.id) is not None

    def test_planner_cannot_cancel_approved(self, db, make_product, admin, planner):
        product = make_product()
        L.approve(db, admin, product.id)
        with pytest.raises(AuthorizationError):
            L.cancel(db, planner, product.id, "iptal")

    def test_admin_cancel_removes_product_and_history(self, db, in_production, admin, worker):
        product = in_production()
        ProductionService.record_production(db, worker, product.id, 3)
        product_id = product.id

        result = L.cancel(db, admin, product_id, "iptal")

        assert result["status"] == S.CANCELLED.value
        assert db.get(Product, product_id) is None
        assert db.query(ProductionLog).filter(ProductionLog.product_id == product_id).count() == 0
        audit = db.query(AuditLog).filter(AuditLog.action == "CANCEL").one()
        assert '"CANCELLED"' in audit.details


class TestBulk:

    def test_bulk_approve_skips_other_statuses(self, db, make_product, admin):
        a, b, c = make_product(), make_product(), make_product()
        L.reject(db, admin, c.id, "eksik bilgi")

        result = L.bulk_approve(db, admin, [a.id, b.id, c.id, 9999])

        assert result == {"count": 2, "skipped": 2}
        db.expire_all()
        assert db.get(Product, a.id).barcode == db.get(Product, a.id).system_code
        assert db.get(Product, c.id).status == S.REJECTED.value

    def test_bulk_reject_requires_reason(self, db, make_product, admin):
        product = make_product()
        with pytest.raises(ValidationError):
            L.bulk_reject(db, admin, [product.id], " ")

    def test_bulk_cancel_by_planner_keeps_approved(self, db, make_product, admin, planner):
        pending, approved = make_product(), make_product()
        L.approve(db, admin, approved.id)

        result = L.bulk_cancel(db, planner, [pending.id, approved.id], "iptal")

        assert result == {"count": 1, "skipped": 1}
        assert db.get(Product, approved.id) is not None

    def test_bulk_sub_status_touches_only_products_in_production(self, db, make_product, in_production, users):
        running, waiting = in_production(), make_product()

        result = L.bulk_update_sub_status(db, users[Role.ENGINEER], [running.id, waiting.id, 9999], "Boyada")

        assert result == {"count": 1, "skipped": 2}
        db.expire_all()
        assert db.get(Product, running.id).sub_status == "Boyada"
        assert db.get(Product, waiting.id).sub_status is None
        assert db.query(AuditLog).filter(AuditLog.action == "BULK_UPDATE_SUB_STATUS").count() == 1

    def test_bulk_sub_status_needs_engineer_or_admin(self, db, in_production, worker):
        product = in_production()
        with pytest.raises(AuthorizationError):
            L.bulk_update_sub_status(db, worker, [product.id], "Boyada")


class TestConcurrency:

    def test_expected_revision_mismatch_is_refused(self, db, make_product, admin):
        product = make_product()
        stale = product.revision
        L.approve(db, admin, product.id, expected_revision=stale)

        with pytest.raises(ConcurrencyError):
            L.send_to_marketing(db, admin, product.id, expected_revision=stale)

    def test_lost_update_is_detected(self, db, make_product, admin):
        product = make_product()
        other = TestingSessionLocal()
        try:
            seen_by_other = other.get(Product, product.id)
            assert seen_by_other.revision == product.revision

            L.approve(db, admin, product.id)

            seen_by_other.engineer_note = "written from an old copy"
            with pytest.raises(ConcurrencyError):
                commit_or_conflict(other, "Product")
        finally:
            other.close()
