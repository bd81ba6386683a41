"""Plan edits, engineering notes and wiping production data."""
import pytest

from prodtrack.core.errors import AuthorizationError, ValidationError
from prodtrack.models import (
    AppUser, AuditLog, Inventory, Order, Product, ProductionLog, ProductStatus, Role, Shipment, ShipmentItem,
)
from prodtrack.services import OrderService, ProductLifecycleService, ProductService, ShipmentService

from conftest import TERMIN

S = ProductStatus
L = ProductLifecycleService


class TestPlanLock:

    def test_planner_cannot_edit_product_under_marketing_review(self, db, make_product, admin, planner):
        product = make_product()
        L.approve(db, admin, product.id)
        L.send_to_marketing(db, admin, product.id)

        with pytest.raises(ValidationError):
            ProductService.update_product(db, planner, product.id, {"quantity": 12})

        db.expire_all()
        assert db.get(Product, product.id).quantity == 10

    def test_admin_may_edit_product_under_marketing_review(self, db, make_product, admin):
        product = make_product()
        L.approve(db, admin, product.id)
        L.send_to_marketing(db, admin, product.id)

        product = ProductService.update_product(db, admin, product.id, {"quantity": 12})

        assert product.quantity == 12
        assert product.status == S.MARKETING_REVIEW.value

    def test_pending_product_stays_editable(self, db, make_product, planner):
        product = make_product()
        product = ProductService.update_product(db, planner, product.id, {"material": "Kadife"})
        assert product.material == "Kadife"


class TestEngineerNote:

    def test_engineer_sets_note_in_any_status(self, db, make_product, admin, users):
        product = make_product()
        L.approve(db, admin, product.id)

        product = ProductService.update_engineer_note(db, users[Role.ENGINEER], product.id, "  Ayak ölçüsü 12 cm ")

        assert product.engineer_note == "Ayak ölçüsü 12 cm"
        assert product.status == S.APPROVED.value
        audit = db.query(AuditLog).filter(AuditLog.action == "UPDATE_ENGINEER_NOTE").one()
        assert audit.entity_id == str(product.id)

    def test_blank_note_clears_it(self, db, make_product, admin):
        product = make_product()
        ProductService.update_engineer_note(db, admin, product.id, "Kumaş değişti")

        product = ProductService.update_engineer_note(db, admin, product.id, " ")

        assert product.engineer_note is None

    def test_planner_cannot_write_engineer_note(self, db, make_product, planner):
        product = make_product()
        with pytest.raises(AuthorizationError):
            ProductService.update_engineer_note(db, planner, product.id, "not")


class TestClearAll:

    def test_blank_confirmation_is_refused(self, db, make_product, admin):
        product = make_product()
        with pytest.raises(ValidationError):
            ProductService.clear_all(db, admin, "  ")
        assert db.get(Product, product.id) is not None

    def test_only_admin_may_clear(self, db, make_product, planner):
        make_product()
        with pytest.raises(AuthorizationError):
            ProductService.clear_all(db, planner, "SİL")

    def test_removes_orders_products_and_their_records(self, db, stocked, planner, admin, users):
        product = stocked(quantity=4)
        ShipmentService.create_shipment(
            db, users[Role.WAREHOUSE], "Mobilya Ltd", [{"product_id": product.id, "quantity": 2}]
        )
        OrderService.create_order(
            db, planner, "Koltuk A.Ş.", "SIP-7", [{"code": "BRJ", "quantity": 2, "termin_date": TERMIN}]
        )

        counts = ProductService.clear_all(db, admin, "SİL")

        assert counts["products"] == 2
        assert counts["orders"] == 1
        assert counts["shipments"] == 1
        for model in (Product, Order, Shipment, ShipmentItem, ProductionLog, Inventory):
            assert db.query(model).count() == 0
        assert db.query(AppUser).count() == len(users)
        assert db.query(AuditLog).filter(AuditLog.action == "CLEAR_ALL").count() == 1
