"""Production, stage and warehouse counters."""
import pytest

from prodtrack.core.errors import (
    AuthorizationError, InsufficientStockError, QuantityExceededError, ValidationError,
)
from prodtrack.models import Inventory, Product, ProductionLog, ProductionStage, Role
from prodtrack.services import ProductLifecycleService, ProductionService

P = ProductionService
Stage = ProductionStage


class TestRecordProduction:

    def test_produced_accumulates_and_is_logged(self, db, in_production, worker):
        product = in_production(quantity=10)
        P.record_production(db, worker, product.id, 4, shelf="H-2")
        product = P.record_production(db, worker, product.id, 3)

        assert product.produced == 7
        logs = P.production_history(db, product.id)
        assert [(log.stage, log.quantity) for log in logs] == [("PRODUCED", 4), ("PRODUCED", 3)]
        assert logs[0].shelf == "H-2"

    def test_cannot_exceed_ordered_quantity(self, db, in_production, worker):
        product = in_production(quantity=10)
        P.record_production(db, worker, product.id, 8)

        with pytest.raises(QuantityExceededError):
            P.record_production(db, worker, product.id, 3)

        db.expire_all()
        assert db.get(Product, product.id).produced == 8
        assert db.query(ProductionLog).filter(ProductionLog.product_id == product.id).count() == 1

    @pytest.mark.parametrize("quantity", [0, -2])
    def test_quantity_must_be_positive(self, db, in_production, worker, quantity):
        product = in_production()
        with pytest.raises(ValidationError):
            P.record_production(db, worker, product.id, quantity)

    def test_only_while_in_production(self, db, make_product, worker):
        product = make_product()
        with pytest.raises(ValidationError):
            P.record_production(db, worker, product.id, 1)

    def test_viewer_is_refused(self, db, in_production, users):
        product = in_production()
        with pytest.raises(AuthorizationError):
            P.record_production(db, users[Role.VIEWER], product.id, 1)


class TestRecordStage:

    def test_positive_and_corrective_deltas(self, db, in_production, worker):
        product = in_production(quantity=6)
        P.record_stage(db, worker, product.id, Stage.FOAM, 5)
        product = P.record_stage(db, worker, product.id, Stage.FOAM, -2)

        assert product.foam_qty == 3

    def test_stage_above_ordered_is_refused(self, db, in_production, worker):
        product = in_production(quantity=6)
        P.record_stage(db, worker, product.id, Stage.UPHOLSTERY, 6)
        with pytest.raises(QuantityExceededError):
            P.record_stage(db, worker, product.id, Stage.UPHOLSTERY, 1)

    def test_stage_below_zero_is_refused(self, db, in_production, worker):
        product = in_production()
        P.record_stage(db, worker, product.id, Stage.ASSEMBLY, 2)
        with pytest.raises(ValidationError):
            P.record_stage(db, worker, product.id, Stage.ASSEMBLY, -3)

        db.expire_all()
        assert db.get(Product, product.id).assembly_qty == 2

    def test_approved_product_may_move_stages(self, db, make_product, admin, worker):
        product = make_product()
        ProductLifecycleService.approve(db, admin, product.id)

        product = P.record_stage(db, worker, product.id, Stage.FOAM, 1)
        assert product.foam_qty == 1

    def test_pending_product_may_not_move_stages(self, db, make_product, worker):
        product = make_product()
        with pytest.raises(ValidationError):
            P.record_stage(db, worker, product.id, Stage.FOAM, 1)

    @pytest.mark.parametrize("stage", [Stage.PRODUCED, Stage.STORED])
    def test_stages_with_own_operation_are_refused(self, db, in_production, worker, stage):
        product = in_production()
        with pytest.raises(ValidationError):
            P.record_stage(db, worker, product.id, stage, 1)

    def test_zero_delta_is_refused(self, db, in_production, worker):
        product = in_production()
        with pytest.raises(ValidationError):
            P.record_stage(db, worker, product.id, Stage.FOAM, 0)


class TestWarehouseReceipt:

    def test_moves_packaged_onto_shelf(self, db, stocked):
        product = stocked(quantity=10, stored=4)

        assert product.packaged_qty == 0
        assert product.stored_qty == 4
        row = db.query(Inventory).filter(Inventory.product_id == product.id).one()
        assert (row.shelf, row.quantity) == ("A-1", 4)

    def test_same_shelf_is_accumulated(self, db, in_production, worker, users):
        warehouse = users[Role.WAREHOUSE]
        product = in_production(quantity=10)
        P.record_stage(db, worker, product.id, Stage.PACKAGED, 5)

        P.receive_into_warehouse(db, warehouse, product.id, 2, "B-3")
        P.receive_into_warehouse(db, warehouse, product.id, 1, "B-3")
        product = P.receive_into_warehouse(db, warehouse, product.id, 2, "C-1")

        rows = {r.shelf: r.quantity for r in db.query(Inventory).filter(Inventory.product_id == product.id)}
        assert rows == {"B-3": 3, "C-1": 2}
        assert product.stored_qty == 5

    def test_more_than_packaged_is_refused(self, db, in_production, worker, users):
        product = in_production(quantity=10)
        P.record_stage(db, worker, product.id, Stage.PACKAGED, 3)

        with pytest.raises(InsufficientStockError):
            P.receive_into_warehouse(db, users[Role.WAREHOUSE], product.id, 4, "A-1")

        db.expire_all()
        product = db.get(Product, product.id)
        assert (product.packaged_qty, product.stored_qty) == (3, 0)
        assert db.query(Inventory).count() == 0

    def test_shelf_is_required(self, db, in_production, worker, users):
        product = in_production()
        P.record_stage(db, worker, product.id, Stage.PACKAGED, 1)
        with pytest.raises(ValidationError):
            P.receive_into_warehouse(db, users[Role.WAREHOUSE], product.id, 1, "  ")

    def test_marketer_cannot_receive(self, db, in_production, marketer):
        product = in_production()
        with pytest.raises(AuthorizationError):
            P.receive_into_warehouse(db, marketer, product.id, 1, "A-1")


class TestStockFigures:

    def test_nothing_shipped(self, db, stocked):
        product = stocked(quantity=8, stored=5)
        assert P.stock_figures(db, product) == {"stored": 5, "shipped": 0, "available": 5}

    def test_shipped_totals_for_no_ids(self, db):
        assert P.shipped_totals(db, []) == {}
