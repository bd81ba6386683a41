"""Semi-finished stock pools and workshop fan-out."""
import pytest

from prodtrack.core.errors import (
    AuthorizationError, InsufficientStockError, QuantityExceededError, ValidationError,
)
from prodtrack.models import (
    Role, SemiFinishedCategory, SemiFinishedLog, SemiFinishedProduction, StockLevel, StockMovementType,
)
from prodtrack.services import SemiFinishedProductionService, SemiFinishedService
from prodtrack.services.semi_finished_production_service import production_status
from prodtrack.services.semi_finished_service import stock_level

Cat = SemiFinishedCategory
Move = StockMovementType
Pool = SemiFinishedService
Workshop = SemiFinishedProductionService


@pytest.fixture
def make_pool(db, planner):
    def factory(code="MT-100", category=Cat.METAL, quantity=0, min_stock=10):
        return Pool.create(db, planner, code, f"Item {code}", category, quantity=quantity, min_stock=min_stock)
    return factory


class TestStockLevel:

    @pytest.mark.parametrize("quantity, min_stock, level", [
        (0, 10, StockLevel.OUT_OF_STOCK),
        (-1, 10, StockLevel.OUT_OF_STOCK),
        (10, 10, StockLevel.LOW),
        (3, 10, StockLevel.LOW),
        (11, 10, StockLevel.OK),
    ])
    def test_levels(self, quantity, min_stock, level):
        assert stock_level(quantity, min_stock) == level


class TestPool:

    def test_opening_balance_is_a_ledger_entry(self, db, make_pool):
        item = make_pool(quantity=25)

        assert Pool.get_quantity(db, item.id) == 25
        log = db.query(SemiFinishedLog).one()
        assert (log.movement_type, log.quantity, log.reference_type) == ("IN", 25, "INITIAL")

    def test_empty_pool_has_no_ledger_entry(self, db, make_pool):
        item = make_pool()
        assert db.query(SemiFinishedLog).count() == 0
        assert Pool.summarize(db, item)["level"] == StockLevel.OUT_OF_STOCK.value

    def test_duplicate_code_is_refused(self, db, make_pool):
        make_pool(code="KF-1", category=Cat.KONFEKSIYON)
        with pytest.raises(ValidationError):
            make_pool(code="KF-1", category=Cat.KONFEKSIYON)

    def test_movements_in_and_out(self, db, make_pool, worker):
        item = make_pool(quantity=5)
        Pool.adjust_stock(db, worker, item.id, Move.IN, 20, "Tedarikçi teslimatı")
        summary = Pool.adjust_stock(db, worker, item.id, Move.OUT, 12)

        assert summary["quantity"] == 13
        assert summary["level"] == StockLevel.OK.value
        assert len(Pool.movements(db, item.id)) == 3

    def test_out_beyond_pool_is_refused(self, db, make_pool, worker):
        item = make_pool(quantity=4)
        with pytest.raises(InsufficientStockError):
            Pool.adjust_stock(db, worker, item.id, Move.OUT, 5)
        assert Pool.get_quantity(db, item.id) == 4

    def test_category_operator_may_adjust_own_pool_only(self, db, make_pool, users):
        metal = make_pool(code="MT-1", category=Cat.METAL, quantity=1)
        frame = make_pool(code="AI-1", category=Cat.AHSAP_ISKELET, quantity=1)

        Pool.adjust_stock(db, users[Role.METAL], metal.id, Move.IN, 2)
        with pytest.raises(AuthorizationError):
            Pool.adjust_stock(db, users[Role.METAL], frame.id, Move.IN, 2)

    def test_list_filters_by_category(self, db, make_pool):
        make_pool(code="MT-1", category=Cat.METAL, quantity=3)
        make_pool(code="AB-1", category=Cat.AHSAP_BOYA, quantity=30)

        items = Pool.list_items(db, Cat.AHSAP_BOYA)
        assert [(i["code"], i["quantity"]) for i in items] == [("AB-1", 30)]
        assert len(Pool.list_items(db)) == 2

    def test_only_admin_deletes(self, db, make_pool, planner, admin):
        item = make_pool(quantity=2)
        with pytest.raises(AuthorizationError):
            Pool.delete(db, planner, item.id)

        Pool.delete(db, admin, item.id)
        assert Pool.list_items(db) == []
        assert db.query(SemiFinishedLog).count() == 0


class TestFanOut:

    def test_products_times_categories(self, db, make_product, planner):
        a, b = make_product(quantity=10), make_product(quantity=10)

        result = Workshop.send_to_production(
            db, planner,
            [{"id": a.id, "quantity": 4}, {"id": b.id, "quantity": 2}],
            [Cat.METAL, Cat.KONFEKSIYON, Cat.AHSAP_ISKELET]
        )

        assert result == {"created": 6, "updated": 0}
        assert db.query(SemiFinishedProduction).count() == 6

    def test_repeat_raises_target_instead_of_duplicating(self, db, make_product, planner):
        product = make_product(quantity=10)
        Workshop.send_to_production(db, planner, [{"id": product.id, "quantity": 4}], [Cat.METAL])

        result = Workshop.send_to_production(db, planner, [{"id": product.id, "quantity": 3}], [Cat.METAL])

        assert result == {"created": 0, "updated": 1}
        row = db.query(SemiFinishedProduction).one()
        assert row.target_qty == 7

    def test_target_above_ordered_is_refused(self, db, make_product, planner):
        product = make_product(quantity=5)
        Workshop.send_to_production(db, planner, [{"id": product.id, "quantity": 4}], [Cat.METAL])

        with pytest.raises(QuantityExceededError):
            Workshop.send_to_production(
                db, planner, [{"id": product.id, "quantity": 2}], [Cat.KONFEKSIYON, Cat.METAL]
            )
        # the KONFEKSIYON row from the refused call is rolled back too
        assert db.query(SemiFinishedProduction).count() == 1

    def test_needs_products_and_categories(self, db, make_product, planner):
        product = make_product()
        with pytest.raises(ValidationError):
            Workshop.send_to_production(db, planner, [{"id": product.id, "quantity": 1}], [])

    def test_worker_cannot_send(self, db, make_product, worker):
        product = make_product()
        with pytest.raises(AuthorizationError):
            Workshop.send_to_production(db, worker, [{"id": product.id, "quantity": 1}], [Cat.METAL])


class TestProduced:

    @pytest.fixture
    def row(self, db, make_product, planner):
        product = make_product(quantity=10)
        Workshop.send_to_production(db, planner, [{"id": product.id, "quantity": 6}], [Cat.METAL])
        return db.query(SemiFinishedProduction).one()

    @pytest.mark.parametrize("produced, target, status", [
        (0, 6, "PENDING"),
        (3, 6, "IN_PROGRESS"),
        (6, 6, "COMPLETED"),
        (8, 6, "COMPLETED"),
    ])
    def test_status_from_counters(self, produced, target, status):
        assert production_status(produced, target).value == status

    def test_operator_updates_row(self, db, row, users):
        result = Workshop.update_produced(db, users[Role.METAL], row.id, 3)

        assert result["row"]["produced_qty"] == 3
        assert result["row"]["status"] == "IN_PROGRESS"
        assert result["warnings"] == []

    def test_other_operator_is_refused(self, db, row, users):
        with pytest.raises(AuthorizationError):
            Workshop.update_produced(db, users[Role.KONFEKSIYON], row.id, 3)

    def test_above_ordered_is_refused(self, db, row, admin):
        with pytest.raises(QuantityExceededError):
            Workshop.update_produced(db, admin, row.id, 11)

    def test_delta_is_booked_into_pool_with_low_warning(self, db, row, admin, make_pool):
        pool = make_pool(code="MT-9", quantity=2, min_stock=10)

        Workshop.update_produced(db, admin, row.id, 2, semi_finished_id=pool.id)
        result = Workshop.update_produced(db, admin, row.id, 5, semi_finished_id=pool.id)

        assert Pool.get_quantity(db, pool.id) == 7
        assert result["warnings"] == ["MT-9 is low: 7 (minimum 10)"]
        refs = [log.reference_type for log in Pool.movements(db, pool.id)]
        assert refs.count("PRODUCTION") == 2

    def test_lowering_produced_books_nothing(self, db, row, admin, make_pool):
        pool = make_pool(code="MT-9", quantity=20)
        Workshop.update_produced(db, admin, row.id, 4, semi_finished_id=pool.id)
        Workshop.update_produced(db, admin, row.id, 1, semi_finished_id=pool.id)

        assert Pool.get_quantity(db, pool.id) == 24

    def test_pool_must_match_category(self, db, row, admin, make_pool):
        pool = make_pool(code="KF-2", category=Cat.KONFEKSIYON)
        with pytest.raises(ValidationError):
            Workshop.update_produced(db, admin, row.id, 1, semi_finished_id=pool.id)
        db.expire_all()
        assert db.get(SemiFinishedProduction, row.id).produced_qty == 0

    def test_summary_counts(self, db, row, admin):
        Workshop.update_produced(db, admin, row.id, 6)

        summary = Workshop.summary(db)
        assert summary["METAL"]["COMPLETED"] == 1
        assert summary["METAL"]["total"] == 1
        assert summary["KONFEKSIYON"]["total"] == 0
