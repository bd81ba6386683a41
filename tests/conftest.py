import os

# Point the application engine at SQLite before anything imports prodtrack.core
os.environ.setdefault("SQLITE_PATH", ":memory:")
os.environ.setdefault("LOGS_PATH", os.path.join(os.path.dirname(__file__), ".logs"))

from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from prodtrack.core import Base, get_db
from prodtrack.core.database import set_sqlite_pragma
from prodtrack.core.security import Principal, create_access_token, get_password_hash
from prodtrack.models import AppUser, Role, ProductionStage
from prodtrack.services import (
    ProductLifecycleService, ProductionService, ProductService,
)

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
event.listen(engine, "connect", set_sqlite_pragma)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

PASSWORD = "secret"
TERMIN = date(2026, 12, 1)


@pytest.fixture(scope="session")
def password_hash():
    return get_password_hash(PASSWORD)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def users(db, password_hash):
    """One active user per role, keyed by Role"""
    for role in Role:
        db.add(AppUser(
            username=role.value.lower(),
            full_name=role.value.title(),
            hashed_password=password_hash,
            role=role.value,
            is_active=True
        ))
    db.commit()
    return {
        Role(u.role): Principal(id=u.id, role=Role(u.role), username=u.username)
        for u in db.query(AppUser).all()
    }


@pytest.fixture
def admin(users):
    return users[Role.ADMIN]


@pytest.fixture
def planner(users):
    return users[Role.PLANNER]


@pytest.fixture
def marketer(users):
    return users[Role.MARKETER]


@pytest.fixture
def worker(users):
    return users[Role.WORKER]


@pytest.fixture
def make_product(db, planner):
    counter = {"n": 0}

    def factory(quantity=10, system_code=None, **details):
        counter["n"] += 1
        return ProductService.create_product(
            db, planner,
            name=details.pop("name", f"Sofa {counter['n']}"),
            model=details.pop("model", "KNP-3"),
            system_code=system_code or f"SC-{counter['n']}",
            quantity=quantity,
            termin_date=details.pop("termin_date", TERMIN),
            **details
        )
    return factory


@pytest.fixture
def in_production(db, make_product, admin, marketer):
    """PENDING -> APPROVED -> IN_PRODUCTION"""
    def factory(quantity=10, **details):
        product = make_product(quantity=quantity, **details)
        ProductLifecycleService.approve(db, admin, product.id)
        return ProductLifecycleService.start_production(db, marketer, product.id)
    return factory


@pytest.fixture
def stocked(db, in_production, worker, users):
    """A product with `stored` units on the warehouse shelf"""
    def factory(quantity=10, stored=None, **details):
        stored = quantity if stored is None else stored
        product = in_production(quantity=quantity, **details)
        ProductionService.record_production(db, worker, product.id, quantity)
        ProductionService.record_stage(db, worker, product.id, ProductionStage.PACKAGED, stored)
        return ProductionService.receive_into_warehouse(db, users[Role.WAREHOUSE], product.id, stored, "A-1")
    return factory


@pytest.fixture
def client(db):
    from main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def auth_headers(principal: Principal) -> dict:
    token = create_access_token({"sub": str(principal.id), "role": principal.role.value})
    return {"Authorization": f"Bearer {token}"}
