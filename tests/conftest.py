"""Pytest fixtures for testing"""

import pytest
from pathlib import Path
from typing import Callable, Generator, List, Optional
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from local_yield.api.main import create_app
from local_yield.config import settings
from local_yield.infrastructure.database.models import (
    Account,
    AccountCapability,
    Base,
    ProducerProfile,
    Product,
    Report,
)
from local_yield.infrastructure.database.session import get_db


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False, "timeout": 30})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

FIXTURE_ZIP_TABLE = Path(__file__).parent / "fixtures" / "zip_centroids.csv"


@pytest.fixture(autouse=True)
def zip_table(monkeypatch):
    """Pin distances to a small known centroid table; tests of the full US dataset clear it"""
    monkeypatch.setattr(settings, "zip_table_path", str(FIXTURE_ZIP_TABLE))


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def other_session(db: Session) -> Generator[Callable[[], Session], None, None]:
    """Extra sessions against the same database, e.g. to interleave two checkouts"""
    opened: List[Session] = []

    def factory() -> Session:
        session = TestingSessionLocal()
        opened.append(session)
        return session

    yield factory
    for session in opened:
        session.close()


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def make_account(db: Session) -> Callable[..., Account]:
    """Create an account holding the given capability tokens"""

    def factory(account_id: str, *capabilities: str, zip_code: Optional[str] = None, name: Optional[str] = None) -> Account:
        account = Account(id=account_id, name=name or account_id, zip_code=zip_code)
        account.capabilities = [AccountCapability(capability=c) for c in capabilities]
        db.add(account)
        db.commit()
        return account

    return factory


@pytest.fixture
def make_producer(db: Session, make_account) -> Callable[..., Account]:
    def factory(
        account_id: str = "producer_1",
        offers_delivery: bool = False,
        delivery_fee_cents: int = 0,
        active: bool = True,
        zip_code: str = "60014",
    ) -> Account:
        account = make_account(account_id, "PRODUCER", zip_code=zip_code)
        db.add(
            ProducerProfile(
                account_id=account_id,
                active=active,
                offers_delivery=offers_delivery,
                delivery_fee_cents=delivery_fee_cents,
            )
        )
        db.commit()
        return account

    return factory


@pytest.fixture
def make_product(db: Session) -> Callable[..., Product]:
    def factory(
        product_id: str,
        producer_id: str = "producer_1",
        price_cents: int = 1000,
        quantity_available: Optional[int] = None,
        zip_code: Optional[str] = "60014",
        title: Optional[str] = None,
        active: bool = True,
    ) -> Product:
        product = Product(
            id=product_id,
            producer_id=producer_id,
            title=title or product_id,
            price_cents=price_cents,
            quantity_available=quantity_available,
            zip_code=zip_code,
            active=active,
        )
        db.add(product)
        db.commit()
        return product

    return factory


@pytest.fixture
def make_report(db: Session) -> Callable[..., Report]:
    def factory(report_id: str, reporter_id: str = "buyer_1", order_id: Optional[str] = None) -> Report:
        report = Report(id=report_id, reporter_id=reporter_id, order_id=order_id, reason="Item arrived damaged")
        db.add(report)
        db.commit()
        return report

    return factory


@pytest.fixture
def marketplace(make_account, make_producer, make_product):
    """Buyer, pickup-only producer and two products (one limited, one unlimited stock)"""
    make_account("buyer_1", zip_code="60013")
    make_producer("producer_1")
    make_product("eggs", price_cents=600, quantity_available=10)
    make_product("honey", price_cents=1200, quantity_available=None)
    return {"buyer_id": "buyer_1", "producer_id": "producer_1"}
