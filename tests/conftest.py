"""
Pytest configuration and fixtures.

Tests run against an in-memory SQLite database built from the model
metadata, so no PostgreSQL server is needed.
"""

from __future__ import annotations

import os
from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from tests.test_constants import TEST_INTERNAL_JOB_TOKEN

# Force a throwaway DB when pytest runs; don't inherit from .env
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["INTERNAL_JOB_TOKEN"] = TEST_INTERNAL_JOB_TOKEN


@pytest.fixture
def db() -> Session:
    """Fresh database per test."""
    import lumora.models  # noqa: F401
    from lumora.db.session import Base

    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session = Session(bind=engine, expire_on_commit=False)
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def client() -> TestClient:
    """FastAPI test client."""
    from lumora.main import app

    return TestClient(app)


@pytest.fixture
def client_with_db(db: Session) -> TestClient:
    """TestClient with get_db overridden to use the test db session."""
    from lumora.db.session import get_db
    from lumora.main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    c = TestClient(app)
    yield c
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture(autouse=True)
def _clear_config_caches() -> None:
    """Settings and policies are process-cached; reset them around each test."""
    from lumora.config import get_forensics_policy, get_quota_policy, get_settings

    for fn in (get_settings, get_quota_policy, get_forensics_policy):
        fn.cache_clear()
    yield
    for fn in (get_settings, get_quota_policy, get_forensics_policy):
        fn.cache_clear()


# ── Data builders ───────────────────────────────────────────────────


@pytest.fixture
def make_manufacturer(db: Session):
    from lumora.models import Manufacturer

    def _make(name: str = "Acme Pharma", plan: str = "BASIC", **kwargs) -> Manufacturer:
        manufacturer = Manufacturer(name=name, plan=plan, **kwargs)
        db.add(manufacturer)
        db.commit()
        return manufacturer

    return _make


@pytest.fixture
def make_batch(db: Session):
    from lumora.models import Batch, Product

    def _make(manufacturer, batch_number: str = "B-001", **kwargs) -> Batch:
        product = Product(manufacturer_id=manufacturer.id, name="Paracetamol 500mg")
        db.add(product)
        db.flush()
        batch = Batch(
            manufacturer_id=manufacturer.id,
            product_id=product.id,
            batch_number=batch_number,
            quantity=kwargs.pop("quantity", 100),
            expiration_date=kwargs.pop("expiration_date", date.today() + timedelta(days=365)),
            **kwargs,
        )
        db.add(batch)
        db.commit()
        return batch

    return _make


@pytest.fixture
def make_code(db: Session):
    from lumora.models import Code

    def _make(batch, code_value: str, **kwargs) -> Code:
        code = Code(
            code_value=code_value,
            batch_id=batch.id,
            manufacturer_id=batch.manufacturer_id,
            **kwargs,
        )
        db.add(code)
        db.commit()
        return code

    return _make

