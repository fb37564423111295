# backend/tests/conftest.py
"""
Shared fixtures: a fresh SQLite database per test (with the overlap
triggers), a seeded provider catalogue, an in-memory payment gateway and a
TestClient wired to all three through dependency_overrides.
"""

import os

# Set BEFORE any booking_engine import: keeps the module-level engine off disk
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["BUSINESS_TIMEZONE"] = "America/Phoenix"
os.environ.pop("REDIS_URL", None)
os.environ.pop("STRIPE_SECRET_KEY", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from booking_engine.database import get_db, init_db, make_engine
from booking_engine.main import app
from booking_engine.services.payments import get_payment_gateway
from booking_engine.services.provider_locks import InProcessLocks, get_provider_locks

from tests.helpers import FakeGateway, seed_catalogue


@pytest.fixture
def engine(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path / 'booking.db'}")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def locks():
    return InProcessLocks(wait_seconds=5)


@pytest.fixture
def catalogue(db):
    return seed_catalogue(db)


@pytest.fixture
def client(session_factory, gateway, locks):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_provider_locks] = lambda: locks
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
