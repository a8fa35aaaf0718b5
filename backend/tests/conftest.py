"""Pytest configuration and fixtures."""

import os
import uuid
from typing import Generator

# Keep the app's own engine away from any real database.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

import main
from core.auth import current_active_user
from core.rate_limit import RateLimiter
from db.database import Base, get_async_session, import_models
from db.users import User
from main import app


def make_user(role: str, email: str = None) -> User:
    return User(
        id=uuid.uuid4(),
        email=email or f"{role.lower()}@example.com",
        hashed_password="not-used",
        is_active=True,
        is_superuser=False,
        is_verified=True,
        name=f"{role.title()} User",
        role=role,
    )


@pytest.fixture(scope="function")
def db_engine(tmp_path):
    """A fresh SQLite file per test; NullPool so no connection outlives its event loop."""
    import_models()
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'shop.db'}", poolclass=NullPool)
    yield engine


@pytest.fixture(scope="function")
def session_maker(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest.fixture(scope="function")
def client(db_engine, session_maker, monkeypatch) -> Generator[TestClient, None, None]:
    """Create a test client bound to the per-test database."""

    async def create_test_tables():
        async with db_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def override_get_async_session():
        async with session_maker() as session:
            yield session

    monkeypatch.setattr(main, "create_db_and_tables", create_test_tables)
    app.dependency_overrides[get_async_session] = override_get_async_session
    app.state.rate_limiter = RateLimiter(max_requests=1000, window_seconds=60, storage_uri="memory://")

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def login_as():
    """Authenticate every following request as a user with the given role."""

    def _login(role: str) -> User:
        user = make_user(role)
        app.dependency_overrides[current_active_user] = lambda: user
        return user

    return _login


@pytest.fixture
def admin(client, login_as) -> User:
    return login_as("ADMIN")


@pytest.fixture
def operator(client, login_as) -> User:
    return login_as("OPERATOR")


@pytest.fixture
def make_product(client, admin):
    """Create a product through the API and optionally give it starting stock."""

    def _make(name="PVC Elbow", current_stock=None, **overrides):
        payload = {
            "name": name,
            "hsn_code": "3917",
            "gst_slab": 18,
            "price": 450,
            "unit": "pcs",
        }
        payload.update(overrides)
        res = client.post("/products", json=payload)
        assert res.status_code == 201, res.text
        product = res.json()
        if current_stock is not None:
            res = client.patch(f"/products/{product['id']}", json={"current_stock": current_stock})
            assert res.status_code == 200, res.text
            product = res.json()
        return product

    return _make


@pytest.fixture
def boxed_product(make_product):
    """Boxes of 12 pieces, 100 boxes on hand."""
    return make_product(
        name="PVC Elbow Box",
        unit="boxes",
        has_sub_unit=True,
        sub_unit={"unit": "pcs", "conversion_rate": 12},
        current_stock=100,
    )


@pytest.fixture
def stock_of(client):
    """Current stock of a product as the API reports it."""

    def _stock(product_id: str) -> float:
        res = client.get(f"/products/{product_id}")
        assert res.status_code == 200, res.text
        return res.json()["current_stock"]

    return _stock
