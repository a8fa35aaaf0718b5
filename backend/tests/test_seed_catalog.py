"""Tests for the catalog seed script."""

import asyncio

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import async_sessionmaker

from db.database import Base
from db.product import Product
from db.users import User
from scripts.seed_catalog import SEED_PRODUCTS, seed_catalog, set_user_role


def _run(db_engine, work):
    async def _main():
        async with db_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        async with async_sessionmaker(db_engine, expire_on_commit=False)() as db:
            return await work(db)

    return asyncio.run(_main())


def test_seed_is_idempotent(db_engine):
    async def work(db):
        first = await seed_catalog(db)
        second = await seed_catalog(db)
        res = await db.execute(select(Product).where(Product.name == "PVC Elbow 1in"))
        elbow = res.scalar_one()
        count = (await db.execute(select(func.count()).select_from(Product))).scalar_one()
        return first, second, elbow, count

    first, second, elbow, count = _run(db_engine, work)

    assert first == {"categories_created": 1, "products_created": len(SEED_PRODUCTS)}
    assert second == {"categories_created": 0, "products_created": 0}
    assert count == len(SEED_PRODUCTS)
    assert elbow.has_sub_unit is True
    assert elbow.conversion_rate == 12
    assert elbow.current_stock == 0


def test_set_user_role(db_engine):
    async def work(db):
        user = User(email="owner@example.com", hashed_password="not-used", role="USER")
        db.add(user)
        await db.commit()
        promoted = await set_user_role(db, " Owner@Example.com ", "ADMIN")
        missing = await set_user_role(db, "nobody@example.com")
        await db.refresh(user)
        return promoted, missing, user.role

    assert _run(db_engine, work) == (True, False, "ADMIN")


def test_set_user_role_rejects_unknown_role(db_engine):
    async def work(db):
        await set_user_role(db, "owner@example.com", "OWNER")

    with pytest.raises(ValueError):
        _run(db_engine, work)
