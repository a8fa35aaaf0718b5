"""
Seed a demo category + products, and optionally promote a registered user.

Run locally (from backend/):
  PYTHONPATH=. python scripts/seed_catalog.py
  PYTHONPATH=. python scripts/seed_catalog.py --admin-email owner@example.com

It uses the same DATABASE_* env vars as the backend (dotenv supported by core.config).
Existing rows are matched by name and left alone.
"""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from db.category import Category
from db.database import async_session_maker, create_db_and_tables
from db.product import Product
from db.users import USER_ROLES, User


@dataclass(frozen=True)
class SeedProduct:
    name: str
    hsn_code: str
    gst_slab: float
    price: float
    unit: str = "pcs"
    sub_unit: Optional[str] = None
    conversion_rate: Optional[float] = None


SEED_CATEGORY = "Plumbing"

SEED_PRODUCTS: list[SeedProduct] = [
    SeedProduct(name="PVC Elbow 1in", hsn_code="3917", gst_slab=18, price=450, unit="boxes", sub_unit="pcs", conversion_rate=12),
    SeedProduct(name="PVC Pipe 4in", hsn_code="3917", gst_slab=18, price=620, unit="pipes"),
    SeedProduct(name="Teflon Tape", hsn_code="39199090", gst_slab=18, price=300, unit="rolls"),
    SeedProduct(name="White Cement", hsn_code="2523", gst_slab=5, price=900, unit="bags", sub_unit="kg", conversion_rate=50),
]


async def seed_catalog(db: AsyncSession) -> dict:
    res = await db.execute(select(Category).where(func.lower(Category.title) == SEED_CATEGORY.lower()))
    category = res.scalar_one_or_none()
    categories_created = 0
    if category is None:
        category = Category(title=SEED_CATEGORY)
        db.add(category)
        await db.flush()
        categories_created = 1

    existing = await db.execute(select(func.lower(Product.name)))
    existing_names = {n for (n,) in existing.all()}

    products_created = 0
    for sp in SEED_PRODUCTS:
        if sp.name.lower() in existing_names:
            continue
        db.add(
            Product(
                name=sp.name,
                hsn_code=sp.hsn_code,
                gst_slab=sp.gst_slab,
                price=sp.price,
                category_id=category.id,
                unit=sp.unit,
                has_sub_unit=sp.sub_unit is not None,
                sub_unit=sp.sub_unit,
                conversion_rate=sp.conversion_rate,
                current_stock=0,
            )
        )
        products_created += 1

    await db.commit()
    return {"categories_created": categories_created, "products_created": products_created}


async def set_user_role(db: AsyncSession, email: str, role: str = "ADMIN") -> bool:
    if role not in USER_ROLES:
        raise ValueError(f"role must be one of {', '.join(USER_ROLES)}")
    res = await db.execute(select(User).where(func.lower(User.email) == email.strip().lower()))
    user = res.scalar_one_or_none()
    if user is None:
        return False
    user.role = role
    await db.commit()
    return True


async def main(admin_email: Optional[str] = None) -> None:
    await create_db_and_tables()
    async with async_session_maker() as db:
        out = await seed_catalog(db)
        print(f"Seeded categories: {out['categories_created']}, products: {out['products_created']}")
        if admin_email:
            if await set_user_role(db, admin_email, "ADMIN"):
                print(f"{admin_email} is now ADMIN")
            else:
                print(f"No user registered with {admin_email}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--admin-email", default=None, help="Registered user to promote to ADMIN")
    args = parser.parse_args()
    asyncio.run(main(args.admin_email))
