"""
Stock ledger engine.

A stock entry is one IN / OUT / ADJUSTMENT movement over one or more
products. Creating an entry validates every item, applies the stock changes
and stores the entry in a single transaction; deleting an entry reverses the
changes it recorded (IN and OUT only) and removes it.

Quantities on items are expressed in the product's main unit, or in its sub
unit when ``is_sub_unit`` is set; ``Product.current_stock`` is always in main
units.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union
from uuid import UUID

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.attributes import set_committed_value

from core.converters import to_main_unit_quantity
from core.errors import (
    DuplicateProductInMovement,
    InsufficientStock,
    MovementValidationError,
    PersistenceError,
    ProductNotFound,
    StockEntryNotFound,
    StockError,
)
from db.product import Product
from db.stock import StockEntry, StockEntryItem
from db.stock.entry import STOCK_ENTRY_TYPES
from schemas.stocks import StockItemCreate

logger = logging.getLogger(__name__)

# Float stock within this distance of a value counts as equal to it, and
# results within it of zero are stored as 0.
STOCK_EPSILON = 1e-9


@dataclass(frozen=True)
class MovementItem:
    product_id: UUID
    quantity: float
    is_sub_unit: bool = False


@dataclass(frozen=True)
class AppliedChange:
    product_id: UUID
    previous_stock: float
    new_stock: float
    change: float


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_movement_items(items: Iterable[Union[StockItemCreate, MovementItem]]) -> List[MovementItem]:
    return [
        MovementItem(
            product_id=it.product_id,
            quantity=it.quantity,
            is_sub_unit=bool(it.is_sub_unit),
        )
        for it in items
    ]


def _floored_at_zero(value):
    """SQL expression for `value`, stored as 0 when it is below STOCK_EPSILON."""
    return case((value < STOCK_EPSILON, 0.0), else_=value)


def validate_movement(
    movement_type: str,
    items: Sequence[MovementItem],
    products_by_id: Dict[UUID, Product],
) -> None:
    """Check a movement against the loaded products. Never mutates anything.

    Raises the first problem found, in this order: malformed input,
    duplicated products, missing products (for every movement type), bad
    sub-unit data, and finally insufficient stock for OUT movements.
    """
    if movement_type not in STOCK_ENTRY_TYPES:
        raise MovementValidationError(f"Unknown movement type '{movement_type}'")
    if not items:
        raise MovementValidationError("At least one stock update required")
    for item in items:
        if item.quantity is None or float(item.quantity) <= 0:
            raise MovementValidationError(
                "Quantity must be greater than 0",
                product_id=item.product_id,
            )

    seen = set()
    duplicates: List[UUID] = []
    for item in items:
        if item.product_id in seen and item.product_id not in duplicates:
            duplicates.append(item.product_id)
        seen.add(item.product_id)
    if duplicates:
        raise DuplicateProductInMovement(duplicates)

    missing = [item.product_id for item in items if item.product_id not in products_by_id]
    if missing:
        raise ProductNotFound(missing)

    for item in items:
        product = products_by_id[item.product_id]
        effective = to_main_unit_quantity(product, item.quantity, item.is_sub_unit)
        if movement_type != "OUT":
            continue
        current = float(product.current_stock or 0)
        if current + STOCK_EPSILON < effective:
            raise InsufficientStock(
                product_id=product.id,
                product_name=product.name,
                current_stock=current,
                requested=effective,
                is_sub_unit=item.is_sub_unit,
                sub_unit_requested=float(item.quantity) if item.is_sub_unit else None,
                conversion_rate=float(product.conversion_rate) if item.is_sub_unit else None,
            )


async def load_products(
    db: AsyncSession, product_ids: Iterable[UUID], for_update: bool = False
) -> Dict[UUID, Product]:
    ids = list(dict.fromkeys(product_ids))
    if not ids:
        return {}
    stmt = select(Product).where(Product.id.in_(ids))
    if for_update:
        # No-op on SQLite; row locks on Postgres.
        stmt = stmt.with_for_update()
    res = await db.execute(stmt)
    return {p.id: p for p in res.scalars().all()}


async def apply_movement(
    db: AsyncSession,
    movement_type: str,
    items: Sequence[MovementItem],
    products_by_id: Dict[UUID, Product],
    now: datetime,
) -> List[AppliedChange]:
    """Apply validated items in order inside the caller's transaction.

    IN and OUT are relative updates evaluated by the database; OUT only
    matches while enough stock is left, so a concurrent drain surfaces as
    InsufficientStock instead of a negative counter. ADJUSTMENT sets the
    converted quantity as the new absolute stock.
    """
    changes: List[AppliedChange] = []
    for item in items:
        product = products_by_id[item.product_id]
        effective = to_main_unit_quantity(product, item.quantity, item.is_sub_unit)

        stmt = update(Product).where(Product.id == product.id)
        if movement_type == "IN":
            stmt = stmt.values(current_stock=Product.current_stock + effective, updated_at=now)
        elif movement_type == "OUT":
            stmt = stmt.where(Product.current_stock >= effective - STOCK_EPSILON).values(
                current_stock=_floored_at_zero(Product.current_stock - effective), updated_at=now
            )
        else:
            stmt = stmt.values(current_stock=effective, updated_at=now)
        stmt = stmt.returning(Product.current_stock).execution_options(synchronize_session=False)

        row = (await db.execute(stmt)).first()
        if row is None:
            current = float(product.current_stock or 0)
            raise InsufficientStock(
                product_id=product.id,
                product_name=product.name,
                current_stock=current,
                requested=effective,
                is_sub_unit=item.is_sub_unit,
                sub_unit_requested=float(item.quantity) if item.is_sub_unit else None,
                conversion_rate=float(product.conversion_rate) if item.is_sub_unit else None,
            )

        new_stock = float(row[0])
        if movement_type == "IN":
            change = effective
        elif movement_type == "OUT":
            change = -effective
        else:
            change = new_stock - float(product.current_stock or 0)
        previous = new_stock - change

        set_committed_value(product, "current_stock", new_stock)
        set_committed_value(product, "updated_at", now)
        changes.append(
            AppliedChange(
                product_id=product.id,
                previous_stock=previous,
                new_stock=new_stock,
                change=change,
            )
        )
    return changes


async def create_stock_entry(
    db: AsyncSession,
    *,
    movement_type: str,
    items: Iterable,
    notes: Optional[str] = None,
    user_id: Optional[UUID] = None,
    now: Optional[datetime] = None,
) -> StockEntry:
    """Validate, apply and record one movement; all of it or none of it."""
    movement_items = as_movement_items(items)
    now = now or utcnow()

    try:
        products_by_id = await load_products(
            db, [it.product_id for it in movement_items], for_update=True
        )
        validate_movement(movement_type, movement_items, products_by_id)
        changes = await apply_movement(db, movement_type, movement_items, products_by_id, now)

        entry = StockEntry(
            type=movement_type,
            notes=notes,
            created_by_user_id=user_id,
            created_at=now,
            updated_at=now,
            items=[
                StockEntryItem(
                    position=position,
                    product_id=item.product_id,
                    quantity=float(item.quantity),
                    is_sub_unit=item.is_sub_unit,
                    applied_change=change.change,
                    previous_stock=change.previous_stock,
                )
                for position, (item, change) in enumerate(zip(movement_items, changes))
            ],
        )
        db.add(entry)
        await db.commit()
    except StockError as e:
        await db.rollback()
        logger.warning("Stock %s rejected: %s", movement_type, e.detail)
        raise
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Stock %s failed to persist", movement_type)
        raise PersistenceError() from e

    logger.info(
        "Stock entry %s (%s) created with %d item(s) by %s",
        entry.id, movement_type, len(movement_items), user_id,
    )
    return entry


async def delete_stock_entry(
    db: AsyncSession, entry_id: UUID, now: Optional[datetime] = None
) -> StockEntry:
    """Revert an entry's recorded changes and remove it.

    Reversal works from the product's current stock, floored at 0. ADJUSTMENT
    entries are removed without touching stock because they are corrections
    of record.
    """
    now = now or utcnow()
    try:
        res = await db.execute(
            select(StockEntry)
            .options(selectinload(StockEntry.items))
            .where(StockEntry.id == entry_id)
            .with_for_update()
        )
        entry = res.scalar_one_or_none()
        if entry is None:
            raise StockEntryNotFound(entry_id)

        if entry.type != "ADJUSTMENT":
            for item in entry.items:
                if item.product_id is None:
                    continue
                reverted = Product.current_stock - float(item.applied_change or 0)
                await db.execute(
                    update(Product)
                    .where(Product.id == item.product_id)
                    .values(
                        current_stock=_floored_at_zero(reverted),
                        updated_at=now,
                    )
                    .execution_options(synchronize_session=False)
                )

        await db.execute(delete(StockEntryItem).where(StockEntryItem.stock_entry_id == entry.id))
        await db.execute(delete(StockEntry).where(StockEntry.id == entry.id))
        await db.commit()
    except StockError:
        await db.rollback()
        raise
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Deleting stock entry %s failed", entry_id)
        raise PersistenceError() from e

    logger.info("Stock entry %s (%s) deleted and reverted", entry.id, entry.type)
    return entry


def _entry_load_options():
    return (
        selectinload(StockEntry.items).selectinload(StockEntryItem.product),
        selectinload(StockEntry.created_by_user),
    )


async def get_stock_entry(db: AsyncSession, entry_id: UUID) -> StockEntry:
    res = await db.execute(
        select(StockEntry).options(*_entry_load_options()).where(StockEntry.id == entry_id)
    )
    entry = res.scalar_one_or_none()
    if entry is None:
        raise StockEntryNotFound(entry_id)
    return entry


async def list_stock_entries(
    db: AsyncSession,
    *,
    movement_type: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: int = 10,
    offset: int = 0,
) -> Tuple[List[StockEntry], int]:
    """Newest first, with the total count of entries matching the filters."""
    filters = []
    if movement_type:
        filters.append(StockEntry.type == movement_type)
    if start_date:
        filters.append(StockEntry.created_at >= start_date)
    if end_date:
        filters.append(StockEntry.created_at <= end_date)

    res = await db.execute(
        select(StockEntry)
        .options(*_entry_load_options())
        .where(*filters)
        .order_by(StockEntry.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    entries = list(res.scalars().all())

    count_res = await db.execute(select(func.count()).select_from(StockEntry).where(*filters))
    return entries, int(count_res.scalar_one() or 0)
