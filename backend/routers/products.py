import logging
from typing import Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.auth import current_operator
from core.config import settings
from core.rate_limit import rate_limit
from db.category import Category as CategoryModel
from db.database import get_async_session
from db.product import Product as ProductModel
from db.stock import StockEntryItem as StockEntryItemModel
from db.users import User
from schemas.products import ProductCreate, ProductUpdate, StockFilter
from services.stock_ledger import utcnow

logger = logging.getLogger(__name__)

router = APIRouter()


def _product_out(p: ProductModel) -> dict:
    out = p.to_schema
    out["category_details"] = p.category.to_schema if p.category else None
    return out


async def _ensure_category(db: AsyncSession, category_id: Optional[UUID]) -> None:
    if category_id is None:
        return
    res = await db.execute(select(CategoryModel.id).where(CategoryModel.id == category_id))
    if res.scalar_one_or_none() is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")


async def _get_product_or_404(db: AsyncSession, product_id: UUID) -> ProductModel:
    res = await db.execute(
        select(ProductModel)
        .options(selectinload(ProductModel.category))
        .where(ProductModel.id == product_id)
        .execution_options(populate_existing=True)
    )
    model = res.scalar_one_or_none()
    if not model:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return model


@router.get("", response_model=Dict)
async def list_products(
    search: Optional[str] = None,
    category_id: Optional[UUID] = None,
    stock_filter: Optional[StockFilter] = None,
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: User = Depends(current_operator),
    db: AsyncSession = Depends(get_async_session),
):
    """
    List products by name.

    - stock_filter buckets: out_of_stock (0), low (0, threshold], medium (threshold, 100], high (> 100).
    """
    filters = []
    if search:
        filters.append(func.lower(ProductModel.name).like(f"%{search.strip().lower()}%"))
    if category_id:
        filters.append(ProductModel.category_id == category_id)
    if stock_filter == "out_of_stock":
        filters.append(ProductModel.current_stock == 0)
    elif stock_filter == "low":
        filters.append(ProductModel.current_stock > 0)
        filters.append(ProductModel.current_stock <= settings.low_stock_threshold)
    elif stock_filter == "medium":
        filters.append(ProductModel.current_stock > settings.low_stock_threshold)
        filters.append(ProductModel.current_stock <= 100)
    elif stock_filter == "high":
        filters.append(ProductModel.current_stock > 100)

    res = await db.execute(
        select(ProductModel)
        .options(selectinload(ProductModel.category))
        .where(*filters)
        .order_by(ProductModel.name.asc())
        .offset(offset)
        .limit(limit)
    )
    products = res.scalars().all()
    count_res = await db.execute(select(func.count()).select_from(ProductModel).where(*filters))
    return {
        "products": [_product_out(p) for p in products],
        "count": int(count_res.scalar_one() or 0),
    }


@router.get("/low-stock", response_model=Dict)
async def list_low_stock_products(
    user: User = Depends(current_operator),
    db: AsyncSession = Depends(get_async_session),
):
    res = await db.execute(
        select(ProductModel)
        .where(ProductModel.current_stock >= 0)
        .where(ProductModel.current_stock <= settings.low_stock_threshold)
        .order_by(ProductModel.name.asc())
    )
    products = res.scalars().all()
    return {"products": [p.to_schema for p in products], "count": len(products)}


@router.get("/{product_id}", response_model=Dict)
async def get_product(
    product_id: UUID,
    user: User = Depends(current_operator),
    db: AsyncSession = Depends(get_async_session),
):
    return _product_out(await _get_product_or_404(db, product_id))


@router.post("", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def create_product(
    payload: ProductCreate,
    user: User = Depends(current_operator),
    db: AsyncSession = Depends(get_async_session),
):
    existing = await db.execute(
        select(ProductModel.id).where(func.lower(ProductModel.name) == payload.name.lower())
    )
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Product already exists in the system")
    await _ensure_category(db, payload.category_id)

    now = utcnow()
    model = ProductModel(
        name=payload.name,
        hsn_code=payload.hsn_code,
        gst_slab=payload.gst_slab,
        price=payload.price,
        category_id=payload.category_id,
        unit=payload.unit,
        has_sub_unit=payload.has_sub_unit,
        sub_unit=payload.sub_unit.unit if payload.sub_unit else None,
        conversion_rate=payload.sub_unit.conversion_rate if payload.sub_unit else None,
        current_stock=0,
        created_at=now,
        updated_at=now,
    )
    db.add(model)
    await db.commit()
    logger.info("Product %s (%s) created by %s", model.id, model.name, user.id)
    return _product_out(await _get_product_or_404(db, model.id))


@router.patch("/{product_id}", response_model=Dict)
async def update_product(
    product_id: UUID,
    payload: ProductUpdate,
    user: User = Depends(current_operator),
    db: AsyncSession = Depends(get_async_session),
):
    model = await _get_product_or_404(db, product_id)
    data = payload.model_dump(exclude_unset=True)

    if data.get("name") and data["name"].lower() != model.name.lower():
        clash = await db.execute(
            select(ProductModel.id)
            .where(func.lower(ProductModel.name) == data["name"].lower())
            .where(ProductModel.id != product_id)
        )
        if clash.scalar_one_or_none():
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Product name exists in the system")

    if "category_id" in data:
        await _ensure_category(db, data["category_id"])
        model.category_id = data["category_id"]

    for field in ("name", "hsn_code", "gst_slab", "price", "unit"):
        if data.get(field) is not None:
            setattr(model, field, data[field])

    if data.get("current_stock") is not None:
        logger.info(
            "Product %s stock overridden from %s to %s by %s",
            model.id, model.current_stock, data["current_stock"], user.id,
        )
        model.current_stock = data["current_stock"]

    if "has_sub_unit" in data and not data["has_sub_unit"]:
        model.has_sub_unit = False
        model.sub_unit = None
        model.conversion_rate = None
    elif data.get("has_sub_unit") or payload.sub_unit is not None:
        if payload.sub_unit is None and not model.sub_unit:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="sub_unit is required when has_sub_unit is true",
            )
        model.has_sub_unit = True
        if payload.sub_unit is not None:
            model.sub_unit = payload.sub_unit.unit
            model.conversion_rate = payload.sub_unit.conversion_rate

    model.updated_at = utcnow()
    await db.commit()
    return _product_out(await _get_product_or_404(db, product_id))


@router.delete("/{product_id}", response_model=Dict, dependencies=[Depends(rate_limit)])
async def delete_product(
    product_id: UUID,
    user: User = Depends(current_operator),
    db: AsyncSession = Depends(get_async_session),
):
    model = await _get_product_or_404(db, product_id)

    used = await db.execute(
        select(func.count())
        .select_from(StockEntryItemModel)
        .where(StockEntryItemModel.product_id == product_id)
    )
    entries_count = int(used.scalar_one() or 0)
    if entries_count > 0:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "error": "Cannot delete product : It is being used in stock entries",
                "stock_entries_count": entries_count,
            },
        )

    await db.delete(model)
    await db.commit()
    logger.info("Product %s deleted by %s", product_id, user.id)
    return {"message": "Product deleted successfully", "id": product_id}
