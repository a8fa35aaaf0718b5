from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict, List
from uuid import UUID

from core.auth import current_operator
from db.category import Category as CategoryModel
from db.database import get_async_session
from db.product import Product as ProductModel
from db.users import User
from schemas.categories import CategoryCreate, CategoryRead, CategoryUpdate

router = APIRouter()


async def _title_taken(db: AsyncSession, title: str, exclude_id: UUID = None) -> bool:
    stmt = select(CategoryModel.id).where(func.lower(CategoryModel.title) == title.lower())
    if exclude_id is not None:
        stmt = stmt.where(CategoryModel.id != exclude_id)
    res = await db.execute(stmt)
    return res.scalar_one_or_none() is not None


@router.get("", response_model=List[CategoryRead])
async def list_categories(
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_operator),
):
    res = await db.execute(select(CategoryModel).order_by(func.lower(CategoryModel.title).asc()))
    return [CategoryRead(**c.to_schema) for c in res.scalars().all()]


@router.post("", response_model=CategoryRead, status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: CategoryCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_operator),
):
    if await _title_taken(db, payload.title):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Category already exists")

    m = CategoryModel(title=payload.title)
    db.add(m)
    await db.commit()
    await db.refresh(m)
    return CategoryRead(**m.to_schema)


@router.patch("/{category_id}", response_model=CategoryRead)
async def update_category(
    category_id: UUID,
    payload: CategoryUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_operator),
):
    res = await db.execute(select(CategoryModel).where(CategoryModel.id == category_id))
    m = res.scalar_one_or_none()
    if not m:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    if await _title_taken(db, payload.title, exclude_id=category_id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Category already exists")

    m.title = payload.title
    await db.commit()
    await db.refresh(m)
    return CategoryRead(**m.to_schema)


@router.delete("/{category_id}", response_model=Dict)
async def delete_category(
    category_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_operator),
):
    res = await db.execute(select(CategoryModel).where(CategoryModel.id == category_id))
    m = res.scalar_one_or_none()
    if not m:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")

    used = await db.execute(
        select(func.count()).select_from(ProductModel).where(ProductModel.category_id == category_id)
    )
    products_count = int(used.scalar_one() or 0)
    if products_count:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"error": "Category is used by products", "products_count": products_count},
        )

    await db.delete(m)
    await db.commit()
    return {"message": "Category deleted successfully", "id": category_id}
