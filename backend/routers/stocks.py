import logging
from datetime import date, datetime, time
from typing import Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_admin, current_operator
from core.converters import stock_entry_to_schema
from core.errors import StockError
from core.rate_limit import rate_limit
from db.database import get_async_session
from db.users import User
from schemas.stocks import StockEntryCreate, StockEntryCreated, StockEntryDeleted, StockEntryType
from services import stock_ledger

logger = logging.getLogger(__name__)

router = APIRouter()


def _http_error(e: StockError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.detail)


@router.get("", response_model=Dict)
async def list_stock_entries(
    type: Optional[StockEntryType] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: User = Depends(current_operator),
    db: AsyncSession = Depends(get_async_session),
):
    """Stock history, newest first. `end_date` includes the whole day."""
    entries, count = await stock_ledger.list_stock_entries(
        db,
        movement_type=type,
        start_date=datetime.combine(start_date, time.min) if start_date else None,
        end_date=datetime.combine(end_date, time.max) if end_date else None,
        limit=limit,
        offset=offset,
    )
    return {"stocks": [stock_entry_to_schema(e) for e in entries], "count": count}


@router.get("/{stock_id}", response_model=Dict)
async def get_stock_entry(
    stock_id: UUID,
    user: User = Depends(current_operator),
    db: AsyncSession = Depends(get_async_session),
):
    try:
        entry = await stock_ledger.get_stock_entry(db, stock_id)
    except StockError as e:
        raise _http_error(e)
    return stock_entry_to_schema(entry)


@router.post("", response_model=StockEntryCreated, status_code=status.HTTP_201_CREATED)
async def create_stock_entry(
    payload: StockEntryCreate,
    user: User = Depends(current_operator),
    db: AsyncSession = Depends(get_async_session),
):
    try:
        entry = await stock_ledger.create_stock_entry(
            db,
            movement_type=payload.type,
            items=payload.items,
            notes=payload.notes,
            user_id=user.id,
        )
    except StockError as e:
        raise _http_error(e)
    return StockEntryCreated(message="Stock update completed successfully", stock_id=entry.id)


@router.delete("/{stock_id}", response_model=StockEntryDeleted, dependencies=[Depends(rate_limit)])
async def delete_stock_entry(
    stock_id: UUID,
    user: User = Depends(current_admin),
    db: AsyncSession = Depends(get_async_session),
):
    try:
        entry = await stock_ledger.delete_stock_entry(db, stock_id)
    except StockError as e:
        raise _http_error(e)

    if entry.type == "ADJUSTMENT":
        message = "Stock entry deleted successfully; adjustments are not reverted"
    else:
        message = "Stock entry deleted successfully and product stocks reverted"
    logger.info("User %s deleted stock entry %s", user.id, entry.id)
    return StockEntryDeleted(message=message, id=entry.id, type=entry.type)
