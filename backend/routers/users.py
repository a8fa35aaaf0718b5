import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_admin
from core.rate_limit import rate_limit
from db.database import get_async_session
from db.users import User
from schemas.users import UserRead, UserRoleUpdate

logger = logging.getLogger(__name__)

router = APIRouter()

# fastapi-users' own /users/me and /users/{id} routes are included in main.py;
# these are the shop's role management endpoints.


@router.get("", response_model=List[UserRead])
async def list_users(
    user: User = Depends(current_admin),
    db: AsyncSession = Depends(get_async_session),
):
    res = await db.execute(select(User).order_by(func.lower(User.email).asc()))
    return res.scalars().all()


@router.patch("/{user_id}/role", response_model=UserRead, dependencies=[Depends(rate_limit)])
async def update_user_role(
    user_id: UUID,
    payload: UserRoleUpdate,
    user: User = Depends(current_admin),
    db: AsyncSession = Depends(get_async_session),
):
    if user_id == user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot change your own role")

    res = await db.execute(select(User).where(User.id == user_id))
    target = res.scalar_one_or_none()
    if not target:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    target.role = payload.role
    await db.commit()
    await db.refresh(target)
    logger.info("User %s role set to %s by %s", target.id, target.role, user.id)
    return target
