# Pydantic schemas for user-related requests/responses
# fastapi-users provides the base schemas; role is only changed through /users/{id}/role

from typing import Literal, Optional
from uuid import UUID

from fastapi_users import schemas
from pydantic import BaseModel


UserRole = Literal["ADMIN", "OPERATOR", "USER"]


class UserRead(schemas.BaseUser[UUID]):
    name: Optional[str] = None
    role: UserRole = "USER"


class UserCreate(schemas.BaseUserCreate):
    name: Optional[str] = None


class UserUpdate(schemas.BaseUserUpdate):
    name: Optional[str] = None


class UserRoleUpdate(BaseModel):
    role: UserRole
