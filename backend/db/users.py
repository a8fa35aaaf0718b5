from fastapi import Depends
from fastapi_users.db import SQLAlchemyBaseUserTableUUID, SQLAlchemyUserDatabase
from sqlalchemy import Column, String, Text
from sqlalchemy.ext.asyncio import AsyncSession

from .database import Base, get_async_session


USER_ROLES = ("ADMIN", "OPERATOR", "USER")


class User(SQLAlchemyBaseUserTableUUID, Base):
    __tablename__ = "users"

    name = Column(String, nullable=True)
    # 'ADMIN' | 'OPERATOR' | 'USER'
    role = Column(Text, nullable=False, default="USER", server_default="USER")

    @property
    def to_schema(self):
        """Convert User model to schema dictionary format"""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "is_active": self.is_active,
        }


async def get_user_db(session: AsyncSession = Depends(get_async_session)):
    yield SQLAlchemyUserDatabase(session, User)
