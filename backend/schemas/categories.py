from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class CategoryRead(BaseModel):
    id: UUID
    title: str


class CategoryCreate(BaseModel):
    title: str = Field(min_length=1, max_length=50)

    @field_validator("title", mode="before")
    @classmethod
    def _strip(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v


class CategoryUpdate(CategoryCreate):
    pass
