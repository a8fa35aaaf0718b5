from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


StockEntryType = Literal["IN", "OUT", "ADJUSTMENT"]


class StockItemCreate(BaseModel):
    product_id: UUID
    quantity: float = Field(gt=0)
    is_sub_unit: bool = False


class StockEntryCreate(BaseModel):
    type: StockEntryType
    items: List[StockItemCreate] = Field(min_length=1)
    notes: Optional[str] = Field(default=None, max_length=500)

    @field_validator("type", mode="before")
    @classmethod
    def _upper_type(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("notes")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


class StockEntryCreated(BaseModel):
    message: str
    stock_id: UUID


class StockEntryDeleted(BaseModel):
    message: str
    id: UUID
    type: StockEntryType

