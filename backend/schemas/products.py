from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator


ProductUnit = Literal["pcs", "boxes", "bags", "rolls", "pipes", "kg"]
StockFilter = Literal["out_of_stock", "low", "medium", "high"]

HSN_CODE_PATTERN = r"^[0-9]{4,8}$"


class SubUnit(BaseModel):
    unit: ProductUnit
    conversion_rate: float = Field(gt=0)


class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    hsn_code: str = Field(pattern=HSN_CODE_PATTERN)
    gst_slab: float = Field(ge=1, le=18)
    price: float = Field(ge=0)
    category_id: Optional[UUID] = None
    unit: ProductUnit = "pcs"
    has_sub_unit: bool = False
    sub_unit: Optional[SubUnit] = None

    @field_validator("name", "hsn_code", mode="before")
    @classmethod
    def _strip(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v

    @model_validator(mode="after")
    def _sub_unit_matches_flag(self):
        if self.has_sub_unit and self.sub_unit is None:
            raise ValueError("sub_unit is required when has_sub_unit is true")
        if not self.has_sub_unit:
            self.sub_unit = None
        return self


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    hsn_code: Optional[str] = Field(default=None, pattern=HSN_CODE_PATTERN)
    gst_slab: Optional[float] = Field(default=None, ge=1, le=18)
    price: Optional[float] = Field(default=None, ge=0)
    category_id: Optional[UUID] = None
    unit: Optional[ProductUnit] = None
    has_sub_unit: Optional[bool] = None
    sub_unit: Optional[SubUnit] = None
    # Administrative override, outside the stock ledger
    current_stock: Optional[float] = Field(default=None, ge=0)

    @field_validator("name", "hsn_code", mode="before")
    @classmethod
    def _strip(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v

    @model_validator(mode="after")
    def _not_empty(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided for update")
        return self
