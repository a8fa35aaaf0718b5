import uuid
from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from .database import Base


PRODUCT_UNITS = ("pcs", "boxes", "bags", "rolls", "pipes", "kg")


class Product(Base):
    __tablename__ = "products"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False, unique=True, index=True)
    hsn_code = Column(String, nullable=False)
    gst_slab = Column(Float, nullable=False)
    price = Column(Float, nullable=False, default=0)
    category_id = Column(UUID(as_uuid=True), ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)

    # Main unit; current_stock is always expressed in it
    unit = Column(Text, nullable=False, default="pcs")
    has_sub_unit = Column(Boolean, nullable=False, default=False)
    # 1 main unit == conversion_rate sub units
    sub_unit = Column(Text, nullable=True)
    conversion_rate = Column(Float, nullable=True)

    current_stock = Column(Float, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now())

    category = relationship("Category", back_populates="products")

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "name": self.name,
            "hsn_code": self.hsn_code,
            "gst_slab": self.gst_slab,
            "price": self.price,
            "category_id": self.category_id,
            "unit": self.unit,
            "has_sub_unit": bool(self.has_sub_unit),
            "sub_unit": (
                {"unit": self.sub_unit, "conversion_rate": self.conversion_rate}
                if self.has_sub_unit and self.sub_unit
                else None
            ),
            "current_stock": float(self.current_stock or 0),
        }
