import uuid

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base


STOCK_ENTRY_TYPES = ("IN", "OUT", "ADJUSTMENT")


class StockEntry(Base):
    __tablename__ = "stock_entries"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    type = Column(Text, nullable=False, index=True)  # 'IN' | 'OUT' | 'ADJUSTMENT'
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now(), index=True)
    updated_at = Column(DateTime, nullable=False, server_default=func.now())
    created_by_user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    items = relationship(
        "StockEntryItem",
        back_populates="stock_entry",
        cascade="all, delete-orphan",
        order_by="StockEntryItem.position",
    )
    created_by_user = relationship("User")


class StockEntryItem(Base):
    __tablename__ = "stock_entry_items"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    stock_entry_id = Column(
        UUID(as_uuid=True),
        ForeignKey("stock_entries.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = Column(Integer, nullable=False, default=0)

    product_id = Column(UUID(as_uuid=True), ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    quantity = Column(Float, nullable=False)
    is_sub_unit = Column(Boolean, nullable=False, default=False)

    # Signed delta in main units; what a delete reverses.
    applied_change = Column(Float, nullable=False, default=0)
    previous_stock = Column(Float, nullable=True)

    stock_entry = relationship("StockEntry", back_populates="items")
    product = relationship("Product")
