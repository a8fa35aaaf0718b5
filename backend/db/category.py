import uuid
from sqlalchemy import Column, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from .database import Base


class Category(Base):
    __tablename__ = "categories"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String, nullable=False, unique=True, index=True)

    products = relationship("Product", back_populates="category")

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "title": self.title,
        }
