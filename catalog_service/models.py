# catalog_service/models.py

"""
SQLAlchemy database models for the catalog service.
Products reference exactly one category through a foreign key.
"""
import uuid

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .db import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class Category(Base):
    """
    SQLAlchemy model for the 'categories' table.
    Categories are referenced by products, never owned by them.
    """

    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(100), nullable=False, unique=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    products = relationship("Product", back_populates="category")

    def __repr__(self):
        return f"<Category(id={self.id}, name='{self.name}')>"


class Product(Base):
    """
    SQLAlchemy model for the 'products' table.
    """

    __tablename__ = "products"

    # Opaque identifier generated on insert, never changed afterwards.
    id = Column(String(36), primary_key=True, default=_new_id)

    name = Column(String(50), nullable=False, index=True)

    # Smallest currency unit, so an integer is enough.
    price = Column(BigInteger, nullable=False)

    # Deleting a category that still has products is refused by the database.
    category_id = Column(
        String(36),
        ForeignKey("categories.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    # Location of an already uploaded image; content is never checked.
    image_url = Column(String(2048), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    category = relationship("Category", back_populates="products")

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', price={self.price})>"
