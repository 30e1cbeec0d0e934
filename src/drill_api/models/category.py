from typing import Protocol

from sqlalchemy import BigInteger, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from drill_api.database.base import Base
from .constraints import SchemaConstraint


class NamedEntity(Protocol):
    """Shape shared by every tag-like entity the generic category service handles."""
    id: int | None
    update_timestamp: int | None
    name: str
    description: str


class TagColumns:
    """
    Columns shared by Category and SubCategory.

    The two are distinct tables because they are semantically different tags on a
    Drill, but they have the same shape.
    """

    # Generated integer identity
    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True
    )

    # Epoch millis of the last write, internal only (never serialized)
    update_timestamp: Mapped[int | None] = mapped_column(
        BigInteger,
        nullable=True
    )

    # Case-insensitively unique, see the functional indexes below
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False
    )

    description: Mapped[str] = mapped_column(
        String(511),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(id={self.id!r}, name={self.name!r})>"


class Category(TagColumns, Base):
    """A top-level tag on a Drill (e.g. "Kicks")."""
    __tablename__ = "categories"


class SubCategory(TagColumns, Base):
    """A finer-grained tag on a Drill (e.g. "Front kick")."""
    __tablename__ = "sub_categories"


# Unique on lower(name): "Kicks" and "kicks" collide.
Index(SchemaConstraint.CATEGORIES_UNIQUE_NAME.value, func.lower(Category.name), unique=True)
Index(SchemaConstraint.SUB_CATEGORIES_UNIQUE_NAME.value, func.lower(SubCategory.name), unique=True)
