from sqlalchemy import BigInteger, Column, ForeignKey, Index, Integer, String, Table
from sqlalchemy.ext.associationproxy import AssociationProxy, association_proxy
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from drill_api.database.base import Base
from .category import Category, SubCategory
from .constraints import SchemaConstraint
from .instruction import Instruction

# ------------------------------
# Link tables
# ------------------------------
# Deleting either side removes the link row only; categories are shared reference data.
drill_category_join = Table(
    "drill_category_join",
    Base.metadata,
    Column(
        "drill_id",
        ForeignKey("drills.id", name=SchemaConstraint.DCJOIN_FK_DRILL_ID.value, ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "category_id",
        ForeignKey("categories.id", name=SchemaConstraint.DCJOIN_FK_CATEGORY_ID.value, ondelete="CASCADE"),
        primary_key=True,
    ),
)

drill_sub_category_join = Table(
    "drill_sub_category_join",
    Base.metadata,
    Column(
        "drill_id",
        ForeignKey("drills.id", name=SchemaConstraint.DSCJOIN_FK_DRILL_ID.value, ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "sub_category_id",
        ForeignKey("sub_categories.id", name=SchemaConstraint.DSCJOIN_FK_SUB_CATEGORY_ID.value, ondelete="CASCADE"),
        primary_key=True,
    ),
)


class RelatedDrillLink(Base):
    """
    One entry of a drill's ordered related-drills list.

    Only existence of the related drill is enforced; the link disappears when
    either drill is deleted.
    """
    __tablename__ = "related_drills"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True
    )

    primary_drill_id: Mapped[int] = mapped_column(
        ForeignKey("drills.id", name=SchemaConstraint.RD_FK_PRIMARY_DRILL.value, ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    related_drill_id: Mapped[int] = mapped_column(
        ForeignKey("drills.id", name=SchemaConstraint.RD_FK_RELATED_DRILL.value, ondelete="CASCADE"),
        nullable=False
    )

    # Position within the owning drill's list, maintained by ordering_list
    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<RelatedDrillLink(primary_drill_id={self.primary_drill_id!r}, "
            f"related_drill_id={self.related_drill_id!r}, position={self.position!r})>"
        )


class Drill(Base):
    """
    SQLAlchemy model for a Drill, the central entity of the catalog.

    A drill is tagged with categories and sub-categories (many-to-many), points at
    other drills by ID, and owns an ordered list of instructions.
    """
    __tablename__ = "drills"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True
    )

    # Epoch millis of the last save
    update_timestamp: Mapped[int | None] = mapped_column(
        BigInteger,
        nullable=True
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False
    )

    # --- Relationships ---

    # Many-to-Many tags; every relationship is eagerly loaded with SELECT IN so
    # serializing a drill never triggers lazy IO on the async session.
    categories: Mapped[list[Category]] = relationship(
        Category,
        secondary=drill_category_join,
        order_by=Category.id,
        lazy="selectin",
        passive_deletes=True
    )

    sub_categories: Mapped[list[SubCategory]] = relationship(
        SubCategory,
        secondary=drill_sub_category_join,
        order_by=SubCategory.id,
        lazy="selectin",
        passive_deletes=True
    )

    related_drill_links: Mapped[list[RelatedDrillLink]] = relationship(
        RelatedDrillLink,
        foreign_keys=[RelatedDrillLink.primary_drill_id],
        order_by=RelatedDrillLink.position,
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
        lazy="selectin",
        passive_deletes=True
    )

    # One-to-Many: replaced wholesale on update, removed rows are deleted
    instructions: Mapped[list[Instruction]] = relationship(
        Instruction,
        order_by=Instruction.number,
        cascade="all, delete-orphan",
        lazy="selectin",
        passive_deletes=True
    )

    # Plain list of related drill IDs backed by related_drill_links
    related_drills: AssociationProxy[list[int]] = association_proxy(
        "related_drill_links",
        "related_drill_id",
        creator=lambda drill_id: RelatedDrillLink(related_drill_id=drill_id),
    )

    def __repr__(self) -> str:
        return f"<Drill(id={self.id!r}, name={self.name!r})>"


Index(SchemaConstraint.DRILLS_UNIQUE_NAME.value, func.lower(Drill.name), unique=True)
