"""
Single import point for the ORM models.

Importing this package registers every table on `Base.metadata`, which both
`create_all()` and the constraint catalog check rely on.
"""

from .category import Category, NamedEntity, SubCategory
from .constraints import ConstraintCatalogError, SchemaConstraint, verify_constraint_catalog
from .drill import Drill, RelatedDrillLink, drill_category_join, drill_sub_category_join
from .instruction import STEP_DELIMITER, Instruction

__all__ = [
    "Category",
    "SubCategory",
    "NamedEntity",
    "Drill",
    "RelatedDrillLink",
    "Instruction",
    "STEP_DELIMITER",
    "drill_category_join",
    "drill_sub_category_join",
    "SchemaConstraint",
    "ConstraintCatalogError",
    "verify_constraint_catalog",
]
