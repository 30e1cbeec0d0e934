from .category_service import CATEGORY_KIND, SUB_CATEGORY_KIND, CategoryKind, CategoryService
from .drill_service import DrillService

__all__ = [
    "CategoryKind",
    "CategoryService",
    "CATEGORY_KIND",
    "SUB_CATEGORY_KIND",
    "DrillService",
]
