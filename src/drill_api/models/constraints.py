"""
Catalog of the named schema constraints that can be violated by user input.

Every unique index and foreign key declared by the models takes its name from
`SchemaConstraint`, and `to_user_message()` looks violated constraints up here to
build the message returned to API clients. `verify_constraint_catalog()` runs at
application startup and refuses to start when the catalog and the declared schema
disagree, so a renamed constraint cannot silently degrade to the generic message.
"""

from __future__ import annotations

import logging
from enum import Enum

from sqlalchemy import ForeignKeyConstraint, MetaData, UniqueConstraint

logger = logging.getLogger(__name__)


class SchemaConstraint(str, Enum):
    DRILLS_UNIQUE_NAME = "constraint_drills_unique_name"
    CATEGORIES_UNIQUE_NAME = "constraint_categories_unique_name"
    SUB_CATEGORIES_UNIQUE_NAME = "constraint_sub_categories_unique_name"
    DCJOIN_FK_DRILL_ID = "constraint_dcjoin_fk_drill_id"
    DCJOIN_FK_CATEGORY_ID = "constraint_dcjoin_fk_category_id"
    DSCJOIN_FK_DRILL_ID = "constraint_dscjoin_fk_drill_id"
    DSCJOIN_FK_SUB_CATEGORY_ID = "constraint_dscjoin_fk_sub_category_id"
    RD_FK_PRIMARY_DRILL = "constraint_rd_fk_primary_drill"
    RD_FK_RELATED_DRILL = "constraint_rd_fk_related_drill"
    INSTRUCTIONS_FK_DRILL_ID = "constraint_instructions_fk_drill_id"

    @property
    def message(self) -> str:
        return _MESSAGES[self]

    @classmethod
    def lookup(cls, name: str | None) -> SchemaConstraint | None:
        """Exact lookup by constraint name (as reported by Postgres diagnostics)."""
        if not name:
            return None
        try:
            return cls(name)
        except ValueError:
            return None

    @classmethod
    def find_in(cls, text: str | None) -> SchemaConstraint | None:
        """
        Scan a raw driver message for a known constraint name.

        Longest names are tried first: "constraint_sub_categories_unique_name" contains
        "categories_unique_name" as a suffix, but not the other way around.
        """
        if not text:
            return None
        for member in sorted(cls, key=lambda m: len(m.value), reverse=True):
            if member.value in text:
                return member
        return None

    @classmethod
    def unique_name_for(cls, table_name: str) -> SchemaConstraint | None:
        return _UNIQUE_NAME_BY_TABLE.get(table_name)


_MESSAGES: dict[SchemaConstraint, str] = {
    SchemaConstraint.DRILLS_UNIQUE_NAME: "Name already exists.",
    SchemaConstraint.CATEGORIES_UNIQUE_NAME: "Name already exists.",
    SchemaConstraint.SUB_CATEGORIES_UNIQUE_NAME: "Name already exists.",
    SchemaConstraint.DCJOIN_FK_DRILL_ID: "Drill does not exist.",
    SchemaConstraint.DCJOIN_FK_CATEGORY_ID: "Category does not exist.",
    SchemaConstraint.DSCJOIN_FK_DRILL_ID: "Drill does not exist.",
    SchemaConstraint.DSCJOIN_FK_SUB_CATEGORY_ID: "Sub-Category does not exist.",
    SchemaConstraint.RD_FK_PRIMARY_DRILL: "Primary Drill does not exist.",
    SchemaConstraint.RD_FK_RELATED_DRILL: "Related Drill does not exist.",
    SchemaConstraint.INSTRUCTIONS_FK_DRILL_ID: "Drill does not exist.",
}

_UNIQUE_NAME_BY_TABLE: dict[str, SchemaConstraint] = {
    "drills": SchemaConstraint.DRILLS_UNIQUE_NAME,
    "categories": SchemaConstraint.CATEGORIES_UNIQUE_NAME,
    "sub_categories": SchemaConstraint.SUB_CATEGORIES_UNIQUE_NAME,
}


class ConstraintCatalogError(RuntimeError):
    """The constraint catalog does not match the constraints declared in the schema."""


def declared_constraint_names(metadata: MetaData) -> set[str]:
    """
    Names of all unique indexes, unique constraints and foreign keys in `metadata`.
    Primary keys are left out: a client can never violate them through the API.
    """
    names: set[str] = set()
    for table in metadata.tables.values():
        for index in table.indexes:
            if index.unique and isinstance(index.name, str):
                names.add(str(index.name))
        for constraint in table.constraints:
            if isinstance(constraint, (UniqueConstraint, ForeignKeyConstraint)) and isinstance(constraint.name, str):
                names.add(str(constraint.name))
    return names


def verify_constraint_catalog(metadata: MetaData) -> None:
    """
    Compare the catalog against the schema in both directions.

    Raises:
        ConstraintCatalogError: if a declared constraint has no catalog entry, or a
            catalog entry names a constraint the schema does not declare.
    """
    declared = declared_constraint_names(metadata)
    catalogued = {member.value for member in SchemaConstraint}

    uncatalogued = sorted(declared - catalogued)
    undeclared = sorted(catalogued - declared)

    if uncatalogued or undeclared:
        logger.error(
            "constraints.catalog_mismatch",
            extra={"uncatalogued": uncatalogued, "undeclared": undeclared},
        )
        raise ConstraintCatalogError(
            f"Constraint catalog out of sync with schema "
            f"(missing from catalog: {uncatalogued or 'none'}; missing from schema: {undeclared or 'none'})"
        )

    logger.debug("constraints.catalog_verified", extra={"count": len(declared)})
