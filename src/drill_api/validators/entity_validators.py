"""
Pre-save checks driven by the model metadata.

Both run before the flush so that expected client mistakes produce a precise message
instead of a driver error. The database constraints remain the source of truth; an
IntegrityError that slips past these checks is mapped by `exceptions.mapper`.
"""

from sqlalchemy import String, func, inspect as sa_inspect, select
from sqlalchemy.ext.asyncio import AsyncSession

from drill_api.exceptions.base import FieldViolation
from drill_api.models.constraints import SchemaConstraint


def find_field_violations(entity) -> list[FieldViolation]:
    """
    Check every bounded string column of `entity` against its declared length and
    nullability. Returns violations in column order; empty list means valid.
    """
    violations = []
    mapper = sa_inspect(type(entity))

    for attr in mapper.column_attrs:
        column = attr.columns[0]
        if not isinstance(column.type, String) or column.type.length is None:
            continue

        value = getattr(entity, attr.key)
        if value is None:
            if not column.nullable:
                violations.append(FieldViolation(column.name, "must not be null"))
            continue

        minimum = 0 if column.nullable else 1
        if len(value) == 0 and minimum:
            violations.append(FieldViolation(column.name, "must not be empty"))
        elif len(value) > column.type.length:
            violations.append(
                FieldViolation(column.name, f"size must be between {minimum} and {column.type.length}")
            )

    return violations


async def find_unique_conflicts(db: AsyncSession, entity) -> list[SchemaConstraint]:
    """
    Look for another row whose name equals `entity.name` ignoring case.
    The row being updated (same id) is not a conflict.
    """
    model = type(entity)
    constraint = SchemaConstraint.unique_name_for(model.__tablename__)
    name = getattr(entity, "name", None)
    if constraint is None or not name:
        return []

    query = select(model.id).where(func.lower(model.name) == name.lower())
    if entity.id is not None:
        query = query.where(model.id != entity.id)

    result = await db.execute(query.limit(1))
    if result.scalar() is not None:
        return [constraint]
    return []
