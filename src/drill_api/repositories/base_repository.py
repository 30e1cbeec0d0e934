"""
Base repository class providing common database operations.

Repositories only flush. Committing (and rolling back) is the job of the service
layer, which owns the transaction boundary of each request.
"""
import logging
import time
from typing import Generic, Iterable, Type, TypeVar

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from drill_api.database.base import Base
from drill_api.exceptions.base import DatabaseInsertError, EntityValidationError, FieldViolation
from drill_api.exceptions.mapper import db_error_handler
from drill_api.validators.entity_validators import find_field_violations, find_unique_conflicts

# Type variable for the model class
ModelType = TypeVar("ModelType", bound=Base)

logger = logging.getLogger(__name__)


class BaseRepository(Generic[ModelType]):
    """
    Generic repository over a model with an integer `id` and a `name` column.

    Type Parameters:
        ModelType: The SQLAlchemy model class this repository manages.
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        """
        Args:
            model: The SQLAlchemy model class (not an instance), used to build queries
            db: The async database session, injected per request
        """
        self.model = model
        self.db = db

    # =================================================================================================================
    # Save (insert or update)
    # =================================================================================================================

    async def save(self, entity: ModelType) -> ModelType:
        """
        Insert `entity` when it has no id, otherwise update the row with that id.

        Transient entities are merged into the session and the persistent copy is
        returned; an entity already attached to the session is flushed as is.

        Raises:
            DatabaseInsertError: invalid fields, duplicate name, or a constraint
                violation reported by the database during the flush.
        """
        model_name = self.model.__name__
        logger.debug(
            "repo.save.start",
            extra={"model": model_name, "operation": "save", "id": getattr(entity, "id", None)},
        )

        start = time.perf_counter()

        async with db_error_handler(self.db, model_name):
            # 1) field checks (length, emptiness)
            violations = self.field_violations(entity)
            if violations:
                logger.info(
                    "repo.save.invalid_fields",
                    extra={"model": model_name, "fields": [v.field for v in violations]},
                )
                raise EntityValidationError(f"Invalid {model_name}", violations=violations)

            # 2) case-insensitive name pre-check (best-effort, the unique index decides)
            conflicts = await find_unique_conflicts(self.db, entity)
            if conflicts:
                logger.info(
                    "repo.save.duplicate_precheck",
                    extra={"model": model_name, "constraint": conflicts[0].value},
                )
                raise DatabaseInsertError(conflicts[0].message, fields=["name"], constraint=conflicts[0].value)

            # 3) write
            if entity in self.db:
                persisted = entity
                self.db.add(persisted)
            else:
                persisted = await self.db.merge(entity)
            await self.db.flush()

        logger.info(
            "repo.save.success",
            extra={
                "model": model_name,
                "operation": "save",
                "id": persisted.id,
                "duration_ms": int((time.perf_counter() - start) * 1000),
            },
        )
        return persisted

    def field_violations(self, entity: ModelType) -> list[FieldViolation]:
        return find_field_violations(entity)

    # =================================================================================================================
    # Read Operations
    # =================================================================================================================

    async def get_by_id(self, entity_id: int) -> ModelType | None:
        result = await self.db.execute(
            select(self.model).where(self.model.id == entity_id)
        )
        entity = result.scalar_one_or_none()
        logger.debug(
            "repo.get_by_id",
            extra={"model": self.model.__name__, "id": entity_id, "found": entity is not None},
        )
        return entity

    async def find_by_name_ignore_case(self, name: str) -> ModelType | None:
        """Case-insensitive lookup; names are unique on lower(name) so at most one row matches."""
        result = await self.db.execute(
            select(self.model).where(func.lower(self.model.name) == name.lower())
        )
        entity = result.scalars().first()
        logger.debug(
            "repo.find_by_name",
            extra={"model": self.model.__name__, "found": entity is not None},
        )
        return entity

    async def get_all(self, order_by: str | None = "name") -> list[ModelType]:
        query = select(self.model)
        if order_by:
            if hasattr(self.model, order_by):
                query = query.order_by(getattr(self.model, order_by))
            else:
                logger.warning(
                    "repo.get_all.invalid_order_by",
                    extra={"model": self.model.__name__, "order_by": order_by},
                )

        result = await self.db.execute(query)
        entities = list(result.scalars().all())
        logger.debug("repo.get_all", extra={"model": self.model.__name__, "count": len(entities)})
        return entities

    async def get_all_by_ids(self, ids: Iterable[int], ignore_case_order: bool = False) -> list[ModelType]:
        """
        Entities whose id is in `ids`; unknown ids are skipped. Ordered by id, or by
        lower(name) when `ignore_case_order` is set.
        """
        ids = list(ids)
        if not ids:
            return []

        order = func.lower(self.model.name) if ignore_case_order else self.model.id
        result = await self.db.execute(
            select(self.model).where(self.model.id.in_(ids)).order_by(order)
        )
        entities = list(result.scalars().all())
        logger.debug(
            "repo.get_all_by_ids",
            extra={"model": self.model.__name__, "requested": len(ids), "found": len(entities)},
        )
        return entities

    # =================================================================================================================
    # Delete Operations
    # =================================================================================================================

    async def delete_by_id(self, entity_id: int) -> bool:
        """
        Delete the row with `entity_id`. Deleting a missing id is not an error.
        Child rows go through the ON DELETE CASCADE foreign keys.

        Returns:
            True if a row was deleted, False if none matched
        """
        result = await self.db.execute(delete(self.model).where(self.model.id == entity_id))
        deleted = result.rowcount > 0
        logger.debug(
            "repo.delete_by_id",
            extra={"model": self.model.__name__, "id": entity_id, "deleted": deleted},
        )
        return deleted

    # =================================================================================================================
    # Existence Checks
    # =================================================================================================================

    async def find_missing_ids(self, ids: Iterable[int]) -> list[int]:
        """Ids from `ids` with no matching row, in input order."""
        ids = list(ids)
        if not ids:
            return []
        result = await self.db.execute(select(self.model.id).where(self.model.id.in_(ids)))
        found = set(result.scalars().all())
        return [entity_id for entity_id in ids if entity_id not in found]
