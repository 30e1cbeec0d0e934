"""
One service for both tag kinds.

Categories and sub-categories share shape and behaviour; a `CategoryKind`
descriptor tells the service which table it works on and how to talk about it.
"""

import logging
import time
from dataclasses import dataclass
from typing import Generic, Iterable, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from drill_api.exceptions.base import DatabaseInsertError
from drill_api.exceptions.mapper import db_error_handler
from drill_api.models.category import Category, SubCategory
from drill_api.models.constraints import SchemaConstraint
from drill_api.repositories.base_repository import BaseRepository

logger = logging.getLogger(__name__)

TagType = TypeVar("TagType", Category, SubCategory)


def now_millis() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class CategoryKind:
    model: type
    endpoint: str                       # URL prefix of the CRUD surface
    label: str                          # name used in messages and logs
    missing_reference: SchemaConstraint # raised when a drill references an unknown id


CATEGORY_KIND = CategoryKind(
    model=Category,
    endpoint="/category",
    label="Category",
    missing_reference=SchemaConstraint.DCJOIN_FK_CATEGORY_ID,
)

SUB_CATEGORY_KIND = CategoryKind(
    model=SubCategory,
    endpoint="/sub_category",
    label="Sub-Category",
    missing_reference=SchemaConstraint.DSCJOIN_FK_SUB_CATEGORY_ID,
)


class CategoryService(Generic[TagType]):
    def __init__(self, kind: CategoryKind, db: AsyncSession):
        self.kind = kind
        self.db = db
        self.repository: BaseRepository[TagType] = BaseRepository(kind.model, db)

    async def save(self, entity: TagType) -> TagType:
        """
        Insert (no id) or update (id set) and commit.

        Raises:
            DatabaseInsertError: invalid fields or a name already taken (any case)
        """
        entity.update_timestamp = now_millis()
        async with db_error_handler(self.db, self.kind.label):
            saved = await self.repository.save(entity)
            await self.db.commit()
        return saved

    async def find_by_id(self, entity_id: int) -> TagType | None:
        return await self.repository.get_by_id(entity_id)

    async def find_by_name(self, name: str) -> TagType | None:
        return await self.repository.find_by_name_ignore_case(name)

    async def find_all(self) -> list[TagType]:
        return await self.repository.get_all(order_by="name")

    async def find_all_by_ids(self, ids: Iterable[int]) -> list[TagType]:
        return await self.repository.get_all_by_ids(ids)

    async def delete_by_id(self, entity_id: int) -> None:
        """Idempotent: deleting an unknown id succeeds. Links to drills go with the row."""
        async with db_error_handler(self.db, self.kind.label):
            deleted = await self.repository.delete_by_id(entity_id)
            await self.db.commit()
        logger.info(
            "category_service.delete",
            extra={"kind": self.kind.label, "id": entity_id, "deleted": deleted},
        )

    async def resolve_references(self, ids: Iterable[int] | None) -> list[TagType]:
        """
        Load the entities a drill payload refers to, in request order with
        duplicates dropped.

        Raises:
            DatabaseInsertError: with the kind's missing-reference message when
                any id is unknown
        """
        unique_ids = list(dict.fromkeys(ids or []))
        if not unique_ids:
            return []

        by_id = {entity.id: entity for entity in await self.repository.get_all_by_ids(unique_ids)}
        missing = [entity_id for entity_id in unique_ids if entity_id not in by_id]
        if missing:
            logger.info(
                "category_service.unknown_reference",
                extra={"kind": self.kind.label, "missing_ids": missing},
            )
            raise DatabaseInsertError(
                self.kind.missing_reference.message,
                fields=[self.kind.endpoint.strip("/")],
                constraint=self.kind.missing_reference.value,
            )
        return [by_id[entity_id] for entity_id in unique_ids]
