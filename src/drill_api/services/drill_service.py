"""
Drill service: save orchestration and tag attachment.

Every write runs in a single transaction. Repositories flush, this layer commits,
and `db_error_handler` rolls everything back on failure.
"""

import logging
from typing import Iterable

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import make_transient

from drill_api.exceptions.base import DatabaseInsertError
from drill_api.exceptions.mapper import db_error_handler
from drill_api.models.category import Category, NamedEntity, SubCategory
from drill_api.models.constraints import SchemaConstraint
from drill_api.models.drill import Drill
from drill_api.repositories.drill_repository import DrillRepository
from .category_service import CATEGORY_KIND, SUB_CATEGORY_KIND, CategoryService, now_millis

logger = logging.getLogger(__name__)


class DrillService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.repository = DrillRepository(db)
        self.categories: CategoryService[Category] = CategoryService(CATEGORY_KIND, db)
        self.sub_categories: CategoryService[SubCategory] = CategoryService(SUB_CATEGORY_KIND, db)

    # =================================================================================================================
    # Save
    # =================================================================================================================

    async def save(self, drill: Drill) -> Drill:
        """
        Insert or update a drill together with its instructions.

        Without instructions the drill is written once. With instructions the
        list is detached, the drill is written to obtain its id, every
        instruction gets that id, and the drill is written again with the list
        reattached. Instructions missing from the new list are deleted.
        Both writes share one transaction.

        Raises:
            DatabaseInsertError: invalid fields, duplicate name, or a category,
                sub-category or related drill that does not exist
        """
        drill.update_timestamp = now_millis()

        # Every collection ends up loaded on the persistent copy, so serializing
        # the result never needs a lazy load.
        drill.categories = list(drill.categories or [])
        drill.sub_categories = list(drill.sub_categories or [])
        drill.related_drill_links = list(drill.related_drill_links or [])
        instructions = list(drill.instructions or [])

        async with db_error_handler(self.db, "Drill"):
            await self._check_references(drill)

            drill.instructions = []
            persisted = await self.repository.save(drill)

            if instructions:
                for instruction in instructions:
                    # Rows deleted by the first write come back as new inserts
                    if sa_inspect(instruction).deleted:
                        make_transient(instruction)
                    instruction.drill_id = persisted.id
                persisted.instructions = instructions

                persisted = await self.repository.save(persisted)

            await self.db.commit()

        logger.info(
            "drill_service.save.success",
            extra={
                "id": persisted.id,
                "instructions": len(instructions),
                "writes": 2 if instructions else 1,
            },
        )
        return persisted

    async def _check_references(self, drill: Drill) -> None:
        for tags, model in ((drill.categories, Category), (drill.sub_categories, SubCategory)):
            for tag in tags:
                if not sa_inspect(tag).persistent:
                    logger.info(
                        "drill_service.transient_reference",
                        extra={"kind": model.__name__},
                    )
                    raise DatabaseInsertError(f"Entity does not exist in database: {model.__name__}")

        missing = await self.repository.find_missing_ids(drill.related_drills)
        if missing:
            logger.info("drill_service.unknown_related_drill", extra={"missing_ids": missing})
            constraint = SchemaConstraint.RD_FK_RELATED_DRILL
            raise DatabaseInsertError(constraint.message, fields=["related_drills"], constraint=constraint.value)

    # =================================================================================================================
    # Reads
    # =================================================================================================================

    async def find_by_id(self, drill_id: int) -> Drill | None:
        return await self.repository.get_by_id(drill_id)

    async def find_by_name(self, name: str) -> Drill | None:
        return await self.repository.find_by_name_ignore_case(name)

    async def find_all(self) -> list[Drill]:
        return await self.repository.get_all(order_by="name")

    async def find_all_by_ids(self, ids: Iterable[int]) -> list[Drill]:
        return await self.repository.find_all_by_ids_ignore_case(list(ids))

    # =================================================================================================================
    # Deletes
    # =================================================================================================================

    async def delete_by_id(self, drill_id: int) -> None:
        """
        Idempotent. Instructions, tag links and related-drill rows are removed by
        the database cascades; categories and sub-categories are untouched.
        """
        async with db_error_handler(self.db, "Drill"):
            deleted = await self.repository.delete_by_id(drill_id)
            await self.db.commit()
        logger.info("drill_service.delete", extra={"id": drill_id, "deleted": deleted})

    # =================================================================================================================
    # Tag attachment
    # =================================================================================================================

    async def add_category(self, category: Category, drill_ids: Iterable[int]) -> int:
        return await self._add_tag("categories", category, drill_ids)

    async def add_sub_category(self, sub_category: SubCategory, drill_ids: Iterable[int]) -> int:
        return await self._add_tag("sub_categories", sub_category, drill_ids)

    async def _add_tag(self, attribute: str, tag: NamedEntity, drill_ids: Iterable[int]) -> int:
        """
        Attach `tag` to every listed drill in one transaction. Drills that already
        carry it and unknown ids are skipped. Returns the number of drills changed.
        """
        changed = 0
        async with db_error_handler(self.db, "Drill"):
            for drill in await self.repository.get_all_by_ids(drill_ids):
                tags = getattr(drill, attribute)
                if any(existing.id == tag.id for existing in tags):
                    continue
                tags.append(tag)
                drill.update_timestamp = now_millis()
                changed += 1
            await self.db.flush()
            await self.db.commit()

        logger.info(
            "drill_service.add_tag",
            extra={"attribute": attribute, "tag_id": tag.id, "changed": changed},
        )
        return changed
