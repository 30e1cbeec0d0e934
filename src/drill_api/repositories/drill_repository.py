"""
Drill repository: BaseRepository plus instruction checks.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from drill_api.exceptions.base import FieldViolation
from drill_api.models.drill import Drill
from drill_api.validators.entity_validators import find_field_violations
from .base_repository import BaseRepository


class DrillRepository(BaseRepository[Drill]):
    def __init__(self, db: AsyncSession):
        super().__init__(Drill, db)

    def field_violations(self, entity: Drill) -> list[FieldViolation]:
        """
        Drill columns, then every attached instruction. Instruction fields are
        reported by their position, e.g. "instructions[2].description".
        """
        violations = find_field_violations(entity)
        for index, instruction in enumerate(entity.instructions):
            violations.extend(
                FieldViolation(f"instructions[{index}].{violation.field}", violation.message)
                for violation in find_field_violations(instruction)
            )
        return violations

    async def find_all_by_ids_ignore_case(self, ids: list[int]) -> list[Drill]:
        return await self.get_all_by_ids(ids, ignore_case_order=True)
