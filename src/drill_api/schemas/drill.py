"""Request/response bodies of the /drill endpoints."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from drill_api.models.category import Category, SubCategory
from drill_api.models.drill import Drill
from drill_api.models.instruction import STEP_DELIMITER, Instruction


class InstructionPayload(BaseModel):
    description: str = Field(..., min_length=1, max_length=511)
    steps: list[str] = Field(..., min_length=1, description="Ordered steps; '|' is not allowed")
    video_id: str | None = Field(None, max_length=127, description="Identifier in the external video system")

    @field_validator("steps")
    @classmethod
    def reject_step_delimiter(cls, steps: list[str]) -> list[str]:
        if any(STEP_DELIMITER in step for step in steps):
            raise ValueError(f"must not contain '{STEP_DELIMITER}'")
        return steps


class DrillCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)

    def to_entity(self) -> Drill:
        return Drill(name=self.name)


class DrillUpdate(BaseModel):
    """
    Full replacement of a drill: tag and related-drill references by id, and the
    complete instruction list (numbered from 0 in the given order).
    """
    id: int | None = None
    name: str = Field(..., min_length=1, max_length=255)
    categories: list[int] | None = None
    sub_categories: list[int] | None = None
    related_drills: list[int] | None = None
    instructions: list[InstructionPayload] | None = None

    def to_entity(
        self,
        drill_id: int,
        categories: list[Category],
        sub_categories: list[SubCategory],
    ) -> Drill:
        drill = Drill(
            id=drill_id,
            name=self.name,
            categories=list(categories),
            sub_categories=list(sub_categories),
            instructions=[
                Instruction(
                    number=number,
                    description=instruction.description,
                    steps=instruction.steps,
                    video_id=instruction.video_id,
                )
                for number, instruction in enumerate(self.instructions or [])
            ],
        )
        drill.related_drills = list(self.related_drills or [])
        return drill


class InstructionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    description: str
    steps: list[str]
    video_id: str | None = None


class DrillResponse(BaseModel):
    id: int
    name: str
    categories: list[int]
    sub_categories: list[int]
    related_drills: list[int]
    instructions: list[InstructionResponse]

    @classmethod
    def from_entity(cls, drill: Drill) -> "DrillResponse":
        return cls(
            id=drill.id,
            name=drill.name,
            categories=[category.id for category in drill.categories],
            sub_categories=[sub_category.id for sub_category in drill.sub_categories],
            related_drills=list(drill.related_drills),
            instructions=[InstructionResponse.model_validate(i) for i in drill.instructions],
        )
