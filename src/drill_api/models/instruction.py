from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from drill_api.database.base import Base
from drill_api.exceptions.base import DatabaseInsertError
from .constraints import SchemaConstraint

# Steps are stored as one delimited string; a step may never contain the delimiter.
STEP_DELIMITER = "|"


class Instruction(Base):
    """
    One numbered how-to entry of a Drill.

    Keyed by (drill_id, number); `number` is the position in the drill's instruction
    list, starting at 0. An Instruction cannot exist without its parent Drill.
    """
    __tablename__ = "instructions"

    # Parent drill; deleting the drill deletes its instructions
    drill_id: Mapped[int] = mapped_column(
        ForeignKey(
            "drills.id",
            name=SchemaConstraint.INSTRUCTIONS_FK_DRILL_ID.value,
            ondelete="CASCADE"
        ),
        primary_key=True
    )

    number: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=False
    )

    description: Mapped[str] = mapped_column(
        String(511),
        nullable=False
    )

    # Raw "|"-joined steps; use the `steps` property
    _steps: Mapped[str] = mapped_column(
        "steps",
        String(4095),
        nullable=False
    )

    # Identifier in an external video system
    video_id: Mapped[str | None] = mapped_column(
        String(127),
        nullable=True
    )

    @property
    def steps(self) -> list[str]:
        if not self._steps:
            return []
        return self._steps.split(STEP_DELIMITER)

    @steps.setter
    def steps(self, steps: list[str]) -> None:
        for step in steps:
            if STEP_DELIMITER in step:
                raise DatabaseInsertError(f"Invalid character: '{STEP_DELIMITER}'", fields=["steps"])
        self._steps = STEP_DELIMITER.join(steps)

    def __repr__(self) -> str:
        return f"<Instruction(drill_id={self.drill_id!r}, number={self.number!r})>"
