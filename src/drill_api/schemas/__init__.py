from .category import CategoryPayload, CategoryResponse
from .drill import DrillCreate, DrillResponse, DrillUpdate, InstructionPayload, InstructionResponse
from .error import ErrorMessage

__all__ = [
    "CategoryPayload",
    "CategoryResponse",
    "DrillCreate",
    "DrillUpdate",
    "DrillResponse",
    "InstructionPayload",
    "InstructionResponse",
    "ErrorMessage",
]
