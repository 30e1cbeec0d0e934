"""Request/response bodies of the /category and /sub_category endpoints."""

from pydantic import BaseModel, ConfigDict, Field


class CategoryPayload(BaseModel):
    """Body of POST (id ignored) and PUT (id optional, must match the path)."""
    id: int | None = Field(None, description="Ignored on create; must equal the path id on update")
    name: str = Field(..., min_length=1, max_length=255, description="Unique ignoring case")
    description: str = Field(..., min_length=1, max_length=511)

    def to_entity(self, model: type, entity_id: int | None = None):
        return model(id=entity_id, name=self.name, description=self.description)


class CategoryResponse(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={"example": {"id": 1, "name": "Kicks", "description": "Leg strikes"}},
    )

    id: int
    name: str
    description: str
