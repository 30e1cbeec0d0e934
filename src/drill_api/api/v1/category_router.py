"""
CRUD endpoints shared by /category and /sub_category.

`build_category_router(kind)` is called once per CategoryKind; both routers have
identical behaviour and differ only in table and URL prefix.
"""

import logging

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from drill_api.core.dependencies import get_db_session
from drill_api.schemas.category import CategoryPayload, CategoryResponse
from drill_api.schemas.error import ErrorMessage
from drill_api.services.category_service import CATEGORY_KIND, SUB_CATEGORY_KIND, CategoryKind, CategoryService

logger = logging.getLogger(__name__)

ID_MISMATCH = ErrorMessage(
    error="ID Mismatch",
    message="ID provided in path does not match ID provided in request body.",
)

_ERROR_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorMessage},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorMessage},
}


def build_category_router(kind: CategoryKind) -> APIRouter:
    router = APIRouter(prefix=kind.endpoint, tags=[kind.label], responses=_ERROR_RESPONSES)

    async def get_service(db: AsyncSession = Depends(get_db_session)) -> CategoryService:
        return CategoryService(kind, db)

    @router.get("", response_model=list[CategoryResponse], responses={204: {"description": "No entries"}})
    async def find_all(service: CategoryService = Depends(get_service)):
        entities = await service.find_all()
        if not entities:
            return Response(status_code=status.HTTP_204_NO_CONTENT)
        return entities

    @router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
    async def create(payload: CategoryPayload, response: Response, service: CategoryService = Depends(get_service)):
        # Always an insert; any id in the body is ignored
        saved = await service.save(payload.to_entity(kind.model))
        response.headers["Location"] = f"{kind.endpoint}/{saved.id}"
        return saved

    @router.get("/id/{entity_id}", response_model=CategoryResponse, responses={404: {"description": "Unknown id"}})
    async def find_by_id(entity_id: int, service: CategoryService = Depends(get_service)):
        entity = await service.find_by_id(entity_id)
        if entity is None:
            return Response(status_code=status.HTTP_404_NOT_FOUND)
        return entity

    @router.put("/id/{entity_id}", response_model=CategoryResponse, responses={404: {"description": "Unknown id"}})
    async def update(entity_id: int, payload: CategoryPayload, service: CategoryService = Depends(get_service)):
        if payload.id is not None and payload.id != entity_id:
            logger.info(
                "category_router.id_mismatch",
                extra={"kind": kind.label, "path_id": entity_id, "body_id": payload.id},
            )
            return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=ID_MISMATCH.model_dump())
        if await service.find_by_id(entity_id) is None:
            return Response(status_code=status.HTTP_404_NOT_FOUND)
        return await service.save(payload.to_entity(kind.model, entity_id))

    @router.delete("/id/{entity_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete(entity_id: int, service: CategoryService = Depends(get_service)):
        await service.delete_by_id(entity_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @router.get("/name/{name}", response_model=CategoryResponse, responses={404: {"description": "Unknown name"}})
    async def find_by_name(name: str, service: CategoryService = Depends(get_service)):
        entity = await service.find_by_name(name)
        if entity is None:
            return Response(status_code=status.HTTP_404_NOT_FOUND)
        return entity

    return router


category_router = build_category_router(CATEGORY_KIND)
sub_category_router = build_category_router(SUB_CATEGORY_KIND)
