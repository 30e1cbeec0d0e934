"""
/drill endpoints: CRUD, how-to lookups and bulk tag attachment.
"""

import logging

from fastapi import APIRouter, Body, Depends, Response, status
from fastapi.responses import JSONResponse

from drill_api.core.dependencies import get_drill_service
from drill_api.schemas.drill import DrillCreate, DrillResponse, DrillUpdate, InstructionResponse
from drill_api.schemas.error import ErrorMessage
from drill_api.services.drill_service import DrillService
from .category_router import ID_MISMATCH

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/drill",
    tags=["Drill"],
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorMessage},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorMessage},
    },
)


def _drill_not_found(drill_id: int) -> JSONResponse:
    body = ErrorMessage(error="Drill not found", message=f"Drill ID {drill_id} does not exist")
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=body.model_dump())


def _instruction_not_found(number: int) -> JSONResponse:
    body = ErrorMessage(error="Instructions not found", message=f"Instructions number {number} does not exist")
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=body.model_dump())


# =====================================================================================================================
# CRUD
# =====================================================================================================================

@router.get("", response_model=list[DrillResponse], responses={204: {"description": "No drills"}})
async def find_all(service: DrillService = Depends(get_drill_service)):
    drills = await service.find_all()
    if not drills:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return [DrillResponse.from_entity(drill) for drill in drills]


@router.post("", response_model=DrillResponse, status_code=status.HTTP_201_CREATED)
async def create(payload: DrillCreate, response: Response, service: DrillService = Depends(get_drill_service)):
    saved = await service.save(payload.to_entity())
    response.headers["Location"] = f"/drill/{saved.id}"
    return DrillResponse.from_entity(saved)


@router.get("/id/{drill_id}", response_model=DrillResponse, responses={404: {"description": "Unknown id"}})
async def find_by_id(drill_id: int, service: DrillService = Depends(get_drill_service)):
    drill = await service.find_by_id(drill_id)
    if drill is None:
        return Response(status_code=status.HTTP_404_NOT_FOUND)
    return DrillResponse.from_entity(drill)


@router.put("/id/{drill_id}", response_model=DrillResponse, responses={404: {"description": "Unknown id"}})
async def update(drill_id: int, payload: DrillUpdate, service: DrillService = Depends(get_drill_service)):
    if payload.id is not None and payload.id != drill_id:
        logger.info("drill_router.id_mismatch", extra={"path_id": drill_id, "body_id": payload.id})
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=ID_MISMATCH.model_dump())

    if await service.find_by_id(drill_id) is None:
        return Response(status_code=status.HTTP_404_NOT_FOUND)

    categories = await service.categories.resolve_references(payload.categories)
    sub_categories = await service.sub_categories.resolve_references(payload.sub_categories)
    saved = await service.save(payload.to_entity(drill_id, categories, sub_categories))
    return DrillResponse.from_entity(saved)


@router.delete("/id/{drill_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete(drill_id: int, service: DrillService = Depends(get_drill_service)):
    await service.delete_by_id(drill_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/name/{name}", response_model=DrillResponse, responses={404: {"description": "Unknown name"}})
async def find_by_name(name: str, service: DrillService = Depends(get_drill_service)):
    drill = await service.find_by_name(name)
    if drill is None:
        return Response(status_code=status.HTTP_404_NOT_FOUND)
    return DrillResponse.from_entity(drill)


# =====================================================================================================================
# How-to
# =====================================================================================================================

@router.get(
    "/id/{drill_id}/how-to",
    response_model=list[str],
    responses={204: {"description": "No instructions"}, 404: {"model": ErrorMessage}},
)
async def how_to(drill_id: int, service: DrillService = Depends(get_drill_service)):
    """Descriptions of the drill's instructions, in order."""
    drill = await service.find_by_id(drill_id)
    if drill is None:
        return _drill_not_found(drill_id)
    if not drill.instructions:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return [instruction.description for instruction in drill.instructions]


@router.get(
    "/id/{drill_id}/how-to/{number}",
    response_model=InstructionResponse,
    responses={404: {"model": ErrorMessage}},
)
async def how_to_step(drill_id: int, number: int, service: DrillService = Depends(get_drill_service)):
    drill = await service.find_by_id(drill_id)
    if drill is None:
        return _drill_not_found(drill_id)
    for instruction in drill.instructions:
        if instruction.number == number:
            return InstructionResponse.model_validate(instruction)
    return _instruction_not_found(number)


# =====================================================================================================================
# Bulk tag attachment
# =====================================================================================================================

@router.patch(
    "/add_category/{category_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"description": "Unknown category"}},
)
async def add_category(
    category_id: int,
    drill_ids: list[int] = Body(...),
    service: DrillService = Depends(get_drill_service),
):
    category = await service.categories.find_by_id(category_id)
    if category is None:
        return Response(status_code=status.HTTP_404_NOT_FOUND)
    await service.add_category(category, drill_ids)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch(
    "/add_sub_category/{sub_category_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"description": "Unknown sub-category"}},
)
async def add_sub_category(
    sub_category_id: int,
    drill_ids: list[int] = Body(...),
    service: DrillService = Depends(get_drill_service),
):
    sub_category = await service.sub_categories.find_by_id(sub_category_id)
    if sub_category is None:
        return Response(status_code=status.HTTP_404_NOT_FOUND)
    await service.add_sub_category(sub_category, drill_ids)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
