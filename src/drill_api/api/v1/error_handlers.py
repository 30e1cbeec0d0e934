# drill_api/api/v1/error_handlers.py
"""
FastAPI exception handlers mapping application errors to HTTP responses.

Every error body has the shape {"error": ..., "message": ...}:
    - RepositoryError (DatabaseInsertError, ...) -> exc.http_status(), exc.to_payload()
    - RequestValidationError -> 400 "Malformed Argument" with one sentence per violation
    - anything else -> 500 "Unknown Error"; the traceback is logged, never returned

Not-found is decided by the routers and never raised.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from drill_api.exceptions.base import RepositoryError
from drill_api.exceptions.mapper import to_user_message
from drill_api.schemas.error import ErrorMessage

logger = logging.getLogger(__name__)

MALFORMED_ARGUMENT = "Malformed Argument"
UNKNOWN_ERROR = ErrorMessage(error="Unknown Error", message="An unexpected error has occurred.")


async def repository_error_handler(request: Request, exc: RepositoryError) -> JSONResponse:
    # Expected client error, no stack trace
    logger.info(
        "api.repository_error",
        extra={"method": request.method, "path": request.url.path, "fields": exc.fields, "constraint": exc.constraint},
    )
    return JSONResponse(status_code=exc.http_status(), content=exc.to_payload())


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = to_user_message(exc)
    logger.info(
        "api.malformed_argument",
        extra={"method": request.method, "path": request.url.path, "violations": len(exc.errors())},
    )
    body = ErrorMessage(error=MALFORMED_ARGUMENT, message=message)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body.model_dump())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "api.unhandled_error",
        exc_info=exc,
        extra={"method": request.method, "path": request.url.path},
    )
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=UNKNOWN_ERROR.model_dump())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RepositoryError, repository_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
