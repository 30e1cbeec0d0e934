"""
Application factory.

Serve with:
    uvicorn drill_api.main:create_app --factory
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from drill_api.api.v1.category_router import category_router, sub_category_router
from drill_api.api.v1.drill_router import router as drill_router
from drill_api.api.v1.error_handlers import register_exception_handlers
from drill_api.config import Settings, get_settings
from drill_api.core.logging import RequestIDMiddleware, setup_logging
from drill_api.database.base import Base
from drill_api.database.session import get_engine
from drill_api.models import verify_constraint_catalog
from drill_api.utils.metadata import get_project_version

logger = logging.getLogger(__name__)


async def create_tables() -> None:
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings)

    # Fails fast when a constraint has no user-facing message (or vice versa)
    verify_constraint_catalog(Base.metadata)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.DB_CREATE_TABLES:
            await create_tables()
        logger.info("app.startup", extra={"env": settings.ENV})
        yield
        await get_engine().dispose()
        logger.info("app.shutdown")

    app = FastAPI(title="Defense Drill API", version=get_project_version(), lifespan=lifespan)

    app.add_middleware(RequestIDMiddleware)
    register_exception_handlers(app)

    app.include_router(category_router)
    app.include_router(sub_category_router)
    app.include_router(drill_router)

    return app
