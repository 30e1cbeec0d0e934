from typing import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from drill_api.database.session import get_async_session
from drill_api.services.drill_service import DrillService


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    # One session per request; tests override this dependency
    async for session in get_async_session():
        yield session


def get_drill_service(db: AsyncSession = Depends(get_db_session)) -> DrillService:
    return DrillService(db)
