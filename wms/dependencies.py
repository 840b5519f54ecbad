from typing import AsyncGenerator
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from wms.core.config import Settings, get_settings
from wms.database import async_session
from wms.services.engine import SyncEngine
from wms.services.sellus.client import SellusClient


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions."""
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()


def get_sellus_client(settings: Settings = Depends(get_settings)) -> SellusClient:
    return SellusClient.from_settings(settings)


def get_engine(
    db: AsyncSession = Depends(get_db),
    client: SellusClient = Depends(get_sellus_client),
    settings: Settings = Depends(get_settings),
) -> SyncEngine:
    """Sync workflows bound to the request's session."""
    return SyncEngine.for_session(db, client, settings)
