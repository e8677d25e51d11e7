from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio.session import AsyncSession

from chuka_market.core.config import Settings
from chuka_market.services.storage.image_storage import ImageStorage

# process-lifetime objects live on app.state, handlers reach them
# through these dependencies (and tests override them)


async def get_async_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    async with request.app.state.session_factory() as session:
        yield session


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_image_storage(request: Request) -> ImageStorage:
    return request.app.state.storage
