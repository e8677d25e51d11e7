from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from chuka_market.api.dependencies import get_async_session
from chuka_market.db.database import ping
from chuka_market.schemas.product_schema import MessageResponse

router = APIRouter(tags=["Health"])


@router.get("/test", response_model=MessageResponse)
async def test_connection(*, session: AsyncSession = Depends(get_async_session)):
    await ping(session)
    return MessageResponse(message="Backend is running and connected to the database")
