from collections.abc import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from callboard.tokens.service import TokenService


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    async with request.app.state.database.session() as session:
        yield session


async def get_service(
    request: Request, db: AsyncSession = Depends(get_db)
) -> TokenService:
    return TokenService(db, api_channel_name=request.app.state.settings.api_channel_name)
