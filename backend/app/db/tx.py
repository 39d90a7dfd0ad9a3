from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession


@asynccontextmanager
async def transactional(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Commit everything done inside the block, or nothing at all."""
    try:
        yield session
        await session.commit()
    except BaseException:
        await session.rollback()
        raise
