"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator, Callable
from datetime import date
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from labor_settlement.config import business_today
from labor_settlement.database import init_db


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency.

    Handlers commit explicitly; anything left uncommitted is rolled back
    when the session closes.
    """
    _, session_factory = init_db()
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


def get_clock() -> Callable[[], date]:
    """Source of "today" for edit locks and default payment dates."""
    return business_today


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
Clock = Annotated[Callable[[], date], Depends(get_clock)]
