from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

from app.config import settings
from app.exceptions import StorageError

engine = create_async_engine(settings.database_url, echo=settings.debug)


async_session_factory = async_sessionmaker(
    engine,
    expire_on_commit=False,
    class_=AsyncSession,
)


async def get_db():
    """FastAPI dependency: yields AsyncSession per request."""
    async with async_session_factory() as session:
        yield session


@asynccontextmanager
async def transaction(session_factory) -> AsyncIterator[AsyncSession]:
    """Open a session and a transaction scoped to the ``async with`` block.

    Commits on normal exit. Any exception rolls back everything done inside
    the block; SQLAlchemy errors are re-raised as StorageError so callers
    never see driver or schema detail. Domain errors pass through unchanged.
    """
    async with session_factory() as session:
        try:
            async with session.begin():
                yield session
        except SQLAlchemyError as exc:
            raise StorageError() from exc
