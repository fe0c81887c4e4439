# fraudscore/infra/db/session.py
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from fraudscore.infra.db.base import Base

# Registers the table on Base.metadata
from fraudscore.infra.db.models import scored_transaction  # noqa: F401


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    return create_async_engine(database_url, echo=echo, future=True)


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False,
        class_=AsyncSession,
    )


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a session from the app's sessionmaker."""
    async with request.app.state.sessionmaker() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db(engine: AsyncEngine) -> None:
    """Creates the tables (dev). Use migrations in prod."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
