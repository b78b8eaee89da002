"""
Shared plumbing for CLI command handlers: a short-lived engine per run.
"""
from contextlib import asynccontextmanager
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from award_backend.database import DATABASE_URL, build_engine


class CommandBase:
    """Base for CLI handlers. Each ``execute`` call owns its own engine."""

    def __init__(self, dry_run: bool = False, database_url: Optional[str] = None):
        self.dry_run = dry_run
        self.database_url = database_url or DATABASE_URL

    @asynccontextmanager
    async def engine(self):
        engine = build_engine(self.database_url)
        try:
            yield engine
        finally:
            await engine.dispose()

    @asynccontextmanager
    async def session(self):
        async with self.engine() as engine:
            factory = async_sessionmaker(
                engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
            )
            async with factory() as db:
                yield db
