"""
Shared fixtures: in-memory database, schools, notifier doubles.
"""
from typing import AsyncGenerator, Callable, List
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from award_backend.orm.base import Base
from award_backend.orm.evidence import Evidence
from award_backend.orm.school import School
from award_backend.services import submission_service
from award_backend.services.notification_service import NotificationDispatcher, ReviewNotifier
from award_backend.services.review_service import review_evidence

# Test database setup
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(
        db_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def school(db_session: AsyncSession) -> School:
    """A freshly registered school: round 1, inspire, nothing completed."""
    school = School(name="Greenfield Primary", country="Ireland")
    db_session.add(school)
    await db_session.commit()
    await db_session.refresh(school)
    return school


@pytest.fixture
def notifier():
    return AsyncMock(spec=ReviewNotifier)


@pytest.fixture
def dispatcher(notifier):
    return NotificationDispatcher(notifier)


async def submit(db: AsyncSession, school: School, stage: str, count: int) -> List[Evidence]:
    """Submit ``count`` pending evidence items for ``stage``."""
    items = []
    for i in range(count):
        items.append(
            await submission_service.submit_evidence(
                db,
                school_id=school.id,
                submitted_by="staff-1",
                stage=stage,
                title=f"{stage} evidence {i + 1}",
            )
        )
    return items


async def approve_all(db: AsyncSession, items: List[Evidence], dispatcher=None) -> None:
    for item in items:
        await review_evidence(db, item.id, "approved", "reviewer-1", dispatcher=dispatcher)


@pytest.fixture
def submit_evidence() -> Callable:
    return submit


@pytest.fixture
def approve() -> Callable:
    return approve_all


@pytest_asyncio.fixture
async def completed_school(db_session: AsyncSession, school: School) -> School:
    """A school that has completed the award in round 1."""
    for stage, count in (("inspire", 3), ("investigate", 2), ("act", 3)):
        await approve_all(db_session, await submit(db_session, school, stage, count))
    await db_session.refresh(school)
    return school
