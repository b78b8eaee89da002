"""
School registration and lookup.
"""
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from award_backend.exceptions import SchoolNotFoundError
from award_backend.orm.school import School
from award_backend.services import progression_store as store

logger = logging.getLogger(__name__)


async def create_school(
    db: AsyncSession,
    name: str,
    country: Optional[str] = None,
    primary_contact_email: Optional[str] = None
) -> School:
    """Register a school at round 1, stage inspire, nothing completed."""
    school = School(
        name=name,
        country=country,
        primary_contact_email=primary_contact_email,
    )
    db.add(school)
    await db.commit()
    await db.refresh(school)
    logger.info(f"[SCHOOL] registered school={school.id} name={name!r}")
    return school


async def get_school(db: AsyncSession, school_id: str) -> School:
    school = await store.find_school(db, school_id)
    if not school:
        raise SchoolNotFoundError(school_id)
    return school
