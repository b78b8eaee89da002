"""
Progression Store

SQLAlchemy queries the engine consumes: school lookup/update, evidence
listing, latest approved audit, certificate existence and insert.
All functions take the caller's session and never commit.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select, and_, exists
from sqlalchemy.ext.asyncio import AsyncSession

from award_backend.orm.school import School
from award_backend.orm.evidence import Evidence
from award_backend.orm.audit_response import AuditResponse, AuditStatus
from award_backend.orm.certificate import Certificate

logger = logging.getLogger(__name__)


async def find_school(db: AsyncSession, school_id: str, for_update: bool = False) -> Optional[School]:
    """
    Load a school row.

    ``for_update`` takes a row lock on backends that support it (PostgreSQL);
    SQLite ignores the clause and relies on the in-process school lock.
    A locked read always refreshes the identity-map copy.
    """
    query = select(School).where(School.id == school_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    return result.scalar_one_or_none()


def update_school(school: School, updates: Dict[str, Any]) -> School:
    """Apply a partial update to a loaded school; flushed by the caller."""
    for key, value in updates.items():
        setattr(school, key, value)
    return school


async def list_evidence_for_school(db: AsyncSession, school_id: str) -> List[Evidence]:
    """Every evidence row for the school, all rounds."""
    result = await db.execute(
        select(Evidence)
        .where(Evidence.school_id == school_id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def find_latest_approved_audit(
    db: AsyncSession,
    school_id: str,
    round_number: Optional[int] = None
) -> Optional[AuditResponse]:
    """Most recently approved audit for the school, limited to one round when given."""
    conditions = [
        AuditResponse.school_id == school_id,
        AuditResponse.status == AuditStatus.APPROVED.value,
    ]
    if round_number is not None:
        conditions.append(AuditResponse.round_number == round_number)

    result = await db.execute(
        select(AuditResponse)
        .where(and_(*conditions))
        .order_by(AuditResponse.reviewed_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def find_certificate(
    db: AsyncSession,
    school_id: str,
    stage: str,
    round_number: Optional[int] = None
) -> Optional[Certificate]:
    conditions = [Certificate.school_id == school_id, Certificate.stage == stage]
    if round_number is not None:
        conditions.append(Certificate.round_number == round_number)
    result = await db.execute(
        select(Certificate)
        .where(and_(*conditions))
        .order_by(Certificate.created_at.asc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def certificate_exists(
    db: AsyncSession,
    school_id: str,
    stage: str,
    round_number: Optional[int] = None
) -> bool:
    conditions = [Certificate.school_id == school_id, Certificate.stage == stage]
    if round_number is not None:
        conditions.append(Certificate.round_number == round_number)
    result = await db.execute(select(exists().where(and_(*conditions))))
    return bool(result.scalar())


async def insert_certificate(db: AsyncSession, certificate: Certificate) -> Certificate:
    """Stage and flush a certificate; IntegrityError propagates to the issuer."""
    db.add(certificate)
    await db.flush()
    return certificate
