"""
Certificate Issuer

Issues the award completion certificate once per (school, stage[, round]).

The pre-insert existence check handles the common case; the unique constraint
on (school_id, stage, round_number) catches the race where two reviewers
complete the same school at once, and that violation is treated as "already
issued".
"""
import logging
import time
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from award_backend.exceptions import CertificateNotFoundError, SchoolNotFoundError
from award_backend.orm.certificate import Certificate
from award_backend.orm.school import School, ProgramStage
from award_backend.services import progression_store as store
from award_backend.services.evidence_counter import EvidenceCounts

logger = logging.getLogger(__name__)

CERTIFICATE_PREFIX = "PCSR"
CERTIFICATE_STAGE = ProgramStage.ACT.value


def build_certificate_number(school_id: str, round_number: int, issued_at_ms: Optional[int] = None) -> str:
    """
    ``PCSR{round}-{epoch millis}-{first 8 chars of school id}``

    >>> build_certificate_number("3f2b9c1e-aaaa-bbbb", 1, 1700000000000)
    'PCSR1-1700000000000-3f2b9c1e'
    """
    if issued_at_ms is None:
        issued_at_ms = int(time.time() * 1000)
    return f"{CERTIFICATE_PREFIX}{round_number}-{issued_at_ms}-{school_id[:8]}"


def build_certificate(
    school: School,
    round_number: int,
    counts: EvidenceCounts,
    issued_by: Optional[str] = None
) -> Certificate:
    return Certificate(
        school_id=school.id,
        stage=CERTIFICATE_STAGE,
        round_number=round_number,
        certificate_number=build_certificate_number(school.id, round_number),
        title=f"Round {round_number} Completion Certificate",
        description=(
            "Successfully completed all three stages (Inspire, Investigate, Act) "
            f"in Round {round_number}"
        ),
        issued_by=issued_by,
        completed_date=datetime.utcnow(),
        certificate_metadata={
            "round": round_number,
            "achievements": counts.achievements(),
        },
        is_active=True,
    )


async def issue_completion_certificate(
    db: AsyncSession,
    school: School,
    counts: EvidenceCounts,
    round_number: int,
    per_round: bool = False,
    issued_by: Optional[str] = None
) -> Tuple[Certificate, bool]:
    """
    Issue the Act certificate for ``school`` unless one already exists.

    Args:
        db: Session holding the caller's unit of work (not committed here)
        school: School that just completed Act
        counts: Approved counts snapshotted into the certificate metadata
        round_number: Round being certified
        per_round: Scope the existence check to ``round_number``; otherwise any
            Act certificate for the school counts as already issued
        issued_by: Admin id for manual issuance, None for the engine

    Returns:
        (certificate, is_new)
    """
    scope_round = round_number if per_round else None

    if await store.certificate_exists(db, school.id, CERTIFICATE_STAGE, scope_round):
        existing = await store.find_certificate(db, school.id, CERTIFICATE_STAGE, scope_round)
        logger.info(
            f"[CERTIFICATE] school={school.id} already holds {existing.certificate_number}, skipping"
        )
        return existing, False

    certificate = build_certificate(school, round_number, counts, issued_by)
    try:
        async with db.begin_nested():
            await store.insert_certificate(db, certificate)
    except IntegrityError:
        logger.warning(
            f"[CERTIFICATE] concurrent issuance for school={school.id} round={round_number}; "
            f"keeping the existing certificate"
        )
        existing = await store.find_certificate(db, school.id, CERTIFICATE_STAGE, round_number)
        if existing is None:
            raise
        return existing, False

    logger.info(
        f"[CERTIFICATE] issued {certificate.certificate_number} to school={school.id} "
        f"round={round_number} achievements={counts.achievements()}"
    )
    return certificate, True


async def list_school_certificates(
    db: AsyncSession,
    school_id: str,
    include_inactive: bool = False
) -> List[Certificate]:
    school = await store.find_school(db, school_id)
    if not school:
        raise SchoolNotFoundError(school_id)

    query = select(Certificate).where(Certificate.school_id == school_id)
    if not include_inactive:
        query = query.where(Certificate.is_active.is_(True))
    result = await db.execute(query.order_by(Certificate.round_number.asc()))
    return list(result.scalars().all())


async def deactivate_certificate(db: AsyncSession, certificate_id: str) -> Certificate:
    """Soft-deactivate a certificate. Idempotent; the row is never deleted."""
    result = await db.execute(
        select(Certificate).where(Certificate.id == certificate_id)
    )
    certificate = result.scalar_one_or_none()
    if not certificate:
        raise CertificateNotFoundError(certificate_id)

    if certificate.is_active:
        certificate.is_active = False
        certificate.deactivated_at = datetime.utcnow()
        await db.commit()
        await db.refresh(certificate)
        logger.info(f"[CERTIFICATE] deactivated {certificate.certificate_number}")

    return certificate
