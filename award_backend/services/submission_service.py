"""
Submission Service

Creates evidence and audit records. The round number is stamped from the
school's live round at creation time and never changes afterwards.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from award_backend.exceptions import (
    AuditNotFoundError, EvidenceNotFoundError, IneligibleError,
    InvalidSubmissionError, SchoolNotFoundError
)
from award_backend.orm.audit_response import AuditResponse, AuditStatus
from award_backend.orm.evidence import Evidence, EvidenceStatus, EvidenceVisibility
from award_backend.orm.school import ProgramStage
from award_backend.services import progression_store as store

logger = logging.getLogger(__name__)

SUBMITTABLE_AUDIT_STATUSES = (AuditStatus.DRAFT.value, AuditStatus.REJECTED.value)


async def submit_evidence(
    db: AsyncSession,
    school_id: str,
    submitted_by: str,
    stage: str,
    title: str,
    description: Optional[str] = None,
    files: Optional[List[Dict[str, Any]]] = None,
    visibility: str = EvidenceVisibility.PRIVATE.value
) -> Evidence:
    """Create a pending evidence item for the school's current round."""
    try:
        stage = ProgramStage(stage).value
        visibility = EvidenceVisibility(visibility).value
    except ValueError as e:
        raise InvalidSubmissionError(str(e))

    school = await store.find_school(db, school_id)
    if not school:
        raise SchoolNotFoundError(school_id)

    evidence = Evidence(
        school_id=school.id,
        submitted_by=submitted_by,
        title=title,
        description=description,
        stage=stage,
        round_number=school.current_round,
        status=EvidenceStatus.PENDING.value,
        visibility=visibility,
        files=files or [],
    )
    db.add(evidence)
    await db.commit()
    await db.refresh(evidence)

    logger.info(
        f"[SUBMIT] evidence={evidence.id} school={school_id} stage={evidence.stage} "
        f"round={evidence.round_number}"
    )
    return evidence


async def update_evidence_files(
    db: AsyncSession,
    evidence_id: str,
    files: List[Dict[str, Any]]
) -> Evidence:
    """Replace the attachment metadata of an evidence item. Review fields are untouched."""
    result = await db.execute(select(Evidence).where(Evidence.id == evidence_id))
    evidence = result.scalar_one_or_none()
    if not evidence:
        raise EvidenceNotFoundError(evidence_id)

    evidence.files = list(files)
    await db.commit()
    await db.refresh(evidence)
    return evidence


async def create_audit(
    db: AsyncSession,
    school_id: str,
    submitted_by: str,
    responses: Optional[Dict[str, Any]] = None
) -> AuditResponse:
    """Start a draft audit for the school's current round."""
    school = await store.find_school(db, school_id)
    if not school:
        raise SchoolNotFoundError(school_id)

    audit = AuditResponse(
        school_id=school.id,
        submitted_by=submitted_by,
        round_number=school.current_round,
        status=AuditStatus.DRAFT.value,
        responses=responses or {},
    )
    db.add(audit)
    await db.commit()
    await db.refresh(audit)

    logger.info(f"[SUBMIT] audit={audit.id} school={school_id} round={audit.round_number} (draft)")
    return audit


async def submit_audit(
    db: AsyncSession,
    audit_id: str,
    submitted_by: str,
    responses: Optional[Dict[str, Any]] = None
) -> AuditResponse:
    """Send a draft (or previously rejected) audit for review."""
    result = await db.execute(select(AuditResponse).where(AuditResponse.id == audit_id))
    audit = result.scalar_one_or_none()
    if not audit:
        raise AuditNotFoundError(audit_id)

    if audit.status not in SUBMITTABLE_AUDIT_STATUSES:
        raise IneligibleError(f"Audit {audit_id} is already '{audit.status}'")

    if responses is not None:
        audit.responses = responses
    audit.submitted_by = submitted_by
    audit.status = AuditStatus.SUBMITTED.value
    audit.submitted_at = datetime.utcnow()
    await db.commit()
    await db.refresh(audit)

    logger.info(f"[SUBMIT] audit={audit.id} school={audit.school_id} submitted for review")
    return audit
