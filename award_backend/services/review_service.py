"""
Review Gateway

Applies a reviewer's decision to an evidence item or an audit and re-runs
progression for the owning school in the same unit of work.

Notifications are queued only after the commit succeeds and are never awaited
by the caller.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from award_backend.exceptions import (
    AwardEngineError, AuditNotFoundError, EvidenceNotFoundError,
    IneligibleError, InvalidReviewError, SchoolNotFoundError
)
from award_backend.orm.audit_response import AuditResponse, AuditStatus
from award_backend.orm.evidence import Evidence, EvidenceStatus, REVIEW_DECISIONS
from award_backend.services import progression_store as store
from award_backend.services.notification_service import NotificationDispatcher
from award_backend.services.progression_service import (
    announce_award, evaluate_school, school_unit_of_work
)

logger = logging.getLogger(__name__)

# Audits still being filled in cannot be reviewed
REVIEWABLE_AUDIT_STATUSES = (
    AuditStatus.SUBMITTED.value,
    AuditStatus.APPROVED.value,
    AuditStatus.REJECTED.value,
)


def _normalize_decision(status: Any) -> str:
    value = getattr(status, "value", status)
    if isinstance(value, str):
        value = value.lower()
    if value not in REVIEW_DECISIONS:
        raise InvalidReviewError(
            f"Review status must be one of {', '.join(REVIEW_DECISIONS)}, got '{value}'"
        )
    return value


async def _find_evidence(db: AsyncSession, evidence_id: str) -> Evidence:
    result = await db.execute(select(Evidence).where(Evidence.id == evidence_id))
    evidence = result.scalar_one_or_none()
    if not evidence:
        raise EvidenceNotFoundError(evidence_id)
    return evidence


async def _find_audit(db: AsyncSession, audit_id: str) -> AuditResponse:
    result = await db.execute(select(AuditResponse).where(AuditResponse.id == audit_id))
    audit = result.scalar_one_or_none()
    if not audit:
        raise AuditNotFoundError(audit_id)
    return audit


async def review_evidence(
    db: AsyncSession,
    evidence_id: str,
    status: str,
    reviewer_id: str,
    notes: Optional[str] = None,
    dispatcher: Optional[NotificationDispatcher] = None
) -> Evidence:
    """
    Approve or reject an evidence item and re-evaluate its school.

    Args:
        db: Database session
        evidence_id: Evidence to review
        status: "approved" or "rejected"
        reviewer_id: Reviewer identity recorded on the row
        notes: Optional reviewer notes
        dispatcher: Receives the post-commit notifications

    Returns:
        The updated evidence row

    Raises:
        InvalidReviewError: status is not a review decision
        EvidenceNotFoundError: no such evidence
        ConflictError: a concurrent review of the same school won
    """
    decision = _normalize_decision(status)

    # Resolve the owning school first so the lock is taken before any write
    evidence = await _find_evidence(db, evidence_id)
    school_id = evidence.school_id

    async with school_unit_of_work(db, school_id):
        evidence = await _find_evidence(db, evidence_id)
        school = await store.find_school(db, school_id, for_update=True)
        if not school:
            raise SchoolNotFoundError(school_id)

        evidence.status = decision
        evidence.reviewed_by = reviewer_id
        evidence.reviewed_at = datetime.utcnow()
        evidence.review_notes = notes
        await db.flush()

        progression = await evaluate_school(db, school)

    logger.info(
        f"[REVIEW] evidence={evidence.id} school={school_id} {decision} by {reviewer_id}; "
        f"stage={school.current_stage} progress={school.progress_percentage}"
    )

    if dispatcher is not None:
        method = "notify_evidence_approved" if decision == EvidenceStatus.APPROVED.value else "notify_evidence_rejected"
        dispatcher.dispatch(method, evidence, school)
        announce_award(dispatcher, progression)

    return evidence


async def review_audit(
    db: AsyncSession,
    audit_id: str,
    reviewer_id: str,
    approved: bool,
    notes: Optional[str] = None,
    dispatcher: Optional[NotificationDispatcher] = None
) -> AuditResponse:
    """
    Approve or reject an audit.

    Approval marks the school's audit quiz as completed before progression
    runs, so the audit counts toward Investigate in the same pass.

    Raises:
        AuditNotFoundError: no such audit
        IneligibleError: the audit is still a draft
    """
    audit = await _find_audit(db, audit_id)
    school_id = audit.school_id

    async with school_unit_of_work(db, school_id):
        audit = await _find_audit(db, audit_id)
        if audit.status not in REVIEWABLE_AUDIT_STATUSES:
            raise IneligibleError(
                f"Audit {audit_id} is '{audit.status}' and has not been submitted for review"
            )
        school = await store.find_school(db, school_id, for_update=True)
        if not school:
            raise SchoolNotFoundError(school_id)

        audit.status = AuditStatus.APPROVED.value if approved else AuditStatus.REJECTED.value
        audit.reviewed_by = reviewer_id
        audit.reviewed_at = datetime.utcnow()
        audit.review_notes = notes

        if approved and not school.audit_quiz_completed:
            store.update_school(school, {"audit_quiz_completed": True})
        await db.flush()

        progression = await evaluate_school(db, school)

    logger.info(
        f"[REVIEW] audit={audit.id} school={school_id} {audit.status} by {reviewer_id}; "
        f"stage={school.current_stage} progress={school.progress_percentage}"
    )

    if dispatcher is not None:
        dispatcher.dispatch("notify_audit_approved" if approved else "notify_audit_rejected", audit)
        announce_award(dispatcher, progression)

    return audit


async def bulk_review_evidence(
    db: AsyncSession,
    evidence_ids: Iterable[str],
    status: str,
    reviewer_id: str,
    notes: Optional[str] = None,
    dispatcher: Optional[NotificationDispatcher] = None
) -> Dict[str, List[Any]]:
    """
    Review many evidence items with the same decision.

    Each id is reviewed as its own unit of work; a failing id is reported and
    the batch carries on.

    Returns:
        {"succeeded": [evidence ids], "failed": [{"id", "code", "reason"}]}
    """
    decision = _normalize_decision(status)
    succeeded: List[str] = []
    failed: List[Dict[str, str]] = []

    for evidence_id in evidence_ids:
        try:
            await review_evidence(db, evidence_id, decision, reviewer_id, notes, dispatcher)
        except AwardEngineError as e:
            failed.append({"id": evidence_id, "code": e.code, "reason": e.message})
            logger.warning(f"[BULK REVIEW] evidence={evidence_id} failed: {e.code}")
            continue
        succeeded.append(evidence_id)

    logger.info(
        f"[BULK REVIEW] {decision} by {reviewer_id}: "
        f"{len(succeeded)} succeeded, {len(failed)} failed"
    )
    return {"succeeded": succeeded, "failed": failed}
