"""
Admin API Routes

Review gateway (evidence, bulk evidence, audits) and progression maintenance.
Reviewer identity is taken from the request body.
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from award_backend.database import get_db
from award_backend.rate_limit import limiter, REVIEW_RATE_LIMIT
from award_backend.schemas.progression import (
    AuditResponseSchema, AuditReviewRequest, BulkReviewRequest, BulkReviewResponse,
    CertificateResponse, EvidenceResponse, EvidenceReviewRequest,
    ProgressionResultResponse, ProgressionUpdateRequest, RecalculateResponse, RepairRoundsResponse,
    SchoolResponse
)
from award_backend.services import certificate_service, review_service, round_service
from award_backend.services.notification_service import NotificationDispatcher, get_dispatcher
from award_backend.services.progression_service import (
    check_and_update_progression, recalculate_all_progress
)


router = APIRouter(
    prefix="/admin",
    tags=["Admin - Review & Progression"],
    responses={
        400: {"description": "Invalid review decision"},
        404: {"description": "Resource not found"},
        409: {"description": "Ineligible or concurrent modification"}
    }
)


# =============================================================================
# Review Gateway
# =============================================================================

@router.put("/evidence/{evidence_id}/review", response_model=EvidenceResponse)
@limiter.limit(REVIEW_RATE_LIMIT)
async def review_evidence(
    request: Request,
    evidence_id: str,
    payload: EvidenceReviewRequest,
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
):
    """Approve or reject evidence and re-run progression for its school."""
    evidence = await review_service.review_evidence(
        db,
        evidence_id,
        status=payload.status,
        reviewer_id=payload.reviewer_id,
        notes=payload.notes,
        dispatcher=dispatcher
    )
    return EvidenceResponse.model_validate(evidence)


@router.post("/evidence/bulk-review", response_model=BulkReviewResponse)
@limiter.limit(REVIEW_RATE_LIMIT)
async def bulk_review_evidence(
    request: Request,
    payload: BulkReviewRequest,
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
):
    """Review many evidence items; per-id outcomes, never all-or-nothing."""
    return await review_service.bulk_review_evidence(
        db,
        payload.evidence_ids,
        status=payload.status,
        reviewer_id=payload.reviewer_id,
        notes=payload.notes,
        dispatcher=dispatcher
    )


@router.put("/audits/{audit_id}/review", response_model=AuditResponseSchema)
@limiter.limit(REVIEW_RATE_LIMIT)
async def review_audit(
    request: Request,
    audit_id: str,
    payload: AuditReviewRequest,
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
):
    audit = await review_service.review_audit(
        db,
        audit_id,
        reviewer_id=payload.reviewer_id,
        approved=payload.approved,
        notes=payload.notes,
        dispatcher=dispatcher
    )
    return AuditResponseSchema.model_validate(audit)


# =============================================================================
# Progression Maintenance
# =============================================================================

@router.post("/schools/repair-rounds", response_model=RepairRoundsResponse)
async def repair_rounds(db: AsyncSession = Depends(get_db)):
    """Move schools whose round pointer lags behind rounds_completed."""
    repaired = await round_service.repair_stuck_schools(db)
    return {"repaired": repaired}


@router.post("/progression/recalculate", response_model=RecalculateResponse)
async def recalculate_progression(
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
):
    """Re-evaluate every school; failures are counted, not raised."""
    return await recalculate_all_progress(db, dispatcher)


@router.post("/schools/{school_id}/recheck-progression", response_model=ProgressionResultResponse)
async def recheck_progression(
    school_id: str,
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher)
):
    result = await check_and_update_progression(db, school_id, dispatcher)
    return result.to_dict()


@router.patch("/schools/{school_id}/progression", response_model=SchoolResponse)
async def update_progression(
    school_id: str,
    payload: ProgressionUpdateRequest,
    db: AsyncSession = Depends(get_db)
):
    """Manual correction. progress_percentage is re-derived, never accepted."""
    school = await round_service.manually_update_progression(db, school_id, payload.to_updates())
    return SchoolResponse.model_validate(school)


@router.post("/certificates/{certificate_id}/deactivate", response_model=CertificateResponse)
async def deactivate_certificate(certificate_id: str, db: AsyncSession = Depends(get_db)):
    certificate = await certificate_service.deactivate_certificate(db, certificate_id)
    return CertificateResponse.model_validate(certificate)
