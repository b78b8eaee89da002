"""
Audit API Routes

Draft creation and submission of the environmental audit.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from award_backend.database import get_db
from award_backend.schemas.progression import AuditCreate, AuditResponseSchema, AuditSubmitRequest
from award_backend.services import submission_service


router = APIRouter(
    prefix="/audits",
    tags=["Audits"],
    responses={
        404: {"description": "School or audit not found"},
        409: {"description": "Audit already submitted"}
    }
)


@router.post("", response_model=AuditResponseSchema, status_code=status.HTTP_201_CREATED)
async def create_audit(request: AuditCreate, db: AsyncSession = Depends(get_db)):
    audit = await submission_service.create_audit(
        db,
        school_id=request.school_id,
        submitted_by=request.submitted_by,
        responses=request.responses
    )
    return AuditResponseSchema.model_validate(audit)


@router.post("/{audit_id}/submit", response_model=AuditResponseSchema)
async def submit_audit(
    audit_id: str,
    request: AuditSubmitRequest,
    db: AsyncSession = Depends(get_db)
):
    """Send a draft or rejected audit for review."""
    audit = await submission_service.submit_audit(
        db,
        audit_id,
        submitted_by=request.submitted_by,
        responses=request.responses
    )
    return AuditResponseSchema.model_validate(audit)
