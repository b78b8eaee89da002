"""
Evidence API Routes

Teacher-side submission and file updates. Review lives under /admin.
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from award_backend.database import get_db
from award_backend.schemas.progression import EvidenceCreate, EvidenceResponse
from award_backend.services import submission_service


router = APIRouter(
    prefix="/evidence",
    tags=["Evidence"],
    responses={
        400: {"description": "Unknown stage or visibility"},
        404: {"description": "School or evidence not found"}
    }
)


@router.post("", response_model=EvidenceResponse, status_code=status.HTTP_201_CREATED)
async def submit_evidence(
    request: EvidenceCreate,
    db: AsyncSession = Depends(get_db)
):
    """Submit evidence for the school's current round. Starts as pending."""
    evidence = await submission_service.submit_evidence(
        db,
        school_id=request.school_id,
        submitted_by=request.submitted_by,
        stage=request.stage.value,
        title=request.title,
        description=request.description,
        files=request.files,
        visibility=request.visibility.value
    )
    return EvidenceResponse.model_validate(evidence)


@router.put("/{evidence_id}/files", response_model=EvidenceResponse)
async def update_files(
    evidence_id: str,
    files: List[Dict[str, Any]],
    db: AsyncSession = Depends(get_db)
):
    """Replace attachment metadata. Does not affect review status."""
    evidence = await submission_service.update_evidence_files(db, evidence_id, files)
    return EvidenceResponse.model_validate(evidence)
