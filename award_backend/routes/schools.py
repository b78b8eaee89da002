"""
School API Routes

Registration, progression state, live-round evidence counts, round start and
certificate listing.
"""
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from award_backend.database import get_db
from award_backend.schemas.progression import (
    CertificateResponse, EvidenceCountsResponse, SchoolCreate, SchoolResponse
)
from award_backend.services import certificate_service, round_service, school_service
from award_backend.services.progression_service import get_evidence_counts


router = APIRouter(
    prefix="/schools",
    tags=["Schools"],
    responses={
        404: {"description": "School not found"},
        409: {"description": "Round start not allowed yet"}
    }
)


@router.post("", response_model=SchoolResponse, status_code=status.HTTP_201_CREATED)
async def create_school(
    request: SchoolCreate,
    db: AsyncSession = Depends(get_db)
):
    """Register a school at round 1."""
    school = await school_service.create_school(
        db,
        name=request.name,
        country=request.country,
        primary_contact_email=request.primary_contact_email
    )
    return SchoolResponse.model_validate(school)


@router.get("/{school_id}", response_model=SchoolResponse)
async def get_school(school_id: str, db: AsyncSession = Depends(get_db)):
    school = await school_service.get_school(db, school_id)
    return SchoolResponse.model_validate(school)


@router.get("/{school_id}/evidence-counts", response_model=EvidenceCountsResponse)
async def evidence_counts(school_id: str, db: AsyncSession = Depends(get_db)):
    """Per-stage totals and approvals for the school's current round."""
    counts = await get_evidence_counts(db, school_id)
    return counts.to_dict()


@router.post("/{school_id}/start-round", response_model=SchoolResponse)
async def start_round(school_id: str, db: AsyncSession = Depends(get_db)):
    """Start the next round. Only allowed once the current award is completed."""
    school = await round_service.start_new_round(db, school_id)
    return SchoolResponse.model_validate(school)


@router.get("/{school_id}/certificates", response_model=List[CertificateResponse])
async def list_certificates(
    school_id: str,
    include_inactive: bool = False,
    db: AsyncSession = Depends(get_db)
):
    certificates = await certificate_service.list_school_certificates(
        db, school_id, include_inactive=include_inactive
    )
    return [CertificateResponse.model_validate(c) for c in certificates]
