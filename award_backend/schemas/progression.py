"""
Award Progression API Schemas (Pydantic)
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from award_backend.orm.evidence import EvidenceVisibility
from award_backend.orm.school import ProgramStage


# =============================================================================
# Schools
# =============================================================================

class SchoolCreate(BaseModel):
    """Request schema for registering a school."""
    name: str = Field(..., min_length=2, max_length=255)
    country: Optional[str] = Field(default=None, max_length=100)
    primary_contact_email: Optional[str] = Field(default=None, max_length=255)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        return v.strip()


class SchoolResponse(BaseModel):
    id: str
    name: str
    country: Optional[str] = None
    current_stage: str
    inspire_completed: bool
    investigate_completed: bool
    act_completed: bool
    award_completed: bool
    audit_quiz_completed: bool
    current_round: int
    rounds_completed: int
    progress_percentage: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StageCountResponse(BaseModel):
    total: int
    approved: int


class InvestigateCountResponse(StageCountResponse):
    has_quiz: bool


class EvidenceCountsResponse(BaseModel):
    inspire: StageCountResponse
    investigate: InvestigateCountResponse
    act: StageCountResponse


class ProgressionUpdateRequest(BaseModel):
    """
    Admin correction of a school's progression.

    Only the fields sent are applied; progress is always re-derived.
    """
    current_stage: Optional[ProgramStage] = None
    inspire_completed: Optional[bool] = None
    investigate_completed: Optional[bool] = None
    act_completed: Optional[bool] = None
    award_completed: Optional[bool] = None
    audit_quiz_completed: Optional[bool] = None
    current_round: Optional[int] = Field(default=None, ge=1)
    rounds_completed: Optional[int] = Field(default=None, ge=0)

    def to_updates(self) -> Dict[str, Any]:
        updates = self.model_dump(exclude_none=True)
        if "current_stage" in updates:
            updates["current_stage"] = ProgramStage(updates["current_stage"]).value
        return updates


class ProgressionResultResponse(BaseModel):
    school_id: str
    changed: bool
    updates: Dict[str, Any]
    stages_completed: List[str]
    certificate_number: Optional[str] = None
    counts: EvidenceCountsResponse


class RecalculateResponse(BaseModel):
    checked: int
    updated: int
    failed: int


class RepairedSchool(BaseModel):
    school_id: str
    from_round: int
    to_round: int


class RepairRoundsResponse(BaseModel):
    repaired: List[RepairedSchool]


# =============================================================================
# Evidence
# =============================================================================

class EvidenceCreate(BaseModel):
    school_id: str
    submitted_by: str
    stage: ProgramStage
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    files: List[Dict[str, Any]] = Field(default_factory=list)
    visibility: EvidenceVisibility = EvidenceVisibility.PRIVATE


class EvidenceResponse(BaseModel):
    id: str
    school_id: str
    submitted_by: str
    title: str
    description: Optional[str] = None
    stage: str
    round_number: int
    status: str
    visibility: str
    files: List[Dict[str, Any]] = Field(default_factory=list)
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None
    review_notes: Optional[str] = None

    class Config:
        from_attributes = True


class EvidenceReviewRequest(BaseModel):
    status: str = Field(..., description="approved or rejected")
    reviewer_id: str = Field(..., min_length=1)
    notes: Optional[str] = Field(default=None, max_length=2000)


class BulkReviewRequest(BaseModel):
    evidence_ids: List[str] = Field(..., min_length=1, max_length=200)
    status: str = Field(..., description="approved or rejected")
    reviewer_id: str = Field(..., min_length=1)
    notes: Optional[str] = Field(default=None, max_length=2000)


class BulkReviewFailure(BaseModel):
    id: str
    code: str
    reason: str


class BulkReviewResponse(BaseModel):
    succeeded: List[str]
    failed: List[BulkReviewFailure]


# =============================================================================
# Audits
# =============================================================================

class AuditCreate(BaseModel):
    school_id: str
    submitted_by: str
    responses: Dict[str, Any] = Field(default_factory=dict)


class AuditSubmitRequest(BaseModel):
    submitted_by: str
    responses: Optional[Dict[str, Any]] = None


class AuditReviewRequest(BaseModel):
    approved: bool
    reviewer_id: str = Field(..., min_length=1)
    notes: Optional[str] = Field(default=None, max_length=2000)


class AuditResponseSchema(BaseModel):
    id: str
    school_id: str
    submitted_by: str
    round_number: int
    status: str
    responses: Dict[str, Any] = Field(default_factory=dict)
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None
    review_notes: Optional[str] = None

    class Config:
        from_attributes = True


# =============================================================================
# Certificates
# =============================================================================

class CertificateResponse(BaseModel):
    id: str
    school_id: str
    stage: str
    round_number: int
    certificate_number: str
    title: str
    description: Optional[str] = None
    issued_by: Optional[str] = None
    completed_date: Optional[datetime] = None
    metadata: Dict[str, Any] = Field(default_factory=dict, validation_alias="certificate_metadata")
    is_active: bool
    deactivated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
