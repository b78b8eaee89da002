"""
award_backend/orm/audit_response.py
Environmental audit questionnaire, one per school, counted toward Investigate when approved
"""
from enum import Enum as PyEnum

from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import validates

from award_backend.core.db_types import UniversalJSON
from award_backend.orm.base import Base, generate_uuid, utcnow


class AuditStatus(str, PyEnum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


AUDIT_STATUS_TRANSITIONS = {
    AuditStatus.DRAFT.value: ["draft", "submitted"],
    AuditStatus.SUBMITTED.value: ["submitted", "approved", "rejected"],
    AuditStatus.APPROVED.value: ["approved", "rejected"],
    AuditStatus.REJECTED.value: ["submitted", "approved", "rejected"],
}


class AuditResponse(Base):
    """
    Audit questionnaire answers for a school.

    ``round_number`` is recorded for history. Whether it scopes counting is a
    policy switch (FEATURE_ROUND_SCOPED_AUDIT); by default any approved audit
    counts.
    """
    __tablename__ = "audit_responses"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    school_id = Column(
        String(36),
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    submitted_by = Column(String(36), nullable=False)
    round_number = Column(Integer, nullable=False, default=1)
    status = Column(String(20), nullable=False, default=AuditStatus.DRAFT.value)
    responses = Column(UniversalJSON, nullable=False, default=dict)

    submitted_at = Column(DateTime, nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    reviewed_by = Column(String(36), nullable=True)
    review_notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        Index("idx_audit_school_status", "school_id", "status"),
        CheckConstraint(
            "status IN ('draft', 'submitted', 'approved', 'rejected')",
            name="ck_audit_status_valid"
        ),
    )

    @validates("status")
    def validate_status(self, key, value):
        value = getattr(value, "value", value)
        if value not in AUDIT_STATUS_TRANSITIONS:
            raise ValueError(f"Invalid audit status: {value}")
        if self.status and value not in AUDIT_STATUS_TRANSITIONS[self.status]:
            raise ValueError(f"Invalid status transition: {self.status} → {value}")
        return value

    def __repr__(self):
        return f"<AuditResponse(id={self.id}, school={self.school_id}, status={self.status})>"

    def to_dict(self):
        return {
            "id": self.id,
            "school_id": self.school_id,
            "submitted_by": self.submitted_by,
            "round_number": self.round_number,
            "status": self.status,
            "responses": self.responses or {},
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "reviewed_at": self.reviewed_at.isoformat() if self.reviewed_at else None,
            "reviewed_by": self.reviewed_by,
            "review_notes": self.review_notes,
        }
