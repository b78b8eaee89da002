"""
award_backend/orm/evidence.py
Evidence submissions: proof of work tagged to a stage and a round, reviewed by staff
"""
from enum import Enum as PyEnum

from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship, validates

from award_backend.core.db_types import UniversalJSON
from award_backend.orm.base import Base, generate_uuid, utcnow


class EvidenceStatus(str, PyEnum):
    """Review status of an evidence submission"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class EvidenceVisibility(str, PyEnum):
    PRIVATE = "private"
    PUBLIC = "public"


REVIEW_DECISIONS = (EvidenceStatus.APPROVED.value, EvidenceStatus.REJECTED.value)

# A reviewed record may be re-reviewed (a later decision overwrites the earlier
# one) but never returns to pending.
EVIDENCE_STATUS_TRANSITIONS = {
    EvidenceStatus.PENDING.value: [EvidenceStatus.PENDING.value, *REVIEW_DECISIONS],
    EvidenceStatus.APPROVED.value: list(REVIEW_DECISIONS),
    EvidenceStatus.REJECTED.value: list(REVIEW_DECISIONS),
}

# Ownership fields fixed at creation
IMMUTABLE_EVIDENCE_FIELDS = ("school_id", "stage", "round_number")


class Evidence(Base):
    """
    A single evidence submission.

    Mutated only by review (status/reviewer fields) or by file-metadata
    updates. ``school_id``, ``stage`` and ``round_number`` never change after
    creation; the round number is what scopes counting to the live round.
    """
    __tablename__ = "evidence"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    school_id = Column(
        String(36),
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    submitted_by = Column(String(36), nullable=False)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    stage = Column(String(20), nullable=False)
    round_number = Column(Integer, nullable=False, default=1)
    status = Column(String(20), nullable=False, default=EvidenceStatus.PENDING.value)
    visibility = Column(String(20), nullable=False, default=EvidenceVisibility.PRIVATE.value)
    files = Column(UniversalJSON, nullable=False, default=list)

    submitted_at = Column(DateTime, default=utcnow, nullable=False)
    reviewed_at = Column(DateTime, nullable=True)
    reviewed_by = Column(String(36), nullable=True)
    review_notes = Column(Text, nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    school = relationship("School", back_populates="evidence")

    __table_args__ = (
        Index("idx_evidence_school_round", "school_id", "round_number"),
        Index("idx_evidence_status", "status"),
        CheckConstraint("round_number >= 1", name="ck_evidence_round_positive"),
        CheckConstraint(
            "stage IN ('inspire', 'investigate', 'act')",
            name="ck_evidence_stage_valid"
        ),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_evidence_status_valid"
        ),
    )

    @validates(*IMMUTABLE_EVIDENCE_FIELDS)
    def validate_immutable(self, key, value):
        current = getattr(self, key)
        if current is not None and value != current:
            raise ValueError(f"Evidence.{key} cannot change after creation ({current} → {value})")
        return value

    @validates("status")
    def validate_status(self, key, value):
        value = getattr(value, "value", value)
        if value not in EVIDENCE_STATUS_TRANSITIONS:
            raise ValueError(f"Invalid evidence status: {value}")
        if self.status and value not in EVIDENCE_STATUS_TRANSITIONS[self.status]:
            raise ValueError(f"Invalid status transition: {self.status} → {value}")
        return value

    def __repr__(self):
        return f"<Evidence(id={self.id}, stage={self.stage}, round={self.round_number}, status={self.status})>"

    def to_dict(self):
        return {
            "id": self.id,
            "school_id": self.school_id,
            "submitted_by": self.submitted_by,
            "title": self.title,
            "description": self.description,
            "stage": self.stage,
            "round_number": self.round_number,
            "status": self.status,
            "visibility": self.visibility,
            "files": self.files or [],
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "reviewed_at": self.reviewed_at.isoformat() if self.reviewed_at else None,
            "reviewed_by": self.reviewed_by,
            "review_notes": self.review_notes,
        }
