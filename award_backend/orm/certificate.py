"""
award_backend/orm/certificate.py
Award completion certificates, issued once per (school, stage, round)
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship

from award_backend.core.db_types import UniversalJSON
from award_backend.orm.base import Base, generate_uuid, utcnow


class Certificate(Base):
    """
    Durable record of award completion.

    Created once by the engine and never mutated afterwards, except for
    administrative soft deactivation (``is_active``/``deactivated_at``).
    The unique constraint backs up the check-then-insert in the issuer.
    """
    __tablename__ = "certificates"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    school_id = Column(
        String(36),
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    stage = Column(String(20), nullable=False)
    round_number = Column(Integer, nullable=False, default=1)
    certificate_number = Column(String(64), nullable=False, unique=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    issued_by = Column(String(36), nullable=True)  # NULL when issued by the engine
    completed_date = Column(DateTime, default=utcnow, nullable=False)

    # "metadata" is reserved on declarative classes
    certificate_metadata = Column("metadata", UniversalJSON, nullable=False, default=dict)

    is_active = Column(Boolean, nullable=False, default=True)
    deactivated_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    school = relationship("School", back_populates="certificates")

    __table_args__ = (
        UniqueConstraint("school_id", "stage", "round_number", name="uq_certificate_school_stage_round"),
        Index("idx_certificate_school_stage", "school_id", "stage"),
    )

    def __repr__(self):
        return f"<Certificate(number={self.certificate_number}, school={self.school_id}, round={self.round_number})>"

    def to_dict(self):
        return {
            "id": self.id,
            "school_id": self.school_id,
            "stage": self.stage,
            "round_number": self.round_number,
            "certificate_number": self.certificate_number,
            "title": self.title,
            "description": self.description,
            "issued_by": self.issued_by,
            "completed_date": self.completed_date.isoformat() if self.completed_date else None,
            "metadata": self.certificate_metadata or {},
            "is_active": self.is_active,
            "deactivated_at": self.deactivated_at.isoformat() if self.deactivated_at else None,
        }
