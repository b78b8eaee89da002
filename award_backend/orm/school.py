"""
award_backend/orm/school.py
School award state: current stage, per-stage completion flags and round pointers
"""
from enum import Enum as PyEnum

from sqlalchemy import Column, Integer, String, Boolean, DateTime, CheckConstraint, Index
from sqlalchemy.orm import relationship

from award_backend.orm.base import Base, generate_uuid, utcnow


class ProgramStage(str, PyEnum):
    """The three sequential award stages"""
    INSPIRE = "inspire"
    INVESTIGATE = "investigate"
    ACT = "act"


VALID_PROGRESS_VALUES = (0, 33, 67, 100)


class School(Base):
    """
    A participating school and its live position in the award.

    Completion flags are monotonic within a round; only the round service
    resets them. ``progress_percentage`` is always derived from the flags.
    ``version`` is the optimistic-lock column: a concurrent writer that lost
    the race gets a StaleDataError on flush.
    """
    __tablename__ = "schools"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    country = Column(String(100), nullable=True)
    primary_contact_email = Column(String(255), nullable=True)

    current_stage = Column(String(20), nullable=False, default=ProgramStage.INSPIRE.value)
    inspire_completed = Column(Boolean, nullable=False, default=False)
    investigate_completed = Column(Boolean, nullable=False, default=False)
    act_completed = Column(Boolean, nullable=False, default=False)
    award_completed = Column(Boolean, nullable=False, default=False)
    audit_quiz_completed = Column(Boolean, nullable=False, default=False)

    current_round = Column(Integer, nullable=False, default=1)
    rounds_completed = Column(Integer, nullable=False, default=0)
    progress_percentage = Column(Integer, nullable=False, default=0)

    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    evidence = relationship("Evidence", back_populates="school", lazy="noload")
    certificates = relationship("Certificate", back_populates="school", lazy="noload")

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint("current_round >= 1", name="ck_school_round_positive"),
        CheckConstraint("rounds_completed >= 0", name="ck_school_rounds_completed_non_negative"),
        CheckConstraint(
            "current_stage IN ('inspire', 'investigate', 'act')",
            name="ck_school_stage_valid"
        ),
        CheckConstraint(
            f"progress_percentage IN {VALID_PROGRESS_VALUES}",
            name="ck_school_progress_valid"
        ),
        Index("idx_school_round", "current_round"),
    )

    def __repr__(self):
        return (
            f"<School(id={self.id}, round={self.current_round}, "
            f"stage={self.current_stage}, progress={self.progress_percentage})>"
        )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "country": self.country,
            "current_stage": self.current_stage,
            "inspire_completed": self.inspire_completed,
            "investigate_completed": self.investigate_completed,
            "act_completed": self.act_completed,
            "award_completed": self.award_completed,
            "audit_quiz_completed": self.audit_quiz_completed,
            "current_round": self.current_round,
            "rounds_completed": self.rounds_completed,
            "progress_percentage": self.progress_percentage,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
