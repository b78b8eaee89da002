"""
Evidence Counter

Pure recompute of a school's per-stage evidence totals for its live round.
Counting from scratch on every call (rather than maintaining counters) keeps
the result a function of stored rows only; a new round starts from zero simply
because its rows carry a new round number.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional

from award_backend.orm.school import ProgramStage
from award_backend.orm.evidence import EvidenceStatus
from award_backend.orm.audit_response import AuditStatus


@dataclass(frozen=True)
class StageCount:
    """Evidence submitted and approved for one stage."""
    total: int = 0
    approved: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"total": self.total, "approved": self.approved}


@dataclass(frozen=True)
class EvidenceCounts:
    """Counter output for all three stages of the current round."""
    inspire: StageCount = field(default_factory=StageCount)
    investigate: StageCount = field(default_factory=StageCount)
    act: StageCount = field(default_factory=StageCount)
    has_quiz: bool = False

    @property
    def investigate_item_count(self) -> int:
        """Approved Investigate evidence plus the approved audit (weight 1)."""
        return self.investigate.approved + (1 if self.has_quiz else 0)

    def for_stage(self, stage: str) -> StageCount:
        return getattr(self, ProgramStage(stage).value)

    def achievements(self) -> Dict[str, int]:
        """Approved counts snapshot stored on certificates."""
        return {
            "inspire": self.inspire.approved,
            "investigate": self.investigate.approved,
            "act": self.act.approved,
        }

    def to_dict(self) -> Dict[str, Any]:
        investigate = self.investigate.to_dict()
        investigate["has_quiz"] = self.has_quiz
        return {
            "inspire": self.inspire.to_dict(),
            "investigate": investigate,
            "act": self.act.to_dict(),
        }


def _value(raw: Any) -> Any:
    return getattr(raw, "value", raw)


def audit_counts(approved_audit: Optional[Any], current_round: int, round_scoped: bool = False) -> bool:
    """
    Decide whether the school's audit counts toward Investigate.

    Without round scoping an audit approved in any earlier round still counts.
    """
    if approved_audit is None:
        return False
    if _value(approved_audit.status) != AuditStatus.APPROVED.value:
        return False
    if round_scoped and approved_audit.round_number != current_round:
        return False
    return True


def count_evidence(
    current_round: int,
    evidence_rows: Iterable[Any],
    approved_audit: Optional[Any] = None,
    round_scoped_audit: bool = False,
) -> EvidenceCounts:
    """
    Compute per-stage ``{total, approved}`` for ``current_round``.

    Args:
        current_round: The school's live round number
        evidence_rows: Every evidence row for the school, any round, any order
        approved_audit: The school's most recently approved audit, if any
        round_scoped_audit: Only count an audit approved for ``current_round``

    Returns:
        EvidenceCounts; rows from other rounds are ignored entirely
    """
    totals = {stage.value: 0 for stage in ProgramStage}
    approved = {stage.value: 0 for stage in ProgramStage}

    for row in evidence_rows:
        if row.round_number != current_round:
            continue
        stage = _value(row.stage)
        if stage not in totals:
            continue
        totals[stage] += 1
        if _value(row.status) == EvidenceStatus.APPROVED.value:
            approved[stage] += 1

    return EvidenceCounts(
        inspire=StageCount(totals["inspire"], approved["inspire"]),
        investigate=StageCount(totals["investigate"], approved["investigate"]),
        act=StageCount(totals["act"], approved["act"]),
        has_quiz=audit_counts(approved_audit, current_round, round_scoped_audit),
    )
