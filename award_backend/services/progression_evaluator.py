"""
Progression Evaluator

Pure state machine deciding stage and award transitions from counter output.

Rules run once per pass, in fixed order; later rules see flags set by earlier
ones in the same pass:

    1. Inspire      approved >= 3                      -> investigate
    2. Investigate  approved + (audit ? 1 : 0) >= 2    -> act, audit quiz done
    3. Act          approved >= 3                      -> award completed,
                                                          rounds_completed + 1
    4. Progress     re-derived from the three flags

Completion flags guard every rule, so re-running with unchanged counts yields
an empty update. The stage never moves back to one already completed.
"""
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict

from award_backend.orm.school import ProgramStage
from award_backend.services.evidence_counter import EvidenceCounts

INSPIRE_THRESHOLD = 3
INVESTIGATE_THRESHOLD = 2
ACT_THRESHOLD = 3

# Rounds whose Act completion makes a certificate due
CERTIFICATE_ROUNDS = frozenset({1})


@dataclass(frozen=True)
class SchoolProgressState:
    """Snapshot of the School fields the evaluator reads and writes."""
    current_stage: str = ProgramStage.INSPIRE.value
    inspire_completed: bool = False
    investigate_completed: bool = False
    act_completed: bool = False
    award_completed: bool = False
    audit_quiz_completed: bool = False
    current_round: int = 1
    rounds_completed: int = 0
    progress_percentage: int = 0

    @classmethod
    def from_school(cls, school: Any) -> "SchoolProgressState":
        values = {}
        for f in fields(cls):
            value = getattr(school, f.name, None)
            if value is not None:
                values[f.name] = getattr(value, "value", value)
        return cls(**values)

    def apply(self, updates: Dict[str, Any]) -> "SchoolProgressState":
        return replace(self, **updates)


@dataclass
class ProgressionOutcome:
    """Partial School update plus whether a certificate is now due."""
    updates: Dict[str, Any] = field(default_factory=dict)
    certificate_due: bool = False
    stages_completed: list = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.updates)

    @property
    def award_just_completed(self) -> bool:
        return ProgramStage.ACT.value in self.stages_completed


def progress_for(inspire_completed: bool, investigate_completed: bool, act_completed: bool) -> int:
    """Progress percentage from the completion flags; furthest stage wins."""
    if act_completed:
        return 100
    if investigate_completed:
        return 67
    if inspire_completed:
        return 33
    return 0


class _UpdateBuilder:
    """Accumulates only the fields whose value actually changes."""

    def __init__(self, state: SchoolProgressState):
        self.state = state
        self.updates: Dict[str, Any] = {}

    def get(self, name: str) -> Any:
        if name in self.updates:
            return self.updates[name]
        return getattr(self.state, name)

    def set(self, name: str, value: Any) -> None:
        if getattr(self.state, name) == value:
            self.updates.pop(name, None)
        else:
            self.updates[name] = value


def evaluate_progression(
    state: SchoolProgressState,
    counts: EvidenceCounts,
    certificate_every_round: bool = False,
) -> ProgressionOutcome:
    """
    Decide the School update implied by ``counts``.

    Args:
        state: Current school snapshot
        counts: Evidence Counter output for ``state.current_round``
        certificate_every_round: Make a certificate due on Act completion in
            any round instead of round 1 only

    Returns:
        ProgressionOutcome; ``updates`` is empty when nothing changes
    """
    builder = _UpdateBuilder(state)
    outcome = ProgressionOutcome()

    if counts.inspire.approved >= INSPIRE_THRESHOLD and not builder.get("inspire_completed"):
        builder.set("inspire_completed", True)
        if not builder.get("investigate_completed"):
            builder.set("current_stage", ProgramStage.INVESTIGATE.value)
        outcome.stages_completed.append(ProgramStage.INSPIRE.value)

    if counts.investigate_item_count >= INVESTIGATE_THRESHOLD and not builder.get("investigate_completed"):
        builder.set("investigate_completed", True)
        builder.set("current_stage", ProgramStage.ACT.value)
        builder.set("audit_quiz_completed", True)
        outcome.stages_completed.append(ProgramStage.INVESTIGATE.value)

    if counts.act.approved >= ACT_THRESHOLD and not builder.get("act_completed"):
        builder.set("act_completed", True)
        builder.set("award_completed", True)
        builder.set("rounds_completed", state.rounds_completed + 1)
        outcome.stages_completed.append(ProgramStage.ACT.value)
        outcome.certificate_due = certificate_every_round or state.current_round in CERTIFICATE_ROUNDS

    builder.set(
        "progress_percentage",
        progress_for(
            builder.get("inspire_completed"),
            builder.get("investigate_completed"),
            builder.get("act_completed"),
        ),
    )

    outcome.updates = builder.updates
    return outcome
