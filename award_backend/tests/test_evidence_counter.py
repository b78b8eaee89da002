"""
Unit Tests for the Evidence Counter

Counting is a pure function of the stored rows and the school's live round.
"""
from types import SimpleNamespace

from award_backend.services.evidence_counter import (
    EvidenceCounts, StageCount, audit_counts, count_evidence
)


def row(stage, status="approved", round_number=1):
    return SimpleNamespace(stage=stage, status=status, round_number=round_number)


def audit(status="approved", round_number=1):
    return SimpleNamespace(status=status, round_number=round_number)


class TestCountEvidence:

    def test_empty_input_counts_zero(self):
        counts = count_evidence(1, [])
        assert counts == EvidenceCounts()
        assert counts.investigate_item_count == 0

    def test_totals_and_approved_per_stage(self):
        rows = [
            row("inspire"), row("inspire"), row("inspire", "pending"),
            row("investigate", "rejected"), row("investigate"),
            row("act", "pending"),
        ]
        counts = count_evidence(1, rows)

        assert counts.inspire == StageCount(total=3, approved=2)
        assert counts.investigate == StageCount(total=2, approved=1)
        assert counts.act == StageCount(total=1, approved=0)

    def test_rows_from_other_rounds_are_ignored(self):
        rows = [row("inspire", round_number=1)] * 5 + [row("inspire", round_number=2)]
        counts = count_evidence(2, rows)

        assert counts.inspire == StageCount(total=1, approved=1)

    def test_order_of_rows_does_not_matter(self):
        rows = [row("inspire"), row("act", "pending"), row("investigate"), row("inspire", "rejected")]
        assert count_evidence(1, rows) == count_evidence(1, list(reversed(rows)))

    def test_approved_audit_adds_one_investigate_item(self):
        counts = count_evidence(1, [row("investigate")], approved_audit=audit())

        assert counts.has_quiz is True
        assert counts.investigate.approved == 1
        assert counts.investigate_item_count == 2

    def test_audit_from_earlier_round_counts_by_default(self):
        counts = count_evidence(2, [], approved_audit=audit(round_number=1))
        assert counts.has_quiz is True

    def test_round_scoped_audit_ignores_earlier_round(self):
        counts = count_evidence(2, [], approved_audit=audit(round_number=1), round_scoped_audit=True)
        assert counts.has_quiz is False

        counts = count_evidence(2, [], approved_audit=audit(round_number=2), round_scoped_audit=True)
        assert counts.has_quiz is True


class TestAuditCounts:

    def test_missing_audit(self):
        assert audit_counts(None, 1) is False

    def test_only_approved_audit_counts(self):
        assert audit_counts(audit("submitted"), 1) is False
        assert audit_counts(audit("rejected"), 1) is False
        assert audit_counts(audit("approved"), 1) is True


class TestEvidenceCountsShape:

    def test_to_dict_shape(self):
        counts = EvidenceCounts(
            inspire=StageCount(3, 3),
            investigate=StageCount(2, 1),
            act=StageCount(0, 0),
            has_quiz=True,
        )
        assert counts.to_dict() == {
            "inspire": {"total": 3, "approved": 3},
            "investigate": {"total": 2, "approved": 1, "has_quiz": True},
            "act": {"total": 0, "approved": 0},
        }

    def test_achievements_snapshot(self):
        counts = EvidenceCounts(StageCount(4, 3), StageCount(2, 2), StageCount(5, 3))
        assert counts.achievements() == {"inspire": 3, "investigate": 2, "act": 3}

    def test_for_stage(self):
        counts = EvidenceCounts(act=StageCount(1, 1))
        assert counts.for_stage("act") == StageCount(1, 1)
