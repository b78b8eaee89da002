"""
Submission Tests

Evidence and audit creation, round stamping and immutable ownership fields.
"""
import pytest

from award_backend.exceptions import (
    AuditNotFoundError, EvidenceNotFoundError, IneligibleError,
    InvalidSubmissionError, SchoolNotFoundError
)
from award_backend.services import submission_service
from award_backend.services.review_service import review_evidence


@pytest.mark.asyncio
class TestSubmitEvidence:

    async def test_creates_pending_evidence_for_current_round(self, db_session, school):
        evidence = await submission_service.submit_evidence(
            db_session, school.id, "staff-1", "investigate", "Energy audit photos",
            description="Meter readings", files=[{"name": "meter.jpg", "size": 1024}]
        )

        assert evidence.status == "pending"
        assert evidence.round_number == 1
        assert evidence.stage == "investigate"
        assert evidence.visibility == "private"
        assert evidence.files == [{"name": "meter.jpg", "size": 1024}]

    async def test_unknown_school(self, db_session):
        with pytest.raises(SchoolNotFoundError):
            await submission_service.submit_evidence(db_session, "missing", "staff-1", "inspire", "x")

    async def test_unknown_stage(self, db_session, school):
        with pytest.raises(InvalidSubmissionError):
            await submission_service.submit_evidence(db_session, school.id, "staff-1", "celebrate", "x")

    async def test_ownership_fields_are_immutable(self, db_session, school):
        evidence = await submission_service.submit_evidence(db_session, school.id, "staff-1", "inspire", "x")

        with pytest.raises(ValueError):
            evidence.stage = "act"
        with pytest.raises(ValueError):
            evidence.round_number = 2
        with pytest.raises(ValueError):
            evidence.school_id = "another-school"

    async def test_reviewed_evidence_cannot_return_to_pending(self, db_session, school):
        evidence = await submission_service.submit_evidence(db_session, school.id, "staff-1", "inspire", "x")
        await review_evidence(db_session, evidence.id, "approved", "reviewer-1")

        with pytest.raises(ValueError):
            evidence.status = "pending"


@pytest.mark.asyncio
class TestUpdateEvidenceFiles:

    async def test_replaces_files_and_keeps_review(self, db_session, school):
        evidence = await submission_service.submit_evidence(db_session, school.id, "staff-1", "inspire", "x")
        await review_evidence(db_session, evidence.id, "approved", "reviewer-1", notes="Great")

        updated = await submission_service.update_evidence_files(
            db_session, evidence.id, [{"name": "poster.pdf"}]
        )

        assert updated.files == [{"name": "poster.pdf"}]
        assert updated.status == "approved"
        assert updated.review_notes == "Great"

    async def test_unknown_evidence(self, db_session):
        with pytest.raises(EvidenceNotFoundError):
            await submission_service.update_evidence_files(db_session, "missing", [])


@pytest.mark.asyncio
class TestAuditLifecycle:

    async def test_draft_then_submit(self, db_session, school):
        audit = await submission_service.create_audit(db_session, school.id, "staff-1", {"q1": "solar"})
        assert audit.status == "draft"
        assert audit.round_number == 1
        assert audit.submitted_at is None

        submitted = await submission_service.submit_audit(db_session, audit.id, "staff-2")
        assert submitted.status == "submitted"
        assert submitted.submitted_by == "staff-2"
        assert submitted.submitted_at is not None
        assert submitted.responses == {"q1": "solar"}

    async def test_submit_twice_is_ineligible(self, db_session, school):
        audit = await submission_service.create_audit(db_session, school.id, "staff-1")
        await submission_service.submit_audit(db_session, audit.id, "staff-1")

        with pytest.raises(IneligibleError):
            await submission_service.submit_audit(db_session, audit.id, "staff-1")

    async def test_unknown_audit(self, db_session):
        with pytest.raises(AuditNotFoundError):
            await submission_service.submit_audit(db_session, "missing", "staff-1")

    async def test_audit_for_unknown_school(self, db_session):
        with pytest.raises(SchoolNotFoundError):
            await submission_service.create_audit(db_session, "missing", "staff-1")
