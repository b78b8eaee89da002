"""
award_backend/tests/test_api_contracts.py
API Contract Verification Tests

These tests verify:
1. Response shapes are consistent
2. Error responses follow the standard envelope
3. HTTP status codes match the engine's error kinds
"""
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from award_backend.database import get_db
from award_backend.errors import ErrorCode
from award_backend.main import app
from award_backend.rate_limit import limiter
from award_backend.services.notification_service import get_dispatcher


@pytest_asyncio.fixture
async def client(session_factory, dispatcher):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    limiter.reset()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    await dispatcher.drain()
    app.dependency_overrides.clear()


async def create_school(client, name="Riverside School"):
    response = await client.post("/api/schools", json={"name": name, "country": "Kenya"})
    assert response.status_code == 201
    return response.json()


async def create_evidence(client, school_id, stage, count):
    ids = []
    for i in range(count):
        response = await client.post("/api/evidence", json={
            "school_id": school_id,
            "submitted_by": "staff-1",
            "stage": stage,
            "title": f"{stage} {i}",
        })
        assert response.status_code == 201
        ids.append(response.json()["id"])
    return ids


async def approve(client, evidence_ids):
    for evidence_id in evidence_ids:
        response = await client.put(
            f"/api/admin/evidence/{evidence_id}/review",
            json={"status": "approved", "reviewer_id": "reviewer-1"}
        )
        assert response.status_code == 200


def assert_error_envelope(data, code):
    assert data["success"] is False
    assert data["code"] == code
    assert "error" in data
    assert "message" in data


@pytest.mark.asyncio
class TestHealthEndpoint:

    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "FEATURE_ROUND_SCOPED_AUDIT" in data["feature_flags"]


@pytest.mark.asyncio
class TestSchoolEndpoints:

    async def test_create_and_get(self, client):
        school = await create_school(client)
        assert school["current_round"] == 1
        assert school["current_stage"] == "inspire"
        assert school["progress_percentage"] == 0

        response = await client.get(f"/api/schools/{school['id']}")
        assert response.status_code == 200
        assert response.json()["name"] == "Riverside School"

    async def test_unknown_school_is_404(self, client):
        response = await client.get("/api/schools/missing")
        assert response.status_code == 404
        assert_error_envelope(response.json(), ErrorCode.SCHOOL_NOT_FOUND)

    async def test_evidence_counts_shape(self, client):
        school = await create_school(client)
        await create_evidence(client, school["id"], "inspire", 2)

        response = await client.get(f"/api/schools/{school['id']}/evidence-counts")
        assert response.status_code == 200
        assert response.json() == {
            "inspire": {"total": 2, "approved": 0},
            "investigate": {"total": 0, "approved": 0, "has_quiz": False},
            "act": {"total": 0, "approved": 0},
        }

    async def test_start_round_before_completion_is_409(self, client):
        school = await create_school(client)
        response = await client.post(f"/api/schools/{school['id']}/start-round")
        assert response.status_code == 409
        assert_error_envelope(response.json(), ErrorCode.INELIGIBLE)

    async def test_full_round_over_http(self, client):
        school = await create_school(client)
        for stage, count in (("inspire", 3), ("investigate", 2), ("act", 3)):
            await approve(client, await create_evidence(client, school["id"], stage, count))

        state = (await client.get(f"/api/schools/{school['id']}")).json()
        assert state["award_completed"] is True
        assert state["progress_percentage"] == 100

        certificates = (await client.get(f"/api/schools/{school['id']}/certificates")).json()
        assert len(certificates) == 1
        assert certificates[0]["metadata"]["round"] == 1
        assert certificates[0]["certificate_number"].startswith("PCSR1-")

        response = await client.post(f"/api/schools/{school['id']}/start-round")
        assert response.status_code == 200
        assert response.json()["current_round"] == 2

        response = await client.post(f"/api/admin/certificates/{certificates[0]['id']}/deactivate")
        assert response.status_code == 200
        assert response.json()["is_active"] is False


@pytest.mark.asyncio
class TestReviewEndpoints:

    async def test_invalid_decision_is_400(self, client):
        school = await create_school(client)
        [evidence_id] = await create_evidence(client, school["id"], "inspire", 1)

        response = await client.put(
            f"/api/admin/evidence/{evidence_id}/review",
            json={"status": "maybe", "reviewer_id": "reviewer-1"}
        )
        assert response.status_code == 400
        assert_error_envelope(response.json(), ErrorCode.INVALID_REVIEW)

    async def test_unknown_evidence_is_404(self, client):
        response = await client.put(
            "/api/admin/evidence/missing/review",
            json={"status": "approved", "reviewer_id": "reviewer-1"}
        )
        assert response.status_code == 404
        assert_error_envelope(response.json(), ErrorCode.EVIDENCE_NOT_FOUND)

    async def test_missing_reviewer_is_422(self, client):
        response = await client.put("/api/admin/evidence/x/review", json={"status": "approved"})
        assert response.status_code == 422
        assert_error_envelope(response.json(), ErrorCode.VALIDATION_ERROR)

    async def test_bulk_review_reports_per_item(self, client):
        school = await create_school(client)
        ids = await create_evidence(client, school["id"], "inspire", 3)

        response = await client.post("/api/admin/evidence/bulk-review", json={
            "evidence_ids": ids + ["missing"],
            "status": "approved",
            "reviewer_id": "reviewer-1",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["succeeded"] == ids
        assert data["failed"][0]["id"] == "missing"
        assert data["failed"][0]["code"] == ErrorCode.EVIDENCE_NOT_FOUND

        state = (await client.get(f"/api/schools/{school['id']}")).json()
        assert state["current_stage"] == "investigate"

    async def test_audit_flow(self, client):
        school = await create_school(client)
        response = await client.post("/api/audits", json={
            "school_id": school["id"], "submitted_by": "staff-1", "responses": {"waste": "sorted"}
        })
        assert response.status_code == 201
        audit = response.json()
        assert audit["status"] == "draft"

        response = await client.put(
            f"/api/admin/audits/{audit['id']}/review",
            json={"approved": True, "reviewer_id": "reviewer-1"}
        )
        assert response.status_code == 409

        response = await client.post(f"/api/audits/{audit['id']}/submit", json={"submitted_by": "staff-1"})
        assert response.status_code == 200
        assert response.json()["status"] == "submitted"

        response = await client.put(
            f"/api/admin/audits/{audit['id']}/review",
            json={"approved": True, "reviewer_id": "reviewer-1"}
        )
        assert response.status_code == 200
        assert response.json()["status"] == "approved"

        state = (await client.get(f"/api/schools/{school['id']}")).json()
        assert state["audit_quiz_completed"] is True


@pytest.mark.asyncio
class TestAdminProgressionEndpoints:

    async def test_manual_update_derives_progress(self, client):
        school = await create_school(client)
        response = await client.patch(
            f"/api/admin/schools/{school['id']}/progression",
            json={"inspire_completed": True, "current_stage": "investigate"}
        )
        assert response.status_code == 200
        assert response.json()["progress_percentage"] == 33

    async def test_recheck_and_repair(self, client):
        school = await create_school(client)

        response = await client.post(f"/api/admin/schools/{school['id']}/recheck-progression")
        assert response.status_code == 200
        assert response.json()["changed"] is False

        response = await client.post("/api/admin/schools/repair-rounds")
        assert response.status_code == 200
        assert response.json() == {"repaired": []}
