"""
Unit Tests for activity review endpoints
"""
import pytest

from app.models import ActivityStatus

API = "/api/v1/activities"


class TestActivityReview:
    @pytest.mark.asyncio
    async def test_pending_list(self, client, faculty_headers, make_activity, student_user):
        pending = await make_activity(student_user, status=ActivityStatus.PENDING)

        response = await client.get(f"{API}/pending", headers=faculty_headers)

        assert response.status_code == 200
        assert [a["id"] for a in response.json()] == [pending.id]

    @pytest.mark.asyncio
    async def test_approved_list_excludes_certified(self, client, faculty_headers, approved_activity, make_activity, student_user):
        other = await make_activity(student_user)
        await client.post(f"/api/v1/certificates/issue/{approved_activity.id}", headers=faculty_headers)

        response = await client.get(f"{API}/approved", headers=faculty_headers)

        assert [a["id"] for a in response.json()] == [other.id]

    @pytest.mark.asyncio
    async def test_approve_then_issue(self, client, faculty_headers, make_activity, student_user):
        """Test approval makes the activity issuable"""
        activity = await make_activity(student_user, status=ActivityStatus.PENDING)

        response = await client.put(
            f"{API}/{activity.id}/approve", json={"comment": "Verified"}, headers=faculty_headers
        )
        assert response.status_code == 200
        assert response.json()["status"] == "approved"
        assert response.json()["facultyComment"] == "Verified"

        issued = await client.post(f"/api/v1/certificates/issue/{activity.id}", headers=faculty_headers)
        assert issued.status_code == 200

    @pytest.mark.asyncio
    async def test_reject(self, client, admin_headers, make_activity, student_user):
        activity = await make_activity(student_user, status=ActivityStatus.PENDING)

        response = await client.put(
            f"{API}/{activity.id}/reject", json={"reason": "Certificate of participation only"}, headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()["status"] == "rejected"
        assert response.json()["rejectionReason"] == "Certificate of participation only"

    @pytest.mark.asyncio
    async def test_reject_requires_reason(self, client, faculty_headers, make_activity, student_user):
        activity = await make_activity(student_user, status=ActivityStatus.PENDING)

        response = await client.put(f"{API}/{activity.id}/reject", json={}, headers=faculty_headers)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_student_forbidden(self, client, student_headers):
        response = await client.get(f"{API}/pending", headers=student_headers)

        assert response.status_code == 403
