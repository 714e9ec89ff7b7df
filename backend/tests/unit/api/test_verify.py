"""
Unit Tests for public verification endpoints
Tests for: /verify/{identifier} and /api/v1/certificates/verify/{identifier}
"""
import pytest
from sqlalchemy import select, update

from app.models import Certificate, CertificateVerification


@pytest.fixture
async def issued(client, faculty_headers, approved_activity) -> dict:
    response = await client.post(f"/api/v1/certificates/issue/{approved_activity.id}", headers=faculty_headers)
    return response.json()


class TestPublicVerify:
    """Test the QR code link"""

    @pytest.mark.asyncio
    async def test_verify_authentic(self, client, issued, student_user):
        response = await client.get(f"/verify/{issued['certificateId']}")

        assert response.status_code == 200
        data = response.json()
        assert data["verified"] is True
        assert data["status"] == "authentic"
        assert data["message"] == "Certificate is authentic and valid"
        certificate = data["certificate"]
        assert certificate["certificateId"] == issued["certificateId"]
        assert certificate["studentName"] == student_user.full_name
        assert certificate["certificateHash"] == issued["certificateHash"]
        assert "pdfPath" not in certificate
        assert "verificationCode" not in certificate

    @pytest.mark.asyncio
    async def test_verify_by_code_and_hash(self, client, issued):
        by_code = await client.get(f"/verify/{issued['verificationCode']}")
        by_hash = await client.get(f"/verify/{issued['certificateHash']}")

        assert by_code.json()["status"] == "authentic"
        assert by_hash.json()["status"] == "authentic"

    @pytest.mark.asyncio
    async def test_verify_unknown_is_200_invalid(self, client):
        """Test unknown ids are an answer, not an error"""
        response = await client.get("/verify/CERT-20990101-FFFFFFFF")

        assert response.status_code == 200
        data = response.json()
        assert data["verified"] is False
        assert data["status"] == "invalid"
        assert data["certificate"] is None

    @pytest.mark.asyncio
    async def test_verify_tampered(self, client, db_session, issued):
        await db_session.execute(
            update(Certificate)
            .where(Certificate.certificate_id == issued["certificateId"])
            .values(title="Forged Title")
        )
        await db_session.commit()
        db_session.expire_all()

        response = await client.get(f"/verify/{issued['certificateId']}")

        data = response.json()
        assert data["verified"] is False
        assert data["status"] == "tampered"

    @pytest.mark.asyncio
    async def test_verify_revoked(self, client, faculty_headers, issued):
        await client.post(
            f"/api/v1/certificates/revoke/{issued['certificateId']}",
            json={"reason": "Duplicate"},
            headers=faculty_headers,
        )

        response = await client.get(f"/verify/{issued['certificateId']}")

        assert response.json()["status"] == "revoked"

    @pytest.mark.asyncio
    async def test_verify_records_client(self, client, db_session, issued):
        await client.get(
            f"/verify/{issued['certificateId']}",
            headers={"X-Forwarded-For": "198.51.100.7, 10.0.0.1", "User-Agent": "qr-scanner/1.0"},
        )

        entry = (await db_session.execute(select(CertificateVerification))).scalar_one()
        assert entry.ip_address == "198.51.100.7"
        assert entry.user_agent == "qr-scanner/1.0"
        assert entry.verified_by == "public"


class TestApiVerify:
    """Test the API-prefixed verification route"""

    @pytest.mark.asyncio
    async def test_verify_under_api_prefix(self, client, issued):
        response = await client.get(f"/api/v1/certificates/verify/{issued['certificateId']}")

        assert response.status_code == 200
        assert response.json()["status"] == "authentic"

    @pytest.mark.asyncio
    async def test_anonymous_verifier_under_api_prefix(self, client, db_session, issued):
        """Test no token records the lookup as public"""
        response = await client.get(f"/api/v1/certificates/verify/{issued['certificateId']}")

        assert response.status_code == 200
        entry = (await db_session.execute(select(CertificateVerification))).scalar_one()
        assert entry.verified_by == "public"

    @pytest.mark.asyncio
    async def test_authenticated_verifier_recorded(self, client, db_session, issued, faculty_headers, faculty_user):
        await client.get(f"/verify/{issued['certificateId']}", headers=faculty_headers)

        entry = (await db_session.execute(select(CertificateVerification))).scalar_one()
        assert entry.verified_by == faculty_user.email

    @pytest.mark.asyncio
    async def test_bad_token_still_verifies(self, client, issued):
        response = await client.get(
            f"/verify/{issued['certificateId']}", headers={"Authorization": "Bearer garbage"}
        )

        assert response.status_code == 200
        assert response.json()["status"] == "authentic"

    @pytest.mark.asyncio
    async def test_counter_increments(self, client, db_session, issued):
        for _ in range(2):
            await client.get(f"/verify/{issued['certificateId']}")

        certificate = (await db_session.execute(
            select(Certificate).where(Certificate.certificate_id == issued["certificateId"])
        )).scalar_one()
        await db_session.refresh(certificate)
        assert certificate.verification_count == 2
