"""
Certificate API Endpoints

Provides endpoints for:
- Two-phase issuance (generate draft, submit draft) and single-step issue
- Email resend and failed delivery listing
- Revocation
- PDF download / inline view with counters
- Per-certificate and overall statistics, chain inspection
- Public verification (also mounted at /verify)
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import FileResponse

from app.api.v1.dependencies import get_certificate_service, get_delivery_service, get_verification_service
from app.api.v1.endpoints.verify import run_verification
from app.core.logging_config import logger
from app.core.rate_limiter import verify_rate_limit
from app.models.user import User
from app.modules.auth.dependencies import get_current_user, get_current_faculty, get_optional_verifier
from app.schemas.certificate import (
    ActivitySummary,
    CertificateStatsResponse,
    CertificateSummary,
    ChainBlock,
    ChainResponse,
    DraftCertificate,
    IssuanceResponse,
    OverallStatsResponse,
    ResendResponse,
    RevokeRequest,
    VerificationResponse,
)
from app.services.certificate_service import CertificateService, IssuanceOutcome
from app.services.delivery_service import DeliveryService
from app.services.verification_service import VerificationService

router = APIRouter(prefix="/certificates", tags=["Certificates"])

HTTP_MULTI_STATUS = 207


def _issuance_response(outcome: IssuanceOutcome, response: Response) -> IssuanceResponse:
    certificate = outcome.certificate
    if not outcome.email_sent:
        # Certificate is durable; only the email needs attention
        response.status_code = HTTP_MULTI_STATUS
    return IssuanceResponse(
        success=outcome.success,
        certificate_saved=True,
        certificate_id=certificate.certificate_id,
        block_number=certificate.block_number,
        certificate_hash=certificate.certificate_hash,
        verification_code=certificate.verification_code,
        email_sent=outcome.email_sent,
        message_id=outcome.message_id,
        error=outcome.error,
    )


# ==================== Issuance ====================

@router.post("/generate/{activity_id}", response_model=DraftCertificate)
async def generate_certificate(
    activity_id: str,
    current_user: User = Depends(get_current_faculty),
    service: CertificateService = Depends(get_certificate_service),
):
    """Render the certificate PDF for review. Nothing is saved in the database."""
    return await service.generate_draft(activity_id, current_user)


@router.post("/submit/{activity_id}", response_model=IssuanceResponse)
async def submit_certificate(
    activity_id: str,
    draft: DraftCertificate,
    response: Response,
    current_user: User = Depends(get_current_faculty),
    service: CertificateService = Depends(get_certificate_service),
):
    """
    Persist a reviewed draft and email it to the student.

    Returns 200 when the email went out and 207 when the certificate was
    saved but delivery failed (use /resend to retry).
    """
    outcome = await service.submit_draft(activity_id, draft, current_user)
    return _issuance_response(outcome, response)


@router.post("/issue/{activity_id}", response_model=IssuanceResponse)
async def issue_certificate(
    activity_id: str,
    response: Response,
    current_user: User = Depends(get_current_faculty),
    service: CertificateService = Depends(get_certificate_service),
):
    """Generate, persist and email in one call"""
    outcome = await service.issue(activity_id, current_user)
    return _issuance_response(outcome, response)


@router.post("/resend/{certificate_id}", response_model=ResendResponse)
async def resend_certificate(
    certificate_id: str,
    current_user: User = Depends(get_current_faculty),
    delivery: DeliveryService = Depends(get_delivery_service),
):
    """Re-send a stored certificate without regenerating it"""
    result, resend_count = await delivery.resend(certificate_id, current_user)
    return ResendResponse(
        success=result.success,
        certificate_id=certificate_id,
        email_sent=result.success,
        message_id=result.message_id,
        error=result.error,
        resend_count=resend_count,
    )


@router.post("/revoke/{certificate_id}", response_model=CertificateSummary)
async def revoke_certificate(
    certificate_id: str,
    body: RevokeRequest,
    current_user: User = Depends(get_current_faculty),
    service: CertificateService = Depends(get_certificate_service),
):
    certificate = await service.revoke(certificate_id, body.reason, current_user)
    return CertificateSummary.model_validate(certificate)


# ==================== Listings and statistics ====================

@router.get("/my-certificates", response_model=List[CertificateSummary])
async def my_certificates(
    current_user: User = Depends(get_current_user),
    service: CertificateService = Depends(get_certificate_service),
):
    certificates = await service.list_for_student(str(current_user.id))
    return [CertificateSummary.model_validate(c) for c in certificates]


@router.get("/failed-emails", response_model=List[ActivitySummary])
async def failed_emails(
    current_user: User = Depends(get_current_faculty),
    service: CertificateService = Depends(get_certificate_service),
):
    """Certified activities whose email delivery failed"""
    activities = await service.list_failed_emails(current_user)
    return [ActivitySummary.model_validate(a) for a in activities]


@router.get("/stats", response_model=OverallStatsResponse)
async def overall_stats(
    current_user: User = Depends(get_current_faculty),
    service: CertificateService = Depends(get_certificate_service),
):
    return OverallStatsResponse(**await service.overall_stats(current_user))


@router.get("/stats/{certificate_id}", response_model=CertificateStatsResponse)
async def certificate_stats(
    certificate_id: str,
    current_user: User = Depends(get_current_user),
    service: CertificateService = Depends(get_certificate_service),
):
    return CertificateStatsResponse(**await service.certificate_stats(certificate_id, current_user))


@router.get("/chain/{student_id}", response_model=ChainResponse)
async def student_chain(
    student_id: str,
    current_user: User = Depends(get_current_faculty),
    service: CertificateService = Depends(get_certificate_service),
):
    """List a student's certificates in block order and check the chain links"""
    certificates, errors = await service.chain_for_student(student_id, current_user)
    if errors:
        logger.warning(f"[Certificates] Chain for student {student_id} has {len(errors)} problem(s)")
    return ChainResponse(
        student_id=student_id,
        length=len(certificates),
        valid=not errors,
        errors=errors,
        blocks=[ChainBlock.model_validate(c) for c in certificates],
    )


# ==================== Files ====================

@router.get("/download/{certificate_id}")
async def download_certificate(
    certificate_id: str,
    current_user: User = Depends(get_current_user),
    service: CertificateService = Depends(get_certificate_service),
):
    certificate, path = await service.record_download(certificate_id, current_user)
    return FileResponse(
        path,
        media_type="application/pdf",
        filename=certificate.pdf_filename,
    )


@router.get("/view/{certificate_id}")
async def view_certificate(
    certificate_id: str,
    current_user: User = Depends(get_current_user),
    service: CertificateService = Depends(get_certificate_service),
):
    certificate, path = await service.record_view(certificate_id, current_user)
    return FileResponse(
        path,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{certificate.pdf_filename}"'},
    )


# ==================== Public verification ====================

@router.get("/verify/{identifier}", response_model=VerificationResponse)
@verify_rate_limit()
async def verify_certificate(
    request: Request,
    identifier: str,
    verifier: Optional[str] = Depends(get_optional_verifier),
    service: VerificationService = Depends(get_verification_service),
):
    """Public: look up by certificate id, hash or verification code"""
    return await run_verification(identifier, request, verifier, service)
