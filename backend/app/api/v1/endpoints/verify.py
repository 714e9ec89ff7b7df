"""
Public certificate verification.

Mounted at /verify/{identifier} (the link embedded in every QR code) and
reused by /api/v1/certificates/verify/{identifier}. No authentication; a
bearer token, when present, only labels the verification history entry.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request

from app.api.v1.dependencies import get_verification_service
from app.core.rate_limiter import verify_rate_limit
from app.modules.auth.dependencies import get_optional_verifier
from app.schemas.certificate import VerificationResponse
from app.services.verification_service import VerificationService

router = APIRouter(tags=["Verification"])


def client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


async def run_verification(
    identifier: str,
    request: Request,
    verifier: Optional[str],
    service: VerificationService,
) -> VerificationResponse:
    result = await service.verify(
        identifier,
        verified_by=verifier,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return VerificationResponse(
        verified=result.verified,
        status=result.status,
        message=result.message,
        certificate=result.certificate,
    )


@router.get("/verify/{identifier}", response_model=VerificationResponse)
@verify_rate_limit()
async def verify(
    request: Request,
    identifier: str,
    verifier: Optional[str] = Depends(get_optional_verifier),
    service: VerificationService = Depends(get_verification_service),
):
    """Verify a certificate by id, content hash or verification code"""
    return await run_verification(identifier, request, verifier, service)
