"""
Verification Service - public, unauthenticated certificate checks.

The outcome is decided from the certificate as loaded, before anything is
written. Recording the lookup (history row + counter) happens afterwards in
its own commit and any failure there is logged and swallowed, so it can
neither change nor fail the answer. Counters move via SQL expressions and
status columns are never written, which keeps verification from racing a
concurrent revoke.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging_config import logger
from app.core.types import utcnow
from app.models import Certificate, CertificateStatus, CertificateVerification, User
from app.schemas.certificate import PublicCertificate, VerificationStatus
from app.services.hash_chain import hashes_match, recompute_hash


MESSAGES = {
    VerificationStatus.AUTHENTIC: "Certificate is authentic and valid",
    VerificationStatus.TAMPERED: "Certificate data does not match its hash and may have been tampered with",
    VerificationStatus.REVOKED: "Certificate has been revoked",
    VerificationStatus.EXPIRED: "Certificate has expired",
    VerificationStatus.INVALID: "Certificate not found or not valid",
}


@dataclass
class VerificationResult:
    verified: bool
    status: VerificationStatus
    certificate: Optional[PublicCertificate] = None

    @property
    def message(self) -> str:
        return MESSAGES[self.status]


def classify(certificate: Certificate) -> VerificationStatus:
    """Map a stored certificate to a verification outcome"""
    if not hashes_match(certificate.certificate_hash, recompute_hash(certificate)):
        return VerificationStatus.TAMPERED
    if certificate.is_valid:
        return VerificationStatus.AUTHENTIC
    if certificate.is_revoked or certificate.status == CertificateStatus.REVOKED:
        return VerificationStatus.REVOKED
    if certificate.is_expired or certificate.status == CertificateStatus.EXPIRED:
        return VerificationStatus.EXPIRED
    return VerificationStatus.INVALID


class VerificationService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def verify(
        self,
        identifier: str,
        verified_by: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> VerificationResult:
        identifier = (identifier or "").strip()
        certificate = await self.find(identifier) if identifier else None

        if certificate is None:
            logger.info(f"[Verification] No certificate for identifier {identifier[:64]!r}")
            return VerificationResult(verified=False, status=VerificationStatus.INVALID)

        status = classify(certificate)
        student = await self.db.get(User, certificate.student_id)
        public = PublicCertificate.model_validate(certificate).model_copy(
            update={"student_name": student.display_name if student else None}
        )
        result = VerificationResult(
            verified=status == VerificationStatus.AUTHENTIC,
            status=status,
            certificate=public,
        )

        # A failed history write rolls back and expires the loaded row
        certificate_pk = certificate.id
        certificate_id = certificate.certificate_id
        await self._record_verification(certificate_pk, certificate_id, verified_by, ip_address, user_agent)

        if status == VerificationStatus.TAMPERED:
            logger.warning(f"[Verification] Hash mismatch for {certificate_id}")
        logger.log_certificate_event(certificate_id, "verified", outcome=status.value)
        return result

    async def find(self, identifier: str) -> Optional[Certificate]:
        """Look up by certificate id, then content hash, then verification code"""
        for column, value in (
            (Certificate.certificate_id, identifier),
            (Certificate.certificate_hash, identifier.lower()),
            (Certificate.verification_code, identifier.upper()),
        ):
            result = await self.db.execute(select(Certificate).where(column == value))
            certificate = result.scalar_one_or_none()
            if certificate is not None:
                return certificate
        return None

    async def _record_verification(
        self,
        certificate_pk: str,
        certificate_id: str,
        verified_by: Optional[str],
        ip_address: Optional[str],
        user_agent: Optional[str],
    ) -> None:
        now = utcnow()
        try:
            self.db.add(CertificateVerification(
                certificate_pk=certificate_pk,
                verified_at=now,
                verified_by=verified_by or "public",
                ip_address=ip_address,
                user_agent=user_agent[:500] if user_agent else None,
            ))
            await self.db.execute(
                update(Certificate)
                .where(Certificate.id == certificate_pk)
                .values(
                    verification_count=Certificate.verification_count + 1,
                    last_verified_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.log_error_with_context(e, "recording certificate verification", certificate_ref=certificate_id)
