"""
Delivery Service - emails issued certificates and tracks the outcome on the activity.

Delivery always runs after the certificate and the activity update are
committed. Its own writes go through a separate UPDATE and commit, so a slow
or failing mail provider never touches the issued certificate.

Email status transitions:
    pending -> sent
    pending -> failed -> (resend) -> sent | failed

email_resend_count goes up by one when the first delivery fails and by one
for every resend, whatever the resend outcome.
"""

import asyncio
from typing import Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    ArtifactMissingError,
    AuthorizationError,
    ActivityNotFoundError,
    CertificateNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from app.core.logging_config import logger
from app.core.types import utcnow
from app.models import Activity, Certificate, EmailStatus, User
from app.services.certificate_renderer import CertificateFields
from app.services.certificate_storage import CertificateStorage
from app.services.email_service import DeliveryResult, Mailer

ARTIFACT_MISSING_REASON = "Certificate file not found on storage"


def fields_for(certificate: Certificate, student: User) -> CertificateFields:
    """Mail/print fields for a persisted certificate"""
    level = certificate.achievement_level
    return CertificateFields(
        certificate_id=certificate.certificate_id,
        student_name=student.display_name,
        title=certificate.title,
        verification_url=certificate.verification_url,
        event_date=certificate.event_date,
        organizing_body=certificate.organizing_body,
        achievement_level=level.value if level else None,
        roll_number=student.roll_number,
        department=student.department,
        issued_on=certificate.issued_at,
    )


class DeliveryService:
    """Sends certificates by email and records delivery state on the activity"""

    def __init__(self, db: AsyncSession, mailer: Mailer, storage: CertificateStorage):
        self.db = db
        self.mailer = mailer
        self.storage = storage

    async def deliver(
        self,
        certificate: Certificate,
        activity: Activity,
        student: User,
        is_resend: bool = False,
    ) -> DeliveryResult:
        """Email the stored PDF; never raises for provider failures"""
        pdf_bytes = await self.storage.read(certificate.certificate_id)
        if pdf_bytes is None:
            result = DeliveryResult(success=False, error=ARTIFACT_MISSING_REASON)
        else:
            result = await self._send(certificate, student, pdf_bytes)

        await self._record_outcome(activity, result, increment_resend=is_resend or not result.success)

        if result.success:
            logger.log_certificate_event(
                certificate.certificate_id, "email_sent",
                message_id=result.message_id, resend=is_resend,
            )
        else:
            logger.warning(
                f"[Delivery] Email for {certificate.certificate_id} failed: {result.error}",
                extra={"certificate_ref": certificate.certificate_id, "resend": is_resend},
            )
        return result

    async def resend(self, certificate_id: str, actor: User) -> Tuple[DeliveryResult, int]:
        """
        Re-deliver a persisted certificate from stored state only.

        Returns the delivery result and the activity's resend count after
        this attempt. A missing PDF is recorded as a failed delivery and then
        raised as ArtifactMissingError.
        """
        if actor is None or not actor.is_staff:
            raise AuthorizationError("Only faculty or admin can resend certificates")

        certificate = await self._get_certificate(certificate_id)
        if certificate.is_revoked:
            raise ValidationError(f"Certificate '{certificate_id}' has been revoked", field="certificate_id")

        activity = await self.db.get(Activity, certificate.activity_id)
        if activity is None:
            raise ActivityNotFoundError(certificate.activity_id)
        student = await self.db.get(User, certificate.student_id)
        if student is None:
            raise UserNotFoundError(certificate.student_id)

        logger.info(f"[Delivery] Resending {certificate_id} to {student.email} (requested by {actor.email})")

        if not await self.storage.exists(certificate.certificate_id):
            failure = DeliveryResult(success=False, error=ARTIFACT_MISSING_REASON)
            await self._record_outcome(activity, failure, increment_resend=True)
            logger.error(f"[Delivery] Resend of {certificate_id} failed: artifact missing")
            raise ArtifactMissingError(certificate_id, certificate.pdf_path)

        result = await self.deliver(certificate, activity, student, is_resend=True)
        return result, activity.email_resend_count

    async def _send(self, certificate: Certificate, student: User, pdf_bytes: bytes) -> DeliveryResult:
        timeout = settings.EMAIL_SEND_TIMEOUT_SECONDS
        try:
            return await asyncio.wait_for(
                self.mailer.send_certificate(
                    student.email, student.display_name, fields_for(certificate, student), pdf_bytes
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            return DeliveryResult(success=False, error=f"Email delivery timed out after {timeout}s")
        except Exception as e:
            # Mailers report failures as results; anything raised is treated the same way
            logger.log_error_with_context(e, "certificate email delivery", certificate_ref=certificate.certificate_id)
            return DeliveryResult(success=False, error=str(e) or type(e).__name__)

    async def _record_outcome(self, activity: Activity, result: DeliveryResult, increment_resend: bool) -> None:
        if result.success:
            values = {
                "email_status": EmailStatus.SENT,
                "email_sent_at": utcnow(),
                "email_message_id": result.message_id,
                "email_failure_reason": None,
            }
        else:
            values = {
                "email_status": EmailStatus.FAILED,
                "email_failure_reason": result.error or "Unknown delivery error",
            }
        if increment_resend:
            values["email_resend_count"] = Activity.email_resend_count + 1

        await self.db.execute(
            update(Activity)
            .where(Activity.id == activity.id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        await self.db.refresh(activity)

    async def _get_certificate(self, certificate_id: str) -> Certificate:
        result = await self.db.execute(
            select(Certificate).where(Certificate.certificate_id == certificate_id)
        )
        certificate = result.scalar_one_or_none()
        if certificate is None:
            raise CertificateNotFoundError(certificate_id)
        return certificate

    async def list_failed(self, limit: int = 100) -> list:
        """Activities whose certificate email is waiting for a resend"""
        result = await self.db.execute(
            select(Activity)
            .where(Activity.email_status == EmailStatus.FAILED)
            .where(Activity.certificate_pk.is_not(None))
            .order_by(Activity.updated_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
