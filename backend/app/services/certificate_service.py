"""
Certificate Service - issue, revoke and track hash-chained achievement certificates.

Issuance has two entry points sharing one persistence path:

    generate_draft()  render PDF + QR, store the file, return a DraftCertificate
    submit_draft()    re-validate the draft, append to the student's chain,
                      mark the activity certified, email the student
    issue()           both steps back to back

Chain appends are serialized per student with an in-process asyncio.Lock.
The (student_id, block_number) unique constraint catches anything the lock
cannot see (other workers); those collisions are retried with a fresh read
of the student's latest certificate.
"""

import uuid
import weakref
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple
import asyncio

from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    ActivityNotFoundError,
    ActivityStateError,
    ArtifactMissingError,
    AuthorizationError,
    CertificateNotFoundError,
    ChainConflictError,
    DuplicateCertificateError,
    MissingDraftFieldsError,
    UserNotFoundError,
    ValidationError,
)
from app.core.logging_config import logger, set_certificate_id
from app.core.types import utcnow
from app.models import (
    Activity,
    ActivityStatus,
    Certificate,
    CertificateStatus,
    EmailStatus,
    User,
)
from app.models.certificate import default_expiry
from app.schemas.certificate import DraftCertificate
from app.services.certificate_renderer import CertificateFields, Renderer, render_certificate
from app.services.certificate_storage import CertificateStorage
from app.services.delivery_service import DeliveryService
from app.services.email_service import Mailer
from app.services.hash_chain import (
    compute_certificate_hash,
    generate_verification_code,
    latest_certificate_for,
    next_chain_link,
    payload_for,
    validate_chain,
)


# One lock per student chain, shared by every service instance in the process.
# Entries disappear once no holder or waiter references the lock.
_chain_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()


def chain_lock(student_id: str) -> asyncio.Lock:
    key = str(student_id)
    lock = _chain_locks.get(key)
    if lock is None:
        lock = asyncio.Lock()
        _chain_locks[key] = lock
    return lock


@dataclass
class IssuanceOutcome:
    """Result of a submit: the certificate is always persisted, email may have failed"""
    certificate: Certificate
    email_sent: bool
    message_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.email_sent


def generate_certificate_id() -> str:
    """Human-readable unique id, e.g. CERT-20250301-9F3A1C2B"""
    timestamp = utcnow().strftime("%Y%m%d")
    unique_part = uuid.uuid4().hex[:8].upper()
    return f"{settings.CERTIFICATE_ID_PREFIX}-{timestamp}-{unique_part}"


def _require_staff(actor: Optional[User], action: str) -> None:
    if actor is None or not actor.is_staff:
        raise AuthorizationError(f"Only faculty or admin can {action}")


def _require_owner_or_staff(actor: Optional[User], certificate: Certificate) -> None:
    if actor is None:
        raise AuthorizationError("Not authorized to access this certificate")
    if actor.is_staff or str(actor.id) == str(certificate.student_id):
        return
    raise AuthorizationError("Not authorized to access this certificate")


class CertificateService:
    """Issuance workflow and certificate record operations"""

    def __init__(
        self,
        db: AsyncSession,
        renderer: Renderer,
        mailer: Mailer,
        storage: CertificateStorage,
    ):
        self.db = db
        self.renderer = renderer
        self.mailer = mailer
        self.storage = storage
        self.delivery = DeliveryService(db, mailer, storage)

    # ------------------------------------------------------------------
    # Issuance
    # ------------------------------------------------------------------

    async def generate_draft(self, activity_id: str, issuer: User) -> DraftCertificate:
        """Render and store the certificate PDF without touching the database"""
        _require_staff(issuer, "generate certificates")

        activity = await self._get_activity(activity_id)
        await self._ensure_issuable(activity)
        student = await self._get_student(activity.student_id)

        certificate_id = generate_certificate_id()
        set_certificate_id(certificate_id)
        verification_url = settings.get_verification_url(certificate_id)
        generated_at = utcnow()

        fields = CertificateFields(
            certificate_id=certificate_id,
            student_name=student.display_name,
            title=activity.title,
            verification_url=verification_url,
            event_date=activity.event_date,
            organizing_body=activity.organizing_body,
            achievement_level=activity.achievement_level.value if activity.achievement_level else None,
            roll_number=student.roll_number,
            department=student.department,
            issued_on=generated_at,
        )

        logger.info(f"[CertificateService] Rendering draft {certificate_id} for activity {activity_id}")
        rendered = await render_certificate(
            self.renderer, fields, settings.CERTIFICATE_RENDER_TIMEOUT_SECONDS
        )
        file_path = await self.storage.save(certificate_id, rendered.pdf_bytes)

        return DraftCertificate(
            certificate_id=certificate_id,
            file_path=file_path,
            verification_url=verification_url,
            activity_id=str(activity.id),
            student_id=str(student.id),
            student_name=student.display_name,
            student_email=student.email,
            roll_number=student.roll_number,
            department=student.department,
            title=activity.title,
            description=activity.description,
            organizing_body=activity.organizing_body,
            achievement_level=activity.achievement_level,
            event_date=activity.event_date,
            generated_at=generated_at,
        )

    async def submit_draft(
        self,
        activity_id: str,
        draft: DraftCertificate,
        issuer: User,
    ) -> IssuanceOutcome:
        """Persist a previously generated draft, then attempt delivery"""
        _require_staff(issuer, "issue certificates")
        issuer_id = str(issuer.id)
        issuer_email = issuer.email

        missing = draft.missing_required_fields()
        if missing:
            raise MissingDraftFieldsError(missing)
        if draft.activity_id and str(draft.activity_id) != str(activity_id):
            raise ValidationError("Draft belongs to a different activity", field="activity_id")

        set_certificate_id(draft.certificate_id)
        activity = await self._get_activity(activity_id)
        await self._ensure_issuable(activity)
        student = await self._get_student(activity.student_id)

        if draft.student_id and str(draft.student_id) != str(student.id):
            raise ValidationError("Draft belongs to a different student", field="student_id")

        if not self.storage.is_path_for(draft.certificate_id, draft.file_path):
            raise ValidationError("Draft file path does not match the certificate id", field="file_path")
        # Must match the link rendered into the QR code
        verification_url = settings.get_verification_url(draft.certificate_id)
        if draft.verification_url and draft.verification_url != verification_url:
            raise ValidationError(
                "Draft verification URL does not match the certificate id", field="verification_url"
            )
        if not await self.storage.exists(draft.certificate_id):
            raise ArtifactMissingError(draft.certificate_id, draft.file_path)
        if await self._find_certificate(draft.certificate_id) is not None:
            raise ValidationError(
                f"Certificate id '{draft.certificate_id}' is already in use", field="certificate_id"
            )

        certificate = await self._append_to_chain(
            activity_id=str(activity.id),
            student_id=str(student.id),
            issuer_id=issuer_id,
            certificate_id=draft.certificate_id,
            verification_url=verification_url,
            pdf_path=str(self.storage.path_for(draft.certificate_id)),
        )

        # A retried append rolls the session back, which expires loaded rows
        await self.db.refresh(activity)
        await self.db.refresh(student)

        await self._mark_activity_certified(activity, certificate, issuer_id)
        logger.log_certificate_event(
            certificate.certificate_id, "issued",
            block_number=certificate.block_number,
            activity_id=str(activity.id),
            issued_by=issuer_email,
        )

        result = await self.delivery.deliver(certificate, activity, student)
        return IssuanceOutcome(
            certificate=certificate,
            email_sent=result.success,
            message_id=result.message_id,
            error=result.error,
        )

    async def issue(self, activity_id: str, issuer: User) -> IssuanceOutcome:
        """Single-step issuance: generate the draft and submit it immediately"""
        draft = await self.generate_draft(activity_id, issuer)
        try:
            return await self.submit_draft(activity_id, draft, issuer)
        except Exception:
            await self.db.rollback()
            # Keep the file if a certificate row made it to the database
            if await self._find_certificate(draft.certificate_id) is None:
                await self.storage.delete(draft.certificate_id)
            raise

    async def _append_to_chain(
        self,
        activity_id: str,
        student_id: str,
        issuer_id: str,
        certificate_id: str,
        verification_url: str,
        pdf_path: str,
    ) -> Certificate:
        activity = await self._get_activity(activity_id)
        snapshot = {
            "title": activity.title,
            "event_date": activity.event_date,
            "description": activity.description,
            "organizing_body": activity.organizing_body,
            "achievement_level": activity.achievement_level,
        }
        max_attempts = max(settings.CHAIN_CONFLICT_MAX_RETRIES, 1)

        async with chain_lock(student_id):
            for attempt in range(1, max_attempts + 1):
                previous = await latest_certificate_for(self.db, student_id)
                link = next_chain_link(previous)
                issued_at = utcnow()

                certificate = Certificate(
                    certificate_id=certificate_id,
                    activity_id=activity_id,
                    student_id=student_id,
                    issued_by_id=issuer_id,
                    issued_at=issued_at,
                    block_number=link.block_number,
                    previous_hash=link.previous_hash,
                    verification_code=generate_verification_code(),
                    status=CertificateStatus.ACTIVE,
                    is_revoked=False,
                    expires_at=default_expiry(issued_at),
                    pdf_path=pdf_path,
                    verification_url=verification_url,
                    **snapshot,
                )
                certificate.certificate_hash = compute_certificate_hash(payload_for(certificate))
                self.db.add(certificate)

                try:
                    await self.db.commit()
                except IntegrityError as e:
                    await self.db.rollback()
                    existing = await self._certificate_for_activity(activity_id)
                    if existing is not None:
                        raise DuplicateCertificateError(activity_id, existing.certificate_id) from e
                    logger.warning(
                        f"[CertificateService] Chain conflict for student {student_id} "
                        f"at block {link.block_number} (attempt {attempt}/{max_attempts})"
                    )
                    continue

                await self.db.refresh(certificate)
                return certificate

        raise ChainConflictError(student_id, max_attempts)

    async def _mark_activity_certified(self, activity: Activity, certificate: Certificate, issuer_id: str) -> None:
        activity.status = ActivityStatus.CERTIFIED
        activity.certificate_pk = certificate.id
        activity.certificate_id = certificate.certificate_id
        activity.certificate_hash = certificate.certificate_hash
        activity.certificate_path = certificate.pdf_path
        activity.certificate_generated_by_id = issuer_id
        activity.certificate_generated_at = certificate.issued_at
        activity.certificate_expires_at = certificate.expires_at
        activity.email_status = EmailStatus.PENDING
        await self.db.commit()

    # ------------------------------------------------------------------
    # Lifecycle and counters
    # ------------------------------------------------------------------

    async def revoke(self, certificate_id: str, reason: Optional[str], actor: User) -> Certificate:
        """Mark a certificate revoked; the chain and hash are left untouched"""
        _require_staff(actor, "revoke certificates")
        if not reason or not reason.strip():
            raise ValidationError("Revocation reason is required", field="reason")

        certificate = await self.get_certificate(certificate_id)
        if certificate.is_revoked:
            raise ValidationError(f"Certificate '{certificate_id}' is already revoked")

        certificate.status = CertificateStatus.REVOKED
        certificate.is_revoked = True
        certificate.revocation_reason = reason.strip()
        certificate.revoked_at = utcnow()
        certificate.revoked_by_id = str(actor.id)
        await self.db.commit()
        await self.db.refresh(certificate)

        logger.log_certificate_event(certificate_id, "revoked", reason=certificate.revocation_reason)
        return certificate

    async def record_download(self, certificate_id: str, actor: User) -> Tuple[Certificate, str]:
        return await self._record_access(certificate_id, actor, Certificate.download_count, "last_downloaded_at")

    async def record_view(self, certificate_id: str, actor: User) -> Tuple[Certificate, str]:
        return await self._record_access(certificate_id, actor, Certificate.view_count, "last_viewed_at")

    async def _record_access(self, certificate_id: str, actor: User, counter, last_at_field: str) -> Tuple[Certificate, str]:
        certificate = await self.get_certificate(certificate_id)
        _require_owner_or_staff(actor, certificate)

        if not await self.storage.exists(certificate.certificate_id):
            raise ArtifactMissingError(certificate_id, certificate.pdf_path)

        await self.db.execute(
            update(Certificate)
            .where(Certificate.id == certificate.id)
            .values({counter.key: counter + 1, last_at_field: utcnow()})
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        await self.db.refresh(certificate)
        return certificate, str(self.storage.path_for(certificate.certificate_id))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_certificate(self, certificate_id: str) -> Certificate:
        certificate = await self._find_certificate(certificate_id)
        if certificate is None:
            raise CertificateNotFoundError(certificate_id)
        return certificate

    async def list_for_student(self, student_id: str) -> List[Certificate]:
        result = await self.db.execute(
            select(Certificate)
            .where(Certificate.student_id == student_id)
            .order_by(Certificate.block_number)
        )
        return list(result.scalars().all())

    async def list_failed_emails(self, actor: User) -> List[Activity]:
        _require_staff(actor, "view failed deliveries")
        return await self.delivery.list_failed()

    async def chain_for_student(self, student_id: str, actor: User) -> Tuple[List[Certificate], List[str]]:
        _require_staff(actor, "inspect certificate chains")
        certificates = await self.list_for_student(student_id)
        return certificates, validate_chain(certificates)

    async def certificate_stats(self, certificate_id: str, actor: User) -> dict:
        certificate = await self.get_certificate(certificate_id)
        _require_owner_or_staff(actor, certificate)

        days = max(certificate.days_since_issued, 1)

        def summary(count: int, last_at: Optional[datetime]) -> dict:
            return {"count": count, "last_at": last_at, "average_per_day": round(count / days, 2)}

        return {
            "certificate_id": certificate.certificate_id,
            "status": certificate.status,
            "is_valid": certificate.is_valid,
            "days_since_issued": certificate.days_since_issued,
            "days_until_expiry": certificate.days_until_expiry,
            "downloads": summary(certificate.download_count, certificate.last_downloaded_at),
            "views": summary(certificate.view_count, certificate.last_viewed_at),
            "verifications": summary(certificate.verification_count, certificate.last_verified_at),
        }

    async def overall_stats(self, actor: User) -> dict:
        _require_staff(actor, "view certificate statistics")
        now = utcnow()

        totals = (await self.db.execute(
            select(
                func.count(Certificate.id),
                func.coalesce(func.sum(Certificate.download_count), 0),
                func.coalesce(func.sum(Certificate.view_count), 0),
                func.coalesce(func.sum(Certificate.verification_count), 0),
            )
        )).one()

        revoked = await self.db.scalar(
            select(func.count(Certificate.id)).where(Certificate.is_revoked.is_(True))
        )
        expired = await self.db.scalar(
            select(func.count(Certificate.id))
            .where(Certificate.is_revoked.is_(False))
            .where(Certificate.expires_at.is_not(None))
            .where(Certificate.expires_at <= now)
        )
        failed_emails = await self.db.scalar(
            select(func.count(Activity.id)).where(Activity.email_status == EmailStatus.FAILED)
        )

        total = totals[0] or 0
        return {
            "total": total,
            "active": total - (revoked or 0) - (expired or 0),
            "revoked": revoked or 0,
            "expired": expired or 0,
            "total_downloads": totals[1],
            "total_views": totals[2],
            "total_verifications": totals[3],
            "failed_emails": failed_emails or 0,
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _get_activity(self, activity_id: str) -> Activity:
        activity = await self.db.get(Activity, activity_id)
        if activity is None:
            raise ActivityNotFoundError(activity_id)
        return activity

    async def _get_student(self, student_id: str) -> User:
        student = await self.db.get(User, student_id)
        if student is None:
            raise UserNotFoundError(student_id)
        return student

    async def _ensure_issuable(self, activity: Activity) -> None:
        existing = await self._certificate_for_activity(str(activity.id))
        if existing is not None or activity.status == ActivityStatus.CERTIFIED:
            raise DuplicateCertificateError(
                str(activity.id), existing.certificate_id if existing else activity.certificate_id
            )
        if activity.status != ActivityStatus.APPROVED:
            raise ActivityStateError(str(activity.id), activity.status.value, ActivityStatus.APPROVED.value)

    async def _certificate_for_activity(self, activity_id: str) -> Optional[Certificate]:
        result = await self.db.execute(
            select(Certificate).where(Certificate.activity_id == activity_id)
        )
        return result.scalar_one_or_none()

    async def _find_certificate(self, certificate_id: str) -> Optional[Certificate]:
        result = await self.db.execute(
            select(Certificate).where(Certificate.certificate_id == certificate_id)
        )
        return result.scalar_one_or_none()
