"""Pydantic schemas for certificate issuance, delivery and verification"""
from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional, List
from datetime import date, datetime
from enum import Enum

from app.models.activity import AchievementLevel, ActivityStatus, EmailStatus
from app.models.certificate import CertificateStatus


class CamelModel(BaseModel):
    """Wire format uses camelCase keys; snake_case is accepted on input"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class VerificationStatus(str, Enum):
    AUTHENTIC = "authentic"
    TAMPERED = "tampered"
    REVOKED = "revoked"
    EXPIRED = "expired"
    INVALID = "invalid"


# ==================== Draft (phase 1) ====================

DRAFT_REQUIRED_FIELDS = ("certificate_id", "file_path", "student_email", "student_name", "title")


class DraftCertificate(CamelModel):
    """
    Rendered-but-not-persisted certificate.

    Returned by the generate step and posted back unchanged on submit, so
    every field is treated as untrusted input on the way back in. It carries
    no hash, block number or previous hash: those only exist on the issued
    Certificate row.
    """
    certificate_id: Optional[str] = None
    file_path: Optional[str] = None
    verification_url: Optional[str] = None
    activity_id: Optional[str] = None

    # Student contact
    student_id: Optional[str] = None
    student_name: Optional[str] = None
    student_email: Optional[str] = None
    roll_number: Optional[str] = None
    department: Optional[str] = None

    # Achievement fields
    title: Optional[str] = None
    description: Optional[str] = None
    organizing_body: Optional[str] = None
    achievement_level: Optional[AchievementLevel] = None
    event_date: Optional[date] = None
    generated_at: Optional[datetime] = None

    def missing_required_fields(self) -> List[str]:
        missing = []
        for name in DRAFT_REQUIRED_FIELDS:
            value = getattr(self, name)
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(name)
        return missing


# ==================== Issuance / delivery results ====================

class IssuanceResponse(CamelModel):
    """Outcome of submit or single-step issue"""
    success: bool
    certificate_saved: bool = True
    certificate_id: str
    block_number: int
    certificate_hash: str
    verification_code: str
    email_sent: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class ResendResponse(CamelModel):
    success: bool
    certificate_id: str
    email_sent: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
    resend_count: int


# ==================== Certificate views ====================

class CertificateSummary(CamelModel):
    """Certificate details for owners and staff"""
    certificate_id: str
    activity_id: str
    student_id: str
    title: str
    description: Optional[str] = None
    organizing_body: Optional[str] = None
    achievement_level: AchievementLevel
    event_date: date
    issued_at: datetime
    expires_at: Optional[datetime] = None
    status: CertificateStatus
    is_revoked: bool
    revocation_reason: Optional[str] = None
    revoked_at: Optional[datetime] = None
    block_number: int
    previous_hash: str
    certificate_hash: str
    verification_code: str
    verification_url: str
    is_valid: bool
    verification_count: int
    download_count: int
    view_count: int


class PublicCertificate(CamelModel):
    """Fields disclosed by public verification"""
    certificate_id: str
    student_name: Optional[str] = None
    title: str
    organizing_body: Optional[str] = None
    achievement_level: AchievementLevel
    event_date: date
    issued_at: datetime
    expires_at: Optional[datetime] = None
    status: CertificateStatus
    is_revoked: bool
    revocation_reason: Optional[str] = None
    block_number: int
    certificate_hash: str


class VerificationResponse(CamelModel):
    verified: bool
    status: VerificationStatus
    message: str
    certificate: Optional[PublicCertificate] = None


class CounterSummary(CamelModel):
    count: int
    last_at: Optional[datetime] = None
    average_per_day: float


class CertificateStatsResponse(CamelModel):
    certificate_id: str
    status: CertificateStatus
    is_valid: bool
    days_since_issued: int
    days_until_expiry: Optional[int] = None
    downloads: CounterSummary
    views: CounterSummary
    verifications: CounterSummary


class OverallStatsResponse(CamelModel):
    total: int
    active: int
    revoked: int
    expired: int
    total_downloads: int
    total_views: int
    total_verifications: int
    failed_emails: int


class ChainBlock(CamelModel):
    certificate_id: str
    block_number: int
    previous_hash: str
    certificate_hash: str
    issued_at: datetime
    status: CertificateStatus


class ChainResponse(CamelModel):
    student_id: str
    length: int
    valid: bool
    errors: List[str] = Field(default_factory=list)
    blocks: List[ChainBlock] = Field(default_factory=list)


class RevokeRequest(CamelModel):
    reason: Optional[str] = None


# ==================== Activity review ====================

class ApproveRequest(CamelModel):
    comment: Optional[str] = None


class RejectRequest(CamelModel):
    reason: Optional[str] = None


class ActivitySummary(CamelModel):
    id: str
    student_id: str
    title: str
    category: Optional[str] = None
    organizing_body: Optional[str] = None
    achievement_level: AchievementLevel
    event_date: date
    status: ActivityStatus
    faculty_comment: Optional[str] = None
    rejection_reason: Optional[str] = None
    certificate_id: Optional[str] = None
    email_status: EmailStatus
    email_failure_reason: Optional[str] = None
    email_resend_count: int
    email_sent_at: Optional[datetime] = None
