"""
Certificate Models - issued, hash-chained credentials and their verification log.

A Certificate row is the issued form of a certificate: every chain, hash and
artifact column is NOT NULL. Drafts never reach this table (see
app.schemas.certificate.DraftCertificate).
"""
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import (
    Column, String, Text, Integer, Boolean, Date, DateTime, ForeignKey,
    UniqueConstraint, CheckConstraint, Enum as SQLEnum, event, inspect,
)
from sqlalchemy.orm import relationship
import enum

from app.core.config import settings
from app.core.database import Base
from app.core.exceptions import ImmutableFieldError
from app.core.types import GUID, generate_uuid, utcnow
from app.models.activity import AchievementLevel


class CertificateStatus(str, enum.Enum):
    """Lifecycle status of a certificate"""
    ACTIVE = "active"
    REVOKED = "revoked"
    EXPIRED = "expired"
    PENDING = "pending"


# Columns fixed at insert time
IMMUTABLE_FIELDS = ("certificate_hash", "block_number", "previous_hash")

GENESIS_PREVIOUS_HASH = "0"


def default_expiry(issued_at: Optional[datetime] = None) -> datetime:
    return (issued_at or utcnow()) + timedelta(days=settings.CERTIFICATE_VALIDITY_DAYS)


class Certificate(Base):
    """Issued certificate, one per activity, chained per student"""
    __tablename__ = "certificates"
    __table_args__ = (
        UniqueConstraint("student_id", "block_number", name="uq_certificates_student_block"),
        CheckConstraint("block_number >= 1", name="ck_certificates_block_positive"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)

    # Identity
    certificate_id = Column(String(64), unique=True, index=True, nullable=False)
    certificate_hash = Column(String(64), unique=True, index=True, nullable=False)
    verification_code = Column(String(32), unique=True, index=True, nullable=False)

    # References
    activity_id = Column(GUID, ForeignKey("activities.id"), unique=True, nullable=False)
    student_id = Column(GUID, ForeignKey("users.id"), nullable=False, index=True)
    issued_by_id = Column(GUID, ForeignKey("users.id"), nullable=False)

    # Hashed payload copies (issued_at is the exact timestamp inside the hash)
    title = Column(String(255), nullable=False)
    event_date = Column(Date, nullable=False)
    issued_at = Column(DateTime, nullable=False, default=utcnow)

    # Display copies
    description = Column(Text, nullable=True)
    organizing_body = Column(String(255), nullable=True)
    achievement_level = Column(SQLEnum(AchievementLevel), default=AchievementLevel.COLLEGE, nullable=False)

    # Chain
    block_number = Column(Integer, nullable=False)
    previous_hash = Column(String(64), nullable=False, default=GENESIS_PREVIOUS_HASH)

    # Lifecycle
    status = Column(SQLEnum(CertificateStatus), default=CertificateStatus.ACTIVE, nullable=False, index=True)
    is_revoked = Column(Boolean, default=False, nullable=False)
    revocation_reason = Column(Text, nullable=True)
    revoked_at = Column(DateTime, nullable=True)
    revoked_by_id = Column(GUID, ForeignKey("users.id"), nullable=True)
    expires_at = Column(DateTime, nullable=True)

    # Artifacts
    pdf_path = Column(String(500), nullable=False)
    verification_url = Column(String(500), nullable=False)

    # Counters
    verification_count = Column(Integer, default=0, nullable=False)
    last_verified_at = Column(DateTime, nullable=True)
    download_count = Column(Integer, default=0, nullable=False)
    last_downloaded_at = Column(DateTime, nullable=True)
    view_count = Column(Integer, default=0, nullable=False)
    last_viewed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    activity = relationship("Activity", back_populates="certificate", foreign_keys=[activity_id])
    student = relationship("User", foreign_keys=[student_id])
    issued_by = relationship("User", foreign_keys=[issued_by_id])
    verifications = relationship(
        "CertificateVerification",
        back_populates="certificate",
        order_by="CertificateVerification.verified_at",
    )

    @property
    def is_expired(self) -> bool:
        return self.expires_at is not None and self.expires_at <= utcnow()

    @property
    def is_valid(self) -> bool:
        return (
            self.status == CertificateStatus.ACTIVE
            and not self.is_revoked
            and not self.is_expired
        )

    @property
    def days_until_expiry(self) -> Optional[int]:
        if self.expires_at is None:
            return None
        return max((self.expires_at - utcnow()).days, 0)

    @property
    def days_since_issued(self) -> int:
        return max((utcnow() - self.issued_at).days, 0)

    @property
    def pdf_filename(self) -> str:
        return f"{self.certificate_id}.pdf"

    def __repr__(self):
        return f"<Certificate {self.certificate_id} block={self.block_number}>"


class CertificateVerification(Base):
    """Append-only record of a verification lookup"""
    __tablename__ = "certificate_verifications"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    certificate_pk = Column(GUID, ForeignKey("certificates.id"), nullable=False, index=True)
    verified_at = Column(DateTime, default=utcnow, nullable=False)
    verified_by = Column(String(255), default="public", nullable=False)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)

    certificate = relationship("Certificate", back_populates="verifications")

    def __repr__(self):
        return f"<CertificateVerification {self.certificate_pk} by {self.verified_by}>"


@event.listens_for(Certificate, "before_update")
def _guard_chain_fields(mapper, connection, target: Certificate):
    """Refuse ORM flushes that would rewrite a certificate's chain position"""
    state = inspect(target)
    for field in IMMUTABLE_FIELDS:
        if state.attrs[field].history.has_changes():
            raise ImmutableFieldError(field, target.certificate_id)
