"""
Activity Model - a student-submitted achievement subject to faculty review.

Submission happens elsewhere; this service reads activities, records the
review decision and, once a certificate is durably persisted, the certificate
back-reference and email delivery tracking.
"""
from sqlalchemy import Column, String, Text, Integer, Date, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
import enum

from app.core.database import Base
from app.core.types import GUID, generate_uuid, utcnow


class ActivityStatus(str, enum.Enum):
    """Review status of an activity"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    FLAGGED = "flagged"
    CERTIFIED = "certified"


class EmailStatus(str, enum.Enum):
    """Certificate email delivery status"""
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"
    BOUNCED = "bounced"


class AchievementLevel(str, enum.Enum):
    """Scope at which the achievement was earned"""
    COLLEGE = "College"
    UNIVERSITY = "University"
    STATE = "State"
    NATIONAL = "National"
    INTERNATIONAL = "International"


class Activity(Base):
    """Student achievement record"""
    __tablename__ = "activities"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    student_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Achievement details
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)
    organizing_body = Column(String(255), nullable=True)
    achievement_level = Column(SQLEnum(AchievementLevel), default=AchievementLevel.COLLEGE, nullable=False)
    event_date = Column(Date, nullable=False)

    # Review
    status = Column(SQLEnum(ActivityStatus), default=ActivityStatus.PENDING, nullable=False, index=True)
    reviewed_by_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    faculty_comment = Column(Text, nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    rejected_at = Column(DateTime, nullable=True)

    # Certificate back-reference (denormalized copies for quick display)
    certificate_pk = Column(
        GUID,
        ForeignKey("certificates.id", use_alter=True, name="fk_activities_certificate_pk", ondelete="SET NULL"),
        nullable=True,
    )
    certificate_id = Column(String(64), nullable=True, index=True)
    certificate_hash = Column(String(64), nullable=True)
    certificate_path = Column(String(500), nullable=True)
    certificate_generated_by_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    certificate_generated_at = Column(DateTime, nullable=True)
    certificate_expires_at = Column(DateTime, nullable=True)

    # Email delivery tracking
    email_status = Column(SQLEnum(EmailStatus), default=EmailStatus.PENDING, nullable=False, index=True)
    email_sent_at = Column(DateTime, nullable=True)
    email_failure_reason = Column(Text, nullable=True)
    email_message_id = Column(String(255), nullable=True)
    email_resend_count = Column(Integer, default=0, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    student = relationship("User", back_populates="activities", foreign_keys=[student_id])
    reviewed_by = relationship("User", foreign_keys=[reviewed_by_id])
    certificate = relationship(
        "Certificate", back_populates="activity", uselist=False, foreign_keys="Certificate.activity_id"
    )

    @property
    def is_certified(self) -> bool:
        return self.status == ActivityStatus.CERTIFIED or self.certificate_pk is not None

    def __repr__(self):
        return f"<Activity {self.id} {self.status.value if self.status else None}>"
