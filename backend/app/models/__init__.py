# Re-export all models for convenient imports
from app.models.user import User, UserRole, STAFF_ROLES
from app.models.activity import Activity, ActivityStatus, EmailStatus, AchievementLevel
from app.models.certificate import (
    Certificate,
    CertificateStatus,
    CertificateVerification,
    GENESIS_PREVIOUS_HASH,
)

__all__ = [
    # User
    "User",
    "UserRole",
    "STAFF_ROLES",
    # Activity
    "Activity",
    "ActivityStatus",
    "EmailStatus",
    "AchievementLevel",
    # Certificate
    "Certificate",
    "CertificateStatus",
    "CertificateVerification",
    "GENESIS_PREVIOUS_HASH",
]
