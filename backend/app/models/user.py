from sqlalchemy import Column, String, Boolean, DateTime, Enum as SQLEnum
from sqlalchemy.orm import relationship
import enum

from app.core.database import Base
from app.core.types import GUID, generate_uuid, utcnow


class UserRole(str, enum.Enum):
    """User roles"""
    STUDENT = "student"
    FACULTY = "faculty"
    ADMIN = "admin"


# Roles allowed to review activities and issue, resend or revoke certificates
STAFF_ROLES = frozenset({UserRole.FACULTY, UserRole.ADMIN})


class User(Base):
    """User model"""
    __tablename__ = "users"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    hashed_password = Column(String(255), nullable=True)

    role = Column(SQLEnum(UserRole), default=UserRole.STUDENT, nullable=False)
    is_active = Column(Boolean, default=True)

    # Student profile fields printed on certificates
    roll_number = Column(String(50), nullable=True)
    department = Column(String(255), nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    activities = relationship(
        "Activity",
        back_populates="student",
        foreign_keys="Activity.student_id",
    )

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @property
    def display_name(self) -> str:
        return self.full_name or self.email

    def __repr__(self):
        return f"<User {self.email}>"
