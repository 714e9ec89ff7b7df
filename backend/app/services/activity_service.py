"""
Activity Service - faculty review of submitted activities.

Approval is the gate for certificate issuance; both review actions require a
written justification.
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    ActivityNotFoundError,
    ActivityStateError,
    AuthorizationError,
    ValidationError,
)
from app.core.logging_config import logger
from app.core.types import utcnow
from app.models import Activity, ActivityStatus, User

# Statuses a reviewer may still act on
REVIEWABLE = (ActivityStatus.PENDING, ActivityStatus.FLAGGED)


class ActivityService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_by_status(self, status: ActivityStatus, actor: User, limit: int = 100) -> List[Activity]:
        self._require_staff(actor)
        result = await self.db.execute(
            select(Activity)
            .where(Activity.status == status)
            .order_by(Activity.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def approve(self, activity_id: str, comment: Optional[str], actor: User) -> Activity:
        self._require_staff(actor)
        if not comment or not comment.strip():
            raise ValidationError("Approval comment is required", field="comment")

        activity = await self._get_reviewable(activity_id)
        activity.status = ActivityStatus.APPROVED
        activity.faculty_comment = comment.strip()
        activity.reviewed_by_id = str(actor.id)
        activity.reviewed_at = utcnow()
        await self.db.commit()
        await self.db.refresh(activity)

        logger.info(f"[ActivityService] Activity {activity_id} approved by {actor.email}")
        return activity

    async def reject(self, activity_id: str, reason: Optional[str], actor: User) -> Activity:
        self._require_staff(actor)
        if not reason or not reason.strip():
            raise ValidationError("Rejection reason is required", field="reason")

        activity = await self._get_reviewable(activity_id)
        now = utcnow()
        activity.status = ActivityStatus.REJECTED
        activity.rejection_reason = reason.strip()
        activity.reviewed_by_id = str(actor.id)
        activity.reviewed_at = now
        activity.rejected_at = now
        await self.db.commit()
        await self.db.refresh(activity)

        logger.info(f"[ActivityService] Activity {activity_id} rejected by {actor.email}")
        return activity

    async def _get_reviewable(self, activity_id: str) -> Activity:
        activity = await self.db.get(Activity, activity_id)
        if activity is None:
            raise ActivityNotFoundError(activity_id)
        if activity.status not in REVIEWABLE:
            raise ActivityStateError(activity_id, activity.status.value, ActivityStatus.PENDING.value)
        return activity

    @staticmethod
    def _require_staff(actor: Optional[User]) -> None:
        if actor is None or not actor.is_staff:
            raise AuthorizationError("Only faculty or admin can review activities")
