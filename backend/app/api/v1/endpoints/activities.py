"""
Activity review endpoints (faculty/admin).

Approval makes an activity eligible for certificate issuance.
"""

from typing import List

from fastapi import APIRouter, Depends, Query

from app.api.v1.dependencies import get_activity_service
from app.models.activity import ActivityStatus
from app.models.user import User
from app.modules.auth.dependencies import get_current_faculty
from app.schemas.certificate import ActivitySummary, ApproveRequest, RejectRequest
from app.services.activity_service import ActivityService

router = APIRouter(prefix="/activities", tags=["Activities"])


@router.get("/pending", response_model=List[ActivitySummary])
async def pending_activities(
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(get_current_faculty),
    service: ActivityService = Depends(get_activity_service),
):
    activities = await service.list_by_status(ActivityStatus.PENDING, current_user, limit)
    return [ActivitySummary.model_validate(a) for a in activities]


@router.get("/approved", response_model=List[ActivitySummary])
async def approved_activities(
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(get_current_faculty),
    service: ActivityService = Depends(get_activity_service),
):
    """Approved activities still waiting for a certificate"""
    activities = await service.list_by_status(ActivityStatus.APPROVED, current_user, limit)
    return [ActivitySummary.model_validate(a) for a in activities]


@router.put("/{activity_id}/approve", response_model=ActivitySummary)
async def approve_activity(
    activity_id: str,
    body: ApproveRequest,
    current_user: User = Depends(get_current_faculty),
    service: ActivityService = Depends(get_activity_service),
):
    activity = await service.approve(activity_id, body.comment, current_user)
    return ActivitySummary.model_validate(activity)


@router.put("/{activity_id}/reject", response_model=ActivitySummary)
async def reject_activity(
    activity_id: str,
    body: RejectRequest,
    current_user: User = Depends(get_current_faculty),
    service: ActivityService = Depends(get_activity_service),
):
    activity = await service.reject(activity_id, body.reason, current_user)
    return ActivitySummary.model_validate(activity)
