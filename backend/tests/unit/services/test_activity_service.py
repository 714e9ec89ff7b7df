"""
Unit Tests for ActivityService
Tests for: review listings, approve, reject
"""
import pytest

from app.core.exceptions import ActivityNotFoundError, ActivityStateError, AuthorizationError, ValidationError
from app.models import ActivityStatus
from app.services.activity_service import ActivityService


@pytest.fixture
def activity_service(db_session) -> ActivityService:
    return ActivityService(db_session)


class TestListing:
    @pytest.mark.asyncio
    async def test_list_pending(self, activity_service, make_activity, student_user, faculty_user):
        pending = await make_activity(student_user, status=ActivityStatus.PENDING)
        await make_activity(student_user, status=ActivityStatus.APPROVED)

        activities = await activity_service.list_by_status(ActivityStatus.PENDING, faculty_user)

        assert [a.id for a in activities] == [pending.id]

    @pytest.mark.asyncio
    async def test_student_cannot_list(self, activity_service, student_user):
        with pytest.raises(AuthorizationError):
            await activity_service.list_by_status(ActivityStatus.PENDING, student_user)


class TestReview:
    """Test approve and reject transitions"""

    @pytest.mark.asyncio
    async def test_approve(self, activity_service, make_activity, student_user, faculty_user):
        activity = await make_activity(student_user, status=ActivityStatus.PENDING)

        approved = await activity_service.approve(activity.id, "  Verified with organiser ", faculty_user)

        assert approved.status == ActivityStatus.APPROVED
        assert approved.faculty_comment == "Verified with organiser"
        assert approved.reviewed_by_id == faculty_user.id
        assert approved.reviewed_at is not None

    @pytest.mark.asyncio
    async def test_approve_flagged(self, activity_service, make_activity, student_user, admin_user):
        activity = await make_activity(student_user, status=ActivityStatus.FLAGGED)

        approved = await activity_service.approve(activity.id, "Checked", admin_user)

        assert approved.status == ActivityStatus.APPROVED

    @pytest.mark.asyncio
    async def test_approve_requires_comment(self, activity_service, make_activity, student_user, faculty_user):
        activity = await make_activity(student_user, status=ActivityStatus.PENDING)

        with pytest.raises(ValidationError):
            await activity_service.approve(activity.id, "", faculty_user)

    @pytest.mark.asyncio
    async def test_reject(self, activity_service, make_activity, student_user, faculty_user):
        activity = await make_activity(student_user, status=ActivityStatus.PENDING)

        rejected = await activity_service.reject(activity.id, "No proof attached", faculty_user)

        assert rejected.status == ActivityStatus.REJECTED
        assert rejected.rejection_reason == "No proof attached"
        assert rejected.rejected_at is not None

    @pytest.mark.asyncio
    async def test_certified_activity_not_reviewable(
        self, activity_service, certificate_service, approved_activity, faculty_user
    ):
        """Test a certified activity cannot be sent back through review"""
        await certificate_service.issue(approved_activity.id, faculty_user)

        with pytest.raises(ActivityStateError):
            await activity_service.reject(approved_activity.id, "Changed my mind", faculty_user)

    @pytest.mark.asyncio
    async def test_unknown_activity(self, activity_service, faculty_user):
        with pytest.raises(ActivityNotFoundError):
            await activity_service.approve("00000000-0000-0000-0000-000000000000", "ok", faculty_user)
