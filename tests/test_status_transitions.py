"""
ART Job Board - Status Transition Tests

Tests for the estimate status state machine, the sent-estimate lock and
derived status fields.
"""

from datetime import date, datetime, timezone

import pytest

from jobboard.models.project import ClientProjectStatus, EstimateStatus
from jobboard.models.user import UserRole
from jobboard.services.status_transition_service import (
    ProjectState,
    check_estimate_lock,
    client_local_date,
    compute_client_status_change,
    compute_transition,
    project_status_view,
)
from jobboard.utils.error_handling import (
    BusinessRuleException,
    EstimateLockedException,
    InsufficientPermissionsException,
    TransitionForbiddenException,
    ValidationException,
)


NOW = datetime(2026, 3, 10, 22, 30, tzinfo=timezone.utc)
SNAPSHOT = {"price_each": 70.0, "total_price": 140.0, "loyalty_tier": "Elite", "qty": 2.0}


def snapshot_factory(captured_at):
    return dict(SNAPSHOT, captured_at=captured_at.isoformat())


def no_snapshot(captured_at):
    raise AssertionError("snapshot should not be recaptured")


class TestSendTransition:
    """Tests for moving an estimate to Sent."""

    def test_first_send_captures_everything(self):
        state = ProjectState(estimate_status=EstimateStatus.ESTIMATE_COMPLETED)
        result = compute_transition(state, EstimateStatus.SENT, UserRole.ADMIN, NOW, "Australia/Sydney", snapshot_factory)

        assert result.estimate_status == EstimateStatus.SENT
        assert result.is_send is True
        assert result.updates["estimate_sent"] == [NOW.isoformat()]
        # 22:30 UTC is 09:30 next day in Sydney
        assert result.updates["date_completed"] == date(2026, 3, 11)
        assert result.updates["pricing_snapshot"]["price_each"] == 70.0
        assert result.updates["pricing_snapshot"]["captured_at"] == NOW.isoformat()

    def test_resend_keeps_snapshot_and_appends_timestamp(self):
        state = ProjectState(
            estimate_status=EstimateStatus.SENT,
            pricing_snapshot=SNAPSHOT,
            estimate_sent=("2026-03-01T00:00:00+00:00",),
            client_status=ClientProjectStatus.APPROVED,
        )
        result = compute_transition(state, "Sent", UserRole.ADMIN, NOW, None, no_snapshot)

        assert result.updates["pricing_snapshot"] == SNAPSHOT
        assert result.updates["estimate_sent"] == ["2026-03-01T00:00:00+00:00", NOW.isoformat()]
        assert result.updates["client_status"] is None

    def test_resend_resets_client_status(self):
        state = ProjectState(
            estimate_status=EstimateStatus.SENT,
            pricing_snapshot=SNAPSHOT,
            client_status=ClientProjectStatus.JOB_LOST,
        )
        result = compute_transition(state, EstimateStatus.SENT, UserRole.ADMIN, NOW, None, no_snapshot)

        assert result.updates["client_status"] is None
        assert project_status_view(result.estimate_status)["projectStatus"] == "Estimate Completed"

    def test_send_date_falls_back_to_default_timezone(self):
        assert client_local_date(NOW, "Mars/Olympus") == date(2026, 3, 11)
        assert client_local_date(NOW, "UTC") == date(2026, 3, 10)


class TestOtherTransitions:
    """Tests for every non-Sent target."""

    @pytest.mark.parametrize("target", [
        EstimateStatus.CANCELLED,
        EstimateStatus.ESTIMATE_COMPLETED,
        EstimateStatus.SMALL_FIX,
        EstimateStatus.ESTIMATE_REQUESTED,
    ])
    def test_leaving_sent_clears_snapshot_and_date(self, target):
        state = ProjectState(
            estimate_status=EstimateStatus.SENT,
            pricing_snapshot=SNAPSHOT,
            estimate_sent=("2026-03-01T00:00:00+00:00",),
            date_completed=date(2026, 3, 1),
            client_status=ClientProjectStatus.QUOTE_SENT,
        )
        result = compute_transition(state, target, UserRole.ADMIN, NOW, None, no_snapshot)

        assert result.updates["pricing_snapshot"] is None
        assert result.updates["date_completed"] is None
        assert result.updates["client_status"] is None
        assert "estimate_sent" not in result.updates

    def test_estimator_completion_goes_to_review(self):
        state = ProjectState(estimate_status=EstimateStatus.IN_PROGRESS)
        result = compute_transition(
            state, EstimateStatus.ESTIMATE_COMPLETED, UserRole.ESTIMATOR, NOW, None, no_snapshot
        )

        assert result.requested_status == EstimateStatus.ESTIMATE_COMPLETED
        assert result.estimate_status == EstimateStatus.AWAITING_REVIEW
        assert result.redirected is True

    def test_admin_completion_is_not_redirected(self):
        state = ProjectState(estimate_status=EstimateStatus.AWAITING_REVIEW)
        result = compute_transition(
            state, EstimateStatus.ESTIMATE_COMPLETED, UserRole.ADMIN, NOW, None, no_snapshot
        )
        assert result.estimate_status == EstimateStatus.ESTIMATE_COMPLETED
        assert result.redirected is False


class TestRoleGating:
    """Tests for who may set which status."""

    def test_estimator_cannot_send(self):
        state = ProjectState(estimate_status=EstimateStatus.ESTIMATE_COMPLETED)
        with pytest.raises(TransitionForbiddenException):
            compute_transition(state, EstimateStatus.SENT, UserRole.ESTIMATOR, NOW, None, no_snapshot)

    def test_client_cannot_move_internal_statuses(self):
        state = ProjectState(estimate_status=EstimateStatus.ESTIMATE_REQUESTED)
        with pytest.raises(TransitionForbiddenException):
            compute_transition(state, EstimateStatus.IN_PROGRESS, UserRole.USER, NOW, None, no_snapshot)

    def test_client_can_cancel(self):
        state = ProjectState(estimate_status=EstimateStatus.ESTIMATE_REQUESTED)
        result = compute_transition(state, EstimateStatus.CANCELLED, UserRole.USER, NOW, None, no_snapshot)
        assert result.estimate_status == EstimateStatus.CANCELLED

    def test_unknown_status_rejected(self):
        state = ProjectState(estimate_status=EstimateStatus.ASSIGNED)
        with pytest.raises(ValidationException):
            compute_transition(state, "Done", UserRole.ADMIN, NOW, None, no_snapshot)


class TestEstimateLock:
    """Tests for pricing inputs on sent estimates."""

    def test_sent_estimate_locked_for_estimator(self):
        state = ProjectState(estimate_status=EstimateStatus.SENT)
        with pytest.raises(EstimateLockedException):
            check_estimate_lock(state, UserRole.ESTIMATOR, ["qty", "notes"])

    def test_admin_may_edit_sent_estimate(self):
        state = ProjectState(estimate_status=EstimateStatus.SENT)
        check_estimate_lock(state, UserRole.ADMIN, ["qty", "manual_price"])

    def test_unlocked_fields_and_statuses(self):
        check_estimate_lock(ProjectState(estimate_status=EstimateStatus.SENT), UserRole.ESTIMATOR, ["notes"])
        check_estimate_lock(ProjectState(estimate_status=EstimateStatus.IN_PROGRESS), UserRole.ESTIMATOR, ["qty"])


class TestClientStatus:
    """Tests for the client workflow status."""

    def test_client_sets_status_on_delivered_estimate(self):
        state = ProjectState(estimate_status=EstimateStatus.SENT)
        updates = compute_client_status_change(state, "Approved", UserRole.USER)
        assert updates == {"client_status": ClientProjectStatus.APPROVED}

    def test_locked_while_estimate_in_progress(self):
        state = ProjectState(estimate_status=EstimateStatus.IN_PROGRESS)
        with pytest.raises(BusinessRuleException):
            compute_client_status_change(state, ClientProjectStatus.APPROVED, UserRole.USER)

    def test_estimator_cannot_set_client_status(self):
        state = ProjectState(estimate_status=EstimateStatus.SENT)
        with pytest.raises(InsufficientPermissionsException):
            compute_client_status_change(state, ClientProjectStatus.APPROVED, UserRole.ESTIMATOR)

    def test_unknown_client_status_rejected(self):
        state = ProjectState(estimate_status=EstimateStatus.SENT)
        with pytest.raises(ValidationException):
            compute_client_status_change(state, "Won", UserRole.USER)


class TestStatusView:
    """Tests for derived status fields."""

    def test_sent_shows_completed_until_client_acts(self):
        view = project_status_view(EstimateStatus.SENT)
        assert view == {
            "estimateStatus": "Sent",
            "projectStatus": "Estimate Completed",
            "status": "Estimate Completed",
            "jobBoardStatus": "Estimate Completed",
        }

    def test_client_status_wins_once_set(self):
        view = project_status_view(EstimateStatus.SENT, ClientProjectStatus.APPROVED)
        assert view["projectStatus"] == "Approved"
        assert view["status"] == "Estimate Completed"

    def test_working_statuses_are_prefixed_for_clients(self):
        view = project_status_view(EstimateStatus.IN_PROGRESS)
        assert view["projectStatus"] == "ART: In Progress"
        assert view["status"] == "In Progress"

    def test_requested_and_cancelled(self):
        assert project_status_view(EstimateStatus.ESTIMATE_REQUESTED)["projectStatus"] == "Estimate Requested"
        assert project_status_view(EstimateStatus.CANCELLED)["projectStatus"] == "Cancelled"
