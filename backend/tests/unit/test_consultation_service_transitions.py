"""
Unit tests for ConsultationService status changes and seeker cancellation.
"""

from datetime import datetime
from unittest.mock import Mock

import pytest

from marketplace.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from marketplace.domain.lifecycle import ALLOWED_TRANSITIONS, ConsultationStatus
from marketplace.services.conflict_checker import BookingConflictChecker
from marketplace.services.consultation_service import ConsultationService
from marketplace.services.rating_service import RatingAggregator
from tests.factories.entity_factories import (
    ADMIN,
    PROVIDER,
    SEEKER,
    STRANGER,
    make_consultation,
)
from tests.factories.repository_factories import (
    ConsultationRepositoryFactory,
    UserRepositoryFactory,
)

NOW = datetime(2030, 1, 7, 10, 2)


@pytest.fixture
def mock_consultation_repo() -> Mock:
    return ConsultationRepositoryFactory.create_mock_full()


@pytest.fixture
def service(mock_consultation_repo) -> ConsultationService:
    user_repo = UserRepositoryFactory.create_mock_full()
    return ConsultationService(
        mock_consultation_repo,
        user_repo,
        BookingConflictChecker(mock_consultation_repo),
        RatingAggregator(mock_consultation_repo, user_repo),
        now=lambda: NOW,
    )


def _stored(repo, status):
    consultation = make_consultation(status=status)
    repo.get_by_id.return_value = consultation
    return consultation


ALL_PAIRS = [
    (current, target)
    for current in ConsultationStatus.ALL
    for target in ConsultationStatus.ALL
]


@pytest.mark.services
@pytest.mark.consultation
class TestTransitionTable:
    @pytest.mark.parametrize("current, target", ALL_PAIRS)
    def test_provider_follows_table_exactly(
        self, service, mock_consultation_repo, current, target
    ):
        _stored(mock_consultation_repo, current)

        if target in ALLOWED_TRANSITIONS[current]:
            result = service.transition(100, PROVIDER, target)
            assert result.status == target
        else:
            with pytest.raises(InvalidTransitionError) as exc_info:
                service.transition(100, PROVIDER, target)
            assert exc_info.value.from_status == current
            assert exc_info.value.to_status == target
            mock_consultation_repo.update_if_status.assert_not_called()

    def test_legacy_alias_accepted(self, service, mock_consultation_repo):
        _stored(mock_consultation_repo, "pending")
        assert service.transition(100, PROVIDER, "accepted").status == "confirmed"

    def test_unknown_status_is_a_validation_error(
        self, service, mock_consultation_repo
    ):
        _stored(mock_consultation_repo, "pending")
        with pytest.raises(ValidationError):
            service.transition(100, PROVIDER, "archived")


@pytest.mark.services
@pytest.mark.consultation
class TestTransitionAuthorization:
    def test_missing_consultation(self, service):
        with pytest.raises(NotFoundError):
            service.transition(100, PROVIDER, "confirmed")

    def test_outsider_forbidden_before_table_check(
        self, service, mock_consultation_repo
    ):
        _stored(mock_consultation_repo, "completed")
        with pytest.raises(ForbiddenError):
            service.transition(100, STRANGER, "pending")

    def test_seeker_cannot_confirm(self, service, mock_consultation_repo):
        _stored(mock_consultation_repo, "pending")
        with pytest.raises(ForbiddenError):
            service.transition(100, SEEKER, "confirmed")

    def test_seeker_invalid_edge_reports_transition_error(
        self, service, mock_consultation_repo
    ):
        _stored(mock_consultation_repo, "completed")
        with pytest.raises(InvalidTransitionError):
            service.transition(100, SEEKER, "cancelled")

    def test_seeker_may_cancel_confirmed(self, service, mock_consultation_repo):
        _stored(mock_consultation_repo, "confirmed")

        result = service.transition(100, SEEKER, "cancelled", "Schedule clash")

        assert result.status == "cancelled"
        assert result.cancelled_by == "seeker"
        assert result.cancellation_reason == "Schedule clash"

    def test_seeker_cannot_cancel_in_progress(self, service, mock_consultation_repo):
        _stored(mock_consultation_repo, "in-progress")
        with pytest.raises(ForbiddenError):
            service.transition(100, SEEKER, "cancelled")

    def test_admin_may_take_any_edge(self, service, mock_consultation_repo):
        _stored(mock_consultation_repo, "in-progress")

        result = service.transition(100, ADMIN, "cancelled", "Policy violation")

        assert result.cancelled_by == "admin"

    def test_admin_cannot_leave_the_table(self, service, mock_consultation_repo):
        _stored(mock_consultation_repo, "cancelled")
        with pytest.raises(InvalidTransitionError):
            service.transition(100, ADMIN, "pending")


@pytest.mark.services
@pytest.mark.consultation
class TestTransitionSideEffects:
    def test_start_stamps_started_at(self, service, mock_consultation_repo):
        _stored(mock_consultation_repo, "confirmed")
        assert service.transition(100, PROVIDER, "in-progress").started_at == NOW

    def test_complete_stamps_ended_at(self, service, mock_consultation_repo):
        _stored(mock_consultation_repo, "in-progress")
        assert service.transition(100, PROVIDER, "completed").ended_at == NOW

    def test_reject_records_reason(self, service, mock_consultation_repo):
        _stored(mock_consultation_repo, "pending")
        result = service.transition(100, PROVIDER, "rejected", "Out of scope")
        assert result.rejection_reason == "Out of scope"
        assert result.cancelled_by is None

    def test_provider_cancel_records_actor(self, service, mock_consultation_repo):
        _stored(mock_consultation_repo, "confirmed")
        result = service.transition(100, PROVIDER, "cancelled")
        assert result.cancelled_by == "provider"
        assert result.cancellation_reason is None

    def test_lost_concurrent_update_is_retryable(self, service, mock_consultation_repo):
        _stored(mock_consultation_repo, "pending")
        mock_consultation_repo.update_if_status.side_effect = None
        mock_consultation_repo.update_if_status.return_value = None

        with pytest.raises(ConflictError) as exc_info:
            service.transition(100, PROVIDER, "confirmed")

        assert exc_info.value.retryable is True
        mock_consultation_repo.update_if_status.assert_called_once()
        assert mock_consultation_repo.update_if_status.call_args.args[1] == "pending"


@pytest.mark.services
@pytest.mark.consultation
class TestSeekerCancel:
    @pytest.mark.parametrize("status", ["pending", "confirmed"])
    def test_seeker_withdraws(self, service, mock_consultation_repo, status):
        _stored(mock_consultation_repo, status)

        result = service.cancel(100, SEEKER, "Found another provider")

        assert result.status == "cancelled"
        assert result.cancelled_by == "seeker"
        assert result.cancellation_reason == "Found another provider"

    @pytest.mark.parametrize(
        "status", ["in-progress", "completed", "rejected", "cancelled"]
    )
    def test_too_late_to_withdraw(self, service, mock_consultation_repo, status):
        _stored(mock_consultation_repo, status)
        with pytest.raises(InvalidTransitionError):
            service.cancel(100, SEEKER)

    def test_provider_cannot_use_seeker_cancel(self, service, mock_consultation_repo):
        _stored(mock_consultation_repo, "pending")
        with pytest.raises(ForbiddenError):
            service.cancel(100, PROVIDER)

    def test_missing_consultation(self, service):
        with pytest.raises(NotFoundError):
            service.cancel(100, SEEKER)
