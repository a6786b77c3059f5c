"""
Unit tests for ConsultationService rating and read operations.
"""

from unittest.mock import Mock

import pytest

from marketplace.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
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


@pytest.fixture
def mock_consultation_repo() -> Mock:
    return ConsultationRepositoryFactory.create_mock_full()


@pytest.fixture
def mock_user_repo() -> Mock:
    return UserRepositoryFactory.create_mock_full()


@pytest.fixture
def service(mock_consultation_repo, mock_user_repo) -> ConsultationService:
    return ConsultationService(
        mock_consultation_repo,
        mock_user_repo,
        BookingConflictChecker(mock_consultation_repo),
        RatingAggregator(mock_consultation_repo, mock_user_repo),
    )


@pytest.mark.services
@pytest.mark.rating
class TestRateConsultation:
    def test_rate_completed_consultation(
        self, service, mock_consultation_repo, mock_user_repo
    ):
        consultation = make_consultation(status="completed")
        mock_consultation_repo.get_by_id.return_value = consultation
        mock_consultation_repo.get_rated_by_provider.return_value = [
            make_consultation(101, status="completed", rating=4),
            make_consultation(100, status="completed", rating=5),
        ]

        result = service.rate(100, SEEKER, 5, "Very helpful")

        assert result.rating == 5
        assert result.review == "Very helpful"
        mock_consultation_repo.rate_if_unrated.assert_called_once_with(
            100, 5, "Very helpful"
        )
        mock_user_repo.update_rating.assert_called_once_with(2, 4.5, 2)

    def test_second_rating_conflicts(self, service, mock_consultation_repo):
        mock_consultation_repo.get_by_id.return_value = make_consultation(
            status="completed", rating=4
        )
        with pytest.raises(ConflictError, match="already rated"):
            service.rate(100, SEEKER, 5)
        mock_consultation_repo.rate_if_unrated.assert_not_called()

    def test_rating_lost_to_concurrent_writer_conflicts(
        self, service, mock_consultation_repo, mock_user_repo
    ):
        mock_consultation_repo.get_by_id.return_value = make_consultation(
            status="completed"
        )
        mock_consultation_repo.rate_if_unrated.side_effect = None
        mock_consultation_repo.rate_if_unrated.return_value = None

        with pytest.raises(ConflictError, match="already rated"):
            service.rate(100, SEEKER, 5)
        mock_user_repo.update_rating.assert_not_called()

    @pytest.mark.parametrize(
        "status", ["pending", "confirmed", "in-progress", "cancelled"]
    )
    def test_only_completed_can_be_rated(self, service, mock_consultation_repo, status):
        mock_consultation_repo.get_by_id.return_value = make_consultation(status=status)
        with pytest.raises(ConflictError):
            service.rate(100, SEEKER, 5)

    @pytest.mark.parametrize("caller", [PROVIDER, ADMIN, STRANGER])
    def test_only_the_seeker_may_rate(self, service, mock_consultation_repo, caller):
        mock_consultation_repo.get_by_id.return_value = make_consultation(
            status="completed"
        )
        with pytest.raises(ForbiddenError):
            service.rate(100, caller, 5)

    @pytest.mark.parametrize("rating", [0, 6, 4.5, "5", True, None])
    def test_rating_range(self, service, mock_consultation_repo, rating):
        mock_consultation_repo.get_by_id.return_value = make_consultation(
            status="completed"
        )
        with pytest.raises(ValidationError):
            service.rate(100, SEEKER, rating)

    def test_review_length_limit(self, service, mock_consultation_repo):
        mock_consultation_repo.get_by_id.return_value = make_consultation(
            status="completed"
        )
        with pytest.raises(ValidationError, match="500"):
            service.rate(100, SEEKER, 5, "x" * 501)

    def test_review_at_limit_accepted(self, service, mock_consultation_repo):
        mock_consultation_repo.get_by_id.return_value = make_consultation(
            status="completed"
        )
        assert service.rate(100, SEEKER, 3, "x" * 500).rating == 3

    def test_missing_consultation(self, service):
        with pytest.raises(NotFoundError):
            service.rate(100, SEEKER, 5)


@pytest.mark.services
@pytest.mark.consultation
class TestConsultationQueries:
    def test_participants_can_read(self, service, mock_consultation_repo):
        consultation = make_consultation()
        mock_consultation_repo.get_by_id.return_value = consultation
        assert service.get(100, SEEKER) is consultation
        assert service.get(100, PROVIDER) is consultation
        assert service.get(100, ADMIN) is consultation

    def test_outsider_cannot_read(self, service, mock_consultation_repo):
        mock_consultation_repo.get_by_id.return_value = make_consultation()
        with pytest.raises(ForbiddenError):
            service.get(100, STRANGER)

    def test_seeker_listing_is_scoped(self, service, mock_consultation_repo):
        service.list_for_caller(SEEKER, status="accepted")
        mock_consultation_repo.list_filtered.assert_called_once_with(
            status="confirmed", consultation_type=None, seeker_id=SEEKER.id
        )

    def test_provider_listing_is_scoped(self, service, mock_consultation_repo):
        service.list_for_caller(PROVIDER, consultation_type="chat")
        mock_consultation_repo.list_filtered.assert_called_once_with(
            status=None, consultation_type="chat", provider_id=PROVIDER.id
        )

    def test_admin_sees_everything(self, service, mock_consultation_repo):
        service.list_for_caller(ADMIN)
        mock_consultation_repo.list_filtered.assert_called_once_with(
            status=None, consultation_type=None
        )

    def test_unknown_type_filter(self, service):
        with pytest.raises(ValidationError):
            service.list_for_caller(SEEKER, consultation_type="fax")

    def test_stats_fill_missing_statuses(self, service, mock_consultation_repo):
        mock_consultation_repo.count_by_status.return_value = {
            "pending": 2,
            "completed": 1,
        }

        stats = service.stats(PROVIDER)

        assert stats == {
            "pending": 2,
            "confirmed": 0,
            "in-progress": 0,
            "completed": 1,
            "rejected": 0,
            "cancelled": 0,
            "total": 3,
        }
        mock_consultation_repo.count_by_status.assert_called_once_with(
            provider_id=PROVIDER.id
        )


@pytest.mark.services
@pytest.mark.consultation
class TestAdminDelete:
    def test_admin_deletes(self, service, mock_consultation_repo):
        service.delete(100, ADMIN)
        mock_consultation_repo.delete.assert_called_once_with(100)

    @pytest.mark.parametrize("caller", [SEEKER, PROVIDER])
    def test_non_admin_forbidden(self, service, mock_consultation_repo, caller):
        with pytest.raises(ForbiddenError):
            service.delete(100, caller)
        mock_consultation_repo.delete.assert_not_called()

    def test_missing_consultation(self, service, mock_consultation_repo):
        mock_consultation_repo.delete.return_value = False
        with pytest.raises(NotFoundError):
            service.delete(100, ADMIN)
