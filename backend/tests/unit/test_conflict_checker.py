"""
Unit tests for BookingConflictChecker.
"""

from datetime import datetime

import pytest

from marketplace.domain.lifecycle import BLOCKING_STATUSES
from marketplace.services.conflict_checker import BookingConflictChecker
from tests.factories.entity_factories import make_consultation
from tests.factories.repository_factories import ConsultationRepositoryFactory

TEN = datetime(2030, 1, 7, 10, 0)


@pytest.fixture
def mock_consultation_repo():
    return ConsultationRepositoryFactory.create_mock_reader()


@pytest.fixture
def checker(mock_consultation_repo) -> BookingConflictChecker:
    return BookingConflictChecker(mock_consultation_repo)


@pytest.mark.services
@pytest.mark.consultation
class TestIsTimeSlotFree:
    def test_free_when_no_bookings(self, checker, mock_consultation_repo):
        assert checker.is_time_slot_free(2, TEN, 60)
        mock_consultation_repo.find_for_provider_window.assert_called_once_with(
            2, TEN, datetime(2030, 1, 7, 11, 0), BLOCKING_STATUSES
        )

    def test_pending_booking_blocks_overlapping_request(
        self, checker, mock_consultation_repo
    ):
        mock_consultation_repo.find_for_provider_window.return_value = [
            make_consultation(scheduled_at=TEN, duration=60, status="pending")
        ]
        assert not checker.is_time_slot_free(2, datetime(2030, 1, 7, 10, 30), 60)

    def test_request_starting_before_and_running_into_booking(
        self, checker, mock_consultation_repo
    ):
        mock_consultation_repo.find_for_provider_window.return_value = [
            make_consultation(scheduled_at=TEN, duration=60, status="confirmed")
        ]
        assert not checker.is_time_slot_free(2, datetime(2030, 1, 7, 9, 30), 60)

    def test_back_to_back_bookings_are_free(self, checker, mock_consultation_repo):
        mock_consultation_repo.find_for_provider_window.return_value = [
            make_consultation(scheduled_at=TEN, duration=60, status="in-progress")
        ]
        assert checker.is_time_slot_free(2, datetime(2030, 1, 7, 11, 0), 30)
        assert checker.is_time_slot_free(2, datetime(2030, 1, 7, 9, 0), 60)

    @pytest.mark.parametrize("status", ["completed", "rejected", "cancelled"])
    def test_terminal_bookings_do_not_block(
        self, checker, mock_consultation_repo, status
    ):
        mock_consultation_repo.find_for_provider_window.return_value = [
            make_consultation(scheduled_at=TEN, duration=60, status=status)
        ]
        assert checker.is_time_slot_free(2, TEN, 60)

    def test_find_conflicts_returns_blocking_bookings(
        self, checker, mock_consultation_repo
    ):
        blocking = make_consultation(101, scheduled_at=TEN, duration=60)
        clear = make_consultation(102, scheduled_at=datetime(2030, 1, 7, 12, 0))
        mock_consultation_repo.find_for_provider_window.return_value = [
            blocking,
            clear,
        ]

        conflicts = checker.find_conflicts(2, datetime(2030, 1, 7, 10, 15), 30)

        assert conflicts == [blocking]
