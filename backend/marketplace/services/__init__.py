"""Application services of the booking core."""

from .availability_service import AvailabilityService
from .conflict_checker import BookingConflictChecker
from .consultation_service import ConsultationService
from .locking import ProviderLockRegistry, provider_locks
from .provider_service import ProviderProfileService
from .rating_service import RatingAggregator

__all__ = [
    "AvailabilityService",
    "BookingConflictChecker",
    "ConsultationService",
    "ProviderLockRegistry",
    "ProviderProfileService",
    "RatingAggregator",
    "provider_locks",
]
