"""Wiring of repositories and services for one request-scoped session."""

from marketplace.repositories import (
    AvailabilityRepository,
    ConsultationRepository,
    UserRepository,
)
from marketplace.services import (
    AvailabilityService,
    BookingConflictChecker,
    ConsultationService,
    ProviderProfileService,
    RatingAggregator,
)


def build_availability_service(db) -> AvailabilityService:
    return AvailabilityService(
        AvailabilityRepository(db),
        UserRepository(db),
        BookingConflictChecker(ConsultationRepository(db)),
        session=db,
    )


def build_consultation_service(db) -> ConsultationService:
    consultation_repo = ConsultationRepository(db)
    user_repo = UserRepository(db)
    return ConsultationService(
        consultation_repo,
        user_repo,
        BookingConflictChecker(consultation_repo),
        RatingAggregator(consultation_repo, user_repo),
        session=db,
    )


def build_provider_service(db) -> ProviderProfileService:
    consultation_repo = ConsultationRepository(db)
    user_repo = UserRepository(db)
    return ProviderProfileService(
        user_repo, RatingAggregator(consultation_repo, user_repo)
    )
