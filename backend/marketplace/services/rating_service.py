"""
Rating aggregator.

The provider's ``rating`` and ``total_reviews`` are always rebuilt from
every rated consultation rather than adjusted incrementally, so a
recompute after concurrent rating events converges on the correct value.
"""

import time

from marketplace.core.exceptions import NotFoundError
from marketplace.core.logging_config import log_performance
from marketplace.domain.entities import RatingAggregate
from marketplace.domain.interfaces import IConsultationReader, IUserRepository


class RatingAggregator:
    def __init__(
        self, consultation_repo: IConsultationReader, user_repo: IUserRepository
    ) -> None:
        self.consultation_repo = consultation_repo
        self.user_repo = user_repo

    def recompute(self, provider_id: int) -> RatingAggregate:
        """Recalculate and store the provider's mean rating and review count."""
        started = time.perf_counter()
        ratings = [
            c.rating
            for c in self.consultation_repo.get_rated_by_provider(provider_id)
            if c.rating is not None
        ]
        total = len(ratings)
        average = sum(ratings) / total if total else 0.0

        self.user_repo.update_rating(provider_id, average, total)
        log_performance(
            "rating_recompute",
            (time.perf_counter() - started) * 1000,
            provider_id=provider_id,
            record_count=total,
        )
        return RatingAggregate(
            provider_id=provider_id, average_rating=average, total_reviews=total
        )

    def current(self, provider_id: int) -> RatingAggregate:
        """Return the stored aggregate without recomputing it."""
        provider = self.user_repo.get_by_id(provider_id)
        if provider is None or not provider.is_provider:
            raise NotFoundError.for_resource("Provider", provider_id)
        return RatingAggregate(
            provider_id=provider_id,
            average_rating=provider.rating,
            total_reviews=provider.total_reviews,
        )
