"""
Provider profile: consultation capabilities, base price and the
admin-controlled verification flags.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict

from marketplace.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from marketplace.domain.entities import Caller, RatingAggregate, User
from marketplace.domain.interfaces import IUserRepository

from .rating_service import RatingAggregator

logger = logging.getLogger(__name__)

OWNER_FIELDS = ("chat", "call", "video", "base_price")
ADMIN_FIELDS = ("is_verified", "is_active")


class ProviderProfileService:
    def __init__(
        self, user_repo: IUserRepository, rating_aggregator: RatingAggregator
    ) -> None:
        self.user_repo = user_repo
        self.rating_aggregator = rating_aggregator

    def update_profile(
        self, provider_id: int, caller: Caller, patch: Dict[str, Any]
    ) -> User:
        """Apply a partial profile update.

        Business Rules:
        - Only the provider themself or an admin may edit the profile
        - ``is_verified`` and ``is_active`` are admin-only; a non-admin
          sending either is refused outright
        """
        provider = self.user_repo.get_by_id(provider_id)
        if provider is None or not provider.is_provider:
            raise NotFoundError.for_resource("Provider", provider_id)
        if not caller.is_admin and caller.id != provider_id:
            raise ForbiddenError("You can only edit your own profile")

        unknown = set(patch) - set(OWNER_FIELDS) - set(ADMIN_FIELDS)
        if unknown:
            raise ValidationError(
                f"Unknown fields: {', '.join(sorted(unknown))}",
                details={"fields": sorted(unknown)},
            )
        restricted = sorted(set(patch) & set(ADMIN_FIELDS))
        if restricted and not caller.is_admin:
            raise ForbiddenError(
                "Only admins can change verification or activation",
                details={"fields": restricted},
            )

        for name, value in patch.items():
            if name == "base_price":
                provider.base_price = _parse_base_price(value)
            else:
                if not isinstance(value, bool):
                    raise ValidationError(f"{name} must be a boolean", field=name)
                setattr(provider, name, value)

        updated = self.user_repo.update(provider)
        logger.info(
            "Provider profile updated",
            extra={
                "context": {
                    "provider_id": provider_id,
                    "fields": sorted(patch),
                    "by": caller.role,
                }
            },
        )
        return updated

    def get_rating(self, provider_id: int) -> RatingAggregate:
        return self.rating_aggregator.current(provider_id)


def _parse_base_price(value: Any) -> Decimal:
    if value is None or isinstance(value, bool):
        raise ValidationError("Base price must be a number", field="base_price")
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError("Base price must be a number", field="base_price")
    if not price.is_finite() or price < 0:
        raise ValidationError(
            "Base price must be a non-negative number", field="base_price"
        )
    return price
