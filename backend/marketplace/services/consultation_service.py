"""
Consultation state machine.

Owns booking creation, every status change and the one-time rating of a
completed booking. Status changes are only ever taken along an edge of
``ALLOWED_TRANSITIONS``; anything else raises ``InvalidTransitionError``.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from marketplace.core import config
from marketplace.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from marketplace.domain.entities import (
    Caller,
    Consultation,
    ConsultationType,
    UserType,
)
from marketplace.domain.interfaces import IConsultationRepository, IUserReader
from marketplace.domain.lifecycle import (
    SEEKER_CANCELLABLE_STATUSES,
    ConsultationStatus,
    can_transition,
    normalize_status,
)
from marketplace.domain.scheduling import parse_timestamp

from .conflict_checker import BookingConflictChecker
from .locking import ProviderLockRegistry, provider_locks
from .rating_service import RatingAggregator

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ConsultationService:
    """Application service for the booking lifecycle."""

    def __init__(
        self,
        consultation_repo: IConsultationRepository,
        user_repo: IUserReader,
        conflict_checker: BookingConflictChecker,
        rating_aggregator: RatingAggregator,
        session=None,
        locks: Optional[ProviderLockRegistry] = None,
        now: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.consultation_repo = consultation_repo
        self.user_repo = user_repo
        self.conflict_checker = conflict_checker
        self.rating_aggregator = rating_aggregator
        self.session = session
        self.locks = locks or provider_locks
        self.now = now or _utcnow

    def create(
        self,
        caller: Caller,
        provider_id: int,
        category_id: int,
        consultation_type: str,
        scheduled_at: Any,
        description: str,
        duration: int = config.DEFAULT_CONSULTATION_MINUTES,
        title: Optional[str] = None,
    ) -> Consultation:
        """Book a consultation for the calling seeker.

        Business Rules:
        - The caller must be an existing, active seeker
        - The provider must exist, be active and verified
        - The provider must have the requested consultation type enabled
        - The provider must have no blocking booking overlapping the slot
        - Price is copied from the provider's current base price

        Raises:
            ValidationError: any of the first three rules fails
            ConflictError: the requested time is already taken
        """
        seeker = self.user_repo.get_by_id(caller.id)
        if (
            seeker is None
            or caller.role != UserType.SEEKER
            or not seeker.is_seeker
            or not seeker.is_active
        ):
            raise ValidationError("Only active seekers can book consultations")

        provider = self.user_repo.get_by_id(provider_id)
        if provider is None or not provider.is_provider:
            raise ValidationError("Provider not found", field="provider_id")
        if not provider.is_active:
            raise ValidationError("Provider is not active", field="provider_id")
        if not provider.is_verified:
            raise ValidationError("Provider is not verified", field="provider_id")

        if consultation_type not in ConsultationType.ALL:
            raise ValidationError(
                f"Unknown consultation type '{consultation_type}'",
                field="consultation_type",
            )
        if not provider.supports(consultation_type):
            raise ValidationError(
                f"Provider does not offer {consultation_type} consultations",
                field="consultation_type",
            )

        if (
            isinstance(category_id, bool)
            or not isinstance(category_id, int)
            or category_id <= 0
        ):
            raise ValidationError("Valid category_id is required", field="category_id")
        if isinstance(duration, bool) or not isinstance(duration, int):
            raise ValidationError("Duration must be an integer", field="duration")

        consultation = Consultation(
            seeker_id=seeker.id,
            provider_id=provider.id,
            category_id=category_id,
            consultation_type=consultation_type,
            scheduled_at=parse_timestamp(scheduled_at),
            duration=duration,
            price=provider.base_price,
            currency=config.DEFAULT_CURRENCY,
            description=description or "",
            title=title,
            status=ConsultationStatus.PENDING,
        )

        with self.locks.hold("booking", provider.id, self.session):
            if not self.conflict_checker.is_time_slot_free(
                provider.id, consultation.scheduled_at, consultation.duration
            ):
                logger.info(
                    "Booking rejected: provider time already taken",
                    extra={
                        "context": {
                            "provider_id": provider.id,
                            "seeker_id": seeker.id,
                            "scheduled_at": consultation.scheduled_at.isoformat(),
                            "duration": consultation.duration,
                        }
                    },
                )
                raise ConflictError(
                    "Provider is not available at the requested time",
                    details={"provider_id": provider.id},
                )
            created = self.consultation_repo.create(consultation)

        logger.info(
            "Consultation created",
            extra={
                "context": {
                    "consultation_id": created.id,
                    "provider_id": created.provider_id,
                    "seeker_id": created.seeker_id,
                    "type": created.consultation_type,
                }
            },
        )
        return created

    def transition(
        self,
        consultation_id: int,
        caller: Caller,
        target_status: str,
        reason: Optional[str] = None,
    ) -> Consultation:
        """Move a consultation along one edge of the lifecycle table.

        Providers may take any edge, seekers only ``confirmed -> cancelled``
        and admins any edge.
        """
        consultation = self._load(consultation_id)
        actor = self._actor(consultation, caller)
        target = normalize_status(target_status)
        current = consultation.status

        if not can_transition(current, target):
            logger.info(
                "Status change rejected",
                extra={
                    "context": {
                        "consultation_id": consultation_id,
                        "from": current,
                        "to": target,
                        "actor": actor,
                    }
                },
            )
            raise InvalidTransitionError(current, target)

        if actor == UserType.SEEKER and not (
            current == ConsultationStatus.CONFIRMED
            and target == ConsultationStatus.CANCELLED
        ):
            raise ForbiddenError(
                "Seekers may only cancel a confirmed consultation",
                details={"from": current, "to": target},
            )

        self._apply_status(consultation, target, actor, reason)
        return self._save_transition(consultation, current, actor)

    def cancel(
        self, consultation_id: int, caller: Caller, reason: Optional[str] = None
    ) -> Consultation:
        """Seeker withdrawal from a pending or confirmed booking."""
        consultation = self._load(consultation_id)
        if caller.id != consultation.seeker_id or caller.role != UserType.SEEKER:
            raise ForbiddenError("Only the seeker can cancel this consultation")
        current = consultation.status
        if current not in SEEKER_CANCELLABLE_STATUSES:
            raise InvalidTransitionError(current, ConsultationStatus.CANCELLED)

        self._apply_status(
            consultation, ConsultationStatus.CANCELLED, UserType.SEEKER, reason
        )
        return self._save_transition(consultation, current, UserType.SEEKER)

    def rate(
        self,
        consultation_id: int,
        caller: Caller,
        rating: Any,
        review: Optional[str] = None,
    ) -> Consultation:
        """Record the seeker's one-time rating and refresh the provider aggregate."""
        consultation = self._load(consultation_id)
        if caller.id != consultation.seeker_id or caller.role != UserType.SEEKER:
            raise ForbiddenError("Only the seeker can rate this consultation")
        valid_rating = isinstance(rating, int) and not isinstance(rating, bool)
        if not valid_rating or not 1 <= rating <= 5:
            raise ValidationError(
                "Rating must be an integer between 1 and 5", field="rating"
            )
        if review is not None and len(review) > config.MAX_REVIEW_LENGTH:
            raise ValidationError(
                f"Review cannot exceed {config.MAX_REVIEW_LENGTH} characters",
                field="review",
            )
        if consultation.status != ConsultationStatus.COMPLETED:
            raise ConflictError("Only completed consultations can be rated")
        if consultation.is_rated:
            raise ConflictError("already rated")

        # A concurrent rating that passed the checks above leaves no row to match
        rated = self.consultation_repo.rate_if_unrated(
            consultation_id, rating, review
        )
        if rated is None:
            raise ConflictError("already rated")
        aggregate = self.rating_aggregator.recompute(rated.provider_id)

        logger.info(
            "Consultation rated",
            extra={
                "context": {
                    "consultation_id": consultation_id,
                    "provider_id": rated.provider_id,
                    "rating": rating,
                    "provider_average": aggregate.average_rating,
                    "provider_reviews": aggregate.total_reviews,
                }
            },
        )
        return rated

    def get(self, consultation_id: int, caller: Caller) -> Consultation:
        consultation = self._load(consultation_id)
        self._actor(consultation, caller)
        return consultation

    def list_for_caller(
        self,
        caller: Caller,
        status: Optional[str] = None,
        consultation_type: Optional[str] = None,
    ) -> List[Consultation]:
        """Newest-first consultations visible to the caller."""
        if status is not None:
            status = normalize_status(status)
        if (
            consultation_type is not None
            and consultation_type not in ConsultationType.ALL
        ):
            raise ValidationError(
                f"Unknown consultation type '{consultation_type}'",
                field="consultation_type",
            )
        return self.consultation_repo.list_filtered(
            status=status, consultation_type=consultation_type, **self._scope(caller)
        )

    def stats(self, caller: Caller) -> Dict[str, int]:
        """Per-status counts of the caller's consultations plus a total."""
        counts = self.consultation_repo.count_by_status(**self._scope(caller))
        result = {status: counts.get(status, 0) for status in ConsultationStatus.ALL}
        result["total"] = sum(result.values())
        return result

    def delete(self, consultation_id: int, caller: Caller) -> None:
        """Administrative removal of a consultation."""
        if not caller.is_admin:
            raise ForbiddenError("Only admins can delete consultations")
        if not self.consultation_repo.delete(consultation_id):
            raise NotFoundError.for_resource("Consultation", consultation_id)
        logger.warning(
            "Consultation deleted by admin",
            extra={
                "context": {"consultation_id": consultation_id, "admin_id": caller.id}
            },
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load(self, consultation_id: int) -> Consultation:
        consultation = self.consultation_repo.get_by_id(consultation_id)
        if consultation is None:
            raise NotFoundError.for_resource("Consultation", consultation_id)
        return consultation

    def _actor(self, consultation: Consultation, caller: Caller) -> str:
        """Role the caller plays on this booking."""
        if caller.is_admin:
            return UserType.ADMIN
        if caller.id == consultation.provider_id and caller.role == UserType.PROVIDER:
            return UserType.PROVIDER
        if caller.id == consultation.seeker_id and caller.role == UserType.SEEKER:
            return UserType.SEEKER
        raise ForbiddenError("You do not have access to this consultation")

    def _scope(self, caller: Caller) -> Dict[str, int]:
        if caller.is_admin:
            return {}
        if caller.role == UserType.PROVIDER:
            return {"provider_id": caller.id}
        return {"seeker_id": caller.id}

    def _apply_status(
        self,
        consultation: Consultation,
        target: str,
        actor: str,
        reason: Optional[str],
    ) -> None:
        consultation.status = target
        if target == ConsultationStatus.IN_PROGRESS:
            consultation.started_at = self.now()
        elif target == ConsultationStatus.COMPLETED:
            consultation.ended_at = self.now()
        elif target == ConsultationStatus.CANCELLED:
            consultation.cancellation_reason = reason
            consultation.cancelled_by = actor
        elif target == ConsultationStatus.REJECTED:
            consultation.rejection_reason = reason

    def _save_transition(
        self, consultation: Consultation, previous: str, actor: str
    ) -> Consultation:
        saved = self.consultation_repo.update_if_status(consultation, previous)
        if saved is None:
            logger.info(
                "Status change lost a concurrent update",
                extra={
                    "context": {
                        "consultation_id": consultation.id,
                        "from": previous,
                        "to": consultation.status,
                        "actor": actor,
                    }
                },
            )
            raise ConflictError(
                "Consultation status changed concurrently, please retry",
                details={"from": previous, "to": consultation.status},
                retryable=True,
            )
        logger.info(
            "Consultation status changed",
            extra={
                "context": {
                    "consultation_id": saved.id,
                    "from": previous,
                    "to": saved.status,
                    "actor": actor,
                }
            },
        )
        return saved
