"""
Domain entities - Pure business logic, no framework dependencies.

Entities validate their own invariants in ``__post_init__`` and raise
``ValidationError`` (a ``ValueError``) when constructed with bad data.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional

from marketplace.core.config import (
    DEFAULT_CURRENCY,
    MAX_CONSULTATION_MINUTES,
    MIN_CONSULTATION_MINUTES,
)
from marketplace.core.exceptions import ValidationError

from .lifecycle import ConsultationStatus
from .scheduling import intervals_overlap, parse_clock


class UserType:
    SEEKER = "seeker"
    PROVIDER = "provider"
    ADMIN = "admin"

    ALL = (SEEKER, PROVIDER, ADMIN)


class ConsultationType:
    CHAT = "chat"
    CALL = "call"
    VIDEO = "video"

    ALL = (CHAT, CALL, VIDEO)


@dataclass
class Caller:
    """Already-authenticated identity driving an operation."""

    id: int
    role: str

    def __post_init__(self):
        if self.role not in UserType.ALL:
            raise ValidationError(f"Unknown caller role '{self.role}'", field="role")

    @property
    def is_admin(self) -> bool:
        return self.role == UserType.ADMIN


@dataclass
class User:
    """Seeker, provider or admin as seen by the booking core.

    Providers carry consultation capabilities, a base price and the
    denormalised rating aggregate.
    """

    id: Optional[int] = None
    email: str = ""
    name: str = ""
    user_type: str = UserType.SEEKER
    is_active: bool = True
    is_verified: bool = False
    chat: bool = True
    call: bool = False
    video: bool = False
    base_price: Decimal = Decimal("0")
    rating: float = 0.0
    total_reviews: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.user_type not in UserType.ALL:
            raise ValidationError(f"Unknown user type '{self.user_type}'")
        if self.email and "@" not in self.email:
            raise ValidationError("Invalid email format", field="email")
        if self.base_price is not None and Decimal(self.base_price) < 0:
            raise ValidationError("Base price cannot be negative", field="base_price")
        if self.total_reviews < 0:
            raise ValidationError("Total reviews cannot be negative")

    @property
    def is_provider(self) -> bool:
        return self.user_type == UserType.PROVIDER

    @property
    def is_seeker(self) -> bool:
        return self.user_type == UserType.SEEKER

    def supports(self, consultation_type: str) -> bool:
        """Whether the provider has enabled this consultation type."""
        if consultation_type not in ConsultationType.ALL:
            return False
        return bool(getattr(self, consultation_type))

    def capabilities(self) -> Dict[str, bool]:
        return {kind: bool(getattr(self, kind)) for kind in ConsultationType.ALL}


@dataclass
class AvailabilitySlot:
    """A provider-declared interval on a calendar date."""

    provider_id: int = 0
    date: Optional[date] = None
    start_time: str = ""
    end_time: str = ""
    is_available: bool = True
    max_bookings: int = 1
    price: Optional[Decimal] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.provider_id <= 0:
            raise ValidationError("Valid provider_id is required")
        if self.date is None:
            raise ValidationError("Date is required", field="date")
        self.start_time = parse_clock(self.start_time, "start_time")
        self.end_time = parse_clock(self.end_time, "end_time")
        if self.end_time <= self.start_time:
            raise ValidationError("End time must be after start time", field="end_time")
        if self.max_bookings is None or self.max_bookings < 1:
            raise ValidationError(
                "maxBookings must be at least 1", field="max_bookings"
            )
        if self.price is not None and Decimal(self.price) < 0:
            raise ValidationError("Price cannot be negative", field="price")

    def overlaps(self, start_time: str, end_time: str) -> bool:
        return intervals_overlap(start_time, end_time, self.start_time, self.end_time)


@dataclass
class Consultation:
    """Domain entity for a seeker-provider booking."""

    seeker_id: int = 0
    provider_id: int = 0
    category_id: int = 0
    consultation_type: str = ConsultationType.CHAT
    scheduled_at: Optional[datetime] = None
    duration: int = 60
    price: Decimal = Decimal("0")
    currency: str = DEFAULT_CURRENCY
    description: str = ""
    title: Optional[str] = None
    status: str = ConsultationStatus.PENDING
    rating: Optional[int] = None
    review: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancelled_by: Optional[str] = None
    rejection_reason: Optional[str] = None
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.seeker_id <= 0:
            raise ValidationError("Valid seeker_id is required")
        if self.provider_id <= 0:
            raise ValidationError("Valid provider_id is required")
        if self.consultation_type not in ConsultationType.ALL:
            raise ValidationError(
                f"Unknown consultation type '{self.consultation_type}'",
                field="consultation_type",
            )
        if self.scheduled_at is None:
            raise ValidationError("Scheduled time is required", field="scheduled_at")
        if not MIN_CONSULTATION_MINUTES <= self.duration <= MAX_CONSULTATION_MINUTES:
            raise ValidationError(
                f"Duration must be between {MIN_CONSULTATION_MINUTES} and "
                f"{MAX_CONSULTATION_MINUTES} minutes",
                field="duration",
            )
        if Decimal(self.price) < 0:
            raise ValidationError("Price cannot be negative", field="price")
        if self.status not in ConsultationStatus.ALL:
            raise ValidationError(f"Unknown status '{self.status}'", field="status")

    @property
    def ends_at(self) -> datetime:
        return self.scheduled_at + timedelta(minutes=self.duration)

    @property
    def is_rated(self) -> bool:
        return self.rating is not None

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return intervals_overlap(start, end, self.scheduled_at, self.ends_at)


@dataclass
class RatingAggregate:
    """Provider-level average rating and review count."""

    provider_id: int
    average_rating: float = 0.0
    total_reviews: int = 0


@dataclass
class BulkSlotResult:
    """Mixed success/error report of a bulk slot creation."""

    created: List[AvailabilitySlot] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


@dataclass
class WeeklySchedule:
    """Seven Monday-first date buckets of a provider's slots."""

    provider_id: int
    week_start: date
    week_end: date
    schedule: Dict[date, List[AvailabilitySlot]] = field(default_factory=dict)
