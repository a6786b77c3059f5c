"""
Data Transfer Objects (DTOs) for the HTTP adapter.

Request DTOs are built from a JSON body with ``from_json`` and checked with
``validate()``; field-level rules (formats, ranges, ownership) stay in the
services. Response DTOs are built from domain entities with
``from_domain`` and rendered with ``to_dict``.

Dates cross the boundary as ``YYYY-MM-DD``, times as ``HH:MM``, durations
as integer minutes and money as ``{"amount": "<decimal>", "currency": ...}``.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from marketplace.core.config import DEFAULT_CONSULTATION_MINUTES, DEFAULT_CURRENCY
from marketplace.core.exceptions import MarketplaceError, ValidationError


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """First present key wins; accepts snake_case and legacy camelCase."""
    for key in keys:
        if key in data:
            return data[key]
    return default


def _isoformat(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def money(
    amount: Optional[Decimal], currency: str = DEFAULT_CURRENCY
) -> Optional[dict]:
    if amount is None:
        return None
    return {"amount": str(amount), "currency": currency}


def _require_body(data: Any) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


# ----------------------------------------------------------------------
# Availability
# ----------------------------------------------------------------------


@dataclass
class SlotCreateRequest:
    """DTO for single slot creation."""

    date: Any
    start_time: Any
    end_time: Any
    is_available: bool = True
    max_bookings: Any = 1
    price: Any = None

    @classmethod
    def from_json(cls, data: Any) -> "SlotCreateRequest":
        data = _require_body(data)
        return cls(
            date=data.get("date"),
            start_time=_pick(data, "start_time", "startTime"),
            end_time=_pick(data, "end_time", "endTime"),
            is_available=_pick(data, "is_available", "isAvailable", default=True),
            max_bookings=_pick(data, "max_bookings", "maxBookings", default=1),
            price=data.get("price"),
        )

    def validate(self) -> None:
        if not self.date or not self.start_time or not self.end_time:
            raise ValidationError("Date, start time, and end time are required")
        if not isinstance(self.is_available, bool):
            raise ValidationError("isAvailable must be a boolean", field="is_available")


@dataclass
class BulkSlotCreateRequest:
    """DTO for creating the same time range on several dates."""

    dates: Any
    start_time: Any
    end_time: Any
    is_available: bool = True
    max_bookings: Any = 1
    price: Any = None

    @classmethod
    def from_json(cls, data: Any) -> "BulkSlotCreateRequest":
        data = _require_body(data)
        return cls(
            dates=data.get("dates"),
            start_time=_pick(data, "start_time", "startTime"),
            end_time=_pick(data, "end_time", "endTime"),
            is_available=_pick(data, "is_available", "isAvailable", default=True),
            max_bookings=_pick(data, "max_bookings", "maxBookings", default=1),
            price=data.get("price"),
        )

    def validate(self) -> None:
        if not isinstance(self.dates, list) or not self.dates:
            raise ValidationError(
                "Dates array is required and must not be empty", field="dates"
            )
        if not self.start_time or not self.end_time:
            raise ValidationError("Start time and end time are required")
        if not isinstance(self.is_available, bool):
            raise ValidationError("isAvailable must be a boolean", field="is_available")


@dataclass
class SlotUpdateRequest:
    """DTO for partial slot updates; only supplied fields are changed."""

    patch: Dict[str, Any] = field(default_factory=dict)

    _FIELDS = (
        ("start_time", "startTime"),
        ("end_time", "endTime"),
        ("is_available", "isAvailable"),
        ("max_bookings", "maxBookings"),
        ("price", "price"),
    )

    @classmethod
    def from_json(cls, data: Any) -> "SlotUpdateRequest":
        data = _require_body(data)
        patch = {}
        for name, alias in cls._FIELDS:
            if name in data or alias in data:
                patch[name] = _pick(data, name, alias)
        return cls(patch=patch)

    def validate(self) -> None:
        if not self.patch:
            raise ValidationError("No fields to update")


@dataclass
class SlotResponse:
    id: int
    provider_id: int
    date: str
    start_time: str
    end_time: str
    is_available: bool
    max_bookings: int
    price: Optional[dict]

    @classmethod
    def from_domain(cls, slot) -> "SlotResponse":
        return cls(
            id=slot.id,
            provider_id=slot.provider_id,
            date=slot.date.isoformat(),
            start_time=slot.start_time,
            end_time=slot.end_time,
            is_available=slot.is_available,
            max_bookings=slot.max_bookings,
            price=money(slot.price),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "provider_id": self.provider_id,
            "date": self.date,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "is_available": self.is_available,
            "max_bookings": self.max_bookings,
            "price": self.price,
        }


@dataclass
class BulkSlotResponse:
    created: List[SlotResponse]
    errors: List[str]

    @classmethod
    def from_domain(cls, result) -> "BulkSlotResponse":
        return cls(
            created=[SlotResponse.from_domain(s) for s in result.created],
            errors=list(result.errors),
        )

    def to_dict(self) -> dict:
        return {
            "created": [s.to_dict() for s in self.created],
            "errors": self.errors,
        }


@dataclass
class WeeklyScheduleResponse:
    provider_id: int
    week_start: str
    week_end: str
    schedule: Dict[str, List[SlotResponse]]

    @classmethod
    def from_domain(cls, weekly) -> "WeeklyScheduleResponse":
        return cls(
            provider_id=weekly.provider_id,
            week_start=weekly.week_start.isoformat(),
            week_end=weekly.week_end.isoformat(),
            schedule={
                day.isoformat(): [SlotResponse.from_domain(s) for s in slots]
                for day, slots in weekly.schedule.items()
            },
        )

    def to_dict(self) -> dict:
        return {
            "provider_id": self.provider_id,
            "week_start": self.week_start,
            "week_end": self.week_end,
            "schedule": {
                day: [s.to_dict() for s in slots]
                for day, slots in self.schedule.items()
            },
        }


def windows_to_dict(windows: List[Tuple[str, str]]) -> List[dict]:
    return [{"start_time": start, "end_time": end} for start, end in windows]


# ----------------------------------------------------------------------
# Consultations
# ----------------------------------------------------------------------


@dataclass
class ConsultationCreateRequest:
    """DTO for booking requests."""

    provider_id: Any
    category_id: Any
    consultation_type: Any
    scheduled_at: Any
    description: str = ""
    duration: Any = DEFAULT_CONSULTATION_MINUTES
    title: Optional[str] = None

    @classmethod
    def from_json(cls, data: Any) -> "ConsultationCreateRequest":
        data = _require_body(data)
        return cls(
            provider_id=_pick(data, "provider_id", "providerId", "provider"),
            category_id=_pick(data, "category_id", "categoryId", "category"),
            consultation_type=_pick(
                data, "consultation_type", "consultationType", "type"
            ),
            scheduled_at=_pick(data, "scheduled_at", "scheduledAt"),
            description=data.get("description") or "",
            duration=data.get("duration", DEFAULT_CONSULTATION_MINUTES),
            title=data.get("title"),
        )

    def validate(self) -> None:
        if self.provider_id is None or self.category_id is None:
            raise ValidationError("Provider and category are required")
        if isinstance(self.provider_id, bool) or not isinstance(self.provider_id, int):
            raise ValidationError("provider_id must be an integer", field="provider_id")
        if not self.consultation_type:
            raise ValidationError(
                "Consultation type is required", field="consultation_type"
            )
        if not self.scheduled_at:
            raise ValidationError("Scheduled time is required", field="scheduled_at")
        if not isinstance(self.description, str):
            raise ValidationError("Description must be a string", field="description")
        if self.title is not None and not isinstance(self.title, str):
            raise ValidationError("Title must be a string", field="title")


@dataclass
class StatusChangeRequest:
    status: Any
    reason: Optional[str] = None

    @classmethod
    def from_json(cls, data: Any) -> "StatusChangeRequest":
        data = _require_body(data)
        return cls(status=data.get("status"), reason=data.get("reason"))

    def validate(self) -> None:
        if not isinstance(self.status, str) or not self.status.strip():
            raise ValidationError("Status is required", field="status")
        if self.reason is not None and not isinstance(self.reason, str):
            raise ValidationError("Reason must be a string", field="reason")


@dataclass
class CancelRequest:
    reason: Optional[str] = None

    @classmethod
    def from_json(cls, data: Any) -> "CancelRequest":
        data = _require_body(data or {})
        return cls(reason=_pick(data, "reason", "cancellationReason"))

    def validate(self) -> None:
        if self.reason is not None and not isinstance(self.reason, str):
            raise ValidationError("Reason must be a string", field="reason")


@dataclass
class RatingRequest:
    rating: Any
    review: Optional[str] = None

    @classmethod
    def from_json(cls, data: Any) -> "RatingRequest":
        data = _require_body(data)
        return cls(rating=data.get("rating"), review=data.get("review"))

    def validate(self) -> None:
        if self.rating is None:
            raise ValidationError("Rating is required", field="rating")
        if self.review is not None and not isinstance(self.review, str):
            raise ValidationError("Review must be a string", field="review")


@dataclass
class ConsultationResponse:
    """DTO for consultation API responses."""

    id: int
    seeker_id: int
    provider_id: int
    category_id: int
    title: Optional[str]
    description: str
    consultation_type: str
    status: str
    scheduled_at: str
    duration: int
    price: dict
    rating: Optional[int]
    review: Optional[str]
    cancellation_reason: Optional[str]
    cancelled_by: Optional[str]
    rejection_reason: Optional[str]
    started_at: Optional[str]
    ended_at: Optional[str]
    created_at: Optional[str]
    updated_at: Optional[str]

    @classmethod
    def from_domain(cls, consultation) -> "ConsultationResponse":
        return cls(
            id=consultation.id,
            seeker_id=consultation.seeker_id,
            provider_id=consultation.provider_id,
            category_id=consultation.category_id,
            title=consultation.title,
            description=consultation.description,
            consultation_type=consultation.consultation_type,
            status=consultation.status,
            scheduled_at=consultation.scheduled_at.isoformat(),
            duration=consultation.duration,
            price=money(consultation.price, consultation.currency),
            rating=consultation.rating,
            review=consultation.review,
            cancellation_reason=consultation.cancellation_reason,
            cancelled_by=consultation.cancelled_by,
            rejection_reason=consultation.rejection_reason,
            started_at=_isoformat(consultation.started_at),
            ended_at=_isoformat(consultation.ended_at),
            created_at=_isoformat(consultation.created_at),
            updated_at=_isoformat(consultation.updated_at),
        )

    def to_dict(self) -> dict:
        return dict(self.__dict__)


# ----------------------------------------------------------------------
# Providers
# ----------------------------------------------------------------------


@dataclass
class ProviderProfileUpdateRequest:
    patch: Dict[str, Any] = field(default_factory=dict)

    _FIELDS = (
        ("chat", "chat"),
        ("call", "call"),
        ("video", "video"),
        ("base_price", "price"),
        ("is_verified", "isVerified"),
        ("is_active", "isActive"),
    )

    @classmethod
    def from_json(cls, data: Any) -> "ProviderProfileUpdateRequest":
        data = _require_body(data)
        unknown = set(data) - {name for pair in cls._FIELDS for name in pair}
        if unknown:
            raise ValidationError(
                f"Unknown fields: {', '.join(sorted(unknown))}",
                details={"fields": sorted(unknown)},
            )
        patch = {}
        for name, alias in cls._FIELDS:
            if name in data or alias in data:
                patch[name] = _pick(data, name, alias)
        return cls(patch=patch)

    def validate(self) -> None:
        if not self.patch:
            raise ValidationError("No fields to update")


@dataclass
class ProviderResponse:
    id: int
    name: str
    is_active: bool
    is_verified: bool
    capabilities: Dict[str, bool]
    base_price: dict
    rating: float
    total_reviews: int

    @classmethod
    def from_domain(cls, user) -> "ProviderResponse":
        return cls(
            id=user.id,
            name=user.name,
            is_active=user.is_active,
            is_verified=user.is_verified,
            capabilities=user.capabilities(),
            base_price=money(user.base_price),
            rating=user.rating,
            total_reviews=user.total_reviews,
        )

    def to_dict(self) -> dict:
        return dict(self.__dict__)


@dataclass
class RatingAggregateResponse:
    provider_id: int
    average_rating: float
    total_reviews: int

    @classmethod
    def from_domain(cls, aggregate) -> "RatingAggregateResponse":
        return cls(
            provider_id=aggregate.provider_id,
            average_rating=round(aggregate.average_rating, 2),
            total_reviews=aggregate.total_reviews,
        )

    def to_dict(self) -> dict:
        return dict(self.__dict__)


@dataclass
class ErrorResponse:
    """DTO for error responses."""

    error: str
    message: str
    details: Optional[dict] = None
    retryable: bool = False

    @classmethod
    def from_exception(cls, exc: MarketplaceError) -> "ErrorResponse":
        return cls(
            error=exc.code,
            message=exc.message,
            details=exc.details or None,
            retryable=exc.retryable,
        )

    @classmethod
    def server_error(cls, message: str = "Internal server error") -> "ErrorResponse":
        return cls(error="server_error", message=message)

    def to_dict(self) -> dict:
        payload = {"error": self.error}
        if self.details:
            payload["details"] = self.details
        if self.retryable:
            payload["retryable"] = True
        return payload
