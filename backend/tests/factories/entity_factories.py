"""
Builders for domain entities used across unit and integration tests.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from marketplace.domain.entities import AvailabilitySlot, Caller, Consultation, User


def future_day(days: int = 7) -> date:
    """A calendar date safely in the future in the default (UTC) timezone."""
    return datetime.now(timezone.utc).date() + timedelta(days=days)


def caller_headers(user_id: int, role: str) -> dict:
    return {"X-Caller-Id": str(user_id), "X-Caller-Role": role}


def make_seeker(user_id: int = 1, **overrides) -> User:
    data = dict(
        id=user_id,
        email=f"seeker{user_id}@example.com",
        name="Sara Seeker",
        user_type="seeker",
        is_active=True,
    )
    data.update(overrides)
    return User(**data)


def make_provider(user_id: int = 2, **overrides) -> User:
    data = dict(
        id=user_id,
        email=f"provider{user_id}@example.com",
        name="Paul Provider",
        user_type="provider",
        is_active=True,
        is_verified=True,
        chat=True,
        call=True,
        video=False,
        base_price=Decimal("50.00"),
    )
    data.update(overrides)
    return User(**data)


def make_slot(slot_id: int = 10, provider_id: int = 2, **overrides) -> AvailabilitySlot:
    data = dict(
        id=slot_id,
        provider_id=provider_id,
        date=future_day(),
        start_time="09:00",
        end_time="12:00",
        is_available=True,
        max_bookings=1,
        price=Decimal("50.00"),
    )
    data.update(overrides)
    return AvailabilitySlot(**data)


def make_consultation(consultation_id: int = 100, **overrides) -> Consultation:
    data = dict(
        id=consultation_id,
        seeker_id=1,
        provider_id=2,
        category_id=3,
        consultation_type="chat",
        scheduled_at=datetime(2030, 1, 7, 10, 0),
        duration=60,
        price=Decimal("50.00"),
        description="Career advice",
        status="pending",
    )
    data.update(overrides)
    return Consultation(**data)


SEEKER = Caller(id=1, role="seeker")
PROVIDER = Caller(id=2, role="provider")
ADMIN = Caller(id=99, role="admin")
STRANGER = Caller(id=7, role="seeker")
