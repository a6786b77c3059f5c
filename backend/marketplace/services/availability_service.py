"""
Availability store: provider-declared calendar-date slots.

Providers publish slots for a calendar date. Two available slots of the
same provider on the same date must not overlap; that rule is enforced
when slots are created (single or bulk) under the provider's ``slot``
lock. Editing an existing slot only re-validates its own time order.
"""

import logging
from datetime import date, datetime, timedelta, tzinfo
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from marketplace.core import config
from marketplace.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from marketplace.domain.entities import (
    AvailabilitySlot,
    BulkSlotResult,
    Caller,
    UserType,
    WeeklySchedule,
)
from marketplace.domain.interfaces import IAvailabilityRepository, IUserReader
from marketplace.domain.scheduling import (
    clock_to_minutes,
    local_to_utc,
    minutes_to_clock,
    parse_calendar_date,
    parse_clock,
    week_days,
    week_monday,
)

from .conflict_checker import BookingConflictChecker
from .locking import ProviderLockRegistry, provider_locks

logger = logging.getLogger(__name__)

_PATCHABLE_FIELDS = ("start_time", "end_time", "is_available", "max_bookings", "price")


def _parse_price(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError("Price must be a number", field="price")
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError("Price must be a number", field="price")
    if not price.is_finite():
        raise ValidationError("Price must be a number", field="price")
    if price < 0:
        raise ValidationError("Price cannot be negative", field="price")
    return price


def _parse_max_bookings(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("maxBookings must be an integer", field="max_bookings")
    if value < 1:
        raise ValidationError("maxBookings must be at least 1", field="max_bookings")
    return value


def _parse_time_range(start_time: Any, end_time: Any) -> Tuple[str, str]:
    if start_time is None or end_time is None:
        raise ValidationError("Start time and end time are required")
    start = parse_clock(start_time, "start_time")
    end = parse_clock(end_time, "end_time")
    if end <= start:
        raise ValidationError("End time must be after start time", field="end_time")
    return start, end


class AvailabilityService:
    """Use-cases around provider availability slots."""

    def __init__(
        self,
        availability_repo: IAvailabilityRepository,
        user_repo: IUserReader,
        conflict_checker: BookingConflictChecker,
        session=None,
        locks: Optional[ProviderLockRegistry] = None,
        today: Optional[Callable[[], date]] = None,
        tz: Optional[tzinfo] = None,
    ) -> None:
        self.availability_repo = availability_repo
        self.user_repo = user_repo
        self.conflict_checker = conflict_checker
        self.session = session
        self.locks = locks or provider_locks
        self.tz = tz or config.APP_TZ
        self.today = today or (lambda: datetime.now(self.tz).date())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_slot(
        self,
        caller: Caller,
        date: Any,
        start_time: Any,
        end_time: Any,
        is_available: bool = True,
        max_bookings: Any = 1,
        price: Any = None,
    ) -> AvailabilitySlot:
        """Publish one slot for the calling provider.

        Raises:
            ForbiddenError: caller is not a provider
            ValidationError: bad date/time format, past date, inverted
                range, ``max_bookings < 1`` or negative price
            ConflictError: an existing available slot overlaps
        """
        default_price = self._provider_default_price(caller)
        day = parse_calendar_date(date)
        start, end = _parse_time_range(start_time, end_time)
        if day < self.today():
            raise ValidationError(
                "Cannot set availability for past dates", field="date"
            )
        slot = AvailabilitySlot(
            provider_id=caller.id,
            date=day,
            start_time=start,
            end_time=end,
            is_available=bool(is_available),
            max_bookings=_parse_max_bookings(max_bookings),
            price=_parse_price(price) if price is not None else default_price,
        )

        with self.locks.hold("slot", caller.id, self.session):
            if self.availability_repo.find_overlapping(caller.id, day, start, end):
                logger.info(
                    "Slot rejected: overlaps existing availability",
                    extra={
                        "context": {
                            "provider_id": caller.id,
                            "date": day.isoformat(),
                            "start_time": start,
                            "end_time": end,
                        }
                    },
                )
                raise ConflictError("Time slot overlaps with existing availability")
            created = self.availability_repo.create(slot)

        logger.info(
            "Availability slot created",
            extra={
                "context": {
                    "slot_id": created.id,
                    "provider_id": caller.id,
                    "date": day.isoformat(),
                    "start_time": start,
                    "end_time": end,
                }
            },
        )
        return created

    def create_slots_bulk(
        self,
        caller: Caller,
        dates: Iterable[Any],
        start_time: Any,
        end_time: Any,
        is_available: bool = True,
        max_bookings: Any = 1,
        price: Any = None,
    ) -> BulkSlotResult:
        """Publish the same time range on several dates.

        The shared fields are validated once and raise. Each date is then
        processed on its own; failures are collected in input order
        instead of aborting the batch.
        """
        default_price = self._provider_default_price(caller)
        if isinstance(dates, (str, bytes)) or dates is None:
            raise ValidationError(
                "Dates array is required and must not be empty", field="dates"
            )
        dates = list(dates)
        if not dates:
            raise ValidationError(
                "Dates array is required and must not be empty", field="dates"
            )
        start, end = _parse_time_range(start_time, end_time)
        capacity = _parse_max_bookings(max_bookings)
        slot_price = _parse_price(price) if price is not None else default_price
        today = self.today()

        result = BulkSlotResult()
        with self.locks.hold("slot", caller.id, self.session) as held:
            committed = False
            for raw in dates:
                try:
                    day = parse_calendar_date(raw)
                except ValidationError:
                    result.errors.append(f"invalid date: {raw}")
                    continue
                if day < today:
                    result.errors.append(f"past date: {raw}")
                    continue
                if committed:
                    held.renew()
                if self.availability_repo.find_overlapping(caller.id, day, start, end):
                    result.errors.append(f"overlaps existing availability: {raw}")
                    continue
                result.created.append(
                    self.availability_repo.create(
                        AvailabilitySlot(
                            provider_id=caller.id,
                            date=day,
                            start_time=start,
                            end_time=end,
                            is_available=bool(is_available),
                            max_bookings=capacity,
                            price=slot_price,
                        )
                    )
                )
                committed = True

        logger.info(
            "Bulk availability processed",
            extra={
                "context": {
                    "provider_id": caller.id,
                    "requested": len(dates),
                    "created": len(result.created),
                    "errors": len(result.errors),
                }
            },
        )
        return result

    def update_slot(
        self, slot_id: int, caller: Caller, patch: Dict[str, Any]
    ) -> AvailabilitySlot:
        """Apply a partial update to a slot owned by the caller.

        Sibling slots are not re-checked for overlap.
        """
        slot = self._owned_slot(slot_id, caller)
        unknown = set(patch) - set(_PATCHABLE_FIELDS)
        if unknown:
            raise ValidationError(
                f"Unknown fields: {', '.join(sorted(unknown))}",
                details={"fields": sorted(unknown)},
            )

        start = slot.start_time
        end = slot.end_time
        if patch.get("start_time") is not None:
            start = parse_clock(patch["start_time"], "start_time")
        if patch.get("end_time") is not None:
            end = parse_clock(patch["end_time"], "end_time")
        if end <= start:
            raise ValidationError("End time must be after start time", field="end_time")
        slot.start_time = start
        slot.end_time = end

        if patch.get("is_available") is not None:
            slot.is_available = bool(patch["is_available"])
        if patch.get("max_bookings") is not None:
            slot.max_bookings = _parse_max_bookings(patch["max_bookings"])
        if "price" in patch:
            slot.price = _parse_price(patch["price"])

        updated = self.availability_repo.update(slot)
        logger.info(
            "Availability slot updated",
            extra={"context": {"slot_id": slot_id, "fields": sorted(patch)}},
        )
        return updated

    def delete_slot(self, slot_id: int, caller: Caller) -> None:
        self._owned_slot(slot_id, caller)
        self.availability_repo.delete(slot_id)
        logger.info(
            "Availability slot deleted",
            extra={"context": {"slot_id": slot_id, "provider_id": caller.id}},
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_slot(self, slot_id: int) -> AvailabilitySlot:
        slot = self.availability_repo.get_by_id(slot_id)
        if slot is None:
            raise NotFoundError.for_resource("Availability", slot_id)
        return slot

    def list_slots(
        self,
        provider_id: int,
        date: Any = None,
        start_date: Any = None,
        end_date: Any = None,
    ) -> List[AvailabilitySlot]:
        """Slots of a provider sorted by date then start time.

        ``date`` selects a single day and takes precedence over the
        inclusive ``start_date``/``end_date`` range.
        """
        if date is not None:
            day = parse_calendar_date(date)
            return self.availability_repo.list_for_provider(provider_id, day, day)
        lower = parse_calendar_date(start_date, "start_date") if start_date else None
        upper = parse_calendar_date(end_date, "end_date") if end_date else None
        return self.availability_repo.list_for_provider(provider_id, lower, upper)

    def weekly_projection(
        self, provider_id: int, week_start: Any = None
    ) -> WeeklySchedule:
        """Group a provider's slots into seven Monday-first day buckets."""
        anchor = (
            parse_calendar_date(week_start, "week_start")
            if week_start is not None
            else self.today()
        )
        monday = week_monday(anchor)
        days = week_days(monday)
        slots = self.availability_repo.list_for_provider(provider_id, days[0], days[-1])

        schedule: Dict[date, List[AvailabilitySlot]] = {day: [] for day in days}
        for slot in slots:
            if slot.date in schedule:
                schedule[slot.date].append(slot)
        return WeeklySchedule(
            provider_id=provider_id,
            week_start=days[0],
            week_end=days[-1],
            schedule=schedule,
        )

    def bookable_windows(
        self,
        provider_id: int,
        date: Any,
        duration: int = config.DEFAULT_CONSULTATION_MINUTES,
    ) -> List[Tuple[str, str]]:
        """Cut the day's available slots into ``duration``-minute windows.

        Slot clocks are wall time in the app timezone; each window is
        converted to UTC before it is checked against stored bookings.
        Windows that collide with a blocking consultation are left out.
        """
        if isinstance(duration, bool) or not isinstance(duration, int):
            raise ValidationError("Duration must be an integer", field="duration")
        if not (
            config.MIN_CONSULTATION_MINUTES
            <= duration
            <= config.MAX_CONSULTATION_MINUTES
        ):
            raise ValidationError(
                f"Duration must be between {config.MIN_CONSULTATION_MINUTES} and "
                f"{config.MAX_CONSULTATION_MINUTES} minutes",
                field="duration",
            )
        day = parse_calendar_date(date)

        windows: List[Tuple[str, str]] = []
        for slot in self.availability_repo.list_for_provider(provider_id, day, day):
            if not slot.is_available:
                continue
            cursor = clock_to_minutes(slot.start_time)
            limit = clock_to_minutes(slot.end_time)
            while cursor + duration <= limit:
                begins = local_to_utc(
                    datetime.combine(day, datetime.min.time())
                    + timedelta(minutes=cursor),
                    self.tz,
                )
                if self.conflict_checker.is_time_slot_free(
                    provider_id, begins, duration
                ):
                    windows.append(
                        (minutes_to_clock(cursor), minutes_to_clock(cursor + duration))
                    )
                cursor += duration
        return windows

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _provider_default_price(self, caller: Caller) -> Decimal:
        if caller.role != UserType.PROVIDER:
            raise ForbiddenError("Only providers can set availability")
        provider = self.user_repo.get_by_id(caller.id)
        if provider is None or not provider.is_provider:
            raise NotFoundError.for_resource("Provider", caller.id)
        return provider.base_price

    def _owned_slot(self, slot_id: int, caller: Caller) -> AvailabilitySlot:
        slot = self.get_slot(slot_id)
        if slot.provider_id != caller.id:
            raise ForbiddenError("You can only edit your own availability")
        return slot
