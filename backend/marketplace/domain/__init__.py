"""
Domain package - Pure business logic layer.

This package contains:
- entities.py: Domain entities with invariant checks
- lifecycle.py: Consultation status table
- scheduling.py: Calendar/clock helpers and the half-open overlap rule
- interfaces.py: Repository contracts
"""

from .entities import (
    AvailabilitySlot,
    BulkSlotResult,
    Caller,
    Consultation,
    ConsultationType,
    RatingAggregate,
    User,
    UserType,
    WeeklySchedule,
)
from .interfaces import (
    IAvailabilityReader,
    IAvailabilityRepository,
    IAvailabilityWriter,
    IConsultationReader,
    IConsultationRepository,
    IConsultationWriter,
    IUserReader,
    IUserRepository,
    IUserWriter,
)
from .lifecycle import ALLOWED_TRANSITIONS, BLOCKING_STATUSES, ConsultationStatus

__all__ = [
    # Domain entities
    "AvailabilitySlot",
    "BulkSlotResult",
    "Caller",
    "Consultation",
    "ConsultationType",
    "RatingAggregate",
    "User",
    "UserType",
    "WeeklySchedule",
    # Lifecycle
    "ALLOWED_TRANSITIONS",
    "BLOCKING_STATUSES",
    "ConsultationStatus",
    # Repository interfaces
    "IUserRepository",
    "IAvailabilityRepository",
    "IConsultationRepository",
    # Segregated interfaces
    "IUserReader",
    "IUserWriter",
    "IAvailabilityReader",
    "IAvailabilityWriter",
    "IConsultationReader",
    "IConsultationWriter",
]
