"""
Consultation status lifecycle.

The transition table is the single authority on which status changes are
legal. Terminal states have no outgoing edges.
"""

from typing import Dict, FrozenSet

from marketplace.core.exceptions import ValidationError


class ConsultationStatus:
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"

    ALL = (PENDING, CONFIRMED, IN_PROGRESS, COMPLETED, REJECTED, CANCELLED)


ALLOWED_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    ConsultationStatus.PENDING: frozenset(
        {ConsultationStatus.CONFIRMED, ConsultationStatus.REJECTED}
    ),
    ConsultationStatus.CONFIRMED: frozenset(
        {ConsultationStatus.IN_PROGRESS, ConsultationStatus.CANCELLED}
    ),
    ConsultationStatus.IN_PROGRESS: frozenset(
        {ConsultationStatus.COMPLETED, ConsultationStatus.CANCELLED}
    ),
    ConsultationStatus.COMPLETED: frozenset(),
    ConsultationStatus.REJECTED: frozenset(),
    ConsultationStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)

# Bookings in these states hold the provider's time
BLOCKING_STATUSES = frozenset(
    {
        ConsultationStatus.PENDING,
        ConsultationStatus.CONFIRMED,
        ConsultationStatus.IN_PROGRESS,
    }
)

# Statuses a seeker may withdraw from without provider involvement
SEEKER_CANCELLABLE_STATUSES = frozenset(
    {ConsultationStatus.PENDING, ConsultationStatus.CONFIRMED}
)

_ALIASES = {
    "accepted": ConsultationStatus.CONFIRMED,
    "in_progress": ConsultationStatus.IN_PROGRESS,
    "inprogress": ConsultationStatus.IN_PROGRESS,
    "canceled": ConsultationStatus.CANCELLED,
}


def normalize_status(value) -> str:
    """Map a status string (or legacy alias) to its canonical form."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Status is required", field="status")
    status = value.strip().lower()
    status = _ALIASES.get(status, status)
    if status not in ALLOWED_TRANSITIONS:
        raise ValidationError(f"Unknown status '{value}'", field="status")
    return status


def can_transition(from_status: str, to_status: str) -> bool:
    return to_status in ALLOWED_TRANSITIONS.get(from_status, frozenset())
