"""
Booking conflict checker.

A provider's time is held by every consultation that is pending,
confirmed or in progress. A requested interval is free when none of those
overlaps it under half-open semantics. Slot capacity (``max_bookings``) is
not considered.
"""

import logging
from datetime import datetime, timedelta
from typing import List

from marketplace.domain.entities import Consultation
from marketplace.domain.interfaces import IConsultationReader
from marketplace.domain.lifecycle import BLOCKING_STATUSES

logger = logging.getLogger(__name__)


class BookingConflictChecker:
    def __init__(self, consultation_repo: IConsultationReader) -> None:
        self.consultation_repo = consultation_repo

    def find_conflicts(
        self, provider_id: int, scheduled_at: datetime, duration: int
    ) -> List[Consultation]:
        """Blocking consultations overlapping the requested interval."""
        window_end = scheduled_at + timedelta(minutes=duration)
        candidates = self.consultation_repo.find_for_provider_window(
            provider_id, scheduled_at, window_end, BLOCKING_STATUSES
        )
        return [
            c
            for c in candidates
            if c.status in BLOCKING_STATUSES and c.overlaps(scheduled_at, window_end)
        ]

    def is_time_slot_free(
        self, provider_id: int, scheduled_at: datetime, duration: int
    ) -> bool:
        conflicts = self.find_conflicts(provider_id, scheduled_at, duration)
        if conflicts:
            logger.debug(
                "Requested time overlaps existing bookings",
                extra={
                    "context": {
                        "provider_id": provider_id,
                        "scheduled_at": scheduled_at.isoformat(),
                        "duration": duration,
                        "conflicting_ids": [c.id for c in conflicts],
                    }
                },
            )
            return False
        return True
