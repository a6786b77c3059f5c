"""
Availability slot repository backed by SQLAlchemy.
"""

from datetime import date
from decimal import Decimal
from typing import List, Optional

from marketplace.db.base import AvailabilitySlot as DbSlot
from marketplace.domain.entities import AvailabilitySlot as DomainSlot
from marketplace.domain.interfaces import IAvailabilityRepository


class AvailabilityRepository(IAvailabilityRepository):
    """Repository for provider availability slots."""

    def __init__(self, db_session) -> None:
        self.db = db_session

    def get_by_id(self, slot_id: int) -> Optional[DomainSlot]:
        db_slot = self.db.query(DbSlot).filter_by(id=slot_id).first()
        return self._to_domain(db_slot) if db_slot else None

    def list_for_provider(
        self,
        provider_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[DomainSlot]:
        query = self.db.query(DbSlot).filter(DbSlot.provider_id == provider_id)
        if start_date is not None:
            query = query.filter(DbSlot.date >= start_date)
        if end_date is not None:
            query = query.filter(DbSlot.date <= end_date)
        db_slots = query.order_by(DbSlot.date.asc(), DbSlot.start_time.asc()).all()
        return [self._to_domain(s) for s in db_slots]

    def find_overlapping(
        self, provider_id: int, day: date, start_time: str, end_time: str
    ) -> List[DomainSlot]:
        # Clock strings are zero-padded so lexical comparison is chronological
        db_slots = (
            self.db.query(DbSlot)
            .filter(
                DbSlot.provider_id == provider_id,
                DbSlot.date == day,
                DbSlot.is_available.is_(True),
                DbSlot.start_time < end_time,
                DbSlot.end_time > start_time,
            )
            .order_by(DbSlot.start_time.asc())
            .all()
        )
        return [self._to_domain(s) for s in db_slots]

    def create(self, slot: DomainSlot) -> DomainSlot:
        db_slot = DbSlot(
            provider_id=slot.provider_id,
            date=slot.date,
            start_time=slot.start_time,
            end_time=slot.end_time,
            is_available=slot.is_available,
            max_bookings=slot.max_bookings,
            price=slot.price,
        )
        self.db.add(db_slot)
        self.db.commit()
        self.db.refresh(db_slot)
        return self._to_domain(db_slot)

    def update(self, slot: DomainSlot) -> DomainSlot:
        if not slot.id:
            raise ValueError("Slot ID is required for update")
        db_slot = self.db.query(DbSlot).filter_by(id=slot.id).first()
        if not db_slot:
            raise ValueError(f"Slot with ID {slot.id} not found")
        db_slot.date = slot.date
        db_slot.start_time = slot.start_time
        db_slot.end_time = slot.end_time
        db_slot.is_available = slot.is_available
        db_slot.max_bookings = slot.max_bookings
        db_slot.price = slot.price
        self.db.commit()
        self.db.refresh(db_slot)
        return self._to_domain(db_slot)

    def delete(self, slot_id: int) -> bool:
        db_slot = self.db.query(DbSlot).filter_by(id=slot_id).first()
        if not db_slot:
            return False
        self.db.delete(db_slot)
        self.db.commit()
        return True

    def _to_domain(self, db_slot: DbSlot) -> DomainSlot:
        return DomainSlot(
            id=db_slot.id,
            provider_id=db_slot.provider_id,
            date=db_slot.date,
            start_time=db_slot.start_time,
            end_time=db_slot.end_time,
            is_available=bool(db_slot.is_available),
            max_bookings=db_slot.max_bookings,
            price=Decimal(db_slot.price) if db_slot.price is not None else None,
            created_at=db_slot.created_at,
            updated_at=db_slot.updated_at,
        )
