"""
Consultation repository backed by SQLAlchemy.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func, update

from marketplace.core.config import MAX_CONSULTATION_MINUTES
from marketplace.db.base import Consultation as DbConsultation
from marketplace.domain.entities import Consultation as DomainConsultation
from marketplace.domain.interfaces import IConsultationRepository
from marketplace.domain.lifecycle import ConsultationStatus

_MUTABLE_FIELDS = (
    "title",
    "description",
    "status",
    "scheduled_at",
    "duration",
    "price",
    "currency",
    "rating",
    "review",
    "cancellation_reason",
    "cancelled_by",
    "rejection_reason",
    "started_at",
    "ended_at",
)


class ConsultationRepository(IConsultationRepository):
    """Repository for Consultation persistence operations."""

    def __init__(self, db_session) -> None:
        self.db = db_session

    def get_by_id(self, consultation_id: int) -> Optional[DomainConsultation]:
        db_obj = self.db.query(DbConsultation).filter_by(id=consultation_id).first()
        return self._to_domain(db_obj) if db_obj else None

    def find_for_provider_window(
        self,
        provider_id: int,
        window_start: datetime,
        window_end: datetime,
        statuses: Iterable[str],
    ) -> List[DomainConsultation]:
        """Bookings starting within one maximum duration before the window.

        Anything starting earlier cannot reach into the window, so the
        caller only has to apply the exact overlap rule to this set.
        """
        earliest = window_start - timedelta(minutes=MAX_CONSULTATION_MINUTES)
        db_objs = (
            self.db.query(DbConsultation)
            .filter(
                DbConsultation.provider_id == provider_id,
                DbConsultation.status.in_(list(statuses)),
                DbConsultation.scheduled_at > earliest,
                DbConsultation.scheduled_at < window_end,
            )
            .order_by(DbConsultation.scheduled_at.asc())
            .all()
        )
        return [self._to_domain(c) for c in db_objs]

    def get_rated_by_provider(self, provider_id: int) -> List[DomainConsultation]:
        db_objs = (
            self.db.query(DbConsultation)
            .filter(
                DbConsultation.provider_id == provider_id,
                DbConsultation.rating.isnot(None),
            )
            .all()
        )
        return [self._to_domain(c) for c in db_objs]

    def list_filtered(
        self,
        seeker_id: Optional[int] = None,
        provider_id: Optional[int] = None,
        status: Optional[str] = None,
        consultation_type: Optional[str] = None,
    ) -> List[DomainConsultation]:
        query = self.db.query(DbConsultation)
        if seeker_id is not None:
            query = query.filter(DbConsultation.seeker_id == seeker_id)
        if provider_id is not None:
            query = query.filter(DbConsultation.provider_id == provider_id)
        if status is not None:
            query = query.filter(DbConsultation.status == status)
        if consultation_type is not None:
            query = query.filter(DbConsultation.consultation_type == consultation_type)
        db_objs = query.order_by(
            DbConsultation.created_at.desc(), DbConsultation.id.desc()
        ).all()
        return [self._to_domain(c) for c in db_objs]

    def count_by_status(
        self, seeker_id: Optional[int] = None, provider_id: Optional[int] = None
    ) -> Dict[str, int]:
        query = self.db.query(DbConsultation.status, func.count(DbConsultation.id))
        if seeker_id is not None:
            query = query.filter(DbConsultation.seeker_id == seeker_id)
        if provider_id is not None:
            query = query.filter(DbConsultation.provider_id == provider_id)
        rows = query.group_by(DbConsultation.status).all()
        return {status: count for status, count in rows}

    def create(self, consultation: DomainConsultation) -> DomainConsultation:
        db_obj = DbConsultation(
            seeker_id=consultation.seeker_id,
            provider_id=consultation.provider_id,
            category_id=consultation.category_id,
            consultation_type=consultation.consultation_type,
        )
        for name in _MUTABLE_FIELDS:
            setattr(db_obj, name, getattr(consultation, name))
        self.db.add(db_obj)
        self.db.commit()
        self.db.refresh(db_obj)
        return self._to_domain(db_obj)

    def update_if_status(
        self, consultation: DomainConsultation, expected_status: str
    ) -> Optional[DomainConsultation]:
        if not consultation.id:
            raise ValueError("Consultation ID is required for update")
        return self._conditional_update(
            consultation.id,
            [DbConsultation.status == expected_status],
            {name: getattr(consultation, name) for name in _MUTABLE_FIELDS},
        )

    def rate_if_unrated(
        self, consultation_id: int, rating: int, review: Optional[str]
    ) -> Optional[DomainConsultation]:
        return self._conditional_update(
            consultation_id,
            [
                DbConsultation.status == ConsultationStatus.COMPLETED,
                DbConsultation.rating.is_(None),
            ],
            {"rating": rating, "review": review},
        )

    def _conditional_update(
        self, consultation_id: int, criteria: list, values: dict
    ) -> Optional[DomainConsultation]:
        """Single UPDATE guarded by ``criteria``; the row count decides the winner."""
        result = self.db.execute(
            update(DbConsultation)
            .where(DbConsultation.id == consultation_id, *criteria)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.db.rollback()
            return None
        self.db.commit()
        # Objects loaded before the UPDATE still hold the old column values
        self.db.expire_all()
        return self.get_by_id(consultation_id)

    def delete(self, consultation_id: int) -> bool:
        db_obj = self.db.query(DbConsultation).filter_by(id=consultation_id).first()
        if not db_obj:
            return False
        self.db.delete(db_obj)
        self.db.commit()
        return True

    def _to_domain(self, db_obj: DbConsultation) -> DomainConsultation:
        return DomainConsultation(
            id=db_obj.id,
            seeker_id=db_obj.seeker_id,
            provider_id=db_obj.provider_id,
            category_id=db_obj.category_id,
            consultation_type=db_obj.consultation_type,
            scheduled_at=db_obj.scheduled_at,
            duration=db_obj.duration,
            price=Decimal(db_obj.price),
            currency=db_obj.currency,
            description=db_obj.description or "",
            title=db_obj.title,
            status=db_obj.status,
            rating=db_obj.rating,
            review=db_obj.review,
            cancellation_reason=db_obj.cancellation_reason,
            cancelled_by=db_obj.cancelled_by,
            rejection_reason=db_obj.rejection_reason,
            started_at=db_obj.started_at,
            ended_at=db_obj.ended_at,
            created_at=db_obj.created_at,
            updated_at=db_obj.updated_at,
        )
