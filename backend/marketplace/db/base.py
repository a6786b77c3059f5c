from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from .session import Base


class User(Base):
    """Seeker, provider or admin account as read by the booking core."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    email: Mapped[Optional[str]] = mapped_column(
        String(100), unique=True, nullable=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    user_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default="seeker"
    )  # 'seeker', 'provider', 'admin'
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Consultation capabilities (providers only)
    chat: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    call: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    video: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    base_price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0")
    )

    # Derived from rated consultations, recomputed on every rating event
    rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_reviews: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now()
    )

    def __repr__(self):
        return f"<User(id={self.id}, user_type='{self.user_type}')>"


class AvailabilitySlot(Base):
    """Provider availability on a calendar date."""

    __tablename__ = "availability_slots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    provider_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[date] = mapped_column(Date, nullable=False)
    # Zero-padded HH:MM so string comparison is chronological
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    max_bookings: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    price: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_slot_time_order"),
        CheckConstraint("max_bookings >= 1", name="ck_slot_max_bookings"),
        Index("ix_slot_provider_date", "provider_id", "date", "start_time"),
    )

    def __repr__(self):
        return (
            f"<AvailabilitySlot(id={self.id}, provider_id={self.provider_id}, "
            f"date={self.date}, {self.start_time}-{self.end_time})>"
        )


class Consultation(Base):
    """A seeker-provider booking."""

    __tablename__ = "consultations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    seeker_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )
    provider_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )
    category_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    title: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    consultation_type: Mapped[str] = mapped_column(
        String(10), nullable=False, default="chat"
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending", index=True
    )
    scheduled_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    duration: Mapped[int] = mapped_column(Integer, nullable=False, default=60)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    review: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(
        String(500), nullable=True
    )
    cancelled_by: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    ended_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint("duration BETWEEN 15 AND 480", name="ck_consultation_duration"),
        CheckConstraint(
            "rating IS NULL OR (rating BETWEEN 1 AND 5)", name="ck_consultation_rating"
        ),
        Index("ix_consultation_provider_schedule", "provider_id", "scheduled_at"),
    )

    def __repr__(self):
        return (
            f"<Consultation(id={self.id}, provider_id={self.provider_id}, "
            f"status='{self.status}')>"
        )
