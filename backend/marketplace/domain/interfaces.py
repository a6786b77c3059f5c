"""
Abstract interfaces for repositories following Interface Segregation Principle.

These interfaces define contracts without implementation details,
enabling dependency injection and easier testing.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional

from .entities import AvailabilitySlot, Consultation, User


class IUserReader(ABC):
    """Interface for user read operations."""

    @abstractmethod
    def get_by_id(self, user_id: int) -> Optional[User]:
        """Get user by ID."""
        pass


class IUserWriter(ABC):
    """Interface for user write operations."""

    @abstractmethod
    def create(self, user: User) -> User:
        """Create a new user."""
        pass

    @abstractmethod
    def update(self, user: User) -> User:
        """Update an existing user."""
        pass

    @abstractmethod
    def update_rating(
        self, provider_id: int, average_rating: float, total_reviews: int
    ) -> None:
        """Overwrite the denormalised rating aggregate of a provider."""
        pass


class IUserRepository(IUserReader, IUserWriter):
    """Complete user repository interface combining read/write operations."""

    pass


class IAvailabilityReader(ABC):
    """Interface for availability slot read operations."""

    @abstractmethod
    def get_by_id(self, slot_id: int) -> Optional[AvailabilitySlot]:
        """Get slot by ID."""
        pass

    @abstractmethod
    def list_for_provider(
        self,
        provider_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[AvailabilitySlot]:
        """Slots of a provider within inclusive date bounds, by date then start."""
        pass

    @abstractmethod
    def find_overlapping(
        self, provider_id: int, day: date, start_time: str, end_time: str
    ) -> List[AvailabilitySlot]:
        """Available slots on ``day`` overlapping ``[start_time, end_time)``."""
        pass


class IAvailabilityWriter(ABC):
    """Interface for availability slot write operations."""

    @abstractmethod
    def create(self, slot: AvailabilitySlot) -> AvailabilitySlot:
        """Persist a new slot."""
        pass

    @abstractmethod
    def update(self, slot: AvailabilitySlot) -> AvailabilitySlot:
        """Update an existing slot."""
        pass

    @abstractmethod
    def delete(self, slot_id: int) -> bool:
        """Delete a slot."""
        pass


class IAvailabilityRepository(IAvailabilityReader, IAvailabilityWriter):
    """Complete availability repository interface."""

    pass


class IConsultationReader(ABC):
    """Interface for consultation read operations."""

    @abstractmethod
    def get_by_id(self, consultation_id: int) -> Optional[Consultation]:
        """Get consultation by ID."""
        pass

    @abstractmethod
    def find_for_provider_window(
        self,
        provider_id: int,
        window_start: datetime,
        window_end: datetime,
        statuses: Iterable[str],
    ) -> List[Consultation]:
        """Consultations of a provider in ``statuses`` that may touch the window.

        Implementations may over-fetch; callers apply the exact overlap rule.
        """
        pass

    @abstractmethod
    def get_rated_by_provider(self, provider_id: int) -> List[Consultation]:
        """Every consultation of the provider with a rating set."""
        pass

    @abstractmethod
    def list_filtered(
        self,
        seeker_id: Optional[int] = None,
        provider_id: Optional[int] = None,
        status: Optional[str] = None,
        consultation_type: Optional[str] = None,
    ) -> List[Consultation]:
        """Consultations matching the filters, newest first."""
        pass

    @abstractmethod
    def count_by_status(
        self, seeker_id: Optional[int] = None, provider_id: Optional[int] = None
    ) -> Dict[str, int]:
        """Number of consultations per status."""
        pass


class IConsultationWriter(ABC):
    """Interface for consultation write operations."""

    @abstractmethod
    def create(self, consultation: Consultation) -> Consultation:
        """Persist a new consultation."""
        pass

    @abstractmethod
    def update_if_status(
        self, consultation: Consultation, expected_status: str
    ) -> Optional[Consultation]:
        """Write the consultation only if its stored status is still
        ``expected_status``; ``None`` when another writer got there first."""
        pass

    @abstractmethod
    def rate_if_unrated(
        self, consultation_id: int, rating: int, review: Optional[str]
    ) -> Optional[Consultation]:
        """Store a rating on a completed, unrated consultation; ``None`` when
        the row is no longer completed or already carries a rating."""
        pass

    @abstractmethod
    def delete(self, consultation_id: int) -> bool:
        """Physically delete a consultation (administrative override)."""
        pass


class IConsultationRepository(IConsultationReader, IConsultationWriter):
    """Complete consultation repository interface."""

    pass
