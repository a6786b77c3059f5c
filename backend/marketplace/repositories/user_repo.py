"""User repository implementation following SOLID principles."""

from decimal import Decimal
from typing import Optional

from marketplace.db.base import User as DbUser
from marketplace.domain.entities import User as DomainUser
from marketplace.domain.interfaces import IUserRepository


class UserRepository(IUserRepository):
    """Repository for User persistence operations.

    Maps between ``marketplace.db.base.User`` rows and domain ``User``
    entities. The booking core only reads accounts, adjusts provider
    profile fields and overwrites the rating aggregate.
    """

    def __init__(self, db_session) -> None:
        self.db = db_session

    def get_by_id(self, user_id: int) -> Optional[DomainUser]:
        """Get user by ID, returning domain entity."""
        db_user = self.db.query(DbUser).filter_by(id=user_id).first()
        return self._to_domain(db_user) if db_user else None

    def create(self, user: DomainUser) -> DomainUser:
        """Create a new user from domain entity."""
        db_user = DbUser()
        # Empty email is stored as NULL to respect the unique constraint
        db_user.email = user.email or None
        self._apply(db_user, user)
        db_user.rating = user.rating
        db_user.total_reviews = user.total_reviews

        self.db.add(db_user)
        self.db.commit()
        self.db.refresh(db_user)
        return self._to_domain(db_user)

    def update(self, user: DomainUser) -> DomainUser:
        """Update profile fields of an existing user.

        The rating aggregate is left alone; it is only written through
        ``update_rating``.
        """
        if not user.id:
            raise ValueError("User ID is required for update")

        db_user = self.db.query(DbUser).filter_by(id=user.id).first()
        if not db_user:
            raise ValueError(f"User with ID {user.id} not found")

        db_user.email = user.email or None
        self._apply(db_user, user)

        self.db.add(db_user)
        self.db.commit()
        self.db.refresh(db_user)
        return self._to_domain(db_user)

    def update_rating(
        self, provider_id: int, average_rating: float, total_reviews: int
    ) -> None:
        db_user = self.db.query(DbUser).filter_by(id=provider_id).first()
        if not db_user:
            raise ValueError(f"User with ID {provider_id} not found")
        db_user.rating = average_rating
        db_user.total_reviews = total_reviews
        self.db.commit()

    def _apply(self, db_user: DbUser, user: DomainUser) -> None:
        db_user.name = user.name
        db_user.user_type = user.user_type
        db_user.is_active = user.is_active
        db_user.is_verified = user.is_verified
        db_user.chat = user.chat
        db_user.call = user.call
        db_user.video = user.video
        db_user.base_price = user.base_price

    def _to_domain(self, db_user: DbUser) -> DomainUser:
        """Convert database model to domain entity."""
        return DomainUser(
            id=db_user.id,
            email=db_user.email or "",  # Convert NULL to empty string for domain
            name=db_user.name or "",
            user_type=db_user.user_type,
            is_active=bool(db_user.is_active),
            is_verified=bool(db_user.is_verified),
            chat=bool(db_user.chat),
            call=bool(db_user.call),
            video=bool(db_user.video),
            base_price=Decimal(db_user.base_price or 0),
            rating=float(db_user.rating or 0.0),
            total_reviews=db_user.total_reviews or 0,
            created_at=db_user.created_at,
            updated_at=db_user.updated_at,
        )
