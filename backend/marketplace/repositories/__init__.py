from .availability_repo import AvailabilityRepository
from .consultation_repo import ConsultationRepository
from .user_repo import UserRepository

__all__ = ["AvailabilityRepository", "ConsultationRepository", "UserRepository"]
