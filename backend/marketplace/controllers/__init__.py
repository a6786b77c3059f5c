from .availability_controller import availability_bp
from .consultation_controller import consultation_bp
from .provider_controller import provider_bp

__all__ = ["availability_bp", "consultation_bp", "provider_bp"]
