"""
Consultation marketplace booking core.

Seekers book time-bounded consultations with providers against published
availability; bookings follow a constrained status lifecycle and completed
bookings feed each provider's aggregate rating.
"""

__version__ = "1.0.0"
