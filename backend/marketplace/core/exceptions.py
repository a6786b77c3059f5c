"""
Error kinds raised by the booking core.

Every write operation either returns a value or raises one of these.
The request layer translates them into responses using ``status_code``.
"""

from typing import Any, Dict, Optional


class MarketplaceError(Exception):
    """Base class for all labelled failures of the booking core."""

    code = "marketplace_error"
    status_code = 400

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.retryable = retryable

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        if self.retryable:
            payload["retryable"] = True
        return payload


class ValidationError(MarketplaceError, ValueError):
    """Malformed input. Client error, never retried automatically."""

    code = "validation_error"
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field
        if field:
            self.details.setdefault("field", field)


class NotFoundError(MarketplaceError):
    """Referenced entity is absent."""

    code = "not_found"
    status_code = 404

    @classmethod
    def for_resource(cls, resource: str, resource_id: Any) -> "NotFoundError":
        return cls(f"{resource} not found", details={"id": resource_id})


class ForbiddenError(MarketplaceError):
    """Caller lacks ownership or role for the action."""

    code = "forbidden"
    status_code = 403


class ConflictError(MarketplaceError):
    """A state precondition was violated (overlap, double booking, already rated)."""

    code = "conflict"
    status_code = 409


class InvalidTransitionError(MarketplaceError):
    """The requested status change is not an edge of the lifecycle table."""

    code = "invalid_transition"
    status_code = 422

    def __init__(self, from_status: str, to_status: str):
        super().__init__(
            f"Invalid status transition from {from_status} to {to_status}",
            details={"from": from_status, "to": to_status},
        )
        self.from_status = from_status
        self.to_status = to_status
