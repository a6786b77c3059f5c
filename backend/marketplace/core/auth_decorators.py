"""
Caller identity for the HTTP adapter.

Authentication happens upstream (gateway or identity service). Requests
reach this service with the already-authenticated identity in two headers:

- ``X-Caller-Id``: integer user id
- ``X-Caller-Role``: one of ``seeker``, ``provider``, ``admin``

Examples:
    @consultation_bp.route("", methods=["POST"])
    @caller_required
    def create_consultation():
        caller = g.caller
"""

import logging
from functools import wraps

from flask import g, request

from marketplace.core.api_utils import api_response
from marketplace.domain.entities import Caller, UserType

logger = logging.getLogger(__name__)

CALLER_ID_HEADER = "X-Caller-Id"
CALLER_ROLE_HEADER = "X-Caller-Role"


def caller_required(f):
    """Decorator requiring caller identity headers.

    Missing headers yield 401; a malformed id or unknown role yields 400.
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw_id = request.headers.get(CALLER_ID_HEADER)
        raw_role = request.headers.get(CALLER_ROLE_HEADER)
        if not raw_id or not raw_role:
            return api_response(False, "Caller identity required", None, 401)

        try:
            caller_id = int(raw_id)
        except ValueError:
            return api_response(False, "Invalid caller id", None, 400)

        role = raw_role.strip().lower()
        if caller_id <= 0 or role not in UserType.ALL:
            logger.warning(
                "Rejected caller identity",
                extra={"context": {"caller_id": raw_id, "role": raw_role}},
            )
            return api_response(False, "Invalid caller identity", None, 400)

        g.caller = Caller(id=caller_id, role=role)
        return f(*args, **kwargs)

    return decorated_function
