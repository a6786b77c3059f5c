"""Provider profile controller."""

from flask import Blueprint, g

from marketplace.core.api_utils import api_response, json_body
from marketplace.core.auth_decorators import caller_required
from marketplace.core.limiter_config import WRITE_LIMIT, limiter
from marketplace.db.session import SessionLocal
from marketplace.schemas.dtos import (
    ProviderProfileUpdateRequest,
    ProviderResponse,
    RatingAggregateResponse,
)

from .dependencies import build_provider_service

provider_bp = Blueprint("providers", __name__, url_prefix="/api/providers")


@provider_bp.route("/<int:provider_id>", methods=["PATCH"])
@limiter.limit(WRITE_LIMIT)
@caller_required
def update_provider(provider_id: int):
    payload = ProviderProfileUpdateRequest.from_json(json_body())
    payload.validate()
    db = SessionLocal()
    try:
        provider = build_provider_service(db).update_profile(
            provider_id, g.caller, payload.patch
        )
        return api_response(
            True,
            "Provider profile updated",
            ProviderResponse.from_domain(provider).to_dict(),
        )
    finally:
        db.close()


@provider_bp.route("/<int:provider_id>/rating", methods=["GET"])
def provider_rating(provider_id: int):
    db = SessionLocal()
    try:
        aggregate = build_provider_service(db).get_rating(provider_id)
        return api_response(
            True,
            "Provider rating retrieved",
            RatingAggregateResponse.from_domain(aggregate).to_dict(),
        )
    finally:
        db.close()
