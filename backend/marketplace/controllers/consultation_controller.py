"""
Consultation controller: booking creation, lifecycle changes and ratings.

Every route requires caller identity headers.
"""

from flask import Blueprint, g, request

from marketplace.core.api_utils import api_response, json_body
from marketplace.core.auth_decorators import caller_required
from marketplace.core.limiter_config import WRITE_LIMIT, limiter
from marketplace.db.session import SessionLocal
from marketplace.schemas.dtos import (
    CancelRequest,
    ConsultationCreateRequest,
    ConsultationResponse,
    RatingRequest,
    StatusChangeRequest,
)

from .dependencies import build_consultation_service

consultation_bp = Blueprint(
    "consultations", __name__, url_prefix="/api/consultations"
)


@consultation_bp.route("", methods=["POST"])
@limiter.limit(WRITE_LIMIT)
@caller_required
def create_consultation():
    payload = ConsultationCreateRequest.from_json(json_body())
    payload.validate()
    db = SessionLocal()
    try:
        consultation = build_consultation_service(db).create(
            g.caller,
            payload.provider_id,
            payload.category_id,
            payload.consultation_type,
            payload.scheduled_at,
            payload.description,
            duration=payload.duration,
            title=payload.title,
        )
        return api_response(
            True,
            "Consultation created successfully",
            ConsultationResponse.from_domain(consultation).to_dict(),
            201,
        )
    finally:
        db.close()


@consultation_bp.route("", methods=["GET"])
@caller_required
def list_consultations():
    status = request.args.get("status")
    if status == "all":
        status = None
    db = SessionLocal()
    try:
        consultations = build_consultation_service(db).list_for_caller(
            g.caller,
            status=status or None,
            consultation_type=request.args.get("type") or None,
        )
        return api_response(
            True,
            "Consultations retrieved",
            [ConsultationResponse.from_domain(c).to_dict() for c in consultations],
        )
    finally:
        db.close()


@consultation_bp.route("/stats", methods=["GET"])
@caller_required
def consultation_stats():
    db = SessionLocal()
    try:
        stats = build_consultation_service(db).stats(g.caller)
        return api_response(True, "Consultation stats retrieved", stats)
    finally:
        db.close()


@consultation_bp.route("/<int:consultation_id>", methods=["GET"])
@caller_required
def get_consultation(consultation_id: int):
    db = SessionLocal()
    try:
        consultation = build_consultation_service(db).get(consultation_id, g.caller)
        return api_response(
            True,
            "Consultation retrieved",
            ConsultationResponse.from_domain(consultation).to_dict(),
        )
    finally:
        db.close()


@consultation_bp.route("/<int:consultation_id>/status", methods=["PATCH"])
@limiter.limit(WRITE_LIMIT)
@caller_required
def change_status(consultation_id: int):
    payload = StatusChangeRequest.from_json(json_body())
    payload.validate()
    db = SessionLocal()
    try:
        consultation = build_consultation_service(db).transition(
            consultation_id, g.caller, payload.status, payload.reason
        )
        return api_response(
            True,
            f"Consultation is now {consultation.status}",
            ConsultationResponse.from_domain(consultation).to_dict(),
        )
    finally:
        db.close()


@consultation_bp.route("/<int:consultation_id>/cancel", methods=["POST"])
@limiter.limit(WRITE_LIMIT)
@caller_required
def cancel_consultation(consultation_id: int):
    payload = CancelRequest.from_json(request.get_json(silent=True))
    payload.validate()
    db = SessionLocal()
    try:
        consultation = build_consultation_service(db).cancel(
            consultation_id, g.caller, payload.reason
        )
        return api_response(
            True,
            "Consultation cancelled",
            ConsultationResponse.from_domain(consultation).to_dict(),
        )
    finally:
        db.close()


@consultation_bp.route("/<int:consultation_id>/rating", methods=["POST"])
@limiter.limit(WRITE_LIMIT)
@caller_required
def rate_consultation(consultation_id: int):
    payload = RatingRequest.from_json(json_body())
    payload.validate()
    db = SessionLocal()
    try:
        consultation = build_consultation_service(db).rate(
            consultation_id, g.caller, payload.rating, payload.review
        )
        return api_response(
            True,
            "Rating submitted",
            ConsultationResponse.from_domain(consultation).to_dict(),
            201,
        )
    finally:
        db.close()


@consultation_bp.route("/<int:consultation_id>", methods=["DELETE"])
@limiter.limit(WRITE_LIMIT)
@caller_required
def delete_consultation(consultation_id: int):
    db = SessionLocal()
    try:
        build_consultation_service(db).delete(consultation_id, g.caller)
        return api_response(True, "Consultation deleted")
    finally:
        db.close()
