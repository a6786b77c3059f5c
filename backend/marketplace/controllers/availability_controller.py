"""
Availability controller: thin HTTP layer over ``AvailabilityService``.

Reads are public; writes require a provider caller.
"""

from flask import Blueprint, g, request

from marketplace.core.api_utils import api_response, json_body, query_int
from marketplace.core.auth_decorators import caller_required
from marketplace.core.limiter_config import WRITE_LIMIT, limiter
from marketplace.db.session import SessionLocal
from marketplace.schemas.dtos import (
    BulkSlotCreateRequest,
    BulkSlotResponse,
    SlotCreateRequest,
    SlotResponse,
    SlotUpdateRequest,
    WeeklyScheduleResponse,
    windows_to_dict,
)

from .dependencies import build_availability_service

availability_bp = Blueprint("availability", __name__, url_prefix="/api/availability")


@availability_bp.route("", methods=["GET"])
def list_availability():
    """List a provider's slots, by single ``date`` or ``start_date``/``end_date``."""
    provider_id = query_int("provider", required=True)
    db = SessionLocal()
    try:
        slots = build_availability_service(db).list_slots(
            provider_id,
            date=request.args.get("date") or None,
            start_date=request.args.get("start_date") or None,
            end_date=request.args.get("end_date") or None,
        )
        return api_response(
            True,
            "Availability retrieved",
            [SlotResponse.from_domain(s).to_dict() for s in slots],
        )
    finally:
        db.close()


@availability_bp.route("", methods=["POST"])
@limiter.limit(WRITE_LIMIT)
@caller_required
def create_availability():
    payload = SlotCreateRequest.from_json(json_body())
    payload.validate()
    db = SessionLocal()
    try:
        slot = build_availability_service(db).create_slot(
            g.caller,
            payload.date,
            payload.start_time,
            payload.end_time,
            is_available=payload.is_available,
            max_bookings=payload.max_bookings,
            price=payload.price,
        )
        return api_response(
            True,
            "Availability set successfully",
            SlotResponse.from_domain(slot).to_dict(),
            201,
        )
    finally:
        db.close()


@availability_bp.route("/bulk", methods=["POST"])
@limiter.limit(WRITE_LIMIT)
@caller_required
def create_bulk_availability():
    payload = BulkSlotCreateRequest.from_json(json_body())
    payload.validate()
    db = SessionLocal()
    try:
        result = build_availability_service(db).create_slots_bulk(
            g.caller,
            payload.dates,
            payload.start_time,
            payload.end_time,
            is_available=payload.is_available,
            max_bookings=payload.max_bookings,
            price=payload.price,
        )
        return api_response(
            True,
            f"Bulk availability processed. {len(result.created)} slots created.",
            BulkSlotResponse.from_domain(result).to_dict(),
            201,
        )
    finally:
        db.close()


@availability_bp.route("/<int:slot_id>", methods=["PUT"])
@limiter.limit(WRITE_LIMIT)
@caller_required
def update_availability(slot_id: int):
    payload = SlotUpdateRequest.from_json(json_body())
    payload.validate()
    db = SessionLocal()
    try:
        slot = build_availability_service(db).update_slot(
            slot_id, g.caller, payload.patch
        )
        return api_response(
            True,
            "Availability updated successfully",
            SlotResponse.from_domain(slot).to_dict(),
        )
    finally:
        db.close()


@availability_bp.route("/<int:slot_id>", methods=["DELETE"])
@limiter.limit(WRITE_LIMIT)
@caller_required
def delete_availability(slot_id: int):
    db = SessionLocal()
    try:
        build_availability_service(db).delete_slot(slot_id, g.caller)
        return api_response(True, "Availability deleted successfully")
    finally:
        db.close()


@availability_bp.route("/weekly", methods=["GET"])
def weekly_availability():
    provider_id = query_int("provider", required=True)
    db = SessionLocal()
    try:
        weekly = build_availability_service(db).weekly_projection(
            provider_id, request.args.get("week_start") or None
        )
        return api_response(
            True,
            "Weekly availability retrieved",
            WeeklyScheduleResponse.from_domain(weekly).to_dict(),
        )
    finally:
        db.close()


@availability_bp.route("/windows", methods=["GET"])
def bookable_windows():
    """Free ``duration``-minute windows of a provider on one date."""
    provider_id = query_int("provider", required=True)
    duration = query_int("duration")
    day = request.args.get("date")
    db = SessionLocal()
    try:
        service = build_availability_service(db)
        if duration is None:
            windows = service.bookable_windows(provider_id, day)
        else:
            windows = service.bookable_windows(provider_id, day, duration)
        return api_response(
            True, "Bookable windows retrieved", windows_to_dict(windows)
        )
    finally:
        db.close()
