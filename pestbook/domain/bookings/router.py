"""Booking router - public availability and customer self-service"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...auth import get_current_actor, require_capability
from ...config import (
    AVAILABILITY_LIMIT,
    AVAILABILITY_WINDOW_SECONDS,
    BOOKING_CREATE_LIMIT,
    BOOKING_CREATE_WINDOW_SECONDS,
)
from ...database import get_db
from ...rate_limiter import create_rate_limiter
from ..access import Action, Actor
from .schemas import BookingCreate
from .service import BookingService, serialize_booking

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["Bookings"])

availability_limiter = create_rate_limiter(
    AVAILABILITY_LIMIT, AVAILABILITY_WINDOW_SECONDS, key_prefix="availability"
)
booking_create_limiter = create_rate_limiter(
    BOOKING_CREATE_LIMIT, BOOKING_CREATE_WINDOW_SECONDS, key_prefix="booking_create"
)


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


@router.get("/availability")
async def get_availability(
    day: date = Query(..., alias="date"),
    tz_offset_minutes: int = Query(0, alias="tzOffsetMinutes"),
    _: None = Depends(availability_limiter),
    service: BookingService = Depends(get_booking_service),
):
    """
    Active bookings on a local calendar day, for graying out taken slots.

    No bookee identity is returned; this is called before login.
    """
    return service.get_availability(day, tz_offset_minutes)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_booking(
    data: BookingCreate,
    _: None = Depends(booking_create_limiter),
    actor: Actor = Depends(require_capability(Action.CREATE_OWN_BOOKING)),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.create_booking(actor, data)
    return {"ok": True, "booking": serialize_booking(booking)}


@router.get("/me")
async def my_bookings(
    actor: Actor = Depends(require_capability(Action.VIEW_OWN_BOOKINGS)),
    service: BookingService = Depends(get_booking_service),
):
    """Own bookings split into upcoming (still active) and history"""
    return {"ok": True, **service.my_bookings(actor)}


@router.get("/{public_id}")
async def get_booking(
    public_id: str,
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.get_booking_for_actor(actor, public_id)
    return {"ok": True, "booking": serialize_booking(booking)}


@router.patch("/{public_id}/cancel")
async def cancel_own_booking(
    public_id: str,
    actor: Actor = Depends(get_current_actor),
    service: BookingService = Depends(get_booking_service),
):
    """Customers may cancel only their own active bookings"""
    booking = service.cancel(actor, public_id)
    return {"ok": True, "booking": serialize_booking(booking)}
