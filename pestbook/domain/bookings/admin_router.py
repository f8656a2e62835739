"""Admin booking router - dashboard lists and lifecycle transitions"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ...auth import require_capability
from ..access import Action, Actor
from .router import get_booking_service
from .schemas import AdminBookingCreate, AssignRequest
from .service import (
    BOOKEE_SEARCH_LIMIT_DEFAULT,
    BOOKEE_SEARCH_LIMIT_MAX,
    COMPLETED_PAGE_SIZE_DEFAULT,
    BookingService,
    serialize_admin_booking,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin Bookings"])


# ============================================================================
# LISTS
# ============================================================================


@router.get("/bookings")
async def list_bookings(
    booking_status: str = Query("pending", alias="status"),
    _: Actor = Depends(require_capability(Action.VIEW_ALL_BOOKINGS)),
    service: BookingService = Depends(get_booking_service),
):
    bookings = service.list_by_status(booking_status)
    return {"ok": True, "bookings": [serialize_admin_booking(b) for b in bookings]}


@router.get("/bookings/completed")
async def completed_bookings(
    page: int = Query(1, ge=1),
    page_size: int = Query(COMPLETED_PAGE_SIZE_DEFAULT, alias="pageSize"),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    month: Optional[int] = Query(None, ge=1, le=12),
    day: Optional[int] = Query(None, ge=1, le=31),
    q: Optional[str] = Query(None, max_length=200),
    _: Actor = Depends(require_capability(Action.VIEW_ALL_BOOKINGS)),
    service: BookingService = Depends(get_booking_service),
):
    """Completed history, newest completion first"""
    return {
        "ok": True,
        **service.completed_history(page, page_size, year=year, month=month, day=day, search=q),
    }


@router.get("/customers/search")
async def search_customers(
    q: Optional[str] = Query(None, max_length=200),
    limit: int = Query(BOOKEE_SEARCH_LIMIT_DEFAULT, ge=1, le=BOOKEE_SEARCH_LIMIT_MAX),
    _: Actor = Depends(require_capability(Action.CREATE_ANY_BOOKING)),
    service: BookingService = Depends(get_booking_service),
):
    """Registered customers and leads by name, email or phone, for booking on their behalf"""
    return {"ok": True, "results": service.search_bookees(q, limit)}


@router.get("/bookings/technicians")
async def list_technicians(
    _: Actor = Depends(require_capability(Action.MANAGE_TECHNICIANS)),
    service: BookingService = Depends(get_booking_service),
):
    return {"ok": True, "technicians": service.list_technicians()}


@router.get("/tech-bookings")
async def tech_bookings(
    _: Actor = Depends(require_capability(Action.MANAGE_TECHNICIANS)),
    service: BookingService = Depends(get_booking_service),
):
    return {"ok": True, "technicians": service.tech_bookings()}


@router.get("/bookings/{public_id}/events")
async def booking_events(
    public_id: str,
    _: Actor = Depends(require_capability(Action.VIEW_ALL_BOOKINGS)),
    service: BookingService = Depends(get_booking_service),
):
    return {"ok": True, "events": service.get_events(public_id)}


# ============================================================================
# TRANSITIONS
# ============================================================================


@router.post("/bookings", status_code=status.HTTP_201_CREATED)
async def admin_create_booking(
    data: AdminBookingCreate,
    actor: Actor = Depends(require_capability(Action.CREATE_ANY_BOOKING)),
    service: BookingService = Depends(get_booking_service),
):
    """Book for self, an existing customer, or a lead (created on the fly)"""
    booking = service.admin_create_booking(actor, data)
    return {"ok": True, "booking": serialize_admin_booking(booking)}


@router.patch("/bookings/{public_id}/accept")
async def accept_booking(
    public_id: str,
    actor: Actor = Depends(require_capability(Action.ACCEPT_BOOKING)),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.accept(actor, public_id)
    return {"ok": True, "booking": serialize_admin_booking(booking)}


@router.patch("/bookings/{public_id}/cancel")
async def cancel_booking(
    public_id: str,
    actor: Actor = Depends(require_capability(Action.CANCEL_ANY_BOOKING)),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.cancel(actor, public_id)
    return {"ok": True, "booking": serialize_admin_booking(booking)}


@router.patch("/bookings/{public_id}/assign")
async def assign_booking(
    public_id: str,
    data: AssignRequest,
    actor: Actor = Depends(require_capability(Action.ASSIGN_BOOKING)),
    service: BookingService = Depends(get_booking_service),
):
    """Assign an accepted booking, or move an assigned one to another technician"""
    booking = service.assign(actor, public_id, data)
    return {"ok": True, "booking": serialize_admin_booking(booking)}
