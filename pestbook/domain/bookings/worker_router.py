"""Technician portal router"""

from fastapi import APIRouter, Depends, Query

from ...auth import require_capability
from ..access import Action, Actor
from .router import get_booking_service
from .service import BookingService, serialize_admin_booking, serialize_booking

router = APIRouter(prefix="/worker", tags=["Worker Bookings"])


@router.get("/bookings/assigned")
async def assigned_bookings(
    actor: Actor = Depends(require_capability(Action.VIEW_ASSIGNED_BOOKINGS)),
    service: BookingService = Depends(get_booking_service),
):
    """Jobs currently assigned to the caller, soonest first"""
    bookings = service.worker_assigned(actor)
    # Technicians need the bookee's contact details to do the job
    return {"ok": True, "bookings": [serialize_admin_booking(b) for b in bookings]}


@router.get("/bookings/history")
async def booking_history(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, alias="pageSize"),
    actor: Actor = Depends(require_capability(Action.VIEW_ASSIGNED_BOOKINGS)),
    service: BookingService = Depends(get_booking_service),
):
    return {"ok": True, **service.worker_history(actor, page, page_size)}


@router.patch("/bookings/{public_id}/complete")
async def complete_booking(
    public_id: str,
    actor: Actor = Depends(require_capability(Action.COMPLETE_BOOKING)),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.complete(actor, public_id)
    return {"ok": True, "booking": serialize_booking(booking)}
