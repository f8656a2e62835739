"""Booking service - Admission control, transitions and read side"""

import logging
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from ...config import DEFAULT_SERVICE_DURATION_MINUTES
from ...errors import (
    BookingError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    StateError,
    ValidationError,
)
from ...models import OVERLAP_CONSTRAINT_NAME, Booking, Service
from ..access import (
    Actor,
    Role,
    can_cancel_booking,
    can_complete_booking,
    can_view_booking,
)
from ..catalog.repository import ServiceRepository
from ..scheduling import (
    ACTIVE_STATUSES,
    BookingStatus,
    TimeRange,
    ensure_transition,
    local_day_window,
    to_utc,
)
from .repository import BookingRepository
from .schemas import (
    AdminBookingCreate,
    AdminBookingResponse,
    AssignRequest,
    AvailabilityBooking,
    AvailabilityResponse,
    Bookee,
    BookeeSearchResult,
    BookingCreate,
    BookingEventResponse,
    BookingResponse,
    LeadBookee,
    LeadInput,
    RegisteredBookee,
    TechnicianResponse,
)

logger = logging.getLogger(__name__)

# PostgreSQL exclusion_violation
EXCLUSION_VIOLATION_SQLSTATE = "23P01"
# lock_not_available, deadlock_detected, serialization_failure
LOCK_FAILURE_SQLSTATES = {"55P03", "40P01", "40001"}
SQLITE_LOCK_MESSAGES = ("database is locked", "database table is locked")

COMPLETED_PAGE_SIZE_DEFAULT = 30
COMPLETED_PAGE_SIZE_MAX = 100
BOOKEE_SEARCH_LIMIT_DEFAULT = 25
BOOKEE_SEARCH_LIMIT_MAX = 50
WORKER_HISTORY_PAGE_SIZE_MAX = 30


def is_overlap_violation(exc: IntegrityError) -> bool:
    """True when the IntegrityError came from the active-interval exclusion constraint"""
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate == EXCLUSION_VIOLATION_SQLSTATE:
        return True
    return OVERLAP_CONSTRAINT_NAME in str(orig if orig is not None else exc)


def is_lock_failure(exc: OperationalError) -> bool:
    """True for lock timeouts and deadlocks; other operational errors propagate"""
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in LOCK_FAILURE_SQLSTATES:
        return True
    message = str(orig if orig is not None else exc).lower()
    return any(text in message for text in SQLITE_LOCK_MESSAGES)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


# ============================================================================
# SERIALIZATION
# ============================================================================


def serialize_booking(booking: Booking) -> BookingResponse:
    bookee = booking.bookee
    return BookingResponse(
        public_id=booking.public_id,
        status=booking.status,
        starts_at=booking.starts_at,
        ends_at=booking.ends_at,
        address=booking.address,
        notes=booking.notes,
        created_at=booking.created_at,
        accepted_at=booking.accepted_at,
        completed_at=booking.completed_at,
        cancelled_at=booking.cancelled_at,
        service_public_id=booking.service.public_id if booking.service else None,
        service_title=booking.service.title if booking.service else None,
        bookee_kind=booking.bookee_kind,
        bookee_public_id=bookee.public_id if bookee else None,
    )


def serialize_admin_booking(booking: Booking) -> AdminBookingResponse:
    base = serialize_booking(booking).model_dump()
    bookee = booking.bookee
    worker = booking.assignment.worker if booking.assignment else None
    return AdminBookingResponse(
        **base,
        customer_name=bookee.full_name if bookee else None,
        customer_email=bookee.email if bookee else None,
        customer_phone=bookee.phone if bookee else None,
        customer_address=bookee.address if bookee else None,
        customer_account_type=bookee.account_type if bookee else None,
        worker_user_id=worker.id if worker else None,
        worker_public_id=worker.public_id if worker else None,
        worker_name=(worker.full_name or worker.email) if worker else None,
        completed_worker_user_id=booking.completed_worker_user_id,
    )


def serialize_technician(user) -> TechnicianResponse:
    return TechnicianResponse(
        user_id=user.id,
        public_id=user.public_id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        phone=user.phone,
    )


class BookingService:
    """Service layer for the booking lifecycle"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()
        self.services = ServiceRepository()

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    def get_availability(self, day: date, tz_offset_minutes: int = 0) -> AvailabilityResponse:
        """Active bookings intersecting the caller's local day"""
        window = local_day_window(day, tz_offset_minutes)
        rows = self.repo.find_active_overlapping(self.db, window.start, window.end)
        return AvailabilityResponse(
            date=day.isoformat(),
            startUtc=window.start,
            endUtc=window.end,
            bookings=[
                AvailabilityBooking(
                    starts_at=b.starts_at,
                    ends_at=b.ends_at,
                    status=b.status,
                )
                for b in rows
            ],
        )

    # ------------------------------------------------------------------
    # Admission
    # ------------------------------------------------------------------

    def _resolve_service(self, service_public_id: str) -> Service:
        service = self.services.get_active_by_public_id(self.db, service_public_id)
        if not service:
            raise NotFoundError("Service not found")
        return service

    @staticmethod
    def _resolve_time_range(
        service: Service, starts_at: datetime, ends_at: Optional[datetime]
    ) -> TimeRange:
        if ends_at is not None:
            return TimeRange(starts_at, ends_at)
        minutes = service.duration_minutes or DEFAULT_SERVICE_DURATION_MINUTES
        return TimeRange.from_duration(to_utc(starts_at), minutes)

    def _resolve_lead(self, lead_input: LeadInput) -> Bookee:
        """
        Registered customers are booked directly; otherwise reuse or create the
        lead, filling in contact fields it does not have yet.
        """
        user = self.repo.get_user_by_email(self.db, lead_input.email)
        if user and self.repo.user_has_role(self.db, user.id, Role.CUSTOMER.value):
            return RegisteredBookee(customer_user_id=user.id)

        lead = self.repo.get_lead_by_email(self.db, lead_input.email)
        if lead:
            for key in ("first_name", "last_name", "phone", "account_type", "address"):
                value = getattr(lead_input, key)
                if value and not getattr(lead, key):
                    setattr(lead, key, value)
            return LeadBookee(lead_id=lead.id)

        lead = self.repo.create_lead(
            self.db,
            email=lead_input.email,
            first_name=lead_input.first_name,
            last_name=lead_input.last_name,
            phone=lead_input.phone,
            account_type=lead_input.account_type,
            address=lead_input.address,
        )
        logger.info(f"📇 Lead captured: {lead.public_id}")
        return LeadBookee(lead_id=lead.id)

    def _resolve_admin_bookee(self, actor: Actor, data: AdminBookingCreate) -> Bookee:
        if data.customerPublicId:
            user = self.repo.get_user_by_public_id(self.db, data.customerPublicId)
            if not user or not self.repo.user_has_role(self.db, user.id, Role.CUSTOMER.value):
                raise NotFoundError("Customer not found")
            return RegisteredBookee(customer_user_id=user.id)
        if data.lead is not None:
            return self._resolve_lead(data.lead)
        return RegisteredBookee(customer_user_id=actor.user_id)

    def _saved_address(self, bookee: Bookee) -> Optional[str]:
        if isinstance(bookee, RegisteredBookee):
            user = self.repo.get_user_by_id(self.db, bookee.customer_user_id)
            return user.address if user else None
        lead = self.repo.get_lead_by_id(self.db, bookee.lead_id)
        return lead.address if lead else None

    def _admit(
        self,
        actor: Actor,
        bookee: Bookee,
        service: Service,
        time_range: TimeRange,
        address: str,
        notes: Optional[str],
    ) -> Booking:
        """
        Insert a pending booking.

        The overlap SELECT only gives a fast answer; the exclusion constraint
        decides when two requests race past it.
        """
        booking_data = {
            "service_id": service.id,
            "status": BookingStatus.PENDING.value,
            "starts_at": time_range.start,
            "ends_at": time_range.end,
            "address": address,
            "notes": notes or None,
        }
        if isinstance(bookee, RegisteredBookee):
            booking_data["customer_user_id"] = bookee.customer_user_id
        else:
            booking_data["lead_id"] = bookee.lead_id

        try:
            conflicts = self.repo.find_active_overlapping(
                self.db, time_range.start, time_range.end
            )
            if conflicts:
                logger.warning(
                    f"⚠️ Slot {time_range.start.isoformat()} - {time_range.end.isoformat()} "
                    f"overlaps {conflicts[0].public_id}"
                )
                raise ConflictError()

            booking = self.repo.create_booking(self.db, **booking_data)
            self.repo.add_event(
                self.db,
                booking.id,
                actor.user_id,
                "created",
                {"status": BookingStatus.PENDING.value},
            )
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if is_overlap_violation(e):
                logger.warning(
                    f"⚠️ Exclusion constraint rejected slot {time_range.start.isoformat()} "
                    f"for user {actor.user_id}"
                )
                raise ConflictError() from e
            logger.error(f"❌ Booking insert failed: {e}")
            raise
        except OperationalError as e:
            self.db.rollback()
            if is_lock_failure(e):
                logger.warning(
                    f"⚠️ Lock timeout admitting slot {time_range.start.isoformat()} "
                    f"for user {actor.user_id}"
                )
                raise ConflictError() from e
            raise

        logger.info(
            f"✅ Booking created: {booking.public_id} "
            f"{time_range.start.isoformat()} - {time_range.end.isoformat()} by user {actor.user_id}"
        )
        return self.get_booking(booking.public_id)

    def create_booking(self, actor: Actor, data: BookingCreate) -> Booking:
        """Customer self-service booking"""
        logger.info(f"📥 Booking request from user_id: {actor.user_id}")
        try:
            service = self._resolve_service(data.servicePublicId)
            time_range = self._resolve_time_range(service, data.startsAt, data.endsAt)
            return self._admit(
                actor,
                RegisteredBookee(customer_user_id=actor.user_id),
                service,
                time_range,
                data.address,
                data.notes,
            )
        except BookingError:
            self.db.rollback()
            raise

    def admin_create_booking(self, actor: Actor, data: AdminBookingCreate) -> Booking:
        """Booking on behalf of self, an existing customer, or a lead"""
        logger.info(f"📥 Admin booking request from user_id: {actor.user_id}")
        try:
            service = self._resolve_service(data.servicePublicId)
            time_range = self._resolve_time_range(service, data.startsAt, data.endsAt)
            bookee = self._resolve_admin_bookee(actor, data)
            address = data.address or self._saved_address(bookee)
            if not address:
                raise ValidationError("Address is required")
            return self._admit(actor, bookee, service, time_range, address, data.notes)
        except BookingError:
            self.db.rollback()
            raise

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _lock(self, public_id: str) -> Booking:
        booking = self.repo.lock_by_public_id(self.db, public_id)
        if not booking:
            raise NotFoundError("Booking not found")
        return booking

    def _transition(self, actor: Actor, public_id: str, apply) -> Booking:
        """Run ``apply(booking)`` under the row lock and commit, or roll back on any failure."""
        try:
            booking = self._lock(public_id)
            apply(booking)
            self.db.commit()
        except BookingError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Booking {public_id} transition rejected for user {actor.user_id}: {e}")
            raise
        except IntegrityError as e:
            self.db.rollback()
            if is_overlap_violation(e):
                raise ConflictError() from e
            raise
        except OperationalError as e:
            self.db.rollback()
            if is_lock_failure(e):
                logger.warning(f"⚠️ Booking {public_id} is locked by another transition: {e}")
                raise StateError("Booking is being updated, reload and try again") from e
            raise
        return self.get_booking(public_id)

    def accept(self, actor: Actor, public_id: str) -> Booking:
        def apply(booking: Booking):
            ensure_transition(booking.status, BookingStatus.ACCEPTED)
            booking.status = BookingStatus.ACCEPTED.value
            booking.accepted_at = _now()
            self.repo.add_event(self.db, booking.id, actor.user_id, "accepted")

        booking = self._transition(actor, public_id, apply)
        logger.info(f"✅ Booking accepted: {public_id} by user {actor.user_id}")
        return booking

    def cancel(self, actor: Actor, public_id: str) -> Booking:
        """Admins cancel any booking; customers only their own"""

        def apply(booking: Booking):
            if not can_cancel_booking(actor, booking.customer_user_id):
                raise ForbiddenError()
            previous = booking.status
            ensure_transition(booking.status, BookingStatus.CANCELLED)
            booking.status = BookingStatus.CANCELLED.value
            booking.cancelled_at = _now()
            self.repo.add_event(
                self.db, booking.id, actor.user_id, "cancelled", {"previous_status": previous}
            )

        booking = self._transition(actor, public_id, apply)
        logger.info(f"🚫 Booking cancelled: {public_id} by user {actor.user_id}")
        return booking

    def _resolve_worker(self, data: AssignRequest):
        if data.workerUserId is not None:
            user = self.repo.get_user_by_id(self.db, data.workerUserId)
        else:
            user = self.repo.get_user_by_public_id(self.db, data.workerPublicId)
        if not user:
            raise NotFoundError("Worker not found")
        if not self.repo.user_has_role(self.db, user.id, Role.WORKER.value):
            raise ValidationError("User is not a worker")
        return user

    def assign(self, actor: Actor, public_id: str, data: AssignRequest) -> Booking:
        """Assign or reassign; the assignment row is updated in place"""

        def apply(booking: Booking):
            ensure_transition(booking.status, BookingStatus.ASSIGNED)
            worker = self._resolve_worker(data)
            _, previous_worker_id = self.repo.upsert_assignment(
                self.db, booking.id, worker.id, actor.user_id, _now()
            )
            booking.status = BookingStatus.ASSIGNED.value
            event_type = "reassigned" if previous_worker_id is not None else "assigned"
            self.repo.add_event(
                self.db,
                booking.id,
                actor.user_id,
                event_type,
                {
                    "worker_user_id": worker.id,
                    "worker_public_id": worker.public_id,
                    "previous_worker_user_id": previous_worker_id,
                },
            )

        booking = self._transition(actor, public_id, apply)
        logger.info(
            f"👷 Booking {public_id} assigned to worker {booking.assigned_worker_id} "
            f"by user {actor.user_id}"
        )
        return booking

    def complete(self, actor: Actor, public_id: str) -> Booking:
        """Only the currently assigned worker may complete"""

        def apply(booking: Booking):
            ensure_transition(booking.status, BookingStatus.COMPLETED)
            assignment = self.repo.get_current_assignment(self.db, booking.id)
            if not can_complete_booking(actor, assignment.worker_user_id if assignment else None):
                raise ForbiddenError("Booking is not assigned to you")
            booking.status = BookingStatus.COMPLETED.value
            booking.completed_at = _now()
            if booking.completed_worker_user_id is None:
                booking.completed_worker_user_id = actor.user_id
            self.repo.add_event(self.db, booking.id, actor.user_id, "completed")

        booking = self._transition(actor, public_id, apply)
        logger.info(f"🏁 Booking completed: {public_id} by worker {actor.user_id}")
        return booking

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def get_booking(self, public_id: str) -> Booking:
        booking = self.repo.get_by_public_id(self.db, public_id)
        if not booking:
            raise NotFoundError("Booking not found")
        return booking

    def get_booking_for_actor(self, actor: Actor, public_id: str) -> Booking:
        """Visibility is evaluated against the current assignment on every read"""
        booking = self.get_booking(public_id)
        assignment = self.repo.get_current_assignment(self.db, booking.id)
        worker_id = assignment.worker_user_id if assignment else None
        if not can_view_booking(actor, booking.customer_user_id, worker_id):
            logger.warning(f"⚠️ User {actor.user_id} denied read of booking {public_id}")
            raise ForbiddenError()
        return booking

    def my_bookings(self, actor: Actor) -> dict:
        rows = self.repo.list_for_customer(self.db, actor.user_id)
        active = {s.value for s in ACTIVE_STATUSES}
        return {
            "upcoming": [serialize_booking(b) for b in rows if b.status in active],
            "history": [serialize_booking(b) for b in rows if b.status not in active],
        }

    def list_by_status(self, status: str) -> list[Booking]:
        try:
            status = BookingStatus(status).value
        except ValueError as e:
            raise ValidationError(f"Unknown status: {status}") from e
        return self.repo.list_by_status(self.db, status)

    def completed_history(
        self,
        page: int = 1,
        page_size: int = COMPLETED_PAGE_SIZE_DEFAULT,
        year: Optional[int] = None,
        month: Optional[int] = None,
        day: Optional[int] = None,
        search: Optional[str] = None,
    ) -> dict:
        page = max(1, page)
        page_size = _clamp(page_size, 1, COMPLETED_PAGE_SIZE_MAX)
        rows, total = self.repo.completed_history(
            self.db,
            page,
            page_size,
            year=year,
            month=month,
            day=day,
            search=search.strip() if search and search.strip() else None,
        )
        return {
            "bookings": [serialize_admin_booking(b) for b in rows],
            "page": page,
            "pageSize": page_size,
            "total": total,
        }

    def search_bookees(
        self, search: Optional[str] = None, limit: int = BOOKEE_SEARCH_LIMIT_DEFAULT
    ) -> list[BookeeSearchResult]:
        """Customers and leads for the admin booking form, newest first"""
        limit = _clamp(limit, 1, BOOKEE_SEARCH_LIMIT_MAX)
        search = search.strip() if search and search.strip() else None
        return [
            BookeeSearchResult(
                kind=kind,
                public_id=row.public_id,
                email=row.email,
                first_name=row.first_name,
                last_name=row.last_name,
                phone=row.phone,
                address=row.address,
                created_at=row.created_at,
            )
            for kind, row in self.repo.search_bookees(self.db, search, limit)
        ]

    def list_technicians(self) -> list[TechnicianResponse]:
        return [serialize_technician(u) for u in self.repo.list_workers(self.db)]

    def tech_bookings(self) -> list[dict]:
        """Every technician with their currently assigned bookings"""
        by_worker: dict[int, list] = {}
        for booking in self.repo.list_all_assigned(self.db):
            by_worker.setdefault(booking.assigned_worker_id, []).append(
                serialize_admin_booking(booking)
            )
        return [
            {
                "technician": serialize_technician(worker),
                "bookings": by_worker.get(worker.id, []),
            }
            for worker in self.repo.list_workers(self.db)
        ]

    def get_events(self, public_id: str) -> list[BookingEventResponse]:
        booking = self.get_booking(public_id)
        return [
            BookingEventResponse(
                event_type=e.event_type,
                actor_user_id=e.actor_user_id,
                metadata=e.event_metadata or {},
                created_at=e.created_at,
            )
            for e in self.repo.get_events(self.db, booking.id)
        ]

    def worker_assigned(self, actor: Actor) -> list[Booking]:
        return self.repo.list_assigned_to_worker(self.db, actor.user_id)

    def worker_history(self, actor: Actor, page: int = 1, page_size: int = 20) -> dict:
        page = max(1, page)
        page_size = _clamp(page_size, 1, WORKER_HISTORY_PAGE_SIZE_MAX)
        rows, total = self.repo.worker_history(self.db, actor.user_id, page, page_size)
        return {
            "bookings": [serialize_booking(b) for b in rows],
            "page": page,
            "pageSize": page_size,
            "total": total,
        }
