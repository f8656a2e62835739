"""Booking repository - Database operations for bookings"""

from datetime import datetime
from typing import Optional

from sqlalchemy import extract, func, or_
from sqlalchemy.orm import Session, joinedload

from ...models import (
    Booking,
    BookingAssignment,
    BookingEvent,
    Lead,
    Service,
    User,
    UserRole,
)
from ..scheduling import ACTIVE_STATUSES, BookingStatus

ACTIVE_STATUS_VALUES = [s.value for s in ACTIVE_STATUSES]


class BookingRepository:
    """Repository for booking database operations. Callers own the transaction."""

    @staticmethod
    def _with_relations(query):
        return query.options(
            joinedload(Booking.service),
            joinedload(Booking.customer),
            joinedload(Booking.lead),
            joinedload(Booking.assignment).joinedload(BookingAssignment.worker),
        )

    @staticmethod
    def get_by_public_id(db: Session, public_id: str) -> Optional[Booking]:
        query = db.query(Booking).filter(Booking.public_id == public_id)
        return BookingRepository._with_relations(query).first()

    @staticmethod
    def lock_by_public_id(db: Session, public_id: str) -> Optional[Booking]:
        """
        SELECT ... FOR UPDATE; the row stays locked until commit/rollback.

        SQLite ignores FOR UPDATE, so a no-op write takes the database write
        lock first. A second writer waits on it and then reads the committed
        status.
        """
        if db.get_bind().dialect.name == "sqlite":
            db.query(Booking).filter(Booking.public_id == public_id).update(
                {Booking.status: Booking.status}, synchronize_session=False
            )
        return (
            db.query(Booking)
            .filter(Booking.public_id == public_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    @staticmethod
    def get_current_assignment(db: Session, booking_id: int) -> Optional[BookingAssignment]:
        return (
            db.query(BookingAssignment)
            .filter(BookingAssignment.booking_id == booking_id)
            .populate_existing()
            .first()
        )

    @staticmethod
    def find_active_overlapping(
        db: Session, starts_at: datetime, ends_at: datetime
    ) -> list[Booking]:
        """Active bookings intersecting [starts_at, ends_at)"""
        return (
            db.query(Booking)
            .filter(
                Booking.status.in_(ACTIVE_STATUS_VALUES),
                Booking.starts_at < ends_at,
                Booking.ends_at > starts_at,
            )
            .order_by(Booking.starts_at.asc())
            .all()
        )

    @staticmethod
    def create_booking(db: Session, **booking_data) -> Booking:
        booking = Booking(**booking_data)
        db.add(booking)
        db.flush()
        return booking

    @staticmethod
    def add_event(
        db: Session,
        booking_id: int,
        actor_user_id: Optional[int],
        event_type: str,
        metadata: Optional[dict] = None,
    ) -> BookingEvent:
        entry = BookingEvent(
            booking_id=booking_id,
            actor_user_id=actor_user_id,
            event_type=event_type,
            event_metadata=metadata or {},
        )
        db.add(entry)
        return entry

    @staticmethod
    def upsert_assignment(
        db: Session, booking_id: int, worker_user_id: int, assigned_by_user_id: int, now: datetime
    ) -> tuple[BookingAssignment, Optional[int]]:
        """
        Point the booking at a worker.
        Returns (assignment, previous_worker_user_id).
        """
        assignment = BookingRepository.get_current_assignment(db, booking_id)
        previous_worker_id = None
        if assignment:
            previous_worker_id = assignment.worker_user_id
            assignment.worker_user_id = worker_user_id
            assignment.assigned_by_user_id = assigned_by_user_id
            assignment.assigned_at = now
        else:
            assignment = BookingAssignment(
                booking_id=booking_id,
                worker_user_id=worker_user_id,
                assigned_by_user_id=assigned_by_user_id,
                assigned_at=now,
            )
            db.add(assignment)
        db.flush()
        return assignment, previous_worker_id

    @staticmethod
    def get_events(db: Session, booking_id: int) -> list[BookingEvent]:
        return (
            db.query(BookingEvent)
            .filter(BookingEvent.booking_id == booking_id)
            .order_by(BookingEvent.id.asc())
            .all()
        )

    # Listing Methods
    @staticmethod
    def list_for_customer(db: Session, customer_user_id: int) -> list[Booking]:
        query = db.query(Booking).filter(Booking.customer_user_id == customer_user_id)
        return (
            BookingRepository._with_relations(query).order_by(Booking.starts_at.desc()).all()
        )

    @staticmethod
    def list_by_status(db: Session, status: str, limit: int = 500) -> list[Booking]:
        query = db.query(Booking).filter(Booking.status == status)
        return (
            BookingRepository._with_relations(query)
            .order_by(Booking.starts_at.asc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def list_assigned_to_worker(db: Session, worker_user_id: int, limit: int = 200) -> list[Booking]:
        query = (
            db.query(Booking)
            .join(BookingAssignment, BookingAssignment.booking_id == Booking.id)
            .filter(
                Booking.status == BookingStatus.ASSIGNED.value,
                BookingAssignment.worker_user_id == worker_user_id,
            )
        )
        return (
            BookingRepository._with_relations(query)
            .order_by(Booking.starts_at.asc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def list_all_assigned(db: Session) -> list[Booking]:
        query = db.query(Booking).filter(Booking.status == BookingStatus.ASSIGNED.value)
        return BookingRepository._with_relations(query).order_by(Booking.starts_at.asc()).all()

    @staticmethod
    def worker_history(
        db: Session, worker_user_id: int, page: int, page_size: int
    ) -> tuple[list[Booking], int]:
        base = db.query(Booking).filter(
            Booking.status == BookingStatus.COMPLETED.value,
            Booking.completed_worker_user_id == worker_user_id,
        )
        total = base.count()
        rows = (
            BookingRepository._with_relations(base)
            .order_by(Booking.completed_at.desc(), Booking.starts_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return rows, total

    @staticmethod
    def completed_history(
        db: Session,
        page: int,
        page_size: int,
        year: Optional[int] = None,
        month: Optional[int] = None,
        day: Optional[int] = None,
        search: Optional[str] = None,
    ) -> tuple[list[Booking], int]:
        """Completed bookings, filtered by the UTC start date and a free-text search"""
        query = (
            db.query(Booking)
            .join(Service, Service.id == Booking.service_id)
            .outerjoin(User, User.id == Booking.customer_user_id)
            .outerjoin(Lead, Lead.id == Booking.lead_id)
            .filter(Booking.status == BookingStatus.COMPLETED.value)
        )

        if year:
            query = query.filter(extract("year", Booking.starts_at) == year)
        if month:
            query = query.filter(extract("month", Booking.starts_at) == month)
        if day:
            query = query.filter(extract("day", Booking.starts_at) == day)

        if search:
            search_term = f"%{search.lower()}%"
            query = query.filter(
                or_(
                    func.lower(Booking.address).like(search_term),
                    func.lower(func.coalesce(Booking.notes, "")).like(search_term),
                    func.lower(Service.title).like(search_term),
                    func.lower(func.coalesce(User.email, "")).like(search_term),
                    func.lower(func.coalesce(User.first_name, "")).like(search_term),
                    func.lower(func.coalesce(User.last_name, "")).like(search_term),
                    func.lower(func.coalesce(Lead.email, "")).like(search_term),
                    func.lower(func.coalesce(Lead.first_name, "")).like(search_term),
                    func.lower(func.coalesce(Lead.last_name, "")).like(search_term),
                )
            )

        total = query.count()
        rows = (
            BookingRepository._with_relations(query)
            .order_by(Booking.completed_at.desc(), Booking.starts_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return rows, total

    # People
    @staticmethod
    def get_user_by_public_id(db: Session, public_id: str) -> Optional[User]:
        return db.query(User).filter(User.public_id == public_id).first()

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(func.lower(User.email) == email.lower()).first()

    @staticmethod
    def user_has_role(db: Session, user_id: int, role: str) -> bool:
        return (
            db.query(UserRole).filter(UserRole.user_id == user_id, UserRole.role == role).first()
            is not None
        )

    @staticmethod
    def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def list_workers(db: Session) -> list[User]:
        return (
            db.query(User)
            .join(UserRole, UserRole.user_id == User.id)
            .filter(UserRole.role == "worker")
            .order_by(User.last_name.asc(), User.first_name.asc(), User.email.asc())
            .all()
        )

    @staticmethod
    def get_lead_by_id(db: Session, lead_id: int) -> Optional[Lead]:
        return db.query(Lead).filter(Lead.id == lead_id).first()

    @staticmethod
    def get_lead_by_email(db: Session, email: str) -> Optional[Lead]:
        return db.query(Lead).filter(Lead.email == email.lower()).first()

    @staticmethod
    def create_lead(db: Session, **lead_data) -> Lead:
        lead = Lead(**lead_data)
        db.add(lead)
        db.flush()
        return lead

    @staticmethod
    def _contact_matches(model, search_term: str):
        full_name = func.coalesce(model.first_name, "") + " " + func.coalesce(model.last_name, "")
        return or_(
            func.lower(full_name).like(search_term),
            func.lower(model.email).like(search_term),
            func.lower(func.coalesce(model.phone, "")).like(search_term),
        )

    @staticmethod
    def search_bookees(db: Session, search: Optional[str], limit: int) -> list:
        """
        Registered customers and leads matching name, email or phone.
        Returns (kind, row) pairs, newest first.
        """
        customers = (
            db.query(User)
            .join(UserRole, UserRole.user_id == User.id)
            .filter(UserRole.role == "customer")
        )
        leads = db.query(Lead)

        if search:
            search_term = f"%{search.lower()}%"
            customers = customers.filter(BookingRepository._contact_matches(User, search_term))
            leads = leads.filter(BookingRepository._contact_matches(Lead, search_term))

        rows = [
            ("customer", u) for u in customers.order_by(User.created_at.desc()).limit(limit).all()
        ] + [("lead", lead) for lead in leads.order_by(Lead.created_at.desc()).limit(limit).all()]
        rows.sort(key=lambda pair: (pair[1].created_at is not None, pair[1].created_at), reverse=True)
        return rows[:limit]
