import uuid

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import relationship
from sqlalchemy.schema import DDL
from sqlalchemy.sql import func

from .database import Base

# SQLite only autoincrements INTEGER PRIMARY KEY
IdType = BigInteger().with_variant(Integer(), "sqlite")

ACTIVE_STATUS_SQL = "('pending','accepted','assigned')"
OVERLAP_CONSTRAINT_NAME = "bookings_no_overlap"


def generate_public_id():
    """Generate a unique public ID for secure public access"""
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(IdType, primary_key=True, index=True)
    public_id = Column(
        String(36), unique=True, nullable=False, index=True, default=generate_public_id
    )
    email = Column(String(255), unique=True, index=True, nullable=False)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    account_type = Column(String(20), nullable=True)  # residential, business
    address = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    roles = relationship("UserRole", back_populates="user", cascade="all, delete-orphan")
    sessions = relationship("AuthSession", back_populates="user", cascade="all, delete-orphan")

    @property
    def full_name(self):
        return f"{self.first_name or ''} {self.last_name or ''}".strip() or None

    @property
    def role_names(self):
        return [r.role for r in self.roles]


class UserRole(Base):
    __tablename__ = "user_roles"
    __table_args__ = (
        CheckConstraint(
            "role IN ('customer','worker','admin','superuser')", name="user_roles_role_chk"
        ),
    )

    user_id = Column(IdType, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    role = Column(String(20), primary_key=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="roles")


class AuthSession(Base):
    """Login session keyed by the opaque cookie value"""

    __tablename__ = "sessions"

    id = Column(String(128), primary_key=True)
    user_id = Column(IdType, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    expires_at = Column(DateTime(timezone=True), nullable=False)
    last_seen_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="sessions")


class Lead(Base):
    """Contact captured without an account; may be promoted to a customer later"""

    __tablename__ = "leads"

    id = Column(IdType, primary_key=True, index=True)
    public_id = Column(
        String(36), unique=True, nullable=False, index=True, default=generate_public_id
    )
    email = Column(String(255), unique=True, index=True, nullable=False)  # stored lower-cased
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    account_type = Column(String(20), nullable=True)
    address = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def full_name(self):
        return f"{self.first_name or ''} {self.last_name or ''}".strip() or None


class Service(Base):
    __tablename__ = "services"
    __table_args__ = (Index("idx_services_active_sort", "is_active", "sort_order", "title"),)

    id = Column(IdType, primary_key=True, index=True)
    public_id = Column(
        String(36), unique=True, nullable=False, index=True, default=generate_public_id
    )
    title = Column(String(120), nullable=False)
    description = Column(Text, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    base_price_cents = Column(Integer, nullable=True)
    duration_minutes = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    bookings = relationship("Booking", back_populates="service")


class Booking(Base):
    """
    Reservation of one time range for one bookee.

    Exactly one of customer_user_id / lead_id is set. Active bookings
    (pending, accepted, assigned) never overlap; the database enforces it,
    see the DDL hooks below.
    """

    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("ends_at > starts_at", name="bookings_time_order_chk"),
        CheckConstraint(
            "status IN ('pending','accepted','assigned','completed','cancelled')",
            name="bookings_status_chk",
        ),
        CheckConstraint(
            "(customer_user_id IS NULL) <> (lead_id IS NULL)", name="bookings_bookee_chk"
        ),
        Index("idx_bookings_customer_time", "customer_user_id", "starts_at"),
        Index("idx_bookings_status_time", "status", "starts_at"),
    )

    id = Column(IdType, primary_key=True, index=True)
    public_id = Column(
        String(36), unique=True, nullable=False, index=True, default=generate_public_id
    )

    customer_user_id = Column(IdType, ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    lead_id = Column(IdType, ForeignKey("leads.id", ondelete="CASCADE"), nullable=True)
    service_id = Column(IdType, ForeignKey("services.id"), nullable=False)

    # Workflow: pending → accepted → assigned → completed, cancelled from any active state
    status = Column(String(20), default="pending", nullable=False)

    starts_at = Column(DateTime(timezone=True), nullable=False)
    ends_at = Column(DateTime(timezone=True), nullable=False)

    address = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)

    accepted_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    completed_worker_user_id = Column(IdType, ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    service = relationship("Service", back_populates="bookings")
    customer = relationship("User", foreign_keys=[customer_user_id])
    lead = relationship("Lead")
    completed_by = relationship("User", foreign_keys=[completed_worker_user_id])
    assignment = relationship(
        "BookingAssignment", back_populates="booking", uselist=False, cascade="all, delete-orphan"
    )
    events = relationship(
        "BookingEvent",
        back_populates="booking",
        order_by="BookingEvent.id",
        cascade="all, delete-orphan",
    )

    @property
    def bookee(self):
        return self.customer if self.customer_user_id is not None else self.lead

    @property
    def bookee_kind(self):
        return "customer" if self.customer_user_id is not None else "lead"

    @property
    def assigned_worker_id(self):
        return self.assignment.worker_user_id if self.assignment else None


class BookingAssignment(Base):
    """Current technician for a booking; one row per booking, updated on reassignment"""

    __tablename__ = "booking_assignments"
    __table_args__ = (
        UniqueConstraint("booking_id", name="booking_assignments_booking_uniq"),
        Index("idx_booking_assignments_worker", "worker_user_id", "assigned_at"),
    )

    id = Column(IdType, primary_key=True, index=True)
    booking_id = Column(IdType, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False)
    worker_user_id = Column(IdType, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    assigned_by_user_id = Column(IdType, ForeignKey("users.id"), nullable=True)
    assigned_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    booking = relationship("Booking", back_populates="assignment")
    worker = relationship("User", foreign_keys=[worker_user_id])


class BookingEvent(Base):
    """Append-only audit log of booking status changes"""

    __tablename__ = "booking_events"
    __table_args__ = (Index("idx_booking_events_booking_time", "booking_id", "created_at"),)

    id = Column(IdType, primary_key=True, index=True)
    booking_id = Column(IdType, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False)
    actor_user_id = Column(IdType, ForeignKey("users.id"), nullable=True)
    event_type = Column(String(50), nullable=False)
    event_metadata = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    booking = relationship("Booking", back_populates="events")


# ---------------------------------------------------------------------------
# Overlap exclusion
# ---------------------------------------------------------------------------

# PostgreSQL: generated tstzrange + GiST exclusion over active statuses
event.listen(
    Base.metadata,
    "before_create",
    DDL("CREATE EXTENSION IF NOT EXISTS btree_gist").execute_if(dialect="postgresql"),
)
event.listen(
    Booking.__table__,
    "after_create",
    DDL(
        "ALTER TABLE bookings ADD COLUMN IF NOT EXISTS time_range TSTZRANGE "
        "GENERATED ALWAYS AS (tstzrange(starts_at, ends_at, '[)')) STORED"
    ).execute_if(dialect="postgresql"),
)
event.listen(
    Booking.__table__,
    "after_create",
    DDL(
        f"ALTER TABLE bookings ADD CONSTRAINT {OVERLAP_CONSTRAINT_NAME} "
        "EXCLUDE USING GIST (time_range WITH &&) "
        f"WHERE (status IN {ACTIVE_STATUS_SQL})"
    ).execute_if(dialect="postgresql"),
)

# SQLite (dev/tests): triggers abort with the constraint name
_SQLITE_OVERLAP_CHECK = f"""
    SELECT RAISE(ABORT, '{OVERLAP_CONSTRAINT_NAME}')
    WHERE NEW.status IN {ACTIVE_STATUS_SQL}
      AND EXISTS (
        SELECT 1 FROM bookings b
        WHERE b.id IS NOT NEW.id
          AND b.status IN {ACTIVE_STATUS_SQL}
          AND b.starts_at < NEW.ends_at
          AND b.ends_at > NEW.starts_at
      );
"""
event.listen(
    Booking.__table__,
    "after_create",
    DDL(
        f"CREATE TRIGGER IF NOT EXISTS {OVERLAP_CONSTRAINT_NAME}_insert "
        f"BEFORE INSERT ON bookings BEGIN {_SQLITE_OVERLAP_CHECK} END"
    ).execute_if(dialect="sqlite"),
)
event.listen(
    Booking.__table__,
    "after_create",
    DDL(
        f"CREATE TRIGGER IF NOT EXISTS {OVERLAP_CONSTRAINT_NAME}_update "
        "BEFORE UPDATE OF status, starts_at, ends_at ON bookings "
        f"BEGIN {_SQLITE_OVERLAP_CHECK} END"
    ).execute_if(dialect="sqlite"),
)
