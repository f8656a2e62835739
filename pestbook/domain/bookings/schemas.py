"""Booking domain schemas - Pydantic models for validation"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from ...shared.validators import (
    NOTES_MAX_LENGTH,
    validate_account_type,
    validate_address,
    validate_email,
    validate_public_id,
    validate_us_phone,
)
from ..scheduling import as_utc


# ============================================================================
# BOOKEE
# ============================================================================


@dataclass(frozen=True)
class RegisteredBookee:
    """A registered user holding the customer role"""

    customer_user_id: int


@dataclass(frozen=True)
class LeadBookee:
    """A contact captured without an account"""

    lead_id: int


Bookee = Union[RegisteredBookee, LeadBookee]


# ============================================================================
# REQUESTS
# ============================================================================


def _require_aware(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and (value.tzinfo is None or value.utcoffset() is None):
        raise ValueError("Timestamp must include a timezone offset")
    return value


class BookingCreate(BaseModel):
    """Customer self-service booking request"""

    servicePublicId: str
    startsAt: datetime
    endsAt: Optional[datetime] = None  # derived from the service duration when omitted
    address: str
    notes: Optional[str] = Field(None, max_length=NOTES_MAX_LENGTH)

    @field_validator("servicePublicId")
    @classmethod
    def validate_service_id(cls, v):
        return validate_public_id(v)

    @field_validator("startsAt", "endsAt")
    @classmethod
    def validate_aware(cls, v):
        return _require_aware(v)

    @field_validator("address")
    @classmethod
    def validate_booking_address(cls, v):
        return validate_address(v)

    @model_validator(mode="after")
    def validate_order(self):
        if self.endsAt is not None and self.endsAt <= self.startsAt:
            raise ValueError("endsAt must be after startsAt")
        return self


class LeadInput(BaseModel):
    """Contact details for a booking made on behalf of an unregistered person"""

    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    account_type: Optional[str] = None
    address: str

    @field_validator("email")
    @classmethod
    def validate_lead_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_us_phone(v)
        return v

    @field_validator("account_type")
    @classmethod
    def validate_type(cls, v):
        return validate_account_type(v)

    @field_validator("address")
    @classmethod
    def validate_lead_address(cls, v):
        return validate_address(v)


class AdminBookingCreate(BaseModel):
    """
    Admin booking request.

    At most one of ``customerPublicId`` / ``lead``; with neither the admin
    books for themselves. ``address`` overrides the bookee's saved address.
    """

    servicePublicId: str
    startsAt: datetime
    endsAt: Optional[datetime] = None
    address: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=NOTES_MAX_LENGTH)
    customerPublicId: Optional[str] = None
    lead: Optional[LeadInput] = None

    @field_validator("servicePublicId")
    @classmethod
    def validate_service_id(cls, v):
        return validate_public_id(v)

    @field_validator("customerPublicId")
    @classmethod
    def validate_customer_id(cls, v):
        if v:
            return validate_public_id(v)
        return None

    @field_validator("startsAt", "endsAt")
    @classmethod
    def validate_aware(cls, v):
        return _require_aware(v)

    @field_validator("address")
    @classmethod
    def validate_override_address(cls, v):
        if v is None or not v.strip():
            return None
        return validate_address(v)

    @model_validator(mode="after")
    def validate_request(self):
        if self.customerPublicId and self.lead is not None:
            raise ValueError("Provide either customerPublicId or lead, not both")
        if self.endsAt is not None and self.endsAt <= self.startsAt:
            raise ValueError("endsAt must be after startsAt")
        return self


class AssignRequest(BaseModel):
    """Target technician, by internal user id or public id"""

    workerUserId: Optional[int] = Field(None, gt=0)
    workerPublicId: Optional[str] = None

    @field_validator("workerPublicId")
    @classmethod
    def validate_worker_public_id(cls, v):
        if v:
            return validate_public_id(v)
        return None

    @model_validator(mode="after")
    def require_one(self):
        if (self.workerUserId is None) == (self.workerPublicId is None):
            raise ValueError("Provide exactly one of workerUserId or workerPublicId")
        return self


# ============================================================================
# RESPONSES
# ============================================================================


class UTCModel(BaseModel):
    """Datetimes read back without an offset are UTC"""

    @field_validator("*", mode="after")
    @classmethod
    def attach_utc(cls, v):
        if isinstance(v, datetime):
            return as_utc(v)
        return v


class BookingResponse(UTCModel):
    public_id: str
    status: str
    starts_at: datetime
    ends_at: datetime
    address: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    service_public_id: Optional[str] = None
    service_title: Optional[str] = None
    bookee_kind: Optional[str] = None
    bookee_public_id: Optional[str] = None


class AdminBookingResponse(BookingResponse):
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None
    customer_account_type: Optional[str] = None
    worker_user_id: Optional[int] = None
    worker_public_id: Optional[str] = None
    worker_name: Optional[str] = None
    completed_worker_user_id: Optional[int] = None


class AvailabilityBooking(UTCModel):
    """Slot-blocking view of an active booking; carries no identifiers"""

    starts_at: datetime
    ends_at: datetime
    status: str


class AvailabilityResponse(UTCModel):
    ok: bool = True
    date: str
    startUtc: datetime
    endUtc: datetime
    bookings: list[AvailabilityBooking]


class BookingEventResponse(UTCModel):
    event_type: str
    actor_user_id: Optional[int] = None
    metadata: dict = {}
    created_at: Optional[datetime] = None


class BookeeSearchResult(UTCModel):
    """A customer or lead an admin can book for"""

    kind: str  # customer | lead
    public_id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    created_at: Optional[datetime] = None


class TechnicianResponse(BaseModel):
    user_id: int
    public_id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
