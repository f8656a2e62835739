"""
Unit tests for shared input validators and request schemas.
"""

import uuid

import pytest
from pydantic import ValidationError as PydanticValidationError

from pestbook.domain.bookings.schemas import AdminBookingCreate, AssignRequest, BookingCreate
from pestbook.shared.validators import (
    validate_account_type,
    validate_address,
    validate_email,
    validate_public_id,
    validate_us_phone,
)

SERVICE_ID = str(uuid.uuid4())


class TestValidators:
    def test_public_id_canonical_form(self):
        raw = uuid.uuid4()
        assert validate_public_id(str(raw).upper()) == str(raw)

    def test_public_id_rejects_garbage(self):
        with pytest.raises(ValueError):
            validate_public_id("42")

    def test_phone_normalized(self):
        assert validate_us_phone("(555) 123-4567") == "+15551234567"
        assert validate_us_phone("1-555-123-4567") == "+15551234567"

    def test_phone_rejects_short(self):
        with pytest.raises(ValueError):
            validate_us_phone("123")

    def test_email_lowercased(self):
        assert validate_email("  Jane.Doe@Example.COM ") == "jane.doe@example.com"

    def test_address_trimmed_and_min_length(self):
        assert validate_address("  12 Elm St  ") == "12 Elm St"
        with pytest.raises(ValueError):
            validate_address("12")

    def test_account_type(self):
        assert validate_account_type("Business") == "business"
        assert validate_account_type("") is None
        with pytest.raises(ValueError):
            validate_account_type("industrial")


class TestBookingSchemas:
    def test_requires_timezone(self):
        with pytest.raises(PydanticValidationError):
            BookingCreate(
                servicePublicId=SERVICE_ID,
                startsAt="2025-03-10T14:00:00",
                address="12 Elm Street",
            )

    def test_rejects_inverted_range(self):
        with pytest.raises(PydanticValidationError):
            BookingCreate(
                servicePublicId=SERVICE_ID,
                startsAt="2025-03-10T14:00:00Z",
                endsAt="2025-03-10T13:00:00Z",
                address="12 Elm Street",
            )

    def test_end_is_optional(self):
        data = BookingCreate(
            servicePublicId=SERVICE_ID,
            startsAt="2025-03-10T14:00:00Z",
            address="12 Elm Street",
        )
        assert data.endsAt is None

    def test_admin_rejects_customer_and_lead_together(self):
        with pytest.raises(PydanticValidationError):
            AdminBookingCreate(
                servicePublicId=SERVICE_ID,
                startsAt="2025-03-10T14:00:00Z",
                customerPublicId=str(uuid.uuid4()),
                lead={"email": "lead@example.com", "address": "5 Pine Road"},
            )

    def test_admin_blank_address_means_saved_address(self):
        data = AdminBookingCreate(
            servicePublicId=SERVICE_ID, startsAt="2025-03-10T14:00:00Z", address="   "
        )
        assert data.address is None

    @pytest.mark.parametrize(
        "body",
        [{}, {"workerUserId": 3, "workerPublicId": str(uuid.uuid4())}],
    )
    def test_assign_requires_exactly_one_target(self, body):
        with pytest.raises(PydanticValidationError):
            AssignRequest(**body)
