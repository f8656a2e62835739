"""Shared validation utilities for booking and lead input"""

import re
import uuid
from typing import Optional

ADDRESS_MIN_LENGTH = 5
NOTES_MAX_LENGTH = 2000
ACCOUNT_TYPES = {"residential", "business"}


def validate_public_id(value: str) -> str:
    """Validate a public UUID identifier and return it in canonical form"""
    try:
        return str(uuid.UUID(str(value)))
    except (ValueError, AttributeError) as e:
        raise ValueError("Invalid identifier") from e


def validate_us_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize US phone number to E.164 format.

    Returns:
        Normalized phone number in E.164 format (+1XXXXXXXXXX)

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    digits = re.sub(r"\D", "", phone)

    # Handle +1 prefix
    if digits.startswith("1") and len(digits) == 11:
        digits = digits[1:]

    if len(digits) != 10:
        raise ValueError("Phone number must be 10 digits for US numbers")

    return f"+1{digits}"


def validate_email(email: Optional[str]) -> Optional[str]:
    """Validate email format and return it lower-cased"""
    if not email:
        return email

    email = email.strip().lower()

    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def validate_address(address: Optional[str]) -> Optional[str]:
    """Trim a service address; anything shorter than a street line is rejected"""
    if address is None:
        return None

    address = address.strip()
    if len(address) < ADDRESS_MIN_LENGTH:
        raise ValueError(f"Address must be at least {ADDRESS_MIN_LENGTH} characters")
    return address


def validate_account_type(account_type: Optional[str]) -> Optional[str]:
    if not account_type:
        return None
    account_type = account_type.strip().lower()
    if account_type not in ACCOUNT_TYPES:
        raise ValueError("account_type must be 'residential' or 'business'")
    return account_type
