"""Shared validation utilities"""

import re
import uuid
from typing import Optional


def validate_uuid(value: str) -> bool:
    """Validate UUID format"""
    try:
        uuid.UUID(value)
        return True
    except (ValueError, AttributeError):
        return False


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize a phone number to E.164 format.

    Accepts international numbers with or without a leading "+" and any
    separators. Local numbers with a leading trunk "0" are kept as typed
    digits, since the country is not known here.

    Raises:
        ValueError: If the number has fewer than 10 or more than 15 digits
    """
    if not phone:
        return phone

    digits = re.sub(r"\D", "", phone)
    if digits.startswith("00"):
        digits = digits[2:]

    if len(digits) < 10 or len(digits) > 15:
        raise ValueError("Phone number must have between 10 and 15 digits")

    if digits.startswith("0"):
        return digits
    return f"+{digits}"


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def validate_national_id(value: Optional[str]) -> Optional[str]:
    """Normalize a national identity number (e.g. CNIC 12345-1234567-1) to digits only"""
    if not value:
        return value

    digits = re.sub(r"\D", "", value)
    if len(digits) < 6 or len(digits) > 20:
        raise ValueError("National ID number must have between 6 and 20 digits")
    return digits
