"""Shared validation utilities"""

import re
from datetime import date
from typing import Optional

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

WEEKDAY_NAMES = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


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


def validate_time_string(value: Optional[str]) -> Optional[str]:
    """Validate a 24-hour HH:MM time"""
    if value is None:
        return value
    value = value.strip()
    if not TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM format")
    return value


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """
    Normalize a phone number for storage.
    Keeps a leading + and digits; Malawian and international numbers have 7-15 digits.

    Raises:
        ValueError: If the number has too few or too many digits
    """
    if not phone:
        return phone

    phone = phone.strip()
    digits = re.sub(r"\D", "", phone)
    if len(digits) < 7 or len(digits) > 15:
        raise ValueError("Phone number must have between 7 and 15 digits")

    return f"+{digits}" if phone.startswith("+") else digits


def weekday_name(value: date) -> str:
    """Lowercase English weekday name, as stored in guide available_days"""
    return WEEKDAY_NAMES[value.weekday()]


def validate_weekday_names(days: Optional[list[str]]) -> Optional[list[str]]:
    if days is None:
        return days
    normalized = [d.strip().lower() for d in days]
    invalid = [d for d in normalized if d not in WEEKDAY_NAMES]
    if invalid:
        raise ValueError(f"Invalid weekday(s): {', '.join(invalid)}")
    return normalized
