"""Shared validation utilities"""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

# "10:00 AM", "9:30 pm" or 24h "14:30"
TIME_SLOT_12H = re.compile(r"^(0?[1-9]|1[0-2]):[0-5]\d\s?([AaPp][Mm])$")
TIME_SLOT_24H = re.compile(r"^([01]?\d|2[0-3]):[0-5]\d$")


def validate_booking_date(value: Union[str, date]) -> date:
    """
    Parse a booking date in YYYY-MM-DD format.

    Raises:
        ValueError: If the date is malformed
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValueError(f"Invalid date: {value}. Expected YYYY-MM-DD") from None


def validate_time_slot(value: str) -> str:
    """
    Validate a time-slot string and normalize its spacing/case.

    Returns:
        "10:00 AM" style for 12h input, "14:30" style for 24h input

    Raises:
        ValueError: If the time slot is malformed
    """
    if not value or not isinstance(value, str):
        raise ValueError("Booking time is required")

    slot = value.strip()
    match = TIME_SLOT_12H.match(slot)
    if match:
        clock = slot[: match.end(1) + 3]
        return f"{clock} {match.group(2).upper()}"
    if TIME_SLOT_24H.match(slot):
        return slot
    raise ValueError(f"Invalid time: {value}. Expected e.g. '10:00 AM' or '14:30'")


def validate_price(value) -> Decimal:
    """
    Parse a non-negative money amount.

    Raises:
        ValueError: If the amount is not a number or is negative
    """
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValueError(f"Invalid price: {value!r}") from None
    if not amount.is_finite():
        raise ValueError(f"Invalid price: {value!r}")
    if amount < 0:
        raise ValueError("Price must be non-negative")
    return amount


def validate_rating(value) -> int:
    """Ratings are whole stars from 1 to 5"""
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 5:
        raise ValueError("Rating must be an integer between 1 and 5")
    return value


def validate_coordinates(latitude: Optional[float], longitude: Optional[float]) -> bool:
    """
    Check that a point is usable for distance queries.

    [0, 0] is treated as unset, the way map pickers report a missing location.
    """
    if latitude is None or longitude is None:
        return False
    if not -90 <= latitude <= 90 or not -180 <= longitude <= 180:
        return False
    return not (latitude == 0 and longitude == 0)


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """
    Normalize a phone number to E.164-ish digits with a leading +.

    Raises:
        ValueError: If the number has fewer than 7 or more than 15 digits
    """
    if not phone:
        return phone

    digits = re.sub(r"\D", "", phone)
    if not 7 <= len(digits) <= 15:
        raise ValueError("Phone number must have between 7 and 15 digits")
    return f"+{digits}"
