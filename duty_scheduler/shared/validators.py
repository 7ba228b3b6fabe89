"""Shared validation utilities"""

import re
from datetime import date, datetime
from typing import Union

from ..config import MIN_PASSWORD_LENGTH, PHONE_DIGITS
from ..errors import ValidationError

PHONE_PATTERN = re.compile(rf"[0-9]{{{PHONE_DIGITS}}}")


def validate_phone(phone: str) -> str:
    """
    Validate a duty phone number.

    Args:
        phone: Phone number string, digits only

    Returns:
        The phone number unchanged

    Raises:
        ValidationError: If the value is not exactly 9 digits
    """
    if not phone or not PHONE_PATTERN.fullmatch(phone):
        raise ValidationError(f"Phone number must be exactly {PHONE_DIGITS} digits")
    return phone


def validate_employee_name(name: str) -> str:
    """Validate and strip an employee name"""
    if not name or not name.strip():
        raise ValidationError("Employee name is required")
    return name.strip()


def parse_date_key(value: Union[str, date]) -> date:
    """
    Parse a calendar key in ISO format (YYYY-MM-DD).

    Raises:
        ValidationError: If the value is not a valid ISO date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid date: {value!r} (expected YYYY-MM-DD)") from e


def validate_new_password(password: str, confirm_password: str) -> str:
    """Check a registration password against its confirmation and minimum length"""
    if password != confirm_password:
        raise ValidationError("Passwords do not match")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    return password
