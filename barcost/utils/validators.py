"""
Input validation functions for the barcost costing engine.

This module provides validation functions for the records handed to the
engine by its callers:
- Numeric validation (positive, non-negative, percentage)
- String validation (required fields)
- Choice validation (ingredient types, batch statuses)

Each validator returns a (is_valid, error_message) tuple; model constructors
collect the messages and raise a single ValidationError.
"""

import math
from typing import Any, Iterable, Optional, Tuple

from .constants import (
    ERROR_INVALID_CHOICE,
    ERROR_INVALID_NON_NEGATIVE,
    ERROR_INVALID_NUMBER,
    ERROR_INVALID_POSITIVE,
    ERROR_REQUIRED_FIELD,
)


def parse_number(value: Any) -> Optional[float]:
    """
    Parse a loosely-typed numeric field.

    Args:
        value: Number, numeric string, or None

    Returns:
        Finite float, or None if the value is missing or not a finite number
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def validate_required_string(value: Optional[str], field_name: str = "Field") -> Tuple[bool, str]:
    """
    Validate that a string field is not empty.

    Args:
        value: The string value to validate
        field_name: Name of the field for error messages

    Returns:
        Tuple of (is_valid, error_message)
    """
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return False, f"{field_name}: {ERROR_REQUIRED_FIELD}"
    return True, ""


def validate_positive_number(value: Any, field_name: str = "Field") -> Tuple[bool, str]:
    """
    Validate that a value is a positive number (> 0).

    Args:
        value: The value to validate
        field_name: Name of the field for error messages

    Returns:
        Tuple of (is_valid, error_message)
    """
    number = parse_number(value)
    if number is None:
        return False, f"{field_name}: {ERROR_INVALID_NUMBER}"
    if number <= 0:
        return False, f"{field_name}: {ERROR_INVALID_POSITIVE}"
    return True, ""


def validate_non_negative_number(value: Any, field_name: str = "Field") -> Tuple[bool, str]:
    """
    Validate that a value is a non-negative number (>= 0).

    Args:
        value: The value to validate
        field_name: Name of the field for error messages

    Returns:
        Tuple of (is_valid, error_message)
    """
    number = parse_number(value)
    if number is None:
        return False, f"{field_name}: {ERROR_INVALID_NUMBER}"
    if number < 0:
        return False, f"{field_name}: {ERROR_INVALID_NON_NEGATIVE}"
    return True, ""


def validate_percentage(value: Any, field_name: str = "Field") -> Tuple[bool, str]:
    """
    Validate that a value lies in the 0-100 range.

    Args:
        value: The value to validate
        field_name: Name of the field for error messages

    Returns:
        Tuple of (is_valid, error_message)
    """
    number = parse_number(value)
    if number is None:
        return False, f"{field_name}: {ERROR_INVALID_NUMBER}"
    if number < 0 or number > 100:
        return False, f"{field_name}: Must be between 0 and 100"
    return True, ""


def validate_choice(value: Any, choices: Iterable[str], field_name: str = "Field") -> Tuple[bool, str]:
    """
    Validate that a value is one of the allowed choices.

    Args:
        value: The value to validate
        choices: Allowed values
        field_name: Name of the field for error messages

    Returns:
        Tuple of (is_valid, error_message)
    """
    allowed = list(choices)
    if value not in allowed:
        return False, f"{field_name}: {ERROR_INVALID_CHOICE} '{value}' (expected one of {', '.join(allowed)})"
    return True, ""
