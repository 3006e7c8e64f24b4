"""DTO utilities for service layer.

Provides standardized formatting functions for result objects, ensuring
consistent JSON serialization of costs and display amounts.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union


def cost_to_string(value: Union[Decimal, float, int, str, None]) -> str:
    """
    Convert a cost value to a 2-decimal string format.

    Args:
        value: Cost value (Decimal, float, int, str, or None)

    Returns:
        String formatted as "12.34" (2 decimal places).
        Returns "0.00" if value is None.

    Examples:
        >>> cost_to_string(Decimal("12.345"))
        '12.35'
        >>> cost_to_string(2.1)
        '2.10'
        >>> cost_to_string(None)
        '0.00'
    """
    if value is None:
        return "0.00"

    decimal_value = Decimal(str(value))
    rounded = decimal_value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    return str(rounded)


def format_amount(value: Union[float, int, str, None]) -> str:
    """
    Format an ingredient amount for display, dropping trailing zeros.

    Args:
        value: Amount to format

    Returns:
        At most two decimals, e.g. "20", "0.75", "1.5". Non-numeric input
        formats as "0".

    Examples:
        >>> format_amount(20.000000000004)
        '20'
        >>> format_amount(0.755)
        '0.76'
    """
    if value is None:
        return "0"
    try:
        decimal_value = Decimal(str(value))
    except ArithmeticError:
        return "0"
    if not decimal_value.is_finite():
        return "0"
    rounded = decimal_value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    text = format(rounded, "f").rstrip("0").rstrip(".")
    return text if text not in ("", "-0") else "0"
