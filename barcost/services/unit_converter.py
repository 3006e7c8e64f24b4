"""
Unit conversion system for the barcost costing engine.

This module provides:
- Standard unit conversions (volume, weight)
- Ingredient-specific conversions (custom conversions, density)
- Container label parsing
- Rounding and display helpers

Conversion Strategy:
- Volume units convert through milliliters (base unit)
- Weight units convert through grams (base unit)
- "oz" is both a fluid and a weight ounce; when both units share the
  volume table the fluid ounce is used, otherwise the weight ounce
- Weight <-> volume goes through the ingredient's density (g/ml), 1:1 if unknown
- Piece units never convert without an ingredient custom conversion
"""

import math
import re
from typing import Iterable, Optional, Tuple

from barcost.utils.constants import (
    LIQUID_UNITS,
    PIECE_UNITS,
    SMALL_UNITS,
    UNIT_ALIASES,
)
from barcost.utils.validators import parse_number


# ============================================================================
# Standard Conversion Tables
# ============================================================================

# Volume conversions to milliliters (base unit)
VOLUME_TO_ML = {
    "ml": 1.0,
    "cl": 10.0,
    "l": 1000.0,
    "oz": 29.5735,
    "fl oz": 29.5735,
    "tsp": 4.92892,
    "tbsp": 14.7868,
    "cup": 236.588,
    "pt": 473.176,
    "qt": 946.353,
    "gal": 3785.41,
    "dash": 0.616115,
    "barspoon": 5.0,
    "top": 0.0,
}

# Weight conversions to grams (base unit)
WEIGHT_TO_GRAMS = {
    "g": 1.0,
    "kg": 1000.0,
    "oz": 28.3495,
    "lb": 453.592,
}

# Container label units to milliliters
_CONTAINER_UNITS_TO_ML = {
    "ml": 1.0,
    "l": 1000.0,
    "oz": 29.5735,
    "qt": 946.353,
    "gal": 3785.41,
    "gallon": 3785.41,
}

_CONTAINER_PATTERN = re.compile(r"(\d*\.?\d+)\s*(ml|l|oz|gallon|gal|qt)\b", re.IGNORECASE)


# ============================================================================
# Unit Type Detection
# ============================================================================


def normalize_unit(unit: Optional[str]) -> str:
    """
    Normalize a unit string to its canonical spelling.

    Args:
        unit: Unit string (e.g., "Ounces", " ML ", "fl. oz")

    Returns:
        Canonical unit (e.g., "oz", "ml", "fl oz"), or "" for empty input
    """
    if not unit:
        return ""
    unit_lower = " ".join(str(unit).lower().split())
    return UNIT_ALIASES.get(unit_lower, unit_lower)


def get_conversion_table(unit: str) -> Optional[dict]:
    """
    Get the conversion table for a single unit.

    Volume wins for "oz"; use _shared_table when the other unit is known.

    Args:
        unit: Unit string (e.g., "oz", "cup", "kg")

    Returns:
        Conversion table dict, or None if unit is not table-convertible
    """
    unit_norm = normalize_unit(unit)

    if unit_norm in VOLUME_TO_ML:
        return VOLUME_TO_ML
    elif unit_norm in WEIGHT_TO_GRAMS:
        return WEIGHT_TO_GRAMS

    return None


def _shared_table(from_unit: str, to_unit: str) -> Optional[dict]:
    if from_unit in VOLUME_TO_ML and to_unit in VOLUME_TO_ML:
        return VOLUME_TO_ML
    if from_unit in WEIGHT_TO_GRAMS and to_unit in WEIGHT_TO_GRAMS:
        return WEIGHT_TO_GRAMS
    return None


def get_unit_type(unit: str) -> str:
    """
    Determine the type of a unit.

    Args:
        unit: Unit string

    Returns:
        Unit type: "volume", "weight", "piece", or "unknown"
    """
    unit_norm = normalize_unit(unit)

    if unit_norm in VOLUME_TO_ML:
        return "volume"
    elif unit_norm in WEIGHT_TO_GRAMS:
        return "weight"
    elif unit_norm in PIECE_UNITS:
        return "piece"

    return "unknown"


def units_compatible(unit1: str, unit2: str) -> bool:
    """
    Check if two units can be converted through the standard tables.

    Args:
        unit1: First unit
        unit2: Second unit

    Returns:
        True if both units share a conversion table
    """
    return _shared_table(normalize_unit(unit1), normalize_unit(unit2)) is not None


def is_liquid_unit(unit: Optional[str]) -> bool:
    """Check whether a unit measures liquid volume."""
    unit_norm = normalize_unit(unit)
    return bool(unit_norm) and unit_norm in LIQUID_UNITS


def is_small_unit(unit: Optional[str]) -> bool:
    """Check whether a unit is too small to measure on a quarter-unit grid."""
    return normalize_unit(unit) in SMALL_UNITS


# ============================================================================
# Standard Unit Conversions
# ============================================================================


def convert_standard_units(value: float, from_unit: str, to_unit: str) -> Tuple[bool, float, str]:
    """
    Convert between standard units of the same type.

    Args:
        value: Quantity to convert
        from_unit: Source unit (e.g., "lb")
        to_unit: Target unit (e.g., "oz")

    Returns:
        Tuple of (success, converted_value, error_message)
        - success: True if conversion successful
        - converted_value: Result (0.0 if failed)
        - error_message: Error description (empty string if successful)
    """
    # Validate inputs
    if value < 0:
        return False, 0.0, "Value cannot be negative"

    from_unit_norm = normalize_unit(from_unit)
    to_unit_norm = normalize_unit(to_unit)

    # Check if units are the same
    if from_unit_norm == to_unit_norm:
        return True, value, ""

    if get_conversion_table(from_unit_norm) is None:
        return False, 0.0, f"Unknown unit: {from_unit}"

    conversion_table = _shared_table(from_unit_norm, to_unit_norm)
    if conversion_table is None:
        return (
            False,
            0.0,
            f"Cannot convert {from_unit} to {to_unit}: incompatible unit types",
        )

    target_factor = conversion_table[to_unit_norm]
    if target_factor == 0:
        return False, 0.0, f"Cannot convert into {to_unit}: unit has no measurable size"

    # Convert: value -> base unit -> target unit
    base_value = value * conversion_table[from_unit_norm]
    converted_value = base_value / target_factor

    return True, converted_value, ""


def format_conversion(value: float, from_unit: str, to_unit: str, precision: int = 2) -> str:
    """
    Format a unit conversion for display.

    Args:
        value: Source quantity
        from_unit: Source unit
        to_unit: Target unit
        precision: Decimal places for result

    Returns:
        Formatted string (e.g., "1 l = 33.81 oz")
        Returns error message if conversion fails
    """
    success, converted, error = convert_standard_units(value, from_unit, to_unit)

    if not success:
        return f"Error: {error}"

    return f"{value:g} {from_unit} = {converted:.{precision}f} {to_unit}"


# ============================================================================
# Volume-to-Weight Conversions
# ============================================================================


def convert_volume_to_weight(
    volume_value: float,
    volume_unit: str,
    weight_unit: str,
    density_g_per_ml: Optional[float] = None,
) -> Tuple[bool, float, str]:
    """
    Convert a volume measurement to weight using a density.

    Args:
        volume_value: Quantity in volume units
        volume_unit: Volume unit (e.g., "oz", "ml", "cup")
        weight_unit: Target weight unit (e.g., "g", "lb")
        density_g_per_ml: Density in g/ml; 1.0 (water) when missing

    Returns:
        Tuple of (success, weight_value, error_message)
    """
    density = density_g_per_ml if density_g_per_ml and density_g_per_ml > 0 else 1.0

    success, ml, error = convert_standard_units(volume_value, volume_unit, "ml")
    if not success:
        return False, 0.0, f"Failed to convert {volume_unit} to ml: {error}"

    grams = ml * density

    success, weight_value, error = convert_standard_units(grams, "g", weight_unit)
    if not success:
        return False, 0.0, f"Failed to convert grams to {weight_unit}: {error}"

    return True, weight_value, ""


def convert_weight_to_volume(
    weight_value: float,
    weight_unit: str,
    volume_unit: str,
    density_g_per_ml: Optional[float] = None,
) -> Tuple[bool, float, str]:
    """
    Convert a weight measurement to volume using a density.

    Args:
        weight_value: Quantity in weight units
        weight_unit: Weight unit (e.g., "g", "kg", "lb")
        volume_unit: Target volume unit (e.g., "ml", "oz")
        density_g_per_ml: Density in g/ml; 1.0 (water) when missing

    Returns:
        Tuple of (success, volume_value, error_message)
    """
    density = density_g_per_ml if density_g_per_ml and density_g_per_ml > 0 else 1.0

    # Weight "oz" must go through the gram table here
    if normalize_unit(weight_unit) not in WEIGHT_TO_GRAMS:
        return False, 0.0, f"Unknown weight unit: {weight_unit}"
    grams = weight_value * WEIGHT_TO_GRAMS[normalize_unit(weight_unit)]

    ml = grams / density

    success, volume_value, error = convert_standard_units(ml, "ml", volume_unit)
    if not success:
        return False, 0.0, f"Failed to convert ml to {volume_unit}: {error}"

    return True, volume_value, ""


# ============================================================================
# Ingredient-Aware Conversions
# ============================================================================


def _custom_conversion_factor(ingredient, from_unit: str, to_unit: str) -> Optional[float]:
    """Multiplier from from_unit to to_unit from the ingredient's custom conversions."""
    conversions = getattr(ingredient, "custom_conversions", None) or []

    for conversion in conversions:
        if (
            normalize_unit(conversion.from_unit) == from_unit
            and normalize_unit(conversion.to_unit) == to_unit
            and conversion.factor
        ):
            return conversion.factor

    for conversion in conversions:
        if (
            normalize_unit(conversion.from_unit) == to_unit
            and normalize_unit(conversion.to_unit) == from_unit
            and conversion.factor
        ):
            return 1.0 / conversion.factor

    return None


def convert_amount(amount, from_unit: str, to_unit: str, ingredient=None) -> Optional[float]:
    """
    Convert an amount between any two units, honoring ingredient overrides.

    Resolution order:
    1. Same unit: amount unchanged
    2. Ingredient custom conversion for the exact pair (or its reverse)
    3. Shared standard table (volume preferred for "oz")
    4. Weight <-> volume through the ingredient density (1:1 if unknown)

    Args:
        amount: Quantity to convert (number or numeric string)
        from_unit: Source unit
        to_unit: Target unit
        ingredient: Optional Ingredient providing custom conversions and density

    Returns:
        Converted amount, or None when the amount is invalid (negative,
        non-finite, non-numeric), a unit is unknown, a piece boundary is
        crossed, or the target unit has no measurable size
    """
    value = parse_number(amount)
    if value is None or value < 0:
        return None

    from_norm = normalize_unit(from_unit)
    to_norm = normalize_unit(to_unit)
    if not from_norm or not to_norm:
        return None

    if from_norm == to_norm:
        return value

    factor = _custom_conversion_factor(ingredient, from_norm, to_norm)
    if factor is not None:
        return value * factor

    if _shared_table(from_norm, to_norm) is not None:
        success, converted, _ = convert_standard_units(value, from_norm, to_norm)
        return converted if success else None

    from_type = get_unit_type(from_norm)
    to_type = get_unit_type(to_norm)
    density = getattr(ingredient, "density_g_per_ml", None)

    # "oz" classifies as volume; when paired with a weight-only unit the
    # shared table above already handled it.
    if from_type == "volume" and to_norm in WEIGHT_TO_GRAMS:
        success, converted, _ = convert_volume_to_weight(value, from_norm, to_norm, density)
        return converted if success else None

    if from_norm in WEIGHT_TO_GRAMS and to_type == "volume":
        success, converted, _ = convert_weight_to_volume(value, from_norm, to_norm, density)
        return converted if success else None

    return None


def convert_to_ml(amount, unit: str, ingredient=None) -> Optional[float]:
    """
    Convert an amount to milliliters.

    Args:
        amount: Quantity to convert
        unit: Source unit
        ingredient: Optional Ingredient providing custom conversions and density

    Returns:
        Volume in ml, or None if the amount cannot be expressed as a volume
    """
    return convert_amount(amount, unit, "ml", ingredient)


def parse_container_size(label: Optional[str]) -> float:
    """
    Extract a container's volume in ml from its display label.

    Args:
        label: Container label (e.g., "750ml Bottle", "1.75L Handle",
            "5 Gallon Bucket", "32 oz")

    Returns:
        Volume in ml, or 0.0 if the label carries no recognizable size

    Examples:
        >>> parse_container_size("750ml Bottle")
        750.0
        >>> parse_container_size("Custom")
        0.0
    """
    if not label:
        return 0.0

    match = _CONTAINER_PATTERN.search(str(label))
    if not match:
        return 0.0

    amount = float(match.group(1))
    unit = match.group(2).lower()

    return amount * _CONTAINER_UNITS_TO_ML[unit]


# ============================================================================
# Rounding and Display Utilities
# ============================================================================


def round_to_increment(value: float, increments: Iterable[float]) -> float:
    """
    Round a value to the nearest multiple of whichever increment fits best.

    Ties keep the earlier increment, so [1, 0.5] prefers whole numbers.

    Args:
        value: Value to round
        increments: Candidate increments, in order of preference

    Returns:
        Rounded value (value unchanged if no positive increment is given)

    Examples:
        >>> round_to_increment(2.3, [1, 0.5])
        2.5
        >>> round_to_increment(2.1, [1, 0.5])
        2.0
    """
    best_rounded = value
    min_deviation = math.inf

    for increment in increments:
        if increment <= 0:
            continue
        rounded = math.floor(value / increment + 0.5) * increment
        deviation = abs(value - rounded)
        if deviation < min_deviation:
            min_deviation = deviation
            best_rounded = rounded

    return best_rounded


def round_down_to_increment(value: float, increment: float) -> float:
    """
    Round a value down to a multiple of increment.

    Values smaller than one increment are returned unchanged so a small
    amount is never rounded away to zero.

    Examples:
        >>> round_down_to_increment(25.36, 0.5)
        25.0
        >>> round_down_to_increment(0.3, 0.5)
        0.3
    """
    if increment <= 0 or value < increment:
        return value
    # Tolerance keeps 19.999999 from flooring to 19.5
    return math.floor(value / increment + 1e-9) * increment


def format_cost(amount: float, currency_symbol: str = "$", precision: int = 2) -> str:
    """
    Format a cost value for display.

    Args:
        amount: Cost amount
        currency_symbol: Currency symbol to use
        precision: Decimal places

    Returns:
        Formatted currency string (e.g., "$2.10")
    """
    return f"{currency_symbol}{amount:.{precision}f}"
