"""
Ingredient catalog models.

Ingredients arrive from the persistence layer as JSON-shaped dicts and are
wrapped here into dataclasses with the optional fields resolved once:

- cost_per_unit is denominated in costing_unit (cost_unit, else unit, else oz)
- density is normalized to g/ml
- prep_actions may be stored as a JSON string; unparseable text means none
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from barcost.services.exceptions import ValidationError
from barcost.utils.constants import (
    DEFAULT_COST_UNIT,
    DENSITY_UNITS_TO_G_PER_ML,
    INGREDIENT_TYPE_PURCHASED,
    INGREDIENT_TYPE_SUB_RECIPE,
    INGREDIENT_TYPES,
)
from barcost.utils.validators import (
    parse_number,
    validate_choice,
    validate_non_negative_number,
    validate_percentage,
    validate_required_string,
)


@dataclass
class CustomConversion:
    """Ingredient-specific conversion between two units.

    Either conversion_factor (1 from_unit = factor to_unit) or the pair
    from_amount/to_amount (from_amount from_unit = to_amount to_unit) is set.
    """

    from_unit: str
    to_unit: str
    conversion_factor: Optional[float] = None
    from_amount: Optional[float] = None
    to_amount: Optional[float] = None

    @property
    def factor(self) -> Optional[float]:
        """Multiplier from from_unit to to_unit, or None when unusable."""
        if self.conversion_factor is not None and self.conversion_factor > 0:
            return self.conversion_factor
        if self.from_amount and self.to_amount and self.from_amount > 0 and self.to_amount > 0:
            return self.to_amount / self.from_amount
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CustomConversion":
        return cls(
            from_unit=str(data.get("from_unit") or ""),
            to_unit=str(data.get("to_unit") or ""),
            conversion_factor=parse_number(data.get("conversion_factor")),
            from_amount=parse_number(data.get("from_amount")),
            to_amount=parse_number(data.get("to_amount")),
        )


@dataclass
class PrepAction:
    """A named preparation of a raw ingredient with its own yield.

    yield_amount of yield_unit is produced from one costing unit of the raw
    ingredient (e.g. 1 lime, juiced, yields 1 oz).
    """

    id: str
    name: str = ""
    yield_amount: Optional[float] = None
    yield_unit: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PrepAction":
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            yield_amount=parse_number(data.get("yield_amount")),
            yield_unit=data.get("yield_unit") or None,
        )


def _parse_prep_actions(raw: Any) -> List[PrepAction]:
    if not raw:
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            return []
    if not isinstance(raw, list):
        return []
    return [
        item if isinstance(item, PrepAction) else PrepAction.from_dict(item)
        for item in raw
        if isinstance(item, (dict, PrepAction))
    ]


@dataclass
class Ingredient:
    """Catalog ingredient, either purchased or produced by a sub-recipe."""

    id: Optional[str]
    name: str
    aliases: List[str] = field(default_factory=list)
    ingredient_type: str = INGREDIENT_TYPE_PURCHASED
    unit: Optional[str] = None
    cost_unit: Optional[str] = None
    cost_per_unit: float = 0.0
    density_value: Optional[float] = None
    density_unit: Optional[str] = None
    custom_conversions: List[CustomConversion] = field(default_factory=list)
    prep_actions: List[PrepAction] = field(default_factory=list)
    abv: Optional[float] = None
    sub_recipe_id: Optional[str] = None
    category: Optional[str] = None

    @property
    def costing_unit(self) -> str:
        """Unit that cost_per_unit is denominated in."""
        return self.cost_unit or self.unit or DEFAULT_COST_UNIT

    @property
    def is_sub_recipe(self) -> bool:
        return self.ingredient_type == INGREDIENT_TYPE_SUB_RECIPE

    @property
    def is_purchased(self) -> bool:
        return self.ingredient_type == INGREDIENT_TYPE_PURCHASED

    @property
    def density_g_per_ml(self) -> Optional[float]:
        """Density in g/ml, or None when absent, non-positive or in an unknown unit."""
        if self.density_value is None or self.density_value <= 0:
            return None
        unit = (self.density_unit or "g/ml").strip().lower().replace(" ", "")
        factor = DENSITY_UNITS_TO_G_PER_ML.get(unit)
        if factor is None:
            return None
        return self.density_value * factor

    def find_prep_action(self, prep_action_id: str) -> Optional[PrepAction]:
        for prep_action in self.prep_actions:
            if prep_action.id == prep_action_id:
                return prep_action
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Ingredient":
        """
        Build an Ingredient from a persisted record.

        Args:
            data: Ingredient record (JSON-shaped)

        Returns:
            Ingredient instance

        Raises:
            ValidationError: If name is missing, type is unknown, or
                cost/ABV values are out of range
        """
        errors = []
        ok, msg = validate_required_string(data.get("name"), "name")
        if not ok:
            errors.append(msg)

        ingredient_type = data.get("ingredient_type") or INGREDIENT_TYPE_PURCHASED
        ok, msg = validate_choice(ingredient_type, INGREDIENT_TYPES, "ingredient_type")
        if not ok:
            errors.append(msg)

        cost_per_unit = data.get("cost_per_unit")
        if cost_per_unit not in (None, ""):
            ok, msg = validate_non_negative_number(cost_per_unit, "cost_per_unit")
            if not ok:
                errors.append(msg)

        abv = data.get("abv")
        if abv not in (None, ""):
            ok, msg = validate_percentage(abv, "abv")
            if not ok:
                errors.append(msg)

        if errors:
            raise ValidationError(errors)

        return cls(
            id=data.get("id"),
            name=str(data["name"]).strip(),
            aliases=[str(a) for a in (data.get("aliases") or []) if a],
            ingredient_type=ingredient_type,
            unit=data.get("unit") or None,
            cost_unit=data.get("cost_unit") or None,
            cost_per_unit=parse_number(cost_per_unit) or 0.0,
            density_value=parse_number(data.get("density_value")),
            density_unit=data.get("density_unit") or None,
            custom_conversions=[
                c if isinstance(c, CustomConversion) else CustomConversion.from_dict(c)
                for c in (data.get("custom_conversions") or [])
                if isinstance(c, (dict, CustomConversion))
            ],
            prep_actions=_parse_prep_actions(data.get("prep_actions")),
            abv=parse_number(abv),
            sub_recipe_id=data.get("sub_recipe_id"),
            category=data.get("category"),
        )


@dataclass
class ProductVariant:
    """Purchasable packaging of an ingredient, used as a pricing fallback."""

    ingredient_id: Optional[str] = None
    purchase_price: float = 0.0
    purchase_quantity: float = 0.0
    purchase_unit: str = "oz"
    case_price: Optional[float] = None
    bottles_per_case: Optional[float] = None
    size_ml: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProductVariant":
        return cls(
            ingredient_id=data.get("ingredient_id"),
            purchase_price=parse_number(data.get("purchase_price")) or 0.0,
            purchase_quantity=parse_number(data.get("purchase_quantity")) or 0.0,
            purchase_unit=data.get("purchase_unit") or data.get("unit") or "oz",
            case_price=parse_number(data.get("case_price")),
            bottles_per_case=parse_number(data.get("bottles_per_case")),
            size_ml=parse_number(data.get("size_ml")),
        )
