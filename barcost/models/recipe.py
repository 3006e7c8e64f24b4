"""
Recipe and batch-settings models.

A Recipe is an ordered list of ingredient lines plus optional yield,
serving size and batch settings. Several fields have legacy spellings
(yield_total_amount vs yield_amount, serving_size vs serving_size_amount);
the precedence rules live in the resolved_* properties so callers never
repeat them.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from barcost.services.exceptions import ValidationError
from barcost.utils.constants import (
    BATCH_STATUSES,
    DEFAULT_CLARIFICATION_AGENT,
    DEFAULT_CONTAINER_TYPE,
    DEFAULT_DILUTION_PERCENTAGE,
    MAX_INVENTORY_BOTTLE_COLORS,
    MILK_WASH_AGENT,
    MILK_WASH_TECHNIQUE,
)
from barcost.utils.validators import (
    parse_number,
    validate_choice,
    validate_non_negative_number,
    validate_positive_number,
)


def normalize_name_key(name: Any) -> str:
    """Trim, collapse whitespace and case-fold a name used as a map key."""
    if name is None:
        return ""
    return " ".join(str(name).split()).casefold()


def lookup_by_name(mapping: Optional[Dict[str, Any]], name: str) -> Any:
    """Value for name in a name-keyed map, matching keys after normalization."""
    if not mapping:
        return None
    if name in mapping:
        return mapping[name]
    key = normalize_name_key(name)
    for candidate, value in mapping.items():
        if normalize_name_key(candidate) == key:
            return value
    return None


@dataclass
class RecipeIngredientLine:
    """One ingredient line of a recipe."""

    ingredient_name: str = ""
    amount: float = 0.0
    unit: Optional[str] = None
    ingredient_id: Optional[str] = None
    prep_action_id: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RecipeIngredientLine":
        """
        Build a line from a persisted record.

        Unparseable amounts become 0; negative amounts are rejected.

        Raises:
            ValidationError: If amount is negative
        """
        raw_amount = data.get("amount")
        amount = parse_number(raw_amount)
        if amount is not None and amount < 0:
            raise ValidationError([f"amount: Must be zero or a positive number (got {raw_amount})"])
        return cls(
            ingredient_name=str(data.get("ingredient_name") or data.get("name") or ""),
            amount=amount or 0.0,
            unit=data.get("unit") or None,
            ingredient_id=data.get("ingredient_id") or None,
            prep_action_id=data.get("prep_action_id") or None,
            notes=data.get("notes"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ingredient_name": self.ingredient_name,
            "amount": self.amount,
            "unit": self.unit,
            "ingredient_id": self.ingredient_id,
            "prep_action_id": self.prep_action_id,
            "notes": self.notes,
        }


@dataclass
class ClarificationSettings:
    """Clarification step applied to a batch."""

    enabled: bool = False
    technique: Optional[str] = None
    agent_ingredient_name: Optional[str] = None
    agent_ratio_percentage: float = 0.0

    @property
    def agent_name(self) -> str:
        """Configured agent, else the technique's default agent."""
        if self.agent_ingredient_name:
            return self.agent_ingredient_name
        if self.technique == MILK_WASH_TECHNIQUE:
            return MILK_WASH_AGENT
        return DEFAULT_CLARIFICATION_AGENT

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClarificationSettings":
        return cls(
            enabled=bool(data.get("enabled")),
            technique=data.get("technique"),
            agent_ingredient_name=data.get("agent_ingredient_name"),
            agent_ratio_percentage=parse_number(data.get("agent_ratio_percentage")) or 0.0,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "technique": self.technique,
            "agent_ingredient_name": self.agent_ingredient_name,
            "agent_ratio_percentage": self.agent_ratio_percentage,
        }


@dataclass
class InventoryBottle:
    """Labelled bottle that a finished batch is tracked in."""

    enabled: bool = False
    size_ml: Optional[float] = None
    label: Optional[str] = None
    colors: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InventoryBottle":
        colors = list(data.get("colors") or [])
        if len(colors) > MAX_INVENTORY_BOTTLE_COLORS:
            raise ValidationError(
                [f"inventory_bottle.colors: At most {MAX_INVENTORY_BOTTLE_COLORS} tape colors allowed"]
            )
        return cls(
            enabled=bool(data.get("enabled")),
            size_ml=parse_number(data.get("size_ml")),
            label=data.get("label"),
            colors=colors,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "size_ml": self.size_ml,
            "label": self.label,
            "colors": list(self.colors),
        }


@dataclass
class BatchSettings:
    """How a recipe is batched into containers.

    ingredient_overrides, batch_ingredient_units and batch_ingredient_amounts
    are keyed by ingredient line name. Keys are stored as given; the *_for
    accessors match them after trimming and case-folding.
    """

    ingredient_overrides: Dict[str, str] = field(default_factory=dict)
    scale_factor: float = 1.0
    is_container_custom: bool = False
    container_type: str = DEFAULT_CONTAINER_TYPE
    container_count: int = 1
    include_dilution: bool = False
    dilution_percentage: float = DEFAULT_DILUTION_PERCENTAGE
    constrain_to_total_volume: bool = True
    batch_ingredient_units: Dict[str, str] = field(default_factory=dict)
    batch_ingredient_amounts: Dict[str, float] = field(default_factory=dict)
    batch_instructions: str = ""
    clarification: Optional[ClarificationSettings] = None
    inventory_bottle: Optional[InventoryBottle] = None

    @property
    def has_overrides(self) -> bool:
        return bool(self.ingredient_overrides)

    def status_for(self, name: str) -> Optional[str]:
        """Batch/service assignment for a line name, or None if unassigned."""
        return lookup_by_name(self.ingredient_overrides, name)

    def unit_for(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Display unit chosen for a line name."""
        return lookup_by_name(self.batch_ingredient_units, name) or default

    def pinned_amount_for(self, name: str) -> Optional[float]:
        """Manually pinned display amount for a line name."""
        return parse_number(lookup_by_name(self.batch_ingredient_amounts, name))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BatchSettings":
        """
        Build batch settings from the persisted batch_settings record.

        Raises:
            ValidationError: If an override is neither 'batch' nor 'service',
                or scale/count/dilution values are invalid
        """
        errors = []
        overrides = dict(data.get("ingredient_overrides") or {})
        for name, status in overrides.items():
            ok, msg = validate_choice(status, BATCH_STATUSES, f"ingredient_overrides[{name}]")
            if not ok:
                errors.append(msg)

        scale_factor = data.get("scale_factor")
        if scale_factor not in (None, ""):
            ok, msg = validate_positive_number(scale_factor, "scale_factor")
            if not ok:
                errors.append(msg)

        container_count = data.get("container_count")
        if container_count not in (None, ""):
            ok, msg = validate_positive_number(container_count, "container_count")
            if not ok:
                errors.append(msg)

        dilution = data.get("dilution_percentage")
        if dilution not in (None, ""):
            ok, msg = validate_non_negative_number(dilution, "dilution_percentage")
            if not ok:
                errors.append(msg)

        if errors:
            raise ValidationError(errors)

        clarification = data.get("clarification")
        inventory_bottle = data.get("inventory_bottle")
        dilution_value = parse_number(dilution)
        return cls(
            ingredient_overrides=overrides,
            scale_factor=parse_number(scale_factor) or 1.0,
            is_container_custom=bool(data.get("is_container_custom")),
            container_type=data.get("container_type") or DEFAULT_CONTAINER_TYPE,
            container_count=int(parse_number(container_count) or 1),
            include_dilution=bool(data.get("include_dilution")),
            dilution_percentage=(
                DEFAULT_DILUTION_PERCENTAGE if dilution_value is None else dilution_value
            ),
            constrain_to_total_volume=data.get("constrain_to_total_volume", True) is not False,
            batch_ingredient_units=dict(data.get("batch_ingredient_units") or {}),
            batch_ingredient_amounts=dict(data.get("batch_ingredient_amounts") or {}),
            batch_instructions=data.get("batch_instructions") or "",
            clarification=(
                ClarificationSettings.from_dict(clarification) if clarification else None
            ),
            inventory_bottle=(
                InventoryBottle.from_dict(inventory_bottle) if inventory_bottle else None
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Persisted batch_settings shape; from_dict(to_dict()) is lossless."""
        return {
            "ingredient_overrides": dict(self.ingredient_overrides),
            "scale_factor": self.scale_factor,
            "is_container_custom": self.is_container_custom,
            "container_type": self.container_type,
            "container_count": self.container_count,
            "include_dilution": self.include_dilution,
            "dilution_percentage": self.dilution_percentage,
            "constrain_to_total_volume": self.constrain_to_total_volume,
            "batch_ingredient_units": dict(self.batch_ingredient_units),
            "batch_ingredient_amounts": dict(self.batch_ingredient_amounts),
            "batch_instructions": self.batch_instructions,
            "clarification": self.clarification.to_dict() if self.clarification else None,
            "inventory_bottle": self.inventory_bottle.to_dict() if self.inventory_bottle else None,
        }


@dataclass
class Recipe:
    """A cocktail, sub-recipe or other sellable item."""

    id: Optional[str]
    name: str
    ingredients: List[RecipeIngredientLine] = field(default_factory=list)
    yield_amount: Optional[float] = None
    yield_unit: Optional[str] = None
    yield_total_amount: Optional[float] = None
    yield_total_unit: Optional[str] = None
    serving_size_amount: Optional[float] = None
    serving_size_unit: Optional[str] = None
    is_cocktail: bool = False
    is_sellable_item: bool = False
    category: Optional[str] = None
    menu_price: Optional[float] = None
    batch_settings: Optional[BatchSettings] = None

    @property
    def key(self) -> str:
        """Identity used for cycle detection: id, else normalized name."""
        return str(self.id) if self.id else normalize_name_key(self.name)

    @property
    def resolved_yield_amount(self) -> Optional[float]:
        amount = self.yield_total_amount or self.yield_amount
        if amount is None or amount <= 0:
            return None
        return amount

    @property
    def resolved_yield_unit(self) -> str:
        return self.yield_total_unit or self.yield_unit or "ml"

    @property
    def has_declared_yield(self) -> bool:
        """True when both a positive yield amount and an explicit unit are set."""
        return self.resolved_yield_amount is not None and bool(
            self.yield_total_unit or self.yield_unit
        )

    @property
    def resolved_serving_amount(self) -> Optional[float]:
        if self.serving_size_amount is None or self.serving_size_amount <= 0:
            return None
        return self.serving_size_amount

    @property
    def resolved_serving_unit(self) -> str:
        return self.serving_size_unit or "oz"

    @property
    def is_sellable(self) -> bool:
        return self.is_sellable_item or self.is_cocktail

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Recipe":
        """
        Build a Recipe from a persisted record.

        Accepts the legacy serving_size/serving_unit spellings.

        Raises:
            ValidationError: If a line or the batch settings are invalid
        """
        batch_settings = data.get("batch_settings")
        serving_amount = data.get("serving_size_amount")
        if serving_amount in (None, ""):
            serving_amount = data.get("serving_size")
        return cls(
            id=data.get("id"),
            name=str(data.get("name") or ""),
            ingredients=[
                line if isinstance(line, RecipeIngredientLine) else RecipeIngredientLine.from_dict(line)
                for line in (data.get("ingredients") or [])
            ],
            yield_amount=parse_number(data.get("yield_amount")),
            yield_unit=data.get("yield_unit") or None,
            yield_total_amount=parse_number(data.get("yield_total_amount")),
            yield_total_unit=data.get("yield_total_unit") or None,
            serving_size_amount=parse_number(serving_amount),
            serving_size_unit=data.get("serving_size_unit") or data.get("serving_unit") or None,
            is_cocktail=bool(data.get("is_cocktail")),
            is_sellable_item=bool(data.get("is_sellable_item")),
            category=data.get("category"),
            menu_price=parse_number(data.get("menu_price")),
            batch_settings=(
                batch_settings
                if isinstance(batch_settings, BatchSettings)
                else BatchSettings.from_dict(batch_settings) if batch_settings else None
            ),
        )
