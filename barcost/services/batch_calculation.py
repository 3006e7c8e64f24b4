"""
Batch Calculation Service - batch metrics, batch plans and sub-recipe scaling.

A batch is N copies (the scale factor) of one serving's batch-designated
lines, optionally diluted with water and clarified with an agent. This
module provides:

- calculate_batch_metrics: volume, cost, ABV and per-container values of a
  recipe's saved batch settings
- calculate_batch_plan: the per-ingredient display amounts for a batch,
  either filling a container or honoring pinned manual amounts
- pin_batch_plan: batch settings with a plan's amounts saved, such that
  recomputing the plan from them reproduces the same amounts
- optimize_batch_settings: custom batch settings at the optimal scale factor
- scale_sub_recipe: a sub-recipe scaled to a target yield or servings
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

from barcost.models import (
    BatchSettings,
    Ingredient,
    Recipe,
    RecipeIngredientLine,
    normalize_name_key,
)
from barcost.services.batch_scaling import search_scale_factor
from barcost.services.dto_utils import cost_to_string
from barcost.services.exceptions import ValidationError
from barcost.services.ingredient_cost_service import VariantsLookup, calculate_ingredient_cost
from barcost.services.ingredient_resolver import resolve_line_ingredient
from barcost.services.logging_utils import get_service_logger, log_operation
from barcost.services.recipe_cost_service import calculate_recipe_cost
from barcost.services.unit_converter import (
    convert_amount,
    convert_to_ml,
    parse_container_size,
    round_down_to_increment,
    round_to_increment,
)
from barcost.utils.constants import (
    BATCH_DISPLAY_INCREMENTS,
    BATCH_STATUS_BATCH,
    BATCH_STATUS_SERVICE,
    BATCHING_RULES,
    CITRUS_INGREDIENTS,
    CUSTOM_CONTAINER_TYPE,
    DEFAULT_CONTAINER_TYPE,
    DILUTION_WATER_NAME,
    VOLUME_TOLERANCE_ML,
)

logger = get_service_logger(__name__)


# ============================================================================
# Result Types
# ============================================================================


@dataclass
class BatchMetrics:
    """Totals for a whole batch (all containers) plus per-container values."""

    total_volume_ml: float
    total_cost: float
    servings: float
    container_type: str
    container_count: int
    cost_per_container: float
    volume_per_container: float
    concentrate_volume_ml: float = 0.0
    dilution_water_ml: float = 0.0
    clarification_agent_ml: float = 0.0
    abv: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_volume_ml": self.total_volume_ml,
            "total_cost": cost_to_string(self.total_cost),
            "servings": self.servings,
            "container_type": self.container_type,
            "container_count": self.container_count,
            "cost_per_container": cost_to_string(self.cost_per_container),
            "volume_per_container": self.volume_per_container,
            "concentrate_volume_ml": self.concentrate_volume_ml,
            "dilution_water_ml": self.dilution_water_ml,
            "clarification_agent_ml": self.clarification_agent_ml,
            "abv": self.abv,
        }


@dataclass
class BatchAmount:
    """Display amount of one batch row."""

    amount: float
    unit: str


@dataclass
class BatchPlan:
    """Per-ingredient amounts for preparing a batch."""

    scale_factor: float
    servings: float
    concentrate_volume_ml: float
    dilution_water_ml: float
    total_volume_ml: float
    amounts: Dict[str, BatchAmount] = field(default_factory=dict)
    ingredient_overrides: Dict[str, str] = field(default_factory=dict)


@dataclass
class ScaledRecipe:
    """A sub-recipe scaled to a new yield."""

    scale_factor: float
    yield_amount: float
    yield_unit: str
    ingredients: List[RecipeIngredientLine] = field(default_factory=list)


# ============================================================================
# Batch / Service Assignment
# ============================================================================


def is_never_batched(name: Optional[str]) -> bool:
    """Citrus is always added at service, whatever its category."""
    key = normalize_name_key(name)
    if not key:
        return False
    return any(citrus in key or key in citrus for citrus in CITRUS_INGREDIENTS)


def default_ingredient_overrides(recipe: Recipe, catalog: Sequence[Ingredient]) -> Dict[str, str]:
    """
    Assign each line to batch or service from its ingredient category.

    Args:
        recipe: Recipe to assign
        catalog: Ingredient catalog

    Returns:
        Map of line name -> "batch" | "service"
    """
    overrides = {}
    for line in recipe.ingredients:
        ingredient = resolve_line_ingredient(line, catalog)
        category = ((ingredient.category if ingredient else None) or "other").strip().lower()
        status = BATCHING_RULES.get(category, BATCHING_RULES["other"])
        if is_never_batched(line.ingredient_name):
            status = BATCH_STATUS_SERVICE
        overrides[line.ingredient_name] = status
    return overrides


def select_batch_lines(recipe: Recipe, settings: BatchSettings) -> List[RecipeIngredientLine]:
    """Lines marked "batch", or every line when no assignment exists yet."""
    if not settings.has_overrides:
        return list(recipe.ingredients)
    return [
        line
        for line in recipe.ingredients
        if settings.status_for(line.ingredient_name) == BATCH_STATUS_BATCH
    ]


# ============================================================================
# Batch Metrics
# ============================================================================


def calculate_batch_metrics(
    recipe: Recipe,
    catalog: Sequence[Ingredient],
    variants_lookup: Optional[VariantsLookup] = None,
    all_recipes: Optional[Sequence[Recipe]] = None,
) -> Optional[BatchMetrics]:
    """
    Calculate totals for a recipe's saved batch.

    Args:
        recipe: Recipe with batch_settings
        catalog: Ingredient catalog
        variants_lookup: Optional map of ingredient id -> product variants
        all_recipes: Recipes available as sub-recipes

    Returns:
        BatchMetrics, or None if the recipe has no batch settings or no
        batch lines

    Raises:
        CircularSubRecipeError: If a sub-recipe chain references itself
    """
    settings = recipe.batch_settings
    if settings is None:
        return None

    batch_lines = select_batch_lines(recipe, settings)
    if not batch_lines:
        return None

    scale_factor = settings.scale_factor or 1.0
    container_count = settings.container_count or 1

    cost_result = calculate_recipe_cost(
        replace(recipe, ingredients=batch_lines),
        catalog,
        variants_lookup=variants_lookup,
        all_recipes=all_recipes,
    )

    volume_ml = 0.0
    alcohol_ml = 0.0
    for line in batch_lines:
        ingredient = resolve_line_ingredient(line, catalog)
        ml = convert_to_ml(line.amount, line.unit or "ml", ingredient) or 0.0
        volume_ml += ml
        if ingredient is not None and ingredient.abv:
            alcohol_ml += ml * ingredient.abv / 100

    concentrate_ml = volume_ml * scale_factor
    total_cost = cost_result.total_cost * scale_factor

    dilution_water_ml = 0.0
    if settings.include_dilution:
        dilution_water_ml = concentrate_ml * (settings.dilution_percentage or 0) / 100

    agent_ml = 0.0
    clarification = settings.clarification
    if clarification is not None and clarification.enabled:
        agent_ml = concentrate_ml * (clarification.agent_ratio_percentage or 0) / 100
        agent_cost = calculate_ingredient_cost(
            RecipeIngredientLine(ingredient_name=clarification.agent_name, amount=agent_ml, unit="ml"),
            catalog,
            variants_lookup=variants_lookup,
            all_recipes=all_recipes,
        )
        total_cost += agent_cost.cost

    total_volume_ml = concentrate_ml + dilution_water_ml + agent_ml
    abv = alcohol_ml * scale_factor / total_volume_ml * 100 if total_volume_ml > 0 else 0.0

    metrics = BatchMetrics(
        total_volume_ml=total_volume_ml,
        total_cost=total_cost,
        servings=scale_factor,
        container_type=settings.container_type or CUSTOM_CONTAINER_TYPE,
        container_count=container_count,
        cost_per_container=total_cost / container_count,
        volume_per_container=total_volume_ml / container_count,
        concentrate_volume_ml=concentrate_ml,
        dilution_water_ml=dilution_water_ml,
        clarification_agent_ml=agent_ml,
        abv=abv,
    )

    log_operation(
        logger,
        operation="calculate_batch_metrics",
        outcome="success",
        level=logging.DEBUG,
        recipe_key=recipe.key,
        scale_factor=scale_factor,
        total_volume_ml=total_volume_ml,
        total_cost=total_cost,
    )
    return metrics


# ============================================================================
# Batch Plan
# ============================================================================


def _target_concentrate_ml(settings: BatchSettings) -> float:
    """Concentrate volume that fills the selected containers."""
    container_ml = parse_container_size(settings.container_type) * (settings.container_count or 1)
    if settings.include_dilution and settings.constrain_to_total_volume:
        return container_ml / (1 + (settings.dilution_percentage or 0) / 100)
    return container_ml


def _display_amount(ml: float, unit: str, ingredient: Optional[Ingredient]) -> BatchAmount:
    amount = convert_amount(ml, "ml", unit, ingredient)
    if amount is None:
        return BatchAmount(amount=ml, unit="ml")
    return BatchAmount(amount=amount, unit=unit)


def _batch_rows(
    recipe: Recipe,
    catalog: Sequence[Ingredient],
    settings: BatchSettings,
    overrides: Dict[str, str],
) -> Dict[str, Tuple[float, str, Optional[Ingredient]]]:
    """name -> (per-serving ml, display unit, ingredient); later duplicates win."""
    batch_rows = {}
    for line in recipe.ingredients:
        if overrides.get(line.ingredient_name) != BATCH_STATUS_BATCH:
            continue
        ingredient = resolve_line_ingredient(line, catalog)
        per_serving_ml = convert_to_ml(line.amount, line.unit or "ml", ingredient) or 0.0
        unit = settings.unit_for(line.ingredient_name, line.unit or "ml")
        batch_rows[line.ingredient_name] = (per_serving_ml, unit, ingredient)
    return batch_rows


def calculate_batch_plan(
    recipe: Recipe,
    catalog: Sequence[Ingredient],
    settings: Optional[BatchSettings] = None,
) -> BatchPlan:
    """
    Calculate the display amounts for a batch.

    Container mode scales the batch lines to fill the selected containers
    (leaving room for dilution water when the volume is constrained).
    Custom mode starts from settings.scale_factor; pinned amounts are
    shown as pinned and the rest are rounded to whole or half display
    units. The concentrate volume is then measured from the displayed
    amounts, so saving and reloading a plan does not drift.

    Args:
        recipe: Recipe to batch
        catalog: Ingredient catalog
        settings: Batch settings (default: the recipe's, else category-based
            assignment in a default container)

    Returns:
        BatchPlan with a DILUTION_WATER_NAME row when dilution is included
    """
    if settings is None:
        settings = recipe.batch_settings
    if settings is None:
        settings = BatchSettings(ingredient_overrides=default_ingredient_overrides(recipe, catalog))

    overrides = {
        line.ingredient_name: settings.status_for(line.ingredient_name) or BATCH_STATUS_BATCH
        for line in recipe.ingredients
    }

    batch_rows = _batch_rows(recipe, catalog, settings, overrides)
    single_serving_ml = sum(row[0] for row in batch_rows.values())
    amounts: Dict[str, BatchAmount] = {}

    if settings.is_container_custom:
        scale_factor = settings.scale_factor or 1.0
        concentrate_ml = 0.0
        for name, (per_serving_ml, unit, ingredient) in batch_rows.items():
            pinned = settings.pinned_amount_for(name)
            if pinned is not None:
                display = BatchAmount(amount=pinned, unit=unit)
            else:
                display = _display_amount(per_serving_ml * scale_factor, unit, ingredient)
                display.amount = round_to_increment(display.amount, BATCH_DISPLAY_INCREMENTS)
            display_ml = convert_to_ml(display.amount, display.unit, ingredient)
            if display_ml is None:
                display_ml = per_serving_ml * scale_factor
            concentrate_ml += display_ml
            amounts[name] = display
        if single_serving_ml > 0:
            scale_factor = concentrate_ml / single_serving_ml
    else:
        concentrate_ml = _target_concentrate_ml(settings)
        scale_factor = concentrate_ml / single_serving_ml if single_serving_ml > 0 else 1.0
        for name, (per_serving_ml, unit, ingredient) in batch_rows.items():
            amounts[name] = _display_amount(per_serving_ml * scale_factor, unit, ingredient)

    dilution_water_ml = 0.0
    if settings.include_dilution:
        dilution_water_ml = concentrate_ml * (settings.dilution_percentage or 0) / 100
        if dilution_water_ml > 0:
            water_unit = settings.unit_for(DILUTION_WATER_NAME, "ml")
            amounts[DILUTION_WATER_NAME] = _display_amount(dilution_water_ml, water_unit, None)

    servings = concentrate_ml / single_serving_ml if single_serving_ml > 0 else 0.0

    return BatchPlan(
        scale_factor=scale_factor,
        servings=servings,
        concentrate_volume_ml=concentrate_ml,
        dilution_water_ml=dilution_water_ml,
        total_volume_ml=concentrate_ml + dilution_water_ml,
        amounts=amounts,
        ingredient_overrides=overrides,
    )


def pin_batch_plan(settings: BatchSettings, plan: BatchPlan) -> BatchSettings:
    """
    Save a plan's amounts, units and scale factor into batch settings.

    Args:
        settings: Settings the plan was computed from
        plan: Computed batch plan

    Returns:
        New BatchSettings; the input is not modified
    """
    units = dict(settings.batch_ingredient_units)
    for name, batch_amount in plan.amounts.items():
        units[name] = batch_amount.unit

    return replace(
        settings,
        ingredient_overrides=dict(plan.ingredient_overrides),
        batch_ingredient_amounts={name: a.amount for name, a in plan.amounts.items()},
        batch_ingredient_units=units,
        scale_factor=plan.scale_factor,
        container_type=(
            CUSTOM_CONTAINER_TYPE if settings.is_container_custom else settings.container_type
        ),
    )


def optimize_batch_settings(
    recipe: Recipe,
    catalog: Sequence[Ingredient],
    settings: Optional[BatchSettings] = None,
) -> BatchSettings:
    """
    Switch a batch to custom mode at the optimal scale factor.

    The search fills the selected containers (or, for a custom batch, the
    larger of its current volume and one default bottle). Pinned amounts
    are cleared so the new amounts are rounded afresh. If rounding them
    would overflow the container, they are rounded down and pinned instead.

    Args:
        recipe: Recipe to batch
        catalog: Ingredient catalog
        settings: Current batch settings (default: the recipe's)

    Returns:
        New BatchSettings in custom mode
    """
    if settings is None:
        settings = recipe.batch_settings
    if settings is None:
        settings = BatchSettings(ingredient_overrides=default_ingredient_overrides(recipe, catalog))

    plan = calculate_batch_plan(recipe, catalog, settings)
    if settings.is_container_custom:
        container_ml = max(plan.total_volume_ml, parse_container_size(DEFAULT_CONTAINER_TYPE))
    else:
        container_ml = parse_container_size(settings.container_type) * (settings.container_count or 1)
    if settings.include_dilution and settings.constrain_to_total_volume:
        container_ml = container_ml / (1 + (settings.dilution_percentage or 0) / 100)

    batch_lines = [
        line
        for line in recipe.ingredients
        if plan.ingredient_overrides.get(line.ingredient_name) == BATCH_STATUS_BATCH
    ]
    result = search_scale_factor(
        batch_lines, settings.batch_ingredient_units, catalog, container_ml
    )

    optimized = replace(
        settings,
        ingredient_overrides=dict(plan.ingredient_overrides),
        scale_factor=result.scale_factor,
        is_container_custom=True,
        container_type=CUSTOM_CONTAINER_TYPE,
        batch_ingredient_amounts={},
    )
    return _fit_rounded_amounts(recipe, catalog, optimized, container_ml)


def _fit_rounded_amounts(
    recipe: Recipe,
    catalog: Sequence[Ingredient],
    settings: BatchSettings,
    target_ml: float,
) -> BatchSettings:
    """
    Pin amounts rounded down when the displayed amounts overflow target_ml.

    Custom mode rounds each amount to the nearest whole or half unit, so a
    scale that exactly fills a container can display slightly more than it
    holds. Rounding every amount down instead keeps the batch inside it.
    """
    plan = calculate_batch_plan(recipe, catalog, settings)
    if plan.concentrate_volume_ml <= target_ml + VOLUME_TOLERANCE_ML:
        return settings

    batch_rows = _batch_rows(recipe, catalog, settings, plan.ingredient_overrides)
    amounts = {}
    units = dict(settings.batch_ingredient_units)
    for name, (per_serving_ml, unit, ingredient) in batch_rows.items():
        exact = _display_amount(per_serving_ml * settings.scale_factor, unit, ingredient)
        amounts[name] = round_down_to_increment(exact.amount, BATCH_DISPLAY_INCREMENTS[-1])
        units[name] = exact.unit

    fitted = replace(settings, batch_ingredient_amounts=amounts, batch_ingredient_units=units)
    fitted_plan = calculate_batch_plan(recipe, catalog, fitted)
    log_operation(
        logger,
        operation="optimize_batch_settings",
        outcome="rounded_down_to_fit",
        level=logging.DEBUG,
        recipe_id=recipe.id,
        rounded_ml=plan.concentrate_volume_ml,
        fitted_ml=fitted_plan.concentrate_volume_ml,
        target_ml=target_ml,
    )
    return replace(fitted, scale_factor=fitted_plan.scale_factor)


# ============================================================================
# Sub-Recipe Scaling
# ============================================================================


def scale_sub_recipe(
    recipe: Recipe,
    target_yield: Optional[float] = None,
    target_servings: Optional[float] = None,
) -> ScaledRecipe:
    """
    Scale a recipe's lines to a new yield.

    Args:
        recipe: Recipe with a yield
        target_yield: Desired yield, in the recipe's yield unit
        target_servings: Desired number of servings (needs a serving size)

    Returns:
        ScaledRecipe with amounts rounded to 3 decimals

    Raises:
        ValidationError: If the recipe has no yield, no positive target is
            given, or servings are requested without a usable serving size
    """
    current_yield = recipe.resolved_yield_amount
    yield_unit = recipe.resolved_yield_unit
    if current_yield is None:
        raise ValidationError([f"{recipe.name}: recipe has no yield to scale from"])

    if target_yield is None and target_servings is not None:
        serving = recipe.resolved_serving_amount
        serving_in_yield_unit = (
            convert_amount(serving, recipe.resolved_serving_unit, yield_unit) if serving else None
        )
        if not serving_in_yield_unit:
            raise ValidationError([f"{recipe.name}: recipe has no serving size to scale by"])
        target_yield = target_servings * serving_in_yield_unit

    if target_yield is None or target_yield <= 0:
        raise ValidationError(["target_yield: Must be a positive number"])

    scale_factor = target_yield / current_yield
    return ScaledRecipe(
        scale_factor=scale_factor,
        yield_amount=target_yield,
        yield_unit=yield_unit,
        ingredients=[
            replace(line, amount=round(line.amount * scale_factor, 3)) for line in recipe.ingredients
        ],
    )
