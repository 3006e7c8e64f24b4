"""
Ingredient Cost Service - prices a single recipe line.

Pricing order for a resolved ingredient:
1. Exempt ingredients (water, ice, soda, ...) cost nothing but count as priced
2. Sub-recipe ingredients: cost per ml of the referenced recipe's yield
3. Prep actions: raw units consumed = requested amount / prep yield
4. cost_per_unit in the ingredient's costing unit
5. Cheapest per-oz product variant when cost_per_unit is zero
6. Otherwise no cost

Line-level problems never raise; they are reported through CostStatus.
The only exception that escapes is CircularSubRecipeError from a
self-referencing sub-recipe chain.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from barcost.models import Ingredient, ProductVariant, Recipe, RecipeIngredientLine
from barcost.services.ingredient_resolver import find_recipe_by_id, resolve_line_ingredient
from barcost.services.logging_utils import get_service_logger, log_operation
from barcost.services.unit_converter import (
    VOLUME_TO_ML,
    convert_amount,
    convert_to_ml,
    get_unit_type,
)
from barcost.utils.constants import DEFAULT_COST_UNIT, EXEMPT_INGREDIENTS

logger = get_service_logger(__name__)

VariantsLookup = Mapping[str, Iterable]

_EXEMPT_PATTERN = re.compile(
    r"\b(?:"
    + "|".join(re.escape(name) for name in sorted(EXEMPT_INGREDIENTS, key=len, reverse=True))
    + r")\b",
    re.IGNORECASE,
)


# ============================================================================
# Result Types
# ============================================================================


class CostStatus(str, Enum):
    """Outcome of pricing one recipe line."""

    HAS_COST = "has_cost"  # Priced (exempt lines included)
    NO_COST = "no_cost"  # Resolved but no usable price
    NOT_FOUND = "not_found"  # Ingredient reference did not resolve
    INVALID_PREP_ACTION = "invalid_prep_action"  # prep_action_id not on the ingredient


@dataclass
class LineCost:
    """Cost of one recipe line."""

    cost: float
    status: CostStatus


@dataclass
class IngredientInfo:
    """Display information for one recipe line."""

    cost_status: Optional[CostStatus]
    display_value: str
    display_unit: Optional[str]


# ============================================================================
# Helpers
# ============================================================================


def is_exempt_ingredient(name: Optional[str]) -> bool:
    """
    Check whether an ingredient never carries a cost.

    Matching is on whole words, so "Spiced Rum" is not exempt because of "ice".

    Args:
        name: Ingredient name

    Returns:
        True for water, ice, soda and similar ingredients
    """
    if not name:
        return False
    return _EXEMPT_PATTERN.search(str(name).strip()) is not None


def _volume_to_oz(amount: Optional[float], unit: Optional[str]) -> Optional[float]:
    if amount is None or amount <= 0 or get_unit_type(unit or "") != "volume":
        return None
    ml = convert_to_ml(amount, unit)
    if ml is None:
        return None
    return ml / VOLUME_TO_ML["oz"]


def calculate_variant_cost_per_oz(variant: ProductVariant) -> float:
    """
    Calculate a product variant's cost per fluid ounce.

    Uses purchase_price / purchase_quantity first, then case_price split
    over bottles_per_case bottles of size_ml.

    Args:
        variant: Product variant

    Returns:
        Cost per oz, or 0.0 when the variant has no usable pricing
    """
    if variant is None:
        return 0.0

    if variant.purchase_price > 0 and variant.purchase_quantity > 0:
        quantity_oz = _volume_to_oz(variant.purchase_quantity, variant.purchase_unit or "oz")
        if quantity_oz:
            return variant.purchase_price / quantity_oz

    if variant.case_price and variant.bottles_per_case and variant.size_ml:
        if variant.case_price > 0 and variant.bottles_per_case > 0 and variant.size_ml > 0:
            per_bottle = variant.case_price / variant.bottles_per_case
            return per_bottle / (variant.size_ml / VOLUME_TO_ML["oz"])

    return 0.0


def _variants_for(ingredient: Ingredient, variants_lookup: Optional[VariantsLookup]) -> List[ProductVariant]:
    if not variants_lookup or not ingredient.id:
        return []
    variants = variants_lookup.get(ingredient.id) or []
    return [v if isinstance(v, ProductVariant) else ProductVariant.from_dict(v) for v in variants]


def _best_variant_cost_per_oz(variants: Sequence[ProductVariant]) -> float:
    costs = [c for c in (calculate_variant_cost_per_oz(v) for v in variants) if c > 0]
    return min(costs) if costs else 0.0


def _sub_recipe_cost(
    ingredient: Ingredient,
    line: RecipeIngredientLine,
    catalog: Sequence[Ingredient],
    variants_lookup: Optional[VariantsLookup],
    all_recipes: Optional[Sequence[Recipe]],
    path: Tuple[str, ...],
) -> LineCost:
    """Price a line whose ingredient is produced by another recipe."""
    from barcost.services.recipe_cost_service import calculate_recipe_cost, get_yield_ml

    sub_recipe = find_recipe_by_id(ingredient.sub_recipe_id, all_recipes)
    if sub_recipe is None or not sub_recipe.has_declared_yield:
        return LineCost(0.0, CostStatus.NO_COST)

    result = calculate_recipe_cost(
        sub_recipe,
        catalog,
        variants_lookup=variants_lookup,
        all_recipes=all_recipes,
        _path=path,
    )
    yield_ml = get_yield_ml(sub_recipe)
    if result.total_cost <= 0 or not yield_ml:
        return LineCost(0.0, CostStatus.NO_COST)

    requested_ml = convert_to_ml(line.amount, line.unit or DEFAULT_COST_UNIT)
    if requested_ml is None:
        return LineCost(0.0, CostStatus.NO_COST)

    return LineCost(result.total_cost / yield_ml * requested_ml, CostStatus.HAS_COST)


# ============================================================================
# Line Costing
# ============================================================================


def calculate_ingredient_cost(
    line: RecipeIngredientLine,
    catalog: Sequence[Ingredient],
    variants_lookup: Optional[VariantsLookup] = None,
    all_recipes: Optional[Sequence[Recipe]] = None,
    _path: Tuple[str, ...] = (),
) -> LineCost:
    """
    Calculate the cost of one recipe line.

    Args:
        line: Recipe ingredient line
        catalog: Ingredient catalog
        variants_lookup: Optional map of ingredient id -> product variants
        all_recipes: Recipes that sub-recipe ingredients may reference
        _path: Recipe keys currently being evaluated (cycle detection)

    Returns:
        LineCost with the line's cost and CostStatus

    Raises:
        CircularSubRecipeError: If a sub-recipe chain references itself
    """
    ingredient = resolve_line_ingredient(line, catalog)
    if ingredient is None:
        log_operation(
            logger,
            operation="calculate_ingredient_cost",
            outcome="not_found",
            level=logging.DEBUG,
            ingredient_name=line.ingredient_name,
        )
        return LineCost(0.0, CostStatus.NOT_FOUND)

    if is_exempt_ingredient(ingredient.name):
        return LineCost(0.0, CostStatus.HAS_COST)

    if ingredient.is_sub_recipe:
        return _sub_recipe_cost(ingredient, line, catalog, variants_lookup, all_recipes, _path)

    requested_unit = line.unit or DEFAULT_COST_UNIT

    if line.prep_action_id:
        prep_action = ingredient.find_prep_action(line.prep_action_id)
        if prep_action is None:
            log_operation(
                logger,
                operation="calculate_ingredient_cost",
                outcome="invalid_prep_action",
                level=logging.WARNING,
                ingredient_id=ingredient.id,
                prep_action_id=line.prep_action_id,
            )
            return LineCost(0.0, CostStatus.INVALID_PREP_ACTION)

        if prep_action.yield_amount and prep_action.yield_amount > 0 and prep_action.yield_unit:
            requested = convert_amount(line.amount, requested_unit, prep_action.yield_unit, ingredient)
            if requested is not None and ingredient.cost_per_unit > 0:
                raw_units = requested / prep_action.yield_amount
                return LineCost(ingredient.cost_per_unit * raw_units, CostStatus.HAS_COST)
        return LineCost(0.0, CostStatus.NO_COST)

    if ingredient.cost_per_unit > 0:
        amount = convert_amount(line.amount, requested_unit, ingredient.costing_unit, ingredient)
        if amount is not None:
            return LineCost(ingredient.cost_per_unit * amount, CostStatus.HAS_COST)
        log_operation(
            logger,
            operation="calculate_ingredient_cost",
            outcome="unconvertible_unit",
            level=logging.DEBUG,
            ingredient_id=ingredient.id,
            from_unit=requested_unit,
            to_unit=ingredient.costing_unit,
        )
        return LineCost(0.0, CostStatus.NO_COST)

    if ingredient.is_purchased:
        best = _best_variant_cost_per_oz(_variants_for(ingredient, variants_lookup))
        if best > 0:
            amount_ml = convert_to_ml(line.amount, requested_unit, ingredient)
            if amount_ml is not None:
                return LineCost(best * amount_ml / VOLUME_TO_ML["oz"], CostStatus.HAS_COST)

    return LineCost(0.0, CostStatus.NO_COST)


def get_ingredient_info(
    line: RecipeIngredientLine,
    catalog: Sequence[Ingredient],
    variants_lookup: Optional[VariantsLookup] = None,
    all_recipes: Optional[Sequence[Recipe]] = None,
) -> IngredientInfo:
    """
    Describe a recipe line for display: cost status, name and unit.

    The status mirrors calculate_ingredient_cost without pricing the line,
    so sub-recipes with a declared yield report has_cost without recursion.

    Args:
        line: Recipe ingredient line
        catalog: Ingredient catalog
        variants_lookup: Optional map of ingredient id -> product variants
        all_recipes: Recipes that sub-recipe ingredients may reference

    Returns:
        IngredientInfo; display_value is "Name, Prep" when a prep action resolves
    """
    text = (line.ingredient_name or "").strip()
    if not text and not line.ingredient_id:
        return IngredientInfo(None, "", None)

    ingredient = resolve_line_ingredient(line, catalog)
    if ingredient is None:
        return IngredientInfo(CostStatus.NOT_FOUND, text, None)

    display_value = ingredient.name
    display_unit = ingredient.unit or DEFAULT_COST_UNIT
    prep_action = None
    if line.prep_action_id:
        prep_action = ingredient.find_prep_action(line.prep_action_id)
        if prep_action is not None:
            display_value = f"{ingredient.name}, {prep_action.name}"
            display_unit = prep_action.yield_unit or display_unit

    if is_exempt_ingredient(ingredient.name):
        return IngredientInfo(CostStatus.HAS_COST, display_value, display_unit)

    if ingredient.is_sub_recipe:
        sub_recipe = find_recipe_by_id(ingredient.sub_recipe_id, all_recipes)
        status = (
            CostStatus.HAS_COST
            if sub_recipe is not None and sub_recipe.has_declared_yield
            else CostStatus.NO_COST
        )
        return IngredientInfo(status, display_value, display_unit)

    if line.prep_action_id and prep_action is None:
        return IngredientInfo(CostStatus.INVALID_PREP_ACTION, display_value, display_unit)

    has_cost = ingredient.cost_per_unit > 0
    if not has_cost and ingredient.is_purchased:
        has_cost = _best_variant_cost_per_oz(_variants_for(ingredient, variants_lookup)) > 0

    status = CostStatus.HAS_COST if has_cost else CostStatus.NO_COST
    return IngredientInfo(status, display_value, display_unit)


def summarize_statuses(results: Iterable) -> Dict[CostStatus, int]:
    """Count results (anything with a .status) per CostStatus."""
    counts: Dict[CostStatus, int] = {}
    for result in results:
        counts[result.status] = counts.get(result.status, 0) + 1
    return counts
