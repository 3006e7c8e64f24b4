"""
Recipe Cost Service - aggregates line costs for a whole recipe.

Lines that name another recipe are priced as prorated sub-recipes; all
other lines go through ingredient_cost_service. Evaluation carries the path
of recipe keys being costed so a sub-recipe chain that loops back on
itself fails with CircularSubRecipeError instead of recursing forever.
Shared sub-recipes reached along different branches are fine.

Also provides pour-cost and ABV/volume metrics built on the same
conversions.
"""

import logging
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from barcost.models import Ingredient, Recipe, RecipeIngredientLine
from barcost.services.dto_utils import cost_to_string
from barcost.services.exceptions import CircularSubRecipeError, ValidationError
from barcost.services.ingredient_cost_service import (
    CostStatus,
    VariantsLookup,
    calculate_ingredient_cost,
    summarize_statuses,
)
from barcost.services.ingredient_resolver import (
    find_ingredient_by_id,
    find_matching_ingredient,
    find_recipe_by_name,
    resolve_line_ingredient,
    split_ingredient_text,
)
from barcost.services.logging_utils import get_service_logger, log_operation
from barcost.services.unit_converter import VOLUME_TO_ML, convert_to_ml
from barcost.utils.config import get_config
from barcost.utils.constants import (
    CLARIFYING_AGENT_KEYWORDS,
    COST_MODE_SINGLE_SPEC,
    COST_MODE_TOTAL,
    COST_MODES,
    DEFAULT_COST_UNIT,
)
from barcost.utils.validators import validate_choice

logger = get_service_logger(__name__)


# ============================================================================
# Result Types
# ============================================================================


@dataclass
class CostedLine:
    """A recipe line together with its computed cost."""

    line: RecipeIngredientLine
    cost: float
    status: CostStatus
    is_sub_recipe_line: bool = False
    source_sub_recipe_id: Optional[str] = None

    @property
    def ingredient_name(self) -> str:
        return self.line.ingredient_name

    @property
    def amount(self) -> float:
        return self.line.amount

    def to_dict(self) -> Dict[str, Any]:
        data = self.line.to_dict()
        data.update(
            {
                "cost": cost_to_string(self.cost),
                "status": self.status.value,
                "is_sub_recipe_line": self.is_sub_recipe_line,
                "source_sub_recipe_id": self.source_sub_recipe_id,
            }
        )
        return data


@dataclass
class RecipeCostResult:
    """Cost of a whole recipe.

    ingredients_with_cost is the displayed list; in single_spec mode for a
    clarified recipe it omits clarifying agents whose cost is still part of
    total_cost.
    """

    total_cost: float
    ingredients_with_cost: List[CostedLine] = field(default_factory=list)
    total_yield: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_cost": cost_to_string(self.total_cost),
            "ingredients_with_cost": [line.to_dict() for line in self.ingredients_with_cost],
            "total_yield": self.total_yield,
        }


@dataclass
class RecipeMetrics:
    """Volume and strength summary of a recipe."""

    total_volume_ml: float
    alcohol_volume_ml: float
    abv: float
    yield_amount: float
    yield_unit: str


# ============================================================================
# Helpers
# ============================================================================


def is_clarifying_agent(name: Optional[str]) -> bool:
    """
    Check whether an ingredient name looks like a clarifying agent.

    Args:
        name: Ingredient name

    Returns:
        True if the name contains milk, agar, gelatin, casein, bentonite,
        isinglass, filter or clarifier
    """
    if not name:
        return False
    name_lower = str(name).lower()
    return any(keyword in name_lower for keyword in CLARIFYING_AGENT_KEYWORDS)


def get_yield_ml(recipe: Recipe) -> Optional[float]:
    """Recipe yield in ml, or None when the recipe has no usable yield."""
    amount = recipe.resolved_yield_amount
    if amount is None:
        return None
    return convert_to_ml(amount, recipe.resolved_yield_unit) or None


def get_serving_ml(recipe: Recipe) -> Optional[float]:
    """Serving size in ml, or None when the recipe has no usable serving size."""
    amount = recipe.resolved_serving_amount
    if amount is None:
        return None
    return convert_to_ml(amount, recipe.resolved_serving_unit) or None


def _enter_recipe(recipe: Recipe, path: Tuple[str, ...]) -> Tuple[str, ...]:
    key = recipe.key
    if key in path:
        cycle = list(path[path.index(key):]) + [key]
        log_operation(
            logger,
            operation="calculate_recipe_cost",
            outcome="circular_reference",
            level=logging.WARNING,
            recipe_path=cycle,
        )
        raise CircularSubRecipeError(cycle)
    return path + (key,)


def _line_sub_recipe(
    line: RecipeIngredientLine,
    catalog: Sequence[Ingredient],
    all_recipes: Optional[Sequence[Recipe]],
) -> Optional[Recipe]:
    """Recipe named by a line, matched on the resolved ingredient name or line text."""
    if not all_recipes:
        return None
    if line.ingredient_id:
        # The id miss is reported once, when the line itself is costed
        ingredient = find_ingredient_by_id(line.ingredient_id, catalog)
    else:
        base_name, _ = split_ingredient_text(line.ingredient_name)
        ingredient = find_matching_ingredient(base_name, catalog)
    name = ingredient.name if ingredient is not None else line.ingredient_name
    return find_recipe_by_name(name, all_recipes)


# ============================================================================
# Recipe Costing
# ============================================================================


def calculate_recipe_cost(
    recipe: Recipe,
    catalog: Sequence[Ingredient],
    mode: str = COST_MODE_TOTAL,
    variants_lookup: Optional[VariantsLookup] = None,
    all_recipes: Optional[Sequence[Recipe]] = None,
    _path: Tuple[str, ...] = (),
) -> RecipeCostResult:
    """
    Calculate the cost of a recipe.

    Args:
        recipe: Recipe to cost
        catalog: Ingredient catalog
        mode: "total" for the full recipe, "single_spec" for one serving of
            a cocktail with both a yield and a serving size
        variants_lookup: Optional map of ingredient id -> product variants
        all_recipes: Recipes available as sub-recipes
        _path: Recipe keys currently being evaluated (cycle detection)

    Returns:
        RecipeCostResult with total cost, costed lines and declared yield

    Raises:
        ValidationError: If mode is not "total" or "single_spec"
        CircularSubRecipeError: If a sub-recipe chain references itself
    """
    ok, msg = validate_choice(mode, COST_MODES, "mode")
    if not ok:
        raise ValidationError([msg])

    path = _enter_recipe(recipe, _path)

    costed_lines: List[CostedLine] = []
    for line in recipe.ingredients:
        sub_recipe = _line_sub_recipe(line, catalog, all_recipes)
        if sub_recipe is not None:
            sub_result = calculate_recipe_cost(
                sub_recipe,
                catalog,
                variants_lookup=variants_lookup,
                all_recipes=all_recipes,
                _path=path,
            )
            sub_yield_ml = get_yield_ml(sub_recipe)
            use_ml = convert_to_ml(line.amount, line.unit or DEFAULT_COST_UNIT)
            if sub_yield_ml and use_ml:
                costed_lines.append(
                    CostedLine(
                        line=line,
                        cost=sub_result.total_cost / sub_yield_ml * use_ml,
                        status=CostStatus.HAS_COST,
                        is_sub_recipe_line=True,
                        source_sub_recipe_id=sub_recipe.id,
                    )
                )
                continue

        line_cost = calculate_ingredient_cost(
            line, catalog, variants_lookup=variants_lookup, all_recipes=all_recipes, _path=path
        )
        costed_lines.append(CostedLine(line=line, cost=line_cost.cost, status=line_cost.status))

    # Accumulate in Decimal so a total of cents does not pick up float error
    total_cost = float(sum((Decimal(str(costed.cost)) for costed in costed_lines), Decimal("0")))
    total_yield = recipe.resolved_yield_amount or 0.0

    log_operation(
        logger,
        operation="calculate_recipe_cost",
        outcome="success",
        level=logging.DEBUG,
        recipe_key=path[-1],
        total_cost=total_cost,
        statuses={
            status.value: count
            for status, count in summarize_statuses(costed_lines).items()
        },
    )

    if mode == COST_MODE_SINGLE_SPEC and recipe.is_cocktail:
        yield_ml = get_yield_ml(recipe)
        serving_ml = get_serving_ml(recipe)
        if yield_ml and serving_ml:
            scale = serving_ml / yield_ml
            scaled_lines = [
                replace(
                    costed,
                    line=replace(costed.line, amount=costed.line.amount * scale),
                    cost=costed.cost * scale,
                )
                for costed in costed_lines
            ]
            if "clarif" in (recipe.category or "").lower():
                scaled_lines = [
                    costed
                    for costed in scaled_lines
                    if not is_clarifying_agent(costed.ingredient_name)
                ]
            return RecipeCostResult(total_cost * scale, scaled_lines, total_yield)

    return RecipeCostResult(total_cost, costed_lines, total_yield)


# ============================================================================
# Pour Cost
# ============================================================================


def calculate_pour_cost_percentage(cost: Optional[float], menu_price: Optional[float]) -> float:
    """
    Calculate pour cost as a percentage of menu price.

    Args:
        cost: Cost of one serving
        menu_price: Menu price of one serving

    Returns:
        Pour cost percentage, or 0.0 if either value is missing or zero
    """
    if not cost or not menu_price:
        return 0.0
    return cost / menu_price * 100


def suggest_menu_price(cost: float, target_pour_cost: Optional[float] = None) -> float:
    """
    Suggest a menu price that hits a target pour cost.

    Args:
        cost: Cost of one serving
        target_pour_cost: Target pour cost percent (default from config)

    Returns:
        Suggested price, or 0.0 when the cost or target is not positive
    """
    if target_pour_cost is None:
        target_pour_cost = get_config().target_pour_cost
    if not cost or cost <= 0 or target_pour_cost <= 0:
        return 0.0
    return cost / (target_pour_cost / 100)


# ============================================================================
# Volume and ABV
# ============================================================================


def calculate_recipe_metrics(
    recipe: Recipe,
    catalog: Sequence[Ingredient],
    dilution_percentage: Optional[float] = None,
) -> RecipeMetrics:
    """
    Calculate a recipe's volume and ABV after dilution.

    Lines that cannot be expressed in ml contribute no volume.

    Args:
        recipe: Recipe to measure
        catalog: Ingredient catalog (for ABV, density and custom conversions)
        dilution_percentage: Water added on ice (default from config)

    Returns:
        RecipeMetrics; sellable items report their serving size as the
        yield, other recipes report the undiluted total volume in oz
    """
    if dilution_percentage is None:
        dilution_percentage = get_config().default_dilution_percentage

    total_volume = 0.0
    alcohol_volume = 0.0
    for line in recipe.ingredients:
        ingredient = resolve_line_ingredient(line, catalog)
        ml = convert_to_ml(line.amount, line.unit or DEFAULT_COST_UNIT, ingredient)
        if not ml:
            continue
        total_volume += ml
        if ingredient is not None and ingredient.abv:
            alcohol_volume += ml * ingredient.abv / 100

    diluted_volume = total_volume * (1 + dilution_percentage / 100)
    abv = alcohol_volume / diluted_volume * 100 if diluted_volume > 0 else 0.0

    if recipe.is_sellable and recipe.resolved_serving_amount:
        yield_amount = recipe.resolved_serving_amount
        yield_unit = recipe.resolved_serving_unit
    else:
        yield_amount = total_volume / VOLUME_TO_ML["oz"]
        yield_unit = "oz"

    return RecipeMetrics(
        total_volume_ml=total_volume,
        alcohol_volume_ml=alcohol_volume,
        abv=abv,
        yield_amount=yield_amount,
        yield_unit=yield_unit,
    )


def calculate_sub_recipe_abv(recipe: Recipe, catalog: Sequence[Ingredient]) -> float:
    """
    Calculate the undiluted ABV of a sub-recipe, rounded to one decimal.

    For "wash" recipes only alcoholic ingredients count toward the volume,
    since the washing agent is strained out.

    Args:
        recipe: Sub-recipe
        catalog: Ingredient catalog

    Returns:
        ABV percent (e.g., 25.0)
    """
    is_wash = (recipe.category or "").strip().lower() == "wash"

    total_volume = 0.0
    alcohol_volume = 0.0
    for line in recipe.ingredients:
        if line.amount <= 0:
            continue
        ingredient = resolve_line_ingredient(line, catalog)
        ml = convert_to_ml(line.amount, line.unit or DEFAULT_COST_UNIT, ingredient)
        if not ml:
            continue
        is_alcoholic = ingredient is not None and bool(ingredient.abv) and ingredient.abv > 0
        if not is_wash or is_alcoholic:
            total_volume += ml
        if is_alcoholic:
            alcohol_volume += ml * ingredient.abv / 100

    if total_volume <= 0:
        return 0.0
    return round(alcohol_volume / total_volume * 100, 1)
