"""
Ingredient Resolver - matches recipe lines to catalog ingredients and recipes.

An ingredient_id on a line is authoritative: lookup is strictly by id and a
missing id is reported as an anomaly, never silently retried by name.
Without an id, names are matched in priority order:

1. Exact case-insensitive, trimmed name
2. Name with all non-alphanumeric characters stripped
3. Alias (exact or stripped)
"""

import logging
import re
from typing import Iterable, Optional, Sequence, Tuple

from barcost.models import Ingredient, Recipe, RecipeIngredientLine
from barcost.services.exceptions import RecipeNotFound
from barcost.services.logging_utils import get_service_logger, log_operation
from barcost.utils.constants import NON_PREP_ACTION_WORDS

logger = get_service_logger(__name__)


# ============================================================================
# Normalization
# ============================================================================


def _casefold_trim(text: Optional[str]) -> str:
    if not text:
        return ""
    return str(text).strip().lower()


def normalize_for_match(text: Optional[str]) -> str:
    """
    Reduce a name to lowercase alphanumerics for loose matching.

    Args:
        text: Name to normalize

    Returns:
        Normalized key (e.g., "St-Germain " -> "stgermain")
    """
    if not text:
        return ""
    return re.sub(r"[^a-z0-9]", "", str(text).lower())


# ============================================================================
# Ingredient Matching
# ============================================================================


def find_ingredient_by_id(
    ingredient_id: Optional[str], catalog: Sequence[Ingredient]
) -> Optional[Ingredient]:
    """Catalog ingredient with this id, or None. Does not log a miss."""
    if not ingredient_id:
        return None
    for ingredient in catalog or []:
        if ingredient.id == ingredient_id:
            return ingredient
    return None


def find_matching_ingredient(
    name: Optional[str],
    catalog: Sequence[Ingredient],
    ingredient_id: Optional[str] = None,
) -> Optional[Ingredient]:
    """
    Find the catalog ingredient a recipe line refers to.

    Args:
        name: Free-text ingredient name (ignored when ingredient_id is given)
        catalog: Ingredient catalog to search
        ingredient_id: Authoritative ingredient id

    Returns:
        Matching Ingredient, or None if nothing matches
    """
    if ingredient_id:
        ingredient = find_ingredient_by_id(ingredient_id, catalog)
        if ingredient is not None:
            return ingredient
        log_operation(
            logger,
            operation="find_matching_ingredient",
            outcome="id_not_found",
            level=logging.WARNING,
            ingredient_id=ingredient_id,
            ingredient_name=name,
        )
        return None

    search_name = _casefold_trim(name)
    if not search_name or not catalog:
        return None

    normalized_search = normalize_for_match(name)

    # Priority 1: exact name
    for ingredient in catalog:
        if ingredient.name and _casefold_trim(ingredient.name) == search_name:
            return ingredient

    # Priority 2: normalized name
    if normalized_search:
        for ingredient in catalog:
            if ingredient.name and normalize_for_match(ingredient.name) == normalized_search:
                return ingredient

    # Priority 3: alias
    for ingredient in catalog:
        for alias in ingredient.aliases or []:
            if _casefold_trim(alias) == search_name:
                return ingredient
            if normalized_search and normalize_for_match(alias) == normalized_search:
                return ingredient

    return None


def split_ingredient_text(text: Optional[str]) -> Tuple[str, str]:
    """
    Split legacy free text into (ingredient name, prep action).

    " - " is the explicit separator; a comma is accepted as long as the
    trailing part is not a mixing verb ("Gin, stir" stays whole).

    Args:
        text: Line text (e.g., "Lime - juiced", "Lime, juiced")

    Returns:
        Tuple of (ingredient_name, prep_action); prep_action is "" when absent

    Examples:
        >>> split_ingredient_text("Lime - juiced")
        ('Lime', 'juiced')
        >>> split_ingredient_text("Gin, stir")
        ('Gin, stir', '')
    """
    clean = str(text).strip() if text else ""
    if not clean:
        return "", ""

    if " - " in clean:
        parts = [part.strip() for part in clean.split(" - ")]
        return parts[0], parts[1]

    if "," in clean:
        parts = [part.strip() for part in clean.split(",")]
        if parts[1].lower() in NON_PREP_ACTION_WORDS:
            return clean, ""
        return parts[0], parts[1]

    return clean, ""


def base_ingredient_name(text: Optional[str]) -> str:
    """Ingredient part of legacy "Name - prep" / "Name, prep" text."""
    clean = str(text).strip() if text else ""
    return clean.split(" - ")[0].split(",")[0].strip()


def resolve_line_ingredient(
    line: RecipeIngredientLine, catalog: Sequence[Ingredient]
) -> Optional[Ingredient]:
    """
    Resolve the ingredient for a recipe line.

    Linked lines (ingredient_id set) resolve by id only; unlinked lines
    match on the base name of their text.

    Args:
        line: Recipe ingredient line
        catalog: Ingredient catalog

    Returns:
        Matching Ingredient, or None
    """
    if line.ingredient_id:
        return find_matching_ingredient(line.ingredient_name, catalog, line.ingredient_id)
    return find_matching_ingredient(base_ingredient_name(line.ingredient_name), catalog)


# ============================================================================
# Recipe Lookup
# ============================================================================


def find_recipe_by_name(name: Optional[str], recipes: Optional[Iterable[Recipe]]) -> Optional[Recipe]:
    """
    Find a recipe by case-insensitive, trimmed name.

    Args:
        name: Recipe name
        recipes: Recipes to search

    Returns:
        First matching Recipe, or None
    """
    search_name = _casefold_trim(name)
    if not search_name:
        return None
    for recipe in recipes or []:
        if _casefold_trim(recipe.name) == search_name:
            return recipe
    return None


def find_recipe_by_id(
    recipe_id: Optional[str],
    recipes: Optional[Iterable[Recipe]],
    required: bool = False,
) -> Optional[Recipe]:
    """
    Find a recipe by id.

    Args:
        recipe_id: Recipe id
        recipes: Recipes to search
        required: Raise instead of returning None when not found

    Returns:
        Matching Recipe, or None

    Raises:
        RecipeNotFound: If required is True and no recipe has that id
    """
    if recipe_id:
        for recipe in recipes or []:
            if recipe.id == recipe_id:
                return recipe
    if required:
        raise RecipeNotFound(recipe_id)
    return None
