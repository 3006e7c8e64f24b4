"""Pytest configuration and fixtures for costing and batching tests."""

import pytest

from barcost.models import BatchSettings, Ingredient, Recipe, RecipeIngredientLine
from barcost.utils.config import reset_config


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch):
    """Provide a clean configuration singleton for each test function.

    Engine settings read from the environment are cleared so a developer's
    shell cannot change test outcomes.
    """
    for name in (
        "BARCOST_ENV",
        "BARCOST_MAX_SCALE_CANDIDATES",
        "BARCOST_TARGET_POUR_COST",
        "BARCOST_DEFAULT_DILUTION",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def catalog():
    """Provide a small bar ingredient catalog."""
    return [
        Ingredient.from_dict(
            {
                "id": "ing_tequila",
                "name": "Tequila",
                "aliases": ["Blanco Tequila"],
                "unit": "oz",
                "cost_per_unit": 0.80,
                "abv": 40,
                "category": "Spirit",
            }
        ),
        Ingredient.from_dict(
            {
                "id": "ing_lime_juice",
                "name": "Lime Juice",
                "unit": "oz",
                "cost_per_unit": 0.20,
                "category": "Juice",
            }
        ),
        Ingredient.from_dict(
            {
                "id": "ing_triple_sec",
                "name": "Triple Sec",
                "unit": "oz",
                "cost_per_unit": 0.60,
                "abv": 30,
                "category": "Liqueur",
            }
        ),
        Ingredient.from_dict(
            {
                "id": "ing_sugar",
                "name": "Sugar",
                "unit": "g",
                "cost_per_unit": 0.002,
                "category": "Other",
            }
        ),
        Ingredient.from_dict({"id": "ing_water", "name": "Water", "unit": "ml"}),
        Ingredient.from_dict({"id": "ing_ice", "name": "Ice", "unit": "oz"}),
        Ingredient.from_dict(
            {
                "id": "ing_lime",
                "name": "Lime",
                "unit": "each",
                "cost_per_unit": 0.30,
                "category": "Citrus",
                "prep_actions": [
                    {"id": "prep_juiced", "name": "Juiced", "yield_amount": 1, "yield_unit": "oz"}
                ],
            }
        ),
        Ingredient.from_dict(
            {
                "id": "ing_simple_syrup",
                "name": "Simple Syrup",
                "ingredient_type": "sub_recipe",
                "sub_recipe_id": "rec_simple_syrup",
                "unit": "oz",
                "category": "Syrup",
            }
        ),
        Ingredient.from_dict(
            {
                "id": "ing_mezcal",
                "name": "Mezcal",
                "unit": "oz",
                "abv": 45,
                "category": "Spirit",
            }
        ),
    ]


@pytest.fixture
def margarita():
    """Provide a Margarita recipe costing $2.10 per serving."""
    return Recipe(
        id="rec_margarita",
        name="Margarita",
        ingredients=[
            RecipeIngredientLine("Tequila", 2, "oz"),
            RecipeIngredientLine("Lime Juice", 1, "oz"),
            RecipeIngredientLine("Triple Sec", 0.5, "oz"),
        ],
        is_cocktail=True,
        category="Sour",
    )


@pytest.fixture
def simple_syrup():
    """Provide a 1000 ml simple syrup sub-recipe costing $1.00."""
    return Recipe(
        id="rec_simple_syrup",
        name="Simple Syrup",
        ingredients=[
            RecipeIngredientLine("Sugar", 500, "g"),
            RecipeIngredientLine("Water", 500, "ml"),
        ],
        yield_total_amount=1000,
        yield_total_unit="ml",
        category="Syrup",
    )


@pytest.fixture
def spirits_batch_settings():
    """Provide settings batching Tequila and Triple Sec, with Lime Juice at service."""
    return BatchSettings(
        ingredient_overrides={
            "Tequila": "batch",
            "Triple Sec": "batch",
            "Lime Juice": "service",
        },
        batch_ingredient_units={"Tequila": "oz", "Triple Sec": "oz"},
    )
