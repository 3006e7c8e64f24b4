"""
Tests for single-line costing.

Tests cover:
- Priced lines and unit conversion to the costing unit
- Exempt ingredients
- Prep actions
- Product variant fallback
- Sub-recipe ingredients
- Display information
"""

import logging

import pytest

from barcost.models import Ingredient, ProductVariant, RecipeIngredientLine
from barcost.services.ingredient_cost_service import (
    CostStatus,
    calculate_ingredient_cost,
    calculate_variant_cost_per_oz,
    get_ingredient_info,
    is_exempt_ingredient,
    summarize_statuses,
)


class TestExemptIngredients:
    """Tests for is_exempt_ingredient."""

    @pytest.mark.parametrize("name", ["Water", "Ice", "Soda Water", "club soda", "Crushed Ice"])
    def test_exempt(self, name):
        assert is_exempt_ingredient(name)

    @pytest.mark.parametrize("name", ["Spiced Rum", "Licorice Liqueur", "Tequila", "", None])
    def test_not_exempt(self, name):
        """Matching is on whole words only."""
        assert not is_exempt_ingredient(name)


class TestCalculateIngredientCost:
    """Tests for calculate_ingredient_cost."""

    def test_priced_line(self, catalog):
        result = calculate_ingredient_cost(RecipeIngredientLine("Tequila", 2, "oz"), catalog)
        assert result.status == CostStatus.HAS_COST
        assert result.cost == pytest.approx(1.60)

    def test_converts_to_costing_unit(self, catalog):
        """A 30 ml pour of an oz-priced spirit is priced per oz."""
        result = calculate_ingredient_cost(RecipeIngredientLine("Tequila", 29.5735, "ml"), catalog)
        assert result.cost == pytest.approx(0.80)

    def test_missing_unit_defaults_to_oz(self, catalog):
        result = calculate_ingredient_cost(RecipeIngredientLine("Triple Sec", 1), catalog)
        assert result.cost == pytest.approx(0.60)

    def test_not_found(self, catalog):
        result = calculate_ingredient_cost(RecipeIngredientLine("Absinthe", 1, "oz"), catalog)
        assert result.status == CostStatus.NOT_FOUND
        assert result.cost == 0.0

    @pytest.mark.parametrize("amount,unit", [(2, "oz"), (0, "oz"), (1, "piece"), (5, "handful")])
    def test_exempt_line_always_priced(self, catalog, amount, unit):
        result = calculate_ingredient_cost(RecipeIngredientLine("Ice", amount, unit), catalog)
        assert result.status == CostStatus.HAS_COST
        assert result.cost == 0.0

    def test_zero_amount_priced_line(self, catalog):
        result = calculate_ingredient_cost(RecipeIngredientLine("Tequila", 0, "oz"), catalog)
        assert result.status == CostStatus.HAS_COST
        assert result.cost == 0.0

    def test_unconvertible_unit(self, catalog):
        result = calculate_ingredient_cost(RecipeIngredientLine("Tequila", 1, "piece"), catalog)
        assert result.status == CostStatus.NO_COST
        assert result.cost == 0.0

    def test_no_price(self, catalog):
        result = calculate_ingredient_cost(RecipeIngredientLine("Mezcal", 1, "oz"), catalog)
        assert result.status == CostStatus.NO_COST

    def test_prep_action_cost(self, catalog):
        """Two oz of juice from limes yielding 1 oz each costs two limes."""
        line = RecipeIngredientLine(
            "Lime", 2, "oz", ingredient_id="ing_lime", prep_action_id="prep_juiced"
        )
        result = calculate_ingredient_cost(line, catalog)
        assert result.status == CostStatus.HAS_COST
        assert result.cost == pytest.approx(0.60)

    def test_invalid_prep_action(self, catalog, caplog):
        line = RecipeIngredientLine(
            "Lime", 2, "oz", ingredient_id="ing_lime", prep_action_id="prep_zested"
        )
        with caplog.at_level(logging.WARNING, logger="barcost.services"):
            result = calculate_ingredient_cost(line, catalog)

        assert result.status == CostStatus.INVALID_PREP_ACTION
        assert result.cost == 0.0
        assert any(getattr(r, "outcome", None) == "invalid_prep_action" for r in caplog.records)


class TestVariantFallback:
    """Tests for product variant pricing."""

    def test_purchase_price(self):
        variant = ProductVariant(purchase_price=25.0, purchase_quantity=25.0, purchase_unit="oz")
        assert calculate_variant_cost_per_oz(variant) == pytest.approx(1.0)

    def test_purchase_price_in_ml(self):
        variant = ProductVariant(purchase_price=29.5735, purchase_quantity=750, purchase_unit="ml")
        assert calculate_variant_cost_per_oz(variant) == pytest.approx(29.5735 / (750 / 29.5735))

    def test_case_price(self):
        variant = ProductVariant(case_price=120.0, bottles_per_case=12, size_ml=750)
        assert calculate_variant_cost_per_oz(variant) == pytest.approx(10.0 / (750 / 29.5735))

    def test_unusable_variant(self):
        assert calculate_variant_cost_per_oz(ProductVariant()) == 0.0
        assert calculate_variant_cost_per_oz(None) == 0.0

    def test_cheapest_variant_used(self, catalog):
        variants = {
            "ing_mezcal": [
                ProductVariant(purchase_price=40.0, purchase_quantity=20.0, purchase_unit="oz"),
                {"purchase_price": 30.0, "purchase_quantity": 20.0, "purchase_unit": "oz"},
            ]
        }
        result = calculate_ingredient_cost(
            RecipeIngredientLine("Mezcal", 2, "oz"), catalog, variants_lookup=variants
        )
        assert result.status == CostStatus.HAS_COST
        assert result.cost == pytest.approx(3.0)

    def test_variants_ignored_when_priced(self, catalog):
        variants = {"ing_tequila": [ProductVariant(purchase_price=1.0, purchase_quantity=100.0)]}
        result = calculate_ingredient_cost(
            RecipeIngredientLine("Tequila", 1, "oz"), catalog, variants_lookup=variants
        )
        assert result.cost == pytest.approx(0.80)


class TestSubRecipeIngredient:
    """Tests for ingredients produced by another recipe."""

    def test_cost_per_ml_of_yield(self, catalog, simple_syrup):
        line = RecipeIngredientLine("Simple Syrup", 100, "ml")
        result = calculate_ingredient_cost(line, catalog, all_recipes=[simple_syrup])
        assert result.status == CostStatus.HAS_COST
        assert result.cost == pytest.approx(0.10)

    def test_missing_sub_recipe(self, catalog):
        line = RecipeIngredientLine("Simple Syrup", 1, "oz")
        result = calculate_ingredient_cost(line, catalog, all_recipes=[])
        assert result.status == CostStatus.NO_COST

    def test_sub_recipe_without_declared_yield(self, catalog, simple_syrup):
        simple_syrup.yield_total_amount = None
        line = RecipeIngredientLine("Simple Syrup", 1, "oz")
        result = calculate_ingredient_cost(line, catalog, all_recipes=[simple_syrup])
        assert result.status == CostStatus.NO_COST

    def test_sub_recipe_with_zero_cost(self, catalog, simple_syrup):
        """A sub-recipe made only of free ingredients has no cost to prorate."""
        simple_syrup.ingredients = [RecipeIngredientLine("Water", 1000, "ml")]
        line = RecipeIngredientLine("Simple Syrup", 1, "oz")
        result = calculate_ingredient_cost(line, catalog, all_recipes=[simple_syrup])
        assert result.status == CostStatus.NO_COST
        assert result.cost == 0.0


class TestGetIngredientInfo:
    """Tests for get_ingredient_info."""

    def test_priced(self, catalog):
        info = get_ingredient_info(RecipeIngredientLine("tequila", 2, "oz"), catalog)
        assert info.cost_status == CostStatus.HAS_COST
        assert info.display_value == "Tequila"
        assert info.display_unit == "oz"

    def test_prep_action_display(self, catalog):
        line = RecipeIngredientLine("Lime", 1, "oz", ingredient_id="ing_lime", prep_action_id="prep_juiced")
        info = get_ingredient_info(line, catalog)
        assert info.display_value == "Lime, Juiced"
        assert info.display_unit == "oz"
        assert info.cost_status == CostStatus.HAS_COST

    def test_unknown_prep_action(self, catalog):
        line = RecipeIngredientLine("Lime", 1, "oz", ingredient_id="ing_lime", prep_action_id="prep_zested")
        info = get_ingredient_info(line, catalog)
        assert info.cost_status == CostStatus.INVALID_PREP_ACTION
        assert info.display_value == "Lime"

    def test_not_found(self, catalog):
        info = get_ingredient_info(RecipeIngredientLine("Absinthe", 1, "oz"), catalog)
        assert info.cost_status == CostStatus.NOT_FOUND
        assert info.display_value == "Absinthe"
        assert info.display_unit is None

    def test_empty_line(self, catalog):
        info = get_ingredient_info(RecipeIngredientLine("", 1, "oz"), catalog)
        assert info.cost_status is None

    def test_sub_recipe(self, catalog, simple_syrup):
        info = get_ingredient_info(
            RecipeIngredientLine("Simple Syrup", 1, "oz"), catalog, all_recipes=[simple_syrup]
        )
        assert info.cost_status == CostStatus.HAS_COST

    def test_unpriced(self, catalog):
        info = get_ingredient_info(RecipeIngredientLine("Mezcal", 1, "oz"), catalog)
        assert info.cost_status == CostStatus.NO_COST


def test_summarize_statuses(catalog):
    lines = [
        RecipeIngredientLine("Tequila", 1, "oz"),
        RecipeIngredientLine("Water", 1, "oz"),
        RecipeIngredientLine("Absinthe", 1, "oz"),
    ]
    results = [calculate_ingredient_cost(line, catalog) for line in lines]
    assert summarize_statuses(results) == {CostStatus.HAS_COST: 2, CostStatus.NOT_FOUND: 1}


def test_ingredient_from_dict_parses_prep_action_json():
    ingredient = Ingredient.from_dict(
        {
            "name": "Orange",
            "prep_actions": '[{"id": "p1", "name": "Zested", "yield_amount": 2, "yield_unit": "tsp"}]',
        }
    )
    assert ingredient.find_prep_action("p1").yield_unit == "tsp"
