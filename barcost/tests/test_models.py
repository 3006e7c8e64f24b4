"""Tests for the ingredient and recipe models."""

import pytest

from barcost.models import (
    BatchSettings,
    ClarificationSettings,
    CustomConversion,
    Ingredient,
    InventoryBottle,
    ProductVariant,
    Recipe,
    RecipeIngredientLine,
    lookup_by_name,
)
from barcost.services.exceptions import ValidationError


class TestIngredient:
    """Tests for Ingredient."""

    def test_from_dict(self):
        ingredient = Ingredient.from_dict(
            {
                "id": "ing_1",
                "name": " Honey Syrup ",
                "unit": "oz",
                "cost_per_unit": "0.25",
                "density_value": 1.3,
                "custom_conversions": [{"from_unit": "cup", "to_unit": "oz", "conversion_factor": 8}],
            }
        )
        assert ingredient.name == "Honey Syrup"
        assert ingredient.cost_per_unit == 0.25
        assert ingredient.is_purchased
        assert ingredient.density_g_per_ml == pytest.approx(1.3)
        assert ingredient.custom_conversions[0].factor == 8

    def test_costing_unit(self):
        assert Ingredient(id=None, name="A", unit="ml", cost_unit="l").costing_unit == "l"
        assert Ingredient(id=None, name="A", unit="ml").costing_unit == "ml"
        assert Ingredient(id=None, name="A").costing_unit == "oz"

    def test_density_units(self):
        assert Ingredient(id=None, name="A", density_value=1000, density_unit="g/l").density_g_per_ml == pytest.approx(1.0)
        assert Ingredient(id=None, name="A", density_value=1, density_unit="stone/pint").density_g_per_ml is None
        assert Ingredient(id=None, name="A", density_value=0).density_g_per_ml is None

    def test_invalid_records(self):
        with pytest.raises(ValidationError) as exc_info:
            Ingredient.from_dict({"name": "", "ingredient_type": "gift", "cost_per_unit": -1, "abv": 140})
        assert len(exc_info.value.errors) == 4

    def test_unparseable_prep_actions(self):
        assert Ingredient.from_dict({"name": "Lime", "prep_actions": "not json"}).prep_actions == []

    def test_conversion_amount_pair(self):
        conversion = CustomConversion(from_unit="piece", to_unit="oz", from_amount=2, to_amount=3)
        assert conversion.factor == pytest.approx(1.5)
        assert CustomConversion(from_unit="piece", to_unit="oz").factor is None

    def test_product_variant_from_dict(self):
        variant = ProductVariant.from_dict({"purchase_price": "30", "purchase_quantity": 25.36, "unit": "oz"})
        assert variant.purchase_price == 30.0
        assert variant.purchase_unit == "oz"
        assert variant.case_price is None


class TestRecipeIngredientLine:
    """Tests for RecipeIngredientLine."""

    def test_unparseable_amount_is_zero(self):
        assert RecipeIngredientLine.from_dict({"ingredient_name": "Gin", "amount": "a splash"}).amount == 0.0

    def test_negative_amount_rejected(self):
        with pytest.raises(ValidationError):
            RecipeIngredientLine.from_dict({"ingredient_name": "Gin", "amount": -1})

    def test_round_trip(self):
        data = {
            "ingredient_name": "Lime",
            "amount": 1.0,
            "unit": "oz",
            "ingredient_id": "ing_lime",
            "prep_action_id": "prep_juiced",
            "notes": "fresh",
        }
        assert RecipeIngredientLine.from_dict(data).to_dict() == data


class TestBatchSettings:
    """Tests for BatchSettings."""

    def test_defaults(self):
        settings = BatchSettings.from_dict({})
        assert settings.scale_factor == 1.0
        assert settings.container_type == "750ml Bottle"
        assert settings.dilution_percentage == 25.0
        assert settings.constrain_to_total_volume is True
        assert not settings.has_overrides

    def test_zero_dilution_kept(self):
        assert BatchSettings.from_dict({"dilution_percentage": 0}).dilution_percentage == 0.0

    def test_round_trip(self):
        data = {
            "ingredient_overrides": {"Gin": "batch", "Lemon Juice": "service"},
            "scale_factor": 12.5,
            "is_container_custom": True,
            "container_type": "Custom",
            "container_count": 2,
            "include_dilution": True,
            "dilution_percentage": 20.0,
            "constrain_to_total_volume": False,
            "batch_ingredient_units": {"Gin": "oz"},
            "batch_ingredient_amounts": {"Gin": 25.0},
            "batch_instructions": "Chill overnight",
            "clarification": {
                "enabled": True,
                "technique": "milk_wash",
                "agent_ingredient_name": None,
                "agent_ratio_percentage": 20.0,
            },
            "inventory_bottle": {"enabled": True, "size_ml": 750.0, "label": "GIN", "colors": ["red"]},
        }
        assert BatchSettings.from_dict(data).to_dict() == data

    def test_invalid_values(self):
        with pytest.raises(ValidationError) as exc_info:
            BatchSettings.from_dict(
                {
                    "ingredient_overrides": {"Gin": "later"},
                    "scale_factor": 0,
                    "container_count": -1,
                    "dilution_percentage": -5,
                }
            )
        assert len(exc_info.value.errors) == 4

    def test_too_many_bottle_colors(self):
        with pytest.raises(ValidationError):
            InventoryBottle.from_dict({"colors": ["red", "blue", "green", "black"]})

    def test_lookups_ignore_case_and_spacing(self):
        settings = BatchSettings(
            ingredient_overrides={"Lime  Juice": "service"},
            batch_ingredient_units={"TEQUILA": "ml"},
            batch_ingredient_amounts={"tequila": "20"},
        )
        assert settings.status_for("lime juice") == "service"
        assert settings.status_for("Gin") is None
        assert settings.unit_for("Tequila") == "ml"
        assert settings.unit_for("Gin", "oz") == "oz"
        assert settings.pinned_amount_for("Tequila") == 20.0

    def test_clarification_agent_name(self):
        assert ClarificationSettings(technique="milk_wash").agent_name == "Whole Milk"
        assert ClarificationSettings(technique="agar").agent_name == "Clarification Agent"
        assert ClarificationSettings(agent_ingredient_name="Agar").agent_name == "Agar"


class TestRecipe:
    """Tests for Recipe."""

    def test_from_dict_legacy_serving_fields(self):
        recipe = Recipe.from_dict(
            {
                "id": "rec_1",
                "name": "Gimlet",
                "ingredients": [{"ingredient_name": "Gin", "amount": 2, "unit": "oz"}],
                "serving_size": 3,
                "serving_unit": "oz",
                "is_cocktail": True,
                "batch_settings": {"scale_factor": 4},
            }
        )
        assert recipe.resolved_serving_amount == 3
        assert recipe.resolved_serving_unit == "oz"
        assert recipe.ingredients[0].amount == 2
        assert recipe.batch_settings.scale_factor == 4
        assert recipe.is_sellable

    def test_yield_precedence(self):
        recipe = Recipe(id="r", name="R", yield_amount=1, yield_unit="l", yield_total_amount=500, yield_total_unit="ml")
        assert recipe.resolved_yield_amount == 500
        assert recipe.resolved_yield_unit == "ml"
        assert recipe.has_declared_yield

    def test_yield_without_unit_is_not_declared(self):
        recipe = Recipe(id="r", name="R", yield_total_amount=500)
        assert recipe.resolved_yield_unit == "ml"
        assert not recipe.has_declared_yield

    def test_non_positive_yield(self):
        assert Recipe(id="r", name="R", yield_total_amount=0).resolved_yield_amount is None


def test_lookup_by_name():
    mapping = {"Lime Juice": "service"}
    assert lookup_by_name(mapping, "Lime Juice") == "service"
    assert lookup_by_name(mapping, " lime  JUICE ") == "service"
    assert lookup_by_name(mapping, "Gin") is None
    assert lookup_by_name(None, "Gin") is None
