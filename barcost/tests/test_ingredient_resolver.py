"""Tests for ingredient and recipe resolution."""

import logging

import pytest

from barcost.models import Recipe, RecipeIngredientLine
from barcost.services.exceptions import RecipeNotFound
from barcost.services.ingredient_resolver import (
    base_ingredient_name,
    find_ingredient_by_id,
    find_matching_ingredient,
    find_recipe_by_id,
    find_recipe_by_name,
    normalize_for_match,
    resolve_line_ingredient,
    split_ingredient_text,
)


class TestFindMatchingIngredient:
    """Tests for find_matching_ingredient."""

    def test_exact_name_case_insensitive(self, catalog):
        assert find_matching_ingredient("  tequila ", catalog).id == "ing_tequila"

    def test_normalized_name(self, catalog):
        """Punctuation and spacing differences still match."""
        assert find_matching_ingredient("Triple-Sec", catalog).id == "ing_triple_sec"
        assert find_matching_ingredient("limejuice", catalog).id == "ing_lime_juice"

    def test_alias(self, catalog):
        assert find_matching_ingredient("blanco tequila", catalog).id == "ing_tequila"

    def test_no_match(self, catalog):
        assert find_matching_ingredient("Absinthe", catalog) is None
        assert find_matching_ingredient("", catalog) is None
        assert find_matching_ingredient("Tequila", []) is None

    def test_id_is_authoritative(self, catalog):
        """An id wins even when the name points elsewhere."""
        found = find_matching_ingredient("Tequila", catalog, ingredient_id="ing_triple_sec")
        assert found.id == "ing_triple_sec"

    def test_unknown_id_does_not_fall_back_to_name(self, catalog, caplog):
        with caplog.at_level(logging.WARNING, logger="barcost.services"):
            found = find_matching_ingredient("Tequila", catalog, ingredient_id="ing_missing")

        assert found is None
        records = [r for r in caplog.records if getattr(r, "operation", None) == "find_matching_ingredient"]
        assert len(records) == 1
        assert records[0].outcome == "id_not_found"
        assert records[0].ingredient_id == "ing_missing"

    def test_find_by_id_is_quiet(self, catalog, caplog):
        with caplog.at_level(logging.WARNING, logger="barcost.services"):
            assert find_ingredient_by_id("ing_lime", catalog).name == "Lime"
            assert find_ingredient_by_id("ing_missing", catalog) is None
            assert find_ingredient_by_id(None, catalog) is None

        assert caplog.records == []


class TestSplitIngredientText:
    """Tests for legacy "Name - prep" text."""

    def test_dash_separator(self):
        assert split_ingredient_text("Lime - juiced") == ("Lime", "juiced")

    def test_comma_separator(self):
        assert split_ingredient_text("Lime, juiced") == ("Lime", "juiced")

    def test_mixing_verb_is_not_prep(self):
        assert split_ingredient_text("Gin, stir") == ("Gin, stir", "")

    def test_plain_text(self):
        assert split_ingredient_text(" Gin ") == ("Gin", "")
        assert split_ingredient_text(None) == ("", "")

    def test_base_ingredient_name(self):
        assert base_ingredient_name("Lime - juiced") == "Lime"
        assert base_ingredient_name("Lime, juiced") == "Lime"
        assert base_ingredient_name(None) == ""


class TestResolveLineIngredient:
    """Tests for resolve_line_ingredient."""

    def test_unlinked_line_uses_base_name(self, catalog):
        line = RecipeIngredientLine("Lime - juiced", 1, "oz")
        assert resolve_line_ingredient(line, catalog).id == "ing_lime"

    def test_linked_line_uses_id(self, catalog):
        line = RecipeIngredientLine("Something Else", 1, "oz", ingredient_id="ing_tequila")
        assert resolve_line_ingredient(line, catalog).name == "Tequila"


class TestRecipeLookup:
    """Tests for recipe lookup by name and id."""

    @pytest.fixture
    def recipes(self, margarita, simple_syrup):
        return [margarita, simple_syrup]

    def test_by_name(self, recipes):
        assert find_recipe_by_name(" simple syrup ", recipes).id == "rec_simple_syrup"
        assert find_recipe_by_name("Daiquiri", recipes) is None
        assert find_recipe_by_name("", recipes) is None

    def test_by_id(self, recipes):
        assert find_recipe_by_id("rec_margarita", recipes).name == "Margarita"
        assert find_recipe_by_id("rec_missing", recipes) is None
        assert find_recipe_by_id("rec_missing", None) is None

    def test_by_id_required(self, recipes):
        with pytest.raises(RecipeNotFound) as exc_info:
            find_recipe_by_id("rec_missing", recipes, required=True)
        assert exc_info.value.recipe_id == "rec_missing"
        assert "rec_missing" in str(exc_info.value)


def test_normalize_for_match():
    assert normalize_for_match("St-Germain ") == "stgermain"
    assert normalize_for_match(None) == ""


def test_recipe_key_prefers_id():
    assert Recipe(id="rec_1", name="Gimlet").key == "rec_1"
    assert Recipe(id=None, name="  House  Gimlet ").key == "house gimlet"
