"""
Data models for the barcost engine.

Plain dataclasses built from the JSON-shaped records of the persistence
layer. The engine reads them and never mutates them.
"""

from .ingredient import CustomConversion, Ingredient, PrepAction, ProductVariant
from .recipe import (
    BatchSettings,
    ClarificationSettings,
    InventoryBottle,
    Recipe,
    RecipeIngredientLine,
    lookup_by_name,
    normalize_name_key,
)

__all__ = [
    "CustomConversion",
    "Ingredient",
    "PrepAction",
    "ProductVariant",
    "BatchSettings",
    "ClarificationSettings",
    "InventoryBottle",
    "Recipe",
    "RecipeIngredientLine",
    "lookup_by_name",
    "normalize_name_key",
]
