"""Service layer exception classes for barcost.

This module defines the exceptions raised by the costing and scaling
services. Line-level problems (unknown ingredient, missing price, bad prep
action) are never raised; they are reported through CostStatus values so a
single bad line cannot abort a whole calculation.

Exception Hierarchy:
    ServiceError (base)
    ├── RecipeNotFound
    ├── CircularSubRecipeError
    └── ValidationError
"""

from typing import List


class ServiceError(Exception):
    """Base exception for all service layer errors.

    All service-specific exceptions should inherit from this class.
    """

    pass


class RecipeNotFound(ServiceError):
    """Raised when a recipe cannot be found by ID.

    Args:
        recipe_id: The recipe ID that was not found

    Example:
        >>> raise RecipeNotFound("rec_42")
        RecipeNotFound: Recipe with ID rec_42 not found
    """

    def __init__(self, recipe_id):
        self.recipe_id = recipe_id
        super().__init__(f"Recipe with ID {recipe_id} not found")


class CircularSubRecipeError(ServiceError):
    """Raised when sub-recipe resolution revisits a recipe already on the path.

    Args:
        path: Recipe keys from the outermost recipe to the repeated one

    Example:
        >>> raise CircularSubRecipeError(["Negroni Batch", "House Vermouth", "Negroni Batch"])
        CircularSubRecipeError: Circular sub-recipe reference: Negroni Batch -> House Vermouth -> Negroni Batch
    """

    def __init__(self, path: List[str]):
        self.path = list(path)
        super().__init__(f"Circular sub-recipe reference: {' -> '.join(str(p) for p in self.path)}")


class ValidationError(ServiceError):
    """Raised when data validation fails."""

    def __init__(self, errors: list):
        self.errors = errors
        error_msg = "; ".join(errors)
        super().__init__(f"Validation failed: {error_msg}")
