"""Services package - costing and batch-scaling logic for barcost.

Services are stateless functions over the dataclasses in barcost.models.
Callers supply the recipe, ingredient catalog and settings on every call;
nothing is cached or persisted here.

Service Modules:
- ingredient_resolver: Match recipe lines to catalog ingredients and recipes
- ingredient_cost_service: Price a single recipe line
- recipe_cost_service: Price whole recipes (sub-recipes, single-serving view),
  pour cost and ABV metrics
- batch_calculation: Batch metrics, batch plans and sub-recipe scaling
- batch_scaling: Optimal scale-factor search for batched containers

Infrastructure:
- exceptions: Custom exception classes for service layer errors
- logging_utils: Structured service logging
- dto_utils: Cost and amount formatting for result objects
- unit_converter: Unit conversion utilities

Only the infrastructure modules are imported here; the service modules
depend on barcost.models, which itself imports the exceptions module.
"""

from . import dto_utils, exceptions, logging_utils, unit_converter

# Export commonly used exceptions
from .exceptions import (
    CircularSubRecipeError,
    RecipeNotFound,
    ServiceError,
    ValidationError,
)

__all__ = [
    # Infrastructure modules
    "dto_utils",
    "exceptions",
    "logging_utils",
    "unit_converter",
    # Exceptions
    "ServiceError",
    "RecipeNotFound",
    "CircularSubRecipeError",
    "ValidationError",
]
