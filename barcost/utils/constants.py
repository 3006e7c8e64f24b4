"""
Constants and enumerations for the barcost costing engine.

This module defines all system-wide constants including:
- Application metadata
- Unit families (volume, weight, piece)
- Exempt and clarifying-agent keyword lists
- Container presets and batching rules
- Scale-factor scoring weights
"""

from typing import Dict, List

# ============================================================================
# Application Metadata
# ============================================================================

APP_NAME = "barcost"
APP_VERSION = "0.1.0"
ENV_VAR_NAME = "BARCOST_ENV"

# ============================================================================
# Unit Types
# ============================================================================

# Piece-like units, only convertible through an ingredient's custom conversions
PIECE_UNITS: List[str] = [
    "piece",
    "slice",
    "sprig",
    "pinch",
    "drop",
    "bottle",
    "can",
    "each",
]

# Units too small to measure on a quarter-unit grid
SMALL_UNITS: List[str] = ["dash", "drop", "spray", "pinch"]

# Spelled-out or plural forms mapped to the canonical unit
UNIT_ALIASES: Dict[str, str] = {
    "milliliter": "ml",
    "milliliters": "ml",
    "centiliter": "cl",
    "centiliters": "cl",
    "liter": "l",
    "liters": "l",
    "fl. oz": "fl oz",
    "floz": "fl oz",
    "fluid ounce": "fl oz",
    "fluid ounces": "fl oz",
    "ounce": "oz",
    "ounces": "oz",
    "cups": "cup",
    "pint": "pt",
    "pints": "pt",
    "quart": "qt",
    "quarts": "qt",
    "gallon": "gal",
    "gallons": "gal",
    "teaspoon": "tsp",
    "teaspoons": "tsp",
    "tablespoon": "tbsp",
    "tablespoons": "tbsp",
    "dashes": "dash",
    "barspoons": "barspoon",
    "gram": "g",
    "grams": "g",
    "kilogram": "kg",
    "kilograms": "kg",
    "lbs": "lb",
    "pound": "lb",
    "pounds": "lb",
    "pieces": "piece",
    "slices": "slice",
    "sprigs": "sprig",
    "pinches": "pinch",
    "drops": "drop",
    "bottles": "bottle",
    "cans": "can",
}

# Liquid units used when deciding whether a line contributes volume
LIQUID_UNITS: List[str] = [
    "ml",
    "cl",
    "l",
    "oz",
    "fl oz",
    "dash",
    "barspoon",
    "tsp",
    "tbsp",
    "cup",
    "qt",
    "pt",
    "gal",
    "top",
]

# Density units and their factor to g/ml
DENSITY_UNITS_TO_G_PER_ML: Dict[str, float] = {
    "g/ml": 1.0,
    "kg/l": 1.0,
    "g/l": 0.001,
    "g/cup": 1.0 / 236.588,
}

DEFAULT_COST_UNIT = "oz"

# ============================================================================
# Costing
# ============================================================================

INGREDIENT_TYPE_PURCHASED = "purchased"
INGREDIENT_TYPE_SUB_RECIPE = "sub_recipe"
INGREDIENT_TYPES: List[str] = [INGREDIENT_TYPE_PURCHASED, INGREDIENT_TYPE_SUB_RECIPE]

# Ingredients that never carry a cost (matched as whole words)
EXEMPT_INGREDIENTS: List[str] = [
    "water",
    "filtered water",
    "tap water",
    "distilled water",
    "spring water",
    "sparkling water",
    "soda",
    "soda water",
    "club soda",
    "ice",
    "coconut water",
    "top",
]

# Words that are mixing steps rather than prep actions ("Gin, stir")
NON_PREP_ACTION_WORDS: List[str] = [
    "pour",
    "add",
    "stir",
    "shake",
    "combine",
    "mix",
    "prepare",
    "measure",
]

CLARIFYING_AGENT_KEYWORDS: List[str] = [
    "milk",
    "agar",
    "casein",
    "gelatin",
    "bentonite",
    "isinglass",
    "filter",
    "clarifier",
]

COST_MODE_TOTAL = "total"
COST_MODE_SINGLE_SPEC = "single_spec"
COST_MODES: List[str] = [COST_MODE_TOTAL, COST_MODE_SINGLE_SPEC]

DEFAULT_TARGET_POUR_COST = 20.0

# ============================================================================
# Batching
# ============================================================================

BATCH_STATUS_BATCH = "batch"
BATCH_STATUS_SERVICE = "service"
BATCH_STATUSES: List[str] = [BATCH_STATUS_BATCH, BATCH_STATUS_SERVICE]

DEFAULT_CONTAINER_TYPE = "750ml Bottle"
CUSTOM_CONTAINER_TYPE = "Custom"

DEFAULT_DILUTION_PERCENTAGE = 25.0
DILUTION_WATER_NAME = "Water (Dilution)"

# Display rounding steps applied to unpinned amounts in custom batches
BATCH_DISPLAY_INCREMENTS: List[float] = [1.0, 0.5]

# Slack allowed when checking that displayed amounts fit a container
VOLUME_TOLERANCE_ML = 0.01

DEFAULT_CLARIFICATION_AGENT = "Clarification Agent"
MILK_WASH_TECHNIQUE = "milk_wash"
MILK_WASH_AGENT = "Whole Milk"

MAX_INVENTORY_BOTTLE_COLORS = 3

# Ingredient category -> batch timing
BATCHING_RULES: Dict[str, str] = {
    "spirit": BATCH_STATUS_BATCH,
    "liqueur": BATCH_STATUS_BATCH,
    "syrup": BATCH_STATUS_BATCH,
    "vermouth": BATCH_STATUS_BATCH,
    "bitters": BATCH_STATUS_SERVICE,
    "juice": BATCH_STATUS_SERVICE,
    "citrus": BATCH_STATUS_SERVICE,
    "other": BATCH_STATUS_BATCH,
}

CITRUS_INGREDIENTS: List[str] = [
    "lemon juice",
    "lime juice",
    "orange juice",
    "grapefruit juice",
    "lemon",
    "lime",
    "orange",
    "grapefruit",
]

# ============================================================================
# Scale-Factor Scoring
# ============================================================================

WHOLE_NUMBER_BONUS = 10.0
HALF_NUMBER_BONUS = 5.0
DEVIATION_PENALTY_MULTIPLIER = 100.0
CONTAINER_FILL_BONUS = 20.0
MAX_DEVIATION_PERCENT = 0.08
# Amounts at or below this size are never invalidated by deviation
MIN_SCORED_AMOUNT = 0.5
WHOLE_NUMBER_TOLERANCE = 0.01
HALF_NUMBER_TOLERANCE = 0.01
MIN_SCALE_THRESHOLD = 0.5
CANDIDATE_SEARCH_STEP = 0.5
MEASURE_GRID = 0.25

DEFAULT_MAX_SCALE_CANDIDATES = 2000

# ============================================================================
# Error Messages
# ============================================================================

ERROR_REQUIRED_FIELD = "This field is required"
ERROR_INVALID_NUMBER = "Must be a valid number"
ERROR_INVALID_POSITIVE = "Must be a positive number"
ERROR_INVALID_NON_NEGATIVE = "Must be zero or a positive number"
ERROR_INVALID_CHOICE = "Invalid value"
