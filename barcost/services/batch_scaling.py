"""
Batch Scaling Service - optimal scale-factor search for batched recipes.

Given a container volume and the recipe lines designated for batching, find
the largest practical scale factor that does not overflow the container and
lands every measurable ingredient near a quarter-unit, preferring whole and
half units.

Search outline:
1. maxScale = container volume / single-serving batch volume
2. The largest-volume line is the base ingredient
3. Candidates: maxScale, then the scales that put the base ingredient on
   each half unit below its maxScale amount, down to 50% of it
4. Each candidate is scored; candidates with any line more than 8% off its
   nearest quarter unit are invalid
5. The best valid candidate wins (first found on ties)
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence

from barcost.models import Ingredient, RecipeIngredientLine, lookup_by_name
from barcost.services.ingredient_resolver import resolve_line_ingredient
from barcost.services.logging_utils import get_service_logger, log_operation
from barcost.services.unit_converter import convert_amount, convert_to_ml, is_small_unit
from barcost.utils.config import get_config
from barcost.utils.constants import (
    CANDIDATE_SEARCH_STEP,
    CONTAINER_FILL_BONUS,
    DEVIATION_PENALTY_MULTIPLIER,
    HALF_NUMBER_BONUS,
    HALF_NUMBER_TOLERANCE,
    MAX_DEVIATION_PERCENT,
    MEASURE_GRID,
    MIN_SCALE_THRESHOLD,
    MIN_SCORED_AMOUNT,
    WHOLE_NUMBER_BONUS,
    WHOLE_NUMBER_TOLERANCE,
)

logger = get_service_logger(__name__)


# ============================================================================
# Data Classes
# ============================================================================


@dataclass
class ScalingLine:
    """A batch line prepared for scoring."""

    name: str
    original_ml: float
    target_unit: str
    ingredient: Optional[Ingredient] = None
    is_small: bool = False

    def amount_at(self, scale_factor: float) -> Optional[float]:
        """Display amount of this line at a scale factor."""
        return convert_amount(self.original_ml * scale_factor, "ml", self.target_unit, self.ingredient)


@dataclass
class ScaleSearchResult:
    """Outcome of a scale-factor search.

    is_fallback is True when no candidate was valid and maxScale was
    returned unscored.
    """

    scale_factor: float
    score: Optional[float]
    max_scale: float
    is_fallback: bool = False
    candidates_evaluated: int = 0


# ============================================================================
# Preparation
# ============================================================================


def prepare_scaling_lines(
    ingredient_lines: Sequence[RecipeIngredientLine],
    unit_overrides: Optional[Mapping[str, str]],
    catalog: Sequence[Ingredient],
) -> List[ScalingLine]:
    """
    Convert batch lines to per-serving ml with their display units.

    A line's display unit is its unit override, else its own unit, else ml;
    a unit the line cannot be shown in falls back to ml. Lines with no
    measurable volume are dropped.

    Args:
        ingredient_lines: Lines designated for batching
        unit_overrides: Map of line name -> display unit
        catalog: Ingredient catalog

    Returns:
        List of ScalingLine with original_ml > 0
    """
    prepared = []
    for line in ingredient_lines:
        ingredient = resolve_line_ingredient(line, catalog)
        original_ml = convert_to_ml(line.amount, line.unit or "ml", ingredient)
        if not original_ml or original_ml <= 0:
            continue

        target_unit = lookup_by_name(unit_overrides, line.ingredient_name) or line.unit or "ml"
        if convert_amount(original_ml, "ml", target_unit, ingredient) is None:
            target_unit = "ml"

        prepared.append(
            ScalingLine(
                name=line.ingredient_name,
                original_ml=original_ml,
                target_unit=target_unit,
                ingredient=ingredient,
                is_small=is_small_unit(target_unit),
            )
        )
    return prepared


def calculate_max_scale(lines: Sequence[ScalingLine], container_volume_ml: float) -> float:
    """Largest scale at which the batch lines still fit the container."""
    single_serving_ml = sum(line.original_ml for line in lines)
    if single_serving_ml <= 0 or not container_volume_ml or container_volume_ml <= 0:
        return 0.0
    return container_volume_ml / single_serving_ml


def find_base_line(lines: Sequence[ScalingLine]) -> ScalingLine:
    """Largest line by volume; the first one wins on ties."""
    base = lines[0]
    for line in lines[1:]:
        if line.original_ml > base.original_ml:
            base = line
    return base


# ============================================================================
# Candidate Generation
# ============================================================================


def generate_candidate_scales(
    base_line: ScalingLine, max_scale: float, max_candidates: Optional[int] = None
) -> List[float]:
    """
    Generate candidate scale factors, maxScale first, then descending.

    Args:
        base_line: Largest line by volume
        max_scale: Largest scale that fits the container
        max_candidates: Cap on the number of candidates (default from config)

    Returns:
        Distinct candidate scale factors, none above max_scale
    """
    if max_candidates is None:
        max_candidates = get_config().max_scale_candidates

    candidates = [max_scale]
    base_amount = base_line.amount_at(1.0)
    if not base_amount or base_amount <= 0:
        return candidates

    max_base_amount = base_amount * max_scale
    amount = float(math.floor(max_base_amount))
    while amount > 0 and len(candidates) < max_candidates:
        scale_factor = amount / base_amount
        if scale_factor not in candidates:
            candidates.append(scale_factor)
        if amount / max_base_amount < MIN_SCALE_THRESHOLD:
            break
        amount -= CANDIDATE_SEARCH_STEP

    return candidates


# ============================================================================
# Scoring
# ============================================================================


def _round_half_up(value: float) -> float:
    return math.floor(value + 0.5)


def is_whole_number(value: float) -> bool:
    return abs(value - _round_half_up(value)) < WHOLE_NUMBER_TOLERANCE


def is_half_number(value: float) -> bool:
    return abs(value % 1 - 0.5) < HALF_NUMBER_TOLERANCE


def quarter_deviation(amount: float) -> float:
    """Distance from amount to the nearest quarter unit."""
    nearest = _round_half_up(amount / MEASURE_GRID) * MEASURE_GRID
    return abs(amount - nearest)


def score_line(line: ScalingLine, scale_factor: float) -> Optional[float]:
    """
    Score one line at a scale factor.

    Args:
        line: Prepared batch line
        scale_factor: Candidate scale factor

    Returns:
        Line score, or None if the scaled amount is unmeasurable
    """
    if line.is_small:
        return 0.0

    amount = line.amount_at(scale_factor)
    if amount is None:
        return 0.0

    deviation = quarter_deviation(amount)
    deviation_percent = deviation / amount if amount > 0 else 0.0

    if amount > MIN_SCORED_AMOUNT and deviation_percent > MAX_DEVIATION_PERCENT:
        return None

    score = 0.0
    if is_whole_number(amount):
        score += WHOLE_NUMBER_BONUS
    elif is_half_number(amount):
        score += HALF_NUMBER_BONUS

    score -= deviation_percent * DEVIATION_PENALTY_MULTIPLIER
    return score


def score_scale_factor(
    lines: Sequence[ScalingLine], scale_factor: float, max_scale: float
) -> Optional[float]:
    """
    Score a candidate scale factor across all lines.

    Args:
        lines: Prepared batch lines
        scale_factor: Candidate scale factor
        max_scale: Largest scale that fits the container

    Returns:
        Total score including the container-fill bonus, or None if any line
        makes the candidate invalid
    """
    total = 0.0
    for line in lines:
        line_score = score_line(line, scale_factor)
        if line_score is None:
            return None
        total += line_score

    total += scale_factor / max_scale * CONTAINER_FILL_BONUS
    return total


# ============================================================================
# Search
# ============================================================================


def search_scale_factor(
    ingredient_lines: Sequence[RecipeIngredientLine],
    unit_overrides: Optional[Mapping[str, str]],
    catalog: Sequence[Ingredient],
    container_volume_ml: float,
    max_candidates: Optional[int] = None,
) -> ScaleSearchResult:
    """
    Search for the best scale factor and report how it was found.

    Args:
        ingredient_lines: Lines designated for batching
        unit_overrides: Map of line name -> display unit
        catalog: Ingredient catalog
        container_volume_ml: Volume available for the batch
        max_candidates: Cap on candidates evaluated (default from config)

    Returns:
        ScaleSearchResult. With no measurable lines, or a container that
        cannot hold one serving, the scale factor is 1. When every candidate
        is invalid the scale factor is maxScale and is_fallback is True.
    """
    lines = prepare_scaling_lines(ingredient_lines, unit_overrides, catalog)
    if not lines:
        return ScaleSearchResult(scale_factor=1.0, score=None, max_scale=1.0)

    max_scale = calculate_max_scale(lines, container_volume_ml)
    if max_scale < 1:
        log_operation(
            logger,
            operation="search_scale_factor",
            outcome="container_too_small",
            level=logging.DEBUG,
            container_volume_ml=container_volume_ml,
            max_scale=max_scale,
        )
        return ScaleSearchResult(scale_factor=1.0, score=None, max_scale=max_scale)

    base_line = find_base_line(lines)
    candidates = generate_candidate_scales(base_line, max_scale, max_candidates)

    best_scale = None
    best_score = -math.inf
    for scale_factor in candidates:
        score = score_scale_factor(lines, scale_factor, max_scale)
        if score is not None and score > best_score:
            best_score = score
            best_scale = scale_factor

    if best_scale is None:
        log_operation(
            logger,
            operation="search_scale_factor",
            outcome="fallback_to_max_scale",
            level=logging.WARNING,
            max_scale=max_scale,
            candidates_evaluated=len(candidates),
        )
        return ScaleSearchResult(
            scale_factor=max_scale,
            score=None,
            max_scale=max_scale,
            is_fallback=True,
            candidates_evaluated=len(candidates),
        )

    log_operation(
        logger,
        operation="search_scale_factor",
        outcome="success",
        level=logging.DEBUG,
        scale_factor=best_scale,
        score=best_score,
        max_scale=max_scale,
        base_ingredient=base_line.name,
    )
    return ScaleSearchResult(
        scale_factor=best_scale,
        score=best_score,
        max_scale=max_scale,
        candidates_evaluated=len(candidates),
    )


def find_optimal_scale_factor(
    ingredient_lines: Sequence[RecipeIngredientLine],
    unit_overrides: Optional[Mapping[str, str]],
    catalog: Sequence[Ingredient],
    container_volume_ml: float,
) -> float:
    """
    Find the optimal scale factor for batching lines into a container.

    Args:
        ingredient_lines: Lines designated for batching
        unit_overrides: Map of line name -> display unit
        catalog: Ingredient catalog
        container_volume_ml: Volume available for the batch

    Returns:
        Scale factor (see search_scale_factor for the edge cases)
    """
    return search_scale_factor(
        ingredient_lines, unit_overrides, catalog, container_volume_ml
    ).scale_factor
