"""Portion rescaling of an aggregated result.

Pure functions: the stored AggregatedResult is never modified, the view is
recomputed from it every time the user moves the portion slider.
"""

from pydantic import ValidationError as PydanticValidationError

from nutriscan.domain.estimation.models import (
    DEFAULT_PORTION_PCT,
    MAX_PORTION_PCT,
    MIN_PORTION_PCT,
    PORTION_STEP_PCT,
    AggregatedResult,
    PortionAdjustment,
    ScaledView,
)
from nutriscan.domain.shared.errors import InvalidPortionError
from nutriscan.domain.shared.numeric import round1, round_int, scale


def validate_portion(pct: int) -> PortionAdjustment:
    """Validate a portion percentage.

    Raises:
        InvalidPortionError: Outside [25, 200] or not a multiple of 5
    """
    if isinstance(pct, bool):
        raise InvalidPortionError(f"Portion must be an integer percentage, got {pct!r}")
    try:
        return PortionAdjustment(pct=pct)
    except PydanticValidationError as exc:
        raise InvalidPortionError(
            f"Portion must be within {MIN_PORTION_PCT}-{MAX_PORTION_PCT}% "
            f"in steps of {PORTION_STEP_PCT}, got {pct!r}"
        ) from exc


def scale_result(result: AggregatedResult, pct: int = DEFAULT_PORTION_PCT) -> ScaledView:
    """
    Project a result onto a portion percentage.

    calories' = round(calories * pct / 100); each macro is rounded to one
    decimal. Confidence and sample_count pass through unchanged.

    Args:
        result: Stored aggregated result
        pct: Portion percentage (25-200, step 5)

    Returns:
        ScaledView for display

    Raises:
        InvalidPortionError: If pct is not an allowed percentage

    Example:
        >>> scale_result(result, 200).calories
        1020
    """
    adjustment = validate_portion(pct)
    factor = adjustment.pct

    return ScaledView(
        food_name=result.food_name,
        portion_description=result.portion_description,
        portion_pct=factor,
        calories=round_int(scale(result.calories, factor)),
        protein=round1(scale(result.protein, factor)),
        carbs=round1(scale(result.carbs, factor)),
        fat=round1(scale(result.fat, factor)),
        fiber=round1(scale(result.fiber, factor)),
        sugar=round1(scale(result.sugar, factor)),
        confidence=result.confidence,
        sample_count=result.sample_count,
        timestamp=result.timestamp,
    )
