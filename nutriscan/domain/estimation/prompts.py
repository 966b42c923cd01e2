"""
Prompt for nutrition estimation.

The same text is sent for every sample of a run, so sample variance comes
from the oracle only. Keep the template static; the only dynamic part is
the reference-object calibration clause appended at the end.
"""

from nutriscan.domain.estimation.models import ReferenceObject

NOT_FOOD_SENTINEL = "Not food detected"

OUTPUT_KEYS = (
    "foodName",
    "portionSize",
    "calories",
    "protein",
    "carbs",
    "fat",
    "fiber",
    "sugar",
    "confidence",
)


# ═══════════════════════════════════════════════════════════
# TEMPLATE (static instructions)
# ═══════════════════════════════════════════════════════════

ESTIMATION_PROMPT = f"""You are a nutrition analysis expert. Analyze this image of food, identify the dish and estimate its nutritional content for the WHOLE portion visible in the photo.

ESTIMATION GUIDELINES:
- Identify the main dish; if several foods share the plate, estimate them together as one meal
- Estimate the portion first (weight or volume), then derive the nutrients from it
- Use plate, bowl and cutlery size as visual context
- Account for cooking method: fried food carries extra oil, sauces add sugar and fat
- Prefer typical home or restaurant recipes when ingredients are hidden
- Be conservative when uncertain and lower the confidence instead of guessing precise numbers

PORTION SIZE REFERENCE:
- 1 bowl of cooked rice: ~200 g, ~280 kcal
- 1 bowl of noodles with soup: ~500 g, ~450 kcal
- 1 plate of fried rice: ~350 g, ~600 kcal
- 1 palm-sized piece of meat or fish: ~100 g
- 1 fist of vegetables: ~100 g
- 1 slice of bread: ~30 g, ~80 kcal
- 1 medium apple: ~180 g, ~95 kcal
- 1 egg: ~50 g, ~75 kcal
- 1 tablespoon of oil: ~14 g, ~120 kcal

OUTPUT FORMAT:
Return ONLY a valid JSON object, with no markdown formatting, backticks or extra text.
The JSON object must have exactly these keys:
- "foodName": string (short name of the food identified, in Traditional Chinese)
- "portionSize": string (estimated portion, e.g. "1 bowl (about 350 g)")
- "calories": number (estimated total kcal)
- "protein": number (grams)
- "carbs": number (grams)
- "fat": number (grams)
- "fiber": number (grams)
- "sugar": number (grams)
- "confidence": number (0-100, how confident you are in this estimate)

All numbers must be non-negative plain JSON numbers without units.

If the image is not food, return {{"error": "{NOT_FOOD_SENTINEL}"}}"""


# ═══════════════════════════════════════════════════════════
# CALIBRATION (dynamic, depends on the reference object)
# ═══════════════════════════════════════════════════════════


def calibration_clause(reference_object: ReferenceObject) -> str:
    """Clause describing the reference object, empty for NONE."""
    calibration = reference_object.calibration
    if calibration is None:
        return ""
    return (
        "SIZE CALIBRATION:\n"
        f"The photo contains {calibration} as a size reference. "
        "Compare the food against it to estimate the real portion size."
    )


def render_prompt(reference_object: ReferenceObject = ReferenceObject.NONE) -> str:
    """Render the estimation prompt for a reference object.

    Pure and deterministic: the same input always yields the same text.

    Args:
        reference_object: Object photographed next to the food

    Returns:
        Prompt text

    Example:
        >>> "SIZE CALIBRATION" in render_prompt(ReferenceObject.COIN)
        True
        >>> "SIZE CALIBRATION" in render_prompt(ReferenceObject.NONE)
        False
    """
    clause = calibration_clause(reference_object)
    if not clause:
        return ESTIMATION_PROMPT
    return f"{ESTIMATION_PROMPT}\n\n{clause}"
