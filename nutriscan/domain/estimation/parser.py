"""Strict decoding of one oracle response into a sample or a failure."""

from __future__ import annotations

import json
import re
from typing import Any, Dict, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from nutriscan.domain.estimation.models import (
    FailureKind,
    NutritionSample,
    RawSample,
    SampleFailure,
)
from nutriscan.domain.estimation.prompts import NOT_FOOD_SENTINEL
from nutriscan.domain.shared.numeric import round1, round_int

logger = structlog.get_logger(__name__)

_FENCE_OPEN_RE = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE_RE = re.compile(r"\s*```$")

_NUMERIC_FIELDS = ("calories", "protein", "carbs", "fat", "fiber", "sugar", "confidence")

# Plausibility ceilings for one photographed meal; larger values are malformed
MAX_CALORIES = 20_000
MAX_GRAMS = 5_000


class ParseError(Exception):
    pass


class _WireSample(BaseModel):
    """Exact response schema mandated by the prompt."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    food_name: str = Field(..., alias="foodName", min_length=1)
    portion_size: str = Field(..., alias="portionSize")
    calories: float = Field(..., ge=0, le=MAX_CALORIES, allow_inf_nan=False)
    protein: float = Field(..., ge=0, le=MAX_GRAMS, allow_inf_nan=False)
    carbs: float = Field(..., ge=0, le=MAX_GRAMS, allow_inf_nan=False)
    fat: float = Field(..., ge=0, le=MAX_GRAMS, allow_inf_nan=False)
    fiber: float = Field(..., ge=0, le=MAX_GRAMS, allow_inf_nan=False)
    sugar: float = Field(..., ge=0, le=MAX_GRAMS, allow_inf_nan=False)
    confidence: float = Field(..., ge=0, le=100, allow_inf_nan=False)

    @field_validator("food_name", "portion_size", mode="before")
    @classmethod
    def json_string(cls, v: Any) -> str:
        if not isinstance(v, str):
            raise ValueError("must be a JSON string")
        return v.strip()

    @field_validator(*_NUMERIC_FIELDS, mode="before")
    @classmethod
    def json_number(cls, v: Any) -> Any:
        # bool is an int subclass; numeric strings are not trusted either
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("must be a JSON number")
        if isinstance(v, int) and v > MAX_CALORIES:
            raise ValueError("number out of range")
        return v


def _strip_fences(text: str) -> str:
    cleaned = text.strip()
    cleaned = _FENCE_OPEN_RE.sub("", cleaned)
    cleaned = _FENCE_CLOSE_RE.sub("", cleaned)
    return cleaned.strip()


def extract_json_object(raw_text: str) -> Dict[str, Any]:
    """Decode the JSON object embedded in a response.

    Removes markdown fences and any prose around the outermost braces.

    Raises:
        ParseError: If no JSON object can be decoded
    """
    cleaned = _strip_fences(raw_text or "")
    first = cleaned.find("{")
    last = cleaned.rfind("}")
    if first == -1 or last == -1 or last <= first:
        raise ParseError("NO_JSON_OBJECT")
    try:
        obj = json.loads(cleaned[first : last + 1])
    except json.JSONDecodeError as exc:
        raise ParseError(f"INVALID_JSON: {exc}") from exc
    if not isinstance(obj, dict):
        raise ParseError("ROOT_NOT_OBJECT")
    return obj


def is_not_food(obj: Dict[str, Any]) -> bool:
    """True for exactly the single-key "not food" sentinel."""
    if set(obj) != {"error"}:
        return False
    value = obj["error"]
    return isinstance(value, str) and value.strip().lower() == NOT_FOOD_SENTINEL.lower()


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    err = errors[0]
    location = ".".join(str(part) for part in err.get("loc", ()))
    return f"{location}: {err.get('msg', 'invalid')}"


def parse_sample(raw_text: Optional[str]) -> RawSample:
    """Decode one oracle response.

    Args:
        raw_text: Response text, possibly fenced or wrapped in prose

    Returns:
        NutritionSample on success, otherwise a SampleFailure of kind
        NOT_FOOD or MALFORMED

    Example:
        >>> parse_sample('{"error": "Not food detected"}').kind
        <FailureKind.NOT_FOOD: 'NOT_FOOD'>
    """
    try:
        obj = extract_json_object(raw_text or "")
    except ParseError as exc:
        logger.debug("Response has no JSON object", error=str(exc))
        return SampleFailure(FailureKind.MALFORMED, str(exc))

    if is_not_food(obj):
        return SampleFailure(FailureKind.NOT_FOOD, NOT_FOOD_SENTINEL)

    try:
        wire = _WireSample.model_validate(obj)
    except ValidationError as exc:
        detail = _first_error(exc)
        logger.debug("Response failed schema validation", error=detail)
        return SampleFailure(FailureKind.MALFORMED, f"SCHEMA: {detail}")

    return NutritionSample(
        food_name=wire.food_name,
        portion_description=wire.portion_size,
        calories=round_int(wire.calories),
        protein=round1(wire.protein),
        carbs=round1(wire.carbs),
        fat=round1(wire.fat),
        fiber=round1(wire.fiber),
        sugar=round1(wire.sugar),
        confidence=round_int(wire.confidence),
    )
