"""
Domain models for nutrition estimation.

Value objects flowing through the estimation pipeline: run configuration,
per-sample outcomes, the aggregated result and its portion-scaled view.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

SINGLE_SAMPLE_COUNT = 1
MULTI_SAMPLE_COUNT = 3

MIN_PORTION_PCT = 25
MAX_PORTION_PCT = 200
PORTION_STEP_PCT = 5
DEFAULT_PORTION_PCT = 100


class ReferenceObject(str, Enum):
    """Physical object placed next to the food to calibrate portion size."""

    NONE = "none"
    COIN = "coin"
    PHONE = "phone"
    HAND = "hand"
    CHOPSTICKS = "chopsticks"

    @property
    def calibration(self) -> Optional[str]:
        """Known physical dimension of the object, None for NONE."""
        return _CALIBRATIONS.get(self)


_CALIBRATIONS = {
    ReferenceObject.COIN: "a coin about 2.6 cm in diameter",
    ReferenceObject.PHONE: "a smartphone about 15 cm long and 7 cm wide",
    ReferenceObject.HAND: "an adult hand about 18 cm from wrist to middle fingertip",
    ReferenceObject.CHOPSTICKS: "a pair of chopsticks about 24 cm long",
}


class ImagePayload(BaseModel):
    """
    Image bytes ready to be sent to the inference service.

    Example:
        >>> payload = ImagePayload(data=b"\\xff\\xd8...", mime_type="image/jpeg")
        >>> payload.to_data_url()[:23]
        'data:image/jpeg;base64,'
    """

    model_config = ConfigDict(frozen=True)

    data: bytes = Field(..., min_length=1, description="Raw image bytes")
    mime_type: str = Field(..., pattern=r"^image/[\w.+-]+$", description="e.g. image/jpeg")

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_data_url(self) -> str:
        """Opaque payload reference stored alongside results."""
        return f"data:{self.mime_type};base64,{self.to_base64()}"


class AnalysisConfig(BaseModel):
    """
    Immutable input to one estimation run.

    Example:
        >>> config = AnalysisConfig.for_mode(True, ReferenceObject.COIN)
        >>> config.sample_count
        3
    """

    model_config = ConfigDict(frozen=True)

    sample_count: int = Field(SINGLE_SAMPLE_COUNT, ge=1, description="Inference calls per run")
    reference_object: ReferenceObject = Field(ReferenceObject.NONE)

    @classmethod
    def for_mode(
        cls,
        multi_sample: bool,
        reference_object: ReferenceObject = ReferenceObject.NONE,
    ) -> AnalysisConfig:
        return cls(
            sample_count=MULTI_SAMPLE_COUNT if multi_sample else SINGLE_SAMPLE_COUNT,
            reference_object=reference_object,
        )


class NutritionSample(BaseModel):
    """
    One validated estimate returned by a single inference call.

    Numbers describe the whole identified portion. Normalized at parse
    time: calories and confidence are integers, macros have one decimal.
    """

    model_config = ConfigDict(frozen=True)

    food_name: str = Field(..., min_length=1)
    portion_description: str = Field("")
    calories: int = Field(..., ge=0)
    protein: float = Field(..., ge=0)
    carbs: float = Field(..., ge=0)
    fat: float = Field(..., ge=0)
    fiber: float = Field(..., ge=0)
    sugar: float = Field(..., ge=0)
    confidence: int = Field(..., ge=0, le=100)


class FailureKind(str, Enum):
    """Why a sample was dropped."""

    NOT_FOOD = "NOT_FOOD"  # Oracle rejected the image
    MALFORMED = "MALFORMED"  # Response did not match the schema
    AUTH = "AUTH"  # Credential rejected
    TRANSPORT = "TRANSPORT"  # Connectivity / timeout
    SERVICE = "SERVICE"  # Oracle-side error


@dataclass(frozen=True)
class SampleFailure:
    kind: FailureKind
    detail: str
    error: Optional[BaseException] = None

    @property
    def from_client(self) -> bool:
        """True when the inference call itself failed."""
        return self.kind in (FailureKind.AUTH, FailureKind.TRANSPORT, FailureKind.SERVICE)


RawSample = Union[NutritionSample, SampleFailure]


class AggregatedResult(BaseModel):
    """
    Canonical, persisted outcome of one run.

    Invariants:
    - sample_count equals the number of valid samples folded in
    - macros carry one decimal, calories and confidence are integers
    """

    model_config = ConfigDict(frozen=True)

    food_name: str = Field(..., min_length=1)
    portion_description: str = Field("")
    calories: int = Field(..., ge=0)
    protein: float = Field(..., ge=0)
    carbs: float = Field(..., ge=0)
    fat: float = Field(..., ge=0)
    fiber: float = Field(..., ge=0)
    sugar: float = Field(..., ge=0)
    confidence: int = Field(..., ge=0, le=100)
    sample_count: int = Field(..., ge=1)
    timestamp: datetime
    image: str = Field(..., min_length=1, description="Image data URL")

    @field_validator("timestamp")
    @classmethod
    def timezone_aware(cls, v: datetime) -> datetime:
        """Reject naive datetimes."""
        if v.tzinfo is None:
            raise ValueError("timestamp must be timezone-aware")
        return v


class PortionAdjustment(BaseModel):
    """
    Portion percentage chosen by the user.

    Never persisted; applied at presentation time only.
    """

    model_config = ConfigDict(frozen=True)

    pct: int = Field(
        DEFAULT_PORTION_PCT,
        ge=MIN_PORTION_PCT,
        le=MAX_PORTION_PCT,
        multiple_of=PORTION_STEP_PCT,
    )


class ScaledView(BaseModel):
    """Portion-adjusted projection of an AggregatedResult."""

    model_config = ConfigDict(frozen=True)

    food_name: str
    portion_description: str
    portion_pct: int
    calories: int
    protein: float
    carbs: float
    fat: float
    fiber: float
    sugar: float
    confidence: int
    sample_count: int
    timestamp: datetime
