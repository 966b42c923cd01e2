"""Shared fixtures for NutriScan tests."""

import json
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Union

import pytest

from nutriscan.domain.estimation.models import AggregatedResult, ImagePayload

FIXED_NOW = datetime(2025, 3, 1, 12, 30, tzinfo=timezone.utc)

# Smallest valid JPEG header bytes are enough: nothing decodes the image
JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00\xff\xd9"


class ScriptedInferenceClient:
    """
    In-memory IInferenceClient.

    Replays a script of responses: a string is returned, an exception is
    raised. Records every (prompt, image) pair it receives.
    """

    def __init__(self, script: List[Union[str, BaseException]]):
        self._script = list(script)
        self.calls: List[tuple] = []

    async def invoke(self, prompt: str, image: ImagePayload) -> str:
        self.calls.append((prompt, image))
        if not self._script:
            raise AssertionError("ScriptedInferenceClient ran out of responses")
        item = self._script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


def response_json(**overrides: Any) -> str:
    """Valid oracle response, with field overrides."""
    body: Dict[str, Any] = {
        "foodName": "炒飯",
        "portionSize": "1 plate (about 350 g)",
        "calories": 510,
        "protein": 12.3,
        "carbs": 70.0,
        "fat": 18.5,
        "fiber": 2.1,
        "sugar": 3.4,
        "confidence": 80,
    }
    body.update(overrides)
    return json.dumps(body, ensure_ascii=False)


NOT_FOOD_JSON = '{"error": "Not food detected"}'


@pytest.fixture
def image() -> ImagePayload:
    return ImagePayload(data=JPEG_BYTES, mime_type="image/jpeg")


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def scripted_client() -> Callable[..., ScriptedInferenceClient]:
    """Factory: scripted_client("...", InferenceTransportError(...), ...)."""

    def _make(*script: Union[str, BaseException]) -> ScriptedInferenceClient:
        return ScriptedInferenceClient(list(script))

    return _make


@pytest.fixture
def make_result(image: ImagePayload) -> Callable[..., AggregatedResult]:
    """Factory for AggregatedResult with sensible defaults."""

    def _make(
        food_name: str = "炒飯",
        calories: int = 510,
        timestamp: Optional[datetime] = None,
        **overrides: Any,
    ) -> AggregatedResult:
        fields: Dict[str, Any] = {
            "food_name": food_name,
            "portion_description": "1 plate (about 350 g)",
            "calories": calories,
            "protein": 12.3,
            "carbs": 70.0,
            "fat": 18.5,
            "fiber": 2.1,
            "sugar": 3.4,
            "confidence": 80,
            "sample_count": 1,
            "timestamp": timestamp or FIXED_NOW,
            "image": image.to_data_url(),
        }
        fields.update(overrides)
        return AggregatedResult(**fields)

    return _make


@pytest.fixture
def oracle_json() -> Callable[..., str]:
    """Factory: oracle_json(calories=520) -> valid response text."""
    return response_json


@pytest.fixture
def not_food_json() -> str:
    return NOT_FOOD_JSON
