"""
Google Gemini inference client.

Implements IInferenceClient with the google-genai SDK. The image travels
as an inline bytes part next to the prompt text.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Optional

import httpx
import structlog
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from nutriscan.domain.estimation.models import ImagePayload
from nutriscan.domain.shared.errors import (
    InferenceAuthError,
    InferenceError,
    InferenceServiceError,
    InferenceTransportError,
)
from nutriscan.infrastructure.ai.retry import transport_retrying

logger = structlog.get_logger(__name__)

_AUTH_CODES = (401, 403)


def map_api_error(exc: genai_errors.APIError) -> InferenceError:
    """Translate a Gemini API error into the inference taxonomy."""
    code = getattr(exc, "code", None)
    message = getattr(exc, "message", None) or str(exc)

    # An invalid key comes back as 400 INVALID_ARGUMENT
    if code in _AUTH_CODES or (code == 400 and "api key" in message.lower()):
        return InferenceAuthError(f"Gemini rejected the API key: {message}")
    if code == 408 or code == 504:
        return InferenceTransportError(f"Gemini request timed out ({code}): {message}")
    return InferenceServiceError(f"Gemini error {code}: {message}")


class GeminiInferenceClient:
    """
    Async Gemini client implementing IInferenceClient.

    Example:
        >>> client = GeminiInferenceClient(api_key="...", model="gemini-2.5-flash")
        >>> text = await client.invoke(render_prompt(), image)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gemini-2.5-flash",
        timeout: float = 30.0,
        temperature: float = 0.4,
        transport_retries: int = 2,
        retry_wait: float = 1.0,
        client: Optional[Any] = None,
    ):
        """
        Initialize Gemini client.

        Args:
            api_key: Gemini API key (missing key fails at call time)
            model: Gemini model name
            timeout: Request timeout in seconds
            temperature: Sampling temperature
            transport_retries: Extra attempts on transport failure
            retry_wait: Backoff base in seconds
            client: Optional pre-configured genai.Client (for testing)
        """
        self._client = client
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.temperature = temperature
        self.transport_retries = transport_retries
        self.retry_wait = retry_wait

    def _get_client(self) -> Any:
        if self._client is None:
            if not self.api_key:
                raise InferenceAuthError("Gemini API key not configured")
            self._client = genai.Client(
                api_key=self.api_key,
                http_options=types.HttpOptions(timeout=int(self.timeout * 1000)),
            )
        return self._client

    async def invoke(self, prompt: str, image: ImagePayload) -> str:
        """
        Send the prompt and image, return the raw response text.

        Raises:
            InferenceAuthError: API key missing or rejected
            InferenceTransportError: Timeout or connection failure after retries
            InferenceServiceError: Quota, server error, blocked or empty output
        """
        contents = [prompt, types.Part.from_bytes(data=image.data, mime_type=image.mime_type)]

        async for attempt in transport_retrying(self.transport_retries, self.retry_wait):
            with attempt:
                return await self._generate(contents)

        raise InferenceServiceError("Gemini call produced no attempt")  # pragma: no cover

    async def _generate(self, contents: list) -> str:
        client = self._get_client()
        config = types.GenerateContentConfig(
            temperature=self.temperature,
            response_mime_type="application/json",
        )
        start = time.perf_counter()

        try:
            response = await client.aio.models.generate_content(
                model=self.model,
                contents=contents,
                config=config,
            )
        except genai_errors.APIError as exc:
            raise map_api_error(exc) from exc
        except (httpx.TransportError, asyncio.TimeoutError) as exc:
            raise InferenceTransportError(f"Gemini connection failed: {exc}") from exc

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        usage = getattr(response, "usage_metadata", None)

        logger.info(
            "Inference call complete",
            provider="gemini",
            model=self.model,
            elapsed_ms=elapsed_ms,
            prompt_tokens=getattr(usage, "prompt_token_count", None),
            completion_tokens=getattr(usage, "candidates_token_count", None),
        )

        text = response.text
        if not text or not text.strip():
            feedback = getattr(response, "prompt_feedback", None)
            block_reason = getattr(feedback, "block_reason", None)
            if block_reason:
                raise InferenceServiceError(f"Gemini blocked the request: {block_reason}")
            raise InferenceServiceError("Gemini returned empty content")

        return text
