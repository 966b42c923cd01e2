"""
OpenAI inference client.

Implements IInferenceClient over chat completions with an image part.
SDK exceptions are mapped to the inference error taxonomy; transport
failures are retried with tenacity.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import structlog
from openai import (
    APIConnectionError,
    APIError,
    APIStatusError,
    AsyncOpenAI,
    AuthenticationError,
    PermissionDeniedError,
    RateLimitError,
)

from nutriscan.domain.estimation.models import ImagePayload
from nutriscan.domain.shared.errors import (
    InferenceAuthError,
    InferenceServiceError,
    InferenceTransportError,
)
from nutriscan.infrastructure.ai.retry import transport_retrying

if TYPE_CHECKING:
    from openai.types.chat import ChatCompletion

logger = structlog.get_logger(__name__)


class OpenAIInferenceClient:
    """
    Async OpenAI client implementing IInferenceClient.

    Features:
    - JSON output mode
    - Retry on transport failures (exponential backoff)
    - Context manager for resource cleanup
    - Client injection for tests

    Example:
        >>> async with OpenAIInferenceClient(api_key="sk-...") as client:
        ...     text = await client.invoke(render_prompt(), image)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        timeout: float = 30.0,
        temperature: float = 0.4,
        max_tokens: int = 800,
        transport_retries: int = 2,
        retry_wait: float = 1.0,
        client: Optional[AsyncOpenAI] = None,
    ):
        """
        Initialize OpenAI client.

        Args:
            api_key: OpenAI API key (missing key fails at call time)
            model: Vision-capable chat model
            timeout: Request timeout in seconds
            temperature: Sampling temperature (0.0-2.0)
            max_tokens: Max tokens in response
            transport_retries: Extra attempts on transport failure
            retry_wait: Backoff base in seconds
            client: Optional pre-configured AsyncOpenAI client (for testing)
        """
        self._client = client
        self._owns_client = client is None
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.transport_retries = transport_retries
        self.retry_wait = retry_wait

    async def __aenter__(self) -> OpenAIInferenceClient:
        """Async context manager entry."""
        self._get_client()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.close()
            self._client = None

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.api_key:
                raise InferenceAuthError("OpenAI API key not configured")
            # Retries are handled by transport_retrying
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    @staticmethod
    def build_messages(prompt: str, image: ImagePayload) -> List[Dict[str, Any]]:
        """Single user turn carrying the prompt and the image data URL."""
        return [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {"type": "image_url", "image_url": {"url": image.to_data_url()}},
                ],
            }
        ]

    async def invoke(self, prompt: str, image: ImagePayload) -> str:
        """
        Send the prompt and image, return the raw response text.

        Raises:
            InferenceAuthError: API key missing or rejected
            InferenceTransportError: Timeout or connection failure after retries
            InferenceServiceError: Rate limit, server error or empty output
        """
        messages = self.build_messages(prompt, image)

        async for attempt in transport_retrying(self.transport_retries, self.retry_wait):
            with attempt:
                return await self._complete(messages)

        raise InferenceServiceError("OpenAI call produced no attempt")  # pragma: no cover

    async def _complete(self, messages: List[Dict[str, Any]]) -> str:
        client = self._get_client()
        start = time.perf_counter()

        try:
            completion: ChatCompletion = await client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                response_format={"type": "json_object"},
            )
        except (AuthenticationError, PermissionDeniedError) as exc:
            raise InferenceAuthError(f"OpenAI rejected the API key: {exc.message}") from exc
        except APIConnectionError as exc:
            # Includes APITimeoutError
            raise InferenceTransportError(f"OpenAI connection failed: {exc}") from exc
        except RateLimitError as exc:
            raise InferenceServiceError(f"OpenAI rate limit exceeded: {exc.message}") from exc
        except APIStatusError as exc:
            raise InferenceServiceError(f"OpenAI error {exc.status_code}: {exc.message}") from exc
        except APIError as exc:
            raise InferenceServiceError(f"OpenAI error: {exc.message}") from exc

        elapsed_ms = int((time.perf_counter() - start) * 1000)

        if not completion.choices:
            raise InferenceServiceError("OpenAI returned no choices")

        choice = completion.choices[0]
        content = choice.message.content or ""
        usage = completion.usage

        logger.info(
            "Inference call complete",
            provider="openai",
            model=self.model,
            elapsed_ms=elapsed_ms,
            finish_reason=choice.finish_reason,
            prompt_tokens=usage.prompt_tokens if usage else None,
            completion_tokens=usage.completion_tokens if usage else None,
        )

        if choice.finish_reason == "content_filter":
            raise InferenceServiceError("OpenAI blocked the response (content_filter)")
        if not content.strip():
            raise InferenceServiceError("OpenAI returned empty content")

        return content
