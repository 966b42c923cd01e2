"""
Unit tests for OpenAI inference client.

Tests request shape, error mapping and transport retry with a mocked
AsyncOpenAI client.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from openai import (
    APIConnectionError,
    APITimeoutError,
    AuthenticationError,
    InternalServerError,
    PermissionDeniedError,
    RateLimitError,
)

from nutriscan.domain.estimation.ports import IInferenceClient
from nutriscan.domain.shared.errors import (
    InferenceAuthError,
    InferenceServiceError,
    InferenceTransportError,
)
from nutriscan.infrastructure.ai.openai_client import OpenAIInferenceClient

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _status_error(cls, status: int, message: str = "error"):
    return cls(message, response=httpx.Response(status, request=_REQUEST), body=None)


@pytest.fixture
def mock_openai_response() -> MagicMock:
    """Mock OpenAI ChatCompletion response."""
    response = MagicMock()

    choice = MagicMock()
    choice.message.content = '{"foodName": "炒飯", "calories": 510}'
    choice.finish_reason = "stop"

    usage = MagicMock()
    usage.prompt_tokens = 900
    usage.completion_tokens = 60

    response.choices = [choice]
    response.usage = usage

    return response


@pytest.fixture
def mock_openai_client(mock_openai_response: MagicMock) -> AsyncMock:
    """Mock AsyncOpenAI client."""
    client = AsyncMock()
    client.chat.completions.create = AsyncMock(return_value=mock_openai_response)
    client.close = AsyncMock()
    return client


def _client(mock_openai_client: AsyncMock, **kwargs) -> OpenAIInferenceClient:
    return OpenAIInferenceClient(client=mock_openai_client, retry_wait=0, **kwargs)


class TestInit:
    """Test construction."""

    def test_defaults(self) -> None:
        client = OpenAIInferenceClient(api_key="test-key")

        assert client.api_key == "test-key"
        assert client.model == "gpt-4o-mini"
        assert client.timeout == 30.0
        assert client.transport_retries == 2

    def test_implements_port(self) -> None:
        assert isinstance(OpenAIInferenceClient(api_key="k"), IInferenceClient)

    @pytest.mark.asyncio
    async def test_missing_key_fails_at_call_time(self, image) -> None:
        """Test a missing key is an auth failure, not a construction error."""
        client = OpenAIInferenceClient(api_key=None)

        with pytest.raises(InferenceAuthError):
            await client.invoke("prompt", image)

    @pytest.mark.asyncio
    async def test_context_manager_closes_owned_client(self) -> None:
        """Test the SDK client created by the adapter is closed on exit."""
        with patch("nutriscan.infrastructure.ai.openai_client.AsyncOpenAI") as mock_cls:
            sdk = mock_cls.return_value
            sdk.close = AsyncMock()

            async with OpenAIInferenceClient(api_key="k", timeout=12.0):
                pass

        mock_cls.assert_called_once_with(api_key="k", timeout=12.0, max_retries=0)
        sdk.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_injected_client_not_closed(self, mock_openai_client: AsyncMock) -> None:
        async with _client(mock_openai_client):
            pass

        mock_openai_client.close.assert_not_awaited()


class TestInvoke:
    """Test invoke()."""

    @pytest.mark.asyncio
    async def test_returns_raw_content(self, image, mock_openai_client: AsyncMock) -> None:
        text = await _client(mock_openai_client).invoke("prompt", image)

        assert text == '{"foodName": "炒飯", "calories": 510}'

    @pytest.mark.asyncio
    async def test_request_shape(self, image, mock_openai_client: AsyncMock) -> None:
        """Test prompt and image data URL travel in one user message."""
        await _client(mock_openai_client, model="gpt-4o", temperature=0.2).invoke("PROMPT", image)

        kwargs = mock_openai_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["temperature"] == 0.2
        assert kwargs["response_format"] == {"type": "json_object"}

        content = kwargs["messages"][0]["content"]
        assert content[0] == {"type": "text", "text": "PROMPT"}
        assert content[1]["type"] == "image_url"
        assert content[1]["image_url"]["url"] == image.to_data_url()

    @pytest.mark.asyncio
    async def test_empty_content_is_service_error(
        self, image, mock_openai_client: AsyncMock, mock_openai_response: MagicMock
    ) -> None:
        mock_openai_response.choices[0].message.content = ""

        with pytest.raises(InferenceServiceError, match="empty"):
            await _client(mock_openai_client).invoke("prompt", image)

    @pytest.mark.asyncio
    async def test_content_filter_is_service_error(
        self, image, mock_openai_client: AsyncMock, mock_openai_response: MagicMock
    ) -> None:
        mock_openai_response.choices[0].finish_reason = "content_filter"

        with pytest.raises(InferenceServiceError, match="content_filter"):
            await _client(mock_openai_client).invoke("prompt", image)


class TestErrorMapping:
    """Test SDK exceptions map to the inference taxonomy."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error,expected",
        [
            (_status_error(AuthenticationError, 401, "Incorrect API key"), InferenceAuthError),
            (_status_error(PermissionDeniedError, 403), InferenceAuthError),
            (_status_error(RateLimitError, 429), InferenceServiceError),
            (_status_error(InternalServerError, 500), InferenceServiceError),
        ],
    )
    async def test_status_errors(self, image, mock_openai_client: AsyncMock, error, expected) -> None:
        mock_openai_client.chat.completions.create.side_effect = error

        with pytest.raises(expected):
            await _client(mock_openai_client).invoke("prompt", image)

        # Not retried
        assert mock_openai_client.chat.completions.create.await_count == 1

    @pytest.mark.asyncio
    async def test_timeout_retried_then_raised(self, image, mock_openai_client: AsyncMock) -> None:
        """Test transport failures are retried transport_retries times."""
        mock_openai_client.chat.completions.create.side_effect = APITimeoutError(request=_REQUEST)

        with pytest.raises(InferenceTransportError):
            await _client(mock_openai_client, transport_retries=2).invoke("prompt", image)

        assert mock_openai_client.chat.completions.create.await_count == 3

    @pytest.mark.asyncio
    async def test_connection_error_then_success(
        self, image, mock_openai_client: AsyncMock, mock_openai_response: MagicMock
    ) -> None:
        """Test a transient connection error recovers on retry."""
        mock_openai_client.chat.completions.create.side_effect = [
            APIConnectionError(request=_REQUEST),
            mock_openai_response,
        ]

        text = await _client(mock_openai_client).invoke("prompt", image)

        assert "炒飯" in text
        assert mock_openai_client.chat.completions.create.await_count == 2

    @pytest.mark.asyncio
    async def test_retry_disabled(self, image, mock_openai_client: AsyncMock) -> None:
        mock_openai_client.chat.completions.create.side_effect = APIConnectionError(request=_REQUEST)

        with pytest.raises(InferenceTransportError):
            await _client(mock_openai_client, transport_retries=0).invoke("prompt", image)

        assert mock_openai_client.chat.completions.create.await_count == 1
