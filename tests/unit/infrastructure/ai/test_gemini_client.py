"""
Unit tests for Gemini inference client.

Tests request shape and error mapping with a mocked google-genai client.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from google.genai import errors as genai_errors
from google.genai import types

from nutriscan.domain.estimation.ports import IInferenceClient
from nutriscan.domain.shared.errors import (
    InferenceAuthError,
    InferenceServiceError,
    InferenceTransportError,
)
from nutriscan.infrastructure.ai.gemini_client import GeminiInferenceClient, map_api_error


def _api_error(cls, code: int, message: str, status: str):
    return cls(code, {"error": {"code": code, "message": message, "status": status}})


@pytest.fixture
def mock_gemini_response() -> MagicMock:
    """Mock GenerateContentResponse."""
    response = MagicMock()
    response.text = '{"foodName": "牛肉麵", "calories": 620}'
    response.usage_metadata.prompt_token_count = 1200
    response.usage_metadata.candidates_token_count = 80
    return response


@pytest.fixture
def mock_genai_client(mock_gemini_response: MagicMock) -> MagicMock:
    """Mock genai.Client with an async models API."""
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(return_value=mock_gemini_response)
    return client


def _client(mock_genai_client: MagicMock, **kwargs) -> GeminiInferenceClient:
    return GeminiInferenceClient(client=mock_genai_client, retry_wait=0, **kwargs)


class TestGeminiInferenceClient:
    """Test invoke()."""

    def test_implements_port(self) -> None:
        assert isinstance(GeminiInferenceClient(api_key="k"), IInferenceClient)

    def test_default_model(self) -> None:
        assert GeminiInferenceClient(api_key="k").model == "gemini-2.5-flash"

    @pytest.mark.asyncio
    async def test_returns_raw_text(self, image, mock_genai_client: MagicMock) -> None:
        text = await _client(mock_genai_client).invoke("prompt", image)

        assert text == '{"foodName": "牛肉麵", "calories": 620}'

    @pytest.mark.asyncio
    async def test_request_shape(self, image, mock_genai_client: MagicMock) -> None:
        """Test prompt text plus inline image bytes, JSON output requested."""
        await _client(mock_genai_client, model="gemini-2.0-flash", temperature=0.3).invoke("PROMPT", image)

        kwargs = mock_genai_client.aio.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-2.0-flash"
        assert kwargs["contents"][0] == "PROMPT"

        part = kwargs["contents"][1]
        assert isinstance(part, types.Part)
        assert part.inline_data.data == image.data
        assert part.inline_data.mime_type == "image/jpeg"

        assert kwargs["config"].temperature == 0.3
        assert kwargs["config"].response_mime_type == "application/json"

    @pytest.mark.asyncio
    async def test_lazy_client_uses_key_and_timeout(self, image) -> None:
        """Test the SDK client is built on first call with the timeout in ms."""
        with patch("nutriscan.infrastructure.ai.gemini_client.genai.Client") as mock_cls:
            mock_cls.return_value.aio.models.generate_content = AsyncMock(
                return_value=MagicMock(text="{}")
            )

            await GeminiInferenceClient(api_key="g-key", timeout=20.0).invoke("p", image)

        kwargs = mock_cls.call_args.kwargs
        assert kwargs["api_key"] == "g-key"
        assert kwargs["http_options"].timeout == 20000

    @pytest.mark.asyncio
    async def test_missing_key_is_auth_error(self, image) -> None:
        with pytest.raises(InferenceAuthError):
            await GeminiInferenceClient(api_key=None).invoke("prompt", image)

    @pytest.mark.asyncio
    async def test_empty_text_is_service_error(
        self, image, mock_genai_client: MagicMock, mock_gemini_response: MagicMock
    ) -> None:
        mock_gemini_response.text = None
        mock_gemini_response.prompt_feedback = None

        with pytest.raises(InferenceServiceError, match="empty"):
            await _client(mock_genai_client).invoke("prompt", image)

    @pytest.mark.asyncio
    async def test_blocked_prompt_is_service_error(
        self, image, mock_genai_client: MagicMock, mock_gemini_response: MagicMock
    ) -> None:
        mock_gemini_response.text = None
        mock_gemini_response.prompt_feedback.block_reason = "SAFETY"

        with pytest.raises(InferenceServiceError, match="SAFETY"):
            await _client(mock_genai_client).invoke("prompt", image)


class TestErrorMapping:
    """Test Gemini exceptions map to the inference taxonomy."""

    @pytest.mark.parametrize(
        "error,expected",
        [
            (
                _api_error(genai_errors.ClientError, 400, "API key not valid. Please pass a valid API key.", "INVALID_ARGUMENT"),
                InferenceAuthError,
            ),
            (_api_error(genai_errors.ClientError, 403, "Permission denied", "PERMISSION_DENIED"), InferenceAuthError),
            (_api_error(genai_errors.ClientError, 400, "Unsupported MIME type", "INVALID_ARGUMENT"), InferenceServiceError),
            (_api_error(genai_errors.ClientError, 429, "Quota exceeded", "RESOURCE_EXHAUSTED"), InferenceServiceError),
            (_api_error(genai_errors.ServerError, 500, "Internal error", "INTERNAL"), InferenceServiceError),
            (_api_error(genai_errors.ServerError, 504, "Deadline exceeded", "DEADLINE_EXCEEDED"), InferenceTransportError),
        ],
    )
    def test_map_api_error(self, error, expected) -> None:
        assert isinstance(map_api_error(error), expected)

    @pytest.mark.asyncio
    async def test_auth_error_not_retried(self, image, mock_genai_client: MagicMock) -> None:
        mock_genai_client.aio.models.generate_content.side_effect = _api_error(
            genai_errors.ClientError, 401, "Unauthenticated", "UNAUTHENTICATED"
        )

        with pytest.raises(InferenceAuthError):
            await _client(mock_genai_client).invoke("prompt", image)

        assert mock_genai_client.aio.models.generate_content.await_count == 1

    @pytest.mark.asyncio
    async def test_connect_error_retried(
        self, image, mock_genai_client: MagicMock, mock_gemini_response: MagicMock
    ) -> None:
        """Test httpx transport errors are retried and can recover."""
        mock_genai_client.aio.models.generate_content.side_effect = [
            httpx.ConnectError("connection refused"),
            httpx.ReadTimeout("read timeout"),
            mock_gemini_response,
        ]

        text = await _client(mock_genai_client, transport_retries=2).invoke("prompt", image)

        assert "牛肉麵" in text
        assert mock_genai_client.aio.models.generate_content.await_count == 3

    @pytest.mark.asyncio
    async def test_transport_error_after_retries(self, image, mock_genai_client: MagicMock) -> None:
        mock_genai_client.aio.models.generate_content.side_effect = httpx.ConnectError("down")

        with pytest.raises(InferenceTransportError):
            await _client(mock_genai_client, transport_retries=1).invoke("prompt", image)

        assert mock_genai_client.aio.models.generate_content.await_count == 2
