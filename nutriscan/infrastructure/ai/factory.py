"""Inference client factory.

Provider selection from settings (NUTRISCAN_INFERENCE_PROVIDER):
- openai (default): OpenAIInferenceClient
- gemini: GeminiInferenceClient

Usage:
    from nutriscan.infrastructure.ai.factory import create_inference_client

    client = create_inference_client(Settings.from_env())
"""

from typing import Optional

from nutriscan.config import PROVIDER_GEMINI, PROVIDER_OPENAI, Settings
from nutriscan.domain.estimation.ports import IInferenceClient
from nutriscan.domain.shared.errors import ConfigurationError
from nutriscan.infrastructure.ai.gemini_client import GeminiInferenceClient
from nutriscan.infrastructure.ai.openai_client import OpenAIInferenceClient


def create_inference_client(
    settings: Settings,
    retry_wait: Optional[float] = None,
) -> IInferenceClient:
    """Create the inference client selected by settings.

    A missing API key is not an error here: the client raises
    InferenceAuthError on its first call.

    Raises:
        ConfigurationError: If the provider is unknown
    """
    provider = settings.provider.lower()
    wait = 1.0 if retry_wait is None else retry_wait

    if provider == PROVIDER_OPENAI:
        return OpenAIInferenceClient(
            api_key=settings.api_key,
            model=settings.model,
            timeout=settings.timeout_s,
            temperature=settings.temperature,
            transport_retries=settings.transport_retries,
            retry_wait=wait,
        )

    if provider == PROVIDER_GEMINI:
        return GeminiInferenceClient(
            api_key=settings.api_key,
            model=settings.model,
            timeout=settings.timeout_s,
            temperature=settings.temperature,
            transport_retries=settings.transport_retries,
            retry_wait=wait,
        )

    raise ConfigurationError(
        f"Unknown inference provider '{provider}'. "
        f"Use NUTRISCAN_INFERENCE_PROVIDER={PROVIDER_OPENAI} or {PROVIDER_GEMINI}"
    )
