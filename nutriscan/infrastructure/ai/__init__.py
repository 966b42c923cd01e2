"""Inference service adapters."""

from nutriscan.infrastructure.ai.factory import create_inference_client
from nutriscan.infrastructure.ai.gemini_client import GeminiInferenceClient
from nutriscan.infrastructure.ai.openai_client import OpenAIInferenceClient

__all__ = [
    "GeminiInferenceClient",
    "OpenAIInferenceClient",
    "create_inference_client",
]
