"""Port (interface) for the vision-language inference service.

Infrastructure adapters (OpenAI, Gemini) implement this contract so the
aggregator never depends on a concrete SDK.
"""

from typing import Protocol, runtime_checkable

from nutriscan.domain.estimation.models import ImagePayload


@runtime_checkable
class IInferenceClient(Protocol):
    """
    Interface for vision inference providers.

    This port follows the Dependency Inversion Principle:
    - Domain layer defines the interface (port)
    - Infrastructure layer implements it (adapter)

    Implementations can be:
    - OpenAI chat completions with image input
    - Google Gemini
    - Mock client (for testing)
    """

    async def invoke(self, prompt: str, image: ImagePayload) -> str:
        """
        Send one (prompt, image) pair and return the raw response text.

        Args:
            prompt: Instruction text
            image: Image bytes and MIME type

        Returns:
            Raw model output, not yet validated

        Raises:
            InferenceAuthError: Credential invalid or missing
            InferenceTransportError: Connectivity problem or timeout
            InferenceServiceError: Service-side error or unusable output
        """
        ...
