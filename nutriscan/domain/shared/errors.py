"""
Domain exceptions.

Typed exceptions for explicit error handling. Callers pick a recovery
action (retry, re-authenticate, re-photograph) from the exception type.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from nutriscan.domain.estimation.models import SampleFailure


# ═══════════════════════════════════════════════════════════
# BASE EXCEPTION
# ═══════════════════════════════════════════════════════════


class DomainError(Exception):
    """
    Base exception for all NutriScan errors.

    Allows catching every domain error with a single except clause.
    """

    pass


# ═══════════════════════════════════════════════════════════
# ESTIMATION EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class EstimationError(DomainError):
    """Base exception for the estimation pipeline."""

    pass


class NoValidSamplesError(EstimationError):
    """
    Every sample of a run was rejected.

    Carries the per-sample failures so the caller can inspect why.

    Example:
        >>> raise NoValidSamplesError("No valid samples in 3 attempts", failures)
    """

    def __init__(self, message: str, failures: Sequence["SampleFailure"] = ()) -> None:
        super().__init__(message)
        self.failures = tuple(failures)


class NotFoodError(NoValidSamplesError):
    """
    The oracle rejected the image as not food.

    Raised when every sample of the run answered with the
    "Not food detected" sentinel. Surface as "please retake the photo".
    """

    pass


class MalformedResponseError(NoValidSamplesError):
    """
    The oracle response did not match the required schema.

    Raised when every sample of the run was malformed.
    """

    pass


# ═══════════════════════════════════════════════════════════
# VALIDATION EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ValidationError(DomainError):
    """
    Input validation failed.

    Example:
        >>> raise ValidationError("sample_count must be positive")
    """

    pass


class InvalidPortionError(ValidationError):
    """
    Portion percentage outside the allowed range.

    Example:
        >>> raise InvalidPortionError("Portion must be within 25-200%, got 300")
    """

    pass


# ═══════════════════════════════════════════════════════════
# EXTERNAL SERVICE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ExternalServiceError(DomainError):
    """Base class for all external service errors."""

    pass


class InferenceError(ExternalServiceError):
    """
    Inference service call failed.

    Base class for failures raised by InferenceClient implementations.
    """

    pass


class InferenceAuthError(InferenceError):
    """
    Credential invalid or missing.

    Never retried. The caller should ask the user to re-enter configuration.

    Example:
        >>> raise InferenceAuthError("Invalid API key")
    """

    pass


class InferenceTransportError(InferenceError):
    """
    Connectivity problem or timeout.

    Transient: retrying the whole run is safe.

    Example:
        >>> raise InferenceTransportError("Read timeout after 30s")
    """

    pass


class InferenceServiceError(InferenceError):
    """
    The inference service answered with an error.

    Raised when:
    - Rate limit or quota exceeded
    - Server-side failure (5xx)
    - Output blocked or empty

    Example:
        >>> raise InferenceServiceError("429: rate limit exceeded")
    """

    pass


# ═══════════════════════════════════════════════════════════
# INFRASTRUCTURE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class InfrastructureError(DomainError):
    """
    Infrastructure layer error.

    Base class for configuration and storage errors.
    """

    pass


class ConfigurationError(InfrastructureError):
    """
    Settings missing or invalid.

    Example:
        >>> raise ConfigurationError("NUTRISCAN_API_KEY not set")
    """

    pass


class StorageError(InfrastructureError):
    """
    Key-value storage operation failed.

    Example:
        >>> raise StorageError("Cannot write ~/.nutriscan/storage.json")
    """

    pass
