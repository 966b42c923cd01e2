"""Shared domain primitives: exceptions and numeric helpers."""

from nutriscan.domain.shared.errors import (
    ConfigurationError,
    DomainError,
    EstimationError,
    ExternalServiceError,
    InferenceAuthError,
    InferenceError,
    InferenceServiceError,
    InferenceTransportError,
    InfrastructureError,
    InvalidPortionError,
    MalformedResponseError,
    NotFoodError,
    NoValidSamplesError,
    StorageError,
    ValidationError,
)

__all__ = [
    "ConfigurationError",
    "DomainError",
    "EstimationError",
    "ExternalServiceError",
    "InferenceAuthError",
    "InferenceError",
    "InferenceServiceError",
    "InferenceTransportError",
    "InfrastructureError",
    "InvalidPortionError",
    "MalformedResponseError",
    "NotFoodError",
    "NoValidSamplesError",
    "StorageError",
    "ValidationError",
]
