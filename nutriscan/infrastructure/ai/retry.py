"""Transport-level retry policy shared by the inference adapters.

Only InferenceTransportError is retried. Auth and service errors surface
on the first attempt so the aggregator can record them as failed samples.
"""

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from nutriscan.domain.shared.errors import InferenceTransportError

logger = structlog.get_logger(__name__)


def _log_retry(state: RetryCallState) -> None:
    error = state.outcome.exception() if state.outcome else None
    logger.warning(
        "Inference transport failure, retrying",
        attempt=state.attempt_number,
        error=str(error),
    )


def transport_retrying(retries: int, wait_multiplier: float = 1.0) -> AsyncRetrying:
    """
    Build the retry controller for one inference call.

    Args:
        retries: Extra attempts after the first one (0 disables retry)
        wait_multiplier: Backoff base in seconds (0 for tests)

    Example:
        >>> async for attempt in transport_retrying(2):
        ...     with attempt:
        ...         text = await call()
    """
    return AsyncRetrying(
        stop=stop_after_attempt(retries + 1),
        wait=wait_exponential(multiplier=wait_multiplier, min=0, max=10),
        retry=retry_if_exception_type(InferenceTransportError),
        before_sleep=_log_retry,
        reraise=True,
    )
