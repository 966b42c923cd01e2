"""Multi-sample estimation and aggregation.

The oracle is non-deterministic: the same (prompt, image) pair can yield
different estimates, or fail. A run asks it several times, drops failed
samples and folds the valid ones into a single AggregatedResult.
"""

from __future__ import annotations

import statistics
import time
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

import structlog

from nutriscan.domain.estimation.models import (
    AggregatedResult,
    AnalysisConfig,
    FailureKind,
    ImagePayload,
    NutritionSample,
    RawSample,
    SampleFailure,
)
from nutriscan.domain.estimation.parser import parse_sample
from nutriscan.domain.estimation.ports import IInferenceClient
from nutriscan.domain.estimation.prompts import render_prompt
from nutriscan.domain.shared.errors import (
    InferenceAuthError,
    InferenceError,
    InferenceTransportError,
    MalformedResponseError,
    NotFoodError,
    NoValidSamplesError,
)
from nutriscan.domain.shared.numeric import mean, round1, round_int

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def classify_client_error(exc: InferenceError) -> FailureKind:
    """Map an inference exception to the failure kind of its sample."""
    if isinstance(exc, InferenceAuthError):
        return FailureKind.AUTH
    if isinstance(exc, InferenceTransportError):
        return FailureKind.TRANSPORT
    return FailureKind.SERVICE


def run_failure(failures: Sequence[SampleFailure]) -> BaseException:
    """
    Pick the exception describing a run with no valid sample.

    Rules, in order:
    1. Any credential failure wins (the user must re-authenticate)
    2. If every call failed at the client, the first client error
    3. All NOT_FOOD -> NotFoodError, all MALFORMED -> MalformedResponseError
    4. Otherwise NoValidSamplesError
    """
    for failure in failures:
        if failure.kind is FailureKind.AUTH and failure.error is not None:
            return failure.error

    if failures and all(f.from_client and f.error is not None for f in failures):
        return failures[0].error  # type: ignore[return-value]

    count = len(failures)
    kinds = {f.kind for f in failures}
    if kinds == {FailureKind.NOT_FOOD}:
        return NotFoodError(f"Not food detected in {count} sample(s)", failures)
    if kinds == {FailureKind.MALFORMED}:
        return MalformedResponseError(f"Malformed response in {count} sample(s)", failures)
    return NoValidSamplesError(f"No valid samples in {count} attempt(s)", failures)


def fold_samples(
    outcomes: Sequence[RawSample],
    image: ImagePayload,
    completed_at: datetime,
) -> AggregatedResult:
    """
    Reduce sample outcomes into one AggregatedResult.

    Failures are dropped. Names come from the first valid sample, numeric
    fields are means over the valid samples.

    Args:
        outcomes: One outcome per attempt, in call order
        image: Input payload, referenced by the result
        completed_at: Aggregation completion time

    Returns:
        AggregatedResult with sample_count = number of valid samples

    Raises:
        NoValidSamplesError: If no outcome is valid (or a subclass)
        InferenceError: If every attempt failed at the client

    Example:
        >>> result = fold_samples([sample_a, failure, sample_b], image, now)
        >>> result.sample_count
        2
    """
    valid: List[NutritionSample] = [o for o in outcomes if isinstance(o, NutritionSample)]
    failures: List[SampleFailure] = [o for o in outcomes if isinstance(o, SampleFailure)]

    if not valid:
        raise run_failure(failures)

    first = valid[0]
    return AggregatedResult(
        food_name=first.food_name,
        portion_description=first.portion_description,
        calories=round_int(mean(s.calories for s in valid)),
        protein=round1(mean(s.protein for s in valid)),
        carbs=round1(mean(s.carbs for s in valid)),
        fat=round1(mean(s.fat for s in valid)),
        fiber=round1(mean(s.fiber for s in valid)),
        sugar=round1(mean(s.sugar for s in valid)),
        confidence=round_int(round1(mean(s.confidence for s in valid))),
        sample_count=len(valid),
        timestamp=completed_at,
        image=image.to_data_url(),
    )


def calorie_variation(samples: Sequence[NutritionSample]) -> Optional[float]:
    """Coefficient of variation of calorie estimates, None if undefined."""
    if len(samples) < 2:
        return None
    values = [s.calories for s in samples]
    avg = statistics.fmean(values)
    if avg <= 0:
        return None
    return round(statistics.pstdev(values) / avg, 3)


class ResultAggregator:
    """
    Drives the sample acquisitions of one run.

    Calls are sequential: a later failure never invalidates earlier
    samples and bursts against the service's rate limit stay bounded.

    Example:
        >>> aggregator = ResultAggregator(openai_client)
        >>> result = await aggregator.run(image, AnalysisConfig.for_mode(True))
        >>> print(f"{result.food_name}: {result.calories} kcal ({result.sample_count} samples)")
    """

    def __init__(
        self,
        inference_client: IInferenceClient,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize aggregator.

        Args:
            inference_client: Implementation of IInferenceClient
            clock: Completion-time source (defaults to UTC now)
        """
        self._client = inference_client
        self._clock = clock or _utcnow

    async def run(self, image: ImagePayload, config: AnalysisConfig) -> AggregatedResult:
        """
        Estimate nutrition for an image.

        Args:
            image: Photo to analyze
            config: Sample count and reference object

        Returns:
            AggregatedResult folded from the valid samples

        Raises:
            NoValidSamplesError: No sample was valid (NotFoodError and
                MalformedResponseError when the cause is uniform)
            InferenceAuthError: Credential rejected and no valid sample
            InferenceError: Every call failed at the client
        """
        prompt = render_prompt(config.reference_object)
        start = time.perf_counter()

        logger.info(
            "Estimation run started",
            sample_count=config.sample_count,
            reference_object=config.reference_object.value,
        )

        outcomes: List[RawSample] = []
        for attempt in range(1, config.sample_count + 1):
            outcomes.append(await self._acquire(prompt, image, attempt))

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        try:
            result = fold_samples(outcomes, image, self._clock())
        except (NoValidSamplesError, InferenceError) as exc:
            logger.warning(
                "Estimation run failed",
                requested=config.sample_count,
                error_type=type(exc).__name__,
                error=str(exc),
                elapsed_ms=elapsed_ms,
            )
            raise

        valid = [o for o in outcomes if isinstance(o, NutritionSample)]
        logger.info(
            "Estimation run complete",
            requested=config.sample_count,
            valid=result.sample_count,
            food_name=result.food_name,
            calories=result.calories,
            confidence=result.confidence,
            calorie_cv=calorie_variation(valid),
            elapsed_ms=elapsed_ms,
        )
        return result

    async def _acquire(self, prompt: str, image: ImagePayload, attempt: int) -> RawSample:
        """Run one inference call and decode it. Never raises inference errors."""
        try:
            raw_text = await self._client.invoke(prompt, image)
        except InferenceError as exc:
            kind = classify_client_error(exc)
            logger.warning("Sample dropped", attempt=attempt, kind=kind.value, error=str(exc))
            return SampleFailure(kind, str(exc), exc)

        outcome = parse_sample(raw_text)
        if isinstance(outcome, SampleFailure):
            logger.warning(
                "Sample dropped",
                attempt=attempt,
                kind=outcome.kind.value,
                error=outcome.detail,
            )
        else:
            logger.debug(
                "Sample accepted",
                attempt=attempt,
                food_name=outcome.food_name,
                calories=outcome.calories,
                confidence=outcome.confidence,
            )
        return outcome
