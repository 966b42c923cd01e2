"""NutritionEstimationService - entry point for the surrounding application."""

from typing import List

import structlog

from nutriscan.domain.estimation.aggregator import ResultAggregator
from nutriscan.domain.estimation.models import (
    DEFAULT_PORTION_PCT,
    AggregatedResult,
    AnalysisConfig,
    ImagePayload,
    ScaledView,
)
from nutriscan.domain.estimation.portion import scale_result
from nutriscan.domain.history.store import HistoryStore
from nutriscan.domain.shared.errors import StorageError

logger = structlog.get_logger(__name__)


class NutritionEstimationService:
    """
    Coordinates estimation, history and portion scaling.

    Flow:
    1. Run the aggregator on the image with the run configuration
    2. Record the result in history
    3. Scale any result on demand for display

    Example:
        >>> service = NutritionEstimationService(aggregator, history)
        >>> result = await service.analyze(image, AnalysisConfig.for_mode(True))
        >>> service.view(result, pct=150).calories
    """

    def __init__(self, aggregator: ResultAggregator, history: HistoryStore):
        self._aggregator = aggregator
        self._history = history

    async def analyze(self, image: ImagePayload, config: AnalysisConfig) -> AggregatedResult:
        """
        Estimate nutrition for an image and record the result.

        A failed run records nothing. A history write failure is logged
        and the result is still returned.

        Raises:
            NoValidSamplesError: No sample was valid
            InferenceError: Client failure with no valid sample
        """
        result = await self._aggregator.run(image, config)

        try:
            self._history.record(result)
        except StorageError as exc:
            logger.error("History write failed, result not persisted", error=str(exc))

        return result

    def history(self) -> List[AggregatedResult]:
        """Past results, most recent first."""
        return self._history.list()

    def clear_history(self) -> None:
        self._history.clear()

    def view(self, result: AggregatedResult, pct: int = DEFAULT_PORTION_PCT) -> ScaledView:
        """
        Portion-adjusted view of a result.

        Raises:
            InvalidPortionError: If pct is not an allowed percentage
        """
        return scale_result(result, pct)
