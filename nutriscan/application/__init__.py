"""Application services."""

from nutriscan.application.estimation_service import NutritionEstimationService

__all__ = ["NutritionEstimationService"]
