"""Estimation pipeline: prompt, parsing, aggregation and portion scaling."""

from nutriscan.domain.estimation.aggregator import ResultAggregator, fold_samples
from nutriscan.domain.estimation.models import (
    AggregatedResult,
    AnalysisConfig,
    FailureKind,
    ImagePayload,
    NutritionSample,
    PortionAdjustment,
    RawSample,
    ReferenceObject,
    SampleFailure,
    ScaledView,
)
from nutriscan.domain.estimation.parser import parse_sample
from nutriscan.domain.estimation.portion import scale_result
from nutriscan.domain.estimation.ports import IInferenceClient
from nutriscan.domain.estimation.prompts import render_prompt

__all__ = [
    "AggregatedResult",
    "AnalysisConfig",
    "FailureKind",
    "IInferenceClient",
    "ImagePayload",
    "NutritionSample",
    "PortionAdjustment",
    "RawSample",
    "ReferenceObject",
    "ResultAggregator",
    "SampleFailure",
    "ScaledView",
    "fold_samples",
    "parse_sample",
    "render_prompt",
    "scale_result",
]
