"""
Pipeline Module

Phased aggregation runs and polars table adapters.
"""
from .frames import facts_from_frame, metrics_to_frame, scores_to_frame
from .run import AggregationRun, RunDiagnostics, RunPhase, RunProgress

__all__ = [
    "AggregationRun",
    "RunDiagnostics",
    "RunPhase",
    "RunProgress",
    "facts_from_frame",
    "metrics_to_frame",
    "scores_to_frame",
]
