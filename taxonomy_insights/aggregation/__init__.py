"""
Metric Aggregation Module
"""
from .aggregator import AggregationDiagnostics, AggregationResult, PerformanceAggregator
from .metrics import AdditiveTotals, AggregatedMetrics, safe_ratio

__all__ = [
    "AdditiveTotals",
    "AggregatedMetrics",
    "AggregationDiagnostics",
    "AggregationResult",
    "PerformanceAggregator",
    "safe_ratio",
]
