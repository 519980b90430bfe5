"""
Categorization and Benchmarking Module
"""
from .benchmark import (
    BenchmarkResult,
    Insight,
    InsightPriority,
    InsightTrigger,
    PeerBenchmarker,
    performance_score,
)
from .categorizer import (
    Categorization,
    Effort,
    OpportunityCategorizer,
    OpportunityCategory,
    ResourceEstimate,
    categorize,
)

__all__ = [
    "BenchmarkResult",
    "Categorization",
    "Effort",
    "Insight",
    "InsightPriority",
    "InsightTrigger",
    "OpportunityCategorizer",
    "OpportunityCategory",
    "PeerBenchmarker",
    "ResourceEstimate",
    "categorize",
    "performance_score",
]
