"""
Taxonomy Insights

Roll-up of search, analytics and merchant performance facts over a product
category taxonomy, with opportunity scoring and peer benchmarking.
"""
from taxonomy_insights.aggregation import AggregatedMetrics, PerformanceAggregator
from taxonomy_insights.analysis import OpportunityCategorizer, PeerBenchmarker, categorize
from taxonomy_insights.errors import PipelineWarning, TaxonomyConflictError, TaxonomyError
from taxonomy_insights.matching import FactMatcher, match_all, validate_gtin
from taxonomy_insights.models import DateRange, MetricFact, MetricSource, PricingSnapshot, Product, TaxonomyNode
from taxonomy_insights.pipeline import AggregationRun, RunProgress
from taxonomy_insights.scoring import OpportunityScore, OpportunityScorer, PricingCalculator
from taxonomy_insights.taxonomy import TaxonomyTree

__version__ = "1.0.0"

__all__ = [
    "AggregatedMetrics",
    "AggregationRun",
    "DateRange",
    "FactMatcher",
    "MetricFact",
    "MetricSource",
    "OpportunityCategorizer",
    "OpportunityScore",
    "OpportunityScorer",
    "PeerBenchmarker",
    "PerformanceAggregator",
    "PipelineWarning",
    "PricingCalculator",
    "PricingSnapshot",
    "Product",
    "RunProgress",
    "TaxonomyConflictError",
    "TaxonomyError",
    "TaxonomyNode",
    "TaxonomyTree",
    "categorize",
    "match_all",
    "validate_gtin",
]
