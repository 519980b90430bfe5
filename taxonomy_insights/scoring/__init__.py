"""
Opportunity Scoring Module
"""
from .content import ContentSignals, ContentTotals, competitive_gap, content_quality, product_completeness
from .pricing import PricePosition, PricingCalculator, PricingFactors, PricingOpportunity
from .revenue import RevenueCalculator, RevenuePotential
from .scorer import FactorBreakdown, OpportunityScore, OpportunityScorer, ScoreWeights, source_confidence
from .traffic import TrafficCalculator, TrafficPotential, expected_ctr

__all__ = [
    "ContentSignals",
    "ContentTotals",
    "FactorBreakdown",
    "OpportunityScore",
    "OpportunityScorer",
    "PricePosition",
    "PricingCalculator",
    "PricingFactors",
    "PricingOpportunity",
    "RevenueCalculator",
    "RevenuePotential",
    "ScoreWeights",
    "TrafficCalculator",
    "TrafficPotential",
    "competitive_gap",
    "content_quality",
    "expected_ctr",
    "product_completeness",
    "source_confidence",
]
