"""
Opportunity Scorer

Composite 0-100 opportunity score per node from five weighted sub-scores:

    score = traffic * 0.25 + revenue * 0.30 + pricing * 0.25
          + competitive * 0.10 + content * 0.10
"""

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple

import structlog

from taxonomy_insights.aggregation import AggregatedMetrics, AggregationResult
from taxonomy_insights.analysis.categorizer import OpportunityCategorizer, OpportunityCategory
from taxonomy_insights.config import get_settings
from taxonomy_insights.models import Confidence, PricingSnapshot, Product
from taxonomy_insights.taxonomy import TaxonomyTree

from .content import ContentSignals, ContentTotals, competitive_gap, content_quality
from .pricing import PricingCalculator, PricingOpportunity
from .revenue import RevenueCalculator
from .traffic import TrafficCalculator

logger = structlog.get_logger(__name__)

MAX_RECOMMENDATIONS = 5


@dataclass(frozen=True)
class ScoreWeights:
    traffic: float = 0.25
    revenue: float = 0.30
    pricing: float = 0.25
    competitive: float = 0.10
    content: float = 0.10
    
    def __post_init__(self):
        total = self.traffic + self.revenue + self.pricing + self.competitive + self.content
        if abs(total - 1.0) > 1e-9:
            raise ValueError(f"Score weights must sum to 1.0, got {total}")
    
    @classmethod
    def from_settings(cls) -> "ScoreWeights":
        scoring = get_settings().scoring
        return cls(
            traffic=scoring.traffic_weight,
            revenue=scoring.revenue_weight,
            pricing=scoring.pricing_weight,
            competitive=scoring.competitive_weight,
            content=scoring.content_weight,
        )


@dataclass(frozen=True)
class FactorBreakdown:
    """The five 0-100 sub-scores behind a composite score"""
    traffic_potential: float
    revenue_potential: float
    pricing_opportunity: float
    competitive_gap: float
    content_quality: float
    
    def weighted_total(self, weights: ScoreWeights) -> float:
        return (
            self.traffic_potential * weights.traffic
            + self.revenue_potential * weights.revenue
            + self.pricing_opportunity * weights.pricing
            + self.competitive_gap * weights.competitive
            + self.content_quality * weights.content
        )
    
    def to_dict(self) -> Dict[str, float]:
        return {
            "traffic_potential": self.traffic_potential,
            "revenue_potential": self.revenue_potential,
            "pricing_opportunity": self.pricing_opportunity,
            "competitive_gap": self.competitive_gap,
            "content_quality": self.content_quality,
        }


@dataclass(frozen=True)
class OpportunityScore:
    node_id: str
    score: float
    factor_breakdown: FactorBreakdown
    category: OpportunityCategory
    confidence: Confidence
    revenue_impact_estimate: float
    traffic_impact_estimate: float = 0.0
    product_count: int = 0
    recommendations: Tuple[str, ...] = ()
    pricing: Optional[PricingOpportunity] = field(default=None, repr=False)


def source_confidence(source_count: int) -> Confidence:
    """3+ independent sources is high, 2 is medium, fewer is low"""
    if source_count >= 3:
        return Confidence.HIGH
    if source_count == 2:
        return Confidence.MEDIUM
    return Confidence.LOW


class OpportunityScorer:
    """
    Scores aggregated nodes.
    
    Calculators are stateless; one scorer may be shared by concurrent runs.
    """
    
    def __init__(
        self,
        weights: Optional[ScoreWeights] = None,
        categorizer: Optional[OpportunityCategorizer] = None,
    ):
        self.weights = weights or ScoreWeights.from_settings()
        self.categorizer = categorizer or OpportunityCategorizer()
        self.traffic = TrafficCalculator()
        self.revenue = RevenueCalculator()
        self.pricing = PricingCalculator()
    
    def score_node(
        self,
        node_id: str,
        metrics: AggregatedMetrics,
        content: Optional[ContentSignals] = None,
        pricing: Optional[PricingSnapshot] = None,
        margin_rate: Optional[float] = None,
    ) -> OpportunityScore:
        content = content or ContentSignals()
        
        traffic = self.traffic.calculate(metrics)
        revenue = self.revenue.calculate(metrics)
        price = self.pricing.calculate(pricing, current_revenue=metrics.revenue, margin_rate=margin_rate)
        
        breakdown = FactorBreakdown(
            traffic_potential=traffic.score,
            revenue_potential=revenue.score,
            pricing_opportunity=price.score,
            competitive_gap=competitive_gap(metrics.average_position, content),
            content_quality=content_quality(content),
        )
        score = breakdown.weighted_total(self.weights)
        product_count = metrics.total_product_count
        
        recommendations = []
        for code in traffic.recommendations + revenue.recommendations + price.recommendations:
            if code not in recommendations:
                recommendations.append(code)
        
        return OpportunityScore(
            node_id=node_id,
            score=score,
            factor_breakdown=breakdown,
            category=self.categorizer.categorize(score, product_count),
            confidence=source_confidence(metrics.source_count),
            revenue_impact_estimate=revenue.potential_revenue + price.estimated_revenue_impact,
            traffic_impact_estimate=self.traffic.estimate_traffic_increase(metrics),
            product_count=product_count,
            recommendations=tuple(recommendations[:MAX_RECOMMENDATIONS]),
            pricing=price if pricing is not None else None,
        )
    
    @staticmethod
    def content_totals(tree: TaxonomyTree, products: Mapping[str, Product]) -> Dict[str, ContentTotals]:
        """Content counts per node over its whole subtree, children before parents"""
        totals: Dict[str, ContentTotals] = {}
        for node_id in tree.post_order():
            node = tree[node_id]
            own = ContentTotals.from_products(
                products[pid] for pid in sorted(node.direct_product_ids) if pid in products
            )
            totals[node_id] = ContentTotals.combine([own] + [totals[c] for c in node.children])
        return totals
    
    def score_all(
        self,
        tree: TaxonomyTree,
        aggregation: AggregationResult,
        products: Optional[Mapping[str, Product]] = None,
        pricing: Optional[Mapping[str, PricingSnapshot]] = None,
        margins: Optional[Mapping[str, float]] = None,
    ) -> Dict[str, OpportunityScore]:
        """Score every node in id order"""
        products = products or {}
        pricing = pricing or {}
        margins = margins or {}
        
        content = self.content_totals(tree, products)
        scores: Dict[str, OpportunityScore] = {}
        for node in tree:
            scores[node.id] = self.score_node(
                node.id,
                aggregation.get(node.id) or AggregatedMetrics.empty(),
                content=content[node.id].signals(),
                pricing=pricing.get(node.id),
                margin_rate=margins.get(node.id),
            )
        
        logger.info(
            "Scoring complete",
            nodes=len(scores),
            quick_wins=sum(1 for s in scores.values() if s.category == OpportunityCategory.QUICK_WIN),
        )
        return scores
