"""
Peer Benchmarking

Compares a node with the pooled totals of its same-depth peers and turns
the comparison into prioritized insight triggers.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence

import structlog
from scipy.stats import percentileofscore

from taxonomy_insights.aggregation import AggregatedMetrics, AggregationResult, safe_ratio
from taxonomy_insights.config import get_settings
from taxonomy_insights.taxonomy import TaxonomyTree

logger = structlog.get_logger(__name__)


class InsightTrigger(str, Enum):
    CRITICAL = "critical"
    HIGH_PRIORITY = "high-priority"
    CONVERSION_FOCUS = "conversion-focus"
    LOW_PERFORMANCE = "low-performance"


class InsightPriority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


PRIORITY_ORDER: Dict[InsightPriority, int] = {
    InsightPriority.CRITICAL: 0,
    InsightPriority.HIGH: 1,
    InsightPriority.MEDIUM: 2,
    InsightPriority.LOW: 3,
}


@dataclass(frozen=True)
class BenchmarkResult:
    """Percent deviation from the pooled peer cohort and a rank percentile"""
    ctr_delta: float
    conversion_delta: float
    relative_rank: float
    cohort_size: int
    cohort: AggregatedMetrics


@dataclass(frozen=True)
class Insight:
    node_id: str
    trigger: InsightTrigger
    priority: InsightPriority
    issue: str
    recommendation: str
    potential_impact: float


def percent_delta(value: float, baseline: float) -> float:
    """Percentage deviation of value from baseline, 0 for a zero baseline"""
    return safe_ratio(value - baseline, baseline) * 100


def performance_score(metrics: AggregatedMetrics) -> float:
    """0-100 health score from CTR, conversion rate, revenue and volume bands"""
    score = 0.0
    
    if metrics.impressions >= 100:
        if metrics.ctr >= 0.025:
            score += 30
        elif metrics.ctr >= 0.015:
            score += 20
        elif metrics.ctr >= 0.0086:
            score += 10
        elif metrics.ctr > 0:
            score += 5
    
    if metrics.clicks >= 50:
        if metrics.conversion_rate >= 0.035:
            score += 30
        elif metrics.conversion_rate >= 0.025:
            score += 20
        elif metrics.conversion_rate >= 0.0191:
            score += 10
        elif metrics.conversion_rate > 0:
            score += 5
    
    for threshold, points in ((10_000, 20), (5_000, 15), (1_000, 10), (100, 5)):
        if metrics.revenue > threshold:
            score += points
            break
    
    for threshold, points in ((10_000, 20), (5_000, 15), (1_000, 10), (100, 5)):
        if metrics.impressions > threshold:
            score += points
            break
    
    return min(100.0, score)


class PeerBenchmarker:
    """
    Same-depth peer comparison.
    
    The cohort is every node at the node's depth with non-zero impressions,
    the node itself included. Cohort rates come from pooled totals.
    """
    
    def __init__(
        self,
        min_impressions: Optional[int] = None,
        critical_min_impressions: Optional[int] = None,
        critical_max_ctr: Optional[float] = None,
        ctr_gap_threshold: Optional[float] = None,
        conversion_min_clicks: Optional[int] = None,
        conversion_max_rate: Optional[float] = None,
    ):
        settings = get_settings().benchmark
        self.min_impressions = settings.min_impressions if min_impressions is None else min_impressions
        self.critical_min_impressions = (
            settings.critical_min_impressions if critical_min_impressions is None else critical_min_impressions
        )
        self.critical_max_ctr = settings.critical_max_ctr if critical_max_ctr is None else critical_max_ctr
        self.ctr_gap_threshold = settings.ctr_gap_threshold if ctr_gap_threshold is None else ctr_gap_threshold
        self.conversion_min_clicks = (
            settings.conversion_min_clicks if conversion_min_clicks is None else conversion_min_clicks
        )
        self.conversion_max_rate = (
            settings.conversion_max_rate if conversion_max_rate is None else conversion_max_rate
        )
    
    def benchmark(self, node: AggregatedMetrics, peers: Sequence[AggregatedMetrics]) -> BenchmarkResult:
        cohort = [p for p in peers if p.impressions > 0]
        pooled = AggregatedMetrics.pooled(cohort)
        relative_rank = (
            float(percentileofscore([p.ctr for p in cohort], node.ctr, kind="weak"))
            if cohort
            else 0.0
        )
        return BenchmarkResult(
            ctr_delta=percent_delta(node.ctr, pooled.ctr),
            conversion_delta=percent_delta(node.conversion_rate, pooled.conversion_rate),
            relative_rank=relative_rank,
            cohort_size=len(cohort),
            cohort=pooled,
        )
    
    def benchmark_node(self, tree: TaxonomyTree, aggregation: AggregationResult, node_id: str) -> BenchmarkResult:
        peers = [aggregation[p.id] for p in tree.peers_of(node_id)]
        return self.benchmark(aggregation[node_id], peers)
    
    def benchmark_all(self, tree: TaxonomyTree, aggregation: AggregationResult) -> Dict[str, BenchmarkResult]:
        results: Dict[str, BenchmarkResult] = {}
        for depth in range(tree.max_depth + 1):
            level = tree.nodes_at_depth(depth)
            peers = [aggregation[n.id] for n in level]
            for node in level:
                results[node.id] = self.benchmark(aggregation[node.id], peers)
        return results
    
    def insights_for(
        self,
        node_id: str,
        metrics: AggregatedMetrics,
        comparison: BenchmarkResult,
    ) -> List[Insight]:
        insights = []
        
        if metrics.impressions >= self.critical_min_impressions and metrics.ctr < self.critical_max_ctr:
            insights.append(Insight(
                node_id=node_id,
                trigger=InsightTrigger.CRITICAL,
                priority=InsightPriority.CRITICAL,
                issue=f"CTR {metrics.ctr:.2%} despite {metrics.impressions:.0f} impressions",
                recommendation="Review product titles and images",
                potential_impact=round(metrics.impressions * 0.02),
            ))
        elif comparison.ctr_delta <= self.ctr_gap_threshold:
            insights.append(Insight(
                node_id=node_id,
                trigger=InsightTrigger.HIGH_PRIORITY,
                priority=InsightPriority.HIGH,
                issue=f"CTR {abs(comparison.ctr_delta):.0f}% below peer average",
                recommendation="Optimize product titles and descriptions",
                potential_impact=max(0.0, metrics.impressions * comparison.cohort.ctr - metrics.clicks),
            ))
        
        if metrics.clicks >= self.conversion_min_clicks and metrics.conversion_rate < self.conversion_max_rate:
            insights.append(Insight(
                node_id=node_id,
                trigger=InsightTrigger.CONVERSION_FOCUS,
                priority=InsightPriority.HIGH,
                issue=f"Conversion rate {metrics.conversion_rate:.2%}",
                recommendation="Review pricing, shipping costs and product descriptions",
                potential_impact=round(metrics.clicks * 0.02 * 50),
            ))
        
        score = performance_score(metrics)
        if score < 50 and metrics.total_product_count > 5:
            insights.append(Insight(
                node_id=node_id,
                trigger=InsightTrigger.LOW_PERFORMANCE,
                priority=InsightPriority.MEDIUM,
                issue=f"Performance score {score:.0f}/100",
                recommendation="Improve content quality and product visibility",
                potential_impact=50 - score,
            ))
        
        return insights
    
    def find_opportunities(self, tree: TaxonomyTree, aggregation: AggregationResult) -> List[Insight]:
        """Insights for every node with at least min_impressions, most urgent first"""
        comparisons = self.benchmark_all(tree, aggregation)
        insights: List[Insight] = []
        for node in tree:
            metrics = aggregation[node.id]
            if metrics.impressions < self.min_impressions:
                continue
            insights.extend(self.insights_for(node.id, metrics, comparisons[node.id]))
        
        insights.sort(key=lambda i: (PRIORITY_ORDER[i.priority], i.node_id, i.trigger.value))
        logger.info("Opportunity scan complete", insights=len(insights))
        return insights
