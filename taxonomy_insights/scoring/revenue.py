"""
Revenue Potential

Compares a node's conversion rate, order value and revenue per session
with e-commerce benchmarks. Clicks stand in for sessions.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from taxonomy_insights.aggregation import AggregatedMetrics, safe_ratio

BENCHMARK_CONVERSION_RATE = 0.025
BENCHMARK_AVERAGE_ORDER_VALUE = 150.0
BENCHMARK_REVENUE_PER_SESSION = 3.75


@dataclass(frozen=True)
class RevenuePotential:
    score: float
    conversion_gap: float
    aov_gap: float
    monetization_gap: float
    potential_revenue: float
    recommendations: List[str] = field(default_factory=list)


class RevenueCalculator:
    """Revenue potential sub-score (0-100)"""
    
    CONVERSION_WEIGHT = 0.40
    AOV_WEIGHT = 0.30
    MONETIZATION_WEIGHT = 0.30
    
    def __init__(
        self,
        conversion_rate: float = BENCHMARK_CONVERSION_RATE,
        average_order_value: float = BENCHMARK_AVERAGE_ORDER_VALUE,
        revenue_per_session: float = BENCHMARK_REVENUE_PER_SESSION,
    ):
        self.conversion_rate = conversion_rate
        self.average_order_value = average_order_value
        self.revenue_per_session = revenue_per_session
    
    def calculate(self, metrics: Optional[AggregatedMetrics]) -> RevenuePotential:
        if metrics is None or metrics.clicks <= 0:
            return RevenuePotential(
                score=0.0,
                conversion_gap=0.0,
                aov_gap=0.0,
                monetization_gap=0.0,
                potential_revenue=0.0,
                recommendations=["no-traffic-data"],
            )
        
        conversion_gap = self.conversion_gap(metrics.conversion_rate)
        aov_gap = self.aov_gap(metrics.average_order_value) if metrics.conversions > 0 else 0.0
        monetization_gap = self.monetization_gap(metrics.clicks, metrics.revenue)
        
        score = (
            conversion_gap * self.CONVERSION_WEIGHT
            + aov_gap * self.AOV_WEIGHT
            + monetization_gap * self.MONETIZATION_WEIGHT
        )
        
        recommendations = []
        if conversion_gap > 60:
            recommendations.append("optimize-conversion-rate")
        if aov_gap > 60:
            recommendations.append("increase-order-value")
        if monetization_gap > 60:
            recommendations.append("review-product-relevance")
        if metrics.revenue == 0:
            recommendations.append("verify-revenue-tracking")
        
        return RevenuePotential(
            score=min(100.0, score),
            conversion_gap=conversion_gap,
            aov_gap=aov_gap,
            monetization_gap=monetization_gap,
            potential_revenue=self.potential_revenue(metrics),
            recommendations=recommendations,
        )
    
    def conversion_gap(self, rate: float) -> float:
        if rate >= self.conversion_rate:
            return 0.0
        relative_gap = (self.conversion_rate - rate) / self.conversion_rate
        if relative_gap >= 0.8:
            return 100.0
        if relative_gap >= 0.5:
            return 80.0
        if relative_gap >= 0.3:
            return 60.0
        if relative_gap >= 0.1:
            return 40.0
        return 20.0
    
    def aov_gap(self, average_order_value: float) -> float:
        if average_order_value >= self.average_order_value:
            return 0.0
        relative_gap = (self.average_order_value - average_order_value) / self.average_order_value
        return min(100.0, relative_gap * 200)
    
    def monetization_gap(self, sessions: float, revenue: float) -> float:
        """High traffic with little revenue is the opportunity"""
        if sessions <= 0:
            return 0.0
        per_session = safe_ratio(revenue, sessions)
        if sessions > 1000 and per_session < 1:
            return 100.0
        if sessions > 500 and per_session < 2:
            return 80.0
        if sessions > 100 and per_session < 3:
            return 60.0
        if sessions > 50 and revenue == 0:
            return 50.0
        if per_session < self.revenue_per_session:
            return 30.0
        return 0.0
    
    def potential_revenue(self, metrics: AggregatedMetrics) -> float:
        """Revenue gained by performing at benchmark, never negative"""
        benchmark_revenue = metrics.clicks * self.conversion_rate * self.average_order_value
        return max(0.0, benchmark_revenue - metrics.revenue)
