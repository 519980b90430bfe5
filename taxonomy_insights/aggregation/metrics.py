"""
Aggregated Metrics

Additive totals per node plus the rates derived from them. Rates are only
ever computed from a node's own totals, never averaged across children.
"""

import math
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional

from taxonomy_insights.models import MetricFact, MetricSource


def safe_ratio(numerator: float, denominator: float) -> float:
    """Division that yields 0 for a zero denominator"""
    if denominator <= 0:
        return 0.0
    return numerator / denominator


@dataclass(frozen=True)
class AdditiveTotals:
    """Summable fields of one or more facts or nodes"""
    impressions: float = 0.0
    clicks: float = 0.0
    conversions: float = 0.0
    revenue: float = 0.0
    # position * impressions, summed over facts that report a position
    position_weight: float = 0.0
    positioned_impressions: float = 0.0
    fact_count: int = 0
    sources: FrozenSet[MetricSource] = field(default_factory=frozenset)
    
    @classmethod
    def from_facts(cls, facts: Iterable[MetricFact]) -> "AdditiveTotals":
        facts = list(facts)
        positioned = [f for f in facts if f.position is not None]
        return cls(
            impressions=math.fsum(f.impressions for f in facts),
            clicks=math.fsum(f.clicks for f in facts),
            conversions=math.fsum(f.conversions for f in facts),
            revenue=math.fsum(f.revenue for f in facts),
            position_weight=math.fsum(f.position * f.impressions for f in positioned),
            positioned_impressions=math.fsum(f.impressions for f in positioned),
            fact_count=len(facts),
            sources=frozenset(f.source for f in facts),
        )
    
    @classmethod
    def combine(cls, parts: Iterable["AdditiveTotals"]) -> "AdditiveTotals":
        parts = list(parts)
        sources: FrozenSet[MetricSource] = frozenset()
        for part in parts:
            sources = sources | part.sources
        return cls(
            impressions=math.fsum(p.impressions for p in parts),
            clicks=math.fsum(p.clicks for p in parts),
            conversions=math.fsum(p.conversions for p in parts),
            revenue=math.fsum(p.revenue for p in parts),
            position_weight=math.fsum(p.position_weight for p in parts),
            positioned_impressions=math.fsum(p.positioned_impressions for p in parts),
            fact_count=sum(p.fact_count for p in parts),
            sources=sources,
        )


@dataclass(frozen=True)
class AggregatedMetrics:
    """Per-node metrics, recomputed on every aggregation run"""
    impressions: float
    clicks: float
    conversions: float
    revenue: float
    direct_product_count: int
    total_product_count: int
    ctr: float
    conversion_rate: float
    average_order_value: float
    average_position: Optional[float] = None
    fact_count: int = 0
    sources: FrozenSet[MetricSource] = field(default_factory=frozenset)
    totals: AdditiveTotals = field(default_factory=AdditiveTotals, repr=False, compare=False)
    
    @classmethod
    def from_totals(
        cls,
        totals: AdditiveTotals,
        direct_product_count: int = 0,
        total_product_count: int = 0,
    ) -> "AggregatedMetrics":
        """Derive rates from complete totals"""
        average_position = (
            totals.position_weight / totals.positioned_impressions
            if totals.positioned_impressions > 0
            else None
        )
        return cls(
            impressions=totals.impressions,
            clicks=totals.clicks,
            conversions=totals.conversions,
            revenue=totals.revenue,
            direct_product_count=direct_product_count,
            total_product_count=total_product_count,
            ctr=safe_ratio(totals.clicks, totals.impressions),
            conversion_rate=safe_ratio(totals.conversions, totals.clicks),
            average_order_value=safe_ratio(totals.revenue, totals.conversions),
            average_position=average_position,
            fact_count=totals.fact_count,
            sources=totals.sources,
            totals=totals,
        )
    
    @classmethod
    def empty(cls) -> "AggregatedMetrics":
        return cls.from_totals(AdditiveTotals())
    
    @classmethod
    def pooled(cls, metrics: Iterable["AggregatedMetrics"]) -> "AggregatedMetrics":
        """Cohort metrics: totals summed first, rates derived from the sums"""
        metrics = list(metrics)
        return cls.from_totals(
            AdditiveTotals.combine(m.totals for m in metrics),
            direct_product_count=sum(m.direct_product_count for m in metrics),
            total_product_count=sum(m.total_product_count for m in metrics),
        )
    
    @property
    def source_count(self) -> int:
        return len(self.sources)
    
    def to_dict(self) -> dict:
        return {
            "impressions": self.impressions,
            "clicks": self.clicks,
            "conversions": self.conversions,
            "revenue": self.revenue,
            "direct_product_count": self.direct_product_count,
            "total_product_count": self.total_product_count,
            "ctr": self.ctr,
            "conversion_rate": self.conversion_rate,
            "average_order_value": self.average_order_value,
            "average_position": self.average_position,
            "fact_count": self.fact_count,
            "sources": sorted(s.value for s in self.sources),
        }
