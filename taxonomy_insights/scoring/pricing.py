"""
Pricing Opportunity

Scores how much room a node's price leaves against the market, from a
pricing snapshot supplied by the pricing-intelligence collaborator.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

import numpy as np

from taxonomy_insights.models import Confidence, PricingSnapshot

# Default price elasticity of demand
PRICE_ELASTICITY = -1.5


class PricePosition(str, Enum):
    BELOW_MARKET = "below_market"
    AT_MARKET = "at_market"
    ABOVE_MARKET = "above_market"


@dataclass(frozen=True)
class PricingFactors:
    price_gap: float = 0.0  # signed percent vs market median
    price_gap_score: float = 0.0
    margin_opportunity: float = 0.0
    competitive_position: float = 0.0
    price_elasticity: float = 0.0


@dataclass(frozen=True)
class PricingOpportunity:
    score: float
    factors: PricingFactors
    confidence: Confidence
    price_position: Optional[PricePosition] = None
    potential_price_increase: float = 0.0
    estimated_revenue_impact: float = 0.0
    recommendations: List[str] = field(default_factory=list)
    
    @classmethod
    def no_data(cls) -> "PricingOpportunity":
        return cls(score=0.0, factors=PricingFactors(), confidence=Confidence.LOW)


class PricingCalculator:
    """
    Pricing opportunity sub-score (0-100).
    
    Example:
        snapshot = PricingSnapshot(our_price=80, market_median=100, market_min=70,
                                   market_max=130, competitor_count=12)
        PricingCalculator().calculate(snapshot, current_revenue=5000, margin_rate=0.2)
    """
    
    AT_MARKET_TOLERANCE = 0.05
    TARGET_MARGIN = 0.30
    ABOVE_MARKET_CAP = 49.0
    
    GAP_WEIGHT = 0.35
    MARGIN_WEIGHT = 0.25
    COMPETITIVE_WEIGHT = 0.25
    ELASTICITY_WEIGHT = 0.15
    
    def calculate(
        self,
        snapshot: Optional[PricingSnapshot],
        current_revenue: float = 0.0,
        margin_rate: Optional[float] = None,
    ) -> PricingOpportunity:
        if snapshot is None or snapshot.competitor_count == 0:
            return PricingOpportunity.no_data()
        if snapshot.our_price == 0 and snapshot.market_median == 0:
            return PricingOpportunity.no_data()
        
        position = self.price_position(snapshot)
        price_gap = self.price_gap(snapshot)
        gap_score = self.price_gap_score(snapshot, position)
        margin_score = self.margin_opportunity(margin_rate)
        competitive_score = self.competitive_position(snapshot)
        elasticity_score = self.price_elasticity(position, current_revenue)
        
        score = (
            gap_score * self.GAP_WEIGHT
            + margin_score * self.MARGIN_WEIGHT
            + competitive_score * self.COMPETITIVE_WEIGHT
            + elasticity_score * self.ELASTICITY_WEIGHT
        )
        score = min(100.0, max(0.0, score))
        if position == PricePosition.ABOVE_MARKET:
            score = min(score, self.ABOVE_MARKET_CAP)
        
        increase = self.potential_price_increase(snapshot, position)
        impact = self.estimate_revenue_impact(current_revenue, increase, snapshot.our_price)
        
        return PricingOpportunity(
            score=score,
            factors=PricingFactors(
                price_gap=price_gap,
                price_gap_score=gap_score,
                margin_opportunity=margin_score,
                competitive_position=competitive_score,
                price_elasticity=elasticity_score,
            ),
            confidence=self.confidence(snapshot),
            price_position=position,
            potential_price_increase=increase,
            estimated_revenue_impact=impact,
            recommendations=self._recommendations(snapshot, position, margin_score, margin_rate),
        )
    
    def price_position(self, snapshot: PricingSnapshot) -> PricePosition:
        median = snapshot.market_median
        if median <= 0:
            return PricePosition.AT_MARKET if snapshot.our_price == 0 else PricePosition.ABOVE_MARKET
        if snapshot.our_price < median * (1 - self.AT_MARKET_TOLERANCE):
            return PricePosition.BELOW_MARKET
        if snapshot.our_price > median * (1 + self.AT_MARKET_TOLERANCE):
            return PricePosition.ABOVE_MARKET
        return PricePosition.AT_MARKET
    
    @staticmethod
    def price_gap(snapshot: PricingSnapshot) -> float:
        """Signed percentage deviation from the market median"""
        if snapshot.market_median <= 0:
            return 0.0
        return (snapshot.our_price - snapshot.market_median) / snapshot.market_median * 100
    
    @staticmethod
    def price_gap_score(snapshot: PricingSnapshot, position: PricePosition) -> float:
        median = snapshot.market_median
        if position == PricePosition.BELOW_MARKET:
            max_gap = median - snapshot.market_min
            if max_gap <= 0:
                return 50.0
            return min(100.0, (median - snapshot.our_price) / max_gap * 100)
        if position == PricePosition.ABOVE_MARKET:
            max_gap = snapshot.market_max - median
            if max_gap <= 0:
                return 30.0
            relative = (snapshot.our_price - median) / max_gap
            return max(20.0, 50 - relative * 30)
        return 10.0
    
    def margin_opportunity(self, margin_rate: Optional[float]) -> float:
        """Headroom below the target margin"""
        if margin_rate is None or margin_rate >= self.TARGET_MARGIN:
            return 0.0
        return min(100.0, (self.TARGET_MARGIN - margin_rate) * 333)
    
    @staticmethod
    def competitive_position(snapshot: PricingSnapshot) -> float:
        low, high = snapshot.market_min, snapshot.market_max
        if not low <= snapshot.our_price <= high:
            return 0.0
        spread = high - low
        if spread > 0:
            closeness = 1 - abs(snapshot.our_price - snapshot.market_median) / spread
        else:
            closeness = 1.0 if snapshot.our_price == snapshot.market_median else 0.0
        closeness = min(1.0, max(0.0, closeness))
        density = min(1.0, snapshot.competitor_count / 10)
        return 100 * closeness * (0.5 + 0.5 * density)
    
    @staticmethod
    def price_elasticity(position: PricePosition, current_revenue: float) -> float:
        if current_revenue <= 0:
            return 50.0
        if position == PricePosition.BELOW_MARKET:
            return 80.0
        if position == PricePosition.ABOVE_MARKET:
            return 20.0
        return 50.0
    
    def potential_price_increase(self, snapshot: PricingSnapshot, position: PricePosition) -> float:
        if position == PricePosition.BELOW_MARKET:
            return snapshot.market_median - snapshot.our_price
        if position == PricePosition.AT_MARKET:
            return snapshot.our_price * self.AT_MARKET_TOLERANCE
        return 0.0
    
    @staticmethod
    def estimate_revenue_impact(current_revenue: float, increase: float, our_price: float) -> float:
        """Revenue gained at current volume"""
        if current_revenue <= 0 or our_price <= 0:
            return 0.0
        return max(0.0, current_revenue * increase / our_price)
    
    @staticmethod
    def confidence(snapshot: PricingSnapshot) -> Confidence:
        if snapshot.market_median <= 0:
            return Confidence.LOW
        dispersion = (snapshot.market_max - snapshot.market_min) / snapshot.market_median
        if snapshot.competitor_count >= 10 and dispersion <= 0.5:
            return Confidence.HIGH
        if snapshot.competitor_count < 5 or dispersion > 1.0:
            return Confidence.LOW
        return Confidence.MEDIUM
    
    @staticmethod
    def _recommendations(
        snapshot: PricingSnapshot,
        position: PricePosition,
        margin_score: float,
        margin_rate: Optional[float],
    ) -> List[str]:
        recommendations = []
        if position == PricePosition.BELOW_MARKET:
            recommendations.append("raise-price-toward-median")
        elif position == PricePosition.ABOVE_MARKET:
            recommendations.append("test-lower-price-points")
        else:
            recommendations.append("monitor-competitor-pricing")
        if margin_score > 60:
            recommendations.append("improve-margin")
        if snapshot.competitor_count > 10:
            recommendations.append("differentiate-on-value")
        if margin_rate is not None and margin_rate < 0.15:
            recommendations.append("urgent-pricing-review")
        return recommendations
    
    @staticmethod
    def analyze_price_sensitivity(history: Sequence[Tuple[float, float]]) -> float:
        """
        Average price elasticity from consecutive (price, units) points.
        
        Falls back to the default elasticity with fewer than two usable
        observations.
        """
        ratios = []
        for (prev_price, prev_units), (price, units) in zip(history, history[1:]):
            if prev_price == 0 or prev_units == 0:
                continue
            price_change = (price - prev_price) / prev_price
            if price_change == 0:
                continue
            ratios.append(((units - prev_units) / prev_units) / price_change)
        if not ratios:
            return PRICE_ELASTICITY
        return float(np.mean(ratios))
