"""
Traffic Potential

How much search traffic a node leaves on the table given its average
position, CTR and impression volume.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from taxonomy_insights.aggregation import AggregatedMetrics

# Industry average CTR for organic positions 1-10
CTR_BY_POSITION = (0.285, 0.157, 0.094, 0.064, 0.044, 0.031, 0.022, 0.017, 0.014, 0.012)

# Used when no search console fact reported a position
DEFAULT_POSITION = 20.0


def expected_ctr(position: Optional[float]) -> float:
    """Expected CTR for an average search position"""
    if position is None:
        position = DEFAULT_POSITION
    if position <= 0:
        return 0.0
    if position < 1:
        return CTR_BY_POSITION[0]
    if position <= 10:
        return CTR_BY_POSITION[int(position) - 1]
    if position <= 20:
        return 0.008
    if position <= 30:
        return 0.004
    return 0.002


def position_gap_score(position: float) -> float:
    """Value of moving up from the current position"""
    if position <= 1:
        return 0.0
    if position <= 3:
        return (position - 1) * 30
    if position <= 10:
        return 60 + (position - 3) * 5
    return min(100.0, 80 + (position - 10))


def impression_factor_score(impressions: float, position: float) -> float:
    """High demand sitting at a poor position is the strongest signal"""
    if impressions > 1000 and position > 10:
        return 90.0
    if impressions > 500 and position > 5:
        return 70.0
    if impressions > 100 and position > 3:
        return 50.0
    if impressions < 100 and position > 10:
        return 30.0
    return 10.0


@dataclass(frozen=True)
class TrafficPotential:
    score: float
    ctr_gap: float
    position_gap: float
    impression_factor: float
    expected_ctr: float
    recommendations: List[str] = field(default_factory=list)


class TrafficCalculator:
    """Traffic potential sub-score (0-100)"""
    
    CTR_GAP_WEIGHT = 0.50
    POSITION_GAP_WEIGHT = 0.30
    IMPRESSION_WEIGHT = 0.20
    
    def calculate(self, metrics: Optional[AggregatedMetrics]) -> TrafficPotential:
        if metrics is None or metrics.impressions <= 0:
            return TrafficPotential(
                score=0.0,
                ctr_gap=0.0,
                position_gap=0.0,
                impression_factor=0.0,
                expected_ctr=0.0,
                recommendations=["no-search-data"],
            )
        
        position = metrics.average_position if metrics.average_position is not None else DEFAULT_POSITION
        expected = expected_ctr(position)
        ctr_gap = min(100.0, max(0.0, expected - metrics.ctr) * 500)
        position_gap = position_gap_score(position)
        impression_factor = impression_factor_score(metrics.impressions, position)
        
        score = (
            ctr_gap * self.CTR_GAP_WEIGHT
            + position_gap * self.POSITION_GAP_WEIGHT
            + impression_factor * self.IMPRESSION_WEIGHT
        )
        
        return TrafficPotential(
            score=min(100.0, score),
            ctr_gap=ctr_gap,
            position_gap=position_gap,
            impression_factor=impression_factor,
            expected_ctr=expected,
            recommendations=self._recommendations(metrics, position, expected),
        )
    
    def estimate_traffic_increase(self, metrics: AggregatedMetrics, target_position: float = 3) -> float:
        """Additional clicks if the node ranked at target_position"""
        potential_clicks = metrics.impressions * expected_ctr(target_position)
        return max(0.0, potential_clicks - metrics.clicks)
    
    @staticmethod
    def _recommendations(metrics: AggregatedMetrics, position: float, expected: float) -> List[str]:
        recommendations = []
        if expected - metrics.ctr > 0.05:
            recommendations.append("improve-titles-and-descriptions")
        if position > 10:
            recommendations.append("improve-rankings")
        elif position > 3:
            recommendations.append("reach-top-three")
        elif position > 1:
            recommendations.append("reach-position-one")
        if metrics.impressions > 1000 and metrics.clicks < 100:
            recommendations.append("review-search-intent")
        if metrics.impressions < 100:
            recommendations.append("expand-keyword-targeting")
        return recommendations
