"""
Opportunity Categorizer

Maps a score and an effort estimate (product count under the node) to an
actionable category. Boundaries are closed below: a score of exactly 70
is high, exactly 40 is medium, and exactly 10 products is low effort.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, TypeVar

from taxonomy_insights.config import get_settings

T = TypeVar("T")


class OpportunityCategory(str, Enum):
    """Opportunity categories, highest priority first"""
    QUICK_WIN = "quick-win"  # High score, low effort
    STRATEGIC = "strategic"  # High score, high effort
    INCREMENTAL = "incremental"  # Medium score, low effort
    LONG_TERM = "long-term"  # Medium score, high effort
    MAINTAIN = "maintain"  # Low score


class Effort(str, Enum):
    """Implementation effort"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


PRIORITIES: Dict[OpportunityCategory, int] = {
    OpportunityCategory.QUICK_WIN: 1,
    OpportunityCategory.STRATEGIC: 2,
    OpportunityCategory.INCREMENTAL: 3,
    OpportunityCategory.LONG_TERM: 4,
    OpportunityCategory.MAINTAIN: 5,
}

DESCRIPTIONS: Dict[OpportunityCategory, str] = {
    OpportunityCategory.QUICK_WIN: "High-impact opportunity with minimal effort required.",
    OpportunityCategory.STRATEGIC: "Major opportunity requiring significant investment.",
    OpportunityCategory.INCREMENTAL: "Moderate improvement opportunity with low effort.",
    OpportunityCategory.LONG_TERM: "Moderate opportunity requiring substantial effort.",
    OpportunityCategory.MAINTAIN: "Currently performing well. Monitor and maintain.",
}

RISK_LEVELS: Dict[OpportunityCategory, str] = {
    OpportunityCategory.QUICK_WIN: "low",
    OpportunityCategory.STRATEGIC: "high",
    OpportunityCategory.INCREMENTAL: "low",
    OpportunityCategory.LONG_TERM: "medium",
    OpportunityCategory.MAINTAIN: "low",
}

BASE_TIMELINE_DAYS: Dict[OpportunityCategory, int] = {
    OpportunityCategory.QUICK_WIN: 14,
    OpportunityCategory.STRATEGIC: 90,
    OpportunityCategory.INCREMENTAL: 30,
    OpportunityCategory.LONG_TERM: 180,
    OpportunityCategory.MAINTAIN: 0,
}

# developer, content, marketing hours
BASE_HOURS: Dict[OpportunityCategory, tuple] = {
    OpportunityCategory.QUICK_WIN: (8, 4, 2),
    OpportunityCategory.STRATEGIC: (80, 40, 20),
    OpportunityCategory.INCREMENTAL: (16, 8, 4),
    OpportunityCategory.LONG_TERM: (160, 80, 40),
    OpportunityCategory.MAINTAIN: (0, 0, 0),
}


@dataclass(frozen=True)
class ResourceEstimate:
    developer_hours: int
    content_hours: int
    marketing_hours: int
    
    @property
    def total_hours(self) -> int:
        return self.developer_hours + self.content_hours + self.marketing_hours


@dataclass(frozen=True)
class Categorization:
    """Category plus the details shown next to it"""
    category: OpportunityCategory
    effort: Effort
    priority: int
    description: str
    suggested_action: str
    timeline: str
    risk: str
    resources: ResourceEstimate


class OpportunityCategorizer:
    """
    Score x effort categorization.
    
    Example:
        categorizer = OpportunityCategorizer()
        categorizer.categorize(72, 8)  # OpportunityCategory.QUICK_WIN
    """
    
    def __init__(
        self,
        high_score: Optional[float] = None,
        medium_score: Optional[float] = None,
        low_effort: Optional[int] = None,
        medium_effort: Optional[int] = None,
    ):
        settings = get_settings().scoring
        self.high_score = high_score if high_score is not None else settings.high_score_threshold
        self.medium_score = medium_score if medium_score is not None else settings.medium_score_threshold
        self.low_effort = low_effort if low_effort is not None else settings.low_effort_threshold
        self.medium_effort = medium_effort if medium_effort is not None else settings.medium_effort_threshold
    
    def estimate_effort(self, product_count: float) -> Effort:
        """Effort from product count; negative or missing counts are low effort"""
        if product_count is None or math.isnan(product_count) or product_count <= self.low_effort:
            return Effort.LOW
        if product_count <= self.medium_effort:
            return Effort.MEDIUM
        return Effort.HIGH
    
    def categorize(self, score: float, product_count: float) -> OpportunityCategory:
        effort = self.estimate_effort(product_count)
        if score is None or math.isnan(score):
            return OpportunityCategory.MAINTAIN
        if score >= self.high_score:
            return OpportunityCategory.QUICK_WIN if effort == Effort.LOW else OpportunityCategory.STRATEGIC
        if score >= self.medium_score:
            return OpportunityCategory.INCREMENTAL if effort == Effort.LOW else OpportunityCategory.LONG_TERM
        return OpportunityCategory.MAINTAIN
    
    def suggested_action(self, category: OpportunityCategory, score: float) -> str:
        actions = {
            OpportunityCategory.QUICK_WIN: "Prioritize immediately. Expected ROI within 2-4 weeks.",
            OpportunityCategory.STRATEGIC: "Create a project plan and allocate dedicated resources.",
            OpportunityCategory.INCREMENTAL: "Include in the next sprint. Low risk with steady returns.",
            OpportunityCategory.LONG_TERM: "Add to next quarter's roadmap. Requires planning.",
            OpportunityCategory.MAINTAIN: "No immediate action needed. Set up monitoring alerts.",
        }
        return f"{actions[category]} Score: {round(score)}/100"
    
    def timeline_estimate(self, category: OpportunityCategory, product_count: int) -> str:
        """Human readable implementation timeline"""
        days = BASE_TIMELINE_DAYS[category]
        if product_count > 500:
            days = round(days * 2)
        elif product_count > 100:
            days = round(days * 1.5)
        
        if days == 0:
            return "N/A"
        if days <= 14:
            return f"{days} days"
        if days <= 60:
            return f"{round(days / 7)} weeks"
        return f"{round(days / 30)} months"
    
    def resource_requirements(self, category: OpportunityCategory, product_count: int) -> ResourceEstimate:
        """Hours scaled logarithmically by product count"""
        dev, content, marketing = BASE_HOURS[category]
        scale = math.log10(max(1.0, product_count / 10)) + 1
        return ResourceEstimate(
            developer_hours=round(dev * scale),
            content_hours=round(content * scale),
            marketing_hours=round(marketing * scale),
        )
    
    def full_categorization(self, score: float, product_count: int) -> Categorization:
        category = self.categorize(score, product_count)
        count = max(0, product_count or 0)
        return Categorization(
            category=category,
            effort=self.estimate_effort(product_count),
            priority=PRIORITIES[category],
            description=DESCRIPTIONS[category],
            suggested_action=self.suggested_action(category, score if score and score > 0 else 0),
            timeline=self.timeline_estimate(category, count),
            risk=RISK_LEVELS[category],
            resources=self.resource_requirements(category, count),
        )
    
    @staticmethod
    def group(items: Iterable[T], key=lambda item: item.category) -> Dict[OpportunityCategory, List[T]]:
        """Group scored items by category, every category present"""
        grouped: Dict[OpportunityCategory, List[T]] = {c: [] for c in OpportunityCategory}
        for item in items:
            grouped[key(item)].append(item)
        return grouped


def categorize(score: float, product_count: float) -> str:
    """Category label for a score and product count using configured thresholds"""
    return OpportunityCategorizer().categorize(score, product_count).value
