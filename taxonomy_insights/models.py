"""
Domain Records

Boundary records supplied by the sync and feed-import collaborators, plus
the arena node used by the taxonomy tree.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional, Set, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


class MetricSource(str, Enum):
    """Upstream source of a metric fact"""
    SEARCH_CONSOLE = "search_console"
    ANALYTICS = "analytics"
    MERCHANT = "merchant"


class DateRange(BaseModel):
    """Inclusive UTC date range"""
    model_config = ConfigDict(frozen=True)
    
    start: date
    end: date
    
    @model_validator(mode="after")
    def validate_order(self) -> "DateRange":
        if self.end < self.start:
            raise ValueError(f"Date range end {self.end} precedes start {self.start}")
        return self


class MetricFact(BaseModel):
    """
    One raw performance record keyed by URL, product id or GTIN.
    
    Additive fields are non-negative and summable. ``position`` is the
    average search position reported by search console and is only ever
    combined weighted by impressions.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)
    
    subject_key: str = Field(min_length=1)
    source: MetricSource
    date_range: DateRange
    impressions: float = Field(default=0.0, ge=0)
    clicks: float = Field(default=0.0, ge=0)
    conversions: float = Field(
        default=0.0,
        ge=0,
        validation_alias=AliasChoices("conversions", "transactions"),
    )
    revenue: float = Field(default=0.0, ge=0)
    position: Optional[float] = Field(default=None, gt=0)


class Product(BaseModel):
    """Leaf product from a merchant feed"""
    model_config = ConfigDict(frozen=True)
    
    id: str = Field(min_length=1)
    title: str = ""
    link: Optional[str] = None
    gtin: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    image_link: Optional[str] = None
    category_path: Optional[str] = None


class PricingSnapshot(BaseModel):
    """Market pricing for a node or product, from the pricing collaborator"""
    model_config = ConfigDict(frozen=True)
    
    our_price: float = Field(ge=0)
    market_median: float = Field(ge=0)
    market_min: float = Field(ge=0)
    market_max: float = Field(ge=0)
    competitor_count: int = Field(ge=0)


@dataclass
class TaxonomyNode:
    """
    Arena entry for a category node.
    
    Parent and children are stored as ids, never as object references.
    """
    id: str
    title: str
    path: Tuple[str, ...]
    depth: int
    parent_id: Optional[str] = None
    children: List[str] = field(default_factory=list)
    direct_product_ids: Set[str] = field(default_factory=set)
    url: Optional[str] = None
    
    @property
    def is_root(self) -> bool:
        return self.parent_id is None
    
    @property
    def display_path(self) -> str:
        return " > ".join(self.path)


class Confidence(str, Enum):
    """Confidence attached to a score"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
