"""
Content Quality and Competitive Gap

Both sub-scores read the product records under a node. Completeness awards
20 points per populated field; media coverage is the share of products
with an image.
"""

import math
from dataclasses import dataclass
from typing import Iterable, Optional

from taxonomy_insights.matching import validate_gtin
from taxonomy_insights.models import Product

MIN_DESCRIPTION_LENGTH = 50


def product_completeness(product: Product) -> float:
    """0-100 completeness of a single product record"""
    points = 0.0
    if product.title.strip():
        points += 20
    if product.description and len(product.description.strip()) > MIN_DESCRIPTION_LENGTH:
        points += 20
    if product.price is not None and product.price > 0:
        points += 20
    if product.gtin and validate_gtin(product.gtin):
        points += 20
    if product.link:
        points += 20
    return points


@dataclass(frozen=True)
class ContentSignals:
    """Content signals of the products under one node"""
    product_count: int = 0
    completeness: float = 0.0
    media_coverage: float = 0.0
    
    @classmethod
    def from_products(cls, products: Iterable[Product]) -> "ContentSignals":
        return ContentTotals.from_products(products).signals()


@dataclass(frozen=True)
class ContentTotals:
    """Additive content counts, summed up the tree like the metric totals"""
    product_count: int = 0
    completeness_sum: float = 0.0
    with_media: int = 0
    
    @classmethod
    def from_products(cls, products: Iterable[Product]) -> "ContentTotals":
        products = list(products)
        return cls(
            product_count=len(products),
            completeness_sum=math.fsum(product_completeness(p) for p in products),
            with_media=sum(1 for p in products if p.image_link),
        )
    
    @classmethod
    def combine(cls, parts: Iterable["ContentTotals"]) -> "ContentTotals":
        parts = list(parts)
        return cls(
            product_count=sum(p.product_count for p in parts),
            completeness_sum=math.fsum(p.completeness_sum for p in parts),
            with_media=sum(p.with_media for p in parts),
        )
    
    def signals(self) -> ContentSignals:
        if self.product_count == 0:
            return ContentSignals()
        return ContentSignals(
            product_count=self.product_count,
            completeness=self.completeness_sum / self.product_count,
            media_coverage=self.with_media / self.product_count * 100,
        )


def content_quality(signals: ContentSignals) -> float:
    """contentQuality = completeness*0.70 + mediaCoverage*0.30"""
    return signals.completeness * 0.70 + signals.media_coverage * 0.30


def market_share_gap(position: Optional[float]) -> float:
    """Share of search demand captured by competitors ranking above us"""
    if position is None:
        return 50.0
    if position <= 3:
        return 10.0
    if position <= 10:
        return 40.0
    if position <= 20:
        return 70.0
    return 90.0


def competitive_gap(position: Optional[float], signals: ContentSignals) -> float:
    """competitiveGap = marketShareGap*0.60 + contentGap*0.40"""
    content_gap = 100.0 - signals.completeness
    return market_share_gap(position) * 0.60 + content_gap * 0.40
