"""
Test Suite Configuration
"""
from datetime import date
from typing import List

import pytest

from taxonomy_insights.config import Settings
from taxonomy_insights.models import DateRange, MetricFact, MetricSource, Product
from taxonomy_insights.taxonomy import TaxonomyTree

JANUARY = DateRange(start=date(2025, 1, 1), end=date(2025, 1, 31))


def make_fact(
    subject_key: str,
    impressions: float = 0,
    clicks: float = 0,
    conversions: float = 0,
    revenue: float = 0,
    source: MetricSource = MetricSource.SEARCH_CONSOLE,
    position: float = None,
) -> MetricFact:
    """Build a January fact"""
    return MetricFact(
        subject_key=subject_key,
        source=source,
        date_range=JANUARY,
        impressions=impressions,
        clicks=clicks,
        conversions=conversions,
        revenue=revenue,
        position=position,
    )


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(
        app_env="testing",
        debug=True,
    )


@pytest.fixture
def category_paths() -> List[str]:
    """Category strings as they arrive from a merchant feed"""
    return [
        "Electronics > Phones > Smartphones",
        "Electronics > Phones",
        "Electronics / Laptops",
        "Home | Garden",
    ]


@pytest.fixture
def sample_tree(category_paths) -> TaxonomyTree:
    """Small two-root taxonomy"""
    return TaxonomyTree.build(category_paths)


@pytest.fixture
def phone_products() -> List[Product]:
    """Three leaf products under Electronics > Phones"""
    return [
        Product(
            id="sku-1",
            title="Pixel 9 Pro",
            link="https://shop.example.com/p/pixel-9-pro",
            gtin="4006381333931",
            description="Flagship phone with a large display, long battery life and a great camera.",
            price=899.0,
            image_link="https://cdn.example.com/pixel.jpg",
            category_path="Electronics > Phones",
        ),
        Product(
            id="sku-2",
            title="Galaxy S24",
            link="https://shop.example.com/p/galaxy-s24",
            price=799.0,
            category_path="Electronics > Phones",
        ),
        Product(
            id="sku-3",
            title="Moto G",
            price=199.0,
            category_path="Electronics > Phones",
        ),
    ]


@pytest.fixture
def phone_facts() -> List[MetricFact]:
    """One fact per phone product"""
    return [
        make_fact("sku-1", impressions=10000, clicks=300, conversions=30, revenue=5000),
        make_fact("sku-2", impressions=5000, clicks=100, conversions=10, revenue=2000),
        make_fact("sku-3", impressions=2000, clicks=20, conversions=2, revenue=500),
    ]


@pytest.fixture
def fact():
    """Factory for January metric facts"""
    return make_fact
