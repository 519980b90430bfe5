"""
Unit Tests - Opportunity Scoring
"""
import pytest

from taxonomy_insights.aggregation import AdditiveTotals, AggregatedMetrics
from taxonomy_insights.analysis import OpportunityCategory
from taxonomy_insights.models import Confidence, MetricSource, PricingSnapshot, Product
from taxonomy_insights.scoring import (
    ContentSignals,
    OpportunityScorer,
    PricePosition,
    PricingCalculator,
    RevenueCalculator,
    ScoreWeights,
    TrafficCalculator,
    competitive_gap,
    content_quality,
    expected_ctr,
    product_completeness,
    source_confidence,
)
from taxonomy_insights.taxonomy import TaxonomyTree


def metrics(sources=(MetricSource.SEARCH_CONSOLE,), product_count=0, **totals) -> AggregatedMetrics:
    if "position" in totals:
        position = totals.pop("position")
        totals["position_weight"] = position * totals.get("impressions", 0)
        totals["positioned_impressions"] = totals.get("impressions", 0)
    return AggregatedMetrics.from_totals(
        AdditiveTotals(sources=frozenset(sources), **totals),
        total_product_count=product_count,
    )


class TestTrafficCalculator:
    """Tests for traffic potential"""
    
    def test_expected_ctr_table(self):
        assert expected_ctr(1) == 0.285
        assert expected_ctr(8.6) == 0.017
        assert expected_ctr(15) == 0.008
        assert expected_ctr(45) == 0.002
        assert expected_ctr(None) == 0.008
    
    def test_no_impressions(self):
        result = TrafficCalculator().calculate(metrics())
        
        assert result.score == 0.0
    
    def test_weighted_components(self):
        """Test ctrGap*0.5 + positionGap*0.3 + impressionFactor*0.2"""
        result = TrafficCalculator().calculate(metrics(impressions=1000, clicks=10, position=8.0))
        
        assert result.ctr_gap == pytest.approx(3.5)
        assert result.position_gap == pytest.approx(85.0)
        assert result.impression_factor == 70.0
        assert result.score == pytest.approx(41.25)
    
    def test_ctr_gap_clamped_at_zero(self):
        """Test that beating the expected CTR is not negative"""
        result = TrafficCalculator().calculate(metrics(impressions=1000, clicks=500, position=1.0))
        
        assert result.ctr_gap == 0.0
        assert result.position_gap == 0.0
    
    def test_traffic_increase_estimate(self):
        calc = TrafficCalculator()
        
        assert calc.estimate_traffic_increase(metrics(impressions=1000, clicks=10)) == pytest.approx(84.0)


class TestRevenueCalculator:
    """Tests for revenue potential"""
    
    def test_no_clicks(self):
        result = RevenueCalculator().calculate(metrics(impressions=100))
        
        assert result.score == 0.0
        assert result.potential_revenue == 0.0
    
    def test_underperforming_node(self):
        """Test conversionGap*0.4 + aovGap*0.3 + monetizationGap*0.3"""
        result = RevenueCalculator().calculate(metrics(clicks=1000, conversions=4, revenue=200))
        
        assert result.conversion_gap == 100.0
        assert result.aov_gap == 100.0
        assert result.monetization_gap == 80.0
        assert result.score == pytest.approx(94.0)
        assert result.potential_revenue == pytest.approx(3550.0)
    
    @pytest.mark.parametrize("rate,expected", [
        (0.0, 100.0),
        (0.0125, 80.0),
        (0.005, 80.0),
        (0.024, 20.0),
        (0.025, 0.0),
    ])
    def test_conversion_gap_bands(self, rate, expected):
        """Test that a gap exactly on a band threshold takes that band"""
        assert RevenueCalculator().conversion_gap(rate) == expected
    
    def test_no_conversions_has_no_aov_gap(self):
        result = RevenueCalculator().calculate(metrics(clicks=60))
        
        assert result.aov_gap == 0.0
        assert result.monetization_gap == 50.0


class TestContentSignals:
    """Tests for content quality and competitive gap"""
    
    def test_completeness(self, phone_products):
        assert product_completeness(phone_products[0]) == 100.0
        assert product_completeness(phone_products[2]) == 40.0
    
    def test_signals_from_products(self, phone_products):
        signals = ContentSignals.from_products(phone_products)
        
        assert signals.product_count == 3
        assert signals.completeness == pytest.approx((100 + 60 + 40) / 3)
        assert signals.media_coverage == pytest.approx(100 / 3)
        assert content_quality(signals) == pytest.approx(signals.completeness * 0.7 + signals.media_coverage * 0.3)
    
    def test_empty_signals(self):
        signals = ContentSignals.from_products([])
        
        assert content_quality(signals) == 0.0
        assert competitive_gap(None, signals) == pytest.approx(50 * 0.6 + 100 * 0.4)
    
    def test_competitive_gap_by_position(self):
        complete = ContentSignals(product_count=1, completeness=100.0, media_coverage=100.0)
        
        assert competitive_gap(2.0, complete) == pytest.approx(6.0)
        assert competitive_gap(25.0, complete) == pytest.approx(54.0)


class TestPricingCalculator:
    """Tests for the pricing sub-calculator"""
    
    def test_no_data(self):
        result = PricingCalculator().calculate(None)
        
        assert result.score == 0.0
        assert result.confidence == Confidence.LOW
        assert result.factors.price_gap_score == 0.0
    
    def test_below_market(self):
        snapshot = PricingSnapshot(our_price=80, market_median=100, market_min=70, market_max=130, competitor_count=12)
        
        result = PricingCalculator().calculate(snapshot, current_revenue=5000, margin_rate=0.2)
        
        assert result.price_position == PricePosition.BELOW_MARKET
        assert result.factors.price_gap == pytest.approx(-20.0)
        assert result.factors.price_gap_score == pytest.approx(200 / 3)
        assert result.factors.competitive_position == pytest.approx(200 / 3)
        assert result.factors.price_elasticity == 80.0
        assert result.potential_price_increase == pytest.approx(20.0)
        assert result.estimated_revenue_impact == pytest.approx(1250.0)
        assert result.confidence == Confidence.MEDIUM
        assert result.score == pytest.approx(
            result.factors.price_gap_score * 0.35
            + result.factors.margin_opportunity * 0.25
            + result.factors.competitive_position * 0.25
            + result.factors.price_elasticity * 0.15
        )
    
    def test_above_market(self):
        """Test that above-market scores stay below 50 with no increase"""
        snapshot = PricingSnapshot(our_price=130, market_median=100, market_min=90, market_max=140, competitor_count=3)
        
        result = PricingCalculator().calculate(snapshot, current_revenue=1000, margin_rate=0.0)
        
        assert result.price_position == PricePosition.ABOVE_MARKET
        assert result.factors.price_gap == pytest.approx(30.0)
        assert result.score < 50
        assert result.potential_price_increase == 0.0
        assert result.estimated_revenue_impact == 0.0
        assert result.confidence == Confidence.LOW
    
    def test_at_market(self):
        snapshot = PricingSnapshot(our_price=102, market_median=100, market_min=90, market_max=110, competitor_count=20)
        
        result = PricingCalculator().calculate(snapshot)
        
        assert result.price_position == PricePosition.AT_MARKET
        assert result.potential_price_increase == pytest.approx(5.1)
        assert result.confidence == Confidence.HIGH
        assert result.factors.price_elasticity == 50.0
    
    def test_margin_headroom_raises_score(self):
        snapshot = PricingSnapshot(our_price=100, market_median=100, market_min=90, market_max=110, competitor_count=10)
        calc = PricingCalculator()
        
        assert calc.calculate(snapshot, margin_rate=0.05).score > calc.calculate(snapshot, margin_rate=0.4).score
    
    def test_zero_competitors(self):
        snapshot = PricingSnapshot(our_price=10, market_median=10, market_min=10, market_max=10, competitor_count=0)
        
        assert PricingCalculator().calculate(snapshot).score == 0.0
    
    def test_price_sensitivity(self):
        """Test average elasticity from history"""
        history = [(10.0, 100.0), (11.0, 90.0), (12.0, 90.0)]
        
        assert PricingCalculator.analyze_price_sensitivity(history) == pytest.approx(-0.5)
        assert PricingCalculator.analyze_price_sensitivity([(10.0, 5.0)]) == -1.5


class TestOpportunityScorer:
    """Tests for the composite score"""
    
    def test_score_is_weighted_sum(self, phone_products):
        scorer = OpportunityScorer()
        node_metrics = metrics(impressions=17000, clicks=420, conversions=42, revenue=7500, position=6.0)
        
        result = scorer.score_node(
            "electronics-phones",
            node_metrics,
            content=ContentSignals.from_products(phone_products),
            pricing=PricingSnapshot(our_price=80, market_median=100, market_min=70, market_max=130, competitor_count=12),
        )
        
        assert 0 <= result.score <= 100
        assert result.score == pytest.approx(result.factor_breakdown.weighted_total(scorer.weights))
        assert len(result.recommendations) <= 5
        assert result.pricing is not None
    
    def test_empty_node(self):
        result = OpportunityScorer().score_node("empty", metrics(sources=()))
        
        assert result.category == OpportunityCategory.MAINTAIN
        assert result.confidence == Confidence.LOW
        assert result.revenue_impact_estimate == 0.0
    
    def test_weights_must_sum_to_one(self):
        with pytest.raises(ValueError):
            ScoreWeights(traffic=0.5)
    
    @pytest.mark.parametrize(
        "count, expected",
        [(0, Confidence.LOW), (1, Confidence.LOW), (2, Confidence.MEDIUM), (3, Confidence.HIGH)],
    )
    def test_source_confidence(self, count, expected):
        assert source_confidence(count) == expected
    
    def test_confidence_from_node_sources(self):
        node_metrics = metrics(
            sources=(MetricSource.SEARCH_CONSOLE, MetricSource.ANALYTICS, MetricSource.MERCHANT),
            impressions=10,
        )
        
        assert OpportunityScorer().score_node("n", node_metrics).confidence == Confidence.HIGH
    
    def test_content_totals_roll_up_subtree(self, phone_products):
        """Test that a parent's content signals cover its own and all descendant products"""
        products = phone_products + [
            Product(id="sku-4", title="Charger", price=20.0, image_link="https://cdn.example.com/c.jpg", category_path="Electronics"),
        ]
        tree = TaxonomyTree.from_products(products, category_paths=["Home"])
        
        totals = OpportunityScorer.content_totals(tree, {p.id: p for p in products})
        
        phones = totals["electronics-phones"].signals()
        electronics = totals["electronics"].signals()
        assert phones.product_count == 3
        assert phones.completeness == pytest.approx(200 / 3)
        assert electronics.product_count == 4
        assert electronics.completeness == pytest.approx(60.0)
        assert electronics.media_coverage == pytest.approx(50.0)
        assert totals["home"].signals() == ContentSignals()
        assert electronics == ContentSignals.from_products(products)
