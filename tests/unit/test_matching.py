"""
Unit Tests - Fact Matching
"""
import pytest

from taxonomy_insights.errors import InvalidGtinWarning, MalformedUrlWarning, UnattributedFact, UnmatchedFact
from taxonomy_insights.matching import (
    EntityType,
    FactMatcher,
    MalformedUrl,
    MatchStrategy,
    canonical_gtin,
    gtins_match,
    match_all,
    normalize_url_path,
    validate_gtin,
)
from taxonomy_insights.models import Product
from taxonomy_insights.taxonomy import TaxonomyTree


class TestGtin:
    """Tests for GTIN validation"""
    
    def test_valid_checksum(self):
        assert validate_gtin("4006381333931") is True
    
    def test_bad_checksum(self):
        assert validate_gtin("4006381333932") is False
    
    def test_bad_length(self):
        assert validate_gtin("123") is False
    
    @pytest.mark.parametrize("gtin", ["96385074", "036000291452", "4006381333931", "10614141000415"])
    def test_valid_lengths(self, gtin):
        """Test GTIN-8, 12, 13 and 14"""
        assert validate_gtin(gtin)
    
    def test_separators_ignored(self):
        assert validate_gtin("400-6381-33393-1")
    
    def test_leading_zeros_match_across_lengths(self):
        """Test that a 13 and a 14 digit GTIN with the same value match"""
        assert canonical_gtin("04006381333931") == canonical_gtin("4006381333931")
        assert gtins_match("04006381333931", "4006381333931")
    
    def test_invalid_never_matches(self):
        assert not gtins_match("4006381333932", "4006381333932")


class TestUrlNormalization:
    """Tests for URL path normalization"""
    
    def test_strips_host_query_and_trailing_slash(self):
        assert normalize_url_path("https://www.shop.com/Phones/Smartphones/?ref=x") == "/phones/smartphones"
    
    def test_relative_and_extension(self):
        assert normalize_url_path("phones/index.html") == "/phones/index"
    
    def test_bare_host(self):
        assert normalize_url_path("www.shop.com/phones") == "/phones"
    
    def test_malformed_raises(self):
        with pytest.raises(MalformedUrl):
            normalize_url_path("http://shop.com:notaport/phones")


@pytest.fixture
def matcher_tree():
    """Tree with a keyword-bearing root"""
    return TaxonomyTree.build(["Electronics > Phones", "Electronics > Laptops", "Deals", "Home > Garden"])


class TestFactMatcher:
    """Tests for the strategy cascade"""
    
    def test_exact_url_beats_keyword_and_prefix(self, matcher_tree):
        """Test that an exact URL wins over a weaker strategy that also applies"""
        matcher_tree["electronics-phones"].url = "https://shop.example.com/deals/spring-phones"
        matcher = FactMatcher(matcher_tree, max_workers=2)
        
        result = matcher.match("https://shop.example.com/deals/spring-phones/")
        
        assert result.strategy == MatchStrategy.EXACT
        assert result.node_id == "electronics-phones"
        assert result.confidence == 1.0
    
    def test_exact_identifier(self, phone_products):
        """Test product id match"""
        matcher = FactMatcher(TaxonomyTree.from_products(phone_products), phone_products)
        
        result = matcher.match("sku-2")
        
        assert result.strategy == MatchStrategy.EXACT
        assert result.entity_type == EntityType.PRODUCT
        assert result.node_id == "electronics-phones"
    
    def test_gtin_match_across_lengths(self, phone_products):
        """Test that a 14 digit key finds a 13 digit product GTIN"""
        tree = TaxonomyTree.from_products(phone_products)
        matcher = FactMatcher(tree, phone_products)
        
        result = matcher.match("04006381333931")
        
        assert result.strategy == MatchStrategy.GTIN
        assert result.entity_id == "sku-1"
        assert result.node_id == "electronics-phones"
    
    def test_invalid_gtin_is_no_match_with_warning(self, phone_products):
        """Test bad checksum"""
        matcher = FactMatcher(TaxonomyTree.from_products(phone_products), phone_products)
        
        result, warnings = matcher.resolve("4006381333932")
        
        assert not result.matched
        assert result.confidence == 0.0
        assert any(isinstance(w, InvalidGtinWarning) for w in warnings)
    
    def test_path_prefix_picks_deepest_node(self, matcher_tree):
        """Test deepest prefix and confidence scaling"""
        matcher = FactMatcher(matcher_tree)
        
        result = matcher.match("https://shop.example.com/electronics/phones/pixel-9")
        
        assert result.strategy == MatchStrategy.PATH_PREFIX
        assert result.node_id == "electronics-phones"
        assert 0.8 <= result.confidence <= 0.95
        assert result.evidence.matched_segments == 2
    
    def test_full_path_prefix_has_higher_confidence(self, matcher_tree):
        matcher = FactMatcher(matcher_tree)
        
        full = matcher.match("/electronics/laptops")
        partial = matcher.match("/electronics/laptops/thinkpad/x1")
        
        assert full.confidence > partial.confidence
    
    def test_category_keyword(self, matcher_tree):
        """Test node title inside the URL path"""
        matcher = FactMatcher(matcher_tree)
        
        result = matcher.match("/blog/best-laptops-2025")
        
        assert result.strategy == MatchStrategy.CATEGORY_KEYWORD
        assert result.node_id == "electronics-laptops"
        assert result.confidence == 0.7
    
    def test_product_title(self, phone_products):
        """Test product title containment"""
        matcher = FactMatcher(TaxonomyTree.from_products(phone_products), phone_products)
        
        result = matcher.match("/reviews/galaxy-s24-review")
        
        assert result.strategy == MatchStrategy.PRODUCT_TITLE
        assert result.entity_id == "sku-2"
        assert result.confidence == 0.7
    
    def test_malformed_url_is_no_match(self, matcher_tree):
        """Test that malformed input never raises"""
        matcher = FactMatcher(matcher_tree)
        
        result, warnings = matcher.resolve("http://shop.com:notaport/phones")
        
        assert not result.matched
        assert any(isinstance(w, MalformedUrlWarning) for w in warnings)
    
    def test_empty_inputs(self):
        """Test empty tree and empty batch"""
        matcher = FactMatcher(TaxonomyTree.build([]))
        
        assert not matcher.match("/anything").matched
        assert matcher.match_batch([]).diagnostics.match_rate == 0.0


class TestMatchBatch:
    """Tests for batch matching and diagnostics"""
    
    def test_match_rate_and_unmatched_list(self, matcher_tree, fact):
        """Test that 1 of 4 unmatched URLs gives a 0.75 match rate"""
        facts = [
            fact("/electronics/phones/pixel", impressions=10),
            fact("/electronics/laptops", impressions=10),
            fact("/home/garden/hoses", impressions=10),
            fact("/zzz/qqq", impressions=10),
            fact("/zzz/qqq", impressions=5),
        ]
        
        report = FactMatcher(matcher_tree, max_workers=4).match_batch(facts)
        
        assert report.diagnostics.total == 4
        assert report.diagnostics.matched == 3
        assert report.diagnostics.match_rate == 0.75
        assert report.diagnostics.unmatched_keys == ["/zzz/qqq"]
        assert sum(isinstance(w, UnmatchedFact) for w in report.diagnostics.warnings) == 1
        assert report.diagnostics.by_strategy == {"path_prefix": 3}
        assert report.diagnostics.by_entity_type == {"node": 3}
    
    def test_match_all_is_order_independent(self, matcher_tree, fact):
        """Test determinism under input reordering"""
        facts = [fact(k) for k in ["/electronics", "/blog/laptops", "/deals", "/nothing-here"]]
        
        first = match_all(facts, matcher_tree, max_workers=1)
        second = match_all(list(reversed(facts)), matcher_tree, max_workers=4)
        
        assert first == second
        assert list(first) == sorted(first)
    
    @pytest.mark.parametrize("url", [
        "/blog/home-garden-tips",
        "/blog/home%20garden%20tips",
        "/blog/home_garden_tips",
    ])
    def test_category_keyword_ignores_word_separators(self, url):
        """Test that encoded spaces and underscores still match a node title"""
        matcher = FactMatcher(TaxonomyTree.build(["Home Garden"]))
        
        result = matcher.match(url)
        
        assert result.strategy == MatchStrategy.CATEGORY_KEYWORD
        assert result.node_id == "home-garden"
    
    def test_product_without_category_is_unattributed(self, fact):
        """Test that a matched product with no node is reported, not silently counted"""
        products = [
            Product(id="sku-1", title="Pixel 9 Pro", category_path="Electronics > Phones"),
            Product(id="sku-9", title="Mystery Box"),
        ]
        tree = TaxonomyTree.from_products(products)
        
        report = FactMatcher(tree, products).match_batch([
            fact("sku-1", impressions=100),
            fact("sku-9", impressions=900),
        ])
        
        assert report.results["sku-9"].matched
        assert not report.results["sku-9"].attributed
        assert report.diagnostics.unattributed_keys == ["sku-9"]
        assert report.diagnostics.unmatched_keys == []
        assert sum(isinstance(w, UnattributedFact) for w in report.diagnostics.warnings) == 1
