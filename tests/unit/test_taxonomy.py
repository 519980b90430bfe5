"""
Unit Tests - Taxonomy Tree
"""
import pytest

from taxonomy_insights.errors import CyclicParentWarning, DanglingParentWarning, TaxonomyConflictError
from taxonomy_insights.models import Product, TaxonomyNode
from taxonomy_insights.taxonomy import (
    TaxonomyTree,
    humanize_segment,
    node_id_for,
    normalize_category_path,
    split_category_path,
)


class TestPathHelpers:
    """Tests for category path normalization"""
    
    def test_split_on_all_delimiters(self):
        """Test that >, / and | all split and runs collapse"""
        assert split_category_path("Electronics/ Phones ||Smartphones") == (
            "Electronics",
            "Phones",
            "Smartphones",
        )
    
    def test_normalize_joins_canonically(self):
        """Test canonical ' > ' join"""
        assert normalize_category_path("  Home|Garden >> Tools ") == "Home > Garden > Tools"
    
    def test_empty_path(self):
        """Test empty and delimiter-only strings"""
        assert split_category_path("") == ()
        assert split_category_path(" > / ") == ()
    
    def test_node_id_is_stable(self):
        """Test that equal segment chains produce equal ids"""
        a = node_id_for(split_category_path("Electronics > Phones"))
        b = node_id_for(split_category_path("Electronics/Phones"))
        assert a == b == "electronics-phones"
    
    def test_node_id_for_symbols_only(self):
        """Test hash fallback when nothing slugifies"""
        node_id = node_id_for(("***",))
        assert node_id.startswith("node-")
        assert node_id == node_id_for(("***",))
    
    def test_humanize_ascii(self):
        """Test title-casing of ASCII words"""
        assert humanize_segment("mobile-phones") == "Mobile Phones"
        assert humanize_segment("TV_accessories") == "Tv Accessories"
    
    def test_humanize_keeps_non_ascii_remainder(self):
        """Test that non-ASCII words only get the first code point capitalized"""
        assert humanize_segment("éLECTRONIQUE") == "ÉLECTRONIQUE"
        assert humanize_segment("straße") == "Straße"
        assert humanize_segment("телефоны") == "Телефоны"


class TestTaxonomyBuild:
    """Tests for building the tree from category strings"""
    
    def test_build_creates_prefix_nodes(self, sample_tree):
        """Test that every prefix becomes a node"""
        ids = {n.id for n in sample_tree}
        assert ids == {
            "electronics",
            "electronics-phones",
            "electronics-phones-smartphones",
            "electronics-laptops",
            "home",
            "home-garden",
        }
    
    def test_depth_and_parent(self, sample_tree):
        """Test depth(child) == depth(parent) + 1 and root depth 0"""
        for node in sample_tree:
            parent = sample_tree.parent_of(node.id)
            if parent is None:
                assert node.depth == 0
            else:
                assert node.depth == parent.depth + 1
    
    def test_empty_build(self):
        """Test that no paths yields an empty tree"""
        tree = TaxonomyTree.build([])
        
        assert len(tree) == 0
        assert tree.roots() == []
    
    def test_build_is_idempotent(self, category_paths):
        """Test that reordered input yields identical ids and structure"""
        first = TaxonomyTree.build(category_paths)
        second = TaxonomyTree.build(list(reversed(category_paths)))
        
        assert [n.id for n in first] == [n.id for n in second]
        assert [n.children for n in first] == [n.children for n in second]
    
    def test_titles_are_humanized(self):
        """Test display titles"""
        tree = TaxonomyTree.build(["home-appliances > small_kitchen"])
        
        assert tree["home-appliances"].title == "Home Appliances"
        assert tree["home-appliances-small-kitchen"].title == "Small Kitchen"
    
    def test_find_by_path_any_spelling(self, sample_tree):
        """Test lookup with a different delimiter"""
        node = sample_tree.find_by_path("electronics/phones")
        
        assert node is not None
        assert node.id == "electronics-phones"


class TestTaxonomyConflicts:
    """Tests for id collisions between different parent chains"""
    
    def test_conflict_collected_and_siblings_proceed(self):
        """Test that a conflicting path is skipped while others are built"""
        tree = TaxonomyTree.build(["Home > Garden", "Home Garden", "Toys"])
        
        assert len(tree.conflicts) == 1
        assert tree.conflicts[0].node_id == "home-garden"
        assert tree["home-garden"].path == ("Home", "Garden")
        assert "toys" in tree
    
    def test_strict_build_raises(self):
        """Test strict mode"""
        with pytest.raises(TaxonomyConflictError):
            TaxonomyTree.build(["Home > Garden", "Home Garden"], strict=True)
    
    def test_add_path_raises_without_partial_subtree(self):
        """Test that a rejected path adds no nodes"""
        tree = TaxonomyTree.build(["Home > Garden"])
        before = len(tree)
        
        with pytest.raises(TaxonomyConflictError):
            tree.add_path("Home Garden > Hoses")
        
        assert len(tree) == before


class TestTraversal:
    """Tests for traversal helpers"""
    
    def test_ancestors_from_node_to_root(self, sample_tree):
        """Test ancestor ordering"""
        chain = [n.id for n in sample_tree.ancestors_of("electronics-phones-smartphones")]
        
        assert chain == ["electronics-phones-smartphones", "electronics-phones", "electronics"]
    
    def test_peers_share_depth(self, sample_tree):
        """Test depth peers"""
        peers = {n.id for n in sample_tree.peers_of("electronics-phones")}
        
        assert peers == {"electronics-phones", "electronics-laptops", "home-garden"}
    
    def test_post_order_children_first(self, sample_tree):
        """Test that every child precedes its parent"""
        order = sample_tree.post_order()
        position = {node_id: i for i, node_id in enumerate(order)}
        
        assert len(order) == len(sample_tree)
        for node in sample_tree:
            for child in node.children:
                assert position[child] < position[node.id]
    
    def test_descendants(self, sample_tree):
        """Test descendant listing"""
        ids = {n.id for n in sample_tree.descendants_of("electronics")}
        
        assert ids == {"electronics-phones", "electronics-phones-smartphones", "electronics-laptops"}
    
    def test_max_depth(self, sample_tree):
        assert sample_tree.max_depth == 2


class TestFromProducts:
    """Tests for building from product records"""
    
    def test_products_placed_on_deepest_node(self, phone_products):
        """Test direct product assignment"""
        tree = TaxonomyTree.from_products(phone_products)
        
        assert tree["electronics-phones"].direct_product_ids == {"sku-1", "sku-2", "sku-3"}
        assert tree["electronics"].direct_product_ids == set()
    
    def test_products_without_path_are_unassigned(self):
        """Test products with no category"""
        tree = TaxonomyTree.from_products([Product(id="loose", title="Loose item")])
        
        assert tree.unassigned_products == ["loose"]
    
    def test_extra_category_paths(self, phone_products):
        """Test categories without products"""
        tree = TaxonomyTree.from_products(phone_products, category_paths=["Home > Garden"])
        
        assert "home-garden" in tree
        assert "electronics-phones" in tree


class TestFromNodes:
    """Tests for rebuilding from stored node records"""
    
    def test_dangling_parent_treated_as_root(self):
        """Test that a missing parent is flagged, not fatal"""
        tree = TaxonomyTree.from_nodes([
            TaxonomyNode(id="a", title="A", path=("A",), depth=0),
            TaxonomyNode(id="b", title="B", path=("X", "B"), depth=1, parent_id="missing"),
        ])
        
        assert tree.dangling_parents == {"b": "missing"}
        assert {n.id for n in tree.roots()} == {"a", "b"}
        assert isinstance(tree.anomalies[0], DanglingParentWarning)
    
    def test_cycle_is_broken(self):
        """Test that a parent cycle is cut at its smallest id"""
        tree = TaxonomyTree.from_nodes([
            TaxonomyNode(id="x", title="X", path=("X",), depth=1, parent_id="y"),
            TaxonomyNode(id="y", title="Y", path=("Y",), depth=1, parent_id="x"),
        ])
        
        assert [n.id for n in tree.roots()] == ["x"]
        assert any(isinstance(a, CyclicParentWarning) for a in tree.anomalies)
        assert tree.post_order() == ["y", "x"]
