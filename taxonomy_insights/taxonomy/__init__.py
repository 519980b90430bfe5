"""
Taxonomy Module
"""
from .paths import humanize_segment, node_id_for, normalize_category_path, split_category_path
from .tree import TaxonomyTree

__all__ = [
    "TaxonomyTree",
    "humanize_segment",
    "node_id_for",
    "normalize_category_path",
    "split_category_path",
]
