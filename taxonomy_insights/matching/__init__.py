"""
Fact Matching Module
"""
from .gtin import canonical_gtin, gtins_match, normalize_gtin, validate_gtin
from .matcher import (
    EntityType,
    FactMatcher,
    MatchDiagnostics,
    MatchReport,
    MatchResult,
    MatchStrategy,
    match_all,
)
from .urls import MalformedUrl, normalize_url_path

__all__ = [
    "EntityType",
    "FactMatcher",
    "MalformedUrl",
    "MatchDiagnostics",
    "MatchReport",
    "MatchResult",
    "MatchStrategy",
    "canonical_gtin",
    "gtins_match",
    "match_all",
    "normalize_gtin",
    "normalize_url_path",
    "validate_gtin",
]
