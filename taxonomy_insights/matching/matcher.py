"""
Metric Fact Matcher

Resolves each fact's subject key (URL, product id or GTIN) to a taxonomy
node or product through an ordered strategy cascade. The first strategy
that produces a match wins; confidences are never compared across
strategies.

Cascade:
1. Exact URL or identifier        confidence 1.0
2. GTIN exact (checksum-valid)    confidence 1.0
3. Deepest path prefix            confidence 0.8 - 0.95
4. Category keyword in URL path   confidence 0.7
5. Product title in candidate     confidence 0.7
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import structlog

from taxonomy_insights.config import get_settings
from taxonomy_insights.errors import (
    InvalidGtinWarning,
    MalformedUrlWarning,
    PipelineWarning,
    UnattributedFact,
    UnmatchedFact,
)
from taxonomy_insights.models import MetricFact, Product
from taxonomy_insights.taxonomy import TaxonomyTree
from taxonomy_insights.taxonomy.paths import slugify
from .gtin import canonical_gtin, looks_like_gtin, normalize_gtin
from .urls import MalformedUrl, normalize_url_path, safe_path_segments

logger = structlog.get_logger(__name__)

MIN_KEYWORD_LENGTH = 3
PATH_PREFIX_CEILING = 0.95


class MatchStrategy(str, Enum):
    """Matching strategies in cascade order"""
    EXACT = "exact"
    GTIN = "gtin"
    PATH_PREFIX = "path_prefix"
    CATEGORY_KEYWORD = "category_keyword"
    PRODUCT_TITLE = "product_title"


class EntityType(str, Enum):
    """Kind of entity a fact resolved to"""
    NODE = "node"
    PRODUCT = "product"


@dataclass(frozen=True)
class ExactEvidence:
    normalized_key: str


@dataclass(frozen=True)
class GtinEvidence:
    gtin: str


@dataclass(frozen=True)
class PathPrefixEvidence:
    matched_segments: int
    total_segments: int


@dataclass(frozen=True)
class KeywordEvidence:
    keyword: str


@dataclass(frozen=True)
class TitleEvidence:
    title_slug: str


MatchEvidence = Union[ExactEvidence, GtinEvidence, PathPrefixEvidence, KeywordEvidence, TitleEvidence]


@dataclass(frozen=True)
class MatchResult:
    """Resolution of one subject key. Unmatched results have confidence 0."""
    subject_key: str
    entity_type: Optional[EntityType] = None
    entity_id: Optional[str] = None
    node_id: Optional[str] = None
    confidence: float = 0.0
    strategy: Optional[MatchStrategy] = None
    evidence: Optional[MatchEvidence] = None
    
    @property
    def matched(self) -> bool:
        return self.entity_id is not None
    
    @property
    def attributed(self) -> bool:
        """Matched and placed on a taxonomy node, so the fact reaches the totals"""
        return self.node_id is not None
    
    @classmethod
    def no_match(cls, subject_key: str) -> "MatchResult":
        return cls(subject_key=subject_key)


@dataclass
class MatchDiagnostics:
    """Match-rate statistics for a batch"""
    total: int
    matched: int
    match_rate: float
    average_confidence: float
    by_strategy: Dict[str, int] = field(default_factory=dict)
    by_entity_type: Dict[str, int] = field(default_factory=dict)
    unmatched_keys: List[str] = field(default_factory=list)
    unattributed_keys: List[str] = field(default_factory=list)
    warnings: List[PipelineWarning] = field(default_factory=list)
    
    @classmethod
    def from_results(
        cls,
        results: Dict[str, MatchResult],
        warnings: Sequence[PipelineWarning] = (),
    ) -> "MatchDiagnostics":
        matched = [r for r in results.values() if r.matched]
        by_strategy: Dict[str, int] = {}
        by_entity_type: Dict[str, int] = {}
        for result in matched:
            by_strategy[result.strategy.value] = by_strategy.get(result.strategy.value, 0) + 1
            by_entity_type[result.entity_type.value] = by_entity_type.get(result.entity_type.value, 0) + 1
        
        total = len(results)
        return cls(
            total=total,
            matched=len(matched),
            match_rate=len(matched) / total if total > 0 else 0.0,
            average_confidence=(
                sum(r.confidence for r in matched) / len(matched) if matched else 0.0
            ),
            by_strategy=by_strategy,
            by_entity_type=by_entity_type,
            unmatched_keys=sorted(k for k, r in results.items() if not r.matched),
            unattributed_keys=sorted(k for k, r in results.items() if r.matched and not r.attributed),
            warnings=list(warnings),
        )


@dataclass
class MatchReport:
    """Results keyed by subject key, plus diagnostics"""
    results: Dict[str, MatchResult]
    diagnostics: MatchDiagnostics


class FactMatcher:
    """
    Strategy cascade over a fixed node and product set.
    
    Indices are built once in the constructor and only read afterwards,
    so one matcher can serve many worker threads.
    
    Example:
        matcher = FactMatcher(tree, products)
        report = matcher.match_batch(facts)
        print(report.diagnostics.match_rate)
    """
    
    def __init__(
        self,
        tree: TaxonomyTree,
        products: Iterable[Product] = (),
        max_workers: Optional[int] = None,
        path_prefix_floor: Optional[float] = None,
        keyword_confidence: Optional[float] = None,
        title_confidence: Optional[float] = None,
    ):
        settings = get_settings().matching
        self.tree = tree
        self.products = sorted(products, key=lambda p: p.id)
        self.max_workers = max_workers or settings.max_workers
        self.path_prefix_floor = path_prefix_floor if path_prefix_floor is not None else settings.path_prefix_floor
        self.keyword_confidence = keyword_confidence if keyword_confidence is not None else settings.keyword_confidence
        self.title_confidence = title_confidence if title_confidence is not None else settings.title_confidence
        
        self._product_nodes: Dict[str, str] = {}
        self._url_index: Dict[str, Tuple[EntityType, str]] = {}
        self._id_index: Dict[str, Tuple[EntityType, str]] = {}
        self._gtin_index: Dict[str, str] = {}
        self._prefix_index: Dict[Tuple[str, ...], str] = {}
        self._keywords: List[Tuple[str, str]] = []
        self._titles: List[Tuple[str, str]] = []
        self._build_indices()
    
    def _build_indices(self) -> None:
        nodes = list(self.tree)
        
        for node in nodes:
            for product_id in sorted(node.direct_product_ids):
                self._product_nodes.setdefault(product_id, node.id)
        
        for node in nodes:
            self._id_index.setdefault(node.id, (EntityType.NODE, node.id))
            segments = safe_path_segments(node.url) if node.url else None
            if segments is not None:
                self._url_index.setdefault("/" + "/".join(segments), (EntityType.NODE, node.id))
            else:
                segments = tuple(slugify(s) for s in node.path)
            if segments:
                self._prefix_index.setdefault(segments, node.id)
        
        for product in self.products:
            self._id_index.setdefault(product.id, (EntityType.PRODUCT, product.id))
            segments = safe_path_segments(product.link)
            if segments is not None:
                self._url_index.setdefault("/" + "/".join(segments), (EntityType.PRODUCT, product.id))
            canonical = canonical_gtin(product.gtin)
            if canonical is not None:
                self._gtin_index.setdefault(canonical, product.id)
        
        # Deeper nodes first so the most specific category wins
        for node in sorted(nodes, key=lambda n: (-n.depth, n.id)):
            keyword = slugify(node.title)
            if len(keyword) >= MIN_KEYWORD_LENGTH:
                self._keywords.append((keyword, node.id))
        
        for product in sorted(self.products, key=lambda p: (-len(slugify(p.title)), p.id)):
            title = slugify(product.title)
            if len(title) >= MIN_KEYWORD_LENGTH:
                self._titles.append((title, product.id))
        
        logger.debug(
            "Matcher indices built",
            nodes=len(nodes),
            products=len(self.products),
            gtins=len(self._gtin_index),
        )
    
    def _result(
        self,
        subject_key: str,
        entity_type: EntityType,
        entity_id: str,
        confidence: float,
        strategy: MatchStrategy,
        evidence: MatchEvidence,
    ) -> MatchResult:
        node_id = entity_id if entity_type == EntityType.NODE else self._product_nodes.get(entity_id)
        return MatchResult(
            subject_key=subject_key,
            entity_type=entity_type,
            entity_id=entity_id,
            node_id=node_id,
            confidence=confidence,
            strategy=strategy,
            evidence=evidence,
        )
    
    def resolve(self, subject_key: str) -> Tuple[MatchResult, Tuple[PipelineWarning, ...]]:
        """Run the cascade for one key and return the result with any anomalies"""
        warnings: List[PipelineWarning] = []
        key = (subject_key or "").strip()
        if not key:
            return MatchResult.no_match(subject_key), ()
        
        # 1. Exact identifier, then exact URL path
        hit = self._id_index.get(key)
        if hit is not None:
            return self._result(subject_key, hit[0], hit[1], 1.0, MatchStrategy.EXACT, ExactEvidence(key)), ()
        
        try:
            path: Optional[str] = normalize_url_path(key)
        except MalformedUrl as e:
            path = None
            warnings.append(MalformedUrlWarning(str(e), subject=subject_key))
        
        if path is not None:
            hit = self._url_index.get(path)
            if hit is not None:
                return self._result(subject_key, hit[0], hit[1], 1.0, MatchStrategy.EXACT, ExactEvidence(path)), ()
        
        # 2. GTIN
        if looks_like_gtin(key):
            canonical = canonical_gtin(key)
            if canonical is None:
                warnings.append(InvalidGtinWarning(f"Invalid GTIN '{key}'", subject=subject_key))
            elif canonical in self._gtin_index:
                return self._result(
                    subject_key,
                    EntityType.PRODUCT,
                    self._gtin_index[canonical],
                    1.0,
                    MatchStrategy.GTIN,
                    GtinEvidence(normalize_gtin(key)),
                ), tuple(warnings)
        
        if path is None:
            return MatchResult.no_match(subject_key), tuple(warnings)
        
        # 3. Path prefix
        segments = tuple(s for s in path.split("/") if s)
        for length in range(len(segments), 0, -1):
            node_id = self._prefix_index.get(segments[:length])
            if node_id is not None:
                ratio = length / len(segments)
                confidence = self.path_prefix_floor + (PATH_PREFIX_CEILING - self.path_prefix_floor) * ratio
                return self._result(
                    subject_key,
                    EntityType.NODE,
                    node_id,
                    confidence,
                    MatchStrategy.PATH_PREFIX,
                    PathPrefixEvidence(length, len(segments)),
                ), tuple(warnings)
        
        # 4. Category keyword
        candidate = slugify(path)
        for keyword, node_id in self._keywords:
            if keyword in candidate:
                return self._result(
                    subject_key,
                    EntityType.NODE,
                    node_id,
                    self.keyword_confidence,
                    MatchStrategy.CATEGORY_KEYWORD,
                    KeywordEvidence(keyword),
                ), tuple(warnings)
        
        # 5. Product title
        for title, product_id in self._titles:
            if title in candidate:
                return self._result(
                    subject_key,
                    EntityType.PRODUCT,
                    product_id,
                    self.title_confidence,
                    MatchStrategy.PRODUCT_TITLE,
                    TitleEvidence(title),
                ), tuple(warnings)
        
        return MatchResult.no_match(subject_key), tuple(warnings)
    
    def match(self, subject_key: str) -> MatchResult:
        """Resolve one subject key"""
        return self.resolve(subject_key)[0]
    
    def match_batch(self, facts: Iterable[Union[MetricFact, str]]) -> MatchReport:
        """
        Resolve every distinct subject key on a fixed worker pool.
        
        Keys are processed in sorted order and fanned into one dict, so the
        report depends only on the input set.
        """
        keys = sorted({f if isinstance(f, str) else f.subject_key for f in facts})
        results: Dict[str, MatchResult] = {}
        warnings: List[PipelineWarning] = []
        
        if keys:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                for key, (result, found) in zip(keys, executor.map(self.resolve, keys)):
                    results[key] = result
                    warnings.extend(found)
        
        for key in keys:
            result = results[key]
            if not result.matched:
                warnings.append(UnmatchedFact(f"No match for '{key}'", subject=key))
            elif not result.attributed:
                warnings.append(UnattributedFact(
                    f"'{key}' matched product '{result.entity_id}' which has no category node",
                    subject=key,
                ))
        
        diagnostics = MatchDiagnostics.from_results(results, warnings)
        logger.info(
            "Fact matching complete",
            total=diagnostics.total,
            matched=diagnostics.matched,
            match_rate=round(diagnostics.match_rate, 4),
            unattributed=len(diagnostics.unattributed_keys),
            by_strategy=diagnostics.by_strategy,
        )
        for warning in warnings:
            if not isinstance(warning, UnmatchedFact):
                logger.warning("Matching anomaly", kind=type(warning).__name__, subject=warning.subject)
        return MatchReport(results=results, diagnostics=diagnostics)


def match_all(
    facts: Iterable[Union[MetricFact, str]],
    tree: TaxonomyTree,
    products: Iterable[Product] = (),
    max_workers: Optional[int] = None,
) -> Dict[str, MatchResult]:
    """Match a fact batch and return results keyed by subject key"""
    return FactMatcher(tree, products, max_workers=max_workers).match_batch(facts).results
