"""
Performance Aggregator

Rolls per-fact metrics up the taxonomy bottom-up. Each node's totals are
its own direct facts plus the finished totals of its immediate children,
so every node is summed exactly once. Rates are derived only after a
node's totals are final.
"""

import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional

import structlog

from taxonomy_insights.config import get_settings
from taxonomy_insights.errors import PipelineWarning, TaxonomyConflictError
from taxonomy_insights.matching import MatchResult
from taxonomy_insights.models import MetricFact
from taxonomy_insights.taxonomy import TaxonomyTree
from .metrics import AdditiveTotals, AggregatedMetrics

logger = structlog.get_logger(__name__)

_TOLERANCE = 1e-9


@dataclass
class AggregationDiagnostics:
    """Anomalies and consistency checks for one aggregation run"""
    total_facts: int = 0
    attributed_facts: int = 0
    unmatched_facts: int = 0
    unattributed_facts: int = 0
    dangling_parents: Dict[str, str] = field(default_factory=dict)
    conflicts: List[TaxonomyConflictError] = field(default_factory=list)
    anomalies: List[PipelineWarning] = field(default_factory=list)
    grand_total_impressions: float = 0.0
    grand_total_revenue: float = 0.0
    roots_consistent: bool = True


@dataclass
class AggregationResult:
    """Aggregated metrics per node id"""
    metrics: Dict[str, AggregatedMetrics]
    direct_totals: Dict[str, AdditiveTotals]
    diagnostics: AggregationDiagnostics
    
    def __getitem__(self, node_id: str) -> AggregatedMetrics:
        return self.metrics[node_id]
    
    def get(self, node_id: str) -> Optional[AggregatedMetrics]:
        return self.metrics.get(node_id)
    
    def sum_violations(self, tree: TaxonomyTree) -> List[str]:
        """
        Node ids whose totals differ from direct facts plus children.
        
        An empty list means the roll-up invariant holds everywhere.
        """
        violations = []
        for node in tree:
            parts = [self.direct_totals.get(node.id, AdditiveTotals())]
            parts.extend(self.metrics[c.id].totals for c in tree.children_of(node.id))
            expected = AdditiveTotals.combine(parts)
            actual = self.metrics[node.id]
            for name in ("impressions", "clicks", "conversions", "revenue"):
                if not math.isclose(getattr(expected, name), getattr(actual, name), rel_tol=_TOLERANCE, abs_tol=_TOLERANCE):
                    violations.append(node.id)
                    break
        return violations


class PerformanceAggregator:
    """
    Bottom-up aggregation over a taxonomy tree.
    
    Example:
        aggregator = PerformanceAggregator()
        result = aggregator.aggregate(tree, facts, matches)
        result["electronics-phones"].ctr
    """
    
    def __init__(self, parallel_roots: bool = False, max_workers: Optional[int] = None):
        self.parallel_roots = parallel_roots
        self.max_workers = max_workers or get_settings().matching.max_workers
    
    def direct_totals(
        self,
        tree: TaxonomyTree,
        facts: Iterable[MetricFact],
        matches: Mapping[str, MatchResult],
        diagnostics: AggregationDiagnostics,
    ) -> Dict[str, AdditiveTotals]:
        """Sum each node's directly attributed facts"""
        by_node: Dict[str, List[MetricFact]] = {}
        for fact in facts:
            diagnostics.total_facts += 1
            match = matches.get(fact.subject_key)
            if match is None or not match.matched:
                diagnostics.unmatched_facts += 1
                continue
            if match.node_id is None or match.node_id not in tree:
                diagnostics.unattributed_facts += 1
                continue
            by_node.setdefault(match.node_id, []).append(fact)
            diagnostics.attributed_facts += 1
        
        return {node_id: AdditiveTotals.from_facts(node_facts) for node_id, node_facts in by_node.items()}
    
    def _aggregate_subtree(
        self,
        tree: TaxonomyTree,
        root_id: str,
        direct: Mapping[str, AdditiveTotals],
    ) -> Dict[str, AggregatedMetrics]:
        results: Dict[str, AggregatedMetrics] = {}
        empty = AdditiveTotals()
        for node_id in tree.post_order(root_id):
            node = tree[node_id]
            children = [results[c] for c in node.children]
            totals = AdditiveTotals.combine([direct.get(node_id, empty)] + [c.totals for c in children])
            direct_count = len(node.direct_product_ids)
            results[node_id] = AggregatedMetrics.from_totals(
                totals,
                direct_product_count=direct_count,
                total_product_count=direct_count + sum(c.total_product_count for c in children),
            )
        return results
    
    def aggregate(
        self,
        tree: TaxonomyTree,
        facts: Iterable[MetricFact],
        matches: Mapping[str, MatchResult],
    ) -> AggregationResult:
        """
        Aggregate matched facts over the whole forest.
        
        Args:
            tree: Taxonomy arena
            facts: Fact batch; unmatched facts are excluded from totals
            matches: Match results keyed by subject key
        
        Returns:
            AggregationResult with metrics for every node in the tree
        """
        diagnostics = AggregationDiagnostics(
            dangling_parents=dict(tree.dangling_parents),
            conflicts=list(tree.conflicts),
            anomalies=list(tree.anomalies),
        )
        direct = self.direct_totals(tree, facts, matches, diagnostics)
        root_ids = [n.id for n in tree.roots()]
        
        metrics: Dict[str, AggregatedMetrics] = {}
        if self.parallel_roots and len(root_ids) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                subtrees = list(executor.map(lambda r: self._aggregate_subtree(tree, r, direct), root_ids))
        else:
            subtrees = [self._aggregate_subtree(tree, r, direct) for r in root_ids]
        for subtree in subtrees:
            metrics.update(subtree)
        
        grand = AdditiveTotals.combine(direct.values())
        roots = AdditiveTotals.combine(metrics[r].totals for r in root_ids)
        diagnostics.grand_total_impressions = grand.impressions
        diagnostics.grand_total_revenue = grand.revenue
        diagnostics.roots_consistent = all(
            math.isclose(getattr(grand, name), getattr(roots, name), rel_tol=_TOLERANCE, abs_tol=_TOLERANCE)
            for name in ("impressions", "clicks", "conversions", "revenue")
        )
        
        if not diagnostics.roots_consistent:
            logger.error(
                "Root totals differ from grand total",
                grand_impressions=grand.impressions,
                root_impressions=roots.impressions,
            )
        
        logger.info(
            "Aggregation complete",
            nodes=len(metrics),
            roots=len(root_ids),
            facts=diagnostics.total_facts,
            attributed=diagnostics.attributed_facts,
            unmatched=diagnostics.unmatched_facts,
            dangling_parents=len(diagnostics.dangling_parents),
        )
        return AggregationResult(metrics=metrics, direct_totals=direct, diagnostics=diagnostics)
