"""
Aggregation Run

Explicit context for one tenant's pipeline: tree, fact batch, products and
pricing in; matches, aggregated metrics, scores, benchmarks and diagnostics
out. Phases run in a fixed order with a hard barrier between them, and
progress is pulled as an immutable snapshot after each step.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import structlog

from taxonomy_insights.aggregation import AggregationResult, PerformanceAggregator
from taxonomy_insights.analysis import BenchmarkResult, Insight, PeerBenchmarker
from taxonomy_insights.config.logging import run_context
from taxonomy_insights.errors import PipelineWarning
from taxonomy_insights.matching import FactMatcher, MatchReport
from taxonomy_insights.models import MetricFact, PricingSnapshot, Product
from taxonomy_insights.scoring import OpportunityScore, OpportunityScorer
from taxonomy_insights.taxonomy import TaxonomyTree

logger = structlog.get_logger(__name__)


class RunPhase(str, Enum):
    PENDING = "pending"
    MATCH = "match"
    AGGREGATE = "aggregate"
    SCORE = "score"
    BENCHMARK = "benchmark"
    COMPLETE = "complete"


PHASES: Tuple[RunPhase, ...] = (
    RunPhase.MATCH,
    RunPhase.AGGREGATE,
    RunPhase.SCORE,
    RunPhase.BENCHMARK,
)


@dataclass(frozen=True)
class RunProgress:
    """Snapshot of a run after its most recent phase"""
    phase: RunPhase
    completed_phases: Tuple[RunPhase, ...]
    total_phases: int
    node_count: int
    fact_count: int
    matched_keys: int = 0
    total_keys: int = 0
    scored_nodes: int = 0
    insight_count: int = 0
    anomaly_count: int = 0
    
    @property
    def is_complete(self) -> bool:
        return self.phase == RunPhase.COMPLETE
    
    @property
    def fraction_complete(self) -> float:
        return len(self.completed_phases) / self.total_phases


@dataclass
class RunDiagnostics:
    """Operational diagnostics for a finished or partial run"""
    match_rate: float = 0.0
    matched_keys: int = 0
    total_keys: int = 0
    by_strategy: Dict[str, int] = field(default_factory=dict)
    by_entity_type: Dict[str, int] = field(default_factory=dict)
    unmatched_keys: List[str] = field(default_factory=list)
    unattributed_keys: List[str] = field(default_factory=list)
    unattributed_facts: int = 0
    dangling_parents: Dict[str, str] = field(default_factory=dict)
    conflicts: List[str] = field(default_factory=list)
    warnings: List[PipelineWarning] = field(default_factory=list)
    roots_consistent: bool = True


class AggregationRun:
    """
    One pipeline run over a disjoint tree and fact set.
    
    Runs share no mutable state, so runs for different tenants can execute
    in parallel.
    
    Example:
        run = AggregationRun(tree, facts, products=products)
        run.execute()
        run.scores["electronics-phones"].category
    """
    
    def __init__(
        self,
        tree: TaxonomyTree,
        facts: Iterable[MetricFact],
        products: Iterable[Product] = (),
        pricing: Optional[Mapping[str, PricingSnapshot]] = None,
        margins: Optional[Mapping[str, float]] = None,
        max_workers: Optional[int] = None,
        parallel_roots: bool = False,
        scorer: Optional[OpportunityScorer] = None,
        benchmarker: Optional[PeerBenchmarker] = None,
        tenant_id: Optional[str] = None,
        run_id: Optional[str] = None,
    ):
        self.tree = tree
        self.facts: Tuple[MetricFact, ...] = tuple(facts)
        self.products: Dict[str, Product] = {p.id: p for p in products}
        self.pricing: Dict[str, PricingSnapshot] = dict(pricing or {})
        self.margins: Dict[str, float] = dict(margins or {})
        self.max_workers = max_workers
        self.parallel_roots = parallel_roots
        self.scorer = scorer or OpportunityScorer()
        self.benchmarker = benchmarker or PeerBenchmarker()
        self.tenant_id = tenant_id
        self.run_id = run_id
        
        self.match_report: Optional[MatchReport] = None
        self.aggregation: Optional[AggregationResult] = None
        self.scores: Dict[str, OpportunityScore] = {}
        self.benchmarks: Dict[str, BenchmarkResult] = {}
        self.insights: List[Insight] = []
        self._completed: List[RunPhase] = []
    
    @classmethod
    def from_category_paths(
        cls,
        category_paths: Sequence[str],
        facts: Iterable[MetricFact],
        products: Iterable[Product] = (),
        **kwargs,
    ) -> "AggregationRun":
        """Build the tree from category paths plus product paths, then create the run"""
        products = list(products)
        tree = TaxonomyTree.from_products(products, category_paths=category_paths)
        return cls(tree, facts, products=products, **kwargs)
    
    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------
    
    @property
    def next_phase(self) -> Optional[RunPhase]:
        if len(self._completed) == len(PHASES):
            return None
        return PHASES[len(self._completed)]
    
    def step(self) -> RunProgress:
        """
        Run the next phase and return the progress snapshot.
        
        Raises:
            RuntimeError: every phase has already run
        """
        phase = self.next_phase
        if phase is None:
            raise RuntimeError("Aggregation run already complete")
        
        with run_context(tenant_id=self.tenant_id, run_id=self.run_id):
            log = logger.bind(phase=phase.value)
            log.debug("Phase started")
            
            if phase == RunPhase.MATCH:
                self._match()
            elif phase == RunPhase.AGGREGATE:
                self._aggregate()
            elif phase == RunPhase.SCORE:
                self._score()
            else:
                self._benchmark()
            
            self._completed.append(phase)
            progress = self.progress
            log.info("Phase complete", fraction=progress.fraction_complete)
        return progress
    
    def execute(self) -> RunProgress:
        """Run every remaining phase"""
        progress = self.progress
        while self.next_phase is not None:
            progress = self.step()
        return progress
    
    def _match(self) -> None:
        matcher = FactMatcher(self.tree, self.products.values(), max_workers=self.max_workers)
        self.match_report = matcher.match_batch(self.facts)
    
    def _aggregate(self) -> None:
        aggregator = PerformanceAggregator(parallel_roots=self.parallel_roots, max_workers=self.max_workers)
        self.aggregation = aggregator.aggregate(self.tree, self.facts, self.match_report.results)
    
    def _score(self) -> None:
        self.scores = self.scorer.score_all(
            self.tree,
            self.aggregation,
            products=self.products,
            pricing=self.pricing,
            margins=self.margins,
        )
    
    def _benchmark(self) -> None:
        self.benchmarks = self.benchmarker.benchmark_all(self.tree, self.aggregation)
        self.insights = self.benchmarker.find_opportunities(self.tree, self.aggregation)
    
    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------
    
    @property
    def progress(self) -> RunProgress:
        completed = tuple(self._completed)
        match = self.match_report.diagnostics if self.match_report else None
        return RunProgress(
            phase=RunPhase.COMPLETE if len(completed) == len(PHASES) else (completed[-1] if completed else RunPhase.PENDING),
            completed_phases=completed,
            total_phases=len(PHASES),
            node_count=len(self.tree),
            fact_count=len(self.facts),
            matched_keys=match.matched if match else 0,
            total_keys=match.total if match else 0,
            scored_nodes=len(self.scores),
            insight_count=len(self.insights),
            anomaly_count=len(self.diagnostics.warnings) + len(self.tree.conflicts),
        )
    
    @property
    def diagnostics(self) -> RunDiagnostics:
        diagnostics = RunDiagnostics(
            dangling_parents=dict(self.tree.dangling_parents),
            conflicts=[str(e) for e in self.tree.conflicts],
            warnings=list(self.tree.anomalies),
        )
        if self.match_report is not None:
            match = self.match_report.diagnostics
            diagnostics.match_rate = match.match_rate
            diagnostics.matched_keys = match.matched
            diagnostics.total_keys = match.total
            diagnostics.by_strategy = dict(match.by_strategy)
            diagnostics.by_entity_type = dict(match.by_entity_type)
            diagnostics.unmatched_keys = list(match.unmatched_keys)
            diagnostics.unattributed_keys = list(match.unattributed_keys)
            diagnostics.warnings.extend(match.warnings)
        if self.aggregation is not None:
            diagnostics.roots_consistent = self.aggregation.diagnostics.roots_consistent
            diagnostics.unattributed_facts = self.aggregation.diagnostics.unattributed_facts
        return diagnostics
