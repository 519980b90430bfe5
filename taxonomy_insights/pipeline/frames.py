"""
Polars Adapters

Fact ingestion from tabular sync exports and tabular outputs for the
persistence collaborator.
"""

from typing import List, Mapping, Optional, Tuple

import polars as pl
import structlog
from pydantic import ValidationError

from taxonomy_insights.aggregation import AggregationResult
from taxonomy_insights.models import DateRange, MetricFact
from taxonomy_insights.quality import DataValidator, ValidationResult, create_metric_facts_validator
from taxonomy_insights.scoring import OpportunityScore
from taxonomy_insights.taxonomy import TaxonomyTree

logger = structlog.get_logger(__name__)

ADDITIVE_COLUMNS = ("impressions", "clicks", "conversions", "revenue")


def _prepare(df: pl.DataFrame) -> pl.DataFrame:
    """Fill optional columns so every rule sees the full schema"""
    if "conversions" not in df.columns and "transactions" in df.columns:
        df = df.rename({"transactions": "conversions"})
    for column in ADDITIVE_COLUMNS:
        if column not in df.columns:
            df = df.with_columns(pl.lit(0.0).alias(column))
    if "position" not in df.columns:
        df = df.with_columns(pl.lit(None, dtype=pl.Float64).alias("position"))
    df = df.with_columns(
        [pl.col(c).cast(pl.Float64).fill_null(0.0) for c in ADDITIVE_COLUMNS]
        + [pl.col("position").cast(pl.Float64)]
    )
    # Non-positive positions are treated as unreported
    return df.with_columns(
        pl.when(pl.col("position") > 0)
        .then(pl.col("position"))
        .otherwise(pl.lit(None, dtype=pl.Float64))
        .alias("position")
    )


def facts_from_frame(
    df: pl.DataFrame,
    validator: Optional[DataValidator] = None,
) -> Tuple[List[MetricFact], ValidationResult]:
    """
    Convert a fact frame into validated MetricFact records.
    
    Expected columns: subject_key, source, start_date, end_date and any of
    impressions, clicks, conversions (or transactions), revenue, position.
    Rows failing validation are dropped and counted on the result.
    """
    validator = validator or create_metric_facts_validator()
    df = _prepare(df)
    clean, result = validator.filter_valid(df)
    
    facts: List[MetricFact] = []
    rejected = 0
    for row in clean.iter_rows(named=True):
        try:
            facts.append(MetricFact(
                subject_key=row["subject_key"],
                source=row["source"],
                date_range=DateRange(start=row["start_date"], end=row["end_date"]),
                impressions=row["impressions"],
                clicks=row["clicks"],
                conversions=row["conversions"],
                revenue=row["revenue"],
                position=row["position"],
            ))
        except ValidationError as e:
            rejected += 1
            logger.warning("Rejected fact row", subject_key=row.get("subject_key"), errors=e.error_count())
    
    result.dropped_rows += rejected
    logger.info("Facts loaded", rows=len(df), facts=len(facts), dropped=result.dropped_rows)
    return facts, result


_METRICS_SCHEMA = {
    "node_id": pl.Utf8,
    "parent_id": pl.Utf8,
    "title": pl.Utf8,
    "path": pl.Utf8,
    "depth": pl.Int64,
    "impressions": pl.Float64,
    "clicks": pl.Float64,
    "conversions": pl.Float64,
    "revenue": pl.Float64,
    "direct_product_count": pl.Int64,
    "total_product_count": pl.Int64,
    "ctr": pl.Float64,
    "conversion_rate": pl.Float64,
    "average_order_value": pl.Float64,
    "average_position": pl.Float64,
    "fact_count": pl.Int64,
    "sources": pl.List(pl.Utf8),
}


def metrics_to_frame(tree: TaxonomyTree, aggregation: AggregationResult) -> pl.DataFrame:
    """One row per node with its aggregated metrics"""
    rows = []
    for node in tree:
        metrics = aggregation[node.id].to_dict()
        rows.append({
            "node_id": node.id,
            "parent_id": tree.effective_parent_id(node.id),
            "title": node.title,
            "path": node.display_path,
            "depth": node.depth,
            **metrics,
        })
    return pl.DataFrame(rows, schema=_METRICS_SCHEMA)


def scores_to_frame(scores: Mapping[str, OpportunityScore]) -> pl.DataFrame:
    """One row per scored node with its factor breakdown"""
    rows = []
    for node_id in sorted(scores):
        score = scores[node_id]
        rows.append({
            "node_id": node_id,
            "score": score.score,
            **score.factor_breakdown.to_dict(),
            "category": score.category.value,
            "confidence": score.confidence.value,
            "revenue_impact_estimate": score.revenue_impact_estimate,
            "traffic_impact_estimate": score.traffic_impact_estimate,
            "product_count": score.product_count,
        })
    return pl.DataFrame(rows, schema={
        "node_id": pl.Utf8,
        "score": pl.Float64,
        "traffic_potential": pl.Float64,
        "revenue_potential": pl.Float64,
        "pricing_opportunity": pl.Float64,
        "competitive_gap": pl.Float64,
        "content_quality": pl.Float64,
        "category": pl.Utf8,
        "confidence": pl.Utf8,
        "revenue_impact_estimate": pl.Float64,
        "traffic_impact_estimate": pl.Float64,
        "product_count": pl.Int64,
    })
