"""
Fact Frame Validation

Rule-based checks over polars frames of incoming metric facts. Each rule
is a polars expression selecting the rows it rejects, so the same rules
both report on a frame and filter it down to its valid rows.

Features:
- Required columns and null checks
- Non-negative additive fields
- Allowed metric sources
- Date range ordering
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import polars as pl
import structlog

from taxonomy_insights.models import MetricSource

logger = structlog.get_logger(__name__)


class ValidationSeverity(str, Enum):
    """Severity levels for validation failures"""
    ERROR = "error"  # Rows are dropped
    WARNING = "warning"  # Logged, rows kept


class ValidationStatus(str, Enum):
    """Overall validation status"""
    PASSED = "passed"
    FAILED = "failed"
    PARTIAL = "partial"


@dataclass
class ValidationCheck:
    """Single validation check result"""
    name: str
    passed: bool
    severity: ValidationSeverity
    message: str
    details: Optional[Dict[str, Any]] = None
    failed_rows: int = 0
    total_rows: int = 0


@dataclass
class ValidationResult:
    """Complete validation suite result"""
    status: ValidationStatus
    total_checks: int
    passed_checks: int
    failed_checks: int
    warning_count: int
    checks: List[ValidationCheck] = field(default_factory=list)
    dropped_rows: int = 0
    
    @property
    def success_rate(self) -> float:
        """Percentage of passed checks"""
        if self.total_checks == 0:
            return 100.0
        return (self.passed_checks / self.total_checks) * 100


@dataclass(frozen=True)
class _Rule:
    name: str
    columns: Tuple[str, ...]
    invalid: pl.Expr
    severity: ValidationSeverity
    description: str


class DataValidator:
    """
    Fact frame validator with a chainable rule set.
    
    Example:
        validator = DataValidator()
        validator.add_not_null_check("subject_key")
        validator.add_range_check("impressions", min_value=0)
        clean, result = validator.filter_valid(df)
    """
    
    def __init__(self, strict_mode: bool = False):
        self.strict_mode = strict_mode  # Warnings fail the suite
        self._rules: List[_Rule] = []
    
    def reset(self) -> None:
        """Reset validator state"""
        self._rules = []
    
    def _add(self, rule: _Rule) -> "DataValidator":
        self._rules.append(rule)
        return self
    
    def add_not_null_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Reject null values in column"""
        return self._add(_Rule(
            name=f"not_null_{column}",
            columns=(column,),
            invalid=pl.col(column).is_null(),
            severity=severity,
            description="null values",
        ))
    
    def add_not_empty_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Reject null or blank strings in column"""
        return self._add(_Rule(
            name=f"not_empty_{column}",
            columns=(column,),
            invalid=pl.col(column).is_null() | (pl.col(column).cast(pl.Utf8).str.strip_chars() == ""),
            severity=severity,
            description="empty values",
        ))
    
    def add_range_check(
        self,
        column: str,
        min_value: Optional[float] = None,
        max_value: Optional[float] = None,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Reject values outside [min_value, max_value]; nulls pass"""
        conditions = []
        if min_value is not None:
            conditions.append(pl.col(column) < min_value)
        if max_value is not None:
            conditions.append(pl.col(column) > max_value)
        
        combined = pl.lit(False)
        for cond in conditions:
            combined = combined | cond
        
        return self._add(_Rule(
            name=f"range_{column}",
            columns=(column,),
            invalid=combined.fill_null(False),
            severity=severity,
            description=f"values outside range [{min_value}, {max_value}]",
        ))
    
    def add_non_negative_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Reject negative values"""
        return self.add_range_check(column, min_value=0, severity=severity)
    
    def add_enum_check(
        self,
        column: str,
        allowed_values: List[Any],
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Reject values outside the allowed set"""
        return self._add(_Rule(
            name=f"enum_{column}",
            columns=(column,),
            invalid=~pl.col(column).is_in(allowed_values) & pl.col(column).is_not_null(),
            severity=severity,
            description="invalid values",
        ))
    
    def add_ordering_check(
        self,
        lower: str,
        upper: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Reject rows where lower > upper"""
        return self._add(_Rule(
            name=f"ordering_{lower}_{upper}",
            columns=(lower, upper),
            invalid=(pl.col(lower) > pl.col(upper)).fill_null(False),
            severity=severity,
            description=f"rows with {lower} after {upper}",
        ))
    
    def _missing_columns(self, df: pl.DataFrame, rule: _Rule) -> List[str]:
        return [c for c in rule.columns if c not in df.columns]
    
    def _run(self, df: pl.DataFrame) -> Tuple[List[ValidationCheck], pl.Expr, bool]:
        """Check results, the combined row-rejection expression and whether a column is missing"""
        results = []
        rejected = pl.lit(False)
        missing_any = False
        total = len(df)
        
        for rule in self._rules:
            missing = self._missing_columns(df, rule)
            if missing:
                missing_any = missing_any or rule.severity == ValidationSeverity.ERROR
                results.append(ValidationCheck(
                    name=rule.name,
                    passed=False,
                    severity=rule.severity,
                    message=f"Column '{missing[0]}' not found",
                ))
                continue
            
            failed = df.filter(rule.invalid).height
            passed = failed == 0
            results.append(ValidationCheck(
                name=rule.name,
                passed=passed,
                severity=rule.severity,
                message=f"{failed} {rule.description}" if not passed else "Check passed",
                details={"columns": list(rule.columns), "failed_count": failed},
                failed_rows=failed,
                total_rows=total,
            ))
            if not passed:
                logger.warning(
                    f"Validation failed: {rule.name}",
                    failed_rows=failed,
                    severity=rule.severity.value,
                )
            if rule.severity == ValidationSeverity.ERROR:
                rejected = rejected | rule.invalid
        
        return results, rejected, missing_any
    
    def _summarize(self, results: List[ValidationCheck], dropped: int) -> ValidationResult:
        passed_checks = sum(1 for r in results if r.passed)
        failed_checks = sum(1 for r in results if not r.passed and r.severity == ValidationSeverity.ERROR)
        warning_count = sum(1 for r in results if not r.passed and r.severity == ValidationSeverity.WARNING)
        
        if failed_checks > 0:
            status = ValidationStatus.FAILED
        elif warning_count > 0 and self.strict_mode:
            status = ValidationStatus.FAILED
        elif warning_count > 0:
            status = ValidationStatus.PARTIAL
        else:
            status = ValidationStatus.PASSED
        
        logger.info(
            f"Validation complete: {status.value}",
            passed=passed_checks,
            failed=failed_checks,
            warnings=warning_count,
            dropped_rows=dropped,
        )
        return ValidationResult(
            status=status,
            total_checks=len(results),
            passed_checks=passed_checks,
            failed_checks=failed_checks,
            warning_count=warning_count,
            checks=results,
            dropped_rows=dropped,
        )
    
    def validate(self, df: pl.DataFrame) -> ValidationResult:
        """Run all checks without changing the frame"""
        results, _, _ = self._run(df)
        return self._summarize(results, dropped=0)
    
    def filter_valid(self, df: pl.DataFrame) -> Tuple[pl.DataFrame, ValidationResult]:
        """
        Drop rows rejected by any error-severity rule.
        
        A missing required column rejects every row.
        
        Returns:
            The valid rows and the validation result with the dropped count
        """
        results, rejected, missing = self._run(df)
        clean = df.clear() if missing else df.filter(~rejected)
        return clean, self._summarize(results, dropped=len(df) - len(clean))


def create_metric_facts_validator() -> DataValidator:
    """Create pre-configured validator for metric fact frames"""
    return (
        DataValidator()
        .add_not_empty_check("subject_key")
        .add_not_null_check("source")
        .add_enum_check("source", [s.value for s in MetricSource])
        .add_not_null_check("start_date")
        .add_not_null_check("end_date")
        .add_ordering_check("start_date", "end_date")
        .add_non_negative_check("impressions")
        .add_non_negative_check("clicks")
        .add_non_negative_check("conversions")
        .add_non_negative_check("revenue")
        .add_range_check("position", min_value=0.0001, severity=ValidationSeverity.WARNING)
    )
