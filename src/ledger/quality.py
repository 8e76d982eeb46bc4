"""
Data quality reporting for remote feed rows.

Feed problems never stop a sync: bad rows are dropped or placed at the epoch.
This module records what was tolerated so it can be logged and shown on the
dashboard.
"""

from dataclasses import dataclass, field
from typing import Callable, Any

import pandas as pd


@dataclass
class DataQualityIssue:
    """A single data quality issue found in a feed."""

    column: str
    issue_type: str  # e.g., "missing", "unparsed_date", "unmatched_product", "duplicate"
    severity: str  # "critical", "warning", "info"
    count: int
    percentage: float
    sample_values: list[Any] = field(default_factory=list)
    description: str = ""


@dataclass
class DataQualityReport:
    """Summary report of data quality for a single feed."""

    source_name: str
    total_rows: int
    issues: list[DataQualityIssue] = field(default_factory=list)

    @property
    def critical_issues(self) -> list[DataQualityIssue]:
        return [i for i in self.issues if i.severity == "critical"]

    @property
    def warning_issues(self) -> list[DataQualityIssue]:
        return [i for i in self.issues if i.severity == "warning"]

    @property
    def has_critical_issues(self) -> bool:
        return len(self.critical_issues) > 0

    def summary(self) -> dict:
        """Return a summary dict for display."""
        return {
            "source": self.source_name,
            "total_rows": self.total_rows,
            "critical": len(self.critical_issues),
            "warnings": len(self.warning_issues),
            "info": len([i for i in self.issues if i.severity == "info"]),
        }


def _issue(
    column: str,
    issue_type: str,
    severity: str,
    mask: pd.Series,
    df: pd.DataFrame,
    description: str,
    sample_col: str | None = None,
) -> DataQualityIssue:
    count = int(mask.sum())
    samples = df.loc[mask, sample_col or column].head(5).tolist() if (sample_col or column) in df.columns else []
    return DataQualityIssue(
        column=column,
        issue_type=issue_type,
        severity=severity,
        count=count,
        percentage=(count / len(df)) * 100 if len(df) else 0.0,
        sample_values=samples,
        description=description.format(count=count),
    )


class DataQualityChecker:
    """
    Quality checker for a feed DataFrame.

    Checks for:
    - Missing required columns/values
    - Values outside an allowed set
    - Row flags computed by the loader (unparsed dates, unmatched products)

    Extend by adding custom checks via add_check().
    """

    def __init__(self, source_name: str, required_columns: list[str] | None = None):
        self.source_name = source_name
        self.required_columns = required_columns or []
        self._checks: list[Callable[[pd.DataFrame], list[DataQualityIssue]]] = []
        self._add_default_checks()

    def _add_default_checks(self):
        """Add default quality checks."""
        self.add_check(self._check_missing_values)

    def add_check(
        self, check_fn: Callable[[pd.DataFrame], list[DataQualityIssue]]
    ) -> "DataQualityChecker":
        """Add a custom check function. Returns self for chaining."""
        self._checks.append(check_fn)
        return self

    def _check_missing_values(self, df: pd.DataFrame) -> list[DataQualityIssue]:
        """Check required columns exist and are filled in."""
        issues = []
        for col in self.required_columns:
            if col not in df.columns:
                issues.append(
                    DataQualityIssue(
                        column=col,
                        issue_type="missing_column",
                        severity="critical",
                        count=len(df),
                        percentage=100.0 if len(df) else 0.0,
                        description=f"Column '{col}' not present in feed",
                    )
                )
                continue
            missing = df[col].apply(lambda v: v is None or (not isinstance(v, str) and pd.isna(v)) or str(v).strip() == "")
            if missing.any():
                pct = (missing.sum() / len(df)) * 100
                severity = "critical" if pct > 20 else "warning" if pct > 5 else "info"
                issues.append(
                    _issue(col, "missing", severity, missing, df, "{count:,} missing values")
                )
        return issues

    def check_flag(
        self,
        flag_column: str,
        issue_type: str,
        description: str,
        severity: str = "warning",
        sample_col: str | None = None,
    ) -> "DataQualityChecker":
        """Report rows where a boolean flag column computed by the loader is set."""

        def check(df: pd.DataFrame) -> list[DataQualityIssue]:
            if flag_column not in df.columns:
                return []
            mask = df[flag_column].fillna(False).astype(bool)
            if mask.any():
                return [_issue(sample_col or flag_column, issue_type, severity, mask, df, description, sample_col)]
            return []

        self._checks.append(check)
        return self

    def check_invalid_values(
        self,
        column: str,
        valid_values: set,
        severity: str = "info",
    ) -> "DataQualityChecker":
        """Add a case-insensitive check for values outside an allowed set."""

        def check(df: pd.DataFrame) -> list[DataQualityIssue]:
            if column not in df.columns:
                return []
            allowed = {str(v).lower() for v in valid_values}
            values = df[column].fillna("").astype(str).str.strip().str.lower()
            invalid = ~values.isin(allowed)
            if invalid.any():
                return [
                    _issue(column, "invalid_value", severity, invalid, df, "{count:,} rows with values outside the accepted set")
                ]
            return []

        self._checks.append(check)
        return self

    def run(self, df: pd.DataFrame) -> DataQualityReport:
        """Run all checks and return a quality report."""
        all_issues = []
        if len(df) > 0:
            for check_fn in self._checks:
                all_issues.extend(check_fn(df))

        return DataQualityReport(
            source_name=self.source_name, total_rows=len(df), issues=all_issues
        )
