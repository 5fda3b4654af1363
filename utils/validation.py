"""Data validation utilities for the funding tracker.

Provides reusable functions for:
- Required-field checks on records before they are written
- Running registries of whole-database consistency checks
- Value checks for years, amounts and option lists
"""

from typing import List, Dict, Any, Callable, Optional
import sqlite3

from utils.config import KnownValues


class ValidationIssue:
    """Represents a single validation issue found during checks."""

    def __init__(self, check_name: str, severity: str, detail: str,
                 sample: Optional[Any] = None, count: int = 1):
        """Initialize a validation issue.

        Args:
            check_name: Name of the check that found this issue
            severity: Issue severity ('error', 'warning', 'info')
            detail: Human-readable description of the issue
            sample: Example value that triggered the issue
            count: Number of affected rows/records
        """
        self.check_name = check_name
        self.severity = severity
        self.detail = detail
        self.sample = sample
        self.count = count

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "check": self.check_name,
            "severity": self.severity,
            "detail": self.detail,
            "sample": str(self.sample) if self.sample else None,
            "count": self.count,
        }

    def __repr__(self) -> str:
        return (f"ValidationIssue(check={self.check_name}, severity={self.severity}, "
                f"count={self.count})")


class ValidationResult:
    """Collects and reports on validation check results."""

    def __init__(self):
        self.issues: List[ValidationIssue] = []
        self.passed_checks: List[str] = []
        self.failed_checks: List[str] = []

    def add_issue(self, check_name: str, severity: str, detail: str,
                  sample: Optional[Any] = None, count: int = 1) -> None:
        """Add a validation issue."""
        self.issues.append(ValidationIssue(check_name, severity, detail, sample, count))

    def mark_check_passed(self, check_name: str) -> None:
        """Mark a check as passed."""
        self.passed_checks.append(check_name)

    def mark_check_failed(self, check_name: str) -> None:
        """Mark a check as failed."""
        self.failed_checks.append(check_name)

    def get_issues_by_severity(self, severity: str) -> List[ValidationIssue]:
        """Get all issues of a specific severity."""
        return [i for i in self.issues if i.severity == severity]

    def error_count(self) -> int:
        """Get total number of error-level issues."""
        return len(self.get_issues_by_severity("error"))

    def warning_count(self) -> int:
        """Get total number of warning-level issues."""
        return len(self.get_issues_by_severity("warning"))

    def is_valid(self) -> bool:
        """Check if validation passed (no errors)."""
        return self.error_count() == 0

    def first_error(self) -> Optional[str]:
        """Detail text of the first error-level issue, or None."""
        errors = self.get_issues_by_severity("error")
        return errors[0].detail if errors else None

    def summary_text(self) -> str:
        """Generate human-readable validation summary."""
        lines = []
        lines.append("Validation Summary:")
        lines.append(f"  Passed Checks: {len(self.passed_checks)}")
        lines.append(f"  Failed Checks: {len(self.failed_checks)}")
        lines.append(f"  Issues: {len(self.issues)}")
        lines.append(f"    - Errors: {self.error_count()}")
        lines.append(f"    - Warnings: {self.warning_count()}")
        for issue in self.issues:
            lines.append(f"  [{issue.severity}] {issue.check_name}: {issue.detail}")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "passed_checks": self.passed_checks,
            "failed_checks": self.failed_checks,
            "issues": [i.to_dict() for i in self.issues],
            "summary": {
                "total_checks": len(self.passed_checks) + len(self.failed_checks),
                "passed": len(self.passed_checks),
                "failed": len(self.failed_checks),
                "issues": len(self.issues),
                "errors": self.error_count(),
                "warnings": self.warning_count(),
            }
        }


class ValidationRegistry:
    """Manages a collection of database check functions."""

    def __init__(self):
        self.checks: Dict[str, Callable] = {}

    def register(self, name: str, check_fn: Callable) -> None:
        """Register a check function.

        Args:
            name: Human-readable check name
            check_fn: Function taking a connection and returning List[ValidationIssue]
        """
        self.checks[name] = check_fn

    def run_all(self, conn: sqlite3.Connection,
                skip_checks: Optional[List[str]] = None) -> ValidationResult:
        """Run all registered checks.

        A check that raises is reported as an error issue for that check;
        the remaining checks still run.

        Args:
            conn: SQLite connection to validate
            skip_checks: List of check names to skip

        Returns:
            ValidationResult with all issues found
        """
        skip = skip_checks or []
        result = ValidationResult()

        for check_name, check_fn in self.checks.items():
            if check_name in skip:
                continue

            try:
                issues = check_fn(conn)
                if issues:
                    for issue in issues:
                        result.add_issue(issue.check_name, issue.severity,
                                         issue.detail, issue.sample, issue.count)
                    result.mark_check_failed(check_name)
                else:
                    result.mark_check_passed(check_name)
            except sqlite3.Error as e:
                result.add_issue(
                    check_name, "error",
                    f"Check raised exception: {str(e)[:100]}"
                )
                result.mark_check_failed(check_name)

        return result


# ── Record form checks ────────────────────────────────────────────────────────

# Kinds whose own row carries a budget code (subprojects/activities carry
# theirs on each detail / expense line instead).
_CODED_KINDS = {"office-requirements", "staffing-requirements", "other-expenses"}


def check_record(kind: str, record: Dict[str, Any]) -> ValidationResult:
    """Run the required-field checks for a record about to be saved.

    Args:
        kind: Record kind (``subprojects``, ``activities``,
            ``office-requirements``, ``staffing-requirements``,
            ``other-expenses``)
        record: Record dict in store shape

    Returns:
        ValidationResult; errors carry the user-facing message
    """
    result = ValidationResult()

    if not str(record.get("operating_unit") or "").strip():
        result.add_issue("operating_unit", "error", "Operating Unit is required.")

    if kind in _CODED_KINDS and not str(record.get("uacs_code") or "").strip():
        result.add_issue("uacs_code", "error", "UACS Code is required.")

    lines = []
    if kind == "subprojects":
        lines = record.get("details") or []
    elif kind == "activities":
        lines = record.get("expenses") or []
    missing = [ln for ln in lines if not str(ln.get("uacs_code") or "").strip()]
    if missing:
        result.add_issue("uacs_code", "error", "UACS Code is required.",
                         sample=missing[0].get("id"), count=len(missing))

    year_field = "funding_year" if kind in ("subprojects", "activities") else "fund_year"
    year = record.get(year_field)
    if year not in (None, "") and not is_valid_fund_year(year):
        result.add_issue(year_field, "warning", f"Unusual fund year: {year}", sample=year)

    return result


def ensure_valid_record(kind: str, record: Dict[str, Any]) -> None:
    """Raise ValueError with the first error message if *record* is incomplete."""
    message = check_record(kind, record).first_error()
    if message:
        raise ValueError(message)


def is_valid_fund_year(year: Any) -> bool:
    """Check if year is inside the accepted range (2000 < year < 2100).

    Args:
        year: Year to validate (int or numeric string)

    Returns:
        True if valid fund year, False otherwise
    """
    try:
        value = int(year)
    except (TypeError, ValueError):
        return False
    return 2000 < value < 2100


def is_valid_amount(value: float) -> bool:
    """Check if value is a valid peso amount (non-negative, finite range)."""
    if not isinstance(value, (int, float)):
        return False
    if isinstance(value, bool):  # bool is subclass of int
        return False
    return 0 <= value <= 999_000_000_000


def is_valid_operating_unit(unit: str, known_units: Optional[List[str]] = None) -> bool:
    """Check if an operating unit name is non-empty and, if given, known."""
    if not isinstance(unit, str) or not unit.strip():
        return False
    units = known_units if known_units is not None else KnownValues.OPERATING_UNITS
    return unit in units
