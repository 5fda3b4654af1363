"""
Import accounting: what each spreadsheet upload processed, skipped and why.

Provides:
  - ImportReport: counts of rows read, records produced, rows skipped (with
    a category) and errors for one upload.
  - SkipRecord: single skip event with a category and detail string.

Skip categories (for SkipRecord.category):
    missing_uid         subproject or activity row without a uid (cannot be grouped)
    missing_fields      UACS row lacking a code or particular
    invalid_option      fund type / tier value not in the known list (dropped)
    unresolved_code     budget code not found in the UACS reference (kept as typed)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class SkipRecord:
    """One row (or value) that was skipped, with a machine-readable category."""

    category: str
    detail: str
    row: int | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"category": self.category, "detail": self.detail}
        if self.row is not None:
            d["row"] = self.row
        return d


@dataclass
class ImportReport:
    """Structured summary of one spreadsheet import."""

    kind: str
    rows_read: int = 0
    records: int = 0
    rows_skipped: int = 0
    skips: list[SkipRecord] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def add_skip(self, category: str, detail: str, row: int | None = None) -> None:
        self.skips.append(SkipRecord(category=category, detail=detail, row=row))
        self.rows_skipped += 1

    def add_note(self, category: str, detail: str, row: int | None = None) -> None:
        """Record a value-level problem without counting the row as skipped."""
        self.skips.append(SkipRecord(category=category, detail=detail, row=row))

    def add_error(self, message: str) -> None:
        self.errors.append(message)

    def skip_counts_by_category(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for s in self.skips:
            counts[s.category] = counts.get(s.category, 0) + 1
        return counts

    def console_summary(self) -> str:
        """One-line summary suitable for a log line."""
        parts: list[str] = [f"{self.rows_read:,} rows read", f"{self.records:,} records"]
        if self.skips:
            cats = self.skip_counts_by_category()
            skip_parts = [f"{v} {k.replace('_', ' ')}" for k, v in sorted(cats.items())]
            parts.append(f"{self.rows_skipped:,} skipped ({', '.join(skip_parts)})")
        if self.errors:
            parts.append(f"{len(self.errors):,} errors")
        return " | ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "kind": self.kind,
            "rows_read": self.rows_read,
            "records": self.records,
            "rows_skipped": self.rows_skipped,
            "skip_counts": self.skip_counts_by_category(),
        }
        if self.skips:
            d["skips"] = [s.to_dict() for s in self.skips]
        if self.errors:
            d["errors"] = self.errors
        return d
