"""Derived accomplishment items.

Financial and physical items are computed from the record tables every time
a filter is applied; they are never stored.  ``is_confirmed`` / ``is_locked``
and ``error`` only live as long as the worksheet that holds the item.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from utils.config import KnownValues

MONTH_KEYS = [m.lower() for m in KnownValues.SHORT_MONTHS]


@dataclass
class FinancialItem:
    """One budget line of the financial accomplishment worksheet."""

    unique_id: str
    source_type: str
    source_id: int
    detail_id: int | None = None
    uacs_code: str = ""
    object_type: str = "MOOE"
    expense_particular: str = ""
    source_name: str = ""
    target_obligation_month: str = ""
    target_obligation_amount: float = 0.0
    target_disbursement_month: str = ""
    target_disbursement_amount: float = 0.0
    actual_obligation_month: str = ""
    actual_obligation_amount: float = 0.0
    actual_disbursement_month: str = ""
    actual_disbursement_amount: float = 0.0
    actual_disbursement_jan: float = 0.0
    actual_disbursement_feb: float = 0.0
    actual_disbursement_mar: float = 0.0
    actual_disbursement_apr: float = 0.0
    actual_disbursement_may: float = 0.0
    actual_disbursement_jun: float = 0.0
    actual_disbursement_jul: float = 0.0
    actual_disbursement_aug: float = 0.0
    actual_disbursement_sep: float = 0.0
    actual_disbursement_oct: float = 0.0
    actual_disbursement_nov: float = 0.0
    actual_disbursement_dec: float = 0.0
    is_confirmed: bool = False
    error: str | None = None

    @property
    def has_monthly(self) -> bool:
        """Staffing and Other lines track disbursements month by month."""
        return self.source_type in ("Staffing", "Other")

    def monthly_values(self) -> list[float]:
        return [getattr(self, f"actual_disbursement_{m}") for m in MONTH_KEYS]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class PhysicalItem:
    """One row of the physical accomplishment worksheet (possibly a parent)."""

    unique_id: str
    source_type: str
    source_id: int | None
    parent_id: str | None = None
    detail_id: int | None = None
    name: str = ""
    sub_name: str = ""
    location: str = ""
    target_date_start: str = ""
    target_date_end: str = ""
    target_qty: float = 0
    target_male: int = 0
    target_female: int = 0
    unit_of_measure: str = ""
    actual_date_start: str = ""
    actual_date_end: str = ""
    actual_qty: float = 0
    actual_male: int = 0
    actual_female: int = 0
    is_parent: bool = False
    is_locked: bool = False
    children: list[PhysicalItem] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["children"] = [c.to_dict() for c in self.children]
        return data
