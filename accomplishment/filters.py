"""Accomplishment worksheet filter."""

from __future__ import annotations

from dataclasses import dataclass

from utils.config import KnownValues
from utils.validation import is_valid_fund_year


@dataclass(frozen=True)
class AccomplishmentFilter:
    """Year / operating unit / tier / fund type selection for a worksheet.

    ``operating_unit``, ``tier`` and ``fund_type`` accept ``"All"``; the year
    is always an exact match.
    """

    year: int
    operating_unit: str = KnownValues.ALL
    tier: str = KnownValues.ALL
    fund_type: str = KnownValues.ALL

    def __post_init__(self) -> None:
        if not is_valid_fund_year(self.year):
            raise ValueError("Please enter a valid year.")
        object.__setattr__(self, "year", int(self.year))

    def matches(self, record: dict, year_field: str) -> bool:
        """True when *record* falls inside this filter."""
        try:
            record_year = int(record.get(year_field))
        except (TypeError, ValueError):
            return False
        if record_year != self.year:
            return False
        if self.operating_unit != KnownValues.ALL and \
                record.get("operating_unit") != self.operating_unit:
            return False
        if self.tier != KnownValues.ALL and record.get("tier") != self.tier:
            return False
        if self.fund_type != KnownValues.ALL and record.get("fund_type") != self.fund_type:
            return False
        return True

    def pinned_to(self, operating_unit: str | None) -> AccomplishmentFilter:
        """Return a copy restricted to *operating_unit* (None keeps this filter)."""
        if not operating_unit:
            return self
        return AccomplishmentFilter(self.year, operating_unit, self.tier, self.fund_type)
