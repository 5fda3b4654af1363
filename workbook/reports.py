"""
Report workbooks: one sheet of records with human-readable column captions.

Reports take the already filtered record dicts (see the list endpoint for
the filter parameters) and lay them out with the captions users see in
the record tables.  Derived columns (subproject budget, activity total
budget, office total amount) are computed here, never stored.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from utils.strings import safe_float

from workbook.templates import workbook_bytes

Column = tuple[str, Callable[[dict], Any]]


def _field(name: str) -> Callable[[dict], Any]:
    return lambda rec: rec.get(name)


def _subproject_budget(rec: dict) -> float:
    return sum(safe_float(d.get("price_per_unit")) * safe_float(d.get("number_of_units"))
               for d in rec.get("details") or [])


def _activity_budget(rec: dict) -> float:
    return sum(safe_float(e.get("amount")) for e in rec.get("expenses") or [])


def _facilitator(rec: dict) -> str:
    return (rec.get("facilitator") or "") if rec.get("type") == "Training" else "N/A"


_FUND_COLUMNS: list[Column] = [
    ("Fund Type", _field("fund_type")),
    ("Fund Year", _field("fund_year")),
    ("Tier", _field("tier")),
    ("Obligation Date", _field("obligation_date")),
    ("Disbursement Date", _field("disbursement_date")),
]


@dataclass(frozen=True)
class ReportSpec:
    filename: str
    sheet: str
    columns: list[Column]


REPORTS: dict[str, ReportSpec] = {
    "subprojects": ReportSpec("Subprojects_Report.xlsx", "Subprojects", [
        ("UID", _field("uid")),
        ("Name", _field("name")),
        ("IPO", _field("indigenous_people_organization")),
        ("Location", _field("location")),
        ("Status", _field("status")),
        ("Budget", _subproject_budget),
        ("Start Date", _field("start_date")),
        ("End Date", _field("estimated_completion_date")),
    ]),
    "activities": ReportSpec("Activities_Report.xlsx", "Activities Report", [
        ("UID", lambda rec: rec.get("uid") or ""),
        ("Type", _field("type")),
        ("Component", _field("component")),
        ("Activity Name", _field("name")),
        ("Date", _field("date")),
        ("Location", _field("location")),
        ("Male Participants", _field("participants_male")),
        ("Female Participants", _field("participants_female")),
        ("Total Budget", _activity_budget),
        ("Funding Year", _field("funding_year")),
        ("Fund Type", _field("fund_type")),
        ("Tier", _field("tier")),
        ("Operating Unit", _field("operating_unit")),
        ("Encoded By", _field("encoded_by")),
        ("Participating IPOs", lambda rec: ", ".join(rec.get("participating_ipos") or [])),
        ("Facilitator", _facilitator),
        ("Description", _field("description")),
    ]),
    "office-requirements": ReportSpec("Office_Requirements_Report.xlsx", "Office Requirements", [
        ("UID", _field("uid")),
        ("OU", _field("operating_unit")),
        ("Equipment", _field("equipment")),
        ("Specs", _field("specs")),
        ("Purpose", _field("purpose")),
        ("No. of Units", _field("number_of_units")),
        ("Price/Unit", _field("price_per_unit")),
        ("Total Amount", lambda rec: safe_float(rec.get("number_of_units"))
         * safe_float(rec.get("price_per_unit"))),
        *_FUND_COLUMNS,
    ]),
    "staffing-requirements": ReportSpec("Staffing_Requirements_Report.xlsx",
                                        "Staffing Requirements", [
        ("UID", _field("uid")),
        ("OU", _field("operating_unit")),
        ("Position", _field("personnel_position")),
        ("Status", _field("status")),
        ("Salary Grade", _field("salary_grade")),
        ("Annual Salary", _field("annual_salary")),
        ("Type", _field("personnel_type")),
        *_FUND_COLUMNS,
    ]),
    "other-expenses": ReportSpec("Other_Expenses_Report.xlsx", "Other Expenses", [
        ("UID", _field("uid")),
        ("OU", _field("operating_unit")),
        ("Particulars", _field("particulars")),
        ("Amount", _field("amount")),
        *_FUND_COLUMNS,
    ]),
}


def report_rows(kind: str, records: list[dict]) -> list[list]:
    """Header row followed by one row per record."""
    spec = REPORTS[kind]
    rows: list[list] = [[caption for caption, _ in spec.columns]]
    for rec in records:
        rows.append([getter(rec) for _, getter in spec.columns])
    return rows


def build_report(kind: str, records: list[dict]) -> tuple[str, bytes]:
    """Return ``(filename, xlsx bytes)`` of the report for *records*.

    Raises:
        KeyError: If *kind* has no report layout.
    """
    spec = REPORTS[kind]
    return spec.filename, workbook_bytes([(spec.sheet, report_rows(kind, records))])
