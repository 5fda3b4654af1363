"""
Spreadsheet import: uploaded workbooks -> store-shaped record dicts.

Only the first sheet is read.  Its first row is the header; every later
non-blank row becomes a dict keyed by header.  Parsers then map the
camelCase template columns onto store columns:

    subprojects      rows grouped by ``uid``; ``detail_*`` columns -> details[]
    activities       rows grouped by ``uid``; ``expense_*`` columns -> expenses[]
    office / staffing / other
                     one record per row; uid assigned by the store
    uacs             one reference entry per row

IMP-001: Workbooks are opened with openpyxl read_only + data_only so
         formula cells yield their cached values.
IMP-002: Budget codes are matched exactly or on their alphanumeric key,
         first within the row's object type / particular, then across the
         whole reference; a match elsewhere adopts that object type and
         particular.
IMP-003: Operating unit and tier are matched case-insensitively against
         the configured lists; unknown values fall back to NPMO / Tier 1.

Nothing here writes to the database.  ``WorkbookImportError`` (a
``ValueError``) aborts the whole upload, so no partially parsed file is
ever persisted.
"""

from __future__ import annotations

import io
import logging
import zipfile
from typing import Any, Callable, Iterable

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from utils.config import KnownValues
from utils.strings import alnum_key, safe_float, safe_int, safe_str

from workbook.logging import ImportReport
from workbook.templates import STAFFING_MONTH_HEADERS

logger = logging.getLogger(__name__)

UacsLookup = dict[str, dict[str, dict[str, str]]]
Row = tuple[int, dict[str, Any]]


class WorkbookImportError(ValueError):
    """Raised when an uploaded workbook cannot be turned into records."""


REQUIRED_HEADERS: dict[str, tuple[str, ...]] = {
    "subprojects": ("uid",),
    "activities": ("uid", "type", "component", "name", "date"),
    "office-requirements": ("equipment", "uacsCode"),
    "staffing-requirements": ("personnelPosition", "uacsCode"),
    "other-expenses": ("particulars", "uacsCode"),
    "uacs": ("particular", "uacsCode"),
}


# ── Reading ───────────────────────────────────────────────────────────────────

def read_rows(data: bytes) -> tuple[list[str], list[Row]]:
    """Read the first sheet of an xlsx payload.

    Returns:
        ``(headers, rows)`` where each row is ``(sheet_row_number, dict)``.
        Blank rows are dropped; blank header cells are ignored.

    Raises:
        WorkbookImportError: If the payload is not a readable workbook.
    """
    if not data:
        raise WorkbookImportError("The uploaded file is empty.")
    try:
        wb = openpyxl.load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise WorkbookImportError(f"Unable to read workbook: {exc}") from exc

    try:
        ws = wb.worksheets[0]
        # Some writers leave a wrong (or no) dimension tag; read every row.
        ws.reset_dimensions()
        it = ws.iter_rows(values_only=True)
        header_row = next(it, None)
        if header_row is None:
            return [], []
        headers = [safe_str(h) for h in header_row]
        rows: list[Row] = []
        for offset, values in enumerate(it, start=2):
            if values is None or all(v is None or safe_str(v) == "" for v in values):
                continue
            row = {h: v for h, v in zip(headers, values) if h}
            rows.append((offset, row))
    finally:
        wb.close()
    return [h for h in headers if h], rows


def check_headers(kind: str, headers: Iterable[str]) -> None:
    """Raise WorkbookImportError naming any required column the sheet lacks."""
    present = set(headers)
    missing = [h for h in REQUIRED_HEADERS.get(kind, ()) if h not in present]
    if missing:
        raise WorkbookImportError(f"Missing required column(s): {', '.join(missing)}")


# ── Value resolution ──────────────────────────────────────────────────────────

def resolve_operating_unit(value: Any, known: Iterable[str] | None = None,
                           default: str = "NPMO") -> str:
    """Return the configured spelling of *value*, or *default* when unknown."""
    text = safe_str(value)
    if not text:
        return default
    for ou in known or KnownValues.OPERATING_UNITS:
        if ou.lower() == text.lower():
            return ou
    return default


def resolve_tier(value: Any, default: str = "Tier 1") -> str:
    """Match ``"tier 2"`` / ``"2"`` style input to a known tier."""
    text = safe_str(value)
    if not text:
        return default
    for tier in KnownValues.TIERS:
        if text.lower() in (tier.lower(), tier.split()[-1]):
            return tier
    return default


def resolve_fund_type(value: Any, report: ImportReport | None = None,
                      row: int | None = None, default: str = "Current") -> str:
    text = safe_str(value)
    for ft in KnownValues.FUND_TYPES:
        if ft.lower() == text.lower():
            return ft
    if text and report is not None:
        report.add_note("invalid_option", f"Unknown fund type '{text}'", row)
    return default


def resolve_uacs_code(lookup: UacsLookup | None, object_type: str, particular: str,
                      code: str) -> tuple[str, str, str, bool]:
    """Match an uploaded budget code against the UACS reference.

    Args:
        lookup: ``object_type -> particular -> code -> description``.
        object_type: Object type given on the row.
        particular: Expense particular given on the row.
        code: Code as typed (any punctuation).

    Returns:
        ``(object_type, particular, code, found)``.  When the code is only
        found under another object type / particular those are returned in
        place of the row's values.
    """
    code = safe_str(code)
    if not lookup or not code:
        return object_type, particular, code, False
    key = alnum_key(code)

    def _match(codes: Iterable[str]) -> str | None:
        for c in codes:
            if c == code or alnum_key(c) == key:
                return c
        return None

    scoped = lookup.get(object_type, {}).get(particular)
    if object_type and particular and scoped:
        hit = _match(scoped)
        if hit:
            return object_type, particular, hit, True

    for ot, particulars in lookup.items():
        for part, codes in particulars.items():
            hit = _match(codes)
            if hit:
                return ot, part, hit, True
    return object_type, particular, code, False


def _location(row: dict) -> str:
    parts = [safe_str(row.get("municipality")), safe_str(row.get("province"))]
    return ", ".join(p for p in parts if p)


def _optional_year(value: Any) -> int | None:
    year = safe_int(value)
    return year or None


def split_ipos(value: Any) -> list[str]:
    """Split a participating-IPO cell: semicolons first, commas as a fallback."""
    raw = safe_str(value)
    if not raw:
        return []
    sep = ";" if ";" in raw else ","
    return [s.strip() for s in raw.split(sep) if s.strip()]


def _coded_line(report: ImportReport, lookup: UacsLookup | None, row_no: int,
                object_type: Any, particular: Any, code: Any) -> dict:
    ot, part, resolved, found = resolve_uacs_code(
        lookup, safe_str(object_type), safe_str(particular), safe_str(code))
    if lookup and resolved and not found:
        report.add_note("unresolved_code", f"Budget code '{resolved}' not in UACS reference",
                        row_no)
    return {"object_type": ot, "expense_particular": part, "uacs_code": resolved}


# ── Parsers ───────────────────────────────────────────────────────────────────

def parse_subprojects(rows: list[Row], report: ImportReport, *,
                      uacs_lookup: UacsLookup | None = None,
                      operating_units: Iterable[str] | None = None,
                      encoded_by: str | None = None, **_: Any) -> list[dict]:
    """Group subproject rows by uid; rows with ``detail_particulars`` add a detail."""
    grouped: dict[str, dict] = {}
    for row_no, row in rows:
        uid = safe_str(row.get("uid"))
        if not uid:
            report.add_skip("missing_uid", "Row has no uid", row_no)
            continue
        if uid not in grouped:
            grouped[uid] = {
                "uid": uid,
                "name": safe_str(row.get("name")),
                "location": _location(row),
                "indigenous_people_organization": safe_str(row.get("indigenousPeopleOrganization")),
                "status": safe_str(row.get("status")) or "Proposed",
                "package_type": safe_str(row.get("packageType")),
                "start_date": safe_str(row.get("startDate")) or None,
                "estimated_completion_date": safe_str(row.get("estimatedCompletionDate")) or None,
                "actual_completion_date": safe_str(row.get("actualCompletionDate")) or None,
                "funding_year": _optional_year(row.get("fundingYear")),
                "fund_type": resolve_fund_type(row.get("fundType"), report, row_no),
                "tier": resolve_tier(row.get("tier")),
                "operating_unit": resolve_operating_unit(row.get("operatingUnit"), operating_units),
                "encoded_by": encoded_by or "System Upload",
                "remarks": safe_str(row.get("remarks")),
                "details": [],
            }
        if not safe_str(row.get("detail_particulars")):
            continue
        grouped[uid]["details"].append({
            "type": safe_str(row.get("detail_type")),
            "particulars": safe_str(row.get("detail_particulars")),
            "delivery_date": safe_str(row.get("detail_deliveryDate")),
            "unit_of_measure": safe_str(row.get("detail_unitOfMeasure")),
            "price_per_unit": safe_float(row.get("detail_pricePerUnit")),
            "number_of_units": safe_float(row.get("detail_numberOfUnits")),
            **_coded_line(report, uacs_lookup, row_no, row.get("detail_objectType"),
                          row.get("detail_expenseParticular"), row.get("detail_uacsCode")),
            "obligation_month": safe_str(row.get("detail_obligationMonth")),
            "disbursement_month": safe_str(row.get("detail_disbursementMonth")),
        })
    return list(grouped.values())


def parse_activities(rows: list[Row], report: ImportReport, *,
                     uacs_lookup: UacsLookup | None = None,
                     operating_units: Iterable[str] | None = None,
                     operating_unit: str | None = None,
                     encoded_by: str | None = None, **_: Any) -> list[dict]:
    """Group activity rows by uid; rows with an expense amount and object type add an expense.

    Raises:
        WorkbookImportError: If the first row of a uid lacks type, component,
            name or date.
    """
    ou = resolve_operating_unit(operating_unit, operating_units)
    grouped: dict[str, dict] = {}
    for row_no, row in rows:
        uid = safe_str(row.get("uid"))
        if not uid:
            report.add_skip("missing_uid", "Row has no uid", row_no)
            continue
        if uid not in grouped:
            if not all(safe_str(row.get(f)) for f in ("type", "component", "name", "date")):
                raise WorkbookImportError(
                    f"Row {row_no} (UID: {uid}): Missing required common fields "
                    "(type, component, name, date)."
                )
            fund_type = safe_str(row.get("fundType"))
            if fund_type and not KnownValues.is_valid_fund_type(fund_type):
                report.add_note("invalid_option", f"Unknown fund type '{fund_type}'", row_no)
            tier = safe_str(row.get("tier"))
            if tier and not KnownValues.is_valid_tier(tier):
                report.add_note("invalid_option", f"Unknown tier '{tier}'", row_no)
            grouped[uid] = {
                "uid": uid,
                "type": safe_str(row.get("type")),
                "component": safe_str(row.get("component")),
                "name": safe_str(row.get("name")),
                "date": safe_str(row.get("date")),
                "description": safe_str(row.get("description")),
                "location": _location(row),
                "participating_ipos": split_ipos(row.get("participatingIpos")),
                "participants_male": safe_int(row.get("participantsMale")),
                "participants_female": safe_int(row.get("participantsFemale")),
                "funding_year": _optional_year(row.get("fundingYear")),
                "fund_type": fund_type if KnownValues.is_valid_fund_type(fund_type) else "Current",
                "tier": tier if KnownValues.is_valid_tier(tier) else "Tier 1",
                "operating_unit": ou,
                "encoded_by": encoded_by or "System",
                "facilitator": safe_str(row.get("facilitator")),
                "expenses": [],
            }
        amount = row.get("expense_amount")
        if amount is None or safe_str(amount) == "" or not safe_str(row.get("expense_objectType")):
            continue
        grouped[uid]["expenses"].append({
            **_coded_line(report, uacs_lookup, row_no, row.get("expense_objectType"),
                          row.get("expense_particular"), row.get("expense_uacsCode")),
            "obligation_month": safe_str(row.get("expense_obligationMonth")),
            "disbursement_month": safe_str(row.get("expense_disbursementMonth")),
            "amount": safe_float(amount),
        })
    return list(grouped.values())


def _program_common(row_no: int, row: dict, report: ImportReport,
                    operating_units: Iterable[str] | None, encoded_by: str | None) -> dict:
    rec = {
        "operating_unit": resolve_operating_unit(row.get("operatingUnit"), operating_units),
        "fund_year": _optional_year(row.get("fundYear")),
        "fund_type": resolve_fund_type(row.get("fundType"), report, row_no),
        "tier": resolve_tier(row.get("tier")),
        "obligation_date": safe_str(row.get("obligationDate")),
        "disbursement_date": safe_str(row.get("disbursementDate")),
        "uacs_code": safe_str(row.get("uacsCode")),
        "encoded_by": encoded_by or "Upload",
    }
    uid = safe_str(row.get("uid"))
    if uid:
        rec["uid"] = uid
    return rec


def parse_office(rows: list[Row], report: ImportReport, *,
                 operating_units: Iterable[str] | None = None,
                 encoded_by: str | None = None, **_: Any) -> list[dict]:
    return [{
        **_program_common(row_no, row, report, operating_units, encoded_by),
        "equipment": safe_str(row.get("equipment")),
        "specs": safe_str(row.get("specs")),
        "purpose": safe_str(row.get("purpose")),
        "number_of_units": safe_int(row.get("numberOfUnits")),
        "price_per_unit": safe_float(row.get("pricePerUnit")),
    } for row_no, row in rows]


def parse_staffing(rows: list[Row], report: ImportReport, *,
                   operating_units: Iterable[str] | None = None,
                   encoded_by: str | None = None, **_: Any) -> list[dict]:
    """Staffing rows; the annual salary is the monthly sum when that is positive."""
    records = []
    for row_no, row in rows:
        monthly = {
            f"disbursement_{h[len('disbursement'):].lower()}": safe_float(row.get(h))
            for h in STAFFING_MONTH_HEADERS
        }
        total = sum(monthly.values())
        rec = {
            **_program_common(row_no, row, report, operating_units, encoded_by),
            "personnel_position": safe_str(row.get("personnelPosition")),
            "status": safe_str(row.get("status")) or "Contractual",
            "salary_grade": safe_int(row.get("salaryGrade")) or 1,
            "annual_salary": total if total > 0 else safe_float(row.get("annualSalary")),
            "personnel_type": safe_str(row.get("personnelType")) or "Technical",
            **monthly,
        }
        for m in KnownValues.SHORT_MONTHS:
            header = f"actualDisbursement{m}"
            if header in row:
                rec[f"actual_disbursement_{m.lower()}"] = safe_float(row.get(header))
        records.append(rec)
    return records


def parse_other(rows: list[Row], report: ImportReport, *,
                operating_units: Iterable[str] | None = None,
                encoded_by: str | None = None, **_: Any) -> list[dict]:
    return [{
        **_program_common(row_no, row, report, operating_units, encoded_by),
        "particulars": safe_str(row.get("particulars")),
        "amount": safe_float(row.get("amount")),
    } for row_no, row in rows]


def parse_uacs(rows: list[Row], report: ImportReport, **_: Any) -> list[dict]:
    """UACS reference rows; rows lacking a code or particular are skipped."""
    entries = []
    for row_no, row in rows:
        code = safe_str(row.get("uacsCode"))
        particular = safe_str(row.get("particular"))
        if not code or not particular:
            report.add_skip("missing_fields", "Row needs both particular and uacsCode", row_no)
            continue
        entries.append({
            "object_type": safe_str(row.get("objectType")) or "MOOE",
            "particular": particular,
            "uacs_code": code,
            "description": safe_str(row.get("description")),
        })
    return entries


PARSERS: dict[str, Callable[..., list[dict]]] = {
    "subprojects": parse_subprojects,
    "activities": parse_activities,
    "office-requirements": parse_office,
    "staffing-requirements": parse_staffing,
    "other-expenses": parse_other,
    "uacs": parse_uacs,
}


def parse_workbook(kind: str, data: bytes, **options: Any) -> tuple[list[dict], ImportReport]:
    """Read and parse an uploaded workbook for *kind*.

    Args:
        kind: Record kind slug or ``"uacs"``.
        data: Raw xlsx bytes.
        **options: Passed to the parser (``uacs_lookup``, ``operating_units``,
            ``operating_unit``, ``encoded_by``).

    Returns:
        ``(records, report)``.

    Raises:
        WorkbookImportError: Unreadable file, missing columns or missing
            required fields.
        KeyError: If *kind* is not importable.
    """
    parser = PARSERS[kind]
    headers, rows = read_rows(data)
    if not rows:
        raise WorkbookImportError("The uploaded workbook has no data rows.")
    check_headers(kind, headers)

    report = ImportReport(kind=kind, rows_read=len(rows))
    records = parser(rows, report, **options)
    report.records = len(records)
    logger.info("Parsed %s upload: %s", kind, report.console_summary())
    return records, report
