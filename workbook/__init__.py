"""Spreadsheet templates, imports and reports (openpyxl)."""

from workbook.templates import TEMPLATES, XLSX_MEDIA_TYPE, build_template, workbook_bytes
from workbook.importer import (
    WorkbookImportError,
    parse_workbook,
    read_rows,
    resolve_operating_unit,
    resolve_tier,
    resolve_uacs_code,
)
from workbook.reports import REPORTS, build_report
from workbook.logging import ImportReport, SkipRecord

__all__ = [
    "TEMPLATES",
    "XLSX_MEDIA_TYPE",
    "build_template",
    "workbook_bytes",
    "WorkbookImportError",
    "parse_workbook",
    "read_rows",
    "resolve_operating_unit",
    "resolve_tier",
    "resolve_uacs_code",
    "REPORTS",
    "build_report",
    "ImportReport",
    "SkipRecord",
]
