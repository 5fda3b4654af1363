"""Consistency checks over a tracker database.

Run with ``python init_tracker_db.py --check``.  Each check returns a list
of ValidationIssue; the registry collects them into one ValidationResult.
"""

import sqlite3
from typing import List

from store.schema import KINDS
from store.tables import fetch_all, list_uacs
from utils.config import AppConfig, monthly_fields
from utils.strings import safe_float
from utils.validation import (
    ValidationIssue,
    ValidationRegistry,
    is_valid_amount,
    is_valid_operating_unit,
)


def check_monthly_totals(conn: sqlite3.Connection) -> List[ValidationIssue]:
    """Monthly actual disbursements must add up to the stored total."""
    issues = []
    cols = monthly_fields("actual_disbursement")
    for slug in ("staffing-requirements", "other-expenses"):
        bad = []
        for rec in fetch_all(conn, slug):
            monthly = sum(safe_float(rec.get(c)) for c in cols)
            if monthly and abs(monthly - safe_float(rec.get("actual_disbursement_amount"))) > 0.005:
                bad.append(rec.get("uid"))
        if bad:
            issues.append(ValidationIssue(
                "monthly_totals", "error",
                f"{KINDS[slug].label}: actual disbursement total differs from monthly sum",
                sample=bad[0], count=len(bad),
            ))
    return issues


def check_operating_units(conn: sqlite3.Connection) -> List[ValidationIssue]:
    """Every record needs an operating unit."""
    issues = []
    for kind in KINDS.values():
        n = conn.execute(
            f"SELECT COUNT(*) FROM {kind.table} "
            "WHERE operating_unit IS NULL OR TRIM(operating_unit) = ''"
        ).fetchone()[0]
        if n:
            issues.append(ValidationIssue(
                "operating_units", "error",
                f"{kind.label}: records without an operating unit", count=n,
            ))
    return issues


def check_known_operating_units(conn: sqlite3.Connection) -> List[ValidationIssue]:
    """Operating units should be one of the configured units."""
    units = AppConfig.from_env().operating_units
    issues = []
    for kind in KINDS.values():
        rows = conn.execute(
            f"SELECT operating_unit, COUNT(*) AS n FROM {kind.table} "
            "WHERE TRIM(COALESCE(operating_unit, '')) != '' GROUP BY operating_unit"
        ).fetchall()
        unknown = [(r[0], r[1]) for r in rows if not is_valid_operating_unit(r[0], units)]
        if unknown:
            issues.append(ValidationIssue(
                "known_operating_units", "warning",
                f"{kind.label}: operating unit(s) not in the configured list",
                sample=unknown[0][0], count=sum(n for _, n in unknown),
            ))
    return issues


# Planned amount of each program record.
_AMOUNTS = {
    "office-requirements": lambda r: safe_float(r.get("price_per_unit")),
    "staffing-requirements": lambda r: safe_float(r.get("annual_salary")),
    "other-expenses": lambda r: safe_float(r.get("amount")),
}


def check_amounts(conn: sqlite3.Connection) -> List[ValidationIssue]:
    """Planned and actual amounts must be non-negative."""
    issues = []
    for slug, planned in _AMOUNTS.items():
        bad = [
            rec.get("uid") for rec in fetch_all(conn, slug)
            if not all(is_valid_amount(v) for v in (
                planned(rec),
                safe_float(rec.get("actual_obligation_amount")),
                safe_float(rec.get("actual_disbursement_amount")),
            ))
        ]
        if bad:
            issues.append(ValidationIssue(
                "amounts", "error", f"{KINDS[slug].label}: negative or out-of-range amount",
                sample=bad[0], count=len(bad),
            ))
    return issues


def check_uacs_codes(conn: sqlite3.Connection) -> List[ValidationIssue]:
    """Budget codes used by records should exist in reference_uacs."""
    known = {r["uacs_code"] for r in list_uacs(conn)}
    if not known:
        return []
    unknown: dict[str, int] = {}
    for slug in ("office-requirements", "staffing-requirements", "other-expenses"):
        for rec in fetch_all(conn, slug):
            code = rec.get("uacs_code") or ""
            if code and code not in known:
                unknown[code] = unknown.get(code, 0) + 1
    for slug, lines_field in (("subprojects", "details"), ("activities", "expenses")):
        for rec in fetch_all(conn, slug):
            for ln in rec.get(lines_field) or []:
                code = ln.get("uacs_code") or ""
                if code and code not in known:
                    unknown[code] = unknown.get(code, 0) + 1
    if not unknown:
        return []
    return [ValidationIssue(
        "uacs_codes", "warning",
        f"{len(unknown)} budget code(s) not in the UACS reference",
        sample=sorted(unknown)[0], count=sum(unknown.values()),
    )]


def build_registry() -> ValidationRegistry:
    registry = ValidationRegistry()
    registry.register("monthly_totals", check_monthly_totals)
    registry.register("operating_units", check_operating_units)
    registry.register("known_operating_units", check_known_operating_units)
    registry.register("amounts", check_amounts)
    registry.register("uacs_codes", check_uacs_codes)
    return registry
