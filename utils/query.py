"""Shared SQL query builder utilities for the record routes.

Provides the WHERE clause and ORDER BY construction used by records.py,
transfer.py (reports) and store.tables.
"""

from typing import Any

from utils.config import KnownValues


_ALLOWED_SORTS_DEFAULT = {"id", "uid", "operating_unit", "created_at", "updated_at"}


def _is_all(value: str | None) -> bool:
    """True for filters that should not restrict results (None, "", "All")."""
    return value is None or value == "" or value == KnownValues.ALL


def build_where_clause(
    year_column: str = "fund_year",
    fund_year: int | str | None = None,
    operating_unit: str | None = None,
    tier: str | None = None,
    fund_type: str | None = None,
    q: str | None = None,
    search_columns: list[str] | None = None,
    ids: list[int] | None = None,
) -> tuple[str, list[Any]]:
    """Build a SQL WHERE clause from record filter parameters.

    Args:
        year_column: Name of the year column on the target table
            (``funding_year`` for subprojects/activities, ``fund_year``
            for the program management tables).
        fund_year: Restrict to this year. ``None``/``"All"`` means any year.
        operating_unit: Exact operating unit, or ``"All"``.
        tier: Exact tier, or ``"All"``.
        fund_type: Exact fund type, or ``"All"``.
        q: Free-text search applied as ``LIKE %q%`` over ``search_columns``.
        search_columns: Columns to search with ``q`` (ORed together).
        ids: Restrict to these row ids.

    Returns:
        Tuple of (where_clause_string, params_list). The where_clause_string
        starts with "WHERE " if any conditions exist, or is "" if none.
    """
    conditions: list[str] = []
    params: list[Any] = []

    if not _is_all(fund_year if fund_year is None else str(fund_year)):
        conditions.append(f"{year_column} = ?")
        params.append(int(fund_year))

    if not _is_all(operating_unit):
        conditions.append("operating_unit = ?")
        params.append(operating_unit)

    if not _is_all(tier):
        conditions.append("tier = ?")
        params.append(tier)

    if not _is_all(fund_type):
        conditions.append("fund_type = ?")
        params.append(fund_type)

    if q and search_columns:
        like = f"%{q.strip()}%"
        ors = " OR ".join(f"{col} LIKE ?" for col in search_columns)
        conditions.append(f"({ors})")
        params.extend([like] * len(search_columns))

    if ids is not None:
        if not ids:
            return "WHERE 1=0", []
        placeholders = ",".join("?" * len(ids))
        conditions.append(f"id IN ({placeholders})")
        params.extend(ids)

    where = "WHERE " + " AND ".join(conditions) if conditions else ""
    return where, params


def build_order_clause(
    sort_by: str,
    sort_dir: str,
    allowed_sorts: set[str] | None = None,
    default_sort: str = "id",
) -> str:
    """Build a safe SQL ORDER BY clause.

    Args:
        sort_by: Column name to sort by.
        sort_dir: Direction: 'asc' or 'desc' (case-insensitive).
        allowed_sorts: Set of valid sort column names. Defaults to
            _ALLOWED_SORTS_DEFAULT if not provided.
        default_sort: Column to use if sort_by is not in allowed_sorts.

    Returns:
        ORDER BY clause string, e.g. "ORDER BY id ASC". A secondary
        ``id`` key keeps paging stable when the sort column has ties.
    """
    if allowed_sorts is None:
        allowed_sorts = _ALLOWED_SORTS_DEFAULT
    col = sort_by if sort_by in allowed_sorts else default_sort
    direction = "DESC" if sort_dir.lower() == "desc" else "ASC"
    if col == "id":
        return f"ORDER BY id {direction}"
    return f"ORDER BY {col} {direction}, id ASC"
