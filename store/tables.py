"""Keyed reads and writes over the tracker tables.

Rows are exchanged as plain dicts in store shape (snake_case column names,
JSON columns decoded to lists).  Every function takes an open connection
whose ``row_factory`` is ``sqlite3.Row``; callers own its lifecycle.

Whole-table reads page through the table ``batch_size`` rows at a time so
a large table never needs a single unbounded SELECT.
"""

import json
import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable

from store.schema import RecordKind, get_kind
from utils.config import monthly_fields
from utils.database import QueryBuilder, batch_upsert, query_to_dicts
from utils.strings import safe_float, safe_int, safe_str
from utils.validation import ensure_valid_record

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 1000

_READ_ONLY_COLUMNS = {"id", "created_at"}

# Keyed on (database file, table); in-memory databases are never cached.
_table_columns_cache: dict[tuple[str, str], list[str]] = {}

# Line figures recorded through the worksheets.  An upsert copies them from
# the stored line with the same key fields onto the incoming line.
_LINE_ACTUALS = (
    "id",
    "actual_obligation_date",
    "actual_obligation_amount",
    "actual_disbursement_date",
    "actual_disbursement_amount",
    "actual_delivery_date",
    "actual_number_of_units",
)
_LINE_KEYS = {
    "details": ("particulars", "uacs_code"),
    "expenses": ("uacs_code", "expense_particular"),
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _database_file(conn: sqlite3.Connection) -> str:
    row = conn.execute("PRAGMA database_list").fetchone()
    return row[2] if row and row[2] else ""


def table_columns(conn: sqlite3.Connection, table: str) -> list[str]:
    """Return the column names of *table* (cached per database file and table)."""
    db_file = _database_file(conn)
    cols = _table_columns_cache.get((db_file, table)) if db_file else None
    if cols is None:
        cols = [r[1] for r in conn.execute(f"PRAGMA table_info({table})").fetchall()]
        if cols and db_file:
            _table_columns_cache[(db_file, table)] = cols
    return cols


# ── Row <-> record conversion ─────────────────────────────────────────────────

def row_to_record(kind: RecordKind, row: sqlite3.Row | dict) -> dict:
    """Convert a table row to a record dict, decoding JSON columns."""
    record = dict(row)
    for col in kind.json_columns:
        raw = record.get(col)
        if isinstance(raw, str):
            try:
                record[col] = json.loads(raw) if raw else []
            except json.JSONDecodeError:
                logger.warning("Unreadable %s JSON on %s id=%s", col, kind.table,
                               record.get("id"))
                record[col] = []
        elif raw is None:
            record[col] = []
    return record


def record_to_row(kind: RecordKind, record: dict, columns: Iterable[str]) -> dict:
    """Keep only writable table columns of *record*, encoding JSON columns."""
    allowed = set(columns) - _READ_ONLY_COLUMNS
    row = {k: v for k, v in record.items() if k in allowed}
    for col in kind.json_columns:
        if col in row:
            row[col] = json.dumps(row[col] or [])
    return row


def _assign_line_ids(lines: list[dict]) -> list[dict]:
    """Give every sub-line without an ``id`` the next free integer id."""
    used = [safe_int(ln.get("id")) for ln in lines if ln.get("id") not in (None, "")]
    next_id = max(used, default=0) + 1
    out = []
    for ln in lines:
        ln = dict(ln)
        if ln.get("id") in (None, ""):
            ln["id"] = next_id
            next_id += 1
        out.append(ln)
    return out


def _line_key(line: dict, fields: tuple[str, ...]) -> tuple[str, ...]:
    return tuple(safe_str(line.get(f)).lower() for f in fields)


def carry_line_actuals(stored: list[dict], incoming: list[dict],
                       fields: tuple[str, ...]) -> list[dict]:
    """Copy ids and actual figures from *stored* lines onto matching *incoming* lines.

    Lines match on *fields*; repeated keys pair up in order.  A figure the
    incoming line already carries is kept.  Unmatched incoming lines are
    returned unchanged and get fresh ids later.
    """
    pool: dict[tuple[str, ...], list[dict]] = {}
    for ln in stored:
        pool.setdefault(_line_key(ln, fields), []).append(ln)
    merged = []
    for ln in incoming:
        matches = pool.get(_line_key(ln, fields))
        if matches:
            old = matches.pop(0)
            carried = {k: old[k] for k in _LINE_ACTUALS
                       if k in old and ln.get(k) in (None, "")}
            ln = {**ln, **carried}
        merged.append(ln)
    return merged


def _stored_lines(conn: sqlite3.Connection, kind: RecordKind, column: str,
                  uids: list[str]) -> dict[str, list[dict]]:
    """Current *column* lines of the rows whose uid is in *uids*."""
    out: dict[str, list[dict]] = {}
    for start in range(0, len(uids), 500):
        chunk = uids[start:start + 500]
        placeholders = ",".join("?" * len(chunk))
        for row in conn.execute(
            f"SELECT uid, {column} FROM {kind.table} WHERE uid IN ({placeholders})", chunk,
        ).fetchall():
            out[row["uid"]] = row_to_record(kind, row)[column]
    return out


def derive_totals(kind: RecordKind, record: dict) -> dict:
    """Recompute the aggregate columns that follow from monthly values.

    * Staffing: ``annual_salary`` is the sum of the monthly targets when any
      is non-zero; ``actual_disbursement_amount`` is the sum of the monthly
      actuals whenever the record carries them.
    * Other expenses: ``actual_disbursement_amount`` is the sum of the
      monthly actuals when any is non-zero.
    """
    record = dict(record)
    if kind.slug == "staffing-requirements":
        targets = [safe_float(record.get(c)) for c in monthly_fields("disbursement")]
        if any(targets):
            record["annual_salary"] = sum(targets)
        actual_cols = monthly_fields("actual_disbursement")
        if any(c in record for c in actual_cols):
            record["actual_disbursement_amount"] = sum(
                safe_float(record.get(c)) for c in actual_cols)
    elif kind.slug == "other-expenses":
        actuals = [safe_float(record.get(c)) for c in monthly_fields("actual_disbursement")]
        if any(actuals):
            record["actual_disbursement_amount"] = sum(actuals)
    if kind.slug == "subprojects" and "details" in record:
        record["details"] = _assign_line_ids(record["details"] or [])
    if kind.slug == "activities" and "expenses" in record:
        record["expenses"] = _assign_line_ids(record["expenses"] or [])
    return record


def next_uid(conn: sqlite3.Connection, kind: RecordKind, year: Any) -> str:
    """Return the next free ``{PREFIX}-{year}-{seq:03d}`` uid for *kind*."""
    year_part = str(safe_int(year)) if year not in (None, "") else \
        str(datetime.now(timezone.utc).year)
    stem = f"{kind.uid_prefix}-{year_part}-"
    rows = conn.execute(
        f"SELECT uid FROM {kind.table} WHERE uid LIKE ?", (stem + "%",)
    ).fetchall()
    seqs = [safe_int(r[0][len(stem):]) for r in rows if r[0]]
    return f"{stem}{max(seqs, default=0) + 1:03d}"


def assign_uids(conn: sqlite3.Connection, kind: RecordKind, records: list[dict]) -> list[dict]:
    """Give every record without a uid the next free uid for its year.

    Sequences continue across the batch, so a hundred new rows for the same
    year get a hundred consecutive numbers.
    """
    taken = {rec["uid"] for rec in records if rec.get("uid")}
    next_seq: dict[str, int] = {}
    for rec in records:
        if rec.get("uid"):
            continue
        first = next_uid(conn, kind, rec.get(kind.year_column))
        stem, _, seq = first.rpartition("-")
        n = next_seq.get(stem, int(seq))
        while f"{stem}-{n:03d}" in taken:
            n += 1
        rec["uid"] = f"{stem}-{n:03d}"
        next_seq[stem] = n + 1
    return records


# ── Reads ─────────────────────────────────────────────────────────────────────

def fetch_all(
    conn: sqlite3.Connection,
    kind: RecordKind | str,
    batch_size: int = DEFAULT_BATCH_SIZE,
    conditions: list[tuple[str, list[Any]]] | None = None,
) -> list[dict]:
    """Read every matching row of a record table, ``batch_size`` rows per query.

    Args:
        conn: Open connection.
        kind: RecordKind or its slug.
        batch_size: Rows per page.
        conditions: Optional ``(sql_fragment, params)`` WHERE conditions.

    Returns:
        List of record dicts ordered by id.
    """
    if isinstance(kind, str):
        kind = get_kind(kind)
    records: list[dict] = []
    offset = 0
    while True:
        qb = QueryBuilder().from_table(kind.table).order_by("id")
        for cond, params in conditions or []:
            qb.where(cond, *params)
        sql, params = qb.limit(batch_size).offset(offset).build()
        page = conn.execute(sql, params).fetchall()
        records.extend(row_to_record(kind, r) for r in page)
        if len(page) < batch_size:
            break
        offset += batch_size
    return records


def count_records(conn: sqlite3.Connection, kind: RecordKind, where: str = "",
                  params: list[Any] | None = None) -> int:
    """Count rows of *kind* matching a WHERE clause from build_where_clause."""
    row = conn.execute(f"SELECT COUNT(*) FROM {kind.table} {where}", params or []).fetchone()
    return row[0] if row else 0


def list_records(conn: sqlite3.Connection, kind: RecordKind, where: str = "",
                 params: list[Any] | None = None, order: str = "ORDER BY id ASC",
                 limit: int | None = None, offset: int = 0) -> list[dict]:
    """Return one page of *kind* rows as record dicts."""
    sql = f"SELECT * FROM {kind.table} {where} {order}"
    args = list(params or [])
    if limit is not None:
        sql += " LIMIT ? OFFSET ?"
        args.extend([limit, offset])
    return [row_to_record(kind, r) for r in conn.execute(sql, args).fetchall()]


def get_record(conn: sqlite3.Connection, kind: RecordKind, record_id: int) -> dict | None:
    """Return the record with primary key *record_id*, or None."""
    row = conn.execute(f"SELECT * FROM {kind.table} WHERE id = ?", (record_id,)).fetchone()
    return row_to_record(kind, row) if row else None


# ── Writes ────────────────────────────────────────────────────────────────────

def insert_record(conn: sqlite3.Connection, kind: RecordKind, record: dict) -> dict:
    """Validate, complete and insert a new record; returns the stored record.

    Raises:
        ValueError: If a required field is missing.
    """
    ensure_valid_record(kind.slug, record)
    record = derive_totals(kind, record)
    if not record.get("uid"):
        record["uid"] = next_uid(conn, kind, record.get(kind.year_column))
    now = _now()
    record["created_at"] = now
    record["updated_at"] = now

    row = record_to_row(kind, record, table_columns(conn, kind.table))
    cols = list(row)
    placeholders = ", ".join("?" * len(cols))
    cur = conn.execute(
        f"INSERT INTO {kind.table} ({', '.join(cols)}) VALUES ({placeholders})",
        [row[c] for c in cols],
    )
    conn.commit()
    logger.info("Created %s %s (id=%s)", kind.slug, record["uid"], cur.lastrowid)
    return get_record(conn, kind, cur.lastrowid)


def update_record(conn: sqlite3.Connection, kind: RecordKind, record_id: int,
                  updates: dict, validate: bool = True) -> dict | None:
    """Merge *updates* into record *record_id* and write it back.

    Returns the updated record, or None when no such record exists.

    Raises:
        ValueError: If ``validate`` and the merged record is missing a
            required field.
    """
    existing = get_record(conn, kind, record_id)
    if existing is None:
        return None
    merged = {**existing, **updates}
    if validate:
        ensure_valid_record(kind.slug, merged)
    merged = derive_totals(kind, merged)
    if not merged.get("uid"):
        merged["uid"] = next_uid(conn, kind, merged.get(kind.year_column))
    merged["updated_at"] = _now()

    row = record_to_row(kind, merged, table_columns(conn, kind.table))
    assignments = ", ".join(f"{c} = ?" for c in row)
    conn.execute(
        f"UPDATE {kind.table} SET {assignments} WHERE id = ?",
        [*row.values(), record_id],
    )
    conn.commit()
    return get_record(conn, kind, record_id)


def update_fields(conn: sqlite3.Connection, kind: RecordKind, record_id: int,
                  fields: dict) -> int:
    """Write *fields* verbatim to one row (no validation, no derivation).

    Used by the accomplishment save paths, which already computed the
    values to store.  Returns the number of rows changed (0 or 1).
    """
    row = record_to_row(kind, fields, table_columns(conn, kind.table))
    if not row:
        return 0
    row["updated_at"] = _now()
    assignments = ", ".join(f"{c} = ?" for c in row)
    cur = conn.execute(
        f"UPDATE {kind.table} SET {assignments} WHERE id = ?",
        [*row.values(), record_id],
    )
    conn.commit()
    return cur.rowcount


def delete_records(conn: sqlite3.Connection, kind: RecordKind, ids: list[int]) -> int:
    """Delete rows whose id is in *ids*; returns the number deleted."""
    if not ids:
        return 0
    placeholders = ",".join("?" * len(ids))
    cur = conn.execute(f"DELETE FROM {kind.table} WHERE id IN ({placeholders})", list(ids))
    conn.commit()
    logger.info("Deleted %d %s row(s)", cur.rowcount, kind.slug)
    return cur.rowcount


def upsert_records(conn: sqlite3.Connection, kind: RecordKind, records: list[dict],
                   batch_size: int = DEFAULT_BATCH_SIZE) -> int:
    """Insert or update *records* keyed on ``uid`` in a single transaction.

    Every record is validated first; a failure raises before anything is
    written so an import is all-or-nothing.  Subproject details and activity
    expenses replace the stored lines, but lines matching a stored one keep
    its id and actual figures.

    Raises:
        ValueError: If any record is missing a required field.
    """
    if not records:
        return 0
    line_col = next((c for c in kind.json_columns if c in _LINE_KEYS), None)
    stored = {}
    if line_col:
        stored = _stored_lines(conn, kind, line_col,
                               [r["uid"] for r in records if r.get("uid")])
    prepared = []
    for rec in records:
        ensure_valid_record(kind.slug, rec)
        if not rec.get("uid"):
            raise ValueError(f"{kind.label} row is missing a UID.")
        if line_col and line_col in rec and rec["uid"] in stored:
            rec = {**rec, line_col: carry_line_actuals(
                stored[rec["uid"]], rec[line_col] or [], _LINE_KEYS[line_col])}
        rec = derive_totals(kind, rec)
        rec["updated_at"] = _now()
        prepared.append(rec)

    # Only columns the records mention are written, so a re-import keeps
    # actual figures already recorded against an existing uid.
    table_cols = table_columns(conn, kind.table)
    mentioned = set().union(*(rec.keys() for rec in prepared))
    columns = [c for c in table_cols if c in mentioned and c not in _READ_ONLY_COLUMNS]
    rows = []
    for rec in prepared:
        row = record_to_row(kind, rec, columns)
        rows.append(tuple(row.get(c, _column_default(c)) for c in columns))

    try:
        total = batch_upsert(conn, kind.table, columns, rows, ["uid"],
                             batch_size=batch_size, commit=False)
        conn.commit()
    except sqlite3.Error:
        conn.rollback()
        raise
    logger.info("Upserted %d %s row(s)", total, kind.slug)
    return total


_TEXT_DEFAULTS = {
    "fund_type": "Current",
    "tier": "Tier 1",
    "status": "Proposed",
    "personnel_type": "Technical",
}


def _column_default(column: str) -> Any:
    """Value for a column that some, but not all, upserted records mention."""
    if column in ("details", "expenses", "participating_ipos"):
        return "[]"
    if column in _TEXT_DEFAULTS:
        return _TEXT_DEFAULTS[column]
    if column.endswith(("_date", "_year")) or column in ("uid", "encoded_by", "remarks",
                                              "description", "location"):
        return None
    if column.endswith(("_amount", "_male", "_female")) or column in (
            "amount", "price_per_unit", "annual_salary", "number_of_units") or \
            column.startswith(("actual_disbursement_", "disbursement_")):
        return 0
    if column == "salary_grade":
        return 1
    return ""


# ── Accomplishment sources ────────────────────────────────────────────────────

@dataclass
class Sources:
    """In-memory copies of the five record tables used by the roll-ups."""

    subprojects: list[dict] = field(default_factory=list)
    activities: list[dict] = field(default_factory=list)
    office_requirements: list[dict] = field(default_factory=list)
    staffing_requirements: list[dict] = field(default_factory=list)
    other_expenses: list[dict] = field(default_factory=list)

    def collection(self, source_type: str) -> list[dict]:
        """Return the list backing a financial/physical ``source_type``."""
        return {
            "Subproject": self.subprojects,
            "Activity": self.activities,
            "Office": self.office_requirements,
            "Staffing": self.staffing_requirements,
            "Other": self.other_expenses,
        }[source_type]


SOURCE_KINDS = {
    "Subproject": "subprojects",
    "Activity": "activities",
    "Office": "office-requirements",
    "Staffing": "staffing-requirements",
    "Other": "other-expenses",
}


def load_sources(conn: sqlite3.Connection, year: int | None = None,
                 batch_size: int = DEFAULT_BATCH_SIZE) -> Sources:
    """Read the five record tables, optionally narrowed to one year."""
    def _read(slug: str) -> list[dict]:
        kind = get_kind(slug)
        conds = [(f"{kind.year_column} = ?", [year])] if year is not None else None
        return fetch_all(conn, kind, batch_size=batch_size, conditions=conds)

    return Sources(
        subprojects=_read("subprojects"),
        activities=_read("activities"),
        office_requirements=_read("office-requirements"),
        staffing_requirements=_read("staffing-requirements"),
        other_expenses=_read("other-expenses"),
    )


# ── UACS reference ────────────────────────────────────────────────────────────

def list_uacs(conn: sqlite3.Connection) -> list[dict]:
    """Return every reference_uacs row ordered by object type then code."""
    return query_to_dicts(
        conn,
        "SELECT id, object_type, particular, uacs_code, description "
        "FROM reference_uacs ORDER BY object_type, uacs_code",
    )


def build_uacs_lookup(rows: list[dict]) -> dict[str, dict[str, dict[str, str]]]:
    """Build the ``object_type -> particular -> code -> description`` lookup."""
    lookup: dict[str, dict[str, dict[str, str]]] = {}
    for r in rows:
        obj = r.get("object_type") or "MOOE"
        particular = r.get("particular") or ""
        code = r.get("uacs_code") or ""
        if not code:
            continue
        lookup.setdefault(obj, {}).setdefault(particular, {})[code] = r.get("description") or ""
    return lookup


def upsert_uacs(conn: sqlite3.Connection, entries: list[dict]) -> int:
    """Insert or update UACS entries keyed on ``uacs_code``.

    Entries lacking a code or particular are skipped; a missing object type
    defaults to MOOE.
    """
    rows = []
    for e in entries:
        code = str(e.get("uacs_code") or "").strip()
        particular = str(e.get("particular") or "").strip()
        if not code or not particular:
            continue
        rows.append((
            str(e.get("object_type") or "MOOE").strip() or "MOOE",
            particular,
            code,
            str(e.get("description") or "").strip(),
        ))
    return batch_upsert(conn, "reference_uacs",
                        ["object_type", "particular", "uacs_code", "description"],
                        rows, ["uacs_code"])


def delete_uacs(conn: sqlite3.Connection, ids: list[int]) -> int:
    """Delete reference_uacs rows by id; returns the number deleted."""
    if not ids:
        return 0
    placeholders = ",".join("?" * len(ids))
    cur = conn.execute(f"DELETE FROM reference_uacs WHERE id IN ({placeholders})", list(ids))
    conn.commit()
    return cur.rowcount
