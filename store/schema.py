"""Tracker database schema and migrations.

Six tables hold the tracker's data:

    subprojects             funding_year, details[] (JSON)
    activities              funding_year, expenses[] and participating_ipos[] (JSON)
    office_requirements     fund_year
    staffing_requirements   fund_year, 12 monthly targets + 12 monthly actuals
    other_program_expenses  fund_year, 12 monthly actuals
    reference_uacs          object_type / particular / uacs_code / description

Sub-lines of subprojects and activities are stored as JSON arrays on the
owning row; a confirm rewrites the whole array.  Every record table carries
the same common columns (uid, operating unit, fund type, tier, the four
record-level actual fields, timestamps).

Migrations follow the schema_version pattern: each entry in ``_MIGRATIONS``
is applied once, in order, and recorded.
"""

import sqlite3
from dataclasses import dataclass
from pathlib import Path

from utils.config import monthly_fields
from utils.database import init_pragmas


# ── Record kinds ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class RecordKind:
    """Describes one record table as seen by routes, importer and reports."""

    slug: str
    table: str
    label: str
    year_column: str
    uid_prefix: str
    search_columns: tuple[str, ...]
    sort_columns: frozenset
    json_columns: tuple[str, ...] = ()


_COMMON_SORTS = {"id", "uid", "operating_unit", "fund_type", "tier",
                 "created_at", "updated_at"}

KINDS: dict[str, RecordKind] = {
    "subprojects": RecordKind(
        slug="subprojects",
        table="subprojects",
        label="Subprojects",
        year_column="funding_year",
        uid_prefix="SP",
        search_columns=("uid", "name", "location", "indigenous_people_organization"),
        sort_columns=frozenset(_COMMON_SORTS | {"name", "status", "funding_year",
                                                "start_date"}),
        json_columns=("details",),
    ),
    "activities": RecordKind(
        slug="activities",
        table="activities",
        label="Activities",
        year_column="funding_year",
        uid_prefix="ACT",
        search_columns=("uid", "name", "type", "component", "location"),
        sort_columns=frozenset(_COMMON_SORTS | {"name", "type", "component",
                                                "date", "funding_year"}),
        json_columns=("expenses", "participating_ipos"),
    ),
    "office-requirements": RecordKind(
        slug="office-requirements",
        table="office_requirements",
        label="Office Requirements",
        year_column="fund_year",
        uid_prefix="OR",
        search_columns=("uid", "equipment", "specs", "purpose"),
        sort_columns=frozenset(_COMMON_SORTS | {"equipment", "fund_year",
                                                "price_per_unit"}),
    ),
    "staffing-requirements": RecordKind(
        slug="staffing-requirements",
        table="staffing_requirements",
        label="Staffing Requirements",
        year_column="fund_year",
        uid_prefix="SR",
        search_columns=("uid", "personnel_position", "personnel_type"),
        sort_columns=frozenset(_COMMON_SORTS | {"personnel_position", "salary_grade",
                                                "annual_salary", "fund_year"}),
    ),
    "other-expenses": RecordKind(
        slug="other-expenses",
        table="other_program_expenses",
        label="Other Program Expenses",
        year_column="fund_year",
        uid_prefix="OE",
        search_columns=("uid", "particulars"),
        sort_columns=frozenset(_COMMON_SORTS | {"particulars", "amount", "fund_year"}),
    ),
}


def get_kind(slug: str) -> RecordKind:
    """Return the RecordKind for *slug*; raises KeyError for unknown kinds."""
    return KINDS[slug]


# ── DDL ───────────────────────────────────────────────────────────────────────

_COMMON_COLUMNS = """
    operating_unit TEXT NOT NULL DEFAULT '',
    fund_type TEXT NOT NULL DEFAULT 'Current',
    tier TEXT NOT NULL DEFAULT 'Tier 1',
    encoded_by TEXT,
    actual_obligation_date TEXT,
    actual_obligation_amount REAL NOT NULL DEFAULT 0,
    actual_disbursement_date TEXT,
    actual_disbursement_amount REAL NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
"""


def _monthly_ddl(prefix: str) -> str:
    return ",\n".join(f"    {col} REAL NOT NULL DEFAULT 0" for col in monthly_fields(prefix))


_DDL_SCHEMA_VERSION = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    description TEXT,
    applied_at TEXT DEFAULT (datetime('now'))
)
"""

_DDL_001_CORE = f"""
CREATE TABLE IF NOT EXISTS subprojects (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    uid TEXT UNIQUE,
    name TEXT NOT NULL DEFAULT '',
    location TEXT,
    indigenous_people_organization TEXT,
    status TEXT NOT NULL DEFAULT 'Proposed',
    package_type TEXT,
    start_date TEXT,
    estimated_completion_date TEXT,
    actual_completion_date TEXT,
    funding_year INTEGER,
    remarks TEXT,
    details TEXT NOT NULL DEFAULT '[]',
{_COMMON_COLUMNS}
);

CREATE TABLE IF NOT EXISTS activities (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    uid TEXT UNIQUE,
    type TEXT NOT NULL DEFAULT '',
    component TEXT NOT NULL DEFAULT '',
    name TEXT NOT NULL DEFAULT '',
    date TEXT,
    end_date TEXT,
    description TEXT,
    location TEXT,
    facilitator TEXT,
    participating_ipos TEXT NOT NULL DEFAULT '[]',
    participants_male INTEGER NOT NULL DEFAULT 0,
    participants_female INTEGER NOT NULL DEFAULT 0,
    actual_date TEXT,
    actual_participants_male INTEGER NOT NULL DEFAULT 0,
    actual_participants_female INTEGER NOT NULL DEFAULT 0,
    status TEXT NOT NULL DEFAULT 'Proposed',
    funding_year INTEGER,
    expenses TEXT NOT NULL DEFAULT '[]',
{_COMMON_COLUMNS}
);

CREATE TABLE IF NOT EXISTS office_requirements (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    uid TEXT UNIQUE,
    equipment TEXT NOT NULL DEFAULT '',
    specs TEXT,
    purpose TEXT,
    number_of_units INTEGER NOT NULL DEFAULT 0,
    price_per_unit REAL NOT NULL DEFAULT 0,
    obligation_date TEXT,
    disbursement_date TEXT,
    uacs_code TEXT NOT NULL DEFAULT '',
    fund_year INTEGER,
{_COMMON_COLUMNS}
);

CREATE TABLE IF NOT EXISTS staffing_requirements (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    uid TEXT UNIQUE,
    personnel_position TEXT NOT NULL DEFAULT '',
    status TEXT NOT NULL DEFAULT 'Contractual',
    salary_grade INTEGER NOT NULL DEFAULT 1,
    annual_salary REAL NOT NULL DEFAULT 0,
    personnel_type TEXT NOT NULL DEFAULT 'Technical',
    obligation_date TEXT,
    disbursement_date TEXT,
    uacs_code TEXT NOT NULL DEFAULT '',
    fund_year INTEGER,
{_monthly_ddl("disbursement")},
{_monthly_ddl("actual_disbursement")},
{_COMMON_COLUMNS}
);

CREATE TABLE IF NOT EXISTS other_program_expenses (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    uid TEXT UNIQUE,
    particulars TEXT NOT NULL DEFAULT '',
    amount REAL NOT NULL DEFAULT 0,
    obligation_date TEXT,
    disbursement_date TEXT,
    uacs_code TEXT NOT NULL DEFAULT '',
    fund_year INTEGER,
{_monthly_ddl("actual_disbursement")},
{_COMMON_COLUMNS}
);

CREATE TABLE IF NOT EXISTS reference_uacs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    object_type TEXT NOT NULL DEFAULT 'MOOE',
    particular TEXT NOT NULL,
    uacs_code TEXT NOT NULL UNIQUE,
    description TEXT
);
"""

_DDL_002_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_subprojects_filter
    ON subprojects(funding_year, operating_unit, tier, fund_type);
CREATE INDEX IF NOT EXISTS idx_activities_filter
    ON activities(funding_year, operating_unit, tier, fund_type);
CREATE INDEX IF NOT EXISTS idx_office_filter
    ON office_requirements(fund_year, operating_unit, tier, fund_type);
CREATE INDEX IF NOT EXISTS idx_staffing_filter
    ON staffing_requirements(fund_year, operating_unit, tier, fund_type);
CREATE INDEX IF NOT EXISTS idx_other_filter
    ON other_program_expenses(fund_year, operating_unit, tier, fund_type);
CREATE INDEX IF NOT EXISTS idx_uacs_type_particular
    ON reference_uacs(object_type, particular);
"""

# (version, description, sql)
_MIGRATIONS: list[tuple[int, str, str]] = [
    (1, "core record tables and reference_uacs", _DDL_001_CORE),
    (2, "filter indexes", _DDL_002_INDEXES),
]

SCHEMA_VERSION = _MIGRATIONS[-1][0]


def _current_version(conn: sqlite3.Connection) -> int:
    """Return the highest applied migration version (0 if none applied)."""
    try:
        row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
        return row[0] or 0
    except sqlite3.OperationalError:
        # schema_version table doesn't exist yet
        return 0


def migrate(conn: sqlite3.Connection) -> int:
    """Apply all pending migrations in order.

    Idempotent: already-applied migrations are skipped.

    Returns:
        Number of migrations applied in this call (0 if already up to date).
    """
    conn.execute(_DDL_SCHEMA_VERSION)
    conn.commit()

    current = _current_version(conn)
    applied = 0
    for version, description, sql in _MIGRATIONS:
        if version <= current:
            continue
        conn.executescript(sql)
        conn.execute(
            "INSERT INTO schema_version (version, description) VALUES (?, ?)",
            (version, description),
        )
        conn.commit()
        applied += 1
    return applied


def create_schema(conn: sqlite3.Connection) -> int:
    """Create every tracker table on an open connection (runs migrations)."""
    return migrate(conn)


def create_tracker_db(db_path: Path) -> sqlite3.Connection:
    """Open (or create) a tracker database file with pragmas and schema applied.

    Args:
        db_path: Filesystem path for the SQLite file (created if absent).

    Returns:
        An open sqlite3.Connection with ``row_factory = sqlite3.Row``.
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    init_pragmas(conn)
    migrate(conn)
    return conn
