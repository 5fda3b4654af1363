"""Database utilities for the funding tracker.

Provides reusable functions for:
- Database pragmas
- Batch upsert operations
- Common database queries
- A small parameterized SELECT builder
"""

import sqlite3
from typing import List, Dict, Any, Optional

from utils.config import DatabaseConfig


def init_pragmas(conn: sqlite3.Connection,
                 config: Optional[DatabaseConfig] = None) -> None:
    """Initialize SQLite performance and reliability pragmas.

    - WAL mode so list/report reads never block a confirm write
    - NORMAL synchronous mode for speed without data loss
    - busy timeout so concurrent writers wait instead of failing

    Args:
        conn: SQLite connection to configure
        config: Pragma settings (default: DatabaseConfig())
    """
    cfg = config or DatabaseConfig()
    if cfg.wal_mode:
        conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(f"PRAGMA synchronous={cfg.synchronous}")
    conn.execute(f"PRAGMA busy_timeout={int(cfg.busy_timeout_ms)}")
    conn.execute("PRAGMA temp_store=MEMORY")


def get_table_count(conn: sqlite3.Connection, table: str) -> int:
    """Get row count for a table.

    Args:
        conn: SQLite connection
        table: Table name

    Returns:
        Number of rows in table
    """
    result = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()
    return result[0] if result else 0


def table_exists(conn: sqlite3.Connection, table: str) -> bool:
    """Check if a table exists in the database.

    Args:
        conn: SQLite connection
        table: Table name

    Returns:
        True if table exists, False otherwise
    """
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
        (table,)
    )
    return cursor.fetchone() is not None


def query_to_dicts(conn: sqlite3.Connection, query: str,
                   params: tuple = ()) -> List[Dict[str, Any]]:
    """Execute query and return results as list of dicts.

    Args:
        conn: SQLite connection (must have row_factory set)
        query: SQL query string
        params: Query parameters tuple

    Returns:
        List of row dicts
    """
    cursor = conn.execute(query, params)
    return [dict(row) for row in cursor.fetchall()]


# ── OPT-DBUTIL-002: batch_upsert() for incremental updates ───────────────────

def batch_upsert(
    conn: sqlite3.Connection,
    table: str,
    columns: List[str],
    rows: List[tuple],
    conflict_columns: List[str],
    batch_size: int = 1000,
    commit: bool = True,
) -> int:
    """Execute batch upsert operations.

    Uses INSERT ... ON CONFLICT(...) DO UPDATE SET ... semantics so that
    re-importing a spreadsheet updates existing rows (matched on ``uid``)
    instead of duplicating them.

    Args:
        conn: SQLite connection.
        table: Target table name.
        columns: List of column names to insert.
        rows: List of value tuples matching ``columns``.
        conflict_columns: Columns forming the unique constraint to conflict on.
        batch_size: Number of rows per batch (default: 1000).
        commit: Commit after each batch. Pass False when the caller owns
            the transaction.

    Returns:
        Total number of rows upserted.
    """
    if not rows:
        return 0

    cols_str = ", ".join(columns)
    placeholders = ", ".join("?" * len(columns))
    conflict_str = ", ".join(conflict_columns)
    update_set = ", ".join(
        f"{c} = excluded.{c}"
        for c in columns
        if c not in conflict_columns
    )
    sql = (
        f"INSERT INTO {table} ({cols_str}) VALUES ({placeholders}) "
        f"ON CONFLICT({conflict_str}) DO UPDATE SET {update_set}"
    )

    total = 0
    for i in range(0, len(rows), batch_size):
        batch = rows[i : i + batch_size]
        conn.executemany(sql, batch)
        if commit:
            conn.commit()
        total += len(batch)
    return total


# ── OPT-DBUTIL-003: QueryBuilder class ────────────────────────────────────────

class QueryBuilder:
    """Fluent SQL SELECT query builder producing safe parameterized queries.

    Column names used in ``select()``, ``order_by()``, and ``from_table()``
    are passed as-is (callers are responsible for validating them against
    allow-lists). WHERE conditions use ``?`` placeholders so values are
    never interpolated.

    Example::

        sql, params = (
            QueryBuilder()
            .from_table("staffing_requirements")
            .select(["id", "uid", "personnel_position"])
            .where("fund_year = ?", 2024)
            .where("operating_unit = ?", "NPMO")
            .order_by("id")
            .limit(1000)
            .offset(0)
            .build()
        )
    """

    def __init__(self) -> None:
        self._table: str = ""
        self._columns: List[str] = ["*"]
        self._conditions: List[str] = []
        self._params: List[Any] = []
        self._order: str = ""
        self._limit: int | None = None
        self._offset: int | None = None

    def from_table(self, table: str) -> "QueryBuilder":
        """Set the FROM table."""
        self._table = table
        return self

    def select(self, columns: List[str]) -> "QueryBuilder":
        """Set the SELECT column list."""
        self._columns = columns
        return self

    def where(self, condition: str, *values: Any) -> "QueryBuilder":
        """Add a WHERE condition with positional ``?`` placeholders.

        Args:
            condition: SQL condition fragment, e.g. "fund_year = ?".
            *values: Values for the ``?`` placeholders in ``condition``.
        """
        self._conditions.append(condition)
        self._params.extend(values)
        return self

    def order_by(self, column: str, direction: str = "ASC") -> "QueryBuilder":
        """Set ORDER BY clause."""
        direction = "DESC" if direction.upper() == "DESC" else "ASC"
        self._order = f"ORDER BY {column} {direction}"
        return self

    def limit(self, n: int) -> "QueryBuilder":
        """Set LIMIT."""
        self._limit = n
        return self

    def offset(self, n: int) -> "QueryBuilder":
        """Set OFFSET."""
        self._offset = n
        return self

    def build(self) -> tuple[str, List[Any]]:
        """Build and return (sql, params) tuple.

        Raises:
            ValueError: If no table has been set.
        """
        if not self._table:
            raise ValueError("QueryBuilder: no table set, call .from_table() first")
        cols = ", ".join(self._columns)
        sql = f"SELECT {cols} FROM {self._table}"
        params = list(self._params)
        if self._conditions:
            sql += " WHERE " + " AND ".join(self._conditions)
        if self._order:
            sql += f" {self._order}"
        if self._limit is not None:
            sql += f" LIMIT {self._limit}"
        if self._offset is not None:
            sql += f" OFFSET {self._offset}"
        return sql, params
