"""
Database connection management for the API.

Provides a get_db() dependency that opens a per-request SQLite connection and
closes it after the response is sent.  The database path is resolved once at
startup from the APP_DB_PATH environment variable (default: tracker.sqlite);
create it with ``python init_tracker_db.py``.

OPT-DB-001: Connections are read-write (record edits, imports, confirms)
            and opened with the shared pragmas from utils.database.
OPT-DB-003: Friendly 503 error when database file is missing.
"""

import os
import sqlite3
from collections.abc import Generator
from pathlib import Path

from fastapi import HTTPException

from utils.database import init_pragmas

_DB_PATH: Path = Path(os.getenv("APP_DB_PATH", "tracker.sqlite"))


def get_db_path() -> Path:
    """Return the configured database path."""
    return _DB_PATH


def _make_conn(db_path: Path) -> sqlite3.Connection:
    """Open a single SQLite connection with standard pragmas.

    ``check_same_thread`` is off because FastAPI may run the dependency and
    the route body on different worker threads.
    """
    conn = sqlite3.connect(str(db_path), check_same_thread=False, timeout=10)
    conn.row_factory = sqlite3.Row
    init_pragmas(conn)
    return conn


def get_db() -> Generator[sqlite3.Connection, None, None]:
    """FastAPI dependency: yield a SQLite connection, close on exit.

    OPT-DB-003: Raises HTTP 503 with a friendly message if the database file
    is missing, instead of a cryptic SQLite error.

    Usage in a route::

        from api.database import get_db
        from fastapi import Depends

        @router.get("/example")
        def example(conn=Depends(get_db)):
            ...
    """
    if not _DB_PATH.exists():
        raise HTTPException(
            status_code=503,
            detail=(
                f"Database not found at '{_DB_PATH}'. "
                "Run 'python init_tracker_db.py' to create it."
            ),
        )
    conn = _make_conn(_DB_PATH)
    try:
        yield conn
    finally:
        conn.close()
